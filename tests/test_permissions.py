"""Tests for microphone permission tracking."""

from unittest.mock import patch

import sounddevice as sd

from scribedesk.core.audio import MicrophonePermission, PermissionState
from scribedesk.core.settings import Settings


class TestStatus:
    def test_non_macos_is_authorized(self):
        permission = MicrophonePermission(platform_name="linux")
        assert permission.status() is PermissionState.AUTHORIZED

    def test_macos_without_decision(self):
        permission = MicrophonePermission(settings=Settings(), platform_name="macos")
        assert permission.status() is PermissionState.NOT_DETERMINED

    def test_macos_stored_decision(self):
        settings = Settings(microphone_permission="denied")
        permission = MicrophonePermission(settings=settings, platform_name="macos")
        assert permission.status() is PermissionState.DENIED

    def test_macos_garbage_is_unknown(self):
        settings = Settings(microphone_permission="maybe")
        permission = MicrophonePermission(settings=settings, platform_name="macos")
        assert permission.status() is PermissionState.UNKNOWN

    @patch("scribedesk.core.audio.permissions.sd.InputStream")
    def test_status_never_opens_device(self, mock_stream):
        permission = MicrophonePermission(settings=Settings(), platform_name="macos")
        permission.status()
        mock_stream.assert_not_called()


class TestRequest:
    @patch("scribedesk.core.audio.permissions.sd.sleep")
    @patch("scribedesk.core.audio.permissions.sd.InputStream")
    def test_grant_is_stored(self, mock_stream, mock_sleep):
        settings = Settings()
        permission = MicrophonePermission(settings=settings, platform_name="macos")

        assert permission.request() is True

        mock_stream.assert_called_once_with(channels=1)
        assert permission.status() is PermissionState.AUTHORIZED
        assert settings.microphone_permission == "authorized"

    @patch("scribedesk.core.audio.permissions.sd.InputStream")
    def test_refusal_is_stored(self, mock_stream):
        mock_stream.side_effect = sd.PortAudioError("denied by user")
        settings = Settings()
        permission = MicrophonePermission(settings=settings, platform_name="macos")

        assert permission.request() is False
        assert permission.status() is PermissionState.DENIED
        assert settings.microphone_permission == "denied"

    @patch("scribedesk.core.audio.permissions.sd.InputStream")
    def test_requested_once_per_process(self, mock_stream):
        mock_stream.side_effect = sd.PortAudioError("denied by user")
        permission = MicrophonePermission(platform_name="macos")

        permission.request()
        permission.request()

        assert mock_stream.call_count == 1
        assert permission.has_requested

    def test_forget(self):
        settings = Settings(microphone_permission="denied")
        permission = MicrophonePermission(settings=settings, platform_name="macos")
        permission._decision = PermissionState.DENIED

        permission.forget()

        assert settings.microphone_permission is None
        assert permission.status() is PermissionState.NOT_DETERMINED
