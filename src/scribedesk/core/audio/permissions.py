"""
Microphone permission tracking.

``status()`` only inspects cached state and never opens a device, so it is safe
to call at any time. ``request()`` is the single place that touches the input
device, and it runs at most once per process.
"""

from enum import Enum
from typing import Optional

import sounddevice as sd

from ...utils.logger import get_logger
from ...utils.platform import get_platform
from ..settings import Settings

logger = get_logger(__name__)


class PermissionState(str, Enum):
    AUTHORIZED = "authorized"
    NOT_DETERMINED = "not_determined"
    DENIED = "denied"
    RESTRICTED = "restricted"
    UNKNOWN = "unknown"


class MicrophonePermission:
    def __init__(
        self,
        settings: Optional[Settings] = None,
        platform_name: Optional[str] = None,
    ):
        self._settings = settings
        self._platform = platform_name or get_platform()
        self._decision: Optional[PermissionState] = None
        self._requested = False

    @property
    def has_requested(self) -> bool:
        return self._requested

    def status(self) -> PermissionState:
        if self._decision is not None:
            return self._decision

        # Only macOS gates microphone access per application
        if self._platform != "macos":
            return PermissionState.AUTHORIZED

        stored = self._settings.microphone_permission if self._settings else None
        if stored is None:
            return PermissionState.NOT_DETERMINED

        try:
            return PermissionState(stored)
        except ValueError:
            return PermissionState.UNKNOWN

    def request(self) -> bool:
        if self._requested:
            return self._decision is PermissionState.AUTHORIZED

        self._requested = True
        logger.info("Requesting microphone access")
        granted = self._prompt()
        self._decision = (
            PermissionState.AUTHORIZED if granted else PermissionState.DENIED
        )

        if self._settings is not None:
            self._settings.microphone_permission = self._decision.value
            self._settings.save()

        logger.info(f"Microphone access {self._decision.value}")
        return granted

    def forget(self) -> None:
        """Drop the stored decision so the next start asks again."""
        self._decision = None
        if self._settings is not None:
            self._settings.microphone_permission = None
            self._settings.save()

    def _prompt(self) -> bool:
        # Opening a stream is what triggers the OS consent dialog
        try:
            with sd.InputStream(channels=1):
                sd.sleep(50)
            return True
        except sd.PortAudioError as e:
            logger.warning(f"Microphone access refused: {e}")
            return False
