"""
Pytest configuration for Qt-based tests.

Provides fixtures for Qt object cleanup between tests and keeps settings,
history and recordings inside a temporary directory.
"""

from unittest.mock import patch

import pytest
from PySide6.QtCore import QCoreApplication

import scribedesk.core.settings.settings as settings_module


@pytest.fixture(autouse=True)
def cleanup_qt_objects(qtbot, request):
    """
    Process pending events after each test so queued signals and deleteLater
    calls do not leak into the next test.
    """
    yield

    app = QCoreApplication.instance()
    if app:
        app.processEvents()


@pytest.fixture(autouse=True)
def isolated_dirs(tmp_path):
    """Redirect every persisted file to a per-test directory."""
    config_dir = tmp_path / "config"
    data_dir = tmp_path / "data"
    recordings_dir = data_dir / "recordings"
    for directory in (config_dir, data_dir, recordings_dir):
        directory.mkdir(parents=True)

    settings_module._settings_instance = None
    with patch.object(
        settings_module, "get_config_dir", return_value=config_dir
    ), patch.object(settings_module, "get_data_dir", return_value=data_dir), patch(
        "scribedesk.core.settings.history.get_config_dir", return_value=config_dir
    ), patch(
        "scribedesk.core.audio.capture.get_recordings_dir",
        return_value=recordings_dir,
    ):
        yield tmp_path
    settings_module._settings_instance = None
