from .history import HistoryStore, get_history_file
from .settings import (
    DEFAULT_API_ENDPOINT,
    Settings,
    get_config_dir,
    get_data_dir,
    get_recordings_dir,
    get_settings,
)

__all__ = [
    "DEFAULT_API_ENDPOINT",
    "HistoryStore",
    "Settings",
    "get_config_dir",
    "get_data_dir",
    "get_history_file",
    "get_recordings_dir",
    "get_settings",
]
