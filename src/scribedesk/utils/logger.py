import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from platformdirs import user_log_path

ROOT_LOGGER_NAME = "scribedesk"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_root_logger: Optional[logging.Logger] = None


def get_log_dir() -> Path:
    return user_log_path(ROOT_LOGGER_NAME, appauthor=False, ensure_exists=True)


def _build_handlers(level: int, to_console: bool) -> list[logging.Handler]:
    formatter = logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    file_handler = RotatingFileHandler(
        get_log_dir() / "app.log",
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=5,
        encoding="utf-8",
    )
    handlers: list[logging.Handler] = [file_handler]

    if to_console:
        handlers.append(logging.StreamHandler(sys.stderr))

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
    return handlers


def get_logger(name: str = ROOT_LOGGER_NAME) -> logging.Logger:
    """Return a logger below the ``scribedesk`` hierarchy.

    The shared root is configured lazily on first use: a rotating file in the
    platform log directory plus stderr when ``LOG_TO_CONSOLE`` is set.
    """
    global _root_logger

    if name.startswith("src."):
        name = name[len("src.") :]

    if _root_logger is None:
        from ..config import LOG_TO_CONSOLE, get_log_level

        root = logging.getLogger(ROOT_LOGGER_NAME)
        if not root.handlers:
            level = get_log_level()
            root.setLevel(level)
            for handler in _build_handlers(level, LOG_TO_CONSOLE):
                root.addHandler(handler)
            root.propagate = False
        _root_logger = root

    if name == ROOT_LOGGER_NAME:
        return _root_logger

    return logging.getLogger(name)


def shutdown_logging() -> None:
    """Close all handlers so the log file is released."""
    global _root_logger
    root = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in root.handlers[:]:
        handler.close()
        root.removeHandler(handler)
    _root_logger = None
