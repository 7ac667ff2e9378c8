"""Platform-specific utilities for locating external tools."""

import os
import platform
import shutil
import subprocess
from typing import Iterable, Optional

from .logger import get_logger

logger = get_logger(__name__)

# Common install prefixes searched in addition to the inherited PATH
TOOL_PREFIXES = ["/opt/homebrew/bin", "/usr/local/bin", "/usr/bin", "/bin"]


def get_platform() -> str:
    system = platform.system()
    if system == "Darwin":
        return "macos"
    return system.lower()


def first_existing_path(candidates: Iterable[str]) -> Optional[str]:
    for candidate in candidates:
        path = os.path.expanduser(candidate)
        if os.path.isfile(path):
            return path
    return None


def find_tool(name: str) -> Optional[str]:
    found = shutil.which(name)
    if found:
        return found
    return first_existing_path(os.path.join(prefix, name) for prefix in TOOL_PREFIXES)


def is_whisper_installed(python_path: str) -> bool:
    """Check whether ``python_path`` can import the whisper package."""
    try:
        result = subprocess.run(
            [python_path, "-c", "import whisper"],
            capture_output=True,
            timeout=30,
        )
        return result.returncode == 0
    except subprocess.TimeoutExpired:
        logger.warning("Whisper availability check timed out")
        return False
    except OSError as e:
        logger.warning(f"Failed to check whisper availability: {e}")
        return False
