import os
import subprocess
from typing import Optional

import scipy.io.wavfile as wav
from PySide6.QtCore import QThread, Signal

from ...utils.logger import get_logger
from ...utils.platform import find_tool
from ..models import PendingArtifact, ReadyArtifact

logger = get_logger(__name__)

FFPROBE_TIMEOUT = 30


def _wav_duration(path: str) -> Optional[float]:
    try:
        rate, data = wav.read(path, mmap=True)
    except (ValueError, OSError) as e:
        logger.debug(f"Could not read WAV header of {path}: {e}")
        return None
    if rate <= 0:
        return None
    return len(data) / float(rate)


def _ffprobe_duration(path: str) -> Optional[float]:
    ffprobe = find_tool("ffprobe")
    if ffprobe is None:
        logger.debug("ffprobe not found, duration unknown")
        return None

    try:
        result = subprocess.run(
            [
                ffprobe,
                "-v",
                "error",
                "-show_entries",
                "format=duration",
                "-of",
                "default=noprint_wrappers=1:nokey=1",
                path,
            ],
            capture_output=True,
            text=True,
            timeout=FFPROBE_TIMEOUT,
        )
    except (subprocess.TimeoutExpired, OSError) as e:
        logger.debug(f"ffprobe failed for {path}: {e}")
        return None

    if result.returncode != 0:
        return None

    try:
        return max(0.0, float(result.stdout.strip()))
    except ValueError:
        return None


def probe_duration(path: str, audio_format: str) -> Optional[float]:
    if audio_format == "wav":
        duration = _wav_duration(path)
        if duration is not None:
            return duration
    return _ffprobe_duration(path)


def probe_artifact(artifact: PendingArtifact) -> ReadyArtifact:
    """Read size and duration of a placeholder artifact.

    Raises:
        OSError: If the file cannot be stat'ed. A failed duration probe is not
            an error; the result then carries ``duration=None``.
    """
    size_bytes = os.stat(artifact.path).st_size
    duration = probe_duration(artifact.path, artifact.format)
    return artifact.enrich(size_bytes=size_bytes, duration=duration)


class ArtifactProbeThread(QThread):
    """Probes an artifact off the owner thread.

    Signals:
        probed: Emitted with the enriched ``ReadyArtifact``
        failed: Emitted with (artifact_id, error_message) when the file
                could not be read
    """

    probed = Signal(object)
    failed = Signal(str, str)

    def __init__(self, artifact: PendingArtifact, parent=None):
        super().__init__(parent)
        self._artifact = artifact

    def run(self):
        try:
            ready = probe_artifact(self._artifact)
        except OSError as e:
            logger.warning(f"Failed to probe {self._artifact.name}: {e}")
            self.failed.emit(self._artifact.id, str(e))
            return

        logger.info(
            f"Audio file processed: {ready.name}, duration: {ready.duration}s, "
            f"size: {ready.size_bytes} bytes"
        )
        self.probed.emit(ready)
