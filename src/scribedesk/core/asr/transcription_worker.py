import threading
import time

from PySide6.QtCore import QThread, Signal

from ...utils.logger import get_logger
from ..errors import TranscriptionError
from ..models import AudioArtifact
from .backends import TranscriptionBackend

logger = get_logger(__name__)


class TranscriptionWorkerThread(QThread):
    """
    Background thread running one backend transcription.

    The backend's progress callback is re-emitted as a signal, so the owner
    thread receives every update through its event loop.

    Signals:
        succeeded: Emitted with the finished ``Transcription``
        failed: Emitted with a human-readable error message
        progress: Emitted with (fraction, status_message)
    """

    succeeded = Signal(object)
    failed = Signal(str)
    progress = Signal(float, str)

    def __init__(
        self,
        backend: TranscriptionBackend,
        artifact: AudioArtifact,
        parent=None,
    ):
        super().__init__(parent)
        self._backend = backend
        self._artifact = artifact
        self._cancel_event = threading.Event()

    @property
    def backend(self) -> TranscriptionBackend:
        return self._backend

    def cancel(self) -> None:
        """Cancel the run, including one that has not reached the backend yet."""
        self._cancel_event.set()
        self._backend.cancel()

    def run(self):
        start_time = time.time()
        self._backend.on_progress = self._on_progress

        try:
            logger.info(
                f"Background transcription started: {self._artifact.name} "
                f"via {self._backend.display_name}"
            )
            transcription = self._backend.transcribe(
                self._artifact, cancel_event=self._cancel_event
            )

            duration = time.time() - start_time
            preview = transcription.text[:50]
            logger.info(
                f"Transcription completed in {duration:.2f}s: "
                f"'{preview}{'...' if len(transcription.text) > 50 else ''}'"
            )
            self.succeeded.emit(transcription)

        except TranscriptionError as e:
            logger.error(f"Background transcription failed: {e}")
            self.failed.emit(str(e))
        except Exception as e:
            logger.exception(f"Background transcription error: {e}")
            self.failed.emit(str(e))
        finally:
            self._backend.on_progress = None

    def _on_progress(self, fraction: float, message: str) -> None:
        self.progress.emit(fraction, message)
