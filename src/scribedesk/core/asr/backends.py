"""
Transcription backend abstraction.

Provides a unified interface for the two execution strategies:
- Local: the whisper CLI run as a subprocess
- Remote: the OpenAI audio transcription endpoint over HTTP

``transcribe()`` blocks and is meant to run on a worker thread. Progress is
reported through the ``on_progress`` callback, never by writing to shared
state from another thread.
"""

import threading
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Callable, Optional

from ...utils.logger import get_logger
from ..errors import BackendBusy, TranscriptionCancelled
from ..models import AudioArtifact, BackendKind, Transcription

if TYPE_CHECKING:
    from ..settings import Settings

logger = get_logger(__name__)

ProgressCallback = Callable[[float, str], None]


class TranscriptionBackend(ABC):
    """
    Abstract base class for transcription backends.

    At most one transcription runs per instance; a concurrent call raises
    ``BackendBusy`` instead of queueing.
    """

    kind: BackendKind

    def __init__(self, on_progress: Optional[ProgressCallback] = None):
        self.on_progress = on_progress
        self._busy_lock = threading.Lock()
        self._cancel_event = threading.Event()
        self._progress = 0.0
        self._status_message = ""

    @property
    def display_name(self) -> str:
        return self.kind.display_name

    @property
    def is_busy(self) -> bool:
        return self._busy_lock.locked()

    @property
    def progress(self) -> float:
        return self._progress

    @property
    def status_message(self) -> str:
        return self._status_message

    def transcribe(
        self,
        artifact: AudioArtifact,
        cancel_event: Optional[threading.Event] = None,
    ) -> Transcription:
        """
        Transcribe an audio artifact.

        Args:
            artifact: The audio to transcribe
            cancel_event: Cancellation flag for this run. A caller that may
                cancel before the run starts passes its own event; one that
                is already set aborts the run before any work is done.

        Raises:
            BackendBusy: Another transcription is running on this backend.
            TranscriptionError: Any backend-specific failure.
        """
        if not self._busy_lock.acquire(blocking=False):
            raise BackendBusy()

        self._cancel_event = cancel_event or threading.Event()
        try:
            self._check_cancelled()
            self._report(0.0, "Starting transcription...")
            transcription = self._transcribe(artifact)
            self._report(1.0, "Transcription complete!")
            return transcription
        finally:
            self._busy_lock.release()

    def cancel(self) -> None:
        """Abort the running transcription, if any."""
        if not self.is_busy:
            return
        logger.info(f"Cancelling {self.display_name} transcription")
        self._cancel_event.set()
        self._on_cancel()

    @abstractmethod
    def is_available(self) -> bool:
        """Report whether the backend can run at all (tool installed, key set)."""

    @abstractmethod
    def _transcribe(self, artifact: AudioArtifact) -> Transcription:
        pass

    def _on_cancel(self) -> None:
        pass

    def _check_cancelled(self) -> None:
        if self._cancel_event.is_set():
            raise TranscriptionCancelled()

    def _report(self, progress: float, message: str) -> None:
        self._progress = min(1.0, max(0.0, progress))
        self._status_message = message
        logger.debug(f"[{self.kind.value}] {self._progress:.0%} {message}")
        if self.on_progress is not None:
            self.on_progress(self._progress, message)


def create_backend(
    kind: BackendKind,
    settings: "Settings",
    on_progress: Optional[ProgressCallback] = None,
) -> TranscriptionBackend:
    if kind is BackendKind.LOCAL:
        from .local_engine import LocalEngineBackend

        return LocalEngineBackend(
            model_size=settings.model_size,
            language=settings.language,
            python_path=settings.python_path,
            on_progress=on_progress,
        )

    from .remote_api import RemoteAPIBackend

    return RemoteAPIBackend(
        api_key=settings.openai_api_key,
        endpoint=settings.api_endpoint,
        language=settings.language,
        on_progress=on_progress,
    )
