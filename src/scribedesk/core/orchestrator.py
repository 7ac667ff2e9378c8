"""
Drives the capture -> transcribe -> store pipeline.

The orchestrator lives on the owner thread. Each transcription runs in a
``TranscriptionWorkerThread``; results and errors come back as queued signals
and are applied here, so the result list only ever changes on one thread.
Backend failures never propagate out of this object: they become
``last_error`` plus ``error_occurred``.
"""

from typing import Dict, List, Optional, Union

from PySide6.QtCore import QObject, Signal

from ..utils.logger import get_logger
from .asr import (
    LocalEngineBackend,
    RemoteAPIBackend,
    TranscriptionBackend,
    TranscriptionWorkerThread,
    create_backend,
)
from .audio import AudioCapture
from .errors import MissingCredential
from .models import AudioArtifact, BackendKind, ModelSize, Transcription
from .settings import HistoryStore, Settings, get_settings

logger = get_logger(__name__)

NO_ARTIFACT_MESSAGE = (
    "No audio file selected. Please record or import an audio file first."
)
BUSY_MESSAGE = "A transcription is already running. Please wait for it to finish."


class TranscriptionOrchestrator(QObject):
    """
    Holds the backend selection and the newest-first result list.

    Signals:
        results_changed: The result list was modified
        transcription_finished: A new ``Transcription`` was added
        error_occurred: Human-readable error message
        progress_changed: (fraction, status_message) from the running backend
        busy_changed: True when a transcription starts, False when it ends
        backend_changed: The newly selected ``BackendKind``
    """

    results_changed = Signal()
    transcription_finished = Signal(object)
    error_occurred = Signal(str)
    progress_changed = Signal(float, str)
    busy_changed = Signal(bool)
    backend_changed = Signal(object)

    def __init__(
        self,
        capture: Optional[AudioCapture] = None,
        settings: Optional[Settings] = None,
        store: Optional[HistoryStore] = None,
        backends: Optional[Dict[BackendKind, TranscriptionBackend]] = None,
        parent=None,
    ):
        super().__init__(parent)
        self._capture = capture
        self._settings = settings or get_settings()
        self._store = store or HistoryStore()
        self._backends: Dict[BackendKind, TranscriptionBackend] = dict(backends or {})

        self._selected = self._settings.selected_backend
        self._results: List[Transcription] = self._store.load()
        self._last_error: Optional[str] = None
        self._show_error = False
        self._worker: Optional[TranscriptionWorkerThread] = None

        logger.info(
            f"Loaded {len(self._results)} transcriptions, "
            f"backend={self._selected.value}"
        )

    @property
    def selected_backend(self) -> BackendKind:
        return self._selected

    @property
    def results(self) -> List[Transcription]:
        return list(self._results)

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    @property
    def show_error(self) -> bool:
        return self._show_error

    @property
    def is_transcribing(self) -> bool:
        return self._worker is not None

    def backend(self, kind: Optional[BackendKind] = None) -> TranscriptionBackend:
        kind = kind or self._selected
        if kind not in self._backends:
            self._backends[kind] = create_backend(kind, self._settings)
        return self._backends[kind]

    def select_backend(self, kind: Union[BackendKind, str]) -> None:
        kind = BackendKind(kind)
        if kind is self._selected:
            return

        self._selected = kind
        self._settings.selected_backend = kind
        self._settings.save()
        logger.info(f"Selected backend: {kind.display_name}")
        self.backend_changed.emit(kind)

    def update_api_key(self, api_key: str) -> None:
        self._settings.openai_api_key = (api_key or "").strip()
        self._settings.save()

        backend = self._backends.get(BackendKind.REMOTE)
        if isinstance(backend, RemoteAPIBackend):
            backend.update_api_key(api_key)

    def set_model_size(self, model_size: Union[ModelSize, str]) -> None:
        model_size = ModelSize(model_size)
        self._settings.model_size = model_size
        self._settings.save()

        backend = self._backends.get(BackendKind.LOCAL)
        if isinstance(backend, LocalEngineBackend):
            backend.model_size = model_size
        logger.info(f"Local model size set to {model_size.value}")

    def run_transcription(self, artifact: Optional[AudioArtifact] = None) -> bool:
        """
        Start transcribing ``artifact`` (default: the capture's current one).

        Returns:
            True if a worker was started. Precondition failures are reported
            through ``error_occurred`` and return False.
        """
        if self.is_transcribing:
            self._report_error(BUSY_MESSAGE)
            return False

        if artifact is None and self._capture is not None:
            artifact = self._capture.current_artifact
        if artifact is None:
            self._report_error(NO_ARTIFACT_MESSAGE)
            return False

        backend = self.backend()
        if not backend.is_available():
            self._report_error(self._unavailable_message(backend))
            return False

        self.clear_error()

        worker = TranscriptionWorkerThread(backend, artifact, parent=self)
        worker.succeeded.connect(self._on_transcription_succeeded)
        worker.failed.connect(self._on_transcription_failed)
        worker.progress.connect(self.progress_changed)
        worker.finished.connect(self._on_worker_finished)
        self._worker = worker

        self.busy_changed.emit(True)
        worker.start()
        return True

    def cancel(self) -> None:
        if self._worker is not None:
            self._worker.cancel()

    def delete_result(self, transcription_id: str) -> bool:
        for index, transcription in enumerate(self._results):
            if transcription.id == transcription_id:
                del self._results[index]
                self._persist()
                self.results_changed.emit()
                return True
        return False

    def rename_result(self, transcription_id: str, label: Optional[str]) -> bool:
        for transcription in self._results:
            if transcription.id == transcription_id:
                transcription.label = (label or "").strip() or None
                self._persist()
                self.results_changed.emit()
                return True
        return False

    def clear_error(self) -> None:
        self._last_error = None
        self._show_error = False

    def shutdown(self, timeout_ms: int = 5000) -> None:
        if self._worker is not None:
            self.cancel()
            self._worker.wait(timeout_ms)

    def _on_transcription_succeeded(self, transcription: Transcription) -> None:
        self._results.insert(0, transcription)
        self._persist()
        self.results_changed.emit()
        self.transcription_finished.emit(transcription)

    def _on_transcription_failed(self, message: str) -> None:
        self._report_error(f"Transcription failed: {message}")

    def _on_worker_finished(self) -> None:
        worker = self._worker
        self._worker = None
        if worker is not None:
            worker.deleteLater()
        self.busy_changed.emit(False)

    def _persist(self) -> None:
        try:
            self._store.save(self._results)
        except OSError as e:
            logger.error(f"Could not save history: {e}")
            self._report_error(f"Could not save history: {e}")

    def _report_error(self, message: str) -> None:
        logger.error(message)
        self._last_error = message
        self._show_error = True
        self.error_occurred.emit(message)

    @staticmethod
    def _unavailable_message(backend: TranscriptionBackend) -> str:
        if isinstance(backend, RemoteAPIBackend):
            return str(MissingCredential())
        return (
            f"{backend.display_name} not available. "
            "Please ensure Whisper is properly installed."
        )
