"""
Audio capture state machine.

Owns the recording session and the currently selected audio artifact.
All state lives on the thread that owns this object; file probing runs in an
``ArtifactProbeThread`` and comes back through queued signals.

States:
    IDLE -> PERMISSION_PENDING -> RECORDING -> IDLE (with artifact)
    IDLE -> IMPORTING -> IDLE (with artifact)
"""

import time
from enum import Enum, auto
from pathlib import Path
from typing import List, Optional, Union

from PySide6.QtCore import QObject, QTimer, Signal

from ...utils.logger import get_logger
from ..errors import AudioFileNotFound, CaptureError, DeviceError, PermissionDenied
from ..models import AudioArtifact, PendingArtifact, ReadyArtifact
from ..settings import get_recordings_dir, get_settings
from .permissions import MicrophonePermission, PermissionState
from .probe import ArtifactProbeThread
from .recorder import AudioRecorder

logger = get_logger(__name__)


class CaptureState(Enum):
    IDLE = auto()
    PERMISSION_PENDING = auto()
    RECORDING = auto()
    IMPORTING = auto()


class AudioCapture(QObject):
    """
    Records from the microphone or imports files, producing audio artifacts.

    Signals:
        state_changed: New ``CaptureState``
        elapsed_changed: Seconds since recording started (about every 100ms)
        artifact_changed: Current artifact (placeholder, enriched, or None)
        artifact_ready: Enriched ``ReadyArtifact`` once probing finished
        artifact_unreadable: (artifact_id, message) when size and duration
            could not be read; the placeholder stays current
        error_occurred: Human-readable error message
    """

    TICK_INTERVAL_MS = 100

    state_changed = Signal(object)
    elapsed_changed = Signal(float)
    artifact_changed = Signal(object)
    artifact_ready = Signal(object)
    artifact_unreadable = Signal(str, str)
    error_occurred = Signal(str)

    def __init__(
        self,
        recorder: Optional[AudioRecorder] = None,
        permission: Optional[MicrophonePermission] = None,
        recordings_dir: Optional[Path] = None,
        parent=None,
    ):
        super().__init__(parent)
        if recorder is None or permission is None:
            settings = get_settings()
            recorder = recorder or AudioRecorder(
                sample_rate=settings.sample_rate, device=settings.input_device
            )
            permission = permission or MicrophonePermission(settings=settings)
        self._recorder = recorder
        self._permission = permission
        self._recordings_dir = recordings_dir

        self._state = CaptureState.IDLE
        self._artifact: Optional[AudioArtifact] = None
        self._started_at: Optional[float] = None
        self._probe_threads: List[ArtifactProbeThread] = []

        self._tick = QTimer(self)
        self._tick.setInterval(self.TICK_INTERVAL_MS)
        self._tick.timeout.connect(self._on_tick)

    @property
    def state(self) -> CaptureState:
        return self._state

    @property
    def is_recording(self) -> bool:
        return self._state is CaptureState.RECORDING

    @property
    def current_artifact(self) -> Optional[AudioArtifact]:
        return self._artifact

    @property
    def elapsed(self) -> float:
        if self._started_at is None:
            return 0.0
        return time.monotonic() - self._started_at

    def request_capture(self) -> None:
        """
        Start recording after checking microphone permission.

        Raises:
            PermissionDenied: Access is denied, restricted or was refused.
            DeviceError: The input stream could not be opened.
            CaptureError: An import is in progress.
        """
        if self._state is CaptureState.RECORDING:
            return
        if self._state is not CaptureState.IDLE:
            raise CaptureError(f"Cannot start recording while {self._state.name}")

        status = self._permission.status()
        logger.debug(f"Microphone permission status: {status.value}")

        if status is PermissionState.NOT_DETERMINED:
            self._set_state(CaptureState.PERMISSION_PENDING)
            if not self._permission.request():
                raise self._abort(PermissionDenied())
        elif status is not PermissionState.AUTHORIZED:
            raise self._abort(
                PermissionDenied(
                    f"Microphone access {status.value.replace('_', ' ')}. "
                    "Enable it in your system privacy settings."
                )
            )

        if not self._recorder.start():
            raise self._abort(DeviceError(self._recorder.last_error))

        self._started_at = time.monotonic()
        self._set_state(CaptureState.RECORDING)
        self._tick.start()
        logger.info("Recording started")

    def stop_capture(self) -> Optional[PendingArtifact]:
        """
        Stop recording and publish the recording as a placeholder artifact.

        Returns:
            The placeholder artifact, or None if nothing was recorded.
        """
        if self._state is not CaptureState.RECORDING:
            return None

        self._tick.stop()
        audio_data = self._recorder.stop()
        self._started_at = None
        self._set_state(CaptureState.IDLE)
        self.elapsed_changed.emit(0.0)

        if audio_data is None or len(audio_data) == 0:
            logger.warning("No audio data captured")
            return None

        recordings_dir = self._recordings_dir or get_recordings_dir()
        path = recordings_dir / f"recording_{int(time.time() * 1000)}.wav"
        try:
            self._recorder.write_wav(audio_data, path)
        except OSError as e:
            raise self._abort(DeviceError(f"Could not save recording: {e}"))

        logger.info(f"Recording stopped: {len(audio_data)} samples -> {path.name}")
        return self._publish_placeholder(path)

    def import_file(self, path: Union[str, Path]) -> PendingArtifact:
        """
        Wrap an existing audio file as the current artifact.

        Raises:
            AudioFileNotFound: The path does not point to a file.
            CaptureError: A recording is in progress.
        """
        if self._state is not CaptureState.IDLE:
            raise CaptureError(f"Cannot import a file while {self._state.name}")

        source = Path(path).expanduser()
        if not source.is_file():
            raise self._abort(AudioFileNotFound(f"Audio file not found: {source}"))

        self._set_state(CaptureState.IMPORTING)
        artifact = self._publish_placeholder(source)
        self._set_state(CaptureState.IDLE)
        return artifact

    def clear(self) -> None:
        self._artifact = None
        self.artifact_changed.emit(None)

    def wait_for_probes(self, timeout_ms: int = 5000) -> None:
        for thread in list(self._probe_threads):
            thread.wait(timeout_ms)

    def _publish_placeholder(self, path: Path) -> PendingArtifact:
        artifact = PendingArtifact.from_path(path)
        self._artifact = artifact
        self.artifact_changed.emit(artifact)
        logger.info(f"Audio file selected: {artifact.name}")

        thread = ArtifactProbeThread(artifact, parent=self)
        thread.probed.connect(self._on_probed)
        thread.failed.connect(self._on_probe_failed)
        thread.finished.connect(lambda: self._release_probe(thread))
        self._probe_threads.append(thread)
        thread.start()
        return artifact

    def _on_probed(self, ready: ReadyArtifact) -> None:
        # A newer selection may have replaced the artifact meanwhile
        if self._artifact is None or self._artifact.id != ready.id:
            logger.debug(f"Discarding probe result for stale artifact {ready.name}")
            return
        self._artifact = ready
        self.artifact_changed.emit(ready)
        self.artifact_ready.emit(ready)

    def _on_probe_failed(self, artifact_id: str, message: str) -> None:
        logger.warning(f"Keeping unprobed artifact {artifact_id}: {message}")
        if self._artifact is not None and self._artifact.id == artifact_id:
            self.artifact_unreadable.emit(artifact_id, message)

    def _release_probe(self, thread: ArtifactProbeThread) -> None:
        if thread in self._probe_threads:
            self._probe_threads.remove(thread)
        thread.deleteLater()

    def _on_tick(self) -> None:
        self.elapsed_changed.emit(self.elapsed)

    def _set_state(self, state: CaptureState) -> None:
        if state is self._state:
            return
        self._state = state
        self.state_changed.emit(state)

    def _abort(self, error: CaptureError) -> CaptureError:
        self._tick.stop()
        self._started_at = None
        self._set_state(CaptureState.IDLE)
        logger.error(f"Capture failed: {error}")
        self.error_occurred.emit(str(error))
        return error
