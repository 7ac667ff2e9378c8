from .capture import AudioCapture, CaptureState
from .permissions import MicrophonePermission, PermissionState
from .probe import ArtifactProbeThread, probe_artifact
from .recorder import AudioDevice, AudioRecorder

__all__ = [
    "AudioCapture",
    "CaptureState",
    "MicrophonePermission",
    "PermissionState",
    "ArtifactProbeThread",
    "probe_artifact",
    "AudioDevice",
    "AudioRecorder",
]
