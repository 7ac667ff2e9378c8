from .backends import ProgressCallback, TranscriptionBackend, create_backend
from .local_engine import LocalEngineBackend
from .remote_api import RemoteAPIBackend
from .result_parser import ResultParser, derive_confidence
from .transcription_worker import TranscriptionWorkerThread

__all__ = [
    "ProgressCallback",
    "TranscriptionBackend",
    "create_backend",
    "LocalEngineBackend",
    "RemoteAPIBackend",
    "ResultParser",
    "derive_confidence",
    "TranscriptionWorkerThread",
]
