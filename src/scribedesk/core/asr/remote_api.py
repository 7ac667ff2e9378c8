import os
import time
from pathlib import Path
from typing import Optional

import requests

from ...utils.logger import get_logger
from ..errors import (
    APIError,
    FileTooLarge,
    InvalidAudioFile,
    InvalidCredential,
    MaxRetriesExceeded,
    MissingCredential,
    NetworkError,
    RateLimited,
    ServerError,
    TranscriptionCancelled,
    TranscriptionError,
    UnsupportedFormat,
)
from ..models import (
    DEFAULT_LANGUAGE,
    AudioArtifact,
    BackendKind,
    ReadyArtifact,
    Transcription,
)
from ..settings import DEFAULT_API_ENDPOINT
from .backends import ProgressCallback, TranscriptionBackend
from .result_parser import ResultParser

logger = get_logger(__name__)

MODEL_NAME = "whisper-1"
SERVICE_TYPE = "OpenAI API"

MAX_FILE_SIZE = 25 * 1024 * 1024  # API upload limit
AUDIO_CONTENT_TYPES = {
    "mp3": "audio/mpeg",
    "mp4": "audio/mp4",
    "mpeg": "audio/mpeg",
    "mpga": "audio/mpeg",
    "m4a": "audio/mp4",
    "wav": "audio/wav",
    "webm": "audio/webm",
}
SUPPORTED_FORMATS = frozenset(AUDIO_CONTENT_TYPES)

MIN_REQUEST_INTERVAL = 0.1  # seconds between calls on one backend
MAX_ATTEMPTS = 3
REQUEST_TIMEOUT = 300  # long uploads


def _error_detail(response: requests.Response) -> str:
    try:
        body = response.json()
        return str(body["error"]["message"])
    except (ValueError, KeyError, TypeError):
        return response.text[:500]


class RemoteAPIBackend(TranscriptionBackend):
    """
    Uploads audio to the OpenAI transcription endpoint.

    Requests are paced at least ``MIN_REQUEST_INTERVAL`` apart. Rate limiting
    (429) and server errors (5xx) are retried up to ``MAX_ATTEMPTS`` in total;
    every other failure is returned immediately.
    """

    kind = BackendKind.REMOTE

    def __init__(
        self,
        api_key: str = "",
        endpoint: str = DEFAULT_API_ENDPOINT,
        language: str = DEFAULT_LANGUAGE,
        session: Optional[requests.Session] = None,
        on_progress: Optional[ProgressCallback] = None,
    ):
        super().__init__(on_progress=on_progress)
        self.api_key = (api_key or "").strip()
        self.endpoint = endpoint
        self.language = language
        self._session = session or requests.Session()
        self._last_request_at: Optional[float] = None

    @property
    def model_used(self) -> str:
        return MODEL_NAME

    def update_api_key(self, api_key: str) -> None:
        self.api_key = (api_key or "").strip()

    def is_available(self) -> bool:
        return bool(self.api_key)

    def validate(self, artifact: AudioArtifact) -> int:
        """
        Check everything that can fail before touching the network.

        Returns:
            The file size in bytes.
        """
        if not self.api_key:
            raise MissingCredential()

        size_bytes = self._artifact_size(artifact)
        if size_bytes > MAX_FILE_SIZE:
            raise FileTooLarge(size_bytes, MAX_FILE_SIZE)

        if artifact.format.lower() not in SUPPORTED_FORMATS:
            raise UnsupportedFormat(artifact.format)

        return size_bytes

    def _artifact_size(self, artifact: AudioArtifact) -> int:
        if isinstance(artifact, ReadyArtifact):
            return artifact.size_bytes
        try:
            return os.stat(artifact.path).st_size
        except OSError as e:
            raise InvalidAudioFile(f"Cannot read audio file: {e}") from e

    def _transcribe(self, artifact: AudioArtifact) -> Transcription:
        self.validate(artifact)
        self._pace()

        self._report(0.1, "Preparing audio file...")
        try:
            audio_data = Path(artifact.path).read_bytes()
        except OSError as e:
            raise InvalidAudioFile(f"Cannot read audio file: {e}") from e

        start_time = time.monotonic()
        try:
            payload = self._post_with_retry(artifact, audio_data)
        finally:
            self._last_request_at = time.monotonic()
        processing_time = time.monotonic() - start_time

        self._report(0.9, "Parsing response...")
        parser = ResultParser(
            artifact=artifact,
            model_used=MODEL_NAME,
            service_type=SERVICE_TYPE,
            processing_time=processing_time,
        )
        transcription = parser.from_json(payload)
        logger.info(
            f"Remote transcription finished in {processing_time:.2f}s: "
            f"{transcription.word_count} words"
        )
        return transcription

    def _pace(self) -> None:
        if self._last_request_at is None:
            return
        elapsed = time.monotonic() - self._last_request_at
        if elapsed < MIN_REQUEST_INTERVAL:
            self._sleep(MIN_REQUEST_INTERVAL - elapsed)

    def _post_with_retry(self, artifact: AudioArtifact, audio_data: bytes) -> bytes:
        last_error: Optional[TranscriptionError] = None

        for attempt in range(1, MAX_ATTEMPTS + 1):
            self._check_cancelled()
            self._report(
                0.3, f"Transcribing audio (attempt {attempt}/{MAX_ATTEMPTS})..."
            )
            try:
                return self._post(artifact, audio_data)
            except RateLimited as e:
                last_error = e
                wait_time = attempt * 2
                status = f"Rate limited, waiting {wait_time}s..."
            except ServerError as e:
                last_error = e
                wait_time = attempt
                status = f"Server error, retrying in {wait_time}s..."

            if attempt < MAX_ATTEMPTS:
                logger.warning(f"Attempt {attempt} failed ({last_error}); {status}")
                self._report(0.3, status)
                self._sleep(wait_time)

        logger.error(f"Giving up after {MAX_ATTEMPTS} attempts: {last_error}")
        raise MaxRetriesExceeded(last_error, MAX_ATTEMPTS)

    def _post(self, artifact: AudioArtifact, audio_data: bytes) -> bytes:
        content_type = AUDIO_CONTENT_TYPES.get(artifact.format.lower(), "audio/mpeg")
        self._report(0.6, "Processing with OpenAI Whisper...")

        try:
            response = self._session.post(
                self.endpoint,
                headers={"Authorization": f"Bearer {self.api_key}"},
                files={"file": (artifact.name, audio_data, content_type)},
                data={
                    "model": MODEL_NAME,
                    "language": self.language,
                    "response_format": "verbose_json",
                    "timestamp_granularities[]": "word",
                },
                timeout=REQUEST_TIMEOUT,
            )
        except requests.RequestException as e:
            raise NetworkError(f"Network error: {e}") from e

        status_code = response.status_code
        logger.debug(f"Transcription endpoint answered HTTP {status_code}")

        if status_code == 200:
            return response.content
        if status_code == 400:
            raise InvalidAudioFile(
                f"Invalid audio file: {_error_detail(response)}"
            )
        if status_code == 401:
            raise InvalidCredential()
        if status_code == 429:
            raise RateLimited()
        if 500 <= status_code < 600:
            raise ServerError(status_code)
        raise APIError(status_code, _error_detail(response))

    def _sleep(self, seconds: float) -> None:
        # Interrupted early when cancel() sets the event
        if self._cancel_event.wait(seconds):
            raise TranscriptionCancelled()
