"""
Error taxonomy for capture and transcription.

Every error carries a message that can be shown to the user as-is.
``RateLimited`` and ``ServerError`` are transient: the remote backend retries
them internally and only surfaces ``MaxRetriesExceeded``.
"""

from typing import Optional


class ScribeDeskError(Exception):
    default_message = "Unexpected error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


# --- Capture ---------------------------------------------------------------


class CaptureError(ScribeDeskError):
    default_message = "Audio capture failed"


class PermissionDenied(CaptureError):
    default_message = (
        "Microphone access denied. Enable it in your system privacy settings."
    )


class DeviceError(CaptureError):
    default_message = "Could not open the audio input device"


class AudioFileNotFound(CaptureError):
    default_message = "Audio file not found"


# --- Transcription ---------------------------------------------------------


class TranscriptionError(ScribeDeskError):
    default_message = "Transcription failed"


class BackendBusy(TranscriptionError):
    default_message = "A transcription is already running on this backend"


class TranscriptionCancelled(TranscriptionError):
    default_message = "Transcription cancelled"


class ToolNotFound(TranscriptionError):
    default_message = (
        "Whisper not found. Please ensure Python 3 and openai-whisper are installed."
    )


class CommandFailed(TranscriptionError):
    def __init__(self, stderr: str, stdout: str):
        self.stderr = stderr
        self.stdout = stdout
        super().__init__(
            f"Whisper command failed: {stderr.strip()}\nOutput: {stdout.strip()}"
        )


class NoOutputProduced(TranscriptionError):
    default_message = "No output files were generated by Whisper"


class MissingCredential(TranscriptionError):
    default_message = (
        "OpenAI API key is required. Please add your API key in the settings."
    )


class InvalidCredential(TranscriptionError):
    default_message = "Invalid OpenAI API key. Please check your API key and try again."


class InvalidAudioFile(TranscriptionError):
    default_message = "Invalid audio file. Please ensure the file is not corrupted."


class FileTooLarge(TranscriptionError):
    def __init__(self, size_bytes: int, limit_bytes: int):
        self.size_bytes = size_bytes
        self.limit_bytes = limit_bytes
        super().__init__(
            f"Audio file is too large ({size_bytes / 1024 / 1024:.1f} MB). "
            f"Maximum size is {limit_bytes // (1024 * 1024)} MB."
        )


class UnsupportedFormat(TranscriptionError):
    def __init__(self, audio_format: str):
        self.format = audio_format
        super().__init__(
            f"Unsupported audio format '{audio_format}'. "
            "Please use MP3, M4A, WAV, MP4, MPEG, MPGA, or WEBM."
        )


class InvalidResponse(TranscriptionError):
    default_message = "Invalid response from the transcription service"


class DecodeFailed(TranscriptionError):
    default_message = "Failed to decode the transcription response"


class NetworkError(TranscriptionError):
    default_message = "Network error"


class APIError(TranscriptionError):
    def __init__(self, status_code: int, message: str = ""):
        self.status_code = status_code
        super().__init__(
            f"OpenAI API Error ({status_code}): {message or 'Unknown error'}"
        )


class RateLimited(TranscriptionError):
    default_message = "Rate limit exceeded. Please wait a moment and try again."


class ServerError(TranscriptionError):
    def __init__(self, status_code: int):
        self.status_code = status_code
        super().__init__(f"Server error (HTTP {status_code}). Please try again later.")


class MaxRetriesExceeded(TranscriptionError):
    def __init__(self, last_error: TranscriptionError, attempts: int):
        self.last_error = last_error
        self.attempts = attempts
        super().__init__(f"Gave up after {attempts} attempts: {last_error}")
