import os
import shutil
import subprocess
import tempfile
import threading
import time
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

from ...utils.logger import get_logger
from ...utils.platform import TOOL_PREFIXES, first_existing_path, is_whisper_installed
from ..errors import CommandFailed, ToolNotFound
from ..models import (
    DEFAULT_LANGUAGE,
    AudioArtifact,
    BackendKind,
    ModelSize,
    Transcription,
)
from .backends import ProgressCallback, TranscriptionBackend
from .result_parser import ResultParser

logger = get_logger(__name__)

INTERPRETER_CANDIDATES = [
    "/opt/homebrew/bin/python3",
    "/usr/local/bin/python3",
    "/usr/bin/python3",
    "/bin/python3",
]

WHISPER_MODULE = ["-m", "whisper"]

# Deterministic, quality-oriented decoding
DECODING_ARGS = [
    "--temperature", "0",
    "--best_of", "5",
    "--beam_size", "5",
    "--word_timestamps", "True",
    "--condition_on_previous_text", "True",
    "--compression_ratio_threshold", "2.4",
    "--logprob_threshold", "-1.0",
    "--no_speech_threshold", "0.6",
]  # fmt: skip

_SITE_PACKAGES_VERSIONS = ["3.13", "3.12", "3.11", "3.10", "3.9"]

EXTRA_PATH_PREFIXES = list(TOOL_PREFIXES)
EXTRA_PYTHONPATH_PREFIXES = [
    f"{prefix}/lib/python{version}/site-packages"
    for prefix in ("/opt/homebrew", "/usr/local")
    for version in _SITE_PACKAGES_VERSIONS
]

SERVICE_TYPE = "Local Whisper"


def _prepend_entries(existing: str, additions: Iterable[str]) -> str:
    current = [p for p in existing.split(os.pathsep) if p] if existing else []
    added = [a for a in additions if a not in current]
    return os.pathsep.join(added + current)


def build_environment(base: Optional[Dict[str, str]] = None) -> Dict[str, str]:
    """Copy of ``base`` (default: os.environ) with extra tool and module paths."""
    env = dict(os.environ if base is None else base)
    env["PATH"] = _prepend_entries(env.get("PATH", ""), EXTRA_PATH_PREFIXES)
    env["PYTHONPATH"] = _prepend_entries(
        env.get("PYTHONPATH", ""), EXTRA_PYTHONPATH_PREFIXES
    )
    return env


class LocalEngineBackend(TranscriptionBackend):
    """
    Runs the whisper CLI in a child process for each request.

    Output is written to a private temporary directory which is removed
    after parsing, whatever the outcome.
    """

    kind = BackendKind.LOCAL

    def __init__(
        self,
        model_size: ModelSize = ModelSize.SMALL,
        language: str = DEFAULT_LANGUAGE,
        python_path: Optional[str] = None,
        candidates: Optional[Sequence[str]] = None,
        on_progress: Optional[ProgressCallback] = None,
    ):
        super().__init__(on_progress=on_progress)
        self.model_size = ModelSize(model_size)
        self.language = language
        self.python_path = python_path
        self.candidates = list(candidates or INTERPRETER_CANDIDATES)

        self._process: Optional[subprocess.Popen] = None
        self._process_lock = threading.Lock()

    @property
    def model_used(self) -> str:
        return f"whisper-{self.model_size.value}"

    def resolve_interpreter(self) -> str:
        if self.python_path:
            configured = os.path.expanduser(self.python_path)
            if os.path.isfile(configured):
                return configured
            logger.warning(f"Configured interpreter {configured} not found")

        found = first_existing_path(self.candidates)
        if found is None:
            raise ToolNotFound(
                "No Python 3 interpreter found. Looked in: "
                + ", ".join(self.candidates)
            )
        return found

    def is_available(self) -> bool:
        try:
            self.resolve_interpreter()
            return True
        except ToolNotFound:
            return False

    def check_installation(self) -> bool:
        """Slower check that the interpreter can import whisper."""
        if not self.is_available():
            return False
        return is_whisper_installed(self.resolve_interpreter())

    def build_command(
        self, python: str, input_path: str, output_dir: Path
    ) -> List[str]:
        return [
            python,
            *WHISPER_MODULE,
            input_path,
            "--model", self.model_size.value,
            "--output_dir", str(output_dir),
            "--output_format", "json",
            "--language", self.language,
            *DECODING_ARGS,
        ]  # fmt: skip

    def _transcribe(self, artifact: AudioArtifact) -> Transcription:
        python = self.resolve_interpreter()

        self._report(0.1, "Loading Whisper model...")
        output_dir = Path(tempfile.mkdtemp(prefix="whisper_output_"))
        try:
            self._report(0.3, "Processing audio file...")
            start_time = time.monotonic()
            self._run(self.build_command(python, artifact.path, output_dir))
            processing_time = time.monotonic() - start_time

            self._report(0.9, "Finalizing transcription...")
            parser = ResultParser(
                artifact=artifact,
                model_used=self.model_used,
                service_type=SERVICE_TYPE,
                processing_time=processing_time,
            )
            transcription = parser.from_output_directory(output_dir, artifact.stem)
            logger.info(
                f"Local transcription finished in {processing_time:.2f}s: "
                f"{transcription.word_count} words"
            )
            return transcription
        finally:
            shutil.rmtree(output_dir, ignore_errors=True)

    def _run(self, command: List[str]) -> str:
        self._report(0.5, "Running Whisper transcription...")
        logger.info(f"Running whisper: {' '.join(command)}")

        with self._process_lock:
            self._check_cancelled()
            try:
                process = subprocess.Popen(
                    command,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.PIPE,
                    env=build_environment(),
                    text=True,
                    encoding="utf-8",
                    errors="replace",
                )
            except OSError as e:
                raise ToolNotFound(f"Could not start {command[0]}: {e}") from e
            self._process = process

        try:
            stdout, stderr = process.communicate()
        finally:
            with self._process_lock:
                self._process = None

        self._check_cancelled()

        if process.returncode != 0:
            logger.error(f"Whisper exited with status {process.returncode}")
            raise CommandFailed(stderr=stderr or "", stdout=stdout or "")

        return stdout or ""

    def _on_cancel(self) -> None:
        with self._process_lock:
            if self._process is not None and self._process.poll() is None:
                self._process.kill()
