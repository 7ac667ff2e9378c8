"""
Headless entry point.

Imports one audio file, transcribes it with the selected backend and prints
the text. Everything runs through the same ``AudioCapture`` and
``TranscriptionOrchestrator`` objects a GUI would drive.
"""

import argparse
import signal
import sys
from typing import List, Optional

from PySide6.QtCore import QCoreApplication, QTimer

from . import __app_name__, __version__
from .core.audio import AudioCapture
from .core.errors import CaptureError
from .core.models import BackendKind, ModelSize, Transcription
from .core.orchestrator import TranscriptionOrchestrator
from .core.settings import get_settings
from .utils.logger import get_logger, shutdown_logging

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="scribedesk", description="Transcribe an audio file with Whisper."
    )
    parser.add_argument("audio_file", help="Path to the audio file")
    parser.add_argument(
        "--backend",
        choices=[kind.value for kind in BackendKind],
        help="Transcription backend (default: last selected)",
    )
    parser.add_argument(
        "--model",
        choices=[size.value for size in ModelSize],
        help="Local Whisper model size",
    )
    parser.add_argument(
        "--version", action="version", version=f"{__app_name__} {__version__}"
    )
    return parser


class TranscribeApp:
    """Runs a single file transcription on the Qt event loop."""

    def __init__(self, app: QCoreApplication, args: argparse.Namespace):
        self._app = app
        self._args = args
        self.exit_code = 0
        self._started = False

        settings = get_settings()
        self.capture = AudioCapture()
        self.orchestrator = TranscriptionOrchestrator(
            capture=self.capture, settings=settings
        )
        self.orchestrator.transcription_finished.connect(self._on_finished)
        self.orchestrator.error_occurred.connect(self._on_error)
        self.orchestrator.progress_changed.connect(self._on_progress)
        self.capture.artifact_ready.connect(self._on_artifact_ready)
        self.capture.artifact_unreadable.connect(self._on_artifact_unreadable)

        if args.backend:
            self.orchestrator.select_backend(args.backend)
        if args.model:
            self.orchestrator.set_model_size(args.model)

    def run(self) -> None:
        try:
            self.capture.import_file(self._args.audio_file)
        except CaptureError as e:
            self._fail(str(e))

    def _on_artifact_ready(self, artifact) -> None:
        self._start()

    def _on_artifact_unreadable(self, artifact_id: str, message: str) -> None:
        logger.warning(f"Could not read {self._args.audio_file}: {message}")
        self._start()

    def _start(self) -> None:
        if self._started:
            return
        self._started = True
        if not self.orchestrator.run_transcription():
            self._quit()

    def _on_progress(self, fraction: float, message: str) -> None:
        logger.debug(f"{fraction:.0%} {message}")

    def _on_finished(self, transcription: Transcription) -> None:
        print(transcription.text)
        logger.info(
            f"{transcription.word_count} words, "
            f"{transcription.sentence_count} sentences, "
            f"confidence {transcription.confidence:.3f}"
        )
        self._quit()

    def _on_error(self, message: str) -> None:
        self._fail(message)

    def _fail(self, message: str) -> None:
        print(message, file=sys.stderr)
        self.exit_code = 1
        self._quit()

    def _quit(self) -> None:
        QTimer.singleShot(0, self._app.quit)


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)

    app = QCoreApplication(sys.argv[:1])
    app.setApplicationName(__app_name__)
    signal.signal(signal.SIGINT, lambda *args: QCoreApplication.quit())

    transcribe_app = TranscribeApp(app, args)
    transcribe_app.run()
    app.exec()

    transcribe_app.orchestrator.shutdown()
    shutdown_logging()
    sys.exit(transcribe_app.exit_code)


if __name__ == "__main__":
    main()
