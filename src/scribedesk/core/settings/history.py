"""
Transcription history persisted as JSON.

The file holds one object with the ``transcriptions`` key; the list is kept
newest first, exactly as the orchestrator orders it.
"""

import json
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from ...utils.logger import get_logger
from ..models import Transcription
from .settings import get_config_dir

logger = get_logger(__name__)

HISTORY_KEY = "transcriptions"


def get_history_file() -> Path:
    return get_config_dir() / "history.json"


class HistoryStore:
    def __init__(self, path: Optional[Path] = None):
        self._path = path

    @property
    def path(self) -> Path:
        return self._path or get_history_file()

    def load(self) -> List[Transcription]:
        if not self.path.exists():
            return []

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            items = data[HISTORY_KEY]
            return [Transcription.from_dict(item) for item in items]
        except (
            OSError,
            UnicodeDecodeError,
            json.JSONDecodeError,
            TypeError,
            KeyError,
            ValidationError,
        ) as e:
            logger.warning(f"Could not load history: {e}. Starting fresh.")
            return []

    def save(self, transcriptions: List[Transcription]) -> None:
        payload = {HISTORY_KEY: [t.to_dict() for t in transcriptions]}

        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2)
        logger.debug(f"Saved {len(transcriptions)} transcriptions to {self.path}")

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()
