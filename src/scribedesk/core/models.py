"""
Domain models shared by capture, backends and the orchestrator.

Audio artifacts are published in two phases: a ``PendingArtifact`` as soon as a
recording stops or a file is imported, then a ``ReadyArtifact`` once size and
duration have been probed. Both are immutable; enrichment returns a new object
with the same id.
"""

import re
import uuid
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import ClassVar, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

DEFAULT_LANGUAGE = "en"

_SENTENCE_BOUNDARY = re.compile(r"[.!?]")


def _new_id() -> str:
    return str(uuid.uuid4())


class BackendKind(str, Enum):
    LOCAL = "local"
    REMOTE = "remote"

    @property
    def display_name(self) -> str:
        return "Local Whisper" if self is BackendKind.LOCAL else "OpenAI API"


class ModelSize(str, Enum):
    TINY = "tiny"
    BASE = "base"
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"

    @property
    def description(self) -> str:
        return _MODEL_DESCRIPTIONS[self]


_MODEL_DESCRIPTIONS = {
    ModelSize.TINY: "Fastest, lowest accuracy (~39M parameters)",
    ModelSize.BASE: "Fast with basic accuracy (~74M parameters)",
    ModelSize.SMALL: "Balanced speed and accuracy (~244M parameters)",
    ModelSize.MEDIUM: "Slower, high accuracy (~769M parameters)",
    ModelSize.LARGE: "Slowest, best accuracy (~1550M parameters)",
}


@dataclass(frozen=True)
class PendingArtifact:
    id: str
    path: str
    name: str
    format: str

    is_ready: ClassVar[bool] = False

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "PendingArtifact":
        source = Path(path)
        return cls(
            id=_new_id(),
            path=str(source),
            name=source.name,
            format=source.suffix.lstrip(".").lower(),
        )

    @property
    def stem(self) -> str:
        return Path(self.path).stem

    def enrich(self, size_bytes: int, duration: Optional[float]) -> "ReadyArtifact":
        return ReadyArtifact(
            id=self.id,
            path=self.path,
            name=self.name,
            format=self.format,
            size_bytes=size_bytes,
            duration=duration,
        )


@dataclass(frozen=True)
class ReadyArtifact:
    id: str
    path: str
    name: str
    format: str
    size_bytes: int
    duration: Optional[float] = None  # None when the duration probe failed

    is_ready: ClassVar[bool] = True

    @property
    def stem(self) -> str:
        return Path(self.path).stem


AudioArtifact = Union[PendingArtifact, ReadyArtifact]


def count_words(text: str) -> int:
    return len(text.split())


def count_sentences(text: str) -> int:
    fragments = [f for f in _SENTENCE_BOUNDARY.split(text) if f.strip()]
    return max(1, len(fragments))


class Segment(BaseModel):
    model_config = ConfigDict(extra="ignore")

    start: float = 0.0
    end: float = 0.0
    text: str = ""
    avg_logprob: Optional[float] = None
    confidence: Optional[float] = None


class Transcription(BaseModel):
    """A finished transcription.

    ``confidence`` is 0.0 when unknown. When derived from log-probabilities it
    is a negative mean and is not clamped to [0, 1].

    Word and sentence statistics are always recomputed from ``text`` when the
    model is built, so they do not depend on which backend produced it.
    """

    model_config = ConfigDict(validate_assignment=False, protected_namespaces=())

    id: str = Field(default_factory=_new_id)
    audio_file_id: str
    audio_file_name: str = ""
    text: str
    label: Optional[str] = None
    language: str = DEFAULT_LANGUAGE
    confidence: float = 0.0
    processing_time: float = Field(default=0.0, ge=0.0)
    model_used: str = ""
    service_type: str = ""
    segments: List[Segment] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=datetime.now)

    word_count: int = 0
    sentence_count: int = 1
    average_words_per_sentence: float = 0.0

    @model_validator(mode="after")
    def _derive_text_statistics(self) -> "Transcription":
        self.word_count = count_words(self.text)
        self.sentence_count = count_sentences(self.text)
        self.average_words_per_sentence = self.word_count / self.sentence_count
        return self

    @property
    def has_confidence(self) -> bool:
        return self.confidence != 0.0

    @property
    def display_title(self) -> str:
        return self.label or self.audio_file_name or self.id

    def to_dict(self) -> dict:
        return self.model_dump(mode="json")

    @classmethod
    def from_dict(cls, data: dict) -> "Transcription":
        return cls.model_validate(data)
