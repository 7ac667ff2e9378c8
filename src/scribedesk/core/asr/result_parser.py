"""
Normalizes backend output into a ``Transcription``.

Two input shapes are accepted from either backend:

* a structured document (whisper CLI ``.json`` or the API's ``verbose_json``)
  with ``text`` and optional ``language``, ``segments`` and ``words``;
* plain text, used only when no structured document exists.

Word and sentence statistics are never read from backend metadata; the
``Transcription`` model derives them from the final text.
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Optional, Union

from pydantic import ValidationError

from ...utils.logger import get_logger
from ..errors import DecodeFailed, InvalidResponse, NoOutputProduced
from ..models import DEFAULT_LANGUAGE, AudioArtifact, Segment, Transcription

logger = get_logger(__name__)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _mean(values: List[float]) -> float:
    if not values:
        return 0.0
    return sum(values) / len(values)


def derive_confidence(document: dict) -> float:
    """
    Average the confidence proxies available in a structured document.

    Per-word ``confidence`` values win when any word carries one; otherwise the
    segment ``avg_logprob`` (or ``confidence``) values are averaged. Returns
    0.0, meaning unknown, when neither is present. Log-probabilities are
    averaged as-is, so the result can be negative.
    """
    words = document.get("words") or []
    word_scores = [
        float(w["confidence"])
        for w in words
        if isinstance(w, dict) and _is_number(w.get("confidence"))
    ]
    if word_scores:
        return _mean(word_scores)

    segment_scores = []
    for segment in document.get("segments") or []:
        if not isinstance(segment, dict):
            continue
        score = segment.get("avg_logprob", segment.get("confidence"))
        if _is_number(score):
            segment_scores.append(float(score))
    return _mean(segment_scores)


@dataclass
class ResultParser:
    artifact: AudioArtifact
    model_used: str
    service_type: str
    processing_time: float = 0.0

    def from_structured(self, document: Any) -> Transcription:
        if not isinstance(document, dict) or not isinstance(
            document.get("text"), str
        ):
            raise InvalidResponse("Transcription response has no text field")

        try:
            segments = [
                Segment.model_validate(s)
                for s in document.get("segments") or []
                if isinstance(s, dict)
            ]
        except ValidationError as e:
            raise InvalidResponse(f"Malformed segment in response: {e}") from e

        language = document.get("language")
        if not isinstance(language, str) or not language.strip():
            language = DEFAULT_LANGUAGE

        return self._build(
            text=document["text"],
            language=language,
            confidence=derive_confidence(document),
            segments=segments,
        )

    def from_plain_text(self, text: str) -> Transcription:
        return self._build(text=text, language=DEFAULT_LANGUAGE, confidence=0.0)

    def from_json(self, payload: Union[bytes, str]) -> Transcription:
        try:
            document = json.loads(payload)
        except ValueError as e:
            raise DecodeFailed(f"Failed to decode response: {e}") from e
        return self.from_structured(document)

    def from_output_directory(self, output_dir: Path, stem: str) -> Transcription:
        json_file = output_dir / f"{stem}.json"
        if json_file.exists():
            logger.debug(f"Parsing structured output {json_file.name}")
            return self.from_json(json_file.read_bytes())

        txt_file = output_dir / f"{stem}.txt"
        if txt_file.exists():
            logger.debug(f"No JSON output, falling back to {txt_file.name}")
            return self.from_plain_text(txt_file.read_text(encoding="utf-8"))

        raise NoOutputProduced()

    def _build(
        self,
        text: str,
        language: str,
        confidence: float,
        segments: Optional[List[Segment]] = None,
    ) -> Transcription:
        return Transcription(
            audio_file_id=self.artifact.id,
            audio_file_name=self.artifact.name,
            text=text.strip(),
            language=language,
            confidence=confidence,
            processing_time=max(0.0, self.processing_time),
            model_used=self.model_used,
            service_type=self.service_type,
            segments=segments or [],
        )
