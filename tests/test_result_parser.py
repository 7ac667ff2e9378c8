"""Tests for turning backend output into Transcription objects."""

import json

import pytest

from scribedesk.core.asr.result_parser import ResultParser, derive_confidence
from scribedesk.core.errors import DecodeFailed, InvalidResponse, NoOutputProduced
from scribedesk.core.models import PendingArtifact


@pytest.fixture
def parser(tmp_path):
    artifact = PendingArtifact.from_path(tmp_path / "interview.wav")
    return ResultParser(
        artifact=artifact,
        model_used="whisper-small",
        service_type="Local Whisper",
        processing_time=2.5,
    )


class TestDeriveConfidence:
    def test_segment_logprobs_are_averaged(self):
        document = {
            "segments": [{"avg_logprob": -0.2}, {"avg_logprob": -0.4}],
        }
        assert derive_confidence(document) == pytest.approx(-0.3)

    def test_word_confidence_wins(self):
        document = {
            "words": [{"word": "hi", "confidence": 0.9}, {"word": "there"}],
            "segments": [{"avg_logprob": -0.5}],
        }
        assert derive_confidence(document) == pytest.approx(0.9)

    def test_segment_confidence_used_without_logprob(self):
        document = {"segments": [{"confidence": 0.6}, {"confidence": 0.8}]}
        assert derive_confidence(document) == pytest.approx(0.7)

    def test_unknown_is_zero(self):
        assert derive_confidence({}) == 0.0
        assert derive_confidence({"segments": [{"text": "x"}], "words": []}) == 0.0


class TestResultParser:
    def test_structured_document(self, parser):
        document = {
            "text": "  Hello world. How are you?  ",
            "language": "de",
            "segments": [
                {"start": 0.0, "end": 1.2, "text": "Hello world.", "avg_logprob": -0.2},
                {"start": 1.2, "end": 2.0, "text": "How are you?", "avg_logprob": -0.4},
            ],
        }

        transcription = parser.from_structured(document)

        assert transcription.text == "Hello world. How are you?"
        assert transcription.language == "de"
        assert transcription.confidence == pytest.approx(-0.3)
        assert transcription.word_count == 5
        assert transcription.sentence_count == 2
        assert len(transcription.segments) == 2
        assert transcription.audio_file_id == parser.artifact.id
        assert transcription.audio_file_name == "interview.wav"
        assert transcription.model_used == "whisper-small"
        assert transcription.service_type == "Local Whisper"
        assert transcription.processing_time == 2.5

    def test_language_defaults_to_english(self, parser):
        transcription = parser.from_structured({"text": "hi"})
        assert transcription.language == "en"
        assert transcription.confidence == 0.0

    def test_missing_text_is_invalid(self, parser):
        with pytest.raises(InvalidResponse):
            parser.from_structured({"segments": []})
        with pytest.raises(InvalidResponse):
            parser.from_structured(["not", "a", "dict"])

    def test_malformed_segment_is_invalid(self, parser):
        with pytest.raises(InvalidResponse):
            parser.from_structured(
                {"text": "hi", "segments": [{"start": "soon", "end": 1.0}]}
            )

    def test_from_json_decode_failure(self, parser):
        with pytest.raises(DecodeFailed):
            parser.from_json(b"{not json")

    def test_plain_text(self, parser):
        transcription = parser.from_plain_text("Just some words\n")

        assert transcription.text == "Just some words"
        assert transcription.confidence == 0.0
        assert transcription.language == "en"
        assert transcription.segments == []


class TestOutputDirectory:
    def test_prefers_json(self, parser, tmp_path):
        out = tmp_path / "out"
        out.mkdir()
        (out / "interview.json").write_text(json.dumps({"text": "from json"}))
        (out / "interview.txt").write_text("from txt")

        assert parser.from_output_directory(out, "interview").text == "from json"

    def test_falls_back_to_txt(self, parser, tmp_path):
        out = tmp_path / "out"
        out.mkdir()
        (out / "interview.txt").write_text("from txt", encoding="utf-8")

        transcription = parser.from_output_directory(out, "interview")

        assert transcription.text == "from txt"
        assert transcription.confidence == 0.0

    def test_nothing_written(self, parser, tmp_path):
        out = tmp_path / "out"
        out.mkdir()
        with pytest.raises(NoOutputProduced):
            parser.from_output_directory(out, "interview")
