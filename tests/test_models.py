"""Tests for audio artifacts and the Transcription model."""

from dataclasses import FrozenInstanceError

import pytest
from pydantic import ValidationError

from scribedesk.core.models import (
    BackendKind,
    ModelSize,
    PendingArtifact,
    ReadyArtifact,
    Transcription,
    count_sentences,
    count_words,
)


class TestArtifacts:
    def test_from_path_derives_name_and_format(self, tmp_path):
        artifact = PendingArtifact.from_path(tmp_path / "Meeting Notes.M4A")

        assert artifact.name == "Meeting Notes.M4A"
        assert artifact.format == "m4a"
        assert artifact.stem == "Meeting Notes"
        assert artifact.is_ready is False

    def test_ids_are_unique(self, tmp_path):
        first = PendingArtifact.from_path(tmp_path / "a.wav")
        second = PendingArtifact.from_path(tmp_path / "a.wav")
        assert first.id != second.id

    def test_enrich_keeps_identity(self, tmp_path):
        pending = PendingArtifact.from_path(tmp_path / "clip.wav")
        ready = pending.enrich(size_bytes=2048, duration=1.5)

        assert isinstance(ready, ReadyArtifact)
        assert ready.is_ready is True
        assert ready.id == pending.id
        assert ready.path == pending.path
        assert ready.size_bytes == 2048
        assert ready.duration == 1.5

    def test_enrich_with_unknown_duration(self, tmp_path):
        ready = PendingArtifact.from_path(tmp_path / "clip.ogg").enrich(10, None)
        assert ready.duration is None

    def test_artifacts_are_immutable(self, tmp_path):
        artifact = PendingArtifact.from_path(tmp_path / "clip.wav")
        with pytest.raises(FrozenInstanceError):
            artifact.name = "other.wav"


class TestTextStatistics:
    def test_count_words(self):
        assert count_words("  one two\tthree\nfour ") == 4
        assert count_words("") == 0

    def test_count_sentences_floors_at_one(self):
        assert count_sentences("") == 1
        assert count_sentences("no punctuation here") == 1
        assert count_sentences("One. Two! Three?") == 3
        assert count_sentences("Wait... what?!") == 2


class TestTranscription:
    def test_statistics_are_derived(self):
        transcription = Transcription(
            audio_file_id="a1", text="Hello world. How are you?"
        )

        assert transcription.word_count == 5
        assert transcription.sentence_count == 2
        assert transcription.average_words_per_sentence == 2.5

    def test_empty_text(self):
        transcription = Transcription(audio_file_id="a1", text="")

        assert transcription.word_count == 0
        assert transcription.sentence_count == 1
        assert transcription.average_words_per_sentence == 0.0

    def test_supplied_statistics_are_ignored(self):
        transcription = Transcription(
            audio_file_id="a1", text="Just three words", word_count=99
        )
        assert transcription.word_count == 3

    def test_confidence_zero_means_unknown(self):
        assert not Transcription(audio_file_id="a", text="x").has_confidence
        negative = Transcription(audio_file_id="a", text="x", confidence=-0.3)
        assert negative.has_confidence

    def test_negative_processing_time_rejected(self):
        with pytest.raises(ValidationError):
            Transcription(audio_file_id="a", text="x", processing_time=-1.0)

    def test_display_title_prefers_label(self):
        transcription = Transcription(
            audio_file_id="a", audio_file_name="clip.wav", text="x"
        )
        assert transcription.display_title == "clip.wav"
        transcription.label = "Standup"
        assert transcription.display_title == "Standup"

    def test_dict_round_trip(self):
        original = Transcription(
            audio_file_id="a1",
            audio_file_name="clip.wav",
            text="Hello there.",
            confidence=0.8,
            model_used="whisper-1",
            service_type="OpenAI API",
            segments=[{"start": 0.0, "end": 1.0, "text": "Hello there."}],
        )

        restored = Transcription.from_dict(original.to_dict())

        assert restored.to_dict() == original.to_dict()
        assert restored.created_at == original.created_at


class TestEnums:
    def test_backend_display_names(self):
        assert BackendKind.LOCAL.display_name == "Local Whisper"
        assert BackendKind.REMOTE.display_name == "OpenAI API"

    def test_model_sizes(self):
        assert [s.value for s in ModelSize] == [
            "tiny",
            "base",
            "small",
            "medium",
            "large",
        ]
        assert "Balanced" in ModelSize.SMALL.description
