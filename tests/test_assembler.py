"""
Tests for segment assembly from voiced ranges.
"""

import time

import pytest

from config import RecognitionConfig, SpeakerConfig, TextConfig, TranslationConfig
from subgen.assembler import SegmentAssembler, SegmentCollector
from subgen.chunker import AudioChunk
from subgen.errors import ChunkTimeoutError
from subgen.normalizer import TextNormalizer
from subgen.recognition import RecognitionAdapter
from subgen.speakers import SpeakerRegistry
from subgen.translation import TranslatorAdapter
from subgen.vad import VoiceRange
from conftest import (
    ConstantEmbedding,
    FakeRecognizer,
    PrefixTranslator,
    SAMPLE_RATE,
    make_segment,
    tone,
)

RANGES = [VoiceRange(0, 16000), VoiceRange(32000, 48000)]


def build(recognizer=None, translator=None, registry=None, extractor=None, translate=False):
    return SegmentAssembler(
        RecognitionAdapter(recognizer or FakeRecognizer(["hello there", "and goodbye now"]),
                           RecognitionConfig()),
        TextNormalizer(TextConfig()),
        TranslatorAdapter(translator, TranslationConfig(enabled=translate, target_language="es")),
        registry=registry,
        embedding_extractor=extractor,
    )


@pytest.fixture
def chunk():
    return AudioChunk(index=0, offset_ms=10000, samples=tone(4000), sample_rate=SAMPLE_RATE)


class TestAssemble:
    """Test segment construction from voiced ranges."""

    def test_one_segment_per_range(self, chunk):
        segments = build().assemble(chunk, RANGES)
        assert [(s.start_ms, s.end_ms) for s in segments] == [(10000, 11000), (12000, 13000)]
        assert [s.text for s in segments] == ["Hello there.", "And goodbye now."]
        assert all(s.id.startswith("seg_") for s in segments)
        assert len({s.id for s in segments}) == 2

    def test_low_confidence_ranges_skipped(self, chunk):
        segments = build(recognizer=FakeRecognizer(confidence=0.2)).assemble(chunk, RANGES)
        assert segments == []

    def test_no_ranges(self, chunk):
        assert build().assemble(chunk, []) == []

    def test_speakers_assigned_when_diarization_enabled(self, chunk):
        registry = SpeakerRegistry(SpeakerConfig())
        assembler = build(registry=registry, extractor=ConstantEmbedding([0.1, 0.7, 0.2]))
        assert assembler.diarization_enabled
        segments = assembler.assemble(chunk, RANGES)
        assert [s.speaker_id for s in segments] == ["speaker_1", "speaker_1"]
        assert registry.get("speaker_1").first_seen_ms == 10000

    def test_no_speaker_without_extractor(self, chunk):
        assembler = build(registry=SpeakerRegistry(SpeakerConfig()))
        assert not assembler.diarization_enabled
        assert all(s.speaker_id is None for s in assembler.assemble(chunk, RANGES))

    def test_translation_attached(self, chunk):
        segments = build(translator=PrefixTranslator(), translate=True).assemble(chunk, RANGES[:1])
        assert segments[0].translated_text == "[ES] Hello there."

    def test_word_timings_inside_segment(self, chunk):
        for seg in build().assemble(chunk, RANGES):
            assert all(seg.start_ms <= w.start_ms < w.end_ms <= seg.end_ms for w in seg.word_timings)


class TestStopping:
    """Test deadlines and early stop between ranges."""

    def test_deadline_passed_raises(self, chunk):
        with pytest.raises(ChunkTimeoutError):
            build().assemble(chunk, RANGES, deadline=time.monotonic() - 1)

    def test_should_stop_returns_partial(self, chunk):
        recognizer = FakeRecognizer()
        segments = build(recognizer=recognizer).assemble(chunk, RANGES, should_stop=lambda: True)
        assert segments == []
        assert recognizer.calls == []


class TestSegmentCollector:

    def test_sorted_by_start(self):
        collector = SegmentCollector()
        collector.extend([make_segment(5000, 6000), make_segment(1000, 2000)])
        collector.extend([make_segment(3000, 4000)])
        assert [s.start_ms for s in collector.sorted()] == [1000, 3000, 5000]
        assert len(collector) == 3
