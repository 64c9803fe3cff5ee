"""
Tests for the segment data model.
"""

import dataclasses

import pytest

from subgen.models import (
    SubtitleSegment,
    WordTiming,
    average_confidence,
    clip_word_timings,
    count_speakers,
    primary_language,
)
from conftest import make_segment


class TestSubtitleSegment:

    @pytest.mark.parametrize("start, end", [(1000, 1000), (2000, 1000)])
    def test_rejects_non_positive_duration(self, start, end):
        with pytest.raises(ValueError):
            make_segment(start, end)

    @pytest.mark.parametrize("confidence", [-0.1, 1.01])
    def test_rejects_confidence_out_of_range(self, confidence):
        with pytest.raises(ValueError):
            make_segment(0, 1000, confidence=confidence)

    def test_rejects_word_outside_segment(self):
        with pytest.raises(ValueError):
            make_segment(1000, 2000, word_timings=[WordTiming("late", 1500, 2500)])

    def test_word_timings_stored_as_tuple(self):
        seg = make_segment(0, 1000, word_timings=[WordTiming("Hello", 0, 500)])
        assert isinstance(seg.word_timings, tuple)

    def test_frozen(self):
        seg = make_segment(0, 1000)
        with pytest.raises(dataclasses.FrozenInstanceError):
            seg.text = "changed"

    def test_derived_properties(self):
        seg = SubtitleSegment(id="s", text="one two  three", start_ms=250, end_ms=1250)
        assert seg.duration_ms == 1000
        assert seg.word_count == 3
        assert seg.language == "unknown"


class TestHelpers:

    def test_clip_word_timings(self):
        words = [WordTiming("a", 0, 400), WordTiming("b", 400, 900), WordTiming("c", 900, 1200)]
        clipped = clip_word_timings(words, 300, 1000)
        assert [(w.word, w.start_ms, w.end_ms) for w in clipped] == [
            ("a", 300, 400), ("b", 400, 900), ("c", 900, 1000),
        ]
        assert clipped[1] is words[1]

    def test_aggregates(self):
        segments = [
            make_segment(0, 1000, confidence=0.6, language="fr", speaker_id="speaker_1"),
            make_segment(1000, 2000, confidence=0.8, language="fr", speaker_id="speaker_2"),
            make_segment(2000, 3000, confidence=1.0, language="en"),
        ]
        assert primary_language(segments) == "fr"
        assert average_confidence(segments) == pytest.approx(0.8)
        assert count_speakers(segments) == 2

    def test_aggregates_empty(self):
        assert primary_language([]) == "unknown"
        assert average_confidence([]) == 0.0
        assert count_speakers([]) == 0
