"""
Data model for generated subtitles.

All records are frozen dataclasses; pipeline stages build new records
with dataclasses.replace() instead of mutating existing ones.
"""

from collections import Counter
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import numpy as np


@dataclass(frozen=True)
class WordTiming:
    """A single recognized word with absolute millisecond timestamps."""
    word: str
    start_ms: int
    end_ms: int
    confidence: float = 1.0


@dataclass(frozen=True)
class SubtitleSegment:
    """One timed subtitle cue."""
    id: str
    text: str
    start_ms: int
    end_ms: int
    speaker_id: Optional[str] = None
    confidence: float = 1.0
    language: str = "unknown"
    translated_text: Optional[str] = None
    word_timings: Tuple[WordTiming, ...] = ()

    def __post_init__(self):
        if self.start_ms >= self.end_ms:
            raise ValueError(
                f"Segment {self.id} must satisfy start_ms < end_ms "
                f"(got {self.start_ms} >= {self.end_ms})"
            )
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"Segment {self.id} confidence {self.confidence} outside [0, 1]")
        # Accept any iterable of words but store a tuple
        if not isinstance(self.word_timings, tuple):
            object.__setattr__(self, "word_timings", tuple(self.word_timings))
        for w in self.word_timings:
            if w.start_ms < self.start_ms or w.end_ms > self.end_ms:
                raise ValueError(
                    f"Word '{w.word}' ({w.start_ms}-{w.end_ms}) is outside "
                    f"segment {self.id} ({self.start_ms}-{self.end_ms})"
                )

    @property
    def duration_ms(self) -> int:
        return self.end_ms - self.start_ms

    @property
    def word_count(self) -> int:
        return len(self.text.split())

    def __repr__(self):
        return (f"Segment({self.start_ms}-{self.end_ms}ms, "
                f"'{self.text[:40]}', speaker={self.speaker_id})")


@dataclass(frozen=True, eq=False)
class SpeakerProfile:
    """A clustered speaker identity, owned by SpeakerRegistry."""
    id: str
    name: Optional[str]
    average_embedding: np.ndarray
    sample_count: int
    confidence: float
    first_seen_ms: int
    last_seen_ms: int

    @property
    def dimension(self) -> int:
        return int(self.average_embedding.shape[0])


@dataclass
class GenerationResult:
    """Outcome of one generate_subtitles() call."""
    segments: List[SubtitleSegment] = field(default_factory=list)
    detected_language: str = "unknown"
    total_processing_time_ms: int = 0
    average_confidence: float = 0.0
    speaker_count: int = 0
    success: bool = True
    error: Optional[str] = None
    chunks_total: int = 0
    chunks_processed: int = 0
    chunks_skipped: int = 0
    cancelled: bool = False


def clip_word_timings(words, start_ms: int, end_ms: int) -> Tuple[WordTiming, ...]:
    """Keep words overlapping [start_ms, end_ms) and clamp them into it."""
    clipped = []
    for w in words:
        if w.end_ms <= start_ms or w.start_ms >= end_ms:
            continue
        w_start = max(w.start_ms, start_ms)
        w_end = min(w.end_ms, end_ms)
        if w_start == w.start_ms and w_end == w.end_ms:
            clipped.append(w)
        else:
            clipped.append(WordTiming(w.word, w_start, w_end, w.confidence))
    return tuple(clipped)


def primary_language(segments: List[SubtitleSegment]) -> str:
    """Most frequent segment language, "unknown" for an empty list."""
    if not segments:
        return "unknown"
    return Counter(s.language for s in segments).most_common(1)[0][0]


def average_confidence(segments: List[SubtitleSegment]) -> float:
    if not segments:
        return 0.0
    return sum(s.confidence for s in segments) / len(segments)


def count_speakers(segments: List[SubtitleSegment]) -> int:
    return len({s.speaker_id for s in segments if s.speaker_id is not None})
