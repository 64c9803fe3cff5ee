"""
Segment Post-Processor — normalizes the global segment list.

Three deterministic passes over the list sorted by start time:
  1. Split: text longer than max_chars is packed greedily into word
     groups, each given a contiguous time slice proportional to its
     word count
  2. Reading time: short cues are extended up to the time needed at
     words_per_minute, long cues are truncated to max_duration_ms
  3. Merge: cues that overlap or start within merge_gap_ms of the
     previous cue's end are joined

After process() the list is strictly ordered by start_ms and pairwise
non-overlapping.
"""

import logging
from dataclasses import replace
from typing import List, Optional

from .assembler import new_segment_id
from .models import SubtitleSegment, clip_word_timings

logger = logging.getLogger(__name__)


def _sort_key(segment: SubtitleSegment):
    return (segment.start_ms, segment.end_ms)


class SegmentPostProcessor:

    def __init__(self, config=None):
        self.max_chars = getattr(config, "max_chars", 84)
        self.words_per_minute = getattr(config, "words_per_minute", 200)
        self.max_duration_ms = getattr(config, "max_duration_ms", 6000)
        self.merge_gap_ms = getattr(config, "merge_gap_ms", 500)
        self.max_merged_chars: Optional[int] = getattr(config, "max_merged_chars", None)

    def process(self, segments: List[SubtitleSegment]) -> List[SubtitleSegment]:
        """Run split, reading-time reconciliation and merge, in that order."""
        ordered = sorted(segments, key=_sort_key)

        split: List[SubtitleSegment] = []
        for segment in ordered:
            split.extend(self.split(segment))

        timed = [self.reconcile_reading_time(s) for s in split]
        merged = self.merge(timed)

        logger.info(
            f"Post-processed {len(segments)} segments -> {len(split)} after split "
            f"-> {len(merged)} after merge"
        )
        return merged

    # ── Pass 1: split ──

    def split(self, segment: SubtitleSegment) -> List[SubtitleSegment]:
        """
        Split a segment whose text exceeds max_chars at word boundaries.

        Rejoining the parts with single spaces reproduces the original
        (whitespace-normalized) text. A single word longer than max_chars
        becomes its own part. Segments shorter in ms than the number of
        parts are returned unsplit so every part stays inside the original
        time slice.
        """
        if len(segment.text) <= self.max_chars:
            return [segment]

        words = segment.text.split()
        if len(words) <= 1:
            return [segment]

        parts: List[List[str]] = []
        current: List[str] = []
        current_len = 0
        for word in words:
            added = len(word) if not current else current_len + 1 + len(word)
            if current and added > self.max_chars:
                parts.append(current)
                current = [word]
                current_len = len(word)
            else:
                current.append(word)
                current_len = added
        if current:
            parts.append(current)

        if len(parts) == 1:
            return [segment]
        if segment.duration_ms < len(parts):
            # Too short to give every part at least 1ms inside the original slice
            logger.debug(f"Not splitting {segment.duration_ms}ms segment into {len(parts)} parts")
            return [segment]

        total_words = len(words)
        duration = segment.duration_ms
        results: List[SubtitleSegment] = []
        words_before = 0
        part_start = segment.start_ms

        for i, part in enumerate(parts):
            words_before += len(part)
            if i == len(parts) - 1:
                part_end = segment.end_ms
            else:
                part_end = segment.start_ms + duration * words_before // total_words
                # Every part keeps start < end; the remaining parts still fit
                part_end = max(part_end, part_start + 1)
                part_end = min(part_end, segment.end_ms - (len(parts) - 1 - i))

            results.append(replace(
                segment,
                id=new_segment_id(),
                text=" ".join(part),
                start_ms=part_start,
                end_ms=part_end,
                word_timings=clip_word_timings(segment.word_timings, part_start, part_end),
            ))
            part_start = part_end

        logger.debug(f"Split segment at {segment.start_ms}ms into {len(results)} parts")
        return results

    # ── Pass 2: reading time ──

    def reading_time_ms(self, segment: SubtitleSegment) -> int:
        return segment.word_count * 60000 // self.words_per_minute

    def reconcile_reading_time(self, segment: SubtitleSegment) -> SubtitleSegment:
        duration = segment.duration_ms
        reading = self.reading_time_ms(segment)

        if duration < reading:
            extension = min(reading - duration, self.max_duration_ms - duration)
            if extension > 0:
                return replace(segment, end_ms=segment.end_ms + extension)
            if extension < 0:
                return self._truncate(segment)
            return segment

        if duration > self.max_duration_ms:
            return self._truncate(segment)
        return segment

    def _truncate(self, segment: SubtitleSegment) -> SubtitleSegment:
        end_ms = segment.start_ms + self.max_duration_ms
        return replace(
            segment,
            end_ms=end_ms,
            word_timings=clip_word_timings(segment.word_timings, segment.start_ms, end_ms),
        )

    # ── Pass 3: merge ──

    def merge(self, segments: List[SubtitleSegment]) -> List[SubtitleSegment]:
        """
        Join overlapping or near-adjacent segments.

        When max_merged_chars is set and the joined text would exceed it,
        the pair is kept apart instead; an overlapping current segment is
        then cut back to the next segment's start.
        """
        if not segments:
            return []

        ordered = sorted(segments, key=_sort_key)
        merged: List[SubtitleSegment] = []
        current = ordered[0]

        for nxt in ordered[1:]:
            if nxt.start_ms > current.end_ms + self.merge_gap_ms:
                merged.append(current)
                current = nxt
                continue

            if self._fits(current, nxt) or nxt.start_ms <= current.start_ms:
                current = self._join(current, nxt)
            else:
                if nxt.start_ms < current.end_ms:
                    current = replace(
                        current,
                        end_ms=nxt.start_ms,
                        word_timings=clip_word_timings(
                            current.word_timings, current.start_ms, nxt.start_ms
                        ),
                    )
                merged.append(current)
                current = nxt

        merged.append(current)
        return merged

    def _fits(self, a: SubtitleSegment, b: SubtitleSegment) -> bool:
        if self.max_merged_chars is None:
            return True
        return len(a.text) + 1 + len(b.text) <= self.max_merged_chars

    @staticmethod
    def _join(a: SubtitleSegment, b: SubtitleSegment) -> SubtitleSegment:
        translated = [t for t in (a.translated_text, b.translated_text) if t]
        end_ms = max(a.end_ms, b.end_ms)
        return replace(
            a,
            text=f"{a.text} {b.text}",
            end_ms=end_ms,
            confidence=(a.confidence + b.confidence) / 2,
            translated_text=" ".join(translated) if translated else None,
            word_timings=tuple(sorted(a.word_timings + b.word_timings, key=lambda w: w.start_ms)),
        )


def shift_segments(segments: List[SubtitleSegment], offset_ms: int) -> List[SubtitleSegment]:
    """
    Apply a global timing offset (subtitle delay).

    Segments that end at or before 0 after shifting are dropped; segments
    that start before 0 are clipped to start at 0.
    """
    shifted = []
    for s in segments:
        start = s.start_ms + offset_ms
        end = s.end_ms + offset_ms
        if end <= 0:
            continue
        start = max(0, start)
        words = [
            replace(w, start_ms=w.start_ms + offset_ms, end_ms=w.end_ms + offset_ms)
            for w in s.word_timings
        ]
        shifted.append(replace(
            s,
            start_ms=start,
            end_ms=end,
            word_timings=clip_word_timings(words, start, end),
        ))
    return shifted


def segments_at(segments: List[SubtitleSegment], time_ms: int) -> List[SubtitleSegment]:
    """Segments on screen at a playback time (inclusive bounds)."""
    return [s for s in segments if s.start_ms <= time_ms <= s.end_ms]
