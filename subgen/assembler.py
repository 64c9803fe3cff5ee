"""
Segment Assembler — builds SubtitleSegments for the voiced ranges of a chunk.

For each voiced range: recognize -> normalize -> identify speaker ->
translate -> SubtitleSegment. Segments come out in chunk-local order and
are appended to a SegmentCollector shared by all chunk workers.
"""

import time
import uuid
import logging
import threading
from typing import Callable, List, Optional

from .chunker import AudioChunk
from .errors import ChunkTimeoutError
from .interfaces import EmbeddingExtractor
from .models import SubtitleSegment
from .normalizer import TextNormalizer
from .recognition import RecognitionAdapter
from .speakers import SpeakerRegistry
from .translation import TranslatorAdapter
from .vad import VoiceRange

logger = logging.getLogger(__name__)


def new_segment_id() -> str:
    return f"seg_{uuid.uuid4().hex[:12]}"


class SegmentCollector:
    """Thread-safe, append-only segment list shared by chunk workers."""

    def __init__(self):
        self._segments: List[SubtitleSegment] = []
        self._lock = threading.Lock()

    def extend(self, segments: List[SubtitleSegment]):
        with self._lock:
            self._segments.extend(segments)

    def sorted(self) -> List[SubtitleSegment]:
        """Snapshot ordered by start time, independent of completion order."""
        with self._lock:
            return sorted(self._segments, key=lambda s: (s.start_ms, s.end_ms))

    def __len__(self):
        with self._lock:
            return len(self._segments)


class SegmentAssembler:
    """
    Combines recognition, normalization, speaker identification and
    translation into SubtitleSegment records.
    """

    def __init__(
        self,
        recognition: RecognitionAdapter,
        normalizer: TextNormalizer,
        translator: TranslatorAdapter,
        registry: Optional[SpeakerRegistry] = None,
        embedding_extractor: Optional[EmbeddingExtractor] = None,
    ):
        self.recognition = recognition
        self.normalizer = normalizer
        self.translator = translator
        self.registry = registry
        self.embedding_extractor = embedding_extractor

    @property
    def diarization_enabled(self) -> bool:
        return self.registry is not None and self.embedding_extractor is not None

    def assemble(
        self,
        chunk: AudioChunk,
        ranges: List[VoiceRange],
        deadline: Optional[float] = None,
        should_stop: Optional[Callable[[], bool]] = None,
    ) -> List[SubtitleSegment]:
        """
        Build segments for every voiced range of one chunk.

        Args:
            chunk: The chunk the ranges belong to.
            ranges: Voiced ranges from the VAD, in order.
            deadline: time.monotonic() value after which the chunk is abandoned.
            should_stop: Polled between ranges; True stops early and returns
                the segments built so far.

        Raises:
            ChunkTimeoutError: If the deadline passes between ranges.
        """
        segments: List[SubtitleSegment] = []

        for voice_range in ranges:
            if should_stop is not None and should_stop():
                logger.debug(f"Stopping chunk {chunk.index} early")
                break
            if deadline is not None and time.monotonic() > deadline:
                raise ChunkTimeoutError(
                    f"Chunk {chunk.index} at {chunk.offset_ms}ms exceeded its deadline"
                )

            segment = self._build_segment(chunk, voice_range)
            if segment is not None:
                segments.append(segment)

        return segments

    def _build_segment(self, chunk: AudioChunk, voice_range: VoiceRange) -> Optional[SubtitleSegment]:
        speech = self.recognition.recognize(chunk, voice_range)
        if speech is None:
            return None

        text = self.normalizer.normalize(speech.text)
        if not text:
            return None

        speaker_id = None
        if self.diarization_enabled:
            pcm = chunk.samples[voice_range.start:voice_range.end]
            embedding = self.embedding_extractor.extract(pcm)
            speaker_id = self.registry.identify(embedding, speech.start_ms)

        return SubtitleSegment(
            id=new_segment_id(),
            text=text,
            start_ms=speech.start_ms,
            end_ms=speech.end_ms,
            speaker_id=speaker_id,
            confidence=speech.confidence,
            language=speech.language,
            translated_text=self.translator.translate(text, speech.language),
            word_timings=speech.word_timings,
        )
