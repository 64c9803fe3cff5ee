"""
Audio Chunker — splits a long sample buffer into overlapping analysis windows.

Each chunk starts (chunk_duration - overlap) after the previous one.
Voiced ranges that straddle an overlap are analysed by both neighbouring
chunks; no cross-chunk deduplication happens here.
"""

import logging
from dataclasses import dataclass
from typing import Iterator, List

import numpy as np

from .errors import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class AudioChunk:
    """Contiguous PCM range [offset_ms, offset_ms + duration_ms)."""
    index: int
    offset_ms: int
    samples: np.ndarray
    sample_rate: int

    @property
    def duration_ms(self) -> int:
        return len(self.samples) * 1000 // self.sample_rate

    def sample_to_ms(self, sample_idx: int) -> int:
        """Convert a chunk-local sample index into absolute milliseconds."""
        return self.offset_ms + sample_idx * 1000 // self.sample_rate

    def __repr__(self):
        return (f"AudioChunk(#{self.index}, {self.offset_ms}ms, "
                f"{self.duration_ms}ms)")


class AudioChunker:
    """
    Pure transform from a sample buffer to an ordered list of AudioChunks.

    Raises ConfigurationError for a non-positive sample rate or chunk
    size, or an overlap outside [0, chunk_duration).
    """

    def __init__(self, config, sample_rate: int = 16000):
        self.chunk_duration_ms = getattr(config, "chunk_duration_ms", 30000)
        self.overlap_ms = getattr(config, "overlap_ms", 2000)
        self.min_chunk_ms = getattr(config, "min_chunk_ms", 1000)
        self.sample_rate = sample_rate

        if self.sample_rate <= 0:
            raise ConfigurationError(f"sample_rate must be positive, got {self.sample_rate}")
        if self.chunk_duration_ms <= 0:
            raise ConfigurationError(
                f"chunk_duration_ms must be positive, got {self.chunk_duration_ms}"
            )
        if not 0 <= self.overlap_ms < self.chunk_duration_ms:
            raise ConfigurationError(
                f"overlap_ms must satisfy 0 <= overlap < chunk_duration "
                f"(got overlap={self.overlap_ms}, chunk={self.chunk_duration_ms})"
            )

        self.chunk_samples = self.chunk_duration_ms * sample_rate // 1000
        self.overlap_samples = self.overlap_ms * sample_rate // 1000
        self.step_samples = self.chunk_samples - self.overlap_samples
        self.min_chunk_samples = self.min_chunk_ms * sample_rate // 1000

    def iter_chunks(self, samples: np.ndarray) -> Iterator[AudioChunk]:
        """Yield chunks lazily, in order."""
        total = len(samples)
        start = 0
        index = 0

        while start < total:
            end = min(start + self.chunk_samples, total)
            if end - start < self.min_chunk_samples:
                logger.debug(
                    f"Dropping trailing chunk at sample {start} "
                    f"({(end - start) * 1000 // self.sample_rate}ms < {self.min_chunk_ms}ms)"
                )
                break

            yield AudioChunk(
                index=index,
                offset_ms=start * 1000 // self.sample_rate,
                samples=samples[start:end],
                sample_rate=self.sample_rate,
            )
            index += 1

            # A later chunk would lie entirely inside this one's tail
            if end == total:
                break
            start += self.step_samples

    def split(self, samples: np.ndarray) -> List[AudioChunk]:
        chunks = list(self.iter_chunks(samples))
        logger.debug(
            f"Split {len(samples) / self.sample_rate:.1f}s of audio into {len(chunks)} chunks "
            f"({self.chunk_duration_ms}ms, overlap {self.overlap_ms}ms)"
        )
        return chunks
