"""
Voice Activity Detection — energy-based voiced-range finder.

Slides a short analysis window (10ms by default) across a chunk with
50% stride and tracks runs of consecutive windows whose mean squared
energy reaches the threshold. A run becomes a VoiceRange only if it is
longer than the minimum speech length. The detector holds no state
between calls.
"""

import logging
from dataclasses import dataclass
from typing import List

import numpy as np

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VoiceRange:
    """Voiced sample range [start, end) local to one chunk."""
    start: int
    end: int

    @property
    def length(self) -> int:
        return self.end - self.start

    def __repr__(self):
        return f"VoiceRange({self.start}-{self.end})"


class VoiceActivityDetector:
    """
    Finds voiced sub-ranges of a chunk by energy thresholding.

    A window counts as voiced when its energy is >= energy_threshold, so a
    threshold of 0 marks every window voiced and the whole chunk comes back
    as a single range.
    """

    def __init__(self, config, sample_rate: int = 16000):
        self.energy_threshold = getattr(config, "energy_threshold", 0.01)
        window_ms = getattr(config, "window_ms", 10)
        min_speech_ms = getattr(config, "min_speech_ms", 250)

        self.sample_rate = sample_rate
        self.window = max(2, sample_rate * window_ms // 1000)
        self.stride = self.window // 2
        self.min_speech_samples = sample_rate * min_speech_ms // 1000

    def window_energies(self, samples: np.ndarray) -> np.ndarray:
        """Mean squared energy of every analysis window, in stride order."""
        n = len(samples)
        if n < self.window:
            return np.zeros(0, dtype=np.float64)

        # Prefix sums of squares give each window's energy in O(1)
        squares = np.square(samples.astype(np.float64))
        prefix = np.concatenate(([0.0], np.cumsum(squares)))
        starts = np.arange(0, n - self.window + 1, self.stride)
        return (prefix[starts + self.window] - prefix[starts]) / self.window

    def detect(self, samples: np.ndarray) -> List[VoiceRange]:
        """
        Detect voiced ranges in one chunk.

        Args:
            samples: Float32 mono PCM for a single chunk.

        Returns:
            Ordered, non-overlapping VoiceRanges in chunk-local sample indices.
        """
        energies = self.window_energies(samples)
        ranges: List[VoiceRange] = []
        run_start = -1

        for i, energy in enumerate(energies):
            pos = i * self.stride
            if energy >= self.energy_threshold:
                if run_start == -1:
                    run_start = pos
            else:
                if run_start != -1 and pos - run_start > self.min_speech_samples:
                    ranges.append(VoiceRange(run_start, pos))
                run_start = -1

        # Flush a run still open at the end of the chunk
        if run_start != -1 and len(samples) - run_start > self.min_speech_samples:
            ranges.append(VoiceRange(run_start, len(samples)))

        if ranges:
            voiced = sum(r.length for r in ranges) / self.sample_rate
            logger.debug(f"VAD: {len(ranges)} voiced ranges ({voiced:.2f}s)")

        return ranges
