"""
Collaborator interfaces consumed by the pipeline.

The pipeline never depends on a concrete model: speech recognition,
speaker embeddings, translation and punctuation restoration are reached
only through these abstract classes. All audio is float32 mono PCM at
16 kHz, normalized to [-1, 1].
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np

from .models import WordTiming


@dataclass
class RecognitionResult:
    """
    Result of one recognize() call.

    Word timings are in milliseconds relative to the start of the audio
    passed to the recognizer; the pipeline shifts them to absolute time.
    """
    text: str
    language: str
    confidence: float  # 0.0 - 1.0
    word_timings: List[WordTiming] = field(default_factory=list)


class Recognizer(ABC):
    """Speech-to-text engine."""

    @abstractmethod
    def recognize(self, pcm: np.ndarray, language_hint: Optional[str]) -> RecognitionResult:
        """Transcribe one voiced range. language_hint=None means auto-detect."""
        ...


class EmbeddingExtractor(ABC):
    """Produces a fixed-dimension voice embedding for a voiced range."""

    @abstractmethod
    def extract(self, pcm: np.ndarray) -> np.ndarray:
        ...


class Translator(ABC):
    """Text translation engine."""

    @abstractmethod
    def translate(self, text: str, source_lang: str, target_lang: str) -> Optional[str]:
        """Return the translated text, or None when no translation is available."""
        ...


class PunctuationModel(ABC):
    """Optional text-to-text punctuation restorer."""

    @abstractmethod
    def restore(self, text: str) -> str:
        ...
