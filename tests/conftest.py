"""
Shared fixtures and deterministic collaborator fakes.
"""

import threading

import numpy as np
import pytest

from config import AppConfig
from subgen.interfaces import (
    EmbeddingExtractor,
    PunctuationModel,
    RecognitionResult,
    Recognizer,
    Translator,
)
from subgen.models import SubtitleSegment, WordTiming

SAMPLE_RATE = 16000


def tone(duration_ms: int, amplitude: float = 0.5) -> np.ndarray:
    """Constant-amplitude square-ish signal (energy = amplitude**2)."""
    n = duration_ms * SAMPLE_RATE // 1000
    signal = np.full(n, amplitude, dtype=np.float32)
    signal[1::2] *= -1
    return signal


def silence(duration_ms: int) -> np.ndarray:
    return np.zeros(duration_ms * SAMPLE_RATE // 1000, dtype=np.float32)


def make_segment(start_ms, end_ms, text="Hello", confidence=0.9, **kwargs) -> SubtitleSegment:
    return SubtitleSegment(
        id=kwargs.pop("id", f"seg_{start_ms}"),
        text=text,
        start_ms=start_ms,
        end_ms=end_ms,
        confidence=confidence,
        language=kwargs.pop("language", "en"),
        **kwargs,
    )


class FakeRecognizer(Recognizer):
    """Returns scripted results in call order, then repeats the last one."""

    def __init__(self, texts=("hello there",), confidence=0.9, language="en"):
        self.texts = list(texts)
        self.confidence = confidence
        self.language = language
        self.calls = []
        self._lock = threading.Lock()

    def recognize(self, pcm, language_hint):
        with self._lock:
            self.calls.append((len(pcm), language_hint))
            index = min(len(self.calls) - 1, len(self.texts) - 1)
            text = self.texts[index]
        words = text.split()
        duration_ms = len(pcm) * 1000 // SAMPLE_RATE
        step = max(1, duration_ms // max(1, len(words)))
        timings = [
            WordTiming(w, i * step, min(duration_ms, (i + 1) * step), 0.9)
            for i, w in enumerate(words)
        ]
        return RecognitionResult(text, self.language, self.confidence, timings)


class FailingRecognizer(Recognizer):
    def recognize(self, pcm, language_hint):
        raise RuntimeError("model crashed")


class ConstantEmbedding(EmbeddingExtractor):
    def __init__(self, vector):
        self.vector = np.asarray(vector, dtype=np.float64)

    def extract(self, pcm):
        return self.vector


class PrefixTranslator(Translator):
    def __init__(self):
        self.calls = []

    def translate(self, text, source_lang, target_lang):
        self.calls.append((text, source_lang, target_lang))
        return f"[{target_lang.upper()}] {text}"


class BrokenTranslator(Translator):
    def translate(self, text, source_lang, target_lang):
        raise ConnectionError("translator offline")


class UpperPunctuation(PunctuationModel):
    def restore(self, text):
        return text + "!"


@pytest.fixture
def config():
    return AppConfig()


@pytest.fixture
def speech_audio():
    """1s silence, 2s tone, 1s silence, 2s tone, 1s silence (7s total)."""
    return np.concatenate([silence(1000), tone(2000), silence(1000), tone(2000), silence(1000)])
