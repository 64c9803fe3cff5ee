"""
Recognition — speech recognizer adapter and a Faster-Whisper backend.

RecognitionAdapter is the only recognition logic the pipeline owns: it
forwards a voiced range to a Recognizer, drops results below the
confidence threshold and converts chunk-local offsets to absolute
milliseconds.

WhisperRecognizer is a ready-made Recognizer using the CTranslate2
backend of Faster-Whisper with INT8 quantization on CPU.
"""

import math
import os
import logging
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from .chunker import AudioChunk
from .interfaces import Recognizer, RecognitionResult
from .models import WordTiming, clip_word_timings
from .vad import VoiceRange

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecognizedSpeech:
    """A confident recognition result placed on the absolute timeline."""
    text: str
    language: str
    confidence: float
    start_ms: int
    end_ms: int
    word_timings: Tuple[WordTiming, ...] = ()


class RecognitionAdapter:
    """Confidence filter and timestamp translation around a Recognizer."""

    def __init__(self, recognizer: Recognizer, config):
        self.recognizer = recognizer
        self.min_confidence = getattr(config, "min_confidence", 0.6)
        self.language = getattr(config, "language", None)

    def recognize(self, chunk: AudioChunk, voice_range: VoiceRange) -> Optional[RecognizedSpeech]:
        """
        Recognize one voiced range of a chunk.

        Returns:
            RecognizedSpeech with absolute timestamps, or None when the
            recognizer returned empty text or confidence below threshold.
        """
        pcm = chunk.samples[voice_range.start:voice_range.end]
        result = self.recognizer.recognize(pcm, self.language)

        start_ms = chunk.sample_to_ms(voice_range.start)
        end_ms = chunk.sample_to_ms(voice_range.end)

        text = (result.text or "").strip()
        if not text:
            logger.debug(f"Empty recognition at {start_ms}ms, dropped")
            return None
        if result.confidence < self.min_confidence:
            logger.debug(
                f"Filtered low-confidence segment at {start_ms}ms: '{text[:40]}' "
                f"(confidence={result.confidence:.2f} < {self.min_confidence})"
            )
            return None

        shifted = [
            WordTiming(w.word, start_ms + w.start_ms, start_ms + w.end_ms, w.confidence)
            for w in result.word_timings
        ]

        return RecognizedSpeech(
            text=text,
            language=result.language or "unknown",
            confidence=min(1.0, max(0.0, float(result.confidence))),
            start_ms=start_ms,
            end_ms=end_ms,
            word_timings=clip_word_timings(shifted, start_ms, end_ms),
        )


class WhisperRecognizer(Recognizer):
    """
    Recognizer backed by Faster-Whisper.

    Features:
      - INT8 quantized inference for CPU efficiency
      - Lazy model loading with auto-detected thread count
      - Word-level timestamps for word timings
      - Confidence derived from the mean segment log probability
    """

    def __init__(self, config):
        self.model_size = getattr(config, "model", "small")
        self.device = getattr(config, "device", "cpu")
        self.compute_type = getattr(config, "compute_type", "int8")
        self.beam_size = getattr(config, "beam_size", 3)

        # Thread count: 0 = auto-detect
        raw_threads = getattr(config, "threads", 0)
        if raw_threads <= 0:
            self.cpu_threads = os.cpu_count() or 4
            logger.info(f"Auto-detected {self.cpu_threads} CPU threads")
        else:
            self.cpu_threads = raw_threads

        self._model = None

    def _load_model(self):
        """Load the Faster-Whisper model on first use."""
        if self._model is not None:
            return

        from faster_whisper import WhisperModel

        logger.info(
            f"Loading Faster-Whisper model '{self.model_size}' "
            f"(compute_type={self.compute_type}, threads={self.cpu_threads})"
        )
        self._model = WhisperModel(
            self.model_size,
            device=self.device,
            compute_type=self.compute_type,
            cpu_threads=self.cpu_threads,
        )
        logger.info("Faster-Whisper model loaded successfully.")

    def recognize(self, pcm: np.ndarray, language_hint: Optional[str]) -> RecognitionResult:
        self._load_model()

        segments_iter, info = self._model.transcribe(
            pcm.astype(np.float32),
            beam_size=self.beam_size,
            language=language_hint,
            vad_filter=False,              # VAD already ran upstream
            word_timestamps=True,
            condition_on_previous_text=False,
        )

        texts = []
        logprobs = []
        words = []
        for seg in segments_iter:
            text = seg.text.strip()
            if not text:
                continue
            texts.append(text)
            logprobs.append(seg.avg_logprob)
            for w in seg.words or []:
                words.append(WordTiming(
                    word=w.word.strip(),
                    start_ms=int(round(w.start * 1000)),
                    end_ms=int(round(w.end * 1000)),
                    confidence=float(w.probability),
                ))

        if logprobs:
            confidence = min(1.0, max(0.0, math.exp(sum(logprobs) / len(logprobs))))
        else:
            confidence = 0.0

        return RecognitionResult(
            text=" ".join(texts),
            language=info.language,
            confidence=confidence,
            word_timings=words,
        )
