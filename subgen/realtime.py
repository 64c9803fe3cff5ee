"""
Real-time Subtitle Engine — single-buffer entry point for live audio.

submit() never blocks the caller: buffers go onto a bounded queue and a
background worker runs VAD and segment assembly on each one, publishing
segments through an optional callback and an output queue. One worker
means results come out FIFO.

Architecture:
  - Caller thread: submit() -> input queue (put_nowait)
  - Inference thread: VAD -> recognition -> speakers -> text -> translation
  - Consumers: get_segments() or the on_segments callback
"""

import logging
import threading
from dataclasses import dataclass
from queue import Queue, Empty, Full
from typing import Callable, Dict, List, Optional

import numpy as np

from .chunker import AudioChunk
from .errors import EmbeddingDimensionError
from .models import SubtitleSegment
from .orchestrator import SubtitlePipeline

logger = logging.getLogger(__name__)

SegmentsCallback = Optional[Callable[[str, List[SubtitleSegment]], None]]


@dataclass
class _BufferRequest:
    caller_id: str
    offset_ms: int
    samples: np.ndarray


class RealtimeSubtitleEngine:
    """
    Usage:
        engine = RealtimeSubtitleEngine(pipeline, on_segments=show)
        engine.start()
        engine.submit(samples)          # from the audio callback thread
        ...
        engine.stop()
    """

    def __init__(self, pipeline: SubtitlePipeline, on_segments: SegmentsCallback = None,
                 queue_size: Optional[int] = None):
        self.vad = pipeline.vad
        self.assembler = pipeline.assembler
        self.sample_rate = pipeline.config.audio.sample_rate
        self.min_samples = pipeline.config.chunking.min_chunk_ms * self.sample_rate // 1000
        self.on_segments = on_segments

        size = queue_size or pipeline.config.processing.realtime_queue_size
        self._input: Queue = Queue(maxsize=size)
        self._output: Queue = Queue()
        self._positions: Dict[str, int] = {}
        self._pos_lock = threading.Lock()
        self._shutdown = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._dropped = 0

    # ── Public API ──────────────────────────────────────────

    def start(self):
        """Start the background inference thread (non-blocking)."""
        self._shutdown.clear()
        if self.is_running:
            return
        self._thread = threading.Thread(
            target=self._inference_loop, name="realtime-inference", daemon=True
        )
        self._thread.start()
        logger.info("Real-time subtitle engine started")

    def stop(self, timeout: float = 10.0):
        """Finish queued buffers, then stop the worker."""
        if self._thread is None:
            return
        self._shutdown.set()
        self._thread.join(timeout=timeout)
        if self._thread.is_alive():
            logger.warning(f"Real-time worker still busy after {timeout}s, left running")
            return
        self._thread = None
        logger.info(f"Real-time subtitle engine stopped ({self._dropped} buffers dropped)")

    def submit(self, samples: np.ndarray, caller_id: str = "default",
               offset_ms: Optional[int] = None) -> bool:
        """
        Enqueue one short buffer for recognition without blocking.

        Args:
            samples: Float32 mono PCM.
            caller_id: Stream identifier; positions are tracked per caller.
            offset_ms: Absolute start of the buffer. Defaults to the end of
                this caller's previous buffer.

        Returns:
            False if the buffer was dropped (too short or queue full).
        """
        samples = np.asarray(samples, dtype=np.float32)
        duration_ms = len(samples) * 1000 // self.sample_rate

        with self._pos_lock:
            start_ms = self._positions.get(caller_id, 0) if offset_ms is None else offset_ms
            self._positions[caller_id] = start_ms + duration_ms

        if len(samples) < self.min_samples:
            logger.debug(f"Ignoring {duration_ms}ms buffer from {caller_id} (too short)")
            return False

        try:
            self._input.put_nowait(_BufferRequest(caller_id, start_ms, samples))
        except Full:
            self._dropped += 1
            logger.warning(f"Real-time queue full, dropping {duration_ms}ms buffer from {caller_id}")
            return False
        return True

    def get_segments(self, timeout: Optional[float] = None) -> List[SubtitleSegment]:
        """Next published batch of segments, or [] after the timeout."""
        try:
            _, segments = self._output.get(timeout=timeout)
        except Empty:
            return []
        return segments

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def pending(self) -> int:
        return self._input.qsize()

    # ── Worker ─────────────────────────────────────────────

    def _inference_loop(self):
        while True:
            try:
                request = self._input.get(timeout=0.1)
            except Empty:
                if self._shutdown.is_set():
                    break
                continue

            try:
                segments = self._process(request)
            except EmbeddingDimensionError:
                logger.exception(f"Speaker embedding rejected for buffer at {request.offset_ms}ms")
                continue
            except Exception as e:
                logger.warning(f"Real-time buffer at {request.offset_ms}ms failed: {e}")
                continue

            if not segments:
                continue
            self._output.put((request.caller_id, segments))
            if self.on_segments is not None:
                try:
                    self.on_segments(request.caller_id, segments)
                except Exception as e:
                    logger.error(f"on_segments callback raised: {e}")

    def _process(self, request: _BufferRequest) -> List[SubtitleSegment]:
        chunk = AudioChunk(
            index=0,
            offset_ms=request.offset_ms,
            samples=request.samples,
            sample_rate=self.sample_rate,
        )
        ranges = self.vad.detect(chunk.samples)
        return self.assembler.assemble(chunk, ranges)
