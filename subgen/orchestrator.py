"""
Pipeline Orchestrator — coordinates batch subtitle generation.

Stages:
  1. Audio loading (soundfile / FFmpeg)
  2. Chunking into overlapping 30s windows
  3. Per-chunk VAD + recognition + speakers + text + translation,
     on a bounded worker pool
  4. Post-processing (split, reading time, merge)

Chunks are independent: each one's segments go into a shared collector
that is sorted by start time once all chunks are done, so completion
order never matters. A failed or timed-out chunk is skipped; an audio
loading failure fails the whole call.
"""

import time
import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed, TimeoutError as FuturesTimeout
from pathlib import Path
from typing import Callable, List, Optional

from .assembler import SegmentAssembler, SegmentCollector
from .audio_loader import AudioLoader, AudioSource
from .chunker import AudioChunk, AudioChunker
from .cpu_throttle import CPUThrottle
from .errors import AudioLoadError, ChunkTimeoutError, ConfigurationError, EmbeddingDimensionError
from .exporter import ExportResult, SubtitleExporter, SubtitleFormat
from .importer import SubtitleImporter
from .interfaces import EmbeddingExtractor, PunctuationModel, Recognizer, Translator
from .models import (
    GenerationResult,
    SubtitleSegment,
    average_confidence,
    count_speakers,
    primary_language,
)
from .normalizer import TextNormalizer
from .postprocess import SegmentPostProcessor
from .recognition import RecognitionAdapter
from .speakers import SpeakerRegistry
from .translation import TranslatorAdapter
from .vad import VoiceActivityDetector

logger = logging.getLogger(__name__)

# Type alias for progress callbacks: (message: str, percent: int) -> None
ProgressCallback = Optional[Callable[[str, int], None]]


class CancellationToken:
    """Shared flag checked between chunks and between voiced ranges."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class SubtitlePipeline:
    """
    Main pipeline for subtitle generation.

    Usage:
        config = load_config()
        pipeline = SubtitlePipeline(config, WhisperRecognizer(config.recognition))
        result = pipeline.generate_subtitles("talk.wav")
        pipeline.export_subtitles(result.segments, "talk.srt")
    """

    def __init__(
        self,
        config,
        recognizer: Recognizer,
        embedding_extractor: Optional[EmbeddingExtractor] = None,
        translator: Optional[Translator] = None,
        punctuation_model: Optional[PunctuationModel] = None,
        registry: Optional[SpeakerRegistry] = None,
    ):
        self.config = config
        sample_rate = config.audio.sample_rate

        self.loader = AudioLoader(sample_rate)
        self.chunker = AudioChunker(config.chunking, sample_rate)
        self.vad = VoiceActivityDetector(config.vad, sample_rate)
        self.registry = registry or SpeakerRegistry(config.speakers)
        self.assembler = SegmentAssembler(
            recognition=RecognitionAdapter(recognizer, config.recognition),
            normalizer=TextNormalizer(config.text, punctuation_model),
            translator=TranslatorAdapter(translator, config.translation),
            registry=self.registry,
            embedding_extractor=embedding_extractor if config.speakers.enabled else None,
        )
        self.postprocessor = SegmentPostProcessor(config.postprocess)
        self.importer = SubtitleImporter()
        self.throttle = CPUThrottle.from_config(config.processing)

        if config.processing.workers < 1:
            raise ConfigurationError(f"processing.workers must be >= 1, got {config.processing.workers}")
        self.workers = config.processing.workers
        self.chunk_timeout_sec = config.processing.chunk_timeout_sec
        self.max_processing_sec = config.processing.max_processing_sec

    def generate_subtitles(
        self,
        source: AudioSource,
        cancel_token: Optional[CancellationToken] = None,
        progress_cb: ProgressCallback = None,
    ) -> GenerationResult:
        """
        Run the full pipeline over an audio file or sample array.

        Args:
            source: Path to an audio/video file, or float32 mono samples.
            cancel_token: Optional token; on cancel, segments from chunks
                already processed are still returned.
            progress_cb: Optional callback for progress updates.

        Returns:
            GenerationResult; success is False when audio loading failed,
            the run was cancelled, or the processing budget ran out.

        Raises:
            EmbeddingDimensionError, ConfigurationError: programming errors
                are never downgraded to skipped chunks.
        """
        start_time = time.monotonic()
        token = cancel_token or CancellationToken()
        budget_deadline = (
            start_time + self.max_processing_sec if self.max_processing_sec > 0 else None
        )

        # ── Stage 1: Audio loading ──
        self._report(progress_cb, "Loading audio...", 2)
        try:
            audio = self.loader.load(source)
        except AudioLoadError as e:
            logger.error(f"Audio extraction failed: {e}")
            return GenerationResult(
                success=False,
                error=f"Failed to extract audio data: {e}",
                total_processing_time_ms=self._elapsed_ms(start_time),
            )

        # ── Stage 2: Chunking ──
        chunks = self.chunker.split(audio)
        self._report(progress_cb, f"Processing {len(chunks)} chunks...", 5)

        # ── Stage 3: Chunk analysis ──
        collector = SegmentCollector()
        processed, skipped, budget_exceeded = self._run_chunks(
            chunks, collector, token, budget_deadline, progress_cb
        )

        # ── Stage 4: Post-processing ──
        self._report(progress_cb, "Post-processing segments...", 92)
        segments = self.postprocessor.process(collector.sorted())

        result = GenerationResult(
            segments=segments,
            detected_language=primary_language(segments),
            total_processing_time_ms=self._elapsed_ms(start_time),
            average_confidence=average_confidence(segments),
            speaker_count=count_speakers(segments),
            chunks_total=len(chunks),
            chunks_processed=processed,
            chunks_skipped=skipped,
        )

        if token.cancelled:
            result.success = False
            result.cancelled = True
            result.error = f"Cancelled after {processed} of {len(chunks)} chunks"
        elif budget_exceeded:
            result.success = False
            result.error = (
                f"Processing budget of {self.max_processing_sec:.0f}s exceeded "
                f"after {processed} of {len(chunks)} chunks"
            )

        self._report(progress_cb, f"Done! ({result.total_processing_time_ms / 1000:.1f}s)", 100)
        logger.info(
            f"Generated {len(segments)} segments from {processed}/{len(chunks)} chunks "
            f"({skipped} skipped) in {result.total_processing_time_ms}ms; "
            f"language={result.detected_language}, speakers={result.speaker_count}"
        )
        return result

    def _run_chunks(
        self,
        chunks: List[AudioChunk],
        collector: SegmentCollector,
        token: CancellationToken,
        budget_deadline: Optional[float],
        progress_cb: ProgressCallback,
    ):
        """Process chunks on the worker pool. Returns (processed, skipped, budget_exceeded)."""
        processed = 0
        skipped = 0
        budget_exceeded = False
        # Stops sibling chunks on a fatal error without touching the caller's token
        abort = threading.Event()

        def should_stop() -> bool:
            return token.cancelled or abort.is_set() or (
                budget_deadline is not None and time.monotonic() > budget_deadline
            )

        if not chunks:
            return processed, skipped, budget_exceeded

        with ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="subgen-chunk") as executor:
            futures = {
                executor.submit(self._process_chunk, chunk, collector, should_stop): chunk
                for chunk in chunks
            }
            timeout = None if budget_deadline is None else max(0.0, budget_deadline - time.monotonic())

            try:
                for done, future in enumerate(as_completed(futures, timeout=timeout), start=1):
                    chunk = futures[future]
                    try:
                        ran = future.result()
                    except (EmbeddingDimensionError, ConfigurationError):
                        abort.set()
                        raise
                    except ChunkTimeoutError as e:
                        skipped += 1
                        logger.warning(f"Skipping chunk {chunk.index}: {e}")
                    except Exception as e:
                        skipped += 1
                        logger.warning(
                            f"Skipping chunk {chunk.index} at {chunk.offset_ms}ms after error: {e}"
                        )
                    else:
                        if ran:
                            processed += 1

                    pct = 5 + int(85 * done / len(chunks))
                    self._report(progress_cb, f"Processed {done}/{len(chunks)} chunks", pct)
            except FuturesTimeout:
                budget_exceeded = True
                logger.warning(
                    f"Processing budget of {self.max_processing_sec:.0f}s exceeded, "
                    f"returning partial results"
                )
            finally:
                for future in futures:
                    future.cancel()

        return processed, skipped, budget_exceeded

    def _process_chunk(self, chunk: AudioChunk, collector: SegmentCollector, should_stop) -> bool:
        """Analyse one chunk. Returns False when it was skipped due to cancellation."""
        if should_stop():
            return False

        deadline = time.monotonic() + self.chunk_timeout_sec if self.chunk_timeout_sec > 0 else None
        ranges = self.vad.detect(chunk.samples)
        segments = self.assembler.assemble(chunk, ranges, deadline=deadline, should_stop=should_stop)
        collector.extend(segments)

        logger.debug(f"{chunk}: {len(ranges)} voiced ranges -> {len(segments)} segments")
        self.throttle.pause_if_busy()
        return True

    # ── Import / export ──

    def export_subtitles(
        self,
        segments: List[SubtitleSegment],
        output_path,
        fmt: Optional[SubtitleFormat] = None,
    ) -> ExportResult:
        """Write segments to a file. Never leaves a partially written file."""
        exporter = SubtitleExporter(self.registry.names())
        try:
            written = exporter.write(segments, output_path, fmt)
        except (OSError, ValueError) as e:
            logger.error(f"Error exporting subtitles to {output_path}: {e}")
            return ExportResult(success=False, path=Path(output_path), error=str(e))
        return ExportResult(success=True, path=written)

    def import_subtitles(self, path) -> List[SubtitleSegment]:
        return self.importer.import_file(path)

    def rename_speaker(self, speaker_id: str, name: str):
        self.registry.rename(speaker_id, name)

    # ── Utilities ──

    @staticmethod
    def _elapsed_ms(start_time: float) -> int:
        return int((time.monotonic() - start_time) * 1000)

    @staticmethod
    def _report(cb: ProgressCallback, msg: str, pct: int):
        """Report progress to logger and optional callback."""
        logger.info(f"[{pct:3d}%] {msg}")
        if cb:
            cb(msg, pct)
