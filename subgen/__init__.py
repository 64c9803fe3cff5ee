"""
Subtitle Generator — Pipeline Package

Turns a continuous audio stream into time-aligned, speaker-attributed
subtitle segments:
  - chunker: overlapping fixed-size analysis windows
  - vad: energy-based voice activity detection
  - recognition: speech recognizer adapter + faster-whisper backend
  - speakers: speaker registry (embedding clustering)
  - normalizer: punctuation and capitalization restoration
  - translation: optional translator adapter
  - assembler: per-chunk SubtitleSegment construction
  - postprocess: split / reading-time / merge passes
  - exporter, importer: SRT, VTT, ASS and JSON serialization
  - orchestrator: chunked batch pipeline with worker pool and cancellation
  - realtime: non-blocking single-buffer entry point
"""

from .models import SubtitleSegment, WordTiming, SpeakerProfile, GenerationResult
from .orchestrator import SubtitlePipeline, CancellationToken

__all__ = [
    "SubtitleSegment",
    "WordTiming",
    "SpeakerProfile",
    "GenerationResult",
    "SubtitlePipeline",
    "CancellationToken",
]
