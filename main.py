"""
Subtitle Generator — CLI Entry Point

Usage:
    python main.py generate talk.wav
    python main.py generate movie.mp4 -o movie.vtt --model base
    python main.py generate interview.wav --translate-to es -f json
    python main.py convert movie.srt movie.ass
"""

import sys
import argparse
import logging
from pathlib import Path

from config import load_config
from subgen.exporter import SubtitleExporter, SubtitleFormat
from subgen.importer import SubtitleImporter
from subgen.orchestrator import SubtitlePipeline
from subgen.recognition import WhisperRecognizer


def setup_logging(level: str = "INFO", log_file: str = None):
    """Configure logging for the application."""
    log_format = (
        "%(asctime)s | %(levelname)-7s | %(name)-20s | %(message)s"
    )
    date_format = "%H:%M:%S"

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=log_format,
        datefmt=date_format,
        handlers=handlers
    )

    # Suppress noisy third-party loggers
    logging.getLogger("faster_whisper").setLevel(logging.WARNING)


def print_progress(message: str, percent: int):
    """Console progress callback with progress bar."""
    bar_width = 30
    filled = int(bar_width * percent / 100)
    bar = "#" * filled + "-" * (bar_width - filled)
    print(f"\r  [{bar}] {percent:3d}%  {message:<50}", end="", flush=True)
    if percent >= 100:
        print()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Generate, synchronize and convert subtitle files.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py generate talk.wav                  # SRT next to the input
  python main.py generate movie.mp4 -f vtt          # WebVTT output
  python main.py generate talk.wav --language en    # Skip language detection
  python main.py convert movie.srt movie.ass        # Format conversion
"""
    )
    parser.add_argument("--config", type=Path, default=None,
                        help="Path to custom config.yaml file")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Enable verbose (DEBUG) logging")
    parser.add_argument("-q", "--quiet", action="store_true",
                        help="Suppress all output except errors")

    sub = parser.add_subparsers(dest="command", required=True)

    gen = sub.add_parser("generate", help="Generate subtitles from audio or video")
    gen.add_argument("input", type=Path, help="Audio or video file")
    gen.add_argument("-o", "--output", type=Path, default=None,
                     help="Output subtitle path (default: input name with format extension)")
    gen.add_argument("-f", "--format", choices=[f.value for f in SubtitleFormat], default=None,
                     help="Output format (default: from --output extension, else srt)")
    gen.add_argument("-m", "--model", default=None,
                     help="Whisper model size (default: from config.yaml)")
    gen.add_argument("-l", "--language", default=None,
                     help="Force language code (e.g. 'en'). Default: auto-detect")
    gen.add_argument("--translate-to", default=None,
                     help="Translate segments to this language code")
    gen.add_argument("--workers", type=int, default=None,
                     help="Number of chunk worker threads")
    gen.add_argument("--max-cpu", type=int, default=None,
                     help="Maximum CPU usage percent for throttling")
    gen.add_argument("--no-diarization", action="store_true",
                     help="Disable speaker identification")

    conv = sub.add_parser("convert", help="Convert a subtitle file to another format")
    conv.add_argument("input", type=Path, help="Subtitle file (srt, vtt, ass, ssa, json)")
    conv.add_argument("output", type=Path, help="Destination file; format from extension")

    return parser


def run_generate(args, config) -> int:
    if not args.input.exists():
        print(f"Error: Input file not found: {args.input}")
        return 1

    fmt = SubtitleFormat(args.format) if args.format else None
    if args.output is None:
        fmt = fmt or SubtitleFormat.SRT
        output_path = args.input.with_suffix(f".{fmt.value}")
    else:
        output_path = args.output

    # No embedding extractor ships with the CLI, so diarization stays off
    pipeline = SubtitlePipeline(config, WhisperRecognizer(config.recognition))
    progress_fn = None if args.quiet else print_progress
    result = pipeline.generate_subtitles(args.input, progress_cb=progress_fn)

    if not result.success:
        print(f"\n  [ERROR] {result.error}")
        if not result.segments:
            return 1
        print(f"  [WARN] Writing {len(result.segments)} partial segments")

    export = pipeline.export_subtitles(result.segments, output_path, fmt)
    if not export.success:
        print(f"\n  [ERROR] Could not write subtitles: {export.error}")
        return 1

    if not args.quiet:
        print(f"\n  [OK] Subtitles saved to: {export.path}")
        print(f"  [INFO] Segments: {len(result.segments)}, "
              f"language: {result.detected_language}, "
              f"avg confidence: {result.average_confidence:.2f}")
        preview = SubtitleExporter().write_preview(result.segments, max_entries=5)
        if preview:
            print(preview)
    return 0 if result.success else 2


def run_convert(args) -> int:
    segments = SubtitleImporter().import_file(args.input)
    if not segments:
        print(f"Error: No subtitles could be read from {args.input}")
        return 1
    try:
        SubtitleExporter().write(segments, args.output)
    except (OSError, ValueError) as e:
        print(f"Error: {e}")
        return 1
    if not args.quiet:
        print(f"  [OK] {len(segments)} subtitles written to {args.output}")
    return 0


def main():
    parser = build_parser()
    args = parser.parse_args()

    config = load_config(args.config)
    config.update_from_args(args)

    log_level = "DEBUG" if args.verbose else ("WARNING" if args.quiet else config.logging.level)
    setup_logging(level=log_level, log_file=config.logging.file)

    try:
        if args.command == "generate":
            code = run_generate(args, config)
        else:
            code = run_convert(args)
    except KeyboardInterrupt:
        print("\n\n  [WARN] Processing interrupted by user.")
        code = 130
    sys.exit(code)


if __name__ == "__main__":
    main()
