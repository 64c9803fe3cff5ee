"""
Subtitle Importer — parses external SRT, VTT, ASS/SSA and JSON files.

Format detection uses the file extension first, then the content
signature. Malformed or unrecognized input yields an empty list and a
logged warning; the importer never raises for bad content or IO errors.
"""

import re
import json
import logging
from datetime import timedelta
from pathlib import Path
from typing import List, Optional

import srt

from .assembler import new_segment_id
from .exporter import EXTENSIONS, SubtitleFormat
from .models import SubtitleSegment
from .timecode import SRT_TIMESTAMP, VTT_TIMESTAMP, parse_ass, to_ms

logger = logging.getLogger(__name__)

_MILLISECOND = timedelta(milliseconds=1)

LANGUAGE_CODES = ("en", "es", "fr", "de", "it", "pt", "ru", "ja", "ko", "zh", "ar", "hi")

_ASS_TAG = re.compile(r"\{[^}]*\}")
_HTML_TAG = re.compile(r"</?[a-zA-Z][^>]*>")


def detect_format(content: str, extension: Optional[str] = None) -> Optional[SubtitleFormat]:
    """Detect a subtitle format from the extension, falling back to content."""
    if extension:
        fmt = EXTENSIONS.get(extension.lower().lstrip("."))
        if fmt is not None:
            return fmt

    if "[Script Info]" in content or "Dialogue:" in content:
        return SubtitleFormat.ASS
    if content.lstrip("\ufeff").lstrip().startswith("WEBVTT"):
        return SubtitleFormat.VTT
    if SRT_TIMESTAMP.search(content):
        return SubtitleFormat.SRT
    if content.lstrip().startswith("["):
        return SubtitleFormat.JSON
    return None


def language_from_filename(name: str) -> str:
    """'movie.en.srt' -> 'en'; 'unknown' when no known code is present."""
    lowered = name.lower()
    for code in LANGUAGE_CODES:
        if f".{code}." in lowered:
            return code
    return "unknown"


def find_sidecar_subtitles(video_path) -> List[Path]:
    """Subtitle files next to a video that share its file stem."""
    video_path = Path(video_path)
    directory = video_path.parent
    if not directory.is_dir():
        return []
    return sorted(
        p for p in directory.iterdir()
        if p.is_file()
        and p.name.startswith(video_path.stem)
        and p.suffix.lower().lstrip(".") in EXTENSIONS
    )


def clean_ass_text(text: str) -> str:
    """Strip override tags and decode ASS line-break escapes."""
    return (
        _ASS_TAG.sub("", text)
        .replace("\\N", "\n")
        .replace("\\n", "\n")
        .replace("\\h", " ")
        .strip()
    )


class SubtitleImporter:

    def import_file(self, path) -> List[SubtitleSegment]:
        """Read and parse a subtitle file. Returns [] on any failure."""
        path = Path(path)
        try:
            content = path.read_text(encoding="utf-8-sig")
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Could not read subtitle file {path}: {e}")
            return []

        segments = self.parse(content, extension=path.suffix, language=language_from_filename(path.name))
        logger.info(f"Loaded {len(segments)} subtitles from {path}")
        return segments

    def parse(self, content: str, extension: Optional[str] = None, language: str = "unknown") -> List[SubtitleSegment]:
        """Parse subtitle text. Returns [] (with a warning) when nothing parses."""
        content = content.replace("\r\n", "\n").replace("\r", "\n").lstrip("\ufeff")
        fmt = detect_format(content, extension)
        if fmt is None:
            logger.warning("Unrecognized subtitle content, nothing imported")
            return []

        if fmt is SubtitleFormat.ASS:
            segments = self._parse_ass(content, language)
        elif fmt is SubtitleFormat.VTT:
            segments = self._parse_vtt(content, language)
        elif fmt is SubtitleFormat.SRT:
            segments = self._parse_srt(content, language)
        else:
            segments = self._parse_json(content, language)

        if not segments:
            logger.warning(f"No valid {fmt.name} cues found in subtitle content")
        return sorted(segments, key=lambda s: (s.start_ms, s.end_ms))

    @staticmethod
    def _make(text: str, start_ms: int, end_ms: int, language: str,
              speaker_id: Optional[str] = None, confidence: float = 1.0,
              segment_id: Optional[str] = None) -> Optional[SubtitleSegment]:
        if end_ms <= start_ms:
            logger.warning(f"Skipping cue with non-positive duration ({start_ms}-{end_ms}ms)")
            return None
        if not text:
            return None
        return SubtitleSegment(
            id=segment_id or new_segment_id(),
            text=text,
            start_ms=start_ms,
            end_ms=end_ms,
            speaker_id=speaker_id,
            confidence=min(1.0, max(0.0, confidence)),
            language=language,
        )

    def _parse_srt(self, content: str, language: str) -> List[SubtitleSegment]:
        try:
            subs = list(srt.parse(content))
        except (srt.SRTParseError, ValueError) as e:
            logger.warning(f"Malformed SRT subtitles: {e}")
            return []

        segments = []
        for sub in subs:
            segment = self._make(
                sub.content.strip(),
                sub.start // _MILLISECOND,
                sub.end // _MILLISECOND,
                language,
            )
            if segment:
                segments.append(segment)
        return segments

    def _parse_vtt(self, content: str, language: str) -> List[SubtitleSegment]:
        lines = content.split("\n")
        if not lines or not lines[0].strip().startswith("WEBVTT"):
            return []

        segments = []
        i = 1
        while i < len(lines):
            match = VTT_TIMESTAMP.match(lines[i].strip())
            i += 1
            if not match:
                continue

            text_lines = []
            while i < len(lines) and lines[i].strip():
                text_lines.append(lines[i])
                i += 1

            g = match.groups()
            text = _HTML_TAG.sub("", "\n".join(text_lines)).strip()
            segment = self._make(text, to_ms(*g[0:4]), to_ms(*g[4:8]), language)
            if segment:
                segments.append(segment)
        return segments

    def _parse_ass(self, content: str, language: str) -> List[SubtitleSegment]:
        segments = []
        section = ""
        fields = ["Layer", "Start", "End", "Style", "Name",
                  "MarginL", "MarginR", "MarginV", "Effect", "Text"]

        for raw in content.split("\n"):
            line = raw.strip()
            if line.startswith("[") and line.endswith("]"):
                section = line.lower()
                continue
            # Bare Dialogue lines without any section header are accepted too
            if section not in ("", "[events]"):
                continue

            if line.startswith("Format:"):
                fields = [f.strip() for f in line[len("Format:"):].split(",")]
                continue
            if not line.startswith("Dialogue:"):
                continue

            values = line[len("Dialogue:"):].split(",", len(fields) - 1)
            if len(values) != len(fields):
                logger.warning(f"Skipping malformed ASS dialogue: {line[:60]}")
                continue
            row = dict(zip(fields, (v.strip() for v in values)))

            try:
                start_ms = parse_ass(row.get("Start", ""))
                end_ms = parse_ass(row.get("End", ""))
            except ValueError as e:
                logger.warning(f"Skipping ASS dialogue: {e}")
                continue

            speaker = row.get("Name") or None
            segment = self._make(clean_ass_text(row.get("Text", "")), start_ms, end_ms,
                                 language, speaker_id=speaker)
            if segment:
                segments.append(segment)
        return segments

    def _parse_json(self, content: str, language: str) -> List[SubtitleSegment]:
        try:
            data = json.loads(content)
        except ValueError as e:
            logger.warning(f"Malformed JSON subtitles: {e}")
            return []
        if not isinstance(data, list):
            logger.warning("JSON subtitles must be an array of cues")
            return []

        segments = []
        for item in data:
            if not isinstance(item, dict):
                continue
            try:
                start_ms = int(item["start"])
                end_ms = int(item["end"])
                confidence = float(item.get("confidence", 1.0))
            except (KeyError, TypeError, ValueError, OverflowError) as e:
                logger.warning(f"Skipping malformed JSON cue: {e}")
                continue

            segment = self._make(
                str(item.get("text", "")).strip(),
                start_ms,
                end_ms,
                item.get("language") or language,
                speaker_id=item.get("speaker") or None,
                confidence=confidence,
                segment_id=item.get("id") or None,
            )
            if segment:
                segments.append(segment)
        return segments
