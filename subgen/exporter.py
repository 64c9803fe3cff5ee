"""
Subtitle Exporter — serializes segments to SRT, VTT, ASS or JSON.

Files are written atomically: content goes to a temporary file in the
target directory and replaces the destination only once fully written.
"""

import os
import json
import logging
import tempfile
from enum import Enum
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

from .models import SubtitleSegment
from .timecode import format_ass, format_srt, format_vtt

logger = logging.getLogger(__name__)


class SubtitleFormat(str, Enum):
    SRT = "srt"
    VTT = "vtt"
    ASS = "ass"
    JSON = "json"

    @classmethod
    def from_path(cls, path) -> Optional["SubtitleFormat"]:
        return EXTENSIONS.get(Path(path).suffix.lower().lstrip("."))


EXTENSIONS = {
    "srt": SubtitleFormat.SRT,
    "vtt": SubtitleFormat.VTT,
    "webvtt": SubtitleFormat.VTT,
    "ass": SubtitleFormat.ASS,
    "ssa": SubtitleFormat.ASS,
    "json": SubtitleFormat.JSON,
}

ASS_HEADER = (
    "[Script Info]\n"
    "Title: Generated Subtitles\n"
    "ScriptType: v4.00+\n"
    "WrapStyle: 0\n"
    "ScaledBorderAndShadow: yes\n"
    "\n"
    "[V4+ Styles]\n"
    "Format: Name, Fontname, Fontsize, PrimaryColour, SecondaryColour, OutlineColour, "
    "BackColour, Bold, Italic, Underline, StrikeOut, ScaleX, ScaleY, Spacing, Angle, "
    "BorderStyle, Outline, Shadow, Alignment, MarginL, MarginR, MarginV, Encoding\n"
    "Style: Default,Arial,16,&H00FFFFFF,&H00FFFFFF,&H00000000,&H00000000,"
    "0,0,0,0,100,100,0,0,1,2,0,2,10,10,10,1\n"
    "\n"
    "[Events]\n"
    "Format: Layer, Start, End, Style, Name, MarginL, MarginR, MarginV, Effect, Text\n"
)


@dataclass
class ExportResult:
    success: bool
    path: Optional[Path] = None
    error: Optional[str] = None


class SubtitleExporter:
    """
    Renders segment lists into subtitle file formats.

    SRT format:
        1
        00:00:01,200 --> 00:00:04,800
        Hello everyone, welcome to the show.

        2
        00:00:05,100 --> 00:00:06,300
        And thanks for coming.
    """

    def __init__(self, speaker_names: Optional[Dict[str, str]] = None):
        self.speaker_names = speaker_names or {}

    def _speaker(self, segment: SubtitleSegment) -> str:
        if segment.speaker_id is None:
            return ""
        return self.speaker_names.get(segment.speaker_id, segment.speaker_id)

    def render(self, segments: List[SubtitleSegment], fmt: SubtitleFormat) -> str:
        fmt = SubtitleFormat(fmt)
        if fmt is SubtitleFormat.SRT:
            return self.to_srt(segments)
        if fmt is SubtitleFormat.VTT:
            return self.to_vtt(segments)
        if fmt is SubtitleFormat.ASS:
            return self.to_ass(segments)
        return self.to_json(segments)

    def to_srt(self, segments: List[SubtitleSegment]) -> str:
        blocks = []
        for i, seg in enumerate(segments):
            blocks.append(
                f"{i + 1}\n"
                f"{format_srt(seg.start_ms)} --> {format_srt(seg.end_ms)}\n"
                f"{seg.text}\n"
                "\n"
            )
        return "".join(blocks)

    def to_vtt(self, segments: List[SubtitleSegment]) -> str:
        cues = [
            f"{format_vtt(seg.start_ms)} --> {format_vtt(seg.end_ms)}\n{seg.text}\n\n"
            for seg in segments
        ]
        return "WEBVTT\n\n" + "".join(cues)

    def to_ass(self, segments: List[SubtitleSegment]) -> str:
        events = []
        for seg in segments:
            text = seg.text.replace("\r\n", "\n").replace("\n", "\\N")
            # Name is a comma-delimited field on a single line
            name = " ".join(self._speaker(seg).replace(",", ";").split())
            events.append(
                f"Dialogue: 0,{format_ass(seg.start_ms)},{format_ass(seg.end_ms)},"
                f"Default,{name},0,0,0,,{text}\n"
            )
        return ASS_HEADER + "".join(events)

    def to_json(self, segments: List[SubtitleSegment]) -> str:
        payload = [
            {
                "id": seg.id,
                "text": seg.text,
                "start": seg.start_ms,
                "end": seg.end_ms,
                "speaker": self._speaker(seg),
                "confidence": seg.confidence,
                "language": seg.language,
            }
            for seg in segments
        ]
        return json.dumps(payload, indent=2, ensure_ascii=False) + "\n"

    def write(self, segments: List[SubtitleSegment], output_path, fmt: Optional[SubtitleFormat] = None) -> Path:
        """
        Write segments to a file, all-or-nothing.

        Args:
            segments: Final segment list (sorted by time).
            output_path: Destination file.
            fmt: Output format; inferred from the extension when None.

        Raises:
            ValueError: If the format cannot be determined.
            OSError: If the file cannot be written (destination untouched).
        """
        output_path = Path(output_path)
        fmt = fmt or SubtitleFormat.from_path(output_path)
        if fmt is None:
            raise ValueError(f"Cannot infer subtitle format from {output_path.name}")

        content = self.render(segments, fmt)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{output_path.name}.", suffix=".tmp", dir=output_path.parent
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
                f.write(content)
            os.replace(tmp_name, output_path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

        logger.info(f"{SubtitleFormat(fmt).name} written: {len(segments)} subtitles → {output_path}")
        return output_path

    def write_preview(self, segments: List[SubtitleSegment], max_entries: int = 10) -> str:
        """Short human-readable listing of the first few segments."""
        lines = []
        shown = min(len(segments), max_entries)

        for seg in segments[:shown]:
            text_preview = seg.text[:80]
            if len(seg.text) > 80:
                text_preview += "..."
            lines.append(f"  [{format_srt(seg.start_ms)} → {format_srt(seg.end_ms)}] {text_preview}")

        if len(segments) > shown:
            lines.append(f"  ... and {len(segments) - shown} more entries")

        return "\n".join(lines)
