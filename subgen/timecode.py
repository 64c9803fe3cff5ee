"""
Timestamp encoding and decoding for subtitle formats.

  SRT  HH:MM:SS,mmm
  VTT  HH:MM:SS.mmm   (MM:SS.mmm accepted on input)
  ASS  H:MM:SS.cc     (centiseconds, truncated)
"""

import re

SRT_TIMESTAMP = re.compile(
    r"(\d{1,3}):(\d{2}):(\d{2}),(\d{3})\s*-->\s*(\d{1,3}):(\d{2}):(\d{2}),(\d{3})"
)
VTT_TIMESTAMP = re.compile(
    r"(?:(\d{1,3}):)?(\d{2}):(\d{2})\.(\d{3})\s*-->\s*(?:(\d{1,3}):)?(\d{2}):(\d{2})\.(\d{3})"
)
ASS_TIMESTAMP = re.compile(r"^(\d+):(\d{2}):(\d{2})(?:\.(\d{1,3}))?$")


def _split_ms(ms: int):
    ms = max(0, int(ms))
    hours = ms // 3600000
    minutes = (ms % 3600000) // 60000
    seconds = (ms % 60000) // 1000
    return hours, minutes, seconds, ms % 1000


def format_srt(ms: int) -> str:
    """61234 -> '00:01:01,234'"""
    h, m, s, millis = _split_ms(ms)
    return f"{h:02d}:{m:02d}:{s:02d},{millis:03d}"


def format_vtt(ms: int) -> str:
    """61234 -> '00:01:01.234'"""
    h, m, s, millis = _split_ms(ms)
    return f"{h:02d}:{m:02d}:{s:02d}.{millis:03d}"


def format_ass(ms: int) -> str:
    """61234 -> '0:01:01.23'"""
    h, m, s, millis = _split_ms(ms)
    return f"{h:d}:{m:02d}:{s:02d}.{millis // 10:02d}"


def to_ms(hours, minutes, seconds, millis) -> int:
    return int(hours or 0) * 3600000 + int(minutes) * 60000 + int(seconds) * 1000 + int(millis)


def parse_ass(value: str) -> int:
    """'0:01:01.23' -> 61230. Raises ValueError on malformed input."""
    match = ASS_TIMESTAMP.match(value.strip())
    if not match:
        raise ValueError(f"Malformed ASS timestamp: {value!r}")
    hours, minutes, seconds, fraction = match.groups()
    centis = (fraction or "0").ljust(2, "0")[:2]
    return to_ms(hours, minutes, seconds, int(centis) * 10)
