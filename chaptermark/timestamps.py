import math
import re
from typing import Optional

SRT_TIMESTAMP_RE = re.compile(r"(\d{2}):(\d{2}):(\d{2})[,.](\d{3})")


def parse_srt_timestamp(ts: str) -> float:
    """
    Converts an SRT timestamp to seconds.
    "00:02:34,500" -> 154.5 (a period is accepted in place of the comma).
    Malformed input gives 0.0.
    """
    match = SRT_TIMESTAMP_RE.search(ts or "")
    if not match:
        return 0.0
    hours, minutes, seconds, millis = (int(g) for g in match.groups())
    return hours * 3600 + minutes * 60 + seconds + millis / 1000


def format_srt_timestamp(seconds: float) -> str:
    """154.5 -> "00:02:34,500" """
    total_ms = int(round(max(seconds, 0.0) * 1000))
    s, ms = divmod(total_ms, 1000)
    m, s = divmod(s, 60)
    h, m = divmod(m, 60)
    return f"{h:02d}:{m:02d}:{s:02d},{ms:03d}"


def format_chapter_marker(seconds: float) -> str:
    """
    Formats seconds the way video platforms expect chapter markers.
    Under an hour: M:SS. From an hour on: H:MM:SS. Fractions are floored.
    """
    total = int(math.floor(max(seconds, 0.0)))
    m, s = divmod(total, 60)
    h, m = divmod(m, 60)
    if h > 0:
        return f"{h}:{m:02d}:{s:02d}"
    return f"{m}:{s:02d}"


def parse_marker(text: str) -> Optional[float]:
    """Converts a typed M:SS or H:MM:SS marker to seconds, None if malformed."""
    if not text:
        return None
    parts = text.strip().split(":")
    if len(parts) not in (2, 3) or not all(p.isdigit() for p in parts):
        return None
    values = [int(p) for p in parts]
    if any(v >= 60 for v in values[1:]):
        return None
    if len(values) == 3:
        h, m, s = values
        return float(h * 3600 + m * 60 + s)
    m, s = values
    return float(m * 60 + s)
