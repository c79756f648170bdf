import pathlib
import re
from typing import List, Union

from .models import SubtitleSegment
from .timestamps import parse_srt_timestamp
from .utils import get_logger

logger = get_logger("Subtitles")

BLOCK_SPLIT_RE = re.compile(r"\n\s*\n")
TIMING_RE = re.compile(
    r"(\d{2}:\d{2}:\d{2}[,.]\d{3})\s*-->\s*(\d{2}:\d{2}:\d{2}[,.]\d{3})"
)


def parse_srt(content: str) -> List[SubtitleSegment]:
    """
    Parses SRT content into segments, in file order.

    A block is kept only when it has at least three non-empty lines, an
    integer index on the first line and a "start --> end" timing on the
    second. Anything else is skipped; subtitle tracks are machine generated
    and the odd broken cue is expected.
    """
    if content is None:
        raise TypeError("parse_srt() requires subtitle content, got None")

    content = content.lstrip("\ufeff").replace("\r\n", "\n").replace("\r", "\n")
    segments: List[SubtitleSegment] = []
    skipped = 0

    for block in BLOCK_SPLIT_RE.split(content):
        lines = [line.strip() for line in block.strip().split("\n") if line.strip()]
        if len(lines) < 3:
            if lines:
                skipped += 1
            continue

        try:
            index = int(lines[0])
        except ValueError:
            skipped += 1
            logger.debug(f"Skipping block without numeric index: {lines[0][:30]!r}")
            continue

        timing = TIMING_RE.search(lines[1])
        if not timing:
            skipped += 1
            logger.debug(f"Skipping block {index}: bad timing line {lines[1]!r}")
            continue

        start_ts, end_ts = timing.groups()
        segments.append(SubtitleSegment(
            index=index,
            start_seconds=parse_srt_timestamp(start_ts),
            end_seconds=parse_srt_timestamp(end_ts),
            text=" ".join(lines[2:]),
            start_timestamp=start_ts,
        ))

    if skipped:
        logger.debug(f"Skipped {skipped} malformed subtitle blocks")
    return segments


def load_srt(srt_path: Union[str, pathlib.Path]) -> List[SubtitleSegment]:
    """Reads and parses an SRT file. Bytes that are not UTF-8 become U+FFFD."""
    logger.info(f"Loading SRT: {srt_path}")
    with open(srt_path, "r", encoding="utf-8-sig", errors="replace") as f:
        content = f.read()
    return parse_srt(content)
