import json
import pathlib
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import List, Optional

from .aligner import build_report
from .confidence import match_reason
from .models import (AlignmentReport, MatchCandidate, MatchKind,
                     MatchStatus)
from .timestamps import format_chapter_marker, parse_marker
from .utils import get_logger

logger = get_logger("Overrides")

OVERRIDE = "override"
SKIP = "skip"
ACTIONS = (OVERRIDE, SKIP)


@dataclass
class ChapterOverride:
    """
    A reviewer's decision for one chapter, kept in the project folder so
    it survives re-running the alignment.
    """
    chapter: int
    name: str
    action: str                         # "override" (pin a time) or "skip" (drop from list)
    timestamp: str = ""                 # Typed marker, e.g. "12:05"
    timestamp_seconds: Optional[float] = None
    reason: str = ""
    created_at: str = ""


def make_override(chapter: int, name: str, action: str, timestamp: str = "",
                  reason: str = "") -> ChapterOverride:
    if action not in ACTIONS:
        raise ValueError(f"Unknown override action: {action!r}")

    seconds = None
    if action == OVERRIDE:
        seconds = parse_marker(timestamp)
        if seconds is None:
            raise ValueError(f"Override needs a M:SS or H:MM:SS timestamp, got {timestamp!r}")

    return ChapterOverride(
        chapter=chapter,
        name=name,
        action=action,
        timestamp=timestamp.strip() if seconds is not None else "",
        timestamp_seconds=seconds,
        reason=reason,
        created_at=datetime.now(timezone.utc).isoformat(),
    )


def load_overrides(path: pathlib.Path) -> List[ChapterOverride]:
    """Reads the overrides file. Missing or unreadable files give []."""
    path = pathlib.Path(path)
    if not path.exists():
        return []

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
            raise ValueError("expected a JSON list of override objects")

        overrides = []
        for item in data:
            if item.get("action") not in ACTIONS:
                continue
            seconds = item.get("timestamp_seconds")
            overrides.append(ChapterOverride(
                chapter=int(item["chapter"]),
                name=str(item["name"]),
                action=item["action"],
                timestamp=item.get("timestamp") or "",
                timestamp_seconds=float(seconds) if seconds is not None else None,
                reason=item.get("reason") or "",
                created_at=item.get("created_at") or "",
            ))
        return overrides
    except (OSError, ValueError, KeyError, TypeError) as e:
        logger.error(f"Failed to load chapter overrides from {path}: {e}")
        return []


def save_override(path: pathlib.Path, override: ChapterOverride) -> List[ChapterOverride]:
    """Adds or replaces the override for (chapter, name) and writes the file."""
    path = pathlib.Path(path)
    overrides = [
        o for o in load_overrides(path)
        if not (o.chapter == override.chapter and o.name == override.name)
    ]
    overrides.append(override)
    overrides.sort(key=lambda o: (o.chapter, o.name))

    with open(path, "w", encoding="utf-8") as f:
        json.dump([asdict(o) for o in overrides], f, indent=4)

    logger.info(f"Saved {override.action} for chapter {override.chapter} '{override.name}'")
    return overrides


def apply_overrides(report: AlignmentReport, overrides: List[ChapterOverride]) -> AlignmentReport:
    """
    Returns a new report with manual decisions applied: pinned chapters
    get a manual match at the chosen time, skipped chapters are left out
    of the formatted chapter list.
    """
    if not report.success or not overrides:
        return report

    by_key = {(o.chapter, o.name): o for o in overrides}
    chapters = []
    for result in report.chapters:
        override = by_key.get((result.chapter_number, result.name))
        if override is None:
            chapters.append(result)
            continue

        if override.action == SKIP:
            chapters.append(result.revised("skipped by override", skipped=True))
            continue

        if override.timestamp_seconds is None:
            logger.warning(f"Ignoring override without time for chapter {override.chapter}")
            chapters.append(result)
            continue

        manual = MatchCandidate(
            segment_index=None,
            timestamp_seconds=override.timestamp_seconds,
            match_kind=MatchKind.MANUAL,
            confidence=100,
            method_detail=override.reason,
            timestamp=format_chapter_marker(override.timestamp_seconds),
        )
        chapters.append(result.revised(
            f"manual override at {manual.timestamp}",
            primary=manual,
            confidence=manual.confidence,
            status=MatchStatus.MATCHED,
            match_reason=match_reason(manual),
            skipped=False,
        ))

    return build_report(chapters, report.stats.get("srt_segments", 0))
