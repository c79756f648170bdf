import json
import pathlib
from dataclasses import asdict
from enum import Enum

from .models import AlignmentReport, ChapterMatchResult, MatchStatus
from .utils import get_logger

logger = get_logger("OutputManager")

REPORT_WIDTH = 60


def _plain(value):
    """Recursively converts enums and tuples into JSON-friendly values."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


def chapter_to_dict(result: ChapterMatchResult) -> dict:
    data = _plain(asdict(result))
    data["timestamp"] = result.timestamp
    data["timestamp_seconds"] = result.timestamp_seconds
    return data


def report_to_dict(report: AlignmentReport) -> dict:
    return {
        "success": report.success,
        "chapters": [chapter_to_dict(c) for c in report.chapters],
        "formatted": report.formatted,
        "error": report.error,
        "stats": report.stats,
    }


def format_chapters_report(report: AlignmentReport, project_code: str) -> str:
    """
    Plain-text report: the ready-to-paste chapter list (or placeholder
    lines when nothing was placed) and a footer with counts.
    """
    lines = [f"Chapters: {project_code}", "═" * REPORT_WIDTH]

    if report.formatted.strip():
        lines.append(report.formatted)
    else:
        for chapter in report.chapters:
            lines.append(f"{chapter.timestamp or '??:??'} {chapter.display_name}")

    lines.append("")
    lines.append("─" * 30)
    total = len(report.chapters)
    with_timestamps = sum(1 for c in report.chapters if c.timestamp)
    if with_timestamps == total:
        lines.append(f"{total} chapters | Ready for YouTube description")
    else:
        lines.append(f"{total} chapters | {with_timestamps} with timestamps")

    return "\n".join(lines)


def save_results(report: AlignmentReport, output_dir, project_code: str = ""):
    """
    Writes chapter_timestamps.json (full report) and chapter_timestamps.md
    (review table in chapter order) into output_dir.
    """
    output_dir = pathlib.Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    # 1. JSON
    json_path = output_dir / "chapter_timestamps.json"
    with open(json_path, "w", encoding="utf-8") as f:
        json.dump(report_to_dict(report), f, indent=4)

    # 2. Markdown Table
    md_path = output_dir / "chapter_timestamps.md"
    with open(md_path, "w", encoding="utf-8") as f:
        f.write("# Chapter Timestamps\n")
        if project_code:
            f.write(f"**Project:** {project_code}\n")
        f.write("\n")
        f.write("| Chapter | Start Time | Confidence | Status |\n")
        f.write("| :--- | :--- | :--- | :--- |\n")
        for chapter in report.chapters:
            title = f"{chapter.chapter_number:02d} {chapter.display_name}"
            status = "skipped" if chapter.skipped else chapter.status.value
            confidence = f"{chapter.confidence}%" if chapter.status != MatchStatus.NOT_FOUND else ""
            f.write(f"| {title} | {chapter.timestamp or ''} | {confidence} | {status} |\n")

        if report.formatted:
            f.write("\n## Chapter List\n\n```\n")
            f.write(report.formatted + "\n")
            f.write("```\n")

    found = report.stats.get("chapters_found", 0)
    logger.info(f"Saved {found}/{len(report.chapters)} chapter timestamps.")
    logger.info(f"Results saved to:\n  - {json_path}\n  - {md_path}")
    return json_path, md_path
