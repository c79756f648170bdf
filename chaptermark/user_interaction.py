from typing import List, Optional

from .models import AlignmentReport, ChapterMatchResult, MatchStatus
from .overrides import OVERRIDE, SKIP, ChapterOverride, make_override
from .timestamps import parse_marker
from .utils import get_logger, truncate

logger = get_logger("UserInteraction")


def print_chapter_table(report: AlignmentReport):
    print("\n" + "=" * 60)
    print(f"ALIGNED {len(report.chapters)} CHAPTERS")
    print("=" * 60)
    print(f"{'CH':<4} | {'NAME':<30} | {'TIME':<8} | {'CONF':>4} | {'STATUS':<14} | REASON")
    print("-" * 100)

    for r in report.chapters:
        confidence = f"{r.confidence}%" if r.primary else "-"
        print(
            f"{r.chapter_number:<4} | {truncate(r.display_name, 30):<30} | {r.timestamp or '--':<8} | "
            f"{confidence:>4} | {r.status.value:<14} | {r.match_reason}"
        )

    print("-" * 100)


def prompt_chapter(result: ChapterMatchResult) -> Optional[ChapterOverride]:
    """
    Asks the reviewer what to do with one uncertain chapter.
    Enter keeps the current match; invalid input asks again.
    """
    print(f"\nChapter {result.chapter_number}: {result.display_name} [{result.status.value}]")
    print(f"  Transcript: {result.transcript_snippet}")
    if result.primary:
        print(f"  Current:    {result.timestamp} ({result.confidence}%) "
              f"{truncate(result.primary.matched_text_preview, 60)}")
    for i, alt in enumerate(result.alternatives, 1):
        print(f"  [{i}] {alt.timestamp:<8} ({alt.confidence}%) {truncate(alt.matched_text_preview, 60)}")

    print("Press ENTER to keep, a number to use an alternative, M:SS to set a time, 's' to skip.")
    user_input = input("> ").strip()

    if not user_input:
        return None

    if user_input.lower() == "s":
        return make_override(result.chapter_number, result.name, SKIP,
                             reason="skipped during review")

    if user_input.isdigit():
        choice = int(user_input)
        if 1 <= choice <= len(result.alternatives):
            alt = result.alternatives[choice - 1]
            return make_override(result.chapter_number, result.name, OVERRIDE,
                                 alt.timestamp, reason=f"alternative {choice} chosen during review")

    if parse_marker(user_input) is not None:
        return make_override(result.chapter_number, result.name, OVERRIDE,
                             user_input, reason="entered during review")

    logger.error("Invalid input. Enter a listed number, a time like 12:05, 's', or nothing.")
    return prompt_chapter(result)  # Recursive retry


def review_chapters(report: AlignmentReport) -> List[ChapterOverride]:
    """
    Shows the aligned chapters and walks the reviewer through every
    chapter that is low confidence or not found.
    """
    print_chapter_table(report)

    pending = [
        r for r in report.chapters
        if r.status != MatchStatus.MATCHED and not r.skipped
    ]
    if not pending:
        logger.info("All chapters matched with high confidence. Nothing to review.")
        return []

    print(f"\n{len(pending)} chapters need review.")
    decisions = []
    for result in pending:
        override = prompt_chapter(result)
        if override is not None:
            decisions.append(override)

    logger.info(f"Recorded {len(decisions)} review decisions.")
    return decisions
