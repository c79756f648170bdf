"""
Chapter timestamp alignment.

Finds where each recorded chapter begins in the finished video by matching
the opening of its raw transcript against the final subtitle track.

    1. Primary pass: every chapter is matched against the whole track
       (edits can reorder chapters, so no forward-only search).
    2. Collision pass: when chapters claim the same segment, the lowest
       chapter number keeps it and the others retry deeper in their text.
    3. Order pass: chapters that land after a higher-numbered chapter are
       penalized so they get reviewed.

Each pass takes a list of ChapterMatchResult and returns a new one.
"""
import time
from collections import OrderedDict
from typing import Dict, List, Sequence, Tuple

from .confidence import (LOW_CONFIDENCE_THRESHOLD, match_reason, penalize,
                         status_for)
from .models import (AlignmentReport, ChapterMatchResult, ChapterSource, MatchCandidate,
                     MatchStatus, SubtitleSegment)
from .matching import find_all_matches, find_match
from .subtitles import load_srt, parse_srt
from .transcripts import TranscriptLoader
from .utils import get_logger, to_display_name, trim_to_word_boundary

logger = get_logger("Aligner")

# Calibration values; keep as-is for parity with existing chapter lists
COLLISION_SKIP_WORDS = 15
COLLISION_PENALTY = 30
ORDER_PENALTY = 20
ALTERNATIVE_MIN_GAP_SECONDS = 5.0
ALTERNATIVE_WINDOW_SECONDS = 60.0


def alternatives_near(candidates: Sequence[MatchCandidate],
                      primary: MatchCandidate) -> Tuple[MatchCandidate, ...]:
    """Candidates more than 5 s and at most 60 s away from the primary."""
    return tuple(
        c for c in candidates
        if ALTERNATIVE_MIN_GAP_SECONDS
        < abs(c.timestamp_seconds - primary.timestamp_seconds)
        <= ALTERNATIVE_WINDOW_SECONDS
    )


def match_chapter(source: ChapterSource, segments: Sequence[SubtitleSegment]) -> ChapterMatchResult:
    """Primary pass for a single chapter."""
    primary = find_match(source.transcript_text, segments)
    candidates = find_all_matches(source.transcript_text, segments)
    snippet = trim_to_word_boundary(source.transcript_text)
    display_name = to_display_name(source.name)

    if primary is None:
        logger.debug(f"Chapter {source.chapter_number} '{source.name}': no match")
        return ChapterMatchResult(
            chapter_number=source.chapter_number,
            name=source.name,
            display_name=display_name,
            status=MatchStatus.NOT_FOUND,
            alternatives=tuple(candidates),
            transcript_snippet=snippet,
        )

    alternatives = alternatives_near(candidates, primary)
    logger.debug(
        f"Chapter {source.chapter_number} '{source.name}': {primary.timestamp} "
        f"({primary.confidence}%, {primary.match_kind.value})"
    )
    return ChapterMatchResult(
        chapter_number=source.chapter_number,
        name=source.name,
        display_name=display_name,
        status=status_for(primary.confidence),
        primary=primary,
        alternatives=alternatives,
        confidence=primary.confidence,
        match_reason=match_reason(primary),
        transcript_snippet=snippet,
    )


def resolve_collisions(results: List[ChapterMatchResult], sources: Sequence[ChapterSource],
                       segments: Sequence[SubtitleSegment]) -> List[ChapterMatchResult]:
    """
    When several chapters resolve to the same segment, the lowest-numbered
    chapter keeps it. The others are re-matched with every claimed segment
    excluded and the first COLLISION_SKIP_WORDS words skipped, since a shared
    generic opening is the usual cause. A chapter with no new match is
    demoted to low confidence.

    `sources` must be parallel to `results`.
    """
    resolved = list(results)
    usage: Dict[int, List[int]] = OrderedDict()
    for pos, result in enumerate(resolved):
        if result.primary is not None:
            usage.setdefault(result.segment_index, []).append(pos)

    for segment_index, positions in usage.items():
        if len(positions) <= 1:
            continue

        positions = sorted(positions, key=lambda p: resolved[p].chapter_number)
        keep, duplicates = positions[0], positions[1:]
        keeper = resolved[keep]

        claimed = {
            r.segment_index for p, r in enumerate(resolved)
            if r.primary is not None and p not in duplicates
        }
        claimed.add(segment_index)

        for pos in duplicates:
            result = resolved[pos]
            new_match = find_match(
                sources[pos].transcript_text,
                segments,
                excluded=frozenset(claimed),
                skip_first_n_words=COLLISION_SKIP_WORDS,
            )

            if new_match is not None:
                # Re-matching never raises a chapter's confidence
                confidence = min(new_match.confidence, result.confidence)
                candidates = find_all_matches(sources[pos].transcript_text, segments)
                resolved[pos] = result.revised(
                    f"collision with chapter {keeper.chapter_number}: "
                    f"moved from segment {segment_index} to {new_match.segment_index}",
                    primary=new_match,
                    alternatives=alternatives_near(candidates, new_match),
                    confidence=confidence,
                    status=status_for(confidence),
                    match_reason=match_reason(new_match),
                )
                claimed.add(new_match.segment_index)
                logger.info(
                    f"Chapter {result.chapter_number} '{result.name}' shared a segment with chapter "
                    f"{keeper.chapter_number}; re-matched at {new_match.timestamp}"
                )
            else:
                confidence = penalize(result.confidence, COLLISION_PENALTY)
                resolved[pos] = result.revised(
                    f"collision with chapter {keeper.chapter_number}: unresolved, -{COLLISION_PENALTY}",
                    confidence=confidence,
                    status=MatchStatus.LOW_CONFIDENCE,
                )
                logger.warning(
                    f"Chapter {result.chapter_number} '{result.name}' shares a segment with chapter "
                    f"{keeper.chapter_number} and no other match was found"
                )

    return resolved


def apply_order_penalty(results: List[ChapterMatchResult]) -> List[ChapterMatchResult]:
    """
    Walks matched chapters in timestamp order. A chapter numbered lower than
    one already seen earlier in the video is out of order and loses
    ORDER_PENALTY confidence.
    """
    penalized = list(results)
    timeline = sorted(
        (pos for pos, r in enumerate(penalized) if r.primary is not None),
        key=lambda pos: penalized[pos].timestamp_seconds,
    )

    max_chapter_seen = 0
    for pos in timeline:
        result = penalized[pos]
        if result.chapter_number < max_chapter_seen:
            confidence = penalize(result.confidence, ORDER_PENALTY)
            status = result.status
            if confidence < LOW_CONFIDENCE_THRESHOLD:
                status = MatchStatus.LOW_CONFIDENCE
            penalized[pos] = result.revised(
                f"out of order: after chapter {max_chapter_seen}, -{ORDER_PENALTY}",
                confidence=confidence,
                status=status,
            )
            logger.info(
                f"Chapter {result.chapter_number} '{result.name}' appears after chapter "
                f"{max_chapter_seen} in the video"
            )
        max_chapter_seen = max(max_chapter_seen, result.chapter_number)

    return penalized


def format_chapter_list(results: Sequence[ChapterMatchResult]) -> str:
    """Newline-joined "M:SS Display Name" lines in video order."""
    listed = [
        r for r in results
        if r.status != MatchStatus.NOT_FOUND and r.primary is not None and not r.skipped
    ]
    listed.sort(key=lambda r: r.timestamp_seconds)
    return "\n".join(f"{r.timestamp} {r.display_name}" for r in listed)


def build_report(results: List[ChapterMatchResult], segment_count: int) -> AlignmentReport:
    return AlignmentReport(
        success=True,
        chapters=results,
        formatted=format_chapter_list(results),
        stats={
            "srt_segments": segment_count,
            "chapters_found": sum(1 for r in results if r.status != MatchStatus.NOT_FOUND),
            "chapters_total": len(results),
        },
    )


def align_segments(segments: Sequence[SubtitleSegment],
                   chapter_sources: Sequence[ChapterSource]) -> AlignmentReport:
    if not segments:
        return AlignmentReport(success=False, error="Could not parse SRT file")
    if not chapter_sources:
        return AlignmentReport(success=False, error="No chapter transcripts found")

    results = [match_chapter(source, segments) for source in chapter_sources]
    results = resolve_collisions(results, chapter_sources, segments)
    results = apply_order_penalty(results)
    return build_report(results, len(segments))


def extract_chapter_alignment(subtitle_file_content: str,
                              chapter_sources: Sequence[ChapterSource]) -> AlignmentReport:
    """
    Aligns recorded chapters to the finished video's subtitle track.

    Never raises for data problems: an unparseable track or an empty
    chapter list gives success=False with an error message; chapters that
    cannot be placed come back as not_found.
    """
    segments = parse_srt(subtitle_file_content)
    return align_segments(segments, list(chapter_sources))


def align_project(transcripts_dir, srt_path) -> AlignmentReport:
    """Loads a project's transcripts and final SRT from disk and aligns them."""
    start_time = time.perf_counter()

    segments = load_srt(srt_path)
    sources = TranscriptLoader(transcripts_dir).parse()
    report = align_segments(segments, sources)

    elapsed_ms = int((time.perf_counter() - start_time) * 1000)
    if report.success:
        logger.info(
            f"Chapter extraction completed in {elapsed_ms}ms "
            f"({len(segments)} SRT segments, {len(report.chapters)} chapters, "
            f"{report.stats['chapters_found']} found)"
        )
    else:
        logger.error(f"Chapter extraction failed: {report.error}")
    return report
