"""
Confidence scoring for chapter matches.

Scale:
    100  long exact phrase found at the very start of the transcript
    90   exact phrase with minor concerns, or very high similarity
    70   review recommended; anything below is reported as low confidence

Collision and out-of-order penalties are applied later by the aligner and
only ever lower a score, never below CONFIDENCE_FLOOR.
"""
import math
from typing import Optional

from .models import MatchCandidate, MatchKind, MatchStatus

LOW_CONFIDENCE_THRESHOLD = 70
CONFIDENCE_FLOOR = 10
PARTIAL_WORDS_BASE = 50


def percent(score: float) -> int:
    """0-1 score as a whole percentage; halves round up (62.5 -> 63)."""
    return int(math.floor(score * 100 + 0.5))


def calculate_confidence(match_kind: MatchKind, word_count: int = 0, words_skipped: int = 0,
                         similarity_score: Optional[float] = None) -> int:
    if match_kind == MatchKind.MANUAL:
        return 100

    if match_kind == MatchKind.SIMILARITY:
        return percent(similarity_score or 0.0)

    if match_kind == MatchKind.PARTIAL_WORDS:
        return PARTIAL_WORDS_BASE

    confidence = 100
    if word_count < 5:
        confidence -= 15
    elif word_count < 7:
        confidence -= 10

    # Opening words may have been trimmed in the edit
    if words_skipped > 0:
        confidence -= min(words_skipped * 5, 15)

    return confidence


def penalize(confidence: int, amount: int) -> int:
    return max(confidence - amount, CONFIDENCE_FLOOR)


def status_for(confidence: int, has_match: bool = True) -> MatchStatus:
    if not has_match:
        return MatchStatus.NOT_FOUND
    if confidence < LOW_CONFIDENCE_THRESHOLD:
        return MatchStatus.LOW_CONFIDENCE
    return MatchStatus.MATCHED


def match_reason(candidate: MatchCandidate) -> str:
    """Human-readable justification shown next to each chapter."""
    if candidate.match_kind == MatchKind.EXACT_PHRASE:
        skip_text = ""
        if candidate.words_skipped > 0:
            skip_text = f" (skipped {candidate.words_skipped} opening words)"
        return f"Matched {candidate.word_count}-word phrase{skip_text}"
    if candidate.match_kind == MatchKind.SIMILARITY:
        score = percent(candidate.similarity_score or 0.0)
        return f"Similarity match: {score}% ({candidate.method_detail or 'combined'})"
    if candidate.match_kind == MatchKind.MANUAL:
        if candidate.method_detail:
            return f"Manual override: {candidate.method_detail}"
        return "Manual override"
    return f"Partial match: {candidate.word_count} words found"
