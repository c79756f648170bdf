import re
from typing import AbstractSet, List, Optional, Sequence

from .confidence import calculate_confidence
from .models import MatchCandidate, MatchKind, SubtitleSegment
from .similarity import calculate_similarity
from .timestamps import format_chapter_marker
from .utils import get_logger, preview

logger = get_logger("Matching")

# Longest phrase first; the first hit wins
PHRASE_WORD_COUNTS = (10, 7, 5, 3)
DEFAULT_START_OFFSETS = (0, 1, 2)
SKIP_OFFSET_STEPS = (0, 5, 10)
MIN_PHRASE_CHARS = 10
MIN_SEARCH_WORDS = 3
SIMILARITY_SEARCH_WORDS = 20
MAX_ALTERNATIVES = 5


def normalize_text(text: str) -> str:
    """Lowercase, strip punctuation, collapse whitespace."""
    text = text.lower()
    text = re.sub(r"[^\w\s]", "", text)
    text = re.sub(r"\s+", " ", text)
    return text.strip()


def start_offsets(skip_first_n_words: int = 0) -> List[int]:
    """
    Word positions to start the phrase search from. Small offsets absorb a
    trimmed first word or two; when skipping boilerplate we jump further.
    """
    if skip_first_n_words > 0:
        return [skip_first_n_words + step for step in SKIP_OFFSET_STEPS]
    return list(DEFAULT_START_OFFSETS)


def _candidate(segments: Sequence[SubtitleSegment], index: int, match_kind: MatchKind,
               word_count: int, words_skipped: int, similarity_score: Optional[float] = None,
               method_detail: str = "") -> MatchCandidate:
    segment = segments[index]
    return MatchCandidate(
        segment_index=index,
        timestamp_seconds=segment.start_seconds,
        match_kind=match_kind,
        confidence=calculate_confidence(match_kind, word_count, words_skipped, similarity_score),
        matched_text_preview=preview(segment.text),
        method_detail=method_detail,
        timestamp=format_chapter_marker(segment.start_seconds),
        word_count=word_count,
        words_skipped=words_skipped,
        similarity_score=similarity_score,
    )


def _phrases(words: List[str], offsets: Sequence[int]):
    """Yields (offset, phrase_words) in search order."""
    for offset in offsets:
        search_words = words[offset:]
        if len(search_words) < MIN_SEARCH_WORDS:
            continue
        for word_count in PHRASE_WORD_COUNTS:
            phrase_words = search_words[:word_count]
            if len(" ".join(phrase_words)) < MIN_PHRASE_CHARS:
                continue
            yield offset, phrase_words


def find_phrase_match(chapter_text: str, segments: Sequence[SubtitleSegment],
                      excluded: AbstractSet[int] = frozenset(),
                      skip_first_n_words: int = 0) -> Optional[MatchCandidate]:
    """
    Looks for the transcript's opening words verbatim inside a segment.

    Search order is part of the contract: start offsets ascending, then
    phrase length descending, then segments in file order. The first
    containing segment is returned without scoring the rest.
    """
    words = normalize_text(chapter_text).split()
    normalized = [normalize_text(s.text) for s in segments]

    for offset, phrase_words in _phrases(words, start_offsets(skip_first_n_words)):
        phrase = " ".join(phrase_words)
        for i, segment_text in enumerate(normalized):
            if i in excluded:
                continue
            if phrase in segment_text:
                logger.debug(f"Phrase hit at segment {i}: '{phrase}' (offset {offset})")
                return _candidate(
                    segments, i, MatchKind.EXACT_PHRASE,
                    word_count=len(phrase_words),
                    words_skipped=offset,
                    method_detail=f"{len(phrase_words)} words from word {offset}",
                )
    return None


def similarity_search_text(chapter_text: str, skip_first_n_words: int = 0) -> str:
    words = normalize_text(chapter_text).split()
    return " ".join(words[skip_first_n_words:skip_first_n_words + SIMILARITY_SEARCH_WORDS])


def find_similarity_match(chapter_text: str, segments: Sequence[SubtitleSegment],
                          excluded: AbstractSet[int] = frozenset(),
                          skip_first_n_words: int = 0) -> Optional[MatchCandidate]:
    """
    Fallback when no phrase matches: the segment with the highest combined
    similarity to the transcript opening, provided it clears the 0.6 gate.
    """
    search_text = similarity_search_text(chapter_text, skip_first_n_words)
    if not search_text:
        return None

    best_index = None
    best_scores = None
    for i, segment in enumerate(segments):
        if i in excluded:
            continue
        scores = calculate_similarity(search_text, normalize_text(segment.text))
        if not scores.passes:
            continue
        if best_scores is None or scores.combined > best_scores.combined:
            best_index, best_scores = i, scores

    if best_scores is None:
        return None

    logger.debug(
        f"Similarity hit at segment {best_index}: {best_scores.combined:.2f} "
        f"(trigram {best_scores.trigram:.2f}, jaro {best_scores.jaro:.2f}, dice {best_scores.dice:.2f})"
    )
    return _candidate(
        segments, best_index, MatchKind.SIMILARITY,
        word_count=len(search_text.split()),
        words_skipped=skip_first_n_words,
        similarity_score=best_scores.combined,
        method_detail=best_scores.dominant,
    )


def find_match(chapter_text: str, segments: Sequence[SubtitleSegment],
               excluded: AbstractSet[int] = frozenset(),
               skip_first_n_words: int = 0) -> Optional[MatchCandidate]:
    """Phrase matcher first; similarity matcher only on a miss."""
    match = find_phrase_match(chapter_text, segments, excluded, skip_first_n_words)
    if match is not None:
        return match
    return find_similarity_match(chapter_text, segments, excluded, skip_first_n_words)


def find_all_matches(chapter_text: str, segments: Sequence[SubtitleSegment],
                     max_candidates: int = MAX_ALTERNATIVES) -> List[MatchCandidate]:
    """
    Collects every phrase hit and every gated similarity hit (one candidate
    per segment) and returns the best `max_candidates` by confidence.
    Used to offer alternatives for human review.
    """
    words = normalize_text(chapter_text).split()
    normalized = [normalize_text(s.text) for s in segments]
    candidates: List[MatchCandidate] = []
    seen = set()

    for offset, phrase_words in _phrases(words, DEFAULT_START_OFFSETS):
        phrase = " ".join(phrase_words)
        for i, segment_text in enumerate(normalized):
            if i in seen or phrase not in segment_text:
                continue
            seen.add(i)
            candidates.append(_candidate(
                segments, i, MatchKind.EXACT_PHRASE,
                word_count=len(phrase_words),
                words_skipped=offset,
                method_detail=f"{len(phrase_words)} words from word {offset}",
            ))

    search_text = " ".join(words[:SIMILARITY_SEARCH_WORDS])
    if search_text:
        for i, segment_text in enumerate(normalized):
            if i in seen:
                continue
            scores = calculate_similarity(search_text, segment_text)
            if not scores.passes:
                continue
            seen.add(i)
            candidates.append(_candidate(
                segments, i, MatchKind.SIMILARITY,
                word_count=len(search_text.split()),
                words_skipped=0,
                similarity_score=scores.combined,
                method_detail=scores.dominant,
            ))

    candidates.sort(key=lambda c: c.confidence, reverse=True)
    return candidates[:max_candidates]
