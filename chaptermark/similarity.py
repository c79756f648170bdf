from collections import Counter
from dataclasses import dataclass
from typing import List

from rapidfuzz.distance import Jaro

TRIGRAM_WEIGHT = 0.4
JARO_WEIGHT = 0.3
DICE_WEIGHT = 0.3

# Matches scoring below this are rejected outright, not just ranked lower
SIMILARITY_THRESHOLD = 0.6


@dataclass(frozen=True)
class SimilarityScores:
    combined: float
    trigram: float
    jaro: float
    dice: float

    @property
    def dominant(self) -> str:
        """Name of the single measure that beat both others, else "combined"."""
        if self.trigram > self.jaro and self.trigram > self.dice:
            return "trigram"
        if self.jaro > self.trigram and self.jaro > self.dice:
            return "jaro"
        if self.dice > self.trigram and self.dice > self.jaro:
            return "dice"
        return "combined"

    @property
    def passes(self) -> bool:
        return self.combined >= SIMILARITY_THRESHOLD


def _ngrams(text: str, n: int) -> List[str]:
    return [text[i:i + n] for i in range(len(text) - n + 1)]


def trigram_similarity(a: str, b: str) -> float:
    """Jaccard overlap of padded character trigram sets."""
    if not a or not b:
        return 0.0
    grams_a = set(_ngrams(f"  {a} ", 3))
    grams_b = set(_ngrams(f"  {b} ", 3))
    union = grams_a | grams_b
    if not union:
        return 0.0
    return len(grams_a & grams_b) / len(union)


def dice_similarity(a: str, b: str) -> float:
    """Sorensen-Dice coefficient over character bigrams (counted with multiplicity)."""
    if not a or not b:
        return 0.0
    if a == b:
        return 1.0
    bigrams_a = Counter(_ngrams(a, 2))
    bigrams_b = Counter(_ngrams(b, 2))
    total = sum(bigrams_a.values()) + sum(bigrams_b.values())
    if total == 0:
        return 0.0
    overlap = sum((bigrams_a & bigrams_b).values())
    return 2.0 * overlap / total


def jaro_similarity(a: str, b: str) -> float:
    if not a or not b:
        return 0.0
    return Jaro.normalized_similarity(a, b)


def calculate_similarity(a: str, b: str) -> SimilarityScores:
    """
    Scores two normalized strings with three independent measures and
    combines them as 0.4 trigram + 0.3 jaro + 0.3 dice. All values are 0-1.
    """
    if not a or not b:
        return SimilarityScores(combined=0.0, trigram=0.0, jaro=0.0, dice=0.0)
    if a == b:
        return SimilarityScores(combined=1.0, trigram=1.0, jaro=1.0, dice=1.0)

    trigram = trigram_similarity(a, b)
    jaro = jaro_similarity(a, b)
    dice = dice_similarity(a, b)
    combined = trigram * TRIGRAM_WEIGHT + jaro * JARO_WEIGHT + dice * DICE_WEIGHT
    return SimilarityScores(combined=combined, trigram=trigram, jaro=jaro, dice=dice)
