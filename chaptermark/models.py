from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional, Tuple

from .utils import to_display_name


class MatchKind(str, Enum):
    EXACT_PHRASE = "exact_phrase"
    PARTIAL_WORDS = "partial_words"     # Reserved, no matcher produces it yet
    SIMILARITY = "similarity"
    MANUAL = "manual"                   # Pinned by a chapter override


class MatchStatus(str, Enum):
    MATCHED = "matched"
    LOW_CONFIDENCE = "low_confidence"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class SubtitleSegment:
    """One cue from the finished video's subtitle track."""
    index: int                          # Ordinal from the SRT file (informational)
    start_seconds: float
    end_seconds: float
    text: str
    start_timestamp: str = ""           # As written in the SRT, "HH:MM:SS,mmm"


@dataclass(frozen=True)
class ChapterSource:
    """
    One chapter recovered from the recording-time transcripts.
    Exactly one per (chapter_number, name); later takes are ignored.
    """
    chapter_number: int
    name: str                           # kebab-case slug, e.g. "setup-bmad"
    transcript_text: str
    sequence: int = 1                   # Take number of the file that won
    transcript_path: str = ""

    @property
    def display_name(self) -> str:
        return to_display_name(self.name)


@dataclass(frozen=True)
class MatchCandidate:
    """A scored hypothesis linking a chapter to a subtitle segment."""
    segment_index: Optional[int]        # Position in the parsed segment list (None if manual)
    timestamp_seconds: float
    match_kind: MatchKind
    confidence: int = 0
    matched_text_preview: str = ""
    method_detail: str = ""
    timestamp: str = ""                 # Chapter marker, e.g. "2:34"
    word_count: int = 0                 # Words in the matched phrase / search text
    words_skipped: int = 0              # Opening words skipped before the phrase
    similarity_score: Optional[float] = None


@dataclass(frozen=True)
class ChapterMatchResult:
    """
    Final per-chapter output. Correction passes never mutate a result;
    they return a new one with `revision` bumped and the pass recorded
    in `adjustments`.
    """
    chapter_number: int
    name: str
    display_name: str
    status: MatchStatus
    primary: Optional[MatchCandidate] = None
    alternatives: Tuple[MatchCandidate, ...] = ()
    confidence: int = 0
    match_reason: str = ""
    transcript_snippet: str = ""
    revision: int = 0
    adjustments: Tuple[str, ...] = ()
    skipped: bool = False               # Excluded from the chapter list by an override

    @property
    def timestamp(self) -> Optional[str]:
        return self.primary.timestamp if self.primary else None

    @property
    def timestamp_seconds(self) -> Optional[float]:
        return self.primary.timestamp_seconds if self.primary else None

    @property
    def segment_index(self) -> Optional[int]:
        return self.primary.segment_index if self.primary else None

    def revised(self, note: str, **changes) -> "ChapterMatchResult":
        """Copy with `changes` applied, the revision bumped and `note` logged."""
        return replace(
            self,
            revision=self.revision + 1,
            adjustments=self.adjustments + (note,),
            **changes
        )

    def __repr__(self):
        return (f"<ChapterMatchResult {self.chapter_number}: '{self.name}' "
                f"Status={self.status.value} Time={self.timestamp} "
                f"Confidence={self.confidence}>")


@dataclass
class AlignmentReport:
    success: bool
    chapters: list = field(default_factory=list)
    formatted: str = ""
    error: Optional[str] = None
    stats: dict = field(default_factory=dict)
