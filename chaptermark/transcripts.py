import pathlib
import re
from typing import Dict, List, Mapping, Optional, Tuple

from .models import ChapterSource
from .utils import get_logger

logger = get_logger(__name__)

# {chapter:2 digits}-{sequence}-{name}.txt, e.g. "01-2-setup-bmad.txt"
TRANSCRIPT_FILE_RE = re.compile(r"^(\d{2})-(\d+)-(.+)\.txt$")
COMBINED_SUFFIX = "-chapter.txt"


def parse_transcript_filename(filename: str) -> Optional[Tuple[int, int, str]]:
    """Returns (chapter, sequence, name) or None for non-transcript files."""
    if filename.endswith(COMBINED_SUFFIX):
        return None
    match = TRANSCRIPT_FILE_RE.match(filename)
    if not match:
        return None
    chapter_str, sequence_str, name = match.groups()
    return int(chapter_str), int(sequence_str), name


def chapter_sources_from_texts(texts: Mapping[str, str], base_dir: str = "") -> List[ChapterSource]:
    """
    Builds chapter sources from {filename: transcript text}.

    Files are visited in sorted filename order and grouped by
    (chapter, name); the first take with any content wins.
    """
    chosen: Dict[Tuple[int, str], ChapterSource] = {}

    for filename in sorted(texts):
        parsed = parse_transcript_filename(filename)
        if parsed is None:
            continue
        chapter, sequence, name = parsed

        text = texts[filename]
        if not text or not text.strip():
            logger.debug(f"Skipping '{filename}': empty transcript")
            continue

        key = (chapter, name)
        if key in chosen:
            logger.debug(f"Ignoring later take '{filename}' for chapter {chapter} '{name}'")
            continue

        path = str(pathlib.Path(base_dir) / filename) if base_dir else filename
        chosen[key] = ChapterSource(
            chapter_number=chapter,
            name=name,
            transcript_text=text,
            sequence=sequence,
            transcript_path=path,
        )

    return sorted(chosen.values(), key=lambda s: (s.chapter_number, s.name))


class TranscriptLoader:
    def __init__(self, transcripts_dir):
        self.transcripts_dir = pathlib.Path(transcripts_dir)
        self.sources: List[ChapterSource] = []

    def read_texts(self) -> Dict[str, str]:
        """Reads every candidate transcript file in the folder."""
        texts: Dict[str, str] = {}
        for path in sorted(self.transcripts_dir.iterdir()):
            if not path.is_file() or parse_transcript_filename(path.name) is None:
                continue
            try:
                texts[path.name] = path.read_text(encoding="utf-8", errors="replace")
            except OSError as e:
                logger.warning(f"Could not read transcript '{path.name}': {e}")
        return texts

    def parse(self) -> List[ChapterSource]:
        """
        Loads one ChapterSource per (chapter, name) from the transcripts
        folder, sorted by chapter number then name.
        """
        if not self.transcripts_dir.is_dir():
            logger.warning(f"Transcripts folder not found: {self.transcripts_dir}")
            return []

        logger.info(f"Scanning transcripts in {self.transcripts_dir}")
        self.sources = chapter_sources_from_texts(self.read_texts(), str(self.transcripts_dir))
        logger.info(f"Found {len(self.sources)} chapter transcripts")
        return self.sources
