import pathlib
import re
from dataclasses import dataclass
from typing import List, Optional

from .utils import get_logger

logger = get_logger("Project")

TRANSCRIPTS_DIR = "recording-transcripts"
FINAL_DIR = "final"
S3_STAGING_DIR = "s3-staging"
OVERRIDES_FILE = ".chapter-overrides.json"

VERSION_RE = re.compile(r"-v(\d+)\.[^.]+$")
SEGMENT_NAME_RES = [
    re.compile(r"outro$", re.IGNORECASE),
    re.compile(r"talking-head", re.IGNORECASE),
    re.compile(r"demonstration", re.IGNORECASE),
    re.compile(r"segment", re.IGNORECASE),
]


@dataclass(frozen=True)
class ProjectPaths:
    project_dir: pathlib.Path

    @classmethod
    def for_project(cls, project_dir) -> "ProjectPaths":
        return cls(pathlib.Path(project_dir).expanduser())

    @property
    def code(self) -> str:
        return self.project_dir.name

    @property
    def transcripts(self) -> pathlib.Path:
        return self.project_dir / TRANSCRIPTS_DIR

    @property
    def final(self) -> pathlib.Path:
        return self.project_dir / FINAL_DIR

    @property
    def s3_staging(self) -> pathlib.Path:
        return self.project_dir / S3_STAGING_DIR

    @property
    def overrides(self) -> pathlib.Path:
        return self.project_dir / OVERRIDES_FILE

    def search_locations(self):
        """(folder, label) pairs in priority order."""
        return [
            (self.final, "final"),
            (self.s3_staging, "s3-staging"),
            (self.project_dir, "root"),
        ]


@dataclass
class FinalMedia:
    video: Optional[pathlib.Path] = None
    video_version: Optional[int] = None
    srt: Optional[pathlib.Path] = None
    location: str = ""                  # Where the SRT was found


def extract_version(filename: str) -> Optional[int]:
    """ "b64-final-v3.mp4" -> 3, "b64-final.mp4" -> None """
    match = VERSION_RE.search(filename)
    return int(match.group(1)) if match else None


def is_additional_segment(filename: str, project_code: str) -> bool:
    """
    True for extra clips exported next to the main video
    (outros, talking heads...), which must not be picked as the final cut.
    """
    base = pathlib.Path(filename).stem

    if base == project_code or base.startswith(f"{project_code}-final"):
        return False
    if re.fullmatch(rf"{re.escape(project_code)}-[^-]+", base):
        return False

    if any(pattern.search(base) for pattern in SEGMENT_NAME_RES):
        return True

    return base.startswith(f"{project_code}-") and base.count("-") >= 2


def _files_with_prefix(folder: pathlib.Path, prefix: str, suffix: str) -> List[pathlib.Path]:
    # Plain prefix test: glob would treat brackets in project codes as patterns
    return sorted(
        p for p in folder.iterdir()
        if p.is_file() and p.name.startswith(prefix) and p.suffix.lower() == suffix
    )


def _latest_version(videos: List[pathlib.Path]) -> Optional[pathlib.Path]:
    if not videos:
        return None
    # Unversioned files count as version 0; ties keep name order
    return max(videos, key=lambda v: extract_version(v.name) or 0)


def detect_final_media(paths: ProjectPaths, project_code: Optional[str] = None) -> FinalMedia:
    """
    Finds the finished video and its SRT, searching final/, then
    s3-staging/, then the project root. The first folder holding a main
    video ends the search; an SRT found in an earlier folder is kept.
    """
    code = project_code or paths.code
    media = FinalMedia()

    for folder, label in paths.search_locations():
        if not folder.is_dir():
            continue

        videos = _files_with_prefix(folder, code, ".mp4")
        srts = _files_with_prefix(folder, code, ".srt")

        if videos and media.video is None:
            main_videos = [v for v in videos if not is_additional_segment(v.name, code)]
            if label == "s3-staging":
                finals = [v for v in main_videos if "-final" in v.name]
                main_videos = finals or main_videos
            latest = _latest_version(main_videos)
            if latest is not None:
                media.video = latest
                media.video_version = extract_version(latest.name)
                logger.debug(f"Final video: {latest} ({label})")

        if srts and media.srt is None:
            video_stem = media.video.stem if media.video else code
            exact = [s for s in srts if s.stem == video_stem]
            media.srt = exact[0] if exact else srts[0]
            media.location = label
            logger.debug(f"Final SRT: {media.srt} ({label})")

        if media.video is not None:
            break

    return media


def find_final_srt(paths: ProjectPaths, project_code: Optional[str] = None) -> Optional[pathlib.Path]:
    media = detect_final_media(paths, project_code)
    if media.srt is None:
        logger.warning(f"No final SRT found for '{project_code or paths.code}' in {paths.project_dir}")
    return media.srt
