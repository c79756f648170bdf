import argparse
import json
import os
import sys

from .aligner import align_project
from .output_manager import format_chapters_report, report_to_dict, save_results
from .overrides import apply_overrides, load_overrides, save_override
from .project import ProjectPaths, find_final_srt
from .user_interaction import review_chapters
from .utils import get_logger, setup_logging

logger = get_logger("Main")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Find where each recorded chapter starts in the final edited video"
    )
    parser.add_argument("project", help="Path to the video project folder")
    parser.add_argument("--code", help="Project code used in final media filenames (default: folder name)")
    parser.add_argument("--srt", help="Subtitle file to use instead of searching final/, s3-staging/ and the project root")
    parser.add_argument("--output", "-o", help="Folder for chapter_timestamps.json/.md (default: project folder)")
    parser.add_argument("--review", action="store_true", help="Interactively review uncertain chapters")
    parser.add_argument("--json", action="store_true", help="Print the full report as JSON")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    log_level = "DEBUG" if args.verbose else "INFO"
    setup_logging(log_level)

    if not os.path.isdir(args.project):
        logger.error(f"Project folder not found: {args.project}")
        sys.exit(1)

    paths = ProjectPaths.for_project(args.project)
    code = args.code or paths.code

    # --- Phase 1: Locate inputs ---
    srt_path = args.srt or find_final_srt(paths, code)
    if not srt_path or not os.path.exists(srt_path):
        logger.error(f"No final SRT available for '{code}'. Export subtitles for the final video first.")
        sys.exit(1)

    # --- Phase 2: Alignment ---
    logger.info(f"Aligning chapters for '{code}' against {srt_path}")
    report = align_project(paths.transcripts, srt_path)
    if not report.success:
        logger.error(f"Could not align chapters: {report.error}")
        sys.exit(1)

    # --- Phase 3: Review ---
    overrides = load_overrides(paths.overrides)
    if overrides:
        logger.info(f"Applying {len(overrides)} saved chapter overrides.")
    if args.review:
        for override in review_chapters(apply_overrides(report, overrides)):
            overrides = save_override(paths.overrides, override)
    report = apply_overrides(report, overrides)

    # --- Phase 4: Output ---
    save_results(report, args.output or paths.project_dir, code)

    if args.json:
        print(json.dumps(report_to_dict(report), indent=2))
    else:
        print(format_chapters_report(report, code))


if __name__ == "__main__":
    main()
