import pathlib
import tempfile
import unittest

from chaptermark.aligner import (align_project, align_segments, apply_order_penalty,
                                 extract_chapter_alignment, format_chapter_list, match_chapter,
                                 resolve_collisions)
from chaptermark.models import (ChapterMatchResult, ChapterSource, MatchCandidate, MatchKind,
                                MatchStatus, SubtitleSegment)
from chaptermark.output_manager import report_to_dict
from chaptermark.timestamps import format_srt_timestamp

OPENING = "Hi everyone and welcome back to the channel in this video"


def make_srt(cues):
    """cues: list of (start_seconds, text)."""
    blocks = []
    for i, (start, text) in enumerate(cues, 1):
        blocks.append(f"{i}\n{format_srt_timestamp(start)} --> {format_srt_timestamp(start + 4)}\n{text}\n")
    return "\n".join(blocks)


def make_segments(cues):
    return [
        SubtitleSegment(index=i + 1, start_seconds=start, end_seconds=start + 4, text=text)
        for i, (start, text) in enumerate(cues)
    ]


def placed(chapter_number, seconds, confidence=100, name=None):
    name = name or f"chapter-{chapter_number}"
    candidate = MatchCandidate(
        segment_index=chapter_number,
        timestamp_seconds=seconds,
        match_kind=MatchKind.EXACT_PHRASE,
        confidence=confidence,
        timestamp=f"0:{int(seconds):02d}",
    )
    status = MatchStatus.MATCHED if confidence >= 70 else MatchStatus.LOW_CONFIDENCE
    return ChapterMatchResult(chapter_number, name, name.title(), status, primary=candidate,
                              confidence=confidence)


class TestSingleChapter(unittest.TestCase):

    def test_exact_match(self):
        srt = "1\n00:00:05,000 --> 00:00:09,500\nwelcome to this course on databases\n"
        sources = [ChapterSource(1, "intro", "Welcome to this course on databases and indexing")]

        report = extract_chapter_alignment(srt, sources)

        self.assertTrue(report.success)
        chapter = report.chapters[0]
        self.assertEqual(chapter.status, MatchStatus.MATCHED)
        self.assertEqual(chapter.primary.match_kind, MatchKind.EXACT_PHRASE)
        self.assertEqual(chapter.primary.word_count, 5)
        self.assertEqual(chapter.confidence, 90)
        self.assertEqual(chapter.timestamp, "0:05")
        self.assertEqual(chapter.display_name, "Intro")
        self.assertEqual(chapter.match_reason, "Matched 5-word phrase")
        self.assertEqual(chapter.revision, 0)
        self.assertEqual(report.formatted, "0:05 Intro")
        self.assertEqual(report.stats, {"srt_segments": 1, "chapters_found": 1, "chapters_total": 1})

    def test_not_found(self):
        srt = "1\n00:00:05,000 --> 00:00:09,500\nwelcome to this course on databases\n"
        sources = [ChapterSource(1, "garden", "Completely different content about gardening")]

        report = extract_chapter_alignment(srt, sources)

        self.assertTrue(report.success)
        chapter = report.chapters[0]
        self.assertEqual(chapter.status, MatchStatus.NOT_FOUND)
        self.assertIsNone(chapter.primary)
        self.assertIsNone(chapter.timestamp)
        self.assertEqual(chapter.confidence, 0)
        self.assertEqual(chapter.alternatives, ())
        self.assertEqual(chapter.transcript_snippet, "Completely different content about gardening")
        self.assertEqual(report.formatted, "")
        self.assertEqual(report.stats["chapters_found"], 0)

    def test_alternatives_within_window(self):
        segments = make_segments([
            (0, "welcome to this course on databases and indexing"),
            (3, "welcome to this course"),
            (30, "welcome to this"),
            (120, "welcome to this course"),
        ])
        source = ChapterSource(1, "intro", "Welcome to this course on databases and indexing")

        result = match_chapter(source, segments)

        self.assertEqual(result.segment_index, 0)
        self.assertEqual(result.confidence, 100)
        self.assertEqual([a.segment_index for a in result.alternatives], [2])
        self.assertEqual(result.alternatives[0].timestamp, "0:30")
        self.assertEqual(result.alternatives[0].confidence, 85)


class TestCollisions(unittest.TestCase):

    def test_shared_opening_resolved_by_skipping_words(self):
        filler = [
            "the quick brown fox jumps over the lazy dog",
            "grab a coffee before we get started",
            "pause the video if you need a moment",
        ]
        cues = [
            (0, filler[0]),
            (10, filler[1]),
            (20, filler[2]),
            (30, "hi everyone and welcome back to the channel in this video we will look at widgets"),
            (40, filler[0]),
            (50, filler[1]),
            (60, filler[2]),
            (70, "today the widget cache invalidation strategy matters most for large dashboards with many panels"),
        ]
        sources = [
            ChapterSource(2, "widgets", OPENING + " we will look at widgets and how they render on screen"),
            ChapterSource(5, "widgets-deep-dive", OPENING + " we will go deeper. Today the widget cache "
                          "invalidation strategy matters most for large dashboards with many panels"),
        ]

        report = extract_chapter_alignment(make_srt(cues), sources)

        widgets, deep_dive = report.chapters
        self.assertEqual(widgets.segment_index, 3)
        self.assertEqual(widgets.confidence, 100)
        self.assertEqual(widgets.revision, 0)

        self.assertEqual(deep_dive.segment_index, 7)
        self.assertEqual(deep_dive.confidence, 85)
        self.assertEqual(deep_dive.status, MatchStatus.MATCHED)
        self.assertEqual(deep_dive.revision, 1)
        self.assertIn("collision", deep_dive.adjustments[0])

        self.assertEqual(report.formatted, "0:30 Widgets\n1:10 Widgets Deep Dive")

    def test_moved_chapter_gets_alternatives_around_new_time(self):
        segments = make_segments([
            (0, "grab a coffee before we get started"),
            (40, "hi everyone and welcome back to the channel in this video"),
            (70, "hi everyone and welcome back"),
            (300, "today the widget cache invalidation strategy matters most for large dashboards"),
        ])
        sources = [
            ChapterSource(1, "intro", OPENING + " we will look at widgets"),
            ChapterSource(2, "recap", OPENING + " we will go deeper today the widget cache "
                          "invalidation strategy matters most for large dashboards"),
        ]
        results = [match_chapter(s, segments) for s in sources]
        self.assertEqual([a.timestamp_seconds for a in results[1].alternatives], [70])

        intro, recap = resolve_collisions(results, sources, segments)

        self.assertEqual(intro.segment_index, 1)
        self.assertEqual([a.timestamp_seconds for a in intro.alternatives], [70])
        self.assertEqual(recap.segment_index, 3)
        self.assertEqual(recap.timestamp_seconds, 300)
        self.assertEqual(recap.alternatives, ())

    def test_unresolved_collision_is_penalized(self):
        segments = make_segments([
            (0, "grab a coffee before we get started"),
            (12, "hi everyone and welcome back to the channel in this video"),
        ])
        sources = [
            ChapterSource(1, "intro", OPENING),
            ChapterSource(3, "recap", OPENING),
        ]
        results = [match_chapter(s, segments) for s in sources]

        resolved = resolve_collisions(results, sources, segments)

        intro, recap = resolved
        self.assertEqual(intro.confidence, 100)
        self.assertEqual(intro.status, MatchStatus.MATCHED)
        self.assertEqual(recap.segment_index, intro.segment_index)
        self.assertEqual(recap.confidence, 70)
        self.assertEqual(recap.status, MatchStatus.LOW_CONFIDENCE)
        self.assertEqual(recap.revision, 1)

    def test_lowest_chapter_keeps_segment_regardless_of_input_order(self):
        segments = make_segments([(12, "hi everyone and welcome back to the channel in this video")])
        sources = [
            ChapterSource(3, "recap", OPENING),
            ChapterSource(1, "intro", OPENING),
        ]
        results = [match_chapter(s, segments) for s in sources]

        recap, intro = resolve_collisions(results, sources, segments)

        self.assertEqual(intro.confidence, 100)
        self.assertEqual(recap.confidence, 70)

    def test_no_collisions_is_unchanged(self):
        results = [placed(1, 10), placed(2, 20)]
        self.assertEqual(resolve_collisions(results, [], []), results)


class TestOrderPenalty(unittest.TestCase):

    def test_in_order_is_untouched(self):
        results = [placed(1, 10), placed(2, 20), placed(3, 30)]
        self.assertEqual(apply_order_penalty(results), results)

    def test_chapter_after_higher_chapter_is_penalized(self):
        results = [placed(1, 30), placed(2, 10), placed(3, 20)]

        first, second, third = apply_order_penalty(results)

        self.assertEqual(first.confidence, 80)
        self.assertEqual(first.status, MatchStatus.MATCHED)
        self.assertEqual(first.revision, 1)
        self.assertEqual(second.confidence, 100)
        self.assertEqual(third.confidence, 100)

    def test_penalty_drops_status(self):
        penalized = apply_order_penalty([placed(1, 30, confidence=85), placed(2, 10)])
        self.assertEqual(penalized[0].confidence, 65)
        self.assertEqual(penalized[0].status, MatchStatus.LOW_CONFIDENCE)

    def test_penalty_floor(self):
        penalized = apply_order_penalty([placed(1, 30, confidence=25), placed(2, 10)])
        self.assertEqual(penalized[0].confidence, 10)

    def test_not_found_chapters_are_ignored(self):
        missing = ChapterMatchResult(9, "missing", "Missing", MatchStatus.NOT_FOUND)
        results = [placed(1, 10), missing, placed(2, 20)]
        self.assertEqual(apply_order_penalty(results), results)


class TestChapterList(unittest.TestCase):

    def test_sorted_by_time_and_filtered(self):
        missing = ChapterMatchResult(4, "missing", "Missing", MatchStatus.NOT_FOUND)
        skipped = placed(5, 5).revised("skipped by override", skipped=True)
        results = [placed(2, 40), placed(1, 20), missing, skipped]

        self.assertEqual(format_chapter_list(results), "0:20 Chapter-1\n0:40 Chapter-2")

    def test_low_confidence_still_listed(self):
        self.assertEqual(format_chapter_list([placed(1, 10, confidence=40)]), "0:10 Chapter-1")


class TestFailures(unittest.TestCase):

    def test_no_sources(self):
        srt = "1\n00:00:05,000 --> 00:00:09,500\nwelcome\n"
        report = extract_chapter_alignment(srt, [])
        self.assertFalse(report.success)
        self.assertIn("No chapter transcripts", report.error)
        self.assertEqual(report.chapters, [])

    def test_unparseable_srt(self):
        report = extract_chapter_alignment("this is not a subtitle file",
                                           [ChapterSource(1, "intro", "Welcome")])
        self.assertFalse(report.success)
        self.assertEqual(report.error, "Could not parse SRT file")

    def test_segments_checked_before_sources(self):
        self.assertEqual(align_segments([], []).error, "Could not parse SRT file")


class TestDeterminism(unittest.TestCase):

    def test_same_input_same_report(self):
        srt = make_srt([
            (5, "welcome to this course on databases"),
            (65, "next we look at indexing strategies for large tables"),
            (125, "that wraps up the course thanks for watching"),
        ])
        sources = [
            ChapterSource(1, "intro", "Welcome to this course on databases and indexing"),
            ChapterSource(2, "indexes", "Next we look at indexing strategies for large tables"),
            ChapterSource(3, "outro", "That wraps up the course, thanks for watching!"),
        ]

        first = report_to_dict(extract_chapter_alignment(srt, sources))
        second = report_to_dict(extract_chapter_alignment(srt, sources))

        self.assertEqual(first, second)
        self.assertEqual(first["formatted"], "0:05 Intro\n1:05 Indexes\n2:05 Outro")


class TestAlignProject(unittest.TestCase):

    def test_from_disk(self):
        with tempfile.TemporaryDirectory() as tmp:
            root = pathlib.Path(tmp)
            transcripts = root / "recording-transcripts"
            transcripts.mkdir()
            (transcripts / "01-1-intro.txt").write_text(
                "Welcome to this course on databases and indexing", encoding="utf-8")
            (transcripts / "02-1-indexes.txt").write_text(
                "Next we look at indexing strategies for large tables", encoding="utf-8")
            srt_path = root / "final.srt"
            srt_path.write_text(make_srt([
                (5, "welcome to this course on databases"),
                (65, "next we look at indexing strategies for large tables"),
            ]), encoding="utf-8")

            report = align_project(transcripts, srt_path)

        self.assertTrue(report.success)
        self.assertEqual(report.formatted, "0:05 Intro\n1:05 Indexes")
        self.assertEqual(report.stats["chapters_total"], 2)

    def test_missing_transcripts(self):
        with tempfile.TemporaryDirectory() as tmp:
            root = pathlib.Path(tmp)
            srt_path = root / "final.srt"
            srt_path.write_text(make_srt([(5, "welcome")]), encoding="utf-8")

            report = align_project(root / "recording-transcripts", srt_path)

        self.assertFalse(report.success)
        self.assertEqual(report.error, "No chapter transcripts found")


if __name__ == "__main__":
    unittest.main()
