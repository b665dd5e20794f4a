"""Unit tests for chapter assembly, the source ladder and coverage."""

from __future__ import annotations

import pytest

from docvoice.models.datatypes import Chapter, HeadingCandidate, TocEntry
from docvoice.text.segmenter import (
    ChapterSegmenter,
    ChapterStart,
    confidence_for,
    looks_like_heading_legacy,
    to_chapters_from_starts,
    with_front_matter,
)
from tests.fixture_pages import pages_from_texts


def _assert_covers(chapters: tuple[Chapter, ...] | list[Chapter], num_pages: int) -> None:
    covered = [page for chapter in chapters for page in range(chapter.start_page, chapter.end_page + 1)]
    assert covered == list(range(1, num_pages + 1))
    assert [chapter.index for chapter in chapters] == list(range(1, len(chapters) + 1))


def test_starts_become_contiguous_ranges() -> None:
    chapters = to_chapters_from_starts(
        [ChapterStart(5, "Second"), ChapterStart(1, "First"), ChapterStart(9, "Third")],
        num_pages=12,
    )

    assert chapters == [
        Chapter(1, "First", 1, 4),
        Chapter(2, "Second", 5, 8),
        Chapter(3, "Third", 9, 12),
    ]


def test_out_of_range_starts_are_clamped_and_duplicates_keep_last_title() -> None:
    chapters = to_chapters_from_starts(
        [ChapterStart(-3, "Opening"), ChapterStart(1, "Prologue"), ChapterStart(40, "Finale")],
        num_pages=10,
    )

    assert chapters == [Chapter(1, "Prologue", 1, 9), Chapter(2, "Finale", 10, 10)]


def test_single_unique_start_falls_back_to_whole_document() -> None:
    chapters = to_chapters_from_starts([ChapterStart(3, "Only")], num_pages=7)

    assert chapters == [Chapter(1, "Document", 1, 7)]


def test_blank_titles_get_numbered_placeholders() -> None:
    chapters = to_chapters_from_starts([ChapterStart(1, "  "), ChapterStart(2, "Named")], num_pages=3)

    assert [chapter.title for chapter in chapters] == ["Chapter 1", "Named"]


def test_front_matter_is_prepended_and_indices_shift() -> None:
    chapters = with_front_matter([Chapter(1, "Intro", 3, 5), Chapter(2, "Body", 6, 8)])

    assert chapters[0] == Chapter(1, "Front Matter", 1, 2)
    assert [chapter.index for chapter in chapters] == [1, 2, 3]
    _assert_covers(chapters, 8)


@pytest.mark.parametrize(
    ("chapter_count", "heading_count", "expected"),
    [(4, 0, 0.9), (3, 2, 0.9), (2, 0, 0.75), (1, 3, 0.6), (1, 0, 0.35)],
)
def test_confidence_levels(chapter_count: int, heading_count: int, expected: float) -> None:
    assert confidence_for(chapter_count, heading_count) == expected


def test_legacy_heading_patterns() -> None:
    assert looks_like_heading_legacy("Chapter 7 The Return")
    assert looks_like_heading_legacy("3.2 Results")
    assert looks_like_heading_legacy("METHODS AND MATERIALS")
    assert not looks_like_heading_legacy("the river bent north past the mill")
    assert not looks_like_heading_legacy("1999")
    assert not looks_like_heading_legacy("")


def test_toc_starts_outrank_heading_candidates() -> None:
    pages = pages_from_texts(["x"] * 10)
    toc_starts = [TocEntry("Part One", 2), TocEntry("Part Two", 6)]
    headings = [HeadingCandidate(4, "Chapter 1", 95), HeadingCandidate(8, "Chapter 2", 95)]

    result = ChapterSegmenter().segment(pages, toc_starts, headings)

    assert result.source == "toc"
    assert [chapter.title for chapter in result.chapters] == ["Front Matter", "Part One", "Part Two"]
    assert result.confidence == 0.9
    _assert_covers(result.chapters, 10)


def test_single_toc_start_falls_through_to_headings() -> None:
    pages = pages_from_texts(["x"] * 6)
    headings = [HeadingCandidate(1, "Chapter 1", 95), HeadingCandidate(4, "Chapter 2", 95)]

    result = ChapterSegmenter().segment(pages, [TocEntry("Lonely", 3)], headings)

    assert result.source == "headings"
    assert [(chapter.start_page, chapter.end_page) for chapter in result.chapters] == [(1, 3), (4, 6)]
    assert result.confidence == 0.75


def test_legacy_pass_runs_when_no_other_source_succeeds() -> None:
    texts = ["cover art", "CHAPTER 1 the beginning of things", "more text", "CHAPTER 2 the end"]

    result = ChapterSegmenter().segment(pages_from_texts(texts), [], [])

    assert result.source == "legacy"
    assert [chapter.start_page for chapter in result.chapters] == [1, 2, 4]
    assert result.chapters[0].title == "Front Matter"


def test_forty_page_document_without_structure_is_one_chapter() -> None:
    texts = [f"ordinary prose on page {index} with nothing heading like in it" for index in range(1, 41)]

    result = ChapterSegmenter().segment(pages_from_texts(texts), [], [])

    assert result.source == "fallback"
    assert result.chapters == (Chapter(1, "Document", 1, 40),)
    assert result.confidence == 0.35


def test_segmenting_without_pages_is_rejected() -> None:
    with pytest.raises(ValueError):
        ChapterSegmenter().segment([], [], [])


def test_segmentation_is_deterministic() -> None:
    pages = pages_from_texts(["x"] * 9)
    headings = [HeadingCandidate(3, "A", 70), HeadingCandidate(6, "B", 70)]

    first = ChapterSegmenter().segment(pages, [], headings)
    second = ChapterSegmenter().segment(pages, [], headings)

    assert first == second
