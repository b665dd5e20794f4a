"""Unit tests for heading candidate scoring and boilerplate suppression."""

from __future__ import annotations

from docvoice.models.datatypes import LayoutLine
from docvoice.text.headings import (
    CandidateSpan,
    HeadingRule,
    HeadingScorer,
    build_common_line_set,
    suppress_boilerplate,
)
from tests.fixture_pages import layout_page, pages_from_texts

_BODY = "Rain fell over the valley while the surveyors packed their instruments and maps for the night."


def _span(text: str, meta: LayoutLine | None = None, page_max_font: float = 0.0) -> CandidateSpan:
    return CandidateSpan(text=text, meta=meta, page_max_font=page_max_font, common_lines=frozenset())


def test_numbered_chapter_heading_with_dominant_font_is_accepted() -> None:
    page = layout_page(3, [("Chapter 3 The Harbor", 24.0), (_BODY, 11.0)])

    candidates = HeadingScorer().detect([page])

    assert len(candidates) == 1
    assert candidates[0].page == 3
    assert candidates[0].title == "Chapter 3 The Harbor"
    assert candidates[0].score == 95 + 18 + 24


def test_rule_weights_add_up_per_span() -> None:
    scorer = HeadingScorer()

    assert scorer.score(_span("Chapter IV")) == 90 + 18
    assert scorer.score(_span("2.1 Sampling design")) == 62 + 18
    assert scorer.score(_span("42")) == -90
    assert scorer.score(_span("   ")) == -999
    assert scorer.score(_span("Copyright 2024 Example Press")) == -40 + 18


def test_font_ratio_and_indent_rules_use_layout_metadata() -> None:
    scorer = HeadingScorer()
    large = LayoutLine(text="Overview", font_size=18.0, indent=40.0)

    assert scorer.score(_span("Overview", meta=large, page_max_font=19.0)) == 18 + 24 - 8
    assert scorer.score(_span("Overview", meta=large, page_max_font=20.0)) == 18 + 12 - 8
    assert scorer.score(_span("Overview")) == 18


def test_plain_prose_pages_yield_no_candidates() -> None:
    assert HeadingScorer().detect(pages_from_texts([_BODY, _BODY])) == []


def test_running_headers_are_common_lines_and_never_headings() -> None:
    """A header repeated on every page is suppressed before spans are built."""

    texts = [f"Annual Field Survey\nChapter {index} Findings\n{_BODY}" for index in range(1, 9)]
    pages = pages_from_texts(texts)

    common = build_common_line_set(pages)
    candidates = HeadingScorer().detect(pages, common)

    assert "annual field survey" in common
    assert [candidate.title for candidate in candidates] == [
        f"Chapter {index} Findings" for index in range(1, 9)
    ]


def test_common_line_threshold_needs_three_pages_minimum() -> None:
    pages = pages_from_texts([f"Shared Header Line\n{_BODY} {index}" for index in range(2)])

    assert build_common_line_set(pages) == frozenset()


def test_suppress_boilerplate_drops_page_numbers_and_markers() -> None:
    rows = [
        LayoutLine(text="12"),
        LayoutLine(text="Page 4"),
        LayoutLine(text="Running Title"),
        LayoutLine(text="Real heading"),
    ]

    kept = suppress_boilerplate(rows, frozenset({"running title"}))

    assert [row.text for row in kept] == ["Real heading"]


def test_custom_rules_replace_the_default_rule_set() -> None:
    scorer = HeadingScorer(
        rules=(HeadingRule("shout", lambda span: span.text.isupper(), 70),),
        threshold=60,
    )

    candidates = scorer.detect(pages_from_texts(["INTRODUCTION\nsome lower text here"]))

    assert [candidate.title for candidate in candidates] == ["INTRODUCTION"]
