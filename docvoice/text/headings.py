"""Heading candidate scoring.

Responsibilities:
- Suppress running headers/footers by cross-page line frequency.
- Score 1- and 2-line spans near the top of each page with additive rules.
- Keep the best-scoring span per page when it clears the acceptance threshold.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
import math
import re
from typing import Callable

from ..models.datatypes import HeadingCandidate, LayoutLine, Page
from .lines import clean_title, layout_lines_for_page, normalize_line

ACCEPTANCE_THRESHOLD = 60
_MAX_LINES_PER_PAGE = 12
_MIN_COMMON_LINE_CHARS = 4
_COMMON_LINE_PAGE_RATIO = 0.25
_COMMON_LINE_MIN_PAGES = 3

_PAGE_NUMBER_RE = re.compile(r"^\d+$")
_PAGE_MARKER_RE = re.compile(r"^page\s+\d+$", re.IGNORECASE)
_ASCII_LETTER_RE = re.compile(r"[A-Za-z]")


@dataclass(frozen=True, slots=True)
class CandidateSpan:
    """Text span considered as a heading, with layout metadata of its first row."""

    text: str
    meta: LayoutLine | None
    page_max_font: float
    common_lines: frozenset[str]

    def font_ratio(self) -> float | None:
        if self.meta is None or not self.meta.font_size or not self.page_max_font:
            return None
        return self.meta.font_size / self.page_max_font


@dataclass(frozen=True, slots=True)
class HeadingRule:
    """One independent scoring signal."""

    name: str
    predicate: Callable[[CandidateSpan], bool]
    weight: int


def _pattern(regex: str, flags: int = 0) -> Callable[[CandidateSpan], bool]:
    compiled = re.compile(regex, flags)
    return lambda span: bool(compiled.search(span.text))


def _letter_dense(span: CandidateSpan) -> bool:
    chars = len(span.text) or 1
    letters = len(_ASCII_LETTER_RE.findall(span.text))
    return chars <= 80 and letters / chars > 0.55


def _font_dominant(span: CandidateSpan) -> bool:
    ratio = span.font_ratio()
    return ratio is not None and ratio >= 0.92


def _font_large(span: CandidateSpan) -> bool:
    ratio = span.font_ratio()
    return ratio is not None and 0.86 <= ratio < 0.92


DEFAULT_HEADING_RULES: tuple[HeadingRule, ...] = (
    HeadingRule("chapter_number", _pattern(r"^chapter\s+\d+\b", re.IGNORECASE), 95),
    HeadingRule("chapter_roman", _pattern(r"^chapter\s+[ivxlcdm]+\b", re.IGNORECASE), 90),
    HeadingRule("roman_section", _pattern(r"^[ivxlcdm]+\.\s+[a-z]", re.IGNORECASE), 58),
    HeadingRule("numbered_section", _pattern(r"^\d+(\.\d+)*\s+\S+"), 62),
    HeadingRule("part", _pattern(r"^part\s+[ivxlcdm\d]+\b", re.IGNORECASE), 55),
    HeadingRule("contents_phrase", _pattern(r"\btable of contents\b", re.IGNORECASE), 20),
    HeadingRule("letter_dense", _letter_dense, 18),
    HeadingRule("overlong", lambda span: len(span.text) > 120, -18),
    HeadingRule("digits_only", _pattern(r"^\W*\d+\W*$"), -90),
    HeadingRule(
        "common_line",
        lambda span: normalize_line(span.text) in span.common_lines,
        -45,
    ),
    HeadingRule(
        "copyright",
        _pattern(r"^(copyright|all rights reserved)\b", re.IGNORECASE),
        -40,
    ),
    HeadingRule("font_dominant", _font_dominant, 24),
    HeadingRule("font_large", _font_large, 12),
    HeadingRule("indented", lambda span: span.meta is not None and span.meta.indent > 30, -8),
)


def build_common_line_set(pages: list[Page]) -> frozenset[str]:
    """Return normalized lines recurring on at least `max(3, 25% of pages)` pages."""

    counts: Counter[str] = Counter()
    for page in pages:
        seen = {
            normalize_line(line.text)
            for line in layout_lines_for_page(page)
        }
        counts.update(
            normalized for normalized in seen if len(normalized) >= _MIN_COMMON_LINE_CHARS
        )

    threshold = max(_COMMON_LINE_MIN_PAGES, math.floor(len(pages) * _COMMON_LINE_PAGE_RATIO))
    return frozenset(line for line, count in counts.items() if count >= threshold)


class HeadingScorer:
    """Propose and score heading candidates page by page."""

    def __init__(
        self,
        rules: tuple[HeadingRule, ...] = DEFAULT_HEADING_RULES,
        threshold: int = ACCEPTANCE_THRESHOLD,
    ) -> None:
        self.rules = rules
        self.threshold = threshold

    def score(self, span: CandidateSpan) -> int:
        """Sum the weights of every rule that matches the span."""

        text = span.text.strip()
        if not text:
            return -999
        trimmed = CandidateSpan(
            text=text,
            meta=span.meta,
            page_max_font=span.page_max_font,
            common_lines=span.common_lines,
        )
        return sum(rule.weight for rule in self.rules if rule.predicate(trimmed))

    def detect(
        self,
        pages: list[Page],
        common_lines: frozenset[str] | None = None,
    ) -> list[HeadingCandidate]:
        """Return at most one accepted heading candidate per page, in page order."""

        common = build_common_line_set(pages) if common_lines is None else common_lines
        candidates: list[HeadingCandidate] = []
        for page in pages:
            best = self.best_for_page(page, common)
            if best is not None:
                candidates.append(best)
        return candidates

    def best_for_page(self, page: Page, common_lines: frozenset[str]) -> HeadingCandidate | None:
        best_text = ""
        best_score: int | None = None
        for span in self.candidate_spans(page, common_lines):
            span_score = self.score(span)
            if best_score is None or span_score > best_score:
                best_text, best_score = span.text, span_score
        if best_score is None or best_score < self.threshold:
            return None
        return HeadingCandidate(page=page.page_number, title=clean_title(best_text), score=best_score)

    def candidate_spans(self, page: Page, common_lines: frozenset[str]) -> list[CandidateSpan]:
        """Build single-row and adjacent two-row spans from the leading content rows."""

        rows = suppress_boilerplate(layout_lines_for_page(page), common_lines)[:_MAX_LINES_PER_PAGE]
        spans: list[CandidateSpan] = []
        for position, row in enumerate(rows):
            spans.append(
                CandidateSpan(
                    text=row.text,
                    meta=row,
                    page_max_font=page.max_font_size,
                    common_lines=common_lines,
                )
            )
            if position + 1 < len(rows):
                spans.append(
                    CandidateSpan(
                        text=f"{row.text} {rows[position + 1].text}",
                        meta=row,
                        page_max_font=page.max_font_size,
                        common_lines=common_lines,
                    )
                )
        return spans


def suppress_boilerplate(
    rows: list[LayoutLine],
    common_lines: frozenset[str],
) -> list[LayoutLine]:
    """Drop empty rows, page-number rows and recurring header/footer rows."""

    kept: list[LayoutLine] = []
    for row in rows:
        trimmed = row.text.strip()
        if not trimmed:
            continue
        if _PAGE_NUMBER_RE.match(trimmed) or _PAGE_MARKER_RE.match(trimmed):
            continue
        if normalize_line(trimmed) in common_lines:
            continue
        kept.append(row)
    return kept
