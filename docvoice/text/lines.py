"""Line-level helpers over the page text model.

Responsibilities:
- Derive line sequences for pages with or without layout metadata.
- Normalize lines and titles for frequency counting and comparison.
"""

from __future__ import annotations

import re

from ..models.datatypes import LayoutLine, Page

MAX_TITLE_CHARS = 120
_FALLBACK_WORDS_PER_LINE = 8

_NEWLINES_RE = re.compile(r"\n+")
_WHITESPACE_RE = re.compile(r"\s+")
_LINE_PUNCTUATION_RE = re.compile(r"[^\w\s.:/-]")


def text_to_lines(text: str) -> list[str]:
    """Split page text into trimmed non-empty lines.

    Whitespace-collapsed single-line text is regrouped into fixed-size word
    runs so that line-based heuristics still have something to look at.
    """

    base_lines = [line.strip() for line in _NEWLINES_RE.split(text or "")]
    base_lines = [line for line in base_lines if line]
    if len(base_lines) > 1:
        return base_lines

    words = _WHITESPACE_RE.sub(" ", text or "").strip().split(" ")
    words = [word for word in words if word]
    return [
        " ".join(words[start : start + _FALLBACK_WORDS_PER_LINE])
        for start in range(0, len(words), _FALLBACK_WORDS_PER_LINE)
    ]


def layout_lines_for_page(page: Page) -> list[LayoutLine]:
    """Return layout rows for a page, synthesizing metadata-free rows when absent."""

    if page.lines:
        return list(page.lines)
    return [LayoutLine(text=line) for line in text_to_lines(page.text)]


def line_texts_for_page(page: Page) -> list[str]:
    """Return the plain text of each line of a page."""

    return [line.text for line in layout_lines_for_page(page)]


def normalize_line(value: str) -> str:
    """Lowercase, collapse whitespace and drop punctuation other than `. : / -`."""

    collapsed = _WHITESPACE_RE.sub(" ", value.lower())
    return _LINE_PUNCTUATION_RE.sub("", collapsed).strip()


def clean_title(value: str, fallback: str = "Chapter") -> str:
    """Collapse whitespace and cap a title at 120 characters."""

    cleaned = _WHITESPACE_RE.sub(" ", value or "").strip()[:MAX_TITLE_CHARS]
    return cleaned or fallback


def count_words(text: str) -> int:
    return len((text or "").split())
