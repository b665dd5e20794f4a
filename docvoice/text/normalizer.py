"""Chapter narration text assembly.

Responsibilities:
- Clean concatenated page text for speech synthesis.
- Prefix a spoken intro slate chosen by document type.
- Optionally point listeners at pages that only make sense visually.
"""

from __future__ import annotations

import re

from ..models.datatypes import DocType, Page
from .cleaners import TextCleaner, TextCleaningReport

_SECTIONED_DOC_TYPES = frozenset({"report", "manual", "paper", "unknown"})
_VISUAL_KEYWORDS_RE = re.compile(r"figure|table|chart|diagram|exhibit", re.IGNORECASE)
_ASCII_LETTER_RE = re.compile(r"[A-Za-z]")


class AudioTextNormalizer:
    """Turn raw chapter page text into narration-ready prose."""

    def __init__(self, cleaner: TextCleaner | None = None) -> None:
        self.cleaner = cleaner or TextCleaner()

    def normalize(self, raw_text: str) -> str:
        """Clean raw text; never raises and may return an empty string."""

        return self.cleaner.clean(raw_text)

    def chapter_text(
        self,
        pages: list[Page],
        doc_type: DocType,
        chapter_index: int,
        chapter_title: str,
        total_chapters: int,
        include_visuals_note: bool = False,
    ) -> str:
        """Return intro slate plus cleaned text of the given chapter pages."""

        return self.chapter_report(
            pages,
            doc_type=doc_type,
            chapter_index=chapter_index,
            chapter_title=chapter_title,
            total_chapters=total_chapters,
            include_visuals_note=include_visuals_note,
        ).cleaned_text

    def chapter_report(
        self,
        pages: list[Page],
        doc_type: DocType,
        chapter_index: int,
        chapter_title: str,
        total_chapters: int,
        include_visuals_note: bool = False,
    ) -> TextCleaningReport:
        """Like `chapter_text`, keeping the boilerplate count of the cleanup."""

        report = self.cleaner.clean_with_report("\n\n".join(page.text for page in pages))
        body = report.cleaned_text
        intro = build_intro(doc_type, chapter_index, chapter_title, total_chapters)
        text = f"{intro}\n\n{body}".strip() if intro else body.strip()

        if include_visuals_note:
            visual_pages = detect_visual_pages(pages)
            if visual_pages:
                note = f"For the visuals in this chapter, see pages {compress_pages(visual_pages)}."
                text = f"{text}\n\n{note}" if text else note
        return TextCleaningReport(
            cleaned_text=text,
            boilerplate_lines_removed=report.boilerplate_lines_removed,
        )


def build_intro(
    doc_type: DocType,
    chapter_index: int,
    chapter_title: str,
    total_chapters: int,
) -> str:
    """Return the spoken chapter/section label, or `""` when none applies.

    Books always get `Chapter N`; multi-section reports, manuals, papers and
    unknown documents get `Section N`; slide decks get nothing. Generic titles
    (empty, `Document`, `Chapter N`) are not repeated after the label.
    """

    if doc_type == "slides":
        return ""

    title = (chapter_title or "").strip()
    generic = (
        not title
        or re.fullmatch(r"document", title, re.IGNORECASE) is not None
        or re.fullmatch(rf"chapter\s+{chapter_index}", title, re.IGNORECASE) is not None
    )

    if doc_type == "book":
        label = f"Chapter {chapter_index}"
    elif total_chapters > 1 and doc_type in _SECTIONED_DOC_TYPES:
        label = f"Section {chapter_index}"
    else:
        return ""

    lines = [label]
    if not generic:
        lines.append(re.sub(r"\.+$", "", title).strip())
    return "\n".join(lines)


def detect_visual_pages(pages: list[Page]) -> list[int]:
    """Return page numbers whose text is too sparse to be read as prose."""

    visual: list[int] = []
    for page in pages:
        text = (page.text or "").strip()
        chars = len(text) or 1
        letters = len(_ASCII_LETTER_RE.findall(text))
        if (
            chars < 80
            or (letters / chars < 0.35 and chars < 220)
            or (_VISUAL_KEYWORDS_RE.search(text) is not None and chars < 180)
        ):
            visual.append(page.page_number)
    return visual


def compress_pages(pages: list[int]) -> str:
    """Render page numbers as spoken ranges, e.g. `3 through 5, and 9`."""

    unique = sorted(set(pages))
    if not unique:
        return ""

    ranges: list[tuple[int, int]] = []
    start = previous = unique[0]
    for page in unique[1:]:
        if page == previous + 1:
            previous = page
            continue
        ranges.append((start, previous))
        start = previous = page
    ranges.append((start, previous))

    parts = [f"{first}" if first == last else f"{first} through {last}" for first, last in ranges]
    if len(parts) == 1:
        return parts[0]
    if len(parts) == 2:
        return f"{parts[0]}, and {parts[1]}"
    return ", ".join(parts[:-1]) + f", and {parts[-1]}"
