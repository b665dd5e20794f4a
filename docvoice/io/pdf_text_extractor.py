"""PDF page extraction with layout rows.

Responsibilities:
- Extract whitespace-collapsed text for every readable page using `pypdf`.
- Group positioned text fragments into rows with font size and indent.
- Drop unreadable pages and renumber the rest contiguously from 1.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
import math
from pathlib import Path
import re
from typing import Any, Sequence

from pypdf import PdfReader
from pypdf.errors import PyPdfError

from ..errors import ExtractionUnavailableError
from ..models.datatypes import ExtractedDocument, LayoutLine, Page

_WHITESPACE_RE = re.compile(r"\s+")


@dataclass(frozen=True, slots=True)
class TextFragment:
    """Positioned text run reported by the PDF content stream."""

    text: str
    x: float
    y: float
    font_size: float
    font_name: str | None = None


def _combine(tm: Sequence[float], cm: Sequence[float]) -> tuple[float, ...]:
    """Multiply text matrix by current transformation matrix."""

    return (
        tm[0] * cm[0] + tm[1] * cm[2],
        tm[0] * cm[1] + tm[1] * cm[3],
        tm[2] * cm[0] + tm[3] * cm[2],
        tm[2] * cm[1] + tm[3] * cm[3],
        tm[4] * cm[0] + tm[5] * cm[2] + cm[4],
        tm[4] * cm[1] + tm[5] * cm[3] + cm[5],
    )


def group_fragments(fragments: list[TextFragment]) -> list[LayoutLine]:
    """Group fragments into rows by vertical position rounded to 2 decimals.

    Rows run top of page first; fragments within a row run left to right.
    """

    rows: dict[float, list[TextFragment]] = defaultdict(list)
    for fragment in fragments:
        rows[round(fragment.y, 2)].append(fragment)

    lines: list[LayoutLine] = []
    for y in sorted(rows, reverse=True):
        row = sorted(rows[y], key=lambda fragment: fragment.x)
        text = _WHITESPACE_RE.sub(" ", " ".join(fragment.text for fragment in row)).strip()
        if not text:
            continue
        lines.append(
            LayoutLine(
                text=text,
                font_size=max(0.0, max(fragment.font_size for fragment in row)),
                indent=max(0.0, row[0].x),
                font_name=row[0].font_name,
            )
        )
    return lines


class PdfTextExtractor:
    """Extractor for text-based PDFs using `pypdf`."""

    def __init__(self) -> None:
        self.last_skipped_pages: list[int] = []

    def extract_document(self, pdf_path: Path) -> ExtractedDocument:
        """Extract every readable page of a PDF.

        Raises:
            ExtractionUnavailableError: The file is missing, unreadable, or has no text.
        """

        if not pdf_path.exists():
            raise ExtractionUnavailableError(
                f"Input PDF not found: {pdf_path}",
                hint="Pass the path of an existing PDF file.",
            )
        try:
            reader = PdfReader(str(pdf_path))
            raw_pages = list(reader.pages)
        except (PyPdfError, OSError, ValueError) as exc:
            raise ExtractionUnavailableError(f"Could not open PDF {pdf_path}: {exc}") from exc

        self.last_skipped_pages = []
        pages: list[Page] = []
        for source_number, raw_page in enumerate(raw_pages, start=1):
            try:
                text, lines = self._extract_page(raw_page)
            except (PyPdfError, KeyError, TypeError, ValueError, ZeroDivisionError):
                self.last_skipped_pages.append(source_number)
                continue
            pages.append(
                Page(
                    page_number=len(pages) + 1,
                    text=text,
                    lines=tuple(lines),
                    max_font_size=max((line.font_size for line in lines), default=0.0),
                )
            )

        if not pages or not any(page.text for page in pages):
            raise ExtractionUnavailableError(
                f"No extractable text found in PDF: {pdf_path}.",
                hint="Only text-based PDFs are supported; scanned documents need OCR first.",
            )
        return ExtractedDocument(pages=tuple(pages))

    def _extract_page(self, raw_page: Any) -> tuple[str, list[LayoutLine]]:
        fragments: list[TextFragment] = []

        def _visit(text: str, cm: Sequence[float], tm: Sequence[float], font_dict: Any, font_size: float) -> None:
            if not text or not text.strip():
                return
            matrix = _combine(tm, cm)
            scale = math.hypot(matrix[2], matrix[3]) or 1.0
            font_name = None
            if font_dict is not None and hasattr(font_dict, "get"):
                base_font = font_dict.get("/BaseFont")
                font_name = str(base_font).lstrip("/") if base_font is not None else None
            fragments.append(
                TextFragment(
                    text=text,
                    x=matrix[4],
                    y=matrix[5],
                    font_size=abs(float(font_size or 0.0)) * scale,
                    font_name=font_name,
                )
            )

        raw_text = raw_page.extract_text(visitor_text=_visit) or ""
        text = _WHITESPACE_RE.sub(" ", raw_text).strip()
        return text, group_fragments(fragments)
