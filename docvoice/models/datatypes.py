"""Core datatypes shared across docvoice modules.

Responsibilities:
- Represent immutable records exchanged between detection and render stages.
- Provide explicit typing for reproducibility and JSON caching.

Key types:
- `LayoutLine`, `Page`, `ExtractedDocument`: the page text model.
- `HeadingCandidate`, `TocEntry`, `TocDetection`: structure signals.
- `Chapter`, `DocTypeResult`, `ChapterDetection`: detection output.
- `RenderRequest`, `PreparedChapter`, `RenderedChapter`: render stage records.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal, Mapping

DocType = Literal["book", "report", "paper", "slides", "manual", "unknown"]

# Order matters: it is the tie-break order for equal classifier scores.
SCORED_DOC_TYPES: tuple[DocType, ...] = ("book", "report", "paper", "slides", "manual")


def normalize_doc_type(value: object) -> DocType:
    """Return a known doc type label, mapping anything else to `unknown`."""

    if isinstance(value, str) and value in SCORED_DOC_TYPES:
        return value  # type: ignore[return-value]
    return "unknown"


@dataclass(frozen=True, slots=True)
class LayoutLine:
    """One visual text row on a page.

    Attributes:
        text: Row text, non-empty after trimming.
        font_size: Largest effective font size of the row fragments.
        indent: Horizontal offset of the leftmost fragment.
        font_name: Optional font name of the leftmost fragment.
    """

    text: str
    font_size: float = 0.0
    indent: float = 0.0
    font_name: str | None = None


@dataclass(frozen=True, slots=True)
class Page:
    """Extracted text of one valid page.

    Attributes:
        page_number: 1-based contiguous page number.
        text: Whitespace-collapsed page text.
        lines: Optional layout rows ordered top to bottom.
        max_font_size: Largest font size seen on the page, `0.0` when unknown.
    """

    page_number: int
    text: str
    lines: tuple[LayoutLine, ...] = ()
    max_font_size: float = 0.0


@dataclass(frozen=True, slots=True)
class ExtractedDocument:
    """Ordered page sequence produced once per uploaded document."""

    pages: tuple[Page, ...]
    doc_type: DocType | None = None

    @property
    def num_pages(self) -> int:
        return len(self.pages)

    def validate(self) -> None:
        """Require page numbers to form `1..num_pages` without gaps."""

        expected = list(range(1, len(self.pages) + 1))
        actual = [page.page_number for page in self.pages]
        if actual != expected:
            raise ValueError("Page numbers must be contiguous and start at 1.")


@dataclass(frozen=True, slots=True)
class HeadingCandidate:
    """Best heading-like span found on one page."""

    page: int
    title: str
    score: int


@dataclass(frozen=True, slots=True)
class TocEntry:
    """Title and page number as printed in a contents listing."""

    title: str
    page: int


@dataclass(frozen=True, slots=True)
class TocDetection:
    """Detected contents page and its parsed entries."""

    toc_page: int
    entries: tuple[TocEntry, ...]


@dataclass(frozen=True, slots=True)
class Chapter:
    """A contiguous page range with a title.

    Attributes:
        index: 1-based chapter index.
        title: Non-empty title, at most 120 characters.
        start_page: Inclusive first page.
        end_page: Inclusive last page.
    """

    index: int
    title: str
    start_page: int
    end_page: int


@dataclass(frozen=True, slots=True)
class DocTypeResult:
    """Classifier output with the per-archetype score mapping."""

    doc_type: DocType
    scores: Mapping[str, int]


@dataclass(frozen=True, slots=True)
class ChapterDetection:
    """Result of one chapter detection pass.

    Attributes:
        num_pages: Count of valid extracted pages.
        chapters: Ordered chapters covering `1..num_pages` exactly once.
        doc_type: Inferred document archetype.
        confidence: Coarse segmentation confidence in `[0, 1]`.
        extracted_path: Cached extraction payload path, when the cache write succeeded.
        diagnostics: Detection counters and the chapter source that won.
    """

    num_pages: int
    chapters: tuple[Chapter, ...]
    doc_type: DocType
    confidence: float
    extracted_path: Path | None = None
    diagnostics: Mapping[str, object] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class RenderRequest:
    """Chapter render request as produced by a detection consumer."""

    start_page: int
    end_page: int
    chapter_index: int
    chapter_title: str = "Chapter"
    doc_type: DocType | None = None
    total_chapters: int | None = None


@dataclass(frozen=True, slots=True)
class PreparedChapter:
    """Normalized chapter text and the byte-bounded chunks derived from it.

    Attributes:
        text: Final narration text including the intro slate.
        chunks: Ordered chunks ready for synthesis dispatch.
        markup: Whether chunks are SSML documents rather than plain text.
        visual_pages: Pages in range that look like figures or tables.
        doc_type: Doc type used for the intro slate.
    """

    text: str
    chunks: tuple[str, ...]
    markup: bool
    visual_pages: tuple[int, ...] = ()
    doc_type: DocType = "unknown"


@dataclass(frozen=True, slots=True)
class RenderedChapter:
    """Metadata for one synthesized chapter audio artifact."""

    chapter_index: int
    audio_path: Path
    chunk_count: int
    voice_name: str
    language_code: str
    byte_size: int
