"""Chapter segmentation from structural start points.

Responsibilities:
- Convert candidate start pages into contiguous, non-overlapping chapters.
- Walk an explicit ladder of start sources until one yields two chapters.
- Prepend front matter and report a coarse confidence signal.
"""

from __future__ import annotations

from dataclasses import dataclass
import math
import re

from ..models.datatypes import Chapter, HeadingCandidate, Page, TocEntry
from .lines import clean_title

FALLBACK_TITLE = "Document"
FRONT_MATTER_TITLE = "Front Matter"
_LEGACY_PREFIX_WORDS = 14


@dataclass(frozen=True, slots=True)
class ChapterStart:
    """Candidate first page of a chapter."""

    page: int
    title: str


@dataclass(frozen=True, slots=True)
class StartSource:
    """One rung of the segmentation fallback ladder."""

    name: str
    starts: tuple[ChapterStart, ...]


@dataclass(frozen=True, slots=True)
class SegmentationResult:
    """Final chapters with the source that produced them.

    Attributes:
        chapters: Ordered chapters covering every page exactly once.
        source: `toc`, `headings`, `legacy` or `fallback`.
        confidence: 0.9, 0.75, 0.6 or 0.35.
    """

    chapters: tuple[Chapter, ...]
    source: str
    confidence: float


def looks_like_heading_legacy(value: str) -> bool:
    """Return whether a page prefix looks like a heading by simple line patterns."""

    line = (value or "").strip()
    if not line:
        return False
    if re.match(r"^chapter\s+\d+", line, re.IGNORECASE):
        return True
    if re.match(r"^\d+(\.\d+)*\s+", line):
        return True
    return len(line) <= 60 and line == line.upper() and bool(re.search(r"[A-Z]", line))


def single_chapter(num_pages: int) -> list[Chapter]:
    return [Chapter(index=1, title=FALLBACK_TITLE, start_page=1, end_page=num_pages)]


def to_chapters_from_starts(starts: list[ChapterStart] | tuple[ChapterStart, ...], num_pages: int) -> list[Chapter]:
    """Build chapters from start pages.

    Start pages are floored and clamped to `[1, num_pages]`. When two starts
    share a page, the later one in iteration order keeps its title. Fewer than
    two unique starts collapse to one chapter spanning the document.
    """

    titles_by_page: dict[int, str] = {}
    for start in starts:
        if not math.isfinite(start.page):
            continue
        page = max(1, min(num_pages, math.floor(start.page)))
        titles_by_page[page] = clean_title(start.title, fallback="")

    unique = sorted(titles_by_page.items())
    if len(unique) < 2:
        return single_chapter(num_pages)

    chapters: list[Chapter] = []
    for position, (start_page, title) in enumerate(unique):
        next_start = unique[position + 1][0] if position + 1 < len(unique) else num_pages + 1
        end_page = max(start_page, min(next_start - 1, num_pages))
        chapters.append(
            Chapter(
                index=position + 1,
                title=title or f"Chapter {position + 1}",
                start_page=start_page,
                end_page=end_page,
            )
        )
    return chapters


def with_front_matter(chapters: list[Chapter]) -> list[Chapter]:
    """Prepend a front matter chapter when the first chapter starts after page 1."""

    if not chapters or chapters[0].start_page <= 1:
        return list(chapters)
    front = Chapter(
        index=1,
        title=FRONT_MATTER_TITLE,
        start_page=1,
        end_page=chapters[0].start_page - 1,
    )
    return [front] + [
        Chapter(
            index=chapter.index + 1,
            title=chapter.title,
            start_page=chapter.start_page,
            end_page=chapter.end_page,
        )
        for chapter in chapters
    ]


def confidence_for(chapter_count: int, heading_count: int) -> float:
    if chapter_count >= 3:
        confidence = 0.9
    elif chapter_count >= 2:
        confidence = 0.75
    elif heading_count:
        confidence = 0.6
    else:
        confidence = 0.35
    return max(0.0, min(1.0, confidence))


class ChapterSegmenter:
    """Segment a document using TOC starts, heading candidates, then legacy headings."""

    def __init__(self, min_toc_starts: int = 2) -> None:
        self.min_toc_starts = min_toc_starts

    def segment(
        self,
        pages: list[Page],
        toc_starts: list[TocEntry],
        headings: list[HeadingCandidate],
    ) -> SegmentationResult:
        """Run the source ladder and return chapters covering every page."""

        num_pages = len(pages)
        if num_pages < 1:
            raise ValueError("Cannot segment a document without pages.")

        chapters: list[Chapter] | None = None
        source = "fallback"
        for candidate_source in self.source_ladder(pages, toc_starts, headings):
            attempt = to_chapters_from_starts(candidate_source.starts, num_pages)
            if len(attempt) >= 2:
                chapters = attempt
                source = candidate_source.name
                break
        if chapters is None:
            chapters = single_chapter(num_pages)

        final = with_front_matter(chapters)
        return SegmentationResult(
            chapters=tuple(final),
            source=source,
            confidence=confidence_for(len(final), len(headings)),
        )

    def source_ladder(
        self,
        pages: list[Page],
        toc_starts: list[TocEntry],
        headings: list[HeadingCandidate],
    ) -> list[StartSource]:
        """Return start sources in priority order.

        A TOC with at least two projected starts outranks heading candidates.
        """

        ladder: list[StartSource] = []
        if len(toc_starts) >= self.min_toc_starts:
            ladder.append(
                StartSource(
                    name="toc",
                    starts=tuple(ChapterStart(entry.page, entry.title) for entry in toc_starts),
                )
            )
        ladder.append(
            StartSource(
                name="headings",
                starts=tuple(ChapterStart(item.page, item.title) for item in headings),
            )
        )
        ladder.append(StartSource(name="legacy", starts=tuple(self.legacy_starts(pages))))
        return ladder

    def legacy_starts(self, pages: list[Page]) -> list[ChapterStart]:
        starts: list[ChapterStart] = []
        for page in pages:
            prefix = " ".join(page.text.split()[:_LEGACY_PREFIX_WORDS]).strip()
            if looks_like_heading_legacy(prefix):
                starts.append(ChapterStart(page=page.page_number, title=clean_title(prefix)))
        return starts
