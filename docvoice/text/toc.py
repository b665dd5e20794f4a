"""Table-of-contents detection and page-offset inference.

Responsibilities:
- Find a contents page among the leading pages and parse its entries.
- Infer the constant offset between printed and extracted page numbers.
- Project entries into the extracted page sequence.
"""

from __future__ import annotations

from collections import Counter
import re

from ..models.datatypes import HeadingCandidate, Page, TocDetection, TocEntry
from .lines import clean_title, normalize_line, text_to_lines

_SCAN_PAGES = 8
_MAX_LINES_PER_PAGE = 80
_MIN_TRAILING_NUMBER_DENSITY = 0.18
_MIN_ENTRIES = 3

_CONTENTS_MARKER_RE = re.compile(r"\btable of contents\b|\bcontents\b", re.IGNORECASE)
_TRAILING_NUMBER_RE = re.compile(r"\b\d{1,4}\s*$")
_ENTRY_PATTERNS = (
    re.compile(r"^(.+?)\.{2,}\s*(\d{1,4})\s*$"),
    re.compile(r"^(.+?\D)\s+(\d{1,4})\s*$"),
)


class TocExtractor:
    """Detect a printed contents listing and map it onto extracted pages."""

    def detect(self, pages: list[Page]) -> TocDetection | None:
        """Return the first leading page that parses as a contents listing.

        A page qualifies when it mentions contents, at least 18% of its lines
        end in a 1-4 digit run, and at least 3 entries parse.
        """

        for page in pages[:_SCAN_PAGES]:
            lines = self._page_lines(page)[:_MAX_LINES_PER_PAGE]
            if not lines:
                continue
            if not any(_CONTENTS_MARKER_RE.search(line) for line in lines):
                continue
            trailing = sum(1 for line in lines if _TRAILING_NUMBER_RE.search(line))
            if trailing / max(1, len(lines)) < _MIN_TRAILING_NUMBER_DENSITY:
                continue

            entries = [entry for entry in map(self.parse_entry, lines) if entry is not None]
            if len(entries) >= _MIN_ENTRIES:
                return TocDetection(toc_page=page.page_number, entries=tuple(entries))
        return None

    def parse_entry(self, line: str) -> TocEntry | None:
        """Parse `title .... 12` or `title 12` into an entry."""

        for pattern in _ENTRY_PATTERNS:
            match = pattern.match(line)
            if match is None:
                continue
            page = int(match.group(2))
            if page < 1:
                return None
            return TocEntry(title=clean_title(match.group(1)), page=page)
        return None

    def infer_offset(
        self,
        entries: tuple[TocEntry, ...] | list[TocEntry],
        candidates: list[HeadingCandidate],
    ) -> int:
        """Return the most voted `heading page - printed page` delta, or 0.

        Votes come from entry/heading pairs whose normalized titles contain
        each other. Equal votes resolve to the delta recorded first.
        """

        deltas: Counter[int] = Counter()
        for entry in entries:
            normalized_entry = normalize_line(entry.title)
            if not normalized_entry:
                continue
            for candidate in candidates:
                normalized_heading = normalize_line(candidate.title)
                if not normalized_heading:
                    continue
                if normalized_entry in normalized_heading or normalized_heading in normalized_entry:
                    deltas[candidate.page - entry.page] += 1
        if not deltas:
            return 0
        return deltas.most_common(1)[0][0]

    def project(
        self,
        entries: tuple[TocEntry, ...] | list[TocEntry],
        offset: int,
        num_pages: int,
    ) -> list[TocEntry]:
        """Shift printed pages by the offset, dropping pages outside `[1, num_pages]`."""

        projected: list[TocEntry] = []
        for entry in entries:
            page = entry.page + offset
            if 1 <= page <= num_pages:
                projected.append(TocEntry(title=entry.title, page=page))
        return projected

    def _page_lines(self, page: Page) -> list[str]:
        if page.lines:
            return [line.text.strip() for line in page.lines if line.text.strip()]
        return text_to_lines(page.text)
