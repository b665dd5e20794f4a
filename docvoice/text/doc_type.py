"""Document archetype classification.

Responsibilities:
- Score a document against fixed archetypes from lexical and layout signals.
- Report `unknown` when no archetype reaches the confidence floor.
"""

from __future__ import annotations

from dataclasses import dataclass
import re

from ..models.datatypes import SCORED_DOC_TYPES, DocTypeResult, Page
from .lines import count_words

_SAMPLE_PAGES = 5
_MIN_WINNING_SCORE = 2

_BULLET_LINE_RE = re.compile(r"^[ \t]*[-*•●▪◦]")


@dataclass(frozen=True, slots=True)
class _LexicalSignal:
    doc_type: str
    pattern: re.Pattern[str]
    weight: int


_LEXICAL_SIGNALS: tuple[_LexicalSignal, ...] = (
    _LexicalSignal("book", re.compile(r"\btable of contents\b"), 3),
    _LexicalSignal("book", re.compile(r"\bcontents\b"), 1),
    _LexicalSignal("book", re.compile(r"\bchapter\b"), 2),
    _LexicalSignal("book", re.compile(r"\bprologue\b|\bepilogue\b"), 2),
    _LexicalSignal("paper", re.compile(r"\babstract\b"), 3),
    _LexicalSignal("paper", re.compile(r"\breferences\b|\bbibliography\b"), 2),
    _LexicalSignal(
        "paper",
        re.compile(r"\bintroduction\b|\bmethodology\b|\bresults\b|\bdiscussion\b"),
        1,
    ),
    _LexicalSignal("report", re.compile(r"\bexecutive summary\b"), 3),
    _LexicalSignal("report", re.compile(r"\bfindings\b|\brecommendations\b|\bconclusion\b"), 2),
    _LexicalSignal(
        "manual",
        re.compile(r"\binstallation\b|\bsetup\b|\btroubleshooting\b|\bwarning\b"),
        2,
    ),
    _LexicalSignal("manual", re.compile(r"\bstep\s+\d+\b"), 2),
)


class DocTypeClassifier:
    """Classify documents as book, report, paper, slides, manual or unknown."""

    def __init__(
        self,
        sparse_words_per_page: float = 90.0,
        short_line_ratio: float = 0.45,
        bullet_lines: int = 8,
    ) -> None:
        self.sparse_words_per_page = sparse_words_per_page
        self.short_line_ratio = short_line_ratio
        self.bullet_lines = bullet_lines

    def classify(self, pages: list[Page], toc_page_number: int | None = None) -> DocTypeResult:
        """Score the leading pages (plus the contents page) and pick an archetype.

        Equal scores resolve to the earliest label in `SCORED_DOC_TYPES`.
        """

        head_pages = list(pages[:_SAMPLE_PAGES])
        toc_page = None
        if toc_page_number:
            toc_page = next(
                (page for page in pages if page.page_number == toc_page_number),
                None,
            )
        sample_pages = head_pages + ([toc_page] if toc_page is not None else [])
        sample_text = "\n\n".join(
            [page.text for page in head_pages] + [toc_page.text if toc_page else ""]
        ).lower()

        scores = {doc_type: 0 for doc_type in SCORED_DOC_TYPES}
        for signal in _LEXICAL_SIGNALS:
            scores[signal.doc_type] += len(signal.pattern.findall(sample_text)) * signal.weight

        lines = self._sample_lines(sample_pages)
        words_per_page = (
            sum(count_words(page.text) for page in head_pages) / len(head_pages)
            if head_pages
            else 0.0
        )
        if 0 < words_per_page < self.sparse_words_per_page:
            scores["slides"] += 3
        if self._short_line_ratio(lines) > self.short_line_ratio:
            scores["slides"] += 2
        if sum(1 for line in lines if _BULLET_LINE_RE.match(line)) >= self.bullet_lines:
            scores["slides"] += 2

        best_type, best_score = sorted(scores.items(), key=lambda item: -item[1])[0]
        if best_score < _MIN_WINNING_SCORE:
            return DocTypeResult(doc_type="unknown", scores=scores)
        return DocTypeResult(doc_type=best_type, scores=scores)  # type: ignore[arg-type]

    def _sample_lines(self, pages: list[Page]) -> list[str]:
        """Collect layout rows, or newline-split text for pages without layout."""

        lines: list[str] = []
        for page in pages:
            if page.lines:
                lines.extend(line.text for line in page.lines)
            else:
                lines.extend(page.text.split("\n"))
        return [line.strip() for line in lines if line.strip()]

    def _short_line_ratio(self, lines: list[str]) -> float:
        if not lines:
            return 0.0
        short_lines = sum(1 for line in lines if len(line.split()) <= 6)
        return short_lines / len(lines)
