"""Deterministic text cleaning rules for narration.

Responsibilities:
- Provide composable cleanup rules for PDF-derived text artifacts.
- Keep the default rule order fixed; later rules rely on earlier ones.
- Keep cleaning idempotent so cleaned text survives a second pass unchanged.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
import math
import re
from typing import Protocol


class CleanerRule(Protocol):
    """Protocol for text cleaning rules."""

    def apply(self, text: str) -> str:
        """Apply a single cleaning transformation."""


class NormalizeLineEndings:
    """Convert CR/CRLF line endings to LF and trim every line."""

    def apply(self, text: str) -> str:
        text = (text or "").replace("\r\n", "\n").replace("\r", "\n")
        return "\n".join(line.strip() for line in text.split("\n"))


class RemovePageNumbers:
    """Remove lines that only carry a page number or a `page N` marker."""

    _PAGE_LINE_RE = re.compile(r"^(?:\d+|page\s+\d+)$", re.IGNORECASE)

    def apply(self, text: str) -> str:
        return "\n".join(
            line for line in text.split("\n") if not self._PAGE_LINE_RE.match(line.strip())
        )


class RemoveHeadersFooters:
    """Remove repeated header/footer lines by in-text frequency.

    A trimmed line of at least `min_chars` characters is dropped when it occurs
    in at least `max(min_count, ratio * non-empty lines)` lines.
    """

    def __init__(self, ratio: float = 0.2, min_count: int = 3, min_chars: int = 12) -> None:
        self.ratio = ratio
        self.min_count = min_count
        self.min_chars = min_chars
        self.last_removed_count = 0

    def apply(self, text: str) -> str:
        lines = text.split("\n")
        non_empty = [line.strip() for line in lines if line.strip()]
        counts = Counter(non_empty)
        threshold = max(self.min_count, math.floor(len(non_empty) * self.ratio))
        repeated = {
            line
            for line, count in counts.items()
            if len(line) >= self.min_chars and count >= threshold
        }
        kept = [line for line in lines if line.strip() not in repeated]
        self.last_removed_count = len(lines) - len(kept)
        return "\n".join(kept)


class FixHyphenation:
    """Repair line-break hyphenation artifacts."""

    def apply(self, text: str) -> str:
        """Join words split with hyphen + newline."""

        return re.sub(r"(\w)-\n(\w)", r"\1\2", text)


class CollapseParagraphs:
    """Keep blank-line paragraph breaks and join wrapped lines with a space."""

    def apply(self, text: str) -> str:
        text = re.sub(r"\n{3,}", "\n\n", text)
        return re.sub(r"(?<=[^\n])\n(?=[^\n])", " ", text)


class ConvertBullets:
    """Turn bullet glyphs and long dashes into `-` and read list items as `Item:`."""

    _BULLET_RE = re.compile("[•●▪◦·]\ufe0e?")
    _DASH_RE = re.compile(r"[—–]|-{2,}")
    _LIST_ITEM_RE = re.compile(r"^[ \t]*-[ \t]+", re.MULTILINE)

    def apply(self, text: str) -> str:
        text = self._BULLET_RE.sub("-", text)
        text = self._DASH_RE.sub("-", text)
        return self._LIST_ITEM_RE.sub("Item: ", text)


class CollapseWhitespace:
    """Normalize repeated horizontal whitespace and trim the text."""

    def apply(self, text: str) -> str:
        text = re.sub(r"[ \t]+", " ", text)
        text = re.sub(r" *\n *", "\n", text)
        return text.strip()


class ExpandAbbreviations:
    """Spell out abbreviations that read poorly aloud and calm repeated `!`/`?`."""

    _REPLACEMENTS: tuple[tuple[re.Pattern[str], str], ...] = (
        (re.compile(r"\be\.g\.(?!\w)", re.IGNORECASE), "for example"),
        (re.compile(r"\bi\.e\.(?!\w)", re.IGNORECASE), "that is"),
        (re.compile(r"\bvs\.(?!\w)", re.IGNORECASE), "versus"),
        (re.compile(r"\bw/[ \t]*(?=\w)", re.IGNORECASE), "with "),
        # A sentence-final `etc.` keeps its period as the sentence terminator.
        (re.compile(r"\betc\.(?=[ \t]*(?:\n|$)|[ \t]+[A-Z])", re.IGNORECASE), "etcetera."),
        (re.compile(r"\betc\.(?!\w)", re.IGNORECASE), "etcetera"),
        (re.compile(r"([!?])\1+"), r"\1"),
        (re.compile(r"[ \t]{2,}"), " "),
    )

    def apply(self, text: str) -> str:
        for pattern, replacement in self._REPLACEMENTS:
            text = pattern.sub(replacement, text)
        return text.strip()


@dataclass(frozen=True, slots=True)
class TextCleaningReport:
    """Structured output of deterministic narration cleanup."""

    cleaned_text: str
    boilerplate_lines_removed: int


class TextCleaner:
    """Apply a sequence of deterministic cleaner rules."""

    def __init__(self, rules: list[CleanerRule] | None = None) -> None:
        """Initialize with custom rules or the default narration rule sequence."""

        self.rules = rules or [
            NormalizeLineEndings(),
            RemovePageNumbers(),
            RemoveHeadersFooters(),
            FixHyphenation(),
            CollapseParagraphs(),
            ConvertBullets(),
            CollapseWhitespace(),
            ExpandAbbreviations(),
        ]
        self._boilerplate_rule = next(
            (rule for rule in self.rules if isinstance(rule, RemoveHeadersFooters)),
            None,
        )

    def clean_with_report(self, text: str) -> TextCleaningReport:
        """Apply the rules until the text stops changing and report diagnostics.

        Boilerplate removal lowers the line count and with it the repeat
        threshold, so one pass is not always a fixed point. The reported count
        covers every pass.
        """

        current = self._apply_rules(text or "")
        removed = self._last_boilerplate_count()
        while True:
            again = self._apply_rules(current)
            removed += self._last_boilerplate_count()
            if again == current:
                break
            current = again
        return TextCleaningReport(cleaned_text=current, boilerplate_lines_removed=removed)

    def _apply_rules(self, text: str) -> str:
        for rule in self.rules:
            text = rule.apply(text)
        return text

    def _last_boilerplate_count(self) -> int:
        return self._boilerplate_rule.last_removed_count if self._boilerplate_rule else 0

    def clean(self, text: str) -> str:
        """Apply all configured rules in order."""

        return self.clean_with_report(text).cleaned_text
