"""Byte-bounded chunking of narration text.

Responsibilities:
- Split plain text or SSML into parts that each fit a UTF-8 byte budget.
- Keep paragraphs, then sentences, then words intact whenever they fit.
- Fail loudly when an emitted chunk would exceed the budget.
"""

from __future__ import annotations

from dataclasses import dataclass
import math
import re

from ..errors import ChunkingInvariantError
from .ssml import (
    PARAGRAPH_BREAK,
    SPEAK_CLOSE,
    SPEAK_OPEN,
    force_sentence_boundaries,
    paragraph_markup,
    split_sentences,
)

DEFAULT_MAX_CHUNK_BYTES = 4800
MIN_PLAIN_CHUNK_BYTES = 4
MIN_SSML_CHUNK_BYTES = 128

_PARAGRAPH_SPLIT_RE = re.compile(r"\n{2,}")


def utf8_len(text: str) -> int:
    return len(text.encode("utf-8"))


@dataclass(frozen=True, slots=True)
class _Unit:
    """Atomic piece of text and the joiner placed before it inside a chunk."""

    text: str
    separator: str


class ByteBudgetChunker:
    """Greedy chunker over a paragraph, sentence, word and character ladder."""

    _SSML_PART_BYTES = 1200
    _MIN_PLAIN_BYTES = MIN_PLAIN_CHUNK_BYTES
    _MIN_SSML_BYTES = MIN_SSML_CHUNK_BYTES
    _SHRINK_RATIO = 0.8

    def __init__(
        self,
        max_bytes: int = DEFAULT_MAX_CHUNK_BYTES,
        sentence_max_words: int = 28,
    ) -> None:
        if max_bytes < self._MIN_PLAIN_BYTES:
            raise ValueError(f"`max_bytes` must be at least {self._MIN_PLAIN_BYTES}.")
        if sentence_max_words <= 0:
            raise ValueError("`sentence_max_words` must be a positive integer.")
        self.max_bytes = max_bytes
        self.sentence_max_words = sentence_max_words

    def chunk_text(self, text: str) -> list[str]:
        """Split plain text into chunks of at most `max_bytes` UTF-8 bytes.

        Paragraphs inside one chunk stay separated by a blank line; empty input
        yields no chunks.
        """

        units: list[_Unit] = []
        for paragraph in self._paragraphs(text):
            units.extend(self._paragraph_units(paragraph, self.max_bytes, "\n\n"))
        chunks = self._pack(units, self.max_bytes)
        self._verify(chunks)
        return chunks

    def chunk_ssml(self, text: str) -> list[str]:
        """Split text into `<speak>` documents of at most `max_bytes` bytes.

        Byte cost is measured on the tagged markup. Paragraph blocks are joined
        with pause markers; a paragraph whose own markup is too large is first
        cut into smaller plain parts, each rendered as its own block.
        """

        if self.max_bytes < self._MIN_SSML_BYTES:
            raise ValueError(f"SSML chunking needs `max_bytes` of at least {self._MIN_SSML_BYTES}.")

        blocks: list[str] = []
        for paragraph in self._paragraphs(text):
            normalized = force_sentence_boundaries(paragraph, self.sentence_max_words)
            if normalized:
                blocks.extend(self._ssml_blocks(normalized))

        wrapper_bytes = utf8_len(SPEAK_OPEN) + utf8_len(SPEAK_CLOSE)
        break_bytes = utf8_len(PARAGRAPH_BREAK)
        chunks: list[str] = []
        current: list[str] = []
        current_bytes = 0
        for block in blocks:
            block_bytes = utf8_len(block)
            if current:
                candidate_bytes = current_bytes + break_bytes + block_bytes
            else:
                candidate_bytes = wrapper_bytes + block_bytes
            if candidate_bytes <= self.max_bytes:
                current.append(block)
                current_bytes = candidate_bytes
                continue
            if current:
                chunks.append(self._wrap(current))
            current = [block]
            current_bytes = wrapper_bytes + block_bytes
            if current_bytes > self.max_bytes:
                raise ChunkingInvariantError(
                    f"Single SSML paragraph needs {current_bytes} bytes; budget is {self.max_bytes}."
                )
        if current:
            chunks.append(self._wrap(current))

        self._verify(chunks)
        return chunks

    def _ssml_blocks(self, paragraph: str) -> list[str]:
        markup = paragraph_markup(paragraph, self.sentence_max_words)
        if self._fits_wrapped(markup):
            return [markup]

        budget = min(self._SSML_PART_BYTES, self.max_bytes)
        while True:
            parts = self._pack(self._paragraph_units(paragraph, budget, " "), budget)
            blocks = [paragraph_markup(part, self.sentence_max_words) for part in parts]
            blocks = [block for block in blocks if block]
            # Escaping can grow a part past the budget; halve until every block fits.
            if all(self._fits_wrapped(block) for block in blocks) or budget <= self._MIN_PLAIN_BYTES:
                return blocks
            budget = max(self._MIN_PLAIN_BYTES, budget // 2)

    def _fits_wrapped(self, block: str) -> bool:
        return utf8_len(SPEAK_OPEN) + utf8_len(block) + utf8_len(SPEAK_CLOSE) <= self.max_bytes

    def _wrap(self, blocks: list[str]) -> str:
        return f"{SPEAK_OPEN}{PARAGRAPH_BREAK.join(blocks)}{SPEAK_CLOSE}"

    def _paragraphs(self, text: str) -> list[str]:
        return [part.strip() for part in _PARAGRAPH_SPLIT_RE.split(text or "") if part.strip()]

    def _paragraph_units(self, paragraph: str, budget: int, lead_separator: str) -> list[_Unit]:
        """Cut one paragraph into the coarsest units that each fit the budget."""

        if utf8_len(paragraph) <= budget:
            return [_Unit(paragraph, lead_separator)]

        units: list[_Unit] = []
        separator = lead_separator
        for sentence in split_sentences(paragraph):
            if utf8_len(sentence) <= budget:
                units.append(_Unit(sentence, separator))
                separator = " "
                continue
            for word in sentence.split():
                if utf8_len(word) <= budget:
                    units.append(_Unit(word, separator))
                else:
                    pieces = self._force_split(word, budget)
                    units.append(_Unit(pieces[0], separator))
                    units.extend(_Unit(piece, "") for piece in pieces[1:])
                separator = " "
        return units

    def _force_split(self, token: str, budget: int) -> list[str]:
        """Split an unbreakable token by characters, shrinking slices by 20% until they fit."""

        pieces: list[str] = []
        remaining = token
        while utf8_len(remaining) > budget:
            slice_len = len(remaining)
            while slice_len > 1 and utf8_len(remaining[:slice_len]) > budget:
                slice_len = math.floor(slice_len * self._SHRINK_RATIO)
            piece = remaining[: max(1, slice_len)]
            pieces.append(piece)
            remaining = remaining[len(piece) :]
        if remaining:
            pieces.append(remaining)
        return pieces

    def _pack(self, units: list[_Unit], budget: int) -> list[str]:
        """Greedily fill chunks, starting a new chunk when the next unit would overflow."""

        chunks: list[str] = []
        current = ""
        for unit in units:
            candidate = f"{current}{unit.separator}{unit.text}" if current else unit.text
            if utf8_len(candidate) <= budget:
                current = candidate
                continue
            if current:
                chunks.append(current)
            current = unit.text
        if current:
            chunks.append(current)
        return chunks

    def _verify(self, chunks: list[str]) -> None:
        for position, chunk in enumerate(chunks):
            size = utf8_len(chunk)
            if size > self.max_bytes:
                raise ChunkingInvariantError(
                    f"Chunk {position + 1} is {size} bytes; budget is {self.max_bytes}."
                )
