"""SSML markup helpers for sentence-structured narration.

Responsibilities:
- Force sentence boundaries into long unpunctuated runs.
- Escape text and wrap sentences and paragraphs in SSML tags.
"""

from __future__ import annotations

import re

PARAGRAPH_BREAK = '<break time="250ms"/>'
SPEAK_OPEN = "<speak>"
SPEAK_CLOSE = "</speak>"

_SENTENCE_END_RE = re.compile(r"[.!?][\"')\]]*$")
_SPACE_BEFORE_PUNCTUATION_RE = re.compile(r"\s+([.!?,;:])")
_SENTENCE_SPLIT_RE = re.compile(r"(?<=[.!?])\s+")

_ESCAPES = (
    ("&", "&amp;"),
    ("<", "&lt;"),
    (">", "&gt;"),
    ('"', "&quot;"),
    ("'", "&apos;"),
)


def force_sentence_boundaries(text: str, max_words: int = 28) -> str:
    """Insert a period after every `max_words` words that lack terminal punctuation."""

    tokens = (text or "").split()
    if not tokens:
        return ""

    out: list[str] = []
    words_since_boundary = 0
    for token in tokens:
        out.append(token)
        if _SENTENCE_END_RE.search(token):
            words_since_boundary = 0
            continue
        words_since_boundary += 1
        if words_since_boundary >= max_words:
            out.append(".")
            words_since_boundary = 0

    return _SPACE_BEFORE_PUNCTUATION_RE.sub(r"\1", " ".join(out)).strip()


def split_sentences(text: str) -> list[str]:
    return [part.strip() for part in _SENTENCE_SPLIT_RE.split(text or "") if part.strip()]


def escape_ssml_text(text: str) -> str:
    for raw, escaped in _ESCAPES:
        text = text.replace(raw, escaped)
    return text


def paragraph_markup(paragraph: str, max_words: int = 28) -> str:
    """Return `<p>` markup with one `<s>` per sentence, or `""` for empty input."""

    sentences = split_sentences(force_sentence_boundaries(paragraph, max_words))
    if not sentences:
        return ""
    body = "".join(f"<s>{escape_ssml_text(sentence)}</s>" for sentence in sentences)
    return f"<p>{body}</p>"

