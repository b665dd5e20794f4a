"""Unit tests for byte-bounded plain-text and SSML chunking."""

from __future__ import annotations

import pytest

from docvoice.text.chunking import ByteBudgetChunker, utf8_len
from docvoice.text.ssml import escape_ssml_text, force_sentence_boundaries, paragraph_markup


def test_long_unpunctuated_text_splits_on_words_within_budget() -> None:
    text = ("alpha " * 2000).strip()

    chunks = ByteBudgetChunker(max_bytes=4800).chunk_text(text)

    assert len(chunks) == 3
    assert all(utf8_len(chunk) <= 4800 for chunk in chunks)
    assert " ".join(chunks) == text


def test_multibyte_token_is_force_split_by_characters() -> None:
    """A single 6000-byte word is cut into slices that each fit the budget."""

    token = "ž" * 3000

    chunks = ByteBudgetChunker(max_bytes=4800).chunk_text(token)

    assert [len(chunk) for chunk in chunks] == [2400, 600]
    assert "".join(chunks) == token


def test_paragraphs_that_fit_share_a_chunk() -> None:
    chunks = ByteBudgetChunker().chunk_text("Para one.\n\n\nPara two.")

    assert chunks == ["Para one.\n\nPara two."]


def test_sentences_are_kept_whole_when_they_fit() -> None:
    sentence = "The tide turned before the fishermen finished mending their nets."
    text = " ".join([sentence] * 6)

    chunks = ByteBudgetChunker(max_bytes=150).chunk_text(text)

    assert chunks == [f"{sentence} {sentence}"] * 3


def test_empty_input_yields_no_chunks() -> None:
    chunker = ByteBudgetChunker()

    assert chunker.chunk_text("") == []
    assert chunker.chunk_text("  \n\n  ") == []
    assert chunker.chunk_ssml("") == []


def test_chunker_rejects_degenerate_budgets() -> None:
    with pytest.raises(ValueError):
        ByteBudgetChunker(max_bytes=3)
    with pytest.raises(ValueError):
        ByteBudgetChunker(sentence_max_words=0)
    with pytest.raises(ValueError):
        ByteBudgetChunker(max_bytes=100).chunk_ssml("Some text.")


def test_ssml_chunk_wraps_sentences_and_escapes_text() -> None:
    chunks = ByteBudgetChunker().chunk_ssml(
        "First sentence here. Second one & more.\n\nNext paragraph <b>."
    )

    assert chunks == [
        "<speak>"
        "<p><s>First sentence here.</s><s>Second one &amp; more.</s></p>"
        '<break time="250ms"/>'
        "<p><s>Next paragraph &lt;b&gt;.</s></p>"
        "</speak>"
    ]


def test_ssml_chunks_respect_budget_measured_on_markup() -> None:
    """Escaping grows the payload, so the budget applies to the tagged bytes."""

    paragraph = " ".join(f"Rock & roll <take {index}> began \"loud\"." for index in range(60))
    text = "\n\n".join([paragraph] * 3)

    chunks = ByteBudgetChunker(max_bytes=600).chunk_ssml(text)

    assert len(chunks) > 3
    for chunk in chunks:
        assert utf8_len(chunk) <= 600
        assert chunk.startswith("<speak><p>")
        assert chunk.endswith("</p></speak>")
        assert "& " not in chunk


def test_forced_sentence_boundaries_break_long_runs() -> None:
    assert force_sentence_boundaries("a b c d e", max_words=2) == "a b. c d. e"
    assert force_sentence_boundaries("one two. three", max_words=2) == "one two. three"
    assert force_sentence_boundaries("   ") == ""


def test_ssml_helpers_escape_and_skip_empty_paragraphs() -> None:
    assert escape_ssml_text("Tom & \"Jerry\" <3 it's") == "Tom &amp; &quot;Jerry&quot; &lt;3 it&apos;s"
    assert paragraph_markup("Hello there.") == "<p><s>Hello there.</s></p>"
    assert paragraph_markup("   ") == ""
