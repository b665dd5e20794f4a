"""Shared pytest fixtures for the full docvoice test suite."""

from __future__ import annotations

from pathlib import Path

import pytest

from tests.fixture_pages import write_text_pdf

_BODY_ROW = "The harbor crew logged every crate that crossed the long stone pier today."


@pytest.fixture
def chaptered_pdf_path(tmp_path: Path) -> Path:
    """Write a six-page PDF with two large-font chapter headings on pages 2 and 4."""

    body = [(_BODY_ROW, 11.0), ("Tides were calm and the weather held for the whole shift.", 11.0)]
    pages = [
        [("Harbor Notes", 20.0), ("A field journal of the eastern docks.", 11.0)],
        [("Chapter 1 Arrival", 24.0)] + body,
        body,
        [("Chapter 2 Departure", 24.0)] + body,
        body,
        body,
    ]
    return write_text_pdf(tmp_path / "harbor.pdf", pages)
