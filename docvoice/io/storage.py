"""Artifact storage abstraction.

Responsibilities:
- Provide filesystem storage for the extraction cache and chapter audio.
- Derive write-once, timestamp-based artifact keys.
- Serialize the page text model to and from JSON payloads.
"""

from __future__ import annotations

import json
from pathlib import Path
import re
import time
from typing import Any, Callable, Mapping

from ..models.datatypes import ExtractedDocument, LayoutLine, Page, normalize_doc_type


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


def safe_audio_title(title: str) -> str:
    """Strip characters unsafe in file names and cap the title at 80 characters."""

    cleaned = re.sub(r"[^\w.\- ]+", "", title or "")
    cleaned = re.sub(r"\s+", " ", cleaned).strip()[:80]
    return cleaned or "Chapter"


class ArtifactStore:
    """Filesystem-backed artifact store."""

    def __init__(self, root: Path, clock_ms: Callable[[], int] = _now_ms) -> None:
        """Initialize the store with a root output directory."""

        self.root = root
        self.clock_ms = clock_ms

    def extraction_key(self) -> Path:
        return Path("extracted") / f"{self.clock_ms()}-pages.json"

    def chapter_audio_key(self, chapter_index: int, chapter_title: str) -> Path:
        return Path("chapters") / (
            f"{self.clock_ms()}-ch{chapter_index:02d}-{safe_audio_title(chapter_title)}.mp3"
        )

    def resolve(self, relative_path: Path) -> Path:
        return relative_path if relative_path.is_absolute() else self.root / relative_path

    def save_json(self, relative_path: Path, payload: Mapping[str, Any]) -> Path:
        """Save JSON-serializable payload and return final path."""

        path = self.resolve(relative_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            json.dumps(payload, ensure_ascii=False, indent=2, sort_keys=True),
            encoding="utf-8",
        )
        return path

    def load_json(self, relative_path: Path) -> Any:
        """Load a JSON payload from artifact storage."""

        return json.loads(self.resolve(relative_path).read_text(encoding="utf-8"))

    def save_audio(self, relative_path: Path, data: bytes) -> Path:
        """Save audio bytes and return final path."""

        path = self.resolve(relative_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        return path


def document_to_payload(document: ExtractedDocument) -> dict[str, Any]:
    """Serialize an extracted document for the extraction cache."""

    return {
        "numPages": document.num_pages,
        "docType": document.doc_type,
        "pages": [
            {
                "pageNumber": page.page_number,
                "text": page.text,
                "maxFontSize": page.max_font_size,
                "lines": [
                    {
                        "text": line.text,
                        "fontSize": line.font_size,
                        "indent": line.indent,
                        "fontName": line.font_name,
                    }
                    for line in page.lines
                ],
            }
            for page in document.pages
        ],
    }


def document_from_payload(payload: Any) -> ExtractedDocument:
    """Rebuild an extracted document from a cache payload.

    Raises:
        ValueError: The payload does not describe a contiguous page sequence.
    """

    if not isinstance(payload, Mapping) or not isinstance(payload.get("pages"), list):
        raise ValueError("Extraction payload must contain a `pages` list.")

    pages: list[Page] = []
    for raw_page in payload["pages"]:
        if not isinstance(raw_page, Mapping):
            raise ValueError("Extraction payload pages must be objects.")
        lines = tuple(
            LayoutLine(
                text=str(raw_line.get("text", "")),
                font_size=float(raw_line.get("fontSize") or 0.0),
                indent=float(raw_line.get("indent") or 0.0),
                font_name=raw_line.get("fontName"),
            )
            for raw_line in raw_page.get("lines") or []
            if isinstance(raw_line, Mapping) and str(raw_line.get("text", "")).strip()
        )
        pages.append(
            Page(
                page_number=int(raw_page["pageNumber"]),
                text=str(raw_page.get("text") or ""),
                lines=lines,
                max_font_size=float(raw_page.get("maxFontSize") or 0.0),
            )
        )

    raw_doc_type = payload.get("docType")
    document = ExtractedDocument(
        pages=tuple(pages),
        doc_type=normalize_doc_type(raw_doc_type) if raw_doc_type else None,
    )
    document.validate()
    return document
