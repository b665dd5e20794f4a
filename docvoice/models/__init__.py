"""Shared typed data models for docvoice.

This package contains dataclasses used across pipeline modules to avoid
cross-module coupling and circular imports.
"""

from .datatypes import (
    SCORED_DOC_TYPES,
    Chapter,
    ChapterDetection,
    DocType,
    DocTypeResult,
    ExtractedDocument,
    HeadingCandidate,
    LayoutLine,
    Page,
    PreparedChapter,
    RenderedChapter,
    RenderRequest,
    TocDetection,
    TocEntry,
    normalize_doc_type,
)

__all__ = [
    "SCORED_DOC_TYPES",
    "Chapter",
    "ChapterDetection",
    "DocType",
    "DocTypeResult",
    "ExtractedDocument",
    "HeadingCandidate",
    "LayoutLine",
    "Page",
    "PreparedChapter",
    "RenderedChapter",
    "RenderRequest",
    "TocDetection",
    "TocEntry",
    "normalize_doc_type",
]
