"""Input/output stage components for docvoice.

This package contains PDF page extraction and artifact storage used by the
pipeline.
"""

from .pdf_text_extractor import PdfTextExtractor
from .storage import ArtifactStore, document_from_payload, document_to_payload

__all__ = ["ArtifactStore", "PdfTextExtractor", "document_from_payload", "document_to_payload"]
