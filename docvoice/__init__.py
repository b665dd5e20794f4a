"""Top-level package for docvoice.

This package turns text-based PDF documents into narrated chapter audio:
it infers the document type and chapter boundaries, normalizes chapter text
for speech, and splits it into byte-bounded synthesis requests. The main
orchestration entry point is `DocvoicePipeline`.
"""

from .pipeline import DocvoicePipeline

__all__ = ["DocvoicePipeline", "__version__"]

__version__ = "0.1.0"
