"""Structure inference and narration text components.

This package provides document classification, heading and contents
detection, chapter segmentation, narration cleanup and byte-bounded chunking.
"""

from .chunking import ByteBudgetChunker
from .cleaners import (
    CollapseParagraphs,
    CollapseWhitespace,
    ConvertBullets,
    ExpandAbbreviations,
    FixHyphenation,
    NormalizeLineEndings,
    RemoveHeadersFooters,
    RemovePageNumbers,
    TextCleaner,
)
from .doc_type import DocTypeClassifier
from .headings import HeadingScorer
from .normalizer import AudioTextNormalizer
from .segmenter import ChapterSegmenter
from .toc import TocExtractor

__all__ = [
    "AudioTextNormalizer",
    "ByteBudgetChunker",
    "ChapterSegmenter",
    "CollapseParagraphs",
    "CollapseWhitespace",
    "ConvertBullets",
    "DocTypeClassifier",
    "ExpandAbbreviations",
    "FixHyphenation",
    "HeadingScorer",
    "NormalizeLineEndings",
    "RemoveHeadersFooters",
    "RemovePageNumbers",
    "TextCleaner",
    "TocExtractor",
]
