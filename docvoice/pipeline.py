"""Pipeline orchestration for docvoice.

Responsibilities:
- Define the stage order for chapter detection and chapter rendering.
- Cache extracted pages so render requests can skip re-extraction.
- Emit stage logs and map failures to stage-scoped errors.

Key types:
- `DocvoicePipeline`: orchestration facade.
"""

from __future__ import annotations

from pathlib import Path
from time import sleep
from typing import Callable, Sequence

from .config import DocvoiceConfig
from .errors import OversizeChapterError, PipelineStageError
from .io.pdf_text_extractor import PdfTextExtractor
from .io.storage import ArtifactStore, document_from_payload, document_to_payload
from .models.datatypes import (
    ChapterDetection,
    DocType,
    ExtractedDocument,
    Page,
    PreparedChapter,
    RenderedChapter,
    RenderRequest,
    normalize_doc_type,
)
from .telemetry.logger import RunLogger
from .text.chunking import ByteBudgetChunker
from .text.doc_type import DocTypeClassifier
from .text.headings import HeadingScorer, build_common_line_set
from .text.normalizer import AudioTextNormalizer, detect_visual_pages
from .text.segmenter import ChapterSegmenter
from .text.toc import TocExtractor
from .tts.clients import SpeechClient, create_speech_client
from .tts.synthesizer import ChapterSynthesizer
from .tts.voices import resolve_voice


class DocvoicePipeline:
    """Coordinate detection and render stages for one document."""

    def __init__(
        self,
        config: DocvoiceConfig | None = None,
        *,
        extractor: PdfTextExtractor | None = None,
        store: ArtifactStore | None = None,
        speech_client: SpeechClient | None = None,
        logger: RunLogger | None = None,
        sleeper: Callable[[float], None] = sleep,
    ) -> None:
        self.config = config or DocvoiceConfig()
        self.config.validate()
        self.extractor = extractor or PdfTextExtractor()
        self.store = store or ArtifactStore(self.config.output_dir)
        self.logger = logger or RunLogger()
        self.sleeper = sleeper
        self._speech_client = speech_client

        self.classifier = DocTypeClassifier()
        self.heading_scorer = HeadingScorer()
        self.toc_extractor = TocExtractor()
        self.segmenter = ChapterSegmenter()
        self.normalizer = AudioTextNormalizer()

    @property
    def speech_client(self) -> SpeechClient:
        """Return the injected speech client or build one from configuration."""

        if self._speech_client is None:
            self._speech_client = create_speech_client(
                self.config.provider_tts,
                self.config.resolved_api_key(),
            )
        return self._speech_client

    def detect_chapters(self, pdf_path: Path) -> ChapterDetection:
        """Extract pages, detect chapters and cache the extraction payload."""

        document = self._extract(pdf_path)
        detection = self.analyze_document(document)
        extracted_path = self._write_cache(
            ExtractedDocument(pages=document.pages, doc_type=detection.doc_type)
        )
        return ChapterDetection(
            num_pages=detection.num_pages,
            chapters=detection.chapters,
            doc_type=detection.doc_type,
            confidence=detection.confidence,
            extracted_path=extracted_path,
            diagnostics=detection.diagnostics,
        )

    def analyze_document(self, document: ExtractedDocument) -> ChapterDetection:
        """Run classification and segmentation over already-extracted pages."""

        pages = list(document.pages)
        self.logger.log_stage_start("detect", pages=len(pages))
        try:
            common_lines = build_common_line_set(pages)
            headings = self.heading_scorer.detect(pages, common_lines)
            toc = self.toc_extractor.detect(pages)
            offset = 0
            toc_starts = []
            if toc is not None:
                offset = self.toc_extractor.infer_offset(toc.entries, headings)
                toc_starts = self.toc_extractor.project(toc.entries, offset, len(pages))
            segmentation = self.segmenter.segment(pages, toc_starts, headings)
            doc_type = self.classifier.classify(
                pages, toc.toc_page if toc is not None else None
            ).doc_type
        except ValueError as exc:
            self.logger.log_stage_failure("detect", type(exc).__name__)
            raise PipelineStageError(
                stage="detect",
                detail=f"Chapter detection failed: {exc}",
                hint="Confirm the document contains at least one page of text.",
            ) from exc

        diagnostics = {
            "headings_detected": len(headings),
            "toc_detected": toc is not None,
            "toc_entries": len(toc.entries) if toc is not None else 0,
            "toc_offset": offset,
            "used_toc": segmentation.source == "toc",
            "chapter_source": segmentation.source,
        }
        self.logger.log_stage_complete(
            "detect",
            chapters=len(segmentation.chapters),
            doc_type=doc_type,
            source=segmentation.source,
            headings=len(headings),
        )
        return ChapterDetection(
            num_pages=len(pages),
            chapters=segmentation.chapters,
            doc_type=doc_type,
            confidence=segmentation.confidence,
            diagnostics=diagnostics,
        )

    def load_pages(self, pdf_path: Path, extracted_path: Path | None = None) -> ExtractedDocument:
        """Load pages from the extraction cache, re-extracting when it is unusable."""

        if extracted_path is not None:
            try:
                return document_from_payload(self.store.load_json(extracted_path))
            except (OSError, ValueError, KeyError, TypeError) as exc:
                self.logger.log_stage_warning(
                    "cache", "cache_unreadable", error_type=type(exc).__name__
                )
        return self._extract(pdf_path)

    def prepare_chapter(
        self,
        request: RenderRequest,
        pages: Sequence[Page],
        *,
        cached_doc_type: DocType | None = None,
        markup: bool | None = None,
    ) -> PreparedChapter:
        """Normalize one chapter's pages and split them into dispatchable chunks.

        Args:
            request: Chapter range, index, title and optional doc type.
            pages: Document pages; only those inside the request range are read.
            cached_doc_type: Doc type stored with the extraction cache, if any.
            markup: Force SSML (`True`) or plain (`False`) chunks; defaults to config.

        Raises:
            OversizeChapterError: Normalized text exceeds the chapter ceiling.
            ChunkingInvariantError: A chunk exceeds the byte budget.
        """

        self._validate_request(request)
        doc_type = self._resolve_doc_type(request, pages, cached_doc_type)
        in_range = [
            page for page in pages if request.start_page <= page.page_number <= request.end_page
        ]

        self.logger.log_stage_start("normalize", chapter=request.chapter_index, pages=len(in_range))
        report = self.normalizer.chapter_report(
            in_range,
            doc_type=doc_type,
            chapter_index=request.chapter_index,
            chapter_title=request.chapter_title,
            total_chapters=request.total_chapters or 0,
            include_visuals_note=self.config.include_visuals_note,
        )
        text = report.cleaned_text
        if len(text) > self.config.max_chapter_chars:
            self.logger.log_stage_failure("normalize", "OversizeChapterError")
            raise OversizeChapterError(
                f"Chapter {request.chapter_index} has {len(text)} characters after "
                f"normalization; the limit is {self.config.max_chapter_chars}."
            )
        self.logger.log_stage_complete(
            "normalize",
            chapter=request.chapter_index,
            chars=len(text),
            boilerplate_removed=report.boilerplate_lines_removed,
        )

        use_markup = self.config.use_ssml if markup is None else markup
        self.logger.log_stage_start("chunk", chapter=request.chapter_index, ssml=use_markup)
        try:
            chunker = ByteBudgetChunker(
                max_bytes=self.config.max_chunk_bytes,
                sentence_max_words=self.config.sentence_max_words,
            )
            chunks = chunker.chunk_ssml(text) if use_markup else chunker.chunk_text(text)
        except PipelineStageError as exc:
            self.logger.log_stage_failure("chunk", type(exc).__name__)
            raise
        except ValueError as exc:
            self.logger.log_stage_failure("chunk", type(exc).__name__)
            raise PipelineStageError(
                stage="chunk",
                detail=str(exc),
                hint="Raise max_chunk_bytes or request plain-text chunks.",
            ) from exc
        self.logger.log_stage_complete("chunk", chapter=request.chapter_index, chunks=len(chunks))

        return PreparedChapter(
            text=text,
            chunks=tuple(chunks),
            markup=use_markup,
            visual_pages=tuple(detect_visual_pages(in_range)),
            doc_type=doc_type,
        )

    def render_chapter(
        self,
        request: RenderRequest,
        pdf_path: Path,
        extracted_path: Path | None = None,
        voice: str | None = None,
    ) -> RenderedChapter:
        """Prepare, synthesize and store one chapter as MP3 audio."""

        document = self.load_pages(pdf_path, extracted_path)
        client = self.speech_client
        prepared = self.prepare_chapter(
            request,
            document.pages,
            cached_doc_type=document.doc_type,
            markup=self.config.use_ssml and client.supports_ssml,
        )
        if not prepared.chunks:
            raise PipelineStageError(
                stage="normalize",
                detail=f"Chapter {request.chapter_index} has no narratable text.",
                hint="Check the page range; image-only pages produce no speech.",
            )

        profile = resolve_voice(
            voice,
            default_voice=self.config.tts_voice,
            language_code=self.config.language_code,
            speaking_rate=self.config.speaking_rate,
        )
        synthesizer = ChapterSynthesizer(
            client=client,
            attempts=self.config.synthesis_attempts,
            backoff_seconds=self.config.retry_backoff_seconds,
            dispatch_ceiling_bytes=self.config.dispatch_ceiling_bytes,
            sleeper=self.sleeper,
            logger=self.logger,
        )
        self.logger.log_stage_start(
            "tts", chapter=request.chapter_index, chunks=len(prepared.chunks), voice=profile.provider_voice_id
        )
        try:
            audio = synthesizer.synthesize_chapter(prepared.chunks, profile)
        except PipelineStageError as exc:
            self.logger.log_stage_failure("tts", type(exc).__name__)
            raise
        self.logger.log_stage_complete("tts", chapter=request.chapter_index, bytes=len(audio))

        self.logger.log_stage_start("store", chapter=request.chapter_index)
        try:
            audio_path = self.store.save_audio(
                self.store.chapter_audio_key(request.chapter_index, request.chapter_title),
                audio,
            )
        except OSError as exc:
            self.logger.log_stage_failure("store", type(exc).__name__)
            raise PipelineStageError(
                stage="store",
                detail=f"Could not write chapter audio: {exc}",
                hint="Check that the output directory is writable.",
            ) from exc
        self.logger.log_stage_complete("store", path=audio_path)

        return RenderedChapter(
            chapter_index=request.chapter_index,
            audio_path=audio_path,
            chunk_count=len(prepared.chunks),
            voice_name=profile.provider_voice_id,
            language_code=profile.language,
            byte_size=len(audio),
        )

    def _extract(self, pdf_path: Path) -> ExtractedDocument:
        self.logger.log_stage_start("extract", input=pdf_path.name)
        try:
            document = self.extractor.extract_document(pdf_path)
        except PipelineStageError as exc:
            self.logger.log_stage_failure("extract", type(exc).__name__)
            raise
        skipped = list(getattr(self.extractor, "last_skipped_pages", []))
        if skipped:
            self.logger.log_stage_warning("extract", "pages_skipped", count=len(skipped))
        self.logger.log_stage_complete("extract", pages=document.num_pages)
        return document

    def _write_cache(self, document: ExtractedDocument) -> Path | None:
        """Persist the extraction cache; a failed write only loses the cache."""

        self.logger.log_stage_start("cache", pages=document.num_pages)
        try:
            path = self.store.save_json(self.store.extraction_key(), document_to_payload(document))
        except (OSError, TypeError, ValueError) as exc:
            self.logger.log_stage_warning("cache", "cache_write_failed", error_type=type(exc).__name__)
            return None
        self.logger.log_stage_complete("cache", path=path)
        return path

    def _resolve_doc_type(
        self,
        request: RenderRequest,
        pages: Sequence[Page],
        cached_doc_type: DocType | None,
    ) -> DocType:
        """Use the requested doc type, then the cached one, then re-classify."""

        for candidate in (request.doc_type, cached_doc_type):
            resolved = normalize_doc_type(candidate)
            if resolved != "unknown":
                return resolved
        return self.classifier.classify(list(pages)).doc_type

    @staticmethod
    def _validate_request(request: RenderRequest) -> None:
        if request.start_page < 1 or request.end_page < request.start_page:
            raise PipelineStageError(
                stage="normalize",
                detail=(
                    f"Invalid page range {request.start_page}-{request.end_page} "
                    f"for chapter {request.chapter_index}."
                ),
                hint="Use the start and end pages reported by `docvoice detect`.",
            )
        if request.chapter_index < 1:
            raise PipelineStageError(
                stage="normalize",
                detail=f"Chapter index must be positive, got {request.chapter_index}.",
            )


def detection_to_payload(detection: ChapterDetection) -> dict[str, object]:
    """Serialize a detection result for JSON output."""

    return {
        "numPages": detection.num_pages,
        "chapters": [
            {
                "index": chapter.index,
                "title": chapter.title,
                "startPage": chapter.start_page,
                "endPage": chapter.end_page,
            }
            for chapter in detection.chapters
        ],
        "docType": detection.doc_type,
        "confidence": detection.confidence,
        "extractedPath": str(detection.extracted_path) if detection.extracted_path else None,
        "diagnostics": dict(detection.diagnostics),
    }
