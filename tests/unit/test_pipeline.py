"""Unit tests for detection and render orchestration with injected stages."""

from __future__ import annotations

import io
from pathlib import Path

import pytest

from docvoice.config import DocvoiceConfig
from docvoice.errors import OversizeChapterError, PipelineStageError
from docvoice.io.storage import ArtifactStore
from docvoice.models.datatypes import Chapter, ExtractedDocument, RenderRequest
from docvoice.pipeline import DocvoicePipeline, detection_to_payload
from docvoice.telemetry.logger import RunLogger
from docvoice.tts.voices import VoiceProfile
from tests.fixture_pages import document_from_texts

_FILLER = "Field notes for day {day}. The crew logged weather, tides and supplies before moving on."


def _survey_texts(
    first_heading_page: int, second_heading_page: int, headings: tuple[str, str]
) -> list[str]:
    texts = [
        "TABLE OF CONTENTS\nIntroduction .......... 3\nMethods .......... 10\nIndex .......... 99"
    ]
    for page_number in range(2, 13):
        body = _FILLER.format(day=page_number)
        if page_number == first_heading_page:
            body = f"{headings[0]}\n{body}"
        elif page_number == second_heading_page:
            body = f"{headings[1]}\n{body}"
        texts.append(body)
    return texts


class _FakeExtractor:
    def __init__(self, document: ExtractedDocument) -> None:
        self.document = document
        self.calls: list[Path] = []
        self.last_skipped_pages: list[int] = []

    def extract_document(self, pdf_path: Path) -> ExtractedDocument:
        self.calls.append(pdf_path)
        return self.document


class _RecordingClient:
    def __init__(self, supports_ssml: bool = True) -> None:
        self.supports_ssml = supports_ssml
        self.calls: list[tuple[str, VoiceProfile]] = []

    def synthesize(self, text_or_ssml: str, voice: VoiceProfile) -> bytes:
        self.calls.append((text_or_ssml, voice))
        return b"ID3" + str(len(self.calls)).encode("ascii")


def _pipeline(
    tmp_path: Path,
    document: ExtractedDocument | None = None,
    client: _RecordingClient | None = None,
    sink: io.StringIO | None = None,
    **config_values: object,
) -> DocvoicePipeline:
    return DocvoicePipeline(
        DocvoiceConfig(output_dir=tmp_path, **config_values),  # type: ignore[arg-type]
        extractor=_FakeExtractor(document or document_from_texts(["placeholder"])),  # type: ignore[arg-type]
        store=ArtifactStore(tmp_path, clock_ms=lambda: 1700000000000),
        speech_client=client or _RecordingClient(),
        logger=RunLogger(sink=sink or io.StringIO()),
        sleeper=lambda _seconds: None,
    )


def test_contents_page_drives_chapters_with_front_matter(tmp_path: Path) -> None:
    """A contents page with in-range entries wins over the other chapter sources."""

    document = document_from_texts(_survey_texts(3, 10, ("Introduction", "Methods")))

    detection = _pipeline(tmp_path).analyze_document(document)

    assert detection.chapters == (
        Chapter(1, "Front Matter", 1, 2),
        Chapter(2, "Introduction", 3, 9),
        Chapter(3, "Methods", 10, 12),
    )
    assert detection.confidence == 0.9
    assert detection.diagnostics == {
        "headings_detected": 0,
        "toc_detected": True,
        "toc_entries": 3,
        "toc_offset": 0,
        "used_toc": True,
        "chapter_source": "toc",
    }


def test_two_entry_contents_page_is_below_the_detection_minimum(tmp_path: Path) -> None:
    """Contents pages need three parsed entries; two alone leave one document chapter."""

    texts = _survey_texts(3, 10, ("Introduction", "Methods"))
    texts[0] = "TABLE OF CONTENTS\nIntroduction .......... 3\nMethods .......... 10"

    detection = _pipeline(tmp_path).analyze_document(document_from_texts(texts))

    assert detection.chapters == (Chapter(1, "Document", 1, 12),)
    assert detection.diagnostics["toc_detected"] is False
    assert detection.diagnostics["chapter_source"] == "fallback"


def test_contents_offset_is_inferred_from_matching_headings(tmp_path: Path) -> None:
    document = document_from_texts(
        _survey_texts(4, 11, ("Chapter 1 Introduction", "Chapter 2 Methods"))
    )

    detection = _pipeline(tmp_path).analyze_document(document)

    assert detection.diagnostics["toc_offset"] == 1
    spans = [(chapter.title, chapter.start_page, chapter.end_page) for chapter in detection.chapters]
    assert spans == [
        ("Front Matter", 1, 3),
        ("Introduction", 4, 10),
        ("Methods", 11, 12),
    ]


def test_detect_chapters_writes_cache_that_render_can_reuse(tmp_path: Path) -> None:
    document = document_from_texts(_survey_texts(3, 10, ("Introduction", "Methods")))
    pipeline = _pipeline(tmp_path, document)

    detection = pipeline.detect_chapters(tmp_path / "survey.pdf")

    assert detection.extracted_path == tmp_path / "extracted" / "1700000000000-pages.json"
    assert detection.extracted_path.exists()
    cached = pipeline.load_pages(tmp_path / "survey.pdf", detection.extracted_path)
    assert cached.pages == document.pages
    assert cached.doc_type == detection.doc_type
    assert len(pipeline.extractor.calls) == 1  # type: ignore[attr-defined]

    payload = detection_to_payload(detection)
    assert payload["numPages"] == 12
    assert payload["extractedPath"] == str(detection.extracted_path)
    assert payload["chapters"][1] == {  # type: ignore[index]
        "index": 2,
        "title": "Introduction",
        "startPage": 3,
        "endPage": 9,
    }


def test_unreadable_cache_falls_back_to_extraction(tmp_path: Path) -> None:
    sink = io.StringIO()
    pipeline = _pipeline(tmp_path, sink=sink)
    broken = tmp_path / "extracted" / "broken.json"
    broken.parent.mkdir(parents=True)
    broken.write_text("{not json", encoding="utf-8")

    document = pipeline.load_pages(tmp_path / "doc.pdf", broken)

    assert document.pages[0].text == "placeholder"
    assert pipeline.extractor.calls == [tmp_path / "doc.pdf"]  # type: ignore[attr-defined]
    assert "stage=cache event=warning error_type=JSONDecodeError reason=cache_unreadable" in sink.getvalue()


def test_prepare_chapter_builds_ssml_chunks_with_intro(tmp_path: Path) -> None:
    pages = document_from_texts(
        ["cover", "toc", "Introduction\nThe survey began at dawn.", "Crews measured the tide."]
    ).pages
    request = RenderRequest(3, 4, 2, "Introduction", doc_type="book", total_chapters=3)

    prepared = _pipeline(tmp_path).prepare_chapter(request, pages)

    assert prepared.text.startswith("Chapter 2\nIntroduction\n\n")
    assert prepared.markup is True
    assert prepared.doc_type == "book"
    assert prepared.visual_pages == (3, 4)
    assert len(prepared.chunks) == 1
    assert prepared.chunks[0].startswith("<speak><p><s>Chapter 2 Introduction</s></p>")
    assert prepared.chunks[0].endswith("<p><s>Crews measured the tide.</s></p></speak>")


def test_prepare_chapter_plain_chunks_and_cached_doc_type(tmp_path: Path) -> None:
    pages = document_from_texts(["Findings are summarized here.", "More findings."]).pages
    request = RenderRequest(1, 2, 2, "Findings", total_chapters=4)

    prepared = _pipeline(tmp_path).prepare_chapter(
        request, pages, cached_doc_type="report", markup=False
    )

    assert prepared.doc_type == "report"
    assert prepared.chunks == (prepared.text,)
    assert prepared.text.startswith("Section 2\nFindings\n\n")


def test_prepare_chapter_rejects_oversize_text(tmp_path: Path) -> None:
    pages = document_from_texts(["word " * 40]).pages

    with pytest.raises(OversizeChapterError) as exc_info:
        _pipeline(tmp_path, max_chapter_chars=50).prepare_chapter(
            RenderRequest(1, 1, 1, doc_type="book"), pages
        )

    assert exc_info.value.stage == "normalize"


def test_prepare_chapter_logs_removed_boilerplate_lines(tmp_path: Path) -> None:
    header = "Harbor Survey Annual Report"
    pages = document_from_texts(
        [
            f"{header}\nTides were logged at dawn.",
            f"{header}\nCrates left at noon.",
            f"{header}\nThe crew rested.",
        ]
    ).pages
    sink = io.StringIO()

    prepared = _pipeline(tmp_path, sink=sink).prepare_chapter(
        RenderRequest(1, 3, 1, doc_type="book", total_chapters=1), pages, markup=False
    )

    assert header not in prepared.text
    assert "stage=normalize event=complete boilerplate_removed=3 chapter=1" in sink.getvalue()


def test_forced_ssml_below_markup_minimum_fails_at_chunk_stage(tmp_path: Path) -> None:
    pages = document_from_texts(["The survey began at dawn."]).pages
    sink = io.StringIO()
    pipeline = _pipeline(tmp_path, sink=sink, use_ssml=False, max_chunk_bytes=100)

    with pytest.raises(PipelineStageError, match="SSML chunking needs") as exc_info:
        pipeline.prepare_chapter(RenderRequest(1, 1, 1, doc_type="book"), pages, markup=True)

    assert exc_info.value.stage == "chunk"
    assert "stage=chunk event=failure error_type=ValueError" in sink.getvalue()


@pytest.mark.parametrize(
    "request_value",
    [RenderRequest(0, 2, 1), RenderRequest(3, 2, 1), RenderRequest(1, 2, 0)],
)
def test_prepare_chapter_rejects_invalid_requests(
    tmp_path: Path, request_value: RenderRequest
) -> None:
    pages = document_from_texts(["a", "b", "c"]).pages

    with pytest.raises(PipelineStageError) as exc_info:
        _pipeline(tmp_path).prepare_chapter(request_value, pages)

    assert exc_info.value.stage == "normalize"


def test_render_chapter_synthesizes_and_stores_audio(tmp_path: Path) -> None:
    document = document_from_texts(["Opening remarks.", "The harbor was quiet that night."])
    client = _RecordingClient()
    pipeline = _pipeline(tmp_path, document, client)

    rendered = pipeline.render_chapter(
        RenderRequest(1, 2, 1, "Harbor", doc_type="book", total_chapters=2),
        tmp_path / "doc.pdf",
        voice="Leda",
    )

    assert rendered.audio_path == tmp_path / "chapters" / "1700000000000-ch01-Harbor.mp3"
    assert rendered.audio_path.read_bytes() == b"ID31"
    assert rendered.chunk_count == 1
    assert rendered.voice_name == "en-US-Chirp3-HD-Leda"
    assert rendered.byte_size == 4
    assert client.calls[0][0].startswith("<speak>")


def test_render_chapter_sends_plain_text_to_clients_without_ssml(tmp_path: Path) -> None:
    document = document_from_texts(["The harbor was quiet that night."])
    client = _RecordingClient(supports_ssml=False)

    _pipeline(tmp_path, document, client).render_chapter(
        RenderRequest(1, 1, 1, "Harbor", doc_type="book"), tmp_path / "doc.pdf"
    )

    assert client.calls[0][0] == "Chapter 1\nHarbor\n\nThe harbor was quiet that night."
    assert client.calls[0][1].provider_voice_id == "en-US-Neural2-F"


def test_render_chapter_without_narratable_text_fails(tmp_path: Path) -> None:
    client = _RecordingClient()
    pipeline = _pipeline(tmp_path, document_from_texts(["12"]), client)

    with pytest.raises(PipelineStageError, match="no narratable text") as exc_info:
        pipeline.render_chapter(RenderRequest(1, 1, 1, doc_type="slides"), tmp_path / "doc.pdf")

    assert exc_info.value.stage == "normalize"
    assert client.calls == []


def test_invalid_config_is_rejected_at_construction(tmp_path: Path) -> None:
    with pytest.raises(PipelineStageError) as exc_info:
        _pipeline(tmp_path, max_chunk_bytes=6000)

    assert exc_info.value.stage == "config"
