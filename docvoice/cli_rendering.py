"""CLI output and error rendering helpers.

This module centralizes user-facing CLI presentation for command diagnostics,
detection summaries, prepared chunks and voice presets.
"""

from __future__ import annotations

from typing import NoReturn

import typer

from .errors import PipelineStageError
from .models.datatypes import ChapterDetection, PreparedChapter
from .text.chunking import utf8_len
from .tts.voices import VoiceProfile


def exit_with_command_error(command_name: str, exc: Exception) -> NoReturn:
    """Print concise diagnostics for command failures and exit with code 1."""

    if isinstance(exc, PipelineStageError):
        typer.secho(
            f"{command_name} failed at stage `{exc.stage}`: {exc.detail}",
            fg=typer.colors.RED,
            err=True,
        )
        if exc.hint:
            typer.secho(f"Hint: {exc.hint}", fg=typer.colors.YELLOW, err=True)
    else:
        typer.secho(f"{command_name} failed: {exc}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1) from exc


def echo_detection(detection: ChapterDetection) -> None:
    """Print doc type, confidence, chapter rows and the cache path."""

    typer.echo(f"Pages: {detection.num_pages}")
    typer.echo(f"Doc type: {detection.doc_type}")
    typer.echo(f"Confidence: {detection.confidence:.2f}")
    typer.echo(f"Chapter source: {detection.diagnostics.get('chapter_source', 'unknown')}")
    for chapter in detection.chapters:
        typer.echo(
            f"{chapter.index}. {chapter.title} (pages {chapter.start_page}-{chapter.end_page})"
        )
    typer.echo(f"Extraction cache: {detection.extracted_path or '(not written)'}")


def echo_prepared_chapter(prepared: PreparedChapter) -> None:
    """Print each prepared chunk with its byte size."""

    kind = "ssml" if prepared.markup else "text"
    typer.echo(f"Doc type: {prepared.doc_type}")
    typer.echo(f"Chunks: {len(prepared.chunks)} ({kind})")
    if prepared.visual_pages:
        typer.echo(f"Visual pages: {', '.join(str(page) for page in prepared.visual_pages)}")
    for position, chunk in enumerate(prepared.chunks, start=1):
        typer.echo(f"--- chunk {position} ({utf8_len(chunk)} bytes) ---")
        typer.echo(chunk)


def echo_voice_presets(presets: dict[str, VoiceProfile]) -> None:
    for key in sorted(presets):
        profile = presets[key]
        typer.echo(f"{key}: {profile.provider_voice_id} ({profile.language})")
