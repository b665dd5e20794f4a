"""Command-line interface for docvoice.

Responsibilities:
- Expose user-facing commands for detection, chunk preview and rendering.
- Convert CLI arguments into `DocvoiceConfig` and run the pipeline.

Key public functions:
- `app`: Typer application instance.
- `main`: invoke the Typer application.
"""

from __future__ import annotations

from dataclasses import replace
import json
import os
from pathlib import Path
from typing import Annotated

from loguru import logger as _loguru_logger
import typer

from .cli_rendering import (
    echo_detection,
    echo_prepared_chapter,
    echo_voice_presets,
    exit_with_command_error,
)
from .config import ConfigLoader, DocvoiceConfig, RuntimeConfigSources
from .credentials import create_credential_store
from .errors import ConfigurationError, PipelineStageError
from .models.datatypes import ChapterDetection, RenderRequest
from .parsing import normalize_optional_string
from .pipeline import DocvoicePipeline, detection_to_payload
from .tts.voices import VOICE_PRESETS

app = typer.Typer(
    name="docvoice",
    no_args_is_help=True,
    help="Turn text-based PDF documents into narrated chapter audio.",
)

ConfigOption = Annotated[
    Path | None,
    typer.Option("--config", help="YAML config file; defaults come from DOCVOICE_* env vars."),
]
OutOption = Annotated[
    Path | None,
    typer.Option("--out", help="Output directory (overrides config value)."),
]
ExtractedOption = Annotated[
    Path | None,
    typer.Option("--extracted", help="Extraction cache JSON written by `docvoice detect`."),
]
ChapterOption = Annotated[
    int,
    typer.Option("--chapter", min=1, help="1-based chapter index from `docvoice detect`."),
]


def _load_config(config_path: Path | None, out: Path | None) -> DocvoiceConfig:
    """Load YAML or environment config and apply the output directory override."""

    if config_path is not None and not config_path.exists():
        raise ConfigurationError(
            f"Config file not found: `{config_path}`.",
            hint="Provide an existing path via `--config <path.yaml>`.",
        )
    config = ConfigLoader.from_yaml(config_path) if config_path else ConfigLoader.from_env()
    if out is not None:
        config = replace(config, output_dir=out)
    return config


def _with_runtime_sources(config: DocvoiceConfig, api_key: str | None) -> DocvoiceConfig:
    """Attach CLI, keyring and environment sources for API key resolution."""

    cli_values: dict[str, str] = {}
    normalized_key = normalize_optional_string(api_key)
    if normalized_key is not None:
        cli_values["api_key"] = normalized_key

    secure_values: dict[str, str] = {}
    if not cli_values:
        stored = create_credential_store(config.provider_tts).get_api_key()
        if stored is not None:
            secure_values["api_key"] = stored

    return replace(
        config,
        runtime_sources=RuntimeConfigSources(
            cli=cli_values,
            secure=secure_values,
            env=os.environ,
        ),
    )


def _detect_for_chapter(
    pipeline: DocvoicePipeline,
    input_pdf: Path,
    extracted: Path | None,
) -> tuple[ChapterDetection, Path | None]:
    """Detect chapters from a cache when given, otherwise extract and cache."""

    if extracted is None:
        detection = pipeline.detect_chapters(input_pdf)
        return detection, detection.extracted_path
    document = pipeline.load_pages(input_pdf, extracted)
    return pipeline.analyze_document(document), extracted


def _request_for(detection: ChapterDetection, chapter_number: int) -> RenderRequest:
    for chapter in detection.chapters:
        if chapter.index == chapter_number:
            return RenderRequest(
                start_page=chapter.start_page,
                end_page=chapter.end_page,
                chapter_index=chapter.index,
                chapter_title=chapter.title,
                doc_type=detection.doc_type,
                total_chapters=len(detection.chapters),
            )
    raise PipelineStageError(
        stage="detect",
        detail=(
            f"Chapter {chapter_number} does not exist; "
            f"the document has {len(detection.chapters)} chapter(s)."
        ),
        hint="Run `docvoice detect <input.pdf>` to list chapter indices.",
    )


@app.command("detect")
def detect_command(
    input_pdf: Annotated[Path, typer.Argument(help="Path to source PDF.")],
    out: OutOption = None,
    config_file: ConfigOption = None,
    as_json: Annotated[
        bool, typer.Option("--json", help="Print the detection result as JSON.")
    ] = False,
) -> None:
    """Detect doc type and chapters, and write the extraction cache."""

    try:
        pipeline = DocvoicePipeline(_load_config(config_file, out))
        detection = pipeline.detect_chapters(input_pdf)
    except Exception as exc:
        exit_with_command_error("detect", exc)

    if as_json:
        typer.echo(json.dumps(detection_to_payload(detection), indent=2, sort_keys=True))
        return
    echo_detection(detection)


@app.command("chunks")
def chunks_command(
    input_pdf: Annotated[Path, typer.Argument(help="Path to source PDF.")],
    chapter: ChapterOption,
    extracted: ExtractedOption = None,
    out: OutOption = None,
    config_file: ConfigOption = None,
    plain: Annotated[
        bool, typer.Option("--plain", help="Emit plain-text chunks instead of SSML.")
    ] = False,
) -> None:
    """Print the prepared chunks of one chapter without synthesizing audio."""

    try:
        pipeline = DocvoicePipeline(_load_config(config_file, out))
        detection, _ = _detect_for_chapter(pipeline, input_pdf, extracted)
        document = pipeline.load_pages(input_pdf, detection.extracted_path or extracted)
        prepared = pipeline.prepare_chapter(
            _request_for(detection, chapter),
            document.pages,
            cached_doc_type=detection.doc_type,
            markup=False if plain else None,
        )
    except Exception as exc:
        exit_with_command_error("chunks", exc)

    echo_prepared_chapter(prepared)


@app.command("render")
def render_command(
    input_pdf: Annotated[Path, typer.Argument(help="Path to source PDF.")],
    chapter: ChapterOption,
    extracted: ExtractedOption = None,
    out: OutOption = None,
    config_file: ConfigOption = None,
    voice: Annotated[
        str | None,
        typer.Option("--voice", help="Voice preset key (see `docvoice voices`) or voice name."),
    ] = None,
    api_key: Annotated[
        str | None,
        typer.Option("--api-key", help="Speech provider API key for this run."),
    ] = None,
) -> None:
    """Synthesize one chapter to MP3."""

    try:
        config = _with_runtime_sources(_load_config(config_file, out), api_key)
        pipeline = DocvoicePipeline(config)
        detection, cache_path = _detect_for_chapter(pipeline, input_pdf, extracted)
        rendered = pipeline.render_chapter(
            _request_for(detection, chapter),
            input_pdf,
            extracted_path=cache_path,
            voice=voice,
        )
    except Exception as exc:
        exit_with_command_error("render", exc)

    typer.echo(f"Chapter: {rendered.chapter_index}")
    typer.echo(f"Voice: {rendered.voice_name} ({rendered.language_code})")
    typer.echo(f"Chunks: {rendered.chunk_count}")
    typer.echo(f"Audio: {rendered.audio_path} ({rendered.byte_size} bytes)")


@app.command("voices")
def voices_command() -> None:
    """List named voice presets."""

    echo_voice_presets(VOICE_PRESETS)


@app.command("credentials")
def credentials_command(
    provider: Annotated[
        str, typer.Option("--provider", help="Speech provider id (`google` or `openai`).")
    ] = "google",
    set_api_key: Annotated[
        bool,
        typer.Option("--set", help="Prompt for API key with hidden input and store it securely."),
    ] = False,
    clear_api_key: Annotated[
        bool,
        typer.Option("--clear", help="Clear stored API key from secure credential storage."),
    ] = False,
) -> None:
    """Manage securely stored speech provider credentials."""

    if set_api_key and clear_api_key:
        exit_with_command_error(
            "credentials",
            PipelineStageError(
                stage="credentials",
                detail="`--set` and `--clear` cannot be used together.",
                hint="Run one credentials action per command invocation.",
            ),
        )

    credential_store = create_credential_store(provider)
    if set_api_key:
        prompted_api_key = normalize_optional_string(
            typer.prompt(
                f"{provider} API key (hidden input)",
                default="",
                hide_input=True,
                show_default=False,
            )
        )
        if prompted_api_key is None:
            exit_with_command_error(
                "credentials",
                PipelineStageError(
                    stage="credentials",
                    detail="No API key entered.",
                    hint="Provide a non-empty API key when using `--set`.",
                ),
            )
        try:
            credential_store.set_api_key(prompted_api_key)
        except Exception as exc:
            exit_with_command_error(
                "credentials",
                PipelineStageError(
                    stage="credentials",
                    detail=f"Failed to store API key securely: {exc}",
                    hint="Install and configure a keyring backend and retry.",
                ),
            )
        typer.echo("API key stored in secure credential storage.")
        return

    if clear_api_key:
        if credential_store.clear_api_key():
            typer.echo("Stored API key cleared from secure credential storage.")
        else:
            typer.echo("No stored API key found in secure credential storage.")
        return

    status = "present" if credential_store.get_api_key() is not None else "not set"
    typer.echo(f"Stored {provider} API key: {status}")


def main() -> None:
    """CLI entrypoint for console scripts."""
    # The console script owns process logging; each pipeline adds its own sink.
    _loguru_logger.remove()
    app()


if __name__ == "__main__":
    main()
