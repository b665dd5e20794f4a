"""Domain exceptions for pipeline and CLI diagnostics."""

from __future__ import annotations


class PipelineStageError(RuntimeError):
    """Raised when a specific pipeline stage fails."""

    def __init__(
        self,
        *,
        stage: str,
        detail: str,
        hint: str | None = None,
    ) -> None:
        """Initialize a stage-scoped pipeline error."""

        super().__init__(detail)
        self.stage = stage
        self.detail = detail
        self.hint = hint


class ConfigurationError(PipelineStageError):
    """Raised when runtime configuration cannot be resolved."""

    def __init__(self, detail: str, hint: str | None = None) -> None:
        super().__init__(stage="config", detail=detail, hint=hint)


class ExtractionUnavailableError(PipelineStageError):
    """Raised when the page source cannot be obtained or parsed."""

    def __init__(self, detail: str, hint: str | None = None) -> None:
        super().__init__(stage="extract", detail=detail, hint=hint)


class ChunkingInvariantError(PipelineStageError):
    """Raised when a prepared chunk exceeds its byte budget.

    This signals a defect in the splitting ladder. Chunks are never truncated
    to make them fit.
    """

    def __init__(self, detail: str) -> None:
        super().__init__(
            stage="chunk",
            detail=detail,
            hint="Report this document; chunk splitting produced an oversize payload.",
        )


class OversizeChapterError(PipelineStageError):
    """Raised when normalized chapter text exceeds the absolute size ceiling."""

    def __init__(self, detail: str) -> None:
        super().__init__(
            stage="normalize",
            detail=detail,
            hint="Split this chapter into smaller page ranges and render each one.",
        )


class SynthesisFailedError(PipelineStageError):
    """Raised when a chunk still fails after all synthesis attempts."""

    def __init__(self, detail: str, hint: str | None = None) -> None:
        super().__init__(
            stage="tts",
            detail=detail,
            hint=hint or "Verify API key plus TTS voice/provider configuration, then retry.",
        )
