"""Structured run logging utilities.

Responsibilities:
- Emit concise, deterministic phase-level runtime logs through `loguru`.
- Keep secrets and document text out of log context.
"""

from __future__ import annotations

import sys
from typing import Any, Callable, TextIO
from uuid import uuid4
import weakref

from loguru import logger as _loguru_logger


def _sanitize_context_value(value: object) -> str:
    """Convert context values into stable, shell-safe tokens."""

    raw = str(value).strip()
    if not raw:
        return "none"
    return "".join(
        character if character.isalnum() or character in {"-", "_", ".", ":", "/"} else "_"
        for character in raw
    )


def _format_context(context: dict[str, object]) -> str:
    """Serialize context key/value pairs in deterministic key order."""

    if not context:
        return ""
    tokens = [
        f"{key}={_sanitize_context_value(context[key])}"
        for key in sorted(context.keys())
    ]
    return " " + " ".join(tokens)


def _run_filter(run_id: str) -> Callable[[dict[str, Any]], bool]:
    def _matches(record: dict[str, Any]) -> bool:
        return record["extra"].get("run_id") == run_id

    return _matches


class RunLogger:
    """Emit deterministic phase logs for pipeline activity.

    Each instance owns one loguru handler that only accepts records bound to
    its own run id, so several loggers can write to different sinks at once.
    """

    def __init__(self, sink: TextIO | None = None, level: str = "INFO") -> None:
        """Route this run's records to one sink with a bare message format."""

        self._sink = sink or sys.stderr
        self.run_id = uuid4().hex
        self._logger = _loguru_logger.bind(run_id=self.run_id)
        self._handler_id = _loguru_logger.add(
            self._sink,
            format="{message}",
            level=level,
            colorize=False,
            filter=_run_filter(self.run_id),
        )
        self._finalizer = weakref.finalize(self, _loguru_logger.remove, self._handler_id)

    def close(self) -> None:
        """Detach this logger's handler from loguru."""

        self._finalizer()

    def _emit(self, level: str, event: str, stage: str, **context: object) -> None:
        """Emit one structured runtime log line."""

        line = f"[phase] level={level} stage={stage} event={event}{_format_context(context)}"
        self._logger.log(level, line)

    def log_stage_start(self, stage: str, **context: object) -> None:
        self._emit("INFO", "start", stage, **context)

    def log_stage_complete(self, stage: str, **context: object) -> None:
        self._emit("INFO", "complete", stage, **context)

    def log_stage_warning(self, stage: str, reason: str, **context: object) -> None:
        """Emit a recoverable-degradation event such as a cache miss or retry."""

        self._emit("WARNING", "warning", stage, reason=reason, **context)

    def log_stage_failure(self, stage: str, error_type: str) -> None:
        """Emit a stage-failure runtime event without sensitive payload details."""

        self._emit("ERROR", "failure", stage, error_type=error_type)
