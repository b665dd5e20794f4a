"""Chapter-level speech synthesis.

Responsibilities:
- Dispatch prepared chunks to a speech client sequentially, in order.
- Enforce the per-request payload ceiling before dispatch.
- Retry transient chunk failures with linear backoff.
- Concatenate chunk audio into one chapter payload.
"""

from __future__ import annotations

from dataclasses import dataclass
from time import sleep
from typing import Callable, Sequence

from ..errors import ChunkingInvariantError, SynthesisFailedError
from ..telemetry.logger import RunLogger
from ..text.chunking import utf8_len
from .clients import SpeechClient, SpeechProviderError
from .voices import VoiceProfile

_NON_RETRYABLE_KINDS = frozenset({"invalid_api_key", "invalid_input"})


@dataclass(slots=True)
class ChapterSynthesizer:
    """Synthesize every chunk of one chapter and join the MP3 bytes.

    Attributes:
        client: Speech client used for each chunk.
        attempts: Total attempts per chunk.
        backoff_seconds: Sleep unit; attempt `n` failing waits `n * backoff_seconds`.
        dispatch_ceiling_bytes: Largest payload ever sent in one request.
        sleeper: Sleep callable, injectable for tests.
        logger: Optional run logger for retry warnings.
    """

    client: SpeechClient
    attempts: int = 3
    backoff_seconds: float = 0.35
    dispatch_ceiling_bytes: int = 5000
    sleeper: Callable[[float], None] = sleep
    logger: RunLogger | None = None

    def synthesize_chapter(self, chunks: Sequence[str], voice: VoiceProfile) -> bytes:
        """Return concatenated audio for all chunks.

        Raises:
            ChunkingInvariantError: A chunk exceeds the dispatch ceiling.
            SynthesisFailedError: A chunk failed on every attempt.
        """

        parts: list[bytes] = []
        for position, chunk in enumerate(chunks, start=1):
            size = utf8_len(chunk)
            if size > self.dispatch_ceiling_bytes:
                raise ChunkingInvariantError(
                    f"Chunk {position} is {size} bytes, above the "
                    f"{self.dispatch_ceiling_bytes}-byte request ceiling."
                )
            parts.append(self._synthesize_chunk(position, chunk, voice))
        return b"".join(parts)

    def _synthesize_chunk(self, position: int, chunk: str, voice: VoiceProfile) -> bytes:
        attempts = max(1, self.attempts)
        attempt = 1
        while True:
            try:
                return self.client.synthesize(chunk, voice)
            except SpeechProviderError as exc:
                if exc.failure_kind in _NON_RETRYABLE_KINDS or attempt >= attempts:
                    raise SynthesisFailedError(
                        f"Chunk {position} failed after {attempt} attempt(s): {exc}"
                    ) from exc
                if self.logger is not None:
                    self.logger.log_stage_warning(
                        "tts",
                        "retry",
                        chunk=position,
                        attempt=attempt,
                        failure_kind=exc.failure_kind,
                    )
                self.sleeper(self.backoff_seconds * attempt)
            attempt += 1
