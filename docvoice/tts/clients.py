"""HTTP speech-synthesis clients.

Responsibilities:
- Send one synthesis request per prepared chunk to a speech provider's REST API.
- Return raw MP3 bytes for the chunk.
- Raise actionable provider exceptions with redacted, length-capped messages.
"""

from __future__ import annotations

import base64
import binascii
import json
import re
import socket
from typing import Any, Protocol

import requests

from .voices import VoiceProfile


class SpeechProviderError(RuntimeError):
    """Raised when a speech provider request fails or returns malformed output."""

    def __init__(
        self,
        message: str,
        *,
        failure_kind: str = "unknown",
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.failure_kind = failure_kind
        self.status_code = status_code


class SpeechClient(Protocol):
    """Capability that turns one text or SSML payload into audio bytes."""

    supports_ssml: bool

    def synthesize(self, text_or_ssml: str, voice: VoiceProfile) -> bytes:
        """Synthesize one payload and return MP3 bytes."""


def is_ssml(payload: str) -> bool:
    return payload.lstrip().startswith("<speak>")


class _SpeechHttpClient:
    """Shared HTTP settings and error mapping for provider clients."""

    provider_label = "Speech provider"
    supports_ssml = False
    _MAX_PROVIDER_MESSAGE_CHARS = 180

    def __init__(
        self,
        *,
        api_key: str | None,
        base_url: str,
        timeout_seconds: float = 60.0,
    ) -> None:
        self.api_key = api_key.strip() if isinstance(api_key, str) else ""
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds

    def _require_api_key(self) -> None:
        if not self.api_key:
            raise SpeechProviderError(
                f"Missing {self.provider_label} API key. Use `--api-key`, "
                "`docvoice credentials --set`, or the provider environment variable.",
                failure_kind="invalid_api_key",
            )

    def _headers(self) -> dict[str, str]:
        return {"Content-Type": "application/json"}

    def _post_json(self, endpoint_path: str, payload: dict[str, Any]) -> bytes:
        """POST a JSON payload and return the raw response body."""

        try:
            response = requests.post(
                f"{self.base_url}{endpoint_path}",
                headers=self._headers(),
                json=payload,
                timeout=self.timeout_seconds,
            )
            response.raise_for_status()
            return bytes(response.content)
        except requests.HTTPError as exc:
            raise self._http_error_to_provider_error(exc) from exc
        except (requests.RequestException, TimeoutError) as exc:
            failure_kind = self._classify_transport_failure(exc)
            if failure_kind == "timeout":
                detail = f"{self.provider_label} request timed out."
            else:
                detail = (
                    f"{self.provider_label} request transport error: "
                    f"{self._short_message(self._redact_sensitive_tokens(str(exc)))}"
                )
            raise SpeechProviderError(detail, failure_kind=failure_kind) from exc

    @classmethod
    def _redact_sensitive_tokens(cls, text: str) -> str:
        """Redact API-key-like tokens from provider error content."""

        redacted = re.sub(r"\bsk-[A-Za-z0-9_-]{8,}\b", "[redacted-key]", text)
        redacted = re.sub(r"\bAIza[0-9A-Za-z_-]{20,}", "[redacted-key]", redacted)
        redacted = re.sub(
            r"(?i)bearer\s+[A-Za-z0-9._-]{12,}",
            "Bearer [redacted-token]",
            redacted,
        )
        return redacted

    @classmethod
    def _short_message(cls, text: str) -> str:
        """Normalize and cap user-facing provider message length."""

        compact = " ".join(text.split())
        if len(compact) <= cls._MAX_PROVIDER_MESSAGE_CHARS:
            return compact
        return f"{compact[: cls._MAX_PROVIDER_MESSAGE_CHARS - 1]}..."

    @classmethod
    def _extract_provider_message(cls, body: str) -> str:
        """Extract a concise provider-facing message from an error body."""

        if not body:
            return ""
        try:
            payload = json.loads(body)
        except json.JSONDecodeError:
            return cls._short_message(cls._redact_sensitive_tokens(body))

        message = body
        if isinstance(payload, dict) and isinstance(payload.get("error"), dict):
            message_value = payload["error"].get("message")
            if isinstance(message_value, str) and message_value.strip():
                message = message_value.strip()
        return cls._short_message(cls._redact_sensitive_tokens(message))

    @staticmethod
    def _classify_http_failure(status_code: int, provider_message: str) -> str:
        """Classify HTTP errors into deterministic diagnostic kinds."""

        message_lower = provider_message.lower()
        if status_code in {401, 403} or "api key" in message_lower:
            return "invalid_api_key"
        if status_code == 429:
            return "rate_limited"
        if status_code in {408, 504} or "timed out" in message_lower:
            return "timeout"
        if status_code >= 500:
            return "server_error"
        return "http_error"

    @staticmethod
    def _classify_transport_failure(reason: object) -> str:
        if isinstance(reason, TimeoutError | socket.timeout | requests.Timeout):
            return "timeout"
        return "transport"

    def _http_error_to_provider_error(self, exc: requests.HTTPError) -> SpeechProviderError:
        status_code = exc.response.status_code if exc.response is not None else 0
        body = ""
        if exc.response is not None:
            body = bytes(exc.response.content).decode("utf-8", errors="replace").strip()
        provider_message = self._extract_provider_message(body)
        failure_kind = self._classify_http_failure(status_code, provider_message)
        headline = {
            "invalid_api_key": f"{self.provider_label} authentication failed",
            "rate_limited": f"{self.provider_label} rate limit reached",
            "timeout": f"{self.provider_label} request timed out",
        }.get(failure_kind, f"{self.provider_label} request failed")
        if provider_message:
            detail = f"{headline} (HTTP {status_code}): {provider_message}"
        else:
            detail = f"{headline} (HTTP {status_code})."
        return SpeechProviderError(detail, failure_kind=failure_kind, status_code=status_code)


class GoogleSpeechClient(_SpeechHttpClient):
    """Requests-based client for the Google Cloud Text-to-Speech REST API."""

    provider_label = "Google TTS"
    supports_ssml = True

    def __init__(
        self,
        *,
        api_key: str | None,
        base_url: str = "https://texttospeech.googleapis.com/v1",
        timeout_seconds: float = 60.0,
    ) -> None:
        super().__init__(api_key=api_key, base_url=base_url, timeout_seconds=timeout_seconds)

    def _headers(self) -> dict[str, str]:
        return {"Content-Type": "application/json", "X-Goog-Api-Key": self.api_key}

    def synthesize(self, text_or_ssml: str, voice: VoiceProfile) -> bytes:
        """Return MP3 bytes for one text or SSML payload."""

        self._require_api_key()
        field = "ssml" if is_ssml(text_or_ssml) else "text"
        payload = {
            "input": {field: text_or_ssml},
            "voice": {"languageCode": voice.language, "name": voice.provider_voice_id},
            "audioConfig": {
                "audioEncoding": "MP3",
                "speakingRate": voice.speaking_rate,
                "pitch": 0,
                "volumeGainDb": 1,
            },
        }
        raw = self._post_json("/text:synthesize", payload)
        try:
            audio_content = json.loads(raw.decode("utf-8")).get("audioContent")
        except (UnicodeDecodeError, json.JSONDecodeError, AttributeError) as exc:
            raise SpeechProviderError("Google TTS returned an invalid JSON payload.") from exc
        if not isinstance(audio_content, str) or not audio_content:
            raise SpeechProviderError("No audio returned from Google TTS.", failure_kind="empty")
        try:
            return base64.b64decode(audio_content, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise SpeechProviderError("Google TTS audio content is not valid base64.") from exc


class OpenAISpeechClient(_SpeechHttpClient):
    """Requests-based client for OpenAI `/audio/speech`; plain text input only."""

    provider_label = "OpenAI"

    def __init__(
        self,
        *,
        api_key: str | None,
        model: str = "gpt-4o-mini-tts",
        base_url: str = "https://api.openai.com/v1",
        timeout_seconds: float = 60.0,
    ) -> None:
        super().__init__(api_key=api_key, base_url=base_url, timeout_seconds=timeout_seconds)
        self.model = model

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def synthesize(self, text_or_ssml: str, voice: VoiceProfile) -> bytes:
        """Return MP3 bytes from OpenAI speech synthesis."""

        self._require_api_key()
        if is_ssml(text_or_ssml):
            raise SpeechProviderError(
                "OpenAI speech synthesis does not accept SSML input.",
                failure_kind="invalid_input",
            )
        payload = {
            "model": self.model,
            "voice": voice.provider_voice_id,
            "input": text_or_ssml,
            "response_format": "mp3",
            "speed": max(0.25, min(4.0, voice.speaking_rate)),
        }
        audio = self._post_json("/audio/speech", payload)
        if not audio:
            raise SpeechProviderError("OpenAI speech response is empty.", failure_kind="empty")
        return audio


def create_speech_client(provider_id: str, api_key: str | None) -> SpeechClient:
    """Build the speech client for a configured provider id."""

    if provider_id == "openai":
        return OpenAISpeechClient(api_key=api_key)
    if provider_id == "google":
        return GoogleSpeechClient(api_key=api_key)
    raise ValueError(f"Unsupported speech provider `{provider_id}`.")
