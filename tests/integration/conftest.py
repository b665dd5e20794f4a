"""Integration-test fixtures for deterministic provider behavior."""

from __future__ import annotations

import pytest

from docvoice.tts.clients import GoogleSpeechClient, OpenAISpeechClient
from docvoice.tts.voices import VoiceProfile

MOCK_AUDIO = b"ID3\x04\x00integration-mock-mp3"


@pytest.fixture(autouse=True)
def _mock_speech_synthesis(monkeypatch: pytest.MonkeyPatch) -> list[str]:
    """Mock provider synthesis in integration tests to avoid network/key requirements."""

    payloads: list[str] = []

    def _mock_synthesize(self, text_or_ssml: str, voice: VoiceProfile) -> bytes:  # type: ignore[no-untyped-def]
        self._require_api_key()
        _ = voice
        payloads.append(text_or_ssml)
        return MOCK_AUDIO

    monkeypatch.setattr(GoogleSpeechClient, "synthesize", _mock_synthesize)
    monkeypatch.setattr(OpenAISpeechClient, "synthesize", _mock_synthesize)
    return payloads


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep host `DOCVOICE_*` and provider key variables out of CLI runs."""

    for key in ("DOCVOICE_GOOGLE_API_KEY", "OPENAI_API_KEY", "DOCVOICE_API_KEY"):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.delenv("DOCVOICE_OUTPUT_DIR", raising=False)
    monkeypatch.delenv("DOCVOICE_PROVIDER_TTS", raising=False)
