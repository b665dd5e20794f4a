"""Text-to-speech provider abstractions.

This package contains voice profiles, HTTP speech clients and the chapter
synthesizer used by the render stage.
"""

from .clients import (
    GoogleSpeechClient,
    OpenAISpeechClient,
    SpeechClient,
    SpeechProviderError,
    create_speech_client,
)
from .synthesizer import ChapterSynthesizer
from .voices import VOICE_PRESETS, VoiceProfile, resolve_voice

__all__ = [
    "VOICE_PRESETS",
    "ChapterSynthesizer",
    "GoogleSpeechClient",
    "OpenAISpeechClient",
    "SpeechClient",
    "SpeechProviderError",
    "VoiceProfile",
    "create_speech_client",
    "resolve_voice",
]
