"""Voice profile models and named presets.

Responsibilities:
- Represent provider voice identities and tuning metadata.
- Resolve a requested preset key or raw voice name to a concrete profile.
"""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_LANGUAGE_CODE = "en-US"
DEFAULT_VOICE_NAME = "en-US-Neural2-F"


@dataclass(frozen=True, slots=True)
class VoiceProfile:
    """Declarative voice profile used by speech clients.

    Attributes:
        name: Human-readable profile name.
        provider_voice_id: Provider-native voice identifier.
        language: BCP-47 language code.
        speaking_rate: Relative speaking rate multiplier.
    """

    name: str
    provider_voice_id: str
    language: str = DEFAULT_LANGUAGE_CODE
    speaking_rate: float = 0.98


VOICE_PRESETS: dict[str, VoiceProfile] = {
    key: VoiceProfile(name=key, provider_voice_id=f"en-US-Chirp3-HD-{key}")
    for key in ("Iapetus", "Enceladus", "Orus", "Leda", "Callirrhoe")
}


def resolve_voice(
    voice: str | None,
    *,
    default_voice: str = DEFAULT_VOICE_NAME,
    language_code: str = DEFAULT_LANGUAGE_CODE,
    speaking_rate: float = 0.98,
) -> VoiceProfile:
    """Resolve a preset key, a raw provider voice name, or the configured default.

    Preset keys carry their own language code; raw names use `language_code`.
    """

    requested = (voice or "").strip()
    preset = VOICE_PRESETS.get(requested)
    if preset is not None:
        return VoiceProfile(
            name=preset.name,
            provider_voice_id=preset.provider_voice_id,
            language=preset.language,
            speaking_rate=speaking_rate,
        )
    voice_id = requested or default_voice.strip() or DEFAULT_VOICE_NAME
    return VoiceProfile(
        name=voice_id,
        provider_voice_id=voice_id,
        language=language_code.strip() or DEFAULT_LANGUAGE_CODE,
        speaking_rate=speaking_rate,
    )
