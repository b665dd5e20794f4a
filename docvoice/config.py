"""Configuration model and loaders for docvoice.

Responsibilities:
- Define runtime configuration as a typed dataclass.
- Resolve the provider API key with deterministic source precedence.
- Provide loader entry points for file- and environment-based configuration.

Key types:
- `DocvoiceConfig`: normalized runtime settings for detection and rendering.
- `RuntimeConfigSources`: optional value sources for precedence resolution.
- `ConfigLoader`: static construction helpers for `DocvoiceConfig`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import os
from pathlib import Path
from typing import Any, Mapping

import yaml

from .errors import ConfigurationError
from .parsing import (
    normalize_optional_string,
    parse_permissive_boolean,
    parse_positive_number,
)
from .text.chunking import MIN_PLAIN_CHUNK_BYTES, MIN_SSML_CHUNK_BYTES


_DEFAULT_LANGUAGE_CODE = "en-US"
_DEFAULT_TTS_VOICE = "en-US-Neural2-F"
_SUPPORTED_PROVIDER_IDS = frozenset({"google", "openai"})
_API_KEY_ENV_KEYS = {
    "google": "DOCVOICE_GOOGLE_API_KEY",
    "openai": "OPENAI_API_KEY",
}


@dataclass(frozen=True, slots=True)
class RuntimeConfigSources:
    """Source mappings used for deterministic runtime value precedence.

    Attributes:
        cli: Values explicitly provided by CLI arguments.
        secure: Values loaded from secure local credential storage.
        env: Values loaded from environment variables.
    """

    cli: Mapping[str, str] = field(default_factory=dict)
    secure: Mapping[str, str] = field(default_factory=dict)
    env: Mapping[str, str] = field(default_factory=dict)


@dataclass(slots=True)
class DocvoiceConfig:
    """Runtime configuration for detection and chapter rendering.

    Attributes:
        output_dir: Root directory for the extraction cache and chapter audio.
        provider_tts: Speech provider identifier (`google` or `openai`).
        tts_voice: Provider voice name used when no preset is requested.
        language_code: BCP-47 language code sent with synthesis requests.
        api_key: Optional provider API key.
        use_ssml: Whether chunks are emitted as SSML markup.
        max_chunk_bytes: UTF-8 byte budget per prepared chunk.
        dispatch_ceiling_bytes: Hard per-request payload ceiling.
        sentence_max_words: Word limit before a sentence boundary is forced.
        max_chapter_chars: Absolute ceiling for normalized chapter text.
        synthesis_attempts: Total synthesis attempts per chunk.
        retry_backoff_seconds: Backoff unit multiplied by the attempt number.
        include_visuals_note: Append a note that lists visual-heavy pages.
        speaking_rate: Speaking rate sent to the provider.
    """

    output_dir: Path = Path("out")
    provider_tts: str = "google"
    tts_voice: str = _DEFAULT_TTS_VOICE
    language_code: str = _DEFAULT_LANGUAGE_CODE
    api_key: str | None = None
    use_ssml: bool = True
    max_chunk_bytes: int = 4800
    dispatch_ceiling_bytes: int = 5000
    sentence_max_words: int = 28
    max_chapter_chars: int = 200_000
    synthesis_attempts: int = 3
    retry_backoff_seconds: float = 0.35
    include_visuals_note: bool = False
    speaking_rate: float = 0.98
    runtime_sources: RuntimeConfigSources = field(default_factory=RuntimeConfigSources)

    def validate(self) -> None:
        """Validate configuration values before any stage runs.

        Raises:
            ConfigurationError: A field holds an unsupported or out-of-range value.
        """

        if self.provider_tts not in _SUPPORTED_PROVIDER_IDS:
            supported = ", ".join(sorted(_SUPPORTED_PROVIDER_IDS))
            raise ConfigurationError(
                f"Unsupported `provider_tts` value `{self.provider_tts}`; supported: {supported}."
            )
        self._require_non_empty(self.tts_voice, "tts_voice")
        self._require_non_empty(self.language_code, "language_code")
        for name in (
            "max_chunk_bytes",
            "dispatch_ceiling_bytes",
            "sentence_max_words",
            "max_chapter_chars",
            "synthesis_attempts",
        ):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise ConfigurationError(f"`{name}` must be a positive integer.")
        if self.max_chunk_bytes > self.dispatch_ceiling_bytes:
            raise ConfigurationError(
                "`max_chunk_bytes` must not exceed `dispatch_ceiling_bytes`.",
                hint=f"Set max_chunk_bytes to at most {self.dispatch_ceiling_bytes}.",
            )
        minimum = MIN_SSML_CHUNK_BYTES if self.use_ssml else MIN_PLAIN_CHUNK_BYTES
        if self.max_chunk_bytes < minimum:
            mode = "SSML" if self.use_ssml else "plain-text"
            raise ConfigurationError(
                f"`max_chunk_bytes` must be at least {minimum} for {mode} chunks.",
                hint=f"Set max_chunk_bytes between {minimum} and {self.dispatch_ceiling_bytes}.",
            )
        if self.retry_backoff_seconds < 0:
            raise ConfigurationError("`retry_backoff_seconds` must not be negative.")
        if self.speaking_rate <= 0:
            raise ConfigurationError("`speaking_rate` must be a positive number.")

    def resolved_api_key(self, sources: RuntimeConfigSources | None = None) -> str | None:
        """Resolve the API key with precedence `cli` > `secure` > `env` > config field."""

        resolved_sources = sources if sources is not None else self.runtime_sources
        env_key = _API_KEY_ENV_KEYS.get(self.provider_tts, "DOCVOICE_API_KEY")
        for mapping, key in (
            (resolved_sources.cli, "api_key"),
            (resolved_sources.secure, "api_key"),
            (resolved_sources.env, env_key),
            (resolved_sources.env, "DOCVOICE_API_KEY"),
        ):
            value = self._normalized_lookup(mapping, key)
            if value is not None:
                return value
        return normalize_optional_string(self.api_key)

    @staticmethod
    def _normalized_lookup(mapping: Mapping[str, str], key: str) -> str | None:
        """Return a stripped mapping value for a key or `None` when missing/blank."""

        if key not in mapping:
            return None
        return normalize_optional_string(mapping.get(key))

    @staticmethod
    def _require_non_empty(value: str, field_name: str) -> None:
        if not isinstance(value, str) or not value.strip():
            raise ConfigurationError(f"`{field_name}` must be a non-empty string.")


class ConfigLoader:
    """Factory methods for creating `DocvoiceConfig` from external sources."""

    _STRING_KEYS = ("provider_tts", "tts_voice", "language_code", "api_key")
    _BOOLEAN_KEYS = ("use_ssml", "include_visuals_note")
    _INT_KEYS = (
        "max_chunk_bytes",
        "dispatch_ceiling_bytes",
        "sentence_max_words",
        "max_chapter_chars",
        "synthesis_attempts",
    )
    _FLOAT_KEYS = ("retry_backoff_seconds", "speaking_rate")
    _SUPPORTED_YAML_KEYS = frozenset(
        ("output_dir",) + _STRING_KEYS + _BOOLEAN_KEYS + _INT_KEYS + _FLOAT_KEYS
    )
    _RUNTIME_ENV_KEYS = frozenset(
        {"DOCVOICE_API_KEY", *(_API_KEY_ENV_KEYS.values())}
    )

    @staticmethod
    def from_yaml(path: Path) -> DocvoiceConfig:
        """Create a validated config from a YAML file."""

        try:
            payload = yaml.safe_load(path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise ConfigurationError(f"Could not read config file `{path}`: {exc}") from exc
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"YAML config `{path}` is not valid YAML: {exc}") from exc

        if payload is None:
            payload = {}
        if not isinstance(payload, Mapping):
            raise ConfigurationError(f"YAML config `{path}` must contain a top-level mapping.")
        return ConfigLoader._build_config(payload, source_label=f"YAML `{path}`")

    @staticmethod
    def from_env(env: Mapping[str, str] | None = None) -> DocvoiceConfig:
        """Create a validated config from `DOCVOICE_*` environment variables."""

        env_map: Mapping[str, str] = os.environ if env is None else env
        payload: dict[str, Any] = {}
        for key in ConfigLoader._SUPPORTED_YAML_KEYS:
            if key == "api_key":
                continue
            value = normalize_optional_string(env_map.get(f"DOCVOICE_{key.upper()}"))
            if value is not None:
                payload[key] = value

        runtime_env = {
            key: value
            for key, value in env_map.items()
            if key in ConfigLoader._RUNTIME_ENV_KEYS
            and normalize_optional_string(value) is not None
        }
        config = ConfigLoader._build_config(payload, source_label="Environment")
        config.runtime_sources = RuntimeConfigSources(env=runtime_env)
        return config

    @staticmethod
    def _build_config(payload: Mapping[str, Any], source_label: str) -> DocvoiceConfig:
        """Build a validated config from a normalized mapping payload."""

        unknown = sorted(set(payload).difference(ConfigLoader._SUPPORTED_YAML_KEYS))
        if unknown:
            raise ConfigurationError(
                f"{source_label} includes unsupported key(s): {', '.join(unknown)}."
            )

        values: dict[str, Any] = {}
        output_dir = normalize_optional_string(payload.get("output_dir"))
        if output_dir is not None:
            values["output_dir"] = Path(output_dir)
        for key in ConfigLoader._STRING_KEYS:
            value = normalize_optional_string(payload.get(key))
            if value is not None:
                values[key] = value
        for key in ConfigLoader._BOOLEAN_KEYS:
            if key in payload:
                parsed = parse_permissive_boolean(payload[key])
                if parsed is None:
                    raise ConfigurationError(
                        f"{source_label} field `{key}` must be a boolean value "
                        "(`true`/`false`, `1`/`0`, `yes`/`no`)."
                    )
                values[key] = parsed
        for key in ConfigLoader._INT_KEYS:
            if key in payload:
                values[key] = ConfigLoader._positive_int(payload[key], key, source_label)
        for key in ConfigLoader._FLOAT_KEYS:
            if key in payload:
                try:
                    values[key] = parse_positive_number(payload[key], key)
                except ValueError as exc:
                    raise ConfigurationError(f"{source_label}: {exc}") from exc

        config = DocvoiceConfig(**values)
        config.validate()
        return config

    @staticmethod
    def _positive_int(raw_value: Any, key: str, source_label: str) -> int:
        """Parse a positive integer from an int or numeric string."""

        message = f"{source_label} field `{key}` must be a positive integer."
        if isinstance(raw_value, bool):
            raise ConfigurationError(message)
        if isinstance(raw_value, int):
            parsed = raw_value
        else:
            try:
                parsed = int(str(raw_value).strip())
            except ValueError as exc:
                raise ConfigurationError(message) from exc
        if parsed <= 0:
            raise ConfigurationError(message)
        return parsed
