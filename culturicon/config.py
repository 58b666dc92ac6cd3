"""Configuration model and loaders for Culturicon.

Responsibilities:
- Define runtime configuration as a typed dataclass.
- Provide deterministic precedence resolution for runtime provider/model settings.
- Provide loader entry points for file- and environment-based configuration.
- Derive per-endpoint call policies for the generation pipeline.

Key types:
- `CulturiconConfig`: normalized runtime settings.
- `ProviderRuntimeConfig`: resolved provider/model runtime values.
- `RuntimeConfigSources`: optional value sources for precedence resolution.
- `ConfigLoader`: static construction helpers for `CulturiconConfig`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import os
from pathlib import Path
from typing import Any, Mapping

import yaml

from .models.datatypes import EndpointCallSpecs
from .parsing import normalize_optional_string


_DEFAULT_IMAGE_MODEL = "gpt-image-1"
_DEFAULT_VISION_MODEL = "gpt-4.1-mini"
_DEFAULT_TRANSLATION_MODEL = "gpt-4.1-mini"
_DEFAULT_TTS_MODEL = "gpt-4o-mini-tts"
_DEFAULT_TRANSCRIBE_MODEL = "gpt-4o-mini-transcribe"
_SUPPORTED_PROVIDER_IDS = frozenset({"openai"})
_SUPPORTED_TTS_FORMATS = frozenset({"mp3", "wav", "opus", "aac", "flac"})

# Runtime keys resolved with precedence, mapped to their environment variable.
_RUNTIME_ENV_KEYS: Mapping[str, str] = {
    "provider": "CULTURICON_PROVIDER",
    "model_image": "CULTURICON_MODEL_IMAGE",
    "model_vision": "CULTURICON_MODEL_VISION",
    "model_translate": "CULTURICON_MODEL_TRANSLATE",
    "model_tts": "CULTURICON_MODEL_TTS",
    "model_transcribe": "CULTURICON_MODEL_TRANSCRIBE",
}
_API_KEY_ENV = "OPENAI_API_KEY"


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


@dataclass(frozen=True, slots=True)
class ProviderRuntimeConfig:
    """Resolved runtime provider and model identifiers.

    Attributes:
        provider: Provider identifier for all model calls.
        image_model: Image generation and edit model.
        vision_model: Vision description model.
        translate_model: Translation model.
        tts_model: Speech synthesis model.
        transcribe_model: Speech-to-text model.
        api_key: Optional provider API key (resolved but never persisted).
    """

    provider: str
    image_model: str
    vision_model: str
    translate_model: str
    tts_model: str
    transcribe_model: str
    api_key: str | None = None

    def as_metadata(self) -> dict[str, str]:
        """Return non-secret runtime metadata safe to print or persist."""

        return {
            "provider": self.provider,
            "model_image": self.image_model,
            "model_vision": self.vision_model,
            "model_translate": self.translate_model,
            "model_tts": self.tts_model,
            "model_transcribe": self.transcribe_model,
        }


@dataclass(slots=True)
class CulturiconConfig:
    """Runtime configuration for the generation pipeline.

    Attributes:
        output_dir: Root directory of the local artifact store.
        profiles_file: Optional YAML profile document keyed by user id.
        provider: Model provider identifier.
        model_image: Image generation/edit model identifier.
        model_vision: Vision description model identifier.
        model_translate: Translation model identifier.
        model_tts: Speech synthesis model identifier.
        model_transcribe: Speech-to-text model identifier.
        tts_format: Audio format of synthesized speech.
        image_size: Generated image size (`WIDTHxHEIGHT`).
        api_key: Optional API key for provider calls.
        timeout_ms: Per-attempt model-call timeout in milliseconds.
        max_retries: Retry budget for transient model-call failures.
        backoff_base_ms: Exponential backoff base delay in milliseconds.
        runtime_sources: Optional runtime source overrides injected by CLI.
        extra: Additional metadata for future extensions.
    """

    output_dir: Path = Path("out")
    profiles_file: Path | None = None
    provider: str = "openai"
    model_image: str = _DEFAULT_IMAGE_MODEL
    model_vision: str = _DEFAULT_VISION_MODEL
    model_translate: str = _DEFAULT_TRANSLATION_MODEL
    model_tts: str = _DEFAULT_TTS_MODEL
    model_transcribe: str = _DEFAULT_TRANSCRIBE_MODEL
    tts_format: str = "mp3"
    image_size: str = "1024x1024"
    api_key: str | None = None
    timeout_ms: int = 60_000
    max_retries: int = 3
    backoff_base_ms: int = 1_000
    runtime_sources: RuntimeConfigSources = field(default_factory=RuntimeConfigSources)
    extra: dict[str, str] = field(default_factory=dict)

    def validate(self) -> None:
        """Validate configuration values before building the pipeline."""

        self._validate_provider_id(self.provider, "provider")
        for key in _RUNTIME_ENV_KEYS:
            if key != "provider":
                self._require_non_empty(getattr(self, key), key)
        if self.tts_format not in _SUPPORTED_TTS_FORMATS:
            supported = ", ".join(sorted(_SUPPORTED_TTS_FORMATS))
            raise ValueError(f"`tts_format` must be one of: {supported}.")
        if self.timeout_ms <= 0:
            raise ValueError("`timeout_ms` must be a positive integer.")
        if self.max_retries < 0:
            raise ValueError("`max_retries` must be zero or a positive integer.")
        if self.backoff_base_ms <= 0:
            raise ValueError("`backoff_base_ms` must be a positive integer.")

    def call_specs(self) -> EndpointCallSpecs:
        """Return the per-endpoint call policy derived from this config."""

        return EndpointCallSpecs.uniform(
            timeout_ms=self.timeout_ms,
            max_retries=self.max_retries,
            backoff_base_ms=self.backoff_base_ms,
        )

    def resolved_provider_runtime(
        self, sources: RuntimeConfigSources | None = None
    ) -> ProviderRuntimeConfig:
        """Resolve provider and model settings with deterministic source precedence.

        Precedence for each key is:
        `cli` > `secure` > `env` > config field default.
        """

        resolved_sources = sources if sources is not None else self.runtime_sources
        values = {
            key: self._resolve_runtime_value(
                key=key,
                env_key=env_key,
                default_value=getattr(self, key),
                sources=resolved_sources,
            )
            for key, env_key in _RUNTIME_ENV_KEYS.items()
        }
        api_key = self._resolve_optional_runtime_value(
            key="api_key",
            env_key=_API_KEY_ENV,
            default_value=self.api_key,
            sources=resolved_sources,
        )

        resolved = ProviderRuntimeConfig(
            provider=values["provider"],
            image_model=values["model_image"],
            vision_model=values["model_vision"],
            translate_model=values["model_translate"],
            tts_model=values["model_tts"],
            transcribe_model=values["model_transcribe"],
            api_key=api_key,
        )
        self._validate_provider_id(resolved.provider, "provider")
        return resolved

    def _resolve_runtime_value(
        self,
        key: str,
        env_key: str,
        default_value: str | None,
        sources: RuntimeConfigSources,
    ) -> str:
        """Resolve a runtime value from sources in deterministic precedence order."""

        resolved = self._resolve_optional_runtime_value(key, env_key, default_value, sources)
        if resolved is None:
            raise ValueError(
                f"`{key}` could not be resolved from CLI, secure storage, env, or defaults."
            )
        return resolved

    def _resolve_optional_runtime_value(
        self,
        key: str,
        env_key: str,
        default_value: str | None,
        sources: RuntimeConfigSources,
    ) -> str | None:
        """Resolve an optional runtime value from sources in deterministic order."""

        cli_value = self._normalized_lookup(sources.cli, key)
        if cli_value is not None:
            return cli_value

        secure_value = self._normalized_lookup(sources.secure, key)
        if secure_value is not None:
            return secure_value

        env_value = self._normalized_lookup(sources.env, env_key)
        if env_value is not None:
            return env_value

        return normalize_optional_string(default_value)

    @staticmethod
    def _normalized_lookup(mapping: Mapping[str, str], key: str) -> str | None:
        """Return a stripped mapping value for a key or `None` when missing/blank."""

        if key not in mapping:
            return None
        return normalize_optional_string(mapping.get(key))

    @staticmethod
    def _validate_provider_id(provider_id: str, field_name: str) -> None:
        """Validate provider identifiers against currently supported providers."""

        if provider_id not in _SUPPORTED_PROVIDER_IDS:
            supported = ", ".join(sorted(_SUPPORTED_PROVIDER_IDS))
            raise ValueError(
                f"Unsupported `{field_name}` value `{provider_id}`; supported: {supported}."
            )

    @staticmethod
    def _require_non_empty(value: str, field_name: str) -> None:
        """Validate that runtime string fields are not empty."""

        if not isinstance(value, str) or not value.strip():
            raise ValueError(f"`{field_name}` must be a non-empty string.")


class ConfigLoader:
    """Factory methods for creating `CulturiconConfig` from external sources."""

    _STRING_KEYS = (
        "provider",
        "model_image",
        "model_vision",
        "model_translate",
        "model_tts",
        "model_transcribe",
        "tts_format",
        "image_size",
        "api_key",
    )
    _SUPPORTED_YAML_KEYS = frozenset(
        {
            "output_dir",
            "profiles_file",
            *_STRING_KEYS,
            "timeout_ms",
            "max_retries",
            "backoff_base_ms",
            "extra",
        }
    )

    @staticmethod
    def from_yaml(path: Path) -> CulturiconConfig:
        """Create a validated config from a YAML file."""

        path_text = path.read_text(encoding="utf-8")
        payload = ConfigLoader._parse_yaml_payload(path_text, path)
        return ConfigLoader._build_config_from_mapping(payload, source_label=f"YAML `{path}`")

    @staticmethod
    def from_env(env: Mapping[str, str] | None = None) -> CulturiconConfig:
        """Create a validated config from environment variables."""

        env_map: Mapping[str, str] = os.environ if env is None else env

        output_dir = ConfigLoader._optional_env_string(env_map, "CULTURICON_OUTPUT_DIR")
        profiles_file = ConfigLoader._optional_env_string(env_map, "CULTURICON_PROFILES_FILE")
        strings = {
            key: ConfigLoader._optional_env_string(env_map, f"CULTURICON_{key.upper()}")
            for key in ConfigLoader._STRING_KEYS
            if key != "api_key"
        }
        api_key = ConfigLoader._optional_env_string(env_map, _API_KEY_ENV)

        runtime_env_keys = {*_RUNTIME_ENV_KEYS.values(), _API_KEY_ENV}
        runtime_env = {
            key: value
            for key, value in env_map.items()
            if key in runtime_env_keys and normalize_optional_string(value) is not None
        }

        defaults = CulturiconConfig()
        config = CulturiconConfig(
            output_dir=Path(output_dir) if output_dir is not None else defaults.output_dir,
            profiles_file=Path(profiles_file) if profiles_file is not None else None,
            api_key=api_key,
            timeout_ms=ConfigLoader._optional_env_int(
                env_map, "CULTURICON_TIMEOUT_MS", defaults.timeout_ms, minimum=1
            ),
            max_retries=ConfigLoader._optional_env_int(
                env_map, "CULTURICON_MAX_RETRIES", defaults.max_retries, minimum=0
            ),
            backoff_base_ms=ConfigLoader._optional_env_int(
                env_map, "CULTURICON_BACKOFF_BASE_MS", defaults.backoff_base_ms, minimum=1
            ),
            runtime_sources=RuntimeConfigSources(env=runtime_env),
            **{key: value for key, value in strings.items() if value is not None},
        )
        config.validate()
        return config

    @staticmethod
    def _parse_yaml_payload(raw_text: str, path: Path) -> Mapping[str, Any]:
        """Parse YAML text and enforce a mapping root payload."""

        try:
            payload = yaml.safe_load(raw_text)
        except yaml.YAMLError as exc:
            raise ValueError(f"YAML config `{path}` is not valid YAML: {exc}") from exc

        if payload is None:
            payload = {}
        if not isinstance(payload, Mapping):
            raise ValueError(f"YAML config `{path}` must contain a top-level mapping/object.")
        return payload

    @staticmethod
    def _build_config_from_mapping(
        payload: Mapping[str, Any], source_label: str
    ) -> CulturiconConfig:
        """Build a validated config from a normalized mapping payload."""

        ConfigLoader._validate_yaml_keys(payload, source_label)

        defaults = CulturiconConfig()
        output_dir = ConfigLoader._optional_non_empty_string(payload, "output_dir")
        profiles_file = ConfigLoader._optional_non_empty_string(payload, "profiles_file")
        strings = {
            key: ConfigLoader._optional_non_empty_string(payload, key)
            for key in ConfigLoader._STRING_KEYS
        }

        config = CulturiconConfig(
            output_dir=Path(output_dir) if output_dir is not None else defaults.output_dir,
            profiles_file=Path(profiles_file) if profiles_file is not None else None,
            timeout_ms=ConfigLoader._optional_int(
                payload, "timeout_ms", source_label, default=defaults.timeout_ms, minimum=1
            ),
            max_retries=ConfigLoader._optional_int(
                payload, "max_retries", source_label, default=defaults.max_retries, minimum=0
            ),
            backoff_base_ms=ConfigLoader._optional_int(
                payload,
                "backoff_base_ms",
                source_label,
                default=defaults.backoff_base_ms,
                minimum=1,
            ),
            extra=ConfigLoader._optional_string_map(payload, "extra", source_label),
            **{key: value for key, value in strings.items() if value is not None},
        )
        config.validate()
        return config

    @staticmethod
    def _validate_yaml_keys(payload: Mapping[str, Any], source_label: str) -> None:
        """Reject keys the config model does not know."""

        unknown = sorted(str(key) for key in set(payload).difference(ConfigLoader._SUPPORTED_YAML_KEYS))
        if unknown:
            key_list = ", ".join(unknown)
            raise ValueError(f"{source_label} includes unsupported key(s): {key_list}.")

    @staticmethod
    def _optional_non_empty_string(payload: Mapping[str, Any], key: str) -> str | None:
        """Read an optional string field and normalize blank values to `None`."""

        if key not in payload:
            return None
        return normalize_optional_string(payload[key])

    @staticmethod
    def _optional_int(
        payload: Mapping[str, Any],
        key: str,
        source_label: str,
        *,
        default: int,
        minimum: int,
    ) -> int:
        """Read and validate an integer payload field bounded below by `minimum`."""

        if key not in payload:
            return default

        qualifier = "a positive integer" if minimum > 0 else "a non-negative integer"
        raw_value = payload[key]
        if isinstance(raw_value, bool):
            raise ValueError(f"{source_label} field `{key}` must be {qualifier}.")
        if isinstance(raw_value, int):
            parsed = raw_value
        else:
            normalized = normalize_optional_string(raw_value)
            if normalized is None:
                return default
            try:
                parsed = int(normalized)
            except ValueError as exc:
                raise ValueError(f"{source_label} field `{key}` must be {qualifier}.") from exc

        if parsed < minimum:
            raise ValueError(f"{source_label} field `{key}` must be {qualifier}.")
        return parsed

    @staticmethod
    def _optional_string_map(
        payload: Mapping[str, Any], key: str, source_label: str
    ) -> dict[str, str]:
        """Read an optional mapping with non-empty string keys and values."""

        if key not in payload:
            return {}

        raw = payload[key]
        if raw is None:
            return {}
        if not isinstance(raw, Mapping):
            raise ValueError(f"{source_label} field `{key}` must be a mapping/object.")

        normalized: dict[str, str] = {}
        for raw_key, raw_value in raw.items():
            key_value = normalize_optional_string(raw_key)
            value_value = normalize_optional_string(raw_value)
            if key_value is None:
                raise ValueError(f"{source_label} field `{key}` contains a blank key.")
            if value_value is None:
                raise ValueError(
                    f"{source_label} field `{key}` contains blank value for `{key_value}`."
                )
            normalized[key_value] = value_value
        return normalized

    @staticmethod
    def _optional_env_string(env: Mapping[str, str], key: str) -> str | None:
        """Read and normalize optional string environment variable values."""

        if key not in env:
            return None
        return normalize_optional_string(env.get(key))

    @staticmethod
    def _optional_env_int(env: Mapping[str, str], key: str, default: int, *, minimum: int) -> int:
        """Read an optional integer from environment mapping bounded below by `minimum`."""

        raw_value = ConfigLoader._optional_env_string(env, key)
        if raw_value is None:
            return default
        qualifier = "a positive integer" if minimum > 0 else "a non-negative integer"
        try:
            parsed = int(raw_value)
        except ValueError as exc:
            raise ValueError(f"Environment variable `{key}` must be {qualifier}.") from exc
        if parsed < minimum:
            raise ValueError(f"Environment variable `{key}` must be {qualifier}.")
        return parsed
