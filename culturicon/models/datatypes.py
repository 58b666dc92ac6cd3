"""Core datatypes shared across Culturicon modules.

Responsibilities:
- Represent immutable records exchanged between pipeline stages and collaborators.
- Enforce the one-primary-payload invariant of generation results.

Key types:
- `CulturalProfile`, `GenerationRequest`, `GenerationOptions`, `ModelCallSpec`,
  `GenerationResult`, `LocaleEntry`, `VoiceSelection`, `LabelAudio`,
  and `StorageOutcome`.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

from ..errors import ErrorKind


SYMBOL_STYLES = frozenset({"simple", "realistic", "abstract", "cartoon", "modern"})


class RequestKind(str, Enum):
    """Kinds of inbound generation requests."""

    TEXT_TO_ICON = "text_to_icon"
    IMAGE_TO_ICON = "image_to_icon"
    TRANSLATE = "translate"
    SPEECH = "speech"

    @property
    def is_icon(self) -> bool:
        """Return whether this kind produces an icon image."""

        return self in (RequestKind.TEXT_TO_ICON, RequestKind.IMAGE_TO_ICON)


@dataclass(frozen=True, slots=True)
class Demographics:
    """Optional demographic hints attached to a cultural profile."""

    age: int | None = None
    gender: str | None = None
    religion: str | None = None
    ethnicity: str | None = None

    def is_empty(self) -> bool:
        """Return whether no demographic field is populated."""

        return (
            self.age is None
            and self.gender is None
            and self.religion is None
            and self.ethnicity is None
        )


@dataclass(frozen=True, slots=True)
class AccessibilityPreferences:
    """Accessibility flags that shape icon rendering."""

    high_contrast: bool = False
    large_text: bool = False
    simplified_icons: bool = False


@dataclass(frozen=True, slots=True)
class CulturalProfile:
    """Immutable per-request snapshot of a user's cultural preferences.

    Attributes:
        language: Primary language code (for example `en`, `fr`).
        region: Region or broad locale area (for example `US`, `Quebec`).
        symbol_style: Preferred pictogram style.
        dialect: Optional dialect or regional variant code (for example `CA`).
        country: Optional country, more specific than region.
        demographics: Optional demographic hints.
        accessibility: Optional accessibility flags.
    """

    language: str = "en"
    region: str = "US"
    symbol_style: str = "simple"
    dialect: str | None = None
    country: str | None = None
    demographics: Demographics | None = None
    accessibility: AccessibilityPreferences | None = None

    def as_metadata(self) -> dict[str, Any]:
        """Return a JSON-safe mapping for artifact metadata."""

        payload: dict[str, Any] = {
            "language": self.language,
            "region": self.region,
            "symbol_style": self.symbol_style,
        }
        if self.dialect:
            payload["dialect"] = self.dialect
        if self.country:
            payload["country"] = self.country
        if self.demographics is not None and not self.demographics.is_empty():
            payload["demographics"] = {
                key: value
                for key, value in (
                    ("age", self.demographics.age),
                    ("gender", self.demographics.gender),
                    ("religion", self.demographics.religion),
                    ("ethnicity", self.demographics.ethnicity),
                )
                if value is not None
            }
        if self.accessibility is not None:
            payload["accessibility"] = {
                "high_contrast": self.accessibility.high_contrast,
                "large_text": self.accessibility.large_text,
                "simplified_icons": self.accessibility.simplified_icons,
            }
        return payload


@dataclass(frozen=True, slots=True)
class GenerationOptions:
    """Optional knobs attached to a generation request.

    Attributes:
        accent: Speaker id override for synthesized label audio.
        color: Preferred accent color, recorded as metadata.
        category: Board category, recorded as metadata.
        generate_audio: Whether to synthesize audio for the label.
        regenerate: For image input, draw a fresh icon from the vision description.
        input_mime_type: MIME type of binary payloads; defaults per request kind.
        analysis_kind: Vision analysis flavour (`description`, `icon_elements`, ...).
    """

    accent: str | None = None
    color: str | None = None
    category: str | None = None
    generate_audio: bool = False
    regenerate: bool = False
    input_mime_type: str | None = None
    analysis_kind: str = "icon_elements"

    def mime_type_for(self, kind: RequestKind) -> str:
        """Return the binary payload MIME type, defaulting per request kind."""

        if self.input_mime_type:
            return self.input_mime_type
        if kind is RequestKind.SPEECH:
            return "audio/webm"
        return "image/png"


@dataclass(frozen=True, slots=True)
class GenerationRequest:
    """One inbound generation call; read-only through the pipeline."""

    kind: RequestKind
    payload: str | bytes
    label: str | None = None
    cultural_profile: CulturalProfile | None = None
    options: GenerationOptions = field(default_factory=GenerationOptions)


@dataclass(frozen=True, slots=True)
class ModelCallSpec:
    """Call policy for one external model endpoint.

    Attributes:
        endpoint_id: Stable endpoint identifier used in logs and errors.
        timeout_ms: Per-attempt timeout in milliseconds.
        max_retries: Retry budget for transient failures (total calls = retries + 1).
        backoff_base_ms: Base delay of the exponential backoff in milliseconds.
    """

    endpoint_id: str
    timeout_ms: int = 60_000
    max_retries: int = 3
    backoff_base_ms: int = 1_000

    def __post_init__(self) -> None:
        if not self.endpoint_id.strip():
            raise ValueError("`endpoint_id` must be a non-empty string.")
        if self.timeout_ms <= 0:
            raise ValueError("`timeout_ms` must be a positive integer.")
        if self.max_retries < 0:
            raise ValueError("`max_retries` must be zero or a positive integer.")
        if self.backoff_base_ms <= 0:
            raise ValueError("`backoff_base_ms` must be a positive integer.")

    @property
    def timeout_seconds(self) -> float:
        """Return the per-attempt timeout in seconds."""

        return self.timeout_ms / 1000.0

    @property
    def backoff_base_seconds(self) -> float:
        """Return the backoff base delay in seconds."""

        return self.backoff_base_ms / 1000.0


@dataclass(frozen=True, slots=True)
class EndpointCallSpecs:
    """Call policy per external endpoint used by the pipeline."""

    generate: ModelCallSpec
    sanitize: ModelCallSpec
    analyze: ModelCallSpec
    translate: ModelCallSpec
    speech: ModelCallSpec
    transcribe: ModelCallSpec

    @classmethod
    def uniform(
        cls,
        *,
        timeout_ms: int = 60_000,
        max_retries: int = 3,
        backoff_base_ms: int = 1_000,
    ) -> EndpointCallSpecs:
        """Build specs sharing one call policy, keyed by stable endpoint ids."""

        def _spec(endpoint_id: str) -> ModelCallSpec:
            return ModelCallSpec(
                endpoint_id=endpoint_id,
                timeout_ms=timeout_ms,
                max_retries=max_retries,
                backoff_base_ms=backoff_base_ms,
            )

        return cls(
            generate=_spec("image.generate"),
            sanitize=_spec("image.edit"),
            analyze=_spec("vision.analyze"),
            translate=_spec("text.translate"),
            speech=_spec("audio.speech"),
            transcribe=_spec("audio.transcribe"),
        )


@dataclass(frozen=True, slots=True)
class LocaleEntry:
    """Static locale table row mapping a language/dialect to a voice."""

    language_code: str
    dialect_code: str | None
    speech_locale: str
    speaker_id: str

    @property
    def key(self) -> str:
        """Return the lookup key (`language` or `language-DIALECT`)."""

        if self.dialect_code is None:
            return self.language_code
        return f"{self.language_code}-{self.dialect_code}"


@dataclass(frozen=True, slots=True)
class VoiceSelection:
    """Resolved speech locale and speaker for one synthesis call."""

    locale_code: str
    speaker_id: str
    used_fallback: bool


@dataclass(frozen=True, slots=True)
class GeneratedImage:
    """Image bytes returned by a generation or edit call."""

    image_bytes: bytes
    mime_type: str
    model: str


@dataclass(frozen=True, slots=True)
class ImageAnalysis:
    """Vision description of an uploaded image."""

    description: str
    analysis_kind: str
    confidence: str
    model: str | None
    fallback: bool = False


@dataclass(frozen=True, slots=True)
class TranslationOutput:
    """Translation of one short text."""

    source_text: str
    translated_text: str
    target_language: str
    target_dialect: str | None
    model: str


@dataclass(frozen=True, slots=True)
class SynthesizedSpeech:
    """Audio bytes produced by a speech synthesis call."""

    audio_bytes: bytes
    mime_type: str
    model: str
    speaker_id: str
    locale_code: str


@dataclass(frozen=True, slots=True)
class Transcript:
    """Text transcribed from a recorded utterance."""

    text: str
    model: str


@dataclass(frozen=True, slots=True)
class SanitizedImage:
    """Image cleaned by the sanitation pass."""

    image_bytes: bytes
    mime_type: str
    model: str


@dataclass(frozen=True, slots=True)
class StoredArtifact:
    """Identity of one artifact persisted by the artifact store."""

    artifact_id: str
    public_url: str
    size: int = 0


@dataclass(frozen=True, slots=True)
class LabelAudio:
    """Optional spoken label attached to an icon result.

    Attributes:
        text: Text that was spoken (translated label when translation ran).
        translated: Whether `text` is a translation of the original label.
        audio_data: Synthesized audio bytes.
        mime_type: Audio MIME type.
        locale_code: Speech locale used for synthesis.
        speaker_id: Speaker used for synthesis.
        used_fallback: Whether locale/speaker resolution degraded to a fallback.
    """

    text: str
    translated: bool
    audio_data: bytes
    mime_type: str
    locale_code: str
    speaker_id: str
    used_fallback: bool


@dataclass(frozen=True, slots=True)
class StorageOutcome:
    """Result of handing a generated artifact to the artifact store."""

    stored: bool
    storage_warning: bool = False
    artifact_id: str | None = None
    public_url: str | None = None
    audio_artifact_id: str | None = None
    audio_public_url: str | None = None
    detail: str | None = None


@dataclass(frozen=True, slots=True)
class GenerationError:
    """Classified failure carried by a failed generation result."""

    kind: ErrorKind
    message: str
    stage: str
    attempts: int = 0


@dataclass(frozen=True, slots=True)
class GenerationResult:
    """Terminal value of one orchestrated generation request.

    A successful result carries exactly one primary payload matching `kind`:
    `image_data` for icon kinds, `text` for translation, `audio_data` for speech.
    A failed result carries `error` and no primary payload.
    """

    success: bool
    kind: RequestKind
    model_used: str | None = None
    image_data: bytes | None = None
    mime_type: str | None = None
    text: str | None = None
    audio_data: bytes | None = None
    sanitized: bool = False
    fallback_used: bool = False
    error: GenerationError | None = None
    prompt: str | None = None
    description: str | None = None
    transcript: str | None = None
    label_audio: LabelAudio | None = None
    storage: StorageOutcome | None = None
    states: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        payloads = {
            "image_data": self.image_data,
            "text": self.text,
            "audio_data": self.audio_data,
        }
        present = sorted(name for name, value in payloads.items() if value is not None)
        if not self.success:
            if self.error is None:
                raise ValueError("Failed generation results must carry an error.")
            if present:
                raise ValueError("Failed generation results must not carry a payload.")
            return
        expected = _PRIMARY_PAYLOAD_FIELD[self.kind]
        if present != [expected]:
            raise ValueError(
                f"Successful `{self.kind.value}` result must carry exactly `{expected}`; "
                f"found {present or 'none'}."
            )

    @property
    def primary_payload(self) -> bytes | str | None:
        """Return the primary payload matching the request kind."""

        return getattr(self, _PRIMARY_PAYLOAD_FIELD[self.kind])

    def as_payload(self) -> dict[str, Any]:
        """Return a JSON-safe response mapping.

        Binary payloads are inlined as base64 whenever the artifact was not stored.
        """

        payload: dict[str, Any] = {
            "success": self.success,
            "kind": self.kind.value,
            "model_used": self.model_used,
            "sanitized": self.sanitized,
            "fallback_used": self.fallback_used,
            "states": list(self.states),
        }
        if self.error is not None:
            payload["error"] = {
                "kind": self.error.kind.value,
                "message": self.error.message,
                "stage": self.error.stage,
                "attempts": self.error.attempts,
            }
        for name in ("prompt", "description", "transcript", "text", "mime_type"):
            value = getattr(self, name)
            if value is not None:
                payload[name] = value

        stored = self.storage is not None and self.storage.stored
        binary = self.image_data if self.image_data is not None else self.audio_data
        if binary is not None:
            payload["size"] = len(binary)
            if not stored:
                payload["data_base64"] = base64.b64encode(binary).decode("ascii")

        if self.storage is not None:
            payload["storage"] = {
                key: value
                for key, value in (
                    ("stored", self.storage.stored),
                    ("storage_warning", self.storage.storage_warning),
                    ("artifact_id", self.storage.artifact_id),
                    ("public_url", self.storage.public_url),
                    ("audio_artifact_id", self.storage.audio_artifact_id),
                    ("audio_public_url", self.storage.audio_public_url),
                    ("detail", self.storage.detail),
                )
                if value is not None
            }

        if self.label_audio is not None:
            label_payload: dict[str, Any] = {
                "text": self.label_audio.text,
                "translated": self.label_audio.translated,
                "mime_type": self.label_audio.mime_type,
                "locale_code": self.label_audio.locale_code,
                "speaker_id": self.label_audio.speaker_id,
                "used_fallback": self.label_audio.used_fallback,
            }
            if self.storage is None or self.storage.audio_artifact_id is None:
                label_payload["data_base64"] = base64.b64encode(
                    self.label_audio.audio_data
                ).decode("ascii")
            payload["label_audio"] = label_payload
        return payload


_PRIMARY_PAYLOAD_FIELD: Mapping[RequestKind, str] = {
    RequestKind.TEXT_TO_ICON: "image_data",
    RequestKind.IMAGE_TO_ICON: "image_data",
    RequestKind.TRANSLATE: "text",
    RequestKind.SPEECH: "audio_data",
}
