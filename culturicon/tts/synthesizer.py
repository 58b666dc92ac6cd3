"""Speech synthesizer interfaces and OpenAI-backed implementation.

Responsibilities:
- Define protocol for short-label speech synthesis.
- Provide OpenAI-backed synthesis with locale-aware delivery instructions.
"""

from __future__ import annotations

from typing import Protocol

from ..models.datatypes import SynthesizedSpeech
from ..providers.openai_client import OpenAISpeechClient
from ..providers.prompts import PromptLibrary


_FORMAT_MIME_TYPES = {
    "mp3": "audio/mpeg",
    "wav": "audio/wav",
    "opus": "audio/ogg",
    "aac": "audio/aac",
    "flac": "audio/flac",
}


class SpeechSynthesizer(Protocol):
    """Protocol for speech synthesis providers."""

    def synthesize(
        self,
        text: str,
        locale_code: str,
        speaker_id: str,
        *,
        timeout_seconds: float | None = None,
    ) -> SynthesizedSpeech:
        """Synthesize speech for `text` in the given locale and voice."""


class OpenAISpeechSynthesizer:
    """OpenAI-backed synthesizer returning in-memory audio bytes."""

    def __init__(
        self,
        model: str = "gpt-4o-mini-tts",
        provider_id: str = "openai",
        api_key: str | None = None,
        response_format: str = "mp3",
        client: OpenAISpeechClient | None = None,
    ) -> None:
        """Initialize OpenAI-backed speech synthesizer settings."""

        if response_format not in _FORMAT_MIME_TYPES:
            raise ValueError(
                f"Unsupported speech format `{response_format}`; expected one of "
                f"{', '.join(sorted(_FORMAT_MIME_TYPES))}."
            )
        self.model = model
        self.provider_id = provider_id
        self.response_format = response_format
        self.client = client if client is not None else OpenAISpeechClient(api_key=api_key)
        self.prompts = PromptLibrary()

    @property
    def mime_type(self) -> str:
        """Return the MIME type of synthesized audio."""

        return _FORMAT_MIME_TYPES[self.response_format]

    def synthesize(
        self,
        text: str,
        locale_code: str,
        speaker_id: str,
        *,
        timeout_seconds: float | None = None,
    ) -> SynthesizedSpeech:
        """Synthesize one utterance and return audio bytes with voice metadata."""

        audio_bytes = self.client.synthesize_speech(
            model=self.model,
            voice=speaker_id,
            text=text,
            response_format=self.response_format,
            instructions=self.prompts.speech_instructions(locale_code),
            timeout_seconds=timeout_seconds,
        )
        return SynthesizedSpeech(
            audio_bytes=audio_bytes,
            mime_type=self.mime_type,
            model=self.model,
            speaker_id=speaker_id,
            locale_code=locale_code,
        )
