"""Speech-to-text interfaces and OpenAI-backed implementation."""

from __future__ import annotations

from typing import Protocol

from ..models.datatypes import Transcript
from ..providers.openai_client import OpenAITranscriptionClient


class Transcriber(Protocol):
    """Protocol for speech-to-text providers."""

    def transcribe(
        self,
        audio_bytes: bytes,
        *,
        mime_type: str = "audio/webm",
        language: str | None = None,
        timeout_seconds: float | None = None,
    ) -> Transcript:
        """Transcribe one recorded utterance."""


class OpenAITranscriber:
    """OpenAI-backed transcriber for recorded utterances."""

    def __init__(
        self,
        model: str = "gpt-4o-mini-transcribe",
        provider_id: str = "openai",
        api_key: str | None = None,
        client: OpenAITranscriptionClient | None = None,
    ) -> None:
        self.model = model
        self.provider_id = provider_id
        self.client = client if client is not None else OpenAITranscriptionClient(api_key=api_key)

    def transcribe(
        self,
        audio_bytes: bytes,
        *,
        mime_type: str = "audio/webm",
        language: str | None = None,
        timeout_seconds: float | None = None,
    ) -> Transcript:
        """Transcribe `audio_bytes`, hinting the spoken language when known."""

        text = self.client.transcribe_audio(
            model=self.model,
            audio_bytes=audio_bytes,
            mime_type=mime_type,
            language=language,
            timeout_seconds=timeout_seconds,
        )
        return Transcript(text=text, model=self.model)
