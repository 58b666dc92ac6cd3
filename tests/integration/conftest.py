"""Integration-test fixtures for deterministic provider and credential behavior."""

from __future__ import annotations

import pytest

from culturicon.providers.openai_client import (
    OpenAIChatClient,
    OpenAIImageClient,
    OpenAISpeechClient,
    OpenAITranscriptionClient,
)
from tests.fakes import (
    MOCKED_AUDIO,
    MOCKED_IMAGE,
    MOCKED_TEXT,
    MOCKED_TRANSCRIPT,
    InMemoryCredentialStore,
)


@pytest.fixture(autouse=True)
def _mock_openai_calls(monkeypatch: pytest.MonkeyPatch) -> None:
    """Mock OpenAI HTTP clients in integration tests to avoid network/key requirements."""

    def _mock_generate_image(self, **kwargs: object) -> bytes:
        _ = self, kwargs
        return MOCKED_IMAGE

    def _mock_edit_image(self, **kwargs: object) -> bytes:
        _ = self, kwargs
        return MOCKED_IMAGE

    def _mock_chat_completion(self, **kwargs: object) -> str:
        _ = self, kwargs
        return MOCKED_TEXT

    def _mock_synthesize_speech(self, **kwargs: object) -> bytes:
        _ = self, kwargs
        return MOCKED_AUDIO

    def _mock_transcribe_audio(self, **kwargs: object) -> str:
        _ = self, kwargs
        return MOCKED_TRANSCRIPT

    monkeypatch.setattr(OpenAIImageClient, "generate_image", _mock_generate_image)
    monkeypatch.setattr(OpenAIImageClient, "edit_image", _mock_edit_image)
    monkeypatch.setattr(OpenAIChatClient, "chat_completion_text", _mock_chat_completion)
    monkeypatch.setattr(OpenAISpeechClient, "synthesize_speech", _mock_synthesize_speech)
    monkeypatch.setattr(OpenAITranscriptionClient, "transcribe_audio", _mock_transcribe_audio)


@pytest.fixture(autouse=True)
def credential_store(monkeypatch: pytest.MonkeyPatch) -> InMemoryCredentialStore:
    """Replace the OS keyring with an in-memory store for CLI commands."""

    store = InMemoryCredentialStore()
    monkeypatch.setattr("culturicon.cli.create_credential_store", lambda: store)
    return store
