"""Translation interfaces and provider integrations.

Responsibilities:
- Define a protocol for short-text translation implementations.
- Provide an OpenAI-backed translator with provider/model metadata and caching.
"""

from __future__ import annotations

from typing import Protocol

from ..models.datatypes import TranslationOutput
from .cache import ResponseCache
from .openai_client import OpenAIChatClient, OpenAIProviderError
from .prompts import PromptLibrary


_QUOTE_CHARACTERS = "\"'“”«»"


class Translator(Protocol):
    """Protocol for translation providers."""

    def translate(
        self,
        text: str,
        target_language: str,
        target_dialect: str | None = None,
        *,
        timeout_seconds: float | None = None,
    ) -> TranslationOutput:
        """Translate text into the target language and optional dialect."""


def clean_translation(text: str) -> str:
    """Trim whitespace and one pair of wrapping quotes from a model translation."""

    cleaned = text.strip()
    if len(cleaned) >= 2 and cleaned[0] in _QUOTE_CHARACTERS and cleaned[-1] in _QUOTE_CHARACTERS:
        cleaned = cleaned[1:-1].strip()
    return cleaned


class OpenAITranslator:
    """OpenAI-backed translator for short labels."""

    def __init__(
        self,
        model: str = "gpt-4.1-mini",
        provider_id: str = "openai",
        api_key: str | None = None,
        response_cache: ResponseCache | None = None,
        client: OpenAIChatClient | None = None,
    ) -> None:
        """Initialize translator settings and OpenAI client dependencies."""

        self.model = model
        self.provider_id = provider_id
        self.cache = response_cache if response_cache is not None else ResponseCache()
        self.client = client if client is not None else OpenAIChatClient(api_key=api_key)
        self.prompts = PromptLibrary()

    def translate(
        self,
        text: str,
        target_language: str,
        target_dialect: str | None = None,
        *,
        timeout_seconds: float | None = None,
    ) -> TranslationOutput:
        """Translate one label with OpenAI chat-completions and return metadata."""

        cache_key = self.cache.make_key(
            provider=self.provider_id,
            model=self.model,
            operation="translate",
            input_identity={
                "target_language": target_language,
                "target_dialect": target_dialect,
                "source_text": text,
            },
        )
        translated_text = self.cache.get(cache_key)
        if translated_text is None:
            raw_text = self.client.chat_completion_text(
                model=self.model,
                system_prompt=self.prompts.translation_system_prompt(),
                user_prompt=self.prompts.translate_prompt(
                    source_text=text,
                    target_language=target_language,
                    target_dialect=target_dialect,
                ),
                temperature=0.3,
                timeout_seconds=timeout_seconds,
            )
            translated_text = clean_translation(raw_text)
            if not translated_text:
                raise OpenAIProviderError("OpenAI translation is empty after cleanup.")
            self.cache.set(cache_key, translated_text)
        return TranslationOutput(
            source_text=text,
            translated_text=translated_text,
            target_language=target_language,
            target_dialect=target_dialect,
            model=self.model,
        )
