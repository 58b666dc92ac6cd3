"""Image analysis interfaces and provider integrations.

Responsibilities:
- Define a protocol for vision description of uploaded images.
- Provide an OpenAI-backed analyzer with content filtering of descriptions.
- Build the deterministic low-confidence description used when no vision model
  is available.
"""

from __future__ import annotations

import re
from typing import Protocol

from ..models.datatypes import ImageAnalysis
from .cache import ResponseCache
from .openai_client import OpenAIChatClient, OpenAIProviderError
from .prompts import PromptLibrary


MIN_DESCRIPTION_LENGTH = 10
MAX_DESCRIPTION_LENGTH = 500

_FILTERED_TERMS = re.compile(r"\b(inappropriate|offensive|harmful)\b", re.IGNORECASE)


class ImageAnalyzer(Protocol):
    """Protocol for vision description providers."""

    def analyze(
        self,
        image_bytes: bytes,
        analysis_kind: str,
        *,
        mime_type: str = "image/png",
        timeout_seconds: float | None = None,
    ) -> ImageAnalysis:
        """Describe an image for the given analysis kind."""


def filter_description(text: str) -> str:
    """Mask flagged terms, then bound the description length.

    Raises:
        OpenAIProviderError: If the filtered description is shorter than
            `MIN_DESCRIPTION_LENGTH` characters.
    """

    filtered = _FILTERED_TERMS.sub("[filtered]", text).strip()
    if len(filtered) < MIN_DESCRIPTION_LENGTH:
        raise OpenAIProviderError("Image analysis result is too short or empty.")
    if len(filtered) > MAX_DESCRIPTION_LENGTH:
        return f"{filtered[:MAX_DESCRIPTION_LENGTH]}..."
    return filtered


def fallback_analysis(analysis_kind: str, prompts: PromptLibrary | None = None) -> ImageAnalysis:
    """Return the canned low-confidence analysis for an analysis kind."""

    library = prompts if prompts is not None else PromptLibrary()
    return ImageAnalysis(
        description=library.analysis_fallback(analysis_kind),
        analysis_kind=analysis_kind,
        confidence="low",
        model=None,
        fallback=True,
    )


class OpenAIImageAnalyzer:
    """OpenAI-backed vision analyzer using chat-completions image input."""

    def __init__(
        self,
        model: str = "gpt-4.1-mini",
        provider_id: str = "openai",
        api_key: str | None = None,
        response_cache: ResponseCache | None = None,
        client: OpenAIChatClient | None = None,
    ) -> None:
        """Initialize analyzer settings and OpenAI client dependencies."""

        self.model = model
        self.provider_id = provider_id
        self.cache = response_cache if response_cache is not None else ResponseCache()
        self.client = client if client is not None else OpenAIChatClient(api_key=api_key)
        self.prompts = PromptLibrary()

    def analyze(
        self,
        image_bytes: bytes,
        analysis_kind: str,
        *,
        mime_type: str = "image/png",
        timeout_seconds: float | None = None,
    ) -> ImageAnalysis:
        """Describe `image_bytes` and return a filtered, high-confidence analysis."""

        cache_key = self.cache.make_key(
            provider=self.provider_id,
            model=self.model,
            operation="analyze",
            input_identity={"analysis_kind": analysis_kind, "image": image_bytes},
        )
        description = self.cache.get(cache_key)
        if description is None:
            raw_text = self.client.chat_completion_text(
                model=self.model,
                system_prompt=self.prompts.analysis_system_prompt(),
                user_prompt=self.prompts.analysis_prompt(analysis_kind),
                temperature=0.4,
                image_bytes=image_bytes,
                image_mime_type=mime_type,
                timeout_seconds=timeout_seconds,
            )
            description = filter_description(raw_text)
            self.cache.set(cache_key, description)
        return ImageAnalysis(
            description=description,
            analysis_kind=analysis_kind,
            confidence="high",
            model=self.model,
        )
