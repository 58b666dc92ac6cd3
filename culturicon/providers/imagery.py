"""Image generation interfaces and provider integrations.

Responsibilities:
- Define a protocol for prompt-driven image generation and edit-style calls.
- Provide an OpenAI-backed generator for `/images/generations` and `/images/edits`.
"""

from __future__ import annotations

from typing import Protocol

from ..models.datatypes import GeneratedImage
from .openai_client import OpenAIImageClient


class ImageGenerator(Protocol):
    """Protocol for image generation providers."""

    def generate(
        self,
        prompt: str,
        *,
        input_image: bytes | None = None,
        input_mime_type: str = "image/png",
        timeout_seconds: float | None = None,
    ) -> GeneratedImage:
        """Generate an image from `prompt`, editing `input_image` when given."""


class OpenAIImageGenerator:
    """OpenAI-backed image generator producing transparent PNG icons."""

    def __init__(
        self,
        model: str = "gpt-image-1",
        provider_id: str = "openai",
        api_key: str | None = None,
        size: str = "1024x1024",
        client: OpenAIImageClient | None = None,
    ) -> None:
        """Initialize generator settings and OpenAI client dependencies."""

        self.model = model
        self.provider_id = provider_id
        self.size = size
        self.client = client if client is not None else OpenAIImageClient(api_key=api_key)

    def generate(
        self,
        prompt: str,
        *,
        input_image: bytes | None = None,
        input_mime_type: str = "image/png",
        timeout_seconds: float | None = None,
    ) -> GeneratedImage:
        """Generate or edit an image and return PNG bytes with model metadata."""

        if input_image is None:
            image_bytes = self.client.generate_image(
                model=self.model,
                prompt=prompt,
                size=self.size,
                timeout_seconds=timeout_seconds,
            )
        else:
            image_bytes = self.client.edit_image(
                model=self.model,
                prompt=prompt,
                image_bytes=input_image,
                mime_type=input_mime_type,
                timeout_seconds=timeout_seconds,
            )
        return GeneratedImage(image_bytes=image_bytes, mime_type="image/png", model=self.model)
