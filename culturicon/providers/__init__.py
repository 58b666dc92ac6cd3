"""Model provider integrations for image, vision, and translation calls."""

from .cache import ResponseCache
from .imagery import ImageGenerator, OpenAIImageGenerator
from .openai_client import (
    OpenAIChatClient,
    OpenAIImageClient,
    OpenAIProviderError,
    OpenAISpeechClient,
    OpenAITranscriptionClient,
)
from .prompts import PromptLibrary
from .translator import OpenAITranslator, Translator
from .vision import ImageAnalyzer, OpenAIImageAnalyzer, fallback_analysis

__all__ = [
    "ImageAnalyzer",
    "ImageGenerator",
    "OpenAIChatClient",
    "OpenAIImageAnalyzer",
    "OpenAIImageClient",
    "OpenAIImageGenerator",
    "OpenAIProviderError",
    "OpenAISpeechClient",
    "OpenAITranscriptionClient",
    "OpenAITranslator",
    "PromptLibrary",
    "ResponseCache",
    "Translator",
    "fallback_analysis",
]
