"""Shared typed data models for Culturicon.

This package contains dataclasses used across pipeline modules to avoid
cross-module coupling and circular imports.
"""

from .datatypes import (
    AccessibilityPreferences,
    CulturalProfile,
    Demographics,
    EndpointCallSpecs,
    GeneratedImage,
    GenerationError,
    GenerationOptions,
    GenerationRequest,
    GenerationResult,
    ImageAnalysis,
    LabelAudio,
    LocaleEntry,
    ModelCallSpec,
    RequestKind,
    SanitizedImage,
    StorageOutcome,
    StoredArtifact,
    SynthesizedSpeech,
    Transcript,
    TranslationOutput,
    VoiceSelection,
)

__all__ = [
    "AccessibilityPreferences",
    "CulturalProfile",
    "Demographics",
    "EndpointCallSpecs",
    "GeneratedImage",
    "GenerationError",
    "GenerationOptions",
    "GenerationRequest",
    "GenerationResult",
    "ImageAnalysis",
    "LabelAudio",
    "LocaleEntry",
    "ModelCallSpec",
    "RequestKind",
    "SanitizedImage",
    "StorageOutcome",
    "StoredArtifact",
    "SynthesizedSpeech",
    "Transcript",
    "TranslationOutput",
    "VoiceSelection",
]
