"""Explicitly constructed service handles consumed by the orchestrator."""

from __future__ import annotations

from dataclasses import dataclass

from ..culture.profiles import CulturalContextProvider
from ..providers.imagery import ImageGenerator
from ..providers.translator import Translator
from ..providers.vision import ImageAnalyzer
from ..storage.artifacts import ArtifactStore
from ..tts.synthesizer import SpeechSynthesizer
from ..tts.transcriber import Transcriber


@dataclass(frozen=True, slots=True)
class PipelineCollaborators:
    """External collaborators for one orchestrator instance.

    Attributes:
        image_generator: Generation and edit-style image calls (edit drives sanitation).
        image_analyzer: Vision description of uploaded images.
        translator: Short-text translation.
        speech_synthesizer: Text-to-speech.
        transcriber: Speech-to-text for recorded speech requests.
        artifact_store: Optional store receiving finished artifacts.
        profile_provider: Optional user-id to cultural-profile lookup.
    """

    image_generator: ImageGenerator
    image_analyzer: ImageAnalyzer
    translator: Translator
    speech_synthesizer: SpeechSynthesizer
    transcriber: Transcriber
    artifact_store: ArtifactStore | None = None
    profile_provider: CulturalContextProvider | None = None
