"""Provider factory helpers for image, vision, translation, and speech collaborators.

Responsibilities:
- Resolve provider identifiers to concrete collaborator implementations.
- Assemble `PipelineCollaborators` and a ready orchestrator from a config.

Notes:
- Only `openai` is implemented at the moment.
"""

from __future__ import annotations

from .config import CulturiconConfig, ProviderRuntimeConfig
from .culture.profiles import YamlProfileStore
from .pipeline.collaborators import PipelineCollaborators
from .pipeline.invoker import ModelInvoker
from .pipeline.orchestrator import GenerationOrchestrator
from .providers.cache import ResponseCache
from .providers.imagery import ImageGenerator, OpenAIImageGenerator
from .providers.translator import OpenAITranslator, Translator
from .providers.vision import ImageAnalyzer, OpenAIImageAnalyzer
from .storage.artifacts import LocalArtifactStore
from .telemetry.logger import RunLogger
from .tts.synthesizer import OpenAISpeechSynthesizer, SpeechSynthesizer
from .tts.transcriber import OpenAITranscriber, Transcriber


class ProviderFactory:
    """Factory for provider-backed collaborators used by the pipeline."""

    @staticmethod
    def create_image_generator(
        provider_id: str,
        model: str,
        api_key: str | None = None,
        size: str = "1024x1024",
    ) -> ImageGenerator:
        """Create an image generator for a configured provider identifier."""

        if provider_id == "openai":
            return OpenAIImageGenerator(
                model=model, provider_id=provider_id, api_key=api_key, size=size
            )
        raise ValueError(f"Unsupported image provider `{provider_id}`.")

    @staticmethod
    def create_image_analyzer(
        provider_id: str,
        model: str,
        api_key: str | None = None,
        response_cache: ResponseCache | None = None,
    ) -> ImageAnalyzer:
        """Create a vision analyzer for a configured provider identifier."""

        if provider_id == "openai":
            return OpenAIImageAnalyzer(
                model=model,
                provider_id=provider_id,
                api_key=api_key,
                response_cache=response_cache,
            )
        raise ValueError(f"Unsupported vision provider `{provider_id}`.")

    @staticmethod
    def create_translator(
        provider_id: str,
        model: str,
        api_key: str | None = None,
        response_cache: ResponseCache | None = None,
    ) -> Translator:
        """Create a translator client for a configured provider identifier."""

        if provider_id == "openai":
            return OpenAITranslator(
                model=model,
                provider_id=provider_id,
                api_key=api_key,
                response_cache=response_cache,
            )
        raise ValueError(f"Unsupported translator provider `{provider_id}`.")

    @staticmethod
    def create_speech_synthesizer(
        provider_id: str,
        model: str,
        api_key: str | None = None,
        response_format: str = "mp3",
    ) -> SpeechSynthesizer:
        """Create a speech synthesizer for a configured provider identifier."""

        if provider_id == "openai":
            return OpenAISpeechSynthesizer(
                model=model,
                provider_id=provider_id,
                api_key=api_key,
                response_format=response_format,
            )
        raise ValueError(f"Unsupported TTS provider `{provider_id}`.")

    @staticmethod
    def create_transcriber(
        provider_id: str,
        model: str,
        api_key: str | None = None,
    ) -> Transcriber:
        """Create a speech-to-text client for a configured provider identifier."""

        if provider_id == "openai":
            return OpenAITranscriber(model=model, provider_id=provider_id, api_key=api_key)
        raise ValueError(f"Unsupported transcription provider `{provider_id}`.")


def build_collaborators(
    config: CulturiconConfig,
    runtime: ProviderRuntimeConfig | None = None,
    *,
    store_artifacts: bool = True,
) -> PipelineCollaborators:
    """Build all pipeline collaborators from a validated config.

    Translation and vision share one response cache so repeated identical
    calls within a process are served once.
    """

    resolved = runtime if runtime is not None else config.resolved_provider_runtime()
    cache = ResponseCache()
    return PipelineCollaborators(
        image_generator=ProviderFactory.create_image_generator(
            resolved.provider, resolved.image_model, resolved.api_key, size=config.image_size
        ),
        image_analyzer=ProviderFactory.create_image_analyzer(
            resolved.provider, resolved.vision_model, resolved.api_key, response_cache=cache
        ),
        translator=ProviderFactory.create_translator(
            resolved.provider, resolved.translate_model, resolved.api_key, response_cache=cache
        ),
        speech_synthesizer=ProviderFactory.create_speech_synthesizer(
            resolved.provider,
            resolved.tts_model,
            resolved.api_key,
            response_format=config.tts_format,
        ),
        transcriber=ProviderFactory.create_transcriber(
            resolved.provider, resolved.transcribe_model, resolved.api_key
        ),
        artifact_store=LocalArtifactStore(config.output_dir) if store_artifacts else None,
        profile_provider=(
            YamlProfileStore(config.profiles_file) if config.profiles_file is not None else None
        ),
    )


def build_orchestrator(
    config: CulturiconConfig,
    *,
    run_logger: RunLogger | None = None,
    store_artifacts: bool = True,
) -> GenerationOrchestrator:
    """Build a ready-to-run orchestrator from a validated config."""

    collaborators = build_collaborators(config, store_artifacts=store_artifacts)
    return GenerationOrchestrator(
        collaborators,
        config.call_specs(),
        invoker=ModelInvoker(run_logger=run_logger),
        run_logger=run_logger,
    )
