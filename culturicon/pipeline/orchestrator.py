"""Generation orchestration for Culturicon.

Responsibilities:
- Run one generation request through its state sequence
  (`building -> invoking -> sanitizing -> translating -> synthesizing -> done | failed`).
- Convert classified model failures into failed results, and absorb the
  degradations that keep a result successful (vision fallback, sanitizer
  pass-through, label audio failure, storage warning).
- Hand finished artifacts to the artifact store while the optional label audio
  sub-chain runs on a worker thread, joining both before returning.

Key types:
- `GenerationOrchestrator`: orchestration facade.
- `GenerationResult`: immutable terminal value of one request.
"""

from __future__ import annotations

import dataclasses
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable

from loguru import logger

from ..culture.locale_table import LOCALE_TABLE_VERSION
from ..culture.locales import DEFAULT_RESOLVER, LanguageDialectResolver
from ..culture.profiles import DEFAULT_PROFILE
from ..errors import (
    ErrorKind,
    FailureClass,
    InvocationCancelled,
    ModelInvocationError,
    RequestInputError,
    SanitizationError,
)
from ..models.datatypes import (
    CulturalProfile,
    EndpointCallSpecs,
    GenerationError,
    GenerationOptions,
    GenerationRequest,
    GenerationResult,
    ImageAnalysis,
    LabelAudio,
    RequestKind,
    StorageOutcome,
)
from ..parsing import normalize_optional_string
from ..prompting.builder import MAX_BASE_TEXT_LENGTH, PromptBuilder, validate_base_text
from ..providers.prompts import PromptLibrary
from ..providers.vision import fallback_analysis
from ..storage.artifacts import ArtifactStore
from ..telemetry.logger import RunLogger
from .collaborators import PipelineCollaborators
from .invoker import ModelInvoker
from .sanitizer import Sanitizer
from .states import PipelineState, StateTracker
from .telemetry import PipelineTelemetryMixin


@dataclass(slots=True)
class _WorkingResult:
    """Mutable, request-scoped accumulator folded into the final result."""

    model_used: str | None = None
    image_data: bytes | None = None
    mime_type: str | None = None
    text: str | None = None
    audio_data: bytes | None = None
    sanitized: bool = False
    fallback_used: bool = False
    prompt: str | None = None
    description: str | None = None
    transcript: str | None = None
    generation_method: str | None = None


class GenerationOrchestrator(PipelineTelemetryMixin):
    """Coordinate prompt building, model calls, sanitation, and storage for one request."""

    def __init__(
        self,
        collaborators: PipelineCollaborators,
        call_specs: EndpointCallSpecs | None = None,
        *,
        invoker: ModelInvoker | None = None,
        prompt_builder: PromptBuilder | None = None,
        resolver: LanguageDialectResolver | None = None,
        sanitizer: Sanitizer | None = None,
        prompts: PromptLibrary | None = None,
        run_logger: RunLogger | None = None,
    ) -> None:
        """Initialize the orchestrator with injected collaborators and call policy."""

        self.collaborators = collaborators
        self.call_specs = call_specs if call_specs is not None else EndpointCallSpecs.uniform()
        self.invoker = invoker if invoker is not None else ModelInvoker(run_logger=run_logger)
        self.prompt_builder = prompt_builder if prompt_builder is not None else PromptBuilder()
        self.resolver = resolver if resolver is not None else DEFAULT_RESOLVER
        self.prompts = prompts if prompts is not None else PromptLibrary()
        self.sanitizer = (
            sanitizer
            if sanitizer is not None
            else Sanitizer(
                collaborators.image_generator,
                self.invoker,
                self.call_specs.sanitize,
                self.prompts,
            )
        )
        self._run_logger = run_logger

    def run(
        self,
        request: GenerationRequest,
        *,
        user_id: str | None = None,
        owner_id: str | None = None,
        cancel_event: threading.Event | None = None,
    ) -> GenerationResult:
        """Run one request to its terminal state and return the result.

        Classified model failures, malformed input, and cancellation produce a
        failed result. Unclassified exceptions propagate.

        Args:
            request: The generation request.
            user_id: Optional user id resolved through the profile provider when the
                request carries no profile.
            owner_id: Owner id for artifact storage; storage is skipped without it.
            cancel_event: Optional event signalling cooperative cancellation.
        """

        tracker = StateTracker()
        profile = self._resolve_profile(request, user_id)
        working = _WorkingResult()

        try:
            self._run_primary(request, profile, working, tracker, cancel_event)
        except RequestInputError as exc:
            return self._failed(request, tracker, working, ErrorKind.INPUT_ERROR, str(exc), 0)
        except ModelInvocationError as exc:
            return self._failed(
                request,
                tracker,
                working,
                exc.failure.to_error_kind(),
                str(exc),
                exc.attempts,
            )
        except InvocationCancelled as exc:
            return self._failed(request, tracker, working, ErrorKind.CANCELLED, str(exc), exc.attempts)

        label_audio, storage = self._finish_artifacts(
            request, profile, working, tracker, owner_id, cancel_event
        )
        fallback_used = working.fallback_used or (
            label_audio is not None and label_audio.used_fallback
        )

        tracker.advance(PipelineState.DONE)
        if self._run_logger is not None:
            self._run_logger.log_request_done(
                request.kind.value,
                sanitized=working.sanitized,
                fallback_used=fallback_used,
            )
        return GenerationResult(
            success=True,
            kind=request.kind,
            model_used=working.model_used,
            image_data=working.image_data,
            mime_type=working.mime_type,
            text=working.text,
            audio_data=working.audio_data,
            sanitized=working.sanitized,
            fallback_used=fallback_used,
            prompt=working.prompt,
            description=working.description,
            transcript=working.transcript,
            label_audio=label_audio,
            storage=storage,
            states=tuple(state.value for state in tracker.history),
        )

    def _resolve_profile(
        self,
        request: GenerationRequest,
        user_id: str | None,
    ) -> CulturalProfile | None:
        """Return the request profile, falling back to the profile provider."""

        if request.cultural_profile is not None:
            return request.cultural_profile
        provider = self.collaborators.profile_provider
        if provider is not None and user_id:
            return provider.get_cultural_context(user_id)
        return None

    def _failed(
        self,
        request: GenerationRequest,
        tracker: StateTracker,
        working: _WorkingResult,
        kind: ErrorKind,
        message: str,
        attempts: int,
    ) -> GenerationResult:
        """Enter the failed state and build the failed result."""

        current = tracker.current
        stage = current.value if current is not None else PipelineState.BUILDING.value
        tracker.advance(PipelineState.FAILED)
        if self._run_logger is not None:
            self._run_logger.log_request_failed(
                request.kind.value,
                stage=stage,
                error_kind=kind.value,
            )
        return GenerationResult(
            success=False,
            kind=request.kind,
            model_used=working.model_used,
            fallback_used=working.fallback_used,
            error=GenerationError(kind=kind, message=message, stage=stage, attempts=attempts),
            prompt=working.prompt,
            description=working.description,
            transcript=working.transcript,
            states=tuple(state.value for state in tracker.history),
        )

    def _run_primary(
        self,
        request: GenerationRequest,
        profile: CulturalProfile | None,
        working: _WorkingResult,
        tracker: StateTracker,
        cancel_event: threading.Event | None,
    ) -> None:
        """Dispatch the primary path for the request kind."""

        handlers: dict[RequestKind, Callable[..., None]] = {
            RequestKind.TEXT_TO_ICON: self._text_to_icon,
            RequestKind.IMAGE_TO_ICON: self._image_to_icon,
            RequestKind.TRANSLATE: self._translate,
            RequestKind.SPEECH: self._speech,
        }
        handlers[request.kind](request, profile, working, tracker, cancel_event)

    def _text_to_icon(
        self,
        request: GenerationRequest,
        profile: CulturalProfile | None,
        working: _WorkingResult,
        tracker: StateTracker,
        cancel_event: threading.Event | None,
    ) -> None:
        """Build a prompt, generate an icon, and sanitize it."""

        text = _require_text(request)
        prompt = self._run_state(
            tracker,
            PipelineState.BUILDING,
            lambda: self.prompt_builder.build(text, profile),
        )
        working.prompt = prompt

        generator = self.collaborators.image_generator
        generated = self._run_state(
            tracker,
            PipelineState.INVOKING,
            lambda: self.invoker.invoke(
                self.call_specs.generate,
                lambda timeout_seconds: generator.generate(prompt, timeout_seconds=timeout_seconds),
                cancel_event=cancel_event,
            ),
        )
        working.model_used = generated.model

        self._sanitize_into(
            working,
            generated.image_bytes,
            generated.mime_type,
            hint=text,
            tracker=tracker,
            cancel_event=cancel_event,
        )
        working.generation_method = "text-to-icon-sanitized" if working.sanitized else "text-to-icon"

    def _image_to_icon(
        self,
        request: GenerationRequest,
        profile: CulturalProfile | None,
        working: _WorkingResult,
        tracker: StateTracker,
        cancel_event: threading.Event | None,
    ) -> None:
        """Describe an uploaded image, optionally redraw it, and sanitize the result."""

        image = _require_bytes(request)
        mime_type = request.options.mime_type_for(request.kind)
        options = request.options
        generator = self.collaborators.image_generator

        def _analyze_and_draw() -> tuple[bytes, str]:
            analysis = self._analyze(image, mime_type, options.analysis_kind, cancel_event)
            working.description = analysis.description
            working.model_used = analysis.model
            if analysis.fallback:
                working.fallback_used = True
            if not options.regenerate:
                return image, mime_type

            base_text = self.prompts.regenerate_prompt(analysis.description)[:MAX_BASE_TEXT_LENGTH]
            prompt = self.prompt_builder.build(base_text, profile)
            working.prompt = prompt
            generated = self.invoker.invoke(
                self.call_specs.generate,
                lambda timeout_seconds: generator.generate(prompt, timeout_seconds=timeout_seconds),
                cancel_event=cancel_event,
            )
            working.model_used = generated.model
            return generated.image_bytes, generated.mime_type

        working_image, working_mime = self._run_state(
            tracker,
            PipelineState.INVOKING,
            _analyze_and_draw,
        )
        self._sanitize_into(
            working,
            working_image,
            working_mime,
            hint=normalize_optional_string(request.label),
            tracker=tracker,
            cancel_event=cancel_event,
        )
        if options.regenerate:
            working.generation_method = "image-to-icon-regenerated"
        elif working.sanitized:
            working.generation_method = "image-to-icon-processed"
        else:
            working.generation_method = "image-to-icon"

    def _analyze(
        self,
        image: bytes,
        mime_type: str,
        analysis_kind: str,
        cancel_event: threading.Event | None,
    ) -> ImageAnalysis:
        """Run vision analysis, substituting the canned description when unavailable."""

        analyzer = self.collaborators.image_analyzer
        try:
            return self.invoker.invoke(
                self.call_specs.analyze,
                lambda timeout_seconds: analyzer.analyze(
                    image,
                    analysis_kind,
                    mime_type=mime_type,
                    timeout_seconds=timeout_seconds,
                ),
                cancel_event=cancel_event,
            )
        except ModelInvocationError as exc:
            if exc.failure is not FailureClass.NOT_FOUND:
                raise
            logger.warning(
                "Vision endpoint `{}` unavailable; using canned `{}` description.",
                exc.endpoint_id,
                analysis_kind,
            )
            self._log_fallback(
                PipelineState.INVOKING,
                "vision_unavailable",
                analysis_kind=analysis_kind,
                endpoint=exc.endpoint_id,
            )
            return fallback_analysis(analysis_kind, self.prompts)

    def _sanitize_into(
        self,
        working: _WorkingResult,
        image: bytes,
        mime_type: str,
        *,
        hint: str | None,
        tracker: StateTracker,
        cancel_event: threading.Event | None,
    ) -> None:
        """Sanitize `image` into `working`, passing the original through on failure."""

        def _sanitize() -> Any:
            try:
                return self.sanitizer.sanitize(
                    image,
                    hint,
                    mime_type=mime_type,
                    cancel_event=cancel_event,
                )
            except SanitizationError as exc:
                logger.warning("Sanitation failed; returning the unsanitized image: {}", exc)
                self._log_fallback(
                    PipelineState.SANITIZING,
                    "sanitizer_passthrough",
                    error_type=type(exc.__cause__ or exc).__name__,
                )
                return None

        cleaned = self._run_state(tracker, PipelineState.SANITIZING, _sanitize)
        if cleaned is None:
            working.image_data = image
            working.mime_type = mime_type
            working.sanitized = False
        else:
            working.image_data = cleaned.image_bytes
            working.mime_type = cleaned.mime_type
            working.sanitized = True
        if working.model_used is None and cleaned is not None:
            working.model_used = cleaned.model

    def _translate(
        self,
        request: GenerationRequest,
        profile: CulturalProfile | None,
        working: _WorkingResult,
        tracker: StateTracker,
        cancel_event: threading.Event | None,
    ) -> None:
        """Translate the text payload into the profile language and dialect."""

        text = _require_text(request)
        target = profile if profile is not None else DEFAULT_PROFILE
        translator = self.collaborators.translator
        output = self._run_state(
            tracker,
            PipelineState.INVOKING,
            lambda: self.invoker.invoke(
                self.call_specs.translate,
                lambda timeout_seconds: translator.translate(
                    text,
                    target.language,
                    target.dialect,
                    timeout_seconds=timeout_seconds,
                ),
                cancel_event=cancel_event,
            ),
        )
        working.text = output.translated_text
        working.model_used = output.model
        working.generation_method = "translation"

    def _speech(
        self,
        request: GenerationRequest,
        profile: CulturalProfile | None,
        working: _WorkingResult,
        tracker: StateTracker,
        cancel_event: threading.Event | None,
    ) -> None:
        """Synthesize speech for text, transcribing recorded audio first."""

        target = profile if profile is not None else DEFAULT_PROFILE
        if isinstance(request.payload, (bytes, bytearray)):
            audio = _require_bytes(request)
            mime_type = request.options.mime_type_for(request.kind)
            transcriber = self.collaborators.transcriber
            transcript = self._run_state(
                tracker,
                PipelineState.INVOKING,
                lambda: self.invoker.invoke(
                    self.call_specs.transcribe,
                    lambda timeout_seconds: transcriber.transcribe(
                        audio,
                        mime_type=mime_type,
                        language=target.language,
                        timeout_seconds=timeout_seconds,
                    ),
                    cancel_event=cancel_event,
                ),
            )
            working.transcript = transcript.text
            text = validate_base_text(transcript.text)
        else:
            text = _require_text(request)

        voice = self.resolver.resolve_voice(
            target.language,
            target.dialect,
            accent=request.options.accent,
        )
        if voice.used_fallback:
            working.fallback_used = True
            self._log_fallback(
                PipelineState.SYNTHESIZING,
                "default_voice",
                locale=voice.locale_code,
                speaker=voice.speaker_id,
            )

        synthesizer = self.collaborators.speech_synthesizer
        speech = self._run_state(
            tracker,
            PipelineState.SYNTHESIZING,
            lambda: self.invoker.invoke(
                self.call_specs.speech,
                lambda timeout_seconds: synthesizer.synthesize(
                    text,
                    voice.locale_code,
                    voice.speaker_id,
                    timeout_seconds=timeout_seconds,
                ),
                cancel_event=cancel_event,
            ),
        )
        working.audio_data = speech.audio_bytes
        working.mime_type = speech.mime_type
        working.model_used = speech.model
        working.generation_method = "speech"

    def _finish_artifacts(
        self,
        request: GenerationRequest,
        profile: CulturalProfile | None,
        working: _WorkingResult,
        tracker: StateTracker,
        owner_id: str | None,
        cancel_event: threading.Event | None,
    ) -> tuple[LabelAudio | None, StorageOutcome | None]:
        """Run the label sub-chain and primary storage, joining both."""

        label_job = self._label_job(request, profile, tracker, cancel_event)
        store = self.collaborators.artifact_store if owner_id else None
        owner = owner_id or ""

        storage: StorageOutcome | None = None
        label_audio: LabelAudio | None = None
        if label_job is not None and store is not None:
            with ThreadPoolExecutor(max_workers=1, thread_name_prefix="culturicon-label") as pool:
                future = pool.submit(label_job)
                storage = self._store_primary(store, request, profile, working, owner)
                label_audio = future.result()
        else:
            if store is not None:
                storage = self._store_primary(store, request, profile, working, owner)
            if label_job is not None:
                label_audio = label_job()

        if store is not None and label_audio is not None and storage is not None and storage.stored:
            storage = self._store_label_audio(store, request, label_audio, storage, owner)
        return label_audio, storage

    def _label_job(
        self,
        request: GenerationRequest,
        profile: CulturalProfile | None,
        tracker: StateTracker,
        cancel_event: threading.Event | None,
    ) -> Callable[[], LabelAudio | None] | None:
        """Return the label audio job when the request asks for one."""

        options: GenerationOptions = request.options
        label = normalize_optional_string(request.label)
        if not (request.kind.is_icon and options.generate_audio):
            return None
        if label is None or profile is None:
            logger.warning("Label audio requested without a label and profile; skipping.")
            return None
        return lambda: self._run_label_chain(label, profile, options.accent, tracker, cancel_event)

    def _run_label_chain(
        self,
        label: str,
        profile: CulturalProfile,
        accent: str | None,
        tracker: StateTracker,
        cancel_event: threading.Event | None,
    ) -> LabelAudio | None:
        """Translate (when needed) and speak the label; failures yield `None`."""

        translator = self.collaborators.translator
        synthesizer = self.collaborators.speech_synthesizer
        spoken_text = label
        translated = False
        try:
            if profile.language != "en" or profile.dialect:
                output = self._run_state(
                    tracker,
                    PipelineState.TRANSLATING,
                    lambda: self.invoker.invoke(
                        self.call_specs.translate,
                        lambda timeout_seconds: translator.translate(
                            label,
                            profile.language,
                            profile.dialect,
                            timeout_seconds=timeout_seconds,
                        ),
                        cancel_event=cancel_event,
                    ),
                )
                spoken_text = output.translated_text
                translated = True

            voice = self.resolver.resolve_voice(profile.language, profile.dialect, accent=accent)
            text_to_speak = spoken_text
            speech = self._run_state(
                tracker,
                PipelineState.SYNTHESIZING,
                lambda: self.invoker.invoke(
                    self.call_specs.speech,
                    lambda timeout_seconds: synthesizer.synthesize(
                        text_to_speak,
                        voice.locale_code,
                        voice.speaker_id,
                        timeout_seconds=timeout_seconds,
                    ),
                    cancel_event=cancel_event,
                ),
            )
        except Exception as exc:
            if isinstance(exc, (ModelInvocationError, InvocationCancelled)):
                logger.warning("Label audio skipped: {}", exc)
            else:
                logger.opt(exception=exc).warning("Label audio skipped after unexpected error: {}", exc)
            current = tracker.current
            self._log_fallback(
                current if current is not None else PipelineState.TRANSLATING,
                "label_audio_skipped",
                error_type=type(exc).__name__,
            )
            return None

        if voice.used_fallback:
            self._log_fallback(
                PipelineState.SYNTHESIZING,
                "default_voice",
                locale=voice.locale_code,
                speaker=voice.speaker_id,
            )
        return LabelAudio(
            text=spoken_text,
            translated=translated,
            audio_data=speech.audio_bytes,
            mime_type=speech.mime_type,
            locale_code=voice.locale_code,
            speaker_id=voice.speaker_id,
            used_fallback=voice.used_fallback,
        )

    def _store_primary(
        self,
        store: ArtifactStore,
        request: GenerationRequest,
        profile: CulturalProfile | None,
        working: _WorkingResult,
        owner_id: str,
    ) -> StorageOutcome:
        """Store the primary artifact; failures become a storage warning."""

        if working.text is not None:
            data = working.text.encode("utf-8")
            mime_type = "text/plain"
        else:
            data = working.image_data if working.image_data is not None else working.audio_data
            mime_type = working.mime_type or "application/octet-stream"
        if data is None:
            raise ValueError("Cannot store a result without a primary payload.")

        try:
            stored = store.store(owner_id, data, mime_type, _artifact_metadata(request, profile, working))
        except Exception as exc:
            logger.warning("Artifact storage failed; returning the artifact inline: {}", exc)
            if self._run_logger is not None:
                self._run_logger.log_storage_warning("primary", type(exc).__name__)
            return StorageOutcome(
                stored=False,
                storage_warning=True,
                detail=f"{type(exc).__name__}: {exc}",
            )
        return StorageOutcome(
            stored=True,
            artifact_id=stored.artifact_id,
            public_url=stored.public_url,
        )

    def _store_label_audio(
        self,
        store: ArtifactStore,
        request: GenerationRequest,
        label_audio: LabelAudio,
        storage: StorageOutcome,
        owner_id: str,
    ) -> StorageOutcome:
        """Store label audio next to a stored icon; failures are only logged."""

        metadata: dict[str, Any] = {
            "generation_method": "label-speech",
            "icon_artifact_id": storage.artifact_id,
            "label": request.label,
            "text": label_audio.text,
            "translated": label_audio.translated,
            "locale_code": label_audio.locale_code,
            "speaker_id": label_audio.speaker_id,
            "locale_table_version": LOCALE_TABLE_VERSION,
        }
        try:
            stored = store.store(owner_id, label_audio.audio_data, label_audio.mime_type, metadata)
        except Exception as exc:
            logger.warning("Label audio storage failed; returning it inline: {}", exc)
            if self._run_logger is not None:
                self._run_logger.log_storage_warning("label_audio", type(exc).__name__)
            return storage
        return dataclasses.replace(
            storage,
            audio_artifact_id=stored.artifact_id,
            audio_public_url=stored.public_url,
        )


def _require_text(request: GenerationRequest) -> str:
    """Return the validated text payload of a text-driven request."""

    if not isinstance(request.payload, str):
        raise RequestInputError(f"`{request.kind.value}` requests require a text payload.")
    return validate_base_text(request.payload)


def _require_bytes(request: GenerationRequest) -> bytes:
    """Return the non-empty binary payload of an upload-driven request."""

    if not isinstance(request.payload, (bytes, bytearray)):
        raise RequestInputError(f"`{request.kind.value}` requests require a binary payload.")
    if not request.payload:
        raise RequestInputError(f"`{request.kind.value}` payload must not be empty.")
    return bytes(request.payload)


def _artifact_metadata(
    request: GenerationRequest,
    profile: CulturalProfile | None,
    working: _WorkingResult,
) -> dict[str, Any]:
    """Build JSON-safe artifact metadata for the primary artifact."""

    metadata: dict[str, Any] = {
        "generation_method": working.generation_method,
        "request_kind": request.kind.value,
        "model_used": working.model_used,
        "sanitized": working.sanitized,
        "fallback_used": working.fallback_used,
    }
    if profile is not None:
        metadata["cultural_context"] = profile.as_metadata()
    if isinstance(request.payload, str):
        metadata["original_text"] = request.payload.strip()
    optional_fields = {
        "prompt": working.prompt,
        "description": working.description,
        "transcript": working.transcript,
        "label": normalize_optional_string(request.label),
        "category": request.options.category,
        "color": request.options.color,
        "accent": request.options.accent,
    }
    metadata.update({key: value for key, value in optional_fields.items() if value is not None})
    return metadata
