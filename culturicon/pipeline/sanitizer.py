"""Icon sanitation pass.

Responsibilities:
- Remove backgrounds and embedded text from icon images with one edit-style
  model call.
- Report failures as `SanitizationError` so callers can pass the original
  image through.
"""

from __future__ import annotations

import threading

from ..errors import InvocationCancelled, ModelInvocationError, SanitizationError
from ..models.datatypes import ModelCallSpec, SanitizedImage
from ..providers.imagery import ImageGenerator
from ..providers.prompts import PromptLibrary
from .invoker import ModelInvoker


class Sanitizer:
    """Clean icon images through an image-edit endpoint.

    The edit instruction is declarative (transparent background, no text), so
    sanitizing an already-clean image asks for the same end state again.
    """

    def __init__(
        self,
        generator: ImageGenerator,
        invoker: ModelInvoker,
        spec: ModelCallSpec,
        prompts: PromptLibrary | None = None,
    ) -> None:
        """Initialize the sanitizer with its edit endpoint and call policy."""

        self.generator = generator
        self.invoker = invoker
        self.spec = spec
        self.prompts = prompts if prompts is not None else PromptLibrary()

    def sanitize(
        self,
        image_bytes: bytes,
        hint: str | None = None,
        *,
        mime_type: str = "image/png",
        cancel_event: threading.Event | None = None,
    ) -> SanitizedImage:
        """Return the sanitized image.

        Raises:
            SanitizationError: If the input is empty or the edit call fails for any
                reason other than cancellation.
            InvocationCancelled: If the request is cancelled between attempts.
        """

        if not image_bytes:
            raise SanitizationError("Cannot sanitize an empty image.")

        instruction = self.prompts.sanitize_instruction(hint)
        try:
            edited = self.invoker.invoke(
                self.spec,
                lambda timeout_seconds: self.generator.generate(
                    instruction,
                    input_image=image_bytes,
                    input_mime_type=mime_type,
                    timeout_seconds=timeout_seconds,
                ),
                cancel_event=cancel_event,
            )
        except ModelInvocationError as exc:
            raise SanitizationError(
                f"Sanitation via `{exc.endpoint_id}` failed ({exc.failure.value}) "
                f"after {exc.attempts} attempt(s): {exc}"
            ) from exc
        except InvocationCancelled:
            raise
        except Exception as exc:
            raise SanitizationError(f"Sanitation failed unexpectedly: {type(exc).__name__}: {exc}") from exc

        if not edited.image_bytes:
            raise SanitizationError("Sanitation returned an empty image.")
        return SanitizedImage(
            image_bytes=edited.image_bytes,
            mime_type=edited.mime_type,
            model=edited.model,
        )
