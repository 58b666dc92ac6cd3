"""Domain exceptions and failure taxonomy for the generation pipeline.

Responsibilities:
- Name the failure kinds surfaced in `GenerationResult.error`.
- Classify model-call failures into retry/no-retry classes.
- Carry stage-scoped diagnostics for CLI error rendering.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Failure kinds reported on failed generation results."""

    INPUT_ERROR = "input_error"
    MODEL_UNAVAILABLE = "model_unavailable"
    TRANSIENT_FAILURE = "transient_failure"
    CANCELLED = "cancelled"


class FailureClass(str, Enum):
    """Classification of one failed model-call attempt."""

    NOT_FOUND = "not_found"
    TRANSIENT = "transient"
    INVALID_INPUT = "invalid_input"

    def to_error_kind(self) -> ErrorKind:
        """Map an invocation failure class onto the result-level error kind."""

        return {
            FailureClass.NOT_FOUND: ErrorKind.MODEL_UNAVAILABLE,
            FailureClass.TRANSIENT: ErrorKind.TRANSIENT_FAILURE,
            FailureClass.INVALID_INPUT: ErrorKind.INPUT_ERROR,
        }[self]


class PipelineStageError(RuntimeError):
    """Raised when a specific command or pipeline stage fails."""

    def __init__(
        self,
        *,
        stage: str,
        detail: str,
        hint: str | None = None,
    ) -> None:
        """Initialize a stage-scoped pipeline error."""

        super().__init__(detail)
        self.stage = stage
        self.detail = detail
        self.hint = hint


class RequestInputError(ValueError):
    """Raised when a generation request payload is malformed for its kind."""


class PromptInputError(RequestInputError):
    """Raised when prompt base text is empty or exceeds the accepted length."""


class ModelInvocationError(RuntimeError):
    """Raised when a model call fails after classification and retries."""

    def __init__(
        self,
        message: str,
        *,
        failure: FailureClass,
        endpoint_id: str,
        attempts: int,
    ) -> None:
        """Initialize invocation failure metadata."""

        super().__init__(message)
        self.failure = failure
        self.endpoint_id = endpoint_id
        self.attempts = attempts


class InvocationCancelled(RuntimeError):
    """Raised when the encompassing request was cancelled between attempts."""

    def __init__(self, endpoint_id: str, attempts: int) -> None:
        super().__init__(f"Call to `{endpoint_id}` cancelled after {attempts} attempt(s).")
        self.endpoint_id = endpoint_id
        self.attempts = attempts


class SanitizationError(RuntimeError):
    """Raised when the sanitation pass cannot produce a cleaned image."""
