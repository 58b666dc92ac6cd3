"""State telemetry helper methods for the generation pipeline.

Responsibilities:
- Record state transitions on the request's `StateTracker`.
- Emit state enter/complete/failure events.
- Wrap state actions with consistent telemetry hooks.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TypeVar

from ..telemetry.logger import RunLogger
from .states import PipelineState, StateTracker

_StateResult = TypeVar("_StateResult")


class PipelineTelemetryMixin:
    """Provide state-telemetry helper methods."""

    _run_logger: RunLogger | None

    def _on_state_enter(self, state: PipelineState) -> None:
        """Emit a state-enter event to the structured logger."""

        if self._run_logger is not None:
            self._run_logger.log_state_enter(state.value)

    def _on_state_complete(self, state: PipelineState) -> None:
        """Emit a state-complete event to the structured logger."""

        if self._run_logger is not None:
            self._run_logger.log_state_complete(state.value)

    def _on_state_failure(self, state: PipelineState, exc: Exception) -> None:
        """Emit a state-failure event with sanitized exception metadata."""

        if self._run_logger is not None:
            self._run_logger.log_state_failure(state.value, type(exc).__name__)

    def _log_fallback(self, state: PipelineState, reason: str, **context: object) -> None:
        """Emit a degraded-path event for the given state."""

        if self._run_logger is not None:
            self._run_logger.log_fallback(state.value, reason, **context)

    def _run_state(
        self,
        tracker: StateTracker,
        state: PipelineState,
        action: Callable[[], _StateResult],
    ) -> _StateResult:
        """Enter one state, run its action, and emit enter/complete/failure events."""

        tracker.advance(state)
        self._on_state_enter(state)
        try:
            result = action()
        except Exception as exc:
            self._on_state_failure(state, exc)
            raise
        self._on_state_complete(state)
        return result
