"""Per-request pipeline state machine.

Responsibilities:
- Name the pipeline states and their forward order.
- Record transitions for one request, rejecting revisits and a second terminal state.
"""

from __future__ import annotations

import threading
from enum import Enum


class PipelineState(str, Enum):
    """States of one orchestrated generation request."""

    BUILDING = "building"
    INVOKING = "invoking"
    SANITIZING = "sanitizing"
    TRANSLATING = "translating"
    SYNTHESIZING = "synthesizing"
    DONE = "done"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        """Return whether this state ends the request."""

        return self in (PipelineState.DONE, PipelineState.FAILED)


_STATE_ORDER = {
    PipelineState.BUILDING: 0,
    PipelineState.INVOKING: 1,
    PipelineState.SANITIZING: 2,
    PipelineState.TRANSLATING: 3,
    PipelineState.SYNTHESIZING: 4,
    PipelineState.DONE: 5,
    PipelineState.FAILED: 5,
}


class IllegalStateTransition(RuntimeError):
    """Raised when a transition would revisit a state or leave a terminal state."""


class StateTracker:
    """Lock-guarded, forward-only transition log for one request.

    States may be skipped but never revisited. The label worker thread records
    its transitions on the same tracker as the request thread.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._history: list[PipelineState] = []

    @property
    def current(self) -> PipelineState | None:
        """Return the most recent state, or `None` before the first transition."""

        with self._lock:
            return self._history[-1] if self._history else None

    @property
    def history(self) -> tuple[PipelineState, ...]:
        """Return all entered states in order."""

        with self._lock:
            return tuple(self._history)

    def advance(self, state: PipelineState) -> None:
        """Enter `state`.

        Raises:
            IllegalStateTransition: If a terminal state was already entered or
                `state` is not after the current state.
        """

        with self._lock:
            if self._history:
                current = self._history[-1]
                if current.is_terminal:
                    raise IllegalStateTransition(
                        f"Cannot enter `{state.value}` after terminal `{current.value}`."
                    )
                if _STATE_ORDER[state] <= _STATE_ORDER[current]:
                    raise IllegalStateTransition(
                        f"Cannot move from `{current.value}` back to `{state.value}`."
                    )
            self._history.append(state)
