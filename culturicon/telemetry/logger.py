"""Structured run logging utilities.

Responsibilities:
- Emit concise, deterministic pipeline-state logs through `loguru`.
- Keep payload bytes and secrets out of log lines.
"""

from __future__ import annotations

import sys
from typing import TextIO

from loguru import logger


def _sanitize_context_value(value: object) -> str:
    """Convert context values into stable, shell-safe tokens."""

    raw = str(value).strip()
    if not raw:
        return "none"
    return "".join(
        character if character.isalnum() or character in {"-", "_", ".", ":", "/"} else "_"
        for character in raw
    )


def _format_context(context: dict[str, object]) -> str:
    """Serialize context key/value pairs in deterministic key order."""

    if not context:
        return ""
    tokens = [
        f"{key}={_sanitize_context_value(context[key])}"
        for key in sorted(context.keys())
        if context[key] is not None
    ]
    if not tokens:
        return ""
    return " " + " ".join(tokens)


class RunLogger:
    """Emit deterministic state logs for CLI-observable pipeline activity."""

    def __init__(self, sink: TextIO | None = None, *, level: str = "INFO") -> None:
        """Initialize the loguru sink and configure deterministic formatting."""

        self._sink = sink or sys.stderr
        logger.remove()
        self._handler_id = logger.add(self._sink, format="{message}", level=level, colorize=False)

    def close(self) -> None:
        """Detach this logger's sink from loguru."""

        logger.remove(self._handler_id)

    def emit(self, level: str, event: str, state: str, **context: object) -> None:
        """Emit one structured runtime log line."""

        line = f"[pipeline] level={level} state={state} event={event}{_format_context(context)}"
        logger.log(level, line)

    def log_state_enter(self, state: str) -> None:
        """Emit a state-enter runtime event."""

        self.emit("INFO", "enter", state)

    def log_state_complete(self, state: str) -> None:
        """Emit a state-complete runtime event."""

        self.emit("INFO", "complete", state)

    def log_state_failure(self, state: str, error_type: str) -> None:
        """Emit a state-failure runtime event without sensitive payload details."""

        self.emit("ERROR", "failure", state, error_type=error_type)

    def log_request_done(self, kind: str, *, sanitized: bool, fallback_used: bool) -> None:
        """Emit the terminal event of a successful request."""

        self.emit("INFO", "done", "done", fallback_used=fallback_used, kind=kind, sanitized=sanitized)

    def log_request_failed(self, kind: str, *, stage: str, error_kind: str) -> None:
        """Emit the terminal event of a failed request."""

        self.emit("ERROR", "failed", "failed", error_kind=error_kind, kind=kind, stage=stage)

    def log_retry(self, endpoint_id: str, attempt: int, delay_ms: int, failure: str) -> None:
        """Emit a retry-scheduled event for a transient model-call failure."""

        self.emit(
            "WARNING",
            "retry",
            "invoking",
            attempt=attempt,
            delay_ms=delay_ms,
            endpoint=endpoint_id,
            failure=failure,
        )

    def log_fallback(self, state: str, reason: str, **context: object) -> None:
        """Emit a degraded-path event (canned description, default locale, ...)."""

        self.emit("WARNING", "fallback", state, reason=reason, **context)

    def log_storage_warning(self, artifact: str, error_type: str) -> None:
        """Emit a storage-warning event; the artifact is still returned inline."""

        self.emit("WARNING", "storage_warning", "done", artifact=artifact, error_type=error_type)
