"""Retryable, timeout-bound model-call wrapper.

Responsibilities:
- Classify model-call failures as not-found, transient, or invalid-input.
- Retry transient failures with exponential backoff and optional jitter.
- Hand every attempt the endpoint's per-attempt timeout.
- Stop cooperatively between attempts when the request is cancelled.

Key public API:
- `retry_call`: generic retry combinator.
- `ModelInvoker.invoke`: applies a `ModelCallSpec` to one provider operation.
"""

from __future__ import annotations

import random
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Mapping, TypeVar

from loguru import logger

from ..errors import FailureClass, InvocationCancelled, ModelInvocationError
from ..models.datatypes import ModelCallSpec
from ..telemetry.logger import RunLogger


T = TypeVar("T")

Classifier = Callable[[BaseException], "FailureClass | None"]
RetryCallback = Callable[[int, float, FailureClass, BaseException], None]

PROVIDER_FAILURE_CLASSES: Mapping[str, FailureClass] = {
    "model_not_found": FailureClass.NOT_FOUND,
    "insufficient_quota": FailureClass.NOT_FOUND,
    "timeout": FailureClass.TRANSIENT,
    "rate_limited": FailureClass.TRANSIENT,
    "server_error": FailureClass.TRANSIENT,
    "transport": FailureClass.TRANSIENT,
    "malformed_response": FailureClass.TRANSIENT,
    "invalid_api_key": FailureClass.INVALID_INPUT,
    "invalid_request": FailureClass.INVALID_INPUT,
    "http_error": FailureClass.INVALID_INPUT,
}


def classify_failure(exc: BaseException) -> FailureClass | None:
    """Classify one failed attempt, or return `None` for unclassified errors.

    Provider errors are classified by their `failure_kind` attribute. Unknown
    provider failure kinds are not retried. Builtin timeouts and connection errors
    are transient; `ValueError` is invalid input. Anything else is unclassified
    and propagates unchanged.
    """

    failure_kind = getattr(exc, "failure_kind", None)
    if isinstance(failure_kind, str):
        return PROVIDER_FAILURE_CLASSES.get(failure_kind, FailureClass.INVALID_INPUT)
    if isinstance(exc, (TimeoutError, ConnectionError)):
        return FailureClass.TRANSIENT
    if isinstance(exc, ValueError):
        return FailureClass.INVALID_INPUT
    return None


@dataclass(frozen=True, slots=True)
class ExponentialBackoff:
    """Backoff schedule `base * 2^(attempt-1)` plus optional non-negative jitter.

    Jitter only ever lengthens a delay, so the exponential schedule is a floor.
    """

    base_seconds: float
    jitter_ratio: float = 0.0
    rng: random.Random = field(default_factory=random.Random, compare=False, repr=False)

    def __post_init__(self) -> None:
        if self.base_seconds <= 0:
            raise ValueError("`base_seconds` must be positive.")
        if self.jitter_ratio < 0:
            raise ValueError("`jitter_ratio` must be zero or positive.")

    def delay_for(self, attempt: int) -> float:
        """Return the delay in seconds after failed attempt number `attempt` (1-based)."""

        delay = self.base_seconds * (2 ** (max(1, attempt) - 1))
        if self.jitter_ratio > 0:
            delay += delay * self.rng.uniform(0.0, self.jitter_ratio)
        return delay


def _wait(
    delay: float,
    cancel_event: threading.Event | None,
    sleep: Callable[[float], None] | None,
) -> bool:
    """Wait for `delay` seconds; return whether cancellation was requested."""

    if sleep is not None:
        sleep(delay)
        return cancel_event is not None and cancel_event.is_set()
    if cancel_event is not None:
        return cancel_event.wait(delay)
    time.sleep(delay)
    return False


def retry_call(
    operation: Callable[[], T],
    *,
    classify: Classifier,
    backoff: ExponentialBackoff,
    max_retries: int,
    endpoint_id: str = "operation",
    cancel_event: threading.Event | None = None,
    on_retry: RetryCallback | None = None,
    sleep: Callable[[float], None] | None = None,
) -> T:
    """Call `operation`, retrying transient failures at most `max_retries` times.

    Raises:
        ModelInvocationError: On a non-transient failure, or when transient
            failures exhaust the retry budget.
        InvocationCancelled: When `cancel_event` is set before an attempt or
            during a backoff wait.
    """

    if max_retries < 0:
        raise ValueError("`max_retries` must be zero or a positive integer.")

    attempt = 0
    while True:
        if cancel_event is not None and cancel_event.is_set():
            raise InvocationCancelled(endpoint_id, attempt)
        attempt += 1
        try:
            return operation()
        except Exception as exc:
            failure = classify(exc)
            if failure is None:
                raise
            if failure is not FailureClass.TRANSIENT or attempt > max_retries:
                raise ModelInvocationError(
                    str(exc) or type(exc).__name__,
                    failure=failure,
                    endpoint_id=endpoint_id,
                    attempts=attempt,
                ) from exc
            delay = backoff.delay_for(attempt)
            if on_retry is not None:
                on_retry(attempt, delay, failure, exc)
            if _wait(delay, cancel_event, sleep):
                raise InvocationCancelled(endpoint_id, attempt) from exc


class ModelInvoker:
    """Apply endpoint call policy (timeout, retries, backoff) to provider operations."""

    def __init__(
        self,
        *,
        run_logger: RunLogger | None = None,
        jitter_ratio: float = 0.0,
        classify: Classifier = classify_failure,
        sleep: Callable[[float], None] | None = None,
        rng: random.Random | None = None,
    ) -> None:
        """Initialize the invoker.

        Args:
            run_logger: Optional structured logger receiving retry events.
            jitter_ratio: Upper bound of the random extra delay, as a fraction of
                the exponential delay.
            classify: Failure classifier.
            sleep: Optional sleep override used instead of event waits (tests).
            rng: Optional random source for jitter.
        """

        self._run_logger = run_logger
        self._jitter_ratio = jitter_ratio
        self._classify = classify
        self._sleep = sleep
        self._rng = rng if rng is not None else random.Random()

    def invoke(
        self,
        spec: ModelCallSpec,
        operation: Callable[[float], T],
        *,
        cancel_event: threading.Event | None = None,
    ) -> T:
        """Run `operation(timeout_seconds)` under `spec` and return its response.

        The per-attempt bound is cooperative: `operation` receives
        `spec.timeout_seconds` and must apply it to its own I/O. The OpenAI
        clients forward it as the `requests` timeout and report expiry as a
        transient `timeout` failure. An operation that ignores the value is not
        interrupted.

        Raises:
            ModelInvocationError: With the final failure class and attempt count.
            InvocationCancelled: When the request is cancelled between attempts.
        """

        backoff = ExponentialBackoff(
            spec.backoff_base_seconds,
            jitter_ratio=self._jitter_ratio,
            rng=self._rng,
        )

        def _on_retry(attempt: int, delay: float, failure: FailureClass, exc: BaseException) -> None:
            logger.debug(
                "Retrying `{}` after attempt {} ({}): {}",
                spec.endpoint_id,
                attempt,
                failure.value,
                type(exc).__name__,
            )
            if self._run_logger is not None:
                self._run_logger.log_retry(
                    spec.endpoint_id,
                    attempt,
                    int(round(delay * 1000)),
                    failure.value,
                )

        return retry_call(
            lambda: operation(spec.timeout_seconds),
            classify=self._classify,
            backoff=backoff,
            max_retries=spec.max_retries,
            endpoint_id=spec.endpoint_id,
            cancel_event=cancel_event,
            on_retry=_on_retry,
            sleep=self._sleep,
        )
