"""Unit tests for failure classification, backoff, and retry behavior."""

from __future__ import annotations

import io
import random
import threading

import pytest

from culturicon.errors import FailureClass, InvocationCancelled, ModelInvocationError
from culturicon.models.datatypes import ModelCallSpec
from culturicon.pipeline.invoker import (
    ExponentialBackoff,
    ModelInvoker,
    classify_failure,
    retry_call,
)
from culturicon.providers.openai_client import OpenAIProviderError
from culturicon.telemetry.logger import RunLogger


class _CountingOperation:
    """Operation raising queued errors before returning `"ok"`."""

    def __init__(self, errors: list[BaseException]) -> None:
        self.errors = list(errors)
        self.timeouts: list[float] = []

    def __call__(self, timeout_seconds: float) -> str:
        self.timeouts.append(timeout_seconds)
        if self.errors:
            raise self.errors.pop(0)
        return "ok"

    @property
    def calls(self) -> int:
        return len(self.timeouts)


def _provider_error(kind: str) -> OpenAIProviderError:
    return OpenAIProviderError(f"mocked {kind}", failure_kind=kind)


def _invoker(delays: list[float] | None = None, **kwargs: object) -> ModelInvoker:
    sink = delays if delays is not None else []
    return ModelInvoker(sleep=sink.append, **kwargs)  # type: ignore[arg-type]


@pytest.mark.parametrize(
    ("exc", "expected"),
    [
        (_provider_error("model_not_found"), FailureClass.NOT_FOUND),
        (_provider_error("insufficient_quota"), FailureClass.NOT_FOUND),
        (_provider_error("timeout"), FailureClass.TRANSIENT),
        (_provider_error("rate_limited"), FailureClass.TRANSIENT),
        (_provider_error("server_error"), FailureClass.TRANSIENT),
        (_provider_error("transport"), FailureClass.TRANSIENT),
        (_provider_error("invalid_request"), FailureClass.INVALID_INPUT),
        (_provider_error("invalid_api_key"), FailureClass.INVALID_INPUT),
        (_provider_error("something_new"), FailureClass.INVALID_INPUT),
        (TimeoutError("slow"), FailureClass.TRANSIENT),
        (ConnectionResetError("reset"), FailureClass.TRANSIENT),
        (ValueError("bad"), FailureClass.INVALID_INPUT),
        (KeyError("bug"), None),
    ],
)
def test_classify_failure(exc: BaseException, expected: FailureClass | None) -> None:
    """Provider kinds and builtin exceptions should map onto failure classes."""

    assert classify_failure(exc) is expected


def test_backoff_schedule_is_pure_exponential_without_jitter() -> None:
    """Delays should double from the base."""

    backoff = ExponentialBackoff(0.5)

    assert [backoff.delay_for(attempt) for attempt in (1, 2, 3, 4)] == [0.5, 1.0, 2.0, 4.0]


def test_backoff_jitter_never_undercuts_exponential_floor() -> None:
    """Jitter should only lengthen delays, bounded by the ratio."""

    backoff = ExponentialBackoff(1.0, jitter_ratio=0.25, rng=random.Random(7))

    for attempt in range(1, 6):
        floor = 2 ** (attempt - 1)
        assert floor <= backoff.delay_for(attempt) <= floor * 1.25


def test_backoff_rejects_invalid_settings() -> None:
    """Non-positive bases and negative jitter should be rejected."""

    with pytest.raises(ValueError):
        ExponentialBackoff(0)
    with pytest.raises(ValueError):
        ExponentialBackoff(1.0, jitter_ratio=-0.1)


def test_invoke_returns_first_success_and_passes_per_attempt_timeout() -> None:
    """Each attempt should receive the spec's per-attempt timeout."""

    spec = ModelCallSpec("image.generate", timeout_ms=2500, max_retries=3, backoff_base_ms=100)
    operation = _CountingOperation([_provider_error("timeout")])
    delays: list[float] = []

    assert _invoker(delays).invoke(spec, operation) == "ok"
    assert operation.timeouts == [2.5, 2.5]
    assert delays == [0.1]


@pytest.mark.parametrize("max_retries", [0, 1, 3])
def test_invoke_never_exceeds_retry_budget(max_retries: int) -> None:
    """Transient failures should stop after `max_retries + 1` calls."""

    spec = ModelCallSpec("image.generate", max_retries=max_retries, backoff_base_ms=1000)
    operation = _CountingOperation([_provider_error("rate_limited")] * 10)
    delays: list[float] = []

    with pytest.raises(ModelInvocationError) as exc_info:
        _invoker(delays).invoke(spec, operation)

    assert operation.calls == max_retries + 1
    assert exc_info.value.attempts == max_retries + 1
    assert exc_info.value.failure is FailureClass.TRANSIENT
    assert exc_info.value.endpoint_id == "image.generate"
    assert delays == [1.0 * 2**index for index in range(max_retries)]


@pytest.mark.parametrize("kind", ["model_not_found", "invalid_request"])
def test_invoke_never_retries_not_found_or_invalid_input(kind: str) -> None:
    """Non-transient classifications should fail after exactly one call."""

    spec = ModelCallSpec("vision.analyze", max_retries=3)
    operation = _CountingOperation([_provider_error(kind)] * 4)
    delays: list[float] = []

    with pytest.raises(ModelInvocationError) as exc_info:
        _invoker(delays).invoke(spec, operation)

    assert operation.calls == 1
    assert exc_info.value.attempts == 1
    assert delays == []


def test_invoke_propagates_unclassified_errors_unchanged() -> None:
    """Programming errors should not be wrapped or retried."""

    spec = ModelCallSpec("text.translate")
    operation = _CountingOperation([KeyError("bug")])

    with pytest.raises(KeyError):
        _invoker().invoke(spec, operation)
    assert operation.calls == 1


def test_invoke_stops_when_cancelled_before_first_attempt() -> None:
    """A cancelled request should not issue any call."""

    cancel_event = threading.Event()
    cancel_event.set()
    operation = _CountingOperation([])

    with pytest.raises(InvocationCancelled):
        _invoker().invoke(ModelCallSpec("audio.speech"), operation, cancel_event=cancel_event)
    assert operation.calls == 0


def test_invoke_stops_when_cancelled_during_backoff() -> None:
    """Cancellation during a backoff wait should stop further attempts."""

    cancel_event = threading.Event()
    operation = _CountingOperation([_provider_error("timeout")] * 3)
    invoker = ModelInvoker(sleep=lambda _delay: cancel_event.set())

    with pytest.raises(InvocationCancelled) as exc_info:
        invoker.invoke(ModelCallSpec("audio.speech"), operation, cancel_event=cancel_event)

    assert operation.calls == 1
    assert exc_info.value.attempts == 1


def test_event_wait_is_used_when_no_sleep_override() -> None:
    """Without a sleep override, an already-set event should end the wait immediately."""

    cancel_event = threading.Event()
    calls: list[int] = []

    def _operation() -> str:
        calls.append(1)
        cancel_event.set()
        raise TimeoutError("slow")

    with pytest.raises(InvocationCancelled):
        retry_call(
            _operation,
            classify=classify_failure,
            backoff=ExponentialBackoff(30.0),
            max_retries=2,
            cancel_event=cancel_event,
        )
    assert calls == [1]


def test_retry_call_rejects_negative_budget() -> None:
    """Negative retry budgets should be rejected before any call."""

    with pytest.raises(ValueError):
        retry_call(
            lambda: "ok",
            classify=classify_failure,
            backoff=ExponentialBackoff(1.0),
            max_retries=-1,
        )


def test_invoke_emits_retry_events_to_run_logger() -> None:
    """Retries should be logged with endpoint, attempt, delay, and failure class."""

    sink = io.StringIO()
    run_logger = RunLogger(sink=sink)
    try:
        invoker = ModelInvoker(run_logger=run_logger, sleep=lambda _delay: None)
        spec = ModelCallSpec("image.edit", backoff_base_ms=250)
        invoker.invoke(spec, _CountingOperation([_provider_error("server_error")]))
    finally:
        run_logger.close()

    assert (
        "[pipeline] level=WARNING state=invoking event=retry attempt=1 delay_ms=250 "
        "endpoint=image.edit failure=transient"
    ) in sink.getvalue()


def test_model_call_spec_validates_fields() -> None:
    """Call specs should reject non-positive timeouts and negative retries."""

    with pytest.raises(ValueError):
        ModelCallSpec("x", timeout_ms=0)
    with pytest.raises(ValueError):
        ModelCallSpec("x", max_retries=-1)
    with pytest.raises(ValueError):
        ModelCallSpec(" ")
