import asyncio
import logging

import pytest

from cv_tailor import telemetry
from cv_tailor.core.exceptions import APIError, OperationCancelledError, RateLimitError
from cv_tailor.core.types import RetryPolicy
from cv_tailor.resilience import (
    calculate_backoff_delay,
    compute_retry_delay,
    execute_with_retry,
    with_retry,
)
from cv_tailor.telemetry import InMemoryReporter, TelemetryContext

pytestmark = pytest.mark.unit


def transient() -> APIError:
    return APIError("Service Unavailable", 503)


class ScriptedOperation:
    """Async zero-arg callable failing with the scripted errors, then succeeding."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        outcome = self.outcomes.pop(0) if self.outcomes else "ok"
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


class TestBackoff:
    def test_exponential_growth(self, no_jitter_policy):
        delays = [calculate_backoff_delay(n, no_jitter_policy) for n in range(1, 5)]
        assert delays == [1000, 2000, 4000, 8000]

    def test_capped_at_max_delay(self, no_jitter_policy):
        policy = no_jitter_policy.replace(max_delay_ms=5000)
        assert calculate_backoff_delay(4, policy) == 5000
        assert calculate_backoff_delay(3, policy) == 4000

    def test_cap_below_initial_delay_bounds_first_delay(self):
        policy = RetryPolicy(initial_delay_ms=2000, max_delay_ms=1000, jitter=False)
        assert calculate_backoff_delay(1, policy) == 1000
        assert calculate_backoff_delay(5, policy) == 1000

    def test_huge_attempt_does_not_overflow(self, no_jitter_policy):
        assert calculate_backoff_delay(10_000, no_jitter_policy) == 30_000

    def test_jitter_extremes(self):
        policy = RetryPolicy(jitter=True)
        assert calculate_backoff_delay(2, policy, random=lambda: 0.0) == 2000
        assert calculate_backoff_delay(2, policy, random=lambda: 0.999999) == 2199

    @pytest.mark.parametrize("attempt", [1, 2, 3, 6, 12])
    def test_jitter_bounds(self, attempt, no_jitter_policy):
        base = calculate_backoff_delay(attempt, no_jitter_policy)
        jittered = no_jitter_policy.replace(jitter=True)
        for _ in range(200):
            assert base <= calculate_backoff_delay(attempt, jittered) <= base * 1.1

    def test_attempt_must_be_positive(self, no_jitter_policy):
        with pytest.raises(ValueError, match="attempt must be >= 1"):
            calculate_backoff_delay(0, no_jitter_policy)


class TestRetryDelay:
    def test_retry_after_takes_precedence(self, no_jitter_policy):
        error = RateLimitError("Too Many Requests", headers={"retry-after": "60"})
        assert compute_retry_delay(error, 1, no_jitter_policy) == 60_000

    def test_rate_limit_without_hint_uses_backoff(self, no_jitter_policy):
        assert compute_retry_delay(RateLimitError("x"), 2, no_jitter_policy) == 2000

    def test_short_retry_after_never_shortens_backoff(self, no_jitter_policy):
        error = RateLimitError("x", retry_after=0.5)
        assert compute_retry_delay(error, 3, no_jitter_policy) == 4000

    def test_fatal_error_has_no_delay(self, no_jitter_policy):
        assert compute_retry_delay(APIError("Unauthorized", 401), 1, no_jitter_policy) is None


class TestExecuteWithRetry:
    @pytest.mark.asyncio
    async def test_success_first_try(self, sleep_recorder, no_jitter_policy):
        operation = ScriptedOperation("value")
        result = await execute_with_retry(operation, no_jitter_policy, sleep=sleep_recorder)
        assert result == "value"
        assert operation.calls == 1
        assert sleep_recorder.calls == []

    @pytest.mark.asyncio
    async def test_success_after_one_transient_failure(
        self, sleep_recorder, no_jitter_policy
    ):
        operation = ScriptedOperation(transient(), "value")
        result = await execute_with_retry(operation, no_jitter_policy, sleep=sleep_recorder)
        assert result == "value"
        assert operation.calls == 2
        assert sleep_recorder.delays_ms == [1000]

    @pytest.mark.asyncio
    async def test_exhaustion_raises_final_error(self, sleep_recorder, no_jitter_policy):
        errors = [transient(), transient(), transient()]
        operation = ScriptedOperation(*errors)
        policy = no_jitter_policy.replace(max_retries=2)

        with pytest.raises(APIError) as exc_info:
            await execute_with_retry(operation, policy, sleep=sleep_recorder)

        assert operation.calls == 3
        assert exc_info.value is errors[-1]
        assert sleep_recorder.delays_ms == [1000, 2000]
        note = exc_info.value.__notes__[0]
        assert note.startswith("Retry exhausted after 3 attempt(s):")
        assert "attempt 1 failed" in note
        assert "retrying in 1000ms" in note

    @pytest.mark.asyncio
    async def test_fatal_error_short_circuits(self, sleep_recorder, no_jitter_policy):
        error = APIError("Unauthorized", 401)
        operation = ScriptedOperation(error, "never")

        with pytest.raises(APIError) as exc_info:
            await execute_with_retry(operation, no_jitter_policy, sleep=sleep_recorder)

        assert exc_info.value is error
        assert operation.calls == 1
        assert sleep_recorder.calls == []
        assert not getattr(error, "__notes__", None)

    @pytest.mark.asyncio
    async def test_zero_retries_runs_once(self, sleep_recorder, no_jitter_policy):
        operation = ScriptedOperation(transient())
        with pytest.raises(APIError):
            await execute_with_retry(
                operation, no_jitter_policy.replace(max_retries=0), sleep=sleep_recorder
            )
        assert operation.calls == 1
        assert sleep_recorder.calls == []

    @pytest.mark.asyncio
    async def test_fatal_error_without_retries_is_not_exhaustion(
        self, caplog, sleep_recorder, no_jitter_policy
    ):
        caplog.set_level(logging.INFO, logger="cv_tailor")
        error = APIError("Unauthorized", 401)

        with pytest.raises(APIError) as exc_info:
            await execute_with_retry(
                ScriptedOperation(error),
                no_jitter_policy.replace(max_retries=0),
                sleep=sleep_recorder,
            )

        assert exc_info.value is error
        assert not getattr(error, "__notes__", None)
        assert not [r for r in caplog.records if r.levelno >= logging.ERROR]
        assert any("Non-retryable error on attempt 1" in r.getMessage() for r in caplog.records)

    @pytest.mark.asyncio
    async def test_exhaustion_log_counts_attempts(
        self, caplog, sleep_recorder, no_jitter_policy
    ):
        caplog.set_level(logging.INFO, logger="cv_tailor")
        operation = ScriptedOperation(transient(), transient(), transient())

        with pytest.raises(APIError):
            await execute_with_retry(
                operation, no_jitter_policy.replace(max_retries=2), sleep=sleep_recorder
            )

        errors = [r.getMessage() for r in caplog.records if r.levelno == logging.ERROR]
        assert len(errors) == 1
        assert errors[0].startswith("All 3 attempts failed")

    @pytest.mark.asyncio
    async def test_rate_limit_waits_for_retry_after(self, sleep_recorder, no_jitter_policy):
        error = RateLimitError("Too Many Requests", headers={"Retry-After": "60"})
        operation = ScriptedOperation(error, "value")
        assert await execute_with_retry(operation, no_jitter_policy, sleep=sleep_recorder) == "value"
        assert sleep_recorder.delays_ms == [60_000]

    @pytest.mark.asyncio
    async def test_cancellation_is_never_retried(self, sleep_recorder, no_jitter_policy):
        for error in (asyncio.CancelledError(), OperationCancelledError("aborted")):
            operation = ScriptedOperation(error, "value")
            with pytest.raises(type(error)):
                await execute_with_retry(operation, no_jitter_policy, sleep=sleep_recorder)
            assert operation.calls == 1
        assert sleep_recorder.calls == []

    @pytest.mark.asyncio
    async def test_on_retry_receives_attempt_records(self, sleep_recorder, no_jitter_policy):
        ticks = iter([0.0, 0.25, 1.5, 2.0])
        records = []
        operation = ScriptedOperation(transient(), transient(), "value")

        await execute_with_retry(
            operation,
            no_jitter_policy,
            sleep=sleep_recorder,
            on_retry=records.append,
            clock=lambda: next(ticks),
        )

        assert [r.attempt_number for r in records] == [1, 2]
        assert [r.delay_ms for r in records] == [1000, 2000]
        assert [r.elapsed_ms for r in records] == [250, 1500]
        assert all(isinstance(r.error, APIError) for r in records)

    @pytest.mark.asyncio
    async def test_logs_each_retry(self, caplog, sleep_recorder, no_jitter_policy):
        caplog.set_level(logging.INFO, logger="cv_tailor")
        await execute_with_retry(
            ScriptedOperation(transient(), "value"), no_jitter_policy, sleep=sleep_recorder
        )
        messages = [r.getMessage() for r in caplog.records]
        assert any("Attempt 1 failed, retrying in 1000ms" in m for m in messages)
        assert any("succeeded on attempt 2" in m for m in messages)

    @pytest.mark.asyncio
    async def test_concurrent_sequences_are_independent(self, no_jitter_policy):
        async def no_sleep(_seconds):
            await asyncio.sleep(0)

        first = ScriptedOperation(transient(), "first")
        second = ScriptedOperation(transient(), transient(), "second")
        results = await asyncio.gather(
            execute_with_retry(first, no_jitter_policy, sleep=no_sleep),
            execute_with_retry(second, no_jitter_policy, sleep=no_sleep),
        )
        assert results == ["first", "second"]
        assert (first.calls, second.calls) == (2, 3)

    @pytest.mark.asyncio
    async def test_telemetry_records_delays(self, monkeypatch, sleep_recorder, no_jitter_policy):
        monkeypatch.setattr(telemetry, "_TELEMETRY_ENABLED", True)
        reporter = InMemoryReporter()

        await execute_with_retry(
            ScriptedOperation(transient(), "value"),
            no_jitter_policy,
            sleep=sleep_recorder,
            telemetry=TelemetryContext(reporter),
        )

        assert [value for value, _ in reporter.metrics["retry.delay_ms"]] == [1000]
        assert "retry.recovered" in reporter.metrics
        assert len(reporter.timings["retry.attempt"]) == 2


class TestWithRetry:
    @pytest.mark.asyncio
    async def test_decorator_without_arguments(self, monkeypatch):
        async def instant(_seconds):
            return None

        monkeypatch.setattr(asyncio, "sleep", instant)
        calls = []

        @with_retry
        async def fetch(value):
            calls.append(value)
            if len(calls) == 1:
                raise transient()
            return value * 2

        assert await fetch(21) == 42
        assert calls == [21, 21]
        assert fetch.__name__ == "fetch"

    @pytest.mark.asyncio
    async def test_decorator_with_policy(self, sleep_recorder):
        policy = RetryPolicy(max_retries=1, jitter=False)

        @with_retry(policy=policy, sleep=sleep_recorder)
        async def always_fails():
            raise transient()

        with pytest.raises(APIError):
            await always_fails()
        assert sleep_recorder.delays_ms == [1000]

    @pytest.mark.asyncio
    async def test_direct_wrapping(self, sleep_recorder, no_jitter_policy):
        operation = ScriptedOperation(transient(), "value")
        wrapped = with_retry(operation, no_jitter_policy, sleep=sleep_recorder)
        assert await wrapped() == "value"
