"""Retry with bounded, jittered exponential backoff.

``execute_with_retry`` runs one asynchronous unit of work, retrying
transient failures (see ``classification``) up to ``policy.max_retries``
extra times. Attempts are strictly sequential: the next one starts only after
the previous error has been classified and its delay has elapsed. Fatal
errors propagate on the first occurrence; after exhaustion the last error is
re-raised with a note summarizing every attempt.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
import functools
import logging
import math
import random as _random
import time
from typing import Any, overload

from cv_tailor.core.types import DEFAULT_RETRY_POLICY, RetryAttempt, RetryPolicy
from cv_tailor.telemetry import TelemetryContext, TelemetryContextProtocol

from .classification import get_retry_after_ms, is_rate_limit_error, is_retryable_error

log = logging.getLogger(__name__)

_JITTER_RATIO = 0.1

type Sleeper = Callable[[float], Awaitable[Any]]
type RetryCallback = Callable[[RetryAttempt], None]


def calculate_backoff_delay(
    attempt: int,
    policy: RetryPolicy,
    *,
    random: Callable[[], float] = _random.random,
) -> int:
    """Delay in milliseconds before retrying after failed ``attempt`` (1-based).

    ``min(initial * base ** (attempt - 1), max_delay)``, plus up to 10% random
    jitter when enabled, floored to whole milliseconds.
    """
    if attempt < 1:
        raise ValueError(f"attempt must be >= 1, got {attempt}")
    try:
        exponential = policy.initial_delay_ms * policy.exponential_base ** (attempt - 1)
    except OverflowError:
        exponential = math.inf
    delay = min(exponential, policy.max_delay_ms)
    if policy.jitter:
        delay += random() * delay * _JITTER_RATIO
    return math.floor(delay)


def compute_retry_delay(
    error: BaseException, attempt: int, policy: RetryPolicy
) -> int | None:
    """Return the wait before the next attempt, or None if ``error`` is fatal.

    A provider-supplied retry-after on a rate-limit error takes precedence
    whenever it is longer than the computed backoff.
    """
    if not is_retryable_error(error):
        return None
    backoff = calculate_backoff_delay(attempt, policy)
    if is_rate_limit_error(error):
        retry_after_ms = get_retry_after_ms(error)
        if retry_after_ms is not None:
            return max(retry_after_ms, backoff)
    return backoff


async def execute_with_retry[T](
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy | None = None,
    *,
    sleep: Sleeper | None = None,
    on_retry: RetryCallback | None = None,
    telemetry: TelemetryContextProtocol | None = None,
    clock: Callable[[], float] = time.monotonic,
) -> T:
    """Run ``operation`` until it succeeds, fails fatally, or retries run out.

    Args:
        operation: Zero-argument callable returning an awaitable.
        policy: Backoff settings; defaults to ``RetryPolicy()``.
        sleep: Awaitable sleep taking seconds; ``asyncio.sleep`` by default.
        on_retry: Called with each failed attempt before its backoff sleep.
        telemetry: Optional telemetry context for attempt scopes and metrics.
        clock: Monotonic clock in seconds, used for elapsed-time reporting.

    Returns:
        Whatever ``operation`` resolves to.

    Raises:
        The error from the final attempt, or the first fatal error, unchanged.
        ``asyncio.CancelledError`` is never caught.
    """
    policy = policy or DEFAULT_RETRY_POLICY
    sleeper: Sleeper = sleep or asyncio.sleep
    tele = telemetry or TelemetryContext()
    failures: list[RetryAttempt] = []
    start = clock()

    attempt = 1
    while attempt <= policy.max_attempts:
        try:
            with tele("retry.attempt", attempt=attempt):
                result = await operation()
        except Exception as error:
            elapsed_ms = int((clock() - start) * 1000)

            # Classify before the exhaustion check: fatal errors propagate
            # as-is whatever the attempt count.
            delay_ms = compute_retry_delay(error, attempt, policy)
            if delay_ms is None:
                log.warning(
                    "Non-retryable error on attempt %d: %s: %s",
                    attempt,
                    type(error).__name__,
                    error,
                )
                raise

            if attempt > policy.max_retries:
                failures.append(RetryAttempt(attempt, elapsed_ms, error))
                _add_exhaustion_note(error, failures)
                log.error(
                    "All %d attempts failed after %dms: %s",
                    len(failures),
                    elapsed_ms,
                    [f"{type(f.error).__name__}: {f.error}" for f in failures],
                )
                raise

            record = RetryAttempt(attempt, elapsed_ms, error, delay_ms)
            failures.append(record)
            log.warning(
                "Attempt %d failed, retrying in %dms (elapsed %dms): %s",
                attempt,
                delay_ms,
                elapsed_ms,
                error,
            )
            tele.metric("retry.delay_ms", delay_ms, attempt=attempt)
            if on_retry is not None:
                on_retry(record)

            await sleeper(delay_ms / 1000)
            attempt += 1
            continue

        if attempt > 1:
            log.info(
                "Operation succeeded on attempt %d after %dms",
                attempt,
                int((clock() - start) * 1000),
            )
            tele.count("retry.recovered", attempt=attempt)
        return result

    # The loop always returns or raises before exhausting its range.
    raise RuntimeError("Unexpected end of retry loop")


def _add_exhaustion_note(error: BaseException, failures: list[RetryAttempt]) -> None:
    lines = [f"Retry exhausted after {len(failures)} attempt(s):"]
    lines.extend(f"  {failure.describe()}" for failure in failures)
    error.add_note("\n".join(lines))


@overload
def with_retry[**P, R](
    fn: Callable[P, Awaitable[R]],
    policy: RetryPolicy | None = None,
    **options: Any,
) -> Callable[P, Awaitable[R]]: ...
@overload
def with_retry[**P, R](
    fn: None = None,
    policy: RetryPolicy | None = None,
    **options: Any,
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]: ...
def with_retry(
    fn: Callable[..., Awaitable[Any]] | None = None,
    policy: RetryPolicy | None = None,
    **options: Any,
) -> Any:
    """Wrap an async function so every call goes through ``execute_with_retry``.

    Usable directly (``with_retry(fn, policy)``) or as a decorator, with or
    without arguments. ``options`` are forwarded to ``execute_with_retry``.
    """

    def decorate(func: Callable[..., Awaitable[Any]]) -> Callable[..., Awaitable[Any]]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            return await execute_with_retry(
                lambda: func(*args, **kwargs), policy, **options
            )

        return wrapper

    if fn is None:
        return decorate
    return decorate(fn)
