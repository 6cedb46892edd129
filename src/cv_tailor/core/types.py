"""Core value objects shared by the parser and the retry executor.

Every object here is immutable and passed explicitly per call; nothing in
this module holds process-wide state, so parser and retry invocations from
concurrent requests never observe each other.
"""

from __future__ import annotations

import dataclasses
import typing

# --- Minimal guard helpers (clarity > boilerplate) ---


def _require(
    *,
    condition: bool,
    message: str,
    exc: type[Exception] = ValueError,
    field_name: str | None = None,
) -> None:
    """Centralized validation with optional field context for clearer errors."""
    if not condition:
        if field_name:
            raise exc(f"{field_name}: {message}")
        raise exc(message)


def _is_int(value: object) -> bool:
    # bool is an int subclass; reject it so True never means "1 retry"
    return isinstance(value, int) and not isinstance(value, bool)


# --- Parsing configuration ---


@dataclasses.dataclass(frozen=True, slots=True)
class ParseConfig:
    """Per-call options for ``parse_llm_json``.

    Attributes:
        attempt_repair: Apply the textual repair rules when the first parse fails.
        extract_from_markdown: Unwrap the first fenced code block, if any.
        max_length: Inputs longer than this are rejected before any work.
        debug: Log the full repair log regardless of outcome.
    """

    attempt_repair: bool = True
    extract_from_markdown: bool = True
    max_length: int = 100_000
    debug: bool = False

    def __post_init__(self) -> None:
        """Validate invariants for type safety."""
        _require(
            condition=_is_int(self.max_length),
            message="must be an int",
            field_name="max_length",
            exc=TypeError,
        )
        _require(
            condition=self.max_length > 0,
            message=f"must be > 0, got {self.max_length}",
            field_name="max_length",
        )


DEFAULT_PARSE_CONFIG = ParseConfig()


# --- Retry configuration ---


@dataclasses.dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Bounded exponential backoff settings for ``execute_with_retry``.

    Delays are expressed in milliseconds. ``max_retries`` counts additional
    attempts after the first one, so the operation runs at most
    ``max_retries + 1`` times. ``max_delay_ms`` caps every backoff delay,
    including the first, so it may be lower than ``initial_delay_ms``.
    """

    max_retries: int = 3
    initial_delay_ms: int = 1000
    exponential_base: float = 2.0
    max_delay_ms: int = 30_000
    jitter: bool = True

    def __post_init__(self) -> None:
        """Validate invariants for type safety."""
        _require(
            condition=_is_int(self.max_retries) and self.max_retries >= 0,
            message=f"must be an int >= 0, got {self.max_retries!r}",
            field_name="max_retries",
        )
        _require(
            condition=_is_int(self.initial_delay_ms) and self.initial_delay_ms > 0,
            message=f"must be an int > 0, got {self.initial_delay_ms!r}",
            field_name="initial_delay_ms",
        )
        _require(
            condition=isinstance(self.exponential_base, int | float)
            and not isinstance(self.exponential_base, bool),
            message="must be a number",
            field_name="exponential_base",
            exc=TypeError,
        )
        _require(
            condition=self.exponential_base > 1,
            message=f"must be > 1, got {self.exponential_base}",
            field_name="exponential_base",
        )
        _require(
            condition=_is_int(self.max_delay_ms) and self.max_delay_ms > 0,
            message=f"must be an int > 0, got {self.max_delay_ms!r}",
            field_name="max_delay_ms",
        )

    @property
    def max_attempts(self) -> int:
        """Total number of times the operation may run."""
        return self.max_retries + 1

    def replace(self, **changes: typing.Any) -> RetryPolicy:
        """Return a copy with ``changes`` applied (validated again)."""
        return dataclasses.replace(self, **changes)


DEFAULT_RETRY_POLICY = RetryPolicy()


@dataclasses.dataclass(frozen=True, slots=True)
class RetryAttempt:
    """A failed attempt, kept only for the duration of one retry sequence."""

    attempt_number: int
    elapsed_ms: int
    error: BaseException
    delay_ms: int | None = None

    def describe(self) -> str:
        """One-line summary used in logs and exhaustion notes."""
        suffix = f", retrying in {self.delay_ms}ms" if self.delay_ms is not None else ""
        return (
            f"attempt {self.attempt_number} failed after {self.elapsed_ms}ms: "
            f"{type(self.error).__name__}: {self.error}{suffix}"
        )
