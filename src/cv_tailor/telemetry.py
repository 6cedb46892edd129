"""Optional timings and metrics for tailoring steps and retry attempts.

Telemetry is off unless ``CV_TAILOR_TELEMETRY=1`` (or ``DEBUG=1``) is set and
at least one reporter is passed to ``TelemetryContext``. When off, every
call returns a shared stateless object whose methods do nothing.

Scopes nest per asyncio task: ``tele("retry.attempt")`` inside
``tele("tailoring.step")`` reports as ``tailoring.step.retry.attempt``.
"""

from collections import deque
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
import dataclasses
import logging
import os
import time
from typing import Any, NamedTuple, Protocol, Self, runtime_checkable

log = logging.getLogger(__name__)

_active_scopes: ContextVar[tuple[str, ...]] = ContextVar("cv_tailor_scopes", default=())

_TELEMETRY_ENABLED = (
    os.getenv("CV_TAILOR_TELEMETRY") == "1" or os.getenv("DEBUG") == "1"
)


@runtime_checkable
class TelemetryReporter(Protocol):
    """Sink for scope timings (seconds) and metric values."""

    def record_timing(self, scope: str, duration: float, **metadata: Any) -> None: ...  # noqa: D102
    def record_metric(self, scope: str, value: Any, **metadata: Any) -> None: ...  # noqa: D102


def _qualify(name: str, extra: dict[str, Any]) -> tuple[str, dict[str, Any]]:
    """Dotted path of ``name`` under the active scopes, with nesting metadata."""
    scopes = _active_scopes.get()
    metadata = {
        "depth": len(scopes),
        "parent_scope": ".".join(scopes) or None,
        **extra,
    }
    return ".".join((*scopes, name)), metadata


@dataclasses.dataclass(frozen=True, slots=True)
class _DisabledTelemetry:
    def __call__(self, name: str, **metadata: Any) -> Self:  # noqa: ARG002
        return self

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *exc_info: object) -> None:
        return None

    def metric(self, name: str, value: Any, **metadata: Any) -> None:
        pass

    def count(self, name: str, increment: int = 1, **metadata: Any) -> None:
        pass


class _RecordingTelemetry:
    """Forwards scope timings and metrics to every reporter."""

    __slots__ = ("reporters",)

    def __init__(self, *reporters: TelemetryReporter) -> None:
        self.reporters = reporters

    @contextmanager
    def __call__(self, name: str, **metadata: Any) -> Iterator[Self]:
        if not isinstance(name, str) or not name:
            raise ValueError("Scope name must be a non-empty string")
        scope, full_metadata = _qualify(name, metadata)
        token = _active_scopes.set((*_active_scopes.get(), name))
        started = time.perf_counter()
        try:
            yield self
        finally:
            elapsed = time.perf_counter() - started
            _active_scopes.reset(token)
            self._emit("record_timing", scope, elapsed, full_metadata)

    def metric(self, name: str, value: Any, **metadata: Any) -> None:
        """Record ``value`` under ``name`` within the active scope."""
        scope, full_metadata = _qualify(name, metadata)
        self._emit("record_metric", scope, value, full_metadata)

    def count(self, name: str, increment: int = 1, **metadata: Any) -> None:
        """Record a counter increment."""
        self.metric(name, increment, metric_type="counter", **metadata)

    def _emit(self, method: str, scope: str, value: Any, metadata: dict[str, Any]) -> None:
        # A broken reporter must never fail the request being measured.
        for reporter in self.reporters:
            try:
                getattr(reporter, method)(scope, value, **metadata)
            except Exception:
                log.exception("Telemetry reporter %s failed", type(reporter).__name__)


_DISABLED = _DisabledTelemetry()

type TelemetryContextProtocol = _RecordingTelemetry | _DisabledTelemetry


def TelemetryContext(*reporters: TelemetryReporter) -> TelemetryContextProtocol:  # noqa: N802
    """Return a recording context, or the shared disabled one."""
    if _TELEMETRY_ENABLED and reporters:
        return _RecordingTelemetry(*reporters)
    return _DISABLED


class Sample(NamedTuple):
    value: Any
    metadata: dict[str, Any]


class InMemoryReporter:
    """Keeps the most recent samples per scope; handy in development and tests."""

    def __init__(self, max_samples_per_scope: int = 1000) -> None:
        self.max_samples = max_samples_per_scope
        self.timings: dict[str, deque[Sample]] = {}
        self.metrics: dict[str, deque[Sample]] = {}

    def _store(self, table: dict[str, deque[Sample]], scope: str, sample: Sample) -> None:
        table.setdefault(scope, deque(maxlen=self.max_samples)).append(sample)

    def record_timing(self, scope: str, duration: float, **metadata: Any) -> None:
        self._store(self.timings, scope, Sample(duration, metadata))

    def record_metric(self, scope: str, value: Any, **metadata: Any) -> None:
        self._store(self.metrics, scope, Sample(value, metadata))

    def summary(self) -> dict[str, dict[str, float]]:
        """Per-scope call count and mean duration, plus per-metric totals."""
        result: dict[str, dict[str, float]] = {}
        for scope, samples in self.timings.items():
            durations = [s.value for s in samples]
            result[scope] = {
                "calls": len(durations),
                "mean_s": sum(durations) / len(durations),
            }
        for scope, samples in self.metrics.items():
            numeric = [s.value for s in samples if isinstance(s.value, int | float)]
            result.setdefault(scope, {}).update(
                {"samples": len(samples), "total": sum(numeric)}
            )
        return result

    def get_report(self) -> str:
        """Human-readable rendering of ``summary()``, one line per scope."""
        lines = ["cv-tailor telemetry"]
        for scope, stats in sorted(self.summary().items()):
            rendered = ", ".join(f"{key}={value:g}" for key, value in stats.items())
            lines.append(f"  {scope}: {rendered}")
        return "\n".join(lines)
