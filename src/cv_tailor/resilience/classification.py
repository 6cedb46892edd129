"""Retryable-versus-fatal classification of errors raised by LLM calls.

Classification relies on capabilities, not on a particular SDK's classes:
a numeric status attribute, a headers-like object carrying ``retry-after``,
or a known connection/timeout shape. Provider adapters translate SDK errors
into ``cv_tailor.core.exceptions`` types, but foreign errors with the same
shape classify identically.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from enum import StrEnum
import math
from typing import Any

import httpx

from cv_tailor.core.exceptions import (
    APIConnectionError,
    OperationCancelledError,
    RateLimitError,
)

RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})

# SDK classes recognised by name so no provider package is imported here
_CONNECTION_ERROR_NAMES = frozenset({"APIConnectionError", "APITimeoutError"})
_TRANSIENT_TRANSPORT_ERRORS = (
    ConnectionError,
    TimeoutError,
    APIConnectionError,
    httpx.TimeoutException,
    httpx.NetworkError,
    httpx.RemoteProtocolError,
)


class ErrorClassification(StrEnum):
    RETRYABLE = "retryable"
    FATAL = "fatal"


def classify_error(error: BaseException) -> ErrorClassification:
    """Classify ``error`` as retryable or fatal.

    Retryable: connection failures, timeouts, and errors whose status is one
    of 429, 500, 502, 503, 504. Everything else, including explicit
    cancellation, is fatal.
    """
    if isinstance(error, OperationCancelledError | asyncio.CancelledError):
        return ErrorClassification.FATAL
    if is_connection_error(error) or is_rate_limit_error(error):
        return ErrorClassification.RETRYABLE
    if get_status_code(error) in RETRYABLE_STATUS_CODES:
        return ErrorClassification.RETRYABLE
    return ErrorClassification.FATAL


def is_retryable_error(error: BaseException) -> bool:
    """Return True when ``error`` warrants another attempt."""
    return classify_error(error) is ErrorClassification.RETRYABLE


def is_connection_error(error: BaseException) -> bool:
    """Return True for connection failures and timeouts of any provider."""
    if isinstance(error, _TRANSIENT_TRANSPORT_ERRORS):
        return True
    if any(cls.__name__ in _CONNECTION_ERROR_NAMES for cls in type(error).__mro__):
        return True
    return "ECONNRESET" in str(error)


def is_rate_limit_error(error: BaseException) -> bool:
    """Return True for HTTP 429 style errors."""
    if isinstance(error, RateLimitError):
        return True
    if any(cls.__name__ == "RateLimitError" for cls in type(error).__mro__):
        return True
    return get_status_code(error) == 429


def get_status_code(error: BaseException) -> int | None:
    """Return the HTTP status carried by ``error``, if any."""
    for attr in ("status_code", "status", "code"):
        status = _as_status(getattr(error, attr, None))
        if status is not None:
            return status
    response = getattr(error, "response", None)
    if response is not None:
        return _as_status(getattr(response, "status_code", None))
    return None


def get_retry_after_ms(error: BaseException) -> int | None:
    """Return the provider's requested wait in milliseconds, if any.

    Sources, in order: a ``retry_after`` attribute (seconds), the
    ``retry-after-ms`` header, then ``retry-after`` as seconds or HTTP-date.
    """
    explicit = getattr(error, "retry_after", None)
    if isinstance(explicit, int | float) and not isinstance(explicit, bool):
        return _non_negative_ms(explicit * 1000)

    headers = _headers_of(error)
    if headers is None:
        return None

    raw_ms = _header_value(headers, "retry-after-ms")
    if raw_ms is not None:
        try:
            return _non_negative_ms(float(raw_ms))
        except ValueError:
            pass

    raw = _header_value(headers, "retry-after")
    if raw is None:
        return None
    try:
        return _non_negative_ms(float(raw) * 1000)
    except ValueError:
        return _http_date_to_ms(raw)


def _as_status(value: Any) -> int | None:
    if isinstance(value, int) and not isinstance(value, bool) and 100 <= value <= 599:
        return value
    return None


def _non_negative_ms(value: float) -> int | None:
    if not math.isfinite(value) or value < 0:
        return None
    return int(value)


def _headers_of(error: BaseException) -> Any:
    headers = getattr(error, "headers", None)
    if headers is None:
        response = getattr(error, "response", None)
        headers = getattr(response, "headers", None)
    return headers


def _header_value(headers: Any, name: str) -> str | None:
    getter = getattr(headers, "get", None)
    if callable(getter):
        value = getter(name)
        if value is not None:
            return str(value).strip()
    if isinstance(headers, Mapping):
        for key, value in headers.items():
            if str(key).lower() == name:
                return str(value).strip()
    return None


def _http_date_to_ms(raw: str) -> int | None:
    try:
        when = parsedate_to_datetime(raw)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=UTC)
    seconds = (when - datetime.now(UTC)).total_seconds()
    return int(max(seconds, 0.0) * 1000)
