"""Retry execution and error classification for outbound LLM calls."""

from cv_tailor.resilience.classification import (
    RETRYABLE_STATUS_CODES,
    ErrorClassification,
    classify_error,
    get_retry_after_ms,
    get_status_code,
    is_connection_error,
    is_rate_limit_error,
    is_retryable_error,
)
from cv_tailor.resilience.retry import (
    calculate_backoff_delay,
    compute_retry_delay,
    execute_with_retry,
    with_retry,
)

__all__ = [  # noqa: RUF022
    "execute_with_retry",
    "with_retry",
    "calculate_backoff_delay",
    "compute_retry_delay",
    "ErrorClassification",
    "RETRYABLE_STATUS_CODES",
    "classify_error",
    "is_retryable_error",
    "is_rate_limit_error",
    "is_connection_error",
    "get_status_code",
    "get_retry_after_ms",
]
