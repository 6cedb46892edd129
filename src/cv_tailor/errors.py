"""Map library exceptions to HTTP statuses and JSON error envelopes.

End users get a generic message; repair logs, schema issues, provider
status and retry notes are only included with ``include_details=True``.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
import logging
from typing import Any

from .core.exceptions import (
    APIError,
    ConfigurationError,
    InputInvalidError,
    ParseError,
    TailoringError,
)
from .resilience.classification import get_status_code

log = logging.getLogger(__name__)


class ErrorCode(StrEnum):
    INVALID_INPUT = "INVALID_INPUT"
    RATE_LIMITED = "RATE_LIMITED"
    EXTERNAL_SERVICE_ERROR = "EXTERNAL_SERVICE_ERROR"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.INVALID_INPUT: "The submitted content is invalid.",
    ErrorCode.RATE_LIMITED: "Too many requests to the analysis service. Please retry later.",
    ErrorCode.EXTERNAL_SERVICE_ERROR: "Analysis failed. Please retry.",
    ErrorCode.CONFIGURATION_ERROR: "The analysis service is misconfigured.",
    ErrorCode.UNKNOWN_ERROR: "An unexpected error occurred.",
}


def classify_for_http(error: BaseException) -> tuple[int, ErrorCode]:
    """Return the HTTP status and error code for ``error``."""
    if isinstance(error, TailoringError) and error.parse_error is not None:
        error = error.parse_error

    if isinstance(error, InputInvalidError):
        return 400, ErrorCode.INVALID_INPUT
    if isinstance(error, ParseError):
        # The model's output was unusable: upstream problem, not the client's.
        return 502, ErrorCode.EXTERNAL_SERVICE_ERROR
    if isinstance(error, APIError):
        status = get_status_code(error)
        if status == 429:
            return 429, ErrorCode.RATE_LIMITED
        if status in (401, 403):
            return 502, ErrorCode.CONFIGURATION_ERROR
        return 502, ErrorCode.EXTERNAL_SERVICE_ERROR
    if isinstance(error, ConfigurationError):
        return 500, ErrorCode.CONFIGURATION_ERROR
    if isinstance(error, TailoringError):
        return 502, ErrorCode.EXTERNAL_SERVICE_ERROR
    return 500, ErrorCode.UNKNOWN_ERROR


def error_response(
    error: BaseException, *, include_details: bool = False
) -> tuple[int, dict[str, Any]]:
    """Build ``(status, body)`` for an error raised while tailoring."""
    status, code = classify_for_http(error)
    body: dict[str, Any] = {
        "success": False,
        "code": str(code),
        "error": _MESSAGES[code],
        "timestamp": datetime.now(UTC).isoformat(),
    }
    if include_details:
        body["details"] = _details(error)

    log.log(
        logging.ERROR if status >= 500 else logging.WARNING,
        "Request failed with %d %s: %s: %s",
        status,
        code,
        type(error).__name__,
        error,
    )
    return status, body


def _details(error: BaseException) -> dict[str, Any]:
    details: dict[str, Any] = {"type": type(error).__name__, "message": str(error)}
    parse_error = error.parse_error if isinstance(error, TailoringError) else error
    if isinstance(parse_error, ParseError):
        details["parse"] = parse_error.to_dict()
    if isinstance(error, APIError):
        details["status_code"] = error.status_code
    notes = getattr(error, "__notes__", None)
    if notes:
        details["notes"] = list(notes)
    return details
