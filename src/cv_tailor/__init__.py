"""LLM-assisted CV and cover letter tailoring.

The core is a response parser that extracts, repairs and validates JSON from
model output, and a retry executor that wraps provider calls with bounded,
jittered exponential backoff.
"""

import importlib.metadata
import logging

from cv_tailor.config import TailorSettings, load_settings
from cv_tailor.core.exceptions import (
    APIConnectionError,
    APIError,
    APITimeoutError,
    ConfigurationError,
    CVTailorError,
    ExtractionFailedError,
    InputInvalidError,
    OperationCancelledError,
    ParseError,
    ParseErrorKind,
    RateLimitError,
    SchemaMismatchError,
    TailoringError,
)
from cv_tailor.core.types import (
    ParseConfig,
    RetryAttempt,
    RetryPolicy,
)
from cv_tailor.errors import ErrorCode, error_response
from cv_tailor.resilience import (
    ErrorClassification,
    calculate_backoff_delay,
    classify_error,
    execute_with_retry,
    is_retryable_error,
    with_retry,
)
from cv_tailor.response import (
    ParseFailure,
    ParseOutcome,
    ParseSuccess,
    parse_cover_letter_response,
    parse_cv_response,
    parse_job_analysis_response,
    parse_llm_json,
    parse_llm_response,
)
from cv_tailor.schemas import PydanticSchema, SchemaContract, SchemaIssue
from cv_tailor.service import TailoringService
from cv_tailor.telemetry import TelemetryContext, TelemetryReporter

try:
    __version__ = importlib.metadata.version("cv-tailor")
except importlib.metadata.PackageNotFoundError:
    __version__ = "development"

# Set up a null handler for the library's root logger.
# This prevents 'No handler found' errors if the consuming app has no logging configured.
logging.getLogger(__name__).addHandler(logging.NullHandler())

# Public API
__all__ = [  # noqa: RUF022
    # Parsing
    "parse_llm_json",
    "parse_llm_response",
    "parse_job_analysis_response",
    "parse_cv_response",
    "parse_cover_letter_response",
    "ParseConfig",
    "ParseOutcome",
    "ParseSuccess",
    "ParseFailure",
    # Schemas
    "SchemaContract",
    "SchemaIssue",
    "PydanticSchema",
    # Retry
    "execute_with_retry",
    "with_retry",
    "calculate_backoff_delay",
    "classify_error",
    "is_retryable_error",
    "ErrorClassification",
    "RetryPolicy",
    "RetryAttempt",
    # Service & configuration
    "TailoringService",
    "TailorSettings",
    "load_settings",
    "error_response",
    "ErrorCode",
    # Telemetry (extension points)
    "TelemetryContext",
    "TelemetryReporter",
    # Exceptions
    "CVTailorError",
    "ConfigurationError",
    "ParseError",
    "ParseErrorKind",
    "InputInvalidError",
    "ExtractionFailedError",
    "SchemaMismatchError",
    "APIError",
    "RateLimitError",
    "APIConnectionError",
    "APITimeoutError",
    "OperationCancelledError",
    "TailoringError",
]
