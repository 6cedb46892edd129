"""Exception hierarchy for CV tailoring."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from enum import StrEnum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from cv_tailor.schemas.contract import SchemaIssue


class CVTailorError(Exception):
    """Base exception for all library errors."""


class ConfigurationError(CVTailorError):
    """Raised when required settings (API key, provider) are missing or invalid."""


# --- Parse failures ---


class ParseErrorKind(StrEnum):
    """Discriminant for the parse failure variants."""

    INPUT_INVALID = "input_invalid"
    EXTRACTION_FAILED = "extraction_failed"
    SCHEMA_MISMATCH = "schema_mismatch"


class ParseError(CVTailorError):
    """A model response could not be turned into validated data.

    Parse errors are normally returned inside a ``ParseFailure`` outcome;
    they are only raised by the convenience helpers that promise a value.
    """

    kind: ParseErrorKind = ParseErrorKind.EXTRACTION_FAILED

    def __init__(
        self,
        message: str,
        cause: BaseException | None = None,
        context: Mapping[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause
        self.context = dict(context) if context else {}
        if cause is not None:
            self.__cause__ = cause

    def to_dict(self) -> dict[str, Any]:
        """Serialize for logs and debug response bodies."""
        data: dict[str, Any] = {"kind": str(self.kind), "message": self.message}
        if self.cause is not None:
            data["cause"] = str(self.cause)
        if self.context:
            data["context"] = self.context
        return data


class InputInvalidError(ParseError):
    """Empty, non-text, or oversized input."""

    kind = ParseErrorKind.INPUT_INVALID


class ExtractionFailedError(ParseError):
    """No syntactically valid JSON could be produced, with or without repair."""

    kind = ParseErrorKind.EXTRACTION_FAILED


class SchemaMismatchError(ParseError):
    """JSON parsed but did not satisfy the expected schema."""

    kind = ParseErrorKind.SCHEMA_MISMATCH

    def __init__(
        self,
        message: str,
        issues: Sequence[SchemaIssue],
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, cause)
        self.issues: tuple[SchemaIssue, ...] = tuple(issues)

    def to_dict(self) -> dict[str, Any]:  # noqa: D102
        data = super().to_dict()
        data["issues"] = [
            {"path": list(issue.path), "message": issue.message}
            for issue in self.issues
        ]
        return data


# --- Provider errors ---


class APIError(CVTailorError):
    """An error reported by (or while reaching) the LLM provider.

    Carries the HTTP status and response headers when the provider supplied
    them, so retry classification and HTTP mapping never need the SDK types.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.headers: dict[str, str] = {
            str(k).lower(): str(v) for k, v in (headers or {}).items()
        }


class RateLimitError(APIError):
    """Provider rejected the request with HTTP 429."""

    def __init__(
        self,
        message: str,
        status_code: int | None = 429,
        headers: Mapping[str, str] | None = None,
        retry_after: float | None = None,
    ) -> None:
        super().__init__(message, status_code, headers)
        self.retry_after = retry_after


class APIConnectionError(APIError):
    """The provider could not be reached."""


class APITimeoutError(APIConnectionError):
    """The request to the provider timed out."""


class OperationCancelledError(CVTailorError):
    """The surrounding request was cancelled; never retried."""


class TailoringError(CVTailorError):
    """A tailoring step produced a response that could not be used."""

    def __init__(self, message: str, parse_error: ParseError | None = None) -> None:
        super().__init__(message)
        self.parse_error = parse_error
        if parse_error is not None:
            self.__cause__ = parse_error
