import pytest

from cv_tailor.core.exceptions import (
    APIConnectionError,
    APIError,
    ConfigurationError,
    ExtractionFailedError,
    InputInvalidError,
    RateLimitError,
    TailoringError,
)
from cv_tailor.errors import ErrorCode, classify_for_http, error_response

pytestmark = pytest.mark.unit


@pytest.mark.parametrize(
    ("error", "status", "code"),
    [
        (InputInvalidError("empty"), 400, ErrorCode.INVALID_INPUT),
        (ExtractionFailedError("bad json"), 502, ErrorCode.EXTERNAL_SERVICE_ERROR),
        (RateLimitError("slow down"), 429, ErrorCode.RATE_LIMITED),
        (APIError("Unauthorized", 401), 502, ErrorCode.CONFIGURATION_ERROR),
        (APIError("Server error", 500), 502, ErrorCode.EXTERNAL_SERVICE_ERROR),
        (APIConnectionError("refused"), 502, ErrorCode.EXTERNAL_SERVICE_ERROR),
        (ConfigurationError("no key"), 500, ErrorCode.CONFIGURATION_ERROR),
        (TailoringError("cover_letter failed"), 502, ErrorCode.EXTERNAL_SERVICE_ERROR),
        (KeyError("surprise"), 500, ErrorCode.UNKNOWN_ERROR),
    ],
)
def test_classify_for_http(error, status, code):
    assert classify_for_http(error) == (status, code)


def test_tailoring_error_is_classified_by_its_parse_error():
    error = TailoringError("job_analysis failed", InputInvalidError("empty"))
    assert classify_for_http(error) == (400, ErrorCode.INVALID_INPUT)


def test_body_hides_details_by_default():
    status, body = error_response(APIError("secret upstream detail", 503))
    assert status == 502
    assert body["success"] is False
    assert body["code"] == "EXTERNAL_SERVICE_ERROR"
    assert "secret" not in body["error"]
    assert "details" not in body
    assert body["timestamp"].endswith("+00:00")


def test_body_with_details():
    parse_error = ExtractionFailedError("Failed to parse JSON even after repair attempts")
    error = TailoringError("cv_adaptation failed", parse_error)
    error.add_note("Retry exhausted after 1 attempt(s):")

    _, body = error_response(error, include_details=True)

    details = body["details"]
    assert details["type"] == "TailoringError"
    assert details["parse"]["kind"] == "extraction_failed"
    assert details["notes"] == ["Retry exhausted after 1 attempt(s):"]


def test_details_include_provider_status():
    _, body = error_response(RateLimitError("quota"), include_details=True)
    assert body["details"]["status_code"] == 429
