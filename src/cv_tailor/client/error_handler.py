"""Translation of provider SDK errors into library exceptions.

Adapters raise only ``cv_tailor.core.exceptions`` types, keeping the HTTP
status and response headers so retry classification and HTTP mapping work
without importing any SDK.
"""

from typing import Any

from google.genai import errors as genai_errors
import httpx
import openai

from ..core.exceptions import (
    APIConnectionError,
    APIError,
    APITimeoutError,
    RateLimitError,
)


def _headers_from_response(response: Any) -> dict[str, str]:
    headers = getattr(response, "headers", None)
    if headers is None:
        return {}
    return {str(k): str(v) for k, v in headers.items()}


def translate_openai_error(error: openai.OpenAIError) -> APIError:
    """Map an OpenAI SDK error to the library hierarchy."""
    if isinstance(error, openai.APITimeoutError):
        return APITimeoutError(f"OpenAI request timed out: {error}")
    if isinstance(error, openai.APIConnectionError):
        return APIConnectionError(f"Could not reach OpenAI: {error}")
    if isinstance(error, openai.APIStatusError):
        headers = _headers_from_response(error.response)
        message = f"OpenAI API error {error.status_code}: {error.message}"
        if error.status_code == 429:
            return RateLimitError(message, error.status_code, headers)
        return APIError(message, error.status_code, headers)
    return APIError(f"OpenAI request failed: {error}")


def translate_gemini_error(error: Exception) -> Exception:
    """Map a google-genai or transport error to the library hierarchy.

    Errors of any other type are returned unchanged.
    """
    if isinstance(error, genai_errors.APIError):
        status = error.code if isinstance(error.code, int) else None
        headers = _headers_from_response(getattr(error, "response", None))
        message = f"Gemini API error {error.code}: {error.message or error.status}"
        if status == 429:
            return RateLimitError(message, status, headers)
        return APIError(message, status, headers)
    if isinstance(error, httpx.TimeoutException):
        return APITimeoutError(f"Gemini request timed out: {error}")
    if isinstance(error, httpx.TransportError):
        return APIConnectionError(f"Could not reach Gemini: {error}")
    return error
