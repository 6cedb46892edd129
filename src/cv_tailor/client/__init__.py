"""LLM provider adapters and their factory."""

from google import genai
from google.genai import types as genai_types
import openai

from cv_tailor.config import TailorSettings

from .adapters import GeminiAdapter, GenerationAdapter, OpenAIAdapter
from .error_handler import translate_gemini_error, translate_openai_error


def create_adapter(settings: TailorSettings) -> GenerationAdapter:
    """Build the adapter and SDK client for the configured provider.

    The SDK's own retries are disabled so ``execute_with_retry`` is the single
    owner of backoff. Each call returns a fresh client; callers decide whether
    to share it per process or per request.

    Raises:
        ConfigurationError: If the provider's API key is missing.
    """
    api_key = settings.api_key()
    if settings.provider == "openai":
        client = openai.AsyncOpenAI(
            api_key=api_key,
            timeout=settings.request_timeout_s,
            max_retries=0,
        )
        return OpenAIAdapter(
            client, settings.resolved_model, timeout_s=settings.request_timeout_s
        )

    gemini_client = genai.Client(
        api_key=api_key,
        http_options=genai_types.HttpOptions(
            timeout=int(settings.request_timeout_s * 1000)
        ),
    )
    return GeminiAdapter(gemini_client, settings.resolved_model)


__all__ = [
    "GeminiAdapter",
    "GenerationAdapter",
    "OpenAIAdapter",
    "create_adapter",
    "translate_gemini_error",
    "translate_openai_error",
]
