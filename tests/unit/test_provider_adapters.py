from types import SimpleNamespace
from unittest.mock import AsyncMock

from google.genai import errors as genai_errors
import httpx
import openai
import pytest

from cv_tailor.client import (
    GeminiAdapter,
    GenerationAdapter,
    OpenAIAdapter,
    create_adapter,
    translate_gemini_error,
    translate_openai_error,
)
from cv_tailor.config import load_settings
from cv_tailor.core.exceptions import (
    APIConnectionError,
    APIError,
    APITimeoutError,
    ConfigurationError,
    RateLimitError,
)
from cv_tailor.resilience import get_retry_after_ms, is_retryable_error

pytestmark = pytest.mark.unit

_REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


def openai_client(create: AsyncMock) -> SimpleNamespace:
    return SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))


def gemini_client(generate_content: AsyncMock) -> SimpleNamespace:
    return SimpleNamespace(
        aio=SimpleNamespace(models=SimpleNamespace(generate_content=generate_content))
    )


class TestOpenAIAdapter:
    @pytest.mark.asyncio
    async def test_structured_output_request(self):
        create = AsyncMock(
            return_value={"choices": [{"message": {"content": '{"a": 1}'}}]}
        )
        adapter = OpenAIAdapter(openai_client(create), "gpt-4o", timeout_s=12)

        text = await adapter.generate(
            system="sys",
            prompt="user",
            json_schema={"type": "object"},
            schema_name="job_analysis",
        )

        assert text == '{"a": 1}'
        kwargs = create.await_args.kwargs
        assert kwargs["model"] == "gpt-4o"
        assert kwargs["timeout"] == 12
        assert kwargs["messages"] == [
            {"role": "system", "content": "sys"},
            {"role": "user", "content": "user"},
        ]
        assert kwargs["response_format"]["type"] == "json_schema"
        assert kwargs["response_format"]["json_schema"]["name"] == "job_analysis"

    @pytest.mark.asyncio
    async def test_json_object_mode_without_schema(self):
        create = AsyncMock(return_value={"choices": [{"message": {"content": "{}"}}]})
        adapter = OpenAIAdapter(openai_client(create), "gpt-4o")
        await adapter.generate(system="s", prompt="p")
        assert create.await_args.kwargs["response_format"] == {"type": "json_object"}

    @pytest.mark.asyncio
    async def test_sdk_errors_are_translated(self):
        response = httpx.Response(429, headers={"retry-after": "7"}, request=_REQUEST)
        sdk_error = openai.RateLimitError("Rate limit reached", response=response, body=None)
        adapter = OpenAIAdapter(openai_client(AsyncMock(side_effect=sdk_error)), "gpt-4o")

        with pytest.raises(RateLimitError) as exc_info:
            await adapter.generate(system="s", prompt="p")

        assert exc_info.value.__cause__ is sdk_error
        assert get_retry_after_ms(exc_info.value) == 7000

    def test_satisfies_protocol(self):
        adapter = OpenAIAdapter(openai_client(AsyncMock()), "gpt-4o")
        assert isinstance(adapter, GenerationAdapter)


class TestTranslateOpenAIError:
    def test_timeout(self):
        error = translate_openai_error(openai.APITimeoutError(request=_REQUEST))
        assert isinstance(error, APITimeoutError)
        assert is_retryable_error(error)

    def test_connection(self):
        error = translate_openai_error(openai.APIConnectionError(request=_REQUEST))
        assert type(error) is APIConnectionError
        assert is_retryable_error(error)

    def test_auth_error_is_fatal(self):
        response = httpx.Response(401, request=_REQUEST)
        error = translate_openai_error(
            openai.AuthenticationError("Invalid API key", response=response, body=None)
        )
        assert type(error) is APIError
        assert error.status_code == 401
        assert not is_retryable_error(error)

    def test_server_error_is_retryable(self):
        response = httpx.Response(503, request=_REQUEST)
        error = translate_openai_error(
            openai.InternalServerError("Overloaded", response=response, body=None)
        )
        assert error.status_code == 503
        assert is_retryable_error(error)


class TestGeminiAdapter:
    @pytest.mark.asyncio
    async def test_generate(self):
        generate_content = AsyncMock(return_value=SimpleNamespace(text='{"a": 1}'))
        adapter = GeminiAdapter(gemini_client(generate_content), "gemini-2.0-flash")

        assert await adapter.generate(system="sys", prompt="user") == '{"a": 1}'

        kwargs = generate_content.await_args.kwargs
        assert kwargs["model"] == "gemini-2.0-flash"
        assert kwargs["contents"] == "user"
        assert kwargs["config"].system_instruction == "sys"
        assert kwargs["config"].response_mime_type == "application/json"

    @pytest.mark.asyncio
    async def test_sdk_errors_are_translated(self):
        sdk_error = genai_errors.ServerError(
            503, {"error": {"code": 503, "message": "Overloaded", "status": "UNAVAILABLE"}}
        )
        adapter = GeminiAdapter(
            gemini_client(AsyncMock(side_effect=sdk_error)), "gemini-2.0-flash"
        )

        with pytest.raises(APIError) as exc_info:
            await adapter.generate(system="s", prompt="p")

        assert exc_info.value.status_code == 503
        assert is_retryable_error(exc_info.value)


class TestTranslateGeminiError:
    def test_quota_exhausted(self):
        error = translate_gemini_error(
            genai_errors.ClientError(
                429,
                {"error": {"code": 429, "message": "Quota", "status": "RESOURCE_EXHAUSTED"}},
            )
        )
        assert isinstance(error, RateLimitError)

    def test_transport_errors(self):
        assert isinstance(translate_gemini_error(httpx.ReadTimeout("t")), APITimeoutError)
        assert type(translate_gemini_error(httpx.ConnectError("c"))) is APIConnectionError

    def test_other_errors_pass_through(self):
        error = ValueError("unrelated")
        assert translate_gemini_error(error) is error


class TestCreateAdapter:
    def test_openai(self):
        settings = load_settings(openai_api_key="sk-test", model="gpt-4o-mini")
        adapter = create_adapter(settings)
        assert isinstance(adapter, OpenAIAdapter)
        assert adapter.model == "gpt-4o-mini"

    def test_gemini(self):
        adapter = create_adapter(load_settings(provider="gemini", gemini_api_key="g-test"))
        assert isinstance(adapter, GeminiAdapter)
        assert adapter.model == "gemini-2.0-flash"

    def test_missing_key(self):
        with pytest.raises(ConfigurationError, match="OPENAI_API_KEY"):
            create_adapter(load_settings())
