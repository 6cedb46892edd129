"""Generation adapters: one thin class per LLM provider.

Adapters wrap an explicitly constructed, caller-owned SDK client. They build
a request, return the raw textual answer, and translate SDK errors; retries
and parsing happen above them.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from google.genai import errors as genai_errors
from google.genai import types as genai_types
import httpx
import openai

from ..response.parser import extract_response_text
from .error_handler import translate_gemini_error, translate_openai_error

if TYPE_CHECKING:
    from google import genai

log = logging.getLogger(__name__)


@runtime_checkable
class GenerationAdapter(Protocol):
    """Provider-neutral text generation."""

    model: str

    async def generate(
        self,
        *,
        system: str,
        prompt: str,
        json_schema: dict[str, Any] | None = None,
        schema_name: str | None = None,
    ) -> str:
        """Return the model's raw text for a system + user prompt pair."""
        ...


class OpenAIAdapter:
    """Chat Completions over an injected ``openai.AsyncOpenAI`` client."""

    def __init__(
        self,
        client: openai.AsyncOpenAI,
        model: str,
        *,
        timeout_s: float | None = None,
    ) -> None:
        self._client = client
        self.model = model
        self.timeout_s = timeout_s

    async def generate(
        self,
        *,
        system: str,
        prompt: str,
        json_schema: dict[str, Any] | None = None,
        schema_name: str | None = None,
    ) -> str:
        if json_schema is not None:
            response_format: dict[str, Any] = {
                "type": "json_schema",
                "json_schema": {
                    "name": schema_name or "response",
                    "schema": json_schema,
                    "strict": False,
                },
            }
        else:
            response_format = {"type": "json_object"}

        log.debug("OpenAI request: model=%s, schema=%s", self.model, schema_name)
        try:
            completion = await self._client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": prompt},
                ],
                response_format=response_format,
                timeout=self.timeout_s,
            )
        except openai.OpenAIError as e:
            raise translate_openai_error(e) from e
        return extract_response_text(completion)


class GeminiAdapter:
    """``generate_content`` over an injected ``google.genai.Client``."""

    def __init__(self, client: genai.Client, model: str) -> None:
        self._client = client
        self.model = model

    async def generate(
        self,
        *,
        system: str,
        prompt: str,
        json_schema: dict[str, Any] | None = None,  # noqa: ARG002
        schema_name: str | None = None,
    ) -> str:
        # The JSON contract travels in the prompt; Gemini's schema dialect
        # differs from JSON Schema, so only the MIME type is enforced here.
        config = genai_types.GenerateContentConfig(
            system_instruction=system,
            response_mime_type="application/json",
        )
        log.debug("Gemini request: model=%s, schema=%s", self.model, schema_name)
        try:
            response = await self._client.aio.models.generate_content(
                model=self.model,
                contents=prompt,
                config=config,
            )
        except (genai_errors.APIError, httpx.TransportError) as e:
            raise translate_gemini_error(e) from e
        return extract_response_text(response)
