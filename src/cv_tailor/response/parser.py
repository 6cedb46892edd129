"""Turn raw model output into schema-validated data.

The pipeline is: markdown fence extraction, object-boundary extraction, a
direct JSON parse, then (only if that fails) the ordered repair rules and a
second parse, and finally schema validation. Data-shape problems never
raise; they come back as a ``ParseFailure`` carrying a classified
``ParseError`` and the repair log accumulated so far.
"""

from __future__ import annotations

from collections.abc import Mapping
import json
import logging
from typing import Any, overload

from cv_tailor.core.exceptions import (
    ExtractionFailedError,
    InputInvalidError,
    ParseError,
    SchemaMismatchError,
)
from cv_tailor.core.types import DEFAULT_PARSE_CONFIG, ParseConfig
from cv_tailor.schemas import (
    COVER_LETTER_SCHEMA,
    CV_SCHEMA,
    JOB_ANALYSIS_SCHEMA,
    CoverLetter,
    CVData,
    JobAnalysis,
    SchemaContract,
    as_schema,
)

from .extraction import extract_first_object, extract_markdown_block
from .repairs import repair_json_text
from .types import ParseFailure, ParseOutcome, ParseSuccess

log = logging.getLogger(__name__)

LOG_MARKDOWN = "Extracted from markdown code block"
LOG_OBJECT = "Extracted JSON object from mixed content"
LOG_REPAIRED = "Successfully repaired JSON"


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Non-standard JSON constant: {name}")


def _loads(text: str) -> Any:
    """Strict JSON decoding: NaN and Infinity are not JSON."""
    return json.loads(text, parse_constant=_reject_constant)


@overload
def parse_llm_json[T](
    text: Any,
    schema: SchemaContract[T],
    config: ParseConfig | None = None,
) -> ParseOutcome[T]: ...
@overload
def parse_llm_json[T](
    text: Any,
    schema: type[T],
    config: ParseConfig | None = None,
) -> ParseOutcome[T]: ...
def parse_llm_json(
    text: Any,
    schema: Any,
    config: ParseConfig | None = None,
) -> ParseOutcome[Any]:
    """Extract, repair, and validate a JSON value from model output.

    Args:
        text: Raw textual content returned by the model.
        schema: A ``SchemaContract`` or a pydantic model class / type.
        config: Parsing options; defaults to ``ParseConfig()``.

    Returns:
        ``ParseSuccess`` with the validated data, or ``ParseFailure`` whose
        error is an ``InputInvalidError``, ``ExtractionFailedError`` or
        ``SchemaMismatchError``.
    """
    cfg = config or DEFAULT_PARSE_CONFIG
    contract = as_schema(schema)
    outcome = _run_pipeline(text, contract, cfg)
    if cfg.debug:
        _log_outcome(outcome)
    return outcome


def _run_pipeline(
    text: Any, contract: SchemaContract[Any], cfg: ParseConfig
) -> ParseOutcome[Any]:
    if not isinstance(text, str) or not text.strip():
        return ParseFailure(InputInvalidError("Response is empty or not a string"))

    if len(text) > cfg.max_length:
        return ParseFailure(
            InputInvalidError(
                f"Response too long: {len(text)} > {cfg.max_length} characters",
                context={"length": len(text), "max_length": cfg.max_length},
            )
        )

    repair_log: list[str] = []
    working = text.strip()

    if cfg.extract_from_markdown:
        block = extract_markdown_block(working)
        if block is not None and block != working:
            working = block
            repair_log.append(LOG_MARKDOWN)
            log.debug("Extracted JSON candidate from markdown fence.")

    candidate = extract_first_object(working)
    if candidate is not None and candidate != working:
        working = candidate
        repair_log.append(LOG_OBJECT)
        log.debug("Extracted first JSON object from surrounding text.")

    try:
        parsed = _loads(working)
    except (ValueError, RecursionError) as first_error:
        if not cfg.attempt_repair:
            return ParseFailure(
                ExtractionFailedError(
                    "Failed to parse JSON and repair is disabled", first_error
                ),
                tuple(repair_log),
                working,
            )

        repaired, applied = repair_json_text(working)
        repair_log.extend(applied)
        log.debug("Direct JSON parse failed (%s); applied repairs: %s", first_error, applied)
        try:
            parsed = _loads(repaired)
        except (ValueError, RecursionError) as repair_error:
            return ParseFailure(
                ExtractionFailedError(
                    "Failed to parse JSON even after repair attempts", repair_error
                ),
                tuple(repair_log),
                repaired,
            )
        working = repaired
        repair_log.append(LOG_REPAIRED)

    validation = contract.validate(parsed)
    if not validation.ok:
        return ParseFailure(
            SchemaMismatchError(
                "Parsed JSON does not match expected schema",
                validation.issues,
                validation.cause,
            ),
            tuple(repair_log),
            working,
        )

    return ParseSuccess(validation.value, tuple(repair_log), working)


def _log_outcome(outcome: ParseOutcome[Any]) -> None:
    if isinstance(outcome, ParseSuccess):
        log.info("Parsed model response; repair log: %s", list(outcome.repair_log))
    else:
        log.info(
            "Failed to parse model response (%s: %s); repair log: %s",
            outcome.kind,
            outcome.error.message,
            list(outcome.repair_log),
        )


# --- Fixed-schema helpers ---


def parse_job_analysis_response(
    text: Any, config: ParseConfig | None = None
) -> ParseOutcome[JobAnalysis]:
    """Parse a job analysis response."""
    return parse_llm_json(text, JOB_ANALYSIS_SCHEMA, config)


def parse_cv_response(
    text: Any, config: ParseConfig | None = None
) -> ParseOutcome[CVData]:
    """Parse an adapted CV response."""
    return parse_llm_json(text, CV_SCHEMA, config)


def parse_cover_letter_response(
    text: Any, config: ParseConfig | None = None
) -> ParseOutcome[CoverLetter]:
    """Parse a generated cover letter response."""
    return parse_llm_json(text, COVER_LETTER_SCHEMA, config)


# --- Provider response helpers ---


def extract_response_text(api_response: Any) -> str:
    """Pull the textual content out of a provider response.

    Understands plain strings, Chat Completions payloads
    (``choices[0].message.content``), Responses API payloads
    (``output_text``) and Gemini responses (``text``), as objects or dicts.

    Raises:
        ParseError: If no textual content can be located.
    """
    if isinstance(api_response, str):
        return api_response

    try:
        content = _lookup(api_response, "choices", 0, "message", "content")
        if content is None:
            content = _lookup(api_response, "output_text")
        if content is None:
            content = _lookup(api_response, "text")
    except (AttributeError, IndexError, KeyError, TypeError) as e:
        raise ParseError(
            "Failed to extract content from API response",
            e,
            {"response_type": type(api_response).__name__},
        ) from e

    if not isinstance(content, str):
        raise ParseError(
            "Invalid API response structure",
            context={"response_type": type(api_response).__name__},
        )
    return content


def _lookup(obj: Any, *path: str | int) -> Any:
    current = obj
    for key in path:
        if current is None:
            return None
        if isinstance(key, int):
            if not current:
                return None
            current = current[key]
        elif isinstance(current, Mapping):
            current = current.get(key)
        else:
            current = getattr(current, key, None)
    return current


def parse_llm_response[T](
    api_response: Any,
    schema: SchemaContract[T] | type[T],
    config: ParseConfig | None = None,
) -> T:
    """Extract, parse and validate a provider response, raising on failure.

    Raises:
        ParseError: The classified failure (its subclass tells which stage).
    """
    outcome = parse_llm_json(extract_response_text(api_response), schema, config)
    if isinstance(outcome, ParseFailure):
        raise outcome.error
    return outcome.data
