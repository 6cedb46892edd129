"""Parsing and repair of LLM responses into validated data."""

from cv_tailor.response.extraction import extract_first_object, extract_markdown_block
from cv_tailor.response.parser import (
    extract_response_text,
    parse_cover_letter_response,
    parse_cv_response,
    parse_job_analysis_response,
    parse_llm_json,
    parse_llm_response,
)
from cv_tailor.response.repairs import REPAIR_RULES, RepairRule, repair_json_text
from cv_tailor.response.types import ParseFailure, ParseOutcome, ParseSuccess

__all__ = [  # noqa: RUF022
    "parse_llm_json",
    "parse_llm_response",
    "parse_job_analysis_response",
    "parse_cv_response",
    "parse_cover_letter_response",
    "extract_response_text",
    "ParseOutcome",
    "ParseSuccess",
    "ParseFailure",
    "extract_markdown_block",
    "extract_first_object",
    "RepairRule",
    "REPAIR_RULES",
    "repair_json_text",
]
