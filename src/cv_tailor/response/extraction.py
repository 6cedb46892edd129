"""Locate the JSON payload inside free-form model output."""

from __future__ import annotations

import re

_FENCED_BLOCK = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```", re.IGNORECASE)


def extract_markdown_block(text: str) -> str | None:
    """Return the content of the first fenced code block, or None.

    The fence may be tagged ``json``; only the first block is considered.
    """
    match = _FENCED_BLOCK.search(text)
    if match is None:
        return None
    inner = match.group(1).strip()
    return inner or None


def extract_first_object(text: str) -> str | None:
    """Return the first balanced ``{...}`` span in ``text``, or None.

    Braces inside double-quoted strings are ignored, so ``{"a": "}"}`` is a
    single object. When two sibling objects appear, only the first is
    returned. An object that never closes yields None.
    """
    start = text.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start : index + 1]
    return None
