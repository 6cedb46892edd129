"""Textual repair rules for JSON-ish model output.

Each rule is an isolated pure function ``(str) -> str`` that returns its
input unchanged when it does not apply. ``REPAIR_RULES`` fixes the order:
quote normalization runs before key quoting because bare keys may follow
single-quoted values that must become double-quoted first.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
import dataclasses
import re

# Upper bound on fixed-point iterations; every rule converges in one or two.
_MAX_PASSES = 16

_PREAMBLES = (
    re.compile(r"^here['’]?s the json response:\s*", re.IGNORECASE),
    re.compile(r"^the json output is:\s*", re.IGNORECASE),
    re.compile(r"^```json\s*", re.IGNORECASE),
    re.compile(r"^```\s*"),
    re.compile(r"^json:\s*", re.IGNORECASE),
    re.compile(r"^response:\s*", re.IGNORECASE),
)
_TRAILING_FENCE = re.compile(r"\s*```\s*$")
_BLANK_LINE = re.compile(r"\n[ \t\r]*\n")
_BARE_KEY = re.compile(r"([{,]\s*)([A-Za-z_][A-Za-z0-9_]*)\s*:")
_TRAILING_COMMA = re.compile(r",(\s*[}\]])")


def strip_preamble(text: str) -> str:
    """Remove chatty lead-ins such as ``Here's the JSON response:``."""
    for pattern in _PREAMBLES:
        text = pattern.sub("", text, count=1)
    return text


def strip_trailing_fence(text: str) -> str:
    """Remove a closing ``` fence left at the end of the text."""
    return _TRAILING_FENCE.sub("", text)


def strip_trailing_prose(text: str) -> str:
    """Drop commentary separated from the JSON by a blank line.

    The JSON region ends at the first blank line whose preceding text closes
    every bracket it opened; blank lines inside the JSON are kept.
    """
    for match in _BLANK_LINE.finditer(text):
        head = strip_trailing_fence(text[: match.start()]).rstrip()
        if head.endswith(("}", "]")) and _brackets_balanced(head):
            return head
    return text


def single_to_double_quotes(text: str) -> str:
    """Convert every single quote to a double quote."""
    return text.replace("'", '"')


def quote_bare_keys(text: str) -> str:
    """Wrap identifier-like keys that follow ``{`` or ``,`` in double quotes."""
    return _BARE_KEY.sub(r'\1"\2":', text)


def remove_trailing_commas(text: str) -> str:
    """Remove commas directly before a closing ``}`` or ``]``."""
    return _TRAILING_COMMA.sub(r"\1", text)


def collapse_escaped_quotes(text: str) -> str:
    r"""Collapse over-escaped quotes (``\\"`` becomes ``\"``)."""
    return text.replace('\\\\"', '\\"')


def _brackets_balanced(text: str) -> bool:
    depth = 0
    in_string = False
    escaped = False
    for char in text:
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
        elif char == '"':
            in_string = True
        elif char in "{[":
            depth += 1
        elif char in "}]":
            depth -= 1
            if depth < 0:
                return False
    return depth == 0 and not in_string


@dataclasses.dataclass(frozen=True, slots=True)
class RepairRule:
    """A named rewrite applied until the text stops changing."""

    description: str
    apply: Callable[[str], str]

    def run(self, text: str) -> str:
        """Apply the rule to a fixed point so a second run is a no-op."""
        for _ in range(_MAX_PASSES):
            rewritten = self.apply(text)
            if rewritten == text:
                break
            text = rewritten
        return text


REPAIR_RULES: tuple[RepairRule, ...] = (
    RepairRule("Removed LLM preamble", strip_preamble),
    RepairRule("Removed ``` suffix", strip_trailing_fence),
    RepairRule("Removed trailing content after JSON", strip_trailing_prose),
    RepairRule("Converted single quotes to double quotes", single_to_double_quotes),
    RepairRule("Added quotes to property names", quote_bare_keys),
    RepairRule("Removed trailing commas", remove_trailing_commas),
    RepairRule("Fixed escape sequences", collapse_escaped_quotes),
)


def repair_json_text(
    text: str,
    rules: Iterable[RepairRule] = REPAIR_RULES,
) -> tuple[str, list[str]]:
    """Apply ``rules`` in order and report which ones changed the text.

    Returns:
        The rewritten text and the descriptions of the rules that changed it,
        in application order. Feeding the result back in returns it unchanged
        with an empty log.
    """
    content = text.strip()
    applied: list[str] = []
    for rule in rules:
        rewritten = rule.run(content).strip()
        if rewritten != content:
            content = rewritten
            applied.append(rule.description)
    return content, applied
