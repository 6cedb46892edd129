"""Outcome types returned by the response parser."""

from __future__ import annotations

import dataclasses
from typing import Literal

from cv_tailor.core.exceptions import ParseError, ParseErrorKind


@dataclasses.dataclass(frozen=True, slots=True)
class ParseSuccess[T]:
    """Validated data plus the audit trail of how it was obtained.

    ``repair_log`` lists every transformation applied, in order; it is empty
    when the response parsed as-is.
    """

    data: T
    repair_log: tuple[str, ...] = ()
    extracted_text: str = ""

    @property
    def ok(self) -> Literal[True]:
        return True


@dataclasses.dataclass(frozen=True, slots=True)
class ParseFailure:
    """A classified parse failure.

    ``extracted_text`` is the last text handed to the JSON decoder, or None
    when the input was rejected before extraction began.
    """

    error: ParseError
    repair_log: tuple[str, ...] = ()
    extracted_text: str | None = None

    @property
    def ok(self) -> Literal[False]:
        return False

    @property
    def kind(self) -> ParseErrorKind:
        return self.error.kind


type ParseOutcome[T] = ParseSuccess[T] | ParseFailure
