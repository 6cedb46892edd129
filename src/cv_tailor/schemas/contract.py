"""Schema contract consumed by the response parser.

A schema validates a candidate value and yields either a typed value or an
ordered list of structured issues. The parser depends only on the
``SchemaContract`` protocol; ``PydanticSchema`` is the stock implementation.
"""

from __future__ import annotations

import dataclasses
from typing import Any, Protocol, runtime_checkable

from pydantic import TypeAdapter, ValidationError

type PathElement = str | int


@dataclasses.dataclass(frozen=True, slots=True)
class SchemaIssue:
    """A single validation problem located by its path in the document."""

    path: tuple[PathElement, ...]
    message: str

    def __str__(self) -> str:
        location = ".".join(str(p) for p in self.path) or "<root>"
        return f"{location}: {self.message}"


@dataclasses.dataclass(frozen=True, slots=True)
class Valid[T]:
    """Validation succeeded."""

    value: T
    ok: bool = dataclasses.field(default=True, init=False)


@dataclasses.dataclass(frozen=True, slots=True)
class Invalid:
    """Validation failed with one or more issues."""

    issues: tuple[SchemaIssue, ...]
    cause: Exception | None = None
    ok: bool = dataclasses.field(default=False, init=False)


type ValidationOutcome[T] = Valid[T] | Invalid


@runtime_checkable
class SchemaContract[T](Protocol):
    """Anything that can validate an untyped value into ``T``."""

    def validate(self, value: Any) -> ValidationOutcome[T]: ...  # noqa: D102


class PydanticSchema[T]:
    """Adapts a pydantic model (or any pydantic-supported type) to the contract.

    Extra properties are dropped by pydantic's default ``extra="ignore"``
    policy, so a model answering with more fields than requested still
    validates.
    """

    __slots__ = ("_adapter", "name")

    def __init__(self, target: type[T] | Any, name: str | None = None) -> None:
        self._adapter: TypeAdapter[T] = TypeAdapter(target)
        self.name = name or getattr(target, "__name__", repr(target))

    def validate(self, value: Any) -> ValidationOutcome[T]:
        try:
            return Valid(self._adapter.validate_python(value))
        except ValidationError as e:
            return Invalid(issues=issues_from_validation_error(e), cause=e)

    def json_schema(self) -> dict[str, Any]:
        """JSON Schema for the target, suitable for provider structured output."""
        return self._adapter.json_schema(by_alias=True)

    def __repr__(self) -> str:
        return f"PydanticSchema({self.name})"


def issues_from_validation_error(error: ValidationError) -> tuple[SchemaIssue, ...]:
    """Convert pydantic's error list into ordered ``SchemaIssue`` objects."""
    return tuple(
        SchemaIssue(path=tuple(err.get("loc", ())), message=err.get("msg", ""))
        for err in error.errors()
    )


def as_schema(obj: Any) -> SchemaContract[Any]:
    """Normalize a contract, a pydantic model class, or a plain type."""
    # Model classes expose a (deprecated) ``validate`` classmethod, so they
    # satisfy the protocol structurally; wrap them instead.
    if isinstance(obj, SchemaContract) and not isinstance(obj, type):
        return obj
    return PydanticSchema(obj)
