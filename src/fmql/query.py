"""The engine's canonical query form."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from fmql.attributes import Attribute
from fmql.errors import TranslationError
from fmql.expressions import Expr

if TYPE_CHECKING:
    from fmql.assemble import GroupKey


class Operation(Enum):
    SELECT = "select"
    UPDATE = "update"


@dataclass(frozen=True)
class OrderKey:
    """One ORDER BY key."""

    attribute: Attribute
    descending: bool = False


@dataclass
class Query:
    """A fully typed query, ready to run.

    Produced by the translator from a parsed statement. Every attribute is
    resolved and every literal coerced, so execution never fails on the
    query itself.
    """

    operation: Operation
    root: str
    recursive: bool = False
    predicate: Expr | None = None
    order_by: list[OrderKey] = field(default_factory=list)
    group_by: GroupKey | None = None
    assignments: dict[str, Any] = field(default_factory=dict)  # attribute name -> typed value
    columns: list[Attribute] | None = None  # None for *
    limit: int | None = None
    offset: int = 0
    include_hidden: bool = False

    def __post_init__(self) -> None:
        if self.operation is Operation.UPDATE and not self.assignments:
            raise TranslationError("UPDATE requires at least one SET assignment")
        if self.operation is not Operation.UPDATE and self.assignments:
            raise TranslationError(f"{self.operation.name} cannot carry assignments")
        if self.limit is not None and self.limit < 0:
            raise TranslationError(f"LIMIT must not be negative, got {self.limit}")
        if self.offset < 0:
            raise TranslationError(f"OFFSET must not be negative, got {self.offset}")

    @property
    def is_update(self) -> bool:
        return self.operation is Operation.UPDATE
