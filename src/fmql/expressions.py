"""Normalized predicate trees evaluated against file entries."""

from __future__ import annotations

import operator as _op
import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from fmql.attributes import Attribute
from fmql.errors import TranslationError


class Operator(Enum):
    """Comparison operators."""

    EQ = "="
    NE = "!="
    LT = "<"
    GT = ">"
    LE = "<="
    GE = ">="

    @property
    def is_ordering(self) -> bool:
        return self not in (Operator.EQ, Operator.NE)

    @property
    def mirrored(self) -> Operator:
        """The operator to use when the operands swap sides (``5 < size`` -> ``size > 5``)."""
        return _MIRRORED[self]

    def apply(self, left: Any, right: Any) -> bool:
        return _FUNCTIONS[self](left, right)


_MIRRORED = {
    Operator.EQ: Operator.EQ,
    Operator.NE: Operator.NE,
    Operator.LT: Operator.GT,
    Operator.GT: Operator.LT,
    Operator.LE: Operator.GE,
    Operator.GE: Operator.LE,
}

_FUNCTIONS = {
    Operator.EQ: _op.eq,
    Operator.NE: _op.ne,
    Operator.LT: _op.lt,
    Operator.GT: _op.gt,
    Operator.LE: _op.le,
    Operator.GE: _op.ge,
}


@dataclass(frozen=True)
class TimestampLiteral:
    """A parsed date/time literal and the precision it was written with.

    ``2025-03-01`` has day precision, so it equals every timestamp on that
    day; ``2025-03-01 12:30`` has minute precision.
    """

    value: datetime
    precision: str  # "day", "minute" or "second"

    def truncate(self, ts: datetime) -> datetime:
        """Drop the parts of ``ts`` finer than this literal's precision."""
        if self.precision == "day":
            return ts.replace(hour=0, minute=0, second=0, microsecond=0)
        if self.precision == "minute":
            return ts.replace(second=0, microsecond=0)
        return ts.replace(microsecond=0)


def like_to_regex(pattern: str) -> str:
    r"""Translate a SQL LIKE pattern into an anchored regular expression.

    ``%`` matches any run of characters, ``_`` exactly one, and ``\`` makes
    the next character literal. Every other character is literal.
    """
    parts = []
    chars = iter(pattern)
    for ch in chars:
        if ch == "\\":
            parts.append(re.escape(next(chars, "\\")))
        elif ch == "%":
            parts.append(".*")
        elif ch == "_":
            parts.append(".")
        else:
            parts.append(re.escape(ch))
    return "".join(parts)


@dataclass
class Comparison:
    """``attribute <operator> literal`` with an already-typed literal."""

    attribute: Attribute
    operator: Operator
    literal: Any


@dataclass
class Like:
    """Case-insensitive SQL LIKE match against an attribute's text."""

    attribute: Attribute
    pattern: str
    regex: re.Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        self.regex = re.compile(like_to_regex(self.pattern), re.IGNORECASE | re.DOTALL)

    def matches(self, text: str) -> bool:
        return self.regex.fullmatch(text) is not None


@dataclass
class Regexp:
    """Unanchored, case-sensitive regular expression search."""

    attribute: Attribute
    pattern: str
    regex: re.Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        try:
            self.regex = re.compile(self.pattern)
        except re.error as e:
            raise TranslationError(f"Invalid regular expression {self.pattern!r}: {e}") from e

    def matches(self, text: str) -> bool:
        return self.regex.search(text) is not None


@dataclass
class And:
    left: Expr
    right: Expr


@dataclass
class Or:
    left: Expr
    right: Expr


@dataclass
class Not:
    inner: Expr


Expr = Comparison | Like | Regexp | And | Or | Not
