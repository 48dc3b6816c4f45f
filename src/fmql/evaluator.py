"""Evaluation of predicate trees against file entries."""

from __future__ import annotations

from fmql.attributes import text_value
from fmql.entry import FileEntry
from fmql.expressions import (
    And,
    Comparison,
    Expr,
    Like,
    Not,
    Operator,
    Or,
    Regexp,
    TimestampLiteral,
)


def _compare(expr: Comparison, entry: FileEntry) -> bool:
    value = expr.attribute.value(entry)
    literal = expr.literal

    # A missing value (e.g. an unknown owner) equals nothing
    if value is None:
        return expr.operator is Operator.NE

    if isinstance(literal, TimestampLiteral):
        return expr.operator.apply(literal.truncate(value), literal.value)

    return expr.operator.apply(value, literal)


def evaluate(expr: Expr, entry: FileEntry) -> bool:
    """Return whether ``entry`` satisfies ``expr``.

    ``And`` and ``Or`` short-circuit: the right operand is only evaluated
    when the left one does not decide the result.
    """
    if isinstance(expr, Comparison):
        return _compare(expr, entry)
    elif isinstance(expr, Like):
        return expr.matches(text_value(expr.attribute, entry))
    elif isinstance(expr, Regexp):
        return expr.matches(text_value(expr.attribute, entry))
    elif isinstance(expr, And):
        return evaluate(expr.left, entry) and evaluate(expr.right, entry)
    elif isinstance(expr, Or):
        return evaluate(expr.left, entry) or evaluate(expr.right, entry)
    elif isinstance(expr, Not):
        return not evaluate(expr.inner, entry)
    else:
        raise TypeError(f"Unknown expression type: {type(expr)}")


def matches(expr: Expr | None, entry: FileEntry) -> bool:
    """Like ``evaluate``, but a missing predicate matches everything."""
    return expr is None or evaluate(expr, entry)
