"""Translation of parsed SQL statements into typed queries.

The parser accepts general SQL; this module accepts only the shapes the
engine can run and rejects everything else with an error naming the
construct. All literal coercion happens here, once, before any filesystem
access.
"""

from __future__ import annotations

import os
import pwd
import re
from datetime import datetime
from typing import Any

from fmql.assemble import GroupKey, GroupKind
from fmql.attributes import ATTRIBUTES, Attribute, AttributeKind, resolve_attribute
from fmql.config import EngineConfig
from fmql.entry import parse_symbolic_permissions
from fmql.errors import TranslationError
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
from fmql.parsing.sql_parser import (
    Assignment,
    Between,
    BinaryOp,
    FunctionCall,
    Identifier,
    InList,
    InSubquery,
    IsNull,
    LikeOp,
    Literal,
    OrderItem,
    RegexpOp,
    SelectStatement,
    Star,
    Statement,
    Subquery,
    UnaryOp,
    UpdateStatement,
)
from fmql.query import Operation, OrderKey, Query

_COMPARISON_OPERATORS = {op.value: op for op in Operator}

_SIZE_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([kmgt]?)(?:i?b)?\s*$", re.IGNORECASE)
_SIZE_UNITS = {"": 1, "k": 1024, "m": 1024 ** 2, "g": 1024 ** 3, "t": 1024 ** 4}

# Plain octal digits, optionally prefixed with 0o; no sign or underscores
_OCTAL_PATTERN = re.compile(r"(?:0o)?([0-7]+)", re.IGNORECASE)

# Most precise first
_TIMESTAMP_FORMATS = (
    ("%Y-%m-%d %H:%M:%S", "second"),
    ("%Y-%m-%dT%H:%M:%S", "second"),
    ("%Y-%m-%d %H:%M", "minute"),
    ("%Y-%m-%dT%H:%M", "minute"),
    ("%Y-%m-%d", "day"),
)

_BOOLEAN_WORDS = {"true": True, "yes": True, "1": True, "false": False, "no": False, "0": False}

_GROUP_COLUMNS = {
    "folder": GroupKind.FOLDER,
    "all_folders": GroupKind.ALL_FOLDERS,
    "extension": GroupKind.EXTENSION,
    "permissions": GroupKind.PERMISSIONS,
    "executable": GroupKind.EXECUTABLE,
    "is_executable": GroupKind.EXECUTABLE,
}

_GROUP_FUNCTIONS = {
    "name_starts_with": GroupKind.NAME_STARTS_WITH,
    "name_contains": GroupKind.NAME_CONTAINS,
    "name_ends_with": GroupKind.NAME_ENDS_WITH,
}


def describe(node: Any) -> str:
    """Name a syntax node the way an error message should."""
    if isinstance(node, (Subquery, InSubquery)):
        return "subquery"
    if isinstance(node, FunctionCall):
        return f"function call {node.name}()"
    if isinstance(node, BinaryOp):
        if node.operator == "||":
            return "string concatenation"
        if node.operator in ("and", "or"):
            return f"{node.operator.upper()} expression"
        if node.operator in _COMPARISON_OPERATORS:
            return f"comparison '{node.operator}'"
        return f"arithmetic operator '{node.operator}'"
    if isinstance(node, UnaryOp):
        return "NOT expression" if node.operator == "not" else "arithmetic negation"
    if isinstance(node, IsNull):
        return "IS NOT NULL" if node.negated else "IS NULL"
    if isinstance(node, Star):
        return "'*'"
    if isinstance(node, Identifier):
        return f"column '{node.name}'"
    if isinstance(node, Literal):
        return f"literal {node.value!r}"
    return type(node).__name__


# --- Literal coercion ---


def parse_size(text: str) -> int:
    """Parse a size with an optional binary unit suffix (``'10KB'``, ``'1.5 MB'``, ``'2G'``)."""
    match = _SIZE_PATTERN.match(text)
    if not match:
        raise TranslationError(f"Invalid size {text!r}; expected a number with an optional unit (B, KB, MB, GB, TB)")
    number, unit = match.groups()
    return int(float(number) * _SIZE_UNITS[unit.lower()])


def parse_timestamp(text: str) -> TimestampLiteral:
    """Parse a date or date-time literal, keeping the precision it was written with."""
    text = text.strip()
    for fmt, precision in _TIMESTAMP_FORMATS:
        try:
            return TimestampLiteral(datetime.strptime(text, fmt), precision)
        except ValueError:
            continue
    raise TranslationError(
        f"Invalid timestamp {text!r}; expected YYYY-MM-DD, YYYY-MM-DD HH:MM or YYYY-MM-DD HH:MM:SS"
    )


def parse_permissions(value: int | str) -> int:
    """Parse permission bits from octal (``755``, ``'0755'``, ``'0o755'``) or symbolic form."""
    text = str(value).strip()
    if len(text) == 9 and set(text) <= set("rwx-"):
        try:
            return parse_symbolic_permissions(text)
        except ValueError as e:
            raise TranslationError(str(e)) from e
    match = _OCTAL_PATTERN.fullmatch(text)
    if match is None:
        raise TranslationError(f"Invalid permissions {value!r}; expected octal like '755' or symbolic like 'rwxr-xr-x'")
    mode = int(match.group(1), 8)
    if mode > 0o7777:
        raise TranslationError(f"Permissions {value!r} out of range")
    return mode


def coerce_literal(attribute: Attribute, value: Any) -> Any:
    """Convert a raw SQL literal to the type ``attribute`` compares against."""
    kind = attribute.kind
    if value is None:
        raise TranslationError(f"NULL cannot be compared with '{attribute.name}'")

    if kind is AttributeKind.BOOLEAN:
        if isinstance(value, bool):
            return value
        if isinstance(value, (int, str)) and str(value).strip().lower() in _BOOLEAN_WORDS:
            return _BOOLEAN_WORDS[str(value).strip().lower()]
        raise TranslationError(f"Expected a boolean for '{attribute.name}', got {value!r}")

    if isinstance(value, bool):
        raise TranslationError(f"Expected {kind.value} value for '{attribute.name}', got {value!r}")

    if kind is AttributeKind.INTEGER:
        if isinstance(value, (int, float)):
            return value
        return parse_size(value)

    if kind is AttributeKind.STRING:
        text = str(value)
        if attribute.name == "extension":
            text = text.lower().removeprefix(".")
        return text

    if kind is AttributeKind.TIMESTAMP:
        if not isinstance(value, str):
            raise TranslationError(f"Expected a date string for '{attribute.name}', got {value!r}")
        return parse_timestamp(value)

    if kind is AttributeKind.PERMISSIONS:
        if isinstance(value, float):
            raise TranslationError(f"Invalid permissions {value!r}")
        return parse_permissions(value)

    raise TranslationError(f"Unsupported attribute kind: {kind}")


def _literal_value(node: Any, context: str) -> Any:
    """Unwrap a literal node, folding unary minus on numbers."""
    if isinstance(node, Literal):
        return node.value
    if (
        isinstance(node, UnaryOp)
        and node.operator == "-"
        and isinstance(node.operand, Literal)
        and isinstance(node.operand.value, (int, float))
        and not isinstance(node.operand.value, bool)
    ):
        return -node.operand.value
    raise TranslationError(f"{context} requires a literal value, got {describe(node)}")


def _is_literal(node: Any) -> bool:
    return isinstance(node, Literal) or (isinstance(node, UnaryOp) and node.operator == "-")


def _column(node: Any, context: str) -> Attribute:
    if not isinstance(node, Identifier):
        raise TranslationError(f"{context} requires a column name, got {describe(node)}")
    return resolve_attribute(node.name)


def _pattern(node: Any, context: str) -> str:
    value = _literal_value(node, context)
    if not isinstance(value, str):
        raise TranslationError(f"{context} requires a string pattern, got {value!r}")
    return value


# --- WHERE ---


def _comparison(left: Any, op: Operator, right: Any) -> Comparison:
    for side in (left, right):
        if not isinstance(side, Identifier) and not _is_literal(side):
            raise TranslationError(f"Unsupported construct in comparison: {describe(side)}")

    if isinstance(left, Identifier) and isinstance(right, Identifier):
        raise TranslationError(f"Column-to-column comparisons are not supported ({left.name} {op.value} {right.name})")
    if isinstance(left, Identifier):
        attribute = resolve_attribute(left.name)
        value = _literal_value(right, f"Comparison with '{attribute.name}'")
    elif isinstance(right, Identifier):
        attribute = resolve_attribute(right.name)
        value = _literal_value(left, f"Comparison with '{attribute.name}'")
        op = op.mirrored
    else:
        raise TranslationError("A comparison must involve a column")

    if op.is_ordering and not attribute.kind.is_ordered:
        raise TranslationError(f"Operator '{op.value}' cannot be used with boolean column '{attribute.name}'")
    return Comparison(attribute, op, coerce_literal(attribute, value))


def _between(node: Between) -> Expr:
    attribute = _column(node.operand, "BETWEEN")
    if not attribute.kind.is_ordered:
        raise TranslationError(f"BETWEEN cannot be used with boolean column '{attribute.name}'")
    low = coerce_literal(attribute, _literal_value(node.low, "BETWEEN"))
    high = coerce_literal(attribute, _literal_value(node.high, "BETWEEN"))
    expr: Expr = And(Comparison(attribute, Operator.GE, low), Comparison(attribute, Operator.LE, high))
    return Not(expr) if node.negated else expr


def _in_list(node: InList) -> Expr:
    attribute = _column(node.operand, "IN")
    expr: Expr | None = None
    for item in node.items:
        term = Comparison(attribute, Operator.EQ, coerce_literal(attribute, _literal_value(item, "IN")))
        expr = term if expr is None else Or(expr, term)
    assert expr is not None  # the grammar requires at least one item
    return Not(expr) if node.negated else expr


def translate_predicate(node: Any) -> Expr:
    """Translate a WHERE expression into a predicate tree.

    Raises:
        TranslationError: If the expression uses anything outside the
            supported comparison, pattern and boolean forms.
    """
    if isinstance(node, BinaryOp):
        if node.operator == "and":
            return And(translate_predicate(node.left), translate_predicate(node.right))
        if node.operator == "or":
            return Or(translate_predicate(node.left), translate_predicate(node.right))
        op = _COMPARISON_OPERATORS.get(node.operator)
        if op is not None:
            return _comparison(node.left, op, node.right)
    elif isinstance(node, UnaryOp) and node.operator == "not":
        return Not(translate_predicate(node.operand))
    elif isinstance(node, Identifier):
        attribute = resolve_attribute(node.name)
        if attribute.kind is not AttributeKind.BOOLEAN:
            raise TranslationError(f"Column '{attribute.name}' is not boolean; compare it with a value")
        return Comparison(attribute, Operator.EQ, True)
    elif isinstance(node, LikeOp):
        expr: Expr = Like(_column(node.operand, "LIKE"), _pattern(node.pattern, "LIKE"))
        return Not(expr) if node.negated else expr
    elif isinstance(node, RegexpOp):
        expr = Regexp(_column(node.operand, "REGEXP"), _pattern(node.pattern, "REGEXP"))
        return Not(expr) if node.negated else expr
    elif isinstance(node, FunctionCall) and node.name.lower() == "regexp":
        if len(node.args) != 2:
            raise TranslationError(f"REGEXP() takes a column and a pattern, got {len(node.args)} arguments")
        return Regexp(_column(node.args[0], "REGEXP()"), _pattern(node.args[1], "REGEXP()"))
    elif isinstance(node, Between):
        return _between(node)
    elif isinstance(node, InList):
        return _in_list(node)
    elif isinstance(node, (InSubquery, Subquery)):
        raise TranslationError("Subqueries are not supported")
    raise TranslationError(f"Unsupported construct in WHERE: {describe(node)}")


# --- SET / ORDER BY / GROUP BY / select list ---


def _assigned_value(attribute: Attribute, raw: Any) -> Any:
    if attribute.name == "owner":
        owner = str(raw)
        try:
            pwd.getpwnam(owner)
        except KeyError:
            raise TranslationError(f"Unknown user '{owner}'")
        return owner
    value = coerce_literal(attribute, raw)
    if isinstance(value, TimestampLiteral):
        try:
            value.value.timestamp()
        except (ValueError, OverflowError, OSError) as e:
            raise TranslationError(f"Cannot set {attribute.name} to {raw!r}: {e}") from e
        return value.value
    return value


def translate_assignments(assignments: list[Assignment]) -> dict[str, Any]:
    """Translate a SET clause into attribute name -> typed value."""
    result: dict[str, Any] = {}
    for assignment in assignments:
        attribute = resolve_attribute(assignment.column)
        if not attribute.assignable:
            valid = ", ".join(sorted(name for name, a in ATTRIBUTES.items() if a.assignable))
            raise TranslationError(f"Column '{attribute.name}' cannot be changed. Assignable columns: {valid}")
        if attribute.name in result:
            raise TranslationError(f"Column '{attribute.name}' is assigned more than once")
        raw = _literal_value(assignment.value, f"SET {attribute.name}")
        result[attribute.name] = _assigned_value(attribute, raw)
    return result


def translate_order(items: list[OrderItem]) -> list[OrderKey]:
    keys = []
    for item in items:
        if not isinstance(item.expr, Identifier):
            raise TranslationError(f"ORDER BY supports column names only, got {describe(item.expr)}")
        keys.append(OrderKey(resolve_attribute(item.expr.name), item.descending))
    return keys


def translate_group(exprs: list[Any]) -> GroupKey | None:
    """Translate a GROUP BY clause into a group key.

    Accepts one of ``folder``, ``all_folders``, ``extension``,
    ``permissions``, ``executable`` or a name-matching call such as
    ``name_contains('cat')``.
    """
    if not exprs:
        return None
    if len(exprs) > 1:
        raise TranslationError("GROUP BY takes a single key")
    expr = exprs[0]
    if isinstance(expr, Identifier) and expr.name.lower() in _GROUP_COLUMNS:
        return GroupKey(_GROUP_COLUMNS[expr.name.lower()])
    if isinstance(expr, FunctionCall) and expr.name.lower() in _GROUP_FUNCTIONS:
        name = expr.name.lower()
        if len(expr.args) != 1:
            raise TranslationError(f"{name}() takes exactly one pattern")
        pattern = _pattern(expr.args[0], f"{name}()")
        if not pattern:
            raise TranslationError(f"{name}() requires a non-empty pattern")
        return GroupKey(_GROUP_FUNCTIONS[name], pattern)
    valid = ", ".join(list(_GROUP_COLUMNS) + [f"{name}('...')" for name in _GROUP_FUNCTIONS])
    raise TranslationError(f"Cannot group by {describe(expr)}. Valid group keys: {valid}")


def translate_columns(columns: list[Any] | None) -> list[Attribute] | None:
    if columns is None:
        return None
    result = []
    for column in columns:
        if isinstance(column, FunctionCall):
            raise TranslationError(f"Aggregate and scalar functions are not supported: {describe(column)}")
        result.append(_column(column, "SELECT"))
    return result


def translate(statement: Statement, config: EngineConfig | None = None) -> Query:
    """Translate a parsed statement into a Query.

    Raises:
        TranslationError: If the statement cannot be run.
    """
    config = config or EngineConfig()
    root = os.path.expanduser(statement.source)
    predicate = translate_predicate(statement.where) if statement.where is not None else None
    order_by = translate_order(statement.order_by)

    if isinstance(statement, SelectStatement):
        return Query(
            operation=Operation.SELECT,
            root=root,
            recursive=statement.recursive,
            predicate=predicate,
            order_by=order_by,
            group_by=translate_group(statement.group_by),
            columns=translate_columns(statement.columns),
            limit=statement.limit,
            offset=statement.offset,
            include_hidden=config.show_hidden,
        )
    elif isinstance(statement, UpdateStatement):
        return Query(
            operation=Operation.UPDATE,
            root=root,
            recursive=statement.recursive,
            predicate=predicate,
            order_by=order_by,
            assignments=translate_assignments(statement.assignments),
            limit=statement.limit,
            offset=statement.offset,
            include_hidden=config.show_hidden,
        )
    raise TranslationError(f"Unsupported statement: {type(statement).__name__}")
