"""Parsing module for the fmql SQL dialect."""

from fmql.parsing.sql_lexer import SqlLexer
from fmql.parsing.sql_parser import (
    SelectStatement,
    SqlParser,
    Statement,
    UpdateStatement,
)

__all__ = [
    "SelectStatement",
    "SqlLexer",
    "SqlParser",
    "Statement",
    "UpdateStatement",
]
