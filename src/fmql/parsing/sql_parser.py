"""Parser for the fmql SQL dialect.

The grammar is a general SQL expression grammar: it accepts arithmetic,
function calls, subqueries and IS NULL even though the engine runs none of
them. Rejecting those is the translator's job, where the error can name the
construct instead of pointing at a token.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import ply.yacc as yacc

from fmql.errors import QuerySyntaxError
from fmql.parsing.sql_lexer import SqlLexer


@dataclass
class Identifier:
    """A column reference."""

    name: str


@dataclass
class Literal:
    """A string, number, boolean or NULL literal."""

    value: Any  # str, int, float, bool or None


@dataclass
class Star:
    """``*`` used as a value, e.g. ``COUNT(*)``."""

    pass


@dataclass
class BinaryOp:
    """A binary operator: and, or, comparison or arithmetic."""

    left: Any
    operator: str  # and, or, =, !=, <, <=, >, >=, +, -, *, /, %, ||
    right: Any


@dataclass
class UnaryOp:
    """A prefix operator: not or unary minus."""

    operator: str  # not, -
    operand: Any


@dataclass
class LikeOp:
    """``expr [NOT] LIKE pattern``."""

    operand: Any
    pattern: Any
    negated: bool = False


@dataclass
class RegexpOp:
    """``expr [NOT] REGEXP pattern``."""

    operand: Any
    pattern: Any
    negated: bool = False


@dataclass
class Between:
    """``expr [NOT] BETWEEN low AND high``."""

    operand: Any
    low: Any
    high: Any
    negated: bool = False


@dataclass
class InList:
    """``expr [NOT] IN (value, ...)``."""

    operand: Any
    items: list[Any]
    negated: bool = False


@dataclass
class InSubquery:
    """``expr [NOT] IN (SELECT ...)``."""

    operand: Any
    query: SelectStatement
    negated: bool = False


@dataclass
class IsNull:
    """``expr IS [NOT] NULL``."""

    operand: Any
    negated: bool = False


@dataclass
class FunctionCall:
    """A function call like ``REGEXP(name, '^a')`` or ``name_contains('x')``."""

    name: str
    args: list[Any] = field(default_factory=list)


@dataclass
class Subquery:
    """A parenthesized SELECT used as a value."""

    query: SelectStatement


@dataclass
class OrderItem:
    """An ORDER BY item."""

    expr: Any
    descending: bool = False


@dataclass
class Assignment:
    """A ``column = value`` pair from a SET clause."""

    column: str
    value: Any


@dataclass
class SelectStatement:
    """A SELECT statement."""

    source: str
    columns: list[Any] | None = None  # None for *
    recursive: bool = False
    where: Any = None
    group_by: list[Any] = field(default_factory=list)
    order_by: list[OrderItem] = field(default_factory=list)
    limit: int | None = None
    offset: int = 0


@dataclass
class UpdateStatement:
    """An UPDATE statement."""

    source: str
    assignments: list[Assignment] = field(default_factory=list)
    recursive: bool = False
    where: Any = None
    order_by: list[OrderItem] = field(default_factory=list)
    limit: int | None = None
    offset: int = 0


Statement = SelectStatement | UpdateStatement


class SqlParser:
    """Parser for fmql queries."""

    tokens = SqlLexer.tokens

    # Operator precedence
    precedence = (
        ("left", "OR"),
        ("left", "AND"),
        ("right", "NOT"),
        ("left", "PLUS", "MINUS", "CONCAT"),
        ("left", "STAR", "SLASH", "PERCENT"),
        ("right", "UMINUS"),
    )

    def __init__(self) -> None:
        self.lexer = SqlLexer()
        self.lexer.build()
        self.parser: yacc.LRParser = None  # type: ignore

    def p_statement(self, p: yacc.YaccProduction) -> None:
        """statement : query SEMICOLON
                     | query"""
        p[0] = p[1]

    def p_query(self, p: yacc.YaccProduction) -> None:
        """query : select_stmt
                 | update_stmt"""
        p[0] = p[1]

    def p_select_stmt(self, p: yacc.YaccProduction) -> None:
        """select_stmt : recursive_clause SELECT select_list FROM source where_clause group_clause order_clause limit_clause"""
        limit, offset = p[9]
        p[0] = SelectStatement(
            source=p[5],
            columns=p[3],
            recursive=p[1],
            where=p[6],
            group_by=p[7],
            order_by=p[8],
            limit=limit,
            offset=offset,
        )

    def p_update_stmt(self, p: yacc.YaccProduction) -> None:
        """update_stmt : recursive_clause UPDATE source set_clause where_clause order_clause limit_clause"""
        limit, offset = p[7]
        p[0] = UpdateStatement(
            source=p[3],
            assignments=p[4],
            recursive=p[1],
            where=p[5],
            order_by=p[6],
            limit=limit,
            offset=offset,
        )

    def p_recursive_clause_empty(self, p: yacc.YaccProduction) -> None:
        """recursive_clause : """
        p[0] = False

    def p_recursive_clause(self, p: yacc.YaccProduction) -> None:
        """recursive_clause : WITH RECURSIVE"""
        p[0] = True

    def p_source(self, p: yacc.YaccProduction) -> None:
        """source : PATH
                  | STRING"""
        p[0] = p[1]

    def p_select_list_star(self, p: yacc.YaccProduction) -> None:
        """select_list : STAR"""
        p[0] = None

    def p_select_list_exprs(self, p: yacc.YaccProduction) -> None:
        """select_list : expr_list"""
        p[0] = p[1]

    def p_set_clause_empty(self, p: yacc.YaccProduction) -> None:
        """set_clause : """
        p[0] = []

    def p_set_clause(self, p: yacc.YaccProduction) -> None:
        """set_clause : SET assignment_list"""
        p[0] = p[2]

    def p_assignment_list_single(self, p: yacc.YaccProduction) -> None:
        """assignment_list : assignment"""
        p[0] = [p[1]]

    def p_assignment_list_multiple(self, p: yacc.YaccProduction) -> None:
        """assignment_list : assignment_list COMMA assignment"""
        p[0] = p[1] + [p[3]]

    def p_assignment(self, p: yacc.YaccProduction) -> None:
        """assignment : IDENTIFIER EQ expr"""
        p[0] = Assignment(column=p[1], value=p[3])

    def p_where_clause_empty(self, p: yacc.YaccProduction) -> None:
        """where_clause : """
        p[0] = None

    def p_where_clause(self, p: yacc.YaccProduction) -> None:
        """where_clause : WHERE expr"""
        p[0] = p[2]

    def p_group_clause_empty(self, p: yacc.YaccProduction) -> None:
        """group_clause : """
        p[0] = []

    def p_group_clause(self, p: yacc.YaccProduction) -> None:
        """group_clause : GROUP BY expr_list"""
        p[0] = p[3]

    def p_order_clause_empty(self, p: yacc.YaccProduction) -> None:
        """order_clause : """
        p[0] = []

    def p_order_clause(self, p: yacc.YaccProduction) -> None:
        """order_clause : ORDER BY order_list"""
        p[0] = p[3]

    def p_order_list_single(self, p: yacc.YaccProduction) -> None:
        """order_list : order_item"""
        p[0] = [p[1]]

    def p_order_list_multiple(self, p: yacc.YaccProduction) -> None:
        """order_list : order_list COMMA order_item"""
        p[0] = p[1] + [p[3]]

    def p_order_item(self, p: yacc.YaccProduction) -> None:
        """order_item : expr
                      | expr ASC
                      | expr DESC"""
        descending = len(p) == 3 and p[2].lower() == "desc"
        p[0] = OrderItem(expr=p[1], descending=descending)

    def p_limit_clause_empty(self, p: yacc.YaccProduction) -> None:
        """limit_clause : """
        p[0] = (None, 0)

    def p_limit_clause(self, p: yacc.YaccProduction) -> None:
        """limit_clause : LIMIT INTEGER
                        | LIMIT INTEGER OFFSET INTEGER"""
        offset = p[4] if len(p) == 5 else 0
        p[0] = (p[2], offset)

    def p_expr_list_single(self, p: yacc.YaccProduction) -> None:
        """expr_list : expr"""
        p[0] = [p[1]]

    def p_expr_list_multiple(self, p: yacc.YaccProduction) -> None:
        """expr_list : expr_list COMMA expr"""
        p[0] = p[1] + [p[3]]

    # --- Boolean level ---

    def p_expr_and_or(self, p: yacc.YaccProduction) -> None:
        """expr : expr AND expr
                | expr OR expr"""
        p[0] = BinaryOp(left=p[1], operator=p[2].lower(), right=p[3])

    def p_expr_not(self, p: yacc.YaccProduction) -> None:
        """expr : NOT expr"""
        p[0] = UnaryOp(operator="not", operand=p[2])

    def p_expr_comparison(self, p: yacc.YaccProduction) -> None:
        """expr : operand EQ operand
                | operand NEQ operand
                | operand LT operand
                | operand LTE operand
                | operand GT operand
                | operand GTE operand"""
        op = "!=" if p[2] == "<>" else p[2]
        p[0] = BinaryOp(left=p[1], operator=op, right=p[3])

    def p_expr_like(self, p: yacc.YaccProduction) -> None:
        """expr : operand LIKE operand
                | operand NOT LIKE operand"""
        if len(p) == 5:
            p[0] = LikeOp(operand=p[1], pattern=p[4], negated=True)
        else:
            p[0] = LikeOp(operand=p[1], pattern=p[3])

    def p_expr_regexp(self, p: yacc.YaccProduction) -> None:
        """expr : operand REGEXP operand
                | operand NOT REGEXP operand"""
        if len(p) == 5:
            p[0] = RegexpOp(operand=p[1], pattern=p[4], negated=True)
        else:
            p[0] = RegexpOp(operand=p[1], pattern=p[3])

    def p_expr_between(self, p: yacc.YaccProduction) -> None:
        """expr : operand BETWEEN operand AND operand
                | operand NOT BETWEEN operand AND operand"""
        if len(p) == 7:
            p[0] = Between(operand=p[1], low=p[4], high=p[6], negated=True)
        else:
            p[0] = Between(operand=p[1], low=p[3], high=p[5])

    def p_expr_in_list(self, p: yacc.YaccProduction) -> None:
        """expr : operand IN LPAREN expr_list RPAREN
                | operand NOT IN LPAREN expr_list RPAREN"""
        if len(p) == 7:
            p[0] = InList(operand=p[1], items=p[5], negated=True)
        else:
            p[0] = InList(operand=p[1], items=p[4])

    def p_expr_in_subquery(self, p: yacc.YaccProduction) -> None:
        """expr : operand IN LPAREN select_stmt RPAREN
                | operand NOT IN LPAREN select_stmt RPAREN"""
        if len(p) == 7:
            p[0] = InSubquery(operand=p[1], query=p[5], negated=True)
        else:
            p[0] = InSubquery(operand=p[1], query=p[4])

    def p_expr_is_null(self, p: yacc.YaccProduction) -> None:
        """expr : operand IS NULL
                | operand IS NOT NULL"""
        p[0] = IsNull(operand=p[1], negated=len(p) == 5)

    def p_expr_operand(self, p: yacc.YaccProduction) -> None:
        """expr : operand"""
        p[0] = p[1]

    # --- Value level ---

    def p_operand_binary(self, p: yacc.YaccProduction) -> None:
        """operand : operand PLUS operand
                   | operand MINUS operand
                   | operand STAR operand
                   | operand SLASH operand
                   | operand PERCENT operand
                   | operand CONCAT operand"""
        p[0] = BinaryOp(left=p[1], operator=p[2], right=p[3])

    def p_operand_negate(self, p: yacc.YaccProduction) -> None:
        """operand : MINUS operand %prec UMINUS"""
        p[0] = UnaryOp(operator="-", operand=p[2])

    def p_operand_primary(self, p: yacc.YaccProduction) -> None:
        """operand : primary"""
        p[0] = p[1]

    def p_primary_identifier(self, p: yacc.YaccProduction) -> None:
        """primary : IDENTIFIER"""
        p[0] = Identifier(name=p[1])

    def p_primary_literal(self, p: yacc.YaccProduction) -> None:
        """primary : STRING
                   | INTEGER
                   | FLOAT"""
        p[0] = Literal(value=p[1])

    def p_primary_boolean(self, p: yacc.YaccProduction) -> None:
        """primary : TRUE
                   | FALSE"""
        p[0] = Literal(value=p[1].lower() == "true")

    def p_primary_null(self, p: yacc.YaccProduction) -> None:
        """primary : NULL"""
        p[0] = Literal(value=None)

    def p_primary_function(self, p: yacc.YaccProduction) -> None:
        """primary : IDENTIFIER LPAREN RPAREN
                   | IDENTIFIER LPAREN expr_list RPAREN
                   | IDENTIFIER LPAREN STAR RPAREN"""
        if len(p) == 4:
            args = []
        elif p[3] == "*":
            args = [Star()]
        else:
            args = p[3]
        p[0] = FunctionCall(name=p[1], args=args)

    def p_primary_regexp_function(self, p: yacc.YaccProduction) -> None:
        """primary : REGEXP LPAREN expr_list RPAREN"""
        p[0] = FunctionCall(name="regexp", args=p[3])

    def p_primary_paren(self, p: yacc.YaccProduction) -> None:
        """primary : LPAREN expr RPAREN"""
        p[0] = p[2]

    def p_primary_subquery(self, p: yacc.YaccProduction) -> None:
        """primary : LPAREN select_stmt RPAREN"""
        p[0] = Subquery(query=p[2])

    def p_error(self, p: yacc.YaccProduction) -> None:
        if p:
            raise QuerySyntaxError(f"Syntax error at '{p.value}' (position {p.lexpos})")
        else:
            raise QuerySyntaxError("Syntax error at end of input")

    def build(self, **kwargs: Any) -> None:
        """Build the parser."""
        self.parser = yacc.yacc(module=self, start="statement", **kwargs)

    def parse(self, data: str) -> Statement:
        """Parse a query string."""
        if self.parser is None:
            self.build(debug=False, write_tables=False)

        self.lexer.reset()
        return self.parser.parse(data, lexer=self.lexer.lexer)
