"""Tests for the SQL lexer and parser."""

import pytest

from fmql.errors import QuerySyntaxError
from fmql.parsing.sql_lexer import SqlLexer
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
    RegexpOp,
    SelectStatement,
    SqlParser,
    Star,
    Subquery,
    UnaryOp,
    UpdateStatement,
)


@pytest.fixture
def parser():
    p = SqlParser()
    p.build(debug=False, write_tables=False)
    return p


class TestSqlLexer:
    """Tests for the SQL lexer."""

    def test_tokenize_select(self):
        """Test tokenizing a simple select."""
        lexer = SqlLexer()
        lexer.build()

        tokens = lexer.tokenize("SELECT * FROM ~/docs WHERE size > 10")
        token_types = [t.type for t in tokens]

        assert token_types == ["SELECT", "STAR", "FROM", "PATH", "WHERE", "IDENTIFIER", "GT", "INTEGER"]
        assert tokens[3].value == "~/docs"

    def test_keywords_case_insensitive(self):
        """Test that keywords are recognised in any case."""
        lexer = SqlLexer()
        lexer.build()

        tokens = lexer.tokenize("select name from . Where Size >= 1 order by name desc")
        token_types = [t.type for t in tokens]

        assert token_types == [
            "SELECT", "IDENTIFIER", "FROM", "PATH", "WHERE", "IDENTIFIER", "GTE", "INTEGER",
            "ORDER", "BY", "IDENTIFIER", "DESC",
        ]

    def test_path_with_glob_characters(self):
        """Test that an unquoted path keeps slashes, dots and glob characters."""
        lexer = SqlLexer()
        lexer.build()

        tokens = lexer.tokenize("SELECT * FROM /var/log/*.log;")

        assert tokens[3].type == "PATH"
        assert tokens[3].value == "/var/log/*.log"
        assert tokens[4].type == "SEMICOLON"

    def test_quoted_path(self):
        """Test that a quoted path may contain spaces."""
        lexer = SqlLexer()
        lexer.build()

        tokens = lexer.tokenize("UPDATE '/tmp/my files' SET permissions = '644'")

        assert [t.type for t in tokens[:3]] == ["UPDATE", "STRING", "SET"]
        assert tokens[1].value == "/tmp/my files"

    def test_string_escapes(self):
        """Test doubled single quotes and verbatim backslashes."""
        lexer = SqlLexer()
        lexer.build()

        tokens = lexer.tokenize(r"""SELECT * FROM . WHERE name = 'it''s' OR name REGEXP '\.log$'""")
        strings = [t.value for t in tokens if t.type == "STRING"]

        assert strings == ["it's", r"\.log$"]

    def test_not_equal_spellings(self):
        """Test that != and <> are both NEQ."""
        lexer = SqlLexer()
        lexer.build()

        tokens = lexer.tokenize("SELECT * FROM . WHERE a != 1 AND b <> 2")

        assert [t.value for t in tokens if t.type == "NEQ"] == ["!=", "<>"]

    def test_comments_ignored(self):
        """Test that -- comments are skipped."""
        lexer = SqlLexer()
        lexer.build()

        tokens = lexer.tokenize("SELECT * -- everything\nFROM .")

        assert [t.type for t in tokens] == ["SELECT", "STAR", "FROM", "PATH"]

    def test_numbers(self):
        """Test integer and float literals."""
        lexer = SqlLexer()
        lexer.build()

        tokens = lexer.tokenize("SELECT * FROM . WHERE size > 1.5 AND size < 20")
        numbers = [(t.type, t.value) for t in tokens if t.type in ("INTEGER", "FLOAT")]

        assert numbers == [("FLOAT", 1.5), ("INTEGER", 20)]

    def test_backtick_identifier(self):
        """Test that backtick-quoted names are identifiers, even keywords."""
        lexer = SqlLexer()
        lexer.build()

        tokens = lexer.tokenize("SELECT `order` FROM .")

        assert tokens[1].type == "IDENTIFIER"
        assert tokens[1].value == "order"

    def test_illegal_character(self):
        """Test that an unknown character is a syntax error."""
        lexer = SqlLexer()
        lexer.build()

        with pytest.raises(QuerySyntaxError, match="Illegal character '@'"):
            lexer.tokenize("SELECT @ FROM .")


class TestSelectParsing:
    """Tests for parsing SELECT statements."""

    def test_parse_select_star(self, parser):
        """Test parsing the smallest select."""
        stmt = parser.parse("SELECT * FROM .")

        assert isinstance(stmt, SelectStatement)
        assert stmt.columns is None
        assert stmt.source == "."
        assert stmt.recursive is False
        assert stmt.where is None

    def test_parse_columns(self, parser):
        """Test parsing a select list."""
        stmt = parser.parse("SELECT name, size FROM /tmp")

        assert stmt.columns == [Identifier("name"), Identifier("size")]

    def test_parse_recursive(self, parser):
        """Test parsing WITH RECURSIVE."""
        stmt = parser.parse("WITH RECURSIVE SELECT * FROM ~/src;")

        assert stmt.recursive is True
        assert stmt.source == "~/src"

    def test_parse_where_comparison(self, parser):
        """Test parsing a comparison."""
        stmt = parser.parse("SELECT * FROM . WHERE size > 1024")

        assert stmt.where == BinaryOp(Identifier("size"), ">", Literal(1024))

    def test_not_equal_normalized(self, parser):
        """Test that <> is parsed as !=."""
        stmt = parser.parse("SELECT * FROM . WHERE extension <> 'md'")

        assert stmt.where.operator == "!="

    def test_and_binds_tighter_than_or(self, parser):
        """Test boolean operator precedence."""
        stmt = parser.parse("SELECT * FROM . WHERE a = 1 OR b = 2 AND c = 3")

        assert stmt.where.operator == "or"
        assert stmt.where.right.operator == "and"

    def test_not_binds_tighter_than_and(self, parser):
        """Test that NOT applies to the nearest condition."""
        stmt = parser.parse("SELECT * FROM . WHERE NOT is_hidden AND is_directory")

        assert stmt.where.operator == "and"
        assert stmt.where.left == UnaryOp("not", Identifier("is_hidden"))

    def test_parentheses(self, parser):
        """Test that parentheses override precedence."""
        stmt = parser.parse("SELECT * FROM . WHERE (a = 1 OR b = 2) AND c = 3")

        assert stmt.where.operator == "and"
        assert stmt.where.left.operator == "or"

    def test_like_and_not_like(self, parser):
        """Test parsing LIKE and NOT LIKE."""
        stmt = parser.parse("SELECT * FROM . WHERE name LIKE '%.py' AND name NOT LIKE 'test_%'")

        assert stmt.where.left == LikeOp(Identifier("name"), Literal("%.py"))
        assert stmt.where.right == LikeOp(Identifier("name"), Literal("test_%"), negated=True)

    def test_regexp_operator_and_function(self, parser):
        """Test both REGEXP spellings."""
        stmt = parser.parse("SELECT * FROM . WHERE name REGEXP '^a' OR REGEXP(name, 'b$')")

        assert stmt.where.left == RegexpOp(Identifier("name"), Literal("^a"))
        assert stmt.where.right == FunctionCall("regexp", [Identifier("name"), Literal("b$")])

    def test_between(self, parser):
        """Test parsing BETWEEN, whose AND is not a boolean AND."""
        stmt = parser.parse("SELECT * FROM . WHERE size BETWEEN 10 AND 20 AND is_directory = false")

        assert stmt.where.operator == "and"
        assert stmt.where.left == Between(Identifier("size"), Literal(10), Literal(20))
        assert stmt.where.right == BinaryOp(Identifier("is_directory"), "=", Literal(False))

    def test_in_list(self, parser):
        """Test parsing IN and NOT IN."""
        stmt = parser.parse("SELECT * FROM . WHERE extension NOT IN ('txt', 'md')")

        assert stmt.where == InList(Identifier("extension"), [Literal("txt"), Literal("md")], negated=True)

    def test_subqueries_parse(self, parser):
        """Test that subqueries parse so they can be rejected later."""
        stmt = parser.parse("SELECT * FROM . WHERE name IN (SELECT name FROM /tmp)")
        assert isinstance(stmt.where, InSubquery)

        stmt = parser.parse("SELECT * FROM . WHERE size > (SELECT size FROM /tmp)")
        assert isinstance(stmt.where.right, Subquery)

    def test_is_null(self, parser):
        """Test parsing IS [NOT] NULL."""
        stmt = parser.parse("SELECT * FROM . WHERE owner IS NOT NULL")

        assert stmt.where == IsNull(Identifier("owner"), negated=True)

    def test_arithmetic(self, parser):
        """Test that arithmetic parses with the usual precedence."""
        stmt = parser.parse("SELECT * FROM . WHERE size + 1 * 2 > 10")

        assert stmt.where.left == BinaryOp(Identifier("size"), "+", BinaryOp(Literal(1), "*", Literal(2)))

    def test_negative_number(self, parser):
        """Test unary minus."""
        stmt = parser.parse("SELECT * FROM . WHERE size > -5")

        assert stmt.where.right == UnaryOp("-", Literal(5))

    def test_function_with_star(self, parser):
        """Test COUNT(*) style calls."""
        stmt = parser.parse("SELECT count(*) FROM .")

        assert stmt.columns == [FunctionCall("count", [Star()])]

    def test_group_order_limit(self, parser):
        """Test the trailing clauses together."""
        stmt = parser.parse(
            "SELECT * FROM . GROUP BY name_contains('cat') ORDER BY size DESC, name LIMIT 5 OFFSET 10"
        )

        assert stmt.group_by == [FunctionCall("name_contains", [Literal("cat")])]
        assert [(o.expr, o.descending) for o in stmt.order_by] == [
            (Identifier("size"), True),
            (Identifier("name"), False),
        ]
        assert stmt.limit == 5
        assert stmt.offset == 10

    def test_boolean_and_null_literals(self, parser):
        """Test TRUE, FALSE and NULL."""
        stmt = parser.parse("SELECT * FROM . WHERE a = TRUE AND b = false AND c = NULL")

        assert stmt.where.left.left.right == Literal(True)
        assert stmt.where.left.right.right == Literal(False)
        assert stmt.where.right.right == Literal(None)


class TestUpdateParsing:
    """Tests for parsing UPDATE statements."""

    def test_parse_update(self, parser):
        """Test parsing an update with a where clause."""
        stmt = parser.parse("UPDATE ./scripts SET permissions = '755' WHERE extension = 'sh'")

        assert isinstance(stmt, UpdateStatement)
        assert stmt.source == "./scripts"
        assert stmt.assignments == [Assignment("permissions", Literal("755"))]
        assert stmt.where == BinaryOp(Identifier("extension"), "=", Literal("sh"))

    def test_parse_multiple_assignments(self, parser):
        """Test a SET list."""
        stmt = parser.parse("WITH RECURSIVE UPDATE . SET permissions = 644, modified = '2024-01-01'")

        assert stmt.recursive is True
        assert [a.column for a in stmt.assignments] == ["permissions", "modified"]

    def test_update_without_set_parses(self, parser):
        """Test that a missing SET parses; translation rejects it."""
        stmt = parser.parse("UPDATE . WHERE size > 0")

        assert stmt.assignments == []


class TestSyntaxErrors:
    """Tests for malformed queries."""

    def test_missing_from(self, parser):
        """Test a select without FROM."""
        with pytest.raises(QuerySyntaxError, match="Syntax error"):
            parser.parse("SELECT * WHERE size > 1")

    def test_end_of_input(self, parser):
        """Test a truncated query."""
        with pytest.raises(QuerySyntaxError, match="end of input"):
            parser.parse("SELECT * FROM . WHERE size >")

    def test_missing_path(self, parser):
        """Test a FROM without a path."""
        with pytest.raises(QuerySyntaxError):
            parser.parse("SELECT * FROM")

    def test_parser_recovers_after_error(self, parser):
        """Test that a failed parse does not poison the next one."""
        with pytest.raises(QuerySyntaxError):
            parser.parse("SELECT * FROM")

        stmt = parser.parse("SELECT name FROM /tmp")
        assert stmt.source == "/tmp"

    def test_syntax_error_is_builtin_syntax_error(self, parser):
        """Test the exception hierarchy."""
        with pytest.raises(SyntaxError):
            parser.parse("DELETE FROM .")
