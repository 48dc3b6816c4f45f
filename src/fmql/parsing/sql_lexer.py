"""Lexer for the fmql SQL dialect."""

import ply.lex as lex

from fmql.errors import QuerySyntaxError


class SqlLexer:
    """Lexer for tokenizing fmql queries."""

    # Reserved keywords
    reserved = {
        "select": "SELECT",
        "update": "UPDATE",
        "set": "SET",
        "from": "FROM",
        "where": "WHERE",
        "with": "WITH",
        "recursive": "RECURSIVE",
        "group": "GROUP",
        "order": "ORDER",
        "by": "BY",
        "asc": "ASC",
        "desc": "DESC",
        "limit": "LIMIT",
        "offset": "OFFSET",
        "and": "AND",
        "or": "OR",
        "not": "NOT",
        "like": "LIKE",
        "regexp": "REGEXP",
        "between": "BETWEEN",
        "in": "IN",
        "is": "IS",
        "null": "NULL",
        "true": "TRUE",
        "false": "FALSE",
    }

    # Token list
    tokens = [
        "IDENTIFIER",
        "INTEGER",
        "FLOAT",
        "STRING",
        "PATH",
        "STAR",
        "COMMA",
        "LPAREN",
        "RPAREN",
        "EQ",
        "NEQ",
        "LT",
        "LTE",
        "GT",
        "GTE",
        "PLUS",
        "MINUS",
        "SLASH",
        "PERCENT",
        "CONCAT",
        "SEMICOLON",
    ] + list(reserved.values())

    # Lexer states: path state for the target after FROM / UPDATE
    states = (("path", "exclusive"),)

    # Simple tokens (INITIAL state)
    t_STAR = r"\*"
    t_COMMA = r","
    t_LPAREN = r"\("
    t_RPAREN = r"\)"
    t_EQ = r"="
    t_NEQ = r"!=|<>"
    t_LTE = r"<="
    t_LT = r"<"
    t_GTE = r">="
    t_GT = r">"
    t_CONCAT = r"\|\|"
    t_PLUS = r"\+"
    t_MINUS = r"-"
    t_SLASH = r"/"
    t_PERCENT = r"%"
    t_SEMICOLON = r";"

    t_ignore = " \t\r"

    def __init__(self) -> None:
        self.lexer: lex.Lexer = None  # type: ignore

    def t_COMMENT(self, t: lex.LexToken) -> None:
        r"--[^\n]*"
        pass  # Ignore comments

    def t_FLOAT(self, t: lex.LexToken) -> lex.LexToken:
        r"\d+\.\d+"
        t.value = float(t.value)
        return t

    def t_INTEGER(self, t: lex.LexToken) -> lex.LexToken:
        r"\d+"
        t.value = int(t.value)
        return t

    def t_STRING(self, t: lex.LexToken) -> lex.LexToken:
        r"'(?:[^']|'')*'|\"[^\"]*\""
        # Backslashes are kept as written so regex escapes survive
        t.value = _unquote(t.value)
        return t

    def t_BACKTICK_IDENTIFIER(self, t: lex.LexToken) -> lex.LexToken:
        r"`[^`]+`"
        # Strip backticks; always an IDENTIFIER, never a keyword
        t.value = t.value[1:-1]
        t.type = "IDENTIFIER"
        return t

    def t_IDENTIFIER(self, t: lex.LexToken) -> lex.LexToken:
        r"[a-zA-Z_][a-zA-Z0-9_]*"
        # Check if it's a reserved word (case-insensitive)
        t.type = self.reserved.get(t.value.lower(), "IDENTIFIER")
        if t.type in ("FROM", "UPDATE"):
            t.lexer.begin("path")
        return t

    def t_NEWLINE(self, t: lex.LexToken) -> None:
        r"\n+"
        t.lexer.lineno += len(t.value)

    def t_error(self, t: lex.LexToken) -> None:
        raise QuerySyntaxError(f"Illegal character '{t.value[0]}' at position {t.lexpos}")

    # --- Exclusive path state tokens ---

    t_path_ignore = " \t\r\n"

    def t_path_STRING(self, t: lex.LexToken) -> lex.LexToken:
        r"'(?:[^']|'')*'|\"[^\"]*\""
        t.value = _unquote(t.value)
        t.lexer.begin("INITIAL")
        return t

    def t_path_PATH(self, t: lex.LexToken) -> lex.LexToken:
        r"[^\s;,()'\"]+"
        t.lexer.begin("INITIAL")
        return t

    def t_path_error(self, t: lex.LexToken) -> None:
        t.lexer.begin("INITIAL")
        raise QuerySyntaxError(f"Expected a path, got '{t.value[0]}' at position {t.lexpos}")

    # --- Lexer methods ---

    def build(self, **kwargs) -> None:  # type: ignore
        """Build the lexer."""
        self.lexer = lex.lex(module=self, **kwargs)

    def reset(self) -> None:
        """Return to the initial state, discarding a half-read path."""
        self.lexer.begin("INITIAL")
        self.lexer.lineno = 1

    def input(self, data: str) -> None:
        """Set the input string to tokenize."""
        self.reset()
        self.lexer.input(data)

    def token(self) -> lex.LexToken | None:
        """Return the next token."""
        return self.lexer.token()

    def tokenize(self, data: str) -> list[lex.LexToken]:
        """Tokenize the input and return all tokens."""
        self.input(data)
        tokens = []
        while True:
            tok = self.token()
            if tok is None:
                break
            tokens.append(tok)
        return tokens


def _unquote(raw: str) -> str:
    if raw[0] == "'":
        return raw[1:-1].replace("''", "'")
    return raw[1:-1]
