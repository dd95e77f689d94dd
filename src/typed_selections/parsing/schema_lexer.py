"""Lexer for the entity schema DSL.

Newlines only matter for error positions, and ``#`` comments run to the end
of the line. Keywords can be used as field names by quoting them in
backticks.
"""

import ply.lex as lex

KEYWORDS = ("define", "as", "resource", "map", "union", "on", "calc")

# Single-pattern tokens; ply tries longer patterns first, so ARROW is safe
PUNCTUATION = {
    "ARROW": r"->",
    "COLON": r":",
    "COMMA": r",",
    "QUESTION": r"\?",
    "LBRACE": r"\{",
    "RBRACE": r"\}",
    "LBRACKET": r"\[",
    "RBRACKET": r"\]",
    "LPAREN": r"\(",
    "RPAREN": r"\)",
}


class SchemaLexer:
    """Tokenizes resource, map, union and alias definitions."""

    reserved = {word: word.upper() for word in KEYWORDS}
    tokens = ["IDENTIFIER", *PUNCTUATION, *reserved.values()]

    t_ignore = " \t\r"
    t_ignore_COMMENT = r"\#[^\n]*"

    def __init__(self) -> None:
        self.lexer: lex.Lexer = None  # type: ignore
        for name, pattern in PUNCTUATION.items():
            setattr(self, f"t_{name}", pattern)

    def t_QUOTED(self, t: lex.LexToken) -> lex.LexToken:
        r"`[^`\n]+`"
        t.type = "IDENTIFIER"
        t.value = t.value.strip("`")
        return t

    def t_IDENTIFIER(self, t: lex.LexToken) -> lex.LexToken:
        r"[A-Za-z_]\w*"
        t.type = self.reserved.get(t.value, "IDENTIFIER")
        return t

    def t_newline(self, t: lex.LexToken) -> None:
        r"\n+"
        t.lexer.lineno += t.value.count("\n")

    def t_error(self, t: lex.LexToken) -> None:
        raise SyntaxError(
            f"Illegal character {t.value[0]!r} at line {t.lineno}, column {self.column(t.lexpos)}"
        )

    def build(self, **kwargs) -> None:  # type: ignore
        """Build the ply lexer from the rules on this instance."""
        self.lexer = lex.lex(module=self, **kwargs)

    def column(self, lexpos: int) -> int:
        """1-based column of an input offset within its line."""
        line_start = self.lexer.lexdata.rfind("\n", 0, lexpos) + 1
        return lexpos - line_start + 1

    def reset(self, data: str) -> None:
        """Start lexing ``data`` from line 1."""
        self.lexer.lineno = 1
        self.lexer.input(data)

    def tokenize(self, data: str) -> list[lex.LexToken]:
        """Return every token of ``data``."""
        self.reset(data)
        return list(iter(self.lexer.token, None))
