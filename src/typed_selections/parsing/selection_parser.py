"""Parser turning selection text into selection trees.

``id, author { name }, summary(length: 10)`` parses to::

    ["id", {"author": ["name"]}, {"summary": {"args": {"length": 10}}}]

A calculation with arguments and a block becomes
``{"name": {"args": {...}, "fields": [...]}}``.
"""

from __future__ import annotations

from typing import Any

import ply.yacc as yacc

from typed_selections.parsing.selection_lexer import SelectionLexer


class SelectionParser:
    """Parser for the selection text syntax."""

    tokens = SelectionLexer.tokens

    def __init__(self) -> None:
        self.lexer = SelectionLexer()
        self.lexer.build()
        self.parser: yacc.LRParser = None  # type: ignore

    def p_selection(self, p: yacc.YaccProduction) -> None:
        """selection : item_list
                     | item_list COMMA"""
        p[0] = p[1]

    def p_selection_empty(self, p: yacc.YaccProduction) -> None:
        """selection :"""
        p[0] = []

    def p_item_list_single(self, p: yacc.YaccProduction) -> None:
        """item_list : item"""
        p[0] = [p[1]]

    def p_item_list_multiple(self, p: yacc.YaccProduction) -> None:
        """item_list : item_list COMMA item"""
        p[0] = p[1] + [p[3]]

    def p_item_name(self, p: yacc.YaccProduction) -> None:
        """item : IDENTIFIER"""
        p[0] = p[1]

    def p_item_block(self, p: yacc.YaccProduction) -> None:
        """item : IDENTIFIER block"""
        p[0] = {p[1]: p[2]}

    def p_item_call(self, p: yacc.YaccProduction) -> None:
        """item : IDENTIFIER arguments"""
        p[0] = {p[1]: {"args": p[2]}}

    def p_item_call_block(self, p: yacc.YaccProduction) -> None:
        """item : IDENTIFIER arguments block"""
        p[0] = {p[1]: {"args": p[2], "fields": p[3]}}

    def p_block(self, p: yacc.YaccProduction) -> None:
        """block : LBRACE selection RBRACE"""
        p[0] = p[2]

    def p_arguments_empty(self, p: yacc.YaccProduction) -> None:
        """arguments : LPAREN RPAREN"""
        p[0] = {}

    def p_arguments(self, p: yacc.YaccProduction) -> None:
        """arguments : LPAREN arg_list RPAREN
                     | LPAREN arg_list COMMA RPAREN"""
        p[0] = dict(p[2])

    def p_arg_list_single(self, p: yacc.YaccProduction) -> None:
        """arg_list : arg"""
        p[0] = [p[1]]

    def p_arg_list_multiple(self, p: yacc.YaccProduction) -> None:
        """arg_list : arg_list COMMA arg"""
        name = p[3][0]
        if any(existing == name for existing, _ in p[1]):
            raise ValueError(f"Duplicate argument '{name}' (line {p.lineno(2)})")
        p[0] = p[1] + [p[3]]

    def p_arg(self, p: yacc.YaccProduction) -> None:
        """arg : IDENTIFIER COLON value"""
        p[0] = (p[1], p[3])

    def p_value_literal(self, p: yacc.YaccProduction) -> None:
        """value : STRING
                 | INTEGER
                 | FLOAT"""
        p[0] = p[1]

    def p_value_true(self, p: yacc.YaccProduction) -> None:
        """value : TRUE"""
        p[0] = True

    def p_value_false(self, p: yacc.YaccProduction) -> None:
        """value : FALSE"""
        p[0] = False

    def p_value_null(self, p: yacc.YaccProduction) -> None:
        """value : NULL"""
        p[0] = None

    def p_value_empty_list(self, p: yacc.YaccProduction) -> None:
        """value : LBRACKET RBRACKET"""
        p[0] = []

    def p_value_list(self, p: yacc.YaccProduction) -> None:
        """value : LBRACKET value_list RBRACKET
                 | LBRACKET value_list COMMA RBRACKET"""
        p[0] = p[2]

    def p_value_list_single(self, p: yacc.YaccProduction) -> None:
        """value_list : value"""
        p[0] = [p[1]]

    def p_value_list_multiple(self, p: yacc.YaccProduction) -> None:
        """value_list : value_list COMMA value"""
        p[0] = p[1] + [p[3]]

    def p_error(self, p: yacc.YaccProduction) -> None:
        if p:
            raise SyntaxError(f"Syntax error at '{p.value}' (position {p.lexpos})")
        else:
            raise SyntaxError("Syntax error at end of input")

    def build(self, **kwargs: Any) -> None:
        """Build the parser."""
        self.parser = yacc.yacc(module=self, **kwargs)

    def parse(self, data: str) -> list[Any]:
        """Parse selection text into a selection tree."""
        if self.parser is None:
            self.build(debug=False, write_tables=False)
        self.lexer.lexer.lineno = 1
        result = self.parser.parse(data, lexer=self.lexer.lexer)
        return result if result is not None else []
