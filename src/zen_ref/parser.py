"""
Line parser for Zen

Turns the significant tokens of one logical statement into a ParsedLine:
the instruction node plus whether it opens a nested block. The grammar is
lark LALR over the tokens zen_ref.lexer already produced; statements become
instruction dataclasses while expression subtrees stay lark trees for the
evaluator.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Iterator, List, Optional

from lark import Lark, Token, Transformer, UnexpectedInput
from lark.lexer import Lexer as LarkLexer

from .token_types import TT, Tok
from .types import (
    AssignOp,
    Break,
    Continue,
    FunctionCall,
    FunctionDecl,
    Loop,
    ParsedLine,
    Print,
    RawElif,
    RawElse,
    RawIf,
    VariableAssignment,
)

GRAMMAR_PATH = Path(__file__).resolve().with_name("grammar.lark")

# Keyword and punctuation terminals are renamed with a leading underscore so
# lark drops them from the tree.
_HIDDEN = frozenset({
    TT.PRINT, TT.IF, TT.ELIF, TT.ELSE, TT.FN, TT.REPEAT, TT.BREAK, TT.CONTINUE,
    TT.AND, TT.OR, TT.NOT,
    TT.LPAR, TT.RPAR, TT.COMMA, TT.COLON,
})

_ASSIGN_OPS = {
    'ASSIGN': AssignOp.SET,
    'PLUSEQ': AssignOp.ADD,
    'MINUSEQ': AssignOp.SUB,
    'STAREQ': AssignOp.MUL,
    'SLASHEQ': AssignOp.DIV,
}


class ParseError(Exception):
    """Parse error with position info"""
    def __init__(self, message: str, token: Optional[Tok] = None):
        self.message = message
        self.token = token
        self.line = token.line if token else None
        self.column = token.column if token else None
        super().__init__(
            f"{message} at line {token.line}, col {token.column}" if token else message
        )


class _TokStream(LarkLexer):
    """Feeds zen_ref.lexer tokens to lark unchanged apart from the terminal name."""

    def __init__(self, lexer_conf):
        pass

    def lex(self, data: List[Tok]) -> Iterator[Token]:
        for tok in data:
            name = tok.type.name
            if tok.type in _HIDDEN:
                name = "_" + name
            yield Token(name, tok.value, line=tok.line, column=tok.column)


class StatementBuilder(Transformer):
    """Statement trees -> instruction nodes."""

    def print_stmt(self, c):
        return ParsedLine(False, Print(list(c)))

    def assign_stmt(self, c):
        name, op, expr = c
        return ParsedLine(False, VariableAssignment(str(name), expr, _ASSIGN_OPS[op.type]))

    def call_stmt(self, c):
        name, *args = c
        return ParsedLine(False, FunctionCall(str(name), list(args)))

    def break_stmt(self, _c):
        return ParsedLine(False, Break())

    def continue_stmt(self, _c):
        return ParsedLine(False, Continue())

    def repeat_stmt(self, c):
        return ParsedLine(True, Loop(float(c[0])))

    def fn_stmt(self, c):
        name, *params = c
        return ParsedLine(True, FunctionDecl(str(name), [str(p) for p in params]))

    def if_stmt(self, c):
        return ParsedLine(True, RawIf(c[0]))

    def elif_stmt(self, c):
        return ParsedLine(True, RawElif(c[0]))

    def else_stmt(self, _c):
        return ParsedLine(True, RawElse())


@lru_cache(maxsize=1)
def make_parser() -> Lark:
    return Lark(
        GRAMMAR_PATH.read_text(encoding="utf-8"),
        parser="lalr",
        lexer=_TokStream,
        start="start",
        maybe_placeholders=False,
    )


def parse_statement(tokens: List[Tok]) -> ParsedLine:
    """Parse one logical statement (no INDENT/COMMENT/SEMI/EOF tokens)."""
    if not tokens:
        raise ParseError("Empty statement")

    try:
        tree = make_parser().parse(tokens)
    except UnexpectedInput as exc:
        raise _convert_error(exc, tokens) from None

    parsed = StatementBuilder().transform(tree)
    parsed.instruction.line = tokens[0].line

    return parsed


def _convert_error(exc: UnexpectedInput, tokens: List[Tok]) -> ParseError:
    bad = getattr(exc, "token", None)

    if bad is None or bad.type == "$END":
        last = tokens[-1]
        return ParseError("Unexpected end of statement", Tok(TT.EOF, None, last.line, last.end_column))

    for tok in tokens:
        if tok.line == bad.line and tok.column == bad.column:
            return ParseError(f"Unexpected '{tok.value}'", tok)

    return ParseError(f"Unexpected '{bad.value}'")
