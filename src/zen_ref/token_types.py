"""
Token Types for the Zen line grammar

Shared between the lexer, the parser adapter and the REPL highlighter.
"""

from typing import Any
from dataclasses import dataclass
from enum import Enum, auto


class TT(Enum):
    """Token Types - mirrors grammar terminals"""

    # Literals
    NUMBER = auto()
    STRING = auto()
    IDENT = auto()
    TRUE = auto()
    FALSE = auto()

    # Keywords
    PRINT = auto()
    IF = auto()
    ELIF = auto()
    ELSE = auto()
    FN = auto()
    REPEAT = auto()
    BREAK = auto()
    CONTINUE = auto()

    # Logical
    AND = auto()
    OR = auto()
    NOT = auto()

    # Arithmetic
    PLUS = auto()
    MINUS = auto()
    STAR = auto()
    SLASH = auto()
    MOD = auto()

    # Comparison
    EQ = auto()
    NEQ = auto()
    LT = auto()
    LTE = auto()
    GT = auto()
    GTE = auto()

    # Assignment
    ASSIGN = auto()  # =
    PLUSEQ = auto()
    MINUSEQ = auto()
    STAREQ = auto()
    SLASHEQ = auto()

    # Punctuation
    LPAR = auto()
    RPAR = auto()
    COMMA = auto()
    COLON = auto()
    SEMI = auto()

    # Layout
    INDENT = auto()
    COMMENT = auto()
    EOF = auto()


# Tokens the line grammar never needs to see in the parse tree.
LAYOUT = frozenset({TT.INDENT, TT.COMMENT, TT.EOF})


@dataclass
class Tok:
    """Token with position info"""

    type: TT
    value: Any
    line: int = 0
    column: int = 0

    @property
    def end_column(self) -> int:
        return self.column + len(str(self.value or ''))

    def __repr__(self):
        return f"Tok({self.type.name}, {self.value!r}, {self.line}:{self.column})"
