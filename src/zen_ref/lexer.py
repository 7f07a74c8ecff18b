"""
Lexer for Zen

Tokenizes one physical source line into a token stream.

Features:
- Leading indentation becomes INDENT tokens (one per tab or per
  `indent_width` spaces)
- Whole-line and trailing `#` comments become a single COMMENT token
- `;` is emitted as SEMI so the driver can split logical statements
- Position tracking (line, column)
"""

from typing import List

from .token_types import LAYOUT, TT, Tok

# ============================================================================
# Lexer Implementation
# ============================================================================

class Lexer:
    """
    Zen line lexer.

    Block structure is not tracked here: the lexer only reports how many
    indentation tokens lead the line and leaves nesting to the scope builder.
    """

    KEYWORDS = {
        'print': TT.PRINT,
        'if': TT.IF,
        'elif': TT.ELIF,
        'else': TT.ELSE,
        'fn': TT.FN,
        'repeat': TT.REPEAT,
        'break': TT.BREAK,
        'continue': TT.CONTINUE,
        'and': TT.AND,
        'or': TT.OR,
        'not': TT.NOT,
        'true': TT.TRUE,
        'false': TT.FALSE,
    }

    # Operator mapping: longest matches first to handle prefixes correctly
    OPERATORS = [
        ('==', TT.EQ),
        ('!=', TT.NEQ),
        ('<=', TT.LTE),
        ('>=', TT.GTE),
        ('+=', TT.PLUSEQ),
        ('-=', TT.MINUSEQ),
        ('*=', TT.STAREQ),
        ('/=', TT.SLASHEQ),

        ('+', TT.PLUS),
        ('-', TT.MINUS),
        ('*', TT.STAR),
        ('/', TT.SLASH),
        ('%', TT.MOD),
        ('<', TT.LT),
        ('>', TT.GT),
        ('=', TT.ASSIGN),
        ('(', TT.LPAR),
        (')', TT.RPAR),
        (',', TT.COMMA),
        (':', TT.COLON),
        (';', TT.SEMI),
    ]

    def __init__(self, source: str, line: int = 1, indent_width: int = 4):
        if indent_width < 1:
            raise ValueError(f"indent_width must be >= 1, got {indent_width}")

        self.source = source.rstrip('\r\n')
        self.pos = 0
        self.line = line
        self.column = 1
        self.indent_width = indent_width
        self.tokens: List[Tok] = []

    # ========================================================================
    # Main Tokenization
    # ========================================================================

    def tokenize(self) -> List[Tok]:
        """Tokenize the line, return token list ending in EOF"""
        self.scan_indentation()

        while self.pos < len(self.source):
            self.scan_token()

        self.emit(TT.EOF, None)
        return self.tokens

    def scan_token(self):
        """Scan next token"""
        if self.skip_whitespace():
            return

        if self.peek() == '#':
            self.scan_comment()
            return

        if self.peek() in ('"', "'"):
            self.scan_string()
            return

        if self.peek().isdigit():
            self.scan_number()
            return

        if self.peek().isalpha() or self.peek() == '_':
            self.scan_identifier()
            return

        self.scan_operator()

    # ========================================================================
    # Indentation Handling
    # ========================================================================

    def scan_indentation(self):
        """
        Emit one INDENT per leading tab or per full run of indent_width spaces.
        Blank and comment-only lines carry no indentation.
        """
        end = 0
        while end < len(self.source) and self.source[end] in (' ', '\t'):
            end += 1

        rest = self.source[end:]
        if not rest or rest.startswith('#'):
            self.advance(end)
            return

        while self.peek() in (' ', '\t'):
            if self.peek() == '\t':
                start_col = self.column
                self.emit_at(TT.INDENT, self.advance(), start_col)
                continue

            start_col = self.column
            run = ''
            while self.peek() == ' ' and len(run) < self.indent_width:
                run += self.advance()

            if len(run) < self.indent_width:
                raise LexError(
                    f"Partial indentation: {len(run)} space(s) where {self.indent_width} are expected",
                    self.line,
                    start_col,
                )
            self.emit_at(TT.INDENT, run, start_col)

    # ========================================================================
    # Token Scanners
    # ========================================================================

    def scan_comment(self):
        """Swallow the rest of the line as one COMMENT token"""
        start_col = self.column
        text = self.advance(len(self.source) - self.pos)
        self.emit_at(TT.COMMENT, text, start_col)

    def scan_string(self):
        """Scan string literal: "..." or '...'"""
        start_col = self.column
        quote = self.advance()
        value = quote  # Keep opening quote

        while self.pos < len(self.source) and self.peek() != quote:
            if self.peek() == '\\':
                # Keep escape sequence as-is
                value += self.advance()
                if self.pos < len(self.source):
                    value += self.advance()
            else:
                value += self.advance()

        if self.pos >= len(self.source):
            raise LexError("Unterminated string", self.line, start_col)

        value += self.advance()  # Closing quote
        self.emit_at(TT.STRING, value, start_col)

    def scan_number(self):
        """Scan number literal"""
        start_col = self.column
        value = ''

        while self.peek().isdigit():
            value += self.advance()

        if self.peek() == '.' and self.peek(1).isdigit():
            value += self.advance()  # .
            while self.peek().isdigit():
                value += self.advance()

        # Keep as string, the evaluator converts
        self.emit_at(TT.NUMBER, value, start_col)

    def scan_identifier(self):
        """Scan identifier or keyword"""
        start_col = self.column
        value = ''

        while self.peek().isalnum() or self.peek() == '_':
            value += self.advance()

        token_type = self.KEYWORDS.get(value, TT.IDENT)
        self.emit_at(token_type, value, start_col)

    def scan_operator(self):
        """Scan operators and punctuation"""
        for op_str, op_type in self.OPERATORS:
            if self.source.startswith(op_str, self.pos):
                start_col = self.column
                self.advance(len(op_str))
                self.emit_at(op_type, op_str, start_col)
                return

        ch = self.peek()
        raise LexError(f"Unexpected character '{ch}'", self.line, self.column)

    # ========================================================================
    # Utilities
    # ========================================================================

    def peek(self, offset: int = 0) -> str:
        """Look ahead at character"""
        idx = self.pos + offset
        if idx < len(self.source):
            return self.source[idx]
        return '\0'

    def advance(self, n: int = 1) -> str:
        """Consume n characters and return them as a string"""
        if n < 0:
            raise ValueError(f"advance() requires n >= 0, got {n}")
        result = self.source[self.pos:self.pos + n]
        self.pos += n
        self.column += n
        return result

    def skip_whitespace(self) -> bool:
        """Skip whitespace, return True if any skipped"""
        skipped = False
        while self.peek() in (' ', '\t'):
            self.advance()
            skipped = True
        return skipped

    def emit(self, token_type: TT, value):
        self.emit_at(token_type, value, self.column)

    def emit_at(self, token_type: TT, value, column: int):
        self.tokens.append(Tok(type=token_type, value=value, line=self.line, column=column))


class LexError(Exception):
    """Lexical analysis error"""

    def __init__(self, message: str, line: int = 0, column: int = 0):
        self.message = message
        self.line = line
        self.column = column
        super().__init__(f"{message} at line {line}, col {column}" if line else message)


def tokenize(source: str, line: int = 1, indent_width: int = 4) -> List[Tok]:
    """Convenience function to tokenize one line"""
    return Lexer(source, line=line, indent_width=indent_width).tokenize()

# ============================================================================
# Line helpers used by the driver
# ============================================================================

def count_indent(tokens: List[Tok]) -> int:
    """Number of INDENT tokens leading the line."""
    count = 0

    for tok in tokens:
        if tok.type != TT.INDENT:
            break
        count += 1

    return count


def is_comment_line(tokens: List[Tok]) -> bool:
    """True for lines with nothing but indentation and a comment (or nothing at all)."""
    return all(tok.type in LAYOUT for tok in tokens)


def split_statements(tokens: List[Tok]) -> List[List[Tok]]:
    """Split the significant tokens of a line on SEMI; empty chunks are dropped."""
    chunks: List[List[Tok]] = []
    current: List[Tok] = []

    for tok in tokens:
        if tok.type in LAYOUT:
            continue

        if tok.type == TT.SEMI:
            if current:
                chunks.append(current)
            current = []
            continue

        current.append(tok)

    if current:
        chunks.append(current)

    return chunks
