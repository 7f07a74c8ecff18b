"""Interactive read-eval-print loop for Zen, powered by prompt_toolkit."""

from __future__ import annotations

import os
import re
import sys
from typing import List, Optional, TextIO

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.document import Document
from prompt_toolkit.formatted_text import StyleAndTextTuples
from prompt_toolkit.history import InMemoryHistory
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.lexers import Lexer
from prompt_toolkit.shortcuts import clear

from .builder import ScopeBuilder
from .config import RunOptions
from .executor import BlockExecutor
from .lexer import LexError, tokenize
from .parser import ParseError
from .runner import feed_source, report_error
from .scope import ScopeTree
from .token_types import TT
from .types import Signal, ZenError
from .utils import DEBUG_PY_TRACE_ENV, debug_py_trace_enabled

# Zero-width and invisible characters to strip from input.
_INVISIBLE_RE = re.compile("[\u200b\u200c\u200d\ufeff\u00a0\r]")

# Slash commands: name => (description, argument_hint).
_SLASH_CMDS = {
    "/clear": ("Clear the terminal screen", ""),
    "/py-traceback": ("Toggle Python traceback on errors", "[on|off]"),
    "/reset": ("Reset the REPL environment", ""),
    "/tree": ("Show the scope tree built so far", ""),
}

GROUP_STYLE = {
    "keyword": "bold ansicyan",
    "constant": "ansicyan",
    "number": "ansimagenta",
    "string": "ansigreen",
    "comment": "italic ansigray",
    "error": "bold ansired",
}

_TT_GROUP = {
    TT.PRINT: "keyword",
    TT.IF: "keyword",
    TT.ELIF: "keyword",
    TT.ELSE: "keyword",
    TT.FN: "keyword",
    TT.REPEAT: "keyword",
    TT.BREAK: "keyword",
    TT.CONTINUE: "keyword",
    TT.AND: "keyword",
    TT.OR: "keyword",
    TT.NOT: "keyword",
    TT.TRUE: "constant",
    TT.FALSE: "constant",
    TT.NUMBER: "number",
    TT.STRING: "string",
    TT.COMMENT: "comment",
}


class Session:
    """One scope tree kept alive across submissions. Each submission is
    placed into the tree and only the root instructions it added are run."""

    def __init__(self, options: Optional[RunOptions] = None, out: Optional[TextIO] = None):
        self.options = options or RunOptions()
        self.out = out
        self.reset()

    def reset(self) -> None:
        self.tree = ScopeTree()
        self.root = self.tree.create_scope(None)
        self.builder = ScopeBuilder(self.tree, self.root, source_name="<repl>", strict=self.options.strict)
        self.executor = BlockExecutor(self.tree, out=self.out, max_call_depth=self.options.max_call_depth, source_name="<repl>")
        self.next_line = 1
        self._executed = 0

    def feed(self, text: str) -> Signal:
        block = self.tree.get_scope(self.root).block
        mark = self.tree.checkpoint()
        self.builder.closed = self.tree.last_instruction(self.root)

        try:
            self.next_line = feed_source(self.builder, text, self.options.indent_width, first_line=self.next_line)
        except (ZenError, LexError, ParseError):
            self.tree.rollback(mark)
            self.builder.cursor = self.root
            self._executed = len(block)
            raise

        pending = block[self._executed:]
        self._executed = len(block)

        return self.executor.run_instructions(pending, self.root)


def _is_block_header(line: str, indent_width: int = 4) -> bool:
    """Return True if *line* opens a block (last significant token is a colon)."""
    try:
        tokens = tokenize(line, indent_width=indent_width)
    except LexError:
        return False

    significant = [tok for tok in tokens if tok.type not in (TT.INDENT, TT.COMMENT, TT.EOF)]

    return bool(significant) and significant[-1].type == TT.COLON


def _compute_indent(text: str, indent_width: int = 4) -> str:
    """Compute the auto-indent prefix for the next continuation line."""
    last = text.split("\n")[-1]
    existing = last[:len(last) - len(last.lstrip())]

    if _is_block_header(last, indent_width):
        return existing + " " * indent_width

    return existing if last.strip() else ""


def _normalize(text: str) -> str:
    """Strip invisible characters from input."""
    return _INVISIBLE_RE.sub("", text)


def _highlight_line(text: str, indent_width: int = 4) -> StyleAndTextTuples:
    try:
        tokens = tokenize(text, indent_width=indent_width)
    except LexError:
        return [(GROUP_STYLE["error"], text)]

    fragments: StyleAndTextTuples = []
    pos = 0

    for tok in tokens:
        if tok.type == TT.EOF:
            break

        start = tok.column - 1
        end = start + len(str(tok.value))

        if start > pos:
            fragments.append(("", text[pos:start]))

        group = _TT_GROUP.get(tok.type)
        fragments.append((GROUP_STYLE.get(group, "") if group else "", text[start:end]))
        pos = end

    if pos < len(text):
        fragments.append(("", text[pos:]))

    return fragments


class ZenLexer(Lexer):
    """Live token highlighting for the prompt."""

    def __init__(self, indent_width: int = 4):
        self.indent_width = indent_width

    def lex_document(self, document: Document):
        lines = document.lines

        def get_line(lineno: int) -> StyleAndTextTuples:
            if lineno >= len(lines):
                return []
            return _highlight_line(lines[lineno], self.indent_width)

        return get_line


class _SlashCompleter(Completer):
    """Autocomplete slash commands on the primary prompt."""

    def get_completions(self, document, complete_event):
        text = document.text_before_cursor
        if not text.startswith("/"):
            return

        for cmd, (desc, _hint) in _SLASH_CMDS.items():
            if cmd.startswith(text):
                yield Completion(cmd, start_position=-len(text), display_meta=desc)


def _handle_slash(line: str, session: Session, stream: Optional[TextIO] = None) -> bool:
    """Handle slash commands. Returns True if the line was a command."""
    stream = stream or sys.stdout
    stripped = line.strip()
    if not stripped.startswith("/"):
        return False

    parts = stripped.split(None, 1)
    cmd = parts[0]
    arg = parts[1] if len(parts) > 1 else ""

    if cmd == "/clear":
        clear()
        return True

    if cmd == "/py-traceback":
        if arg.lower() in ("on", "1", "true", "yes"):
            os.environ[DEBUG_PY_TRACE_ENV] = "1"
        elif arg.lower() in ("off", "0", "false", "no"):
            os.environ.pop(DEBUG_PY_TRACE_ENV, None)
        elif arg == "":
            if debug_py_trace_enabled():
                os.environ.pop(DEBUG_PY_TRACE_ENV, None)
            else:
                os.environ[DEBUG_PY_TRACE_ENV] = "1"
        else:
            print("Usage: /py-traceback [on|off]", file=sys.stderr)
            return True

        state = "on" if debug_py_trace_enabled() else "off"
        print(f"Python traceback: {state}", file=stream)
        return True

    if cmd == "/reset":
        session.reset()
        print("Environment reset.", file=stream)
        return True

    if cmd == "/tree":
        print(session.tree.pretty(session.root), file=stream, end="")
        return True

    print(f"Unknown command: {cmd}", file=sys.stderr)
    return True


def repl(options: Optional[RunOptions] = None) -> None:
    """Interactive read-eval-print loop with prompt_toolkit."""
    session = Session(options or RunOptions.from_env())
    width = session.options.indent_width
    bindings = KeyBindings()

    @bindings.add("enter")
    def _enter(event):
        buf = event.app.current_buffer
        text = buf.text
        lines: List[str] = text.split("\n")

        # Single line that does not open a block => accept.
        if len(lines) == 1 and not _is_block_header(text, width):
            buf.validate_and_handle()
            return

        # Multiline: an empty last line submits.
        if len(lines) > 1 and lines[-1].strip() == "":
            buf.text = "\n".join(lines[:-1])
            buf.cursor_position = len(buf.text)
            buf.validate_and_handle()
            return

        buf.insert_text("\n" + _compute_indent(text, width))

    prompt: PromptSession[str] = PromptSession(
        history=InMemoryHistory(),
        lexer=ZenLexer(width),
        completer=_SlashCompleter(),
        complete_while_typing=True,
        key_bindings=bindings,
        multiline=True,
        prompt_continuation="... ",
    )

    print("zen repl (Ctrl-D to exit, / for commands)")

    while True:
        try:
            text = prompt.prompt(">>> ")
        except EOFError:
            print()
            break
        except KeyboardInterrupt:
            print("KeyboardInterrupt")
            continue

        text = _normalize(text)
        if not text.strip():
            continue

        if _handle_slash(text, session):
            continue

        try:
            session.feed(text + "\n")
        except (ZenError, LexError, ParseError) as exc:
            report_error(exc)
