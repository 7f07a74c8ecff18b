from __future__ import annotations

import argparse
import logging
import sys
import traceback
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, TextIO

from .builder import LogicalLine, ScopeBuilder
from .config import RunOptions
from .executor import BlockExecutor
from .lexer import LexError, count_indent, is_comment_line, split_statements, tokenize
from .parser import ParseError, parse_statement
from .scope import ScopeTree
from .types import ScopeHandle, Signal, ZenError, ZenIndentationError
from .utils import debug_py_trace_enabled

logger = logging.getLogger(__name__)

@dataclass
class Program:
    tree: ScopeTree
    root: ScopeHandle
    source: str
    source_name: str

def feed_source(builder: ScopeBuilder, source: str, indent_width: int = 4, first_line: int = 1) -> int:
    """Lex, parse and place every statement of source. Returns the next line number."""
    builder.source = source
    offset = 0
    next_line = first_line

    for number, raw in enumerate(source.splitlines(keepends=True), start=first_line):
        tokens = tokenize(raw, line=number, indent_width=indent_width)

        if not is_comment_line(tokens):
            indent = tokens[:count_indent(tokens)]

            # every statement after a ';' shares the physical line's indentation
            for chunk in split_statements(tokens):
                parsed = parse_statement(chunk)
                builder.process_line(LogicalLine(parsed, indent, number, offset))

        offset += len(raw)
        next_line = number + 1

    return next_line

def build_program(source: str, source_name: str = "<string>", options: Optional[RunOptions] = None) -> Program:
    options = options or RunOptions()
    tree = ScopeTree()
    root = tree.create_scope(None)
    builder = ScopeBuilder(tree, root, source=source, source_name=source_name, strict=options.strict)

    feed_source(builder, source, indent_width=options.indent_width)
    logger.debug("built %d scope(s) from %s", len(tree), source_name)

    return Program(tree=tree, root=root, source=source, source_name=source_name)

def run(source: str, source_name: str = "<string>", options: Optional[RunOptions] = None, out: Optional[TextIO] = None) -> Signal:
    options = options or RunOptions()
    program = build_program(source, source_name, options)

    if options.print_tree:
        print(program.tree.pretty(program.root), file=out or sys.stdout, end="")

    if options.no_execute:
        return Signal.NONE

    executor = BlockExecutor(program.tree, out=out, max_call_depth=options.max_call_depth, source_name=source_name)
    signal = executor.execute(program.root)

    if signal is not Signal.NONE:
        logger.debug("program ended on a stray %s", signal.name.lower())

    return signal

def run_file(path: str, options: Optional[RunOptions] = None, out: Optional[TextIO] = None) -> Signal:
    source = _load_source(path)
    name = "<stdin>" if path == "-" else path

    return run(source, source_name=name, options=options, out=out)

def _load_source(arg: str) -> str:
    """
    Resolve CLI input into source text.
    - "-" => read stdin.
    - Otherwise a path to a source file.
    """

    if arg == "-":
        data = sys.stdin.read()
        if not data:
            raise SystemExit("No input provided on stdin")
        return data

    return Path(arg).read_text(encoding="utf-8")

def report_error(exc: Exception, stream: Optional[TextIO] = None) -> None:
    stream = stream or sys.stderr

    if isinstance(exc, ZenIndentationError):
        print(exc.render(), file=stream)
    else:
        print(f"Error: {exc}", file=stream)

    if debug_py_trace_enabled():
        print("\nPython traceback:", file=stream)
        print("".join(traceback.format_exception(type(exc), exc, exc.__traceback__)), file=stream, end="")

def _build_arg_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="zen", description="Zen reference interpreter")
    sub = ap.add_subparsers(dest="command", required=True)

    run_p = sub.add_parser("run", help="Run a source file")
    run_p.add_argument("file", help="Path to a source file ('-' for stdin)")
    run_p.add_argument("-v", "--verbose", action="store_true", help="Log scope construction and execution")
    run_p.add_argument("--print-tree", action="store_true", help="Print the scope tree before running")
    run_p.add_argument("--no-execute", action="store_true", help="Build the scope tree only")
    run_p.add_argument("--lenient", action="store_true", help="Correct unexpected indentation instead of failing")
    run_p.add_argument("--indent-width", type=int, default=None, help="Spaces per indentation level")

    repl_p = sub.add_parser("repl", help="Start an interactive session")
    repl_p.add_argument("-v", "--verbose", action="store_true", help="Log scope construction and execution")

    return ap

def main(argv: Optional[List[str]] = None) -> int:
    args = _build_arg_parser().parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, stream=sys.stderr, format="%(levelname)s %(name)s: %(message)s")

    try:
        if args.command == "repl":
            from .repl import repl  # prompt_toolkit is only needed here

            repl()
            return 0

        options = RunOptions.from_env(
            verbose=args.verbose,
            print_tree=args.print_tree,
            no_execute=args.no_execute,
            strict=False if args.lenient else None,
            indent_width=args.indent_width,
        )
        run_file(args.file, options)
    except (ZenError, LexError, ParseError) as exc:
        report_error(exc)
        return 1
    except OSError as exc:
        print(f"Error: cannot read {getattr(args, 'file', '')}: {exc.strerror}", file=sys.stderr)
        return 1
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2
    except KeyboardInterrupt:
        print("\nTerminating program...", file=sys.stderr)
        return 130

    return 0

if __name__ == "__main__":
    sys.exit(main())
