"""Scope construction: turns the flat, per-line instruction stream into the
scope tree, using nothing but each line's indentation count to decide where
an instruction belongs."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from .scope import ScopeTree
from .token_types import Tok
from .types import (
    Condition,
    ConditionArm,
    FunctionDecl,
    Instruction,
    ParsedLine,
    RawElif,
    RawElse,
    RawIf,
    ScopeCategory,
    ScopeHandle,
    ZenIndentationError,
    ZenStructureError,
    block_action,
)

logger = logging.getLogger(__name__)


@dataclass
class LogicalLine:
    parsed: ParsedLine
    indent: List[Tok]  # leading INDENT tokens of the physical line
    number: int
    offset: int  # offset of the physical line's first character in the source


class ScopeBuilder:
    """Owns the cursor while a program is being constructed."""

    def __init__(self, tree: ScopeTree, root: ScopeHandle, source: str = "", source_name: str = "<string>", strict: bool = True):
        self.tree = tree
        self.root = root
        self.cursor = root
        self.source = source
        self.source_name = source_name
        self.strict = strict
        # an if that has already run; arms may no longer be added to it
        self.closed: Optional[Instruction] = None

    def process_line(self, line: LogicalLine) -> None:
        self._reconcile_depth(line)
        instr = line.parsed.instruction

        if line.parsed.opens_block:
            self._open_block(instr, line.number)
        else:
            self.tree.push_instruction(self.cursor, instr)

    # ---- indentation resolver ----

    def _reconcile_depth(self, line: LogicalLine) -> None:
        tab_count = len(line.indent)
        inferred = self.tree.get_depth(self.cursor)

        if tab_count == inferred:
            return

        if tab_count > inferred:
            if self.strict:
                first = line.indent[inferred]
                last = line.indent[-1]
                raise ZenIndentationError(
                    self.source_name,
                    self.source,
                    offset=line.offset + first.column - 1,
                    length=last.end_column - first.column,
                    line=line.number,
                )

            # Lenient: a single step up, however large the overshoot.
            parent = self.tree.get_parent(self.cursor)
            logger.debug("line %d: %d indent(s) at depth %d, stepping up to %s",
                         line.number, tab_count, inferred, parent)
            if parent is not None:
                self.cursor = parent
            return

        while self.tree.get_depth(self.cursor) > tab_count:
            parent = self.tree.get_parent(self.cursor)
            if parent is None:
                break
            self.cursor = parent

        logger.debug("line %d: dedent to scope %d", line.number, self.cursor)

    # ---- block-opener transform ----

    def _open_block(self, instr: Instruction, line_no: int) -> None:
        match instr:
            case RawElif() | RawElse():
                target = self.tree.last_instruction(self.cursor)
                keyword = "elif" if isinstance(instr, RawElif) else "else"
                if not isinstance(target, Condition):
                    raise ZenStructureError(f"{keyword} without a preceding if", line=line_no, source_name=self.source_name)
                if target is self.closed:
                    raise ZenStructureError(f"{keyword} for an if that already ran", line=line_no, source_name=self.source_name)

                new_scope = self._new_child(instr)
                if isinstance(instr, RawElif):
                    target.push_elif(ConditionArm(instr.condition, new_scope), line=line_no, source_name=self.source_name)
                else:
                    target.push_else(ConditionArm(None, new_scope), line=line_no, source_name=self.source_name)
            case RawIf(condition=cond):
                new_scope = self._new_child(instr)
                self.tree.push_instruction(self.cursor, Condition(ConditionArm(cond, new_scope), line=instr.line))
            case FunctionDecl(name=name, parameters=params):
                new_scope = self._new_child(instr)
                instr.body = new_scope
                self.tree.declare_function(self.cursor, name, params, new_scope)
                self.tree.push_instruction(self.cursor, instr)
            case _:
                if not hasattr(instr, "body"):
                    raise ZenStructureError(f"{type(instr).__name__} cannot open a block", line=line_no, source_name=self.source_name)
                new_scope = self._new_child(instr)
                instr.body = new_scope
                self.tree.push_instruction(self.cursor, instr)

        self.cursor = new_scope

    def _new_child(self, instr: Instruction) -> ScopeHandle:
        match instr:
            case RawIf() | RawElif() | RawElse():
                category = ScopeCategory.TRANSPARENT
            case FunctionDecl():
                category = ScopeCategory.ISOLATED
            case _:
                category = ScopeCategory.SEQUENTIAL

        return self.tree.create_scope(self.cursor, category, block_action(instr))
