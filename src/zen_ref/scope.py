"""Scope arena: every block of a program lives here as a node addressed by
a stable integer handle. Nodes are never removed, so a handle stays valid
for as long as the tree does."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple

from .types import (
    BlockAction,
    Condition,
    ConditionArm,
    FunctionDecl,
    FunctionRecord,
    Instruction,
    Loop,
    ScopeCategory,
    ScopeHandle,
    ScopeLookupError,
    VariableAssignment,
)
from .tree import render_expr
from .utils import format_number

logger = logging.getLogger(__name__)


@dataclass
class ScopeNode:
    handle: ScopeHandle
    parent: Optional[ScopeHandle]
    category: ScopeCategory
    opening_action: Optional[BlockAction]
    depth: int
    block: List[Instruction] = field(default_factory=list)
    variables: Dict[str, float] = field(default_factory=dict)
    functions: Dict[str, FunctionRecord] = field(default_factory=dict)


@dataclass
class Checkpoint:
    """Construction state of a tree at one moment. Variables are not
    captured; only execution touches them."""
    size: int
    blocks: List[int]
    functions: List[Dict[str, FunctionRecord]]
    arms: List[Tuple[Condition, int, Optional[ConditionArm]]]


class ScopeTree:
    def __init__(self) -> None:
        self._nodes: List[ScopeNode] = []

    def __len__(self) -> int:
        return len(self._nodes)

    def create_scope(
        self,
        parent: Optional[ScopeHandle],
        category: ScopeCategory = ScopeCategory.SEQUENTIAL,
        opening_action: Optional[BlockAction] = None,
    ) -> ScopeHandle:
        depth = 0

        if parent is None:
            category = ScopeCategory.ROOT
        else:
            depth = self.get_scope(parent).depth + 1

        handle = len(self._nodes)
        self._nodes.append(ScopeNode(handle, parent, category, opening_action, depth))
        logger.debug("scope %d created under %s (%s, %s)", handle, parent, category.name,
                     opening_action.name if opening_action else None)

        return handle

    def get_scope(self, h: ScopeHandle) -> ScopeNode:
        if not 0 <= h < len(self._nodes):
            raise ScopeLookupError(h)

        return self._nodes[h]

    def get_parent(self, h: ScopeHandle) -> Optional[ScopeHandle]:
        return self.get_scope(h).parent

    def get_depth(self, h: ScopeHandle) -> int:
        return self.get_scope(h).depth

    def chain(self, h: ScopeHandle) -> Iterator[ScopeNode]:
        """Walk from h up to the root, h included."""
        cur: Optional[ScopeHandle] = h

        while cur is not None:
            node = self.get_scope(cur)
            yield node
            cur = node.parent

    def push_instruction(self, h: ScopeHandle, instr: Instruction) -> None:
        self.get_scope(h).block.append(instr)

    def last_instruction(self, h: ScopeHandle) -> Optional[Instruction]:
        block = self.get_scope(h).block
        return block[-1] if block else None

    def checkpoint(self) -> Checkpoint:
        arms = [
            (instr, len(instr.elif_arms), instr.else_arm)
            for node in self._nodes
            for instr in node.block
            if isinstance(instr, Condition)
        ]

        return Checkpoint(
            size=len(self._nodes),
            blocks=[len(node.block) for node in self._nodes],
            functions=[dict(node.functions) for node in self._nodes],
            arms=arms,
        )

    def rollback(self, mark: Checkpoint) -> None:
        """Undo every instruction, function and condition arm added since mark.
        Scopes created since then stay in the arena, unreachable."""
        for node, size, functions in zip(self._nodes, mark.blocks, mark.functions):
            del node.block[size:]
            node.functions.clear()
            node.functions.update(functions)

        for cond, elif_count, else_arm in mark.arms:
            del cond.elif_arms[elif_count:]
            cond.else_arm = else_arm

        logger.debug("rolled back to %d scope(s), %d orphaned", mark.size, len(self._nodes) - mark.size)

    # ---- variables ----

    def declare_or_mutate_variable(self, h: ScopeHandle, name: str, value: float) -> ScopeHandle:
        """Mutate the nearest binding of name up the chain, or create it in h.
        Returns the handle of the scope that now holds the binding."""
        for node in self.chain(h):
            if name in node.variables:
                node.variables[name] = value
                return node.handle

        self.get_scope(h).variables[name] = value
        return h

    def read_variable(self, h: ScopeHandle, name: str) -> Optional[float]:
        for node in self.chain(h):
            if name in node.variables:
                return node.variables[name]

        return None

    # ---- functions ----

    def declare_function(self, h: ScopeHandle, name: str, parameters: List[str], body: ScopeHandle) -> None:
        self.get_scope(h).functions[name] = FunctionRecord(parameters=list(parameters), body=body)

    def resolve_function(self, h: ScopeHandle, name: str) -> Optional[FunctionRecord]:
        for node in self.chain(h):
            record = node.functions.get(name)
            if record is not None:
                return record

        return None

    # ---- debugging ----

    def pretty(self, root: ScopeHandle = 0, indent: str = '  ') -> str:
        """Return pretty-printed scope tree, nesting bodies under the
        instruction that owns them."""
        lines: List[str] = []

        def _scope(h: ScopeHandle, level: int) -> None:
            node = self.get_scope(h)
            action = node.opening_action.name.lower() if node.opening_action else "-"
            lines.append(f"{indent * level}scope {h} [{node.category.name.lower()}, {action}]")

            for name, value in node.variables.items():
                lines.append(f"{indent * (level + 1)}var {name} = {format_number(value)}")

            for instr in node.block:
                _instr(instr, level + 1)

        def _instr(instr: Instruction, level: int) -> None:
            pad = indent * level

            match instr:
                case Condition():
                    lines.append(f"{pad}if {render_expr(instr.if_arm.condition)}")
                    _scope(instr.if_arm.body, level + 1)

                    for arm in instr.elif_arms:
                        lines.append(f"{pad}elif {render_expr(arm.condition)}")
                        _scope(arm.body, level + 1)

                    if instr.else_arm is not None:
                        lines.append(f"{pad}else")
                        _scope(instr.else_arm.body, level + 1)
                case Loop(count=count, body=body):
                    lines.append(f"{pad}repeat {format_number(count)}")
                    if body is not None:
                        _scope(body, level + 1)
                case FunctionDecl(name=name, parameters=params, body=body):
                    lines.append(f"{pad}fn {name}({', '.join(params)})")
                    if body is not None:
                        _scope(body, level + 1)
                case VariableAssignment(name=name, expression=expr, operator=op):
                    lines.append(f"{pad}{name} {op.value} {render_expr(expr)}")
                case _:
                    lines.append(f"{pad}{type(instr).__name__.lower()}")

        _scope(root, 0)

        return "\n".join(lines) + "\n"

