from __future__ import annotations

import logging
import math
import sys
from typing import List, Optional, TextIO

from .evaluator import evaluate, is_truthy
from .scope import ScopeTree
from .types import (
    AssignOp,
    Break,
    Condition,
    Continue,
    FunctionCall,
    FunctionDecl,
    Instruction,
    Loop,
    Print,
    RawElif,
    RawElse,
    RawIf,
    ScopeHandle,
    Signal,
    VariableAssignment,
    ZenError,
    ZenMissingValueError,
    ZenNameError,
    ZenRecursionError,
    ZenRuntimeError,
    ZenTypeError,
)
from .utils import stringify

logger = logging.getLogger(__name__)


class BlockExecutor:
    """Walks scope blocks. Break/Continue travel back up as return values;
    a function call swallows whatever signal its body ends with."""

    def __init__(self, tree: ScopeTree, out: Optional[TextIO] = None, max_call_depth: int = 100, source_name: Optional[str] = None):
        self.tree = tree
        self.out = out
        self.max_call_depth = max_call_depth
        self.source_name = source_name
        self.call_depth = 0

    def execute(self, scope: ScopeHandle) -> Signal:
        return self.run_instructions(list(self.tree.get_scope(scope).block), scope)

    def run_instructions(self, block: List[Instruction], scope: ScopeHandle) -> Signal:
        for instr in block:
            try:
                signal = self._dispatch(instr, scope)
            except ZenError as exc:
                self._attach_location(exc, instr)
                raise

            if signal is not Signal.NONE:
                return signal

        return Signal.NONE

    def _dispatch(self, instr: Instruction, scope: ScopeHandle) -> Signal:
        match instr:
            case Print(expressions=exprs):
                values = [evaluate(e, scope, self.tree) for e in exprs]
                print(" ".join(stringify(v) for v in values), file=self.out or sys.stdout)
            case VariableAssignment():
                self._assign(instr, scope)
            case Loop(count=count, body=body):
                return self._run_loop(count, body)
            case FunctionDecl():
                pass  # registered while the tree was built
            case FunctionCall(name=name, arguments=args):
                self._call(name, args, scope)
            case Break():
                return Signal.BREAK
            case Continue():
                return Signal.CONTINUE
            case Condition():
                return self._run_condition(instr, scope)
            case RawIf() | RawElif() | RawElse():
                raise ZenRuntimeError(f"{type(instr).__name__} was never attached to a scope")
            case _:
                raise ZenRuntimeError(f"Unsupported instruction {type(instr).__name__}")

        return Signal.NONE

    def _assign(self, instr: VariableAssignment, scope: ScopeHandle) -> None:
        try:
            value = evaluate(instr.expression, scope, self.tree)
        except ZenNameError as exc:
            # `y = y + 1` with y unbound is a compound update in disguise
            if exc.name == instr.name:
                raise ZenMissingValueError(instr.name) from None
            raise

        if isinstance(value, str):
            raise ZenTypeError(f"Cannot assign text to '{instr.name}'")

        if instr.operator is not AssignOp.SET:
            prior = self.tree.read_variable(scope, instr.name)
            if prior is None:
                raise ZenMissingValueError(instr.name)

            match instr.operator:
                case AssignOp.ADD:
                    value = prior + value
                case AssignOp.SUB:
                    value = prior - value
                case AssignOp.MUL:
                    value = prior * value
                case AssignOp.DIV:
                    if value == 0:
                        raise ZenRuntimeError("Division by zero")
                    value = prior / value

        self.tree.declare_or_mutate_variable(scope, instr.name, value)

    def _run_loop(self, count: float, body: Optional[ScopeHandle]) -> Signal:
        if body is None:
            raise ZenRuntimeError("Loop has no body scope")

        iterations = max(math.floor(count), 0)
        logger.debug("loop over scope %d, %d iteration(s)", body, iterations)

        for _ in range(iterations):
            if self.execute(body) is Signal.BREAK:
                break

        return Signal.NONE

    def _call(self, name: str, args: list, scope: ScopeHandle) -> None:
        record = self.tree.resolve_function(scope, name)
        if record is None:
            raise ZenNameError(name, kind="Function")

        if self.call_depth >= self.max_call_depth:
            raise ZenRecursionError(f"Call depth limit of {self.max_call_depth} exceeded calling '{name}'")

        # TODO: bind args to record.parameters once positional vs named binding is settled
        logger.debug("call %s -> scope %d (%d argument(s) not bound)", name, record.body, len(args))

        self.call_depth += 1
        try:
            self.execute(record.body)
        except RecursionError:
            raise ZenRecursionError(f"Nesting too deep calling '{name}'") from None
        finally:
            self.call_depth -= 1

    def _run_condition(self, cond: Condition, scope: ScopeHandle) -> Signal:
        if is_truthy(cond.if_arm.condition, scope, self.tree):
            return self.execute(cond.if_arm.body)

        for arm in cond.elif_arms:
            if is_truthy(arm.condition, scope, self.tree):
                return self.execute(arm.body)

        if cond.else_arm is not None:
            return self.execute(cond.else_arm.body)

        return Signal.NONE

    def _attach_location(self, exc: ZenError, instr: Instruction) -> None:
        # innermost instruction wins
        if exc.line is None:
            exc.line = getattr(instr, "line", None) or None
        if exc.source_name is None:
            exc.source_name = self.source_name
