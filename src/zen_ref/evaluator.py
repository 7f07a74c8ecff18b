from __future__ import annotations

from typing import Union

from .scope import ScopeTree
from .tree import Node, is_token, tree_children, tree_label
from .types import ScopeHandle, ZenNameError, ZenRuntimeError, ZenTypeError
from .utils import unquote

Value = Union[float, str]

# ---------------- Public API ----------------

def evaluate(expr: Node, scope: ScopeHandle, tree: ScopeTree) -> Value:
    """Evaluate an expression subtree; reads variables through the scope chain."""
    return _eval_node(expr, scope, tree)

def is_truthy(expr: Node, scope: ScopeHandle, tree: ScopeTree) -> bool:
    return value_truthy(_eval_node(expr, scope, tree))

def value_truthy(val: Value) -> bool:
    match val:
        case str(s):
            return bool(s)
        case _:
            return val != 0

# ---------------- Core evaluator ----------------

def _eval_node(n: Node, scope: ScopeHandle, tree: ScopeTree) -> Value:
    if is_token(n):
        raise ZenRuntimeError(f"Unexpected bare token {n.type} in expression")

    children = tree_children(n)

    match tree_label(n):
        case 'number':
            return float(children[0])
        case 'string':
            return unquote(str(children[0]))
        case 'true':
            return 1.0
        case 'false':
            return 0.0
        case 'name':
            name = str(children[0])
            value = tree.read_variable(scope, name)
            if value is None:
                raise ZenNameError(name, kind="Variable")
            return value
        case 'neg':
            return -_expect_number(_eval_node(children[-1], scope, tree), "Operand of unary '-'")
        case 'not_op':
            return 0.0 if value_truthy(_eval_node(children[-1], scope, tree)) else 1.0
        case 'binop':
            lhs, op, rhs = children
            return _arith(str(op), _eval_node(lhs, scope, tree), _eval_node(rhs, scope, tree))
        case 'compare':
            lhs, op, rhs = children
            return _compare(str(op), _eval_node(lhs, scope, tree), _eval_node(rhs, scope, tree))
        case 'and_expr':
            for child in children:
                if not value_truthy(_eval_node(child, scope, tree)):
                    return 0.0
            return 1.0
        case 'or_expr':
            for child in children:
                if value_truthy(_eval_node(child, scope, tree)):
                    return 1.0
            return 0.0
        case label:
            raise ZenRuntimeError(f"Unsupported expression node {label}")

def _expect_number(val: Value, what: str) -> float:
    if isinstance(val, str):
        raise ZenTypeError(f"{what} must be a number, got text {val!r}")

    return val

def _arith(op: str, lhs: Value, rhs: Value) -> float:
    a = _expect_number(lhs, f"Left operand of '{op}'")
    b = _expect_number(rhs, f"Right operand of '{op}'")

    match op:
        case '+':
            return a + b
        case '-':
            return a - b
        case '*':
            return a * b
        case '/':
            if b == 0:
                raise ZenRuntimeError("Division by zero")
            return a / b
        case '%':
            if b == 0:
                raise ZenRuntimeError("Modulo by zero")
            return a % b
        case _:
            raise ZenRuntimeError(f"Unknown operator '{op}'")

def _compare(op: str, lhs: Value, rhs: Value) -> float:
    match op:
        case '==':
            return 1.0 if lhs == rhs else 0.0
        case '!=':
            return 1.0 if lhs != rhs else 0.0

    a = _expect_number(lhs, f"Left operand of '{op}'")
    b = _expect_number(rhs, f"Right operand of '{op}'")

    match op:
        case '<':
            result = a < b
        case '<=':
            result = a <= b
        case '>':
            result = a > b
        case '>=':
            result = a >= b
        case _:
            raise ZenRuntimeError(f"Unknown comparison '{op}'")

    return 1.0 if result else 0.0
