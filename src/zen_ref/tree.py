"""Shared helpers for working with the lark Tree/Token nodes that make up
expression subtrees."""
from __future__ import annotations
from typing import List, Optional, Union

from lark import Token, Tree
from typing_extensions import TypeAlias, TypeGuard

Node: TypeAlias = Union[Tree, Token]


def is_tree(node: Node) -> TypeGuard[Tree]:
    return isinstance(node, Tree)

def is_token(node: Node) -> TypeGuard[Token]:
    return isinstance(node, Token)

def tree_label(node: Node) -> Optional[str]:
    return node.data if is_tree(node) else None

def tree_children(node: Node) -> List[Node]:
    if not is_tree(node):
        return []

    return list(node.children)

def render_expr(node: Node) -> str:
    """Flatten an expression back into source-like text for diagnostics."""
    if is_token(node):
        return str(node.value)

    label = tree_label(node)
    parts = [render_expr(child) for child in tree_children(node)]

    match label:
        case 'neg':
            return "-" + parts[-1]
        case 'not_op':
            return "not " + parts[-1]
        case 'or_expr':
            return " or ".join(parts)
        case 'and_expr':
            return " and ".join(parts)
        case _:
            return " ".join(parts)
