from __future__ import annotations

import pytest

from tests.support.harness import ScopeLookupError, ScopeTree
from zen_ref.types import BlockAction, ScopeCategory


def _tree_with_chain():
    tree = ScopeTree()
    root = tree.create_scope(None)
    loop = tree.create_scope(root, ScopeCategory.SEQUENTIAL, BlockAction.LOOP)
    inner = tree.create_scope(loop, ScopeCategory.TRANSPARENT, BlockAction.IF)
    return tree, root, loop, inner


def test_root_scope() -> None:
    tree = ScopeTree()
    root = tree.create_scope(None, ScopeCategory.ISOLATED)

    node = tree.get_scope(root)
    assert node.category is ScopeCategory.ROOT
    assert node.depth == 0
    assert tree.get_parent(root) is None


def test_depth_follows_parent() -> None:
    tree, root, loop, inner = _tree_with_chain()

    assert tree.get_depth(loop) == 1
    assert tree.get_depth(inner) == 2
    assert tree.get_parent(inner) == loop
    assert tree.get_scope(inner).opening_action is BlockAction.IF


def test_handles_are_stable() -> None:
    tree, root, loop, inner = _tree_with_chain()
    tree.create_scope(root)

    assert (root, loop, inner) == (0, 1, 2)
    assert len(tree) == 4
    assert tree.get_scope(loop).handle == loop


@pytest.mark.parametrize("handle", [-1, 3, 99])
def test_unknown_handle(handle: int) -> None:
    tree, *_ = _tree_with_chain()

    with pytest.raises(ScopeLookupError) as exc_info:
        tree.get_scope(handle)

    assert exc_info.value.handle == handle


def test_chain_walks_to_root() -> None:
    tree, root, loop, inner = _tree_with_chain()

    assert [node.handle for node in tree.chain(inner)] == [inner, loop, root]


def test_write_mutates_nearest_binding() -> None:
    tree, root, loop, inner = _tree_with_chain()
    tree.declare_or_mutate_variable(root, "x", 1.0)

    holder = tree.declare_or_mutate_variable(inner, "x", 5.0)

    assert holder == root
    assert tree.get_scope(root).variables == {"x": 5.0}
    assert tree.get_scope(inner).variables == {}


def test_write_creates_in_current_scope() -> None:
    tree, root, loop, inner = _tree_with_chain()

    holder = tree.declare_or_mutate_variable(loop, "y", 2.0)

    assert holder == loop
    assert tree.read_variable(inner, "y") == 2.0
    assert tree.read_variable(root, "y") is None


def test_shadowing_is_not_possible_from_below() -> None:
    tree, root, loop, inner = _tree_with_chain()
    tree.declare_or_mutate_variable(loop, "z", 1.0)
    tree.declare_or_mutate_variable(inner, "z", 2.0)

    assert tree.get_scope(loop).variables["z"] == 2.0
    assert "z" not in tree.get_scope(inner).variables


def test_function_resolution_walks_up_only() -> None:
    tree, root, loop, inner = _tree_with_chain()
    sibling = tree.create_scope(root)
    body = tree.create_scope(loop, ScopeCategory.ISOLATED, BlockAction.FUNCTION)
    tree.declare_function(loop, "f", ["a"], body)

    assert tree.resolve_function(inner, "f").body == body
    assert tree.resolve_function(inner, "f").parameters == ["a"]
    assert tree.resolve_function(sibling, "f") is None
    assert tree.resolve_function(root, "f") is None


def test_redeclaration_replaces_record() -> None:
    tree = ScopeTree()
    root = tree.create_scope(None)
    first = tree.create_scope(root)
    second = tree.create_scope(root)

    tree.declare_function(root, "f", [], first)
    tree.declare_function(root, "f", [], second)

    assert tree.resolve_function(root, "f").body == second


def test_instructions_keep_order() -> None:
    from zen_ref.types import Break, Continue

    tree = ScopeTree()
    root = tree.create_scope(None)
    assert tree.last_instruction(root) is None

    tree.push_instruction(root, Break())
    tree.push_instruction(root, Continue())

    assert [type(i).__name__ for i in tree.get_scope(root).block] == ["Break", "Continue"]
    assert isinstance(tree.last_instruction(root), Continue)


def test_pretty_lists_scopes() -> None:
    tree, root, loop, inner = _tree_with_chain()
    tree.declare_or_mutate_variable(root, "x", 3.0)

    rendered = tree.pretty(root)

    assert rendered.splitlines()[0] == "scope 0 [root, -]"
    assert "  var x = 3" in rendered


def test_rollback_undoes_construction_since_checkpoint() -> None:
    from zen_ref.types import Break, Condition, ConditionArm, Continue

    tree = ScopeTree()
    root = tree.create_scope(None)
    body = tree.create_scope(root)
    tree.declare_function(root, "f", [], body)
    cond = Condition(ConditionArm(None, tree.create_scope(root)))
    tree.push_instruction(root, cond)

    mark = tree.checkpoint()
    later = tree.create_scope(root)
    tree.push_instruction(root, Break())
    tree.push_instruction(body, Continue())
    tree.declare_function(root, "f", [], later)
    tree.declare_function(root, "g", [], later)
    cond.push_else(ConditionArm(None, later))

    tree.rollback(mark)

    assert tree.get_scope(root).block == [cond]
    assert tree.get_scope(body).block == []
    assert tree.resolve_function(root, "f").body == body
    assert tree.resolve_function(root, "g") is None
    assert cond.else_arm is None
    assert len(tree) == 4
    assert tree.create_scope(root) == 4
