from __future__ import annotations

from textwrap import dedent

import pytest

from tests.support.harness import (
    ZenIndentationError,
    ZenStructureError,
    build_program,
    feed_line,
    fresh_builder,
)
from zen_ref.config import RunOptions
from zen_ref.types import BlockAction, Condition, FunctionDecl, Loop, Print, ScopeCategory


def test_block_opener_moves_cursor() -> None:
    builder = fresh_builder()
    feed_line(builder, "repeat 2:")

    loop = builder.tree.last_instruction(builder.root)
    assert isinstance(loop, Loop)
    assert builder.cursor == loop.body
    assert builder.tree.get_scope(loop.body).opening_action is BlockAction.LOOP


def test_cursor_depth_matches_indentation() -> None:
    builder = fresh_builder()
    lines = [
        ("repeat 1:", 1),
        ("    if true:", 2),
        ("        print 1", 2),
        ("    print 2", 1),
        ("print 3", 0),
    ]

    for number, (text, depth) in enumerate(lines, start=1):
        feed_line(builder, text, number)
        assert builder.tree.get_depth(builder.cursor) == depth, f"line {number}"


def test_multi_level_dedent() -> None:
    program = build_program(dedent(
        """\
        repeat 1:
            repeat 1:
                repeat 1:
                    print "deep"
        print "top"
        """
    ))

    root_block = program.tree.get_scope(program.root).block
    assert [type(i) for i in root_block] == [Loop, Print]


def test_if_chain_collects_arms() -> None:
    program = build_program(dedent(
        """\
        if x:
            print 1
        elif y:
            print 2
        elif z:
            print 3
        else:
            print 4
        """
    ))

    (cond,) = program.tree.get_scope(program.root).block
    assert isinstance(cond, Condition)
    assert len(cond.elif_arms) == 2
    assert cond.else_arm is not None and cond.else_arm.condition is None

    bodies = [cond.if_arm.body] + [arm.body for arm in cond.elif_arms] + [cond.else_arm.body]
    assert len(set(bodies)) == 4
    for body in bodies:
        node = program.tree.get_scope(body)
        assert node.parent == program.root
        assert node.category is ScopeCategory.TRANSPARENT


def test_function_registered_at_construction() -> None:
    program = build_program(dedent(
        """\
        fn f(a, b):
            print 1
        """
    ))

    record = program.tree.resolve_function(program.root, "f")
    assert record is not None
    assert record.parameters == ["a", "b"]
    assert program.tree.get_scope(record.body).category is ScopeCategory.ISOLATED

    (decl,) = program.tree.get_scope(program.root).block
    assert isinstance(decl, FunctionDecl)
    assert decl.body == record.body


def test_blank_and_comment_lines_keep_block_open() -> None:
    program = build_program(dedent(
        """\
        repeat 2:
            print 1

        # a comment at column zero
            print 2
        """
    ))

    (loop,) = program.tree.get_scope(program.root).block
    assert len(program.tree.get_scope(loop.body).block) == 2


@pytest.mark.parametrize(
    "source",
    [
        pytest.param("elif true:\n    print 1\n", id="elif-at-start"),
        pytest.param("print 1\nelse:\n    print 2\n", id="else-after-print"),
        pytest.param("if true:\n    print 1\n    else:\n        print 2\n", id="else-inside-if-body"),
    ],
)
def test_dangling_arm_rejected(source: str) -> None:
    with pytest.raises(ZenStructureError, match="without a preceding if"):
        build_program(source)


def test_dangling_arm_creates_no_scope() -> None:
    builder = fresh_builder()

    with pytest.raises(ZenStructureError):
        feed_line(builder, "else:")

    assert len(builder.tree) == 1
    assert builder.cursor == builder.root


@pytest.mark.parametrize(
    "source, msg",
    [
        pytest.param("if a:\n    print 1\nelse:\n    print 2\nelif b:\n    print 3\n", "elif after else", id="elif-after-else"),
        pytest.param("if a:\n    print 1\nelse:\n    print 2\nelse:\n    print 3\n", "else declared twice", id="else-twice"),
    ],
)
def test_else_is_final(source: str, msg: str) -> None:
    with pytest.raises(ZenStructureError, match=msg):
        build_program(source)


def test_else_is_final_reports_source_name() -> None:
    source = "if a:\n    print 1\nelse:\n    print 2\nelse:\n    print 3\n"

    with pytest.raises(ZenStructureError) as exc_info:
        build_program(source, source_name="demo.zen")

    assert exc_info.value.source_name == "demo.zen"
    assert exc_info.value.line == 5
    assert str(exc_info.value) == "else declared twice for the same if (demo.zen, line 5)"


def test_strict_over_indentation_at_root() -> None:
    source = "x = 1\n        y = 2\n"

    with pytest.raises(ZenIndentationError) as exc_info:
        build_program(source, source_name="demo.zen")

    err = exc_info.value
    assert err.line == 2
    assert err.offset == 6
    assert err.length == 8
    assert source[err.offset:err.offset + err.length] == "        "


def test_indentation_error_byte_span_counts_utf8() -> None:
    source = 'print "\u00e9"\n        print 1\n'

    with pytest.raises(ZenIndentationError) as exc_info:
        build_program(source)

    err = exc_info.value
    assert err.offset == 10
    assert err.byte_offset == 11
    assert err.byte_length == err.length == 8
    assert source.encode("utf-8")[err.byte_offset:err.byte_offset + err.byte_length] == b"        "


def test_strict_over_indentation_span_starts_at_first_extra_indent() -> None:
    source = "repeat 2:\n    print 1\n            print 2\n"

    with pytest.raises(ZenIndentationError) as exc_info:
        build_program(source)

    err = exc_info.value
    assert err.line == 3
    assert err.offset == 26
    assert err.length == 8


def test_indentation_error_render() -> None:
    source = "x = 1\n        y = 2\n"

    with pytest.raises(ZenIndentationError) as exc_info:
        build_program(source, source_name="demo.zen")

    assert exc_info.value.render().splitlines() == [
        "error: Unexpected indentation",
        " --> demo.zen:2:1",
        "  |",
        "2 |         y = 2",
        "  | ^^^^^^^^ not opened by a block",
    ]


def test_lenient_steps_up_one_level() -> None:
    source = dedent(
        """\
        repeat 2:
            repeat 3:
                print 1
                        print 2
        """
    )

    program = build_program(source, options=RunOptions(strict=False))

    (outer,) = program.tree.get_scope(program.root).block
    outer_block = program.tree.get_scope(outer.body).block
    assert [type(i) for i in outer_block] == [Loop, Print]


def test_lenient_at_root_stays_at_root() -> None:
    program = build_program("x = 1\n        print x\n", options=RunOptions(strict=False))

    assert [type(i).__name__ for i in program.tree.get_scope(program.root).block] == [
        "VariableAssignment",
        "Print",
    ]


def test_semicolon_chunks_share_indentation() -> None:
    program = build_program("repeat 2:\n    print 1; print 2\nprint 3\n")

    loop, last = program.tree.get_scope(program.root).block
    assert len(program.tree.get_scope(loop.body).block) == 2
    assert isinstance(last, Print)
