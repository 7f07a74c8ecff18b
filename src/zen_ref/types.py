from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import List, Optional, Union
from typing_extensions import TypeAlias

from .tree import Node

# ---------- Scope bookkeeping ----------

ScopeHandle: TypeAlias = int

class ScopeCategory(Enum):
    """How a scope was opened. Recorded per node; name resolution does not
    consult it."""
    ROOT = auto()
    SEQUENTIAL = auto()
    TRANSPARENT = auto()
    ISOLATED = auto()

class BlockAction(Enum):
    IF = auto()
    ELIF = auto()
    ELSE = auto()
    FUNCTION = auto()
    LOOP = auto()

class Signal(Enum):
    """Control signal returned by block execution."""
    NONE = auto()
    BREAK = auto()
    CONTINUE = auto()

class AssignOp(Enum):
    SET = "="
    ADD = "+="
    SUB = "-="
    MUL = "*="
    DIV = "/="

# ---------- Instruction nodes ----------
# Expression fields hold lark subtrees; `body` fields hold scope handles that
# the scope builder fills in when the block opens.

@dataclass
class Print:
    expressions: List[Node]
    line: int = 0

@dataclass
class VariableAssignment:
    name: str
    expression: Node
    operator: AssignOp = AssignOp.SET
    line: int = 0

@dataclass
class Loop:
    count: float
    body: Optional[ScopeHandle] = None
    line: int = 0

@dataclass
class FunctionDecl:
    name: str
    parameters: List[str]
    body: Optional[ScopeHandle] = None
    line: int = 0

@dataclass
class FunctionCall:
    name: str
    arguments: List[Node]
    line: int = 0

@dataclass
class Break:
    line: int = 0

@dataclass
class Continue:
    line: int = 0

@dataclass
class RawIf:
    condition: Node
    line: int = 0

@dataclass
class RawElif:
    condition: Node
    line: int = 0

@dataclass
class RawElse:
    line: int = 0

@dataclass
class ConditionArm:
    condition: Optional[Node]  # None for the else arm
    body: ScopeHandle

@dataclass
class Condition:
    if_arm: ConditionArm
    elif_arms: List[ConditionArm] = field(default_factory=list)
    else_arm: Optional[ConditionArm] = None
    line: int = 0

    def push_elif(self, arm: ConditionArm, line: int = 0, source_name: Optional[str] = None) -> None:
        if self.else_arm is not None:
            raise ZenStructureError("elif after else", line=line, source_name=source_name)
        self.elif_arms.append(arm)

    def push_else(self, arm: ConditionArm, line: int = 0, source_name: Optional[str] = None) -> None:
        if self.else_arm is not None:
            raise ZenStructureError("else declared twice for the same if", line=line, source_name=source_name)
        self.else_arm = arm

Instruction: TypeAlias = Union[
    Print,
    VariableAssignment,
    Loop,
    FunctionDecl,
    FunctionCall,
    Break,
    Continue,
    RawIf,
    RawElif,
    RawElse,
    Condition,
]

BLOCK_ACTIONS = {
    RawIf: BlockAction.IF,
    RawElif: BlockAction.ELIF,
    RawElse: BlockAction.ELSE,
    FunctionDecl: BlockAction.FUNCTION,
    Loop: BlockAction.LOOP,
}

def block_action(instr: Instruction) -> Optional[BlockAction]:
    return BLOCK_ACTIONS.get(type(instr))

@dataclass
class FunctionRecord:
    parameters: List[str]
    body: ScopeHandle

@dataclass
class ParsedLine:
    """What the line grammar hands the scope builder for one statement."""
    opens_block: bool
    instruction: Instruction

# ---------- Exceptions (keep Zen* canonical) ----------

class ZenError(Exception):
    line: Optional[int]
    source_name: Optional[str]

    def __init__(self, message: str, line: Optional[int] = None, source_name: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.line = line
        self.source_name = source_name

    def __str__(self) -> str:
        msg = self.message

        if not self.line:
            return msg

        if self.source_name:
            return f"{msg} ({self.source_name}, line {self.line})"

        return f"{msg} (line {self.line})"

class ZenIndentationError(ZenError):
    """Indentation grew without a block opener in front of it.

    `offset` and `length` count characters of `source` and drive `render()`;
    `byte_offset` and `byte_length` give the same span in UTF-8 bytes.
    """

    def __init__(self, source_name: str, source: str, offset: int, length: int, line: int):
        super().__init__("Unexpected indentation", line=line, source_name=source_name)
        self.source = source
        self.offset = offset
        self.length = length

    @property
    def byte_offset(self) -> int:
        return len(self.source[:self.offset].encode("utf-8"))

    @property
    def byte_length(self) -> int:
        return len(self.source[self.offset:self.offset + self.length].encode("utf-8"))

    def render(self) -> str:
        """Source line with a caret underline under the offending span."""
        start = self.source.rfind("\n", 0, self.offset) + 1
        end = self.source.find("\n", self.offset)
        if end == -1:
            end = len(self.source)

        text = self.source[start:end]
        col = self.offset - start
        lead = len(text[:col].expandtabs(4))
        width = len(text[:col + self.length].expandtabs(4)) - lead
        gutter = " " * len(str(self.line))

        return "\n".join([
            f"error: {self.message}",
            f"{gutter}--> {self.source_name}:{self.line}:{col + 1}",
            f"{gutter} |",
            f"{self.line} | {text.expandtabs(4)}",
            f"{gutter} | {' ' * lead}{'^' * max(width, 1)} not opened by a block",
        ])

class ZenStructureError(ZenError):
    """elif/else with no if to attach to."""

class ScopeLookupError(ZenError):
    def __init__(self, handle: int):
        super().__init__(f"Scope {handle} does not exist")
        self.handle = handle

class ZenRuntimeError(ZenError):
    pass

class ZenMissingValueError(ZenRuntimeError):
    def __init__(self, name: str, line: Optional[int] = None):
        super().__init__(f"Missing prior value for compound assignment to '{name}'", line=line)
        self.name = name

class ZenNameError(ZenRuntimeError):
    def __init__(self, name: str, kind: str = "Name", line: Optional[int] = None):
        super().__init__(f"{kind} '{name}' not found", line=line)
        self.name = name

class ZenTypeError(ZenRuntimeError):
    pass

class ZenRecursionError(ZenRuntimeError):
    pass
