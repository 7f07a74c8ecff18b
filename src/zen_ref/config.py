"""Run options shared by the driver, the REPL and the CLI."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Mapping, Optional

_TRUTHY = ("1", "true", "yes", "on")
_FALSY = ("0", "false", "no", "off")


@dataclass(frozen=True)
class RunOptions:
    # Over-indentation is an error when strict; otherwise the cursor steps up one scope.
    strict: bool = True
    verbose: bool = False
    print_tree: bool = False
    no_execute: bool = False
    indent_width: int = 4
    max_call_depth: int = 100

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides) -> RunOptions:
        env = os.environ if environ is None else environ
        opts = cls()

        strict = env.get("ZEN_STRICT")
        if strict is not None:
            opts = replace(opts, strict=_parse_flag("ZEN_STRICT", strict))

        width = env.get("ZEN_INDENT_WIDTH")
        if width is not None:
            opts = replace(opts, indent_width=_parse_positive("ZEN_INDENT_WIDTH", width))

        depth = env.get("ZEN_MAX_CALL_DEPTH")
        if depth is not None:
            opts = replace(opts, max_call_depth=_parse_positive("ZEN_MAX_CALL_DEPTH", depth))

        return replace(opts, **{k: v for k, v in overrides.items() if v is not None})


def _parse_flag(name: str, raw: str) -> bool:
    lowered = raw.strip().lower()

    if lowered in _TRUTHY:
        return True
    if lowered in _FALSY:
        return False

    raise ValueError(f"{name} must be one of {_TRUTHY + _FALSY}, got {raw!r}")


def _parse_positive(name: str, raw: str) -> int:
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None

    if value < 1:
        raise ValueError(f"{name} must be >= 1, got {value}")

    return value
