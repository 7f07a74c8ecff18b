from __future__ import annotations

import os as _os
from typing import Union

DEBUG_PY_TRACE_ENV = "ZEN_DEBUG_PY_TRACE"


def debug_py_trace_enabled() -> bool:
    """True when reported errors should also show the Python traceback."""
    return _os.environ.get(DEBUG_PY_TRACE_ENV, "").lower() in ("1", "true", "yes", "on")


def format_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def stringify(value: Union[float, str]) -> str:
    if isinstance(value, str):
        return value

    return format_number(value)


def unquote(literal: str) -> str:
    """Strip the quotes from a string token and resolve simple escapes."""
    body = literal[1:-1]
    out = []
    escapes = {'n': '\n', 't': '\t', '\\': '\\', '"': '"', "'": "'"}
    it = iter(body)

    for ch in it:
        if ch != '\\':
            out.append(ch)
            continue

        nxt = next(it, '')
        out.append(escapes.get(nxt, '\\' + nxt))

    return ''.join(out)
