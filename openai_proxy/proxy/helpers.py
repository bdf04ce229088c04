"""Coercion rules for dynamic JSON values, plus id and SSE framing helpers."""

from __future__ import annotations

import json
import math
import re
import uuid
from typing import Any

_INT_RE = re.compile(r"[+-]?\d+")

_TRUE_STRINGS = frozenset({"1", "t", "T", "true", "TRUE", "True"})
_FALSE_STRINGS = frozenset({"0", "f", "F", "false", "FALSE", "False"})


def coerce_text(value: Any) -> str:
    """Render an arbitrary JSON value as text.

    - ``None`` becomes ``""``.
    - Strings are used directly.
    - Booleans become ``"true"`` / ``"false"``.
    - Numbers use their decimal form; integral floats drop the ``.0``.
    - Lists and objects are rendered as compact JSON.
    """
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return str(int(value))
    if isinstance(value, (int, float)):
        return str(value)
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def coerce_int(value: Any) -> int:
    """Best-effort integer coercion for token counts.

    Integers pass through, integral floats are truncated, decimal strings are
    parsed. Everything else (absent, booleans, fractional numbers,
    non-numeric strings, containers) is zero.
    """
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if math.isfinite(value) and value.is_integer():
            return int(value)
        return 0
    if isinstance(value, str):
        text = value.strip()
        if _INT_RE.fullmatch(text):
            return int(text)
    return 0


def coerce_bool(value: Any) -> bool:
    """Boolean coercion for the ``stream`` flag; unrecognized values are ``False``."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value == 1
    if isinstance(value, str):
        text = value.strip()
        if text in _TRUE_STRINGS:
            return True
        if text in _FALSE_STRINGS:
            return False
    return False


def new_completion_id() -> str:
    """Return ``chatcmpl-`` followed by 32 lowercase hex characters."""
    return f"chatcmpl-{uuid.uuid4().hex}"


def sse_frame(payload: str) -> str:
    return f"data: {payload}\n\n"
