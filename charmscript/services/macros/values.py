"""
Conversions between handler results and macro text.
"""

from __future__ import annotations

import json
from typing import Any

_FALSY_TEXT = {"", "false", "0", "null", "none", "undefined"}


def to_text(value: Any) -> str:
    """Stringify a handler result for splicing into surrounding text."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, (list, tuple, dict)):
        return json.dumps(value, ensure_ascii=False, default=str)
    return str(value)


def is_truthy(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() not in _FALSY_TEXT
    return bool(value)


def to_number(value: Any) -> int | float | None:
    """Parse *value* as a number; None when it is not numeric."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return value
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not text:
        return None
    try:
        return int(text)
    except ValueError:
        pass
    try:
        number = float(text)
    except ValueError:
        return None
    return number if number == number else None   # reject NaN


def number_result(value: float, precision: int | None = None) -> int | float:
    """Collapse integral floats to int, optionally rounding first."""
    if precision is not None:
        value = round(value, precision)
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value
