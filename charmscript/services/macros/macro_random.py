"""
$random[max]                — integer in [0, max]
$random[min, max]           — integer in [min, max]
$random[{"type": "float", "min": 1, "max": 2, "precision": 3}]
$random[{"type": "choice", "choices": ["a", "b"]}]
$random[type: string; length: 8]

Types: int, float, choice, bool, string, hex, uuid, color
"""

from __future__ import annotations

import random
import string
import uuid
from typing import Any

from .errors import ArgumentShapeError
from .params import get_param
from .registry import MacroRegistry, value
from .values import to_number, to_text

_ALPHANUMERIC = string.ascii_letters + string.digits

_COLORS = [
    "#FF0000", "#00FF00", "#0000FF", "#FFFF00", "#FF00FF", "#00FFFF",
    "#FFA500", "#800080", "#FFC0CB", "#A52A2A", "#808080", "#000000",
]


def _int(raw: Any, name: str) -> int:
    number = to_number(raw)
    if number is None:
        raise ArgumentShapeError(f"$random {name} must be a number, got {to_text(raw)!r}")
    return int(number)


def _random_int(low: int, high: int) -> int:
    if low > high:
        low, high = high, low
    return random.randint(low, high)


def _from_options(p: dict[str, Any]) -> Any:
    kind = to_text(get_param(p, "type", default="int")).lower()

    if kind in ("int", "integer"):
        return _random_int(_int(p.get("min", 0), "min"), _int(p.get("max", 100), "max"))
    if kind in ("float", "decimal"):
        low, high = to_number(p.get("min", 0)), to_number(p.get("max", 1))
        if low is None or high is None:
            raise ArgumentShapeError("$random float bounds must be numbers")
        precision = _int(p.get("precision", 2), "precision")
        return round(random.uniform(low, high), precision)
    if kind in ("choice", "pick"):
        choices = p.get("choices")
        if isinstance(choices, str):
            choices = [c.strip() for c in choices.split(",") if c.strip()]
        if not choices or not isinstance(choices, list):
            raise ArgumentShapeError("$random choice requires a non-empty list of choices")
        return random.choice(choices)
    if kind in ("bool", "boolean"):
        return random.random() < 0.5
    if kind in ("string", "text"):
        charset = to_text(p.get("chars")) or _ALPHANUMERIC
        return "".join(random.choice(charset) for _ in range(_int(p.get("length", 10), "length")))
    if kind == "hex":
        return "".join(random.choice("0123456789ABCDEF") for _ in range(_int(p.get("length", 10), "length")))
    if kind == "uuid":
        return str(uuid.uuid4())
    if kind == "color":
        return random.choice(_COLORS)
    raise ArgumentShapeError(f"Unknown random type: {kind}")


def register(registry: MacroRegistry) -> None:

    @registry.register("random", params=[value("min"), value("max")])
    def random_macro(args, ctx):
        """Generate random numbers, strings and choices."""
        if isinstance(args, dict):
            return _from_options(args)
        if not isinstance(args, list):
            raise ArgumentShapeError("$random expects bounds or an options object")
        if not args:
            return _random_int(0, 100)
        if len(args) == 1:
            return _random_int(0, _int(args[0], "max"))
        return _random_int(_int(args[0], "min"), _int(args[1], "max"))
