"""
$math[add, 1, 2, 3]                                   → 6
$math[div, 10, 4]                                     → 2.5
$math[{"operation": "avg", "values": [1, 2], "precision": 1}]
$math[operation: sqrt; values: 16]

Operations: add sub mul div pow sqrt abs round floor ceil min max avg sum
mod sin cos tan log log10 (symbols + - * / ^ % are accepted too).
"""

from __future__ import annotations

import math
from functools import reduce
from typing import Any

from .errors import ArgumentShapeError
from .params import get_param
from .registry import MacroRegistry, value
from .values import number_result, to_number, to_text

_ALIASES = {
    "+": "add", "-": "sub", "*": "mul", "/": "div", "^": "pow", "%": "mod",
    "subtract": "sub", "multiply": "mul", "divide": "div", "power": "pow",
    "average": "avg",
}


def _divide(a: float, b: float) -> float:
    if b == 0:
        raise ZeroDivisionError("Division by zero")
    return a / b


def _modulo(a: float, b: float) -> float:
    if b == 0:
        raise ZeroDivisionError("Division by zero")
    return math.fmod(a, b)


_VARIADIC = {
    "add": sum,
    "sum": sum,
    "sub": lambda v: reduce(lambda a, b: a - b, v),
    "mul": math.prod,
    "div": lambda v: reduce(_divide, v),
    "min": min,
    "max": max,
    "avg": lambda v: sum(v) / len(v),
}

_UNARY = {
    "sqrt": math.sqrt,
    "abs": abs,
    "round": lambda x: math.floor(x + 0.5),
    "floor": math.floor,
    "ceil": math.ceil,
    "sin": math.sin,
    "cos": math.cos,
    "tan": math.tan,
    "log": math.log,
    "log10": math.log10,
}

_BINARY = {
    "pow": math.pow,
    "mod": _modulo,
}


def calculate(operation: str, values: list[Any], precision: int | None = 2) -> int | float:
    op = operation.strip().lower()
    op = _ALIASES.get(op, op)

    numbers = []
    for raw in values:
        number = to_number(raw)
        if number is None:
            raise ArgumentShapeError(f"$math value is not a number: {to_text(raw)!r}")
        numbers.append(number)
    if not numbers:
        raise ArgumentShapeError("$math requires at least one value")

    if op in _VARIADIC:
        result = _VARIADIC[op](numbers)
    elif op in _UNARY:
        result = _UNARY[op](numbers[0])
    elif op in _BINARY:
        if len(numbers) < 2:
            raise ArgumentShapeError(f"$math {op} requires two values")
        result = _BINARY[op](numbers[0], numbers[1])
    else:
        raise ArgumentShapeError(f"Unknown math operation: {operation}")
    return number_result(result, precision)


def register(registry: MacroRegistry) -> None:

    @registry.register("math", params=[value("operation", required=True), value("*")])
    def math_macro(args, ctx):
        """Mathematical operations and calculations."""
        if isinstance(args, list):
            return calculate(to_text(args[0]), args[1:])

        values = get_param(args, "values", default=[])
        if not isinstance(values, list):
            values = [v.strip() for v in to_text(values).split(",")]
        precision = to_number(get_param(args, "precision", default=2))
        return calculate(to_text(args["operation"]), values, None if precision is None else int(precision))
