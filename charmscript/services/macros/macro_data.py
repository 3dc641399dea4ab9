"""
Variable macros
---------------
$data[key]                      — get
$data[key; value]               — set
$data[action; key; value?]      — any action below
$data[action: add; key: points; amount: 5]
$data[{"action": "set", "key": "profile", "value": {"name": "Ana"}}]

Actions:
  get set delete exists type length list clear
  add sub mul div inc dec       — numeric; a missing value counts as 0
  append prepend                — lists grow by one item, text is concatenated

Every mutating action returns the stored value.
"""

from __future__ import annotations

import logging
from typing import Any

from .errors import ArgumentShapeError
from .params import bind, get_param
from .registry import MacroRegistry
from .values import number_result, to_number, to_text

logger = logging.getLogger(__name__)

_ALIASES = {
    "subtract": "sub",
    "multiply": "mul",
    "divide": "div",
    "remove": "delete",
    "increment": "inc",
    "decrement": "dec",
}

_ACTIONS = {
    "get", "set", "add", "sub", "mul", "div", "append", "prepend", "delete",
    "exists", "type", "length", "inc", "dec", "list", "clear",
} | set(_ALIASES)

_KEYLESS = {"list", "clear"}


def _normalise(args: Any) -> dict[str, Any]:
    """Map the tier-1 shorthand forms onto ``{action, key, value}``."""
    if isinstance(args, dict):
        return dict(args)
    if not isinstance(args, list) or not args:
        raise ArgumentShapeError("$data requires a key")

    first = to_text(args[0]).lower()
    if first in _ACTIONS and (len(args) > 1 or first in _KEYLESS):
        return bind(args, "action", "key", "value")
    if len(args) == 1:
        return {"action": "get", "key": args[0]}
    return {"action": "set", "key": args[0], "value": args[1]}


def _type_name(value: Any) -> str:
    if value is None:
        return "undefined"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    return "object"


async def _arithmetic(store, key: str, action: str, operand: Any) -> int | float:
    current = to_number(await store.get(key))
    current = 0 if current is None else current
    amount = to_number(operand)
    if amount is None:
        if operand not in (None, ""):
            raise ArgumentShapeError(f"$data {action} needs a number, got {to_text(operand)!r}")
        amount = 1

    if action == "add":
        result = current + amount
    elif action == "sub":
        result = current - amount
    elif action == "mul":
        result = current * amount
    else:
        if amount == 0:
            raise ZeroDivisionError("Cannot divide by zero")
        result = current / amount
    return await store.set(key, number_result(result))


def register(registry: MacroRegistry) -> None:

    @registry.register("data")
    async def data_macro(args, ctx):
        """Read and modify stored variables."""
        p = _normalise(args)
        action = to_text(get_param(p, "action", default="get")).lower() or "get"
        action = _ALIASES.get(action, action)
        key = to_text(p.get("key"))
        store = ctx.store

        if action not in _ACTIONS:
            raise ArgumentShapeError(f"Invalid data action: {action}")
        if not key and action not in _KEYLESS:
            raise ArgumentShapeError("$data requires a key")

        if action == "get":
            return await store.get(key)
        if action == "set":
            return await store.set(key, p.get("value"))
        if action in ("add", "sub", "mul", "div"):
            return await _arithmetic(store, key, action, get_param(p, "amount", "value", default=None))
        if action in ("inc", "dec"):
            return await _arithmetic(store, key, "add" if action == "inc" else "sub", None)
        if action in ("append", "prepend"):
            current = await store.get(key)
            item = p.get("value")
            if isinstance(current, list):
                updated = current + [item] if action == "append" else [item] + current
            elif action == "append":
                updated = to_text(current) + to_text(item)
            else:
                updated = to_text(item) + to_text(current)
            return await store.set(key, updated)
        if action == "delete":
            return await store.delete(key)
        if action == "exists":
            return await store.get(key) is not None
        if action == "type":
            return _type_name(await store.get(key))
        if action == "length":
            current = await store.get(key)
            if current is None:
                return 0
            if isinstance(current, (str, list, dict)):
                return len(current)
            return len(to_text(current))
        if action == "list":
            return await store.list()

        logger.info("Clearing all stored variables")
        return await store.clear()
