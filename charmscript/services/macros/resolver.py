"""
Variable resolver
=================
Expands ``$$path.to.value`` references against the execution context.

Lookup order for the first path segment:
  1. ambient bindings (``value``, ``index``, ``error`` … set by loops/try)
  2. the persistent variable store

Special forms:
  $$1, $$2 …   — positional request arguments (1-based)
  $$*          — all request arguments joined by a space

Remaining segments traverse mappings (by key), sequences (by numeric index)
and plain objects (by public attribute).  An absent value anywhere on the
path becomes an empty string; resolution itself never raises.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

from .values import to_text

if TYPE_CHECKING:
    from .context import ExecutionContext

_REFERENCE = re.compile(r"\$\$(\*|\d+|[A-Za-z_]\w*(?:\.\w+)*)")

_MISSING = object()


async def lookup(path: str, ctx: "ExecutionContext") -> Any:
    """Return the value at *path*, or None when any segment is absent."""
    head, *rest = path.split(".")

    if head == "*":
        value: Any = " ".join(ctx.args)
    elif head.isdigit():
        position = int(head) - 1
        value = ctx.args[position] if 0 <= position < len(ctx.args) else None
    elif head in ctx.bindings:
        value = ctx.bindings[head]
    else:
        value = await ctx.store.get(head)

    for segment in rest:
        if value is None:
            return None
        value = _step(value, segment)
    return value


def _step(value: Any, segment: str) -> Any:
    if isinstance(value, Mapping):
        return value.get(segment)
    if isinstance(value, (str, bytes)):
        return None
    if isinstance(value, Sequence):
        if segment.isdigit() and int(segment) < len(value):
            return value[int(segment)]
        return None
    if segment.startswith("_"):
        return None
    found = getattr(value, segment, _MISSING)
    return None if found is _MISSING or callable(found) else found


async def resolve_text(text: str, ctx: "ExecutionContext", *, raw: bool = False) -> Any:
    """
    Substitute every reference in *text*.

    With ``raw=True`` a string that is exactly one reference returns the
    referenced value itself (list, dict, number) instead of its text.
    """
    if "$$" not in text:
        return text

    if raw:
        whole = _REFERENCE.fullmatch(text.strip())
        if whole:
            value = await lookup(whole.group(1), ctx)
            return "" if value is None else value

    parts: list[str] = []
    last = 0
    for m in _REFERENCE.finditer(text):
        parts.append(text[last:m.start()])
        parts.append(to_text(await lookup(m.group(1), ctx)))
        last = m.end()
    parts.append(text[last:])
    return "".join(parts)

