"""
Tiered argument parser
======================
Turns the raw span inside ``$name[...]`` into handler arguments.

Tier 1 — positional
-------------------
  a, b; c               → ["a", "b", "c"]
  (empty)               → []

Tier 2 — key/value
------------------
  key: value; k2: v2    → {"key": "value", "k2": "v2"}
  piece without ':'     → ignored
  duplicate key         → last one wins

Tier 3 — structured literal
---------------------------
  {"times": 3, "code": "$say[hi]"}   → dict
  ["a", "b"]                         → list

Embedded invocations such as ``$random[1,10]`` are kept verbatim in every
tier; the engine decides later which of them to evaluate.
"""

from __future__ import annotations

import json
from typing import Any

from .errors import ArgumentShapeError, MacroSyntaxError
from .scanner import find_top_level, split_top_level
from .tiers import Tier, classify


def parse_arguments(raw: str, tier: Tier | None = None, offset: int = 0) -> Any:
    """
    Parse *raw* with the grammar of *tier* (classified when omitted).

    *offset* is where *raw* starts in the enclosing source; syntax errors
    report positions relative to that source.
    """
    if tier is None:
        tier = classify(raw)
    if tier is Tier.SIMPLE:
        return parse_simple(raw)
    if tier is Tier.KEY_VALUE:
        return parse_key_value(raw)
    return parse_structured(raw, offset)


def parse_simple(raw: str) -> list[str]:
    if not raw or not raw.strip():
        return []
    return [piece.strip() for piece in split_top_level(raw, ",;")]


def parse_key_value(raw: str) -> dict[str, str]:
    params: dict[str, str] = {}
    if not raw or not raw.strip():
        return params

    for piece in split_top_level(raw, ";"):
        colon = find_top_level(piece, ":")
        if colon < 0:
            continue
        key = piece[:colon].strip()
        if not key:
            continue
        params[key] = piece[colon + 1:].strip()
    return params


def parse_structured(raw: str, offset: int = 0) -> Any:
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise MacroSyntaxError(f"Invalid structured literal: {exc.msg}", offset=offset + exc.pos) from exc


# --------------------------------------------------------------------------- formatting

def format_structured(value: Any) -> str:
    """Serialise a tier-3 value for diagnostics; JSON values re-parse to an equal value."""
    return json.dumps(value, ensure_ascii=False, sort_keys=True, default=str)


def format_invocation(name: str, args: Any, tier: Tier) -> str:
    """Rebuild ``$name[...]`` source text from parsed arguments."""
    if tier is Tier.SIMPLE:
        body = "; ".join(str(a) for a in args)
    elif tier is Tier.KEY_VALUE:
        body = "; ".join(f"{k}: {v}" for k, v in args.items())
    else:
        body = format_structured(args)
    return f"${name}[{body}]"


# --------------------------------------------------------------------------- validation

def ensure_acyclic(value: Any) -> Any:
    """Raise ArgumentShapeError if *value* contains a reference cycle."""
    active: set[int] = set()

    def walk(node: Any) -> None:
        if isinstance(node, dict):
            children = list(node.values())
        elif isinstance(node, (list, tuple)):
            children = list(node)
        else:
            return
        marker = id(node)
        if marker in active:
            raise ArgumentShapeError("Structured argument contains a cycle")
        active.add(marker)
        for child in children:
            walk(child)
        active.discard(marker)

    walk(value)
    return value


# --------------------------------------------------------------------------- handler helpers

def bind(args: Any, *names: str) -> dict[str, Any]:
    """
    Give handler arguments names regardless of tier.

    A tier-1 list is zipped against *names* in order; a mapping is returned
    as a plain dict so handlers can treat every tier alike::

        p = bind(args, "condition", "then", "else")
    """
    if isinstance(args, dict):
        return dict(args)
    if isinstance(args, (list, tuple)):
        return dict(zip(names, args))
    return {names[0]: args} if names else {}


def get_param(params: dict[str, Any], *keys: str, default: Any = "") -> Any:
    """
    Retrieve the first matching key from params.

    The first key in *keys* is the canonical name; subsequent keys are
    aliases.  Falls back to *default* if nothing matches.
    """
    for key in keys:
        if key in params:
            return params[key]
    return default
