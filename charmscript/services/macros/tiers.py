"""
Tier classifier
---------------
Three argument grammars share the ``$name[...]`` syntax:

  1  SIMPLE      $command[arg1, arg2; arg3]
  2  KEY_VALUE   $command[key: value; key2: value2]
  3  STRUCTURED  $command[{"key": "value", "list": [1, 2]}]

Only top-level characters are inspected, so a colon or brace inside an
inner invocation's own arguments never changes the outer tier.

Known ambiguity: a tier-1 argument that happens to contain a colon
(``$say[meet at 10:30]``) is classified as tier 2.
"""

from __future__ import annotations

from enum import IntEnum

from .scanner import closes_at_end, find_top_level


class Tier(IntEnum):
    SIMPLE = 1
    KEY_VALUE = 2
    STRUCTURED = 3

    @property
    def label(self) -> str:
        return _LABELS[self]


_LABELS = {
    Tier.SIMPLE: "Simple",
    Tier.KEY_VALUE: "Key-Value",
    Tier.STRUCTURED: "Structured",
}

ALL_TIERS = frozenset(Tier)


def classify(raw_args: str) -> Tier:
    """Decide which grammar applies to *raw_args* without modifying it."""
    span = raw_args.strip()
    if span.startswith("{"):
        return Tier.STRUCTURED
    if span.startswith("[") and closes_at_end(span):
        return Tier.STRUCTURED
    if find_top_level(span, ":") >= 0:
        return Tier.KEY_VALUE
    return Tier.SIMPLE
