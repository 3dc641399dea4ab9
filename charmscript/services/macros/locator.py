"""
Invocation locator
==================
Finds the next ``$name[...]`` span in a piece of text.

A single regular expression cannot match nested brackets, so the argument
span is found by a depth-aware, quote-aware scan:

    $say[He said "a ] b" to $user[name]]
        ^                              ^
        open                           matching close

Rules:
  * ``[`` opens and ``]`` closes; the span ends when depth returns to 0
  * characters inside ``"..."`` (with ``\\`` escapes) are never brackets
  * ``$$name`` is a variable reference, not an invocation
  * the name must be a complete identifier followed directly by ``[``;
    ``x$if[...]`` (``$`` glued to a word) is plain text
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterator

from .errors import MacroSyntaxError
from .tiers import Tier, classify

_NAME = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_VAR_PATH = re.compile(r"(?:\*|\d+|[A-Za-z_]\w*(?:\.\w+)*)")


@dataclass(frozen=True)
class Invocation:
    """One matched ``$name[raw_args]`` occurrence; offsets index the source."""

    name: str
    raw_args: str
    start: int
    end: int

    @property
    def args_start(self) -> int:
        """Offset of the first character after the opening bracket."""
        return self.end - 1 - len(self.raw_args)

    @property
    def tier(self) -> Tier:
        return classify(self.raw_args)

    def text(self, source: str) -> str:
        return source[self.start:self.end]


def find_invocation(text: str, start: int = 0) -> Invocation | None:
    """Return the first invocation at or after *start*, or None."""
    pos = start
    length = len(text)

    while True:
        i = text.find("$", pos)
        if i < 0:
            return None

        if i + 1 < length and text[i + 1] == "$":
            # $$var.path: skip the whole reference
            m = _VAR_PATH.match(text, i + 2)
            pos = m.end() if m else i + 2
            continue

        if i > 0 and (text[i - 1].isalnum() or text[i - 1] == "_"):
            pos = i + 1
            continue

        m = _NAME.match(text, i + 1)
        if not m or m.end() >= length or text[m.end()] != "[":
            pos = i + 1
            continue

        close = _matching_bracket(text, m.end(), i)
        return Invocation(
            name=m.group(0).lower(),
            raw_args=text[m.end() + 1:close],
            start=i,
            end=close + 1,
        )


def iter_invocations(text: str) -> Iterator[Invocation]:
    """Every invocation at the outermost level of *text*, left to right."""
    inv = find_invocation(text)
    while inv is not None:
        yield inv
        inv = find_invocation(text, inv.end)


def _matching_bracket(text: str, open_at: int, origin: int) -> int:
    depth = 0
    in_quote = False
    i = open_at
    length = len(text)

    while i < length:
        c = text[i]
        if in_quote:
            if c == "\\":
                i += 2
                continue
            if c == '"':
                in_quote = False
        elif c == '"':
            in_quote = True
        elif c == "[":
            depth += 1
        elif c == "]":
            depth -= 1
            if depth == 0:
                return i
        i += 1

    raise MacroSyntaxError("Unterminated macro invocation: missing ']'", offset=origin)
