"""
Top-level scanning helpers shared by the tier classifier and the argument
parsers.  "Top level" means depth 0 (outside any ``[]`` or ``{}``) and
outside ``"..."`` string literals.
"""

from __future__ import annotations

from typing import Iterator

_OPENERS = "[{"
_CLOSERS = "]}"


def iter_top_level(text: str) -> Iterator[tuple[int, str]]:
    """Yield ``(index, char)`` for characters at depth 0 and outside quotes.

    Both ``[]`` and ``{}`` nest, so separators inside an inner invocation
    or inside an object literal are never reported.
    """
    depth = 0
    in_quote = False
    escaped = False

    for i, c in enumerate(text):
        if in_quote:
            if escaped:
                escaped = False
            elif c == "\\":
                escaped = True
            elif c == '"':
                in_quote = False
            continue
        if c == '"':
            in_quote = True
        elif c in _OPENERS:
            depth += 1
        elif c in _CLOSERS:
            depth = max(depth - 1, 0)
        elif depth == 0:
            yield i, c


def find_top_level(text: str, chars: str) -> int:
    """Index of the first top-level occurrence of any of *chars*, or -1."""
    for i, c in iter_top_level(text):
        if c in chars:
            return i
    return -1


def split_top_level(text: str, separators: str) -> list[str]:
    """Split *text* on top-level separator characters (pieces untrimmed)."""
    pieces: list[str] = []
    last = 0
    for i, c in iter_top_level(text):
        if c in separators:
            pieces.append(text[last:i])
            last = i + 1
    pieces.append(text[last:])
    return pieces


def closes_at_end(text: str) -> bool:
    """True when the bracket opening *text* is closed by its last character."""
    depth = 0
    in_quote = False
    escaped = False
    last = len(text) - 1

    for i, c in enumerate(text):
        if in_quote:
            if escaped:
                escaped = False
            elif c == "\\":
                escaped = True
            elif c == '"':
                in_quote = False
            continue
        if c == '"':
            in_quote = True
        elif c in _OPENERS:
            depth += 1
        elif c in _CLOSERS:
            depth -= 1
            if depth == 0:
                return i == last
    return False
