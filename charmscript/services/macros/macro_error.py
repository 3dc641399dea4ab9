"""
Error-handling macros
---------------------
$try[{"code": "$data[div; x; 0]", "catch": "$say[Error: $$error]", "finally": "$say[done]"}]
$try[code: ...; catch: ...; finally: ...]
$throw[message]
$throw[{"message": "Invalid input", "kind": "E001", "field": "age"}]

Inside ``catch`` the failure is bound to ``$$error``; its text is the
message and ``$$error.message``, ``$$error.kind``, ``$$error.stack`` and
``$$error.source_fragment`` are available.  Without a ``catch`` the error
propagates after ``finally`` has run.
"""

from __future__ import annotations

import logging
from typing import Any

from .errors import ErrorContext
from .params import bind
from .registry import MacroRegistry, code, value
from .values import to_text

logger = logging.getLogger(__name__)


class ThrownError(Exception):
    """Error raised deliberately by ``$throw``."""

    def __init__(self, message: str, kind: str | None = None, data: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.kind = kind or "ThrownError"
        self.data = data or {}


def register(registry: MacroRegistry) -> None:

    @registry.register(
        "try",
        params=[code("code", required=True), code("catch"), code("finally")],
    )
    async def try_macro(args, ctx):
        """Execute code with error handling."""
        p = bind(args, "code", "catch", "finally")
        body = to_text(p["code"])
        catch_code = to_text(p.get("catch"))
        finally_code = to_text(p.get("finally"))

        try:
            return await ctx.evaluate(body)
        except Exception as exc:
            if not catch_code:
                raise
            error = ErrorContext.from_exception(exc, body)
            logger.info("$try caught %s: %s", error.kind, error.message)
            with ctx.scope(**error.as_bindings()):
                return await ctx.evaluate(catch_code)
        finally:
            if finally_code:
                await ctx.evaluate(finally_code)

    @registry.register("throw", params=[value("message"), value("*")])
    def throw_macro(args, ctx):
        """Raise a custom error."""
        if isinstance(args, dict):
            data = {k: v for k, v in args.items() if k not in ("message", "kind", "code")}
            kind = args.get("kind") or args.get("code")
            raise ThrownError(to_text(args.get("message")) or "Unknown error", to_text(kind) or None, data)
        if isinstance(args, list):
            raise ThrownError(", ".join(to_text(a) for a in args) or "Unknown error")
        raise ThrownError(to_text(args) or "Unknown error")
