"""
Macro engine errors
===================
Every error the engine raises derives from MacroError.  Handler-thrown
domain errors are wrapped into MacroRuntimeError, which carries an
ErrorContext for a later ``$try`` catch fragment.
"""

from __future__ import annotations

import traceback
from dataclasses import dataclass


@dataclass(frozen=True)
class ErrorContext:
    """What a catch fragment sees as ``$$error``."""

    message: str
    stack: str
    source_fragment: str
    kind: str

    def __str__(self) -> str:
        return self.message

    @classmethod
    def from_exception(cls, exc: BaseException, fragment: str = "") -> "ErrorContext":
        if isinstance(exc, MacroRuntimeError):
            return exc.context
        return cls(
            message=str(exc),
            stack="".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
            source_fragment=fragment,
            kind=getattr(exc, "kind", None) or type(exc).__name__,
        )

    def as_bindings(self) -> dict:
        return {"error": self}


class MacroError(Exception):
    """Base class for everything the engine raises."""


class MacroSyntaxError(MacroError):
    """Malformed invocation text or malformed tier-3 literal."""

    def __init__(self, message: str, offset: int | None = None) -> None:
        if offset is not None:
            message = f"{message} (at offset {offset})"
        super().__init__(message)
        self.offset = offset


class ArgumentShapeError(MacroError):
    """Arguments do not fit the tier or parameters a macro declares."""


class UnknownMacroError(MacroError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown macro: ${name}")
        self.name = name


class InvalidControlFlowError(MacroError):
    """break/continue/elseif/else used outside their enclosing construct."""


class EvaluationLimitError(MacroError):
    """Nesting depth or loop iteration/time limit exceeded."""


class MacroRuntimeError(MacroError):
    """A handler raised a domain error while executing."""

    def __init__(self, macro: str, context: ErrorContext) -> None:
        super().__init__(context.message)
        self.macro = macro
        self.context = context
