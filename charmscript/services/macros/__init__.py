"""
Macro subsystem — public API.
"""

from .registry import MacroRegistry, macro_registry, code, value
from .engine import MacroEngine
from .context import ExecutionContext, LoopFrame, LoopKind
from .errors import (
    ArgumentShapeError,
    ErrorContext,
    EvaluationLimitError,
    InvalidControlFlowError,
    MacroError,
    MacroRuntimeError,
    MacroSyntaxError,
    UnknownMacroError,
)
from .tiers import Tier
from .builtins import register_all_builtins

__all__ = [
    "MacroRegistry",
    "macro_registry",
    "code",
    "value",
    "MacroEngine",
    "ExecutionContext",
    "LoopFrame",
    "LoopKind",
    "ArgumentShapeError",
    "ErrorContext",
    "EvaluationLimitError",
    "InvalidControlFlowError",
    "MacroError",
    "MacroRuntimeError",
    "MacroSyntaxError",
    "UnknownMacroError",
    "Tier",
    "register_all_builtins",
]
