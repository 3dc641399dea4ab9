"""
Built-in macro registrations.
Call register_all_builtins() once at application startup.
"""

from .registry import MacroRegistry, macro_registry
from . import (
    macro_control,
    macro_loop,
    macro_error,
    macro_data,
    macro_random,
    macro_math,
    macro_message,
)


def register_all_builtins(registry: MacroRegistry | None = None) -> None:
    """Register every built-in macro with *registry* (the shared one by default)."""
    registry = registry or macro_registry
    macro_control.register(registry)
    macro_loop.register(registry)
    macro_error.register(registry)
    macro_data.register(registry)
    macro_random.register(registry)
    macro_math.register(registry)
    macro_message.register(registry)
