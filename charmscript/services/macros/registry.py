"""
MacroRegistry — central store of all registered macro handlers.

Macros can be synchronous or async:
    sync:  def my_macro(args, ctx) -> Any
    async: async def my_macro(args, ctx) -> Any

``args`` is a list (tier 1), a dict (tier 2) or any structured value
(tier 3).  Each registration declares which tiers it accepts and, per
parameter, whether it is a *value* (evaluated by the engine before the
handler runs) or *code* (passed through as raw text for the handler to
evaluate if and when it chooses):

    @macro_registry.register(
        "if",
        params=[value("condition", required=True), code("then"), code("else")],
        tiers={Tier.SIMPLE},
    )
    async def if_macro(args, ctx):
        ...

A parameter named ``"*"`` covers every position or key not declared
explicitly.
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Iterable

from .errors import ArgumentShapeError, ErrorContext, MacroError, MacroRuntimeError, UnknownMacroError
from .tiers import ALL_TIERS, Tier

logger = logging.getLogger(__name__)


MacroHandler = Callable[..., Any | Awaitable[Any]]

WILDCARD = "*"


@dataclass(frozen=True)
class Param:
    name: str
    code: bool = False
    required: bool = False


def value(name: str, required: bool = False) -> Param:
    return Param(name, code=False, required=required)


def code(name: str, required: bool = False) -> Param:
    return Param(name, code=True, required=required)


@dataclass
class MacroSpec:
    name: str
    handler: MacroHandler
    params: tuple[Param, ...] = ()
    tiers: frozenset[Tier] = ALL_TIERS
    is_async: bool = False
    description: str = ""
    _by_name: dict[str, Param] = field(default_factory=dict, repr=False)
    _positional: tuple[Param, ...] = field(default=(), repr=False)
    _wildcard: Param | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        self._by_name = {p.name: p for p in self.params if p.name != WILDCARD}
        self._positional = tuple(p for p in self.params if p.name != WILDCARD)
        self._wildcard = next((p for p in self.params if p.name == WILDCARD), None)

    # ------------------------------------------------------------ parameters

    def param_for(self, slot: int | str) -> Param | None:
        """Declaration governing a tier-1 position or a tier-2/3 key."""
        if isinstance(slot, int):
            if slot < len(self._positional):
                return self._positional[slot]
            return self._wildcard
        return self._by_name.get(slot, self._wildcard)

    def is_code(self, slot: int | str) -> bool:
        param = self.param_for(slot)
        return param is not None and param.code

    def check_shape(self, args: Any, tier: Tier) -> None:
        if tier not in self.tiers:
            accepted = ", ".join(t.label for t in sorted(self.tiers))
            raise ArgumentShapeError(
                f"${self.name} does not accept {tier.label} arguments (accepts: {accepted})"
            )

        if isinstance(args, dict):
            missing = [p.name for p in self._positional if p.required and p.name not in args]
        elif isinstance(args, list):
            missing = [
                p.name for i, p in enumerate(self._positional)
                if p.required and (i >= len(args) or args[i] == "")
            ]
        else:
            raise ArgumentShapeError(f"${self.name} expects an object or array literal")

        if missing:
            raise ArgumentShapeError(f"${self.name} is missing required argument(s): {', '.join(missing)}")

    def describe(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "tiers": sorted(int(t) for t in self.tiers),
            "params": [
                {"name": p.name, "kind": "code" if p.code else "value", "required": p.required}
                for p in self.params
            ],
            "description": self.description,
        }


class MacroRegistry:
    def __init__(self) -> None:
        self._specs: dict[str, MacroSpec] = {}

    # ---------------------------------------------------------------- register

    def register(
        self,
        name: str,
        *,
        params: Iterable[Param] = (),
        tiers: Iterable[Tier] = ALL_TIERS,
        description: str | None = None,
    ):
        """
        Decorator that registers a function as a macro handler.

        Usage::

            @macro_registry.register("upper", params=[value("text")])
            def upper_macro(args, ctx):
                return " ".join(args).upper()
        """
        def decorator(fn: MacroHandler) -> MacroHandler:
            key = name.lower()
            doc = (fn.__doc__ or "").strip().splitlines()
            self._specs[key] = MacroSpec(
                name=key,
                handler=fn,
                params=tuple(params),
                tiers=frozenset(tiers),
                is_async=inspect.iscoroutinefunction(fn),
                description=description or (doc[0] if doc else ""),
            )
            logger.debug("Registered macro: %s (async=%s)", key, self._specs[key].is_async)
            return fn
        return decorator

    def unregister(self, name: str) -> bool:
        return self._specs.pop(name.lower(), None) is not None

    # ------------------------------------------------------------------ lookup

    def has(self, name: str) -> bool:
        return name.lower() in self._specs

    def get(self, name: str) -> MacroSpec:
        spec = self._specs.get(name.lower())
        if spec is None:
            raise UnknownMacroError(name)
        return spec

    async def call(self, spec: MacroSpec, args: Any, ctx, source: str = "") -> Any:
        """
        Invoke a registered macro handler (sync or async).

        Engine errors pass through untouched; anything else the handler
        raises is wrapped in MacroRuntimeError with an ErrorContext.
        """
        try:
            if spec.is_async:
                return await spec.handler(args, ctx)
            return spec.handler(args, ctx)
        except MacroError:
            raise
        except Exception as exc:
            logger.warning("Macro $%s raised %s: %s", spec.name, type(exc).__name__, exc)
            raise MacroRuntimeError(spec.name, ErrorContext.from_exception(exc, source)) from exc

    # ---------------------------------------------------------- introspection

    def registered_names(self) -> list[str]:
        return sorted(self._specs.keys())

    def describe(self) -> list[dict[str, Any]]:
        return [self._specs[name].describe() for name in self.registered_names()]


# Singleton shared across the application
macro_registry = MacroRegistry()
