"""
MacroEngine
===========
The core evaluation loop.  Scans a fragment for ``$name[...]`` invocations,
evaluates each one and splices the result back into the text.

For every invocation, left to right:

  1. locate the span (depth/quote aware, see locator.py)
  2. classify the argument tier and parse it into a list / dict / literal
  3. evaluate *value* parameters: nested invocations run first, then
     ``$$var`` references are resolved; *code* parameters stay raw text
  4. dispatch to the registered handler
  5. splice the result (stringified) into the fragment and continue
     scanning after it; handler output is never re-scanned

A fragment that consists of exactly one invocation evaluates to the
handler's raw result (a list from ``$loop``, a bool from ``$equal`` …);
anything else evaluates to text.

When a loop frame becomes interrupted by ``$break`` or ``$continue`` while
a fragment is being evaluated, the remainder of that fragment is skipped.
A fragment entered after the interruption (a ``$try`` finally block, say)
runs to the end.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable

from charmscript.core.config import Settings, get_settings

from .context import ExecutionContext, Sender
from .errors import ArgumentShapeError
from .locator import Invocation, find_invocation, iter_invocations
from .params import ensure_acyclic, format_invocation, parse_arguments
from .registry import MacroRegistry, MacroSpec, macro_registry
from .resolver import resolve_text
from .tiers import Tier, classify
from .values import to_text

logger = logging.getLogger(__name__)


class MacroEngine:
    """
    Evaluate macro source text.

    Usage::

        engine = MacroEngine()
        ctx = engine.new_context(store)
        result = await engine.evaluate("$data[set; k; $random[1, 6]]", ctx)
    """

    def __init__(self, registry: MacroRegistry | None = None, settings: Settings | None = None) -> None:
        self._registry = registry or macro_registry
        self.settings = settings or get_settings()

    @property
    def registry(self) -> MacroRegistry:
        return self._registry

    def new_context(
        self,
        store=None,
        *,
        args: Iterable[str] = (),
        bindings: dict[str, Any] | None = None,
        sender: Sender | None = None,
    ) -> ExecutionContext:
        """Create the context for one top-level evaluation request."""
        return ExecutionContext(self, store, args=tuple(args), bindings=bindings, sender=sender)

    # ----------------------------------------------------------------- public

    async def evaluate(self, fragment: str, ctx: ExecutionContext) -> Any:
        """Evaluate every invocation in *fragment*; see the module docstring."""
        if not fragment:
            return fragment

        inv = find_invocation(fragment)
        if inv is None:
            return fragment

        with ctx.nested(self.settings.max_evaluation_depth):
            if not fragment[:inv.start].strip() and not fragment[inv.end:].strip():
                return await self.invoke(inv, fragment, ctx)

            frame = ctx.current_frame
            entered_interrupted = frame is not None and frame.interrupted
            parts: list[str] = []
            last = 0

            for inv in iter_invocations(fragment):
                parts.append(fragment[last:inv.start])
                parts.append(to_text(await self.invoke(inv, fragment, ctx)))
                last = inv.end
                if frame is not None and frame.interrupted and not entered_interrupted:
                    logger.debug("Loop %s interrupted; skipping rest of fragment", frame.kind.value)
                    return "".join(parts)

            parts.append(fragment[last:])
            return "".join(parts)

    async def evaluate_value(self, leaf: Any, ctx: ExecutionContext, *, raw: bool = False) -> Any:
        """
        What the engine does to a value position: evaluate nested
        invocations, then resolve ``$$`` references.

        With ``raw=False`` the result is always text.  With ``raw=True`` a
        leaf that is a single invocation or a single reference keeps the
        underlying value.
        """
        if not isinstance(leaf, str):
            return leaf
        result = await self.evaluate(leaf, ctx)
        if not isinstance(result, str):
            return result if raw else to_text(result)
        return await resolve_text(result, ctx, raw=raw)

    async def invoke(self, inv: Invocation, source: str, ctx: ExecutionContext) -> Any:
        """Parse, prepare and dispatch a single invocation."""
        spec = self._registry.get(inv.name)
        tier = classify(inv.raw_args)
        args = parse_arguments(inv.raw_args, tier, offset=inv.args_start)
        spec.check_shape(args, tier)

        args = await self._prepare(spec, args, tier, ctx)
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("Dispatching %s (tier %d)", format_invocation(spec.name, args, tier), tier)
        return await self._registry.call(spec, args, ctx, source=inv.text(source))

    # ----------------------------------------------------------------- private

    async def _prepare(self, spec: MacroSpec, args: Any, tier: Tier, ctx: ExecutionContext) -> Any:
        """Evaluate value positions left to right; leave code positions raw."""
        if tier is not Tier.STRUCTURED:
            if isinstance(args, list):
                return [
                    leaf if spec.is_code(i) else await self.evaluate_value(leaf, ctx)
                    for i, leaf in enumerate(args)
                ]
            return {
                key: leaf if spec.is_code(key) else await self.evaluate_value(leaf, ctx)
                for key, leaf in args.items()
            }

        if isinstance(args, list):
            prepared: Any = [
                item if spec.is_code(i) else await self._structured(item, ctx)
                for i, item in enumerate(args)
            ]
        elif isinstance(args, dict):
            prepared = {
                key: item if spec.is_code(key) else await self._structured(item, ctx)
                for key, item in args.items()
            }
        else:
            raise ArgumentShapeError(f"${spec.name} expects an object or array literal")
        return ensure_acyclic(prepared)

    async def _structured(self, node: Any, ctx: ExecutionContext) -> Any:
        if isinstance(node, str):
            return await self.evaluate_value(node, ctx, raw=True)
        if isinstance(node, list):
            return [await self._structured(item, ctx) for item in node]
        if isinstance(node, dict):
            return {key: await self._structured(item, ctx) for key, item in node.items()}
        return node
