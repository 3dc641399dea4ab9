"""
Loop macros
-----------
$loop[times: 3; code: $say[$$index]]
$loop[{"array": ["a", "b"], "code": "$say[$$value]", "parallel": true}]
$foreach[array; code; parallel?]
$while[{"condition": "$$count < 5", "code": "$data[inc; count]", "max_iterations": 50}]
$break[reason?]
$continue[reason?]

Bodies are code: they run once per iteration with these bindings:
  $$index  $$value  $$total  $$array  $$first  $$last  $$iteration
$while exposes $$iteration and $$elapsed.

Each loop collects the per-iteration results in index order.  Sequential
loops stop after the iteration that called $break; the result of that
iteration is kept.  Parallel loops run every iteration on a forked
context, so $break only ends the iteration that issued it.  An error in
one parallel iteration is raised only after every sibling has finished.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
import time
from typing import Any

from .context import LoopFrame, LoopKind
from .errors import ArgumentShapeError, EvaluationLimitError, InvalidControlFlowError
from .macro_control import evaluate_condition
from .params import bind, get_param
from .registry import MacroRegistry, code, value
from .tiers import Tier
from .values import is_truthy, to_number, to_text

logger = logging.getLogger(__name__)

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_-]*$")


# --------------------------------------------------------------------------- helpers

async def as_array(source: Any, ctx) -> list[Any]:
    """
    Coerce a loop source to a list.

    Lists pass through; JSON array text is parsed; a bare identifier names
    a stored list; anything else is split on commas.
    """
    if isinstance(source, (list, tuple)):
        return list(source)
    if isinstance(source, dict):
        return list(source.values())
    if source is None:
        return []

    text = to_text(source).strip()
    if not text:
        return []
    if text.startswith("["):
        try:
            parsed = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ArgumentShapeError(f"Invalid array literal: {exc.msg}") from exc
        if not isinstance(parsed, list):
            raise ArgumentShapeError("Loop array must be a list")
        return parsed
    if _IDENTIFIER.match(text):
        stored = await ctx.store.get(text)
        if isinstance(stored, list):
            return stored
    return [piece.strip() for piece in text.split(",")]


def _iteration_bindings(index: int, item: Any, items: list[Any], kind: LoopKind) -> dict[str, Any]:
    return {
        "index": index,
        "iteration": index + 1,
        "value": item,
        "total": len(items),
        "array": items if kind is LoopKind.ARRAY else None,
        "first": index == 0,
        "last": index == len(items) - 1,
    }


async def run_iterations(ctx, kind: LoopKind, items: list[Any], body: str, parallel: bool = False) -> list[Any]:
    """Run *body* once per item and collect the results in order."""
    if parallel:
        return await _run_parallel(ctx, kind, items, body)

    results: list[Any] = []
    with ctx.loop(kind, total=len(items)) as frame:
        for index, item in enumerate(items):
            frame.begin(index, item)
            with ctx.scope(**_iteration_bindings(index, item, items, kind)):
                results.append(await ctx.evaluate(body))
            if frame.break_requested:
                logger.debug("Loop broken at index %d: %s", index, frame.reason or "no reason")
                break
    return results


async def _run_parallel(ctx, kind: LoopKind, items: list[Any], body: str) -> list[Any]:

    async def iteration(index: int, item: Any) -> Any:
        child = ctx.fork()
        frame = LoopFrame(kind=kind, total=len(items))
        frame.begin(index, item)
        child.loop_stack.append(frame)
        with child.scope(**_iteration_bindings(index, item, items, kind)):
            return await child.evaluate(body)

    outcomes = await asyncio.gather(
        *(iteration(i, item) for i, item in enumerate(items)),
        return_exceptions=True,
    )
    # siblings settle first; the lowest-index failure propagates
    for outcome in outcomes:
        if isinstance(outcome, BaseException):
            raise outcome
    return list(outcomes)


def _flag(raw: Any) -> bool:
    return raw is not None and raw != "" and is_truthy(raw)


def _count(raw: Any, name: str) -> int:
    number = to_number(raw)
    if number is None or number != int(number):
        raise ArgumentShapeError(f"{name} must be a whole number, got {to_text(raw)!r}")
    return int(number)


# --------------------------------------------------------------------------- registration

def register(registry: MacroRegistry) -> None:

    @registry.register(
        "loop",
        params=[
            value("times"),
            value("array"),
            code("code", required=True),
            value("parallel"),
            value("async"),
        ],
        tiers={Tier.KEY_VALUE, Tier.STRUCTURED},
    )
    async def loop_macro(args, ctx):
        """Execute code a number of times or once per array element."""
        p = bind(args, "times", "array", "code", "parallel", "async")
        body = to_text(p["code"])
        parallel = _flag(get_param(p, "parallel", "async", default=None))

        array = p.get("array")
        if array not in (None, ""):
            return await run_iterations(ctx, LoopKind.ARRAY, await as_array(array, ctx), body, parallel)

        times = p.get("times")
        if times in (None, ""):
            raise ArgumentShapeError("$loop requires times or array")
        count = _count(times, "times")
        return await run_iterations(ctx, LoopKind.TIMES, list(range(max(count, 0))), body, parallel)

    @registry.register(
        "foreach",
        params=[value("array", required=True), code("code", required=True), value("parallel")],
    )
    async def foreach_macro(args, ctx):
        """Iterate over the elements of an array."""
        p = bind(args, "array", "code", "parallel")
        items = await as_array(p["array"], ctx)
        return await run_iterations(
            ctx, LoopKind.ARRAY, items, to_text(p["code"]), _flag(p.get("parallel"))
        )

    @registry.register(
        "while",
        params=[
            code("condition", required=True),
            code("code", required=True),
            value("max_iterations"),
            value("timeout"),
        ],
    )
    async def while_macro(args, ctx):
        """Execute code while a condition holds, within iteration and time limits."""
        p = bind(args, "condition", "code", "max_iterations", "timeout")
        settings = ctx.engine.settings
        limit = get_param(p, "max_iterations", "maxIterations", default="")
        limit = settings.while_max_iterations if limit in (None, "") else _count(limit, "max_iterations")
        timeout = to_number(get_param(p, "timeout", default=""))
        if timeout is None:
            timeout = settings.while_timeout_seconds

        condition, body = to_text(p["condition"]), to_text(p["code"])
        results: list[Any] = []
        started = time.monotonic()

        with ctx.loop(LoopKind.WHILE) as frame:
            iteration = 0
            while True:
                elapsed = time.monotonic() - started
                if elapsed > timeout:
                    raise EvaluationLimitError(f"$while timed out after {timeout} seconds")
                # a pending $continue must not cut the condition short
                frame.continue_requested = False
                if not evaluate_condition(await ctx.evaluate_value(condition)):
                    break
                if iteration >= limit:
                    raise EvaluationLimitError(f"$while exceeded maximum iterations ({limit})")

                frame.begin(iteration)
                with ctx.scope(iteration=iteration, index=iteration, elapsed=round(elapsed, 3)):
                    results.append(await ctx.evaluate(body))
                iteration += 1
                if frame.break_requested:
                    break
        return results

    def _interrupt(macro: str, attribute: str):
        async def handler(args, ctx):
            frame = ctx.current_frame
            if frame is None:
                raise InvalidControlFlowError(f"${macro} can only be used inside a loop")
            setattr(frame, attribute, True)
            frame.reason = to_text(args[0]) if args else ""
            return None
        return handler

    registry.register(
        "break",
        params=[value("reason")],
        tiers={Tier.SIMPLE},
        description="Exit from the current loop",
    )(_interrupt("break", "break_requested"))

    registry.register(
        "continue",
        params=[value("reason")],
        tiers={Tier.SIMPLE},
        description="Skip the rest of the current iteration",
    )(_interrupt("continue", "continue_requested"))
