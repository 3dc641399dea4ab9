"""
Conditional macros
------------------
$if[condition; then?; else?]          — sets the chain flag after its branch
$elseif[condition; code]              — runs only when the chain flag is false
$else[code]                           — runs only when the chain flag is false;
                                        ends the chain
$condition[{"left": .., "operator": .., "right": .., "then": .., "else": ..}]
$equal[a; b; then?; else?]
$greater[a; b; then?; else?]
$less[a; b; then?; else?]
$switch[value: x; case1: code; default: code]
$switch[{"value": "x", "cases": {"case1": "code", "default": "code"}}]

Condition grammar (``if`` / ``elseif``):
  a == b   a != b   a === b   a !== b   a > b   a >= b   a < b   a <= b
  a includes b   a matches regex   a startsWith b   a endsWith b
  clauses joined with && and ||      bare value → truthiness

Then/else/case bodies are code: only the branch that is taken runs.
"""

from __future__ import annotations

import re
from typing import Any

from .errors import ArgumentShapeError, InvalidControlFlowError
from .params import bind, get_param
from .registry import MacroRegistry, code, value
from .tiers import Tier
from .values import is_truthy, to_number, to_text

_COMPARISON = re.compile(
    r"^(?P<left>.*?)\s*"
    r"(?P<op>===|!==|==|!=|>=|<=|>|<|\bincludes\b|\bmatches\b|\bstartsWith\b|\bendsWith\b)"
    r"\s*(?P<right>.*)$",
    re.DOTALL,
)

_OPERATOR_ALIASES = {
    "equals": "==",
    "notequals": "!=",
    "greater": ">",
    "greaterorequals": ">=",
    "less": "<",
    "lessorequals": "<=",
    "startswith": "startsWith",
    "endswith": "endsWith",
}


# --------------------------------------------------------------------------- comparison

def compare(left: Any, operator: str, right: Any) -> bool:
    """Apply a comparison operator; numeric when both sides are numbers."""
    op = _OPERATOR_ALIASES.get(operator.lower(), operator)
    lnum, rnum = to_number(left), to_number(right)
    numeric = lnum is not None and rnum is not None
    ltext, rtext = to_text(left), to_text(right)

    if op == "===":
        return ltext == rtext
    if op == "!==":
        return ltext != rtext
    if op == "==":
        return lnum == rnum if numeric else ltext == rtext
    if op == "!=":
        return lnum != rnum if numeric else ltext != rtext
    if op in (">", ">=", "<", "<="):
        a, b = (lnum, rnum) if numeric else (ltext, rtext)
        return {">": a > b, ">=": a >= b, "<": a < b, "<=": a <= b}[op]
    if op == "includes":
        return rtext in ltext
    if op == "matches":
        return re.search(rtext, ltext) is not None
    if op == "startsWith":
        return ltext.startswith(rtext)
    if op == "endsWith":
        return ltext.endswith(rtext)
    raise ArgumentShapeError(f"Invalid operator: {operator}")


def evaluate_condition(condition: Any) -> bool:
    """Evaluate the ``if`` condition grammar against already-resolved text."""
    if not isinstance(condition, str):
        return is_truthy(condition)
    return any(
        all(_clause(part) for part in branch.split("&&"))
        for branch in condition.split("||")
    )


def _clause(text: str) -> bool:
    m = _COMPARISON.match(text.strip())
    if not m:
        return is_truthy(_unquote(text))
    return compare(_unquote(m.group("left")), m.group("op"), _unquote(m.group("right")))


def _unquote(text: str) -> str:
    text = text.strip()
    if len(text) >= 2 and text[0] == text[-1] and text[0] in "\"'":
        return text[1:-1]
    return text


async def _branch(ctx, outcome: bool, then_code: Any, else_code: Any) -> Any:
    """Run the taken branch; with no branch given, the outcome is the result."""
    if outcome and then_code:
        return await ctx.evaluate(then_code)
    if not outcome and else_code:
        return await ctx.evaluate(else_code)
    if not then_code and not else_code:
        return outcome
    return None


# --------------------------------------------------------------------------- registration

def register(registry: MacroRegistry) -> None:

    @registry.register(
        "if",
        params=[value("condition", required=True), code("then"), code("else")],
        tiers={Tier.SIMPLE},
    )
    async def if_macro(args, ctx):
        """Conditional execution; starts a new if/elseif/else chain."""
        p = bind(args, "condition", "then", "else")
        outcome = evaluate_condition(p["condition"])
        result = await _branch(ctx, outcome, p.get("then"), p.get("else"))
        ctx.last_condition = outcome
        return result

    @registry.register(
        "elseif",
        params=[code("condition", required=True), code("code")],
        tiers={Tier.SIMPLE},
    )
    async def elseif_macro(args, ctx):
        """Test another condition when the previous one was false."""
        if ctx.last_condition is None:
            raise InvalidControlFlowError("$elseif must follow $if or $elseif")
        if ctx.last_condition is True:
            return None

        p = bind(args, "condition", "code")
        outcome = evaluate_condition(await ctx.evaluate_value(p["condition"]))
        result = await ctx.evaluate(p["code"]) if outcome and p.get("code") else None
        ctx.last_condition = outcome
        return result

    @registry.register("else", params=[code("code")], tiers={Tier.SIMPLE})
    async def else_macro(args, ctx):
        """Execute code when the previous condition was false."""
        if ctx.last_condition is None:
            raise InvalidControlFlowError("$else must follow $if or $elseif")
        run = ctx.last_condition is False
        ctx.last_condition = None
        if run and args:
            return await ctx.evaluate(args[0])
        return None

    @registry.register(
        "condition",
        params=[value("left"), value("operator"), value("right"), code("then"), code("else")],
        tiers={Tier.KEY_VALUE, Tier.STRUCTURED},
    )
    async def condition_macro(args, ctx):
        """General comparison with optional then/else code."""
        p = bind(args, "left", "operator", "right", "then", "else")
        operator = to_text(get_param(p, "operator", default=""))
        if operator:
            outcome = compare(p.get("left"), operator, p.get("right"))
        else:
            outcome = is_truthy(p.get("left"))
        result = await _branch(ctx, outcome, p.get("then"), p.get("else"))
        ctx.last_condition = outcome
        return result

    def _shorthand(name: str, operator: str, summary: str) -> None:
        @registry.register(
            name,
            params=[value("a", required=True), value("b", required=True), code("then"), code("else")],
            tiers={Tier.SIMPLE},
            description=summary,
        )
        async def shorthand_macro(args, ctx):
            p = bind(args, "a", "b", "then", "else")
            outcome = compare(p["a"], operator, p["b"])
            result = await _branch(ctx, outcome, p.get("then"), p.get("else"))
            ctx.last_condition = outcome
            return result

    _shorthand("equal", "==", "True when both values are equal")
    _shorthand("greater", ">", "True when the first value is greater")
    _shorthand("less", "<", "True when the first value is smaller")

    @registry.register(
        "switch",
        params=[value("value", required=True), code("cases"), code("*")],
        tiers={Tier.KEY_VALUE, Tier.STRUCTURED},
    )
    async def switch_macro(args, ctx):
        """Run the case whose key equals the value, else ``default``."""
        if not isinstance(args, dict):
            raise ArgumentShapeError("$switch expects key/value arguments or an object literal")
        cases = args.get("cases")
        if cases is None:
            cases = {k: v for k, v in args.items() if k != "value"}
        if not isinstance(cases, dict):
            raise ArgumentShapeError("$switch cases must be a mapping")

        key = to_text(args["value"])
        if key in cases:
            return await ctx.evaluate(to_text(cases[key]))
        if "default" in cases:
            return await ctx.evaluate(to_text(cases["default"]))
        return None
