"""
Messaging and utility macros
----------------------------
$say[Hello $$1]                           — send a message to the channel
$say[{"content": "Hi", "embed": {...}}]   — structured payload
$log[message]  /  $log[level; message]  /  $log[level: warn; message: ...]
$wait[250ms]  /  $wait[2s]  /  $wait[1m]  /  $wait[1.5]

$say records every message on the context and forwards it to the sender
attached to the request, if any.  $wait is capped by ``wait_max_seconds``.
"""

from __future__ import annotations

import asyncio
import logging
import re

from .errors import ArgumentShapeError
from .params import bind, get_param
from .registry import MacroRegistry, value
from .values import to_text

logger = logging.getLogger(__name__)

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "fatal": logging.CRITICAL,
    "critical": logging.CRITICAL,
}

_DURATION = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(ms|s|m|h)?\s*$", re.IGNORECASE)

_UNIT_SECONDS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


def parse_duration(text: str) -> float:
    """Seconds in ``250ms``, ``2s``, ``1m``, ``1h`` or a bare number of seconds."""
    m = _DURATION.match(text)
    if not m:
        raise ArgumentShapeError(f"Invalid duration: {text!r}")
    unit = (m.group(2) or "s").lower()
    return float(m.group(1)) * _UNIT_SECONDS[unit]


def register(registry: MacroRegistry) -> None:

    @registry.register("say", params=[value("*")])
    async def say_macro(args, ctx):
        """Send a message."""
        if isinstance(args, list):
            message = ", ".join(to_text(a) for a in args)
        else:
            message = args
        if message in ("", None, {}):
            raise ArgumentShapeError("$say requires message content")
        await ctx.send(message)
        return None

    @registry.register("log", params=[value("level"), value("message"), value("*")])
    def log_macro(args, ctx):
        """Write a message to the application log."""
        if isinstance(args, list):
            if len(args) > 1 and to_text(args[0]).lower() in _LEVELS:
                p = {"level": args[0], "message": ", ".join(to_text(a) for a in args[1:])}
            else:
                p = {"level": "info", "message": ", ".join(to_text(a) for a in args)}
        else:
            p = bind(args, "message")

        level = to_text(get_param(p, "level", default="info")).lower() or "info"
        if level not in _LEVELS:
            raise ArgumentShapeError(f"Invalid log level: {level}")
        message = to_text(get_param(p, "message", default=""))
        data = p.get("data")
        if data is not None:
            message = f"{message} {to_text(data)}"
        logger.log(_LEVELS[level], "[macro] %s", message)
        return None

    @registry.register("wait", params=[value("duration")])
    async def wait_macro(args, ctx):
        """Pause execution for a duration."""
        p = bind(args, "duration")
        seconds = parse_duration(to_text(get_param(p, "duration", default="1s")) or "1s")
        limit = ctx.engine.settings.wait_max_seconds
        if seconds > limit:
            logger.warning("$wait of %.3fs capped at %.3fs", seconds, limit)
            seconds = limit
        await asyncio.sleep(seconds)
        return None
