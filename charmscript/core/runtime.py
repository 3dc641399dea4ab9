#!/usr/bin/env python
#
#
# -----------------------------------------------------------------------------
"""
Application runtime — the engine, variable store and command manager shared
by every request, plus the FastAPI dependency that hands them out.
"""
# -----------------------------------------------------------------------------

from __future__ import annotations

import logging
from dataclasses import dataclass

from fastapi import Request

from charmscript.core.config import Settings, get_settings
from charmscript.services.commands import CommandManager
from charmscript.services.macros import MacroEngine, MacroRegistry, register_all_builtins
from charmscript.services.variables import VariableStore, create_store

logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------

@dataclass
class Runtime:
    engine: MacroEngine
    store: VariableStore
    commands: CommandManager


# -----------------------------------------------------------------------------

async def build_runtime(settings: Settings | None = None) -> Runtime:
    """Register the built-in macros, open the store and load commands."""
    settings = settings or get_settings()

    registry = MacroRegistry()
    register_all_builtins(registry)
    engine = MacroEngine(registry, settings)

    store = await create_store(settings)
    commands = CommandManager(engine, store, prefix=settings.command_prefix)
    if settings.commands_dir is not None:
        await commands.load_directory(settings.commands_dir)

    logger.info(
        "Runtime ready: %d macros, %s store, %d commands",
        len(registry.registered_names()),
        settings.variable_store,
        len(commands.list()),
    )
    return Runtime(engine=engine, store=store, commands=commands)


# -----------------------------------------------------------------------------

def get_runtime(request: Request) -> Runtime:
    return request.app.state.runtime


# -----------------------------------------------------------------------------
