#!/usr/bin/env python
#
#
# -----------------------------------------------------------------------------
"""
Command manager
===============
Named pieces of macro code that a chat message can trigger.

    manager = CommandManager(engine, store)
    manager.register({"name": "roll", "code": "$say[You rolled $random[1, 6]]"})
    result = await manager.handle_message("!roll")

Every run gets its own ExecutionContext.  Inside the command code:

    $$1, $$2 …   positional arguments
    $$*          all arguments joined by a space
    $$command    the command name
    $$args       the argument list
"""
# -----------------------------------------------------------------------------

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable, Optional

import aiofiles
from pydantic import ValidationError

from charmscript.core.config import get_settings
from charmscript.schemas import Command, CommandResult
from charmscript.services.macros import MacroEngine
from charmscript.services.macros.context import Sender

logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------

class CommandNotFoundError(LookupError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Command '{name}' not found")
        self.name = name


# -----------------------------------------------------------------------------

class CommandManager:

    def __init__(self, engine: MacroEngine, store=None, prefix: str | None = None) -> None:
        self.engine = engine
        self.store = store
        self.prefix = prefix if prefix is not None else get_settings().command_prefix
        self._commands: dict[str, Command] = {}
        self._aliases: dict[str, str] = {}

    # ── Registration ───────────────────────────────────────────────────────

    def register(self, command: Command | dict[str, Any]) -> Command:
        if not isinstance(command, Command):
            command = Command.model_validate(command)

        if command.name in self._commands:
            self.unregister(command.name)
        self._commands[command.name] = command
        for alias in command.aliases:
            self._aliases[alias] = command.name
        logger.debug("Registered command: %s (aliases=%s)", command.name, command.aliases)
        return command

    def unregister(self, name: str) -> bool:
        command = self._commands.pop(name.lower(), None)
        if command is None:
            return False
        for alias in [a for a, target in self._aliases.items() if target == command.name]:
            del self._aliases[alias]
        return True

    def get(self, name: str) -> Optional[Command]:
        key = name.lower()
        return self._commands.get(key) or self._commands.get(self._aliases.get(key, ""))

    def list(self) -> list[Command]:
        return [self._commands[name] for name in sorted(self._commands)]

    # ── Loading ────────────────────────────────────────────────────────────

    async def load_directory(self, path: Path | str) -> list[Command]:
        """Register every command defined in ``*.json`` files under *path*."""
        directory = Path(path)
        if not directory.is_dir():
            raise FileNotFoundError(f"Command directory not found: {directory}")

        loaded: list[Command] = []
        for file in sorted(directory.glob("*.json")):
            async with aiofiles.open(file, "r", encoding="utf-8") as f:
                raw = await f.read()
            try:
                data = json.loads(raw)
            except json.JSONDecodeError as exc:
                logger.warning("Skipping %s: invalid JSON (%s)", file.name, exc)
                continue

            for entry in data if isinstance(data, list) else [data]:
                try:
                    loaded.append(self.register(entry))
                except ValidationError as exc:
                    logger.warning("Skipping invalid command in %s: %s", file.name, exc)

        logger.info("Loaded %d command(s) from %s", len(loaded), directory)
        return loaded

    # ── Execution ──────────────────────────────────────────────────────────

    async def run(
        self,
        name: str,
        args: Iterable[str] = (),
        *,
        store=None,
        sender: Sender | None = None,
        bindings: dict[str, Any] | None = None,
    ) -> CommandResult:
        command = self.get(name)
        if command is None:
            raise CommandNotFoundError(name)

        args = [str(a) for a in args]
        ambient = {"command": command.name, "args": args}
        ambient.update(bindings or {})
        ctx = self.engine.new_context(
            store if store is not None else self.store,
            args=args,
            bindings=ambient,
            sender=sender,
        )

        logger.debug("Running command %s with %d arg(s)", command.name, len(args))
        output = await self.engine.evaluate(command.code, ctx)
        return CommandResult(command=command.name, output=output, responses=ctx.responses)

    async def handle_message(
        self,
        content: str,
        *,
        store=None,
        sender: Sender | None = None,
    ) -> Optional[CommandResult]:
        """Run the command a ``<prefix><name> args…`` message names, if any."""
        if not self.prefix or not content.startswith(self.prefix):
            return None

        words = content[len(self.prefix):].split()
        if not words or self.get(words[0]) is None:
            return None
        return await self.run(words[0], words[1:], store=store, sender=sender)


# -----------------------------------------------------------------------------
