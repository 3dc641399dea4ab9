#!/usr/bin/env python
#
#
# -----------------------------------------------------------------------------
"""
Commands router
===============
GET    /api/v1/commands               — list commands
POST   /api/v1/commands               — register (or replace) a command
GET    /api/v1/commands/{name}        — get one command (name or alias)
DELETE /api/v1/commands/{name}        — unregister a command
POST   /api/v1/commands/{name}/run    — run a command with arguments
POST   /api/v1/messages               — dispatch a prefixed chat message
"""
# -----------------------------------------------------------------------------

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from charmscript.core.runtime import Runtime, get_runtime
from charmscript.schemas import (
    Command,
    CommandResult,
    CommandRunRequest,
    MessageRequest,
    MessageResponse,
    OKResponse,
)
from charmscript.services.commands import CommandNotFoundError

# -----------------------------------------------------------------------------

router = APIRouter(prefix="/commands", tags=["commands"])
messages_router = APIRouter(prefix="/messages", tags=["commands"])


# -----------------------------------------------------------------------------

@router.get("", response_model=list[Command])
async def list_commands(runtime: Runtime = Depends(get_runtime)):
    return runtime.commands.list()


# -----------------------------------------------------------------------------

@router.post("", response_model=Command, status_code=201)
async def create_command(data: Command, runtime: Runtime = Depends(get_runtime)):
    return runtime.commands.register(data)


# -----------------------------------------------------------------------------

@router.get("/{name}", response_model=Command)
async def get_command(name: str, runtime: Runtime = Depends(get_runtime)):
    command = runtime.commands.get(name)
    if command is None:
        raise HTTPException(status_code=404, detail=f"Command '{name}' not found")
    return command


# -----------------------------------------------------------------------------

@router.delete("/{name}", response_model=OKResponse)
async def delete_command(name: str, runtime: Runtime = Depends(get_runtime)):
    if not runtime.commands.unregister(name):
        raise HTTPException(status_code=404, detail=f"Command '{name}' not found")
    return OKResponse(message=f"Command '{name}' deleted")


# -----------------------------------------------------------------------------

@router.post("/{name}/run", response_model=CommandResult)
async def run_command(
    name: str,
    data: CommandRunRequest | None = None,
    runtime: Runtime = Depends(get_runtime),
):
    args = data.args if data else []
    try:
        return await runtime.commands.run(name, args)
    except CommandNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


# -----------------------------------------------------------------------------

@messages_router.post("", response_model=MessageResponse)
async def handle_message(data: MessageRequest, runtime: Runtime = Depends(get_runtime)):
    result = await runtime.commands.handle_message(data.content)
    return MessageResponse(handled=result is not None, result=result)
