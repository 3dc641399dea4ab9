"""
Pydantic v2 schemas for commands, request validation and response serialisation.
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel, Field, field_serializer, field_validator

from charmscript.services.macros.values import to_text


def _plain(value: Any) -> Any:
    """Keep JSON-compatible results as they are; stringify anything else."""
    try:
        json.dumps(value)
    except (TypeError, ValueError):
        return to_text(value)
    return value


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Shared
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class OKResponse(BaseModel):
    ok: bool = True
    message: str = "success"


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Commands
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class Command(BaseModel):
    name: str = Field(..., min_length=1, max_length=64, pattern=r"^[A-Za-z0-9_-]+$")
    code: str = Field(..., min_length=1)
    description: str = ""
    aliases: list[str] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def lowercase_name(cls, v: str) -> str:
        return v.lower()

    @field_validator("aliases")
    @classmethod
    def lowercase_aliases(cls, v: list[str]) -> list[str]:
        return [a.strip().lower() for a in v if a.strip()]


# -----------------------------------------------------------------------------

class CommandResult(BaseModel):
    command: str
    output: Any = None
    responses: list[Any] = Field(default_factory=list)

    @field_serializer("output", "responses")
    def serialise_output(self, v: Any) -> Any:
        return _plain(v)


# -----------------------------------------------------------------------------

class CommandRunRequest(BaseModel):
    args: list[str] = Field(default_factory=list)


# -----------------------------------------------------------------------------

class MessageRequest(BaseModel):
    content: str = Field(..., min_length=1)


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Evaluation
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class EvaluateRequest(BaseModel):
    code: str
    args: list[str] = Field(default_factory=list)
    bindings: dict[str, Any] = Field(default_factory=dict)


# -----------------------------------------------------------------------------

class EvaluateResponse(BaseModel):
    output: Any = None
    responses: list[Any] = Field(default_factory=list)

    @field_serializer("output", "responses")
    def serialise_output(self, v: Any) -> Any:
        return _plain(v)


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Macros
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class MacroParamInfo(BaseModel):
    name: str
    kind: str   # "value" | "code"
    required: bool = False


# -----------------------------------------------------------------------------

class MacroInfo(BaseModel):
    name: str
    tiers: list[int]
    params: list[MacroParamInfo] = Field(default_factory=list)
    description: str = ""


# -----------------------------------------------------------------------------

class MessageResponse(BaseModel):
    handled: bool
    result: CommandResult | None = None
