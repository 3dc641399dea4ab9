#!/usr/bin/env python
#
#
# -----------------------------------------------------------------------------
"""
Evaluation router
=================
POST   /api/v1/evaluate          — evaluate a macro fragment
GET    /api/v1/macros            — list registered macros
GET    /api/v1/macros/{name}     — describe one macro
"""
# -----------------------------------------------------------------------------

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from charmscript.core.runtime import Runtime, get_runtime
from charmscript.schemas import EvaluateRequest, EvaluateResponse, MacroInfo

# -----------------------------------------------------------------------------

router = APIRouter(tags=["macros"])


# -----------------------------------------------------------------------------

@router.post("/evaluate", response_model=EvaluateResponse)
async def evaluate(data: EvaluateRequest, runtime: Runtime = Depends(get_runtime)):
    engine = runtime.engine
    ctx = engine.new_context(runtime.store, args=data.args, bindings=data.bindings)
    output = await engine.evaluate(data.code, ctx)
    return EvaluateResponse(output=output, responses=ctx.responses)


# -----------------------------------------------------------------------------

@router.get("/macros", response_model=list[MacroInfo])
async def list_macros(runtime: Runtime = Depends(get_runtime)):
    return runtime.engine.registry.describe()


# -----------------------------------------------------------------------------

@router.get("/macros/{name}", response_model=MacroInfo)
async def get_macro(name: str, runtime: Runtime = Depends(get_runtime)):
    registry = runtime.engine.registry
    if not registry.has(name):
        raise HTTPException(status_code=404, detail=f"Macro '{name}' not found")
    return registry.get(name).describe()
