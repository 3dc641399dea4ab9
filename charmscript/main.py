#!/usr/bin/env python
#
#
# -----------------------------------------------------------------------------
"""
CharmScript — FastAPI Application
=================================
HTTP surface for the macro engine.  Start with:
    uvicorn charmscript.main:app --reload
"""
# -----------------------------------------------------------------------------

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from charmscript.core.config import get_settings
from charmscript.core.runtime import build_runtime
from charmscript.routes import commands, evaluate
from charmscript.services.macros import MacroError, MacroRuntimeError, MacroSyntaxError, UnknownMacroError

logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup / shutdown."""
    app.state.runtime = await build_runtime(get_settings())
    yield
    await app.state.runtime.store.close()


# -----------------------------------------------------------------------------

async def macro_error_handler(request: Request, exc: MacroError) -> JSONResponse:
    detail: dict = {"kind": type(exc).__name__, "message": str(exc)}
    if isinstance(exc, MacroSyntaxError):
        detail["offset"] = exc.offset
    elif isinstance(exc, UnknownMacroError):
        detail["macro"] = exc.name
    elif isinstance(exc, MacroRuntimeError):
        detail["macro"] = exc.macro
        detail["error_kind"] = exc.context.kind
        detail["source_fragment"] = exc.context.source_fragment
    logger.info("Evaluation failed: %s", detail)
    return JSONResponse(status_code=422, content={"detail": detail})


# -----------------------------------------------------------------------------

def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="A macro scripting engine for chat bots",
        lifespan=lifespan,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
    )

    # ── CORS ──────────────────────────────────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],   # tighten in production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(MacroError, macro_error_handler)

    # ── Routers ───────────────────────────────────────────────────────────
    API = "/api/v1"
    app.include_router(evaluate.router,          prefix=API)
    app.include_router(commands.router,          prefix=API)
    app.include_router(commands.messages_router, prefix=API)

    @app.get("/")
    async def root():
        return {
            "name": settings.app_name,
            "version": settings.app_version,
            "docs": "/api/docs",
        }

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


app = create_app()
