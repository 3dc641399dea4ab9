#!/usr/bin/env python
#
#
# -----------------------------------------------------------------------------
"""
Test fixtures
=============
Unit tests build their own registry and engine with the helpers below and
drive coroutines through run().  API tests get an AsyncClient bound to a
fresh application whose runtime uses the in-memory variable store.
"""
# -----------------------------------------------------------------------------

from __future__ import annotations

import asyncio
import os
from typing import Any, AsyncGenerator

import pytest
import pytest_asyncio

from httpx import ASGITransport, AsyncClient

# ── Env vars must be set before importing app modules ────────────────────────
os.environ.setdefault("ENVIRONMENT",    "testing")
os.environ.setdefault("VARIABLE_STORE", "memory")
os.environ.setdefault("COMMAND_PREFIX", "!")

from charmscript.core.config import Settings
from charmscript.core.runtime import build_runtime
from charmscript.main import create_app
from charmscript.services.macros import MacroEngine, MacroRegistry, register_all_builtins
from charmscript.services.variables import MemoryVariableStore


# ── Helpers ───────────────────────────────────────────────────────────────────

def run(coro):
    """Run an async coroutine in tests."""
    return asyncio.run(coro)


def make_engine(registry: MacroRegistry | None = None, **settings: Any) -> MacroEngine:
    """Engine over *registry*, or over a fresh registry holding the built-ins."""
    if registry is None:
        registry = MacroRegistry()
        register_all_builtins(registry)
    return MacroEngine(registry, Settings(**settings))


def evaluate(code: str, engine: MacroEngine | None = None, store=None, **context: Any):
    """Evaluate *code* once; returns ``(result, ctx)``."""
    engine = engine or make_engine()
    ctx = engine.new_context(store if store is not None else MemoryVariableStore(), **context)
    return run(engine.evaluate(code, ctx)), ctx


# ── Fixtures ──────────────────────────────────────────────────────────────────

@pytest.fixture
def engine() -> MacroEngine:
    return make_engine()


@pytest.fixture
def store() -> MemoryVariableStore:
    return MemoryVariableStore()


@pytest_asyncio.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """AsyncClient over a fresh app; the lifespan is replaced by a direct runtime build."""
    app = create_app()
    app.state.runtime = await build_runtime(Settings())

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as c:
        yield c
    await app.state.runtime.store.close()


# -----------------------------------------------------------------------------
