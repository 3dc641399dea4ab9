#!/usr/bin/env python
#
#
# -----------------------------------------------------------------------------
"""
Variable stores
===============
Persistent key/value storage behind ``$data[...]`` and ``$$name`` lookups.

Every store implements the same async contract:

    await store.get(key)          → value or None
    await store.set(key, value)   → value
    await store.delete(key)       → bool (True if something was removed)
    await store.list()            → list of keys (sorted)
    await store.clear()           → True
    await store.close()           → release connections

Keys are flat identifiers: dotted paths are traversed by the resolver,
never by the store.
"""
# -----------------------------------------------------------------------------

from __future__ import annotations

import asyncio
import json
import logging
import re
from pathlib import Path
from typing import Any, Protocol

import aiofiles
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from charmscript.core.config import Settings, get_settings
from charmscript.models import Variable

logger = logging.getLogger(__name__)

_KEY = re.compile(r"^[A-Za-z_][A-Za-z0-9_-]*$")


# -----------------------------------------------------------------------------

class VariableStore(Protocol):
    async def get(self, key: str) -> Any: ...
    async def set(self, key: str, value: Any) -> Any: ...
    async def delete(self, key: str) -> bool: ...
    async def list(self) -> list[str]: ...
    async def clear(self) -> bool: ...
    async def close(self) -> None: ...

def check_key(key: str) -> str:
    key = str(key).strip()
    if not _KEY.match(key):
        raise ValueError(f"Invalid variable name {key!r}: use a flat identifier without dots")
    return key


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# In-memory
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class MemoryVariableStore:
    """Dict-backed store; contents live as long as the process."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = {}
        for key, value in (initial or {}).items():
            self._data[check_key(key)] = value

    async def get(self, key: str) -> Any:
        return self._data.get(key)

    async def set(self, key: str, value: Any) -> Any:
        self._data[check_key(key)] = value
        return value

    async def delete(self, key: str) -> bool:
        if key not in self._data:
            return False
        del self._data[key]
        return True

    async def list(self) -> list[str]:
        return sorted(self._data)

    async def clear(self) -> bool:
        self._data.clear()
        return True

    async def close(self) -> None:
        pass


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# JSON file
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class JsonFileVariableStore:
    """
    Keeps variables in memory and rewrites a JSON file after every change.

    The file is read lazily on first access; a missing file is an empty
    store.  Writes are serialised with an asyncio.Lock so overlapping
    requests cannot interleave partial files.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self._data: dict[str, Any] | None = None
        self._lock = asyncio.Lock()

    async def _load(self) -> dict[str, Any]:
        if self._data is None:
            if self.path.exists():
                async with aiofiles.open(self.path, "r", encoding="utf-8") as fh:
                    raw = await fh.read()
                self._data = json.loads(raw) if raw.strip() else {}
                logger.debug("Loaded %d variables from %s", len(self._data), self.path)
            else:
                self._data = {}
        return self._data

    async def _save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(self._data, indent=2, ensure_ascii=False, default=str)
        async with aiofiles.open(self.path, "w", encoding="utf-8") as fh:
            await fh.write(payload)

    async def get(self, key: str) -> Any:
        return (await self._load()).get(key)

    async def set(self, key: str, value: Any) -> Any:
        key = check_key(key)
        async with self._lock:
            data = await self._load()
            data[key] = value
            await self._save()
        return value

    async def delete(self, key: str) -> bool:
        async with self._lock:
            data = await self._load()
            if key not in data:
                return False
            del data[key]
            await self._save()
        return True

    async def close(self) -> None:
        pass

    async def list(self) -> list[str]:
        return sorted(await self._load())

    async def clear(self) -> bool:
        async with self._lock:
            data = await self._load()
            data.clear()
            await self._save()
        return True


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# SQL (SQLAlchemy async)
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class SqlVariableStore:
    """One ``variables`` row per key; each operation runs in its own session."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        engine: AsyncEngine | None = None,
    ) -> None:
        self._factory = session_factory
        self._engine = engine

    async def get(self, key: str) -> Any:
        async with self._factory() as session:
            row = await session.get(Variable, key)
            return row.value if row is not None else None

    async def set(self, key: str, value: Any) -> Any:
        key = check_key(key)
        async with self._factory() as session:
            row = await session.get(Variable, key)
            if row is None:
                session.add(Variable(key=key, value=value))
            else:
                row.value = value
            await session.commit()
        return value

    async def delete(self, key: str) -> bool:
        async with self._factory() as session:
            result = await session.execute(delete(Variable).where(Variable.key == key))
            await session.commit()
            return result.rowcount > 0

    async def list(self) -> list[str]:
        async with self._factory() as session:
            result = await session.execute(select(Variable.key).order_by(Variable.key))
            return list(result.scalars().all())

    async def clear(self) -> bool:
        async with self._factory() as session:
            await session.execute(delete(Variable))
            await session.commit()
        return True

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()


# -----------------------------------------------------------------------------

async def create_store(settings: Settings | None = None) -> VariableStore:
    """Build the store selected by ``settings.variable_store``."""
    settings = settings or get_settings()

    if settings.variable_store == "json":
        return JsonFileVariableStore(settings.variables_path)

    if settings.variable_store == "sql":
        from charmscript.core.database import build_engine, build_session_factory, init_db
        engine = build_engine(settings.database_url)
        await init_db(engine)
        return SqlVariableStore(build_session_factory(engine), engine)

    return MemoryVariableStore()


# -----------------------------------------------------------------------------
