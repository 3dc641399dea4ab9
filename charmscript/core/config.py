#!/usr/bin/env python
#
#
# -----------------------------------------------------------------------------
"""
Application configuration.

All values can be overridden via environment variables or a .env file.
"""
# -----------------------------------------------------------------------------

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


# -----------------------------------------------------------------------------

class Settings(BaseSettings):

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Application ────────────────────────────────────────────────────────

    app_name: str = "CharmScript"
    app_version: str = "0.1.0"
    debug: bool = False
    environment: Literal["development", "testing", "production"] = "development"

    # ── Commands ───────────────────────────────────────────────────────────

    command_prefix: str = "!"
    commands_dir: Optional[Path] = None   # *.json command definitions loaded at startup

    # ── Evaluation limits ──────────────────────────────────────────────────

    max_evaluation_depth: int = 64
    while_max_iterations: int = 100
    while_timeout_seconds: float = 30.0
    wait_max_seconds: float = 60.0

    # ── Variable storage ───────────────────────────────────────────────────

    variable_store: Literal["memory", "json", "sql"] = "memory"
    variables_path: Path = Path("./data/variables.json")
    database_url: str = "sqlite+aiosqlite:///./data/variables.db"
    db_echo: bool = False


# -----------------------------------------------------------------------------

@lru_cache
def get_settings() -> Settings:
    return Settings()


# -----------------------------------------------------------------------------
