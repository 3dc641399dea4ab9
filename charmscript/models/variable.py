#!/usr/bin/env python
#
#
# -----------------------------------------------------------------------------

"""
Variable model
==============
One row per persistent macro variable.  Keys are flat identifiers; nested
lookups (``$$user.name``) traverse the JSON value in the resolver.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from charmscript.core.database import Base


class Variable(Base):
    __tablename__ = "variables"

    key: Mapped[str] = mapped_column(String(128), primary_key=True)
    value: Mapped[Any] = mapped_column(JSON, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Variable {self.key!r}>"
