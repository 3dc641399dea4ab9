#!/usr/bin/env python
#
#
# -----------------------------------------------------------------------------

"""ORM models package — import all to register with Base.metadata."""

from .variable import Variable

__all__ = ["Variable"]
