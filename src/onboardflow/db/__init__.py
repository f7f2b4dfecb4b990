"""Database layer for onboardflow: SQLAlchemy 2.0 async."""

from __future__ import annotations

from onboardflow.db.base import Base
from onboardflow.db.engine import DatabaseManager

__all__ = ["Base", "DatabaseManager"]
