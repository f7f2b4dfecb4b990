"""Async engine and sessions for the progress store database."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.engine import URL, make_url
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from onboardflow.core.config import DatabaseConfig
from onboardflow.db.base import Base

logger = logging.getLogger(__name__)


def engine_options(url: URL, echo: bool = False, pool_size: int = 5) -> dict[str, Any]:
    """Engine keyword arguments for ``url``.

    SQLite (tests, single-node development) keeps SQLAlchemy's default pool;
    server databases get a sized pool with pre-ping so connections dropped
    between saves are replaced transparently.
    """
    options: dict[str, Any] = {"echo": echo}
    if url.get_backend_name() != "sqlite":
        options.update(pool_size=pool_size, pool_pre_ping=True)
    return options


class DatabaseManager:
    """Owns the engine behind ``SqlProgressRepository``.

    Sessions keep loaded rows usable after commit, since repositories map
    rows to ``ProgressRecord`` after the transaction ends.
    """

    def __init__(self, database_url: str, echo: bool = False, pool_size: int = 5) -> None:
        self.url = make_url(database_url)
        self._engine = create_async_engine(self.url, **engine_options(self.url, echo, pool_size))
        self._sessions = async_sessionmaker(self._engine, expire_on_commit=False)

    @classmethod
    def from_config(cls, config: DatabaseConfig) -> DatabaseManager:
        if not config.url:
            raise ValueError("Database URL is not configured (ONBOARDFLOW_DATABASE_URL)")
        return cls(config.url, echo=config.echo, pool_size=config.pool_size)

    def session(self) -> AsyncSession:
        return self._sessions()

    async def create_all(self) -> None:
        """Create the progress tables if they do not exist."""
        import onboardflow.db.models  # noqa: F401

        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Progress tables ready on %s", self.url.render_as_string(hide_password=True))

    async def close(self) -> None:
        await self._engine.dispose()
