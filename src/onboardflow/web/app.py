"""FastAPI application for the onboarding progress service.

Provides the durable remote tier used by ``HttpRemoteStore``: step updates,
progress lookup by email, reset, server-side step validation and a health
check.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from onboardflow.core.config import Settings
from onboardflow.db.engine import DatabaseManager
from onboardflow.repositories.progress import InMemoryProgressRepository, SqlProgressRepository
from onboardflow.repositories.protocols import ProgressRepository
from onboardflow.web.progress_router import router as progress_router
from onboardflow.wizard.flows import load_flows

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    repository: ProgressRepository | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Uses the factory pattern so tests can create isolated app instances
    with their own repository.

    Args:
        settings: Application settings. Defaults to Settings().
        repository: Optional pre-built progress repository. Without one, a
            SQL repository is used when a database URL is configured and an
            in-memory repository otherwise.

    Returns:
        A configured FastAPI instance.
    """
    if settings is None:
        settings = Settings()

    logging.getLogger("onboardflow").setLevel(settings.log_level.upper())

    db_manager: DatabaseManager | None = None
    if repository is None:
        if settings.database.url:
            db_manager = DatabaseManager.from_config(settings.database)
            repository = SqlProgressRepository(db_manager)
        else:
            repository = InMemoryProgressRepository()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if db_manager is not None:
            await db_manager.create_all()
        yield
        if db_manager is not None:
            await db_manager.close()

    app = FastAPI(
        title="onboardflow progress service",
        description="Durable storage and validation for onboarding wizard progress",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    flows = load_flows(settings.flows.flows_dir)

    app.state.settings = settings
    app.state.progress_repository = repository
    app.state.flows = flows
    if db_manager is not None:
        app.state.db_manager = db_manager

    app.include_router(progress_router)

    @app.get("/health")
    async def health(request: Request) -> dict[str, Any]:
        return {
            "status": "ok",
            "environment": settings.environment,
            "flows": sorted(request.app.state.flows),
        }

    return app
