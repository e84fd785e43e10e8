"""FastAPI application for the services opportunity tracker."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .config import settings
from .database import create_all, dispose_engine
from .logging_config import configure_logging
from .routers import action_plan, health, opportunities

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings)
    # PostgreSQL schemas come from Alembic; SQLite is created on the fly.
    if settings.is_sqlite:
        await create_all()
    logger.info("Tracker API starting (environment=%s)", settings.environment)
    yield
    await dispose_engine()


app = FastAPI(title=settings.app_title, lifespan=lifespan)
app.include_router(action_plan.router)
app.include_router(opportunities.router)
app.include_router(health.router)
