"""
FastAPI application factory and configuration.

This module creates the FastAPI application instance,
configures routers and lifespan events.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from psycopg_pool import ConnectionPool

from src.adapters.repository.memory import (
    MemoryProfileRepository,
    MemoryStore,
    MemoryVerificationRepository,
)
from src.adapters.repository.postgres import (
    PostgresProfileRepository,
    PostgresVerificationRepository,
    run_migrations,
)
from src.api.dependencies import build_email_sender
from src.api.v1 import router as v1_router
from src.config.settings import get_settings

logger = logging.getLogger(__name__)

# OpenAPI tags for documentation grouping
tags_metadata = [
    {
        "name": "v1",
        "description": "Owner email verification API v1 - Issue, resend and redeem one-time codes",
    },
    {
        "name": "mail",
        "description": "Mail relay - Deliver verification codes over SMTP",
    },
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    FastAPI lifespan context manager.

    Manages application startup and shutdown:
    - Creates the storage backend (Postgres pool + migrations, or memory)
    - Creates the email sender
    - Closes the connection pool on shutdown
    """
    settings = get_settings()

    logger.info("Starting application...")
    pool = None

    if settings.storage_backend == "memory":
        logger.info("Using in-memory storage")
        store = MemoryStore()
        app.state.verification_repository = MemoryVerificationRepository(store)
        app.state.profile_repository = MemoryProfileRepository(
            store, poll_seconds=settings.profile_poll_seconds
        )
    else:
        logger.info("Connecting to database...")
        pool = ConnectionPool(
            conninfo=settings.database_url,
            min_size=settings.pool_min_size,
            max_size=settings.pool_max_size,
        )

        logger.info("Running database migrations...")
        run_migrations(pool)

        app.state.pool = pool
        app.state.verification_repository = PostgresVerificationRepository(pool)
        app.state.profile_repository = PostgresProfileRepository(
            pool, poll_seconds=settings.profile_poll_seconds
        )

    app.state.email_sender = build_email_sender(settings)
    logger.info("Email backend: %s", settings.email_backend)

    logger.info("Application startup complete")

    yield

    # Shutdown
    logger.info("Shutting down application...")
    close_sender = getattr(app.state.email_sender, "close", None)
    if close_sender is not None:
        close_sender()
    if pool is not None:
        pool.close()
        logger.info("Database connection pool closed")


app = FastAPI(
    title="menubox-verify",
    description="Owner email verification API - One-time codes gating the Menubox admin panel",
    version="0.1.0",
    openapi_tags=tags_metadata,
    lifespan=lifespan,
)

# Include v1 API routes
app.include_router(v1_router, prefix="/v1")


@app.get("/health")
async def health_check(request: Request) -> dict[str, str]:
    """
    Health check endpoint with database validation.

    Returns 200 OK if application and database are healthy.
    Raises exception if database connection fails.
    """
    pool = getattr(request.app.state, "pool", None)
    if pool is not None:
        with pool.connection() as conn:
            conn.execute("SELECT 1")

    return {"status": "healthy"}
