"""
FastAPI application factory and configuration.

This module creates the FastAPI application instance,
configures routers and lifespan events.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import httpx
import uvicorn
from fastapi import FastAPI, Request
from psycopg_pool import ConnectionPool

from src.adapters.repository.postgres import run_migrations
from src.api.dependencies import build_session_registry
from src.api.v1 import router as v1_router
from src.config.settings import get_settings

logger = logging.getLogger(__name__)

# OpenAPI tags for documentation grouping
tags_metadata = [
    {
        "name": "v1",
        "description": "Merchant Registration Workflow API v1 - Credentials, email "
        "verification, business details, documents and confirmed submission",
    },
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    FastAPI lifespan context manager.

    Manages application startup and shutdown:
    - Creates database connection pool and runs migrations (draft snapshots)
    - Creates the backend HTTP client when the http service backend is used
    - Builds the session registry
    - Closes both on shutdown
    """
    settings = get_settings()

    logger.info("Starting application...")

    pool = None
    if settings.persist_drafts:
        logger.info("Connecting to database...")
        pool = ConnectionPool(
            conninfo=settings.database_url,
            min_size=settings.pool_min_size,
            max_size=settings.pool_max_size,
        )
        logger.info("Running database migrations...")
        run_migrations(pool)

    http = None
    if settings.service_backend == "http":
        logger.info("Using vendor backend at %s", settings.backend_base_url)
        http = httpx.AsyncClient(
            base_url=settings.backend_base_url,
            timeout=settings.http_timeout_seconds,
        )
    else:
        logger.info("Using console service backend")

    app.state.pool = pool
    app.state.sessions = build_session_registry(settings, pool=pool, http=http)

    logger.info("Application startup complete")

    yield

    # Shutdown
    logger.info("Shutting down application...")
    if http is not None:
        await http.aclose()
    if pool is not None:
        pool.close()
        logger.info("Database connection pool closed")


app = FastAPI(
    title="onboardgate",
    description="Merchant Registration Workflow API - Multi-step onboarding with "
    "email ownership proof and an irreversible confirmed submission",
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

    Returns 200 OK if the application (and database, when used) is healthy.
    Raises exception if database connection fails.
    """
    pool = request.app.state.pool
    if pool is not None:
        with pool.connection() as conn:
            conn.execute("SELECT 1")

    return {"status": "healthy"}


def run() -> None:
    """Serve the application with uvicorn using the configured host and port."""
    settings = get_settings()
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level)
