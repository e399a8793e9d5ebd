"""
FastAPI application entry point for the media plan finance API.

This module configures CORS, registers the API routers and manages the
application lifespan: the asyncpg pool and the reference data cache are
created on startup and released on shutdown.

Design:
- Calculation endpoints are pure and work without a database
- Database connections and the cache are injected into endpoints, so tests
  replace them with dependency overrides
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from mediaplan.api import api_router
from mediaplan.core.cache import ReferenceDataCache
from mediaplan.core.config import get_settings
from mediaplan.core.database import close_db, get_db_pool, init_db
from mediaplan.services.reference_data import register_reference_loaders

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Lifespan context manager for FastAPI application startup and shutdown events.

    On startup:
        - Initialize database connection pool
        - Create the reference data cache and register its loaders

    On shutdown:
        - Close database connection pool
    """
    # Startup
    logger.info("Media plan finance API starting")
    try:
        await init_db()
        logger.info("Database connection pool initialized")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        # Calculation endpoints do not need the database

    app.state.reference_cache = register_reference_loaders(
        ReferenceDataCache(ttl_seconds=settings.reference_cache_ttl_seconds),
        get_db_pool,
    )

    yield

    # Shutdown
    logger.info("Media plan finance API shutting down")
    app.state.reference_cache.invalidate()
    try:
        await close_db()
        logger.info("Database connection pool closed")
    except Exception as e:
        logger.error(f"Error closing database pool: {e}")


# Create FastAPI application
app = FastAPI(
    title="Media Plan Finance API",
    version="1.0.0",
    description=(
        "Financial engine for advertising media plans. "
        "Provides deliverables, fee policy, monthly proration, grouping, "
        "timeline layout, billing schedules and accrual reconciliation."
    ),
    lifespan=lifespan,
)

# Configure CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register API routers
app.include_router(api_router)


@app.get("/health")
async def health_check():
    """
    Health check endpoint for monitoring and load balancer probes.

    Returns:
        Dict with status 'healthy'
    """
    return {"status": "healthy"}


@app.get("/")
async def root():
    """
    Root endpoint providing API information.

    Returns:
        Dict with API name and version
    """
    return {
        "name": "Media Plan Finance API",
        "version": "1.0.0",
        "docs": "/docs",
        "openapi": "/openapi.json",
    }


# Run with uvicorn when executed directly
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "mediaplan.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
