"""
FastAPI dependency injection module for the media plan finance backend.

Provides reusable FastAPI dependencies for database sessions, configuration
access and the reference data cache, so endpoint handlers stay loosely
coupled from infrastructure and can be tested with dependency overrides.

Key Dependencies Provided:
- get_db_session: Async generator yielding database connections from the pool
- get_settings_dependency: Returns the cached Settings singleton
- get_reference_cache: Returns the ReferenceDataCache held on app.state
- SettingsDep / DBSessionDep / ReferenceCacheDep: Annotated aliases

Usage Examples:
    @router.get("/accrual")
    async def accrual(db: DBSessionDep, settings: SettingsDep):
        rows = await db.fetch("SELECT * FROM media_plan_versions")
        ...

    # In tests
    app.dependency_overrides[get_settings_dependency] = lambda: test_settings
"""

from typing import Annotated, AsyncGenerator

from asyncpg import Connection
from fastapi import Depends, Request

from mediaplan.core.cache import ReferenceDataCache
from mediaplan.core.config import Settings, get_settings
from mediaplan.core.database import get_db_pool


# =============================================================================
# Database Session Dependency
# =============================================================================

async def get_db_session() -> AsyncGenerator[Connection, None]:
    """
    Yield an async database connection from the pool.

    The connection is released back to the pool when the endpoint completes,
    whether it succeeded or raised.

    Yields:
        asyncpg.Connection: An active database connection from the pool.
    """
    pool = await get_db_pool()
    async with pool.acquire() as connection:
        yield connection


# =============================================================================
# Settings Dependency
# =============================================================================

def get_settings_dependency() -> Settings:
    """
    Return the Settings singleton instance.

    Thin wrapper around get_settings() so tests can override it via
    app.dependency_overrides.
    """
    return get_settings()


# =============================================================================
# Reference Data Cache Dependency
# =============================================================================

def get_reference_cache(request: Request) -> ReferenceDataCache:
    """
    Return the application's ReferenceDataCache.

    The cache is created in the application lifespan. When the app was
    started without one (e.g. a bare TestClient without lifespan), an empty
    cache is attached on first use.
    """
    cache = getattr(request.app.state, "reference_cache", None)
    if cache is None:
        cache = ReferenceDataCache(ttl_seconds=get_settings().reference_cache_ttl_seconds)
        request.app.state.reference_cache = cache
    return cache


# =============================================================================
# Type Aliases for Dependency Injection
# =============================================================================

SettingsDep = Annotated[Settings, Depends(get_settings_dependency)]

DBSessionDep = Annotated[Connection, Depends(get_db_session)]

ReferenceCacheDep = Annotated[ReferenceDataCache, Depends(get_reference_cache)]
