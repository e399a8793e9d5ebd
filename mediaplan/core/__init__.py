"""
Core infrastructure package for the FastAPI backend.

Provides:
- Configuration management via pydantic-settings
- Async PostgreSQL database connectivity via asyncpg
- FastAPI dependency injection utilities
- The reference data cache
- Tolerant parsing and formatting helpers

This module re-exports key components from submodules so other modules can
write:

    from mediaplan.core import get_settings, get_db_pool, DBSessionDep

Instead of importing each submodule.
"""

# =============================================================================
# Re-exports from mediaplan.core.config
# =============================================================================
from mediaplan.core.config import (
    CampaignFeeConfig,
    FeeConfigurationError,
    Settings,
    get_settings,
    validate_fee_percent,
)

# =============================================================================
# Re-exports from mediaplan.core.database
# =============================================================================
from mediaplan.core.database import init_db, close_db, get_db_pool

# =============================================================================
# Re-exports from mediaplan.core.cache
# =============================================================================
from mediaplan.core.cache import ReferenceDataCache

# =============================================================================
# Re-exports from mediaplan.core.dependencies
# =============================================================================
from mediaplan.core.dependencies import (
    get_db_session,
    get_reference_cache,
    get_settings_dependency,
    DBSessionDep,
    ReferenceCacheDep,
    SettingsDep,
)

__all__ = [
    # Configuration management (from config.py)
    'CampaignFeeConfig',
    'FeeConfigurationError',
    'Settings',
    'get_settings',
    'validate_fee_percent',
    # Database pool lifecycle (from database.py)
    'init_db',
    'close_db',
    'get_db_pool',
    # Reference data (from cache.py)
    'ReferenceDataCache',
    # FastAPI dependency injection (from dependencies.py)
    'get_db_session',
    'get_reference_cache',
    'get_settings_dependency',
    'DBSessionDep',
    'ReferenceCacheDep',
    'SettingsDep',
]
