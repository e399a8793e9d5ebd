"""
SQL Query Module for the media plan finance backend.

Provides parameterized SQL queries for:
- Campaign masters and saved plan versions (plan_queries)
- Client-pays-for-media flags across the channel line item tables
- Publisher reference data

Follows Repository Pattern for clean separation between business logic and
data access. All query functions are re-exported here so callers import from
mediaplan.sql rather than the submodule.

Example usage:
    from mediaplan.sql import get_media_plan_versions_query

    sql = get_media_plan_versions_query()
    rows = await conn.fetch(sql)
"""

# =============================================================================
# PLAN QUERIES - Masters, versions, line item flags, publishers
# =============================================================================

from mediaplan.sql.plan_queries import (
    get_media_plan_masters_query,
    get_media_plan_versions_query,
    get_line_item_flags_query,
    get_publishers_query,
    LINE_ITEM_TABLES,
)

# =============================================================================
# PUBLIC API - Explicit exports for clean API surface
# =============================================================================

__all__ = [
    'get_media_plan_masters_query',
    'get_media_plan_versions_query',
    'get_line_item_flags_query',
    'get_publishers_query',
    'LINE_ITEM_TABLES',
]
