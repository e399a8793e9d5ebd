"""
Plan version repository.

Reads campaign masters, saved plan versions and line item flags from
PostgreSQL for the finance endpoints. Callers pass an asyncpg connection
(the request's DB session), so tests can supply a mock.

Key Functions:
- load_masters / load_versions: Raw rows as dicts
- load_client_pays_lookup: client_pays_for_media flags for chosen versions;
  failures are logged and yield an empty lookup
- load_latest_versions: One CampaignVersionInput per MBA number
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple

from asyncpg import Connection

from mediaplan.models.schemas import CampaignVersionInput
from mediaplan.services.accrual import build_client_pays_lookup, pick_latest_versions
from mediaplan.sql import (
    get_line_item_flags_query,
    get_media_plan_masters_query,
    get_media_plan_versions_query,
)

logger = logging.getLogger(__name__)


async def load_masters(conn: Connection) -> List[Dict[str, Any]]:
    rows = await conn.fetch(get_media_plan_masters_query())
    return [dict(row) for row in rows]


async def load_versions(conn: Connection, mba_number: Optional[str] = None) -> List[Dict[str, Any]]:
    query = get_media_plan_versions_query(mba_number)
    rows = await (conn.fetch(query, mba_number) if mba_number else conn.fetch(query))
    return [dict(row) for row in rows]


async def load_client_pays_lookup(conn: Connection, version_ids: List[int]) -> Dict[str, bool]:
    """
    Client-pays-for-media flags for the line items of the given versions.

    The flags only refine the accrual; a failed lookup is logged and an
    empty lookup returned so the accrual still loads.
    """
    if not version_ids:
        return {}
    try:
        rows = await conn.fetch(get_line_item_flags_query(), version_ids)
    except Exception as e:
        logger.warning(f"Could not load client-pays-for-media flags: {e}")
        return {}
    return build_client_pays_lookup(dict(row) for row in rows)


async def load_latest_versions(
    conn: Connection,
) -> Tuple[List[CampaignVersionInput], Dict[str, int]]:
    """
    Pick the latest version of every campaign.

    Returns:
        Tuple of the chosen versions and counts of masters, versions and
        chosen versions for response metadata.
    """
    masters = await load_masters(conn)
    versions = await load_versions(conn)
    chosen: List[Mapping[str, Any]] = pick_latest_versions(versions, masters)

    counts = {
        "mastersCount": len(masters),
        "versionsCount": len(versions),
        "chosenVersionsCount": len(chosen),
    }
    logger.info(
        f"Chose {len(chosen)} latest versions from {len(versions)} versions "
        f"across {len(masters)} masters"
    )
    return [CampaignVersionInput.from_record(v) for v in chosen], counts
