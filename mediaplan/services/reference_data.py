"""
Publisher reference data.

Publishers are loaded through the application's ReferenceDataCache, never
stored in module globals. register_reference_loaders() wires the loaders
into a cache at startup; routers read through the cache and can invalidate
it after an edit.
"""

import logging
from typing import Any, Awaitable, Callable, Iterable, List

from asyncpg import Pool

from mediaplan.core.cache import ReferenceDataCache
from mediaplan.models.schemas import Publisher
from mediaplan.services.grouping import resolve_channel
from mediaplan.sql import get_publishers_query

logger = logging.getLogger(__name__)

PUBLISHERS_KEY = "publishers"


async def fetch_publishers(pool: Pool) -> List[Publisher]:
    """Load every publisher from the database."""
    async with pool.acquire() as conn:
        rows = await conn.fetch(get_publishers_query())

    publishers = [Publisher.from_record(dict(row)) for row in rows]
    logger.info(f"Fetched {len(publishers)} publishers")
    return publishers


def publishers_for_channel(publishers: Iterable[Publisher], channel: Any) -> List[Publisher]:
    """
    Publishers selling a channel, by name.

    An unknown channel returns every publisher.
    """
    publishers = list(publishers)
    resolved = resolve_channel(channel)
    if resolved is None:
        return sorted(publishers, key=lambda p: p.publisherName.lower())
    return sorted(
        (p for p in publishers if resolved.value in p.channels),
        key=lambda p: p.publisherName.lower(),
    )


def register_reference_loaders(
    cache: ReferenceDataCache,
    pool_getter: Callable[[], Awaitable[Pool]],
) -> ReferenceDataCache:
    """Register the reference data loaders on a cache and return it."""

    async def load_publishers() -> List[Publisher]:
        return await fetch_publishers(await pool_getter())

    cache.register(PUBLISHERS_KEY, load_publishers)
    return cache
