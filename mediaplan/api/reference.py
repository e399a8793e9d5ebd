"""
FastAPI router module for reference data.

Publishers are served from the application's ReferenceDataCache: the first
request loads them, later requests reuse the cached list until it expires
or is invalidated.

Endpoints:
- GET /reference/publishers?channel=television
- POST /reference/publishers/invalidate
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, Field

from mediaplan.core.dependencies import ReferenceCacheDep
from mediaplan.models.schemas import Publisher
from mediaplan.services.reference_data import PUBLISHERS_KEY, publishers_for_channel


# Configure logging
logger = logging.getLogger(__name__)

router = APIRouter()


class PublisherListResponse(BaseModel):
    publishers: List[Publisher] = Field(default_factory=list)
    count: int = Field(default=0, ge=0)


class InvalidateResponse(BaseModel):
    invalidated: str


@router.get("/publishers", response_model=PublisherListResponse)
async def list_publishers(
    cache: ReferenceCacheDep,
    channel: Optional[str] = Query(default=None, description="Only publishers selling this channel"),
) -> PublisherListResponse:
    """List publishers, optionally restricted to one channel."""
    try:
        publishers = await cache.get(PUBLISHERS_KEY)
        if channel:
            publishers = publishers_for_channel(publishers, channel)
        return PublisherListResponse(publishers=publishers, count=len(publishers))

    except KeyError as e:
        logger.error(f"Publisher loader not registered: {e}")
        raise HTTPException(status_code=503, detail="Publisher reference data is not configured")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error loading publishers: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to load publishers: {str(e)}")


@router.post("/publishers/invalidate", response_model=InvalidateResponse)
async def invalidate_publishers(cache: ReferenceCacheDep) -> InvalidateResponse:
    """Drop the cached publishers so the next read reloads them."""
    cache.invalidate(PUBLISHERS_KEY)
    return InvalidateResponse(invalidated=PUBLISHERS_KEY)
