"""
Backend API package initialization.

This package contains FastAPI router modules for the media plan finance
backend:
- plans: Calculation engines over posted line items (billing bursts,
  monthly investment, grouping, timeline, deliverables, fee split, billing
  schedule)
- finance: Accrual reconciliation and expected spend to date
- reference: Publisher reference data through the cache
"""

from fastapi import APIRouter

# Import router modules
from mediaplan.api.plans import router as plans_router
from mediaplan.api.finance import router as finance_router
from mediaplan.api.reference import router as reference_router

# Create main API router
api_router = APIRouter()

# Include all sub-routers
api_router.include_router(plans_router, prefix="/plans", tags=["plans"])
api_router.include_router(finance_router, prefix="/finance", tags=["finance"])
api_router.include_router(reference_router, prefix="/reference", tags=["reference"])

# Export all routers for selective imports
__all__ = [
    "api_router",
    "plans_router",
    "finance_router",
    "reference_router",
]
