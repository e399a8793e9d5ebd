"""
FastAPI router module for finance reconciliation.

Endpoints:
- GET /finance/accrual?months=2025-01,2025-02: Delivery vs billing accrual
  over the latest version of every campaign in the database
- POST /finance/accrual: The same reconciliation over versions supplied in
  the request body
- POST /finance/expected-spend: Expected spend to date for one delivery
  schedule

Accrual responses carry { months, rows, meta }. meta echoes the requested
and normalized months plus counts of masters, versions, chosen versions and
loaded client-pays-for-media flags.
"""

import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Body, HTTPException, Query

from mediaplan.core.dependencies import DBSessionDep, SettingsDep
from mediaplan.core.parsing import format_currency
from mediaplan.models.schemas import (
    AccrualRequest,
    AccrualResponse,
    ExpectedSpendRequest,
    ExpectedSpendResponse,
)
from mediaplan.services.accrual import compute_accrual_rows, normalize_months
from mediaplan.services.expected_spend import calculate_expected_spend_to_date, local_date
from mediaplan.services.plan_versions import load_client_pays_lookup, load_latest_versions


# Configure logging
logger = logging.getLogger(__name__)

router = APIRouter()

MONTHS_REQUIRED = "months is required (YYYY-MM,YYYY-MM)"


def _require_months(raw: List[str]) -> List[str]:
    months = normalize_months(raw)
    if not months:
        logger.warning(f"Accrual request without valid months: {raw}")
        raise HTTPException(status_code=400, detail=MONTHS_REQUIRED)
    return months


def _flag_counts(lookup: Dict[str, bool]) -> Dict[str, int]:
    return {
        "clientPaysForMediaFlagsLoadedCount": len(lookup),
        "clientPaysForMediaTrueCount": sum(1 for flag in lookup.values() if flag),
    }


# =============================================================================
# Accrual Endpoints
# =============================================================================

@router.get("/accrual", response_model=AccrualResponse)
async def get_accrual(
    db: DBSessionDep,
    months: str = Query(default="", description="Comma separated months, e.g. 2025-01,2025-02"),
) -> AccrualResponse:
    """
    Accrual over the latest version of every campaign.

    Client-pays-for-media flags are read from the channel line item tables;
    when that lookup fails the accrual is computed without exclusions.

    Raises:
        HTTPException 400: No valid month in the request.
    """
    requested = [m.strip() for m in months.split(",") if m.strip()]
    normalized = _require_months(requested)

    try:
        versions, counts = await load_latest_versions(db)
        version_ids = [v.id for v in versions if v.id is not None]
        lookup = await load_client_pays_lookup(db, version_ids)

        rows = compute_accrual_rows(versions, normalized, lookup)

        meta: Dict[str, Any] = {
            "monthsRequested": requested,
            "monthsNormalized": normalized,
            **counts,
            **_flag_counts(lookup),
        }
        return AccrualResponse(months=normalized, rows=rows, meta=meta)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error computing accrual: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to compute accrual: {str(e)}")


@router.post("/accrual", response_model=AccrualResponse)
async def post_accrual(request: AccrualRequest = Body(...)) -> AccrualResponse:
    """
    Accrual over versions supplied by the caller.

    Raises:
        HTTPException 400: No valid month in the request.
    """
    normalized = _require_months(request.months)

    try:
        rows = compute_accrual_rows(request.versions, normalized, request.clientPaysForMedia)
        meta: Dict[str, Any] = {
            "monthsRequested": request.months,
            "monthsNormalized": normalized,
            "versionsCount": len(request.versions),
            **_flag_counts(request.clientPaysForMedia),
        }
        return AccrualResponse(months=normalized, rows=rows, meta=meta)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error computing accrual: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to compute accrual: {str(e)}")


# =============================================================================
# Expected Spend Endpoint
# =============================================================================

@router.post("/expected-spend", response_model=ExpectedSpendResponse)
async def expected_spend(
    settings: SettingsDep,
    request: ExpectedSpendRequest = Body(...),
) -> ExpectedSpendResponse:
    """Expected spend of a delivery schedule as at a moment (default now)."""
    try:
        value = calculate_expected_spend_to_date(
            request.deliverySchedule,
            request.campaignStart,
            request.campaignEnd,
            as_at=request.asAt,
            timezone=settings.report_timezone,
        )
        return ExpectedSpendResponse(
            expectedSpend=value,
            formatted=format_currency(value, settings.currency_symbol),
            asAt=local_date(request.asAt, settings.report_timezone),
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error computing expected spend: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to compute expected spend: {str(e)}")
