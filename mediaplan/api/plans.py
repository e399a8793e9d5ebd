"""
FastAPI router module for the media plan calculation engines.

Every endpoint is a pure computation over the posted line items; nothing is
read from or written to the database. Channel forms call these on edit to
refresh billing bursts, the monthly cash-flow table, grouped plan rows and
the export timeline.

Endpoints:
- POST /plans/billing-bursts: Billing bursts and line item totals
- POST /plans/monthly-investment: Day-weighted investment per month
- POST /plans/grouped: Line items merged by the channel grouping key
- POST /plans/timeline: Export section with its Gantt layout
- POST /plans/deliverables: Deliverables for one burst
- POST /plans/fee-split: Media / fee / total for one budget
- POST /plans/billing-schedule: Monthly billing schedule across channels
- POST /plans/billing-schedule/validate: Check manual month overrides

A fee percent of 100 or more (from the request or configuration) is a
configuration error and returns 400.
"""

import logging
from typing import Dict, List, Optional

from fastapi import APIRouter, Body, HTTPException
from pydantic import BaseModel, Field

from mediaplan.core.config import FeeConfigurationError, Settings, validate_fee_percent
from mediaplan.core.dependencies import SettingsDep
from mediaplan.core.parsing import parse_date
from mediaplan.models.schemas import (
    BillingBurst,
    BillingMonth,
    BillingOverrideValidation,
    ChannelPlanRequest,
    DeliverablesRequest,
    DeliverablesResponse,
    ExportSection,
    FeePolicyResult,
    FeeSplitRequest,
    GroupedLineItem,
    LineItemMonthlyAmounts,
    LineItemTotals,
    MonthlyAllocation,
    MonthlyInvestmentRow,
)
from mediaplan.services.billing_schedule import (
    build_billing_months,
    build_billing_schedule_json,
    validate_billing_overrides,
)
from mediaplan.services.deliverables import calculate_deliverables, deliverable_label
from mediaplan.services.export import build_export_section
from mediaplan.services.fee_policy import build_billing_bursts, calculate_fee_split, summarise_line_items
from mediaplan.services.grouping import group_channel_line_items, resolve_channel
from mediaplan.services.proration import (
    calculate_investment_per_month,
    calculate_line_item_monthly_amounts,
    monthly_investment_summary,
)
from mediaplan.services.timeline import build_date_grid


# Configure logging
logger = logging.getLogger(__name__)

router = APIRouter()


# =============================================================================
# Local Pydantic Models for API Responses
# =============================================================================

class BillingBurstsResponse(BaseModel):
    """Response model for the billing bursts endpoint."""
    channel: str
    feePercent: float
    bursts: List[BillingBurst] = Field(default_factory=list)
    totals: List[LineItemTotals] = Field(default_factory=list)


class MonthlyInvestmentResponse(BaseModel):
    """Response model for the monthly investment endpoint."""
    channel: str
    feePercent: float
    months: List[MonthlyAllocation] = Field(default_factory=list)
    summary: List[MonthlyInvestmentRow] = Field(default_factory=list)
    lineItems: List[LineItemMonthlyAmounts] = Field(default_factory=list)


class GroupedResponse(BaseModel):
    """Response model for the grouped line items endpoint."""
    channel: str
    groups: List[GroupedLineItem] = Field(default_factory=list)


class BillingScheduleRequest(BaseModel):
    """Request model for building a billing schedule across channels."""
    channels: List[ChannelPlanRequest] = Field(default_factory=list)
    campaignStart: Optional[str] = None
    campaignEnd: Optional[str] = None
    adserving: Dict[str, float] = Field(default_factory=dict, description='"YYYY-MM" -> amount')
    production: Dict[str, float] = Field(default_factory=dict, description='"YYYY-MM" -> amount')


class BillingScheduleResponse(BaseModel):
    months: List[BillingMonth] = Field(default_factory=list)
    schedule: List[dict] = Field(default_factory=list)


class BillingOverrideRequest(BaseModel):
    original: List[BillingMonth] = Field(default_factory=list)
    overrides: List[BillingMonth] = Field(default_factory=list)


# =============================================================================
# Helpers
# =============================================================================

def resolve_fee_percent(request: ChannelPlanRequest, settings: Settings) -> float:
    """
    The request's fee percent, else the configured one for the channel.

    Raises:
        FeeConfigurationError: If the fee is outside [0, 100).
    """
    if request.feePercent is not None:
        return validate_fee_percent(request.feePercent)
    return validate_fee_percent(settings.fee_for_channel(request.channel))


def _bad_request(e: Exception) -> HTTPException:
    logger.warning(f"Rejected plan request: {e}")
    return HTTPException(status_code=400, detail=str(e))


# =============================================================================
# Endpoints
# =============================================================================

@router.post("/billing-bursts", response_model=BillingBurstsResponse)
async def billing_bursts(
    settings: SettingsDep,
    request: ChannelPlanRequest = Body(...),
) -> BillingBurstsResponse:
    """
    Build billing bursts for one channel.

    Returns:
        BillingBurstsResponse with one burst per line item burst and the
        per line item display totals.
    """
    try:
        fee = resolve_fee_percent(request, settings)
        bursts = build_billing_bursts(request.lineItems, fee, request.channel)
        totals = summarise_line_items(request.lineItems, fee)

        logger.info(f"Built {len(bursts)} billing bursts for {request.channel}")
        return BillingBurstsResponse(channel=request.channel, feePercent=fee, bursts=bursts, totals=totals)

    except FeeConfigurationError as e:
        raise _bad_request(e)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error building billing bursts: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to build billing bursts: {str(e)}")


@router.post("/monthly-investment", response_model=MonthlyInvestmentResponse)
async def monthly_investment(
    settings: SettingsDep,
    request: ChannelPlanRequest = Body(...),
) -> MonthlyInvestmentResponse:
    """
    Day-weighted investment per calendar month for one channel.

    keyFormat selects "YYYY-MM" or "January 2025" month keys; view selects
    billed totals or delivered media plus fee.
    """
    try:
        fee = resolve_fee_percent(request, settings)
        months = calculate_investment_per_month(
            request.lineItems, fee, key_format=request.keyFormat, view=request.view
        )
        summary = monthly_investment_summary(
            request.lineItems, fee, currency_symbol=settings.currency_symbol, view=request.view
        )
        line_items = calculate_line_item_monthly_amounts(
            request.lineItems, fee, request.channel, view=request.view
        )

        return MonthlyInvestmentResponse(
            channel=request.channel,
            feePercent=fee,
            months=months,
            summary=summary,
            lineItems=line_items,
        )

    except FeeConfigurationError as e:
        raise _bad_request(e)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error computing monthly investment: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to compute monthly investment: {str(e)}")


@router.post("/grouped", response_model=GroupedResponse)
async def grouped_line_items(
    settings: SettingsDep,
    request: ChannelPlanRequest = Body(...),
) -> GroupedResponse:
    """Merge line items sharing the channel's grouping key."""
    try:
        fee = resolve_fee_percent(request, settings)
        groups = group_channel_line_items(request.lineItems, request.channel, fee)
        return GroupedResponse(channel=request.channel, groups=groups)

    except FeeConfigurationError as e:
        raise _bad_request(e)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error grouping line items: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to group line items: {str(e)}")


@router.post("/timeline", response_model=ExportSection)
async def timeline(
    settings: SettingsDep,
    request: ChannelPlanRequest = Body(...),
) -> ExportSection:
    """
    Export section for one channel with its Gantt layout.

    The day grid covers campaignStart to campaignEnd when both are given,
    otherwise the union of the grouped line items' dates.
    """
    try:
        if resolve_channel(request.channel) is None:
            logger.warning(f"Unknown channel '{request.channel}', using biddable layout")

        fee = resolve_fee_percent(request, settings)
        grid = None
        if request.campaignStart and request.campaignEnd:
            grid = build_date_grid(request.campaignStart, request.campaignEnd)

        return build_export_section(
            request.channel,
            request.lineItems,
            fee,
            grid=grid,
            currency_symbol=settings.currency_symbol,
        )

    except FeeConfigurationError as e:
        raise _bad_request(e)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error laying out timeline: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to lay out timeline: {str(e)}")


@router.post("/deliverables", response_model=DeliverablesResponse)
async def deliverables(request: DeliverablesRequest = Body(...)) -> DeliverablesResponse:
    """Deliverables for one burst under its buy type."""
    value = calculate_deliverables(
        request.buyType,
        request.budget,
        request.buyAmount,
        override_value=request.overrideValue,
        cached_value=request.cachedValue,
    )
    return DeliverablesResponse(
        buyType=request.buyType,
        deliverables=value,
        label=deliverable_label(request.buyType),
    )


@router.post("/fee-split", response_model=FeePolicyResult)
async def fee_split(request: FeeSplitRequest = Body(...)) -> FeePolicyResult:
    """Media / fee / total decomposition of one budget."""
    try:
        return calculate_fee_split(
            request.budget,
            request.feePercent,
            request.budgetIncludesFees,
            request.clientPaysForMedia,
        )
    except FeeConfigurationError as e:
        raise _bad_request(e)


@router.post("/billing-schedule", response_model=BillingScheduleResponse)
async def billing_schedule(
    settings: SettingsDep,
    request: BillingScheduleRequest = Body(...),
) -> BillingScheduleResponse:
    """
    Monthly billing schedule across every posted channel.

    When campaignStart and campaignEnd are both given, every month in the
    range is present and amounts outside it are left out.
    """
    try:
        bursts: List[BillingBurst] = []
        line_items: List[LineItemMonthlyAmounts] = []
        for channel_request in request.channels:
            fee = resolve_fee_percent(channel_request, settings)
            bursts.extend(build_billing_bursts(channel_request.lineItems, fee, channel_request.channel))
            line_items.extend(
                calculate_line_item_monthly_amounts(channel_request.lineItems, fee, channel_request.channel)
            )

        months = build_billing_months(
            bursts,
            line_items=line_items,
            campaign_start=parse_date(request.campaignStart),
            campaign_end=parse_date(request.campaignEnd),
            adserving=request.adserving,
            production=request.production,
        )
        schedule = build_billing_schedule_json(months, currency_symbol=settings.currency_symbol)

        logger.info(f"Built billing schedule with {len(months)} months from {len(bursts)} bursts")
        return BillingScheduleResponse(months=months, schedule=schedule)

    except FeeConfigurationError as e:
        raise _bad_request(e)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error building billing schedule: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to build billing schedule: {str(e)}")


@router.post("/billing-schedule/validate", response_model=BillingOverrideValidation)
async def validate_billing_schedule(
    request: BillingOverrideRequest = Body(...),
) -> BillingOverrideValidation:
    """Check that overridden months still add up to the original total."""
    return validate_billing_overrides(request.original, request.overrides)
