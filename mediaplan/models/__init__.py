"""
Package initialization file for media plan models.

Exports all Pydantic schemas and enumerations from schemas.py and enums.py so
other modules can import data models without knowing the internal module
structure.

Usage:
    from mediaplan.models import (
        BuyType,
        LineItem,
        FeePolicyResult,
        GroupedLineItem,
        AccrualRow,
        # ... etc
    )
"""

# =============================================================================
# Enums - Import and re-export all enumerations from enums.py
# =============================================================================

from mediaplan.models.enums import (
    BuyType,
    InvestmentView,
    LayoutDropReason,
    MediaChannel,
    MEDIA_CHANNEL_LABELS,
    MonthKeyFormat,
    ScheduleSource,
    SINGLE_UNIT_BUY_TYPES,
    UNIT_COST_BUY_TYPES,
)

# =============================================================================
# Schemas - Import and re-export all Pydantic models from schemas.py
# =============================================================================

from mediaplan.models.schemas import (
    # Plan inputs
    Burst,
    LineItem,
    ChannelPlanRequest,
    FeeSplitRequest,
    DeliverablesRequest,
    DeliverablesResponse,
    # Fee policy and billing
    FeePolicyResult,
    BillingBurst,
    LineItemTotals,
    # Proration
    MonthlyAllocation,
    MonthlyInvestmentRow,
    LineItemMonthlyAmounts,
    # Grouping, timeline and export
    GroupedBurst,
    GroupedLineItem,
    DateGrid,
    TimelineSpan,
    TimelineRow,
    DroppedSpan,
    TimelineLayout,
    ExportRow,
    ExportSection,
    # Accrual
    CampaignVersionInput,
    AccrualRow,
    AccrualRequest,
    AccrualResponse,
    # Billing schedule
    BillingLineItem,
    BillingMonth,
    BillingOverrideValidation,
    # Expected spend
    ExpectedSpendRequest,
    ExpectedSpendResponse,
    # Reference data
    Publisher,
)

__all__ = [
    # Enums
    "BuyType",
    "InvestmentView",
    "LayoutDropReason",
    "MediaChannel",
    "MEDIA_CHANNEL_LABELS",
    "MonthKeyFormat",
    "ScheduleSource",
    "SINGLE_UNIT_BUY_TYPES",
    "UNIT_COST_BUY_TYPES",
    # Plan inputs
    "Burst",
    "LineItem",
    "ChannelPlanRequest",
    "FeeSplitRequest",
    "DeliverablesRequest",
    "DeliverablesResponse",
    # Fee policy and billing
    "FeePolicyResult",
    "BillingBurst",
    "LineItemTotals",
    # Proration
    "MonthlyAllocation",
    "MonthlyInvestmentRow",
    "LineItemMonthlyAmounts",
    # Grouping, timeline and export
    "GroupedBurst",
    "GroupedLineItem",
    "DateGrid",
    "TimelineSpan",
    "TimelineRow",
    "DroppedSpan",
    "TimelineLayout",
    "ExportRow",
    "ExportSection",
    # Accrual
    "CampaignVersionInput",
    "AccrualRow",
    "AccrualRequest",
    "AccrualResponse",
    # Billing schedule
    "BillingLineItem",
    "BillingMonth",
    "BillingOverrideValidation",
    # Expected spend
    "ExpectedSpendRequest",
    "ExpectedSpendResponse",
    # Reference data
    "Publisher",
]
