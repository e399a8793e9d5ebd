"""
Backend Services Module

This module contains the business logic of the media plan finance backend.
The calculation engines are stateless, pure functions over pydantic models;
only plan_versions and reference_data touch the database.

Services:
- deliverables: Deliverable counts per buy type
- fee_policy: Media / fee / total split and billing bursts
- proration: Day-weighted monthly allocation of investment
- grouping: Merging line items with identical descriptive fields
- timeline: Gantt grid and span layout for the plan export
- export: Spreadsheet-ready sections and DataFrames
- accrual: Delivery vs billing reconciliation per line item
- billing_schedule: Monthly billing schedule and override validation
- expected_spend: Expected spend to date
- plan_versions: Plan version repository for the finance endpoints
- reference_data: Publisher reference data through the cache
- orchestration: Debounced, change-detecting recompute coordinator

All services are designed to be consumed by the API layer (mediaplan/api/).
"""

# =============================================================================
# Deliverables Exports
# Deliverable counts for every buy type, with bonus and override handling
# =============================================================================

from mediaplan.services.deliverables import (
    calculate_deliverables,
    deliverable_label,
    is_bonus,
    DELIVERABLE_LABELS,
)

# =============================================================================
# Fee Policy Exports
# Media / fee / total split under the budget-includes-fees and
# client-pays-for-media flags, plus billing bursts per channel
# =============================================================================

from mediaplan.services.fee_policy import (
    calculate_fee_split,
    split_burst,
    build_billing_bursts,
    summarise_line_items,
    ZERO_SPLIT,
)

# =============================================================================
# Proration Exports
# Day-weighted monthly allocation of burst investment
# =============================================================================

from mediaplan.services.proration import (
    allocate_by_month,
    prorate_burst,
    calculate_investment_per_month,
    monthly_investment_summary,
    calculate_line_item_monthly_amounts,
    month_key,
)

# =============================================================================
# Grouping, Timeline and Export Exports
# Grouped plan rows, their Gantt layout and spreadsheet sections
# =============================================================================

from mediaplan.services.grouping import (
    group_line_items,
    group_channel_line_items,
    flatten_line_items,
    resolve_channel,
    GROUPING_KEYS,
)
from mediaplan.services.timeline import (
    build_date_grid,
    layout_timeline,
    grid_for_groups,
)
from mediaplan.services.export import (
    build_export_section,
    export_section_frame,
    CHANNEL_HEADERS,
)

# =============================================================================
# Finance Exports
# Accrual reconciliation, billing schedule and expected spend to date
# =============================================================================

from mediaplan.services.accrual import (
    compute_accrual_rows,
    normalize_month_key,
    normalize_months,
    flatten_schedule,
    pick_latest_versions,
    build_client_pays_lookup,
)
from mediaplan.services.billing_schedule import (
    build_billing_months,
    build_billing_schedule_json,
    validate_billing_overrides,
)
from mediaplan.services.expected_spend import (
    calculate_expected_spend_to_date,
)

# =============================================================================
# Data Access and Coordination Exports
# =============================================================================

from mediaplan.services.plan_versions import (
    load_latest_versions,
    load_client_pays_lookup,
)
from mediaplan.services.reference_data import (
    fetch_publishers,
    publishers_for_channel,
    register_reference_loaders,
    PUBLISHERS_KEY,
)
from mediaplan.services.orchestration import (
    RecomputeCoordinator,
)

__all__ = [
    # Deliverables
    "calculate_deliverables",
    "deliverable_label",
    "is_bonus",
    "DELIVERABLE_LABELS",
    # Fee policy
    "calculate_fee_split",
    "split_burst",
    "build_billing_bursts",
    "summarise_line_items",
    "ZERO_SPLIT",
    # Proration
    "allocate_by_month",
    "prorate_burst",
    "calculate_investment_per_month",
    "monthly_investment_summary",
    "calculate_line_item_monthly_amounts",
    "month_key",
    # Grouping, timeline, export
    "group_line_items",
    "group_channel_line_items",
    "flatten_line_items",
    "resolve_channel",
    "GROUPING_KEYS",
    "build_date_grid",
    "layout_timeline",
    "grid_for_groups",
    "build_export_section",
    "export_section_frame",
    "CHANNEL_HEADERS",
    # Finance
    "compute_accrual_rows",
    "normalize_month_key",
    "normalize_months",
    "flatten_schedule",
    "pick_latest_versions",
    "build_client_pays_lookup",
    "build_billing_months",
    "build_billing_schedule_json",
    "validate_billing_overrides",
    "calculate_expected_spend_to_date",
    # Data access and coordination
    "load_latest_versions",
    "load_client_pays_lookup",
    "fetch_publishers",
    "publishers_for_channel",
    "register_reference_loaders",
    "PUBLISHERS_KEY",
    "RecomputeCoordinator",
]
