"""
Expected spend to date.

Estimates how much of a campaign's delivery schedule should have been spent
by a given moment. Months before the as-at month count in full, months
after it not at all, and the as-at month is prorated by the days elapsed
within the part of that month the campaign runs.

The as-at moment is converted to the reporting timezone before taking its
calendar date, so "today" matches the business calendar rather than the
server clock.
"""

import calendar
import logging
import re
from datetime import date, datetime
from typing import Any, List, Mapping, Optional
from zoneinfo import ZoneInfo

from mediaplan.core.parsing import parse_date, parse_money, round4
from mediaplan.services.accrual import MONTH_NAMES, to_schedule_array

logger = logging.getLogger(__name__)

_MONTH_YEAR = re.compile(r"^([A-Za-z]+)\s+(\d{4})$")


def parse_month_year(value: Any) -> Optional[tuple]:
    """'January 2025' -> (2025, 1); anything else -> None."""
    if not isinstance(value, str):
        return None
    match = _MONTH_YEAR.match(value.strip())
    if not match:
        return None
    name, year = match.groups()
    if name.lower() not in MONTH_NAMES:
        return None
    return int(year), MONTH_NAMES.index(name.lower()) + 1


def month_planned_spend(month: Mapping[str, Any]) -> float:
    """Line item amounts plus fee, production and adserving totals."""
    line_items = month.get("lineItems")
    items: List[Any] = list(line_items) if isinstance(line_items, list) else []
    media_types = month.get("mediaTypes")
    if isinstance(media_types, list):
        for media_type in media_types:
            if isinstance(media_type, Mapping) and isinstance(media_type.get("lineItems"), list):
                items.extend(media_type["lineItems"])
    total = sum(parse_money(item.get("amount")) for item in items if isinstance(item, Mapping))
    return (
        total
        + parse_money(month.get("feeTotal"))
        + parse_money(month.get("production"))
        + parse_money(month.get("adservingTechFees"))
    )


def local_date(moment: Optional[datetime], timezone: str) -> date:
    """Calendar date of a moment in the reporting timezone (naive = UTC)."""
    zone = ZoneInfo(timezone)
    if moment is None:
        return datetime.now(zone).date()
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=ZoneInfo("UTC"))
    return moment.astimezone(zone).date()


def _as_at_fraction(
    year: int,
    month: int,
    as_at_day: int,
    campaign_start: Optional[date],
    campaign_end: Optional[date],
) -> float:
    window_start = 1
    window_end = calendar.monthrange(year, month)[1]

    if campaign_start and (campaign_start.year, campaign_start.month) == (year, month):
        window_start = max(window_start, campaign_start.day)
    if campaign_end and (campaign_end.year, campaign_end.month) == (year, month):
        window_end = min(window_end, campaign_end.day)

    if window_end < window_start:
        return 0.0

    elapsed = min(as_at_day, window_end) - window_start + 1
    if elapsed <= 0:
        return 0.0

    return min(1.0, max(0.0, elapsed / (window_end - window_start + 1)))


def calculate_expected_spend_to_date(
    delivery_schedule: Any,
    campaign_start: Any = None,
    campaign_end: Any = None,
    as_at: Optional[datetime] = None,
    timezone: str = "Australia/Melbourne",
) -> float:
    """
    Expected spend by as_at, rounded to 4 decimals.

    Returns 0 before the campaign starts and the full planned total after
    it ends. Month entries without a "Month YYYY" label are ignored by the
    month-by-month walk.
    """
    months = [m for m in to_schedule_array(delivery_schedule) if isinstance(m, Mapping)]
    if not months:
        return 0.0

    today = local_date(as_at, timezone)
    start = parse_date(campaign_start)
    end = parse_date(campaign_end)

    if start and today < start:
        return 0.0

    if end and today > end:
        return round4(sum(month_planned_spend(month) for month in months))

    expected = 0.0
    for month in months:
        parsed = parse_month_year(month.get("monthYear"))
        if parsed is None:
            continue
        planned = month_planned_spend(month)
        if parsed < (today.year, today.month):
            expected += planned
        elif parsed == (today.year, today.month):
            expected += planned * _as_at_fraction(parsed[0], parsed[1], today.day, start, end)

    logger.debug(f"Expected spend to {today}: {expected:.4f}")
    return round4(expected)
