"""
Monthly proration engine.

Splits a burst's total investment across the calendar months it touches,
weighted by the number of burst days falling in each month. The proration
is linear: no compounding and no day-of-week weighting.

Example:
    A burst from 20 January to 10 February is 22 days long. January holds
    12 of those days and February 10, so $2,200 splits into $1,200 and
    $1,000.

Amounts for one burst always sum to its total investment. The last month
takes the remainder so floating point drift never leaks into the total.
Multiple bursts accumulate additively into the same month bucket, and the
output is always chronological.

Key Functions:
- prorate_burst: Allocation of one burst
- calculate_investment_per_month: All bursts of a channel, billing or delivery view
- monthly_investment_summary: Formatted rows for the cash-flow table
- calculate_line_item_monthly_amounts: Per line item month maps for billing
"""

import calendar
import logging
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Tuple

from mediaplan.core.parsing import format_currency, parse_date
from mediaplan.models.enums import InvestmentView, MonthKeyFormat
from mediaplan.models.schemas import (
    LineItem,
    LineItemMonthlyAmounts,
    MonthlyAllocation,
    MonthlyInvestmentRow,
)
from mediaplan.services.fee_policy import split_burst

logger = logging.getLogger(__name__)

MonthTuple = Tuple[int, int]

HEADER1_FIELDS = ("header1", "publisher", "network", "platform", "site")
HEADER2_FIELDS = ("header2", "placement", "station", "title", "format")


# =============================================================================
# Month Keys
# =============================================================================


def month_key(year: int, month: int, key_format: MonthKeyFormat = MonthKeyFormat.ISO) -> str:
    """'2025-01' for ISO keys, 'January 2025' for labels."""
    if key_format == MonthKeyFormat.LABEL:
        return f"{calendar.month_name[month]} {year}"
    return f"{year}-{month:02d}"


def _month_end(day: date) -> date:
    return day.replace(day=calendar.monthrange(day.year, day.month)[1])


def _split_days(start: date, end: date) -> List[Tuple[MonthTuple, int]]:
    """(month, days) for every month the inclusive range touches."""
    segments: List[Tuple[MonthTuple, int]] = []
    cursor = start
    while cursor <= end:
        segment_end = min(_month_end(cursor), end)
        segments.append(((cursor.year, cursor.month), (segment_end - cursor).days + 1))
        cursor = segment_end + timedelta(days=1)
    return segments


def allocate_by_month(start: date, end: date, total: float) -> List[Tuple[MonthTuple, float]]:
    if start > end:
        start, end = end, start

    segments = _split_days(start, end)
    total_days = (end - start).days + 1

    allocations: List[Tuple[MonthTuple, float]] = []
    allocated = 0.0
    for index, (month, days) in enumerate(segments):
        if index == len(segments) - 1:
            amount = total - allocated
        else:
            amount = total * days / total_days
            allocated += amount
        allocations.append((month, amount))
    return allocations


# =============================================================================
# Single Burst
# =============================================================================


def prorate_burst(
    start: object,
    end: object,
    total: float,
    key_format: MonthKeyFormat = MonthKeyFormat.ISO,
) -> List[MonthlyAllocation]:
    """
    Prorate one burst's total investment across calendar months.

    A single-day burst allocates everything to that day's month. Unparsable
    dates yield an empty allocation.
    """
    start_date = parse_date(start)
    end_date = parse_date(end) or start_date
    if start_date is None or end_date is None:
        return []

    return [
        MonthlyAllocation(monthKey=month_key(year, month, key_format), amount=amount)
        for (year, month), amount in allocate_by_month(start_date, end_date, total)
    ]


# =============================================================================
# Channel Level
# =============================================================================


def _burst_investment(split, view: InvestmentView) -> float:
    if view == InvestmentView.DELIVERY:
        return split.deliveryMediaAmount + split.feeAmount
    return split.totalAmount


def _accumulate(
    line_items: Iterable[LineItem],
    fee_percent: Optional[float],
    view: InvestmentView,
) -> Dict[MonthTuple, float]:
    buckets: Dict[MonthTuple, float] = {}
    for line_item in line_items:
        for burst in line_item.bursts:
            investment = _burst_investment(split_burst(line_item, burst, fee_percent), view)
            for month, amount in allocate_by_month(burst.startDate, burst.endDate, investment):
                buckets[month] = buckets.get(month, 0.0) + amount
    return buckets


def calculate_investment_per_month(
    line_items: Iterable[LineItem],
    fee_percent: Optional[float],
    key_format: MonthKeyFormat = MonthKeyFormat.ISO,
    view: InvestmentView = InvestmentView.BILLING,
) -> List[MonthlyAllocation]:
    """
    Accumulate every burst of a channel into month buckets.

    Each burst's investment is its billed total (billing view) or its
    delivered media plus fee (delivery view).
    """
    buckets = _accumulate(line_items, fee_percent, view)
    return [
        MonthlyAllocation(monthKey=month_key(year, month, key_format), amount=buckets[(year, month)])
        for year, month in sorted(buckets)
    ]


def monthly_investment_summary(
    line_items: Iterable[LineItem],
    fee_percent: Optional[float],
    currency_symbol: str = "$",
    view: InvestmentView = InvestmentView.BILLING,
) -> List[MonthlyInvestmentRow]:
    """Ordered (month label, formatted amount) rows for the cash-flow table."""
    allocations = calculate_investment_per_month(
        line_items, fee_percent, key_format=MonthKeyFormat.LABEL, view=view
    )
    return [
        MonthlyInvestmentRow(
            monthLabel=allocation.monthKey,
            amount=allocation.amount,
            formattedAmount=format_currency(allocation.amount, currency_symbol),
        )
        for allocation in allocations
    ]


def line_item_headers(line_item: LineItem) -> Tuple[str, str]:
    """Primary and secondary display headers of a line item."""
    def first(fields: Tuple[str, ...]) -> str:
        for name in fields:
            value = line_item.value_of(name)
            if value not in (None, ""):
                return str(value).strip()
        return ""

    return first(HEADER1_FIELDS), first(HEADER2_FIELDS)


def calculate_line_item_monthly_amounts(
    line_items: Iterable[LineItem],
    fee_percent: Optional[float],
    media_type: str,
    view: InvestmentView = InvestmentView.BILLING,
) -> List[LineItemMonthlyAmounts]:
    """
    Media per month for each line item, keyed "YYYY-MM".

    The billing view uses billed media, the delivery view delivered media.
    Fees are reported at month level by the billing schedule, not here.
    """
    results: List[LineItemMonthlyAmounts] = []

    for line_item in line_items:
        months: Dict[MonthTuple, float] = {}
        for burst in line_item.bursts:
            split = split_burst(line_item, burst, fee_percent)
            media = split.deliveryMediaAmount if view == InvestmentView.DELIVERY else split.mediaAmount
            for month, amount in allocate_by_month(burst.startDate, burst.endDate, media):
                months[month] = months.get(month, 0.0) + amount

        header1, header2 = line_item_headers(line_item)
        results.append(
            LineItemMonthlyAmounts(
                lineItemId=line_item.lineItemId,
                mediaType=media_type,
                header1=header1,
                header2=header2,
                months={
                    month_key(year, month): months[(year, month)] for year, month in sorted(months)
                },
            )
        )

    return results
