"""
Billing schedule builder.

Turns billing bursts into month-by-month billed totals and serialises them
into the Month -> media types -> line items hierarchy stored on a plan
version. The serialised shape is the one the accrual reconciler reads back.

Key Functions:
- build_billing_months: Day-weighted monthly media/fee totals per media type
- build_billing_schedule_json: Stored hierarchy, zero amounts removed
- validate_billing_overrides: Manual month overrides must keep the plan total
"""

import logging
from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, Optional

from mediaplan.core.parsing import format_currency, parse_date, round2
from mediaplan.models.enums import MediaChannel, MonthKeyFormat
from mediaplan.models.schemas import (
    BillingBurst,
    BillingLineItem,
    BillingMonth,
    BillingOverrideValidation,
    LineItemMonthlyAmounts,
)
from mediaplan.services.proration import allocate_by_month, month_key

logger = logging.getLogger(__name__)

OVERRIDE_TOLERANCE = 0.01


def media_type_label(media_type: str) -> str:
    """Display label of a media type tag, or the tag itself."""
    try:
        return MediaChannel(media_type).label
    except ValueError:
        return media_type


def _months_between(start: date, end: date) -> List[tuple]:
    months = []
    year, month = start.year, start.month
    while (year, month) <= (end.year, end.month):
        months.append((year, month))
        year, month = (year + 1, 1) if month == 12 else (year, month + 1)
    return months


def _empty_month(year: int, month: int) -> BillingMonth:
    return BillingMonth(
        monthYear=month_key(year, month, MonthKeyFormat.LABEL),
        monthKey=month_key(year, month),
    )


def build_billing_months(
    billing_bursts: Iterable[BillingBurst],
    line_items: Optional[Iterable[LineItemMonthlyAmounts]] = None,
    campaign_start: Any = None,
    campaign_end: Any = None,
    adserving: Optional[Mapping[str, float]] = None,
    production: Optional[Mapping[str, float]] = None,
) -> List[BillingMonth]:
    """
    Spread billing bursts over calendar months, day-weighted.

    When a campaign range is given, every month in it is present (possibly
    zero) and amounts falling outside it are left out. Adserving and
    production amounts are keyed "YYYY-MM". totalAmount is media + fee +
    adserving + production.
    """
    start = parse_date(campaign_start)
    end = parse_date(campaign_end)
    bounded = start is not None and end is not None

    months: Dict[tuple, BillingMonth] = {}
    if bounded:
        for year, month in _months_between(min(start, end), max(start, end)):
            months[(year, month)] = _empty_month(year, month)

    def month_for(key: tuple) -> Optional[BillingMonth]:
        if key not in months:
            if bounded:
                return None
            months[key] = _empty_month(*key)
        return months[key]

    for burst in billing_bursts:
        media_parts = allocate_by_month(burst.startDate, burst.endDate, burst.mediaAmount)
        fee_parts = allocate_by_month(burst.startDate, burst.endDate, burst.feeAmount)
        for (key, media), (_, fee) in zip(media_parts, fee_parts):
            month = month_for(key)
            if month is None:
                continue
            month.mediaCosts[burst.mediaType] = month.mediaCosts.get(burst.mediaType, 0.0) + media
            month.mediaTotal += media
            month.feeTotal += fee

    for item in line_items or []:
        for iso_key, amount in item.months.items():
            year, month_number = (int(part) for part in iso_key.split("-"))
            month = month_for((year, month_number))
            if month is None:
                continue
            entries = month.lineItems.setdefault(item.mediaType, [])
            existing = next((entry for entry in entries if entry.id == item.lineItemId), None)
            if existing is None:
                existing = BillingLineItem(
                    id=item.lineItemId,
                    mediaType=item.mediaType,
                    header1=item.header1,
                    header2=item.header2,
                )
                entries.append(existing)
            existing.monthlyAmounts[month.monthYear] = existing.monthlyAmounts.get(month.monthYear, 0.0) + amount

    for month in months.values():
        month.adservingTechFees = float((adserving or {}).get(month.monthKey, 0.0))
        month.production = float((production or {}).get(month.monthKey, 0.0))
        month.totalAmount = month.mediaTotal + month.feeTotal + month.adservingTechFees + month.production

    return [months[key] for key in sorted(months)]


def build_billing_schedule_json(
    billing_months: Iterable[BillingMonth],
    currency_symbol: str = "$",
) -> List[Dict[str, Any]]:
    """
    Serialise billing months as Month -> media types -> line items.

    Line items with no positive amount and media types left empty are
    dropped. feeTotal, adservingTechFees and production appear only when
    non-zero; months with nothing left are omitted.
    """
    schedule: List[Dict[str, Any]] = []

    for month in billing_months:
        media_types = []
        for media_key, items in month.lineItems.items():
            formatted = [
                {
                    "lineItemId": item.id,
                    "header1": item.header1,
                    "header2": item.header2,
                    "amount": format_currency(item.monthlyAmounts.get(month.monthYear, 0.0), currency_symbol),
                }
                for item in items
                if item.monthlyAmounts.get(month.monthYear, 0.0) > 0
            ]
            if formatted:
                media_types.append({"mediaType": media_type_label(media_key), "lineItems": formatted})

        entry: Dict[str, Any] = {"monthYear": month.monthYear, "mediaTypes": media_types}
        for field_name in ("feeTotal", "adservingTechFees", "production"):
            value = round2(getattr(month, field_name))
            if value != 0:
                entry[field_name] = format_currency(value, currency_symbol)

        if media_types or len(entry) > 2:
            schedule.append(entry)

    return schedule


def validate_billing_overrides(
    original: Iterable[BillingMonth],
    overrides: Iterable[BillingMonth],
) -> BillingOverrideValidation:
    """
    Check that manually overridden months keep the original plan total.

    Valid when the totals differ by at most $0.01.
    """
    original_total = sum(month.totalAmount for month in original)
    override_total = sum(month.totalAmount for month in overrides)
    difference = override_total - original_total

    if abs(difference) <= OVERRIDE_TOLERANCE:
        return BillingOverrideValidation(isValid=True, totalDifference=difference)

    if difference > 0:
        message = (
            f"Total override amount exceeds original by ${difference:.2f}. "
            f"Please adjust to match within $0.01."
        )
    else:
        message = (
            f"Total override amount is ${abs(difference):.2f} less than original. "
            f"Please adjust to match within $0.01."
        )
    logger.info(f"Rejected billing overrides: difference {difference:.2f}")
    return BillingOverrideValidation(isValid=False, totalDifference=difference, errorMessage=message)
