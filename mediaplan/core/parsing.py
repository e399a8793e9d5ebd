"""
Tolerant parsing and formatting helpers shared by schemas and services.

Form values reach the engines as free text ("$1,250.00", "12/03/2025") while a
user is still typing, and persisted records carry JSON blobs of uneven
quality. Every parser here degrades to 0 / None / [] instead of raising.
"""

import json
import logging
import math
import re
from datetime import date, datetime
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

_NON_NUMERIC = re.compile(r"[^\d.\-]")
_ISO_DATE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})")
_DMY_DATE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")
_PARENS = re.compile(r"^\(.*\)$")

MONTH_ABBREVIATIONS = [
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
]


# =============================================================================
# Numbers
# =============================================================================

def parse_money(value: Any) -> float:
    """
    Parse a currency-like value into a float.

    Strips every character except digits, '.' and '-' before parsing.
    Amounts wrapped in parentheses are treated as negative, as exported by
    accounting tools.

    Examples:
        >>> parse_money("$21,749.25")
        21749.25
        >>> parse_money("(1,234.50)")
        -1234.5
        >>> parse_money("n/a")
        0.0
    """
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else 0.0

    raw = str(value).strip()
    if not raw:
        return 0.0

    cleaned = _NON_NUMERIC.sub("", raw)
    try:
        number = float(cleaned)
    except ValueError:
        # "1.2.3", "--5", "" and friends
        return 0.0
    if not math.isfinite(number):
        return 0.0
    if _PARENS.match(raw):
        return -abs(number)
    return number


def parse_budget(value: Any) -> float:
    """Parse a burst budget. Budgets are never negative."""
    return max(0.0, parse_money(value))


def round2(value: float) -> float:
    """Round to cents; non-finite values become 0."""
    if value is None or not math.isfinite(value):
        return 0.0
    return round(value, 2)


def round4(value: float) -> float:
    """Round to fractional cents (4 dp); non-finite values become 0."""
    if value is None or not math.isfinite(value):
        return 0.0
    return round(value, 4)


# =============================================================================
# Dates
# =============================================================================

def parse_date(value: Any) -> Optional[date]:
    """
    Parse a calendar date from a form or persisted value.

    Accepts date/datetime objects, ISO strings ("2025-03-01",
    "2025-03-01T00:00:00.000Z") and "DD/MM/YYYY". Time components are
    discarded. Returns None when the value is not a valid date.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    raw = str(value).strip()
    if not raw:
        return None

    try:
        match = _ISO_DATE.match(raw)
        if match:
            year, month, day = (int(part) for part in match.groups())
            return date(year, month, day)

        match = _DMY_DATE.match(raw)
        if match:
            day, month, year = (int(part) for part in match.groups())
            return date(year, month, day)
    except ValueError:
        return None

    return None


# =============================================================================
# Persisted burst payloads
# =============================================================================

def parse_bursts_field(value: Any) -> List[Dict[str, Any]]:
    """
    Read the bursts field of a persisted line item record.

    The field may be a JSON string, an already parsed list, or an object
    wrapping the list under "bursts". Anything else means "no bursts".
    """
    if not value:
        return []

    parsed = value
    if isinstance(value, (str, bytes)):
        try:
            parsed = json.loads(value)
        except (TypeError, ValueError):
            logger.debug("Ignoring unparsable bursts payload")
            return []

    if isinstance(parsed, dict):
        parsed = parsed.get("bursts")

    if not isinstance(parsed, list):
        return []

    return [item for item in parsed if isinstance(item, dict)]


def _first_present(raw: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if raw.get(key) is not None:
            return raw[key]
    return None


def normalise_burst(
    raw: Dict[str, Any],
    line_item_id: Any,
    index: int,
    fallback_start: Any = None,
    fallback_end: Any = None,
) -> Optional[Dict[str, Any]]:
    """
    Normalise one raw burst dict into the canonical camelCase shape.

    Missing dates fall back to the line item's dates; an inverted range is
    swapped so start <= end. Returns None when no usable date exists.
    """
    start = parse_date(_first_present(raw, "start_date", "startDate", "start"))
    end = parse_date(_first_present(raw, "end_date", "endDate", "end"))

    start = start or parse_date(fallback_start)
    end = end or parse_date(fallback_end) or start

    if start is None or end is None:
        return None
    if start > end:
        start, end = end, start

    burst: Dict[str, Any] = {
        "id": f"{line_item_id}-b{index}",
        "startDate": start,
        "endDate": end,
        "budget": _first_present(raw, "budget", "spend", "media_investment", "investment"),
        "buyAmount": _first_present(raw, "buyAmount", "buy_amount"),
        "calculatedValue": _first_present(
            raw,
            "calculatedValue",
            "calculated_value",
            "deliverables",
            "deliverablesAmount",
            "tarps",
            "impressions",
            "spots",
        ),
        "feeOverride": _first_present(raw, "feeOverride", "fee_override"),
    }
    return burst


# =============================================================================
# Formatting
# =============================================================================

def format_currency(amount: float, symbol: str = "$") -> str:
    """Format an amount as "$1,234.56" (negative as "-$1,234.56")."""
    value = round2(amount)
    sign = "-" if value < 0 else ""
    return f"{sign}{symbol}{abs(value):,.2f}"


def format_percent(value: float) -> str:
    """Format a 0-100 percentage as "12.50%"."""
    return f"{round2(value):.2f}%"


def format_burst_label(display_index: int, start: Any = None, end: Any = None) -> str:
    """
    Build the display label for a burst.

    "Burst 2 - Feb" when both dates fall in the same month and year,
    otherwise just "Burst 2".
    """
    base = f"Burst {display_index}"
    start_date = parse_date(start)
    end_date = parse_date(end)
    if start_date is None or end_date is None:
        return base
    if (start_date.year, start_date.month) != (end_date.year, end_date.month):
        return base
    return f"{base} - {MONTH_ABBREVIATIONS[start_date.month - 1]}"
