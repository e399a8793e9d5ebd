"""
Accrual reconciliation service.

Compares what each campaign version planned to deliver against what it
bills, per line item, over a selection of months. Schedules are persisted as
loosely structured JSON in several historical shapes, so every step here is
tolerant: unrecognised shapes yield no lines, unparsable months are skipped
and money text is parsed leniently.

Pipeline:
1. normalize_month_key: any month representation -> "YYYY-MM" (or None)
2. flatten_schedule: schedule payload -> flat (month, line item, amount) lines,
   including month-level service lines (adserving, production, fees)
3. compute_accrual_rows: drop delivery lines of client-paid line items, then
   sum delivery and billing per (MBA number, version, line item key)

Line item identity:
    An explicit line item id (lowercased) when present, otherwise a key
    derived from the lowercased media type, headers and name. Two line items
    with identical descriptive text and no id therefore share one row.

Supplementary helpers pick the latest version per MBA number and build the
client-pays-for-media lookup from persisted line item rows.
"""

import json
import logging
import math
import re
from dataclasses import asdict, dataclass
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

import pandas as pd

from mediaplan.core.parsing import parse_money, round2
from mediaplan.models.enums import ScheduleSource
from mediaplan.models.schemas import AccrualRow, CampaignVersionInput

logger = logging.getLogger(__name__)

MONTH_NAMES = [
    "january", "february", "march", "april", "may", "june",
    "july", "august", "september", "october", "november", "december",
]
MONTH_SHORT_NAMES = [name[:3] for name in MONTH_NAMES]

_YEAR_FIRST = re.compile(r"^(\d{4})[-/](\d{2})$")
_MONTH_FIRST = re.compile(r"^(\d{1,2})[-/](\d{4})$")
_NUMERIC_FALLBACK = re.compile(r"(\d{4}).*?(\d{1,2})")
_LEADING_INT = re.compile(r"^[+-]?\d+")
_SIX_DIGITS = re.compile(r"^\d{6}$")
_MONTH_KEY = re.compile(r"^\d{4}-\d{2}$")

MONTH_VALUE_KEYS = (
    "monthYear", "month_year", "month", "billingMonth", "monthLabel", "month_label",
    "date", "startDate", "start_date", "period_start", "periodStart",
)

SERVICE_LINES = (
    ("__service__adserving", "Adserving & Tech Fees",
     ("adservingTechFees", "adserving_tech_fees", "adServingTechFees", "ad_serving", "adserving")),
    ("__service__production", "Production",
     ("production", "production_cost", "productionCost")),
    ("__service__fees", "Fees",
     ("feeTotal", "fee_total", "assembledFee")),
)

LINE_ITEM_AMOUNT_KEYS = ("amount", "totalAmount", "total_amount", "total", "value", "cost", "budget")
MEDIA_TYPE_AMOUNT_KEYS = ("amount", "totalAmount")
MONTH_AMOUNT_KEYS = ("amount", "totalAmount", "spend", "budget", "investment", "media_investment")
LINE_ITEM_NAME_KEYS = ("lineItemName", "line_item_name", "name", "description", "label", "title")


@dataclass
class FlattenedLine:
    """One schedule amount for one line item in one month."""
    source: ScheduleSource
    client_name: str
    client_slug: Optional[str]
    campaign_name: str
    mba_number: str
    version_number: int
    month_key: str
    line_item_key: str
    line_item_name: str
    amount: float


# =============================================================================
# Month Normalization
# =============================================================================


def _month(year: int, month: int) -> Optional[str]:
    if 1 <= month <= 12:
        return f"{year}-{month:02d}"
    return None


def normalize_month_key(value: Any) -> Optional[str]:
    """
    Normalize a month representation to "YYYY-MM".

    Examples:
        >>> normalize_month_key("January 2026")
        '2026-01'
        >>> normalize_month_key(202512)
        '2025-12'
        >>> normalize_month_key("12/2025")
        '2025-12'
        >>> normalize_month_key("not a month") is None
        True
    """
    if not value:
        return None

    if isinstance(value, (datetime, date)):
        return f"{value.year}-{value.month:02d}"

    if isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        if isinstance(value, float) and not value.is_integer():
            return None
        text = str(int(value))
        if _SIX_DIGITS.match(text):
            return _month(int(text[:4]), int(text[4:]))
        return None

    trimmed = " ".join(str(value).replace(",", " ").split())
    if not trimmed:
        return None

    match = _YEAR_FIRST.match(trimmed)
    if match:
        key = _month(int(match.group(1)), int(match.group(2)))
        if key:
            return key

    match = _MONTH_FIRST.match(trimmed)
    if match:
        key = _month(int(match.group(2)), int(match.group(1)))
        if key:
            return key

    parts = trimmed.split(" ")
    if len(parts) >= 2:
        name = parts[0].lower()
        year_match = _LEADING_INT.match(parts[1])
        month_number = None
        if name in MONTH_NAMES:
            month_number = MONTH_NAMES.index(name) + 1
        elif name in MONTH_SHORT_NAMES:
            month_number = MONTH_SHORT_NAMES.index(name) + 1
        if month_number and year_match:
            return f"{int(year_match.group(0))}-{month_number:02d}"

    match = _NUMERIC_FALLBACK.search(trimmed)
    if match:
        key = _month(int(match.group(1)), int(match.group(2)))
        if key:
            return key

    parsed = pd.to_datetime(trimmed, errors="coerce")
    if not pd.isna(parsed):
        return f"{parsed.year}-{parsed.month:02d}"

    logger.debug(f"Unparsable month value {value!r}")
    return None


def normalize_months(values: Iterable[Any]) -> List[str]:
    """Distinct valid "YYYY-MM" keys, in first-seen order."""
    seen: Dict[str, None] = {}
    for value in values:
        key = normalize_month_key(value.strip() if isinstance(value, str) else value)
        if key and _MONTH_KEY.match(key):
            seen.setdefault(key, None)
    return list(seen)


# =============================================================================
# Schedule Flattening
# =============================================================================


def _get(obj: Any, *keys: str) -> Any:
    """First non-None value among keys of a mapping."""
    if not isinstance(obj, Mapping):
        return None
    for key in keys:
        if obj.get(key) is not None:
            return obj[key]
    return None


def _safe_string(value: Any) -> str:
    return "" if value is None else str(value).strip()


def _has_meaningful_value(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, float):
        return math.isfinite(value)
    return bool(str(value).strip())


def to_schedule_array(schedule: Any) -> List[Any]:
    """Month entries of a schedule given as a list, {"months": [...]}, or JSON text."""
    parsed = schedule
    if isinstance(schedule, (str, bytes)):
        text = schedule.strip() if isinstance(schedule, str) else schedule
        if not text:
            return []
        try:
            parsed = json.loads(text)
        except ValueError:
            logger.debug("Ignoring unparsable schedule payload")
            return []

    if isinstance(parsed, list):
        return parsed
    if isinstance(parsed, Mapping) and isinstance(parsed.get("months"), list):
        return parsed["months"]
    return []


def build_line_item_name(
    media_type: Optional[str],
    header1: str,
    header2: str,
    explicit_name: Any = None,
) -> str:
    explicit = _safe_string(explicit_name)
    if explicit:
        return explicit
    if header1 and header2:
        return f"{header1} • {header2}"
    if header1 or header2:
        return header1 or header2
    return _safe_string(media_type) or "Line item"


def build_line_item_key(
    line_item: Any,
    media_type: Optional[str],
    header1: str,
    header2: str,
    line_item_name: str,
) -> str:
    """Lowercased explicit id, else mediaType__header1__header2__name."""
    explicit_id = _safe_string(_get(line_item, "lineItemId", "line_item_id", "id"))
    if explicit_id:
        return explicit_id.lower()

    parts = [_safe_string(part).lower() for part in (media_type, header1, header2, line_item_name)]
    return " ".join("__".join(parts).split())


def extract_headers(line_item: Any) -> Tuple[str, str]:
    header1 = _get(line_item, "header1", "publisher", "network", "platform", "site")
    header2 = _get(line_item, "header2", "placement", "station", "title", "format")
    return _safe_string(header1), _safe_string(header2)


def extract_amount(line_item: Any, media_type_entry: Any = None, month_entry: Any = None) -> float:
    candidate = _get(line_item, *LINE_ITEM_AMOUNT_KEYS)
    if candidate is None:
        candidate = _get(media_type_entry, *MEDIA_TYPE_AMOUNT_KEYS)
    if candidate is None:
        candidate = _get(month_entry, *MONTH_AMOUNT_KEYS)
    return round2(parse_money(candidate))


def flatten_schedule(
    source: ScheduleSource,
    schedule: Any,
    months: Set[str],
    version: CampaignVersionInput,
) -> List[FlattenedLine]:
    """
    Walk a schedule payload into flat lines for the selected months.

    Recognised month shapes, in priority order:
    - mediaTypes: [{mediaType, lineItems: [...]}] (a media type without line
      items becomes one aggregate line when its amount is non-zero)
    - lineItems: [...] directly on the month
    - the month entry itself as a single line when its amount is non-zero

    Month-level adserving, production and fee totals always produce service
    lines.
    """
    entries = to_schedule_array(schedule)
    lines: List[FlattenedLine] = []

    def emit(month_key: str, key: str, name: str, amount: float) -> None:
        lines.append(
            FlattenedLine(
                source=source,
                client_name=version.clientName,
                client_slug=version.clientSlug,
                campaign_name=version.campaignName,
                mba_number=version.mbaNumber,
                version_number=version.versionNumber or 0,
                month_key=month_key,
                line_item_key=key,
                line_item_name=name,
                amount=amount,
            )
        )

    def emit_line_item(month_key: str, line_item: Any, media_type: Optional[str], amount: float) -> None:
        header1, header2 = extract_headers(line_item)
        name = build_line_item_name(media_type, header1, header2, _get(line_item, *LINE_ITEM_NAME_KEYS))
        emit(month_key, build_line_item_key(line_item, media_type, header1, header2, name), name, amount)

    for entry in entries:
        month_key = normalize_month_key(_get(entry, *MONTH_VALUE_KEYS))
        if not month_key or month_key not in months:
            continue

        for key, name, fields in SERVICE_LINES:
            value = _get(entry, *fields)
            if _has_meaningful_value(value):
                emit(month_key, key, name, round2(parse_money(value)))

        month_media_type = _get(entry, "mediaType", "media_type", "channel")

        media_types = _get(entry, "mediaTypes", "media_types", "mediaTypeEntries", "channels")
        if isinstance(media_types, list):
            for media_type_entry in media_types:
                media_type_value = _get(media_type_entry, "mediaType", "media_type", "type", "name")
                if media_type_value is None:
                    media_type_value = _get(entry, "mediaType", "media_type", "channel", "media_channel")
                media_type = _safe_string(media_type_value) or None
                line_items = _get(media_type_entry, "lineItems", "line_items", "items", "rows")

                if isinstance(line_items, list):
                    for line_item in line_items:
                        emit_line_item(
                            month_key,
                            line_item,
                            media_type,
                            extract_amount(line_item, media_type_entry, entry),
                        )
                    continue

                amount = extract_amount(None, media_type_entry, entry)
                if amount != 0:
                    name = build_line_item_name(media_type, "", "")
                    emit(month_key, build_line_item_key(media_type_entry, media_type, "", "", name), name, amount)
            continue

        flat_line_items = _get(entry, "lineItems", "line_items", "items")
        media_type = _safe_string(month_media_type) or None
        if isinstance(flat_line_items, list):
            for line_item in flat_line_items:
                emit_line_item(month_key, line_item, media_type, extract_amount(line_item, None, entry))
            continue

        amount = extract_amount(entry, None, entry)
        if amount != 0:
            name = build_line_item_name(
                media_type,
                _safe_string(_get(entry, "header1", "publisher")),
                _safe_string(_get(entry, "header2", "placement")),
                _get(entry, "lineItemName", "name", "description"),
            )
            emit(month_key, build_line_item_key(entry, media_type, "", "", name), name, amount)

    return lines


# =============================================================================
# Reconciliation
# =============================================================================


def slugify_client_name(name: str) -> str:
    cleaned = re.sub(r"[^a-z0-9\s-]", "", name.lower())
    return re.sub(r"\s+", "-", cleaned).strip()


def _with_client_defaults(version: CampaignVersionInput) -> CampaignVersionInput:
    slug = _safe_string(version.clientSlug) or slugify_client_name(version.clientName) or None
    return version.model_copy(update={"clientSlug": slug})


def compute_accrual_rows(
    versions: Sequence[CampaignVersionInput],
    months: Iterable[str],
    client_pays_for_media: Optional[Mapping[str, bool]] = None,
) -> List[AccrualRow]:
    """
    Reconcile delivery against billing for the selected months.

    Delivery lines of line items flagged client-pays-for-media are excluded;
    billing lines never are. Amounts are summed per (MBA number, version,
    line item key) in first-seen order, and the longest line item name seen
    for a key labels its row.
    """
    month_set = set(months)
    if not month_set:
        return []

    lookup = {str(k).strip().lower(): bool(v) for k, v in (client_pays_for_media or {}).items()}
    lines: List[FlattenedLine] = []

    for raw_version in versions:
        version = _with_client_defaults(raw_version)
        delivery = flatten_schedule(ScheduleSource.DELIVERY, version.deliverySchedule, month_set, version)
        kept = [line for line in delivery if lookup.get(line.line_item_key.strip().lower()) is not True]
        if len(kept) < len(delivery):
            logger.debug(
                f"Excluded {len(delivery) - len(kept)} client-paid delivery lines for {version.mbaNumber} "
                f"v{version.versionNumber}"
            )
        lines.extend(kept)
        lines.extend(flatten_schedule(ScheduleSource.BILLING, version.billingSchedule, month_set, version))

    if not lines:
        return []

    frame = pd.DataFrame([asdict(line) for line in lines])
    is_delivery = frame["source"] == ScheduleSource.DELIVERY
    frame["delivery_amount"] = frame["amount"].where(is_delivery, 0.0)
    frame["billing_amount"] = frame["amount"].where(~is_delivery, 0.0)
    frame["name_length"] = frame["line_item_name"].str.len()

    grouped = frame.groupby(["mba_number", "version_number", "line_item_key"], sort=False)
    firsts = grouped.head(1).set_index(["mba_number", "version_number", "line_item_key"])
    labels = frame.loc[grouped["name_length"].idxmax(), ["mba_number", "version_number", "line_item_key", "line_item_name"]]
    labels = labels.set_index(["mba_number", "version_number", "line_item_key"])["line_item_name"]
    totals = grouped[["delivery_amount", "billing_amount"]].sum()

    rows: List[AccrualRow] = []
    for key, sums in totals.iterrows():
        first = firsts.loc[key]
        delivery_amount = round2(float(sums["delivery_amount"]))
        billing_amount = round2(float(sums["billing_amount"]))
        rows.append(
            AccrualRow(
                clientName=first["client_name"],
                clientSlug=first["client_slug"],
                campaignName=first["campaign_name"],
                mbaNumber=key[0],
                versionNumber=int(key[1]),
                lineItemKey=key[2],
                lineItemName=labels.loc[key],
                deliveryAmount=delivery_amount,
                billingAmount=billing_amount,
                difference=round2(delivery_amount - billing_amount),
            )
        )

    logger.info(f"Computed {len(rows)} accrual rows from {len(lines)} schedule lines")
    return rows


# =============================================================================
# Version Selection and Flags
# =============================================================================


def _parse_version_number(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    match = _LEADING_INT.match(str(value).strip())
    return int(match.group(0)) if match else None


def _parse_time(value: Any) -> Optional[float]:
    if isinstance(value, datetime):
        return value.timestamp()
    text = _safe_string(value)
    if not text:
        return None
    parsed = pd.to_datetime(text, errors="coerce", utc=True)
    if pd.isna(parsed):
        return None
    return parsed.timestamp()


def extract_version_number(version: Mapping[str, Any]) -> Optional[int]:
    for key in ("version_number", "versionNumber", "version"):
        number = _parse_version_number(version.get(key))
        if number is not None:
            return number
    return None


def _recency_key(version: Mapping[str, Any]) -> tuple:
    """Sort key: version number, then updated_at, created_at and id; missing values rank lowest."""
    def ranked(value: Optional[float]) -> tuple:
        return (value is not None, value if value is not None else 0.0)

    raw_id = version.get("id")
    try:
        numeric_id = float(raw_id) if raw_id is not None else None
    except (TypeError, ValueError):
        numeric_id = None

    return (
        ranked(extract_version_number(version)),
        ranked(_parse_time(version.get("updated_at"))),
        ranked(_parse_time(version.get("created_at"))),
        ranked(numeric_id),
    )


def pick_latest_versions(
    versions: Iterable[Mapping[str, Any]],
    masters: Iterable[Mapping[str, Any]],
) -> List[Mapping[str, Any]]:
    """
    Choose one version per MBA number.

    When a master record names the MBA's current version number, only
    versions with that number (and a matching master id, when both are
    known) qualify. Otherwise the highest version number wins, then the
    latest updated_at, created_at and id.
    """
    latest_by_master: Dict[str, tuple] = {}
    for master in masters:
        mba = _safe_string(master.get("mba_number")).lower()
        number = _parse_version_number(master.get("version_number"))
        if not mba or number is None:
            continue
        existing = latest_by_master.get(mba)
        if existing is None or number > existing[1]:
            latest_by_master[mba] = (master.get("id"), number)

    best: Dict[str, Mapping[str, Any]] = {}
    for version in versions:
        mba = _safe_string(version.get("mba_number")).lower()
        if not mba and version.get("media_plan_master_id"):
            mba = f"master:{version['media_plan_master_id']}"
        if not mba:
            continue

        hint = latest_by_master.get(mba)
        if hint is not None:
            master_id, number = hint
            version_master_id = version.get("media_plan_master_id")
            id_matches = not version_master_id or not master_id or version_master_id == master_id
            if extract_version_number(version) != number or not id_matches:
                continue

        existing = best.get(mba)
        if existing is None or _recency_key(version) > _recency_key(existing):
            best[mba] = version

    return list(best.values())


def build_client_pays_lookup(line_item_rows: Iterable[Mapping[str, Any]]) -> Dict[str, bool]:
    """Lowercased line item id -> client pays for media. A True from any row wins."""
    lookup: Dict[str, bool] = {}
    for row in line_item_rows:
        line_item_id = _safe_string(_get(row, "line_item_id", "lineItemId", "id")).lower()
        if not line_item_id:
            continue
        flag = _get(row, "client_pays_for_media", "clientPaysForMedia")
        if isinstance(flag, str):
            flag = flag.strip().lower() in {"true", "1", "yes"}
        if flag:
            lookup[line_item_id] = True
        else:
            lookup.setdefault(line_item_id, False)
    return lookup
