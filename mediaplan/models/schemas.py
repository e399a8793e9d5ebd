"""
Pydantic request/response models for the media plan finance backend.

This module provides type-safe validation and serialization for every data
model the finance engines exchange with the outside world: bursts and line
items as they arrive from channel forms or persisted records, fee policy
results, billing bursts, monthly allocations, grouped line items, timeline
layouts, accrual rows and the billing / expected spend payloads.

Input models are tolerant by construction: money fields accept free-text
currency strings, date fields accept ISO or DD/MM/YYYY strings and persisted
burst payloads may arrive as JSON text. Output models are plain data.

All models use Pydantic v2 syntax with camelCase field names matching the
JSON contract consumed by the front end.
"""

from datetime import date as DateType, datetime
from typing import Any, Dict, List, Mapping, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    field_validator,
    model_validator,
)

from mediaplan.core.config import validate_fee_percent
from mediaplan.core.parsing import (
    normalise_burst,
    parse_budget,
    parse_bursts_field,
    parse_date,
    parse_money,
)
from mediaplan.models.enums import InvestmentView, LayoutDropReason, MediaChannel, MonthKeyFormat


PERSISTED_RECORD_KEYS = frozenset({
    "line_item_id",
    "buy_type",
    "budget_includes_fees",
    "client_pays_for_media",
    "bursts_json",
})


def _as_bool(value: Any) -> bool:
    """Read a persisted flag that may be stored as bool, int or text."""
    if isinstance(value, str):
        return value.strip().lower() in {"true", "1", "yes", "y"}
    return bool(value)


def _camel_case(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


# =============================================================================
# Plan Input Models (bursts and line items)
# =============================================================================


class Burst(BaseModel):
    """
    A contiguous, inclusive date range within a line item with its own budget.

    Budget text that cannot be parsed becomes 0 and negative budgets are
    clamped to 0. An inverted range is swapped so startDate <= endDate.
    A fee override outside [0, 100) is rejected.
    """
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "tv-1-b1",
                "startDate": "2025-01-20",
                "endDate": "2025-02-10",
                "budget": "$10,000.00",
                "buyAmount": "50",
                "calculatedValue": 200000,
            }
        }
    )

    id: Optional[str] = Field(default=None, description="Burst identifier")
    startDate: DateType = Field(..., description="First day of the burst (inclusive)")
    endDate: DateType = Field(..., description="Last day of the burst (inclusive)")
    budget: float = Field(default=0.0, ge=0, description="Raw entered budget")
    buyAmount: float = Field(default=0.0, description="Buy metric, e.g. CPM rate or unit cost")
    calculatedValue: float = Field(
        default=0.0,
        description="Cached deliverable count; the manual count for bonus bursts",
    )
    feeOverride: Optional[float] = Field(
        default=None,
        description="Per-burst fee percent overriding the channel fee",
    )

    @field_validator("startDate", "endDate", mode="before")
    @classmethod
    def _parse_dates(cls, value: Any) -> Any:
        parsed = parse_date(value)
        if parsed is None:
            raise ValueError(f"Invalid date: {value!r}")
        return parsed

    @field_validator("budget", mode="before")
    @classmethod
    def _parse_budget(cls, value: Any) -> float:
        return parse_budget(value)

    @field_validator("buyAmount", "calculatedValue", mode="before")
    @classmethod
    def _parse_numbers(cls, value: Any) -> float:
        return parse_money(value)

    @field_validator("feeOverride", mode="before")
    @classmethod
    def _parse_fee_override(cls, value: Any) -> Optional[float]:
        if value is None or (isinstance(value, str) and not value.strip()):
            return None
        return validate_fee_percent(parse_money(value))

    @model_validator(mode="after")
    def _order_dates(self) -> "Burst":
        if self.startDate > self.endDate:
            self.startDate, self.endDate = self.endDate, self.startDate
        return self

    @property
    def days(self) -> int:
        """Inclusive day count."""
        return (self.endDate - self.startDate).days + 1


class LineItem(BaseModel):
    """
    One buyable unit within a channel composed of one or more bursts.

    Channel identity fields (market, network, station, platform, ...) vary per
    channel and are kept as extra attributes. The bursts field accepts a list
    of burst objects, a JSON string, or an object wrapping the list under
    "bursts"; malformed payloads yield no bursts.
    """
    model_config = ConfigDict(
        extra="allow",
        json_schema_extra={
            "example": {
                "lineItemId": "tv-1",
                "channel": "television",
                "market": "Sydney",
                "network": "Seven",
                "station": "ATN7",
                "buyType": "cpt",
                "budgetIncludesFees": False,
                "clientPaysForMedia": False,
                "bursts": [
                    {"startDate": "2025-03-02", "endDate": "2025-03-15", "budget": "12000", "buyAmount": "400"}
                ],
            }
        },
    )

    lineItemId: str = Field(default="", description="Deterministic line item identifier")
    channel: Optional[str] = Field(default=None, description="Media channel tag")
    buyType: Optional[str] = Field(default=None, description="Buy type (cpm, cpc, fixed_cost, bonus, ...)")
    startDate: Optional[DateType] = Field(default=None, description="Fallback start for bursts without dates")
    endDate: Optional[DateType] = Field(default=None, description="Fallback end for bursts without dates")
    budgetIncludesFees: bool = Field(default=False, description="Entered budget already contains the fee")
    clientPaysForMedia: bool = Field(default=False, description="Client pays the publisher directly")
    fixedCostMedia: bool = Field(default=False, description="Media is a fixed cost")
    noAdserving: bool = Field(default=False, description="No adserving charge applies")
    bursts: List[Burst] = Field(default_factory=list, description="Ordered bursts")

    @field_validator("lineItemId", mode="before")
    @classmethod
    def _stringify_id(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("startDate", "endDate", mode="before")
    @classmethod
    def _parse_optional_dates(cls, value: Any) -> Optional[DateType]:
        return parse_date(value)

    @field_validator(
        "budgetIncludesFees", "clientPaysForMedia", "fixedCostMedia", "noAdserving",
        mode="before",
    )
    @classmethod
    def _parse_flags(cls, value: Any) -> bool:
        return _as_bool(value)

    @field_validator("bursts", mode="before")
    @classmethod
    def _parse_bursts(cls, value: Any, info: ValidationInfo) -> List[Any]:
        if isinstance(value, list):
            raw_bursts = [item for item in value if isinstance(item, (Burst, Mapping))]
        else:
            raw_bursts = parse_bursts_field(value)

        line_item_id = info.data.get("lineItemId") or "line"
        bursts: List[Any] = []
        for index, raw in enumerate(raw_bursts, start=1):
            if isinstance(raw, Burst):
                bursts.append(raw)
                continue
            burst = normalise_burst(
                raw,
                line_item_id,
                index,
                fallback_start=info.data.get("startDate"),
                fallback_end=info.data.get("endDate"),
            )
            if burst is None:
                continue
            if raw.get("id"):
                burst["id"] = str(raw["id"])
            bursts.append(burst)
        return bursts

    def value_of(self, name: str) -> Any:
        """Return a channel identity field (declared or extra), or None."""
        if name in type(self).model_fields:
            return getattr(self, name)
        return (self.model_extra or {}).get(name)

    def descriptive_fields(self) -> Dict[str, Any]:
        """Channel identity fields carried as extras."""
        return dict(self.model_extra or {})

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "LineItem":
        """
        Build a LineItem from a persisted flat record.

        Persisted records use snake_case names (buy_type, budget_includes_fees,
        line_item_id, ...) and carry bursts as JSON text under "bursts" or
        "bursts_json".
        """
        data: Dict[str, Any] = {}
        for key, value in record.items():
            if key in ("bursts_json", "bursts"):
                continue
            data[_camel_case(key)] = value

        if not data.get("lineItemId"):
            data["lineItemId"] = record.get("id") or ""
        data.pop("id", None)
        data["bursts"] = record.get("bursts", record.get("bursts_json"))
        return cls.model_validate(data)


# =============================================================================
# Fee Policy and Billing Models
# =============================================================================


class FeePolicyResult(BaseModel):
    """
    Decomposition of a raw budget into media and fee components.

    totalAmount is always mediaAmount + feeAmount. deliveryMediaAmount is the
    media delivered to the audience, which stays non-zero when the client
    pays the publisher directly.
    """
    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "mediaAmount": 10000.0,
                "deliveryMediaAmount": 10000.0,
                "feeAmount": 2500.0,
                "totalAmount": 12500.0,
            }
        },
    )

    mediaAmount: float = Field(..., ge=0, description="Media billed to the client")
    deliveryMediaAmount: float = Field(..., ge=0, description="Media delivered to the audience")
    feeAmount: float = Field(..., ge=0, description="Agency fee")
    totalAmount: float = Field(..., ge=0, description="mediaAmount + feeAmount")


class BillingBurst(BaseModel):
    """Per-burst billing record consumed by the billing schedule builder."""
    lineItemId: str = Field(default="", description="Owning line item")
    startDate: DateType
    endDate: DateType
    mediaAmount: float = 0.0
    deliveryMediaAmount: float = 0.0
    feeAmount: float = 0.0
    totalAmount: float = 0.0
    mediaType: str = Field(..., description="Channel tag, e.g. television")
    feePercentage: float = 0.0
    clientPaysForMedia: bool = False
    budgetIncludesFees: bool = False
    noAdserving: bool = False
    deliverables: float = 0.0
    buyType: Optional[str] = None


class LineItemTotals(BaseModel):
    """Display totals for one line item, computed with delivery media."""
    lineItemId: str
    mediaAmount: float = 0.0
    feeAmount: float = 0.0
    totalAmount: float = 0.0
    deliverables: float = 0.0


class FeeSplitRequest(BaseModel):
    """Request model for a single fee decomposition."""
    budget: float = Field(default=0.0, description="Raw entered budget")
    feePercent: float = Field(default=0.0, description="Fee percent in [0, 100)")
    budgetIncludesFees: bool = False
    clientPaysForMedia: bool = False

    @field_validator("budget", mode="before")
    @classmethod
    def _parse_budget(cls, value: Any) -> float:
        return parse_budget(value)


class DeliverablesRequest(BaseModel):
    """Request model for a single deliverable calculation."""
    buyType: Optional[str] = None
    budget: float = 0.0
    buyAmount: float = 0.0
    overrideValue: Optional[float] = Field(
        default=None,
        description="Manual count for bonus bursts",
    )
    cachedValue: Optional[float] = Field(
        default=None,
        description="Previously computed value returned for unknown buy types",
    )

    @field_validator("budget", "buyAmount", mode="before")
    @classmethod
    def _parse_numbers(cls, value: Any) -> float:
        return parse_money(value)


class DeliverablesResponse(BaseModel):
    buyType: Optional[str] = None
    deliverables: float
    label: str


class ChannelPlanRequest(BaseModel):
    """
    Request model shared by the plan engine endpoints.

    Carries one channel's line items plus the campaign fee configuration.
    Persisted (snake_case) records are accepted too.
    """
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "channel": "television",
                "feePercent": 20,
                "lineItems": [
                    {
                        "lineItemId": "tv-1",
                        "market": "Sydney",
                        "network": "Seven",
                        "buyType": "cpt",
                        "bursts": [{"startDate": "2025-01-20", "endDate": "2025-02-10", "budget": 2200}],
                    }
                ],
            }
        }
    )

    channel: str = Field(..., description="Media channel tag")
    feePercent: Optional[float] = Field(
        default=None,
        description="Channel fee percent; the configured default applies when omitted",
    )
    lineItems: List[LineItem] = Field(default_factory=list)
    keyFormat: MonthKeyFormat = Field(default=MonthKeyFormat.ISO)
    view: InvestmentView = Field(default=InvestmentView.BILLING)
    campaignStart: Optional[DateType] = None
    campaignEnd: Optional[DateType] = None

    @field_validator("lineItems", mode="before")
    @classmethod
    def _parse_records(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return value
        items = []
        for raw in value:
            if isinstance(raw, Mapping) and PERSISTED_RECORD_KEYS.intersection(raw):
                items.append(LineItem.from_record(raw))
            else:
                items.append(raw)
        return items

    @field_validator("campaignStart", "campaignEnd", mode="before")
    @classmethod
    def _parse_campaign_dates(cls, value: Any) -> Optional[DateType]:
        return parse_date(value)


# =============================================================================
# Monthly Proration Models
# =============================================================================


class MonthlyAllocation(BaseModel):
    """Amount allocated to one month bucket."""
    model_config = ConfigDict(frozen=True)

    monthKey: str = Field(..., description='"YYYY-MM" or "January 2025"')
    amount: float


class MonthlyInvestmentRow(BaseModel):
    """One row of the cash-flow table."""
    monthLabel: str
    amount: float
    formattedAmount: str


class LineItemMonthlyAmounts(BaseModel):
    """Monthly amounts of one line item, keyed by "YYYY-MM"."""
    lineItemId: str
    mediaType: str
    header1: str = ""
    header2: str = ""
    months: Dict[str, float] = Field(default_factory=dict)


# =============================================================================
# Grouping and Timeline Models
# =============================================================================


class GroupedBurst(BaseModel):
    """A burst as it appears inside a grouped line item."""
    recordIndex: int = Field(..., description="Position of the source record in the input list")
    startDate: Optional[DateType] = None
    endDate: Optional[DateType] = None
    budget: float = 0.0
    grossMedia: float = 0.0
    deliverables: float = 0.0


class GroupedLineItem(BaseModel):
    """
    Per-burst records sharing one channel grouping key.

    attributes holds the descriptive fields of the first record seen for the key.
    """
    groupKey: str
    attributes: Dict[str, Any] = Field(default_factory=dict)
    bursts: List[GroupedBurst] = Field(default_factory=list)
    deliverablesAmount: float = Field(default=0.0, description="Sum of burst budgets")
    grossMedia: float = Field(default=0.0, description="Sum of burst media")
    totalCalculatedDeliverables: float = 0.0
    groupStartDate: Optional[DateType] = None
    groupEndDate: Optional[DateType] = None


class DateGrid(BaseModel):
    """
    Campaign-wide day grid for the timeline.

    Runs from the Sunday on/before the campaign start to the Sunday on/after
    the campaign end. Day columns begin after the metadata region.
    """
    start: DateType
    end: DateType
    firstColumn: int = 15
    lastColumn: int
    dates: List[DateType] = Field(default_factory=list)
    dayLetters: List[str] = Field(default_factory=list)

    def column_for(self, day: DateType) -> int:
        return self.firstColumn + (day - self.start).days


class TimelineSpan(BaseModel):
    startColumn: int
    endColumn: int
    startDate: DateType
    endDate: DateType
    deliverables: float = 0.0
    budget: float = 0.0
    label: str = ""


class TimelineRow(BaseModel):
    rowIndex: int
    groupKey: str
    spans: List[TimelineSpan] = Field(default_factory=list)


class DroppedSpan(BaseModel):
    """A burst left off the timeline and why."""
    rowIndex: int
    groupKey: str
    startDate: Optional[DateType] = None
    endDate: Optional[DateType] = None
    reason: LayoutDropReason


class TimelineLayout(BaseModel):
    grid: DateGrid
    rows: List[TimelineRow] = Field(default_factory=list)
    dropped: List[DroppedSpan] = Field(default_factory=list)


class ExportRow(BaseModel):
    """Metadata cells of one grouped row in an export section."""
    groupKey: str
    cells: List[str] = Field(default_factory=list)


class ExportSection(BaseModel):
    """One channel's block in the media plan export."""
    channel: str
    title: str
    headers: List[str] = Field(default_factory=list)
    rows: List[ExportRow] = Field(default_factory=list)
    layout: Optional[TimelineLayout] = None
    totalGrossMedia: float = 0.0
    formattedTotal: str = ""


# =============================================================================
# Accrual Models
# =============================================================================


class CampaignVersionInput(BaseModel):
    """
    One campaign plan version with its delivery and billing schedules.

    Schedules are opaque, loosely structured payloads (JSON text, a list of
    month entries, or an object with "months").
    """
    model_config = ConfigDict(extra="ignore")

    id: Optional[int] = None
    mediaPlanMasterId: Optional[int] = None
    clientName: str = "Unknown"
    clientSlug: Optional[str] = None
    campaignName: str = "Unknown campaign"
    mbaNumber: str = "unknown"
    versionNumber: Optional[int] = None
    deliverySchedule: Any = None
    billingSchedule: Any = None
    updatedAt: Optional[datetime] = None
    createdAt: Optional[datetime] = None

    @field_validator("clientName", "campaignName", "mbaNumber", mode="before")
    @classmethod
    def _default_blank(cls, value: Any, info: ValidationInfo) -> Any:
        text = "" if value is None else str(value).strip()
        if text:
            return text
        return cls.model_fields[info.field_name].default

    @field_validator("versionNumber", mode="before")
    @classmethod
    def _parse_version(cls, value: Any) -> Optional[int]:
        if value is None or isinstance(value, bool):
            return None
        try:
            return int(str(value).strip())
        except ValueError:
            return None

    @field_validator("updatedAt", "createdAt", mode="before")
    @classmethod
    def _parse_timestamps(cls, value: Any) -> Optional[datetime]:
        if value is None or isinstance(value, datetime):
            return value
        text = str(value).strip()
        if not text:
            return None
        try:
            return datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            return None

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "CampaignVersionInput":
        """Build a version from a persisted media_plan_versions row."""
        def first(*keys: str) -> Any:
            for key in keys:
                value = record.get(key)
                if value not in (None, ""):
                    return value
            return None

        return cls(
            id=record.get("id"),
            mediaPlanMasterId=record.get("media_plan_master_id"),
            clientName=first("mp_client_name", "client_name", "clientName"),
            clientSlug=first("client_slug", "slug", "clientSlug"),
            campaignName=first("campaign_name", "mp_campaignname", "campaignName"),
            mbaNumber=first("mba_number", "mbaNumber"),
            versionNumber=first("version_number", "versionNumber", "version"),
            deliverySchedule=first("deliverySchedule", "delivery_schedule"),
            billingSchedule=first("billingSchedule", "billing_schedule"),
            updatedAt=record.get("updated_at"),
            createdAt=record.get("created_at"),
        )


class AccrualRow(BaseModel):
    """Delivery vs billing variance for one line item of one plan version."""
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "clientName": "Acme",
                "clientSlug": "acme",
                "campaignName": "Summer Sale",
                "mbaNumber": "MBA-001",
                "versionNumber": 3,
                "lineItemKey": "tv-1",
                "lineItemName": "Seven • ATN7",
                "deliveryAmount": 1200.0,
                "billingAmount": 1000.0,
                "difference": 200.0,
            }
        }
    )

    clientName: str
    clientSlug: Optional[str] = None
    campaignName: str
    mbaNumber: str
    versionNumber: int
    lineItemKey: str
    lineItemName: str
    deliveryAmount: float = 0.0
    billingAmount: float = 0.0
    difference: float = 0.0


class AccrualRequest(BaseModel):
    """Request model for reconciling versions supplied by the caller."""
    months: List[str] = Field(..., description="Month selection in any supported shape")
    versions: List[CampaignVersionInput] = Field(default_factory=list)
    clientPaysForMedia: Dict[str, bool] = Field(
        default_factory=dict,
        description="Line item id -> client pays for media",
    )


class AccrualResponse(BaseModel):
    months: List[str] = Field(default_factory=list)
    rows: List[AccrualRow] = Field(default_factory=list)
    meta: Dict[str, Any] = Field(default_factory=dict)


# =============================================================================
# Billing Schedule Models
# =============================================================================


class BillingLineItem(BaseModel):
    """Line item amounts feeding a billing month."""
    id: str
    mediaType: str
    header1: str = ""
    header2: str = ""
    monthlyAmounts: Dict[str, float] = Field(
        default_factory=dict,
        description='Amount per month label, e.g. "January 2025"',
    )


class BillingMonth(BaseModel):
    """Billed totals for one calendar month."""
    monthYear: str = Field(..., description='Month label, e.g. "January 2025"')
    monthKey: str = Field(..., description='"YYYY-MM"')
    mediaTotal: float = 0.0
    feeTotal: float = 0.0
    totalAmount: float = 0.0
    adservingTechFees: float = 0.0
    production: float = 0.0
    mediaCosts: Dict[str, float] = Field(default_factory=dict)
    lineItems: Dict[str, List[BillingLineItem]] = Field(default_factory=dict)


class BillingOverrideValidation(BaseModel):
    isValid: bool
    totalDifference: float
    errorMessage: Optional[str] = None


# =============================================================================
# Expected Spend Models
# =============================================================================


class ExpectedSpendRequest(BaseModel):
    deliverySchedule: Any = None
    campaignStart: Optional[DateType] = None
    campaignEnd: Optional[DateType] = None
    asAt: Optional[datetime] = Field(default=None, description="Defaults to now")

    @field_validator("campaignStart", "campaignEnd", mode="before")
    @classmethod
    def _parse_dates(cls, value: Any) -> Optional[DateType]:
        return parse_date(value)


class ExpectedSpendResponse(BaseModel):
    expectedSpend: float
    formatted: str
    asAt: DateType


# =============================================================================
# Reference Data Models
# =============================================================================


class Publisher(BaseModel):
    """A publisher and the media channels it sells."""
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": 12,
                "publisherName": "Seven Network",
                "publisherId": "SEVEN",
                "publisherType": "direct",
                "billingAgency": "assembled media",
                "financeCode": "SEV01",
                "channels": ["television", "bvod"],
            }
        }
    )

    id: Optional[int] = None
    publisherName: str
    publisherId: Optional[str] = None
    publisherType: Optional[str] = None
    billingAgency: Optional[str] = None
    financeCode: Optional[str] = None
    channels: List[str] = Field(default_factory=list, description="Media channel tags")

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Publisher":
        """Build from a publishers row; pub_<channel> flags become channel tags."""
        channels = [
            channel.value
            for channel in MediaChannel
            if _as_bool(record.get(f"pub_{channel.value.lower()}"))
        ]
        return cls(
            id=record.get("id"),
            publisherName=str(record.get("publisher_name") or "").strip() or "Unknown",
            publisherId=record.get("publisherid"),
            publisherType=record.get("publishertype"),
            billingAgency=record.get("billingagency"),
            financeCode=record.get("financecode"),
            channels=channels,
        )
