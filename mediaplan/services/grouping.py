"""
Line item grouping service.

Collapses a flat list of per-burst records into GroupedLineItem rows for the
media plan export. Records whose channel grouping fields match share one
group; each group keeps every contributing burst, the sums of budget, media
and deliverables, and the union of the burst date ranges.

Grouping rules:
- The key joins the channel's grouping fields with "|"; a missing field
  contributes an empty string.
- Channels without a configured key list group by every field of the first
  record.
- The first record seen for a key seeds the group's descriptive fields.
- Groups keep first-seen order; bursts keep input order within a group.
- Date widening compares parsed dates, never strings.

Conservation:
    sum(group.grossMedia) == sum(record grossMedia), and every input record
    appears in exactly one group's burst list.
"""

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from mediaplan.core.parsing import parse_date, parse_money
from mediaplan.models.enums import MediaChannel
from mediaplan.models.schemas import GroupedBurst, GroupedLineItem, LineItem
from mediaplan.services.fee_policy import burst_deliverables, split_burst

logger = logging.getLogger(__name__)

KEY_SEPARATOR = "|"

BROADCAST_KEYS = ["market", "network", "station", "daypart", "placement", "size", "buyingDemo", "buyType"]
PRESS_KEYS = ["market", "network", "title", "placement", "size", "buyingDemo", "buyType"]
BIDDABLE_KEYS = ["market", "platform", "bidStrategy", "targeting", "creative", "buyingDemo", "buyType"]
DIGITAL_KEYS = ["market", "publisher", "site", "placement", "targeting", "creative", "buyingDemo", "buyType"]

GROUPING_KEYS: Dict[MediaChannel, List[str]] = {
    MediaChannel.TELEVISION: BROADCAST_KEYS,
    MediaChannel.RADIO: ["market", "network", "station", "placement", "radioDuration", "buyingDemo", "buyType"],
    MediaChannel.NEWSPAPER: PRESS_KEYS,
    MediaChannel.MAGAZINES: PRESS_KEYS,
    MediaChannel.OOH: ["market", "network", "oohFormat", "oohType", "placement", "size", "buyingDemo", "buyType"],
    MediaChannel.CINEMA: ["market", "network", "station", "cinemaTarget", "placement", "size", "buyingDemo", "buyType"],
    MediaChannel.SEARCH: BIDDABLE_KEYS,
    MediaChannel.SOCIAL_MEDIA: BIDDABLE_KEYS,
    MediaChannel.DIGI_DISPLAY: DIGITAL_KEYS,
    MediaChannel.DIGI_AUDIO: DIGITAL_KEYS,
    MediaChannel.DIGI_VIDEO: DIGITAL_KEYS,
    MediaChannel.BVOD: DIGITAL_KEYS,
    MediaChannel.INTEGRATION: ["market", "publisher", "placement", "targeting", "creative", "buyingDemo", "buyType"],
    MediaChannel.PROG_DISPLAY: BIDDABLE_KEYS,
    MediaChannel.PROG_VIDEO: BIDDABLE_KEYS,
    MediaChannel.PROG_BVOD: BIDDABLE_KEYS,
    MediaChannel.PROG_AUDIO: BIDDABLE_KEYS,
    MediaChannel.PROG_OOH: BIDDABLE_KEYS,
    MediaChannel.INFLUENCERS: ["market", "platform", "targeting", "creative", "buyingDemo", "buyType"],
}

# Record fields holding burst values rather than descriptive text
BURST_VALUE_FIELDS = frozenset({
    "startDate", "start_date", "endDate", "end_date",
    "deliverablesAmount", "budget", "grossMedia", "deliverables", "calculatedValue",
})

# Per-record fields that never identify a group
NON_IDENTITY_FIELDS = BURST_VALUE_FIELDS | {"lineItemId", "line_item_id"}


def resolve_channel(channel: Any) -> Optional[MediaChannel]:
    """Match a channel tag or display label ("socialMedia", "Social Media")."""
    if isinstance(channel, MediaChannel):
        return channel
    if channel is None:
        return None
    wanted = str(channel).strip().lower().replace(" ", "").replace("_", "")
    for candidate in MediaChannel:
        if wanted in (candidate.value.lower(), candidate.label.lower().replace(" ", "")):
            return candidate
    # plural spellings used by section titles
    if wanted == "newspapers":
        return MediaChannel.NEWSPAPER
    return None


def grouping_keys_for(channel: Any, first_record: Optional[Mapping[str, Any]] = None) -> List[str]:
    """Configured grouping fields for a channel, else the identity fields of the first record."""
    resolved = resolve_channel(channel)
    if resolved is not None:
        return list(GROUPING_KEYS[resolved])
    if first_record is None:
        return []
    logger.debug(f"No grouping keys for channel '{channel}', grouping by all identity fields")
    return [key for key in first_record.keys() if key not in NON_IDENTITY_FIELDS]


def build_group_key(record: Mapping[str, Any], keys: Sequence[str]) -> str:
    parts = []
    for key in keys:
        value = record.get(key)
        parts.append("" if value is None else str(value))
    return KEY_SEPARATOR.join(parts)


# =============================================================================
# Flattening
# =============================================================================


def flatten_line_items(line_items: Iterable[LineItem], fee_percent: Optional[float]) -> List[Dict[str, Any]]:
    """
    One flat record per burst, carrying the line item's descriptive fields.

    grossMedia is the delivered media so client-paid line items still show
    on the plan.
    """
    records: List[Dict[str, Any]] = []
    for line_item in line_items:
        descriptive = line_item.descriptive_fields()
        for burst in line_item.bursts:
            split = split_burst(line_item, burst, fee_percent)
            record = dict(descriptive)
            record.update({
                "lineItemId": line_item.lineItemId,
                "buyType": line_item.buyType,
                "startDate": burst.startDate,
                "endDate": burst.endDate,
                "deliverablesAmount": burst.budget,
                "grossMedia": split.deliveryMediaAmount,
                "deliverables": burst_deliverables(line_item, burst),
            })
            records.append(record)
    return records


# =============================================================================
# Grouping
# =============================================================================


def _first(record: Mapping[str, Any], *names: str) -> Any:
    for name in names:
        if record.get(name) is not None:
            return record[name]
    return None


def group_line_items(
    records: Sequence[Mapping[str, Any]],
    channel: Any = None,
    keys: Optional[Sequence[str]] = None,
) -> List[GroupedLineItem]:
    """
    Group per-burst records by the channel's key fields.

    Args:
        records: Flat per-burst records. Money values may be currency text.
        channel: Channel tag used to look up GROUPING_KEYS.
        keys: Explicit grouping fields, overriding the channel lookup.

    Returns:
        Groups in first-seen order.
    """
    if not records:
        return []

    key_fields = list(keys) if keys is not None else grouping_keys_for(channel, records[0])
    groups: Dict[str, GroupedLineItem] = {}

    for index, record in enumerate(records):
        group_key = build_group_key(record, key_fields)
        start = parse_date(_first(record, "startDate", "start_date"))
        end = parse_date(_first(record, "endDate", "end_date")) or start
        budget = parse_money(_first(record, "deliverablesAmount", "budget"))
        gross_media = parse_money(record.get("grossMedia"))
        deliverables = parse_money(_first(record, "deliverables", "calculatedValue"))

        group = groups.get(group_key)
        if group is None:
            group = GroupedLineItem(
                groupKey=group_key,
                attributes={k: v for k, v in record.items() if k not in BURST_VALUE_FIELDS},
                groupStartDate=start,
                groupEndDate=end,
            )
            groups[group_key] = group

        group.bursts.append(
            GroupedBurst(
                recordIndex=index,
                startDate=start,
                endDate=end,
                budget=budget,
                grossMedia=gross_media,
                deliverables=deliverables,
            )
        )
        group.deliverablesAmount += budget
        group.grossMedia += gross_media
        group.totalCalculatedDeliverables += deliverables

        if start is not None and (group.groupStartDate is None or start < group.groupStartDate):
            group.groupStartDate = start
        if end is not None and (group.groupEndDate is None or end > group.groupEndDate):
            group.groupEndDate = end

    logger.debug(f"Grouped {len(records)} records into {len(groups)} line items")
    return list(groups.values())


def group_channel_line_items(
    line_items: Iterable[LineItem],
    channel: Any,
    fee_percent: Optional[float],
) -> List[GroupedLineItem]:
    """Flatten a channel's line items and group them with its keys."""
    return group_line_items(flatten_line_items(line_items, fee_percent), channel=channel)
