"""
Media plan export adapter.

Shapes grouped line items and their timeline layout into the section blocks
a spreadsheet writer renders: a channel header row occupying columns 2-14
(column 1 is a margin), one formatted row per group, and the day grid from
column 15 onwards.

Sections come in three layouts:
- Television: Market, Network, Station, Daypart, Placement, ... (TARPs, CPP)
- Press (newspapers, magazines): Market, Network, Title, ...
- Biddable (every other channel): Market, Platform, Bid Strategy, ...

export_section_frame turns a section into a pandas DataFrame with the
metadata columns followed by one column per grid day.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd

from mediaplan.core.parsing import format_currency
from mediaplan.models.enums import BuyType, MediaChannel
from mediaplan.models.schemas import DateGrid, ExportRow, ExportSection, GroupedLineItem, LineItem
from mediaplan.services.grouping import group_channel_line_items, resolve_channel
from mediaplan.services.timeline import format_deliverables, grid_for_groups, layout_timeline

logger = logging.getLogger(__name__)

TV_HEADERS = [
    "Market", "Network", "Station", "Daypart", "Placement", "Start Date", "End Date",
    "Size", "Deliverables", "Buying Demo", "Buy Type", "Avg. Rate", "Gross Media",
]
PRESS_HEADERS = [
    "Market", "Network", "Title", "", "Placement", "Start Date", "End Date",
    "Size", "Deliverables", "Buying Demo", "Buy Type", "Avg. Rate", "Gross Media",
]
BIDDABLE_HEADERS = [
    "Market", "Platform", "Bid Strategy", "Targeting", "Creative", "Start Date", "End Date",
    "", "Deliverables", "Buying Demo", "Buy Type", "Avg. Rate", "Gross Media",
]

PRESS_CHANNELS = frozenset({MediaChannel.NEWSPAPER, MediaChannel.MAGAZINES})

CHANNEL_HEADERS: Dict[MediaChannel, List[str]] = {
    channel: (
        TV_HEADERS if channel == MediaChannel.TELEVISION
        else PRESS_HEADERS if channel in PRESS_CHANNELS
        else BIDDABLE_HEADERS
    )
    for channel in MediaChannel
}


def format_bid_strategy(code: Any) -> str:
    """'target_cpa' -> 'Target Cpa'."""
    if not code:
        return ""
    return " ".join(word[:1].upper() + word[1:] for word in str(code).split("_"))


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _date_text(value: Any) -> str:
    return value.strftime("%d/%m/%Y") if value is not None else ""


def average_rate(group: GroupedLineItem, channel: Optional[MediaChannel]) -> float:
    """Gross media per deliverable; per thousand for biddable CPM buys."""
    if not group.totalCalculatedDeliverables:
        return 0.0
    rate = group.grossMedia / group.totalCalculatedDeliverables
    biddable = channel != MediaChannel.TELEVISION and channel not in PRESS_CHANNELS
    if biddable and BuyType.parse(group.attributes.get("buyType")) == BuyType.CPM:
        rate *= 1000
    return rate


def build_row_cells(group: GroupedLineItem, channel: Optional[MediaChannel], currency_symbol: str = "$") -> List[str]:
    """The 13 formatted metadata cells of one grouped row."""
    attrs = group.attributes
    start = _date_text(group.groupStartDate)
    end = _date_text(group.groupEndDate)
    deliverables = format_deliverables(group.totalCalculatedDeliverables)
    rate = format_currency(average_rate(group, channel), currency_symbol)
    gross = format_currency(group.grossMedia, currency_symbol)

    if channel == MediaChannel.TELEVISION:
        lead = [attrs.get("market"), attrs.get("network"), attrs.get("station"),
                attrs.get("daypart"), attrs.get("placement")]
        size = attrs.get("size")
    elif channel in PRESS_CHANNELS:
        lead = [attrs.get("market"), attrs.get("network"), attrs.get("title"),
                "", attrs.get("placement")]
        size = attrs.get("size")
    else:
        lead = [attrs.get("market"), attrs.get("platform") or attrs.get("publisher") or attrs.get("site"),
                format_bid_strategy(attrs.get("bidStrategy")), attrs.get("targeting"), attrs.get("creative")]
        size = ""

    return [_text(v) for v in lead] + [
        start,
        end,
        _text(size),
        deliverables,
        _text(attrs.get("buyingDemo")),
        _text(attrs.get("buyType")),
        rate,
        gross,
    ]


def build_export_section(
    channel: Any,
    line_items: Iterable[LineItem],
    fee_percent: Optional[float],
    grid: Optional[DateGrid] = None,
    currency_symbol: str = "$",
) -> ExportSection:
    """
    Build one channel's export section.

    When no grid is given, one is built from the union of the group dates.
    """
    resolved = resolve_channel(channel)
    groups = group_channel_line_items(line_items, channel, fee_percent)
    grid = grid or grid_for_groups(groups)
    layout = layout_timeline(groups, grid) if grid is not None else None

    total = sum(group.grossMedia for group in groups)
    section = ExportSection(
        channel=resolved.value if resolved else _text(channel),
        title=resolved.label if resolved else _text(channel),
        headers=list(CHANNEL_HEADERS.get(resolved, BIDDABLE_HEADERS)),
        rows=[
            ExportRow(groupKey=group.groupKey, cells=build_row_cells(group, resolved, currency_symbol))
            for group in groups
        ],
        layout=layout,
        totalGrossMedia=total,
        formattedTotal=format_currency(total, currency_symbol),
    )
    logger.info(f"Built export section {section.title} with {len(section.rows)} rows")
    return section


def export_section_frame(section: ExportSection) -> pd.DataFrame:
    """
    Render a section as a DataFrame.

    Blank header columns are omitted. Each grid day column holds the label of
    the span covering that day, or an empty string.
    """
    keep = [i for i, header in enumerate(section.headers) if header]
    columns = [section.headers[i] for i in keep]

    data = pd.DataFrame(
        [[row.cells[i] for i in keep] for row in section.rows],
        columns=columns,
    )

    if section.layout is None:
        return data

    grid = section.layout.grid
    day_columns = [day.isoformat() for day in grid.dates]
    timeline = pd.DataFrame("", index=range(len(section.rows)), columns=day_columns)

    for row in section.layout.rows:
        for span in row.spans:
            first = span.startColumn - grid.firstColumn
            last = span.endColumn - grid.firstColumn
            timeline.iloc[row.rowIndex, first:last + 1] = span.label

    return pd.concat([data, timeline], axis=1)
