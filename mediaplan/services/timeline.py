"""
Timeline (Gantt) layout engine for the media plan export.

Places each grouped line item's bursts on a campaign-wide day grid. The grid
runs from the Sunday on/before the campaign start to the Sunday on/after the
campaign end, one column per day, and its first day column follows the
14-column metadata region of the export sheet.

Layout rules:
- Bursts within a row are placed in start date order.
- A span is emitted only when it lies fully inside the grid; partially
  out-of-range bursts are dropped, not truncated.
- Within one row, a burst whose columns intersect an already placed span is
  dropped. Spans are never merged or stacked.

Dropped bursts are reported in TimelineLayout.dropped and logged as
warnings; layout never raises.
"""

import logging
from datetime import date, timedelta
from typing import Any, Iterable, List, Optional

import numpy as np

from mediaplan.core.parsing import parse_date
from mediaplan.models.enums import LayoutDropReason
from mediaplan.models.schemas import (
    DateGrid,
    DroppedSpan,
    GroupedBurst,
    GroupedLineItem,
    TimelineLayout,
    TimelineRow,
    TimelineSpan,
)

logger = logging.getLogger(__name__)

METADATA_COLUMNS = 14
FIRST_DATE_COLUMN = METADATA_COLUMNS + 1
DAY_LETTERS = "SMTWTFS"


# =============================================================================
# Date Grid
# =============================================================================


def _days_since_sunday(day: date) -> int:
    return (day.weekday() + 1) % 7


def build_date_grid(campaign_start: Any, campaign_end: Any) -> Optional[DateGrid]:
    """
    Build the day grid for a campaign.

    Returns None when either date cannot be parsed.
    """
    start = parse_date(campaign_start)
    end = parse_date(campaign_end)
    if start is None or end is None:
        return None
    if start > end:
        start, end = end, start

    grid_start = start - timedelta(days=_days_since_sunday(start))
    grid_end = end + timedelta(days=(6 - end.weekday()) % 7)
    total_days = (grid_end - grid_start).days

    dates = [grid_start + timedelta(days=offset) for offset in range(total_days + 1)]
    return DateGrid(
        start=grid_start,
        end=grid_end,
        firstColumn=FIRST_DATE_COLUMN,
        lastColumn=FIRST_DATE_COLUMN + total_days,
        dates=dates,
        dayLetters=[DAY_LETTERS[_days_since_sunday(day)] for day in dates],
    )


def grid_for_groups(groups: Iterable[GroupedLineItem]) -> Optional[DateGrid]:
    """Grid spanning the union of all group date ranges."""
    starts = [g.groupStartDate for g in groups if g.groupStartDate is not None]
    ends = [g.groupEndDate for g in groups if g.groupEndDate is not None]
    if not starts or not ends:
        return None
    return build_date_grid(min(starts), max(ends))


# =============================================================================
# Layout
# =============================================================================


def format_deliverables(value: float) -> str:
    """'100,000' for whole counts, '12.5' for fractional ones (TARPs)."""
    if float(value).is_integer():
        return f"{value:,.0f}"
    return f"{value:,.2f}".rstrip("0").rstrip(".")


def _sort_key(burst: GroupedBurst):
    return (burst.startDate is None, burst.startDate or date.min)


def layout_timeline(groups: List[GroupedLineItem], grid: DateGrid) -> TimelineLayout:
    """
    Lay out every group's bursts as horizontal spans on the grid.

    Rows follow the input group order. Each row tracks occupied day columns
    in a boolean array.
    """
    layout = TimelineLayout(grid=grid)
    width = grid.lastColumn - grid.firstColumn + 1

    for row_index, group in enumerate(groups):
        row = TimelineRow(rowIndex=row_index, groupKey=group.groupKey)
        occupied = np.zeros(width, dtype=bool)

        for burst in sorted(group.bursts, key=_sort_key):
            reason = None
            start_col = end_col = 0

            if burst.startDate is None or burst.endDate is None or burst.startDate > burst.endDate:
                reason = LayoutDropReason.INVALID_RANGE
            else:
                start_col = grid.column_for(burst.startDate)
                end_col = grid.column_for(burst.endDate)
                if start_col < grid.firstColumn or end_col > grid.lastColumn:
                    reason = LayoutDropReason.OUT_OF_GRID
                elif occupied[start_col - grid.firstColumn:end_col - grid.firstColumn + 1].any():
                    reason = LayoutDropReason.COLLISION

            if reason is not None:
                logger.warning(
                    f"Dropped burst {burst.startDate} to {burst.endDate} from timeline row "
                    f"{row_index} ({group.groupKey}): {reason.value}"
                )
                layout.dropped.append(
                    DroppedSpan(
                        rowIndex=row_index,
                        groupKey=group.groupKey,
                        startDate=burst.startDate,
                        endDate=burst.endDate,
                        reason=reason,
                    )
                )
                continue

            occupied[start_col - grid.firstColumn:end_col - grid.firstColumn + 1] = True
            row.spans.append(
                TimelineSpan(
                    startColumn=start_col,
                    endColumn=end_col,
                    startDate=burst.startDate,
                    endDate=burst.endDate,
                    deliverables=burst.deliverables,
                    budget=burst.budget,
                    label=format_deliverables(burst.deliverables),
                )
            )

        layout.rows.append(row)

    return layout
