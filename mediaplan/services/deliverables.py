"""
Deliverable calculation service.

Converts a burst's budget and buy metric into the number of units bought
(impressions, clicks, views, spots, TARPs, screens, ...) for a buy type.

Buy type families:
- Unit cost (cpc, cpv, cpt, screens, insertions, spots, panels,
  guaranteed_leads): budget / buyAmount
- cpm: (budget / buyAmount) * 1000
- fixed_cost, package: always 1 billable unit
- bonus: the manually entered count; budget math never overwrites it

A zero buy amount yields 0 rather than a division error. Unknown buy types
return the previously cached value when one is supplied, so a transient
unselected buy type in a form does not zero out data.
"""

import logging
from typing import Any, Optional

from mediaplan.core.parsing import parse_money
from mediaplan.models.enums import BuyType, SINGLE_UNIT_BUY_TYPES, UNIT_COST_BUY_TYPES

logger = logging.getLogger(__name__)


DELIVERABLE_LABELS = {
    BuyType.CPM: "Impressions",
    BuyType.CPC: "Clicks",
    BuyType.CPV: "Views",
    BuyType.CPT: "TARPs",
    BuyType.SCREENS: "Screens",
    BuyType.INSERTIONS: "Insertions",
    BuyType.SPOTS: "Spots",
    BuyType.PANELS: "Panels",
    BuyType.GUARANTEED_LEADS: "Leads",
    BuyType.FIXED_COST: "Fixed Fee",
    BuyType.PACKAGE: "Package",
    BuyType.BONUS: "Bonus",
}


def is_bonus(buy_type: Any) -> bool:
    """True when the buy type is bonus (zero budget, manual deliverables)."""
    return BuyType.parse(buy_type) == BuyType.BONUS


def deliverable_label(buy_type: Any) -> str:
    """Display name of the metric a buy type delivers."""
    parsed = BuyType.parse(buy_type)
    if parsed is None:
        return "Deliverables"
    return DELIVERABLE_LABELS[parsed]


def calculate_deliverables(
    buy_type: Any,
    budget: Any,
    buy_amount: Any,
    override_value: Any = None,
    cached_value: Optional[float] = None,
) -> float:
    """
    Calculate the deliverable count for one burst.

    Args:
        buy_type: Buy type value, enum or free text ("CPM", "fixed cost").
        budget: Raw budget; currency text is accepted.
        buy_amount: Buy metric (CPM rate, unit cost); currency text accepted.
        override_value: Manual count, used only for bonus bursts.
        cached_value: Returned for unrecognised buy types.

    Returns:
        Non-negative deliverable count.

    Example:
        >>> calculate_deliverables("cpm", "$5,000", 50)
        100000.0
    """
    parsed = BuyType.parse(buy_type)

    if parsed is None:
        if cached_value is not None:
            return max(0.0, parse_money(cached_value))
        if buy_type:
            logger.debug(f"Unknown buy type '{buy_type}', deliverables set to 0")
        return 0.0

    if parsed == BuyType.BONUS:
        return max(0.0, parse_money(override_value))

    if parsed in SINGLE_UNIT_BUY_TYPES:
        return 1.0

    budget_value = max(0.0, parse_money(budget))
    amount = parse_money(buy_amount)
    if amount == 0:
        return 0.0

    if parsed == BuyType.CPM:
        return max(0.0, (budget_value / amount) * 1000)

    if parsed in UNIT_COST_BUY_TYPES:
        return max(0.0, budget_value / amount)

    return 0.0
