"""
Fee policy engine.

Decomposes a raw entered budget into media and agency fee components under
the four billing policies defined by two independent line item flags:

| budgetIncludesFees | clientPaysForMedia | media                | fee                        | delivery media       |
|--------------------|--------------------|----------------------|----------------------------|----------------------|
| True               | True               | 0                    | budget * fee / 100         | budget * (100-fee)/100 |
| True               | False              | budget * (100-fee)/100 | budget * fee / 100       | = media              |
| False              | True               | 0                    | budget / (100-fee) * fee   | budget               |
| False              | False              | budget               | budget * fee / (100-fee)   | budget               |

totalAmount is always media + fee. Delivery media is what reached the
audience and stays non-zero when the client pays the publisher directly;
billing and delivery are two views of the same burst.

Every channel uses this one module, parameterised by its fee percent and
channel tag. The "gross" branch always uses budget * (100 - fee) / 100.

Key Functions:
- calculate_fee_split: The four-branch decomposition for one amount
- split_burst: Decomposition of one burst, honouring bonus and fee overrides
- build_billing_bursts: BillingBurst records for a channel's line items
- summarise_line_items: Per line item display totals
"""

import logging
from typing import Iterable, List, Optional

from mediaplan.core.config import validate_fee_percent
from mediaplan.core.parsing import parse_budget
from mediaplan.models.schemas import (
    BillingBurst,
    Burst,
    FeePolicyResult,
    LineItem,
    LineItemTotals,
)
from mediaplan.services.deliverables import calculate_deliverables, is_bonus

logger = logging.getLogger(__name__)

ZERO_SPLIT = FeePolicyResult(
    mediaAmount=0.0,
    deliveryMediaAmount=0.0,
    feeAmount=0.0,
    totalAmount=0.0,
)


# =============================================================================
# Core Decomposition
# =============================================================================


def calculate_fee_split(
    raw_budget: float,
    fee_percent: Optional[float],
    budget_includes_fees: bool,
    client_pays_for_media: bool,
) -> FeePolicyResult:
    """
    Split a raw budget into media, delivery media, fee and total.

    Args:
        raw_budget: Entered budget; negative or unparsable values count as 0.
        fee_percent: Fee percent in [0, 100).
        budget_includes_fees: The budget already contains the fee.
        client_pays_for_media: The client pays the publisher directly.

    Returns:
        FeePolicyResult with every amount >= 0.

    Raises:
        FeeConfigurationError: If fee_percent is outside [0, 100).
    """
    fee = validate_fee_percent(fee_percent)
    budget = parse_budget(raw_budget)

    if budget_includes_fees:
        fee_amount = budget * fee / 100
        net_media = budget * (100 - fee) / 100
        media_amount = 0.0 if client_pays_for_media else net_media
        delivery_media = net_media
    elif client_pays_for_media:
        media_amount = 0.0
        fee_amount = (budget / (100 - fee)) * fee
        delivery_media = budget
    else:
        media_amount = budget
        fee_amount = (budget * fee) / (100 - fee)
        delivery_media = budget

    return FeePolicyResult(
        mediaAmount=media_amount,
        deliveryMediaAmount=delivery_media,
        feeAmount=fee_amount,
        totalAmount=media_amount + fee_amount,
    )


def effective_fee_percent(burst: Burst, fee_percent: Optional[float]) -> float:
    """The burst's fee override when set, else the channel fee."""
    if burst.feeOverride is not None:
        return burst.feeOverride
    return validate_fee_percent(fee_percent)


def split_burst(line_item: LineItem, burst: Burst, fee_percent: Optional[float]) -> FeePolicyResult:
    """Fee split for one burst of a line item. Bonus bursts carry no money."""
    if is_bonus(line_item.buyType):
        return ZERO_SPLIT
    return calculate_fee_split(
        burst.budget,
        effective_fee_percent(burst, fee_percent),
        line_item.budgetIncludesFees,
        line_item.clientPaysForMedia,
    )


def burst_deliverables(line_item: LineItem, burst: Burst) -> float:
    """Deliverables of one burst; bonus bursts keep their manual count."""
    if is_bonus(line_item.buyType):
        return calculate_deliverables(line_item.buyType, 0, 0, override_value=burst.calculatedValue)
    return calculate_deliverables(
        line_item.buyType,
        burst.budget,
        burst.buyAmount,
        cached_value=burst.calculatedValue,
    )


# =============================================================================
# Channel Level Helpers
# =============================================================================


def build_billing_bursts(
    line_items: Iterable[LineItem],
    fee_percent: Optional[float],
    media_type: str,
) -> List[BillingBurst]:
    """
    Build the BillingBurst records for one channel's line items.

    Bonus bursts bill 0 media and 0 fee but keep their manual deliverables.
    Bursts are emitted in line item order, then burst order.
    """
    billing_bursts: List[BillingBurst] = []

    for line_item in line_items:
        for burst in line_item.bursts:
            split = split_burst(line_item, burst, fee_percent)
            billing_bursts.append(
                BillingBurst(
                    lineItemId=line_item.lineItemId,
                    startDate=burst.startDate,
                    endDate=burst.endDate,
                    mediaAmount=split.mediaAmount,
                    deliveryMediaAmount=split.deliveryMediaAmount,
                    feeAmount=split.feeAmount,
                    totalAmount=split.totalAmount,
                    mediaType=media_type,
                    feePercentage=effective_fee_percent(burst, fee_percent),
                    clientPaysForMedia=line_item.clientPaysForMedia,
                    budgetIncludesFees=line_item.budgetIncludesFees,
                    noAdserving=line_item.noAdserving,
                    deliverables=burst_deliverables(line_item, burst),
                    buyType=line_item.buyType,
                )
            )

    logger.debug(f"Built {len(billing_bursts)} billing bursts for {media_type}")
    return billing_bursts


def summarise_line_items(
    line_items: Iterable[LineItem],
    fee_percent: Optional[float],
) -> List[LineItemTotals]:
    """
    Per line item totals for display.

    Media is the delivery media so a client-paid line item still shows the
    media it bought.
    """
    totals: List[LineItemTotals] = []

    for line_item in line_items:
        media = 0.0
        fee = 0.0
        deliverables = 0.0
        for burst in line_item.bursts:
            split = split_burst(line_item, burst, fee_percent)
            media += split.deliveryMediaAmount
            fee += split.feeAmount
            deliverables += burst_deliverables(line_item, burst)

        totals.append(
            LineItemTotals(
                lineItemId=line_item.lineItemId,
                mediaAmount=media,
                feeAmount=fee,
                totalAmount=media + fee,
                deliverables=deliverables,
            )
        )

    return totals
