"""
Pytest test module for the fee policy engine.

Covers the four budget-includes-fees / client-pays-for-media combinations,
conservation (total = media + fee), billing bursts and display totals.
"""

import itertools
from typing import List

import pytest

from mediaplan.core.config import FeeConfigurationError
from mediaplan.models.schemas import LineItem
from mediaplan.services.fee_policy import (
    ZERO_SPLIT,
    build_billing_bursts,
    calculate_fee_split,
    split_burst,
    summarise_line_items,
)


class TestCalculateFeeSplit:
    """Tests for calculate_fee_split."""

    def test_fee_on_top(self) -> None:
        result = calculate_fee_split(10000, 20, False, False)
        assert result.mediaAmount == pytest.approx(10000)
        assert result.deliveryMediaAmount == pytest.approx(10000)
        assert result.feeAmount == pytest.approx(2500)
        assert result.totalAmount == pytest.approx(12500)

    def test_budget_includes_fees_and_client_pays(self) -> None:
        result = calculate_fee_split(10000, 20, True, True)
        assert result.mediaAmount == 0.0
        assert result.feeAmount == pytest.approx(2000)
        assert result.deliveryMediaAmount == pytest.approx(8000)
        assert result.totalAmount == pytest.approx(2000)

    def test_budget_includes_fees(self) -> None:
        result = calculate_fee_split(10000, 20, True, False)
        assert result.mediaAmount == pytest.approx(8000)
        assert result.feeAmount == pytest.approx(2000)
        assert result.totalAmount == pytest.approx(10000)

    def test_client_pays_for_media(self) -> None:
        result = calculate_fee_split(10000, 20, False, True)
        assert result.mediaAmount == 0.0
        assert result.deliveryMediaAmount == pytest.approx(10000)
        assert result.feeAmount == pytest.approx(2500)
        assert result.totalAmount == pytest.approx(2500)

    @pytest.mark.parametrize(
        "includes_fees,client_pays",
        list(itertools.product([False, True], repeat=2)),
    )
    @pytest.mark.parametrize("budget,fee", [(0, 20), (1234.56, 0), (999.99, 15), (50000, 99)])
    def test_total_is_media_plus_fee(self, budget, fee, includes_fees, client_pays) -> None:
        result = calculate_fee_split(budget, fee, includes_fees, client_pays)
        assert result.totalAmount == pytest.approx(result.mediaAmount + result.feeAmount)
        assert min(result.mediaAmount, result.feeAmount, result.totalAmount) >= 0

    def test_zero_fee(self) -> None:
        result = calculate_fee_split(5000, 0, False, False)
        assert result.feeAmount == 0.0
        assert result.totalAmount == pytest.approx(5000)

    def test_negative_budget_is_zero(self) -> None:
        assert calculate_fee_split(-100, 20, False, False).totalAmount == 0.0

    @pytest.mark.parametrize("fee", [100, 101, -5])
    def test_invalid_fee_raises(self, fee) -> None:
        with pytest.raises(FeeConfigurationError):
            calculate_fee_split(10000, fee, False, False)


class TestSplitBurst:
    """Tests for split_burst."""

    def test_bonus_carries_no_money(self) -> None:
        item = LineItem(
            lineItemId="b-1",
            buyType="bonus",
            bursts=[{"startDate": "2025-01-01", "endDate": "2025-01-31", "budget": 5000, "calculatedValue": 10}],
        )
        assert split_burst(item, item.bursts[0], 20) == ZERO_SPLIT

    def test_burst_fee_override(self) -> None:
        item = LineItem(
            lineItemId="s-1",
            buyType="cpc",
            bursts=[{"startDate": "2025-01-01", "endDate": "2025-01-31", "budget": 900, "feeOverride": 10}],
        )
        assert split_burst(item, item.bursts[0], 20).feeAmount == pytest.approx(100)


class TestBuildBillingBursts:
    """Tests for build_billing_bursts."""

    def test_one_burst_per_input_burst(self, sample_line_items: List[LineItem]) -> None:
        bursts = build_billing_bursts(sample_line_items, 20, "television")
        assert [b.lineItemId for b in bursts] == ["tv-1", "tv-1", "tv-2"]
        assert all(b.mediaType == "television" for b in bursts)
        assert bursts[0].mediaAmount == pytest.approx(2200)
        assert bursts[0].feeAmount == pytest.approx(550)
        assert bursts[0].deliverables == pytest.approx(22)
        assert bursts[2].deliverables == 1.0

    def test_bonus_keeps_manual_deliverables(self) -> None:
        item = LineItem(
            lineItemId="b-1",
            buyType="bonus",
            bursts=[{"startDate": "2025-01-01", "endDate": "2025-01-31", "budget": 5000, "calculatedValue": 75}],
        )
        (burst,) = build_billing_bursts([item], 20, "radio")
        assert burst.mediaAmount == 0.0
        assert burst.feeAmount == 0.0
        assert burst.deliverables == 75

    def test_client_paid_bills_fee_only(self) -> None:
        item = LineItem(
            lineItemId="s-1",
            buyType="cpc",
            clientPaysForMedia=True,
            noAdserving=True,
            bursts=[{"startDate": "2025-01-01", "endDate": "2025-01-31", "budget": 8000, "buyAmount": 2}],
        )
        (burst,) = build_billing_bursts([item], 20, "search")
        assert burst.mediaAmount == 0.0
        assert burst.deliveryMediaAmount == pytest.approx(8000)
        assert burst.totalAmount == pytest.approx(2000)
        assert burst.noAdserving is True
        assert burst.deliverables == pytest.approx(4000)


class TestSummariseLineItems:
    """Tests for summarise_line_items."""

    def test_totals_use_delivery_media(self) -> None:
        item = LineItem(
            lineItemId="s-1",
            buyType="cpc",
            clientPaysForMedia=True,
            bursts=[
                {"startDate": "2025-01-01", "endDate": "2025-01-31", "budget": 4000, "buyAmount": 2},
                {"startDate": "2025-02-01", "endDate": "2025-02-28", "budget": 4000, "buyAmount": 2},
            ],
        )
        (totals,) = summarise_line_items([item], 20)
        assert totals.mediaAmount == pytest.approx(8000)
        assert totals.feeAmount == pytest.approx(2000)
        assert totals.totalAmount == pytest.approx(10000)
        assert totals.deliverables == pytest.approx(4000)
