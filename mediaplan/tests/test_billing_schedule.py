"""
Pytest test module for the billing schedule builder.
"""

from datetime import date
from typing import List

import pytest

from mediaplan.models.enums import ScheduleSource
from mediaplan.models.schemas import BillingMonth, CampaignVersionInput, LineItem
from mediaplan.services.accrual import flatten_schedule
from mediaplan.services.billing_schedule import (
    build_billing_months,
    build_billing_schedule_json,
    media_type_label,
    validate_billing_overrides,
)
from mediaplan.services.fee_policy import build_billing_bursts
from mediaplan.services.proration import calculate_line_item_monthly_amounts


@pytest.fixture
def billing_inputs(sample_line_items: List[LineItem]):
    bursts = build_billing_bursts(sample_line_items, 20, "television")
    line_items = calculate_line_item_monthly_amounts(sample_line_items, 20, "television")
    return bursts, line_items


class TestBuildBillingMonths:
    """Tests for build_billing_months."""

    def test_months_are_chronological_and_conserve_totals(self, billing_inputs) -> None:
        bursts, line_items = billing_inputs
        months = build_billing_months(bursts, line_items=line_items)

        assert [m.monthKey for m in months] == ["2025-01", "2025-02", "2025-03"]
        assert [m.monthYear for m in months] == ["January 2025", "February 2025", "March 2025"]
        assert sum(m.mediaTotal for m in months) == pytest.approx(8200)
        assert sum(m.feeTotal for m in months) == pytest.approx(2050)
        assert months[0].mediaTotal == pytest.approx(1200)
        assert months[0].mediaCosts == {"television": pytest.approx(1200)}

    def test_line_items_by_media_type(self, billing_inputs) -> None:
        bursts, line_items = billing_inputs
        february = build_billing_months(bursts, line_items=line_items)[1]
        entries = february.lineItems["television"]
        assert [e.id for e in entries] == ["tv-1", "tv-2"]
        assert entries[1].monthlyAmounts["February 2025"] == pytest.approx(5000)

    def test_campaign_range_bounds_months(self, billing_inputs) -> None:
        bursts, line_items = billing_inputs
        months = build_billing_months(
            bursts,
            line_items=line_items,
            campaign_start=date(2025, 2, 1),
            campaign_end=date(2025, 4, 30),
            adserving={"2025-04": 150},
            production={"2025-02": 400},
        )
        assert [m.monthKey for m in months] == ["2025-02", "2025-03", "2025-04"]
        april = months[-1]
        assert april.mediaTotal == 0.0
        assert april.adservingTechFees == 150
        assert april.totalAmount == pytest.approx(150)
        february = months[0]
        assert february.totalAmount == pytest.approx(
            february.mediaTotal + february.feeTotal + 400
        )


class TestBuildBillingScheduleJson:
    """Tests for build_billing_schedule_json."""

    def test_round_trips_through_accrual_walker(self, billing_inputs) -> None:
        bursts, line_items = billing_inputs
        schedule = build_billing_schedule_json(build_billing_months(bursts, line_items=line_items))

        january = schedule[0]
        assert january["monthYear"] == "January 2025"
        assert january["mediaTypes"][0]["mediaType"] == "Television"
        assert january["mediaTypes"][0]["lineItems"] == [
            {"lineItemId": "tv-1", "header1": "Seven", "header2": "News", "amount": "$1,200.00"},
        ]
        assert january["feeTotal"] == "$300.00"
        assert "production" not in january

        version = CampaignVersionInput(mbaNumber="MBA-1", versionNumber=1)
        lines = flatten_schedule(ScheduleSource.BILLING, schedule, {"2025-01"}, version)
        assert [(l.line_item_key, l.amount) for l in lines] == [
            ("__service__fees", 300.0),
            ("tv-1", 1200.0),
        ]

    def test_empty_months_are_omitted(self) -> None:
        months = [BillingMonth(monthYear="May 2025", monthKey="2025-05")]
        assert build_billing_schedule_json(months) == []


class TestValidateBillingOverrides:
    """Tests for validate_billing_overrides."""

    def _months(self, *totals: float) -> List[BillingMonth]:
        return [
            BillingMonth(monthYear=f"Month {i}", monthKey=f"2025-{i:02d}", totalAmount=total)
            for i, total in enumerate(totals, start=1)
        ]

    def test_within_a_cent(self) -> None:
        result = validate_billing_overrides(self._months(100, 200), self._months(150, 150.005))
        assert result.isValid
        assert result.errorMessage is None

    def test_over(self) -> None:
        result = validate_billing_overrides(self._months(100, 200), self._months(150, 200))
        assert not result.isValid
        assert result.totalDifference == pytest.approx(50)
        assert result.errorMessage.startswith("Total override amount exceeds original by $50.00")

    def test_under(self) -> None:
        result = validate_billing_overrides(self._months(100, 200), self._months(100, 175.5))
        assert not result.isValid
        assert "is $24.50 less than original" in result.errorMessage


class TestMediaTypeLabel:
    def test_labels(self) -> None:
        assert media_type_label("socialMedia") == "Social Media"
        assert media_type_label("custom") == "custom"
