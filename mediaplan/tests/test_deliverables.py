"""
Pytest test module for deliverable calculation per buy type.
"""

import pytest

from mediaplan.models.enums import BuyType
from mediaplan.services.deliverables import calculate_deliverables, deliverable_label, is_bonus


class TestCalculateDeliverables:
    """Tests for calculate_deliverables."""

    def test_cpm_impressions(self) -> None:
        assert calculate_deliverables("cpm", 5000, 50) == pytest.approx(100000)

    def test_currency_text_inputs(self) -> None:
        assert calculate_deliverables("CPM", "$5,000", "$50.00") == pytest.approx(100000)

    @pytest.mark.parametrize(
        "buy_type",
        ["cpc", "cpv", "cpt", "screens", "insertions", "spots", "panels", "guaranteed_leads"],
    )
    def test_unit_cost_buy_types(self, buy_type: str) -> None:
        assert calculate_deliverables(buy_type, 1200, 40) == pytest.approx(30)

    @pytest.mark.parametrize("buy_type", ["fixed_cost", "Fixed Cost", "package"])
    def test_single_unit_buy_types(self, buy_type: str) -> None:
        assert calculate_deliverables(buy_type, 9999, 0) == 1.0

    def test_zero_buy_amount(self) -> None:
        assert calculate_deliverables("cpm", 5000, 0) == 0.0
        assert calculate_deliverables("cpc", 5000, "") == 0.0

    def test_bonus_uses_override(self) -> None:
        assert calculate_deliverables("bonus", 5000, 50, override_value=250) == 250
        assert calculate_deliverables("bonus", 5000, 50) == 0.0

    def test_unknown_buy_type_returns_cached_value(self) -> None:
        assert calculate_deliverables("barter", 5000, 50, cached_value=42) == 42
        assert calculate_deliverables("barter", 5000, 50) == 0.0
        assert calculate_deliverables(None, 5000, 50) == 0.0

    @pytest.mark.parametrize(
        "args, kwargs, expected",
        [
            (("cpm", "$5,000", "50"), {}, 100000),
            (("spots", 1200, 40), {}, 30),
            (("bonus", 5000, 50), {"override_value": 250}, 250),
            (("barter", 5000, 50), {"cached_value": "$1,250"}, 1250),
        ],
    )
    def test_repeated_calls_are_stable(self, args, kwargs, expected) -> None:
        first = calculate_deliverables(*args, **kwargs)
        assert first == pytest.approx(expected)
        assert calculate_deliverables(*args, **kwargs) == first

    def test_never_negative(self) -> None:
        assert calculate_deliverables("cpm", -5000, 50) == 0.0
        assert calculate_deliverables("cpc", 5000, -10) == 0.0


class TestLabels:
    """Tests for deliverable_label and is_bonus."""

    def test_labels(self) -> None:
        assert deliverable_label("cpm") == "Impressions"
        assert deliverable_label(BuyType.CPT) == "TARPs"
        assert deliverable_label("nonsense") == "Deliverables"

    def test_is_bonus(self) -> None:
        assert is_bonus("Bonus")
        assert not is_bonus("cpm")
        assert not is_bonus(None)
