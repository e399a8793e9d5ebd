"""
Pytest test module for the accrual reconciler.

Covers month normalization, schedule flattening across payload shapes,
client-pays-for-media exclusion, aggregation and version selection.
"""

import json
from datetime import date
from typing import Any, Dict, List

import pytest

from mediaplan.models.enums import ScheduleSource
from mediaplan.models.schemas import CampaignVersionInput
from mediaplan.services.accrual import (
    build_client_pays_lookup,
    compute_accrual_rows,
    flatten_schedule,
    normalize_month_key,
    normalize_months,
    pick_latest_versions,
)


class TestNormalizeMonthKey:
    """Tests for normalize_month_key."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("2025-01", "2025-01"),
            ("2025/01", "2025-01"),
            ("01/2025", "2025-01"),
            ("January 2026", "2026-01"),
            ("Feb 2025", "2025-02"),
            ("March, 2025", "2025-03"),
            (202512, "2025-12"),
            (date(2025, 7, 14), "2025-07"),
            ("2025-07-14", "2025-07"),
        ],
    )
    def test_supported_shapes(self, value, expected) -> None:
        assert normalize_month_key(value) == expected

    @pytest.mark.parametrize("value", [None, "", "not a month", "2025-13", 2025, True])
    def test_unparsable(self, value) -> None:
        assert normalize_month_key(value) is None

    def test_normalize_months_dedupes(self) -> None:
        assert normalize_months(["2025-01", " January 2025 ", "2025-02", "junk"]) == ["2025-01", "2025-02"]


class TestFlattenSchedule:
    """Tests for flatten_schedule."""

    @pytest.fixture
    def version(self) -> CampaignVersionInput:
        return CampaignVersionInput(clientName="Acme", mbaNumber="MBA-1", versionNumber=1)

    def test_media_types_shape(self, version, delivery_schedule) -> None:
        lines = flatten_schedule(ScheduleSource.DELIVERY, delivery_schedule, {"2025-01"}, version)
        keys = [line.line_item_key for line in lines]
        assert keys == ["__service__fees", "tv-1", "tv-2"]
        assert lines[1].amount == 1200.0
        assert lines[1].line_item_name == "Seven • ATN7"

    def test_json_text_and_months_wrapper(self, version, delivery_schedule) -> None:
        payload = json.dumps({"months": delivery_schedule})
        lines = flatten_schedule(ScheduleSource.DELIVERY, payload, {"2025-02"}, version)
        assert [(l.line_item_key, l.amount) for l in lines] == [("tv-1", 1000.0)]

    def test_flat_line_items_and_month_amount(self, version) -> None:
        schedule = [
            {"month": "2025-03", "mediaType": "Search", "lineItems": [{"publisher": "Google", "amount": 50}]},
            {"month": "2025-03", "mediaType": "Radio", "amount": "$75.00", "publisher": "ARN"},
        ]
        lines = flatten_schedule(ScheduleSource.BILLING, schedule, {"2025-03"}, version)
        assert [(l.line_item_key, l.amount) for l in lines] == [
            ("search__google____google", 50.0),
            ("radio______arn", 75.0),
        ]

    def test_media_type_without_line_items(self, version) -> None:
        schedule = [{"monthYear": "April 2025", "mediaTypes": [{"mediaType": "OOH", "amount": 900}]}]
        (line,) = flatten_schedule(ScheduleSource.BILLING, schedule, {"2025-04"}, version)
        assert line.line_item_name == "OOH"
        assert line.amount == 900.0

    @pytest.mark.parametrize("schedule", [None, "", "{broken", 42, {"nothing": True}])
    def test_malformed_schedules(self, version, schedule) -> None:
        assert flatten_schedule(ScheduleSource.DELIVERY, schedule, {"2025-01"}, version) == []


class TestComputeAccrualRows:
    """Tests for compute_accrual_rows."""

    def test_difference_per_line_item(self, campaign_version) -> None:
        rows = compute_accrual_rows([campaign_version], ["2025-01", "2025-02"])
        by_key = {row.lineItemKey: row for row in rows}

        assert set(by_key) == {"__service__fees", "tv-1", "tv-2"}
        tv1 = by_key["tv-1"]
        assert tv1.deliveryAmount == 2200.0
        assert tv1.billingAmount == 1000.0
        assert tv1.difference == 1200.0
        assert tv1.lineItemName == "Seven • ATN7"
        assert tv1.clientSlug == "acme-pty-ltd"
        assert by_key["tv-2"].difference == 0.0
        assert by_key["__service__fees"].difference == 0.0

    def test_first_seen_order(self, campaign_version) -> None:
        rows = compute_accrual_rows([campaign_version], ["2025-01"])
        assert [row.lineItemKey for row in rows] == ["__service__fees", "tv-1", "tv-2"]

    def test_client_paid_delivery_excluded(self, campaign_version) -> None:
        rows = compute_accrual_rows([campaign_version], ["2025-01", "2025-02"], {"TV-1": True})
        tv1 = next(row for row in rows if row.lineItemKey == "tv-1")
        assert tv1.deliveryAmount == 0.0
        assert tv1.billingAmount == 1000.0
        assert tv1.difference == -1000.0

    def test_longest_name_labels_row(self) -> None:
        version = CampaignVersionInput(
            mbaNumber="MBA-2",
            versionNumber=1,
            deliverySchedule=[{"month": "2025-01", "lineItems": [{"id": "x", "name": "Short", "amount": 1}]}],
            billingSchedule=[{"month": "2025-01", "lineItems": [{"id": "x", "name": "Much longer name", "amount": 1}]}],
        )
        (row,) = compute_accrual_rows([version], ["2025-01"])
        assert row.lineItemName == "Much longer name"
        assert row.clientName == "Unknown"

    def test_no_months(self, campaign_version) -> None:
        assert compute_accrual_rows([campaign_version], []) == []

    def test_month_outside_selection(self, campaign_version) -> None:
        assert compute_accrual_rows([campaign_version], ["2024-12"]) == []


class TestPickLatestVersions:
    """Tests for pick_latest_versions."""

    def test_master_version_wins(self) -> None:
        versions: List[Dict[str, Any]] = [
            {"id": 1, "mba_number": "MBA-1", "version_number": 1, "media_plan_master_id": 10},
            {"id": 2, "mba_number": "MBA-1", "version_number": 2, "media_plan_master_id": 10},
            {"id": 3, "mba_number": "MBA-1", "version_number": 3, "media_plan_master_id": 10},
        ]
        masters = [{"id": 10, "mba_number": "MBA-1", "version_number": 2}]
        (chosen,) = pick_latest_versions(versions, masters)
        assert chosen["id"] == 2

    def test_highest_version_without_master(self) -> None:
        versions = [
            {"id": 1, "mba_number": "MBA-1", "version_number": "2"},
            {"id": 2, "mba_number": "mba-1", "version_number": "10"},
            {"id": 3, "mba_number": "MBA-2", "version_number": 1},
        ]
        chosen = pick_latest_versions(versions, [])
        assert sorted(v["id"] for v in chosen) == [2, 3]

    def test_ties_broken_by_updated_at(self) -> None:
        versions = [
            {"id": 5, "mba_number": "MBA-1", "version_number": 1, "updated_at": "2025-01-02T00:00:00Z"},
            {"id": 4, "mba_number": "MBA-1", "version_number": 1, "updated_at": "2025-03-02T00:00:00Z"},
        ]
        (chosen,) = pick_latest_versions(versions, [])
        assert chosen["id"] == 4


class TestBuildClientPaysLookup:
    """Tests for build_client_pays_lookup."""

    def test_true_wins(self) -> None:
        lookup = build_client_pays_lookup([
            {"line_item_id": "TV-1", "client_pays_for_media": False},
            {"line_item_id": "tv-1", "client_pays_for_media": True},
            {"line_item_id": "tv-2", "client_pays_for_media": "false"},
            {"client_pays_for_media": True},
        ])
        assert lookup == {"tv-1": True, "tv-2": False}
