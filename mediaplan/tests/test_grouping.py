"""
Pytest test module for line item grouping.
"""

from datetime import date
from typing import List

import pytest

from mediaplan.models.enums import MediaChannel
from mediaplan.models.schemas import LineItem
from mediaplan.services.grouping import (
    GROUPING_KEYS,
    build_group_key,
    flatten_line_items,
    group_channel_line_items,
    group_line_items,
    resolve_channel,
)


def _tv_record(**overrides):
    record = {
        "market": "Sydney",
        "network": "Seven",
        "station": "ATN7",
        "daypart": "Prime",
        "placement": "News",
        "size": "30s",
        "buyingDemo": "P25-54",
        "buyType": "cpt",
        "startDate": "2025-01-05",
        "endDate": "2025-01-11",
        "deliverablesAmount": "$100",
        "grossMedia": 100,
        "deliverables": 1,
    }
    record.update(overrides)
    return record


class TestResolveChannel:
    """Tests for resolve_channel."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("television", MediaChannel.TELEVISION),
            ("Social Media", MediaChannel.SOCIAL_MEDIA),
            ("socialMedia", MediaChannel.SOCIAL_MEDIA),
            ("newspapers", MediaChannel.NEWSPAPER),
            ("prog_display", MediaChannel.PROG_DISPLAY),
        ],
    )
    def test_tags_and_labels(self, value, expected) -> None:
        assert resolve_channel(value) == expected

    def test_unknown(self) -> None:
        assert resolve_channel("carrier pigeon") is None
        assert resolve_channel(None) is None

    def test_every_channel_has_keys(self) -> None:
        assert set(GROUPING_KEYS) == set(MediaChannel)


class TestGroupLineItems:
    """Tests for group_line_items."""

    def test_matching_records_merge(self) -> None:
        records = [
            _tv_record(),
            _tv_record(startDate="2025-02-02", endDate="2025-02-08", deliverablesAmount="$200", grossMedia=200),
        ]
        groups = group_line_items(records, channel="television")
        assert len(groups) == 1
        group = groups[0]
        assert group.deliverablesAmount == pytest.approx(300)
        assert group.grossMedia == pytest.approx(300)
        assert len(group.bursts) == 2
        assert group.groupStartDate == date(2025, 1, 5)
        assert group.groupEndDate == date(2025, 2, 8)

    def test_differing_field_splits_and_keeps_order(self) -> None:
        records = [
            _tv_record(station="TCN9"),
            _tv_record(),
            _tv_record(station="TCN9", grossMedia=50),
        ]
        groups = group_line_items(records, channel="television")
        assert [g.attributes["station"] for g in groups] == ["TCN9", "ATN7"]
        assert [b.recordIndex for b in groups[0].bursts] == [0, 2]

    def test_conservation(self) -> None:
        records = [_tv_record(grossMedia=v, station=s) for v, s in [(10, "a"), (20, "b"), (30, "a"), (40, "c")]]
        groups = group_line_items(records, channel="television")
        assert sum(g.grossMedia for g in groups) == pytest.approx(100)
        indexes = sorted(b.recordIndex for g in groups for b in g.bursts)
        assert indexes == [0, 1, 2, 3]

    def test_dates_compared_as_dates(self) -> None:
        records = [
            _tv_record(startDate="09/01/2025", endDate="20/01/2025"),
            _tv_record(startDate="2025-01-10", endDate="2025-01-12"),
        ]
        (group,) = group_line_items(records, channel="television")
        assert group.groupStartDate == date(2025, 1, 9)
        assert group.groupEndDate == date(2025, 1, 20)

    def test_unknown_channel_uses_identity_fields(self) -> None:
        records = [{"a": 1, "b": 2, "grossMedia": 5}, {"a": 1, "b": 2, "grossMedia": 7}, {"a": 1, "b": 3}]
        groups = group_line_items(records, channel="mystery")
        assert len(groups) == 2
        assert groups[0].grossMedia == pytest.approx(12)

    def test_unknown_channel_merges_bursts_with_different_values(self) -> None:
        records = [
            {"market": "Sydney", "network": "Nine", "startDate": "2025-01-01", "endDate": "2025-01-10",
             "deliverablesAmount": 100, "grossMedia": 100},
            {"market": "Sydney", "network": "Nine", "startDate": "2025-02-01", "endDate": "2025-02-10",
             "deliverablesAmount": 200, "grossMedia": 200},
        ]
        groups = group_line_items(records, channel="mystery")
        assert len(groups) == 1
        assert len(groups[0].bursts) == 2
        assert groups[0].deliverablesAmount == pytest.approx(300)
        assert groups[0].groupStartDate == date(2025, 1, 1)
        assert groups[0].groupEndDate == date(2025, 2, 10)

    def test_missing_field_is_empty_string(self) -> None:
        assert build_group_key({"market": "Sydney"}, ["market", "network"]) == "Sydney|"

    def test_empty(self) -> None:
        assert group_line_items([], channel="television") == []


class TestGroupChannelLineItems:
    """Tests for flattening and grouping LineItem inputs."""

    def test_flatten_one_record_per_burst(self, sample_line_items: List[LineItem]) -> None:
        records = flatten_line_items(sample_line_items, 20)
        assert len(records) == 3
        assert records[0]["network"] == "Seven"
        assert records[0]["grossMedia"] == pytest.approx(2200)
        assert records[0]["deliverables"] == pytest.approx(22)

    def test_line_items_with_same_fields_merge(self, tv_line_item: LineItem) -> None:
        twin = tv_line_item.model_copy(update={"lineItemId": "tv-9"})
        groups = group_channel_line_items([tv_line_item, twin], "television", 0)
        assert len(groups) == 1
        assert len(groups[0].bursts) == 4
        assert groups[0].grossMedia == pytest.approx(6400)

    def test_unknown_channel_merges_line_item_bursts(self) -> None:
        item = LineItem(
            lineItemId="x-1",
            market="Sydney",
            buyType="cpm",
            bursts=[
                {"startDate": "2025-01-01", "endDate": "2025-01-31", "budget": 1000, "buyAmount": 10},
                {"startDate": "2025-02-01", "endDate": "2025-02-28", "budget": 3000, "buyAmount": 10},
            ],
        )
        groups = group_channel_line_items([item], "mystery", 0)
        assert len(groups) == 1
        assert len(groups[0].bursts) == 2
        assert groups[0].deliverablesAmount == pytest.approx(4000)
