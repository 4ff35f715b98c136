"""Tests for scan statistics."""

from datetime import datetime, timezone

import pytest

from dynqr.aggregator import (
    compute_code_stats,
    compute_group_stats,
    describe_group_members,
    month_bounds,
    months_between,
)
from dynqr.database.models import QRCode, QRCodeGroup


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


def make_record(created_at, scans=(), record_id="a1B2c3", destination_url="https://example.com/menu"):
    record = QRCode(
        id=record_id,
        user_id="user-alice",
        title="Menu",
        destination_url=destination_url,
        short_code="Hk3mPq7xZ",
        created_at=created_at,
    )
    for ts in scans:
        record = record.with_scan(ts)
    return record


class TestMonthArithmetic:
    """Test calendar month helpers."""

    def test_months_between_whole_months(self):
        assert months_between(utc(2024, 1, 15), utc(2024, 4, 15)) == 3
        assert months_between(utc(2024, 1, 15), utc(2024, 4, 14)) == 2
        assert months_between(utc(2023, 11, 1), utc(2025, 1, 1)) == 14

    def test_months_between_same_month(self):
        assert months_between(utc(2024, 6, 1), utc(2024, 6, 30)) == 0

    def test_month_bounds(self):
        start, end = month_bounds(utc(2024, 2, 14, 10, 30))
        assert start == utc(2024, 2, 1)
        assert end == utc(2024, 2, 29, 23, 59, 59, 999999)


class TestCodeStats:
    """Test compute_code_stats."""

    def test_new_code_without_scans(self):
        now = utc(2024, 6, 20)
        stats = compute_code_stats(make_record(utc(2024, 6, 1)), now=now)

        assert stats.months_since_creation == 1
        assert stats.current_month_scans == 0
        assert stats.average_scans_per_month == 0
        assert stats.percentage_change == 0
        assert stats.scan_count == 0
        assert stats.last_scanned is None

    def test_current_month_above_average(self):
        # Created four months ago, 8 scans total, 4 of them this month
        scans = [utc(2024, 3, 5)] * 2 + [utc(2024, 4, 5)] * 2 + [utc(2024, 6, d) for d in (1, 2, 3, 4)]
        record = make_record(utc(2024, 2, 10), scans)

        stats = compute_code_stats(record, now=utc(2024, 6, 20))

        assert stats.months_since_creation == 4
        assert stats.current_month_scans == 4
        assert stats.average_scans_per_month == 2
        assert stats.percentage_change == pytest.approx(100.0)
        assert stats.last_scanned == utc(2024, 6, 4)

    def test_current_month_below_average(self):
        scans = [utc(2024, 1, 10)] * 9 + [utc(2024, 3, 1)]
        record = make_record(utc(2024, 1, 1), scans)

        stats = compute_code_stats(record, now=utc(2024, 3, 15))

        assert stats.months_since_creation == 2
        assert stats.current_month_scans == 1
        assert stats.average_scans_per_month == 5
        assert stats.percentage_change == pytest.approx(-80.0)

    def test_month_boundaries_are_inclusive(self):
        scans = [
            utc(2024, 4, 30, 23, 59, 59, 999999),
            utc(2024, 5, 1, 0, 0, 0),
            utc(2024, 5, 31, 23, 59, 59, 999999),
        ]
        record = make_record(utc(2024, 1, 1), scans)

        stats = compute_code_stats(record, now=utc(2024, 5, 15))

        assert stats.current_month_scans == 2

    def test_to_dict(self):
        stats = compute_code_stats(make_record(utc(2024, 6, 1)), now=utc(2024, 6, 2))
        assert set(stats.to_dict()) == {
            "months_since_creation",
            "current_month_scans",
            "average_scans_per_month",
            "percentage_change",
            "scan_count",
            "last_scanned",
        }


class TestGroupStats:
    """Test compute_group_stats and member variations."""

    def test_empty_group(self):
        stats = compute_group_stats([])
        assert stats.total_codes == 0
        assert stats.total_scans == 0
        assert stats.average_scans_per_code == 0

    def test_average_rounds_half_up(self):
        created = utc(2024, 1, 1)
        records = [
            make_record(created, [utc(2024, 1, 2)] * 2, record_id="aaaaaa"),
            make_record(created, [utc(2024, 1, 2)] * 3, record_id="bbbbbb"),
        ]

        stats = compute_group_stats(records)

        assert stats.total_codes == 2
        assert stats.total_scans == 5
        assert stats.average_scans_per_code == 3

    def test_average_rounds_down_below_half(self):
        created = utc(2024, 1, 1)
        records = [
            make_record(created, [], record_id="aaaaaa"),
            make_record(created, [], record_id="bbbbbb"),
            make_record(created, [utc(2024, 1, 2)] * 4, record_id="cccccc"),
        ]
        assert compute_group_stats(records).average_scans_per_code == 1

    def test_describe_group_members(self):
        group = QRCodeGroup(
            id="grp234567",
            user_id="user-alice",
            name="Cafe",
            base_url="https://cafe.example.com",
            created_at=utc(2024, 1, 1),
        )
        records = [
            make_record(utc(2024, 1, 1), record_id="aaaaaa", destination_url="https://cafe.example.com/menu"),
            make_record(utc(2024, 1, 1), record_id="bbbbbb", destination_url="https://cafe.example.com/menu?t=4"),
            make_record(utc(2024, 1, 1), record_id="cccccc", destination_url="https://other.example.com/"),
        ]

        variations = describe_group_members(group, records)

        assert variations["aaaaaa"] == {"type": "path", "variation": "/menu"}
        assert variations["bbbbbb"] == {"type": "params", "path": "/menu", "params": "t=4"}
        assert variations["cccccc"] == {"type": "different", "variation": "https://other.example.com/"}
