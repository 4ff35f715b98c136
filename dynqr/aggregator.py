"""Scan statistics derived from scan history."""

import calendar
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from typing import Dict, Iterable, Optional

from dateutil.relativedelta import relativedelta

from .common.url_builder import classify_url_variation
from .database.models import QRCode, QRCodeGroup, utcnow


@dataclass
class CodeStats:
    months_since_creation: int
    current_month_scans: int
    average_scans_per_month: float
    percentage_change: float
    scan_count: int
    last_scanned: Optional[datetime]

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class GroupStats:
    total_codes: int
    total_scans: int
    average_scans_per_code: int

    def to_dict(self) -> dict:
        return asdict(self)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def months_between(start: datetime, end: datetime) -> int:
    """Whole calendar months from start to end (negative if end is earlier)."""
    delta = relativedelta(_as_utc(end), _as_utc(start))
    return delta.years * 12 + delta.months


def month_bounds(moment: datetime):
    """First and last instant (inclusive) of the UTC calendar month of moment."""
    moment = _as_utc(moment)
    last_day = calendar.monthrange(moment.year, moment.month)[1]
    start = moment.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    end = moment.replace(day=last_day, hour=23, minute=59, second=59, microsecond=999999)
    return start, end


def compute_code_stats(record: QRCode, now: Optional[datetime] = None) -> CodeStats:
    """Current month vs. monthly average for one code.

    Args:
        record: The QR code
        now: Reference time (UTC now by default)

    Returns:
        CodeStats; ``percentage_change`` is 0 when the average is 0
    """
    now = _as_utc(now or utcnow())

    # At least one month, so a code created this month averages over 1
    months = max(months_between(record.created_at, now), 1)

    start, end = month_bounds(now)
    current = sum(1 for ts in record.scan_history if start <= _as_utc(ts) <= end)

    average = record.scan_count / months
    if average > 0:
        change = (current - average) / average * 100
    else:
        change = 0.0

    return CodeStats(
        months_since_creation=months,
        current_month_scans=current,
        average_scans_per_month=average,
        percentage_change=change,
        scan_count=record.scan_count,
        last_scanned=record.last_scanned,
    )


def compute_group_stats(records: Iterable[QRCode]) -> GroupStats:
    records = list(records)
    total_scans = sum(r.scan_count for r in records)
    # Half-up rounding; round() would send 2.5 to 2
    average = int(total_scans / len(records) + 0.5) if records else 0
    return GroupStats(
        total_codes=len(records),
        total_scans=total_scans,
        average_scans_per_code=average,
    )


def describe_group_members(group: QRCodeGroup, records: Iterable[QRCode]) -> Dict[str, dict]:
    """URL variation of each member code relative to the group base URL, by code id."""
    return {r.id: classify_url_variation(r.destination_url, group.base_url) for r in records}
