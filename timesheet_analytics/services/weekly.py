from __future__ import annotations

from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Tuple

from ..models import TimeRecord, WeeklyBucket

PENDING_STATES = {"Open", "Submitted"}


def iso_week(day: date) -> str:
    """ISO-8601 week key, e.g. ``2024-W01``. Weeks start on Monday."""
    year, week, _ = day.isocalendar()
    return f"{year}-W{week:02d}"


def split_hours(record: TimeRecord) -> Tuple[float, float]:
    """Return ``(approved, pending)`` contributions; rejected hours count in neither."""
    if record.approval_state == "Approved":
        return record.hours, 0.0
    if record.approval_state in PENDING_STATES:
        return 0.0, record.hours
    return 0.0, 0.0


def _exact(hours: float) -> Decimal:
    # ERP quantities are short decimals; Decimal sums of them are exact in any order
    return Decimal(str(hours))


def total_hours(records: Iterable[TimeRecord]) -> float:
    return float(sum((_exact(record.hours) for record in records), Decimal(0)))


def aggregate_weekly(records: Iterable[TimeRecord]) -> List[WeeklyBucket]:
    totals: Dict[str, List[Decimal]] = defaultdict(lambda: [Decimal(0), Decimal(0), Decimal(0)])
    for record in records:
        approved, pending = split_hours(record)
        bucket = totals[record.iso_week]
        bucket[0] += _exact(record.hours)
        bucket[1] += _exact(approved)
        bucket[2] += _exact(pending)

    weekly: List[WeeklyBucket] = []
    cumulative = Decimal(0)
    for week in sorted(totals):
        total, approved, pending = totals[week]
        cumulative += total
        weekly.append(
            WeeklyBucket(
                iso_week=week,
                total_hours=float(total),
                approved_hours=float(approved),
                pending_hours=float(pending),
                cumulative_hours=float(cumulative),
            )
        )
    return weekly


def hours_in_week(records: Iterable[TimeRecord], week: str) -> float:
    return total_hours(record for record in records if record.iso_week == week)
