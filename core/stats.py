from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from datetime import date, datetime, timedelta, timezone

from core.schemas import BucketCount

# (label, exclusive upper bound in hours)
RESPONSE_BUCKETS: tuple[tuple[str, float], ...] = (
    ("<1h", 1),
    ("1-4h", 4),
    ("4-24h", 24),
    ("1-3d", 72),
    ("3-7d", 168),
    (">7d", math.inf),
)

CLOSE_BUCKETS: tuple[tuple[str, float], ...] = (
    ("<1d", 24),
    ("1-3d", 72),
    ("3-7d", 168),
    ("1-2w", 336),
    ("2-4w", 672),
    (">4w", math.inf),
)


def median(values: Iterable[float]) -> float | None:
    ordered = sorted(values)
    if not ordered:
        return None
    mid = len(ordered) // 2
    if len(ordered) % 2 == 0:
        return (ordered[mid - 1] + ordered[mid]) / 2
    return ordered[mid]


def bucketize(
    values: Iterable[float], buckets: Sequence[tuple[str, float]]
) -> list[BucketCount]:
    """Count each value into the first bucket whose upper bound exceeds it."""
    counts = [0] * len(buckets)
    for value in values:
        for i, (_, upper) in enumerate(buckets):
            if value < upper:
                counts[i] += 1
                break
    return [
        BucketCount(bucket=label, count=counts[i])
        for i, (label, _) in enumerate(buckets)
    ]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def isoformat(dt: datetime) -> str:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def format_date(value: datetime | date) -> str:
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        value = value.date()
    return value.isoformat()


def days_between(start: datetime | date, end: datetime | date) -> list[str]:
    """Every calendar day from ``start`` to ``end`` inclusive, as YYYY-MM-DD."""
    current = date.fromisoformat(format_date(start))
    last = date.fromisoformat(format_date(end))
    days = []
    while current <= last:
        days.append(current.isoformat())
        current += timedelta(days=1)
    return days


def week_start(value: datetime | date) -> date:
    """Monday of the week containing ``value``; Sunday closes the week."""
    day = date.fromisoformat(format_date(value))
    return day - timedelta(days=day.weekday())


def hours_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / 3600


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))
