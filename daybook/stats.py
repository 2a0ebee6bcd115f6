"""
Statistics engine.

Pure aggregate functions over a snapshot or a filtered subset of one.
Day-based figures use the local calendar day of occurred_at unless a
timezone is passed.
"""

import calendar
from collections import Counter
from datetime import date, datetime, timedelta, tzinfo
from typing import Callable, Hashable, Iterable, Optional, Sequence

from .query import group_by_day
from .types import Record, Statistics, local_day, utc_now

KeyFn = Callable[[Record], Optional[Hashable]]


def count(records: Iterable[Record]) -> int:
    return sum(1 for _ in records)


def last_occurred(records: Iterable[Record]) -> Optional[datetime]:
    """Latest occurred_at, or None for an empty input."""
    return max((r.occurred_at for r in records), default=None)


def max_per_day(records: Iterable[Record], tz: Optional[tzinfo] = None) -> int:
    """Size of the busiest day bucket; 0 when empty."""
    return max((len(b) for b in group_by_day(records, tz).values()), default=0)


def _days(records: Iterable[Record], tz: Optional[tzinfo]) -> set[date]:
    return {local_day(r.occurred_at, tz) for r in records}


def distinct_days(records: Iterable[Record], tz: Optional[tzinfo] = None) -> int:
    return len(_days(records, tz))


def current_streak(
    records: Iterable[Record],
    today: Optional[date] = None,
    tz: Optional[tzinfo] = None,
) -> int:
    """
    Consecutive days with at least one record, counted back from today.

    A day without records ends the streak. No record today means a
    streak of 0, even if yesterday had records.
    """
    days = _days(records, tz)
    day = today if today is not None else local_day(utc_now(), tz)
    streak = 0
    while day in days:
        streak += 1
        day -= timedelta(days=1)
    return streak


def longest_streak(records: Iterable[Record], tz: Optional[tzinfo] = None) -> int:
    """Longest run of consecutive days with records, anywhere in history."""
    best = run = 0
    previous: Optional[date] = None
    for day in sorted(_days(records, tz)):
        run = run + 1 if previous is not None and day - previous == timedelta(days=1) else 1
        best = max(best, run)
        previous = day
    return best


def average_interval(
    records: Sequence[Record],
    tz: Optional[tzinfo] = None,
) -> Optional[float]:
    """
    Average spacing in days: (last day - first day) / (count - 1).

    Only the first and last occurrences and the count matter, so the
    placement of intermediate entries has no effect. None for fewer
    than two records.
    """
    items = list(records)
    if len(items) < 2:
        return None
    ordered = sorted(items, key=lambda r: r.occurred_at)
    span = local_day(ordered[-1].occurred_at, tz) - local_day(ordered[0].occurred_at, tz)
    return span.days / (len(ordered) - 1)


def distribution(records: Iterable[Record], key_fn: KeyFn) -> dict:
    """
    Count records per key, most frequent first.

    Ties keep the order in which keys were first seen. Records whose
    key is None are not counted.
    """
    counts: Counter = Counter()
    for r in records:
        key = key_fn(r)
        if key is not None:
            counts[key] += 1
    # Counter keeps first-seen order; sorted() is stable
    return dict(sorted(counts.items(), key=lambda kv: -kv[1]))


def most_frequent(records: Iterable[Record], key_fn: KeyFn) -> Optional[Hashable]:
    """The top key of distribution(), or None."""
    return next(iter(distribution(records, key_fn)), None)


def tag_distribution(records: Iterable[Record]) -> dict:
    return distribution(records, lambda r: r.tag)


def weekday_distribution(
    records: Iterable[Record],
    tz: Optional[tzinfo] = None,
) -> dict[str, int]:
    """Records per weekday, Monday through Sunday, zero-filled."""
    counts = {name: 0 for name in calendar.day_name}
    for r in records:
        counts[calendar.day_name[local_day(r.occurred_at, tz).weekday()]] += 1
    return counts


def compute_statistics(
    records: Iterable[Record],
    now: Optional[datetime] = None,
    tz: Optional[tzinfo] = None,
) -> Statistics:
    """All aggregates for a snapshot in one value."""
    items = list(records)
    today = local_day(now or utc_now(), tz)
    return Statistics(
        total=len(items),
        last_occurred=last_occurred(items),
        max_per_day=max_per_day(items, tz),
        distinct_days=distinct_days(items, tz),
        current_streak=current_streak(items, today=today, tz=tz),
        longest_streak=longest_streak(items, tz),
        average_interval=average_interval(items, tz),
        most_frequent_tag=most_frequent(items, lambda r: r.tag),
    )
