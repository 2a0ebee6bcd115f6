"""
Query engine: filtering, sorting and day grouping.

Pure functions over a snapshot. Inputs are never mutated; every call
returns a new list in a deterministic order.
"""

from datetime import date, datetime, tzinfo
from enum import Enum
from typing import Callable, Iterable, Optional, Union

from .types import FilterOptions, Record, TimeWindow, local_day, utc_now

Predicate = Callable[[Record], bool]
SortKey = Callable[[Record], object]


class SortOption(str, Enum):
    """Sort orders offered by list views."""
    OCCURRED_DESC = "occurred_desc"
    OCCURRED_ASC = "occurred_asc"
    CREATED_DESC = "created_desc"
    CREATED_ASC = "created_asc"
    UPDATED_DESC = "updated_desc"
    TITLE = "title"


def _updated_or_created(r: Record) -> datetime:
    return r.updated_at or r.created_at


# option -> (key, reverse)
_SORT_KEYS: dict[SortOption, tuple[SortKey, bool]] = {
    SortOption.OCCURRED_DESC: (lambda r: r.occurred_at, True),
    SortOption.OCCURRED_ASC: (lambda r: r.occurred_at, False),
    SortOption.CREATED_DESC: (lambda r: r.created_at, True),
    SortOption.CREATED_ASC: (lambda r: r.created_at, False),
    SortOption.UPDATED_DESC: (_updated_or_created, True),
    SortOption.TITLE: (lambda r: r.title.casefold(), False),
}


def search_text(record: Record, field: str = "title") -> str:
    """Text of the designated search field ('title', 'body' or 'any')."""
    if field == "any":
        return f"{record.title}\n{record.body}"
    value = getattr(record, field, "")
    return value if isinstance(value, str) else ""


def build_predicate(
    options: FilterOptions,
    now: Optional[datetime] = None,
    tz: Optional[tzinfo] = None,
) -> Predicate:
    """
    Turn a filter selection into a record predicate.

    All active constraints are ANDed. Constraints at their defaults
    (window ALL, no tags, empty search) match everything.
    """
    now = now or utc_now()
    cutoff = options.window.cutoff(now, tz)
    bounded = options.window is not TimeWindow.ALL
    tags = options.tags
    needle = options.search.strip().casefold()
    field = options.search_field

    def predicate(r: Record) -> bool:
        if bounded and not (cutoff <= r.occurred_at <= now):
            return False
        if tags and r.tag not in tags:
            return False
        if needle and needle not in search_text(r, field).casefold():
            return False
        if options.favorites_only and not r.flag:
            return False
        if options.archived is not None and r.archived != options.archived:
            return False
        return True

    return predicate


def filter_records(
    records: Iterable[Record],
    criteria: Union[FilterOptions, Predicate, None] = None,
    *,
    now: Optional[datetime] = None,
    tz: Optional[tzinfo] = None,
) -> list[Record]:
    """
    Keep the records matching ``criteria``, preserving input order.

    Args:
        records: Snapshot to filter
        criteria: FilterOptions, a ready predicate, or None for no filter
        now: Reference time for time windows (defaults to the clock)
        tz: Timezone for the TODAY window (defaults to local)
    """
    if criteria is None:
        return list(records)
    if isinstance(criteria, FilterOptions):
        criteria = build_predicate(criteria, now=now, tz=tz)
    return [r for r in records if criteria(r)]


def sort_records(
    records: Iterable[Record],
    order: Union[SortOption, str, SortKey] = SortOption.OCCURRED_DESC,
    *,
    reverse: bool = False,
) -> list[Record]:
    """
    Stable sort by a SortOption or a key function.

    Ties are broken by created_at descending so that repeated calls on
    unchanged input always give the same order.
    """
    if callable(order) and not isinstance(order, str):
        key, desc = order, reverse
    else:
        key, desc = _SORT_KEYS[SortOption(order)]
        desc = desc != reverse
    # Secondary order first; Python's sort is stable (also with reverse=True)
    ordered = sorted(records, key=lambda r: r.created_at, reverse=True)
    return sorted(ordered, key=key, reverse=desc)


def group_by_day(
    records: Iterable[Record],
    tz: Optional[tzinfo] = None,
) -> dict[date, list[Record]]:
    """
    Bucket records by the local calendar day of occurred_at.

    Days are ordered most recent first, and so are the records inside
    each day. Every input record lands in exactly one bucket.
    """
    buckets: dict[date, list[Record]] = {}
    for r in sort_records(records, SortOption.OCCURRED_DESC):
        buckets.setdefault(local_day(r.occurred_at, tz), []).append(r)
    return {day: buckets[day] for day in sorted(buckets, reverse=True)}


def on_day(
    records: Iterable[Record],
    day: date,
    tz: Optional[tzinfo] = None,
) -> list[Record]:
    """Records whose occurred_at falls on ``day``, most recent first."""
    return sort_records(
        (r for r in records if local_day(r.occurred_at, tz) == day),
        SortOption.OCCURRED_DESC,
    )
