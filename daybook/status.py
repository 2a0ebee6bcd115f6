"""
Status classifier for recurring records.

Maps elapsed time against a record's interval to fresh / due soon /
overdue. Nothing is stored: the status is recomputed from the clock on
every call.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta, tzinfo
from typing import Optional

from .types import Record, Status, local_day, utc_now

DEFAULT_DUE_SOON_FRACTION = 0.75


@dataclass(frozen=True)
class StatusPolicy:
    """
    Tuning for the classifier.

    Attributes:
        due_soon_fraction: Share of the interval after which a record
            counts as due soon (0 < fraction <= 1)
    """
    due_soon_fraction: float = DEFAULT_DUE_SOON_FRACTION

    def __post_init__(self):
        if not 0 < self.due_soon_fraction <= 1:
            raise ValueError(
                f"due_soon_fraction must be in (0, 1]: {self.due_soon_fraction}"
            )


def elapsed_days(
    occurred_at: datetime,
    now: Optional[datetime] = None,
    tz: Optional[tzinfo] = None,
) -> int:
    """Whole calendar days between occurred_at and now; never negative."""
    today = local_day(now or utc_now(), tz)
    return max(0, (today - local_day(occurred_at, tz)).days)


def classify(elapsed: int, interval_days: int, fraction: float = DEFAULT_DUE_SOON_FRACTION) -> Status:
    """
    fresh     elapsed < interval * fraction
    due_soon  interval * fraction <= elapsed < interval
    overdue   elapsed >= interval
    """
    if elapsed >= interval_days:
        return Status.OVERDUE
    if elapsed >= interval_days * fraction:
        return Status.DUE_SOON
    return Status.FRESH


def status_of(
    record: Record,
    now: Optional[datetime] = None,
    policy: StatusPolicy = StatusPolicy(),
    tz: Optional[tzinfo] = None,
) -> Optional[Status]:
    """Status of a record, or None if it has no interval."""
    if record.interval_days is None:
        return None
    return classify(
        elapsed_days(record.occurred_at, now, tz),
        record.interval_days,
        policy.due_soon_fraction,
    )


def next_due_date(record: Record, tz: Optional[tzinfo] = None) -> Optional[date]:
    """Day the record becomes overdue, or None without an interval."""
    if record.interval_days is None:
        return None
    return local_day(record.occurred_at, tz) + timedelta(days=record.interval_days)


def days_until_due(
    record: Record,
    now: Optional[datetime] = None,
    tz: Optional[tzinfo] = None,
) -> Optional[int]:
    """Days left before the record is overdue; zero or less once overdue."""
    if record.interval_days is None:
        return None
    return record.interval_days - elapsed_days(record.occurred_at, now, tz)
