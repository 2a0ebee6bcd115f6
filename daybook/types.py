"""
Data types for the daybook record store.
"""

import re
import uuid
from dataclasses import dataclass, field, fields, replace
from datetime import date, datetime, timedelta, timezone, tzinfo
from enum import Enum
from typing import Any, Optional


# Positive-interval bounds (days) for recurring records such as watering
MIN_INTERVAL_DAYS = 1
MAX_INTERVAL_DAYS = 365

MAX_ID_LENGTH = 128

# Fields fixed at creation; updated() refuses to change them
IMMUTABLE_FIELDS = frozenset({"id", "created_at"})

# Stored payload field -> accepted types, checked when loading
_PAYLOAD_TYPES = {
    "title": str,
    "body": str,
    "flag": bool,
    "archived": bool,
    "tag": (str, type(None)),
    "parent_id": (str, type(None)),
}

# IDs: printable characters minus control chars, quotes and shell metacharacters
_ID_BLOCKED_RE = re.compile(r'[\x00-\x1f\x7f\\`<>|;"\']')


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime.

    All stored timestamps in daybook are UTC. Local time only matters
    when bucketing records into calendar days.
    """
    return datetime.now(timezone.utc)


def format_timestamp(dt: datetime) -> str:
    """Canonical storage format: ISO 8601 with offset and microseconds."""
    return dt.isoformat(timespec="microseconds")


def parse_utc_timestamp(ts: str) -> datetime:
    """Parse a stored timestamp string to a timezone-aware UTC datetime.

    Accepts the canonical format as well as 'Z' suffixes and naive
    values, which are taken to be UTC.
    """
    ts = ts.replace("Z", "+00:00")
    dt = datetime.fromisoformat(ts)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def ensure_aware(dt: datetime) -> datetime:
    """Attach UTC to naive datetimes; convert aware ones to UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def local_day(dt: datetime, tz: Optional[tzinfo] = None) -> date:
    """Calendar day of a timestamp in ``tz`` (the local zone when None)."""
    return ensure_aware(dt).astimezone(tz).date()


def start_of_day(day: date, tz: Optional[tzinfo] = None) -> datetime:
    """First instant of ``day`` in ``tz``, as an aware datetime."""
    midnight = datetime(day.year, day.month, day.day)
    if tz is None:
        return midnight.astimezone()
    return midnight.replace(tzinfo=tz)


def new_id() -> str:
    """Fresh opaque record identifier."""
    return uuid.uuid4().hex


def validate_id(id: str) -> None:
    """Validate a record ID: length and no dangerous characters."""
    if not isinstance(id, str) or not id or len(id) > MAX_ID_LENGTH:
        raise ValueError(f"ID must be 1-{MAX_ID_LENGTH} characters")
    if _ID_BLOCKED_RE.search(id):
        raise ValueError(f"ID contains invalid characters: {id!r}")


def validate_interval(days: Optional[int]) -> None:
    """Intervals are whole days in MIN_INTERVAL_DAYS..MAX_INTERVAL_DAYS."""
    if days is None:
        return
    if isinstance(days, bool) or not isinstance(days, int):
        raise ValueError(f"Interval must be a whole number of days: {days!r}")
    if not MIN_INTERVAL_DAYS <= days <= MAX_INTERVAL_DAYS:
        raise ValueError(
            f"Interval must be {MIN_INTERVAL_DAYS}-{MAX_INTERVAL_DAYS} days: {days}"
        )


def tag_key(tag: Any) -> Optional[str]:
    """Stable string key for a tag value.

    Enum members are stored by value, never by position, so adding
    new members later cannot change the meaning of stored records.
    """
    if tag is None:
        return None
    if isinstance(tag, Enum):
        tag = tag.value
    tag = str(tag).strip()
    return tag or None


class TimeWindow(str, Enum):
    """Time windows offered by list filters."""
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"
    ALL = "all"

    def cutoff(self, now: datetime, tz: Optional[tzinfo] = None) -> Optional[datetime]:
        """Earliest timestamp inside the window, or None for ALL."""
        if self is TimeWindow.TODAY:
            return start_of_day(local_day(now, tz), tz)
        if self is TimeWindow.WEEK:
            return now - timedelta(days=7)
        if self is TimeWindow.MONTH:
            return now - timedelta(days=30)
        return None


class Status(str, Enum):
    """Care status of a recurring record, derived from elapsed time."""
    FRESH = "fresh"
    DUE_SOON = "due_soon"
    OVERDUE = "overdue"


@dataclass(frozen=True)
class Record:
    """
    A single journal record.

    Records are immutable values. To change one, build a copy with
    ``record.updated(...)`` and hand it to ``RecordStore.update()``.

    Attributes:
        id: Opaque unique identifier, fixed at creation
        created_at: When the record was first created (UTC)
        occurred_at: The user-meaningful date (last watered, day of the mood)
        title: Short text
        body: Long text
        tag: Enumerated tag, stored by its string key
        interval_days: Recurrence interval for care-style records
        flag: Favourite marker
        archived: Hidden from default lists when filtering by archived state
        parent_id: Owning record in another collection (care logs)
        updated_at: Last replacement time, None until the first update
    """
    id: str
    created_at: datetime
    occurred_at: datetime
    title: str = ""
    body: str = ""
    tag: Optional[str] = None
    interval_days: Optional[int] = None
    flag: bool = False
    archived: bool = False
    parent_id: Optional[str] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def create(
        cls,
        title: str = "",
        *,
        body: str = "",
        tag: Any = None,
        interval_days: Optional[int] = None,
        occurred_at: Optional[datetime] = None,
        flag: bool = False,
        parent_id: Optional[str] = None,
        now: Optional[datetime] = None,
        id: Optional[str] = None,
    ) -> "Record":
        """Build a new record with a fresh id and creation time.

        Raises:
            ValueError: if occurred_at lies in the future or the interval
                is out of bounds
        """
        now = ensure_aware(now) if now is not None else utc_now()
        occurred = ensure_aware(occurred_at) if occurred_at is not None else now
        if occurred > now:
            raise ValueError(f"occurred_at is in the future: {format_timestamp(occurred)}")
        record_id = id if id is not None else new_id()
        validate_id(record_id)
        validate_interval(interval_days)
        return cls(
            id=record_id,
            created_at=now,
            occurred_at=occurred,
            title=title,
            body=body,
            tag=tag_key(tag),
            interval_days=interval_days,
            flag=flag,
            parent_id=parent_id,
        )

    def updated(self, **changes: Any) -> "Record":
        """Return a copy with ``changes`` applied.

        ``id`` and ``created_at`` are fixed for the life of a record.
        """
        fixed = IMMUTABLE_FIELDS.intersection(changes)
        if fixed:
            raise TypeError(f"Cannot change immutable field(s): {', '.join(sorted(fixed))}")
        if "tag" in changes:
            changes["tag"] = tag_key(changes["tag"])
        for name in ("occurred_at", "updated_at"):
            if changes.get(name) is not None:
                changes[name] = ensure_aware(changes[name])
        validate_interval(changes.get("interval_days", self.interval_days))
        return replace(self, **changes)

    @property
    def day(self) -> date:
        """Local calendar day of occurred_at."""
        return local_day(self.occurred_at)

    def to_dict(self) -> dict:
        """JSON-ready dict; timestamps as ISO strings."""
        d: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, datetime):
                value = format_timestamp(value)
            d[f.name] = value
        return d

    @classmethod
    def from_dict(cls, d: dict) -> "Record":
        """Inverse of to_dict(); unknown keys are ignored."""
        known = {f.name for f in fields(cls)}
        data = {k: v for k, v in d.items() if k in known}
        for name in ("created_at", "occurred_at", "updated_at"):
            value = data.get(name)
            if value is None and name == "updated_at":
                continue
            if not isinstance(value, str):
                raise ValueError(f"{name} must be a timestamp string: {value!r}")
            data[name] = parse_utc_timestamp(value)
        for name, kinds in _PAYLOAD_TYPES.items():
            if name in data and not isinstance(data[name], kinds):
                raise ValueError(f"{name} has the wrong type: {data[name]!r}")
        validate_id(data["id"])
        validate_interval(data.get("interval_days"))
        return cls(**data)

    def __str__(self) -> str:
        title = self.title if len(self.title) <= 60 else self.title[:57] + "..."
        return f"{self.id} {local_day(self.occurred_at).isoformat()} {title}"


@dataclass(frozen=True)
class FilterOptions:
    """
    Read-only filter selection chosen by the UI.

    Every constraint left at its default matches all records.
    """
    window: TimeWindow = TimeWindow.ALL
    tags: frozenset = field(default_factory=frozenset)
    search: str = ""
    favorites_only: bool = False
    archived: Optional[bool] = None
    search_field: str = "title"

    def __post_init__(self):
        # Accept plain strings and iterables from callers
        object.__setattr__(self, "window", TimeWindow(self.window))
        object.__setattr__(
            self, "tags",
            frozenset(k for k in (tag_key(t) for t in self.tags) if k),
        )

    @property
    def is_empty(self) -> bool:
        return (
            self.window is TimeWindow.ALL
            and not self.tags
            and not self.search.strip()
            and not self.favorites_only
            and self.archived is None
        )


@dataclass(frozen=True)
class Statistics:
    """Aggregates over a snapshot. Derived on demand, never persisted."""
    total: int = 0
    last_occurred: Optional[datetime] = None
    max_per_day: int = 0
    distinct_days: int = 0
    current_streak: int = 0
    longest_streak: int = 0
    average_interval: Optional[float] = None
    most_frequent_tag: Optional[str] = None

    def to_dict(self) -> dict:
        """Serialize to JSON-ready dict."""
        from dataclasses import asdict
        d = asdict(self)
        if self.last_occurred is not None:
            d["last_occurred"] = format_timestamp(self.last_occurred)
        return d
