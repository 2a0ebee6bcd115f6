"""
Core API for daybook.

A Journal is the explicitly constructed context for one store directory
and one app profile:
- entries and (optionally) a dependent log, each a RecordStore
- the current filter and sort selections
- derived views: filtered lists, day timelines, statistics, care status
- export / import
"""

import logging
from datetime import datetime, tzinfo
from pathlib import Path
from typing import Any, Callable, Iterator, Optional, Union

from .backend import create_slot_store
from .config import DaybookConfig, get_default_store_path, load_or_create_config
from .errors import DuplicateId
from .events import ChangeFeed, Listener
from .logging_config import configure_ops_log
from .profiles import Profile, get_profile
from .protocol import SlotStoreProtocol
from .query import SortOption, filter_records, group_by_day, sort_records
from .stats import compute_statistics, distribution, weekday_distribution
from .status import StatusPolicy, days_until_due, status_of
from .store import RecordStore
from .types import (
    FilterOptions,
    Record,
    Statistics,
    Status,
    ensure_aware,
    format_timestamp,
    tag_key,
    utc_now,
)

logger = logging.getLogger(__name__)

EXPORT_FORMAT = "daybook-export"
EXPORT_VERSION = 1


class Journal:
    """
    One app's records, views and selections.

    Construct it once at startup, pass it to whatever needs it, and
    close it on exit. Nothing is shared between Journal instances.
    """

    def __init__(
        self,
        store_path: Optional[Union[str, Path]] = None,
        *,
        profile: Optional[str] = None,
        config: Optional[DaybookConfig] = None,
        slot_store: Optional[SlotStoreProtocol] = None,
        clock: Callable[[], datetime] = utc_now,
        tz: Optional[tzinfo] = None,
    ):
        """
        Args:
            store_path: Store directory (default: DAYBOOK_STORE_PATH or ~/.daybook)
            profile: Profile name, overriding the config
            config: Ready configuration; loaded or created when omitted
            slot_store: Storage to use instead of the configured backend
            clock: Source of "now" for new records and derived views
            tz: Timezone for calendar days (default: local)
        """
        if store_path is None:
            store_path = config.path if config is not None else get_default_store_path()
        path = Path(store_path).expanduser()

        if config is None:
            config = DaybookConfig(path=path) if slot_store is not None else load_or_create_config(path)
        self._config = config
        self._profile = get_profile(profile or config.profile)
        self._clock = clock
        self._tz = tz

        self._ops_handler = None
        if slot_store is None:
            slot_store = create_slot_store(config)
            if config.backend == "local":
                self._ops_handler = configure_ops_log(path)
        self._slot_store = slot_store

        self.feed = ChangeFeed()
        self._entries = RecordStore(
            self._profile.entries_slot, slot_store, feed=self.feed, clock=clock,
        )
        self._log: Optional[RecordStore] = None
        if self._profile.has_log:
            self._log = RecordStore(
                self._profile.log_slot, slot_store, feed=self.feed, clock=clock,
            )
            self._entries.attach_dependent(self._log)

        self.policy = StatusPolicy(config.due_soon_fraction)
        self._filter = FilterOptions(search_field=self._profile.search_field)
        self._sort = SortOption(config.default_sort)
        logger.debug("Opened %s journal at %s (%d entries)",
                     self._profile.name, path, len(self._entries))

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def profile(self) -> Profile:
        return self._profile

    @property
    def config(self) -> DaybookConfig:
        return self._config

    @property
    def entries_store(self) -> RecordStore:
        return self._entries

    @property
    def log_store(self) -> Optional[RecordStore]:
        return self._log

    def _now(self) -> datetime:
        return self._clock()

    def _require_log(self) -> RecordStore:
        if self._log is None:
            raise ValueError(f"Profile {self._profile.name!r} has no log")
        return self._log

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Get notified after every committed change. Returns an unsubscribe function."""
        return self.feed.subscribe(listener)

    # -------------------------------------------------------------------------
    # Write Operations
    # -------------------------------------------------------------------------

    def _check_payload(self, tag: Any, interval_days: Optional[int], log: bool = False) -> None:
        if tag is not None:
            self._profile.validate_tag(tag_key(tag), log=log)
        if interval_days is not None and not self._profile.uses_interval:
            raise ValueError(f"Profile {self._profile.name!r} does not use intervals")

    def add(
        self,
        title: str,
        *,
        body: str = "",
        tag: Any = None,
        interval_days: Optional[int] = None,
        occurred_at: Optional[datetime] = None,
        flag: bool = False,
    ) -> Record:
        """Create and store a new entry."""
        self._check_payload(tag, interval_days)
        record = Record.create(
            title,
            body=body,
            tag=tag,
            interval_days=interval_days,
            occurred_at=occurred_at,
            flag=flag,
            now=self._now(),
        )
        return self._entries.add(record)

    def update(self, id: str, **changes: Any) -> Record:
        """
        Replace an entry with a copy carrying ``changes``.

        Raises:
            NotFound: if the entry does not exist
        """
        self._check_payload(changes.get("tag"), changes.get("interval_days"))
        occurred = changes.get("occurred_at")
        if occurred is not None and ensure_aware(occurred) > self._now():
            raise ValueError("occurred_at is in the future")
        return self._entries.modify(id, **changes)

    def delete(self, id: str) -> bool:
        """Delete an entry and its log. Missing ids are a no-op."""
        return self._entries.delete(id)

    def toggle_favorite(self, id: str) -> Record:
        entry = self._entries.get(id)
        return self._entries.modify(id, flag=not entry.flag)

    def archive(self, id: str, archived: bool = True) -> Record:
        return self._entries.modify(id, archived=archived)

    def log(
        self,
        parent_id: str,
        *,
        tag: Any = None,
        note: str = "",
        occurred_at: Optional[datetime] = None,
    ) -> Record:
        """
        Add a log entry owned by an entry (watering, a candle burn).

        Logging the profile's reset action also moves the parent's
        occurred_at forward, which restarts its care interval.

        Raises:
            NotFound: if the parent entry does not exist
        """
        log = self._require_log()
        parent = self._entries.get(parent_id)
        self._check_payload(tag, None, log=True)
        entry = Record.create(
            note,
            tag=tag,
            occurred_at=occurred_at,
            parent_id=parent.id,
            now=self._now(),
        )
        log.add(entry)
        reset = self._profile.reset_tag
        if reset is not None and entry.tag == reset and entry.occurred_at > parent.occurred_at:
            self._entries.modify(parent.id, occurred_at=entry.occurred_at)
        return entry

    def delete_log(self, id: str) -> bool:
        return self._require_log().delete(id)

    # -------------------------------------------------------------------------
    # Selections
    # -------------------------------------------------------------------------

    @property
    def filter(self) -> FilterOptions:
        return self._filter

    def set_filter(self, options: Optional[FilterOptions] = None, **kwargs: Any) -> FilterOptions:
        """Replace the filter selection; keyword arguments build a new FilterOptions."""
        if options is None:
            kwargs.setdefault("search_field", self._profile.search_field)
            options = FilterOptions(**kwargs)
        elif kwargs:
            raise TypeError("Pass either FilterOptions or keyword arguments, not both")
        self._filter = options
        return options

    def clear_filter(self) -> FilterOptions:
        return self.set_filter()

    @property
    def sort(self) -> SortOption:
        return self._sort

    def set_sort(self, option: Union[SortOption, str]) -> SortOption:
        self._sort = SortOption(option)
        return self._sort

    # -------------------------------------------------------------------------
    # Read Operations
    # -------------------------------------------------------------------------

    def get(self, id: str) -> Record:
        return self._entries.get(id)

    def all(self) -> tuple[Record, ...]:
        return self._entries.all()

    def entries(
        self,
        options: Optional[FilterOptions] = None,
        sort: Optional[Union[SortOption, str]] = None,
    ) -> list[Record]:
        """Entries matching the filter selection, in the sort selection."""
        matched = filter_records(
            self._entries.all(),
            options if options is not None else self._filter,
            now=self._now(),
            tz=self._tz,
        )
        return sort_records(matched, sort if sort is not None else self._sort)

    def timeline(self, options: Optional[FilterOptions] = None) -> dict:
        """Filtered entries grouped by day, most recent day first."""
        return group_by_day(self.entries(options), tz=self._tz)

    def history(self, parent_id: str) -> tuple[Record, ...]:
        """Log entries of one entry, most recent first."""
        self._entries.get(parent_id)
        return self._require_log().children_of(parent_id)

    def statistics(self, records: Optional[list[Record]] = None) -> Statistics:
        """Aggregates over ``records`` (default: all entries)."""
        if records is None:
            records = list(self._entries.all())
        return compute_statistics(records, now=self._now(), tz=self._tz)

    def log_statistics(self, parent_id: Optional[str] = None) -> Statistics:
        """Aggregates over the log, or over one entry's history."""
        log = self._require_log()
        records = self.history(parent_id) if parent_id else log.all()
        return compute_statistics(records, now=self._now(), tz=self._tz)

    def tag_distribution(self, options: Optional[FilterOptions] = None) -> dict:
        return distribution(self.entries(options), lambda r: r.tag)

    def weekday_distribution(self, options: Optional[FilterOptions] = None) -> dict[str, int]:
        return weekday_distribution(self.entries(options), tz=self._tz)

    def status(self, id: str) -> Optional[Status]:
        """Care status of one entry, or None if it has no interval."""
        return status_of(self._entries.get(id), self._now(), self.policy, tz=self._tz)

    def days_left(self, id: str) -> Optional[int]:
        """Days before one entry is overdue, or None if it has no interval."""
        return days_until_due(self._entries.get(id), self._now(), tz=self._tz)

    def due(self, include_fresh: bool = False) -> list[tuple[Record, Status, int]]:
        """
        Entries with an interval, soonest due first.

        Returns:
            (record, status, days_until_due) tuples; archived entries
            are skipped
        """
        now = self._now()
        rows = []
        for record in self._entries.all():
            if record.archived or record.interval_days is None:
                continue
            status = status_of(record, now, self.policy, tz=self._tz)
            if status is Status.FRESH and not include_fresh:
                continue
            rows.append((record, status, days_until_due(record, now, tz=self._tz)))
        rows.sort(key=lambda row: row[2])
        return rows

    # -------------------------------------------------------------------------
    # Data Export / Import
    # -------------------------------------------------------------------------

    def export_iter(self) -> Iterator[dict]:
        """
        Stream-export the journal.

        **First yield**: header dict::

            {"format": "daybook-export", "version": 1, "exported_at": "...",
             "profile": "...", "counts": {"entries": N, "logs": N}}

        **Subsequent yields**: one dict per entry, with its log entries
        inline under ``"log"``.
        """
        yield {
            "format": EXPORT_FORMAT,
            "version": EXPORT_VERSION,
            "exported_at": format_timestamp(self._now()),
            "profile": self._profile.name,
            "counts": {
                "entries": len(self._entries),
                "logs": len(self._log) if self._log is not None else 0,
            },
        }
        for entry in self._entries.all(SortOption.CREATED_ASC):
            d = entry.to_dict()
            if self._log is not None:
                d["log"] = [
                    r.to_dict()
                    for r in sort_records(self._log.children_of(entry.id), SortOption.CREATED_ASC)
                ]
            yield d

    def export_data(self) -> dict:
        """
        Export everything as a single dict.

        Convenience wrapper around :meth:`export_iter`.
        """
        it = self.export_iter()
        header = next(it)
        header["entries"] = list(it)
        return header

    def import_data(self, data: dict, *, mode: str = "merge") -> dict:
        """
        Import entries (and their logs) from an export dict.

        Args:
            data: Dict in daybook-export format
            mode: "merge" (skip existing ids) or "replace" (clear first)

        Returns:
            Dict with stats: {imported, skipped, logs}
        """
        if data.get("format") != EXPORT_FORMAT:
            raise ValueError(f"Invalid export format (expected {EXPORT_FORMAT!r})")
        version = data.get("version", 0)
        if not isinstance(version, int) or version > EXPORT_VERSION:
            raise ValueError(
                f"Export format version {version!r} is not supported "
                f"(this version supports up to {EXPORT_VERSION})"
            )
        if mode not in ("merge", "replace"):
            raise ValueError(f"Unknown import mode: {mode!r}")

        entries: dict[str, Record] = {}
        logs: dict[str, Record] = {}
        if mode == "merge":
            entries = {r.id: r for r in self._entries.in_insertion_order()}
            if self._log is not None:
                logs = {r.id: r for r in self._log.in_insertion_order()}

        docs = data.get("entries") or []
        if not isinstance(docs, list):
            raise ValueError("Export 'entries' must be a list")

        imported = skipped = log_count = 0
        for doc in docs:
            if not isinstance(doc, dict):
                raise ValueError(f"Invalid entry in export: {doc!r}")
            doc = dict(doc)
            children = doc.pop("log", None) or []
            if not isinstance(children, list):
                raise ValueError(f"Log of entry {doc.get('id')!r} must be a list")
            try:
                entry = Record.from_dict(doc)
            except (KeyError, TypeError, ValueError) as e:
                raise ValueError(f"Invalid entry in export: {e}") from e
            if entry.id in entries:
                skipped += 1
                continue
            entries[entry.id] = entry
            imported += 1
            if self._log is None:
                continue
            for child in children:
                try:
                    record = Record.from_dict({**child, "parent_id": entry.id})
                except (KeyError, TypeError, ValueError) as e:
                    raise ValueError(f"Invalid log entry in export: {e}") from e
                if record.id in logs:
                    raise DuplicateId(record.id, self._log.slot)
                logs[record.id] = record
                log_count += 1

        self._entries.replace_all(entries.values())
        if self._log is not None:
            self._log.replace_all(logs.values())
        logger.info("Imported %d entries (%d skipped, %d log entries)", imported, skipped, log_count)
        return {"imported": imported, "skipped": skipped, "logs": log_count}

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def close(self) -> None:
        """Release storage and the ops log handler."""
        if self._ops_handler is not None:
            logging.getLogger("daybook").removeHandler(self._ops_handler)
            self._ops_handler.close()
            self._ops_handler = None
        if self._slot_store is not None:
            self._slot_store.close()
            self._slot_store = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


def open_journal(
    store_path: Optional[Union[str, Path]] = None,
    profile: Optional[str] = None,
    **kwargs: Any,
) -> Journal:
    """Open the journal for a store directory. Close it on exit."""
    return Journal(store_path, profile=profile, **kwargs)
