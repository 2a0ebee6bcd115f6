"""
Record store.

Owns one in-memory collection backed by one slot. Every mutation
re-encodes and saves the whole collection before it returns, then
publishes a change event.

Mutations follow one commit order:

1. build the new collection next to the current one
2. encode it (EncodeFailure aborts here)
3. save the blob (PersistenceFailure aborts here)
4. swap the new collection in and notify

A failure in steps 2 or 3 leaves memory exactly as it was, so memory
and disk never disagree. A delete notifies only after its cascade into
dependent stores has run.
"""

import logging
from dataclasses import replace
from datetime import datetime
from typing import Any, Callable, Iterable, Optional

from . import codec
from .errors import DuplicateId, NotFound, PersistenceFailure
from .events import ChangeEvent, ChangeFeed
from .protocol import SlotStoreProtocol
from .query import SortOption, sort_records
from .types import Record, utc_now

logger = logging.getLogger(__name__)


class RecordStore:
    """
    Persisted collection of records, uniquely keyed by id.

    Dependent stores (attach_dependent) hold records whose parent_id
    points into this store; deleting a record here removes them too.
    """

    def __init__(
        self,
        slot: str,
        slot_store: SlotStoreProtocol,
        *,
        feed: Optional[ChangeFeed] = None,
        clock: Callable[[], datetime] = utc_now,
        encoder: Callable[[Iterable[Record]], bytes] = codec.encode,
        decoder: Callable[[Optional[bytes]], list[Record]] = codec.decode,
    ):
        """
        Args:
            slot: Slot name holding this collection
            slot_store: Durable blob storage
            feed: Change feed to publish to (a private one if omitted)
            clock: Source of "now" for updated_at
            encoder: Collection serializer
            decoder: Collection deserializer; must not raise on corrupt data
        """
        self.slot = slot
        self._slot_store = slot_store
        self.feed = feed if feed is not None else ChangeFeed()
        self._clock = clock
        self._encode = encoder
        self._decode = decoder
        self._dependents: list["RecordStore"] = []
        self._records: dict[str, Record] = {}
        self.reload()

    def reload(self) -> None:
        """Replace the in-memory collection with what the slot holds."""
        records = self._decode(self._slot_store.load(self.slot))
        self._records = {r.id: r for r in records}
        logger.debug("Loaded %d records from slot %s", len(self._records), self.slot)

    def attach_dependent(self, store: "RecordStore") -> None:
        """Cascade deletes from this store into ``store`` via parent_id."""
        if store is self:
            raise ValueError("A store cannot depend on itself")
        self._dependents.append(store)

    @property
    def dependents(self) -> tuple["RecordStore", ...]:
        return tuple(self._dependents)

    # -------------------------------------------------------------------------
    # Commit
    # -------------------------------------------------------------------------

    def _commit(
        self,
        records: dict[str, Record],
        action: str,
        ids: tuple[str, ...],
        notify: bool = True,
    ) -> None:
        blob = self._encode(records.values())
        try:
            self._slot_store.save(self.slot, blob)
        except Exception as e:
            raise PersistenceFailure(f"Cannot save slot {self.slot}: {e}") from e
        self._records = records
        logger.info("%s %s in %s", action, ",".join(ids) or "-", self.slot)
        if notify:
            self._publish(action, ids)

    def _publish(self, action: str, ids: tuple[str, ...]) -> None:
        self.feed.publish(ChangeEvent(self.slot, action, ids))

    # -------------------------------------------------------------------------
    # Write Operations
    # -------------------------------------------------------------------------

    def add(self, record: Record) -> Record:
        """
        Insert a new record.

        Raises:
            DuplicateId: if a record with the same id exists
        """
        if record.id in self._records:
            raise DuplicateId(record.id, self.slot)
        records = dict(self._records)
        records[record.id] = record
        self._commit(records, "add", (record.id,))
        return record

    def update(self, record: Record) -> Record:
        """
        Replace the stored record with the same id.

        The stored created_at always wins over the caller's, and
        updated_at is set to now.

        Returns:
            The record as stored

        Raises:
            NotFound: if no record has this id
        """
        existing = self.get(record.id)
        stored = record.updated(updated_at=self._clock())
        if stored.created_at != existing.created_at:
            stored = replace(stored, created_at=existing.created_at)
        records = dict(self._records)
        records[record.id] = stored
        self._commit(records, "update", (record.id,))
        return stored

    def modify(self, id: str, **changes: Any) -> Record:
        """Apply ``changes`` to the stored record and update it."""
        return self.update(self.get(id).updated(**changes))

    def delete(self, id: str) -> bool:
        """
        Delete a record and, recursively, its dependents.

        Returns:
            True if the record existed; a missing id is a no-op
        """
        if id not in self._records:
            return False
        records = dict(self._records)
        del records[id]
        self._commit(records, "delete", (id,), notify=False)
        try:
            for dependent in self._dependents:
                dependent.delete_children(id)
        finally:
            self._publish("delete", (id,))
        return True

    def delete_where(self, predicate: Callable[[Record], bool]) -> int:
        """
        Delete every matching record in one write, cascading to dependents.

        Returns:
            Number of records deleted here
        """
        doomed = tuple(id for id, r in self._records.items() if predicate(r))
        if not doomed:
            return 0
        records = {id: r for id, r in self._records.items() if id not in doomed}
        self._commit(records, "delete", doomed, notify=False)
        try:
            for dependent in self._dependents:
                for id in doomed:
                    dependent.delete_children(id)
        finally:
            self._publish("delete", doomed)
        return len(doomed)

    def delete_children(self, parent_id: str) -> int:
        """Delete records owned by ``parent_id``."""
        return self.delete_where(lambda r: r.parent_id == parent_id)

    def replace_all(self, records: Iterable[Record]) -> int:
        """
        Replace the whole collection (import, restore).

        Raises:
            DuplicateId: if ``records`` repeats an id
        """
        new: dict[str, Record] = {}
        for r in records:
            if r.id in new:
                raise DuplicateId(r.id, self.slot)
            new[r.id] = r
        self._commit(new, "replace", tuple(new))
        return len(new)

    # -------------------------------------------------------------------------
    # Read Operations
    # -------------------------------------------------------------------------

    def all(self, sort: SortOption = SortOption.OCCURRED_DESC) -> tuple[Record, ...]:
        """Immutable snapshot, most recent occurrence first by default."""
        return tuple(sort_records(self._records.values(), sort))

    def in_insertion_order(self) -> tuple[Record, ...]:
        return tuple(self._records.values())

    def get(self, id: str) -> Record:
        """
        Raises:
            NotFound: if no record has this id
        """
        try:
            return self._records[id]
        except KeyError:
            raise NotFound(id, self.slot) from None

    def find(self, id: str) -> Optional[Record]:
        return self._records.get(id)

    def children_of(self, parent_id: str) -> tuple[Record, ...]:
        """Records owned by ``parent_id``, most recent first."""
        return tuple(sort_records(
            (r for r in self._records.values() if r.parent_id == parent_id),
            SortOption.OCCURRED_DESC,
        ))

    def __contains__(self, id: object) -> bool:
        return id in self._records

    def __len__(self) -> int:
        return len(self._records)

    def __repr__(self) -> str:
        return f"RecordStore(slot={self.slot!r}, records={len(self._records)})"
