"""
Protocol definitions for the record store and its storage backend.

Defines interface contracts at two levels:
- RecordStoreProtocol: what the Journal and its callers rely on
- SlotStoreProtocol: durable blob storage (SQLite locally, anything
  registered under the ``daybook.backends`` entry point group)
"""

from typing import Callable, Optional, Protocol, runtime_checkable

from .query import SortOption
from .types import Record


@runtime_checkable
class SlotStoreProtocol(Protocol):
    """Named-slot blob storage. Saves replace the whole slot atomically."""

    def load(self, slot: str) -> Optional[bytes]: ...

    def save(self, slot: str, blob: bytes) -> None: ...

    def delete(self, slot: str) -> bool: ...

    def list_slots(self) -> list[str]: ...

    def close(self) -> None: ...


@runtime_checkable
class RecordStoreProtocol(Protocol):
    """
    CRUD over one persisted collection.

    Implemented by:
    - RecordStore (any SlotStoreProtocol backend)
    """

    slot: str

    # -- Write operations --

    def add(self, record: Record) -> Record: ...

    def update(self, record: Record) -> Record: ...

    def delete(self, id: str) -> bool: ...

    def delete_where(self, predicate: Callable[[Record], bool]) -> int: ...

    # -- Read operations --

    def all(self, sort: SortOption = SortOption.OCCURRED_DESC) -> tuple[Record, ...]: ...

    def get(self, id: str) -> Record: ...

    def find(self, id: str) -> Optional[Record]: ...

    def __len__(self) -> int: ...
