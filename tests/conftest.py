"""
Shared pytest fixtures for daybook tests.

Time is pinned: every fixture uses a fixed clock and UTC calendar days,
so day arithmetic does not depend on when or where the tests run.
"""

from datetime import datetime, timedelta, timezone

import pytest

from daybook.api import Journal
from daybook.slot_store import MemorySlotStore
from daybook.store import RecordStore
from daybook.types import Record

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)
UTC = timezone.utc


class FailingSlotStore(MemorySlotStore):
    """Memory slot store whose saves can be switched to fail."""

    def __init__(self):
        super().__init__()
        self.fail_save = False

    def save(self, slot: str, blob: bytes) -> None:
        if self.fail_save:
            raise OSError("disk full (simulated)")
        super().save(slot, blob)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def make_record():
    """Factory for records relative to NOW.

    ``days_ago`` and ``hours_ago`` place occurred_at; ``created_ago``
    (hours) places created_at, which decides sort tie-breaks.
    """
    def make(title: str = "entry", *, days_ago: int = 0, hours_ago: int = 0,
             created_ago: int = 0, **kwargs) -> Record:
        created = NOW - timedelta(hours=created_ago)
        occurred = NOW - timedelta(days=days_ago, hours=hours_ago)
        return Record.create(
            title,
            occurred_at=min(occurred, created),
            now=created,
            **kwargs,
        )
    return make


@pytest.fixture
def slot_store():
    return MemorySlotStore()


@pytest.fixture
def failing_slot_store():
    return FailingSlotStore()


@pytest.fixture
def store(slot_store):
    """RecordStore on a memory slot store with the pinned clock."""
    return RecordStore("entries", slot_store, clock=lambda: NOW)


@pytest.fixture
def journal(tmp_path):
    """Plants journal on a real SQLite store in tmp_path."""
    j = Journal(tmp_path, profile="plants", clock=lambda: NOW, tz=UTC)
    yield j
    j.close()


@pytest.fixture
def memory_journal():
    """Journal profile on a memory slot store."""
    j = Journal(profile="journal", slot_store=MemorySlotStore(), clock=lambda: NOW, tz=UTC)
    yield j
    j.close()
