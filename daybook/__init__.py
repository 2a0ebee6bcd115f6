"""
daybook - local record store for journaling and tracker apps.

Records live in one persisted collection per app profile. Derived views
(filters, sorts, day timelines, streaks and other statistics, care
status) are pure functions over immutable snapshots.

Quick Start:
    from daybook import Journal

    with Journal("~/.daybook", profile="plants") as journal:
        fern = journal.add("Boston fern", tag="foliage", interval_days=5)
        journal.log(fern.id, tag="water")
        print(journal.status(fern.id))
        print(journal.statistics())
"""

from .api import Journal, open_journal
from .errors import (
    DaybookError,
    DecodeFailure,
    DuplicateId,
    EncodeFailure,
    NotFound,
    PersistenceFailure,
)
from .events import ChangeEvent, ChangeFeed
from .query import SortOption, filter_records, group_by_day, sort_records
from .status import StatusPolicy, classify, status_of
from .store import RecordStore
from .types import FilterOptions, Record, Statistics, Status, TimeWindow

__version__ = "0.1.0"
__all__ = [
    "Journal",
    "open_journal",
    "RecordStore",
    "Record",
    "FilterOptions",
    "Statistics",
    "Status",
    "TimeWindow",
    "SortOption",
    "StatusPolicy",
    "ChangeEvent",
    "ChangeFeed",
    "filter_records",
    "sort_records",
    "group_by_day",
    "classify",
    "status_of",
    "DaybookError",
    "NotFound",
    "DuplicateId",
    "DecodeFailure",
    "EncodeFailure",
    "PersistenceFailure",
]
