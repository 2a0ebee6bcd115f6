"""Tests for the status classifier."""

from datetime import date, datetime, timedelta, timezone

import pytest

from conftest import NOW, UTC
from daybook.status import (
    StatusPolicy,
    classify,
    days_until_due,
    elapsed_days,
    next_due_date,
    status_of,
)
from daybook.types import Status


class TestClassify:
    """Thresholds at the default fraction of 0.75."""

    @pytest.mark.parametrize("elapsed,expected", [
        (0, Status.FRESH),
        (9, Status.FRESH),
        (10, Status.FRESH),
        (11, Status.DUE_SOON),
        (13, Status.DUE_SOON),
        (14, Status.OVERDUE),
        (40, Status.OVERDUE),
    ])
    def test_fourteen_day_interval(self, elapsed, expected):
        assert classify(elapsed, 14) is expected

    def test_boundary_is_inclusive(self):
        # 8 * 0.75 == 6
        assert classify(5, 8) is Status.FRESH
        assert classify(6, 8) is Status.DUE_SOON

    def test_one_day_interval(self):
        assert classify(0, 1) is Status.FRESH
        assert classify(1, 1) is Status.OVERDUE

    def test_fraction_of_one_skips_due_soon(self):
        assert classify(13, 14, 1.0) is Status.FRESH
        assert classify(14, 14, 1.0) is Status.OVERDUE

    def test_smaller_fraction_warns_earlier(self):
        assert classify(7, 14, 0.5) is Status.DUE_SOON


class TestPolicy:
    @pytest.mark.parametrize("fraction", [0, -0.5, 1.5])
    def test_invalid_fraction(self, fraction):
        with pytest.raises(ValueError):
            StatusPolicy(fraction)

    def test_default(self):
        assert StatusPolicy().due_soon_fraction == 0.75


class TestElapsedDays:
    def test_calendar_days(self):
        late_yesterday = datetime(2026, 3, 9, 23, 50, tzinfo=UTC)
        assert elapsed_days(late_yesterday, NOW, UTC) == 1

    def test_same_day(self):
        assert elapsed_days(NOW - timedelta(hours=11), NOW, UTC) == 0

    def test_never_negative(self):
        assert elapsed_days(NOW + timedelta(days=2), NOW, UTC) == 0

    def test_timezone_shifts_day(self):
        # 2026-03-09 20:00 UTC is already 2026-03-10 in UTC+5
        occurred = datetime(2026, 3, 9, 20, 0, tzinfo=UTC)
        assert elapsed_days(occurred, NOW, UTC) == 1
        assert elapsed_days(occurred, NOW, timezone(timedelta(hours=5))) == 0


class TestStatusOf:
    """Tests for status_of() and due-date helpers."""

    def test_no_interval(self, make_record):
        r = make_record("note")
        assert status_of(r, NOW, tz=UTC) is None
        assert next_due_date(r) is None
        assert days_until_due(r, NOW) is None

    @pytest.mark.parametrize("days_ago,expected", [
        (9, Status.FRESH),
        (11, Status.DUE_SOON),
        (14, Status.OVERDUE),
    ])
    def test_record_status(self, make_record, days_ago, expected):
        r = make_record("Fern", days_ago=days_ago, interval_days=14)
        assert status_of(r, NOW, tz=UTC) is expected

    def test_policy_applied(self, make_record):
        r = make_record("Fern", days_ago=7, interval_days=14)
        assert status_of(r, NOW, StatusPolicy(0.5), tz=UTC) is Status.DUE_SOON
        assert status_of(r, NOW, tz=UTC) is Status.FRESH

    def test_moving_occurred_at_resets(self, make_record):
        r = make_record("Fern", days_ago=20, interval_days=14)
        assert status_of(r, NOW, tz=UTC) is Status.OVERDUE
        watered = r.updated(occurred_at=NOW)
        assert status_of(watered, NOW, tz=UTC) is Status.FRESH

    def test_next_due_date(self, make_record):
        r = make_record("Fern", days_ago=3, interval_days=7)
        assert next_due_date(r, UTC) == date(2026, 3, 14)

    def test_days_until_due(self, make_record):
        assert days_until_due(make_record(days_ago=3, interval_days=7), NOW, UTC) == 4
        assert days_until_due(make_record(days_ago=7, interval_days=7), NOW, UTC) == 0
        assert days_until_due(make_record(days_ago=10, interval_days=7), NOW, UTC) == -3
