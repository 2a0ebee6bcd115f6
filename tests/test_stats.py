"""Tests for the statistics engine."""

from datetime import date, timedelta

import pytest

from conftest import NOW, UTC
from daybook import stats

TODAY = date(2026, 3, 10)


class TestBasics:
    def test_empty(self):
        assert stats.count([]) == 0
        assert stats.last_occurred([]) is None
        assert stats.max_per_day([]) == 0
        assert stats.distinct_days([]) == 0

    def test_last_occurred(self, make_record):
        rs = [make_record(days_ago=3), make_record(days_ago=1), make_record(days_ago=7)]
        assert stats.last_occurred(rs) == NOW - timedelta(days=1)

    def test_max_per_day_and_distinct_days(self, make_record):
        rs = [
            make_record(days_ago=0),
            make_record(days_ago=0, hours_ago=2),
            make_record(days_ago=0, hours_ago=4),
            make_record(days_ago=5),
        ]
        assert stats.max_per_day(rs, UTC) == 3
        assert stats.distinct_days(rs, UTC) == 2


class TestStreaks:
    """Tests for current and longest streaks."""

    @pytest.mark.parametrize("k", [1, 2, 5])
    def test_k_consecutive_days_ending_today(self, make_record, k):
        rs = [make_record(days_ago=d) for d in range(k)]
        assert stats.current_streak(rs, today=TODAY, tz=UTC) == k

    def test_gap_ends_streak(self, make_record):
        rs = [make_record(days_ago=d) for d in (0, 1, 3, 4, 5)]
        assert stats.current_streak(rs, today=TODAY, tz=UTC) == 2

    def test_no_record_today_is_zero(self, make_record):
        rs = [make_record(days_ago=d) for d in (1, 2, 3)]
        assert stats.current_streak(rs, today=TODAY, tz=UTC) == 0

    def test_several_records_per_day_count_once(self, make_record):
        rs = [make_record(days_ago=0, hours_ago=h) for h in range(3)]
        assert stats.current_streak(rs, today=TODAY, tz=UTC) == 1

    def test_empty(self):
        assert stats.current_streak([], today=TODAY) == 0
        assert stats.longest_streak([]) == 0

    def test_longest_streak(self, make_record):
        rs = [make_record(days_ago=d) for d in (0, 1, 5, 6, 7, 8, 20)]
        assert stats.longest_streak(rs, UTC) == 4


class TestAverageInterval:
    """Tests for average_interval()."""

    def test_three_points(self, make_record):
        rs = [make_record(days_ago=d) for d in (10, 7, 0)]
        assert stats.average_interval(rs, UTC) == 5.0

    def test_middle_entries_do_not_matter(self, make_record):
        a = [make_record(days_ago=d) for d in (10, 9, 0)]
        b = [make_record(days_ago=d) for d in (10, 1, 0)]
        assert stats.average_interval(a, UTC) == stats.average_interval(b, UTC)

    def test_order_of_input_does_not_matter(self, make_record):
        rs = [make_record(days_ago=d) for d in (0, 10, 7)]
        assert stats.average_interval(rs, UTC) == 5.0

    @pytest.mark.parametrize("n", [0, 1])
    def test_fewer_than_two(self, make_record, n):
        rs = [make_record() for _ in range(n)]
        assert stats.average_interval(rs) is None

    def test_same_day(self, make_record):
        rs = [make_record(hours_ago=1), make_record(hours_ago=2)]
        assert stats.average_interval(rs, UTC) == 0.0


class TestDistribution:
    """Tests for distribution() and friends."""

    def test_counts_most_frequent_first(self, make_record):
        rs = [make_record(tag=t) for t in ("red", "blue", "blue", "green", "blue", "red")]
        assert stats.tag_distribution(rs) == {"blue": 3, "red": 2, "green": 1}
        assert list(stats.tag_distribution(rs)) == ["blue", "red", "green"]

    def test_ties_keep_first_seen_order(self, make_record):
        rs = [make_record(tag=t) for t in ("gray", "red", "red", "gray", "blue")]
        assert list(stats.tag_distribution(rs)) == ["gray", "red", "blue"]
        assert stats.most_frequent(rs, lambda r: r.tag) == "gray"

    def test_untagged_skipped(self, make_record):
        rs = [make_record(), make_record(tag="red")]
        assert stats.tag_distribution(rs) == {"red": 1}

    def test_most_frequent_empty(self):
        assert stats.most_frequent([], lambda r: r.tag) is None

    def test_custom_key(self, make_record):
        rs = [make_record(flag=True), make_record(), make_record(flag=True)]
        assert stats.distribution(rs, lambda r: r.flag) == {True: 2, False: 1}

    def test_weekday_distribution(self, make_record):
        # 2026-03-10 is a Tuesday
        rs = [make_record(days_ago=0), make_record(days_ago=7), make_record(days_ago=1)]
        counts = stats.weekday_distribution(rs, UTC)
        assert list(counts)[0] == "Monday"
        assert len(counts) == 7
        assert counts["Tuesday"] == 2
        assert counts["Monday"] == 1
        assert counts["Sunday"] == 0


class TestComputeStatistics:
    def test_all_fields(self, make_record):
        rs = [
            make_record(days_ago=0, tag="water"),
            make_record(days_ago=0, hours_ago=3, tag="mist"),
            make_record(days_ago=1, tag="water"),
            make_record(days_ago=4, tag="prune"),
        ]
        s = stats.compute_statistics(rs, now=NOW, tz=UTC)
        assert s.total == 4
        assert s.last_occurred == NOW
        assert s.max_per_day == 2
        assert s.distinct_days == 3
        assert s.current_streak == 2
        assert s.longest_streak == 2
        assert s.average_interval == pytest.approx(4 / 3)
        assert s.most_frequent_tag == "water"

    def test_empty(self):
        s = stats.compute_statistics([], now=NOW, tz=UTC)
        assert s.total == 0
        assert s.last_occurred is None
        assert s.average_interval is None
        assert s.most_frequent_tag is None

    def test_accepts_generator(self, make_record):
        rs = [make_record(days_ago=d) for d in range(3)]
        s = stats.compute_statistics((r for r in rs), now=NOW, tz=UTC)
        assert s.total == 3
        assert s.current_streak == 3
