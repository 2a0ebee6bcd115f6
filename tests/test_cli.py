"""Tests for the daybook command line."""

import json
from datetime import datetime, timedelta, timezone

import pytest
from typer.testing import CliRunner

from daybook.api import Journal
from daybook.cli import _format_detail, _format_line, _parse_when, app

runner = CliRunner()


@pytest.fixture
def run(tmp_path):
    """Invoke the CLI against a store in tmp_path."""
    def invoke(*args, profile="plants", as_json=True):
        opts = ["--store", str(tmp_path), "--profile", profile]
        if as_json:
            opts.append("--json")
        return runner.invoke(app, [*opts, *args])
    return invoke


def _json(result):
    assert result.exit_code == 0, result.output
    return json.loads(result.stdout)


class TestParseWhen:
    """Tests for --date parsing."""

    NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)

    def test_none(self):
        assert _parse_when(None) is None

    def test_keywords(self):
        assert _parse_when("today", self.NOW) == self.NOW
        assert _parse_when("yesterday", self.NOW) == self.NOW - timedelta(days=1)

    @pytest.mark.parametrize("text,days", [("P3D", 3), ("p2w", 14)])
    def test_durations(self, text, days):
        assert _parse_when(text, self.NOW) == self.NOW - timedelta(days=days)

    def test_iso_date_keeps_time_of_day(self):
        dt = _parse_when("2026-03-01", self.NOW)
        assert dt.date().isoformat() == "2026-03-01"
        assert dt.timetz() == self.NOW.astimezone().timetz()

    def test_iso_datetime(self):
        assert _parse_when("2026-03-01T08:30+00:00") == datetime(
            2026, 3, 1, 8, 30, tzinfo=timezone.utc
        )

    def test_invalid(self):
        with pytest.raises(ValueError, match="Invalid date"):
            _parse_when("next tuesday")


class TestEntryCommands:
    """Tests for add / get / edit / delete."""

    def test_add_and_get(self, run):
        added = _json(run("add", "Monstera", "--tag", "foliage", "--every", "7"))
        assert added["title"] == "Monstera"
        assert added["interval_days"] == 7
        shown = _json(run("get", added["id"]))
        assert shown["title"] == "Monstera"
        assert shown["status"] == "fresh"

    def test_add_text_output(self, run):
        result = run("add", "Monstera", "--tag", "foliage", "--favorite", as_json=False)
        assert result.exit_code == 0
        assert "[foliage]" in result.stdout
        assert "Monstera" in result.stdout

    def test_add_rejects_unknown_tag(self, run):
        result = run("add", "Monstera", "--tag", "purple")
        assert result.exit_code == 1
        assert "Unknown tag" in result.output

    def test_add_rejects_empty_title(self, run):
        result = run("add", "   ")
        assert result.exit_code == 1
        assert "title" in result.output

    def test_add_rejects_bad_interval(self, run):
        result = run("add", "Monstera", "--every", "400")
        assert result.exit_code == 1
        assert "Interval" in result.output

    def test_add_with_date(self, run):
        added = _json(run("add", "Cactus", "--date", "P3D"))
        occurred = datetime.fromisoformat(added["occurred_at"])
        created = datetime.fromisoformat(added["created_at"])
        assert created - occurred >= timedelta(days=3) - timedelta(seconds=5)

    def test_edit(self, run):
        added = _json(run("add", "Monstera"))
        edited = _json(run("edit", added["id"], "--title", "Swiss cheese plant", "--every", "5"))
        assert edited["title"] == "Swiss cheese plant"
        assert edited["interval_days"] == 5
        assert edited["updated_at"] is not None

    def test_edit_nothing(self, run):
        added = _json(run("add", "Monstera"))
        result = run("edit", added["id"])
        assert result.exit_code == 1
        assert "nothing to change" in result.output

    def test_edit_bad_date(self, run):
        added = _json(run("add", "Monstera"))
        result = run("edit", added["id"], "--date", "someday")
        assert result.exit_code == 1
        assert "Invalid date" in result.output

    def test_get_missing(self, run):
        result = run("get", "nope")
        assert result.exit_code == 1
        assert "Not found" in result.output

    def test_delete(self, run):
        added = _json(run("add", "Monstera"))
        result = run("delete", added["id"], as_json=False)
        assert result.exit_code == 0
        assert _json(run("list")) == []

    def test_favorite_and_archive(self, run):
        added = _json(run("add", "Monstera"))
        assert _json(run("favorite", added["id"]))["flag"] is True
        assert _json(run("archive", added["id"]))["archived"] is True
        assert _json(run("list", "--active")) == []
        assert _json(run("archive", added["id"], "--undo"))["archived"] is False


class TestListCommands:
    """Tests for list / timeline / stats."""

    @pytest.fixture
    def filled(self, run):
        run("add", "Morning pages", "--tag", "writing", profile="journal")
        run("add", "Hike", "--tag", "outdoors", "--date", "yesterday", profile="journal")
        run("add", "Old trip", "--tag", "outdoors", "--date", "P40D", profile="journal")
        return run

    def test_list_default_order(self, filled):
        titles = [r["title"] for r in _json(filled("list", profile="journal"))]
        assert titles == ["Morning pages", "Hike", "Old trip"]

    def test_list_filters(self, filled):
        rows = _json(filled("list", "--window", "month", "--tag", "outdoors", profile="journal"))
        assert [r["title"] for r in rows] == ["Hike"]
        rows = _json(filled("list", "--search", "TRIP", profile="journal"))
        assert [r["title"] for r in rows] == ["Old trip"]

    def test_list_sort(self, filled):
        rows = _json(filled("list", "--sort", "title", profile="journal"))
        assert [r["title"] for r in rows] == ["Hike", "Morning pages", "Old trip"]

    def test_list_bad_window(self, filled):
        result = filled("list", "--window", "year", profile="journal")
        assert result.exit_code != 0
        assert "year" in result.output

    def test_list_empty_text(self, run):
        result = run("list", as_json=False)
        assert result.exit_code == 0
        assert "No entries." in result.stdout

    def test_timeline(self, filled):
        days = _json(filled("timeline", profile="journal"))
        assert len(days) == 3
        assert list(days) == sorted(days, reverse=True)

    def test_stats(self, filled):
        data = _json(filled("stats", profile="journal"))
        assert data["statistics"]["total"] == 3
        assert data["statistics"]["current_streak"] == 2
        assert data["tags"] == {"outdoors": 2, "writing": 1}
        assert sum(data["weekdays"].values()) == 3

    def test_stats_text(self, filled):
        result = filled("stats", profile="journal", as_json=False)
        assert result.exit_code == 0
        assert "total: 3" in result.stdout
        assert "current streak: 2" in result.stdout


class TestCareCommands:
    """Tests for log / history / status on the plants profile."""

    def test_log_and_history(self, run):
        fern = _json(run("add", "Fern", "--every", "7", "--date", "P10D"))
        _json(run("log", fern["id"], "--tag", "mist", "--note", "dry air"))
        rows = _json(run("history", fern["id"]))
        assert [r["title"] for r in rows] == ["dry air"]

    def test_status_and_water(self, run):
        fern = _json(run("add", "Fern", "--every", "7", "--date", "P10D"))
        _json(run("add", "Cactus", "--every", "30", "--date", "P2D"))

        due = _json(run("status"))
        assert [(r["title"], r["status"]) for r in due] == [("Fern", "overdue")]

        _json(run("log", fern["id"], "--tag", "water"))
        assert _json(run("status")) == []
        assert len(_json(run("status", "--all"))) == 2

    def test_status_fraction(self, run):
        _json(run("add", "Cactus", "--every", "10", "--date", "P5D"))
        assert _json(run("status")) == []
        due = _json(run("status", "--due-soon", "0.5"))
        assert [r["status"] for r in due] == ["due_soon"]

    def test_status_bad_fraction(self, run):
        result = run("status", "--due-soon", "2")
        assert result.exit_code == 1
        assert "due_soon_fraction" in result.output

    def test_log_on_journal_profile(self, run):
        entry = _json(run("add", "Day one", profile="journal"))
        result = run("log", entry["id"], profile="journal")
        assert result.exit_code == 1
        assert "no log" in result.output

    def test_unknown_profile(self, run):
        result = run("list", profile="aquarium")
        assert result.exit_code == 1
        assert "Unknown profile" in result.output


class TestExportImport:
    def test_round_trip(self, run, tmp_path):
        fern = _json(run("add", "Fern", "--tag", "foliage"))
        _json(run("log", fern["id"], "--tag", "water"))
        out = tmp_path / "export.json"
        result = run("export", str(out))
        assert result.exit_code == 0
        data = json.loads(out.read_text())
        assert data["counts"] == {"entries": 1, "logs": 1}

        other = tmp_path / "other"
        result = runner.invoke(app, [
            "--store", str(other), "--profile", "plants", "--json", "import", str(out),
        ])
        assert _json(result) == {"imported": 1, "skipped": 0, "logs": 1}

    def test_import_missing_file(self, run, tmp_path):
        result = run("import", str(tmp_path / "missing.json"))
        assert result.exit_code == 1
        assert "cannot read" in result.output


class TestProfilesCommand:
    def test_lists_profiles(self):
        result = runner.invoke(app, ["profiles"])
        assert result.exit_code == 0
        for name in ("journal", "plants", "candles", "smiles", "moods", "jokes"):
            assert name in result.stdout


class TestFormatting:
    """Status in text output follows the journal's clock and timezone."""

    NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)

    @pytest.fixture
    def pinned(self, tmp_path):
        j = Journal(tmp_path, profile="plants", clock=lambda: self.NOW, tz=timezone.utc)
        yield j
        j.close()

    def test_line_uses_journal_clock(self, pinned):
        fern = pinned.add("Fern", interval_days=7, occurred_at=self.NOW - timedelta(days=1))
        line = _format_line(fern, pinned)
        assert "{ok, every 7d}" in line

    def test_detail_uses_journal_clock(self, pinned):
        fern = pinned.add("Fern", interval_days=7, occurred_at=self.NOW - timedelta(days=1))
        detail = _format_detail(fern, pinned)
        assert "status: fresh (6 days left)" in detail
