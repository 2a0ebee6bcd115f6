"""
CLI interface for daybook.

Usage:
    daybook --profile plants add "Monstera" --tag foliage --every 7
    daybook --profile plants log <id> --tag water
    daybook list --window week --search fern
    daybook stats
"""

import json
import os
import re
from contextlib import contextmanager
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Iterator, Optional

import typer
from typing_extensions import Annotated

from .api import Journal
from .errors import DaybookError, NotFound, log_exception
from .logging_config import configure_quiet_mode, enable_debug_mode
from .profiles import PROFILES
from .query import SortOption
from .status import StatusPolicy
from .types import Record, Statistics, Status, TimeWindow, local_day, utc_now

# ISO 8601 day duration meaning "N days ago": P3D, P2W
_DURATION_PATTERN = re.compile(r'^P(\d+)([DW])$', re.IGNORECASE)

_STATUS_MARKS = {
    Status.FRESH: "ok",
    Status.DUE_SOON: "soon",
    Status.OVERDUE: "OVERDUE",
}


# Configure quiet mode by default
# Set DAYBOOK_VERBOSE=1 to enable debug mode via environment
if os.environ.get("DAYBOOK_VERBOSE") == "1":
    enable_debug_mode()
else:
    configure_quiet_mode(quiet=True)


def _version_callback(value: bool):
    if value:
        from importlib.metadata import version
        print(f"daybook {version('daybook')}")
        raise typer.Exit()


def _verbose_callback(value: bool):
    if value:
        enable_debug_mode()


# Global state for CLI options
_json_output = False
_store_override: Optional[Path] = None
_profile_override: Optional[str] = None


def _get_json_output() -> bool:
    return _json_output


app = typer.Typer(
    name="daybook",
    help="Journal and tracker records with filters, timelines and statistics.",
    no_args_is_help=True,
    rich_markup_mode=None,
)


@app.callback()
def main_callback(
    verbose: Annotated[bool, typer.Option(
        "--verbose", "-v",
        help="Enable debug-level logging to stderr",
        callback=_verbose_callback,
        is_eager=True,
    )] = False,
    output_json: Annotated[bool, typer.Option(
        "--json", "-j",
        help="Output as JSON",
    )] = False,
    store: Annotated[Optional[Path], typer.Option(
        "--store", "-s",
        envvar="DAYBOOK_STORE_PATH",
        help="Store directory (default: ~/.daybook)",
    )] = None,
    profile: Annotated[Optional[str], typer.Option(
        "--profile", "-p",
        help=f"App profile ({', '.join(PROFILES)})",
    )] = None,
    version: Annotated[Optional[bool], typer.Option(
        "--version",
        help="Show version and exit",
        callback=_version_callback,
        is_eager=True,
    )] = None,
):
    """Journal and tracker records with filters, timelines and statistics."""
    global _json_output, _store_override, _profile_override
    _json_output = output_json
    _store_override = store
    _profile_override = profile


@contextmanager
def _open_journal() -> Iterator[Journal]:
    """Open the journal for this invocation, reporting failures cleanly."""
    try:
        journal = Journal(_store_override, profile=_profile_override)
    except (DaybookError, ValueError, OSError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    try:
        yield journal
    except NotFound as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(1)
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    except DaybookError as e:
        log_path = log_exception(e, context="daybook CLI")
        typer.echo(f"Error: {e}", err=True)
        typer.echo(f"Details logged to {log_path}", err=True)
        raise typer.Exit(1)
    finally:
        journal.close()


# -----------------------------------------------------------------------------
# Parsing
# -----------------------------------------------------------------------------

def _parse_when(value: Optional[str], now: Optional[datetime] = None) -> Optional[datetime]:
    """
    Parse a --date value into an aware datetime.

    Accepts:
    - today / yesterday
    - ISO 8601 day duration meaning "ago": P3D (3 days), P2W (2 weeks)
    - ISO date: 2026-01-15 (keeps the current time of day)
    - ISO datetime: 2026-01-15T08:30
    """
    if value is None:
        return None
    now_local = (now or utc_now()).astimezone()
    text = value.strip()
    lowered = text.lower()

    if lowered == "today":
        return now_local
    if lowered == "yesterday":
        return now_local - timedelta(days=1)

    m = _DURATION_PATTERN.match(text)
    if m:
        n = int(m.group(1))
        days = n * 7 if m.group(2).upper() == "W" else n
        return now_local - timedelta(days=days)

    text = text.replace("/", "-")
    try:
        if "T" in text or " " in text:
            dt = datetime.fromisoformat(text)
            return dt if dt.tzinfo is not None else dt.astimezone()
        day = date.fromisoformat(text)
    except ValueError:
        raise ValueError(
            f"Invalid date: {value!r}. Use YYYY-MM-DD, an ISO datetime, P3D, today or yesterday"
        ) from None
    return datetime.combine(day, now_local.timetz())


def _parse_window(value: str) -> TimeWindow:
    try:
        return TimeWindow(value.lower())
    except ValueError:
        raise typer.BadParameter(
            f"{value!r}; choose from {', '.join(w.value for w in TimeWindow)}"
        ) from None


def _parse_sort(value: Optional[str]) -> Optional[SortOption]:
    if value is None:
        return None
    try:
        return SortOption(value.lower())
    except ValueError:
        raise typer.BadParameter(
            f"{value!r}; choose from {', '.join(s.value for s in SortOption)}"
        ) from None


# -----------------------------------------------------------------------------
# Output Formatting
# -----------------------------------------------------------------------------

def _format_line(record: Record, journal: Optional[Journal] = None) -> str:
    """One-line summary: id, day, markers, tag, title."""
    parts = [record.id, local_day(record.occurred_at).isoformat()]
    if record.flag:
        parts.append("*")
    if record.archived:
        parts.append("(archived)")
    if record.tag:
        parts.append(f"[{record.tag}]")
    if journal is not None and record.interval_days is not None:
        status = journal.status(record.id)
        parts.append(f"{{{_STATUS_MARKS[status]}, every {record.interval_days}d}}")
    parts.append(record.title)
    return "  ".join(parts)


def _format_detail(record: Record, journal: Journal) -> str:
    lines = [f"id: {record.id}", f"title: {record.title}"]
    if record.tag:
        lines.append(f"tag: {record.tag}")
    lines.append(f"occurred: {record.occurred_at.astimezone().isoformat(timespec='minutes')}")
    lines.append(f"created: {record.created_at.astimezone().isoformat(timespec='minutes')}")
    if record.updated_at is not None:
        lines.append(f"updated: {record.updated_at.astimezone().isoformat(timespec='minutes')}")
    if record.interval_days is not None:
        status = journal.status(record.id)
        lines.append(f"interval: {record.interval_days} days")
        lines.append(f"status: {status.value} ({journal.days_left(record.id)} days left)")
    if record.flag:
        lines.append("favorite: yes")
    if record.archived:
        lines.append("archived: yes")
    if record.body:
        lines.append("")
        lines.append(record.body)
    return "\n".join(lines)


def _format_stats(stats: Statistics) -> str:
    last = local_day(stats.last_occurred).isoformat() if stats.last_occurred else "-"
    average = f"{stats.average_interval:.1f} days" if stats.average_interval is not None else "-"
    return "\n".join([
        f"total: {stats.total}",
        f"last: {last}",
        f"days with entries: {stats.distinct_days}",
        f"most in one day: {stats.max_per_day}",
        f"current streak: {stats.current_streak}",
        f"longest streak: {stats.longest_streak}",
        f"average interval: {average}",
        f"most frequent tag: {stats.most_frequent_tag or '-'}",
    ])


def _echo_records(records, journal: Journal, empty: str = "No entries.") -> None:
    if _get_json_output():
        typer.echo(json.dumps([r.to_dict() for r in records], indent=2, ensure_ascii=False))
        return
    if not records:
        typer.echo(empty)
        return
    for r in records:
        typer.echo(_format_line(r, journal))


def _echo_record(record: Record, journal: Journal) -> None:
    if _get_json_output():
        typer.echo(json.dumps(record.to_dict(), indent=2, ensure_ascii=False))
    else:
        typer.echo(_format_line(record, journal))


# -----------------------------------------------------------------------------
# Commands
# -----------------------------------------------------------------------------

@app.command()
def add(
    title: Annotated[str, typer.Argument(help="Entry title")],
    body: Annotated[str, typer.Option("--body", "-b", help="Longer text")] = "",
    tag: Annotated[Optional[str], typer.Option("--tag", "-t", help="Tag from the profile vocabulary")] = None,
    every: Annotated[Optional[int], typer.Option("--every", "-e", help="Care interval in days (1-365)")] = None,
    when: Annotated[Optional[str], typer.Option("--date", "-d", help="When it happened (default: now)")] = None,
    favorite: Annotated[bool, typer.Option("--favorite", "-f", help="Mark as favorite")] = False,
):
    """Add an entry."""
    if not title.strip():
        typer.echo("Error: title must not be empty", err=True)
        raise typer.Exit(1)
    with _open_journal() as journal:
        record = journal.add(
            title.strip(),
            body=body,
            tag=tag,
            interval_days=every,
            occurred_at=_parse_when(when),
            flag=favorite,
        )
        _echo_record(record, journal)


@app.command()
def edit(
    id: Annotated[str, typer.Argument(help="Entry ID")],
    title: Annotated[Optional[str], typer.Option("--title", help="New title")] = None,
    body: Annotated[Optional[str], typer.Option("--body", "-b", help="New text")] = None,
    tag: Annotated[Optional[str], typer.Option("--tag", "-t", help="New tag")] = None,
    every: Annotated[Optional[int], typer.Option("--every", "-e", help="New care interval in days")] = None,
    when: Annotated[Optional[str], typer.Option("--date", "-d", help="New date")] = None,
):
    """Change fields of an entry."""
    changes = {}
    if title is not None:
        if not title.strip():
            typer.echo("Error: title must not be empty", err=True)
            raise typer.Exit(1)
        changes["title"] = title.strip()
    if body is not None:
        changes["body"] = body
    if tag is not None:
        changes["tag"] = tag
    if every is not None:
        changes["interval_days"] = every
    if not changes and when is None:
        typer.echo("Error: nothing to change", err=True)
        raise typer.Exit(1)
    with _open_journal() as journal:
        if when is not None:
            changes["occurred_at"] = _parse_when(when)
        _echo_record(journal.update(id, **changes), journal)


@app.command()
def delete(
    id: Annotated[str, typer.Argument(help="Entry ID")],
):
    """Delete an entry and its log."""
    with _open_journal() as journal:
        if journal.delete(id):
            typer.echo(f"Deleted {id}")
        else:
            typer.echo(f"Not found: {id}", err=True)


@app.command()
def get(
    id: Annotated[str, typer.Argument(help="Entry ID")],
):
    """Show one entry."""
    with _open_journal() as journal:
        record = journal.get(id)
        if _get_json_output():
            d = record.to_dict()
            status = journal.status(id)
            d["status"] = status.value if status else None
            typer.echo(json.dumps(d, indent=2, ensure_ascii=False))
        else:
            typer.echo(_format_detail(record, journal))


def _apply_filters(
    journal: Journal,
    window: str,
    tag: Optional[list[str]],
    search: str,
    favorites: bool,
    archived: Optional[bool],
) -> None:
    journal.set_filter(
        window=_parse_window(window),
        tags=frozenset(tag or ()),
        search=search,
        favorites_only=favorites,
        archived=archived,
    )


@app.command("list")
def list_entries(
    window: Annotated[str, typer.Option("--window", "-w", help="today, week, month or all")] = "all",
    tag: Annotated[Optional[list[str]], typer.Option("--tag", "-t", help="Only these tags (repeatable)")] = None,
    search: Annotated[str, typer.Option("--search", "-q", help="Case-insensitive text search")] = "",
    sort: Annotated[Optional[str], typer.Option("--sort", help="Sort order")] = None,
    favorites: Annotated[bool, typer.Option("--favorites", help="Only favorites")] = False,
    archived: Annotated[Optional[bool], typer.Option(
        "--archived/--active", help="Only archived or only active entries",
    )] = None,
):
    """List entries."""
    with _open_journal() as journal:
        _apply_filters(journal, window, tag, search, favorites, archived)
        order = _parse_sort(sort)
        if order is not None:
            journal.set_sort(order)
        _echo_records(journal.entries(), journal)


@app.command()
def timeline(
    window: Annotated[str, typer.Option("--window", "-w", help="today, week, month or all")] = "all",
    tag: Annotated[Optional[list[str]], typer.Option("--tag", "-t", help="Only these tags (repeatable)")] = None,
    search: Annotated[str, typer.Option("--search", "-q", help="Case-insensitive text search")] = "",
):
    """Entries grouped by day, most recent first."""
    with _open_journal() as journal:
        _apply_filters(journal, window, tag, search, False, None)
        groups = journal.timeline()
        if _get_json_output():
            typer.echo(json.dumps(
                {day.isoformat(): [r.to_dict() for r in rs] for day, rs in groups.items()},
                indent=2, ensure_ascii=False,
            ))
            return
        if not groups:
            typer.echo("No entries.")
            return
        for day, records in groups.items():
            typer.echo(f"{day.isoformat()} ({len(records)})")
            for r in records:
                typer.echo(f"  {_format_line(r, journal)}")


@app.command()
def stats(
    window: Annotated[str, typer.Option("--window", "-w", help="today, week, month or all")] = "all",
    tag: Annotated[Optional[list[str]], typer.Option("--tag", "-t", help="Only these tags (repeatable)")] = None,
):
    """Counts, streaks and distributions."""
    with _open_journal() as journal:
        _apply_filters(journal, window, tag, "", False, None)
        records = journal.entries()
        summary = journal.statistics(records)
        tags = journal.tag_distribution()
        weekdays = journal.weekday_distribution()
        if _get_json_output():
            typer.echo(json.dumps({
                "statistics": summary.to_dict(),
                "tags": tags,
                "weekdays": weekdays,
            }, indent=2, ensure_ascii=False))
            return
        typer.echo(_format_stats(summary))
        if tags:
            typer.echo("\ntags:")
            for key, n in tags.items():
                typer.echo(f"  {key}: {n}")
        if summary.total:
            typer.echo("\nweekdays:")
            for name, n in weekdays.items():
                typer.echo(f"  {name}: {n}")


@app.command()
def status(
    show_all: Annotated[bool, typer.Option("--all", "-a", help="Include entries that are not due")] = False,
    fraction: Annotated[Optional[float], typer.Option(
        "--due-soon", help="Share of the interval that counts as due soon (0-1]",
    )] = None,
):
    """Entries with a care interval, soonest due first."""
    with _open_journal() as journal:
        if fraction is not None:
            journal.policy = StatusPolicy(fraction)
        rows = journal.due(include_fresh=show_all)
        if _get_json_output():
            typer.echo(json.dumps([
                {"id": r.id, "title": r.title, "status": s.value, "days_left": left}
                for r, s, left in rows
            ], indent=2, ensure_ascii=False))
            return
        if not rows:
            typer.echo("Nothing due.")
            return
        for record, s, left in rows:
            typer.echo(f"{_STATUS_MARKS[s]:<8} {left:>4}d  {record.id}  {record.title}")


@app.command()
def favorite(
    id: Annotated[str, typer.Argument(help="Entry ID")],
):
    """Toggle the favorite marker."""
    with _open_journal() as journal:
        _echo_record(journal.toggle_favorite(id), journal)


@app.command()
def archive(
    id: Annotated[str, typer.Argument(help="Entry ID")],
    undo: Annotated[bool, typer.Option("--undo", help="Restore from the archive")] = False,
):
    """Archive an entry (or restore it with --undo)."""
    with _open_journal() as journal:
        _echo_record(journal.archive(id, archived=not undo), journal)


@app.command()
def log(
    id: Annotated[str, typer.Argument(help="Entry ID the log entry belongs to")],
    tag: Annotated[Optional[str], typer.Option("--tag", "-t", help="Action, e.g. water")] = None,
    note: Annotated[str, typer.Option("--note", "-n", help="Note text")] = "",
    when: Annotated[Optional[str], typer.Option("--date", "-d", help="When it happened (default: now)")] = None,
):
    """Add a log entry (care action, burn) to an entry."""
    with _open_journal() as journal:
        _echo_record(journal.log(id, tag=tag, note=note, occurred_at=_parse_when(when)), journal)


@app.command()
def history(
    id: Annotated[str, typer.Argument(help="Entry ID")],
):
    """Log entries of an entry, most recent first."""
    with _open_journal() as journal:
        _echo_records(list(journal.history(id)), journal, empty="No log entries.")


@app.command("export")
def export_cmd(
    output: Annotated[Optional[Path], typer.Argument(help="Output file (default: stdout)")] = None,
):
    """Export entries and logs as JSON."""
    with _open_journal() as journal:
        text = json.dumps(journal.export_data(), indent=2, ensure_ascii=False)
    if output is None:
        typer.echo(text)
    else:
        output.write_text(text + "\n", encoding="utf-8")
        typer.echo(f"Exported to {output}", err=True)


@app.command("import")
def import_cmd(
    source: Annotated[Path, typer.Argument(help="Export file to read")],
    mode: Annotated[str, typer.Option("--mode", "-m", help="merge (skip existing) or replace")] = "merge",
):
    """Import entries and logs from an export file."""
    try:
        data = json.loads(source.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        typer.echo(f"Error: cannot read {source}: {e}", err=True)
        raise typer.Exit(1)
    with _open_journal() as journal:
        result = journal.import_data(data, mode=mode)
    if _get_json_output():
        typer.echo(json.dumps(result))
    else:
        typer.echo(f"{result['imported']} imported, {result['skipped']} skipped, "
                   f"{result['logs']} log entries")


@app.command()
def profiles():
    """List the available app profiles."""
    for p in PROFILES.values():
        tags = p.tag_values()
        detail = ", ".join(tags) if tags else "free tags"
        extras = []
        if p.has_log:
            extras.append("log")
        if p.uses_interval:
            extras.append("intervals")
        suffix = f" ({', '.join(extras)})" if extras else ""
        typer.echo(f"{p.name:<8} {p.title}{suffix}: {detail}")


def main():
    try:
        app()
    except SystemExit:
        raise  # Let typer handle exit codes
    except KeyboardInterrupt:
        raise SystemExit(130)  # Standard exit code for Ctrl+C
    except Exception as e:
        # Log full traceback to file, show clean message to user
        log_path = log_exception(e, context="daybook CLI")
        typer.echo(f"Error: {e}", err=True)
        typer.echo(f"Details logged to {log_path}", err=True)
        raise SystemExit(1)


if __name__ == "__main__":
    main()
