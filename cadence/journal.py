from datetime import date

from fncli import UsageError, cli

from . import db
from .core.errors import ValidationError
from .core.models import JournalEntry
from .lib import ansi, clock
from .lib.converters import row_to_journal
from .lib.dates import parse_day
from .lib.errors import echo

__all__ = ["append_entry", "delete_entry", "get_entries", "get_entry", "write_entry"]


def write_entry(day: date, content: str) -> JournalEntry:
    """Replace the journal entry for a day. One entry per day."""
    if not content.strip():
        raise ValidationError("journal entry cannot be empty")
    stamp = clock.now().isoformat(timespec="seconds")
    with db.get_db() as conn:
        conn.execute(
            "INSERT INTO journals (date, content, updated) VALUES (?, ?, ?) "
            "ON CONFLICT(date) DO UPDATE SET content = excluded.content, updated = excluded.updated",
            (day.isoformat(), content.strip(), stamp),
        )
    entry = get_entry(day)
    assert entry is not None
    return entry


def append_entry(day: date, content: str) -> JournalEntry:
    if not content.strip():
        raise ValidationError("journal entry cannot be empty")
    existing = get_entry(day)
    if existing:
        return write_entry(day, f"{existing.content}\n{content.strip()}")
    return write_entry(day, content)


def get_entry(day: date) -> JournalEntry | None:
    with db.get_db() as conn:
        row = conn.execute(
            "SELECT date, content, updated FROM journals WHERE date = ?", (day.isoformat(),)
        ).fetchone()
    return row_to_journal(row) if row else None


def get_entries(limit: int = 7) -> list[JournalEntry]:
    with db.get_db() as conn:
        cursor = conn.execute(
            "SELECT date, content, updated FROM journals ORDER BY date DESC LIMIT ?", (limit,)
        )
        return [row_to_journal(row) for row in cursor.fetchall()]


def delete_entry(day: date) -> bool:
    with db.get_db() as conn:
        cursor = conn.execute("DELETE FROM journals WHERE date = ?", (day.isoformat(),))
        return cursor.rowcount > 0


# ── cli ──────────────────────────────────────────────────────────────────────


def _parse_day_arg(text: str | None) -> date:
    try:
        return parse_day(text)
    except ValueError as e:
        raise UsageError(str(e)) from None


@cli("cadence journal", name="show", default=True)
def show(date_: str | None = None) -> None:
    """Show a day's journal entry"""
    day = _parse_day_arg(date_)
    entry = get_entry(day)
    if not entry:
        echo(f"no entry for {day.isoformat()}")
        return
    echo(ansi.bold(day.isoformat()))
    echo(entry.content)


@cli("cadence journal", name="write")
def write(text: list[str], date_: str | None = None, append: bool = False) -> None:
    """Write (or --append to) a day's journal entry"""
    day = _parse_day_arg(date_)
    content = " ".join(text)
    entry = append_entry(day, content) if append else write_entry(day, content)
    echo(f"saved: {entry.date.isoformat()} ({len(entry.content)} chars)")


@cli("cadence journal", name="ls")
def ls(limit: int = 7) -> None:
    """List recent journal entries"""
    entries = get_entries(limit)
    if not entries:
        echo("no journal entries")
        return
    for entry in entries:
        first = entry.content.splitlines()[0]
        echo(f"{entry.date.isoformat()}  {first}")


@cli("cadence journal", name="rm")
def rm(date_: str | None = None) -> None:
    """Delete a day's journal entry"""
    day = _parse_day_arg(date_)
    if delete_entry(day):
        echo(f"deleted: {day.isoformat()}")
    else:
        echo(f"no entry for {day.isoformat()}")
