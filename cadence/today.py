import sqlite3
import uuid
from datetime import date

from fncli import UsageError, cli

from . import db
from .core.errors import ConflictError, NotFoundError
from .core.models import Task, TodayItem
from .lib import ansi
from .lib.converters import row_to_today_item
from .lib.dates import parse_day
from .lib.errors import echo
from .lib.format import format_task
from .tasks import get_tasks

__all__ = ["get_items", "move_item", "pin_task", "today_view", "unpin_task"]

_ITEM_COLS = "id, date, task_id, sort_order"


# ── domain ───────────────────────────────────────────────────────────────────


def get_items(day: date) -> list[TodayItem]:
    with db.get_db() as conn:
        cursor = conn.execute(
            f"SELECT {_ITEM_COLS} FROM today_items WHERE date = ? ORDER BY sort_order",  # noqa: S608
            (day.isoformat(),),
        )
        return [row_to_today_item(row) for row in cursor.fetchall()]


def pin_task(task_id: str, day: date) -> TodayItem:
    """Put a task on a day's list, after whatever is already there."""
    item_id = str(uuid.uuid4())
    with db.get_db() as conn:
        row = conn.execute(
            "SELECT COALESCE(MAX(sort_order), -1) FROM today_items WHERE date = ?",
            (day.isoformat(),),
        ).fetchone()
        try:
            conn.execute(
                "INSERT INTO today_items (id, date, task_id, sort_order) VALUES (?, ?, ?, ?)",
                (item_id, day.isoformat(), task_id, row[0] + 1),
            )
        except sqlite3.IntegrityError as e:
            if "UNIQUE" in str(e):
                raise ConflictError(f"task already on the list for {day.isoformat()}") from e
            raise NotFoundError("task", task_id) from e
    return TodayItem(id=item_id, date=day, task_id=task_id, sort_order=row[0] + 1)


def unpin_task(task_id: str, day: date) -> bool:
    with db.get_db() as conn:
        cursor = conn.execute(
            "DELETE FROM today_items WHERE date = ? AND task_id = ?", (day.isoformat(), task_id)
        )
        return cursor.rowcount > 0


def move_item(task_id: str, day: date, position: int) -> list[TodayItem]:
    """Move a pinned task to a 0-based position and renumber the day densely."""
    items = get_items(day)
    current = next((i for i in items if i.task_id == task_id), None)
    if not current:
        raise NotFoundError("today item", task_id)
    items.remove(current)
    items.insert(max(0, min(position, len(items))), current)
    with db.get_db() as conn:
        for index, item in enumerate(items):
            conn.execute("UPDATE today_items SET sort_order = ? WHERE id = ?", (index, item.id))
    return get_items(day)


def today_view(day: date) -> tuple[list[Task], list[Task]]:
    """Return (pinned, due) for a day.

    Pinned tasks keep their list order whatever their status. Due tasks are the
    open tasks due on or before the day that are not already pinned.
    """
    tasks = {t.id: t for t in get_tasks(include_closed=True)}
    pinned = [tasks[i.task_id] for i in get_items(day) if i.task_id in tasks]
    pinned_ids = {t.id for t in pinned}
    due = [
        t
        for t in tasks.values()
        if not t.is_terminal and t.due_date and t.due_date <= day and t.id not in pinned_ids
    ]
    due.sort(key=lambda t: (t.due_date, not t.is_hard_deadline, t.title.lower()))
    return pinned, due


# ── cli ──────────────────────────────────────────────────────────────────────


def _parse_day_arg(text: str | None) -> date:
    try:
        return parse_day(text)
    except ValueError as e:
        raise UsageError(str(e)) from None


@cli("cadence today", name="ls", default=True)
def ls(date_: str | None = None) -> None:
    """Show the day's list: pinned tasks, then everything due"""
    day = _parse_day_arg(date_)
    pinned, due = today_view(day)
    if not pinned and not due:
        echo(f"nothing for {day.isoformat()}")
        return
    for index, task in enumerate(pinned, 1):
        echo(f"{ansi.muted(f'{index}.')} {format_task(task, today=day)}")
    if due:
        if pinned:
            echo(ansi.muted("due"))
        for task in due:
            echo(format_task(task, today=day))


@cli("cadence today", name="add")
def add(ref: list[str], date_: str | None = None) -> None:
    """Pin task to the day's list"""
    from .lib.resolve import resolve_task

    task = resolve_task(" ".join(ref))
    day = _parse_day_arg(date_)
    pin_task(task.id, day)
    echo(f"pinned: {task.title} {ansi.muted(day.isoformat())}")


@cli("cadence today", name="rm")
def rm(ref: list[str], date_: str | None = None) -> None:
    """Unpin task from the day's list"""
    from .lib.resolve import resolve_task

    task = resolve_task(" ".join(ref), include_closed=True)
    day = _parse_day_arg(date_)
    if not unpin_task(task.id, day):
        raise NotFoundError("today item", task.title)
    echo(f"unpinned: {task.title}")


@cli("cadence today", name="move")
def move(ref: str, position: int, date_: str | None = None) -> None:
    """Move pinned task to a 1-based position"""
    from .lib.resolve import resolve_task

    if position < 1:
        raise UsageError("position starts at 1")
    task = resolve_task(ref, include_closed=True)
    day = _parse_day_arg(date_)
    tasks = {t.id: t for t in get_tasks(include_closed=True)}
    for index, item in enumerate(move_item(task.id, day, position - 1), 1):
        echo(f"{index}. {tasks[item.task_id].title}")
