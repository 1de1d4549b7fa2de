import dataclasses
import logging
import sqlite3
import uuid
from datetime import date

from fncli import UsageError, cli

from . import config, db
from .core.errors import NotFoundError, ValidationError
from .core.models import TERMINAL_STATUSES, SubTask, Task, TaskStatus
from .core.types import UNSET, Unset
from .lib import clock
from .lib.converters import (
    SUBTASK_COLS,
    TASK_COLS,
    hydrate_subtasks,
    row_to_subtask,
    row_to_task,
)
from .lib.dates import parse_due_date
from .lib.errors import echo
from .lib.format import format_status, format_subtask, format_task, status_symbol
from .lib.frequency import (
    Frequency,
    IntervalFrequency,
    NoopFrequency,
    Unit,
    describe_frequency,
    parse_frequency,
    serialize_frequency,
)
from .lib.fuzzy import find_in_pool
from .lifecycle import Resolution, TaskDraft, resolve_status_change

__all__ = [
    "StatusChange",
    "add_subtask",
    "add_task",
    "check_subtask",
    "delete_subtask",
    "delete_task",
    "find_subtask",
    "find_task",
    "get_subtasks",
    "get_task",
    "get_tasks",
    "parse_frequency_arg",
    "redistribute_points",
    "set_recurrence",
    "set_status",
    "uncheck_subtask",
    "update_task",
]

logger = logging.getLogger(__name__)


# ── domain ───────────────────────────────────────────────────────────────────


@dataclasses.dataclass(frozen=True)
class StatusChange:
    task: Task
    spawned: list[Task]
    resolution: Resolution


def _iso(day: date | None) -> str | None:
    return day.isoformat() if day else None


def _freq_text(freq: Frequency | None) -> str | None:
    return serialize_frequency(freq) if freq is not None else None


def _load_subtasks(conn: sqlite3.Connection, task_ids: list[str]) -> dict[str, list[SubTask]]:
    if not task_ids:
        return {}
    placeholders = ",".join("?" * len(task_ids))
    cursor = conn.execute(
        f"SELECT {SUBTASK_COLS} FROM subtasks WHERE task_id IN ({placeholders})",  # noqa: S608
        tuple(task_ids),
    )
    by_task: dict[str, list[SubTask]] = {}
    for row in cursor.fetchall():
        sub = row_to_subtask(row)
        by_task.setdefault(sub.task_id, []).append(sub)
    return by_task


def _fetch_tasks(
    conn: sqlite3.Connection, where: str, params: tuple[object, ...] = ()
) -> list[Task]:
    cursor = conn.execute(f"SELECT {TASK_COLS} FROM tasks WHERE {where}", params)  # noqa: S608
    tasks = [row_to_task(row) for row in cursor.fetchall()]
    subs = _load_subtasks(conn, [t.id for t in tasks])
    return [hydrate_subtasks(t, subs.get(t.id, [])) for t in tasks]


def _task_sort_key(task: Task) -> tuple[bool, bool, object, object]:
    return (
        task.is_terminal,
        task.due_date is None,
        task.due_date,
        task.created,
    )


def _insert_task(conn: sqlite3.Connection, task: Task) -> None:
    try:
        conn.execute(
            f"INSERT INTO tasks ({TASK_COLS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",  # noqa: S608
            (
                task.id,
                task.title,
                task.status.value,
                task.created.isoformat(timespec="seconds"),
                task.category_id,
                task.description,
                _iso(task.due_date),
                int(task.is_hard_deadline),
                _iso(task.completion_date),
                int(task.is_recurring),
                _freq_text(task.recurring_frequency),
                int(task.is_repeating),
                _freq_text(task.repeating_frequency),
                task.points,
            ),
        )
    except sqlite3.IntegrityError as e:
        raise ValidationError(f"Failed to add task: {e}") from e


def add_task(
    title: str,
    status: TaskStatus = TaskStatus.TODO,
    category_id: str | None = None,
    description: str | None = None,
    due_date: date | None = None,
    is_hard_deadline: bool = False,
    is_recurring: bool = False,
    recurring_frequency: Frequency | None = None,
    is_repeating: bool = False,
    repeating_frequency: Frequency | None = None,
    points: int | None = None,
) -> str:
    if not title.strip():
        raise ValidationError("task title cannot be empty")
    task = Task(
        id=str(uuid.uuid4()),
        title=title.strip(),
        status=status,
        created=clock.now(),
        category_id=category_id,
        description=description,
        due_date=due_date,
        is_hard_deadline=is_hard_deadline,
        completion_date=clock.today() if status in TERMINAL_STATUSES else None,
        is_recurring=is_recurring,
        recurring_frequency=recurring_frequency,
        is_repeating=is_repeating,
        repeating_frequency=repeating_frequency,
        points=config.get_default_points() if points is None else points,
    )
    with db.get_db() as conn:
        _insert_task(conn, task)
    return task.id


def _task_from_draft(draft: TaskDraft) -> Task:
    return Task(
        id=str(uuid.uuid4()),
        title=draft.title,
        status=draft.status,
        created=clock.now(),
        category_id=draft.category_id,
        description=draft.description,
        due_date=draft.due_date,
        is_hard_deadline=draft.is_hard_deadline,
        completion_date=draft.completion_date,
        is_recurring=draft.is_recurring,
        recurring_frequency=draft.recurring_frequency,
        is_repeating=draft.is_repeating,
        repeating_frequency=draft.repeating_frequency,
        points=draft.points,
    )


def get_task(task_id: str) -> Task | None:
    with db.get_db() as conn:
        tasks = _fetch_tasks(conn, "id = ?", (task_id,))
    return tasks[0] if tasks else None


def _require_task(task_id: str) -> Task:
    task = get_task(task_id)
    if not task:
        raise NotFoundError("task", task_id)
    return task


def get_tasks(include_closed: bool = True) -> list[Task]:
    where = "1 = 1" if include_closed else "status NOT IN ('Complete', 'Dropped')"
    with db.get_db() as conn:
        tasks = _fetch_tasks(conn, where)
    return sorted(tasks, key=_task_sort_key)


def find_task(ref: str, include_closed: bool = False) -> Task | None:
    return find_in_pool(ref, get_tasks(include_closed=include_closed))


def update_task(
    task_id: str,
    title: str | Unset = UNSET,
    category_id: str | None | Unset = UNSET,
    description: str | None | Unset = UNSET,
    due_date: date | None | Unset = UNSET,
    is_hard_deadline: bool | Unset = UNSET,
    points: int | Unset = UNSET,
) -> Task:
    """Edit task fields. Status goes through set_status, never through here."""
    updates: dict[str, object] = {}
    if title is not UNSET:
        if not title.strip():
            raise ValidationError("task title cannot be empty")
        updates["title"] = title.strip()
    if category_id is not UNSET:
        updates["category_id"] = category_id
    if description is not UNSET:
        updates["description"] = description
    if due_date is not UNSET:
        updates["due_date"] = _iso(due_date)
    if is_hard_deadline is not UNSET:
        updates["is_hard_deadline"] = int(is_hard_deadline)
    if points is not UNSET:
        if points < 0:
            raise ValidationError(f"task points cannot be negative, got {points}")
        updates["points"] = points

    if updates:
        set_clauses = ", ".join(f"{k} = ?" for k in updates)
        with db.get_db() as conn:
            try:
                cursor = conn.execute(
                    f"UPDATE tasks SET {set_clauses} WHERE id = ?",  # noqa: S608
                    (*updates.values(), task_id),
                )
            except sqlite3.IntegrityError as e:
                raise ValidationError(f"Failed to update task: {e}") from e
            if cursor.rowcount == 0:
                raise NotFoundError("task", task_id)
    return _require_task(task_id)


def set_recurrence(
    task_id: str,
    recurring: Frequency | None | Unset = UNSET,
    repeating: Frequency | None | Unset = UNSET,
) -> Task:
    """Make a task recurring, repeating, or neither.

    Recurring and repeating are exclusive here: setting one clears the other.
    Rows written elsewhere may still carry both, and completion honours that.
    """
    if recurring not in (UNSET, None) and repeating not in (UNSET, None):
        raise ValidationError("a task is either recurring or repeating, not both")

    updates: dict[str, object] = {}
    if recurring is not UNSET:
        updates.update(is_recurring=int(recurring is not None), recurring_frequency=_freq_text(recurring))
        if recurring is not None:
            updates.update(is_repeating=0, repeating_frequency=None)
    if repeating is not UNSET:
        updates.update(is_repeating=int(repeating is not None), repeating_frequency=_freq_text(repeating))
        if repeating is not None:
            updates.update(is_recurring=0, recurring_frequency=None)
    if updates:
        set_clauses = ", ".join(f"{k} = ?" for k in updates)
        with db.get_db() as conn:
            cursor = conn.execute(
                f"UPDATE tasks SET {set_clauses} WHERE id = ?",  # noqa: S608
                (*updates.values(), task_id),
            )
            if cursor.rowcount == 0:
                raise NotFoundError("task", task_id)
    return _require_task(task_id)


def set_status(task_id: str, status: TaskStatus, today: date | None = None) -> StatusChange:
    """Apply a status change and persist any successor tasks.

    Closing uses a guarded update, so only the call that actually moves the
    task out of an open status inserts successors. A second, racing close
    still stamps the status but spawns nothing.
    """
    today = today if today else clock.today()
    task = _require_task(task_id)
    resolution = resolve_status_change(task, status, today)
    patch = resolution.updated_task

    spawned: list[Task] = []
    with db.get_db() as conn:
        if status in TERMINAL_STATUSES:
            cursor = conn.execute(
                "UPDATE tasks SET status = ?, completion_date = ? "
                "WHERE id = ? AND status NOT IN ('Complete', 'Dropped')",
                (patch.status.value, _iso(patch.completion_date), task_id),
            )
            if cursor.rowcount == 1:
                for draft in resolution.spawned:
                    successor = _task_from_draft(draft)
                    _insert_task(conn, successor)
                    spawned.append(successor)
                    logger.info(
                        "task %s spawned %s successor %s due %s",
                        task_id[:8],
                        draft.origin,
                        successor.id[:8],
                        draft.due_date,
                    )
            else:
                if resolution.spawned:
                    logger.warning("task %s already closed, not spawning successors", task_id[:8])
                conn.execute(
                    "UPDATE tasks SET status = ?, completion_date = ? WHERE id = ?",
                    (patch.status.value, _iso(patch.completion_date), task_id),
                )
        else:
            conn.execute(
                "UPDATE tasks SET status = ?, completion_date = NULL WHERE id = ?",
                (patch.status.value, task_id),
            )
    logger.debug("task %s: %s -> %s", task_id[:8], task.status.value, status.value)
    return StatusChange(task=_require_task(task_id), spawned=spawned, resolution=resolution)


def delete_task(task_id: str) -> None:
    with db.get_db() as conn:
        cursor = conn.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
        if cursor.rowcount == 0:
            raise NotFoundError("task", task_id)


# ── subtasks ─────────────────────────────────────────────────────────────────


def get_subtasks(task_id: str) -> list[SubTask]:
    with db.get_db() as conn:
        subs = _load_subtasks(conn, [task_id]).get(task_id, [])
    return sorted(subs, key=lambda s: (s.sort_order, s.title))


def _all_subtasks() -> list[SubTask]:
    with db.get_db() as conn:
        cursor = conn.execute(f"SELECT {SUBTASK_COLS} FROM subtasks")  # noqa: S608
        return [row_to_subtask(row) for row in cursor.fetchall()]


def find_subtask(ref: str, task_id: str | None = None) -> SubTask | None:
    pool = get_subtasks(task_id) if task_id else _all_subtasks()
    return find_in_pool(ref, pool)


def add_subtask(task_id: str, title: str, points: int = 0, due_date: date | None = None) -> str:
    if not title.strip():
        raise ValidationError("subtask title cannot be empty")
    sub = SubTask(id=str(uuid.uuid4()), task_id=task_id, title=title.strip(), points=points, due_date=due_date)
    with db.get_db() as conn:
        row = conn.execute(
            "SELECT COALESCE(MAX(sort_order), -1) FROM subtasks WHERE task_id = ?", (task_id,)
        ).fetchone()
        try:
            conn.execute(
                f"INSERT INTO subtasks ({SUBTASK_COLS}) VALUES (?, ?, ?, ?, ?, ?, ?)",  # noqa: S608
                (sub.id, task_id, sub.title, _iso(due_date), None, sub.points, row[0] + 1),
            )
        except sqlite3.IntegrityError as e:
            raise ValidationError(f"Failed to add subtask: {e}") from e
    return sub.id


def _set_subtask_completion(subtask_id: str, completion: date | None) -> None:
    with db.get_db() as conn:
        cursor = conn.execute(
            "UPDATE subtasks SET completion_date = ? WHERE id = ?", (_iso(completion), subtask_id)
        )
        if cursor.rowcount == 0:
            raise NotFoundError("subtask", subtask_id)


def check_subtask(subtask_id: str, day: date | None = None) -> None:
    _set_subtask_completion(subtask_id, day if day else clock.today())


def uncheck_subtask(subtask_id: str) -> None:
    _set_subtask_completion(subtask_id, None)


def delete_subtask(subtask_id: str) -> None:
    with db.get_db() as conn:
        cursor = conn.execute("DELETE FROM subtasks WHERE id = ?", (subtask_id,))
        if cursor.rowcount == 0:
            raise NotFoundError("subtask", subtask_id)


def redistribute_points(task_id: str) -> list[SubTask]:
    """Split the task's points evenly over its subtasks, remainder to the first."""
    task = _require_task(task_id)
    subs = task.sub_tasks
    if not subs:
        return []
    share, remainder = divmod(task.points, len(subs))
    with db.get_db() as conn:
        for i, sub in enumerate(subs):
            conn.execute(
                "UPDATE subtasks SET points = ? WHERE id = ?",
                (share + (1 if i < remainder else 0), sub.id),
            )
    return get_subtasks(task_id)


# ── cli ──────────────────────────────────────────────────────────────────────

_UNIT_ALIASES = {
    "d": Unit.DAYS,
    "day": Unit.DAYS,
    "w": Unit.WEEKS,
    "week": Unit.WEEKS,
    "m": Unit.MONTHS,
    "month": Unit.MONTHS,
    "y": Unit.YEARS,
    "year": Unit.YEARS,
}


def parse_frequency_arg(text: str) -> Frequency:
    """Read 'weekly', '3 days', '2w' or 'every 2 weeks' from the command line."""
    cleaned = text.strip().lower().removeprefix("every ").strip()
    freq = parse_frequency(cleaned)
    if not isinstance(freq, NoopFrequency):
        return freq
    number = cleaned.rstrip("abcdefghijklmnopqrstuvwxyz ")
    unit = cleaned[len(number) :].strip()
    if not number:
        number, unit = "1", cleaned
    if not number.isdigit():
        raise UsageError(f"Unrecognised frequency '{text}'")
    unit_value = _UNIT_ALIASES.get(unit, unit)
    try:
        return IntervalFrequency(int(number), Unit(unit_value))
    except (ValueError, ValidationError):
        raise UsageError(f"Unrecognised frequency '{text}'") from None


def _parse_due_arg(text: str) -> date:
    due = parse_due_date(text)
    if due is None:
        raise UsageError(f"Unrecognised date '{text}'")
    return due


def _category_id(ref: str | None) -> str | None:
    if ref is None:
        return None
    from .lib.resolve import resolve_category

    return resolve_category(ref).id


def _print_change(change: StatusChange) -> None:
    t = change.task
    echo(format_status(status_symbol(t.status), t.title, t.id))
    for successor in change.spawned:
        due = successor.due_date.isoformat() if successor.due_date else "?"
        echo(f"  ↻ next: {successor.title} due {due} [{successor.id[:8]}]")


@cli("cadence")
def add(
    title: list[str],
    due: str | None = None,
    category: str | None = None,
    points: int | None = None,
    hard: bool = False,
    recur: str | None = None,
    repeat: str | None = None,
    desc: str | None = None,
    status: str | None = None,
) -> None:
    """Add task"""
    if recur and repeat:
        raise UsageError("Choose --recur or --repeat, not both")
    recurring = parse_frequency_arg(recur) if recur else None
    repeating = parse_frequency_arg(repeat) if repeat else None
    task_id = add_task(
        " ".join(title),
        status=TaskStatus.parse(status) if status else TaskStatus.TODO,
        category_id=_category_id(category),
        description=desc,
        due_date=_parse_due_arg(due) if due else None,
        is_hard_deadline=hard,
        is_recurring=recurring is not None,
        recurring_frequency=recurring,
        is_repeating=repeating is not None,
        repeating_frequency=repeating,
        points=points,
    )
    echo(f"added: {format_task(_require_task(task_id))}")


@cli("cadence")
def show(ref: list[str]) -> None:
    """Show full task detail"""
    from .lib.resolve import resolve_task

    t = resolve_task(" ".join(ref), include_closed=True)
    echo(format_task(t))
    echo(f"  status:   {t.status.value}")
    if t.due_date:
        echo(f"  due:      {t.due_date.isoformat()}{' (hard deadline)' if t.is_hard_deadline else ''}")
    if t.completion_date:
        echo(f"  closed:   {t.completion_date.isoformat()}")
    if t.is_recurring and t.recurring_frequency:
        echo(f"  recurs:   {describe_frequency(t.recurring_frequency)} from due date")
    if t.is_repeating and t.repeating_frequency:
        echo(f"  repeats:  {describe_frequency(t.repeating_frequency)} from completion")
    echo(f"  points:   {t.awarded_points}")
    if t.description:
        echo(f"  {t.description}")
    for sub in t.sub_tasks:
        echo(format_subtask(sub))


def _change(ref: list[str], status: TaskStatus, include_closed: bool = False) -> None:
    from .lib.resolve import resolve_task

    item_ref = " ".join(ref) if ref else ""
    if not item_ref:
        raise UsageError("Task reference required")
    t = resolve_task(item_ref, include_closed=include_closed)
    _print_change(set_status(t.id, status))


@cli("cadence")
def done(ref: list[str]) -> None:
    """Complete task"""
    _change(ref, TaskStatus.COMPLETE)


@cli("cadence")
def drop(ref: list[str]) -> None:
    """Drop task"""
    _change(ref, TaskStatus.DROPPED)


@cli("cadence")
def reopen(ref: list[str]) -> None:
    """Move a closed task back to To do"""
    _change(ref, TaskStatus.TODO, include_closed=True)


@cli("cadence", name="status")
def status_cmd(to: str, ref: list[str]) -> None:
    """Set task status (concept, todo, in_progress, waiting, on_hold, complete, dropped)"""
    _change(ref, TaskStatus.parse(to), include_closed=True)


@cli("cadence", name="set")
def set_cmd(
    ref: list[str],
    title: str | None = None,
    due: str | None = None,
    no_due: bool = False,
    desc: str | None = None,
    category: str | None = None,
    no_category: bool = False,
    points: int | None = None,
    hard: bool = False,
    soft: bool = False,
) -> None:
    """Edit task fields"""
    from .lib.resolve import resolve_task

    t = resolve_task(" ".join(ref), include_closed=True)
    changes: dict[str, object] = {}
    if title is not None:
        changes["title"] = title
    if due is not None:
        changes["due_date"] = _parse_due_arg(due)
    if no_due:
        changes["due_date"] = None
    if desc is not None:
        changes["description"] = desc or None
    if category is not None:
        changes["category_id"] = _category_id(category)
    if no_category:
        changes["category_id"] = None
    if points is not None:
        changes["points"] = points
    if hard or soft:
        changes["is_hard_deadline"] = hard
    if not changes:
        raise UsageError("Nothing to set")
    echo(format_task(update_task(t.id, **changes)))  # type: ignore[arg-type]


@cli("cadence")
def recur(ref: list[str], every: str | None = None, clear: bool = False) -> None:
    """Recur task from its due date"""
    from .lib.resolve import resolve_task

    t = resolve_task(" ".join(ref), include_closed=True)
    if clear:
        echo(format_task(set_recurrence(t.id, recurring=None)))
        return
    if not every:
        raise UsageError("--every required (e.g. weekly, '2 weeks')")
    if not t.due_date:
        raise UsageError(f"'{t.title}' has no due date to recur from")
    echo(format_task(set_recurrence(t.id, recurring=parse_frequency_arg(every))))


@cli("cadence")
def repeat(ref: list[str], every: str | None = None, clear: bool = False) -> None:
    """Repeat task from its completion date"""
    from .lib.resolve import resolve_task

    t = resolve_task(" ".join(ref), include_closed=True)
    if clear:
        echo(format_task(set_recurrence(t.id, repeating=None)))
        return
    if not every:
        raise UsageError("--every required (e.g. daily, '3 days')")
    echo(format_task(set_recurrence(t.id, repeating=parse_frequency_arg(every))))


@cli("cadence")
def rm(ref: list[str]) -> None:
    """Delete task and its subtasks"""
    from .lib.resolve import resolve_task

    t = resolve_task(" ".join(ref), include_closed=True)
    delete_task(t.id)
    echo(f"deleted: {t.title}")


@cli("cadence sub", name="add")
def sub_add(task: str, title: list[str], points: int = 0, due: str | None = None) -> None:
    """Add subtask to task"""
    from .lib.resolve import resolve_task

    t = resolve_task(task)
    sub_id = add_subtask(t.id, " ".join(title), points=points, due_date=_parse_due_arg(due) if due else None)
    sub = next(s for s in get_subtasks(t.id) if s.id == sub_id)
    echo(format_subtask(sub))


@cli("cadence sub", name="done")
def sub_done(ref: list[str]) -> None:
    """Check subtask"""
    from .lib.resolve import resolve_subtask

    sub = resolve_subtask(" ".join(ref))
    check_subtask(sub.id)
    echo(format_status("✓", sub.title, sub.id))


@cli("cadence sub", name="undo")
def sub_undo(ref: list[str]) -> None:
    """Uncheck subtask"""
    from .lib.resolve import resolve_subtask

    sub = resolve_subtask(" ".join(ref))
    uncheck_subtask(sub.id)
    echo(format_status("□", sub.title, sub.id))


@cli("cadence sub", name="rm")
def sub_rm(ref: list[str]) -> None:
    """Delete subtask"""
    from .lib.resolve import resolve_subtask

    sub = resolve_subtask(" ".join(ref))
    delete_subtask(sub.id)
    echo(f"deleted: {sub.title}")


@cli("cadence sub", name="split")
def sub_split(ref: list[str]) -> None:
    """Spread task points evenly across its subtasks"""
    from .lib.resolve import resolve_task

    t = resolve_task(" ".join(ref))
    subs = redistribute_points(t.id)
    if not subs:
        echo(f"'{t.title}' has no subtasks")
        return
    for sub in subs:
        echo(format_subtask(sub))
