import sqlite3
import uuid
from datetime import date

from fncli import UsageError, cli

from . import db
from .core.errors import NotFoundError, StateError, ValidationError
from .core.models import Habit, HabitCompletion, HabitGroup
from .core.types import UNSET, Unset
from .lib import ansi, clock
from .lib.converters import row_to_habit, row_to_habit_completion, row_to_habit_group
from .lib.dates import parse_day
from .lib.errors import echo
from .lib.fuzzy import find_in_pool
from .scoring import habit_units, is_active

__all__ = [
    "add_group",
    "add_habit",
    "check_group",
    "check_habit",
    "delete_group",
    "delete_habit",
    "find_group",
    "find_habit",
    "get_completions",
    "get_groups",
    "get_habit",
    "get_habits",
    "set_completion",
    "uncheck_group",
    "uncheck_habit",
    "update_group",
    "update_habit",
]

_HABIT_COLS = "id, name, group_id, active_from, active_to, sort_order"
_GROUP_COLS = "id, name, active_from, active_to, sort_order"


# ── domain ───────────────────────────────────────────────────────────────────


def _iso(day: date | None) -> str | None:
    return day.isoformat() if day else None


def _check_window(active_from: date | None, active_to: date | None) -> None:
    if active_from and active_to and active_from > active_to:
        raise ValidationError(f"active window ends ({active_to}) before it starts ({active_from})")


def _next_sort_order(conn: sqlite3.Connection, table: str) -> int:
    row = conn.execute(f"SELECT COALESCE(MAX(sort_order), -1) FROM {table}").fetchone()  # noqa: S608
    return row[0] + 1


def get_groups() -> list[HabitGroup]:
    with db.get_db() as conn:
        cursor = conn.execute(f"SELECT {_GROUP_COLS} FROM habit_groups ORDER BY sort_order, name")  # noqa: S608
        return [row_to_habit_group(row) for row in cursor.fetchall()]


def find_group(ref: str) -> HabitGroup | None:
    return find_in_pool(ref, get_groups())


def add_group(name: str, active_from: date | None = None, active_to: date | None = None) -> str:
    if not name.strip():
        raise ValidationError("group name cannot be empty")
    _check_window(active_from, active_to)
    group_id = str(uuid.uuid4())
    with db.get_db() as conn:
        conn.execute(
            "INSERT INTO habit_groups (id, name, active_from, active_to, sort_order) VALUES (?, ?, ?, ?, ?)",
            (group_id, name.strip(), _iso(active_from), _iso(active_to), _next_sort_order(conn, "habit_groups")),
        )
    return group_id


def update_group(
    group_id: str,
    name: str | Unset = UNSET,
    active_from: date | None | Unset = UNSET,
    active_to: date | None | Unset = UNSET,
) -> HabitGroup:
    return _update_windowed("habit_groups", group_id, name, active_from, active_to, _get_group)


def _get_group(group_id: str) -> HabitGroup | None:
    with db.get_db() as conn:
        row = conn.execute(
            f"SELECT {_GROUP_COLS} FROM habit_groups WHERE id = ?",  # noqa: S608
            (group_id,),
        ).fetchone()
    return row_to_habit_group(row) if row else None


def delete_group(group_id: str) -> None:
    """Delete a group. Its habits stay, ungrouped."""
    with db.get_db() as conn:
        cursor = conn.execute("DELETE FROM habit_groups WHERE id = ?", (group_id,))
        if cursor.rowcount == 0:
            raise NotFoundError("habit group", group_id)


def get_habits() -> list[Habit]:
    with db.get_db() as conn:
        cursor = conn.execute(f"SELECT {_HABIT_COLS} FROM habits ORDER BY sort_order, name")  # noqa: S608
        return [row_to_habit(row) for row in cursor.fetchall()]


def get_habit(habit_id: str) -> Habit | None:
    with db.get_db() as conn:
        row = conn.execute(
            f"SELECT {_HABIT_COLS} FROM habits WHERE id = ?",  # noqa: S608
            (habit_id,),
        ).fetchone()
    return row_to_habit(row) if row else None


def find_habit(ref: str) -> Habit | None:
    return find_in_pool(ref, get_habits())


def add_habit(
    name: str,
    group_id: str | None = None,
    active_from: date | None = None,
    active_to: date | None = None,
) -> str:
    if not name.strip():
        raise ValidationError("habit name cannot be empty")
    _check_window(active_from, active_to)
    habit_id = str(uuid.uuid4())
    with db.get_db() as conn:
        try:
            conn.execute(
                "INSERT INTO habits (id, name, group_id, active_from, active_to, sort_order) VALUES (?, ?, ?, ?, ?, ?)",
                (
                    habit_id,
                    name.strip(),
                    group_id,
                    _iso(active_from),
                    _iso(active_to),
                    _next_sort_order(conn, "habits"),
                ),
            )
        except sqlite3.IntegrityError as e:
            raise ValidationError(f"Failed to add habit: {e}") from e
    return habit_id


def _update_windowed(table, record_id, name, active_from, active_to, reload):
    current = reload(record_id)
    if not current:
        raise NotFoundError(table.rstrip("s").replace("_", " "), record_id)
    updates: dict[str, object] = {}
    if name is not UNSET:
        if not name.strip():
            raise ValidationError("name cannot be empty")
        updates["name"] = name.strip()
    new_from = current.active_from if active_from is UNSET else active_from
    new_to = current.active_to if active_to is UNSET else active_to
    _check_window(new_from, new_to)
    if active_from is not UNSET:
        updates["active_from"] = _iso(active_from)
    if active_to is not UNSET:
        updates["active_to"] = _iso(active_to)
    if updates:
        set_clauses = ", ".join(f"{k} = ?" for k in updates)
        with db.get_db() as conn:
            conn.execute(
                f"UPDATE {table} SET {set_clauses} WHERE id = ?",  # noqa: S608
                (*updates.values(), record_id),
            )
    return reload(record_id)


def update_habit(
    habit_id: str,
    name: str | Unset = UNSET,
    group_id: str | None | Unset = UNSET,
    active_from: date | None | Unset = UNSET,
    active_to: date | None | Unset = UNSET,
) -> Habit:
    if group_id is not UNSET:
        with db.get_db() as conn:
            try:
                conn.execute("UPDATE habits SET group_id = ? WHERE id = ?", (group_id, habit_id))
            except sqlite3.IntegrityError as e:
                raise ValidationError(f"Failed to update habit: {e}") from e
    return _update_windowed("habits", habit_id, name, active_from, active_to, get_habit)


def delete_habit(habit_id: str) -> None:
    with db.get_db() as conn:
        cursor = conn.execute("DELETE FROM habits WHERE id = ?", (habit_id,))
        if cursor.rowcount == 0:
            raise NotFoundError("habit", habit_id)


def set_completion(habit_id: str, day: date, completed: bool) -> HabitCompletion:
    """Record whether a habit was done on a day; one row per habit per day."""
    with db.get_db() as conn:
        try:
            conn.execute(
                "INSERT INTO habit_completions (habit_id, date, completed) VALUES (?, ?, ?) "
                "ON CONFLICT(habit_id, date) DO UPDATE SET completed = excluded.completed",
                (habit_id, day.isoformat(), int(completed)),
            )
        except sqlite3.IntegrityError as e:
            raise NotFoundError("habit", habit_id) from e
    return HabitCompletion(habit_id=habit_id, date=day, completed=completed)


def check_habit(habit_id: str, day: date | None = None) -> HabitCompletion:
    return set_completion(habit_id, day if day else clock.today(), True)


def uncheck_habit(habit_id: str, day: date | None = None) -> HabitCompletion:
    return set_completion(habit_id, day if day else clock.today(), False)


def _active_members(group_id: str, day: date) -> list[Habit]:
    group = _get_group(group_id)
    if not group:
        raise NotFoundError("habit group", group_id)
    if not is_active(group, day):
        raise StateError(f"group '{group.name}' is not active on {day.isoformat()}")
    members = [h for h in get_habits() if h.group_id == group_id and is_active(h, day)]
    if not members:
        raise StateError(f"group '{group.name}' has no active habits on {day.isoformat()}")
    return members


def check_group(group_id: str, day: date | None = None) -> Habit | None:
    """Mark the group's first unchecked habit done. None when the group is already satisfied."""
    day = day if day else clock.today()
    members = _active_members(group_id, day)
    done = {c.habit_id for c in get_completions(day) if c.completed}
    if any(h.id in done for h in members):
        return None
    set_completion(members[0].id, day, True)
    return members[0]


def uncheck_group(group_id: str, day: date | None = None) -> list[Habit]:
    """Clear every active habit in the group for the day."""
    day = day if day else clock.today()
    members = _active_members(group_id, day)
    for h in members:
        set_completion(h.id, day, False)
    return members


def get_completions(start: date, end: date | None = None) -> list[HabitCompletion]:
    end = end if end else start
    with db.get_db() as conn:
        cursor = conn.execute(
            "SELECT habit_id, date, completed FROM habit_completions WHERE date >= ? AND date <= ?",
            (start.isoformat(), end.isoformat()),
        )
        return [row_to_habit_completion(row) for row in cursor.fetchall()]


# ── cli ──────────────────────────────────────────────────────────────────────


def _parse_day_arg(text: str | None) -> date:
    try:
        return parse_day(text)
    except ValueError as e:
        raise UsageError(str(e)) from None


def _optional_day(text: str | None) -> date | None:
    return _parse_day_arg(text) if text else None


@cli("cadence habit", name="ls", default=True)
def ls(date_: str | None = None) -> None:
    """Show habits active on a day"""
    day = _parse_day_arg(date_)
    habits = [h for h in get_habits() if is_active(h, day)]
    groups = get_groups()
    completions = get_completions(day)
    if not habits:
        echo("no active habits")
        return
    done = {c.habit_id for c in completions if c.completed}
    grouped: dict[str | None, list[Habit]] = {}
    group_ids = {g.id for g in groups}
    for h in habits:
        grouped.setdefault(h.group_id if h.group_id in group_ids else None, []).append(h)
    for h in grouped.get(None, []):
        echo(f"{ansi.green('✓') if h.id in done else '□'} {h.name}")
    for g in groups:
        members = grouped.get(g.id, [])
        if not members or not is_active(g, day):
            continue
        echo(ansi.bold(g.name))
        for h in members:
            echo(f"  {ansi.green('✓') if h.id in done else '□'} {h.name}")
    count, total = habit_units(day, habits, groups, completions)
    echo(ansi.muted(f"{count}/{total} on {day.isoformat()}"))


@cli("cadence habit", name="add")
def add(
    name: list[str], group: str | None = None, from_: str | None = None, to: str | None = None
) -> None:
    """Add habit"""
    from .lib.resolve import resolve_habit_group

    group_id = resolve_habit_group(group).id if group else None
    habit = get_habit(add_habit(" ".join(name), group_id, _optional_day(from_), _optional_day(to)))
    if habit:
        echo(f"added: {habit.name}")


@cli("cadence habit", name="check")
def check(ref: list[str], date_: str | None = None) -> None:
    """Mark habit done"""
    from .lib.resolve import resolve_habit

    habit = resolve_habit(" ".join(ref))
    completion = check_habit(habit.id, _parse_day_arg(date_))
    echo(f"{ansi.green('✓')} {habit.name} {ansi.muted(completion.date.isoformat())}")


@cli("cadence habit", name="uncheck")
def uncheck(ref: list[str], date_: str | None = None) -> None:
    """Mark habit not done"""
    from .lib.resolve import resolve_habit

    habit = resolve_habit(" ".join(ref))
    completion = uncheck_habit(habit.id, _parse_day_arg(date_))
    echo(f"□ {habit.name} {ansi.muted(completion.date.isoformat())}")


@cli("cadence habit", name="end")
def end(ref: list[str], date_: str | None = None) -> None:
    """Stop counting habit after a day"""
    from .lib.resolve import resolve_habit

    habit = resolve_habit(" ".join(ref))
    updated = update_habit(habit.id, active_to=_parse_day_arg(date_))
    echo(f"{updated.name} active until {updated.active_to}")


@cli("cadence habit", name="rm")
def rm(ref: list[str]) -> None:
    """Delete habit and its history"""
    from .lib.resolve import resolve_habit

    habit = resolve_habit(" ".join(ref))
    delete_habit(habit.id)
    echo(f"deleted: {habit.name}")


@cli("cadence habit group", name="ls", default=True)
def group_ls() -> None:
    """List habit groups"""
    groups = get_groups()
    if not groups:
        echo("no habit groups")
        return
    habits = get_habits()
    for g in groups:
        names = ", ".join(h.name for h in habits if h.group_id == g.id) or "-"
        window = f"{g.active_from or '…'} → {g.active_to or '…'}"
        echo(f"{g.name}  {ansi.muted(window)}  {names}")


@cli("cadence habit group", name="add")
def group_add(name: list[str], from_: str | None = None, to: str | None = None) -> None:
    """Add habit group (counts as one habit, done when any member is)"""
    group_id = add_group(" ".join(name), _optional_day(from_), _optional_day(to))
    echo(f"added group: {' '.join(name)} [{group_id[:8]}]")


@cli("cadence habit group", name="end")
def group_end(ref: list[str], date_: str | None = None) -> None:
    """Stop counting group after a day"""
    from .lib.resolve import resolve_habit_group

    group = resolve_habit_group(" ".join(ref))
    updated = update_group(group.id, active_to=_parse_day_arg(date_))
    echo(f"{updated.name} active until {updated.active_to}")


@cli("cadence habit group", name="check")
def group_check(ref: list[str], date_: str | None = None) -> None:
    """Mark the group done via its first unchecked habit"""
    from .lib.resolve import resolve_habit_group

    group = resolve_habit_group(" ".join(ref))
    day = _parse_day_arg(date_)
    habit = check_group(group.id, day)
    if habit is None:
        echo(f"{group.name} already done {ansi.muted(day.isoformat())}")
        return
    echo(f"{ansi.green('✓')} {group.name}: {habit.name} {ansi.muted(day.isoformat())}")


@cli("cadence habit group", name="uncheck")
def group_uncheck(ref: list[str], date_: str | None = None) -> None:
    """Clear every habit in the group for a day"""
    from .lib.resolve import resolve_habit_group

    group = resolve_habit_group(" ".join(ref))
    day = _parse_day_arg(date_)
    cleared = uncheck_group(group.id, day)
    echo(f"□ {group.name} ({len(cleared)} cleared) {ansi.muted(day.isoformat())}")


@cli("cadence habit group", name="rm")
def group_rm(ref: list[str]) -> None:
    """Delete habit group (habits stay, ungrouped)"""
    from .lib.resolve import resolve_habit_group

    group = resolve_habit_group(" ".join(ref))
    delete_group(group.id)
    echo(f"deleted group: {group.name}")
