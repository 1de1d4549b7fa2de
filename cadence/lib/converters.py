import dataclasses
from datetime import date, datetime
from typing import cast

from cadence.core.models import (
    DEFAULT_TASK_POINTS,
    Calibration,
    CalibrationScore,
    Category,
    Habit,
    HabitCompletion,
    HabitGroup,
    JournalEntry,
    SubTask,
    Task,
    TaskStatus,
    TodayItem,
)

from .frequency import Frequency, parse_frequency

Row = tuple[object, ...]

_TRUE_STRINGS = {"1", "true", "t", "yes", "y", "on"}


def to_bool(val: object) -> bool:
    """Normalise the boolean spellings older rows carry (1, "1", "true", True)."""
    if isinstance(val, str):
        return val.strip().lower() in _TRUE_STRINGS
    if isinstance(val, (int, float)):
        return val != 0
    return bool(val)


def _parse_date(val) -> date | None:
    """Parse a date value that may be str or numeric timestamp."""
    if isinstance(val, str) and val:
        return date.fromisoformat(val.split("T")[0])
    if isinstance(val, (int, float)):
        return datetime.fromtimestamp(val).date()
    return None


def _parse_datetime(val) -> datetime:
    """Parse a datetime value that may be str or numeric timestamp."""
    if isinstance(val, (int, float)):
        return datetime.fromtimestamp(val)
    if isinstance(val, str) and val:
        try:
            return datetime.fromisoformat(val)
        except ValueError:
            return datetime.combine(date.fromisoformat(val.split("T")[0]), datetime.min.time())
    return datetime.min


def _parse_frequency_optional(val) -> Frequency | None:
    if val is None or val == "":
        return None
    return parse_frequency(val)


def _parse_status(val) -> TaskStatus:
    try:
        return TaskStatus(cast(str, val))
    except ValueError:
        return TaskStatus.TODO


def _opt_str(val) -> str | None:
    return cast(str, val) if val is not None else None


def _int(val, default: int = 0) -> int:
    return int(cast(int, val)) if val is not None else default


TASK_COLS = (
    "id, title, status, created, category_id, description, due_date, is_hard_deadline, "
    "completion_date, is_recurring, recurring_frequency, is_repeating, repeating_frequency, points"
)


def row_to_task(row: Row) -> Task:
    """
    Converts a raw tasks row (columns in TASK_COLS order) into a Task.
    Subtasks are attached separately with hydrate_subtasks.
    """
    return Task(
        id=cast(str, row[0]),
        title=cast(str, row[1]),
        status=_parse_status(row[2]),
        created=_parse_datetime(row[3]),
        category_id=_opt_str(row[4]),
        description=_opt_str(row[5]),
        due_date=_parse_date(row[6]),
        is_hard_deadline=to_bool(row[7]),
        completion_date=_parse_date(row[8]),
        is_recurring=to_bool(row[9]),
        recurring_frequency=_parse_frequency_optional(row[10]),
        is_repeating=to_bool(row[11]),
        repeating_frequency=_parse_frequency_optional(row[12]),
        points=_int(row[13], DEFAULT_TASK_POINTS),
    )


SUBTASK_COLS = "id, task_id, title, due_date, completion_date, points, sort_order"


def row_to_subtask(row: Row) -> SubTask:
    return SubTask(
        id=cast(str, row[0]),
        task_id=cast(str, row[1]),
        title=cast(str, row[2]),
        due_date=_parse_date(row[3]),
        completion_date=_parse_date(row[4]),
        points=_int(row[5]),
        sort_order=_int(row[6]),
    )


def hydrate_subtasks(task: Task, subtasks: list[SubTask]) -> Task:
    """Returns a new frozen Task carrying its subtasks in sort order."""
    ordered = sorted(subtasks, key=lambda s: (s.sort_order, s.title))
    return dataclasses.replace(task, sub_tasks=ordered)


def row_to_category(row: Row) -> Category:
    """Expected row format: (id, name, color, sort_order)"""
    return Category(
        id=cast(str, row[0]),
        name=cast(str, row[1]),
        color=_opt_str(row[2]),
        sort_order=_int(row[3]),
    )


def row_to_habit_group(row: Row) -> HabitGroup:
    """Expected row format: (id, name, active_from, active_to, sort_order)"""
    return HabitGroup(
        id=cast(str, row[0]),
        name=cast(str, row[1]),
        active_from=_parse_date(row[2]),
        active_to=_parse_date(row[3]),
        sort_order=_int(row[4]),
    )


def row_to_habit(row: Row) -> Habit:
    """Expected row format: (id, name, group_id, active_from, active_to, sort_order)"""
    return Habit(
        id=cast(str, row[0]),
        name=cast(str, row[1]),
        group_id=_opt_str(row[2]),
        active_from=_parse_date(row[3]),
        active_to=_parse_date(row[4]),
        sort_order=_int(row[5]),
    )


def row_to_habit_completion(row: Row) -> HabitCompletion:
    return HabitCompletion(
        habit_id=cast(str, row[0]),
        date=cast(date, _parse_date(row[1])),
        completed=to_bool(row[2]),
    )


def row_to_calibration(row: Row) -> Calibration:
    """Expected row format: (id, name, active_from, active_to, sort_order)"""
    return Calibration(
        id=cast(str, row[0]),
        name=cast(str, row[1]),
        active_from=_parse_date(row[2]),
        active_to=_parse_date(row[3]),
        sort_order=_int(row[4]),
    )


def row_to_calibration_score(row: Row) -> CalibrationScore:
    return CalibrationScore(
        calibration_id=cast(str, row[0]),
        date=cast(date, _parse_date(row[1])),
        score=_int(row[2]),
    )


def row_to_journal(row: Row) -> JournalEntry:
    return JournalEntry(
        date=cast(date, _parse_date(row[0])),
        content=cast(str, row[1]),
        updated=_parse_datetime(row[2]) if row[2] else None,
    )


def row_to_today_item(row: Row) -> TodayItem:
    return TodayItem(
        id=cast(str, row[0]),
        date=cast(date, _parse_date(row[1])),
        task_id=cast(str, row[2]),
        sort_order=_int(row[3]),
    )
