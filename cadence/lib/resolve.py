from cadence.core.errors import NotFoundError
from cadence.core.models import Calibration, Category, Habit, HabitGroup, SubTask, Task

__all__ = [
    "resolve_calibration",
    "resolve_category",
    "resolve_habit",
    "resolve_habit_group",
    "resolve_subtask",
    "resolve_task",
]


def resolve_task(ref: str, include_closed: bool = False) -> Task:
    from cadence.tasks import find_task

    task = find_task(ref)
    if not task and include_closed:
        task = find_task(ref, include_closed=True)
    if not task:
        raise NotFoundError("task", ref)
    return task


def resolve_subtask(ref: str) -> SubTask:
    from cadence.tasks import find_subtask

    sub = find_subtask(ref)
    if not sub:
        raise NotFoundError("subtask", ref)
    return sub


def resolve_category(ref: str) -> Category:
    from cadence.categories import find_category

    category = find_category(ref)
    if not category:
        raise NotFoundError("category", ref)
    return category


def resolve_habit(ref: str) -> Habit:
    from cadence.habits import find_habit

    habit = find_habit(ref)
    if not habit:
        raise NotFoundError("habit", ref)
    return habit


def resolve_habit_group(ref: str) -> HabitGroup:
    from cadence.habits import find_group

    group = find_group(ref)
    if not group:
        raise NotFoundError("habit group", ref)
    return group


def resolve_calibration(ref: str) -> Calibration:
    from cadence.calibrations import find_calibration

    calibration = find_calibration(ref)
    if not calibration:
        raise NotFoundError("calibration", ref)
    return calibration
