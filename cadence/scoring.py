from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import date, timedelta

from .core.models import (
    Calibration,
    CalibrationScore,
    Habit,
    HabitCompletion,
    HabitGroup,
    SubTask,
    Task,
    TaskStatus,
)
from .core.types import Windowed

ROLLING_WINDOW = 10
MAX_CALIBRATION = 5


@dataclass(frozen=True)
class DailyMetric:
    date: date
    task_points: int = 0
    habit_count: int = 0
    total_habits: int = 0
    avg_calibration: float = 0.0


@dataclass(frozen=True)
class DayScore:
    date: date
    habits: float
    calibration: float
    tasks: float
    overall: float


def is_active(record: Windowed, day: date) -> bool:
    start = record.active_from or date.min
    end = record.active_to or date.max
    return start <= day <= end


def _subtasks_of(task: Task, subtasks_by_task: Mapping[str, Sequence[SubTask]]) -> Sequence[SubTask]:
    return subtasks_by_task.get(task.id) or task.sub_tasks


def completed_task_points(
    day: date, tasks: Iterable[Task], subtasks_by_task: Mapping[str, Sequence[SubTask]]
) -> int:
    total = 0
    for t in tasks:
        subs = _subtasks_of(t, subtasks_by_task)
        if subs:
            if t.status == TaskStatus.DROPPED:
                continue
            total += sum(s.points for s in subs if s.completion_date == day)
        elif t.status == TaskStatus.COMPLETE and t.completion_date == day:
            total += t.points
    return total


def habit_units(
    day: date,
    habits: Iterable[Habit],
    groups: Iterable[HabitGroup],
    completions: Iterable[HabitCompletion],
) -> tuple[int, int]:
    """Return (satisfied, total) habit units for a day.

    An active group with at least one active habit is one unit, satisfied
    when any of those habits is done. An ungrouped habit is its own unit.
    """
    done = {c.habit_id for c in completions if c.completed and c.date == day}
    groups_by_id = {g.id: g for g in groups}
    active_groups = {gid for gid, g in groups_by_id.items() if is_active(g, day)}

    counted_groups: set[str] = set()
    satisfied_groups: set[str] = set()
    ungrouped_total = 0
    ungrouped_done = 0
    for h in habits:
        if not is_active(h, day):
            continue
        if h.group_id in groups_by_id:
            if h.group_id in active_groups:
                counted_groups.add(h.group_id)
                if h.id in done:
                    satisfied_groups.add(h.group_id)
            continue
        ungrouped_total += 1
        if h.id in done:
            ungrouped_done += 1

    return ungrouped_done + len(satisfied_groups), ungrouped_total + len(counted_groups)


def average_calibration(
    day: date, scores: Iterable[CalibrationScore], calibrations: Iterable[Calibration]
) -> float:
    active = {c.id for c in calibrations if is_active(c, day)}
    values = [s.score for s in scores if s.date == day and s.calibration_id in active]
    return sum(values) / len(values) if values else 0.0


def compute_daily_metric(
    day: date,
    tasks: Sequence[Task],
    subtasks_by_task: Mapping[str, Sequence[SubTask]],
    habit_completions: Sequence[HabitCompletion],
    habits: Sequence[Habit],
    habit_groups: Sequence[HabitGroup],
    calibration_scores: Sequence[CalibrationScore],
    calibrations: Sequence[Calibration],
) -> DailyMetric:
    habit_count, total_habits = habit_units(day, habits, habit_groups, habit_completions)
    return DailyMetric(
        date=day,
        task_points=completed_task_points(day, tasks, subtasks_by_task),
        habit_count=habit_count,
        total_habits=total_habits,
        avg_calibration=average_calibration(day, calibration_scores, calibrations),
    )


def total_points_available(tasks: Iterable[Task]) -> int:
    return sum(t.points for t in tasks if t.status != TaskStatus.DROPPED)


def score_day(metric: DailyMetric, total_available: int) -> DayScore:
    habits = metric.habit_count / metric.total_habits * 100 if metric.total_habits > 0 else 0.0
    calibration = metric.avg_calibration / MAX_CALIBRATION * 100
    tasks = min(100.0, metric.task_points / total_available * 100) if total_available > 0 else 0.0
    return DayScore(
        date=metric.date,
        habits=habits,
        calibration=calibration,
        tasks=tasks,
        overall=(habits + calibration + tasks) / 3,
    )


def _days(start: date, end: date) -> list[date]:
    return [start + timedelta(days=i) for i in range((end - start).days + 1)]


def score_range(
    start: date,
    end: date,
    *,
    tasks: Sequence[Task],
    subtasks_by_task: Mapping[str, Sequence[SubTask]],
    habit_completions: Sequence[HabitCompletion],
    habits: Sequence[Habit],
    habit_groups: Sequence[HabitGroup],
    calibration_scores: Sequence[CalibrationScore],
    calibrations: Sequence[Calibration],
) -> list[DayScore]:
    """Score every day in [start, end] against one shared points denominator."""
    available = total_points_available(tasks)
    return [
        score_day(
            compute_daily_metric(
                day,
                tasks,
                subtasks_by_task,
                habit_completions,
                habits,
                habit_groups,
                calibration_scores,
                calibrations,
            ),
            available,
        )
        for day in _days(start, end)
    ]


def _mean(values: list[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def rolling_average(scores: Sequence[DayScore], window: int = ROLLING_WINDOW) -> list[DayScore]:
    """Trailing average: each day averages itself and up to window-1 prior days."""
    result: list[DayScore] = []
    for i, current in enumerate(scores):
        trail = scores[max(0, i - window + 1) : i + 1]
        result.append(
            DayScore(
                date=current.date,
                habits=_mean([s.habits for s in trail]),
                calibration=_mean([s.calibration for s in trail]),
                tasks=_mean([s.tasks for s in trail]),
                overall=_mean([s.overall for s in trail]),
            )
        )
    return result


__all__ = [
    "ROLLING_WINDOW",
    "DailyMetric",
    "DayScore",
    "average_calibration",
    "completed_task_points",
    "compute_daily_metric",
    "habit_units",
    "is_active",
    "rolling_average",
    "score_day",
    "score_range",
    "total_points_available",
]
