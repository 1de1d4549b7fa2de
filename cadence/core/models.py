import dataclasses
from datetime import date, datetime
from enum import StrEnum

from cadence.lib.frequency import Frequency

from .errors import ValidationError

DEFAULT_TASK_POINTS = 10


class TaskStatus(StrEnum):
    """Task status, declared in display order."""

    CONCEPT = "Concept"
    TODO = "To do"
    IN_PROGRESS = "In progress"
    WAITING = "Waiting"
    ON_HOLD = "On hold"
    COMPLETE = "Complete"
    DROPPED = "Dropped"

    @classmethod
    def parse(cls, raw: str) -> "TaskStatus":
        lowered = raw.strip().lower()
        for status in cls:
            if status.value.lower() == lowered or status.name.lower() == lowered.replace(" ", "_"):
                return status
        raise ValidationError(f"unknown status '{raw}'")


TERMINAL_STATUSES = frozenset({TaskStatus.COMPLETE, TaskStatus.DROPPED})
ONGOING_STATUSES = frozenset({TaskStatus.TODO, TaskStatus.IN_PROGRESS, TaskStatus.WAITING})


def _check_points(points: int, owner: str) -> None:
    if points < 0:
        raise ValidationError(f"{owner} points cannot be negative, got {points}")


@dataclasses.dataclass(frozen=True)
class Category:
    id: str
    name: str
    color: str | None = None
    sort_order: int = 0


@dataclasses.dataclass(frozen=True)
class SubTask:
    id: str
    task_id: str
    title: str
    due_date: date | None = None
    completion_date: date | None = None
    points: int = 0
    sort_order: int = 0

    def __post_init__(self) -> None:
        _check_points(self.points, "subtask")


@dataclasses.dataclass(frozen=True)
class Task:
    id: str
    title: str
    status: TaskStatus = TaskStatus.TODO
    created: datetime = datetime.min
    category_id: str | None = None
    description: str | None = None
    due_date: date | None = None
    is_hard_deadline: bool = False
    completion_date: date | None = None
    is_recurring: bool = False
    recurring_frequency: Frequency | None = None
    is_repeating: bool = False
    repeating_frequency: Frequency | None = None
    points: int = DEFAULT_TASK_POINTS
    sub_tasks: list[SubTask] = dataclasses.field(default_factory=list, hash=False)

    def __post_init__(self) -> None:
        _check_points(self.points, "task")

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def awarded_points(self) -> int:
        """Subtask points when subtasks exist, otherwise the task's own points."""
        if self.sub_tasks:
            return sum(s.points for s in self.sub_tasks)
        return self.points


@dataclasses.dataclass(frozen=True)
class HabitGroup:
    id: str
    name: str
    active_from: date | None = None
    active_to: date | None = None
    sort_order: int = 0


@dataclasses.dataclass(frozen=True)
class Habit:
    id: str
    name: str
    group_id: str | None = None
    active_from: date | None = None
    active_to: date | None = None
    sort_order: int = 0


@dataclasses.dataclass(frozen=True)
class HabitCompletion:
    habit_id: str
    date: date
    completed: bool = True


@dataclasses.dataclass(frozen=True)
class Calibration:
    id: str
    name: str
    active_from: date | None = None
    active_to: date | None = None
    sort_order: int = 0


@dataclasses.dataclass(frozen=True)
class CalibrationScore:
    calibration_id: str
    date: date
    score: int

    def __post_init__(self) -> None:
        if isinstance(self.score, bool) or not 1 <= self.score <= 5:
            raise ValidationError(f"calibration score must be 1-5, got {self.score}")


@dataclasses.dataclass(frozen=True)
class JournalEntry:
    date: date
    content: str
    updated: datetime | None = None


@dataclasses.dataclass(frozen=True)
class TodayItem:
    id: str
    date: date
    task_id: str
    sort_order: int = 0
