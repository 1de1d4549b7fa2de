"""Status transitions and successor tasks.

Every call site that changes a task's status goes through
``resolve_status_change`` so recurring and repeating tasks behave the same no
matter which command completed them. The functions here only compute; the
caller persists the patch and any drafts.
"""

import dataclasses
from datetime import date
from typing import Literal

from .core.errors import ValidationError
from .core.models import TERMINAL_STATUSES, Task, TaskStatus
from .lib.frequency import Frequency, next_occurrence

__all__ = [
    "Resolution",
    "TaskDraft",
    "TaskPatch",
    "is_terminal",
    "resolve_completion",
    "resolve_status_change",
]

Origin = Literal["recurring", "repeating"]


@dataclasses.dataclass(frozen=True)
class TaskPatch:
    status: TaskStatus
    completion_date: date | None


@dataclasses.dataclass(frozen=True)
class TaskDraft:
    """A successor task waiting to be inserted."""

    title: str
    origin: Origin
    due_date: date
    status: TaskStatus = TaskStatus.TODO
    completion_date: date | None = None
    category_id: str | None = None
    description: str | None = None
    is_hard_deadline: bool = False
    is_recurring: bool = False
    recurring_frequency: Frequency | None = None
    is_repeating: bool = False
    repeating_frequency: Frequency | None = None
    points: int = 10


@dataclasses.dataclass(frozen=True)
class Resolution:
    updated_task: TaskPatch
    spawned: tuple[TaskDraft, ...] = ()

    @property
    def spawned_task(self) -> TaskDraft | None:
        return self.spawned[0] if self.spawned else None


def is_terminal(status: TaskStatus) -> bool:
    return status in TERMINAL_STATUSES


def _successor(task: Task, due: date, origin: Origin) -> TaskDraft:
    return TaskDraft(
        title=task.title,
        origin=origin,
        due_date=due,
        category_id=task.category_id,
        description=task.description,
        is_hard_deadline=task.is_hard_deadline,
        is_recurring=task.is_recurring,
        recurring_frequency=task.recurring_frequency,
        is_repeating=task.is_repeating,
        repeating_frequency=task.repeating_frequency,
        points=task.points,
    )


def resolve_completion(task: Task, new_status: TaskStatus, today: date) -> Resolution:
    """Close a task and compute the successors it spawns.

    A recurring task's successor is due one period after the original due date.
    A repeating task's successor is due one period after ``today``. A task
    flagged both ways spawns both. An already closed task spawns nothing.
    """
    if not is_terminal(new_status):
        raise ValidationError(f"'{new_status}' does not close a task")

    patch = TaskPatch(status=new_status, completion_date=today)
    if task.is_terminal:
        return Resolution(patch)

    spawned: list[TaskDraft] = []
    if task.is_recurring and task.recurring_frequency and task.due_date:
        due = next_occurrence(task.due_date, task.recurring_frequency)
        spawned.append(_successor(task, due, "recurring"))
    if task.is_repeating and task.repeating_frequency:
        due = next_occurrence(today, task.repeating_frequency)
        spawned.append(_successor(task, due, "repeating"))
    return Resolution(patch, tuple(spawned))


def resolve_status_change(task: Task, new_status: TaskStatus, today: date) -> Resolution:
    if is_terminal(new_status):
        return resolve_completion(task, new_status, today)
    return Resolution(TaskPatch(status=new_status, completion_date=None))
