from datetime import date

from cadence.core.models import Category, SubTask, Task, TaskStatus

from . import ansi, clock
from .dates import format_relative
from .frequency import describe_frequency

__all__ = [
    "format_due",
    "format_percent",
    "format_status",
    "format_subtask",
    "format_task",
    "status_symbol",
]

_SYMBOLS = {
    TaskStatus.CONCEPT: "~",
    TaskStatus.TODO: "□",
    TaskStatus.IN_PROGRESS: "◐",
    TaskStatus.WAITING: "…",
    TaskStatus.ON_HOLD: "‖",
    TaskStatus.COMPLETE: "✓",
    TaskStatus.DROPPED: "✗",
}


def status_symbol(status: TaskStatus) -> str:
    return _SYMBOLS.get(status, "□")


def format_status(symbol: str, title: str, item_id: str) -> str:
    return f"{symbol} {title} {ansi.muted(f'[{item_id[:8]}]')}"


def format_due(due_date: date | None, hard: bool = False, today: date | None = None) -> str:
    if not due_date:
        return ""
    today = today if today else clock.today()
    label = format_relative(due_date, today)
    if hard:
        label = f"{label}!"
    if due_date < today:
        return ansi.red(label)
    if due_date == today or hard:
        return ansi.coral(label)
    return ansi.gray(label)


def format_task(task: Task, category: Category | None = None, today: date | None = None) -> str:
    parts = [f"{status_symbol(task.status)} {task.title}"]
    if task.status not in (TaskStatus.TODO, TaskStatus.COMPLETE):
        parts.append(ansi.muted(f"({task.status.value.lower()})"))
    if not task.is_terminal:
        due = format_due(task.due_date, task.is_hard_deadline, today)
        if due:
            parts.append(due)
    if task.is_recurring and task.recurring_frequency:
        parts.append(ansi.purple(f"↻ {describe_frequency(task.recurring_frequency)}"))
    if task.is_repeating and task.repeating_frequency:
        parts.append(ansi.purple(f"⟳ {describe_frequency(task.repeating_frequency)}"))
    if category:
        parts.append(ansi.hex_color(f"#{category.name}", category.color))
    parts.append(ansi.muted(f"{task.awarded_points}pt [{task.id[:8]}]"))
    return " ".join(parts)


def format_subtask(sub: SubTask) -> str:
    check = ansi.green("✓") if sub.completion_date else "□"
    return f"  └ {check} {sub.title} {ansi.muted(f'{sub.points}pt [{sub.id[:8]}]')}"


def format_percent(value: float) -> str:
    return f"{value:5.1f}%"
