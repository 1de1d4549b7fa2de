"""Task list filtering and sorting.

A filter has three independent dimensions (status, date, category). Counts
for the options of one dimension are taken over tasks that pass the other two,
so each number says how many tasks picking that option would show.
"""

import dataclasses
import logging
from collections.abc import Iterable, Sequence
from datetime import date, timedelta
from enum import StrEnum

from fncli import UsageError, cli

from . import config
from .core.models import ONGOING_STATUSES, Category, Task, TaskStatus
from .lib import ansi, clock
from .lib.errors import echo
from .lib.format import format_task

__all__ = [
    "ALL",
    "ONGOING",
    "DateFilter",
    "SortKey",
    "TaskFilter",
    "category_counts",
    "date_counts",
    "filter_tasks",
    "load_filter",
    "matches_category",
    "matches_date",
    "matches_status",
    "save_filter",
    "sort_tasks",
    "status_counts",
]

logger = logging.getLogger(__name__)

ALL = "All"
ONGOING = "Ongoing"
STATUS_OPTIONS = (ONGOING, *(s.value for s in TaskStatus))
WINDOW_DAYS = 7


class DateFilter(StrEnum):
    ALL = "All"
    TODAY_AND_OVERDUE = "Today & overdue"
    NEXT_7_DAYS = "Next 7 days"
    COMPLETED_LAST_7_DAYS = "Completed last 7 days"
    NO_DUE_DATE = "No due date"

    @classmethod
    def parse(cls, raw: str) -> "DateFilter":
        key = raw.strip().lower()
        for member in cls:
            if key in (member.value.lower(), member.name.lower()):
                return member
        aliases = {
            "today": cls.TODAY_AND_OVERDUE,
            "overdue": cls.TODAY_AND_OVERDUE,
            "week": cls.NEXT_7_DAYS,
            "completed": cls.COMPLETED_LAST_7_DAYS,
            "done": cls.COMPLETED_LAST_7_DAYS,
            "undated": cls.NO_DUE_DATE,
            "none": cls.NO_DUE_DATE,
        }
        if key in aliases:
            return aliases[key]
        raise ValueError(f"unknown date filter '{raw}'")


class SortKey(StrEnum):
    DUE_DATE = "due_date"
    STATUS = "status"


@dataclasses.dataclass(frozen=True)
class TaskFilter:
    """Empty statuses means no status filter; categories containing All means any."""

    statuses: frozenset[str] = frozenset()
    when: DateFilter = DateFilter.ALL
    categories: frozenset[str] = frozenset({ALL})
    sort_by: SortKey = SortKey.DUE_DATE
    ascending: bool = False

    def to_dict(self) -> dict[str, object]:
        return {
            "statuses": sorted(self.statuses, key=_status_rank),
            "when": self.when.value,
            "categories": sorted(self.categories),
            "sort_by": self.sort_by.value,
            "ascending": self.ascending,
        }

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "TaskFilter":
        """Build a filter from saved config, falling back per field on bad values."""
        default = cls()
        statuses = data.get("statuses")
        categories = data.get("categories")
        try:
            when = DateFilter.parse(str(data.get("when", ALL)))
        except ValueError:
            logger.warning("ignoring saved date filter %r", data.get("when"))
            when = default.when
        try:
            sort_by = SortKey(str(data.get("sort_by", default.sort_by.value)))
        except ValueError:
            logger.warning("ignoring saved sort key %r", data.get("sort_by"))
            sort_by = default.sort_by
        return cls(
            statuses=frozenset(s for s in statuses if s in STATUS_OPTIONS)
            if isinstance(statuses, list)
            else default.statuses,
            when=when,
            categories=frozenset(str(c) for c in categories)
            if isinstance(categories, list) and categories
            else default.categories,
            sort_by=sort_by,
            ascending=data.get("ascending") is True,
        )


def _status_rank(value: str) -> int:
    return STATUS_OPTIONS.index(value) if value in STATUS_OPTIONS else len(STATUS_OPTIONS)


def matches_status(task: Task, statuses: Iterable[str]) -> bool:
    wanted = set(statuses)
    if not wanted:
        return True
    if ONGOING in wanted and task.status in ONGOING_STATUSES:
        return True
    return task.status.value in wanted


def matches_date(task: Task, when: DateFilter, today: date) -> bool:
    match when:
        case DateFilter.TODAY_AND_OVERDUE:
            return task.due_date is not None and task.due_date <= today
        case DateFilter.NEXT_7_DAYS:
            return (
                task.due_date is not None
                and today <= task.due_date <= today + timedelta(days=WINDOW_DAYS)
            )
        case DateFilter.COMPLETED_LAST_7_DAYS:
            return (
                task.completion_date is not None
                and today - timedelta(days=WINDOW_DAYS) <= task.completion_date <= today
            )
        case DateFilter.NO_DUE_DATE:
            return task.due_date is None
    return True


def matches_category(task: Task, categories: Iterable[str]) -> bool:
    wanted = set(categories)
    if not wanted or ALL in wanted:
        return True
    return task.category_id is not None and task.category_id in wanted


def filter_tasks(tasks: Iterable[Task], flt: TaskFilter, today: date | None = None) -> list[Task]:
    today = today if today else clock.today()
    return [
        t
        for t in tasks
        if matches_status(t, flt.statuses)
        and matches_date(t, flt.when, today)
        and matches_category(t, flt.categories)
    ]


def sort_tasks(
    tasks: Sequence[Task], sort_by: SortKey = SortKey.DUE_DATE, ascending: bool = False
) -> list[Task]:
    """Sort by due date (undated always last) or status display order. Stable."""
    if sort_by == SortKey.STATUS:
        order = list(TaskStatus)
        return sorted(tasks, key=lambda t: order.index(t.status), reverse=not ascending)
    dated = [t for t in tasks if t.due_date is not None]
    undated = [t for t in tasks if t.due_date is None]
    dated.sort(key=lambda t: t.due_date or date.min, reverse=not ascending)
    return dated + undated


def status_counts(tasks: Sequence[Task], flt: TaskFilter, today: date | None = None) -> dict[str, int]:
    today = today if today else clock.today()
    base = [
        t for t in tasks if matches_date(t, flt.when, today) and matches_category(t, flt.categories)
    ]
    return {option: sum(1 for t in base if matches_status(t, {option})) for option in STATUS_OPTIONS}


def date_counts(tasks: Sequence[Task], flt: TaskFilter, today: date | None = None) -> dict[str, int]:
    today = today if today else clock.today()
    base = [
        t for t in tasks if matches_status(t, flt.statuses) and matches_category(t, flt.categories)
    ]
    return {w.value: sum(1 for t in base if matches_date(t, w, today)) for w in DateFilter}


def category_counts(
    tasks: Sequence[Task],
    flt: TaskFilter,
    categories: Sequence[Category],
    today: date | None = None,
) -> dict[str, int]:
    """Counts keyed by category id, plus All."""
    today = today if today else clock.today()
    base = [t for t in tasks if matches_status(t, flt.statuses) and matches_date(t, flt.when, today)]
    counts = {ALL: len(base)}
    for c in categories:
        counts[c.id] = sum(1 for t in base if t.category_id == c.id)
    return counts


def load_filter() -> TaskFilter:
    return TaskFilter.from_dict(config.get_task_filter())


def save_filter(flt: TaskFilter) -> None:
    config.set_task_filter(flt.to_dict())


# ── cli ──────────────────────────────────────────────────────────────────────


def _parse_statuses(text: str) -> frozenset[str]:
    values: set[str] = set()
    for part in text.split(","):
        part = part.strip()
        if not part or part.lower() == "all":
            continue
        if part.lower() == ONGOING.lower():
            values.add(ONGOING)
            continue
        values.add(TaskStatus.parse(part).value)
    return frozenset(values)


def _parse_categories(text: str) -> frozenset[str]:
    from .lib.resolve import resolve_category

    ids = {
        resolve_category(part.strip()).id
        for part in text.split(",")
        if part.strip() and part.strip().lower() != "all"
    }
    return frozenset(ids) if ids else frozenset({ALL})


def _print_counts(tasks: list[Task], flt: TaskFilter, categories: list[Category]) -> None:
    by_status = status_counts(tasks, flt)
    echo(ansi.muted("status: " + "  ".join(f"{k} ({v})" for k, v in by_status.items())))
    by_date = date_counts(tasks, flt)
    echo(ansi.muted("date:   " + "  ".join(f"{k} ({v})" for k, v in by_date.items())))
    by_category = category_counts(tasks, flt, categories)
    names = {c.id: c.name for c in categories}
    parts = [f"{names.get(k, k)} ({v})" for k, v in by_category.items()]
    echo(ansi.muted("category: " + "  ".join(parts)))


@cli("cadence", name="ls", default=True)
def ls(
    status: str | None = None,
    when: str | None = None,
    category: str | None = None,
    sort: str | None = None,
    asc: bool = False,
    desc: bool = False,
    save: bool = False,
    reset: bool = False,
    counts: bool = False,
) -> None:
    """List tasks through the saved filter; options override it"""
    from .categories import get_categories
    from .tasks import get_tasks

    if asc and desc:
        raise UsageError("Choose --asc or --desc, not both")
    flt = TaskFilter() if reset else load_filter()
    try:
        flt = dataclasses.replace(
            flt,
            statuses=_parse_statuses(status) if status is not None else flt.statuses,
            when=DateFilter.parse(when) if when else flt.when,
            categories=_parse_categories(category) if category is not None else flt.categories,
            sort_by=SortKey(sort) if sort else flt.sort_by,
            ascending=True if asc else False if desc else flt.ascending,
        )
    except ValueError as e:
        raise UsageError(str(e)) from None
    if save or reset:
        save_filter(flt)

    tasks = get_tasks(include_closed=True)
    categories = get_categories()
    by_id = {c.id: c for c in categories}
    shown = sort_tasks(filter_tasks(tasks, flt), flt.sort_by, flt.ascending)
    if counts:
        _print_counts(tasks, flt, categories)
    if not shown:
        echo("no tasks")
        return
    for t in shown:
        echo(format_task(t, by_id.get(t.category_id) if t.category_id else None))
