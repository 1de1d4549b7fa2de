from datetime import date

import pytest

from cadence.core.models import Category, Task, TaskStatus
from cadence.filters import (
    ALL,
    ONGOING,
    DateFilter,
    SortKey,
    TaskFilter,
    category_counts,
    date_counts,
    filter_tasks,
    sort_tasks,
    status_counts,
)

TODAY = date(2024, 6, 12)


def _task(task_id: str, **kwargs) -> Task:
    return Task(id=task_id, title=task_id, **kwargs)


TASKS = [
    _task("overdue", due_date=date(2024, 6, 10), category_id="work"),
    _task("today", status=TaskStatus.IN_PROGRESS, due_date=TODAY, category_id="home"),
    _task("soon", status=TaskStatus.WAITING, due_date=date(2024, 6, 19)),
    _task("later", status=TaskStatus.CONCEPT, due_date=date(2024, 7, 1), category_id="work"),
    _task("undated", status=TaskStatus.ON_HOLD),
    _task(
        "closed",
        status=TaskStatus.COMPLETE,
        completion_date=date(2024, 6, 5),
        due_date=date(2024, 6, 4),
        category_id="home",
    ),
    _task("dropped", status=TaskStatus.DROPPED, completion_date=date(2024, 5, 1)),
]


def _ids(tasks):
    return [t.id for t in tasks]


def test_default_filter_keeps_everything():
    assert _ids(filter_tasks(TASKS, TaskFilter(), TODAY)) == _ids(TASKS)


def test_ongoing_means_todo_in_progress_waiting():
    flt = TaskFilter(statuses=frozenset({ONGOING}))
    assert _ids(filter_tasks(TASKS, flt, TODAY)) == ["overdue", "today", "soon"]


def test_ongoing_combines_with_explicit_status():
    flt = TaskFilter(statuses=frozenset({ONGOING, "On hold"}))
    assert _ids(filter_tasks(TASKS, flt, TODAY)) == ["overdue", "today", "soon", "undated"]


@pytest.mark.parametrize(
    ("when", "expected"),
    [
        (DateFilter.TODAY_AND_OVERDUE, ["overdue", "today", "closed"]),
        (DateFilter.NEXT_7_DAYS, ["today", "soon"]),
        (DateFilter.COMPLETED_LAST_7_DAYS, ["closed"]),
        (DateFilter.NO_DUE_DATE, ["undated", "dropped"]),
    ],
)
def test_date_filters(when, expected):
    assert _ids(filter_tasks(TASKS, TaskFilter(when=when), TODAY)) == expected


def test_category_filter_excludes_uncategorised():
    flt = TaskFilter(categories=frozenset({"work"}))
    assert _ids(filter_tasks(TASKS, flt, TODAY)) == ["overdue", "later"]


def test_category_all_wins_over_specific_ids():
    flt = TaskFilter(categories=frozenset({ALL, "work"}))
    assert len(filter_tasks(TASKS, flt, TODAY)) == len(TASKS)


def test_sort_by_due_date_puts_undated_last_both_ways():
    desc = sort_tasks(TASKS, SortKey.DUE_DATE, ascending=False)
    asc = sort_tasks(TASKS, SortKey.DUE_DATE, ascending=True)
    assert _ids(desc) == ["later", "soon", "today", "overdue", "closed", "undated", "dropped"]
    assert _ids(asc) == ["closed", "overdue", "today", "soon", "later", "undated", "dropped"]


def test_sort_by_status_follows_display_order():
    asc = sort_tasks(TASKS, SortKey.STATUS, ascending=True)
    assert [t.status for t in asc] == [
        TaskStatus.CONCEPT,
        TaskStatus.TODO,
        TaskStatus.IN_PROGRESS,
        TaskStatus.WAITING,
        TaskStatus.ON_HOLD,
        TaskStatus.COMPLETE,
        TaskStatus.DROPPED,
    ]
    desc = sort_tasks(TASKS, SortKey.STATUS, ascending=False)
    assert desc[0].status == TaskStatus.DROPPED


def test_status_counts_ignore_status_filter_but_apply_others():
    flt = TaskFilter(statuses=frozenset({"Complete"}), categories=frozenset({"work"}))
    counts = status_counts(TASKS, flt, TODAY)
    assert counts[ONGOING] == 1
    assert counts["Concept"] == 1
    assert counts["Complete"] == 0


def test_date_counts_apply_status_filter():
    flt = TaskFilter(statuses=frozenset({ONGOING}))
    counts = date_counts(TASKS, flt, TODAY)
    assert counts["All"] == 3
    assert counts["Today & overdue"] == 2
    assert counts["Next 7 days"] == 2
    assert counts["No due date"] == 0


def test_category_counts_include_all():
    categories = [Category(id="work", name="work"), Category(id="home", name="home")]
    counts = category_counts(TASKS, TaskFilter(when=DateFilter.TODAY_AND_OVERDUE), categories, TODAY)
    assert counts == {ALL: 3, "work": 1, "home": 2}


def test_filter_dict_survives_config_round_trip():
    flt = TaskFilter(
        statuses=frozenset({"Waiting", ONGOING}),
        when=DateFilter.NEXT_7_DAYS,
        categories=frozenset({"work"}),
        sort_by=SortKey.STATUS,
        ascending=True,
    )
    data = flt.to_dict()
    assert data["statuses"] == [ONGOING, "Waiting"]
    assert TaskFilter.from_dict(data) == flt


def test_from_dict_falls_back_on_junk():
    flt = TaskFilter.from_dict(
        {"statuses": ["Nope", "Complete"], "when": "someday", "sort_by": "title", "ascending": "yes"}
    )
    assert flt == TaskFilter(statuses=frozenset({"Complete"}))


def test_date_filter_parse_aliases():
    assert DateFilter.parse("today") == DateFilter.TODAY_AND_OVERDUE
    assert DateFilter.parse("next 7 days") == DateFilter.NEXT_7_DAYS
    assert DateFilter.parse("NO_DUE_DATE") == DateFilter.NO_DUE_DATE
    with pytest.raises(ValueError):
        DateFilter.parse("someday")
