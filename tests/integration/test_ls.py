from datetime import date

from cadence import config, filters, tasks
from cadence.core.models import TaskStatus
from cadence.filters import DateFilter, TaskFilter
from tests.conftest import FnCLIRunner


def _seed():
    tasks.add_task("renew passport", due_date=date(2024, 6, 20))
    tasks.add_task("fix bike", due_date=date(2024, 6, 5))
    tasks.add_task("learn piano")
    done_id = tasks.add_task("submit form", due_date=date(2024, 6, 10))
    tasks.set_status(done_id, TaskStatus.COMPLETE)


def test_default_lists_everything_due_date_descending(tmp_cadence_dir, fixed_today):
    _seed()
    result = FnCLIRunner().invoke([])

    assert result.exit_code == 0
    lines = [line for line in result.stdout.splitlines() if line]
    order = ["renew passport", "submit form", "fix bike", "learn piano"]
    assert [next(t for t in order if t in line) for line in lines] == order


def test_status_and_when_options(tmp_cadence_dir, fixed_today):
    _seed()
    result = FnCLIRunner().invoke(["ls", "--status", "ongoing", "--when", "today", "--asc"])
    assert "fix bike" in result.stdout
    assert "submit form" not in result.stdout
    assert "renew passport" not in result.stdout


def test_save_persists_filter(tmp_cadence_dir, fixed_today):
    _seed()
    runner = FnCLIRunner()
    runner.invoke(["ls", "--when", "undated", "--save"])

    assert config.get_task_filter()["when"] == "No due date"
    assert filters.load_filter() == TaskFilter(when=DateFilter.NO_DUE_DATE)
    result = runner.invoke(["ls"])
    assert "learn piano" in result.stdout
    assert "fix bike" not in result.stdout

    reset = runner.invoke(["ls", "--reset"])
    assert "fix bike" in reset.stdout
    assert filters.load_filter() == TaskFilter()


def test_category_option(tmp_cadence_dir, fixed_today):
    runner = FnCLIRunner()
    runner.invoke(["category", "add", "garden"])
    runner.invoke(["add", "prune roses", "--category", "garden"])
    runner.invoke(["add", "learn piano"])

    result = runner.invoke(["ls", "--category", "garden"])

    assert "prune roses" in result.stdout
    assert "learn piano" not in result.stdout


def test_counts(tmp_cadence_dir, fixed_today):
    _seed()
    result = FnCLIRunner().invoke(["ls", "--counts", "--status", "ongoing"])
    assert "Ongoing (3)" in result.stdout
    assert "Complete (1)" in result.stdout
    assert "Today & overdue (1)" in result.stdout


def test_bad_when_is_usage_error(tmp_cadence_dir):
    result = FnCLIRunner().invoke(["ls", "--when", "someday"])
    assert result.exit_code == 1
    assert "unknown date filter" in result.stdout


def test_empty(tmp_cadence_dir):
    assert "no tasks" in FnCLIRunner().invoke(["ls"]).stdout
