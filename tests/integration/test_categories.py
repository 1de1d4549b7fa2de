import re

import pytest

from cadence import categories, tasks
from cadence.core.errors import NotFoundError
from tests.conftest import FnCLIRunner


def test_add_assigns_random_colour_and_appends(tmp_cadence_dir):
    first = categories.add_category("work")
    second = categories.add_category("home", color="#AABBCC")

    ordered = categories.get_categories()
    assert [c.id for c in ordered] == [first, second]
    assert re.fullmatch(r"#[0-9a-f]{6}", ordered[0].color)
    assert ordered[1].color == "#aabbcc"


def test_bad_colour_rejected(tmp_cadence_dir):
    result = FnCLIRunner().invoke(["category", "add", "work", "--color", "red"])
    assert result.exit_code == 1
    assert categories.get_categories() == []


def test_move_renumbers(tmp_cadence_dir):
    runner = FnCLIRunner()
    for name in ("work", "home", "health"):
        runner.invoke(["category", "add", name])

    runner.invoke(["category", "move", "health", "1"])

    ordered = categories.get_categories()
    assert [c.name for c in ordered] == ["health", "work", "home"]
    assert [c.sort_order for c in ordered] == [0, 1, 2]


def test_rename(tmp_cadence_dir):
    runner = FnCLIRunner()
    runner.invoke(["category", "add", "work"])
    result = runner.invoke(["category", "rename", "work", "day", "job"])
    assert "day job" in result.stdout


def test_delete_uncategorises_tasks(tmp_cadence_dir):
    runner = FnCLIRunner()
    runner.invoke(["category", "add", "work"])
    runner.invoke(["add", "write report", "--category", "work"])
    assert tasks.get_tasks()[0].category_id is not None

    result = runner.invoke(["category", "rm", "work"])

    assert "deleted: work" in result.stdout
    assert tasks.get_tasks()[0].category_id is None


def test_empty_listing(tmp_cadence_dir):
    assert "no categories" in FnCLIRunner().invoke(["category"]).stdout


def test_delete_missing_category(tmp_cadence_dir):
    with pytest.raises(NotFoundError):
        categories.delete_category("missing")
