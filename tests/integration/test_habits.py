from datetime import date

import pytest

from cadence import habits
from cadence.core.errors import NotFoundError, StateError, ValidationError
from tests.conftest import FnCLIRunner


def test_add_check_and_list(tmp_cadence_dir, fixed_today):
    runner = FnCLIRunner()
    runner.invoke(["habit", "add", "morning", "stretch"])
    runner.invoke(["habit", "add", "journal", "page"])

    checked = runner.invoke(["habit", "check", "stretch"])
    listed = runner.invoke(["habit"])

    assert checked.exit_code == 0
    assert "✓ morning stretch 2024-06-12" in checked.stdout
    assert "✓ morning stretch" in listed.stdout
    assert "□ journal page" in listed.stdout
    assert "1/2 on 2024-06-12" in listed.stdout


def test_check_is_one_row_per_day(tmp_cadence_dir, fixed_today):
    habit_id = habits.add_habit("floss teeth")
    habits.check_habit(habit_id)
    habits.check_habit(habit_id)
    habits.uncheck_habit(habit_id)

    [completion] = habits.get_completions(fixed_today)
    assert completion.completed is False


def test_check_for_past_day(tmp_cadence_dir, fixed_today):
    runner = FnCLIRunner()
    runner.invoke(["habit", "add", "floss", "teeth"])

    result = runner.invoke(["habit", "check", "floss", "--date", "yesterday"])

    assert result.exit_code == 0
    assert [c.date for c in habits.get_completions(date(2024, 6, 11))] == [date(2024, 6, 11)]
    assert habits.get_completions(fixed_today) == []


def test_group_counts_as_one(tmp_cadence_dir, fixed_today):
    runner = FnCLIRunner()
    runner.invoke(["habit", "group", "add", "move"])
    runner.invoke(["habit", "add", "run", "--group", "move"])
    runner.invoke(["habit", "add", "swim", "--group", "move"])
    runner.invoke(["habit", "add", "read"])
    runner.invoke(["habit", "check", "swim"])

    listed = runner.invoke(["habit", "ls"])

    assert "move" in listed.stdout
    assert "1/2 on 2024-06-12" in listed.stdout


def test_deleting_group_ungroups_habits(tmp_cadence_dir, fixed_today):
    group_id = habits.add_group("move")
    habit_id = habits.add_habit("run", group_id=group_id)

    habits.delete_group(group_id)

    assert habits.get_habit(habit_id).group_id is None


def test_end_habit_hides_it_after_that_day(tmp_cadence_dir, fixed_today):
    runner = FnCLIRunner()
    runner.invoke(["habit", "add", "cold", "shower"])

    runner.invoke(["habit", "end", "cold shower", "--date", "yesterday"])

    assert "no active habits" in runner.invoke(["habit"]).stdout
    assert "cold shower" in runner.invoke(["habit", "--date", "yesterday"]).stdout


def test_window_must_not_be_inverted(tmp_cadence_dir):
    with pytest.raises(ValidationError):
        habits.add_habit("run", active_from=date(2024, 6, 10), active_to=date(2024, 6, 1))


def test_rm_removes_history(tmp_cadence_dir, fixed_today):
    runner = FnCLIRunner()
    runner.invoke(["habit", "add", "walk", "outside"])
    runner.invoke(["habit", "check", "walk outside"])

    result = runner.invoke(["habit", "rm", "walk outside"])

    assert "deleted: walk outside" in result.stdout
    assert habits.get_habits() == []
    assert habits.get_completions(fixed_today) == []


def test_unknown_habit(tmp_cadence_dir):
    result = FnCLIRunner().invoke(["habit", "check", "juggling"])
    assert result.exit_code == 1
    assert "no habit found" in result.stderr


def test_empty_group_does_not_cap_the_count(tmp_cadence_dir, fixed_today):
    runner = FnCLIRunner()
    runner.invoke(["habit", "group", "add", "someday"])
    runner.invoke(["habit", "add", "read"])
    runner.invoke(["habit", "check", "read"])

    listed = runner.invoke(["habit"])

    assert "1/1 on 2024-06-12" in listed.stdout


def test_group_check_marks_first_unchecked_habit(tmp_cadence_dir, fixed_today):
    runner = FnCLIRunner()
    runner.invoke(["habit", "group", "add", "move"])
    runner.invoke(["habit", "add", "run", "--group", "move"])
    runner.invoke(["habit", "add", "swim", "--group", "move"])

    result = runner.invoke(["habit", "group", "check", "move"])

    assert result.exit_code == 0
    assert "✓ move: run 2024-06-12" in result.stdout
    done = {c.habit_id for c in habits.get_completions(fixed_today) if c.completed}
    assert done == {habits.find_habit("run").id}


def test_group_check_when_already_satisfied(tmp_cadence_dir, fixed_today):
    group_id = habits.add_group("move")
    habits.add_habit("run", group_id=group_id)
    swim_id = habits.add_habit("swim", group_id=group_id)
    habits.check_habit(swim_id)

    assert habits.check_group(group_id) is None
    assert [c.habit_id for c in habits.get_completions(fixed_today)] == [swim_id]


def test_group_uncheck_clears_every_member(tmp_cadence_dir, fixed_today):
    runner = FnCLIRunner()
    group_id = habits.add_group("move")
    run_id = habits.add_habit("run", group_id=group_id)
    swim_id = habits.add_habit("swim", group_id=group_id)
    habits.check_habit(run_id)
    habits.check_habit(swim_id)

    result = runner.invoke(["habit", "group", "uncheck", "move"])

    assert result.exit_code == 0
    assert "(2 cleared)" in result.stdout
    assert not any(c.completed for c in habits.get_completions(fixed_today))


def test_group_check_without_active_habits(tmp_cadence_dir, fixed_today):
    group_id = habits.add_group("move")
    habits.add_habit("run", group_id=group_id, active_to=date(2024, 1, 1))

    with pytest.raises(StateError):
        habits.check_group(group_id)
    result = FnCLIRunner().invoke(["habit", "group", "check", "move"])
    assert result.exit_code == 1
    assert "no active habits" in result.stderr


def test_delete_missing_habit_or_group(tmp_cadence_dir):
    with pytest.raises(NotFoundError):
        habits.delete_habit("missing")
    with pytest.raises(NotFoundError):
        habits.delete_group("missing")
