from datetime import date, timedelta

from fncli import UsageError, cli

from . import config
from .calibrations import get_calibrations, get_scores
from .habits import get_completions, get_groups, get_habits
from .lib import ansi
from .lib.dates import parse_day
from .lib.errors import echo
from .lib.format import format_percent
from .scoring import DayScore, rolling_average, score_range
from .tasks import get_tasks

__all__ = ["daily_scores"]

DEFAULT_DAYS = 7


def daily_scores(end: date, days: int, window: int) -> tuple[list[DayScore], list[DayScore]]:
    """Score the last `days` days up to `end`, with trailing averages over `window` days.

    Extra days before the shown range are scored so the first rows' averages
    see a full window.
    """
    shown_start = end - timedelta(days=days - 1)
    start = shown_start - timedelta(days=window - 1)
    tasks = get_tasks(include_closed=True)
    scores = score_range(
        start,
        end,
        tasks=tasks,
        subtasks_by_task={t.id: t.sub_tasks for t in tasks if t.sub_tasks},
        habit_completions=get_completions(start, end),
        habits=get_habits(),
        habit_groups=get_groups(),
        calibration_scores=get_scores(start, end),
        calibrations=get_calibrations(),
    )
    rolling = rolling_average(scores, window)
    return scores[-days:], rolling[-days:]


def _row(label: str, score: DayScore) -> str:
    return (
        f"{label}  {format_percent(score.overall)}  "
        f"{ansi.muted('habits')} {format_percent(score.habits)}  "
        f"{ansi.muted('cal')} {format_percent(score.calibration)}  "
        f"{ansi.muted('tasks')} {format_percent(score.tasks)}"
    )


@cli("cadence", name="score")
def score(days: int = DEFAULT_DAYS, date_: str | None = None) -> None:
    """Daily scores with the trailing average"""
    if days < 1:
        raise UsageError("--days must be at least 1")
    try:
        end = parse_day(date_)
    except ValueError as e:
        raise UsageError(str(e)) from None
    window = config.get_score_window()
    scores, rolling = daily_scores(end, days, window)
    for day, avg in zip(scores, rolling, strict=True):
        echo(f"{_row(day.date.isoformat(), day)}  {ansi.muted('avg')} {format_percent(avg.overall)}")
    last = rolling[-1]
    echo(ansi.bold(_row(f"{window}-day avg ", last)))
