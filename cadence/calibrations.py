import sqlite3
import uuid
from datetime import date

from fncli import UsageError, cli

from . import db
from .core.errors import NotFoundError, ValidationError
from .core.models import Calibration, CalibrationScore
from .lib import ansi, clock
from .lib.converters import row_to_calibration, row_to_calibration_score
from .lib.dates import parse_day
from .lib.errors import echo
from .lib.fuzzy import find_in_pool
from .scoring import average_calibration, is_active

__all__ = [
    "add_calibration",
    "clear_score",
    "delete_calibration",
    "end_calibration",
    "find_calibration",
    "get_calibration",
    "get_calibrations",
    "get_scores",
    "set_score",
]

_CALIBRATION_COLS = "id, name, active_from, active_to, sort_order"


# ── domain ───────────────────────────────────────────────────────────────────


def get_calibrations() -> list[Calibration]:
    with db.get_db() as conn:
        cursor = conn.execute(
            f"SELECT {_CALIBRATION_COLS} FROM calibrations ORDER BY sort_order, name"  # noqa: S608
        )
        return [row_to_calibration(row) for row in cursor.fetchall()]


def get_calibration(calibration_id: str) -> Calibration | None:
    with db.get_db() as conn:
        row = conn.execute(
            f"SELECT {_CALIBRATION_COLS} FROM calibrations WHERE id = ?",  # noqa: S608
            (calibration_id,),
        ).fetchone()
    return row_to_calibration(row) if row else None


def find_calibration(ref: str) -> Calibration | None:
    return find_in_pool(ref, get_calibrations())


def add_calibration(name: str, active_from: date | None = None) -> str:
    if not name.strip():
        raise ValidationError("calibration name cannot be empty")
    calibration_id = str(uuid.uuid4())
    with db.get_db() as conn:
        row = conn.execute("SELECT COALESCE(MAX(sort_order), -1) FROM calibrations").fetchone()
        conn.execute(
            "INSERT INTO calibrations (id, name, active_from, active_to, sort_order) VALUES (?, ?, ?, NULL, ?)",
            (
                calibration_id,
                name.strip(),
                active_from.isoformat() if active_from else None,
                row[0] + 1,
            ),
        )
    return calibration_id


def end_calibration(calibration_id: str, day: date) -> Calibration:
    """Stop asking for a calibration after a day; its history still scores."""
    calibration = get_calibration(calibration_id)
    if not calibration:
        raise NotFoundError("calibration", calibration_id)
    if calibration.active_from and day < calibration.active_from:
        raise ValidationError(f"cannot end before it started ({calibration.active_from})")
    with db.get_db() as conn:
        conn.execute(
            "UPDATE calibrations SET active_to = ? WHERE id = ?", (day.isoformat(), calibration_id)
        )
    updated = get_calibration(calibration_id)
    assert updated is not None
    return updated


def delete_calibration(calibration_id: str) -> None:
    with db.get_db() as conn:
        cursor = conn.execute("DELETE FROM calibrations WHERE id = ?", (calibration_id,))
        if cursor.rowcount == 0:
            raise NotFoundError("calibration", calibration_id)


def set_score(calibration_id: str, score: int, day: date | None = None) -> CalibrationScore:
    """Upsert the 1-5 score for a calibration on a day."""
    entry = CalibrationScore(
        calibration_id=calibration_id, date=day if day else clock.today(), score=score
    )
    with db.get_db() as conn:
        try:
            conn.execute(
                "INSERT INTO calibration_scores (calibration_id, date, score) VALUES (?, ?, ?) "
                "ON CONFLICT(calibration_id, date) DO UPDATE SET score = excluded.score",
                (entry.calibration_id, entry.date.isoformat(), entry.score),
            )
        except sqlite3.IntegrityError as e:
            raise NotFoundError("calibration", calibration_id) from e
    return entry


def clear_score(calibration_id: str, day: date) -> bool:
    with db.get_db() as conn:
        cursor = conn.execute(
            "DELETE FROM calibration_scores WHERE calibration_id = ? AND date = ?",
            (calibration_id, day.isoformat()),
        )
        return cursor.rowcount > 0


def get_scores(start: date, end: date | None = None) -> list[CalibrationScore]:
    end = end if end else start
    with db.get_db() as conn:
        cursor = conn.execute(
            "SELECT calibration_id, date, score FROM calibration_scores WHERE date >= ? AND date <= ?",
            (start.isoformat(), end.isoformat()),
        )
        return [row_to_calibration_score(row) for row in cursor.fetchall()]


# ── cli ──────────────────────────────────────────────────────────────────────


def _parse_day_arg(text: str | None) -> date:
    try:
        return parse_day(text)
    except ValueError as e:
        raise UsageError(str(e)) from None


@cli("cadence calibration", name="ls", default=True)
def ls(date_: str | None = None) -> None:
    """Show calibrations and scores for a day"""
    day = _parse_day_arg(date_)
    calibrations = [c for c in get_calibrations() if is_active(c, day)]
    if not calibrations:
        echo("no active calibrations")
        return
    scores = {s.calibration_id: s.score for s in get_scores(day)}
    for c in calibrations:
        value = scores.get(c.id)
        mark = f"{value}/5" if value else ansi.muted("-/5")
        echo(f"{mark} {c.name} {ansi.muted(f'[{c.id[:8]}]')}")
    avg = average_calibration(day, get_scores(day), calibrations)
    echo(ansi.muted(f"avg {avg:.1f} on {day.isoformat()}"))


@cli("cadence calibration", name="add")
def add(name: list[str], from_: str | None = None) -> None:
    """Add calibration (self-rated 1-5 each day)"""
    active_from = _parse_day_arg(from_) if from_ else None
    calibration_id = add_calibration(" ".join(name), active_from)
    echo(f"added: {' '.join(name)} [{calibration_id[:8]}]")


@cli("cadence calibration", name="score")
def score(ref: str, value: int, date_: str | None = None) -> None:
    """Rate calibration 1-5"""
    from .lib.resolve import resolve_calibration

    calibration = resolve_calibration(ref)
    entry = set_score(calibration.id, value, _parse_day_arg(date_))
    echo(f"{calibration.name}: {entry.score}/5 {ansi.muted(entry.date.isoformat())}")


@cli("cadence calibration", name="clear")
def clear(ref: str, date_: str | None = None) -> None:
    """Remove a day's score"""
    from .lib.resolve import resolve_calibration

    calibration = resolve_calibration(ref)
    day = _parse_day_arg(date_)
    if clear_score(calibration.id, day):
        echo(f"cleared: {calibration.name} {day.isoformat()}")
    else:
        echo(f"no score for {calibration.name} on {day.isoformat()}")


@cli("cadence calibration", name="end")
def end(ref: list[str], date_: str | None = None) -> None:
    """Stop asking for calibration after a day"""
    from .lib.resolve import resolve_calibration

    calibration = resolve_calibration(" ".join(ref))
    updated = end_calibration(calibration.id, _parse_day_arg(date_))
    echo(f"{updated.name} active until {updated.active_to}")


@cli("cadence calibration", name="rm")
def rm(ref: list[str]) -> None:
    """Delete calibration and its scores"""
    from .lib.resolve import resolve_calibration

    calibration = resolve_calibration(" ".join(ref))
    delete_calibration(calibration.id)
    echo(f"deleted: {calibration.name}")
