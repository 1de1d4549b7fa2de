from datetime import date, datetime, timedelta

from dateutil import parser as dateutil_parser
from dateutil.parser import ParserError

from . import clock

_WEEKDAYS = {"mon": 0, "tue": 1, "wed": 2, "thu": 3, "fri": 4, "sat": 5, "sun": 6}
_DAY_ALIASES = {
    "monday": "mon",
    "tuesday": "tue",
    "wednesday": "wed",
    "thursday": "thu",
    "friday": "fri",
    "saturday": "sat",
    "sunday": "sun",
}


def parse_due_date(due_str: str, today: date | None = None) -> date | None:
    """Parses a due date string (e.g., 'today', 'tomorrow', 'mon', '+3', 'YYYY-MM-DD')."""
    today = today if today else clock.today()
    due = due_str.strip().lower()

    if due == "today":
        return today
    if due == "yesterday":
        return today - timedelta(days=1)
    if due == "tomorrow":
        return today + timedelta(days=1)
    if due.startswith("+") and due[1:].isdigit():
        return today + timedelta(days=int(due[1:]))
    due = _DAY_ALIASES.get(due, due)
    if due in _WEEKDAYS:
        days_ahead = (_WEEKDAYS[due] - today.weekday() + 7) % 7
        return today + timedelta(days=days_ahead or 7)
    try:
        return dateutil_parser.parse(
            due_str, default=datetime(today.year, today.month, today.day)
        ).date()
    except (ParserError, ValueError, OverflowError):
        return None


def parse_day(day_str: str | None) -> date:
    """Resolve an optional --date argument; missing means today."""
    if not day_str:
        return clock.today()
    parsed = parse_due_date(day_str)
    if parsed is None:
        raise ValueError(f"Invalid date '{day_str}'")
    return parsed


def format_relative(day: date, today: date | None = None) -> str:
    today = today if today else clock.today()
    delta = (day - today).days
    if delta == 0:
        return "today"
    if delta == 1:
        return "tomorrow"
    if delta == -1:
        return "yesterday"
    if 1 < delta < 7:
        return day.strftime("%a").lower()
    return day.isoformat()
