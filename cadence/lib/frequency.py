"""Recurrence rules and date projection.

A frequency is stored either as a bare keyword (``"weekly"``) or as a compact
JSON object (``{"interval":2,"unit":"weeks"}``). Both forms must round-trip
byte for byte with rows written by older clients, so serialisation is fixed.

Parsing is permissive: anything unrecognised becomes a ``NoopFrequency`` that
projects a date onto itself. A bad row must never break completion or scoring.
"""

import dataclasses
import json
from collections.abc import Mapping
from datetime import date, timedelta
from enum import StrEnum

from cadence.core.errors import ValidationError

__all__ = [
    "Frequency",
    "IntervalFrequency",
    "Keyword",
    "NoopFrequency",
    "SimpleFrequency",
    "Unit",
    "add_months",
    "describe_frequency",
    "next_occurrence",
    "parse_frequency",
    "serialize_frequency",
]


class Keyword(StrEnum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class Unit(StrEnum):
    DAYS = "days"
    WEEKS = "weeks"
    MONTHS = "months"
    YEARS = "years"


@dataclasses.dataclass(frozen=True)
class SimpleFrequency:
    keyword: Keyword

    def __post_init__(self) -> None:
        try:
            object.__setattr__(self, "keyword", Keyword(self.keyword))
        except ValueError:
            raise ValidationError(f"unknown frequency keyword: {self.keyword!r}") from None


@dataclasses.dataclass(frozen=True)
class IntervalFrequency:
    interval: int
    unit: Unit

    def __post_init__(self) -> None:
        if isinstance(self.interval, bool) or not isinstance(self.interval, int):
            raise ValidationError(f"interval must be an integer, got {self.interval!r}")
        if self.interval < 1:
            raise ValidationError(f"interval must be at least 1, got {self.interval}")
        try:
            object.__setattr__(self, "unit", Unit(self.unit))
        except ValueError:
            raise ValidationError(f"unknown interval unit: {self.unit!r}") from None


@dataclasses.dataclass(frozen=True)
class NoopFrequency:
    raw: str = ""


Frequency = SimpleFrequency | IntervalFrequency | NoopFrequency


def _from_mapping(data: Mapping[str, object]) -> IntervalFrequency | None:
    interval = data.get("interval")
    unit = data.get("unit")
    if isinstance(interval, bool) or not isinstance(interval, int):
        return None
    if interval < 1 or unit not in Unit.__members__.values():
        return None
    return IntervalFrequency(interval, Unit(unit))


def parse_frequency(raw: object) -> Frequency:
    """Parse a stored frequency. Never raises."""
    if isinstance(raw, SimpleFrequency | IntervalFrequency | NoopFrequency):
        return raw
    if raw is None:
        return NoopFrequency()
    if isinstance(raw, Mapping):
        return _from_mapping(raw) or NoopFrequency(json.dumps(dict(raw), default=str))
    if not isinstance(raw, str):
        return NoopFrequency(str(raw))

    text = raw.strip()
    if text.startswith("{"):
        try:
            data = json.loads(text)
        except ValueError:
            data = None
        if isinstance(data, dict):
            parsed = _from_mapping(data)
            if parsed:
                return parsed
    if text in Keyword.__members__.values():
        return SimpleFrequency(Keyword(text))
    return NoopFrequency(raw)


def serialize_frequency(freq: Frequency) -> str:
    match freq:
        case SimpleFrequency(keyword=keyword):
            return keyword.value
        case IntervalFrequency(interval=interval, unit=unit):
            return json.dumps({"interval": interval, "unit": unit.value}, separators=(",", ":"))
        case NoopFrequency(raw=raw):
            return raw
    raise TypeError(f"not a frequency: {freq!r}")


def describe_frequency(freq: Frequency) -> str:
    match freq:
        case SimpleFrequency(keyword=keyword):
            return keyword.value
        case IntervalFrequency(interval=1, unit=unit):
            return f"every {unit.value.rstrip('s')}"
        case IntervalFrequency(interval=interval, unit=unit):
            return f"every {interval} {unit.value}"
    return "never"


def add_months(anchor: date, months: int) -> date:
    """Advance the month field, keeping the day and letting overflow spill over.

    2024-01-31 + 1 month is 2024-03-02, not 2024-02-29.
    """
    index = anchor.year * 12 + (anchor.month - 1) + months
    year, month = divmod(index, 12)
    return date(year, month + 1, 1) + timedelta(days=anchor.day - 1)


def next_occurrence(anchor: date, freq: Frequency) -> date:
    """Project a date one period forward; past the calendar's end it clamps to date.max."""
    try:
        return _advance(anchor, freq)
    except (OverflowError, ValueError):
        return date.max


def _advance(anchor: date, freq: Frequency) -> date:
    match freq:
        case SimpleFrequency(keyword=Keyword.DAILY):
            return anchor + timedelta(days=1)
        case SimpleFrequency(keyword=Keyword.WEEKLY):
            return anchor + timedelta(days=7)
        case SimpleFrequency(keyword=Keyword.MONTHLY):
            return add_months(anchor, 1)
        case SimpleFrequency(keyword=Keyword.YEARLY):
            return add_months(anchor, 12)
        case IntervalFrequency(interval=n, unit=Unit.DAYS):
            return anchor + timedelta(days=n)
        case IntervalFrequency(interval=n, unit=Unit.WEEKS):
            return anchor + timedelta(days=n * 7)
        case IntervalFrequency(interval=n, unit=Unit.MONTHS):
            return add_months(anchor, n)
        case IntervalFrequency(interval=n, unit=Unit.YEARS):
            return add_months(anchor, n * 12)
    return anchor
