from datetime import date

import pytest

from cadence.core.errors import ValidationError
from cadence.lib.frequency import (
    IntervalFrequency,
    Keyword,
    NoopFrequency,
    SimpleFrequency,
    Unit,
    add_months,
    describe_frequency,
    next_occurrence,
    parse_frequency,
    serialize_frequency,
)


def test_parse_keyword():
    assert parse_frequency("weekly") == SimpleFrequency(Keyword.WEEKLY)


def test_parse_interval_json():
    assert parse_frequency('{"interval":2,"unit":"weeks"}') == IntervalFrequency(2, Unit.WEEKS)


def test_parse_interval_mapping():
    assert parse_frequency({"interval": 3, "unit": "days"}) == IntervalFrequency(3, Unit.DAYS)


@pytest.mark.parametrize(
    "raw",
    [
        None,
        "",
        "fortnightly",
        "{not json",
        '{"interval":0,"unit":"days"}',
        '{"interval":-1,"unit":"days"}',
        '{"interval":"2","unit":"days"}',
        '{"interval":true,"unit":"days"}',
        '{"interval":2,"unit":"hours"}',
        "[1, 2]",
        42,
    ],
)
def test_parse_malformed_is_noop(raw):
    assert isinstance(parse_frequency(raw), NoopFrequency)


def test_serialize_interval_is_compact():
    assert serialize_frequency(IntervalFrequency(2, Unit.WEEKS)) == '{"interval":2,"unit":"weeks"}'


def test_serialize_keyword_is_bare():
    assert serialize_frequency(SimpleFrequency(Keyword.MONTHLY)) == "monthly"


def test_stored_forms_survive_parse_and_serialize():
    for stored in ("daily", "yearly", '{"interval":1,"unit":"months"}', '{"interval":10,"unit":"days"}'):
        assert serialize_frequency(parse_frequency(stored)) == stored


def test_interval_rejects_zero():
    with pytest.raises(ValidationError):
        IntervalFrequency(0, Unit.DAYS)


def test_interval_rejects_unknown_unit():
    with pytest.raises(ValidationError):
        IntervalFrequency(1, "hours")


def test_simple_rejects_unknown_keyword():
    with pytest.raises(ValidationError):
        SimpleFrequency("hourly")


def test_describe():
    assert describe_frequency(SimpleFrequency(Keyword.WEEKLY)) == "weekly"
    assert describe_frequency(IntervalFrequency(1, Unit.WEEKS)) == "every week"
    assert describe_frequency(IntervalFrequency(2, Unit.WEEKS)) == "every 2 weeks"


@pytest.mark.parametrize(
    ("anchor", "freq", "expected"),
    [
        (date(2024, 6, 10), SimpleFrequency(Keyword.DAILY), date(2024, 6, 11)),
        (date(2024, 6, 10), SimpleFrequency(Keyword.WEEKLY), date(2024, 6, 17)),
        (date(2024, 6, 10), SimpleFrequency(Keyword.MONTHLY), date(2024, 7, 10)),
        (date(2024, 6, 10), SimpleFrequency(Keyword.YEARLY), date(2025, 6, 10)),
        (date(2024, 6, 10), IntervalFrequency(3, Unit.DAYS), date(2024, 6, 13)),
        (date(2024, 6, 10), IntervalFrequency(2, Unit.WEEKS), date(2024, 6, 24)),
        (date(2024, 11, 15), IntervalFrequency(3, Unit.MONTHS), date(2025, 2, 15)),
        (date(2024, 6, 10), IntervalFrequency(2, Unit.YEARS), date(2026, 6, 10)),
        (date(2024, 12, 31), SimpleFrequency(Keyword.DAILY), date(2025, 1, 1)),
    ],
)
def test_next_occurrence(anchor, freq, expected):
    assert next_occurrence(anchor, freq) == expected


def test_month_end_overflows_into_next_month():
    assert next_occurrence(date(2024, 1, 31), SimpleFrequency(Keyword.MONTHLY)) == date(2024, 3, 2)
    assert next_occurrence(date(2023, 1, 31), SimpleFrequency(Keyword.MONTHLY)) == date(2023, 3, 3)


def test_leap_day_plus_year_overflows():
    assert next_occurrence(date(2024, 2, 29), SimpleFrequency(Keyword.YEARLY)) == date(2025, 3, 1)


def test_add_months_crosses_year_boundary():
    assert add_months(date(2024, 12, 5), 1) == date(2025, 1, 5)
    assert add_months(date(2024, 10, 31), 1) == date(2024, 12, 1)


def test_noop_returns_anchor():
    anchor = date(2024, 6, 10)
    assert next_occurrence(anchor, NoopFrequency("garbage")) == anchor


@pytest.mark.parametrize(
    ("anchor", "freq"),
    [
        (date(9999, 6, 1), SimpleFrequency(Keyword.YEARLY)),
        (date(9999, 12, 15), SimpleFrequency(Keyword.MONTHLY)),
        (date(9999, 12, 31), SimpleFrequency(Keyword.DAILY)),
        (date(2024, 6, 1), IntervalFrequency(10**9, Unit.DAYS)),
        (date(2024, 6, 1), IntervalFrequency(10**9, Unit.YEARS)),
    ],
)
def test_projection_past_calendar_end_clamps(anchor, freq):
    assert next_occurrence(anchor, freq) == date.max
