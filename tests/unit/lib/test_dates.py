from datetime import date

import pytest

from cadence.lib.dates import format_relative, parse_day, parse_due_date

TODAY = date(2024, 6, 12)  # a Wednesday


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("today", TODAY),
        ("yesterday", date(2024, 6, 11)),
        ("tomorrow", date(2024, 6, 13)),
        ("+3", date(2024, 6, 15)),
        ("fri", date(2024, 6, 14)),
        ("wednesday", date(2024, 6, 19)),
        ("2024-07-01", date(2024, 7, 1)),
    ],
)
def test_parse_due_date(text, expected):
    assert parse_due_date(text, TODAY) == expected


def test_parse_due_date_garbage():
    assert parse_due_date("whenever", TODAY) is None


def test_parse_day_defaults_to_today(fixed_today):
    assert parse_day(None) == fixed_today


def test_parse_day_rejects_garbage():
    with pytest.raises(ValueError):
        parse_day("whenever")


def test_format_relative():
    assert format_relative(TODAY, TODAY) == "today"
    assert format_relative(date(2024, 6, 13), TODAY) == "tomorrow"
