"""The only source of "now" and "today". Tests monkeypatch these."""

from datetime import date, datetime


def now() -> datetime:
    return datetime.now()


def today() -> date:
    return now().date()
