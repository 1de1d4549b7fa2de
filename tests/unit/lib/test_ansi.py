import pytest

from cadence.lib import ansi


@pytest.fixture
def tty(monkeypatch):
    monkeypatch.setattr(ansi, "enabled", lambda: True)


def test_no_color_disables_painting(monkeypatch):
    monkeypatch.setenv("NO_COLOR", "1")
    assert ansi.green("done") == "done"
    assert ansi.hex_color("●", "#ff0000") == "●"


def test_named_colours_wrap_text(tty):
    painted = ansi.muted("later")
    assert painted.startswith("\033[90m")
    assert painted.endswith("\033[0m")
    assert "later" in painted


def test_hex_color_uses_truecolor(tty):
    assert ansi.hex_color("●", "#1a2B3c") == "\033[38;2;26;43;60m●\033[0m"


def test_hex_color_ignores_bad_values(tty):
    assert ansi.hex_color("●", "teal") == "●"
    assert ansi.hex_color("●", None) == "●"


def test_unknown_attribute_raises():
    with pytest.raises(AttributeError):
        _ = ansi.magenta
