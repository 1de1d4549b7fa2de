import os
import re
import sys
from collections.abc import Callable
from dataclasses import dataclass

_HEX_RE = re.compile(r"^#?([0-9a-fA-F]{6})$")


@dataclass(frozen=True)
class Theme:
    red: str = "\033[38;5;203m"
    green: str = "\033[38;5;114m"
    yellow: str = "\033[38;5;221m"
    blue: str = "\033[38;5;111m"
    cyan: str = "\033[38;5;117m"
    gray: str = "\033[38;5;245m"
    coral: str = "\033[38;5;209m"
    purple: str = "\033[38;5;141m"
    muted: str = "\033[90m"  # dim gray for secondary text
    bold: str = "\033[1m"
    reset: str = "\033[0m"


_active = Theme()

_COLORS = {"red", "green", "yellow", "blue", "cyan", "gray", "coral", "purple", "muted"}


def enabled() -> bool:
    """Colour only real terminals, and never when NO_COLOR is set."""
    if os.environ.get("NO_COLOR"):
        return False
    return sys.stdout.isatty()


def _paint(code: str, text: str) -> str:
    return f"{code}{text}{_active.reset}" if enabled() else text


def __getattr__(name: str) -> Callable[[str], str]:
    if name in _COLORS:

        def _wrap(text: str) -> str:
            return _paint(getattr(_active, name), text)

        _wrap.__name__ = name
        return _wrap
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def bold(text: str) -> str:
    return _paint(_active.bold, text)


def hex_color(text: str, color: str | None) -> str:
    """Paint text with a category's #rrggbb colour (24-bit)."""
    match = _HEX_RE.match(color or "")
    if not match:
        return text
    value = match.group(1)
    r, g, b = int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16)
    return _paint(f"\033[38;2;{r};{g};{b}m", text)
