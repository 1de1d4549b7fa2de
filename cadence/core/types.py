"""Core type definitions."""

from datetime import date
from enum import Enum
from typing import Literal, Protocol


class _Unset(Enum):
    UNSET = "UNSET"


UNSET: Literal[_Unset.UNSET] = _Unset.UNSET
Unset = Literal[_Unset.UNSET]


class Windowed(Protocol):
    """Anything counted only inside an inclusive [active_from, active_to] range."""

    @property
    def active_from(self) -> date | None: ...

    @property
    def active_to(self) -> date | None: ...
