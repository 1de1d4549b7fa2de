from collections.abc import Sequence
from difflib import get_close_matches
from typing import TypeVar

from cadence.core.errors import AmbiguousError
from cadence.core.models import Calibration, Category, Habit, HabitGroup, SubTask, Task

__all__ = ["find_in_pool", "label_of"]

FUZZY_MATCH_CUTOFF = 0.8

Record = Task | SubTask | Habit | HabitGroup | Category | Calibration

T = TypeVar("T", bound=Record)


def label_of(item: Record) -> str:
    return item.title if isinstance(item, Task | SubTask) else item.name


def _match_id_prefix(ref: str, pool: Sequence[T]) -> T | None:
    ref_lower = ref.lower()
    matches = [item for item in pool if item.id[:8].startswith(ref_lower)]
    if len(matches) == 1:
        return matches[0]
    if len(matches) > 1:
        exact = next((item for item in matches if item.id == ref), None)
        if exact:
            return exact
        sample = [item.id[:8] for item in matches[:3]]
        raise AmbiguousError(ref, count=len(matches), sample=sample)
    return None


def _match_substring(ref: str, pool: Sequence[T]) -> T | None:
    ref_lower = ref.lower()
    exact = [item for item in pool if label_of(item).lower() == ref_lower]
    if len(exact) == 1:
        return exact[0]
    matches = exact or [item for item in pool if ref_lower in label_of(item).lower()]
    if len(matches) == 1:
        return matches[0]
    if len(matches) > 1:
        sample = [label_of(item) for item in matches[:3]]
        raise AmbiguousError(ref, count=len(matches), sample=sample)
    return None


def _match_fuzzy(ref: str, pool: Sequence[T]) -> T | None:
    labels = [label_of(item).lower() for item in pool]
    matches = get_close_matches(ref.lower(), labels, n=1, cutoff=FUZZY_MATCH_CUTOFF)
    if matches:
        return pool[labels.index(matches[0])]
    return None


def find_in_pool(ref: str, pool: Sequence[T]) -> T | None:
    if not pool or not ref.strip():
        return None
    return _match_id_prefix(ref, pool) or _match_substring(ref, pool) or _match_fuzzy(ref, pool)
