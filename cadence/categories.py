import random
import re
import sqlite3
import uuid

from fncli import UsageError, cli

from . import db
from .core.errors import NotFoundError, ValidationError
from .core.models import Category
from .core.types import UNSET, Unset
from .lib import ansi
from .lib.converters import row_to_category
from .lib.errors import echo
from .lib.fuzzy import find_in_pool

__all__ = [
    "add_category",
    "delete_category",
    "find_category",
    "get_categories",
    "get_category",
    "move_category",
    "random_color",
    "update_category",
]

_CATEGORY_COLS = "id, name, color, sort_order"
_COLOR_RE = re.compile(r"^#[0-9a-fA-F]{6}$")


def random_color() -> str:
    return f"#{random.randint(0, 0xFFFFFF):06x}"


def _check_color(color: str) -> str:
    if not _COLOR_RE.match(color):
        raise ValidationError(f"colour must look like #a1b2c3, got '{color}'")
    return color.lower()


def get_categories() -> list[Category]:
    with db.get_db() as conn:
        cursor = conn.execute(
            f"SELECT {_CATEGORY_COLS} FROM categories ORDER BY sort_order, name"  # noqa: S608
        )
        return [row_to_category(row) for row in cursor.fetchall()]


def get_category(category_id: str) -> Category | None:
    with db.get_db() as conn:
        row = conn.execute(
            f"SELECT {_CATEGORY_COLS} FROM categories WHERE id = ?",  # noqa: S608
            (category_id,),
        ).fetchone()
    return row_to_category(row) if row else None


def find_category(ref: str) -> Category | None:
    return find_in_pool(ref, get_categories())


def add_category(name: str, color: str | None = None) -> str:
    """Append a category after the existing ones."""
    if not name.strip():
        raise ValidationError("category name cannot be empty")
    category_id = str(uuid.uuid4())
    with db.get_db() as conn:
        row = conn.execute("SELECT COALESCE(MAX(sort_order), -1) FROM categories").fetchone()
        conn.execute(
            "INSERT INTO categories (id, name, color, sort_order) VALUES (?, ?, ?, ?)",
            (category_id, name.strip(), _check_color(color) if color else random_color(), row[0] + 1),
        )
    return category_id


def update_category(
    category_id: str, name: str | Unset = UNSET, color: str | Unset = UNSET
) -> Category:
    updates: dict[str, object] = {}
    if name is not UNSET:
        if not name.strip():
            raise ValidationError("category name cannot be empty")
        updates["name"] = name.strip()
    if color is not UNSET:
        updates["color"] = _check_color(color)
    if updates:
        set_clauses = ", ".join(f"{k} = ?" for k in updates)
        with db.get_db() as conn:
            conn.execute(
                f"UPDATE categories SET {set_clauses} WHERE id = ?",  # noqa: S608
                (*updates.values(), category_id),
            )
    category = get_category(category_id)
    if not category:
        raise NotFoundError("category", category_id)
    return category


def delete_category(category_id: str) -> None:
    """Delete a category; its tasks become uncategorised."""
    with db.get_db() as conn:
        cursor = conn.execute("DELETE FROM categories WHERE id = ?", (category_id,))
        if cursor.rowcount == 0:
            raise NotFoundError("category", category_id)


def move_category(category_id: str, position: int) -> list[Category]:
    """Move a category to a 0-based position and renumber sort_order densely."""
    ordered = get_categories()
    current = next((c for c in ordered if c.id == category_id), None)
    if not current:
        raise NotFoundError("category", category_id)
    ordered.remove(current)
    position = max(0, min(position, len(ordered)))
    ordered.insert(position, current)
    with db.get_db() as conn:
        try:
            for index, category in enumerate(ordered):
                conn.execute(
                    "UPDATE categories SET sort_order = ? WHERE id = ?", (index, category.id)
                )
        except sqlite3.Error as e:
            raise ValidationError(f"Failed to reorder categories: {e}") from e
    return get_categories()


# ── cli ──────────────────────────────────────────────────────────────────────


def _format_category(category: Category) -> str:
    swatch = ansi.hex_color("●", category.color)
    meta = f"{category.color} [{category.id[:8]}]" if category.color else f"[{category.id[:8]}]"
    return f"{swatch} {category.name} {ansi.muted(meta)}"


@cli("cadence category", name="ls", default=True)
def ls() -> None:
    """List categories"""
    categories = get_categories()
    if not categories:
        echo("no categories")
        return
    for category in categories:
        echo(_format_category(category))


@cli("cadence category", name="add")
def add(name: list[str], color: str | None = None) -> None:
    """Add category"""
    category = get_category(add_category(" ".join(name), color))
    if category:
        echo(f"added: {_format_category(category)}")


@cli("cadence category", name="rename")
def rename(ref: str, name: list[str]) -> None:
    """Rename category"""
    from .lib.resolve import resolve_category

    category = resolve_category(ref)
    echo(_format_category(update_category(category.id, name=" ".join(name))))


@cli("cadence category", name="color")
def color(ref: str, value: str) -> None:
    """Recolour category (#rrggbb)"""
    from .lib.resolve import resolve_category

    category = resolve_category(ref)
    echo(_format_category(update_category(category.id, color=value)))


@cli("cadence category", name="move")
def move(ref: str, position: int) -> None:
    """Move category to a 1-based position"""
    from .lib.resolve import resolve_category

    if position < 1:
        raise UsageError("position starts at 1")
    category = resolve_category(ref)
    for c in move_category(category.id, position - 1):
        echo(_format_category(c))


@cli("cadence category", name="rm")
def rm(ref: list[str]) -> None:
    """Delete category (its tasks become uncategorised)"""
    from .lib.resolve import resolve_category

    category = resolve_category(" ".join(ref))
    delete_category(category.id)
    echo(f"deleted: {category.name}")
