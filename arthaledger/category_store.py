"""SQLite storage for categories.

Listing returns the system categories (no owner) together with the
requesting user's own, so the client gets one combined list.
"""

from __future__ import annotations

import sqlite3
from datetime import datetime, timezone

from arthaledger.categories import Category, CategoryType
from arthaledger.database import RecordNotFoundError

_COLUMNS = "id, user_id, name, type, icon, color, is_system, created_at, updated_at"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _to_text(moment: datetime) -> str:
    return moment.isoformat()


def _row_to_category(row: sqlite3.Row) -> Category:
    return Category(
        id=row["id"],
        user_id=row["user_id"],
        name=row["name"],
        type=CategoryType(row["type"]),
        icon=row["icon"],
        color=row["color"],
        is_system=bool(row["is_system"]),
        created_at=datetime.fromisoformat(row["created_at"]),
        updated_at=datetime.fromisoformat(row["updated_at"]),
    )


class CategoryStore:
    """Data access for the ``categories`` table."""

    def __init__(self, connection: sqlite3.Connection) -> None:
        self._connection = connection

    def create_schema(self) -> None:
        """Create the table and its index if they do not exist yet."""
        self._connection.execute(
            """
            CREATE TABLE IF NOT EXISTS categories (
                id         INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id    INTEGER,
                name       VARCHAR(100) NOT NULL,
                type       VARCHAR(20)  NOT NULL CHECK (type IN ('income', 'expense')),
                icon       VARCHAR(50)  NOT NULL DEFAULT '',
                color      VARCHAR(20)  NOT NULL DEFAULT '',
                is_system  INTEGER      NOT NULL DEFAULT 0,
                created_at TEXT         NOT NULL,
                updated_at TEXT         NOT NULL
            )
            """
        )
        self._connection.execute(
            "CREATE INDEX IF NOT EXISTS idx_categories_user_id ON categories (user_id)"
        )

    def create(self, category: Category) -> Category:
        """Insert the category, filling in its id and timestamps."""
        now = _now()
        if category.created_at is None:
            category.created_at = now
        if category.updated_at is None:
            category.updated_at = now

        cursor = self._connection.execute(
            f"INSERT INTO categories ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                category.id or None,
                category.user_id,
                category.name,
                CategoryType(category.type).value,
                category.icon,
                category.color,
                int(category.is_system),
                _to_text(category.created_at),
                _to_text(category.updated_at),
            ),
        )
        category.id = cursor.lastrowid
        return category

    def find_by_id(self, category_id: int) -> Category:
        """The category with this id, whoever owns it."""
        row = self._connection.execute(
            f"SELECT {_COLUMNS} FROM categories WHERE id = ? LIMIT 1", (category_id,)
        ).fetchone()
        if row is None:
            raise RecordNotFoundError(f"category {category_id} not found")
        return _row_to_category(row)

    def list_by_user_id(self, user_id: int) -> list[Category]:
        """System categories and the user's own, ordered by type then name."""
        rows = self._connection.execute(
            f"SELECT {_COLUMNS} FROM categories "
            "WHERE user_id IS NULL OR user_id = ? "
            "ORDER BY type ASC, name ASC",
            (user_id,),
        )
        return [_row_to_category(row) for row in rows]

    def list_by_user_id_and_type(
        self, user_id: int, category_type: CategoryType | str
    ) -> list[Category]:
        """Like :meth:`list_by_user_id`, limited to one type and ordered by name."""
        rows = self._connection.execute(
            f"SELECT {_COLUMNS} FROM categories "
            "WHERE (user_id IS NULL OR user_id = ?) AND type = ? "
            "ORDER BY name ASC",
            (user_id, CategoryType(category_type).value),
        )
        return [_row_to_category(row) for row in rows]

    def update(self, category: Category) -> Category:
        """Save every field of the category; insert it if the row is gone."""
        category.updated_at = _now()
        if category.created_at is None:
            category.created_at = category.updated_at

        cursor = self._connection.execute(
            "UPDATE categories SET user_id = ?, name = ?, type = ?, icon = ?, color = ?, "
            "is_system = ?, created_at = ?, updated_at = ? WHERE id = ?",
            (
                category.user_id,
                category.name,
                CategoryType(category.type).value,
                category.icon,
                category.color,
                int(category.is_system),
                _to_text(category.created_at),
                _to_text(category.updated_at),
                category.id,
            ),
        )
        if cursor.rowcount == 0:
            return self.create(category)
        return category

    def delete(self, category_id: int) -> None:
        """Remove the category row permanently."""
        self._connection.execute("DELETE FROM categories WHERE id = ?", (category_id,))