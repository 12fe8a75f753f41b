"""SQLite storage for categorization rules.

A unique index on (user_id, lower(keyword)) keeps each user's keywords
distinct regardless of case.
"""

from __future__ import annotations

import sqlite3
from datetime import datetime, timezone

from arthaledger import categorizer
from arthaledger.database import RecordNotFoundError
from arthaledger.rules import Rule

_COLUMNS = "id, user_id, category_id, keyword, priority, created_at, updated_at"


def _row_to_rule(row: sqlite3.Row) -> Rule:
    return Rule(
        id=row["id"],
        user_id=row["user_id"],
        category_id=row["category_id"],
        keyword=row["keyword"],
        priority=row["priority"],
        created_at=datetime.fromisoformat(row["created_at"]),
        updated_at=datetime.fromisoformat(row["updated_at"]),
    )


class RuleStore:
    """Data access for the ``categorization_rules`` table."""

    def __init__(self, connection: sqlite3.Connection) -> None:
        self._connection = connection

    def create_schema(self) -> None:
        """Create the table and its indexes if they do not exist yet."""
        self._connection.execute(
            """
            CREATE TABLE IF NOT EXISTS categorization_rules (
                id          INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id     INTEGER      NOT NULL,
                category_id INTEGER      NOT NULL,
                keyword     VARCHAR(100) NOT NULL,
                priority    INTEGER      NOT NULL DEFAULT 0,
                created_at  TEXT         NOT NULL,
                updated_at  TEXT         NOT NULL
            )
            """
        )
        self._connection.execute(
            "CREATE INDEX IF NOT EXISTS idx_categorization_rules_user_id "
            "ON categorization_rules (user_id)"
        )
        self._connection.execute(
            "CREATE UNIQUE INDEX IF NOT EXISTS idx_categorization_rules_user_keyword "
            "ON categorization_rules (user_id, lower(keyword))"
        )

    def create(self, rule: Rule) -> Rule:
        """Insert the rule, filling in its id and timestamps.

        Raises :class:`sqlite3.IntegrityError` when the user already has the keyword.
        """
        now = datetime.now(timezone.utc)
        if rule.created_at is None:
            rule.created_at = now
        if rule.updated_at is None:
            rule.updated_at = now

        cursor = self._connection.execute(
            f"INSERT INTO categorization_rules ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?)",
            (
                rule.id or None,
                rule.user_id,
                rule.category_id,
                rule.keyword,
                rule.priority,
                rule.created_at.isoformat(),
                rule.updated_at.isoformat(),
            ),
        )
        rule.id = cursor.lastrowid
        return rule

    def find_by_id_and_user_id(self, rule_id: int, user_id: int) -> Rule:
        """The rule with this id if the user owns it."""
        row = self._connection.execute(
            f"SELECT {_COLUMNS} FROM categorization_rules "
            "WHERE id = ? AND user_id = ? LIMIT 1",
            (rule_id, user_id),
        ).fetchone()
        if row is None:
            raise RecordNotFoundError(f"rule {rule_id} not found")
        return _row_to_rule(row)

    def list_by_user_id(self, user_id: int) -> list[Rule]:
        """The user's rules ordered by priority descending, then id ascending."""
        rows = self._connection.execute(
            f"SELECT {_COLUMNS} FROM categorization_rules "
            "WHERE user_id = ? ORDER BY priority DESC, id ASC",
            (user_id,),
        )
        return [_row_to_rule(row) for row in rows]

    def list_as_categorizer(self, user_id: int) -> list[categorizer.Rule]:
        """The user's rules reduced to the fields the categorizer matches on."""
        rows = self._connection.execute(
            "SELECT id, keyword, category_id, priority FROM categorization_rules "
            "WHERE user_id = ? ORDER BY priority DESC, id ASC",
            (user_id,),
        )
        return [
            categorizer.Rule(
                id=row["id"],
                keyword=row["keyword"],
                category_id=row["category_id"],
                priority=row["priority"],
            )
            for row in rows
        ]

    def delete(self, rule_id: int) -> None:
        """Remove the rule row permanently."""
        self._connection.execute("DELETE FROM categorization_rules WHERE id = ?", (rule_id,))