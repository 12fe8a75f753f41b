"""SQLite storage for transactions.

Every query is scoped by user so one user can never touch another's rows.
Deletes are soft: the row gets a ``deleted_at`` stamp and disappears from
all lookups.
"""

from __future__ import annotations

import math
import sqlite3
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any

from arthaledger.database import RecordNotFoundError, atomic
from arthaledger.transactions import (
    Pagination,
    Transaction,
    TransactionFilter,
    TransactionType,
)

_COLUMNS = (
    "id, user_id, account_id, category_id, amount, type, description, note, date, "
    "transfer_reference_id, created_at, updated_at, deleted_at"
)
_UPDATABLE_COLUMNS = frozenset(
    {"account_id", "category_id", "amount", "type", "description", "note", "date"}
)
_DEFAULT_LIMIT = 20
_MAX_LIMIT = 100


def build_pagination(page: int, limit: int, total: int) -> Pagination:
    """Paging metadata for a list; at least one page is always reported."""
    if limit <= 0:
        limit = _DEFAULT_LIMIT
    total_pages = max(1, math.ceil(total / limit))
    return Pagination(page=page, limit=limit, total=total, total_pages=total_pages)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _date_text(value: date | datetime) -> str:
    if isinstance(value, datetime):
        value = value.date()
    return value.isoformat()


def _to_sql(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (date, datetime)):
        return _date_text(value)
    return value


def _parse_moment(text: str | None) -> datetime | None:
    return None if text is None else datetime.fromisoformat(text)


def _row_to_transaction(row: sqlite3.Row) -> Transaction:
    return Transaction(
        id=row["id"],
        user_id=row["user_id"],
        account_id=row["account_id"],
        category_id=row["category_id"],
        amount=float(row["amount"]),
        type=TransactionType(row["type"]),
        description=row["description"],
        note=row["note"],
        date=date.fromisoformat(row["date"][:10]),
        transfer_reference_id=row["transfer_reference_id"],
        created_at=_parse_moment(row["created_at"]),
        updated_at=_parse_moment(row["updated_at"]),
        deleted_at=_parse_moment(row["deleted_at"]),
    )


class TransactionStore:
    """Data access for the ``transactions`` table."""

    def __init__(self, connection: sqlite3.Connection) -> None:
        self._connection = connection

    def create_schema(self) -> None:
        """Create the table and its indexes if they do not exist yet."""
        self._connection.execute(
            """
            CREATE TABLE IF NOT EXISTS transactions (
                id                    INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id               INTEGER     NOT NULL,
                account_id            INTEGER     NOT NULL,
                category_id           INTEGER,
                amount                NUMERIC(15, 2) NOT NULL,
                type                  VARCHAR(20) NOT NULL,
                description           TEXT        NOT NULL DEFAULT '',
                note                  TEXT        NOT NULL DEFAULT '',
                date                  TEXT        NOT NULL,
                transfer_reference_id INTEGER,
                created_at            TEXT        NOT NULL,
                updated_at            TEXT        NOT NULL,
                deleted_at            TEXT
            )
            """
        )
        for column in ("user_id", "account_id", "category_id", "transfer_reference_id", "deleted_at"):
            self._connection.execute(
                f"CREATE INDEX IF NOT EXISTS idx_transactions_{column} ON transactions ({column})"
            )

    @contextmanager
    def atomic(self) -> Iterator[sqlite3.Connection]:
        """Group the store calls in the block into one database transaction."""
        with atomic(self._connection) as connection:
            yield connection

    def create(self, transaction: Transaction) -> Transaction:
        """Insert one row, filling in its id and timestamps."""
        if transaction.date is None:
            raise ValueError("transaction date is required")
        now = _now()
        transaction.created_at = transaction.created_at or now
        transaction.updated_at = transaction.updated_at or now

        cursor = self._connection.execute(
            f"INSERT INTO transactions ({_COLUMNS}) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                transaction.id or None,
                transaction.user_id,
                transaction.account_id,
                transaction.category_id,
                transaction.amount,
                TransactionType(transaction.type).value,
                transaction.description,
                transaction.note,
                _date_text(transaction.date),
                transaction.transfer_reference_id,
                transaction.created_at.isoformat(),
                transaction.updated_at.isoformat(),
                None if transaction.deleted_at is None else transaction.deleted_at.isoformat(),
            ),
        )
        transaction.id = cursor.lastrowid
        return transaction

    def create_pair(self, source: Transaction, dest: Transaction) -> None:
        """Insert both legs of a transfer and link each to the other."""
        with self.atomic():
            self.create(source)
            dest.transfer_reference_id = source.id
            self.create(dest)
            source.transfer_reference_id = dest.id
            self._connection.execute(
                "UPDATE transactions SET transfer_reference_id = ? WHERE id = ?",
                (dest.id, source.id),
            )

    def find_by_id_and_user_id(self, transaction_id: int, user_id: int) -> Transaction:
        """The live transaction with this id if the user owns it."""
        row = self._connection.execute(
            f"SELECT {_COLUMNS} FROM transactions "
            "WHERE id = ? AND user_id = ? AND deleted_at IS NULL LIMIT 1",
            (transaction_id, user_id),
        ).fetchone()
        if row is None:
            raise RecordNotFoundError(f"transaction {transaction_id} not found")
        return _row_to_transaction(row)

    def list(
        self, user_id: int, filters: TransactionFilter | None = None
    ) -> tuple[list[Transaction], int]:
        """One page of the user's transactions and the total number matching."""
        filters = filters or TransactionFilter()
        clauses = ["user_id = ?", "deleted_at IS NULL"]
        params: list[Any] = [user_id]

        conditions = (
            ("account_id = ?", filters.account_id),
            ("category_id = ?", filters.category_id),
            ("type = ?", filters.type or None),
            ("date >= ?", filters.date_from),
            ("date <= ?", filters.date_to),
            ("amount >= ?", filters.min_amount),
            ("amount <= ?", filters.max_amount),
        )
        for clause, value in conditions:
            if value is not None:
                clauses.append(clause)
                params.append(_to_sql(value))
        where = " AND ".join(clauses)

        total = self._connection.execute(
            f"SELECT COUNT(*) FROM transactions WHERE {where}", params
        ).fetchone()[0]

        limit = filters.limit if filters.limit > 0 else _DEFAULT_LIMIT
        limit = min(limit, _MAX_LIMIT)
        page = filters.page if filters.page > 0 else 1
        offset = (page - 1) * limit

        rows = self._connection.execute(
            f"SELECT {_COLUMNS} FROM transactions WHERE {where} "
            "ORDER BY date DESC, created_at DESC LIMIT ? OFFSET ?",
            [*params, limit, offset],
        )
        return [_row_to_transaction(row) for row in rows], total

    def update(self, transaction_id: int, user_id: int, updates: Mapping[str, Any]) -> None:
        """Change only the given columns of one live row the user owns."""
        if not updates:
            raise ValueError("no fields to update")
        unknown = set(updates) - _UPDATABLE_COLUMNS
        if unknown:
            raise ValueError(f"cannot update columns: {', '.join(sorted(unknown))}")

        assignments = ", ".join(f"{column} = ?" for column in updates)
        params = [_to_sql(value) for value in updates.values()]
        cursor = self._connection.execute(
            f"UPDATE transactions SET {assignments}, updated_at = ? "
            "WHERE id = ? AND user_id = ? AND deleted_at IS NULL",
            [*params, _now().isoformat(), transaction_id, user_id],
        )
        if cursor.rowcount == 0:
            raise RecordNotFoundError(f"transaction {transaction_id} not found")

    def delete(self, transaction_id: int, user_id: int) -> None:
        """Soft-delete one live row the user owns."""
        cursor = self._connection.execute(
            "UPDATE transactions SET deleted_at = ? "
            "WHERE id = ? AND user_id = ? AND deleted_at IS NULL",
            (_now().isoformat(), transaction_id, user_id),
        )
        if cursor.rowcount == 0:
            raise RecordNotFoundError(f"transaction {transaction_id} not found")

    def find_linked_transfer(self, reference_id: int) -> Transaction | None:
        """The other leg of a transfer, or None when there is none."""
        row = self._connection.execute(
            f"SELECT {_COLUMNS} FROM transactions "
            "WHERE id = ? AND deleted_at IS NULL LIMIT 1",
            (reference_id,),
        ).fetchone()
        return None if row is None else _row_to_transaction(row)