"""SQLite aggregation queries behind the reports.

Reads the ``transactions``, ``categories`` and ``accounts`` tables; soft-deleted
transactions (``deleted_at`` set) are left out everywhere.
"""

from __future__ import annotations

import sqlite3
from calendar import monthrange
from datetime import date, datetime, timezone

from arthaledger.reports import CategoryBreakdown, ExportRow, MonthlySummary, TrendPoint

_UNCATEGORIZED = "Uncategorized"


def round_two(value: float) -> float:
    """Round to two decimal places, halves away from zero."""
    shifted = value * 100
    shifted += -0.5 if shifted < 0 else 0.5
    return int(shifted) / 100


def _month_bounds(year: int, month: int) -> tuple[str, str]:
    start = date(year, month, 1)
    end = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
    return start.isoformat(), end.isoformat()


def _window_start(now: datetime, months: int) -> date:
    """First day of the month ``months - 1`` months before ``now``.

    A day that does not exist in the target month overflows into the
    following month, as calendar arithmetic on the full date would.
    """
    index = now.year * 12 + (now.month - 1) - (months - 1)
    year, month_zero = divmod(index, 12)
    month = month_zero + 1
    if now.day > monthrange(year, month)[1]:
        if month == 12:
            year, month = year + 1, 1
        else:
            month += 1
    return date(year, month, 1)


def _to_date(value: object) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


class ReportStore:
    """Read-only report queries over a database connection."""

    def __init__(self, connection: sqlite3.Connection) -> None:
        self._connection = connection

    def _sum_of_type(self, user_id: int, kind: str, start: str, end: str) -> float:
        row = self._connection.execute(
            "SELECT COALESCE(SUM(amount), 0) FROM transactions "
            "WHERE user_id = ? AND type = ? AND deleted_at IS NULL "
            "AND date >= ? AND date < ?",
            (user_id, kind, start, end),
        ).fetchone()
        return float(row[0])

    def get_monthly_summary(self, user_id: int, year: int, month: int) -> MonthlySummary:
        """Income and expense totals plus the expense breakdown by category."""
        start, end = _month_bounds(year, month)
        total_income = self._sum_of_type(user_id, "income", start, end)
        total_expense = self._sum_of_type(user_id, "expense", start, end)

        rows = self._connection.execute(
            "SELECT t.category_id AS category_id, c.name AS category_name, "
            "COALESCE(SUM(t.amount), 0) AS amount, COUNT(*) AS count "
            "FROM transactions t LEFT JOIN categories c ON c.id = t.category_id "
            "WHERE t.user_id = ? AND t.type = 'expense' AND t.deleted_at IS NULL "
            "AND t.date >= ? AND t.date < ? "
            "GROUP BY t.category_id, c.name "
            "ORDER BY SUM(t.amount) DESC",
            (user_id, start, end),
        )

        breakdown = []
        for row in rows:
            amount = float(row["amount"])
            share = amount / total_expense * 100 if total_expense > 0 else 0.0
            name = row["category_name"]
            breakdown.append(
                CategoryBreakdown(
                    category_id=row["category_id"],
                    category_name=_UNCATEGORIZED if name is None else name,
                    amount=amount,
                    percentage=round_two(share),
                    transaction_count=row["count"],
                )
            )

        return MonthlySummary(
            year=year,
            month=month,
            total_income=round_two(total_income),
            total_expense=round_two(total_expense),
            net_savings=round_two(total_income - total_expense),
            by_category=breakdown,
        )

    def get_trend(self, user_id: int, months: int) -> list[TrendPoint]:
        """One point per month with activity in the window, oldest first."""
        window_start = _window_start(datetime.now(timezone.utc), months)
        rows = self._connection.execute(
            "SELECT CAST(strftime('%Y', date) AS INTEGER) AS year, "
            "CAST(strftime('%m', date) AS INTEGER) AS month, "
            "COALESCE(SUM(CASE WHEN type = 'income' THEN amount ELSE 0 END), 0) AS income, "
            "COALESCE(SUM(CASE WHEN type = 'expense' THEN amount ELSE 0 END), 0) AS expense "
            "FROM transactions "
            "WHERE user_id = ? AND type IN ('income', 'expense') "
            "AND deleted_at IS NULL AND date >= ? "
            "GROUP BY year, month ORDER BY year ASC, month ASC",
            (user_id, window_start.isoformat()),
        )
        return [
            TrendPoint(
                year=row["year"],
                month=row["month"],
                income=round_two(float(row["income"])),
                expense=round_two(float(row["expense"])),
                net=round_two(float(row["income"]) - float(row["expense"])),
            )
            for row in rows
        ]

    def get_export_rows(self, user_id: int, year: int, month: int) -> list[ExportRow]:
        """The month's transactions with category and account names, by date."""
        start, end = _month_bounds(year, month)
        rows = self._connection.execute(
            "SELECT t.date AS date, t.description AS description, t.amount AS amount, "
            "t.type AS type, c.name AS category, "
            "COALESCE(a.name, '') AS account_name, COALESCE(t.note, '') AS note "
            "FROM transactions t "
            "LEFT JOIN categories c ON c.id = t.category_id "
            "LEFT JOIN accounts a ON a.id = t.account_id "
            "WHERE t.user_id = ? AND t.deleted_at IS NULL "
            "AND t.date >= ? AND t.date < ? "
            "ORDER BY t.date ASC, t.id ASC",
            (user_id, start, end),
        )
        return [
            ExportRow(
                date=_to_date(row["date"]),
                description=row["description"] or "",
                amount=float(row["amount"]),
                type=row["type"],
                category=row["category"] or "",
                account_name=row["account_name"],
                note=row["note"],
            )
            for row in rows
        ]