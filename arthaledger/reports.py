"""Read-only financial reports built from transactions and categories.

Three reports are offered:

* Monthly summary: income, expenses and net savings for one calendar month,
  with expenses broken down by category and each category's share.
* Spending trends: income, expense and net for each of the last N months.
* Export rows: every transaction of one month, ready to be written as CSV.

Nothing here writes to the database.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Protocol

_MIN_YEAR = 2000
_MAX_YEAR = 2100
_MIN_MONTHS = 1
_MAX_MONTHS = 24


@dataclass(frozen=True)
class CategoryBreakdown:
    """One category's share of a month's expenses.

    ``category_id`` is None and ``category_name`` is "Uncategorized" for
    expenses that have no category.
    """

    category_id: int | None
    category_name: str
    amount: float
    percentage: float
    transaction_count: int


@dataclass(frozen=True)
class MonthlySummary:
    """Income, expenses and net savings for one calendar month."""

    year: int
    month: int
    total_income: float = 0.0
    total_expense: float = 0.0
    net_savings: float = 0.0
    by_category: list[CategoryBreakdown] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class TrendPoint:
    """Income, expense and net for one calendar month."""

    year: int
    month: int
    income: float = 0.0
    expense: float = 0.0
    net: float = 0.0


@dataclass(frozen=True)
class TrendResponse:
    """Trend points ordered oldest to newest, with the window length."""

    months: int
    points: list[TrendPoint] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ExportRow:
    """One transaction as it appears in the CSV export."""

    date: date
    description: str
    amount: float
    type: str
    category: str = ""
    account_name: str = ""
    note: str = ""


class ReportError(Exception):
    """Base class for report parameter errors."""

    default_message = "report error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)


class InvalidYearError(ReportError):
    default_message = "year must be between 2000 and 2100"


class InvalidMonthError(ReportError):
    default_message = "month must be between 1 and 12"


class InvalidMonthsError(ReportError):
    default_message = "months must be between 1 and 24"


class FutureMonthError(ReportError):
    default_message = "cannot generate a report for a future month"


def validate_year_month(year: int, month: int) -> None:
    """Raise unless the year and month are in range and not in the future."""
    if year < _MIN_YEAR or year > _MAX_YEAR:
        raise InvalidYearError()
    if month < 1 or month > 12:
        raise InvalidMonthError()
    now = datetime.now(timezone.utc)
    if year > now.year or (year == now.year and month > now.month):
        raise FutureMonthError()


class _ReportRepository(Protocol):
    def get_monthly_summary(self, user_id: int, year: int, month: int) -> MonthlySummary: ...

    def get_trend(self, user_id: int, months: int) -> list[TrendPoint]: ...

    def get_export_rows(self, user_id: int, year: int, month: int) -> list[ExportRow]: ...


class ReportService:
    """Checks report parameters and asks the repository for the figures."""

    def __init__(self, repo: _ReportRepository) -> None:
        self._repo = repo

    def get_monthly_summary(self, user_id: int, year: int, month: int) -> MonthlySummary:
        """The summary for one past or current calendar month."""
        validate_year_month(year, month)
        return self._repo.get_monthly_summary(user_id, year, month)

    def get_trend(self, user_id: int, months: int) -> TrendResponse:
        """Month-by-month figures for the last ``months`` months (1 to 24)."""
        if months < _MIN_MONTHS or months > _MAX_MONTHS:
            raise InvalidMonthsError()
        points = list(self._repo.get_trend(user_id, months) or [])
        return TrendResponse(months=months, points=points)

    def get_export_rows(self, user_id: int, year: int, month: int) -> list[ExportRow]:
        """Every transaction of one past or current calendar month."""
        validate_year_month(year, month)
        return list(self._repo.get_export_rows(user_id, year, month) or [])