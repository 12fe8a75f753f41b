"""Financial transaction records: type enum, model, request, filter and response shapes.

Each transaction belongs to an account and adjusts that account's balance.
Amounts are always positive; the type decides the direction. A transfer is
stored as two linked rows: an expense on the source account and an income
on the destination account.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any

_MAX_DESCRIPTION_LENGTH = 500
_MAX_NOTE_LENGTH = 1000


class TransactionType(str, Enum):
    """Direction of the money flow."""

    INCOME = "income"
    EXPENSE = "expense"
    TRANSFER = "transfer"


def is_valid_transaction_type(value: Any) -> bool:
    """Return True for one of the three recognised transaction types."""
    return value in {member.value for member in TransactionType}


@dataclass
class Transaction:
    """A stored transaction row.

    ``transfer_reference_id`` links the two legs of a transfer and is None
    for plain income and expense rows. ``deleted_at`` marks a soft delete.
    """

    id: int = 0
    user_id: int = 0
    account_id: int = 0
    category_id: int | None = None
    amount: float = 0.0
    type: TransactionType = TransactionType.EXPENSE
    description: str = ""
    note: str = ""
    date: date | None = None
    transfer_reference_id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    deleted_at: datetime | None = None


def _check_text_lengths(description: str, note: str) -> None:
    if len(description) > _MAX_DESCRIPTION_LENGTH:
        raise ValueError(f"description must be at most {_MAX_DESCRIPTION_LENGTH} characters")
    if len(note) > _MAX_NOTE_LENGTH:
        raise ValueError(f"note must be at most {_MAX_NOTE_LENGTH} characters")


@dataclass(frozen=True)
class CreateTransactionRequest:
    """Fields for a new transaction.

    ``to_account_id`` is needed for transfers only; ``date`` is "YYYY-MM-DD".
    The type and date format are checked by the service.
    """

    account_id: int
    amount: float
    type: str
    description: str
    date: str
    to_account_id: int | None = None
    category_id: int | None = None
    note: str = ""

    def __post_init__(self) -> None:
        if not self.account_id:
            raise ValueError("account_id is required")
        if not self.amount or self.amount <= 0:
            raise ValueError("amount must be greater than 0")
        if not self.type:
            raise ValueError("type is required")
        if not self.description:
            raise ValueError("description is required")
        if not self.date:
            raise ValueError("date is required")
        _check_text_lengths(self.description, self.note)


@dataclass(frozen=True)
class UpdateTransactionRequest:
    """Fields that may change on a non-transfer transaction; all optional."""

    category_id: int | None = None
    amount: float = 0.0
    description: str = ""
    note: str = ""
    date: str = ""

    def __post_init__(self) -> None:
        if self.amount and self.amount <= 0:
            raise ValueError("amount must be greater than 0")
        _check_text_lengths(self.description, self.note)


@dataclass(frozen=True)
class TransactionFilter:
    """Optional list filters; a field left as None (or empty) is not applied."""

    account_id: int | None = None
    category_id: int | None = None
    type: TransactionType | str = ""
    date_from: date | None = None
    date_to: date | None = None
    min_amount: float | None = None
    max_amount: float | None = None
    page: int = 1
    limit: int = 20


@dataclass(frozen=True)
class Pagination:
    """Paging metadata returned with every list."""

    page: int
    limit: int
    total: int
    total_pages: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "page": self.page,
            "limit": self.limit,
            "total": self.total,
            "total_pages": self.total_pages,
        }


def _isoformat(moment: date | None) -> str | None:
    return None if moment is None else moment.isoformat()


@dataclass(frozen=True)
class TransactionResponse:
    """The client-facing shape of one transaction."""

    id: int
    user_id: int
    account_id: int
    category_id: int | None
    amount: float
    type: TransactionType
    description: str
    note: str
    date: date | None
    transfer_reference_id: int | None
    created_at: datetime | None
    updated_at: datetime | None

    @classmethod
    def from_transaction(cls, transaction: Transaction) -> TransactionResponse:
        return cls(
            id=transaction.id,
            user_id=transaction.user_id,
            account_id=transaction.account_id,
            category_id=transaction.category_id,
            amount=transaction.amount,
            type=transaction.type,
            description=transaction.description,
            note=transaction.note,
            date=transaction.date,
            transfer_reference_id=transaction.transfer_reference_id,
            created_at=transaction.created_at,
            updated_at=transaction.updated_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "account_id": self.account_id,
            "category_id": self.category_id,
            "amount": self.amount,
            "type": TransactionType(self.type).value,
            "description": self.description,
            "note": self.note,
            "date": _isoformat(self.date),
            "transfer_reference_id": self.transfer_reference_id,
            "created_at": _isoformat(self.created_at),
            "updated_at": _isoformat(self.updated_at),
        }


@dataclass(frozen=True)
class TransactionListResponse:
    """One page of transactions with its paging metadata."""

    transactions: list[TransactionResponse] = field(default_factory=list)
    pagination: Pagination = field(default_factory=lambda: Pagination(1, 20, 0, 1))

    def to_dict(self) -> dict[str, Any]:
        return {
            "transactions": [item.to_dict() for item in self.transactions],
            "pagination": self.pagination.to_dict(),
        }