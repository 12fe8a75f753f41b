"""Business rules for transactions: balances, transfer pairs and ownership.

Every change to a transaction row and the matching account balance change
happen in one database transaction, so either both are saved or neither is.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from contextlib import AbstractContextManager
from datetime import date, datetime
from typing import Any, Protocol

from arthaledger import categorizer
from arthaledger.database import RecordNotFoundError
from arthaledger.transaction_store import build_pagination
from arthaledger.transactions import (
    CreateTransactionRequest,
    Transaction,
    TransactionFilter,
    TransactionListResponse,
    TransactionResponse,
    TransactionType,
    UpdateTransactionRequest,
    is_valid_transaction_type,
)

logger = logging.getLogger(__name__)

_DATE_PATTERN = re.compile(r"\d{4}-\d{2}-\d{2}")


class TransactionError(Exception):
    """Base class for transaction service errors."""

    default_message = "transaction error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)


class TransactionNotFoundError(TransactionError):
    default_message = "transaction not found"


class InvalidTransactionTypeError(TransactionError):
    default_message = "invalid transaction type"


class TransferRequiresToAccountError(TransactionError):
    default_message = "transfer requires to_account_id"


class SameAccountTransferError(TransactionError):
    default_message = "source and destination accounts must be different"


class InvalidDateError(TransactionError):
    default_message = "invalid date format, expected YYYY-MM-DD"


class TransferNotEditableError(TransactionError):
    default_message = "transfer transactions cannot be updated — delete and recreate"


class NoUpdatesError(TransactionError):
    default_message = "no updatable fields provided"


class AccountNotFoundError(TransactionError):
    default_message = "account not found"


class _TransactionRepository(Protocol):
    def atomic(self) -> AbstractContextManager[Any]: ...

    def create(self, transaction: Transaction) -> Any: ...

    def create_pair(self, source: Transaction, dest: Transaction) -> Any: ...

    def find_by_id_and_user_id(self, transaction_id: int, user_id: int) -> Transaction: ...

    def list(
        self, user_id: int, filters: TransactionFilter
    ) -> tuple[list[Transaction], int]: ...

    def update(self, transaction_id: int, user_id: int, updates: dict[str, Any]) -> Any: ...

    def delete(self, transaction_id: int, user_id: int) -> Any: ...

    def find_linked_transfer(self, reference_id: int) -> Transaction | None: ...


class _AccountRepository(Protocol):
    def find_by_id_and_user_id(self, account_id: int, user_id: int) -> Any: ...

    def update_balance(self, account_id: int, delta: float) -> Any: ...


class _RulesProvider(Protocol):
    def categorizer_rules(self, user_id: int) -> Iterable[categorizer.Rule]: ...


def balance_delta(transaction_type: TransactionType | str, amount: float) -> float:
    """What a row contributed to its account balance: expenses debit, others credit."""
    if transaction_type == TransactionType.EXPENSE.value:
        return -amount
    return amount


def _parse_date(text: str) -> date:
    if not _DATE_PATTERN.fullmatch(text or ""):
        raise InvalidDateError()
    try:
        return datetime.strptime(text, "%Y-%m-%d").date()
    except ValueError as exc:
        raise InvalidDateError() from exc


class TransactionService:
    """Creates, lists, updates and deletes transactions for a user.

    ``rules_provider`` may be None, in which case transactions without a
    category are left uncategorized.
    """

    def __init__(
        self,
        repo: _TransactionRepository,
        account_repo: _AccountRepository,
        rules_provider: _RulesProvider | None = None,
    ) -> None:
        self._repo = repo
        self._accounts = account_repo
        self._rules = rules_provider

    def create(self, user_id: int, request: CreateTransactionRequest) -> TransactionResponse:
        """Record a transaction and adjust the account balance with it."""
        if not is_valid_transaction_type(request.type):
            raise InvalidTransactionTypeError()
        when = _parse_date(request.date)
        kind = TransactionType(request.type)

        self._require_account(request.account_id, user_id)
        category_id = self._auto_category(user_id, request)

        if kind is TransactionType.TRANSFER:
            return self._create_transfer(user_id, request, when, category_id)

        transaction = Transaction(
            user_id=user_id,
            account_id=request.account_id,
            category_id=category_id,
            amount=request.amount,
            type=kind,
            description=request.description,
            note=request.note,
            date=when,
        )
        with self._repo.atomic():
            self._repo.create(transaction)
            self._accounts.update_balance(
                request.account_id, balance_delta(kind, request.amount)
            )

        logger.info(
            "Transaction created id=%s type=%s amount=%s",
            transaction.id,
            kind.value,
            transaction.amount,
        )
        return TransactionResponse.from_transaction(transaction)

    def _create_transfer(
        self,
        user_id: int,
        request: CreateTransactionRequest,
        when: date,
        category_id: int | None,
    ) -> TransactionResponse:
        if request.to_account_id is None:
            raise TransferRequiresToAccountError()
        if request.to_account_id == request.account_id:
            raise SameAccountTransferError()
        self._require_account(request.to_account_id, user_id)

        common = dict(
            user_id=user_id,
            category_id=category_id,
            amount=request.amount,
            description=request.description,
            note=request.note,
            date=when,
        )
        source = Transaction(account_id=request.account_id, type=TransactionType.EXPENSE, **common)
        dest = Transaction(account_id=request.to_account_id, type=TransactionType.INCOME, **common)

        with self._repo.atomic():
            self._repo.create_pair(source, dest)
            self._accounts.update_balance(request.account_id, -request.amount)
            self._accounts.update_balance(request.to_account_id, request.amount)

        logger.info(
            "Transfer created source_id=%s dest_id=%s amount=%s",
            source.id,
            dest.id,
            request.amount,
        )
        return TransactionResponse.from_transaction(source)

    def list(self, user_id: int, filters: TransactionFilter | None = None) -> TransactionListResponse:
        """One page of the user's transactions with paging metadata."""
        filters = filters or TransactionFilter()
        found, total = self._repo.list(user_id, filters)
        return TransactionListResponse(
            transactions=[TransactionResponse.from_transaction(item) for item in found or []],
            pagination=build_pagination(filters.page, filters.limit, total),
        )

    def get_by_id(self, transaction_id: int, user_id: int) -> TransactionResponse:
        """A single transaction the user owns."""
        return TransactionResponse.from_transaction(self._find(transaction_id, user_id))

    def update(
        self, transaction_id: int, user_id: int, request: UpdateTransactionRequest
    ) -> TransactionResponse:
        """Patch a non-transfer transaction and correct the account balance."""
        existing = self._find(transaction_id, user_id)
        if existing.transfer_reference_id is not None:
            raise TransferNotEditableError()

        new_amount = request.amount if request.amount > 0 else existing.amount
        sign = -1.0 if existing.type == TransactionType.EXPENSE.value else 1.0
        balance_diff = sign * new_amount - sign * existing.amount

        updates: dict[str, Any] = {}
        if request.amount > 0:
            updates["amount"] = request.amount
        if request.category_id is not None:
            updates["category_id"] = request.category_id
        if request.description:
            updates["description"] = request.description
        if request.note:
            updates["note"] = request.note
        if request.date:
            updates["date"] = _parse_date(request.date)
        if not updates:
            raise NoUpdatesError()

        with self._repo.atomic():
            try:
                self._repo.update(transaction_id, user_id, updates)
            except RecordNotFoundError as exc:
                raise TransactionNotFoundError() from exc
            if balance_diff != 0:
                self._accounts.update_balance(existing.account_id, balance_diff)

        return self.get_by_id(transaction_id, user_id)

    def delete(self, transaction_id: int, user_id: int) -> None:
        """Soft-delete a transaction, and the other leg of a transfer, undoing balances."""
        existing = self._find(transaction_id, user_id)

        with self._repo.atomic():
            self._repo.delete(transaction_id, user_id)
            self._accounts.update_balance(
                existing.account_id, -balance_delta(existing.type, existing.amount)
            )

            if existing.transfer_reference_id is not None:
                linked = self._repo.find_linked_transfer(existing.transfer_reference_id)
                if linked is not None:
                    self._repo.delete(linked.id, user_id)
                    self._accounts.update_balance(
                        linked.account_id, -balance_delta(linked.type, linked.amount)
                    )

        logger.info("Transaction deleted id=%s user_id=%s", transaction_id, user_id)

    def _find(self, transaction_id: int, user_id: int) -> Transaction:
        try:
            found = self._repo.find_by_id_and_user_id(transaction_id, user_id)
        except RecordNotFoundError as exc:
            raise TransactionNotFoundError() from exc
        if found is None:
            raise TransactionNotFoundError()
        return found

    def _require_account(self, account_id: int, user_id: int) -> None:
        try:
            account = self._accounts.find_by_id_and_user_id(account_id, user_id)
        except RecordNotFoundError as exc:
            raise AccountNotFoundError() from exc
        if account is None:
            raise AccountNotFoundError()

    def _auto_category(self, user_id: int, request: CreateTransactionRequest) -> int | None:
        if request.category_id is not None or not request.description or self._rules is None:
            return request.category_id
        try:
            rules = list(self._rules.categorizer_rules(user_id) or [])
        except Exception:
            # Categorization is best effort; a failing rules source is ignored.
            return None
        matched = categorizer.categorize(request.description, rules)
        if matched is not None:
            logger.info(
                "Auto-categorized transaction description=%r category_id=%s",
                request.description,
                matched,
            )
        return matched