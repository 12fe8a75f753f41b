"""User-defined categorization rules: model, request/response shapes and service.

Each rule maps a keyword to a category. When a transaction is created
without a category, the user's rules are matched against its description
and the best match supplies the category.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol

from arthaledger import categorizer
from arthaledger.database import RecordNotFoundError

_MAX_KEYWORD_LENGTH = 100
_UNIQUE_VIOLATION_MARKERS = ("23505", "unique constraint", "duplicate key")


@dataclass
class Rule:
    """A stored rule: descriptions containing ``keyword`` get ``category_id``.

    A higher priority wins; ties go to the older rule (lower id).
    """

    id: int = 0
    user_id: int = 0
    category_id: int = 0
    keyword: str = ""
    priority: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class CreateRuleRequest:
    """Fields for a new rule. Keywords match case-insensitively."""

    category_id: int
    keyword: str
    priority: int = 0

    def __post_init__(self) -> None:
        if not self.category_id:
            raise ValueError("category_id is required")
        if not self.keyword:
            raise ValueError("keyword is required")
        if len(self.keyword) > _MAX_KEYWORD_LENGTH:
            raise ValueError(f"keyword must be at most {_MAX_KEYWORD_LENGTH} characters")


@dataclass(frozen=True)
class RuleResponse:
    """The client-facing shape of one rule."""

    id: int
    category_id: int
    keyword: str
    priority: int
    created_at: datetime | None

    @classmethod
    def from_rule(cls, rule: Rule) -> RuleResponse:
        return cls(
            id=rule.id,
            category_id=rule.category_id,
            keyword=rule.keyword,
            priority=rule.priority,
            created_at=rule.created_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "category_id": self.category_id,
            "keyword": self.keyword,
            "priority": self.priority,
            "created_at": None if self.created_at is None else self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class RuleListResponse:
    """A list of rules with its length."""

    rules: list[RuleResponse] = field(default_factory=list)
    total: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"rules": [rule.to_dict() for rule in self.rules], "total": self.total}


class RuleError(Exception):
    """Base class for rule service errors."""

    default_message = "rule error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)


class RuleNotFoundError(RuleError):
    default_message = "rule not found"


class DuplicateKeywordError(RuleError):
    default_message = "a rule with this keyword already exists"


def is_unique_violation(error: BaseException | None) -> bool:
    """Whether the error reports a unique-constraint violation from the database."""
    if error is None:
        return False
    message = str(error).lower()
    return any(marker in message for marker in _UNIQUE_VIOLATION_MARKERS)


class _RuleRepository(Protocol):
    def create(self, rule: Rule) -> Any: ...

    def find_by_id_and_user_id(self, rule_id: int, user_id: int) -> Rule: ...

    def list_by_user_id(self, user_id: int) -> list[Rule]: ...

    def list_as_categorizer(self, user_id: int) -> list[categorizer.Rule]: ...

    def delete(self, rule_id: int) -> Any: ...


class RuleService:
    """Business rules for categorization rules on top of a repository."""

    def __init__(self, repo: _RuleRepository) -> None:
        self._repo = repo

    def create(self, user_id: int, request: CreateRuleRequest) -> RuleResponse:
        """Store a new rule for the user; a repeated keyword is rejected."""
        rule = Rule(
            user_id=user_id,
            category_id=request.category_id,
            keyword=request.keyword,
            priority=request.priority,
        )
        try:
            self._repo.create(rule)
        except Exception as exc:
            if is_unique_violation(exc):
                raise DuplicateKeywordError() from exc
            raise
        return RuleResponse.from_rule(rule)

    def list(self, user_id: int) -> RuleListResponse:
        """All the user's rules, highest priority first."""
        found = list(self._repo.list_by_user_id(user_id) or [])
        return RuleListResponse(
            rules=[RuleResponse.from_rule(rule) for rule in found],
            total=len(found),
        )

    def delete(self, user_id: int, rule_id: int) -> None:
        """Remove a rule the user owns."""
        try:
            rule = self._repo.find_by_id_and_user_id(rule_id, user_id)
        except RecordNotFoundError as exc:
            raise RuleNotFoundError() from exc
        if rule is None:
            raise RuleNotFoundError()
        self._repo.delete(rule_id)

    def categorizer_rules(self, user_id: int) -> list[categorizer.Rule]:
        """The user's rules in the shape the categorizer expects."""
        return list(self._repo.list_as_categorizer(user_id) or [])