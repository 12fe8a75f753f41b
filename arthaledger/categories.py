"""Income and expense categories: model, request/response shapes and service.

System categories have no owner and are read-only. Users may create, update
and delete their own categories; other users' categories are reported as not
found so ids cannot be enumerated.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Protocol

_MAX_NAME_LENGTH = 100


class CategoryType(str, Enum):
    """A category applies to income or to expenses; transfers have none."""

    INCOME = "income"
    EXPENSE = "expense"


def is_valid_category_type(value: Any) -> bool:
    """Return True when the value is one of the allowed category types."""
    return value in (CategoryType.INCOME.value, CategoryType.EXPENSE.value)


@dataclass
class Category:
    """A stored category. ``user_id`` is None for system categories."""

    id: int = 0
    user_id: int | None = None
    name: str = ""
    type: CategoryType = CategoryType.EXPENSE
    icon: str = ""
    color: str = ""
    is_system: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None


def _check_name_length(name: str) -> None:
    if len(name) > _MAX_NAME_LENGTH:
        raise ValueError(f"name must be at most {_MAX_NAME_LENGTH} characters")


@dataclass(frozen=True)
class CreateCategoryRequest:
    """Fields for a new user category. The type is checked by the service."""

    name: str
    type: str
    icon: str = ""
    color: str = ""

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("name is required")
        if not self.type:
            raise ValueError("type is required")
        _check_name_length(self.name)


@dataclass(frozen=True)
class UpdateCategoryRequest:
    """Fields that may change on a user category; type and owner are fixed."""

    name: str = ""
    icon: str = ""
    color: str = ""

    def __post_init__(self) -> None:
        _check_name_length(self.name)


def _isoformat(moment: datetime | None) -> str | None:
    return None if moment is None else moment.isoformat()


@dataclass(frozen=True)
class CategoryResponse:
    """The client-facing shape of one category."""

    id: int
    user_id: int | None
    name: str
    type: CategoryType
    icon: str
    color: str
    is_system: bool
    created_at: datetime | None
    updated_at: datetime | None

    @classmethod
    def from_category(cls, category: Category) -> CategoryResponse:
        return cls(
            id=category.id,
            user_id=category.user_id,
            name=category.name,
            type=category.type,
            icon=category.icon,
            color=category.color,
            is_system=category.is_system,
            created_at=category.created_at,
            updated_at=category.updated_at,
        )

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready mapping; empty icon and color are left out."""
        data: dict[str, Any] = {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "type": CategoryType(self.type).value,
        }
        if self.icon:
            data["icon"] = self.icon
        if self.color:
            data["color"] = self.color
        data["is_system"] = self.is_system
        data["created_at"] = _isoformat(self.created_at)
        data["updated_at"] = _isoformat(self.updated_at)
        return data


@dataclass(frozen=True)
class CategoryListResponse:
    """A list of categories with its length."""

    categories: list[CategoryResponse] = field(default_factory=list)
    total: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "categories": [category.to_dict() for category in self.categories],
            "total": self.total,
        }


class CategoryError(Exception):
    """Base class for category service errors."""

    default_message = "category error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)


class CategoryNotFoundError(CategoryError):
    default_message = "category not found"


class SystemCategoryError(CategoryError):
    default_message = "system categories cannot be modified or deleted"


class InvalidCategoryTypeError(CategoryError):
    default_message = "category type must be 'income' or 'expense'"


class NoUpdatesError(CategoryError):
    default_message = "no fields to update"


class _CategoryRepository(Protocol):
    def create(self, category: Category) -> Any: ...

    def find_by_id(self, category_id: int) -> Category: ...

    def list_by_user_id(self, user_id: int) -> list[Category]: ...

    def list_by_user_id_and_type(
        self, user_id: int, category_type: CategoryType
    ) -> list[Category]: ...

    def update(self, category: Category) -> Any: ...

    def delete(self, category_id: int) -> Any: ...


class CategoryService:
    """Business rules for categories on top of a repository.

    ``repo.create`` is expected to assign the id and timestamps on the
    category it is given; ``repo.find_by_id`` raises when there is no row.
    """

    def __init__(self, repo: _CategoryRepository) -> None:
        self._repo = repo

    def create(self, user_id: int, request: CreateCategoryRequest) -> CategoryResponse:
        """Create a category owned by ``user_id``."""
        if not is_valid_category_type(request.type):
            raise InvalidCategoryTypeError()

        category = Category(
            user_id=user_id,
            name=request.name,
            type=CategoryType(request.type),
            icon=request.icon,
            color=request.color,
            is_system=False,
        )
        self._repo.create(category)
        return CategoryResponse.from_category(category)

    def list(self, user_id: int, category_type: str = "") -> CategoryListResponse:
        """System categories plus the user's own, optionally of one type only."""
        if category_type:
            if not is_valid_category_type(category_type):
                raise InvalidCategoryTypeError()
            found = self._repo.list_by_user_id_and_type(user_id, CategoryType(category_type))
        else:
            found = self._repo.list_by_user_id(user_id)

        found = list(found or [])
        return CategoryListResponse(
            categories=[CategoryResponse.from_category(category) for category in found],
            total=len(found),
        )

    def get_by_id(self, user_id: int, category_id: int) -> CategoryResponse:
        """A system category or one the user owns."""
        category = self._find(category_id)
        if category.user_id is not None and category.user_id != user_id:
            raise CategoryNotFoundError()
        return CategoryResponse.from_category(category)

    def update(
        self, user_id: int, category_id: int, request: UpdateCategoryRequest
    ) -> CategoryResponse:
        """Change the name, icon or color of a category the user owns."""
        category = self._find_owned(user_id, category_id)

        changed = False
        if request.name and request.name != category.name:
            category.name = request.name
            changed = True
        if request.icon != category.icon:
            category.icon = request.icon
            changed = True
        if request.color != category.color:
            category.color = request.color
            changed = True
        if not changed:
            raise NoUpdatesError()

        self._repo.update(category)
        return CategoryResponse.from_category(category)

    def delete(self, user_id: int, category_id: int) -> None:
        """Remove a category the user owns."""
        self._find_owned(user_id, category_id)
        self._repo.delete(category_id)

    def _find(self, category_id: int) -> Category:
        # Any lookup failure is reported as not found, whatever its cause.
        try:
            category = self._repo.find_by_id(category_id)
        except Exception as exc:
            raise CategoryNotFoundError() from exc
        if category is None:
            raise CategoryNotFoundError()
        return category

    def _find_owned(self, user_id: int, category_id: int) -> Category:
        category = self._find(category_id)
        if category.is_system:
            raise SystemCategoryError()
        if category.user_id is None or category.user_id != user_id:
            raise CategoryNotFoundError()
        return category