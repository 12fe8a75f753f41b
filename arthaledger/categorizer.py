"""Keyword rules engine that picks a category for a transaction description.

Matching is a case-insensitive substring search. When several rules match,
the highest priority wins; ties go to the rule with the lowest id (the one
created first). The engine is pure: no database, no I/O.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass


@dataclass(frozen=True)
class Rule:
    """The fields the engine needs to match one keyword to a category."""

    id: int
    keyword: str
    category_id: int
    priority: int = 0


def categorize(description: str, rules: Iterable[Rule] | None) -> int | None:
    """Return the category id of the best-matching rule, or None if none match."""
    if not description or not rules:
        return None

    lowered = description.lower()
    matches = (rule for rule in rules if rule.keyword.lower() in lowered)
    best = max(matches, key=lambda rule: (rule.priority, -rule.id), default=None)
    return None if best is None else best.category_id