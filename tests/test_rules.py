from datetime import datetime, timezone

import pytest

from arthaledger import categorizer
from arthaledger.database import RecordNotFoundError, connect
from arthaledger.rule_store import RuleStore
from arthaledger.rules import (
    CreateRuleRequest,
    DuplicateKeywordError,
    Rule,
    RuleNotFoundError,
    RuleResponse,
    RuleService,
    is_unique_violation,
)


class FakeRuleRepo:
    def __init__(self, create=None, find=None, list_rules=None, list_engine=None):
        self._create = create
        self._find = find
        self._list_rules = list_rules
        self._list_engine = list_engine
        self.deleted = []

    def create(self, rule):
        if self._create is not None:
            return self._create(rule)
        rule.id = 1
        rule.created_at = datetime.now(timezone.utc)
        return rule

    def find_by_id_and_user_id(self, rule_id, user_id):
        if self._find is not None:
            return self._find(rule_id, user_id)
        raise RecordNotFoundError()

    def list_by_user_id(self, user_id):
        if self._list_rules is not None:
            return self._list_rules(user_id)
        return None

    def list_as_categorizer(self, user_id):
        if self._list_engine is not None:
            return self._list_engine(user_id)
        return None

    def delete(self, rule_id):
        self.deleted.append(rule_id)


def test_create_success():
    service = RuleService(FakeRuleRepo())
    resp = service.create(1, CreateRuleRequest(category_id=10, keyword="swiggy", priority=5))
    assert resp.keyword == "swiggy"
    assert resp.category_id == 10
    assert resp.priority == 5


def test_create_duplicate_keyword():
    def fail(_rule):
        raise RuntimeError(
            "ERROR: duplicate key value violates unique constraint (SQLSTATE 23505)"
        )

    service = RuleService(FakeRuleRepo(create=fail))
    with pytest.raises(DuplicateKeywordError):
        service.create(1, CreateRuleRequest(category_id=10, keyword="swiggy"))


def test_create_other_error_propagates():
    def fail(_rule):
        raise RuntimeError("connection refused")

    service = RuleService(FakeRuleRepo(create=fail))
    with pytest.raises(RuntimeError, match="connection refused"):
        service.create(1, CreateRuleRequest(category_id=10, keyword="swiggy"))


def test_create_duplicate_keyword_with_store():
    connection = connect()
    store = RuleStore(connection)
    store.create_schema()
    service = RuleService(store)
    service.create(1, CreateRuleRequest(category_id=10, keyword="swiggy"))
    with pytest.raises(DuplicateKeywordError):
        service.create(1, CreateRuleRequest(category_id=11, keyword="SWIGGY"))
    connection.close()


def test_list_returns_all():
    rows = [
        Rule(id=1, user_id=1, category_id=10, keyword="swiggy", priority=5),
        Rule(id=2, user_id=1, category_id=20, keyword="salary", priority=10),
    ]
    service = RuleService(FakeRuleRepo(list_rules=lambda _user: rows))
    result = service.list(1)
    assert result.total == 2
    assert [rule.keyword for rule in result.rules] == ["swiggy", "salary"]


def test_list_empty():
    result = RuleService(FakeRuleRepo()).list(1)
    assert result.total == 0
    assert result.rules == []


def test_delete_success():
    repo = FakeRuleRepo(find=lambda rule_id, _user: Rule(id=rule_id))
    RuleService(repo).delete(1, 1)
    assert repo.deleted == [1]


def test_delete_not_found():
    repo = FakeRuleRepo()
    with pytest.raises(RuleNotFoundError):
        RuleService(repo).delete(1, 99)
    assert repo.deleted == []


def test_delete_other_error_propagates():
    def fail(_rule_id, _user):
        raise RuntimeError("database is locked")

    with pytest.raises(RuntimeError, match="database is locked"):
        RuleService(FakeRuleRepo(find=fail)).delete(1, 1)


def test_categorizer_rules_returns_slice():
    expected = [
        categorizer.Rule(id=1, keyword="swiggy", category_id=10, priority=5),
        categorizer.Rule(id=2, keyword="salary", category_id=20, priority=10),
    ]
    service = RuleService(FakeRuleRepo(list_engine=lambda _user: expected))
    got = service.categorizer_rules(1)
    assert len(got) == 2
    assert [rule.keyword for rule in got] == ["swiggy", "salary"]


def test_categorizer_rules_empty():
    assert RuleService(FakeRuleRepo()).categorizer_rules(1) == []


@pytest.mark.parametrize(
    "message, expected",
    [
        ("ERROR: duplicate key value violates unique constraint (SQLSTATE 23505)", True),
        ("SQLSTATE 23505", True),
        ("duplicate key", True),
        ("UNIQUE constraint failed: categorization_rules.user_id", True),
        ("connection refused", False),
        ("", False),
    ],
)
def test_is_unique_violation(message, expected):
    assert is_unique_violation(RuntimeError(message)) is expected


def test_is_unique_violation_none():
    assert is_unique_violation(None) is False


def test_create_request_validation():
    with pytest.raises(ValueError):
        CreateRuleRequest(category_id=10, keyword="")
    with pytest.raises(ValueError):
        CreateRuleRequest(category_id=0, keyword="swiggy")
    with pytest.raises(ValueError):
        CreateRuleRequest(category_id=10, keyword="k" * 101)


def test_response_to_dict():
    moment = datetime(2024, 1, 1, tzinfo=timezone.utc)
    resp = RuleResponse.from_rule(
        Rule(id=3, user_id=1, category_id=10, keyword="uber", priority=2, created_at=moment)
    )
    assert resp.to_dict() == {
        "id": 3,
        "category_id": 10,
        "keyword": "uber",
        "priority": 2,
        "created_at": moment.isoformat(),
    }