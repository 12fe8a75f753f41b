from datetime import date

import pytest

from arthaledger.database import RecordNotFoundError, connect
from arthaledger.transaction_store import TransactionStore, build_pagination
from arthaledger.transactions import Transaction, TransactionFilter, TransactionType


@pytest.fixture
def store():
    connection = connect()
    transaction_store = TransactionStore(connection)
    transaction_store.create_schema()
    yield transaction_store
    connection.close()


def make(**overrides):
    fields = dict(
        user_id=1,
        account_id=1,
        amount=100.0,
        type=TransactionType.EXPENSE,
        description="Swiggy",
        date=date(2024, 1, 15),
    )
    fields.update(overrides)
    return Transaction(**fields)


def test_create_assigns_id_and_timestamps(store):
    created = store.create(make())
    assert created.id > 0
    assert created.created_at is not None
    assert created.updated_at == created.created_at


def test_find_round_trip(store):
    created = store.create(make(category_id=7, note="dinner"))
    found = store.find_by_id_and_user_id(created.id, 1)
    assert found.id == created.id
    assert found.category_id == 7
    assert found.note == "dinner"
    assert found.amount == 100.0
    assert found.type is TransactionType.EXPENSE
    assert found.date == date(2024, 1, 15)
    assert found.deleted_at is None


def test_find_wrong_user_raises(store):
    created = store.create(make())
    with pytest.raises(RecordNotFoundError):
        store.find_by_id_and_user_id(created.id, 2)


def test_create_pair_links_both_legs(store):
    source = make(account_id=1, type=TransactionType.EXPENSE)
    dest = make(account_id=2, type=TransactionType.INCOME)
    store.create_pair(source, dest)
    assert source.transfer_reference_id == dest.id
    assert dest.transfer_reference_id == source.id
    stored_source = store.find_by_id_and_user_id(source.id, 1)
    stored_dest = store.find_by_id_and_user_id(dest.id, 1)
    assert stored_source.transfer_reference_id == dest.id
    assert stored_dest.transfer_reference_id == source.id


def test_find_linked_transfer(store):
    source, dest = make(), make(account_id=2, type=TransactionType.INCOME)
    store.create_pair(source, dest)
    linked = store.find_linked_transfer(source.transfer_reference_id)
    assert linked.id == dest.id
    assert store.find_linked_transfer(9999) is None


def test_list_scoped_to_user_with_total(store):
    store.create(make())
    store.create(make())
    store.create(make(user_id=2))
    rows, total = store.list(1, TransactionFilter())
    assert total == 2
    assert {row.user_id for row in rows} == {1}


def test_list_orders_newest_date_first(store):
    store.create(make(date=date(2024, 1, 1)))
    store.create(make(date=date(2024, 3, 1)))
    store.create(make(date=date(2024, 2, 1)))
    rows, _ = store.list(1)
    dates = [row.date for row in rows]
    assert dates == sorted(dates, reverse=True)


def test_list_filters(store):
    store.create(make(account_id=1, type=TransactionType.INCOME, amount=1000.0, category_id=3))
    store.create(make(account_id=2, amount=50.0, date=date(2024, 2, 10)))
    store.create(make(account_id=2, amount=500.0, date=date(2024, 3, 10)))

    assert store.list(1, TransactionFilter(account_id=2))[1] == 2
    assert store.list(1, TransactionFilter(category_id=3))[1] == 1
    assert store.list(1, TransactionFilter(type=TransactionType.INCOME))[1] == 1
    assert store.list(1, TransactionFilter(type="expense"))[1] == 2
    assert store.list(1, TransactionFilter(date_from=date(2024, 2, 1)))[1] == 2
    assert store.list(1, TransactionFilter(date_to=date(2024, 2, 10)))[1] == 2
    assert store.list(1, TransactionFilter(min_amount=500.0))[1] == 2
    assert store.list(1, TransactionFilter(max_amount=500.0))[1] == 2
    rows, total = store.list(1, TransactionFilter(min_amount=100.0, max_amount=600.0))
    assert total == 1
    assert rows[0].amount == 500.0


def test_list_paginates(store):
    for day in range(1, 6):
        store.create(make(date=date(2024, 1, day)))
    first, total = store.list(1, TransactionFilter(page=1, limit=2))
    second, _ = store.list(1, TransactionFilter(page=2, limit=2))
    third, _ = store.list(1, TransactionFilter(page=3, limit=2))
    assert total == 5
    assert len(first) == 2 and len(second) == 2 and len(third) == 1
    ids = [row.id for row in first + second + third]
    assert len(set(ids)) == 5


def test_list_clamps_limit(store):
    for _ in range(105):
        store.create(make())
    rows, total = store.list(1, TransactionFilter(limit=500))
    assert total == 105
    assert len(rows) == 100


def test_update_changes_only_given_fields(store):
    created = store.create(make(note="old"))
    store.update(created.id, 1, {"amount": 75.5, "date": date(2024, 2, 1)})
    found = store.find_by_id_and_user_id(created.id, 1)
    assert found.amount == 75.5
    assert found.date == date(2024, 2, 1)
    assert found.note == "old"
    assert found.updated_at >= created.updated_at


def test_update_wrong_user_raises(store):
    created = store.create(make())
    with pytest.raises(RecordNotFoundError):
        store.update(created.id, 2, {"note": "x"})


def test_update_rejects_unknown_column(store):
    created = store.create(make())
    with pytest.raises(ValueError):
        store.update(created.id, 1, {"user_id": 2})


def test_delete_is_soft_and_hides_row(store):
    created = store.create(make())
    store.delete(created.id, 1)
    with pytest.raises(RecordNotFoundError):
        store.find_by_id_and_user_id(created.id, 1)
    assert store.list(1)[1] == 0
    assert store.find_linked_transfer(created.id) is None
    with pytest.raises(RecordNotFoundError):
        store.delete(created.id, 1)


def test_atomic_rolls_back_on_error(store):
    with pytest.raises(RuntimeError):
        with store.atomic():
            created = store.create(make())
            raise RuntimeError("boom")
    with pytest.raises(RecordNotFoundError):
        store.find_by_id_and_user_id(created.id, 1)


def test_build_pagination_has_at_least_one_page():
    pagination = build_pagination(1, 20, 0)
    assert pagination.total_pages == 1
    assert pagination.total == 0


def test_build_pagination_defaults_limit():
    assert build_pagination(2, 0, 45).limit == 20


@pytest.mark.parametrize("total,limit", [(45, 20), (40, 20), (1, 100), (101, 100)])
def test_build_pagination_covers_total(total, limit):
    pagination = build_pagination(1, limit, total)
    assert pagination.total_pages * limit >= total
    assert (pagination.total_pages - 1) * limit < total