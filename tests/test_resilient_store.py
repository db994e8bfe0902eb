# tests/test_resilient_store.py

import logging

import pytest

from autoshop.core.exceptions import StorageUnavailable
from autoshop.models.recommendation import STATUS_ADDED_TO_CART, STATUS_PENDING
from autoshop.storage.memory import MemoryStorage
from autoshop.storage.resilient import ResilientStorage, ResilientStore
from tests.conftest import TEST_USER_ID


class BrokenStorage:
    """Любой вызов падает, как упавшая база."""

    def __init__(self):
        self.calls = []

    def __getattr__(self, name):
        def fail(*args, **kwargs):
            self.calls.append(name)
            raise ConnectionError(f"database is down ({name})")
        return fail


def test_dispatch_uses_primary_when_it_works():
    dispatcher = ResilientStore()
    result = dispatcher.dispatch_result("read", lambda: "primary", lambda: "fallback")
    assert result.value == "primary"
    assert not result.used_fallback
    assert dispatcher.bypass_count == 0


def test_dispatch_falls_back_once_and_reports_it(caplog):
    dispatcher = ResilientStore()
    attempts = []

    def primary():
        attempts.append("primary")
        raise RuntimeError("boom")

    with caplog.at_level(logging.WARNING, logger="autoshop"):
        result = dispatcher.dispatch_result("get_balance", primary, lambda: 42)

    assert result.value == 42
    assert result.used_fallback
    assert attempts == ["primary"]
    assert dispatcher.bypass_count == 1
    assert any("get_balance" in r.getMessage() and r.levelno == logging.WARNING for r in caplog.records)


def test_dispatch_raises_storage_unavailable_when_both_fail(caplog):
    dispatcher = ResilientStore()

    def fallback():
        raise OSError("fallback down")

    with caplog.at_level(logging.ERROR, logger="autoshop"):
        with pytest.raises(StorageUnavailable) as exc_info:
            dispatcher.dispatch("append_transaction", lambda: 1 / 0, fallback)

    assert exc_info.value.operation == "append_transaction"
    assert isinstance(exc_info.value.__cause__, OSError)
    assert any(r.levelno == logging.ERROR for r in caplog.records)


def test_storage_facade_routes_calls_to_fallback():
    primary = BrokenStorage()
    fallback = MemoryStorage()
    store = ResilientStorage(primary=primary, fallback=fallback)

    rec = store.create_recommendation(TEST_USER_ID, 7, "seed", 60)
    assert [r.id for r in store.list_recommendations(TEST_USER_ID)] == [rec.id]
    assert fallback.get_recommendation(rec.id) == rec
    assert primary.calls == ["create_recommendation", "list_recommendations"]
    assert store.dispatcher.bypass_count == 2


def test_dispatch_without_fallback_raises_storage_unavailable(caplog):
    dispatcher = ResilientStore()

    def primary():
        raise ConnectionError("database is down")

    with caplog.at_level(logging.ERROR, logger="autoshop"):
        with pytest.raises(StorageUnavailable) as exc_info:
            dispatcher.dispatch("spend_if_covered", primary, None)

    assert isinstance(exc_info.value.__cause__, ConnectionError)
    assert dispatcher.bypass_count == 0
    assert any("reconciliation" in r.getMessage() for r in caplog.records)


@pytest.mark.parametrize("operation, args", [
    ("append_transaction", (TEST_USER_ID, 25, "admin")),
    ("spend_if_covered", (TEST_USER_ID, 5)),
    ("sum_balance", (TEST_USER_ID,)),
    ("list_transactions", (TEST_USER_ID,)),
])
def test_ledger_operations_never_use_fallback(operation, args):
    fallback = MemoryStorage()
    store = ResilientStorage(primary=BrokenStorage(), fallback=fallback)

    with pytest.raises(StorageUnavailable) as exc_info:
        getattr(store, operation)(*args)

    assert exc_info.value.operation == operation
    assert fallback.list_transactions(TEST_USER_ID) == []
    assert store.dispatcher.bypass_count == 0


def test_fallback_ids_do_not_collide_with_primary(store, sql_storage, memory_storage, mocker):
    """Рекомендация, созданная во время отказа, после восстановления находится по своему id."""
    other_user = TEST_USER_ID + 1
    on_primary = store.create_recommendation(TEST_USER_ID, 1, "a", 60)
    mocker.patch.object(sql_storage, "create_recommendation", side_effect=ConnectionError("database is down"))
    during_outage = store.create_recommendation(other_user, 2, "b", 70)
    mocker.stopall()

    assert during_outage.id < 0
    assert during_outage.id != on_primary.id
    assert store.get_recommendation(on_primary.id).user_id == TEST_USER_ID
    assert store.get_recommendation(during_outage.id).user_id == other_user

    store.update_recommendation_status(during_outage.id, STATUS_ADDED_TO_CART)
    assert memory_storage.get_recommendation(during_outage.id).status == STATUS_ADDED_TO_CART
    assert sql_storage.get_recommendation(on_primary.id).status == STATUS_PENDING


def test_fallback_entity_lookup_fails_cleanly_when_fallback_breaks():
    store = ResilientStorage(primary=MemoryStorage(), fallback=BrokenStorage())
    with pytest.raises(StorageUnavailable) as exc_info:
        store.get_recommendation(-3)
    assert exc_info.value.operation == "get_recommendation"


def test_call_result_exposes_fallback_flag():
    store = ResilientStorage(primary=BrokenStorage(), fallback=MemoryStorage())
    result = store.call_result("list_cart_entries", TEST_USER_ID)
    assert result.value == []
    assert result.used_fallback


def test_memory_fallback_ignores_status_filter():
    """Резервное хранилище отдает все рекомендации, фильтровать должен вызывающий."""
    store = ResilientStorage(primary=BrokenStorage(), fallback=MemoryStorage())
    pending = store.create_recommendation(TEST_USER_ID, 1, "a", 60)
    in_cart = store.create_recommendation(TEST_USER_ID, 2, "b", 70)
    store.update_recommendation_status(in_cart.id, STATUS_ADDED_TO_CART)

    result = store.list_recommendations_by_status(STATUS_ADDED_TO_CART)

    assert {r.id for r in result} == {pending.id, in_cart.id}
    assert [r.id for r in result if r.status == STATUS_ADDED_TO_CART] == [in_cart.id]
    assert store.get_recommendation(pending.id).status == STATUS_PENDING


def test_sql_storage_filters_by_status(sql_storage):
    first = sql_storage.create_recommendation(TEST_USER_ID, 1, "a", 60)
    second = sql_storage.create_recommendation(TEST_USER_ID, 2, "b", 70)
    sql_storage.update_recommendation_status(second.id, STATUS_ADDED_TO_CART)

    assert [r.id for r in sql_storage.list_recommendations_by_status(STATUS_ADDED_TO_CART)] == [second.id]
    assert [r.id for r in sql_storage.list_recommendations_by_status(STATUS_PENDING)] == [first.id]
