# tests/test_cart_store.py

import pytest

from autoshop.schemas.automation import AutomationSettings
from autoshop.schemas.cart import CartEntryCreate
from tests.conftest import TEST_USER_ID


@pytest.fixture(params=["sql", "memory"])
def backend(request, sql_storage, memory_storage):
    """Оба хранилища должны вести себя одинаково."""
    return sql_storage if request.param == "sql" else memory_storage


def test_upsert_merges_by_user_and_product(backend):
    first = backend.upsert_cart_entry(CartEntryCreate(user_id=TEST_USER_ID, product_id=10, quantity=1))
    merged = backend.upsert_cart_entry(
        CartEntryCreate(user_id=TEST_USER_ID, product_id=10, quantity=2, source="ai_shopper", recommendation_id=77)
    )
    backend.upsert_cart_entry(CartEntryCreate(user_id=TEST_USER_ID + 1, product_id=10))

    assert merged.id == first.id
    assert merged.quantity == 3
    assert merged.source == "manual"
    assert merged.recommendation_id == 77
    assert len(backend.list_cart_entries(TEST_USER_ID)) == 1


def test_recommendation_link_is_not_overwritten(backend):
    backend.upsert_cart_entry(CartEntryCreate(user_id=TEST_USER_ID, product_id=10, recommendation_id=1))
    merged = backend.upsert_cart_entry(CartEntryCreate(user_id=TEST_USER_ID, product_id=10, recommendation_id=2))
    assert merged.recommendation_id == 1


def test_remove_cart_entry(backend):
    entry = backend.upsert_cart_entry(CartEntryCreate(user_id=TEST_USER_ID, product_id=10))
    assert backend.remove_cart_entry(entry.id)
    assert not backend.remove_cart_entry(entry.id)
    assert backend.list_cart_entries(TEST_USER_ID) == []


def test_quantity_must_be_positive():
    with pytest.raises(ValueError):
        CartEntryCreate(user_id=TEST_USER_ID, product_id=1, quantity=0)


def test_unknown_cart_source_is_rejected():
    with pytest.raises(ValueError):
        CartEntryCreate(user_id=TEST_USER_ID, product_id=1, source="wishlist")
    assert CartEntryCreate(user_id=TEST_USER_ID, product_id=1, source="saved_for_later").source == "saved_for_later"


def test_automation_settings_round_trip(backend):
    assert backend.get_automation_settings(TEST_USER_ID) == AutomationSettings()

    saved = AutomationSettings(
        enabled=True, auto_purchase=True, avoid_tags={"used"}, preferred_categories={"5", "7"}, use_coins=True
    )
    backend.save_automation_settings(TEST_USER_ID, saved)

    assert backend.get_automation_settings(TEST_USER_ID) == saved


def test_history_accessors_respect_limit(backend):
    for product_id in range(1, 6):
        backend.record_purchase(TEST_USER_ID, product_id, product_id % 2)
    backend.record_search(TEST_USER_ID, "lamp", clicked_category_id=3)
    backend.set_category_preference(TEST_USER_ID, 3, 2)
    backend.set_category_preference(TEST_USER_ID, 4, 9)
    backend.set_category_preference(TEST_USER_ID, 3, 5)

    assert len(backend.get_purchase_history(TEST_USER_ID)) == 5
    assert len(backend.get_purchase_history(TEST_USER_ID, limit=2)) == 2
    assert backend.get_search_history(TEST_USER_ID)[0].clicked_category_id == 3
    assert backend.get_category_preferences(TEST_USER_ID) == {4: 9, 3: 5}
    assert backend.get_category_preferences(TEST_USER_ID, limit=1) == {4: 9}
