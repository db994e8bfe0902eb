# autoshop/services/reconciliation.py
import logging
from typing import Dict, List

from autoshop.core.exceptions import StorageUnavailable
from autoshop.models.recommendation import STATUS_ADDED_TO_CART, STATUS_PENDING
from autoshop.schemas.cart import CartEntry
from autoshop.storage.base import Storage

logger = logging.getLogger(__name__)

def reconcile_cart_recommendations(store: Storage) -> int:
    """
    Возвращает в 'pending' рекомендации со статусом 'added_to_cart',
    для которых в корзине пользователя больше нет позиции.
    Возвращает количество исправленных рекомендаций.
    """
    candidates = store.list_recommendations_by_status(STATUS_ADDED_TO_CART)
    # Резервное хранилище не умеет фильтровать по статусу и отдает все записи
    in_cart_status = [r for r in candidates if r.status == STATUS_ADDED_TO_CART]

    carts: Dict[int, List[CartEntry]] = {}
    reverted = 0
    for recommendation in in_cart_status:
        if recommendation.user_id not in carts:
            carts[recommendation.user_id] = store.list_cart_entries(recommendation.user_id)
        entries = carts[recommendation.user_id]

        still_in_cart = any(
            e.recommendation_id == recommendation.id or e.product_id == recommendation.product_id
            for e in entries
        )
        if not still_in_cart:
            store.update_recommendation_status(recommendation.id, STATUS_PENDING)
            reverted += 1
    return reverted

def reconcile_cart_recommendations_task(store: Storage):
    """Фоновая задача сверки рекомендаций с корзинами."""
    logger.info("--- Starting scheduled job: Cart/Recommendation Reconciliation ---")
    try:
        reverted = reconcile_cart_recommendations(store)
        if reverted > 0:
            logger.info(f"Returned {reverted} recommendations to 'pending'.")
        else:
            logger.info("All 'added_to_cart' recommendations match the carts.")
    except StorageUnavailable:
        logger.error("Storage unavailable during reconciliation, will retry on next run", exc_info=True)
    logger.info("--- Finished scheduled job: Cart/Recommendation Reconciliation ---")
