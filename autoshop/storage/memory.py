# autoshop/storage/memory.py

"""
Резервное хранилище в памяти процесса.

Живет столько же, сколько процесс, и создается в lifespan приложения.
Осознанное упрощение: `list_recommendations_by_status` игнорирует фильтр
по статусу и отдает все рекомендации (надмножество). Вызывающий код
обязан фильтровать результат сам.
"""

import itertools
import logging
import threading
from datetime import datetime, timezone
from typing import Any, Dict, List, Tuple

from autoshop.models.coins import CREDIT_KINDS, SPEND_KIND
from autoshop.models.recommendation import (
    STATUS_PURCHASED, STATUS_REJECTED, is_permanently_removed, mark_permanent
)
from autoshop.schemas.automation import AutomationSettings
from autoshop.schemas.cart import CartEntry, CartEntryCreate
from autoshop.schemas.coins import CoinTransaction
from autoshop.schemas.history import PurchaseRecord, SearchRecord
from autoshop.schemas.recommendation import Recommendation

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _limited(items: list, limit: int | None) -> list:
    if limit and limit > 0:
        return items[:limit]
    return items


class MemoryStorage:
    def __init__(self):
        self._lock = threading.RLock()
        # Отрицательные id не пересекаются с id основного хранилища
        self._ids = itertools.count(-1, -1)
        self._transactions: List[CoinTransaction] = []
        self._recommendations: Dict[int, Recommendation] = {}
        self._cart: Dict[int, CartEntry] = {}
        self._settings: Dict[int, AutomationSettings] = {}
        self._purchases: Dict[int, List[PurchaseRecord]] = {}
        self._searches: Dict[int, List[SearchRecord]] = {}
        self._preferences: Dict[int, Dict[int, int]] = {}

    def _next_id(self) -> int:
        return next(self._ids)

    # --- Журнал монет ---

    def _balance(self, user_id: int) -> int:
        balance = 0
        for tx in self._transactions:
            if tx.user_id != user_id:
                continue
            if tx.kind in CREDIT_KINDS:
                balance += tx.amount
            elif tx.kind == SPEND_KIND:
                balance -= tx.amount
        return balance

    def _append(self, user_id, amount, kind, description, metadata) -> CoinTransaction:
        tx = CoinTransaction(
            id=self._next_id(),
            user_id=user_id,
            amount=amount,
            kind=kind,
            description=description or "",
            metadata=dict(metadata or {}),
            created_at=_now(),
        )
        self._transactions.append(tx)
        return tx

    def append_transaction(self, user_id, amount, kind, description="", metadata=None) -> CoinTransaction:
        with self._lock:
            return self._append(user_id, amount, kind, description, metadata)

    def spend_if_covered(
        self, user_id: int, amount: int, description: str = "", metadata: Dict[str, Any] | None = None
    ) -> Tuple[CoinTransaction | None, int]:
        with self._lock:
            balance = self._balance(user_id)
            if balance < amount:
                return None, balance
            return self._append(user_id, amount, SPEND_KIND, description, metadata), balance

    def sum_balance(self, user_id: int) -> int:
        with self._lock:
            return self._balance(user_id)

    def list_transactions(self, user_id: int, limit: int = 0) -> List[CoinTransaction]:
        with self._lock:
            # id растет монотонно, так что обратный порядок = от новых к старым
            items = [tx for tx in reversed(self._transactions) if tx.user_id == user_id]
        return _limited(items, limit)

    # --- Рекомендации ---

    def create_recommendation(self, user_id, product_id, reason, confidence) -> Recommendation:
        with self._lock:
            now = _now()
            recommendation = Recommendation(
                id=self._next_id(),
                user_id=user_id,
                product_id=product_id,
                reason=reason,
                confidence=confidence,
                created_at=now,
                updated_at=now,
            )
            self._recommendations[recommendation.id] = recommendation
            return recommendation

    def get_recommendation(self, recommendation_id: int) -> Recommendation | None:
        with self._lock:
            return self._recommendations.get(recommendation_id)

    def list_recommendations(self, user_id: int, include_removed: bool = False) -> List[Recommendation]:
        with self._lock:
            items = [r for r in self._recommendations.values() if r.user_id == user_id]
        items.sort(key=lambda r: (r.created_at, r.id), reverse=True)
        if include_removed:
            return items
        return [r for r in items if not is_permanently_removed(r.rejected_reason)]

    def list_recommendations_by_status(self, status: str) -> List[Recommendation]:
        """Фильтр по статусу не поддерживается: возвращаются все рекомендации."""
        with self._lock:
            return sorted(self._recommendations.values(), key=lambda r: r.id)

    def update_recommendation_status(self, recommendation_id, status, reason=None, permanent=False):
        with self._lock:
            recommendation = self._recommendations.get(recommendation_id)
            if recommendation is None:
                return None

            now = _now()
            changes: Dict[str, Any] = {"status": status, "updated_at": now}
            if status == STATUS_PURCHASED:
                changes["purchased_at"] = now
            if status == STATUS_REJECTED:
                if permanent:
                    changes["rejected_reason"] = mark_permanent(reason or recommendation.rejected_reason)
                elif reason:
                    changes["rejected_reason"] = reason

            updated = recommendation.model_copy(update=changes)
            self._recommendations[recommendation_id] = updated
            return updated

    def delete_recommendations(self, user_id: int) -> int:
        with self._lock:
            ids = [rid for rid, r in self._recommendations.items() if r.user_id == user_id]
            for rid in ids:
                del self._recommendations[rid]
            return len(ids)

    # --- Корзина ---

    def upsert_cart_entry(self, entry: CartEntryCreate) -> CartEntry:
        with self._lock:
            for existing in self._cart.values():
                if existing.user_id == entry.user_id and existing.product_id == entry.product_id:
                    changes: Dict[str, Any] = {"quantity": existing.quantity + entry.quantity}
                    if entry.recommendation_id is not None and existing.recommendation_id is None:
                        changes["recommendation_id"] = entry.recommendation_id
                    merged = existing.model_copy(update=changes)
                    self._cart[merged.id] = merged
                    return merged

            created = CartEntry(id=self._next_id(), **entry.model_dump())
            self._cart[created.id] = created
            return created

    def remove_cart_entry(self, entry_id: int) -> bool:
        with self._lock:
            return self._cart.pop(entry_id, None) is not None

    def list_cart_entries(self, user_id: int) -> List[CartEntry]:
        with self._lock:
            return sorted((e for e in self._cart.values() if e.user_id == user_id), key=lambda e: e.id)

    # --- Настройки автопокупок ---

    def get_automation_settings(self, user_id: int) -> AutomationSettings:
        with self._lock:
            return self._settings.get(user_id) or AutomationSettings()

    def save_automation_settings(self, user_id: int, automation_settings: AutomationSettings) -> AutomationSettings:
        with self._lock:
            self._settings[user_id] = automation_settings
            return automation_settings

    # --- История ---

    def get_purchase_history(self, user_id: int, limit: int | None = None) -> List[PurchaseRecord]:
        with self._lock:
            items = list(reversed(self._purchases.get(user_id, [])))
        return _limited(items, limit)

    def get_search_history(self, user_id: int, limit: int | None = None) -> List[SearchRecord]:
        with self._lock:
            items = list(reversed(self._searches.get(user_id, [])))
        return _limited(items, limit)

    def get_category_preferences(self, user_id: int, limit: int | None = None) -> Dict[int, int]:
        with self._lock:
            items = sorted(self._preferences.get(user_id, {}).items(), key=lambda kv: (-kv[1], kv[0]))
        return dict(_limited(items, limit))

    def record_purchase(self, user_id: int, product_id: int, category_id: int | None) -> None:
        with self._lock:
            self._purchases.setdefault(user_id, []).append(
                PurchaseRecord(product_id=product_id, category_id=category_id, created_at=_now())
            )

    def record_search(self, user_id: int, query: str, clicked_category_id: int | None = None) -> None:
        with self._lock:
            self._searches.setdefault(user_id, []).append(
                SearchRecord(query=query, clicked_category_id=clicked_category_id, created_at=_now())
            )

    def set_category_preference(self, user_id: int, category_id: int, score: int) -> None:
        with self._lock:
            self._preferences.setdefault(user_id, {})[category_id] = score
