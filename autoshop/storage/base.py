# autoshop/storage/base.py

"""
Контракт хранилища. Его одинаково реализуют основное (SQL) и резервное
(в памяти) хранилища, а ResilientStorage переключается между ними на каждом вызове.
"""

from typing import Any, Dict, List, Protocol, Tuple

from autoshop.schemas.automation import AutomationSettings
from autoshop.schemas.cart import CartEntry, CartEntryCreate
from autoshop.schemas.coins import CoinTransaction
from autoshop.schemas.history import PurchaseRecord, SearchRecord
from autoshop.schemas.recommendation import Recommendation


class LedgerStore(Protocol):
    def append_transaction(
        self, user_id: int, amount: int, kind: str, description: str = "", metadata: Dict[str, Any] | None = None
    ) -> CoinTransaction: ...

    def spend_if_covered(
        self, user_id: int, amount: int, description: str = "", metadata: Dict[str, Any] | None = None
    ) -> Tuple[CoinTransaction | None, int]:
        """
        Атомарно: считает баланс и, если его хватает, добавляет запись 'spend'.
        Возвращает (транзакция или None, баланс до списания).
        """
        ...

    def sum_balance(self, user_id: int) -> int: ...

    def list_transactions(self, user_id: int, limit: int = 0) -> List[CoinTransaction]: ...


class RecommendationStore(Protocol):
    def create_recommendation(self, user_id: int, product_id: int, reason: str, confidence: int) -> Recommendation: ...

    def get_recommendation(self, recommendation_id: int) -> Recommendation | None: ...

    def list_recommendations(self, user_id: int, include_removed: bool = False) -> List[Recommendation]: ...

    def list_recommendations_by_status(self, status: str) -> List[Recommendation]: ...

    def update_recommendation_status(
        self, recommendation_id: int, status: str, reason: str | None = None, permanent: bool = False
    ) -> Recommendation | None: ...

    def delete_recommendations(self, user_id: int) -> int: ...


class CartStore(Protocol):
    def upsert_cart_entry(self, entry: CartEntryCreate) -> CartEntry: ...

    def remove_cart_entry(self, entry_id: int) -> bool: ...

    def list_cart_entries(self, user_id: int) -> List[CartEntry]: ...


class SettingsStore(Protocol):
    def get_automation_settings(self, user_id: int) -> AutomationSettings: ...

    def save_automation_settings(self, user_id: int, automation_settings: AutomationSettings) -> AutomationSettings: ...


class HistoryProvider(Protocol):
    def get_purchase_history(self, user_id: int, limit: int | None = None) -> List[PurchaseRecord]: ...

    def get_search_history(self, user_id: int, limit: int | None = None) -> List[SearchRecord]: ...

    def get_category_preferences(self, user_id: int, limit: int | None = None) -> Dict[int, int]: ...

    def record_purchase(self, user_id: int, product_id: int, category_id: int | None) -> None: ...

    def record_search(self, user_id: int, query: str, clicked_category_id: int | None = None) -> None: ...

    def set_category_preference(self, user_id: int, category_id: int, score: int) -> None: ...


class Storage(LedgerStore, RecommendationStore, CartStore, SettingsStore, HistoryProvider, Protocol):
    """Полный контракт хранилища."""
