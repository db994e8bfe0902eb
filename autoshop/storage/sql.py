# autoshop/storage/sql.py

import logging
from typing import Any, Dict, List, Tuple

from sqlalchemy.orm import Session, sessionmaker

from autoshop.crud import automation as crud_automation
from autoshop.crud import cart as crud_cart
from autoshop.crud import coins as crud_coins
from autoshop.crud import history as crud_history
from autoshop.crud import recommendation as crud_recommendation
from autoshop.db.session import SessionLocal
from autoshop.models.coins import SPEND_KIND, CoinTransaction as CoinTransactionModel
from autoshop.schemas.automation import AutomationSettings
from autoshop.schemas.cart import CartEntry, CartEntryCreate
from autoshop.schemas.coins import CoinTransaction
from autoshop.schemas.history import PurchaseRecord, SearchRecord
from autoshop.schemas.recommendation import Recommendation

logger = logging.getLogger(__name__)


def _transaction_schema(tx: CoinTransactionModel) -> CoinTransaction:
    return CoinTransaction(
        id=tx.id,
        user_id=tx.user_id,
        amount=tx.amount,
        kind=tx.kind,
        description=tx.description or "",
        metadata=tx.meta or {},
        created_at=tx.created_at,
    )


class SqlStorage:
    """
    Основное хранилище на SQLAlchemy. Каждый вызов открывает свою сессию,
    поэтому сбой одного вызова не влияет на следующие.
    """

    def __init__(self, session_factory: sessionmaker = SessionLocal):
        self.session_factory = session_factory

    def _session(self) -> Session:
        return self.session_factory()

    # --- Журнал монет ---

    def append_transaction(self, user_id, amount, kind, description="", metadata=None) -> CoinTransaction:
        with self._session() as db:
            tx = crud_coins.create_transaction(db, user_id, amount, kind, description, metadata)
            db.commit()
            db.refresh(tx)
            return _transaction_schema(tx)

    def spend_if_covered(
        self, user_id: int, amount: int, description: str = "", metadata: Dict[str, Any] | None = None
    ) -> Tuple[CoinTransaction | None, int]:
        with self._session() as db:
            # Проверка и запись в одной транзакции БД. Порядок между списаниями задает CoinLedger
            locked = crud_coins.lock_user_transactions(db, user_id)
            balance = crud_coins.balance_of(locked)
            if balance < amount:
                db.rollback()
                return None, balance

            tx = crud_coins.create_transaction(db, user_id, amount, SPEND_KIND, description, metadata)
            db.commit()
            db.refresh(tx)
            return _transaction_schema(tx), balance

    def sum_balance(self, user_id: int) -> int:
        with self._session() as db:
            return crud_coins.get_user_balance(db, user_id)

    def list_transactions(self, user_id: int, limit: int = 0) -> List[CoinTransaction]:
        with self._session() as db:
            return [_transaction_schema(tx) for tx in crud_coins.get_user_transactions(db, user_id, limit)]

    # --- Рекомендации ---

    def create_recommendation(self, user_id, product_id, reason, confidence) -> Recommendation:
        with self._session() as db:
            recommendation = crud_recommendation.create_recommendation(db, user_id, product_id, reason, confidence)
            return Recommendation.model_validate(recommendation)

    def get_recommendation(self, recommendation_id: int) -> Recommendation | None:
        with self._session() as db:
            recommendation = crud_recommendation.get_recommendation(db, recommendation_id)
            return Recommendation.model_validate(recommendation) if recommendation else None

    def list_recommendations(self, user_id: int, include_removed: bool = False) -> List[Recommendation]:
        with self._session() as db:
            return [
                Recommendation.model_validate(r)
                for r in crud_recommendation.get_user_recommendations(db, user_id, include_removed)
            ]

    def list_recommendations_by_status(self, status: str) -> List[Recommendation]:
        with self._session() as db:
            return [Recommendation.model_validate(r) for r in crud_recommendation.get_recommendations_by_status(db, status)]

    def update_recommendation_status(self, recommendation_id, status, reason=None, permanent=False):
        with self._session() as db:
            recommendation = crud_recommendation.update_status(db, recommendation_id, status, reason, permanent)
            return Recommendation.model_validate(recommendation) if recommendation else None

    def delete_recommendations(self, user_id: int) -> int:
        with self._session() as db:
            return crud_recommendation.delete_user_recommendations(db, user_id)

    # --- Корзина ---

    def upsert_cart_entry(self, entry: CartEntryCreate) -> CartEntry:
        with self._session() as db:
            item = crud_cart.add_or_merge_cart_item(
                db,
                user_id=entry.user_id,
                product_id=entry.product_id,
                quantity=entry.quantity,
                source=entry.source,
                recommendation_id=entry.recommendation_id,
            )
            return CartEntry.model_validate(item)

    def remove_cart_entry(self, entry_id: int) -> bool:
        with self._session() as db:
            return crud_cart.remove_cart_item(db, entry_id)

    def list_cart_entries(self, user_id: int) -> List[CartEntry]:
        with self._session() as db:
            return [CartEntry.model_validate(item) for item in crud_cart.get_cart_items(db, user_id)]

    # --- Настройки автопокупок ---

    def get_automation_settings(self, user_id: int) -> AutomationSettings:
        with self._session() as db:
            record = crud_automation.get_settings(db, user_id)
            if record is None:
                return AutomationSettings()
            return AutomationSettings.model_validate(record)

    def save_automation_settings(self, user_id: int, automation_settings: AutomationSettings) -> AutomationSettings:
        values = automation_settings.model_dump()
        # В JSON-колонки кладем отсортированные списки
        values["preferred_categories"] = sorted(values["preferred_categories"])
        values["avoid_tags"] = sorted(values["avoid_tags"])
        with self._session() as db:
            record = crud_automation.upsert_settings(db, user_id, values)
            return AutomationSettings.model_validate(record)

    # --- История ---

    def get_purchase_history(self, user_id: int, limit: int | None = None) -> List[PurchaseRecord]:
        with self._session() as db:
            return [PurchaseRecord.model_validate(r) for r in crud_history.get_purchase_history(db, user_id, limit)]

    def get_search_history(self, user_id: int, limit: int | None = None) -> List[SearchRecord]:
        with self._session() as db:
            return [SearchRecord.model_validate(r) for r in crud_history.get_search_history(db, user_id, limit)]

    def get_category_preferences(self, user_id: int, limit: int | None = None) -> Dict[int, int]:
        with self._session() as db:
            return crud_history.get_category_preferences(db, user_id, limit)

    def record_purchase(self, user_id: int, product_id: int, category_id: int | None) -> None:
        with self._session() as db:
            crud_history.add_purchase(db, user_id, product_id, category_id)

    def record_search(self, user_id: int, query: str, clicked_category_id: int | None = None) -> None:
        with self._session() as db:
            crud_history.add_search(db, user_id, query, clicked_category_id)

    def set_category_preference(self, user_id: int, category_id: int, score: int) -> None:
        with self._session() as db:
            crud_history.set_category_preference(db, user_id, category_id, score)
