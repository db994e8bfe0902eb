# autoshop/storage/resilient.py

"""
Переключение основное -> резервное хранилище на уровне отдельного вызова.

Одна попытка на основном хранилище. При любом исключении пишем WARNING
с именем операции и один раз вызываем резервное. Если упало и оно,
поднимаем StorageUnavailable. Повторов нет. Блокировки на время вызова
хранилищ не держим.

Журнал монет резервного хранилища не имеет: отдельный журнал в памяти не
знает балансов из основного, поэтому операции с монетами при отказе
основного хранилища сразу завершаются StorageUnavailable.

Резервное хранилище выдает отрицательные id, так что созданное в нем не
пересекается с id основного. Вызовы по отрицательному id идут прямо туда.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, TypeVar

from autoshop.core.exceptions import StorageUnavailable
from autoshop.storage.base import Storage

logger = logging.getLogger(__name__)

T = TypeVar("T")


def is_fallback_id(entity_id: int) -> bool:
    return entity_id < 0


@dataclass(frozen=True)
class DispatchResult(Generic[T]):
    value: T
    used_fallback: bool


class ResilientStore:
    def __init__(self):
        self._counter_lock = threading.Lock()
        self._bypass_count = 0

    @property
    def bypass_count(self) -> int:
        """Сколько раз с момента старта вызов ушел в резервное хранилище."""
        with self._counter_lock:
            return self._bypass_count

    def _record_bypass(self) -> None:
        with self._counter_lock:
            self._bypass_count += 1

    def dispatch_result(
        self, operation: str, primary_fn: Callable[[], T], fallback_fn: Optional[Callable[[], T]]
    ) -> DispatchResult[T]:
        """
        fallback_fn=None означает, что у операции нет резервного варианта:
        ошибка основного хранилища сразу превращается в StorageUnavailable.
        """
        try:
            return DispatchResult(primary_fn(), used_fallback=False)
        except Exception as primary_error:
            if fallback_fn is None:
                logger.error(
                    f"Primary storage failed during '{operation}': {primary_error}. "
                    f"No fallback for this operation, manual reconciliation may be required."
                )
                raise StorageUnavailable(operation, primary_error) from primary_error
            logger.warning(
                f"Primary storage failed during '{operation}': {primary_error}. Using fallback storage."
            )
            self._record_bypass()
            try:
                return DispatchResult(fallback_fn(), used_fallback=True)
            except Exception as fallback_error:
                logger.error(
                    f"Fallback storage also failed during '{operation}': {fallback_error}",
                    exc_info=True,
                )
                raise StorageUnavailable(operation, fallback_error) from fallback_error

    def dispatch(self, operation: str, primary_fn: Callable[[], T], fallback_fn: Optional[Callable[[], T]]) -> T:
        return self.dispatch_result(operation, primary_fn, fallback_fn).value


class ResilientStorage:
    """
    Реализует контракт Storage поверх пары хранилищ. Каждый метод
    отправляется через ResilientStore под своим именем.
    """

    def __init__(self, primary: Storage, fallback: Storage, dispatcher: ResilientStore | None = None):
        self.primary = primary
        self.fallback = fallback
        self.dispatcher = dispatcher or ResilientStore()

    def call_result(self, operation: str, *args: Any, **kwargs: Any) -> DispatchResult:
        return self.dispatcher.dispatch_result(
            operation,
            lambda: getattr(self.primary, operation)(*args, **kwargs),
            lambda: getattr(self.fallback, operation)(*args, **kwargs),
        )

    def call(self, operation: str, *args: Any, **kwargs: Any) -> Any:
        return self.call_result(operation, *args, **kwargs).value

    def call_primary(self, operation: str, *args: Any, **kwargs: Any) -> Any:
        return self.dispatcher.dispatch(
            operation, lambda: getattr(self.primary, operation)(*args, **kwargs), None
        )

    def call_fallback(self, operation: str, *args: Any, **kwargs: Any) -> Any:
        """Для сущностей, созданных во время отказа основного хранилища."""
        try:
            return getattr(self.fallback, operation)(*args, **kwargs)
        except Exception as error:
            logger.error(f"Fallback storage failed during '{operation}': {error}", exc_info=True)
            raise StorageUnavailable(operation, error) from error

    # --- Журнал монет ---

    def append_transaction(self, user_id, amount, kind, description="", metadata=None):
        return self.call_primary("append_transaction", user_id, amount, kind, description, metadata)

    def spend_if_covered(self, user_id, amount, description="", metadata=None):
        return self.call_primary("spend_if_covered", user_id, amount, description, metadata)

    def sum_balance(self, user_id):
        return self.call_primary("sum_balance", user_id)

    def list_transactions(self, user_id, limit=0):
        return self.call_primary("list_transactions", user_id, limit)

    # --- Рекомендации ---

    def create_recommendation(self, user_id, product_id, reason, confidence):
        return self.call("create_recommendation", user_id, product_id, reason, confidence)

    def get_recommendation(self, recommendation_id):
        if is_fallback_id(recommendation_id):
            return self.call_fallback("get_recommendation", recommendation_id)
        return self.call("get_recommendation", recommendation_id)

    def list_recommendations(self, user_id, include_removed=False):
        return self.call("list_recommendations", user_id, include_removed)

    def list_recommendations_by_status(self, status):
        # Резервное хранилище может вернуть надмножество, вызывающий фильтрует сам
        return self.call("list_recommendations_by_status", status)

    def update_recommendation_status(self, recommendation_id, status, reason=None, permanent=False):
        if is_fallback_id(recommendation_id):
            return self.call_fallback("update_recommendation_status", recommendation_id, status, reason, permanent)
        return self.call("update_recommendation_status", recommendation_id, status, reason, permanent)

    def delete_recommendations(self, user_id):
        return self.call("delete_recommendations", user_id)

    # --- Корзина ---

    def upsert_cart_entry(self, entry):
        return self.call("upsert_cart_entry", entry)

    def remove_cart_entry(self, entry_id):
        if is_fallback_id(entry_id):
            return self.call_fallback("remove_cart_entry", entry_id)
        return self.call("remove_cart_entry", entry_id)

    def list_cart_entries(self, user_id):
        return self.call("list_cart_entries", user_id)

    # --- Настройки ---

    def get_automation_settings(self, user_id):
        return self.call("get_automation_settings", user_id)

    def save_automation_settings(self, user_id, automation_settings):
        return self.call("save_automation_settings", user_id, automation_settings)

    # --- История ---

    def get_purchase_history(self, user_id, limit=None):
        return self.call("get_purchase_history", user_id, limit)

    def get_search_history(self, user_id, limit=None):
        return self.call("get_search_history", user_id, limit)

    def get_category_preferences(self, user_id, limit=None):
        return self.call("get_category_preferences", user_id, limit)

    def record_purchase(self, user_id, product_id, category_id):
        return self.call("record_purchase", user_id, product_id, category_id)

    def record_search(self, user_id, query, clicked_category_id=None):
        return self.call("record_search", user_id, query, clicked_category_id)

    def set_category_preference(self, user_id, category_id, score):
        return self.call("set_category_preference", user_id, category_id, score)
