# autoshop/services/coins.py

import logging
import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List

from autoshop.core.exceptions import InsufficientFunds, InvalidAmount, InvalidKind
from autoshop.models.coins import CREDIT_KINDS
from autoshop.schemas.coins import CoinTransaction
from autoshop.storage.base import LedgerStore

logger = logging.getLogger(__name__)


def _check_amount(amount: Any) -> None:
    # bool - подкласс int, но суммой не является
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvalidAmount(amount)


class CoinLedger:
    """
    Журнал монет. Записи только добавляются, баланс всегда вычисляется
    из истории. Изменения одного пользователя выполняются строго по очереди.
    """

    def __init__(self, store: LedgerStore):
        self.store = store
        # user_id -> [блокировка, сколько потоков ее держат или ждут]
        self._locks: Dict[int, list] = {}
        self._locks_guard = threading.Lock()

    @contextmanager
    def _user_lock(self, user_id: int) -> Iterator[None]:
        with self._locks_guard:
            entry = self._locks.get(user_id)
            if entry is None:
                entry = self._locks[user_id] = [threading.Lock(), 0]
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._locks_guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[user_id]

    def get_balance(self, user_id: int) -> int:
        """Текущий баланс. Для пользователя без истории - 0."""
        return self.store.sum_balance(user_id)

    def credit(
        self,
        user_id: int,
        amount: int,
        kind: str,
        description: str = "",
        metadata: Dict[str, Any] | None = None,
    ) -> CoinTransaction:
        _check_amount(amount)
        if kind not in CREDIT_KINDS:
            raise InvalidKind(kind, CREDIT_KINDS)

        with self._user_lock(user_id):
            tx = self.store.append_transaction(user_id, amount, kind, description, metadata)
        logger.info(f"Credited {amount} coins ({kind}) to user {user_id}, transaction {tx.id}")
        return tx

    def debit(
        self,
        user_id: int,
        amount: int,
        description: str = "",
        metadata: Dict[str, Any] | None = None,
    ) -> CoinTransaction:
        """
        Списывает монеты. Баланс перечитывается под блокировкой пользователя,
        проверка и запись выполняются одной операцией хранилища.
        """
        _check_amount(amount)

        with self._user_lock(user_id):
            tx, balance = self.store.spend_if_covered(user_id, amount, description, metadata)
        if tx is None:
            logger.info(f"Debit of {amount} coins denied for user {user_id}: balance is {balance}")
            raise InsufficientFunds(user_id, balance, amount)

        logger.info(f"Debited {amount} coins from user {user_id}, transaction {tx.id}")
        return tx

    def get_history(self, user_id: int, limit: int = 50) -> List[CoinTransaction]:
        """История от новых к старым. limit <= 0 - без ограничения."""
        return self.store.list_transactions(user_id, limit if limit > 0 else 0)
