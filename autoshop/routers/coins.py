# autoshop/routers/coins.py

import logging
from fastapi import APIRouter, Depends, Query, status

from autoshop.dependencies import get_ledger
from autoshop.schemas.coins import CoinBalance, CoinCreditRequest, CoinHistory, CoinTransaction
from autoshop.services.coins import CoinLedger

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/users/{user_id}/coins/balance", response_model=CoinBalance)
def get_coin_balance(user_id: int, ledger: CoinLedger = Depends(get_ledger)):
    return CoinBalance(user_id=user_id, balance=ledger.get_balance(user_id))


@router.get("/users/{user_id}/coins/history", response_model=CoinHistory)
def get_coin_history(
    user_id: int,
    limit: int = Query(50, description="0 или меньше - вся история"),
    ledger: CoinLedger = Depends(get_ledger),
):
    """История монет от новых к старым вместе с текущим балансом."""
    return CoinHistory(balance=ledger.get_balance(user_id), transactions=ledger.get_history(user_id, limit))


@router.post("/coins/credit", response_model=CoinTransaction, status_code=status.HTTP_201_CREATED)
def credit_coins(request_data: CoinCreditRequest, ledger: CoinLedger = Depends(get_ledger)):
    """
    [АДМИН] Начисление монет. Сумма и тип проверяются журналом,
    ошибки превращаются в 422 общим обработчиком.
    """
    return ledger.credit(
        request_data.user_id,
        request_data.amount,
        request_data.kind,
        request_data.description,
        request_data.metadata,
    )
