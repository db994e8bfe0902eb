# autoshop/crud/coins.py

from typing import Any, Dict, Iterable, List
from sqlalchemy.orm import Session
from sqlalchemy import case, func

from autoshop.models.coins import CREDIT_KINDS, SPEND_KIND, CoinTransaction

# --- Базовые CRUD-операции ---

def create_transaction(
    db: Session,
    user_id: int,
    amount: int,
    kind: str,
    description: str = "",
    metadata: Dict[str, Any] | None = None,
) -> CoinTransaction:
    """
    Создает объект транзакции и добавляет его в сессию.
    Требует внешнего вызова db.commit().
    """
    transaction = CoinTransaction(
        user_id=user_id,
        amount=amount,
        kind=kind,
        description=description,
        meta=metadata or {},
    )
    db.add(transaction)
    return transaction

def get_user_transactions(db: Session, user_id: int, limit: int = 0) -> List[CoinTransaction]:
    """Транзакции пользователя от новых к старым. limit <= 0 - без ограничения."""
    query = db.query(CoinTransaction).filter(
        CoinTransaction.user_id == user_id
    ).order_by(CoinTransaction.created_at.desc(), CoinTransaction.id.desc())
    if limit > 0:
        query = query.limit(limit)
    return query.all()

def lock_user_transactions(db: Session, user_id: int) -> List[CoinTransaction]:
    """
    Выбирает и БЛОКИРУЕТ уже существующие транзакции пользователя (`SELECT ... FOR UPDATE`).
    Строки, которые вставит параллельная транзакция, под блокировку не попадают, поэтому
    порядок списаний обеспечивает блокировка пользователя в CoinLedger, а не эта выборка.
    На SQLite блокировка строк не поддерживается и игнорируется.
    """
    return db.query(CoinTransaction).filter(
        CoinTransaction.user_id == user_id
    ).with_for_update().all()

# --- Расчетные CRUD-функции ---

def signed_amount(kind: str, amount: int) -> int:
    if kind in CREDIT_KINDS:
        return amount
    if kind == SPEND_KIND:
        return -amount
    return 0

def balance_of(transactions: Iterable[CoinTransaction]) -> int:
    return sum(signed_amount(t.kind, t.amount) for t in transactions)

def get_user_balance(db: Session, user_id: int) -> int:
    """Баланс = сумма начислений минус сумма списаний. Для пустой истории - 0."""
    signed = case(
        (CoinTransaction.kind.in_(sorted(CREDIT_KINDS)), CoinTransaction.amount),
        (CoinTransaction.kind == SPEND_KIND, -CoinTransaction.amount),
        else_=0,
    )
    balance = db.query(func.sum(signed)).filter(
        CoinTransaction.user_id == user_id
    ).scalar()
    return int(balance or 0)
