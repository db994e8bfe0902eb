# autoshop/models/coins.py
from sqlalchemy import JSON, CheckConstraint, Column, DateTime, Integer, String
from sqlalchemy.sql import func

from autoshop.db.session import Base

# Типы начислений. Все они увеличивают баланс.
CREDIT_KINDS = frozenset({"purchase", "reward", "refund", "admin"})
# Единственный тип списания
SPEND_KIND = "spend"


class CoinTransaction(Base):
    """
    Запись журнала монет. Строки только добавляются и никогда не изменяются:
    баланс всегда вычисляется из журнала.
    """
    __tablename__ = "coin_transactions"
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False, index=True)

    # Всегда положительное число, знак определяется типом
    amount = Column(Integer, nullable=False)

    # 'purchase', 'reward', 'refund', 'admin', 'spend'
    kind = Column(String, nullable=False)

    description = Column(String, nullable=False, default="")
    # Имя атрибута `metadata` зарезервировано в declarative, поэтому `meta`
    meta = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_coin_transactions_amount_positive"),
    )
