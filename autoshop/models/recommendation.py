# autoshop/models/recommendation.py
from sqlalchemy import CheckConstraint, Column, DateTime, Integer, String, Text
from sqlalchemy.sql import func

from autoshop.db.session import Base

STATUS_PENDING = "pending"
STATUS_ADDED_TO_CART = "added_to_cart"
STATUS_PURCHASED = "purchased"
STATUS_REJECTED = "rejected"

# Допустимые переходы. added_to_cart -> pending выполняет только сверка с корзиной,
# rejected -> rejected нужен, чтобы мягкий отказ можно было сделать окончательным.
ALLOWED_TRANSITIONS = {
    STATUS_PENDING: {STATUS_ADDED_TO_CART, STATUS_PURCHASED, STATUS_REJECTED},
    STATUS_ADDED_TO_CART: {STATUS_PENDING, STATUS_PURCHASED, STATUS_REJECTED},
    STATUS_REJECTED: {STATUS_REJECTED},
    STATUS_PURCHASED: set(),
}

# Метка окончательного удаления дописывается в конец rejected_reason.
# Схема не менялась, поэтому отдельной колонки под флаг нет.
PERMANENT_REMOVAL_MARKER = "[PERMANENT_REMOVAL]"


def mark_permanent(reason: str | None) -> str:
    """Добавляет к причине отказа метку окончательного удаления."""
    if reason and PERMANENT_REMOVAL_MARKER in reason:
        return reason
    return f"{reason or 'Permanently removed by user'} {PERMANENT_REMOVAL_MARKER}"


def is_permanently_removed(rejected_reason: str | None) -> bool:
    return bool(rejected_reason) and PERMANENT_REMOVAL_MARKER in rejected_reason


class Recommendation(Base):
    __tablename__ = "recommendations"
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    product_id = Column(Integer, nullable=False)
    reason = Column(Text, nullable=False, default="")
    confidence = Column(Integer, nullable=False, default=0)

    status = Column(String, nullable=False, default=STATUS_PENDING, server_default=STATUS_PENDING, index=True)
    rejected_reason = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    purchased_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint("confidence >= 0 AND confidence <= 100", name="ck_recommendations_confidence_range"),
    )
