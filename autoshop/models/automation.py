# autoshop/models/automation.py
from sqlalchemy import JSON, Boolean, Column, DateTime, Integer
from sqlalchemy.sql import func

from autoshop.db.session import Base


class AutomationSettingsRecord(Base):
    """Настройки автопокупок пользователя. Одна строка на пользователя."""
    __tablename__ = "automation_settings"
    user_id = Column(Integer, primary_key=True)
    enabled = Column(Boolean, nullable=False, default=False)
    auto_purchase = Column(Boolean, nullable=False, default=False)
    # В минимальных денежных единицах
    budget_limit = Column(Integer, nullable=False, default=5000)
    preferred_categories = Column(JSON, nullable=False, default=list)
    avoid_tags = Column(JSON, nullable=False, default=list)
    minimum_trust_score = Column(Integer, nullable=False, default=85)
    use_coins = Column(Boolean, nullable=False, default=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
