# autoshop/schemas/automation.py
from pydantic import BaseModel, Field
from typing import FrozenSet


class AutomationSettings(BaseModel):
    """
    Настройки автопокупок. Набор полей закрыт: неизвестные ключи отклоняются,
    а не передаются дальше молча.
    """
    enabled: bool = False
    auto_purchase: bool = False
    budget_limit: int = Field(5000, ge=0)  # в минимальных денежных единицах
    preferred_categories: FrozenSet[str] = frozenset()
    avoid_tags: FrozenSet[str] = frozenset()
    minimum_trust_score: int = Field(85, ge=0, le=100)
    use_coins: bool = False

    class Config:
        extra = "forbid"
        from_attributes = True
