# autoshop/services/purchase_validator.py

"""
Правила допуска автопокупки. Проверяются по порядку, срабатывает первый отказ:

1. автопокупки включены;
2. рейтинг доверия товара не ниже минимального;
3. у товара нет тегов из списка исключений;
4. цена укладывается в бюджет;
5. уверенность рекомендации не ниже порога.
"""

from dataclasses import dataclass
from typing import Protocol

from autoshop.core.config import settings as app_settings
from autoshop.schemas.automation import AutomationSettings
from autoshop.schemas.product import ProductInfo


class PurchaseCandidate(Protocol):
    confidence: int


@dataclass(frozen=True)
class PurchaseDecision:
    allowed: bool
    reason: str | None = None

    @classmethod
    def allow(cls) -> "PurchaseDecision":
        return cls(True)

    @classmethod
    def deny(cls, reason: str) -> "PurchaseDecision":
        return cls(False, reason)


def validate_purchase(
    settings: AutomationSettings,
    candidate: PurchaseCandidate,
    product: ProductInfo,
    min_confidence: int | None = None,
) -> PurchaseDecision:
    if min_confidence is None:
        min_confidence = app_settings.AUTO_PURCHASE_MIN_CONFIDENCE

    if not (settings.enabled and settings.auto_purchase):
        return PurchaseDecision.deny("automated purchasing disabled")

    if product.trust_score < settings.minimum_trust_score:
        return PurchaseDecision.deny(
            f"Product trust score {product.trust_score} is below the required minimum of "
            f"{settings.minimum_trust_score}"
        )

    offending = sorted(set(product.tags) & settings.avoid_tags)
    if offending:
        return PurchaseDecision.deny(f"Product contains avoided tag: {offending[0]}")

    if product.price > settings.budget_limit:
        return PurchaseDecision.deny(
            f"Product price {product.price} exceeds budget limit {settings.budget_limit}"
        )

    if candidate.confidence < min_confidence:
        return PurchaseDecision.deny(
            f"Low confidence recommendation ({candidate.confidence}% < {min_confidence}%)"
        )

    return PurchaseDecision.allow()
