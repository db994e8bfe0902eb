# autoshop/schemas/recommendation.py
from pydantic import BaseModel, Field
from datetime import datetime
from typing import List, Literal

from autoshop.schemas.product import ProductInfo

RecommendationStatus = Literal["pending", "added_to_cart", "purchased", "rejected"]


class Recommendation(BaseModel):
    id: int
    user_id: int
    product_id: int
    reason: str = ""
    confidence: int = Field(ge=0, le=100)
    status: RecommendationStatus = "pending"
    rejected_reason: str | None = None
    created_at: datetime
    updated_at: datetime
    purchased_at: datetime | None = None

    class Config:
        from_attributes = True


# Рекомендация вместе с данными товара, подтянутыми из каталога при чтении
class RecommendationView(BaseModel):
    recommendation: Recommendation
    product: ProductInfo | None = None


class RecommendationStatusUpdate(BaseModel):
    status: RecommendationStatus
    reason: str | None = None
    remove_from_list: bool = False


class ScoredCandidate(BaseModel):
    product: ProductInfo
    score: int
    confidence: int = Field(0, ge=0, le=100)
    reasons: List[str] = Field(default_factory=list)


class GenerateRecommendationsRequest(BaseModel):
    candidates: List[ProductInfo]
    limit: int = Field(3, ge=1, le=50)
    random_mode: bool = False
    auto_purchase: bool = True


class PurchaseResult(BaseModel):
    """Итог автопокупки. Бизнес-отказы возвращаются здесь, а не исключением."""
    recommendation_id: int
    success: bool
    message: str
    status: RecommendationStatus
    transaction_id: int | None = None
    already_processed: bool = False


class GeneratedRecommendations(BaseModel):
    recommendations: List[Recommendation]
    purchase: PurchaseResult | None = None
