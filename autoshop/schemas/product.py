# autoshop/schemas/product.py
from pydantic import BaseModel, Field
from typing import Any, Dict, List


class ProductInfo(BaseModel):
    """Товар в том виде, в каком его отдает каталог."""
    id: int
    title: str
    description: str = ""
    price: int = Field(ge=0)  # в минимальных денежных единицах
    trust_score: int = Field(0, ge=0, le=100)
    tags: List[str] = Field(default_factory=list)
    category_id: int | None = None


class PaymentMethodRef(BaseModel):
    id: str
    user_id: int
    brand: str | None = None
    last4: str | None = None


class PaymentResult(BaseModel):
    id: str
    status: str
    amount: int
    currency: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
