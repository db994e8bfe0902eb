# autoshop/schemas/cart.py
from pydantic import BaseModel, Field
from typing import List, Literal

CartSource = Literal["manual", "ai_shopper", "ai_recommendation", "saved_for_later"]


# Схема для добавления позиции (id назначает хранилище)
class CartEntryCreate(BaseModel):
    user_id: int
    product_id: int
    quantity: int = Field(1, ge=1)
    source: CartSource = "manual"
    recommendation_id: int | None = None


class CartEntry(CartEntryCreate):
    id: int

    class Config:
        from_attributes = True


class CartResponse(BaseModel):
    items: List[CartEntry]
