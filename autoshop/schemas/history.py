# autoshop/schemas/history.py
from pydantic import BaseModel, Field
from datetime import datetime
from typing import List


class PurchaseRecord(BaseModel):
    product_id: int
    category_id: int | None = None
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class SearchRecord(BaseModel):
    query: str
    clicked_category_id: int | None = None
    created_at: datetime | None = None

    class Config:
        from_attributes = True


# --- Тела запросов для записи истории ---

class SearchRecordCreate(BaseModel):
    query: str = Field(min_length=1, max_length=255)
    clicked_category_id: int | None = None


class CategoryPreferenceUpdate(BaseModel):
    score: int = Field(ge=0, le=100)


class CategoryPreference(BaseModel):
    category_id: int
    score: int


class UserHistory(BaseModel):
    purchases: List[PurchaseRecord]
    searches: List[SearchRecord]
    category_preferences: List[CategoryPreference]
