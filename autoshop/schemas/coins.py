# autoshop/schemas/coins.py
from pydantic import BaseModel, Field
from datetime import datetime
from typing import Any, Dict, List, Literal

CoinTransactionKind = Literal["purchase", "reward", "refund", "admin", "spend"]
CreditKind = Literal["purchase", "reward", "refund", "admin"]


class CoinTransaction(BaseModel):
    id: int
    user_id: int
    amount: int = Field(gt=0)
    kind: CoinTransactionKind
    description: str = ""
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime

    class Config:
        frozen = True


class CoinBalance(BaseModel):
    user_id: int
    balance: int


class CoinHistory(BaseModel):
    balance: int
    transactions: List[CoinTransaction]


# Тело запроса на ручное начисление (админка)
class CoinCreditRequest(BaseModel):
    user_id: int
    amount: int
    kind: str = "admin"
    description: str = ""
    metadata: Dict[str, Any] = Field(default_factory=dict)

    class Config:
        extra = "forbid"
