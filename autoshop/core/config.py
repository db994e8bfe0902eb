# autoshop/core/config.py

import json
from typing import Dict
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # Настройки базы данных (основное хранилище)
    DATABASE_URL: str = "sqlite:///./autoshop.db"
    DATABASE_ECHO: bool = False

    # Redis используется для блокировки однократной инициализации воркера
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379

    # Внешние сервисы: каталог товаров и платежный шлюз
    CATALOG_API_URL: str = "http://localhost:8001/api"
    PAYMENTS_API_URL: str = "http://localhost:8002/api"
    PAYMENTS_API_KEY: str = ""
    PAYMENT_CURRENCY: str = "gbp"

    # Автопокупки
    AUTO_PURCHASE_MIN_CONFIDENCE: int = 50
    # Сколько минимальных денежных единиц (копеек/пенсов) стоит одна монета
    COIN_MINOR_UNITS: int = 100

    # Рекомендации
    RECOMMENDATION_HISTORY_LIMIT: int = 10
    RECONCILIATION_INTERVAL_MINUTES: int = 15

    # Веса скоринга можно переопределить JSON-строкой, например '{"purchase_category": 6}'
    SCORER_WEIGHTS_JSON: str = Field(default="{}")

    # Это поле автоматически заполняется из SCORER_WEIGHTS_JSON
    SCORER_WEIGHTS: Dict[str, int] = Field(default_factory=dict, validate_default=True)

    @field_validator("SCORER_WEIGHTS", mode="before")
    def parse_scorer_weights(cls, v, values):
        # values.data содержит уже провалидированные поля, включая SCORER_WEIGHTS_JSON
        json_str = values.data.get("SCORER_WEIGHTS_JSON")
        if json_str:
            return json.loads(json_str)
        return v

    @property
    def REDIS_URL(self) -> str:
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

settings = Settings()
