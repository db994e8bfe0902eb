# autoshop/dependencies.py

import logging

from fastapi import Request

from autoshop.services.auto_purchase import PurchaseOrchestrator
from autoshop.services.coins import CoinLedger
from autoshop.storage.base import Storage

# --- Инициализация логгера ---
logger = logging.getLogger(__name__)

# Все объекты собираются один раз в lifespan и лежат в app.state.
# В тестах их подменяют через app.dependency_overrides.

def get_store(request: Request) -> Storage:
    return request.app.state.store

def get_ledger(request: Request) -> CoinLedger:
    return request.app.state.ledger

def get_orchestrator(request: Request) -> PurchaseOrchestrator:
    return request.app.state.orchestrator
