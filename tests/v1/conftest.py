# tests/v1/conftest.py

import pytest
from httpx import ASGITransport, AsyncClient

from autoshop.dependencies import get_ledger, get_orchestrator, get_store
from autoshop.main import app


@pytest.fixture
async def client(store, ledger, orchestrator):
    """
    Клиент к приложению без lifespan: вместо сборки из app.state
    подставляем тестовые хранилище, журнал и оркестратор.
    """
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_ledger] = lambda: ledger
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as async_client:
        yield async_client
    app.dependency_overrides.clear()
