# tests/conftest.py
import random

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from autoshop.core.exceptions import UpstreamPaymentFailure
from autoshop.db.session import Base, init_db
from autoshop.schemas.automation import AutomationSettings
from autoshop.schemas.product import PaymentMethodRef, PaymentResult, ProductInfo
from autoshop.services.auto_purchase import PurchaseOrchestrator
from autoshop.services.coins import CoinLedger
from autoshop.storage.memory import MemoryStorage
from autoshop.storage.resilient import ResilientStorage
from autoshop.storage.sql import SqlStorage

TEST_USER_ID = 1001


class FakeCatalog:
    """Каталог в памяти: {product_id: ProductInfo}."""

    def __init__(self, products=None):
        self.products = {p.id: p for p in (products or [])}
        self.calls = []

    def add(self, product: ProductInfo):
        self.products[product.id] = product

    async def get_product_by_id(self, product_id: int):
        self.calls.append(product_id)
        return self.products.get(product_id)


class FakePayments:
    """Платежный шлюз, который можно заставить отказать."""

    def __init__(self, method=None, failure: str | None = None):
        self.method = method
        self.failure = failure
        self.charges = []

    async def get_default_payment_method(self, user_id: int):
        return self.method

    async def charge(self, amount, currency, payment_method, description="", metadata=None):
        if self.failure:
            raise UpstreamPaymentFailure(self.failure)
        self.charges.append((amount, currency, payment_method.id))
        return PaymentResult(id=f"pi_{len(self.charges)}", status="succeeded", amount=amount, currency=currency)


@pytest.fixture(scope="function")
def session_factory():
    """
    Чистая in-memory база для каждого теста. StaticPool держит одно соединение,
    иначе каждая новая сессия видела бы пустую базу.
    """
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    try:
        yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def file_session_factory(tmp_path):
    """Файловая SQLite: нужна тестам, где сессии открываются из разных потоков."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'autoshop_test.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    init_db(bind=engine)
    try:
        yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    finally:
        engine.dispose()


@pytest.fixture
def sql_storage(session_factory):
    return SqlStorage(session_factory)


@pytest.fixture
def memory_storage():
    return MemoryStorage()


@pytest.fixture
def store(sql_storage, memory_storage):
    return ResilientStorage(primary=sql_storage, fallback=memory_storage)


@pytest.fixture
def ledger(store):
    return CoinLedger(store)


@pytest.fixture
def product():
    return ProductInfo(
        id=501,
        title="Wireless Headphones",
        description="Noise cancelling over-ear headphones",
        price=450,
        trust_score=95,
        tags=["audio"],
        category_id=7,
    )


@pytest.fixture
def catalog(product):
    return FakeCatalog([product])


@pytest.fixture
def payments():
    return FakePayments(method=PaymentMethodRef(id="pm_card", user_id=TEST_USER_ID, brand="visa", last4="4242"))


@pytest.fixture
def orchestrator(store, ledger, catalog, payments):
    return PurchaseOrchestrator(
        store,
        ledger,
        catalog,
        payments,
        currency="gbp",
        min_confidence=50,
        coin_minor_units=100,
        history_limit=10,
        rng=random.Random(42),
    )


@pytest.fixture
def coin_settings():
    """Настройки, при которых автопокупка за монеты разрешена."""
    return AutomationSettings(
        enabled=True,
        auto_purchase=True,
        budget_limit=5000,
        minimum_trust_score=85,
        use_coins=True,
    )
