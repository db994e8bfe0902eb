# autoshop/main.py

import logging
from contextlib import asynccontextmanager
from fastapi import APIRouter, FastAPI, Request, status
from fastapi.responses import JSONResponse
from apscheduler.schedulers.asyncio import AsyncIOScheduler

# Конфигурация и ядро
from autoshop.core.config import settings as config
from autoshop.core.exceptions import (
    AutoshopError, BusinessDenial, NotFound, StorageUnavailable, UpstreamPaymentFailure, ValidationError
)
from autoshop.core.logging_config import setup_logging
from autoshop.core.redis import redis_client
from autoshop.db.session import init_db

# Сборка сервисов
from autoshop.clients.catalog import build_catalog_client
from autoshop.clients.payments import build_payment_client
from autoshop.services.auto_purchase import PurchaseOrchestrator
from autoshop.services.coins import CoinLedger
from autoshop.services.reconciliation import reconcile_cart_recommendations_task
from autoshop.storage.memory import MemoryStorage
from autoshop.storage.resilient import ResilientStorage
from autoshop.storage.sql import SqlStorage

# Роутеры FastAPI
from autoshop.routers import automation, cart, coins, history, recommendations, tasks

# --- Инициализация ---
logger = logging.getLogger(__name__)
scheduler = AsyncIOScheduler()

STARTUP_LOCK_KEY = "autoshop_startup_lock"

# Код ответа для каждой ветки иерархии ошибок
ERROR_STATUS_CODES = [
    (NotFound, status.HTTP_404_NOT_FOUND),
    (ValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (BusinessDenial, status.HTTP_409_CONFLICT),
    (StorageUnavailable, status.HTTP_503_SERVICE_UNAVAILABLE),
    (UpstreamPaymentFailure, status.HTTP_502_BAD_GATEWAY),
]


async def autoshop_error_handler(request: Request, exc: AutoshopError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    for error_class, code in ERROR_STATUS_CODES:
        if isinstance(exc, error_class):
            status_code = code
            break
    if status_code >= 500:
        logger.error(f"{type(exc).__name__} for request {request.method} {request.url}: {exc.message}")
    return JSONResponse(status_code=status_code, content={"detail": exc.message, "context": exc.details})


# --- Обработчик критических ошибок ---
async def unhandled_exception_handler(request: Request, exc: Exception):
    """Глобальный обработчик для всех необработанных исключений."""
    logger.critical(f"Unhandled exception for request: {request.method} {request.url}", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal Server Error."},
    )


def build_services(app: FastAPI) -> None:
    """Собирает хранилища и сервисы и кладет их в app.state."""
    store = ResilientStorage(primary=SqlStorage(), fallback=MemoryStorage())
    ledger = CoinLedger(store)
    app.state.store = store
    app.state.ledger = ledger
    app.state.catalog = build_catalog_client()
    app.state.payments = build_payment_client()
    app.state.orchestrator = PurchaseOrchestrator(store, ledger, app.state.catalog, app.state.payments)


# --- Lifespan Manager (запуск и остановка приложения) ---
@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger.info("Application lifespan startup...")

    init_db()
    build_services(app)

    # Блокировка через Redis: планировщик запускает только один воркер
    is_main_worker = await redis_client.set(STARTUP_LOCK_KEY, "1", ex=60, nx=True)

    if is_main_worker:
        logger.info("This is the main worker. Starting scheduler...")
        if not scheduler.running:
            scheduler.add_job(
                reconcile_cart_recommendations_task,
                'interval',
                minutes=config.RECONCILIATION_INTERVAL_MINUTES,
                args=[app.state.store],
            )
            scheduler.start()
            logger.info("Scheduler started with background jobs.")
    else:
        logger.info("This is a secondary worker. Skipping scheduler setup.")

    yield

    # Код при остановке
    if is_main_worker:
        logger.info("Main worker shutting down...")
        if scheduler.running:
            scheduler.shutdown()
            logger.info("Scheduler shut down.")
        await redis_client.delete(STARTUP_LOCK_KEY)
    else:
        logger.info("Secondary worker shutting down.")

    await app.state.catalog.aclose()
    await app.state.payments.aclose()
    logger.info(f"Storage fallback was used {app.state.store.dispatcher.bypass_count} times during this run.")


# --- Создание FastAPI приложения ---
app = FastAPI(
    title="Autoshop Service",
    description="Coin ledger, recommendations and automated purchasing",
    version="0.1.0",
    lifespan=lifespan
)

# --- Регистрация обработчиков исключений ---
app.add_exception_handler(AutoshopError, autoshop_error_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# --- Подключение роутеров FastAPI ---
api_router = APIRouter(prefix="/api/v1")

api_router.include_router(coins.router, tags=["Coins"])
api_router.include_router(recommendations.router, tags=["Recommendations"])
api_router.include_router(cart.router, tags=["Cart"])
api_router.include_router(automation.router, tags=["Automation Settings"])
api_router.include_router(history.router, tags=["History"])

# Админские эндпоинты
api_router.include_router(tasks.router, prefix="/admin/tasks", tags=["Admin"])

app.include_router(api_router)
