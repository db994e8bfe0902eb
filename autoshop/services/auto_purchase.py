# autoshop/services/auto_purchase.py

"""
Жизненный цикл рекомендации и автопокупка.

Оркестратор - единственное место, где в одной операции участвуют и журнал
монет, и платежный шлюз. Бизнес-отказы (валидатор, нехватка монет, отказ
шлюза) возвращаются как PurchaseResult и фиксируются в статусе рекомендации.

Списание монет - последний обратимый шаг. Все, что идет после него
(корзина, статус, история), выполняется в отдельной задаче под
asyncio.shield: отмена вызывающего не оставит списание без покупки.

Недоступность хранилища бизнес-отказом не считается: StorageUnavailable
уходит вызывающему, а рекомендация остается в прежнем статусе.
"""

import asyncio
import logging
import random
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, List, Set

from autoshop.clients.base import PaymentGateway, ProductCatalog
from autoshop.core.config import settings
from autoshop.core.exceptions import (
    BusinessDenial, InsufficientFunds, NotFound, StorageUnavailable,
    UpstreamPaymentFailure, ValidationError
)
from autoshop.models.recommendation import (
    ALLOWED_TRANSITIONS, STATUS_ADDED_TO_CART, STATUS_PENDING, STATUS_PURCHASED, STATUS_REJECTED
)
from autoshop.schemas.automation import AutomationSettings
from autoshop.schemas.cart import CartEntry, CartEntryCreate
from autoshop.schemas.product import ProductInfo
from autoshop.schemas.recommendation import (
    GeneratedRecommendations, GenerateRecommendationsRequest, PurchaseResult, Recommendation,
    RecommendationStatusUpdate, RecommendationView
)
from autoshop.services.coins import CoinLedger
from autoshop.services.purchase_validator import validate_purchase
from autoshop.services.recommendation_scorer import ScoringWeights, score_candidates
from autoshop.storage.base import Storage

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = {STATUS_PURCHASED, STATUS_REJECTED}


def price_in_coins(price: int, minor_units: int) -> int:
    """Цена в монетах, округление вверх."""
    return -(-price // minor_units)


class PurchaseOrchestrator:
    def __init__(
        self,
        store: Storage,
        ledger: CoinLedger,
        catalog: ProductCatalog,
        payments: PaymentGateway,
        currency: str | None = None,
        min_confidence: int | None = None,
        coin_minor_units: int | None = None,
        history_limit: int | None = None,
        weights: ScoringWeights | None = None,
        rng: random.Random | None = None,
    ):
        self.store = store
        self.ledger = ledger
        self.catalog = catalog
        self.payments = payments
        self.currency = currency or settings.PAYMENT_CURRENCY
        self.min_confidence = min_confidence if min_confidence is not None else settings.AUTO_PURCHASE_MIN_CONFIDENCE
        self.coin_minor_units = coin_minor_units or settings.COIN_MINOR_UNITS
        self.history_limit = history_limit or settings.RECOMMENDATION_HISTORY_LIMIT
        self.weights = weights or ScoringWeights.from_mapping(settings.SCORER_WEIGHTS)
        self.rng = rng or random.Random()
        # recommendation_id -> [блокировка, сколько задач ее держат или ждут]
        self._locks: Dict[int, list] = {}
        # Ссылки на фоновые задачи, чтобы их не собрал сборщик мусора
        self._background: Set[asyncio.Task] = set()

    @asynccontextmanager
    async def _lock_for(self, recommendation_id: int) -> AsyncIterator[None]:
        entry = self._locks.get(recommendation_id)
        if entry is None:
            entry = self._locks[recommendation_id] = [asyncio.Lock(), 0]
        entry[1] += 1
        try:
            async with entry[0]:
                yield
        finally:
            entry[1] -= 1
            if entry[1] == 0:
                del self._locks[recommendation_id]

    def _load_recommendation(self, recommendation_id: int) -> Recommendation:
        recommendation = self.store.get_recommendation(recommendation_id)
        if recommendation is None:
            raise NotFound(f"Recommendation {recommendation_id} not found", {"recommendation_id": recommendation_id})
        return recommendation

    # --- Автопокупка ---

    async def process_auto_purchase(self, recommendation_id: int) -> PurchaseResult:
        async with self._lock_for(recommendation_id):
            return await self._process(recommendation_id)

    async def _process(self, recommendation_id: int) -> PurchaseResult:
        recommendation = self._load_recommendation(recommendation_id)
        if recommendation.status in TERMINAL_STATUSES:
            return self._already_processed(recommendation)

        product = await self.catalog.get_product_by_id(recommendation.product_id)
        if product is None:
            raise NotFound(f"Product {recommendation.product_id} not found", {"product_id": recommendation.product_id})

        automation_settings = self.store.get_automation_settings(recommendation.user_id)
        decision = validate_purchase(automation_settings, recommendation, product, self.min_confidence)
        if not decision.allowed:
            logger.info(f"Auto-purchase of recommendation {recommendation.id} denied: {decision.reason}")
            return self._reject(recommendation, decision.reason)

        if automation_settings.use_coins:
            return await self._purchase_with_coins(recommendation, product)
        return await self._purchase_with_card(recommendation, product)

    def _already_processed(self, recommendation: Recommendation) -> PurchaseResult:
        if recommendation.status == STATUS_PURCHASED:
            message = "Recommendation has already been purchased"
        else:
            message = recommendation.rejected_reason or "Recommendation has already been rejected"
        return PurchaseResult(
            recommendation_id=recommendation.id,
            success=recommendation.status == STATUS_PURCHASED,
            message=message,
            status=recommendation.status,
            already_processed=True,
        )

    def _reject(self, recommendation: Recommendation, reason: str) -> PurchaseResult:
        self.store.update_recommendation_status(recommendation.id, STATUS_REJECTED, reason)
        return PurchaseResult(
            recommendation_id=recommendation.id,
            success=False,
            message=reason,
            status=STATUS_REJECTED,
        )

    async def _purchase_with_coins(self, recommendation: Recommendation, product: ProductInfo) -> PurchaseResult:
        user_id = recommendation.user_id
        required = price_in_coins(product.price, self.coin_minor_units)

        if required == 0:
            return await self._finalize(recommendation, product, "Purchased free product", add_to_cart=True)

        balance = self.ledger.get_balance(user_id)
        if balance < required:
            return self._reject(recommendation, f"Insufficient coin balance. Required: {required}, Available: {balance}")

        try:
            transaction = self.ledger.debit(
                user_id,
                required,
                description=f"Auto-purchase: {product.title}",
                metadata={"recommendation_id": recommendation.id, "product_id": product.id, "price": product.price},
            )
        except InsufficientFunds as e:
            # Баланс успел измениться между проверкой и списанием
            return self._reject(
                recommendation, f"Insufficient coin balance. Required: {e.required}, Available: {e.balance}"
            )
        except ValidationError as e:
            logger.error(f"Coin debit failed for recommendation {recommendation.id}: {e.message}")
            return self._reject(recommendation, f"Coin debit failed: {e.message}")
        except StorageUnavailable:
            logger.error(f"Ledger unavailable, recommendation {recommendation.id} stays {recommendation.status}")
            raise

        return await self._finalize(
            recommendation,
            product,
            f"Purchased with {required} coins",
            add_to_cart=True,
            transaction_id=transaction.id,
        )

    async def _purchase_with_card(self, recommendation: Recommendation, product: ProductInfo) -> PurchaseResult:
        try:
            payment_method = await self.payments.get_default_payment_method(recommendation.user_id)
        except UpstreamPaymentFailure as e:
            return self._reject(recommendation, e.message)
        if payment_method is None:
            return self._reject(recommendation, "No default payment method on file")

        try:
            payment = await self.payments.charge(
                product.price,
                self.currency,
                payment_method,
                description=f"Auto-purchase: {product.title}",
                metadata={"recommendation_id": recommendation.id, "product_id": product.id},
            )
        except UpstreamPaymentFailure as e:
            logger.warning(f"Card payment failed for recommendation {recommendation.id}: {e.message}")
            return self._reject(recommendation, e.message)

        return await self._finalize(recommendation, product, f"Purchased by card, payment {payment.id}")

    async def _finalize(
        self,
        recommendation: Recommendation,
        product: ProductInfo,
        message: str,
        add_to_cart: bool = False,
        transaction_id: int | None = None,
    ) -> PurchaseResult:
        task = asyncio.ensure_future(
            self._complete_purchase(recommendation, product, message, add_to_cart, transaction_id)
        )
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return await asyncio.shield(task)

    async def _complete_purchase(
        self,
        recommendation: Recommendation,
        product: ProductInfo,
        message: str,
        add_to_cart: bool,
        transaction_id: int | None,
    ) -> PurchaseResult:
        try:
            if add_to_cart:
                entries = self.store.list_cart_entries(recommendation.user_id)
                if not any(e.recommendation_id == recommendation.id for e in entries):
                    self.store.upsert_cart_entry(CartEntryCreate(
                        user_id=recommendation.user_id,
                        product_id=product.id,
                        quantity=1,
                        source="ai_shopper",
                        recommendation_id=recommendation.id,
                    ))
            self.store.update_recommendation_status(recommendation.id, STATUS_PURCHASED)
            self.store.record_purchase(recommendation.user_id, product.id, product.category_id)
        except StorageUnavailable:
            logger.critical(
                f"Payment for recommendation {recommendation.id} (user {recommendation.user_id}, "
                f"transaction {transaction_id}) was taken but the purchase could not be recorded. "
                f"Manual reconciliation required.",
                exc_info=True,
            )
            raise

        logger.info(f"Recommendation {recommendation.id} purchased for user {recommendation.user_id}")
        return PurchaseResult(
            recommendation_id=recommendation.id,
            success=True,
            message=message,
            status=STATUS_PURCHASED,
            transaction_id=transaction_id,
        )

    # --- Генерация рекомендаций ---

    def _eligible(self, product: ProductInfo, automation_settings: AutomationSettings) -> bool:
        if automation_settings.avoid_tags & set(product.tags):
            return False
        if product.trust_score < automation_settings.minimum_trust_score:
            return False
        if automation_settings.preferred_categories:
            return str(product.category_id) in automation_settings.preferred_categories
        return True

    async def generate_recommendations(
        self, user_id: int, request: GenerateRecommendationsRequest
    ) -> GeneratedRecommendations:
        """
        Отбирает кандидатов по настройкам пользователя, ранжирует их по истории
        и сохраняет лучшие как рекомендации. Если включены автопокупки, сразу
        пытается купить первую. Первая с уверенностью ниже порога остается pending.
        """
        automation_settings = self.store.get_automation_settings(user_id)
        candidates = [p for p in request.candidates if self._eligible(p, automation_settings)]

        scored = score_candidates(
            candidates,
            self.store.get_purchase_history(user_id, self.history_limit),
            self.store.get_search_history(user_id, self.history_limit),
            self.store.get_category_preferences(user_id, self.history_limit),
            weights=self.weights,
            random_mode=request.random_mode,
            limit=request.limit,
            rng=self.rng,
        )

        recommendations = [
            self.store.create_recommendation(
                user_id, c.product.id, "; ".join(c.reasons) or "Recommended for you", c.confidence
            )
            for c in scored
        ]
        logger.info(f"Generated {len(recommendations)} recommendations for user {user_id}")

        purchase = None
        if (
            recommendations
            and request.auto_purchase
            and automation_settings.enabled
            and automation_settings.auto_purchase
            and recommendations[0].confidence >= self.min_confidence
        ):
            purchase = await self.process_auto_purchase(recommendations[0].id)
            recommendations[0] = self._load_recommendation(recommendations[0].id)

        return GeneratedRecommendations(recommendations=recommendations, purchase=purchase)

    # --- Ручные действия пользователя ---

    async def add_recommendation_to_cart(self, recommendation_id: int, quantity: int = 1) -> CartEntry:
        async with self._lock_for(recommendation_id):
            recommendation = self._load_recommendation(recommendation_id)
            if recommendation.status not in (STATUS_PENDING, STATUS_ADDED_TO_CART):
                raise BusinessDenial(
                    f"Recommendation {recommendation_id} is already {recommendation.status}",
                    {"status": recommendation.status},
                )

            entry = self.store.upsert_cart_entry(CartEntryCreate(
                user_id=recommendation.user_id,
                product_id=recommendation.product_id,
                quantity=quantity,
                source="ai_recommendation",
                recommendation_id=recommendation.id,
            ))
            self.store.update_recommendation_status(recommendation.id, STATUS_ADDED_TO_CART)
            return entry

    async def update_recommendation_status(
        self, recommendation_id: int, update: RecommendationStatusUpdate
    ) -> Recommendation:
        status = STATUS_REJECTED if update.remove_from_list else update.status

        async with self._lock_for(recommendation_id):
            recommendation = self._load_recommendation(recommendation_id)
            if status not in ALLOWED_TRANSITIONS[recommendation.status]:
                raise BusinessDenial(
                    f"Cannot change recommendation status from {recommendation.status} to {status}",
                    {"from": recommendation.status, "to": status},
                )
            return self.store.update_recommendation_status(
                recommendation_id, status, update.reason, permanent=update.remove_from_list
            )

    async def list_recommendations(self, user_id: int, include_removed: bool = False) -> List[RecommendationView]:
        recommendations = self.store.list_recommendations(user_id, include_removed)
        products = await asyncio.gather(
            *(self.catalog.get_product_by_id(r.product_id) for r in recommendations)
        )
        return [
            RecommendationView(recommendation=r, product=p)
            for r, p in zip(recommendations, products)
        ]

    def clear_recommendations(self, user_id: int) -> int:
        deleted = self.store.delete_recommendations(user_id)
        logger.info(f"Cleared {deleted} recommendations for user {user_id}")
        return deleted
