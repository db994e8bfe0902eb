# autoshop/routers/recommendations.py

import logging
from typing import List
from fastapi import APIRouter, Depends

from autoshop.dependencies import get_orchestrator
from autoshop.schemas.cart import CartEntry
from autoshop.schemas.recommendation import (
    GeneratedRecommendations, GenerateRecommendationsRequest, PurchaseResult, Recommendation,
    RecommendationStatusUpdate, RecommendationView
)
from autoshop.services.auto_purchase import PurchaseOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/users/{user_id}/recommendations", response_model=List[RecommendationView])
async def list_recommendations(
    user_id: int,
    include_removed: bool = False,
    orchestrator: PurchaseOrchestrator = Depends(get_orchestrator),
):
    """Рекомендации пользователя с данными товаров из каталога."""
    return await orchestrator.list_recommendations(user_id, include_removed)


@router.post("/users/{user_id}/recommendations/generate", response_model=GeneratedRecommendations)
async def generate_recommendations(
    user_id: int,
    request_data: GenerateRecommendationsRequest,
    orchestrator: PurchaseOrchestrator = Depends(get_orchestrator),
):
    return await orchestrator.generate_recommendations(user_id, request_data)


@router.delete("/users/{user_id}/recommendations")
def clear_recommendations(user_id: int, orchestrator: PurchaseOrchestrator = Depends(get_orchestrator)):
    deleted = orchestrator.clear_recommendations(user_id)
    return {"status": "ok", "deleted": deleted}


@router.post("/recommendations/{recommendation_id}/purchase", response_model=PurchaseResult)
async def purchase_recommendation(
    recommendation_id: int,
    orchestrator: PurchaseOrchestrator = Depends(get_orchestrator),
):
    """
    Автопокупка по рекомендации. Отказ (настройки, нехватка монет, платеж)
    приходит с кодом 200 и success=false.
    """
    return await orchestrator.process_auto_purchase(recommendation_id)


@router.post("/recommendations/{recommendation_id}/cart", response_model=CartEntry)
async def add_recommendation_to_cart(
    recommendation_id: int,
    orchestrator: PurchaseOrchestrator = Depends(get_orchestrator),
):
    return await orchestrator.add_recommendation_to_cart(recommendation_id)


@router.patch("/recommendations/{recommendation_id}/status", response_model=Recommendation)
async def update_recommendation_status(
    recommendation_id: int,
    update: RecommendationStatusUpdate,
    orchestrator: PurchaseOrchestrator = Depends(get_orchestrator),
):
    return await orchestrator.update_recommendation_status(recommendation_id, update)
