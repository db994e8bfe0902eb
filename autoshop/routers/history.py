# autoshop/routers/history.py

import logging

from fastapi import APIRouter, Depends, Query, status

from autoshop.dependencies import get_store
from autoshop.schemas.history import (
    CategoryPreference, CategoryPreferenceUpdate, SearchRecord, SearchRecordCreate, UserHistory
)
from autoshop.storage.base import Storage

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/users/{user_id}/history", response_model=UserHistory)
def get_user_history(
    user_id: int,
    limit: int = Query(20, ge=0, le=100, description="0 - без ограничения"),
    store: Storage = Depends(get_store),
):
    """Сигналы, по которым ранжируются рекомендации пользователя."""
    preferences = store.get_category_preferences(user_id, limit)
    return UserHistory(
        purchases=store.get_purchase_history(user_id, limit),
        searches=store.get_search_history(user_id, limit),
        category_preferences=[
            CategoryPreference(category_id=category_id, score=score) for category_id, score in preferences.items()
        ],
    )


@router.post("/users/{user_id}/search-history", response_model=SearchRecord, status_code=status.HTTP_201_CREATED)
def record_search(user_id: int, search_data: SearchRecordCreate, store: Storage = Depends(get_store)):
    store.record_search(user_id, search_data.query, search_data.clicked_category_id)
    logger.info(f"Recorded search for user {user_id}")
    return SearchRecord(query=search_data.query, clicked_category_id=search_data.clicked_category_id)


@router.put("/users/{user_id}/category-preferences/{category_id}", response_model=CategoryPreference)
def set_category_preference(
    user_id: int,
    category_id: int,
    preference_data: CategoryPreferenceUpdate,
    store: Storage = Depends(get_store),
):
    """Задает вес категории. Повторный вызов перезаписывает прежнее значение."""
    store.set_category_preference(user_id, category_id, preference_data.score)
    return CategoryPreference(category_id=category_id, score=preference_data.score)
