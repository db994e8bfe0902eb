# autoshop/routers/automation.py

from fastapi import APIRouter, Depends

from autoshop.dependencies import get_store
from autoshop.schemas.automation import AutomationSettings
from autoshop.storage.base import Storage

router = APIRouter()


@router.get("/users/{user_id}/automation-settings", response_model=AutomationSettings)
def get_automation_settings(user_id: int, store: Storage = Depends(get_store)):
    return store.get_automation_settings(user_id)


@router.put("/users/{user_id}/automation-settings", response_model=AutomationSettings)
def save_automation_settings(user_id: int, settings_data: AutomationSettings, store: Storage = Depends(get_store)):
    """Сохраняет настройки целиком. Неизвестные поля отклоняются с 422."""
    return store.save_automation_settings(user_id, settings_data)
