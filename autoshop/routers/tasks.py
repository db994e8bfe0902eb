# autoshop/routers/tasks.py

import logging
from typing import List

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status

from autoshop.dependencies import get_store
from autoshop.schemas.admin import TaskInfo, TaskRunRequest
from autoshop.storage.base import Storage
from autoshop.tasks_registry import TASKS, get_tasks_list

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=List[TaskInfo])
def get_tasks_list_endpoint():
    """
    [АДМИН] Возвращает список фоновых задач, доступных для ручного запуска.
    """
    return get_tasks_list()


@router.post("/run", status_code=status.HTTP_202_ACCEPTED)
async def run_task_endpoint(
    request_data: TaskRunRequest,
    background_tasks: BackgroundTasks,
    store: Storage = Depends(get_store),
):
    """
    [АДМИН] Запускает одну задачу из реестра или все сразу ("all").
    """
    task_name_to_run = request_data.task_name

    if task_name_to_run == "all":
        for data in TASKS.values():
            background_tasks.add_task(data["function"], store)
        message = "All background tasks have been scheduled to run."
        logger.info("All background tasks were manually triggered.")
    elif task_name_to_run in TASKS:
        background_tasks.add_task(TASKS[task_name_to_run]["function"], store)
        message = f"Task '{task_name_to_run}' has been scheduled to run."
        logger.info(f"Background task '{task_name_to_run}' was manually triggered.")
    else:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Task '{task_name_to_run}' not found.")

    return {"status": "accepted", "message": message}
