# autoshop/schemas/admin.py
from pydantic import BaseModel


class TaskInfo(BaseModel):
    task_name: str
    description: str


class TaskRunRequest(BaseModel):
    task_name: str  # имя из реестра или "all"
