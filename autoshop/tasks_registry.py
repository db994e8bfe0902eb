# autoshop/tasks_registry.py

from autoshop.services import reconciliation
from autoshop.storage.base import Storage

# --- Обертки получают хранилище, собранное в lifespan приложения ---

def run_reconcile_cart_recommendations(store: Storage):
    # Синхронная задача, FastAPI запустит ее в пуле потоков
    reconciliation.reconcile_cart_recommendations_task(store)


# --- Словарь-реестр задач, доступных для ручного запуска ---
# 'function' - сама функция, 'description' - описание для админки,
# 'is_async' - как ее запускать.

TASKS = {
    "reconcile_cart_recommendations": {
        "function": run_reconcile_cart_recommendations,
        "description": "Возвращает в 'pending' рекомендации, чьи товары уже убраны из корзины.",
        "is_async": False,
    },
}

def get_tasks_list():
    return [
        {"task_name": name, "description": data["description"]}
        for name, data in TASKS.items()
    ]
