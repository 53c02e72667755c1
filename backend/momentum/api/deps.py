from fastapi import Depends
from sqlalchemy.orm import Session

from momentum.core.config import Settings, get_settings
from momentum.db.session import get_db
from momentum.db.store import KeyValueStore
from momentum.services.planning import PlanningService
from momentum.services.recurring_tasks import RecurringTaskService
from momentum.services.tasks import TaskService


def get_store(db: Session = Depends(get_db)) -> KeyValueStore:
    return KeyValueStore(db)


def get_recurring_service(
    store: KeyValueStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> RecurringTaskService:
    service = RecurringTaskService(store, settings)
    service.initialize()
    return service


def get_task_service(
    store: KeyValueStore = Depends(get_store),
    recurring_service: RecurringTaskService = Depends(get_recurring_service),
) -> TaskService:
    service = TaskService(store, recurring_service)
    service.initialize()
    return service


def get_planning_service(
    store: KeyValueStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> PlanningService:
    service = PlanningService(store, settings)
    service.initialize()
    return service
