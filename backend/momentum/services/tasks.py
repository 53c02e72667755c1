from __future__ import annotations

import functools
import logging
import uuid
from datetime import date, datetime

from momentum.core.errors import StoreNotInitializedError, TaskNotFoundError
from momentum.db.store import TASKS_KEY, KeyValueStore, load_tasks, save_tasks
from momentum.schemas.task import Task, TaskDraft, TaskStatus, TaskUpdate
from momentum.services.recurring_tasks import RecurringTaskService

logger = logging.getLogger(__name__)


def _compare_tasks(first: Task, second: Task) -> int:
    # Timed tasks order by time; anything else falls back to creation order
    if first.scheduled_time and second.scheduled_time:
        left, right = first.scheduled_time, second.scheduled_time
    else:
        left, right = first.created_at, second.created_at
    return (left > right) - (left < right)


class TaskService:
    def __init__(self, store: KeyValueStore, recurring_service: RecurringTaskService):
        self.store = store
        self.recurring_service = recurring_service
        self._initialized = False

    def initialize(self) -> None:
        if not self.store.has(TASKS_KEY):
            self.store.set(TASKS_KEY, [])
        self.recurring_service.initialize()
        self._initialized = True

    def _require_initialized(self) -> None:
        if not self._initialized:
            raise StoreNotInitializedError()

    def create_task(self, draft: TaskDraft, now: datetime | None = None) -> Task:
        self._require_initialized()
        if draft.is_recurring:
            return self.recurring_service.create_recurring_task(draft, now=now)

        now = now or datetime.now()
        task = Task(
            **draft.model_dump(exclude={"scheduled_date"}),
            id=f"task-{uuid.uuid4().hex[:12]}",
            scheduled_date=draft.scheduled_date or now.date(),
            created_at=now,
            updated_at=now,
        )
        tasks = load_tasks(self.store)
        tasks.append(task)
        save_tasks(self.store, tasks)
        logger.info(f"Created task {task.id} on {task.scheduled_date}")
        return task

    def get_tasks(self, day: date | None = None) -> list[Task]:
        self._require_initialized()
        tasks = load_tasks(self.store)
        if day is not None:
            return [task for task in tasks if task.scheduled_date == day]
        return sorted(tasks, key=functools.cmp_to_key(_compare_tasks))

    def get_task(self, task_id: str) -> Task:
        self._require_initialized()
        for task in load_tasks(self.store):
            if task.id == task_id:
                return task
        logger.warning(f"Task {task_id} not found")
        raise TaskNotFoundError(task_id)

    def _replace(self, updated: Task) -> Task:
        tasks = [updated if task.id == updated.id else task for task in load_tasks(self.store)]
        save_tasks(self.store, tasks)
        return updated

    def update_task(self, task_id: str, updates: TaskUpdate, now: datetime | None = None) -> Task:
        task = self.get_task(task_id)
        updated = type(task).model_validate(
            {**task.model_dump(), **updates.changes(), "updated_at": now or datetime.now()}
        )
        return self._replace(updated)

    def complete_task(self, task_id: str, now: datetime | None = None) -> Task:
        task = self.get_task(task_id)
        now = now or datetime.now()
        completed = task.model_copy(
            update={"status": TaskStatus.COMPLETED, "completed_at": now, "updated_at": now}
        )
        logger.info(f"Completed task {task_id}")
        return self._replace(completed)

    def delete_task(self, task_id: str) -> None:
        self.get_task(task_id)
        save_tasks(self.store, [task for task in load_tasks(self.store) if task.id != task_id])
        logger.info(f"Deleted task {task_id}")
