"""Key-value persistence for the planning services.

Collections (tasks, templates, exceptions) are stored as whole JSON documents
under a string key. Services read a collection, work on it in memory, and
write it back; there is no partial update at this layer.
"""

import logging
from typing import Any

from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import flag_modified

from momentum.models.kv_entry import KeyValueEntry
from momentum.schemas.task import Task, parse_task

logger = logging.getLogger(__name__)

TASKS_KEY = "tasks"
RECURRING_TEMPLATES_KEY = "recurringTemplates"
RECURRENCE_EXCEPTIONS_KEY = "recurrenceExceptions"
TASK_TEMPLATES_KEY = "taskTemplates"


class KeyValueStore:
    def __init__(self, db: Session):
        self.db = db

    def get(self, key: str, default: Any = None) -> Any:
        row = self.db.get(KeyValueEntry, key)
        if row is None or row.value is None:
            return default
        return row.value

    def set(self, key: str, value: Any) -> None:
        row = self.db.get(KeyValueEntry, key)
        try:
            if row is None:
                self.db.add(KeyValueEntry(key=key, value=value))
            else:
                row.value = value
                # JSON columns are not mutation-tracked; force the UPDATE
                flag_modified(row, "value")
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to write key {key!r}: {type(e).__name__}: {str(e)}")
            raise

    def delete(self, key: str) -> bool:
        row = self.db.get(KeyValueEntry, key)
        if row is None:
            return False
        self.db.delete(row)
        self.db.commit()
        return True

    def has(self, key: str) -> bool:
        return self.db.get(KeyValueEntry, key) is not None

    def keys(self) -> list[str]:
        return [row.key for row in self.db.query(KeyValueEntry.key).order_by(KeyValueEntry.key).all()]


def load_tasks(store: KeyValueStore) -> list[Task]:
    return [parse_task(item) for item in store.get(TASKS_KEY, [])]


def save_tasks(store: KeyValueStore, tasks: list[Task]) -> None:
    store.set(TASKS_KEY, [task.model_dump(mode="json") for task in tasks])
