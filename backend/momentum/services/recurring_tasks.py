"""Service for managing recurring templates, their exceptions and generated instances"""
from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, timedelta

from momentum.core.config import Settings, get_settings
from momentum.core.errors import (
    InvalidRecurrenceError,
    RecurringTemplateNotFoundError,
    StoreNotInitializedError,
)
from momentum.db.store import (
    RECURRENCE_EXCEPTIONS_KEY,
    RECURRING_TEMPLATES_KEY,
    KeyValueStore,
    load_tasks,
    save_tasks,
)
from momentum.schemas.recurrence import (
    RecurrenceException,
    RecurrenceExceptionCreate,
    RecurringTaskTemplate,
    RecurringTaskTemplateUpdate,
)
from momentum.schemas.task import (
    RecurrencePattern,
    RecurringTaskInstance,
    Task,
    TaskDraft,
)
from momentum.services import recurrence

logger = logging.getLogger(__name__)


class RecurringTaskService:
    def __init__(self, store: KeyValueStore, settings: Settings | None = None):
        self.store = store
        self.settings = settings or get_settings()
        self._initialized = False

    def initialize(self) -> None:
        for key in (RECURRING_TEMPLATES_KEY, RECURRENCE_EXCEPTIONS_KEY):
            if not self.store.has(key):
                self.store.set(key, [])
        self._initialized = True

    def _require_initialized(self) -> None:
        if not self._initialized:
            raise StoreNotInitializedError()

    # Storage

    def _load_templates(self) -> list[RecurringTaskTemplate]:
        return [
            RecurringTaskTemplate.model_validate(item)
            for item in self.store.get(RECURRING_TEMPLATES_KEY, [])
        ]

    def _save_templates(self, templates: list[RecurringTaskTemplate]) -> None:
        self.store.set(
            RECURRING_TEMPLATES_KEY,
            [template.model_dump(mode="json") for template in templates],
        )

    def _load_exceptions(self) -> list[RecurrenceException]:
        return [
            RecurrenceException.model_validate(item)
            for item in self.store.get(RECURRENCE_EXCEPTIONS_KEY, [])
        ]

    def _save_exceptions(self, exceptions: list[RecurrenceException]) -> None:
        self.store.set(
            RECURRENCE_EXCEPTIONS_KEY,
            [exception.model_dump(mode="json", exclude_unset=True) for exception in exceptions],
        )

    # Templates

    def save_template(self, template: RecurringTaskTemplate) -> RecurringTaskTemplate:
        self._require_initialized()
        templates = [t for t in self._load_templates() if t.id != template.id]
        templates.append(template)
        self._save_templates(templates)
        return template

    def get_templates(self) -> list[RecurringTaskTemplate]:
        self._require_initialized()
        return self._load_templates()

    def get_template(self, template_id: str) -> RecurringTaskTemplate:
        self._require_initialized()
        for template in self._load_templates():
            if template.id == template_id:
                return template
        logger.warning(f"Recurring template {template_id} not found")
        raise RecurringTemplateNotFoundError(template_id)

    def update_template(
        self,
        template_id: str,
        updates: RecurringTaskTemplateUpdate,
        now: datetime | None = None,
    ) -> RecurringTaskTemplate:
        template = self.get_template(template_id)
        changes = {
            field: value
            for field, value in updates.model_dump(exclude_unset=True).items()
            if value is not None or field in ("description", "scheduled_time", "duration")
        }
        updated = RecurringTaskTemplate.model_validate(
            {**template.model_dump(), **changes, "updated_at": now or datetime.now()}
        )
        return self.save_template(updated)

    def deactivate_template(self, template_id: str) -> RecurringTaskTemplate:
        """Stop generating new instances; instances already stored are kept."""
        updated = self.update_template(template_id, RecurringTaskTemplateUpdate(is_active=False))
        logger.info(f"Deactivated recurring template {template_id}")
        return updated

    def delete_template(self, template_id: str) -> int:
        """Delete a template with its exceptions and every instance it generated.

        Returns:
            Number of instances removed from the task collection
        """
        self.get_template(template_id)
        self._save_templates([t for t in self._load_templates() if t.id != template_id])
        self._save_exceptions(
            [e for e in self._load_exceptions() if e.template_id != template_id]
        )

        tasks = load_tasks(self.store)
        remaining = [
            task for task in tasks
            if not (isinstance(task, RecurringTaskInstance) and task.template_id == template_id)
        ]
        removed = len(tasks) - len(remaining)
        if removed:
            save_tasks(self.store, remaining)

        logger.info(f"Deleted recurring template {template_id} and {removed} instance(s)")
        return removed

    # Instances

    def create_recurring_task(
        self,
        draft: TaskDraft,
        today: date | None = None,
        now: datetime | None = None,
    ) -> Task:
        """
        Turn a recurring draft into a template and materialize its first instances.

        Instances cover ``recurrence_horizon_days`` from the draft's date (or
        today). The first instance is returned; when the pattern yields nothing
        in that window a plain task is stored from the draft instead.
        """
        self._require_initialized()
        if not draft.is_recurring or draft.recurrence_pattern is None:
            raise InvalidRecurrenceError("Recurring tasks need a recurrence pattern")

        now = now or datetime.now()
        start_date = draft.scheduled_date or today or now.date()
        end_date = start_date + timedelta(days=self.settings.recurrence_horizon_days)

        template = recurrence.create_template(draft, draft.recurrence_pattern, now=now)
        instances = recurrence.generate_instances(template, start_date, end_date, now=now)
        template.last_generated_date = end_date
        template.generated_count = len(instances)
        self.save_template(template)

        tasks = load_tasks(self.store)
        if instances:
            tasks.extend(instances)
            save_tasks(self.store, tasks)
            logger.info(
                f"Created recurring template {template.id} with {len(instances)} instance(s)"
            )
            return instances[0]

        task = Task(
            **draft.model_dump(exclude={"scheduled_date"}),
            id=f"task-{uuid.uuid4().hex[:12]}",
            scheduled_date=start_date,
            created_at=now,
            updated_at=now,
        )
        tasks.append(task)
        save_tasks(self.store, tasks)
        logger.info(f"Recurring template {template.id} produced no instances; stored task {task.id}")
        return task

    def generate_recurring_instances(
        self,
        days_ahead: int | None = None,
        today: date | None = None,
        now: datetime | None = None,
    ) -> list[RecurringTaskInstance]:
        """
        Materialize instances of every active template up to ``days_ahead`` from today.

        Dates that already hold an instance of the same template are left alone and do
        not count against an occurrence cap.

        Returns:
            Newly stored instances
        """
        self._require_initialized()
        now = now or datetime.now()
        today = today or now.date()
        if days_ahead is None:
            days_ahead = self.settings.recurrence_horizon_days
        end_date = today + timedelta(days=days_ahead)

        tasks = load_tasks(self.store)
        existing = [task for task in tasks if isinstance(task, RecurringTaskInstance)]
        exceptions = self._load_exceptions()

        templates = self._load_templates()
        new_instances: list[RecurringTaskInstance] = []
        for template in templates:
            if not template.is_active:
                continue
            fresh = recurrence.generate_instances(
                template,
                today,
                end_date,
                exceptions=[e for e in exceptions if e.template_id == template.id],
                already_generated=template.generated_count,
                skip_dates=[task.instance_date for task in existing if task.template_id == template.id],
                now=now,
            )
            new_instances.extend(fresh)
            template.generated_count += len(fresh)
            template.last_generated_date = end_date

        if new_instances:
            tasks.extend(new_instances)
            save_tasks(self.store, tasks)
        self._save_templates(templates)

        logger.info(f"Generated {len(new_instances)} recurring instance(s) through {end_date}")
        return new_instances

    def cleanup_old_recurring_instances(
        self,
        days_to_keep: int | None = None,
        today: date | None = None,
    ) -> int:
        """Remove stale instances; non-recurring tasks are never touched."""
        self._require_initialized()
        if days_to_keep is None:
            days_to_keep = self.settings.instance_retention_days

        tasks = load_tasks(self.store)
        instances = [task for task in tasks if isinstance(task, RecurringTaskInstance)]
        kept = recurrence.cleanup_old_instances(instances, days_to_keep, today)
        removed = len(instances) - len(kept)
        if removed:
            others = [task for task in tasks if not isinstance(task, RecurringTaskInstance)]
            save_tasks(self.store, others + kept)

        logger.debug(f"Cleaned up {removed} recurring instance(s)")
        return removed

    # Exceptions

    def add_exception(
        self,
        template_id: str,
        data: RecurrenceExceptionCreate,
        now: datetime | None = None,
    ) -> RecurrenceException:
        self.get_template(template_id)
        exception = RecurrenceException(
            **data.model_dump(exclude_unset=True),
            id=f"exception-{uuid.uuid4().hex[:12]}",
            template_id=template_id,
            created_at=now or datetime.now(),
        )
        exceptions = self._load_exceptions()
        exceptions.append(exception)
        self._save_exceptions(exceptions)
        logger.info(f"Added {data.type.value} exception for template {template_id} on {data.date}")
        return exception

    def get_exceptions(self, template_id: str | None = None) -> list[RecurrenceException]:
        self._require_initialized()
        exceptions = self._load_exceptions()
        if template_id is None:
            return exceptions
        return [e for e in exceptions if e.template_id == template_id]

    def preview(self, pattern: RecurrencePattern, start_date: date, count: int = 5) -> list[date]:
        return recurrence.generate_preview(pattern, start_date, count)
