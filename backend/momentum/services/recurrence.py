"""Recurrence engine: expands recurring templates into dated instances.

Everything here is pure. Callers load templates and exceptions from the store,
call in, and persist whatever comes back.
"""
from __future__ import annotations

import uuid
from datetime import date, datetime, timedelta
from typing import Iterable

from momentum.schemas.recurrence import (
    ExceptionType,
    RecurrenceException,
    RecurringTaskTemplate,
    RecurringTaskTemplateBase,
)
from momentum.schemas.task import (
    RecurrenceFrequency,
    RecurrencePattern,
    RecurringTaskInstance,
    TaskBase,
    TaskStatus,
)
from momentum.utils.calendar import day_of_year, sunday_based_weekday

# Preview gives up when a pattern has matched nothing for this many days
PREVIEW_SCAN_LIMIT_DAYS = 365


def should_generate_for_date(day: date, pattern: RecurrencePattern) -> bool:
    """Whether ``pattern`` fires on ``day``.

    Daily patterns fire on days whose day-of-year is a multiple of the
    interval, weekly patterns on the listed weekdays (interval unused), and
    monthly patterns on the first of every month.
    """
    if pattern.frequency == RecurrenceFrequency.DAILY:
        return day_of_year(day) % pattern.interval == 0
    if pattern.frequency == RecurrenceFrequency.WEEKLY:
        if not pattern.days_of_week:
            return False
        return sunday_based_weekday(day) in pattern.days_of_week
    if pattern.frequency == RecurrenceFrequency.MONTHLY:
        return day.day == 1
    return False


def has_recurrence_ended(pattern: RecurrencePattern, current_date: date) -> bool:
    return pattern.end_date is not None and current_date > pattern.end_date


def create_template(
    task: TaskBase | RecurringTaskTemplateBase,
    pattern: RecurrencePattern,
    now: datetime | None = None,
) -> RecurringTaskTemplate:
    now = now or datetime.now()
    return RecurringTaskTemplate(
        id=f"template-{uuid.uuid4().hex[:12]}",
        title=task.title,
        description=task.description,
        category=task.category,
        priority=task.priority,
        scheduled_time=task.scheduled_time,
        duration=task.duration,
        xp_reward=task.xp_reward,
        recurrence_pattern=pattern,
        created_at=now,
        updated_at=now,
        is_active=True,
    )


def _index_exceptions(
    exceptions: Iterable[RecurrenceException],
) -> dict[tuple[str, date], RecurrenceException]:
    index: dict[tuple[str, date], RecurrenceException] = {}
    for exception in exceptions:
        key = (exception.template_id, exception.date)
        current = index.get(key)
        if current is None:
            index[key] = exception
        elif exception.type == ExceptionType.SKIP and current.type != ExceptionType.SKIP:
            # A skip always beats a modify on the same date
            index[key] = exception
    return index


def _build_instance(
    template: RecurringTaskTemplate,
    day: date,
    now: datetime,
) -> RecurringTaskInstance:
    return RecurringTaskInstance(
        id=f"recurring-{template.id}-{day.isoformat()}-{uuid.uuid4().hex[:8]}",
        template_id=template.id,
        instance_date=day,
        scheduled_date=day,
        title=template.title,
        description=template.description,
        category=template.category,
        priority=template.priority,
        status=TaskStatus.PENDING,
        scheduled_time=template.scheduled_time,
        duration=template.duration,
        xp_reward=template.xp_reward,
        is_recurring=True,
        recurrence_pattern=template.recurrence_pattern,
        is_modified=False,
        created_at=now,
        updated_at=now,
    )


def generate_instances(
    template: RecurringTaskTemplate,
    start_date: date,
    end_date: date,
    exceptions: Iterable[RecurrenceException] = (),
    already_generated: int = 0,
    skip_dates: Iterable[date] = (),
    now: datetime | None = None,
) -> list[RecurringTaskInstance]:
    """
    Expand a template into one instance per matching date.

    Args:
        template: The recurring template to expand
        start_date: First date considered (inclusive)
        end_date: Last date considered (inclusive)
        exceptions: Per-date skip/modify overrides; other templates' entries are ignored
        already_generated: Instances that already exist, counted against
            ``end_after_occurrences``
        skip_dates: Dates that already hold an instance; stepped over without
            using up ``end_after_occurrences``
        now: Timestamp for ``created_at``/``updated_at``

    Returns:
        Instances in date order
    """
    now = now or datetime.now()
    pattern = template.recurrence_pattern
    index = _index_exceptions(exceptions)
    skip_dates = set(skip_dates)

    remaining = None
    if pattern.end_after_occurrences is not None:
        remaining = pattern.end_after_occurrences - already_generated
        if remaining <= 0:
            return []

    instances: list[RecurringTaskInstance] = []
    current = start_date
    while current <= end_date:
        if has_recurrence_ended(pattern, current):
            break
        if remaining is not None and len(instances) >= remaining:
            break

        if current in skip_dates:
            current += timedelta(days=1)
            continue

        exception = index.get((template.id, current))
        if exception is not None and exception.type == ExceptionType.SKIP:
            current += timedelta(days=1)
            continue

        if should_generate_for_date(current, pattern):
            instance = _build_instance(template, current, now)
            if exception is not None and exception.modified_task is not None:
                instance = instance.model_copy(
                    update={**exception.modified_task.changes(), "is_modified": True}
                )
            instances.append(instance)

        current += timedelta(days=1)

    return instances


def generate_preview(
    pattern: RecurrencePattern,
    start_date: date,
    count: int = 5,
) -> list[date]:
    """Next ``count`` dates the pattern fires on, starting at ``start_date``."""
    if count <= 0:
        return []

    dates: list[date] = []
    current = start_date
    scanned = 0
    while len(dates) < count:
        if has_recurrence_ended(pattern, current):
            break
        if should_generate_for_date(current, pattern):
            dates.append(current)
        current += timedelta(days=1)
        scanned += 1
        if scanned > PREVIEW_SCAN_LIMIT_DAYS and not dates:
            break
    return dates


def cleanup_old_instances(
    instances: Iterable[RecurringTaskInstance],
    days_to_keep: int = 30,
    today: date | None = None,
) -> list[RecurringTaskInstance]:
    """Drop instances older than the trailing window; completed ones are history and stay."""
    today = today or date.today()
    cutoff = today - timedelta(days=days_to_keep)
    return [
        instance
        for instance in instances
        if instance.scheduled_date >= cutoff or instance.status == TaskStatus.COMPLETED
    ]
