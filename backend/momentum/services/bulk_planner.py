"""Bulk planning: spreading task drafts over a date range and checking the result."""

from __future__ import annotations

import math
from datetime import date, datetime
from itertools import combinations
from typing import Sequence

from momentum.schemas.planning import (
    BulkTaskCreation,
    ConflictSeverity,
    PlanningConflict,
    TaskTemplate,
)
from momentum.schemas.task import Task, TaskDraft
from momentum.utils.calendar import dates_in_range, is_weekend, task_minutes, time_to_minutes

OVERLOADED_DAY_MINUTES = 480
HEAVY_DAY_MINUTES = 360
TOO_MANY_TASKS = 8
MANY_TASKS = 6


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def apply_task_template(
    template: TaskTemplate,
    scheduled_date: date,
    scheduled_time: str | None = None,
) -> TaskDraft:
    """Draft a task from a template; an explicit time overrides the template's."""
    return TaskDraft(
        title=template.title,
        description=template.description,
        category=template.category,
        priority=template.priority,
        scheduled_date=scheduled_date,
        scheduled_time=scheduled_time or template.scheduled_time,
        duration=template.duration,
        xp_reward=template.xp_reward,
    )


def _plan_dates(bulk: BulkTaskCreation) -> list[date]:
    days = dates_in_range(bulk.date_range.start_date, bulk.date_range.end_date)
    if bulk.skip_weekends:
        days = [day for day in days if not is_weekend(day)]
    # skip_holidays has no holiday calendar to consult
    return days


def generate_bulk_task_plan(
    bulk: BulkTaskCreation,
    existing_tasks: Sequence[Task] = (),
    now: datetime | None = None,
) -> list[Task]:
    """
    Assign each draft in ``bulk.tasks`` a date from the requested range.

    ``daily`` cycles through the dates, ``weekly`` steps a week at a time and
    wraps, ``custom`` spreads the drafts evenly by list position. Drafts keep
    every field except the date, which the plan overwrites.
    """
    now = now or datetime.now()
    days = _plan_dates(bulk)
    if not days:
        return []

    stamp = int(now.timestamp() * 1000)
    day_count = len(days)
    weeks_available = math.ceil(day_count / 7)
    week_index = 0

    planned = []
    for i, draft in enumerate(bulk.tasks):
        if bulk.distribution == "weekly":
            day = days[(week_index * 7) % day_count]
            week_index = (week_index + 1) % weeks_available
        elif bulk.distribution == "custom":
            day = days[math.floor(i / len(bulk.tasks) * day_count)]
        else:
            day = days[i % day_count]

        fields = draft.model_dump(exclude={"scheduled_date"})
        planned.append(
            Task(
                **fields,
                id=f"bulk-{stamp}-{i}",
                scheduled_date=day,
                created_at=now,
                updated_at=now,
            )
        )
    return planned


def _time_conflicts(day: date, day_tasks: list[Task]) -> list[PlanningConflict]:
    timed = [task for task in day_tasks if task.scheduled_time]
    conflicts = []
    for first, second in combinations(timed, 2):
        first_start = time_to_minutes(first.scheduled_time)
        second_start = time_to_minutes(second.scheduled_time)
        first_end = first_start + task_minutes(first)
        second_end = second_start + task_minutes(second)
        if first_start < second_end and second_start < first_end:
            conflicts.append(
                PlanningConflict(
                    date=day,
                    reason=f'Time conflict between "{first.title}" and "{second.title}"',
                    severity=ConflictSeverity.HIGH,
                )
            )
    return conflicts


def validate_planning_conflicts(
    planned_tasks: Sequence[Task],
    existing_tasks: Sequence[Task],
) -> list[PlanningConflict]:
    """Report overloaded days, crowded days and overlapping times across both sets."""
    by_date: dict[date, list[Task]] = {}
    for task in [*existing_tasks, *planned_tasks]:
        by_date.setdefault(task.scheduled_date, []).append(task)

    conflicts: list[PlanningConflict] = []
    for day, day_tasks in by_date.items():
        minutes = sum(task_minutes(task) for task in day_tasks)
        hours = _round_half_up(minutes / 60)
        if minutes > OVERLOADED_DAY_MINUTES:
            conflicts.append(
                PlanningConflict(
                    date=day,
                    reason=f"Overloaded day: {hours} hours of tasks",
                    severity=ConflictSeverity.HIGH,
                )
            )
        elif minutes > HEAVY_DAY_MINUTES:
            conflicts.append(
                PlanningConflict(
                    date=day,
                    reason=f"Heavy workload: {hours} hours of tasks",
                    severity=ConflictSeverity.MEDIUM,
                )
            )

        count = len(day_tasks)
        if count > TOO_MANY_TASKS:
            conflicts.append(
                PlanningConflict(
                    date=day,
                    reason=f"Too many tasks: {count} tasks scheduled",
                    severity=ConflictSeverity.HIGH,
                )
            )
        elif count > MANY_TASKS:
            conflicts.append(
                PlanningConflict(
                    date=day,
                    reason=f"Many tasks: {count} tasks scheduled",
                    severity=ConflictSeverity.MEDIUM,
                )
            )

        conflicts.extend(_time_conflicts(day, day_tasks))

    return conflicts
