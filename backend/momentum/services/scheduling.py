from __future__ import annotations

from typing import Iterable, Sequence

from momentum.schemas.planning import (
    DateRange,
    SchedulingAlternative,
    SchedulingPreferences,
    SmartSchedulingSuggestion,
    WorkingHours,
    WorkloadImpact,
)
from momentum.schemas.task import Task, TaskBase, TaskCategory
from momentum.utils.calendar import (
    dates_in_range,
    is_weekend,
    minutes_to_time,
    task_minutes,
    tasks_for_date,
    time_to_minutes,
)

DEFAULT_MAX_TASKS_PER_DAY = 6
DEFAULT_MAX_MINUTES_PER_DAY = 480

# Gap left between consecutive tasks when picking a time
SLOT_BUFFER_MINUTES = 15

MIN_CONFIDENCE = 0.3
MAX_SUGGESTIONS = 5
MAX_ALTERNATIVES = 3


def _score_day(
    day_tasks: Sequence[Task],
    category: TaskCategory,
    max_tasks: int,
    max_minutes: int,
) -> float:
    task_count = len(day_tasks)
    day_minutes = sum(task_minutes(task) for task in day_tasks)
    confidence = 1.0

    if task_count >= max_tasks:
        confidence *= 0.3
    elif task_count >= max_tasks * 0.8:
        confidence *= 0.6

    if day_minutes >= max_minutes:
        confidence *= 0.2
    elif day_minutes >= max_minutes * 0.8:
        confidence *= 0.7

    same_category = sum(1 for task in day_tasks if task.category == category)
    if 0 < same_category <= 2:
        confidence *= 1.2

    return confidence


def _workload_impact(projected_minutes: int, max_minutes: int) -> WorkloadImpact:
    if projected_minutes <= max_minutes * 0.5:
        return WorkloadImpact.MINIMAL
    if projected_minutes <= max_minutes * 0.8:
        return WorkloadImpact.MODERATE
    return WorkloadImpact.SIGNIFICANT


def _reason(day_tasks: Sequence[Task], category: TaskCategory) -> str:
    if not day_tasks:
        return "Free day - ideal for scheduling"
    if len(day_tasks) <= 2:
        return "Light workload day"
    same_category = sum(1 for task in day_tasks if task.category == category)
    if same_category > 0:
        return f"Good fit with existing {category.value} tasks"
    return "Available slot"


def find_best_time_slot(
    day_tasks: Iterable[Task],
    task: TaskBase,
    working_hours: WorkingHours,
) -> str:
    """
    Pick a start time for ``task`` on a day that already holds ``day_tasks``.

    A time already set on the task wins. Otherwise the task goes into the
    first gap between timed tasks that fits it plus a buffer, then after the
    last task if that is still before the end of working hours, and finally
    at the start of working hours.
    """
    if task.scheduled_time:
        return task.scheduled_time

    timed = sorted(
        (t for t in day_tasks if t.scheduled_time),
        key=lambda t: time_to_minutes(t.scheduled_time),
    )
    if not timed:
        return working_hours.start

    needed = task_minutes(task) + SLOT_BUFFER_MINUTES
    for current, following in zip(timed, timed[1:]):
        current_end = time_to_minutes(current.scheduled_time) + task_minutes(current)
        if time_to_minutes(following.scheduled_time) - current_end >= needed:
            return minutes_to_time(current_end + SLOT_BUFFER_MINUTES)

    last = timed[-1]
    after_last = time_to_minutes(last.scheduled_time) + task_minutes(last) + SLOT_BUFFER_MINUTES
    work_end_hour = time_to_minutes(working_hours.end) // 60
    if after_last // 60 < work_end_hour:
        return minutes_to_time(after_last)

    return working_hours.start


def generate_smart_scheduling_suggestions(
    task: TaskBase,
    existing_tasks: Sequence[Task],
    date_range: DateRange,
    preferences: SchedulingPreferences | None = None,
) -> list[SmartSchedulingSuggestion]:
    """Rank the dates in ``date_range`` by how well they can absorb ``task``."""
    preferences = preferences or SchedulingPreferences()
    max_tasks = preferences.max_tasks_per_day or DEFAULT_MAX_TASKS_PER_DAY
    max_minutes = preferences.max_minutes_per_day or DEFAULT_MAX_MINUTES_PER_DAY
    minutes = task_minutes(task)

    candidates: list[SmartSchedulingSuggestion] = []
    for day in dates_in_range(date_range.start_date, date_range.end_date):
        if task.category == TaskCategory.WORK and is_weekend(day):
            continue

        day_tasks = tasks_for_date(existing_tasks, day)
        confidence = _score_day(day_tasks, task.category, max_tasks, max_minutes)
        if confidence <= MIN_CONFIDENCE:
            continue

        day_minutes = sum(task_minutes(t) for t in day_tasks)
        candidates.append(
            SmartSchedulingSuggestion(
                suggested_date=day,
                suggested_time=find_best_time_slot(day_tasks, task, preferences.working_hours),
                confidence=min(confidence, 1.0),
                reason=_reason(day_tasks, task.category),
                workload_impact=_workload_impact(day_minutes + minutes, max_minutes),
            )
        )

    candidates.sort(key=lambda s: s.confidence, reverse=True)

    suggestions = []
    for suggestion in candidates[:MAX_SUGGESTIONS]:
        others = [c for c in candidates if c.suggested_date != suggestion.suggested_date]
        suggestion.alternatives = [
            SchedulingAlternative(
                date=other.suggested_date,
                time=other.suggested_time,
                confidence=other.confidence,
                reason=other.reason,
            )
            for other in others[:MAX_ALTERNATIVES]
        ]
        suggestions.append(suggestion)
    return suggestions
