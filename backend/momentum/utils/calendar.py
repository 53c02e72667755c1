"""Date and calendar helpers shared by the planning engines.

Dates are plain ``datetime.date`` values (ISO ``YYYY-MM-DD`` on the wire) and
times are ``HH:MM`` 24-hour strings. No timezone is carried anywhere.
Weekday numbers follow the 0=Sunday convention used by recurrence patterns.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Iterable, Sequence

from dateutil.relativedelta import relativedelta

from momentum.schemas.calendar import CalendarCell, CalendarGrid
from momentum.schemas.task import DEFAULT_TASK_DURATION, Task, TaskPriority, TaskStatus

DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]


def parse_date(value: date | datetime | str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(value[:10])


def format_date_string(day: date) -> str:
    return day.isoformat()


def dates_in_range(start_date: date, end_date: date) -> list[date]:
    """All dates from start to end, both inclusive; empty when end < start."""
    days = (end_date - start_date).days
    return [start_date + timedelta(days=offset) for offset in range(days + 1)]


def sunday_based_weekday(day: date) -> int:
    return day.isoweekday() % 7


def is_weekend(day: date) -> bool:
    return sunday_based_weekday(day) in (0, 6)


def day_of_year(day: date) -> int:
    """Ordinal day within the year, 1 for January 1st."""
    return day.timetuple().tm_yday


def month_start(day: date) -> date:
    return day.replace(day=1)


def month_end(day: date) -> date:
    return month_start(day) + relativedelta(months=1) - timedelta(days=1)


def calendar_start(day: date) -> date:
    """Sunday on or before the first of the month."""
    first = month_start(day)
    return first - timedelta(days=sunday_based_weekday(first))


def calendar_end(day: date) -> date:
    """Saturday on or after the last of the month."""
    last = month_end(day)
    return last + timedelta(days=6 - sunday_based_weekday(last))


def calendar_dates(day: date) -> list[date]:
    return dates_in_range(calendar_start(day), calendar_end(day))


def previous_month(day: date) -> date:
    return day - relativedelta(months=1)


def next_month(day: date) -> date:
    return day + relativedelta(months=1)


def month_year_string(day: date) -> str:
    return day.strftime("%B %Y")


def day_names(short: bool = True) -> list[str]:
    return [name[:3] for name in DAY_NAMES] if short else list(DAY_NAMES)


# Tasks on the calendar

def task_minutes(task: Task) -> int:
    return task.duration or DEFAULT_TASK_DURATION


def total_minutes(tasks: Iterable[Task]) -> int:
    return sum(task_minutes(task) for task in tasks)


def tasks_for_date(tasks: Iterable[Task], day: date) -> list[Task]:
    return [task for task in tasks if task.scheduled_date == day]


def tasks_for_date_range(tasks: Iterable[Task], start_date: date, end_date: date) -> list[Task]:
    return [task for task in tasks if start_date <= task.scheduled_date <= end_date]


def calculate_day_workload_level(tasks: Sequence[Task]) -> str:
    """Coarse load of a single day for calendar shading."""
    task_count = len(tasks)
    minutes = total_minutes(tasks)
    if task_count == 0:
        return "light"
    if task_count <= 2 and minutes <= 120:
        return "light"
    if task_count <= 4 and minutes <= 240:
        return "moderate"
    return "heavy"


def has_high_priority_tasks(tasks: Iterable[Task]) -> bool:
    return any(task.priority in (TaskPriority.HIGH, TaskPriority.URGENT) for task in tasks)


def _task_due_at(task: Task) -> datetime:
    # Untimed tasks are due at the end of their day
    due_time = time(23, 59)
    if task.scheduled_time:
        due_time = time.fromisoformat(task.scheduled_time)
    return datetime.combine(task.scheduled_date, due_time)


def has_overdue_tasks(tasks: Iterable[Task], now: datetime) -> bool:
    return any(
        task.status != TaskStatus.COMPLETED and _task_due_at(task) < now
        for task in tasks
    )


def create_calendar_cell(
    day: date,
    tasks: Sequence[Task],
    reference: date,
    selected: date | None = None,
    now: datetime | None = None,
) -> CalendarCell:
    now = now or datetime.now()
    day_tasks = tasks_for_date(tasks, day)
    completed = [task for task in day_tasks if task.status == TaskStatus.COMPLETED]
    return CalendarCell(
        date=day,
        is_current_month=(day.year, day.month) == (reference.year, reference.month),
        is_today=day == now.date(),
        is_selected=selected is not None and day == selected,
        tasks=day_tasks,
        task_count=len(day_tasks),
        completed_task_count=len(completed),
        has_high_priority_tasks=has_high_priority_tasks(day_tasks),
        has_overdue_tasks=has_overdue_tasks(day_tasks, now),
        workload_level=calculate_day_workload_level(day_tasks),
    )


def generate_calendar_grid(
    reference: date,
    tasks: Sequence[Task],
    selected: date | None = None,
    now: datetime | None = None,
) -> CalendarGrid:
    """Month grid of Sunday-first weeks, padded with neighbouring-month days."""
    days = calendar_dates(reference)
    weeks = [
        [create_calendar_cell(day, tasks, reference, selected, now) for day in days[i:i + 7]]
        for i in range(0, len(days), 7)
    ]
    return CalendarGrid(
        weeks=weeks,
        month_name=reference.strftime("%B"),
        year=reference.year,
    )


# HH:MM arithmetic

def time_to_minutes(value: str) -> int:
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def minutes_to_time(total: int) -> str:
    # Not wrapped at midnight; callers compare against working hours
    return f"{total // 60:02d}:{total % 60:02d}"


def add_minutes_to_time(value: str, minutes: int) -> str:
    return minutes_to_time(time_to_minutes(value) + minutes)


def time_difference_minutes(earlier: str, later: str) -> int:
    return time_to_minutes(later) - time_to_minutes(earlier)


def format_time(value: str | None) -> str:
    if not value:
        return "No time set"
    hours, minutes = value.split(":")
    hour = int(hours)
    suffix = "PM" if hour >= 12 else "AM"
    return f"{hour % 12 or 12}:{minutes} {suffix}"


def format_duration(minutes: int) -> str:
    if minutes < 60:
        return f"{minutes}m"
    hours, remaining = divmod(minutes, 60)
    if remaining == 0:
        return f"{hours}h"
    return f"{hours}h {remaining}m"
