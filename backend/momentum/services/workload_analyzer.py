"""Workload analysis over a planning period.

Read-only: takes tasks already loaded by the caller and summarises how heavy
the period is, which days carry the load, and what the user could do about it.
"""

from __future__ import annotations

import math
from datetime import date, timedelta
from typing import Sequence

from dateutil.relativedelta import relativedelta

from momentum.schemas.planning import (
    CategoryWorkload,
    DayWorkload,
    PlanningPeriod,
    WorkloadAnalysis,
    WorkloadLevel,
)
from momentum.schemas.task import Task
from momentum.utils.calendar import dates_in_range, task_minutes, tasks_for_date

CAPACITY_AVAILABLE = "You have capacity for additional tasks"

# (max average tasks per day, max average minutes per day), checked in order
WORKLOAD_THRESHOLDS = [
    (2, 120, WorkloadLevel.LIGHT),
    (4, 240, WorkloadLevel.MODERATE),
    (6, 360, WorkloadLevel.HEAVY),
]

DOMINANT_CATEGORY_PERCENTAGE = 50


def get_planning_date_range(start_date: date, period: PlanningPeriod) -> tuple[date, date]:
    """Inclusive range covered by ``period`` starting at ``start_date``.

    Months are calendar months; a start on the 31st is clamped to the last
    day of shorter months before the final day is subtracted.
    """
    if period == PlanningPeriod.WEEK:
        return start_date, start_date + timedelta(days=6)
    months = 3 if period == PlanningPeriod.QUARTER else 1
    return start_date, start_date + relativedelta(months=months) - timedelta(days=1)


def classify_workload_level(average_tasks: float, average_minutes: float) -> WorkloadLevel:
    for max_tasks, max_minutes, level in WORKLOAD_THRESHOLDS:
        if average_tasks <= max_tasks and average_minutes <= max_minutes:
            return level
    return WorkloadLevel.OVERLOADED


def _daily_breakdown(tasks: Sequence[Task], days: list[date]) -> list[DayWorkload]:
    breakdown = []
    for day in days:
        day_tasks = tasks_for_date(tasks, day)
        breakdown.append(
            DayWorkload(
                date=day,
                task_count=len(day_tasks),
                total_minutes=sum(task_minutes(task) for task in day_tasks),
            )
        )
    return breakdown


def _peak_and_light_days(
    breakdown: list[DayWorkload],
) -> tuple[list[DayWorkload], list[DayWorkload]]:
    if not breakdown:
        return [], []
    count = min(3, math.ceil(len(breakdown) * 0.2))
    # sorted() is stable, so equally busy days keep calendar order
    by_load = sorted(breakdown, key=lambda day: day.task_count, reverse=True)
    peak_days = by_load[:count]
    light_days = list(reversed(by_load[-count:]))
    return peak_days, light_days


def _category_distribution(tasks: Sequence[Task]) -> list[CategoryWorkload]:
    totals: dict = {}
    for task in tasks:
        count, minutes = totals.get(task.category, (0, 0))
        totals[task.category] = (count + 1, minutes + task_minutes(task))

    total_tasks = len(tasks)
    return [
        CategoryWorkload(
            category=category,
            task_count=count,
            total_minutes=minutes,
            percentage=count / total_tasks * 100,
        )
        for category, (count, minutes) in totals.items()
    ]


def generate_workload_recommendations(
    level: WorkloadLevel,
    peak_days: list[DayWorkload],
    light_days: list[DayWorkload],
    category_distribution: list[CategoryWorkload],
) -> list[str]:
    recommendations: list[str] = []

    if level == WorkloadLevel.LIGHT:
        recommendations.append(CAPACITY_AVAILABLE)
        if light_days:
            recommendations.append("Consider scheduling more important tasks on lighter days")
    elif level == WorkloadLevel.MODERATE:
        recommendations.append("Good workload balance")
        recommendations.append("Monitor peak days to avoid overcommitment")
    elif level == WorkloadLevel.HEAVY:
        recommendations.append("High workload detected")
        recommendations.append("Consider redistributing tasks from peak days")
        if peak_days:
            recommendations.append(
                f"Peak workload on {peak_days[0].date.isoformat()} - consider rescheduling some tasks"
            )
    else:
        recommendations.append("Workload may be too high")
        recommendations.append("Strongly consider reducing or rescheduling tasks")
        recommendations.append("Focus on high-priority tasks only")

    for entry in category_distribution:
        if entry.percentage > DOMINANT_CATEGORY_PERCENTAGE:
            recommendations.append(
                f"{entry.category.value} tasks dominate your schedule - consider diversifying"
            )

    return recommendations


def calculate_workload_analysis(
    tasks: Sequence[Task],
    start_date: date,
    end_date: date,
    period: PlanningPeriod,
) -> WorkloadAnalysis:
    """
    Summarise the load of ``tasks`` over ``[start_date, end_date]``.

    Tasks are taken as given; callers filter to the range first when they
    want totals and the daily breakdown to agree.
    """
    days = dates_in_range(start_date, end_date)
    total_tasks = len(tasks)
    total_minutes = sum(task_minutes(task) for task in tasks)
    day_count = len(days)

    average_tasks = total_tasks / day_count if day_count else 0.0
    average_minutes = total_minutes / day_count if day_count else 0.0

    breakdown = _daily_breakdown(tasks, days)
    peak_days, light_days = _peak_and_light_days(breakdown)

    if total_tasks == 0:
        distribution: list[CategoryWorkload] = []
        level = WorkloadLevel.LIGHT
        recommendations = [CAPACITY_AVAILABLE]
    else:
        distribution = _category_distribution(tasks)
        level = classify_workload_level(average_tasks, average_minutes)
        recommendations = generate_workload_recommendations(
            level, peak_days, light_days, distribution
        )

    return WorkloadAnalysis(
        period=period,
        start_date=start_date,
        end_date=end_date,
        total_tasks=total_tasks,
        total_minutes=total_minutes,
        average_tasks_per_day=average_tasks,
        average_minutes_per_day=average_minutes,
        daily_breakdown=breakdown,
        peak_days=peak_days,
        light_days=light_days,
        category_distribution=distribution,
        workload_level=level,
        recommendations=recommendations,
    )
