import datetime as dt
from typing import Literal

from pydantic import BaseModel

from momentum.schemas.task import TaskRecord


class CalendarCell(BaseModel):
    date: dt.date
    is_current_month: bool
    is_today: bool
    is_selected: bool
    tasks: list[TaskRecord]
    task_count: int
    completed_task_count: int
    has_high_priority_tasks: bool
    has_overdue_tasks: bool
    workload_level: Literal["light", "moderate", "heavy"]


class CalendarGrid(BaseModel):
    weeks: list[list[CalendarCell]]
    month_name: str
    year: int
