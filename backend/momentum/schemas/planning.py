import datetime as dt
from enum import Enum as PyEnum
from typing import Literal

from pydantic import BaseModel, Field

from momentum.schemas.task import (
    TIME_PATTERN,
    TaskCategory,
    TaskDraft,
    TaskPriority,
    TaskRecord,
)


class PlanningPeriod(str, PyEnum):
    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"


class WorkloadLevel(str, PyEnum):
    LIGHT = "light"
    MODERATE = "moderate"
    HEAVY = "heavy"
    OVERLOADED = "overloaded"


class WorkloadImpact(str, PyEnum):
    MINIMAL = "minimal"
    MODERATE = "moderate"
    SIGNIFICANT = "significant"


class ConflictSeverity(str, PyEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class DateRange(BaseModel):
    start_date: dt.date
    end_date: dt.date


class WorkingHours(BaseModel):
    start: str = Field(default="09:00", pattern=TIME_PATTERN)
    end: str = Field(default="17:00", pattern=TIME_PATTERN)


# Task templates (one-shot blueprints, not recurrence)

class TaskTemplateBase(BaseModel):
    name: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    description: str | None = None
    category: TaskCategory
    priority: TaskPriority = TaskPriority.MEDIUM
    scheduled_time: str | None = Field(default=None, pattern=TIME_PATTERN)
    duration: int | None = Field(default=None, ge=1)
    xp_reward: int = Field(default=10, ge=0)
    tags: list[str] = Field(default_factory=list)
    is_active: bool = True


class TaskTemplateCreate(TaskTemplateBase):
    pass


class TaskTemplate(TaskTemplateBase):
    id: str
    created_at: dt.datetime
    updated_at: dt.datetime
    usage_count: int = 0


class TaskTemplateUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    title: str | None = Field(default=None, min_length=1)
    description: str | None = None
    category: TaskCategory | None = None
    priority: TaskPriority | None = None
    scheduled_time: str | None = Field(default=None, pattern=TIME_PATTERN)
    duration: int | None = Field(default=None, ge=1)
    xp_reward: int | None = Field(default=None, ge=0)
    tags: list[str] | None = None
    is_active: bool | None = None
    usage_count: int | None = Field(default=None, ge=0)

    class Config:
        extra = "ignore"


class ApplyTemplateRequest(DateRange):
    skip_weekends: bool = False


# Workload analysis

class DayWorkload(BaseModel):
    date: dt.date
    task_count: int
    total_minutes: int


class CategoryWorkload(BaseModel):
    category: TaskCategory
    task_count: int
    total_minutes: int
    percentage: float


class WorkloadAnalysis(BaseModel):
    period: PlanningPeriod
    start_date: dt.date
    end_date: dt.date
    total_tasks: int
    total_minutes: int
    average_tasks_per_day: float
    average_minutes_per_day: float
    daily_breakdown: list[DayWorkload]
    peak_days: list[DayWorkload]
    light_days: list[DayWorkload]
    category_distribution: list[CategoryWorkload]
    workload_level: WorkloadLevel
    recommendations: list[str]


class WorkloadRequest(BaseModel):
    start_date: dt.date
    period: PlanningPeriod = PlanningPeriod.WEEK
    # Stored tasks are used when omitted
    tasks: list[TaskRecord] | None = None


# Smart scheduling

class SchedulingPreferences(BaseModel):
    working_hours: WorkingHours = Field(default_factory=WorkingHours)
    max_tasks_per_day: int | None = Field(default=None, ge=1)
    max_minutes_per_day: int | None = Field(default=None, ge=1)


class SchedulingAlternative(BaseModel):
    date: dt.date
    time: str | None = None
    confidence: float
    reason: str


class SmartSchedulingSuggestion(BaseModel):
    suggested_date: dt.date
    suggested_time: str | None = None
    confidence: float = Field(..., ge=0, le=1)
    reason: str
    workload_impact: WorkloadImpact
    alternatives: list[SchedulingAlternative] = Field(default_factory=list)


class SuggestionRequest(BaseModel):
    task: TaskDraft
    date_range: DateRange
    preferences: SchedulingPreferences | None = None


# Bulk planning, conflicts and previews

class BulkTaskCreation(BaseModel):
    template_id: str | None = None
    tasks: list[TaskDraft]
    date_range: DateRange
    distribution: Literal["daily", "weekly", "custom"] = "daily"
    skip_weekends: bool = False
    skip_holidays: bool = False


class PlanningConflict(BaseModel):
    date: dt.date
    reason: str
    severity: ConflictSeverity


class PlanningSuggestion(BaseModel):
    type: Literal["reschedule", "reduce", "distribute"]
    message: str
    affected_dates: list[dt.date]


class PlanningPreview(BaseModel):
    date_range: DateRange
    planned_tasks: list[TaskRecord]
    workload_analysis: WorkloadAnalysis
    conflicts: list[PlanningConflict]
    suggestions: list[PlanningSuggestion]


class PreviewRequest(BaseModel):
    planned_tasks: list[TaskRecord]
    date_range: DateRange
    existing_tasks: list[TaskRecord] | None = None


class CommitRequest(BaseModel):
    planned_tasks: list[TaskRecord]


class BalanceRequest(BaseModel):
    date_range: DateRange
    max_tasks_per_day: int = Field(default=6, ge=1)
    max_minutes_per_day: int = Field(default=480, ge=1)
    tasks: list[TaskRecord] | None = None


class TemplateUsage(BaseModel):
    template: TaskTemplate
    usage_count: int


class CategoryCount(BaseModel):
    category: TaskCategory
    count: int
    percentage: float


class PlanningStatistics(BaseModel):
    total_planned_tasks: int
    total_planned_minutes: int
    average_tasks_per_day: float
    most_used_templates: list[TemplateUsage]
    category_distribution: list[CategoryCount]
