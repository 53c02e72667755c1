from datetime import date, datetime
from enum import Enum as PyEnum
from typing import Union

from pydantic import BaseModel, Field, field_validator

# Every consumer (workload, conflicts, scheduling) treats a missing duration as this
DEFAULT_TASK_DURATION = 30

TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class TaskCategory(str, PyEnum):
    WORK = "work"
    PERSONAL = "personal"
    HEALTH = "health"
    LEARNING = "learning"
    SOCIAL = "social"
    CREATIVE = "creative"
    MAINTENANCE = "maintenance"


class TaskPriority(str, PyEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class TaskStatus(str, PyEnum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class RecurrenceFrequency(str, PyEnum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class RecurrencePattern(BaseModel):
    """Recurrence pattern configuration"""
    frequency: RecurrenceFrequency
    interval: int = Field(default=1, ge=1, description="Every N frequency units")
    days_of_week: list[int] | None = Field(default=None, description="0=Sunday, 6=Saturday")
    end_date: date | None = None
    end_after_occurrences: int | None = Field(default=None, ge=1)

    @field_validator("days_of_week")
    @classmethod
    def _validate_days_of_week(cls, v):
        if v is None:
            return None
        if any(day < 0 or day > 6 for day in v):
            raise ValueError("days_of_week entries must be between 0 (Sunday) and 6 (Saturday)")
        return sorted(set(v))


class TaskBase(BaseModel):
    title: str = Field(..., min_length=1)
    description: str | None = None
    category: TaskCategory
    priority: TaskPriority = TaskPriority.MEDIUM
    status: TaskStatus = TaskStatus.PENDING
    scheduled_time: str | None = Field(default=None, pattern=TIME_PATTERN)
    duration: int | None = Field(default=None, ge=1, description="Minutes; 30 when absent")
    is_recurring: bool = False
    recurrence_pattern: RecurrencePattern | None = None
    xp_reward: int = Field(default=10, ge=0)


class TaskDraft(TaskBase):
    """A task that has not been stored yet; the planner may pick its date."""
    scheduled_date: date | None = None


class Task(TaskBase):
    id: str
    scheduled_date: date
    created_at: datetime
    updated_at: datetime
    completed_at: datetime | None = None


class RecurringTaskInstance(Task):
    template_id: str
    instance_date: date
    is_modified: bool = False


# Stored task collections hold both kinds; the instance must be tried first
TaskRecord = Union[RecurringTaskInstance, Task]


class TaskPatch(BaseModel):
    """Field overrides for one occurrence of a recurring template.

    Only fields that were explicitly set are applied, so a patch can clear
    an optional field by setting it to None.
    """
    title: str | None = Field(default=None, min_length=1)
    description: str | None = None
    category: TaskCategory | None = None
    priority: TaskPriority | None = None
    status: TaskStatus | None = None
    scheduled_time: str | None = Field(default=None, pattern=TIME_PATTERN)
    duration: int | None = Field(default=None, ge=1)
    xp_reward: int | None = Field(default=None, ge=0)

    class Config:
        extra = "ignore"

    def changes(self) -> dict:
        data = self.model_dump(exclude_unset=True)
        # Required fields cannot be cleared
        for required in ("title", "category", "priority", "status", "xp_reward"):
            if data.get(required, ...) is None:
                data.pop(required)
        return data


class TaskUpdate(TaskPatch):
    scheduled_date: date | None = None

    def changes(self) -> dict:
        data = super().changes()
        if data.get("scheduled_date", ...) is None:
            data.pop("scheduled_date", None)
        return data


def parse_task(data: dict) -> Task:
    """Rebuild a stored task, keeping recurring instances as their own type."""
    if data.get("template_id"):
        return RecurringTaskInstance.model_validate(data)
    return Task.model_validate(data)
