import datetime as dt
from enum import Enum as PyEnum

from pydantic import BaseModel, Field

from momentum.schemas.task import (
    TIME_PATTERN,
    RecurrencePattern,
    TaskCategory,
    TaskPatch,
    TaskPriority,
)


class RecurringTaskTemplateBase(BaseModel):
    title: str = Field(..., min_length=1)
    description: str | None = None
    category: TaskCategory
    priority: TaskPriority = TaskPriority.MEDIUM
    scheduled_time: str | None = Field(default=None, pattern=TIME_PATTERN)
    duration: int | None = Field(default=None, ge=1)
    xp_reward: int = Field(default=10, ge=0)
    recurrence_pattern: RecurrencePattern


class RecurringTaskTemplateCreate(RecurringTaskTemplateBase):
    pass


class RecurringTaskTemplate(RecurringTaskTemplateBase):
    id: str
    created_at: dt.datetime
    updated_at: dt.datetime
    is_active: bool = True
    # Last date instances were generated up to
    last_generated_date: dt.date | None = None
    # Instances ever stored for this template; cleanup does not lower it
    generated_count: int = Field(default=0, ge=0)


class RecurringTaskTemplateUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1)
    description: str | None = None
    category: TaskCategory | None = None
    priority: TaskPriority | None = None
    scheduled_time: str | None = Field(default=None, pattern=TIME_PATTERN)
    duration: int | None = Field(default=None, ge=1)
    xp_reward: int | None = Field(default=None, ge=0)
    recurrence_pattern: RecurrencePattern | None = None
    is_active: bool | None = None

    class Config:
        extra = "ignore"


class ExceptionType(str, PyEnum):
    SKIP = "skip"
    MODIFY = "modify"


class RecurrenceExceptionCreate(BaseModel):
    date: dt.date
    type: ExceptionType
    modified_task: TaskPatch | None = None


class RecurrenceException(RecurrenceExceptionCreate):
    id: str
    template_id: str
    created_at: dt.datetime


class RecurrencePreviewRequest(BaseModel):
    pattern: RecurrencePattern
    start_date: dt.date
    count: int = Field(default=5, ge=0, le=366)
