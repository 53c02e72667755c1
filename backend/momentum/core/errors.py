"""Service-layer exceptions.

The planning engines never raise these; they return empty results instead.
Only the store-backed services do, and callers let them propagate.
"""


class MomentumError(RuntimeError):
    """Base class for service-layer failures."""


class StoreNotInitializedError(MomentumError):
    def __init__(self, message: str = "Database not initialized"):
        super().__init__(message)


class NotFoundError(MomentumError, LookupError):
    """Lookup of a stored record by id failed."""

    entity = "Record"

    def __init__(self, record_id: str):
        super().__init__(f"{self.entity} not found")
        self.record_id = record_id


class TaskNotFoundError(NotFoundError):
    entity = "Task"


class RecurringTemplateNotFoundError(NotFoundError):
    entity = "Recurring template"


class TaskTemplateNotFoundError(NotFoundError):
    entity = "Task template"


class InvalidRecurrenceError(MomentumError, ValueError):
    """A recurring task was requested without a usable pattern."""
