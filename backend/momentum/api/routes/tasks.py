import datetime as dt

from fastapi import APIRouter, Depends, HTTPException, status

from momentum.api import deps
from momentum.core.errors import InvalidRecurrenceError, TaskNotFoundError
from momentum.schemas.calendar import CalendarGrid
from momentum.schemas.task import TaskDraft, TaskRecord, TaskUpdate
from momentum.services.tasks import TaskService
from momentum.utils.calendar import generate_calendar_grid

router = APIRouter()


def _task_not_found() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail="Task not found",
    )


@router.get("/", response_model=list[TaskRecord])
def list_tasks(
    date: dt.date | None = None,
    service: TaskService = Depends(deps.get_task_service),
) -> list[TaskRecord]:
    """List stored tasks, optionally only those scheduled on ``date``."""
    return service.get_tasks(date)


@router.get("/calendar", response_model=CalendarGrid)
def month_calendar(
    month: dt.date,
    selected: dt.date | None = None,
    service: TaskService = Depends(deps.get_task_service),
) -> CalendarGrid:
    """Sunday-first month grid around ``month`` with each day's tasks."""
    return generate_calendar_grid(month, service.get_tasks(), selected)


@router.post("/", response_model=TaskRecord, status_code=status.HTTP_201_CREATED)
def create_task(
    payload: TaskDraft,
    service: TaskService = Depends(deps.get_task_service),
) -> TaskRecord:
    try:
        return service.create_task(payload)
    except InvalidRecurrenceError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.patch("/{task_id}", response_model=TaskRecord)
def update_task(
    task_id: str,
    payload: TaskUpdate,
    service: TaskService = Depends(deps.get_task_service),
) -> TaskRecord:
    try:
        return service.update_task(task_id, payload)
    except TaskNotFoundError:
        raise _task_not_found()


@router.post("/{task_id}/complete", response_model=TaskRecord)
def complete_task(
    task_id: str,
    service: TaskService = Depends(deps.get_task_service),
) -> TaskRecord:
    try:
        return service.complete_task(task_id)
    except TaskNotFoundError:
        raise _task_not_found()


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_task(
    task_id: str,
    service: TaskService = Depends(deps.get_task_service),
) -> None:
    try:
        service.delete_task(task_id)
    except TaskNotFoundError:
        raise _task_not_found()
