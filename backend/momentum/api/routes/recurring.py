import datetime as dt

from fastapi import APIRouter, Depends, HTTPException, status

from momentum.api import deps
from momentum.core.errors import RecurringTemplateNotFoundError
from momentum.schemas.recurrence import (
    RecurrenceException,
    RecurrenceExceptionCreate,
    RecurrencePreviewRequest,
    RecurringTaskTemplate,
    RecurringTaskTemplateCreate,
    RecurringTaskTemplateUpdate,
)
from momentum.schemas.task import RecurringTaskInstance
from momentum.services import recurrence
from momentum.services.recurring_tasks import RecurringTaskService

router = APIRouter()


def _template_not_found() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail="Recurring template not found",
    )


@router.get("/templates", response_model=list[RecurringTaskTemplate])
def list_templates(
    service: RecurringTaskService = Depends(deps.get_recurring_service),
) -> list[RecurringTaskTemplate]:
    return service.get_templates()


@router.post("/templates", response_model=RecurringTaskTemplate, status_code=status.HTTP_201_CREATED)
def create_template(
    payload: RecurringTaskTemplateCreate,
    service: RecurringTaskService = Depends(deps.get_recurring_service),
) -> RecurringTaskTemplate:
    """Store a template without generating instances; ``/generate`` materializes them."""
    template = recurrence.create_template(payload, payload.recurrence_pattern)
    return service.save_template(template)


@router.get("/templates/{template_id}", response_model=RecurringTaskTemplate)
def get_template(
    template_id: str,
    service: RecurringTaskService = Depends(deps.get_recurring_service),
) -> RecurringTaskTemplate:
    try:
        return service.get_template(template_id)
    except RecurringTemplateNotFoundError:
        raise _template_not_found()


@router.patch("/templates/{template_id}", response_model=RecurringTaskTemplate)
def update_template(
    template_id: str,
    payload: RecurringTaskTemplateUpdate,
    service: RecurringTaskService = Depends(deps.get_recurring_service),
) -> RecurringTaskTemplate:
    try:
        return service.update_template(template_id, payload)
    except RecurringTemplateNotFoundError:
        raise _template_not_found()


@router.post("/templates/{template_id}/deactivate", response_model=RecurringTaskTemplate)
def deactivate_template(
    template_id: str,
    service: RecurringTaskService = Depends(deps.get_recurring_service),
) -> RecurringTaskTemplate:
    try:
        return service.deactivate_template(template_id)
    except RecurringTemplateNotFoundError:
        raise _template_not_found()


@router.delete("/templates/{template_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_template(
    template_id: str,
    service: RecurringTaskService = Depends(deps.get_recurring_service),
) -> None:
    """Delete a template together with every instance it generated."""
    try:
        service.delete_template(template_id)
    except RecurringTemplateNotFoundError:
        raise _template_not_found()


@router.post(
    "/templates/{template_id}/exceptions",
    response_model=RecurrenceException,
    status_code=status.HTTP_201_CREATED,
)
def add_exception(
    template_id: str,
    payload: RecurrenceExceptionCreate,
    service: RecurringTaskService = Depends(deps.get_recurring_service),
) -> RecurrenceException:
    try:
        return service.add_exception(template_id, payload)
    except RecurringTemplateNotFoundError:
        raise _template_not_found()


@router.get("/exceptions", response_model=list[RecurrenceException])
def list_exceptions(
    template_id: str | None = None,
    service: RecurringTaskService = Depends(deps.get_recurring_service),
) -> list[RecurrenceException]:
    return service.get_exceptions(template_id)


@router.post("/generate", response_model=list[RecurringTaskInstance])
def generate_instances(
    days_ahead: int | None = None,
    service: RecurringTaskService = Depends(deps.get_recurring_service),
) -> list[RecurringTaskInstance]:
    return service.generate_recurring_instances(days_ahead)


@router.post("/cleanup")
def cleanup_instances(
    days_to_keep: int | None = None,
    service: RecurringTaskService = Depends(deps.get_recurring_service),
) -> dict[str, int]:
    return {"removed": service.cleanup_old_recurring_instances(days_to_keep)}


@router.post("/preview", response_model=list[dt.date])
def preview_pattern(
    payload: RecurrencePreviewRequest,
    service: RecurringTaskService = Depends(deps.get_recurring_service),
) -> list[dt.date]:
    return service.preview(payload.pattern, payload.start_date, payload.count)
