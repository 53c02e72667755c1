import datetime as dt

from fastapi import APIRouter, Depends, HTTPException, status

from momentum.api import deps
from momentum.core.errors import TaskTemplateNotFoundError
from momentum.schemas.planning import (
    ApplyTemplateRequest,
    BalanceRequest,
    BulkTaskCreation,
    CommitRequest,
    DateRange,
    PlanningPreview,
    PlanningStatistics,
    PreviewRequest,
    SmartSchedulingSuggestion,
    SuggestionRequest,
    TaskTemplate,
    TaskTemplateCreate,
    TaskTemplateUpdate,
    WorkloadAnalysis,
    WorkloadRequest,
)
from momentum.schemas.task import Task, TaskRecord
from momentum.services.planning import PlanningService

router = APIRouter()


def _template_not_found() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail="Task template not found",
    )


@router.get("/templates", response_model=list[TaskTemplate])
def list_task_templates(
    service: PlanningService = Depends(deps.get_planning_service),
) -> list[TaskTemplate]:
    return service.get_task_templates()


@router.post("/templates", response_model=TaskTemplate, status_code=status.HTTP_201_CREATED)
def create_task_template(
    payload: TaskTemplateCreate,
    service: PlanningService = Depends(deps.get_planning_service),
) -> TaskTemplate:
    return service.create_task_template(payload)


@router.patch("/templates/{template_id}", response_model=TaskTemplate)
def update_task_template(
    template_id: str,
    payload: TaskTemplateUpdate,
    service: PlanningService = Depends(deps.get_planning_service),
) -> TaskTemplate:
    try:
        return service.update_task_template(template_id, payload)
    except TaskTemplateNotFoundError:
        raise _template_not_found()


@router.delete("/templates/{template_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_task_template(
    template_id: str,
    service: PlanningService = Depends(deps.get_planning_service),
) -> None:
    try:
        service.delete_task_template(template_id)
    except TaskTemplateNotFoundError:
        raise _template_not_found()


@router.post("/templates/{template_id}/apply", response_model=list[Task])
def apply_task_template(
    template_id: str,
    payload: ApplyTemplateRequest,
    service: PlanningService = Depends(deps.get_planning_service),
) -> list[Task]:
    """Draft one task per date from a template; nothing is stored until committed."""
    try:
        return service.apply_template_to_date_range(
            template_id, payload.start_date, payload.end_date, payload.skip_weekends
        )
    except TaskTemplateNotFoundError:
        raise _template_not_found()


@router.post("/workload", response_model=WorkloadAnalysis)
def analyze_workload(
    payload: WorkloadRequest,
    service: PlanningService = Depends(deps.get_planning_service),
) -> WorkloadAnalysis:
    return service.analyze_workload(payload.tasks, payload.start_date, payload.period)


@router.post("/suggestions", response_model=list[SmartSchedulingSuggestion])
def scheduling_suggestions(
    payload: SuggestionRequest,
    service: PlanningService = Depends(deps.get_planning_service),
) -> list[SmartSchedulingSuggestion]:
    return service.get_smart_scheduling_suggestions(
        payload.task, payload.date_range, payload.preferences
    )


@router.post("/bulk", response_model=list[Task])
def plan_bulk_tasks(
    payload: BulkTaskCreation,
    service: PlanningService = Depends(deps.get_planning_service),
) -> list[Task]:
    return service.create_bulk_tasks(payload)


@router.post("/preview", response_model=PlanningPreview)
def preview_plan(
    payload: PreviewRequest,
    service: PlanningService = Depends(deps.get_planning_service),
) -> PlanningPreview:
    return service.generate_planning_preview(
        payload.planned_tasks, payload.date_range, payload.existing_tasks
    )


@router.post("/commit", response_model=list[TaskRecord], status_code=status.HTTP_201_CREATED)
def commit_plan(
    payload: CommitRequest,
    service: PlanningService = Depends(deps.get_planning_service),
) -> list[TaskRecord]:
    return service.commit_preview(payload.planned_tasks)


@router.post("/balance", response_model=list[TaskRecord])
def balance_workload(
    payload: BalanceRequest,
    service: PlanningService = Depends(deps.get_planning_service),
) -> list[TaskRecord]:
    return service.balance_workload(
        payload.tasks,
        payload.date_range,
        payload.max_tasks_per_day,
        payload.max_minutes_per_day,
    )


@router.get("/statistics", response_model=PlanningStatistics)
def planning_statistics(
    start_date: dt.date,
    end_date: dt.date,
    service: PlanningService = Depends(deps.get_planning_service),
) -> PlanningStatistics:
    return service.get_planning_statistics(
        None, DateRange(start_date=start_date, end_date=end_date)
    )
