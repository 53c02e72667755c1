from datetime import date, datetime, timedelta

import pytest

from momentum.core.errors import (
    InvalidRecurrenceError,
    RecurringTemplateNotFoundError,
    StoreNotInitializedError,
    TaskNotFoundError,
    TaskTemplateNotFoundError,
)
from momentum.db.seed import seed_demo_data
from momentum.db.session import build_engine
from momentum.db.store import (
    RECURRING_TEMPLATES_KEY,
    TASK_TEMPLATES_KEY,
    TASKS_KEY,
    load_tasks,
)
from momentum.schemas.planning import (
    BulkTaskCreation,
    DateRange,
    PlanningPeriod,
    TaskTemplateUpdate,
    WorkloadLevel,
)
from momentum.schemas.recurrence import ExceptionType, RecurrenceExceptionCreate
from momentum.schemas.task import (
    RecurrenceFrequency,
    RecurrencePattern,
    RecurringTaskInstance,
    Task,
    TaskCategory,
    TaskDraft,
    TaskPriority,
    TaskStatus,
    TaskUpdate,
)
from momentum.services.planning import PlanningService
from momentum.services.recurring_tasks import RecurringTaskService
from momentum.services.tasks import TaskService

NOW = datetime(2024, 6, 1, 8, 0)
SUNDAY = date(2024, 6, 2)
MONDAY = date(2024, 6, 3)


@pytest.fixture
def recurring_service(store, settings) -> RecurringTaskService:
    service = RecurringTaskService(store, settings)
    service.initialize()
    return service


@pytest.fixture
def task_service(store, recurring_service) -> TaskService:
    service = TaskService(store, recurring_service)
    service.initialize()
    return service


@pytest.fixture
def planning_service(store, settings) -> PlanningService:
    service = PlanningService(store, settings)
    service.initialize(now=NOW)
    return service


def _recurring_draft(*days: int) -> TaskDraft:
    return TaskDraft(
        title="Gym",
        category=TaskCategory.HEALTH,
        scheduled_date=SUNDAY,
        scheduled_time="07:00",
        duration=45,
        is_recurring=True,
        recurrence_pattern=RecurrencePattern(
            frequency=RecurrenceFrequency.WEEKLY, days_of_week=list(days)
        ),
    )


def _task(index, day, priority=TaskPriority.MEDIUM, time=None, duration=30, title=None) -> Task:
    return Task(
        id=f"task-{index}",
        title=title or f"Task {index}",
        category=TaskCategory.WORK,
        priority=priority,
        scheduled_date=day,
        scheduled_time=time,
        duration=duration,
        created_at=NOW + timedelta(minutes=index),
        updated_at=NOW,
    )


def test_store_round_trip(store):
    store.set("greeting", {"hello": ["world"]})
    store.set("greeting", {"hello": ["again"]})

    assert store.get("greeting") == {"hello": ["again"]}
    assert store.get("missing", []) == []
    assert store.keys() == ["greeting"]
    assert store.delete("greeting")
    assert not store.has("greeting")


def test_file_engine_uses_wal(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'momentum.db'}")
    with engine.connect() as conn:
        assert conn.exec_driver_sql("PRAGMA journal_mode").scalar() == "wal"
    engine.dispose()


def test_services_require_initialize(store, settings):
    recurring = RecurringTaskService(store, settings)
    with pytest.raises(StoreNotInitializedError, match="Database not initialized"):
        TaskService(store, recurring).get_tasks()
    with pytest.raises(StoreNotInitializedError, match="Planning service not initialized"):
        PlanningService(store, settings).get_task_templates()


def test_create_and_list_plain_tasks(task_service):
    late = task_service.create_task(
        TaskDraft(title="Late", category=TaskCategory.WORK, scheduled_date=MONDAY, scheduled_time="15:00"),
        now=NOW,
    )
    early = task_service.create_task(
        TaskDraft(title="Early", category=TaskCategory.WORK, scheduled_date=MONDAY, scheduled_time="08:00"),
        now=NOW + timedelta(minutes=1),
    )
    task_service.create_task(
        TaskDraft(title="Tomorrow", category=TaskCategory.SOCIAL, scheduled_date=MONDAY + timedelta(days=1)),
        now=NOW,
    )

    assert late.id.startswith("task-")
    assert [t.title for t in task_service.get_tasks(MONDAY)] == ["Late", "Early"]
    ordered = [t.id for t in task_service.get_tasks() if t.scheduled_time]
    assert ordered == [early.id, late.id]


def test_update_complete_and_delete_task(task_service):
    task = task_service.create_task(
        TaskDraft(title="Draft", category=TaskCategory.WORK, scheduled_date=MONDAY), now=NOW
    )

    updated = task_service.update_task(task.id, TaskUpdate(title="Final", duration=50))
    assert updated.title == "Final"
    assert updated.duration == 50
    assert updated.updated_at > task.updated_at

    completed = task_service.complete_task(task.id, now=NOW + timedelta(hours=1))
    assert completed.status == TaskStatus.COMPLETED
    assert completed.completed_at == NOW + timedelta(hours=1)
    assert task_service.get_task(task.id).status == TaskStatus.COMPLETED

    task_service.delete_task(task.id)
    with pytest.raises(TaskNotFoundError, match="Task not found"):
        task_service.get_task(task.id)


def test_recurring_task_creates_template_and_instances(task_service, recurring_service, store):
    first = task_service.create_task(_recurring_draft(1, 3, 5), now=NOW)

    assert isinstance(first, RecurringTaskInstance)
    assert first.scheduled_date == MONDAY
    [template] = recurring_service.get_templates()
    assert first.template_id == template.id
    assert template.last_generated_date == SUNDAY + timedelta(days=30)
    instances = [t for t in load_tasks(store) if isinstance(t, RecurringTaskInstance)]
    # Mon/Wed/Fri between June 2nd and July 2nd
    assert len(instances) == 13
    assert all(i.scheduled_date <= date(2024, 7, 2) for i in instances)


def test_recurring_draft_without_pattern_is_rejected(recurring_service):
    draft = TaskDraft(title="Gym", category=TaskCategory.HEALTH, is_recurring=True)

    with pytest.raises(InvalidRecurrenceError):
        recurring_service.create_recurring_task(draft)


def test_task_service_rejects_recurring_draft_without_pattern(task_service, store):
    draft = TaskDraft(title="Gym", category=TaskCategory.HEALTH, is_recurring=True)

    with pytest.raises(InvalidRecurrenceError):
        task_service.create_task(draft, now=NOW)
    assert load_tasks(store) == []


def test_occurrence_limit_rolls_forward_and_survives_cleanup(recurring_service, store):
    draft = TaskDraft(
        title="Stretch",
        category=TaskCategory.HEALTH,
        scheduled_date=SUNDAY,
        is_recurring=True,
        recurrence_pattern=RecurrencePattern(
            frequency=RecurrenceFrequency.DAILY, end_after_occurrences=40
        ),
    )
    recurring_service.create_recurring_task(draft, now=NOW)
    # Every day from June 2nd through July 2nd
    assert len(load_tasks(store)) == 31

    fresh = recurring_service.generate_recurring_instances(days_ahead=30, today=MONDAY, now=NOW)
    assert [i.instance_date for i in fresh] == [date(2024, 7, 3)]
    [template] = recurring_service.get_templates()
    assert template.generated_count == 32

    assert recurring_service.cleanup_old_recurring_instances(days_to_keep=0, today=date(2024, 8, 1)) == 32
    fresh = recurring_service.generate_recurring_instances(days_ahead=30, today=date(2024, 8, 1), now=NOW)
    assert len(fresh) == 8
    assert recurring_service.get_templates()[0].generated_count == 40


def test_pattern_without_matches_falls_back_to_plain_task(task_service, store):
    task = task_service.create_task(_recurring_draft(), now=NOW)

    assert not isinstance(task, RecurringTaskInstance)
    assert task.scheduled_date == SUNDAY
    assert [t.id for t in load_tasks(store)] == [task.id]


def test_generate_skips_existing_instances(task_service, recurring_service, store):
    task_service.create_task(_recurring_draft(1), now=NOW)
    before = len(load_tasks(store))

    assert recurring_service.generate_recurring_instances(days_ahead=30, today=SUNDAY, now=NOW) == []

    fresh = recurring_service.generate_recurring_instances(days_ahead=37, today=SUNDAY, now=NOW)
    assert [i.instance_date for i in fresh] == [date(2024, 7, 8)]
    assert len(load_tasks(store)) == before + 1


def test_exceptions_apply_to_generation(recurring_service, store):
    first = recurring_service.create_recurring_task(
        _recurring_draft(1).model_copy(update={"scheduled_date": date(2024, 9, 1)}), now=NOW
    )
    template_id = first.template_id
    recurring_service.add_exception(
        template_id, RecurrenceExceptionCreate(date=date(2024, 10, 7), type=ExceptionType.SKIP)
    )
    recurring_service.add_exception(
        template_id,
        RecurrenceExceptionCreate(
            date=date(2024, 10, 14), type=ExceptionType.MODIFY, modified_task={"title": "Leg day"}
        ),
    )

    fresh = recurring_service.generate_recurring_instances(days_ahead=20, today=date(2024, 10, 2), now=NOW)

    assert [(i.instance_date, i.title, i.is_modified) for i in fresh] == [
        (date(2024, 10, 14), "Leg day", True),
        (date(2024, 10, 21), "Gym", False),
    ]
    assert len(recurring_service.get_exceptions(template_id)) == 2
    assert recurring_service.get_exceptions("template-unknown") == []


def test_add_exception_requires_template(recurring_service):
    with pytest.raises(RecurringTemplateNotFoundError, match="Recurring template not found"):
        recurring_service.add_exception(
            "template-missing", RecurrenceExceptionCreate(date=MONDAY, type=ExceptionType.SKIP)
        )


def test_deactivated_template_stops_generating(task_service, recurring_service):
    first = task_service.create_task(_recurring_draft(1), now=NOW)
    recurring_service.deactivate_template(first.template_id)

    assert recurring_service.get_template(first.template_id).is_active is False
    assert recurring_service.generate_recurring_instances(days_ahead=60, today=SUNDAY, now=NOW) == []


def test_delete_template_cascades_to_instances(task_service, recurring_service, store):
    plain = task_service.create_task(
        TaskDraft(title="Keep me", category=TaskCategory.WORK, scheduled_date=MONDAY), now=NOW
    )
    first = task_service.create_task(_recurring_draft(1, 3), now=NOW)

    removed = recurring_service.delete_template(first.template_id)

    assert removed == 9
    assert [t.id for t in load_tasks(store)] == [plain.id]
    assert store.get(RECURRING_TEMPLATES_KEY) == []


def test_cleanup_keeps_plain_and_completed(task_service, recurring_service, store):
    plain = task_service.create_task(
        TaskDraft(title="Old plain", category=TaskCategory.WORK, scheduled_date=date(2024, 1, 1)), now=NOW
    )
    first = task_service.create_task(_recurring_draft(1), now=NOW)
    task_service.complete_task(first.id, now=NOW)

    removed = recurring_service.cleanup_old_recurring_instances(days_to_keep=0, today=date(2024, 8, 1))

    remaining = load_tasks(store)
    assert removed == 4
    assert {t.id for t in remaining} == {plain.id, first.id}


def test_seed_demo_data_runs_once(store):
    seed_demo_data(store, today=SUNDAY)
    tasks = load_tasks(store)

    assert [t.title for t in tasks] == [
        "Morning Workout",
        "Review Project Proposal",
        "Learn React Native",
        "Call Mom",
    ]
    assert tasks[-1].scheduled_date == MONDAY

    seed_demo_data(store, today=MONDAY)
    assert len(store.get(TASKS_KEY)) == 4


def test_planning_service_seeds_starter_templates(planning_service, store):
    templates = planning_service.get_task_templates()

    assert [t.name for t in templates] == [
        "Daily Standup",
        "Morning Workout",
        "Learning Session",
        "Weekly Review",
        "Creative Time",
    ]
    assert templates[4].scheduled_time is None

    planning_service.initialize(now=NOW)
    assert len(store.get(TASK_TEMPLATES_KEY)) == 5


def test_template_usage_orders_templates(planning_service):
    planning_service.increment_template_usage("template-4")
    planning_service.increment_template_usage("template-4")
    planning_service.increment_template_usage("template-2")
    planning_service.increment_template_usage("template-unknown")

    assert [t.id for t in planning_service.get_task_templates()][:2] == ["template-4", "template-2"]


def test_update_and_delete_task_template(planning_service):
    updated = planning_service.update_task_template("template-1", TaskTemplateUpdate(duration=20))
    assert updated.duration == 20

    planning_service.update_task_template("template-5", TaskTemplateUpdate(is_active=False))
    assert "template-5" not in [t.id for t in planning_service.get_task_templates()]
    # Inactive templates are still stored
    assert planning_service.get_task_template("template-5").is_active is False

    planning_service.delete_task_template("template-1")
    with pytest.raises(TaskTemplateNotFoundError):
        planning_service.update_task_template("template-1", TaskTemplateUpdate(duration=10))


def test_apply_template_to_date_range(planning_service):
    tasks = planning_service.apply_template_to_date_range(
        "template-1", SUNDAY, date(2024, 6, 8), skip_weekends=True, now=NOW
    )

    assert len(tasks) == 5
    assert tasks[0].scheduled_date == MONDAY
    assert tasks[0].title == "Daily Team Standup"
    assert tasks[0].id.startswith("template-task-template-1-")
    assert planning_service.get_task_template("template-1").usage_count == 1


def test_analyze_workload_filters_to_period(planning_service):
    tasks = [_task(1, MONDAY), _task(2, MONDAY), _task(3, date(2024, 6, 20))]

    analysis = planning_service.analyze_workload(tasks, SUNDAY, PlanningPeriod.WEEK)

    assert analysis.end_date == date(2024, 6, 8)
    assert analysis.total_tasks == 2


def test_suggestions_default_to_settings(planning_service):
    draft = TaskDraft(title="Deep work", category=TaskCategory.WORK, duration=90)
    date_range = DateRange(start_date=SUNDAY, end_date=date(2024, 6, 8))

    suggestions = planning_service.get_smart_scheduling_suggestions(draft, date_range, existing_tasks=[])

    assert len(suggestions) == 5
    assert suggestions[0].suggested_time == "09:00"


def test_bulk_tasks_increment_template_usage(planning_service):
    bulk = BulkTaskCreation(
        template_id="template-3",
        tasks=[TaskDraft(title="Read", category=TaskCategory.LEARNING)],
        date_range=DateRange(start_date=MONDAY, end_date=MONDAY),
    )

    planned = planning_service.create_bulk_tasks(bulk, existing_tasks=[], now=NOW)

    assert [t.scheduled_date for t in planned] == [MONDAY]
    assert planning_service.get_task_template("template-3").usage_count == 1


def test_preview_flags_time_conflicts(planning_service):
    planned = [_task(1, MONDAY, time="09:00", duration=45, title="Write report")]
    existing = [_task(2, MONDAY, time="09:30", duration=30, title="Team sync")]
    date_range = DateRange(start_date=MONDAY, end_date=MONDAY)

    preview = planning_service.generate_planning_preview(planned, date_range, existing)

    assert preview.workload_analysis.total_tasks == 2
    assert preview.workload_analysis.period == PlanningPeriod.MONTH
    assert len(preview.conflicts) == 1
    [suggestion] = preview.suggestions
    assert suggestion.type == "reschedule"
    assert suggestion.message == "1 critical conflicts detected. Consider rescheduling tasks."
    assert suggestion.affected_dates == [MONDAY]


def test_preview_suggests_distributing_uneven_plan(planning_service):
    planned = [_task(i, MONDAY) for i in range(3)]
    date_range = DateRange(start_date=SUNDAY, end_date=date(2024, 6, 8))

    preview = planning_service.generate_planning_preview(planned, date_range, existing_tasks=[])

    assert preview.workload_analysis.workload_level == WorkloadLevel.LIGHT
    [suggestion] = preview.suggestions
    assert suggestion.type == "distribute"
    assert suggestion.affected_dates[0] == MONDAY


def test_commit_preview_stores_planned_tasks(planning_service, task_service):
    planned = [_task(1, MONDAY), _task(2, MONDAY)]

    committed = planning_service.commit_preview(planned)

    assert committed == planned
    assert [t.id for t in task_service.get_tasks(MONDAY)] == ["task-1", "task-2"]


def test_balance_moves_lowest_priority_overflow(planning_service):
    tasks = [
        _task(1, MONDAY, TaskPriority.URGENT),
        _task(2, MONDAY, TaskPriority.LOW),
        _task(3, MONDAY, TaskPriority.HIGH),
        _task(4, MONDAY, TaskPriority.MEDIUM),
    ]
    date_range = DateRange(start_date=MONDAY, end_date=date(2024, 6, 5))

    balanced = planning_service.balance_workload(tasks, date_range, max_tasks_per_day=2, now=NOW)

    placed = {t.id: t.scheduled_date for t in balanced}
    assert placed == {
        "task-1": MONDAY,
        "task-3": MONDAY,
        "task-4": date(2024, 6, 4),
        "task-2": date(2024, 6, 4),
    }


def test_balance_keeps_overflow_when_nowhere_fits(planning_service):
    tasks = [_task(i, MONDAY) for i in range(3)]
    date_range = DateRange(start_date=MONDAY, end_date=MONDAY)

    balanced = planning_service.balance_workload(tasks, date_range, max_tasks_per_day=2)

    assert len(balanced) == 3
    assert all(t.scheduled_date == MONDAY for t in balanced)


def test_planning_statistics(planning_service):
    planning_service.increment_template_usage("template-2")
    tasks = [_task(1, MONDAY), _task(2, date(2024, 6, 4)), _task(3, date(2024, 7, 1))]
    date_range = DateRange(start_date=SUNDAY, end_date=date(2024, 6, 8))

    stats = planning_service.get_planning_statistics(tasks, date_range)

    assert stats.total_planned_tasks == 2
    assert stats.total_planned_minutes == 60
    assert stats.average_tasks_per_day == pytest.approx(2 / 7)
    assert [u.template.id for u in stats.most_used_templates] == ["template-2"]
    assert stats.category_distribution[0].percentage == pytest.approx(100)
