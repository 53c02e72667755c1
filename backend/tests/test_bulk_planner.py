from datetime import date, datetime

from momentum.schemas.planning import (
    BulkTaskCreation,
    ConflictSeverity,
    DateRange,
    TaskTemplate,
)
from momentum.schemas.task import Task, TaskCategory, TaskDraft, TaskPriority
from momentum.services.bulk_planner import (
    apply_task_template,
    generate_bulk_task_plan,
    validate_planning_conflicts,
)

NOW = datetime(2024, 6, 1, 8, 0)
SUNDAY = date(2024, 6, 2)
MONDAY = date(2024, 6, 3)
FRIDAY = date(2024, 6, 7)
SATURDAY = date(2024, 6, 8)


def _drafts(count: int) -> list[TaskDraft]:
    return [
        TaskDraft(title=f"Chapter {i}", category=TaskCategory.LEARNING, duration=45, xp_reward=20)
        for i in range(count)
    ]


def _bulk(count, start, end, distribution="daily", skip_weekends=False) -> BulkTaskCreation:
    return BulkTaskCreation(
        tasks=_drafts(count),
        date_range=DateRange(start_date=start, end_date=end),
        distribution=distribution,
        skip_weekends=skip_weekends,
    )


def _task(index, day, time=None, duration=30, title=None) -> Task:
    return Task(
        id=f"task-{index}",
        title=title or f"Task {index}",
        category=TaskCategory.WORK,
        scheduled_date=day,
        scheduled_time=time,
        duration=duration,
        created_at=NOW,
        updated_at=NOW,
    )


def test_daily_distribution_cycles_through_dates():
    plan = generate_bulk_task_plan(_bulk(10, MONDAY, FRIDAY), [], now=NOW)

    assert len(plan) == 10
    assert plan[0].scheduled_date == MONDAY
    assert plan[5].scheduled_date == MONDAY
    assert plan[4].scheduled_date == FRIDAY
    assert plan[3].title == "Chapter 3"
    assert plan[3].duration == 45
    for i, task in enumerate(plan):
        assert task.id.startswith("bulk-")
        assert task.id.endswith(f"-{i}")
        assert task.created_at == NOW


def test_skip_weekends_filters_dates():
    plan = generate_bulk_task_plan(_bulk(7, SUNDAY, SATURDAY, skip_weekends=True), [], now=NOW)

    assert [task.scheduled_date for task in plan][:5] == [
        MONDAY,
        date(2024, 6, 4),
        date(2024, 6, 5),
        date(2024, 6, 6),
        FRIDAY,
    ]
    assert plan[5].scheduled_date == MONDAY


def test_weekly_distribution_steps_a_week_and_wraps():
    plan = generate_bulk_task_plan(
        _bulk(3, SUNDAY, date(2024, 6, 15), distribution="weekly"), [], now=NOW
    )

    assert [task.scheduled_date for task in plan] == [SUNDAY, date(2024, 6, 9), SUNDAY]


def test_custom_distribution_spreads_evenly():
    plan = generate_bulk_task_plan(
        _bulk(4, SUNDAY, date(2024, 6, 9), distribution="custom"), [], now=NOW
    )

    assert [task.scheduled_date for task in plan] == [
        SUNDAY,
        date(2024, 6, 4),
        date(2024, 6, 6),
        SATURDAY,
    ]


def test_no_available_dates_yields_empty_plan():
    bulk = _bulk(3, SATURDAY, date(2024, 6, 9), skip_weekends=True)

    assert generate_bulk_task_plan(bulk, [], now=NOW) == []


def test_overlapping_times_are_a_high_conflict():
    planned = [_task(1, MONDAY, "09:00", 45, "Write report")]
    existing = [_task(2, MONDAY, "09:30", 30, "Team sync")]

    conflicts = validate_planning_conflicts(planned, existing)

    assert len(conflicts) == 1
    assert conflicts[0].date == MONDAY
    assert conflicts[0].severity == ConflictSeverity.HIGH
    assert "Write report" in conflicts[0].reason
    assert "Team sync" in conflicts[0].reason


def test_back_to_back_tasks_do_not_conflict():
    planned = [_task(1, MONDAY, "09:00", 30)]
    existing = [_task(2, MONDAY, "09:30", 30)]

    assert validate_planning_conflicts(planned, existing) == []


def test_overloaded_and_crowded_day():
    planned = [_task(i, MONDAY, duration=60) for i in range(9)]

    conflicts = validate_planning_conflicts(planned, [])

    assert [(c.reason, c.severity) for c in conflicts] == [
        ("Overloaded day: 9 hours of tasks", ConflictSeverity.HIGH),
        ("Too many tasks: 9 tasks scheduled", ConflictSeverity.HIGH),
    ]


def test_heavy_and_busy_day():
    existing = [_task(i, MONDAY, duration=55) for i in range(7)]

    conflicts = validate_planning_conflicts([], existing)

    assert [(c.reason, c.severity) for c in conflicts] == [
        ("Heavy workload: 6 hours of tasks", ConflictSeverity.MEDIUM),
        ("Many tasks: 7 tasks scheduled", ConflictSeverity.MEDIUM),
    ]


def test_hours_round_half_up():
    existing = [_task(i, MONDAY, duration=65) for i in range(6)]

    [conflict] = validate_planning_conflicts([], existing)

    assert conflict.reason == "Heavy workload: 7 hours of tasks"


def test_apply_task_template_builds_draft():
    template = TaskTemplate(
        id="template-1",
        name="Daily Standup",
        title="Daily Team Standup",
        category=TaskCategory.WORK,
        priority=TaskPriority.MEDIUM,
        scheduled_time="09:00",
        duration=15,
        xp_reward=10,
        created_at=NOW,
        updated_at=NOW,
    )

    draft = apply_task_template(template, MONDAY)
    assert draft.title == "Daily Team Standup"
    assert draft.scheduled_date == MONDAY
    assert draft.scheduled_time == "09:00"
    assert draft.duration == 15

    assert apply_task_template(template, MONDAY, "10:30").scheduled_time == "10:30"
