"""Planning service: task templates, workload analysis and plan previews.

Wraps the pure planning engines with template storage and the settings that
supply scheduling defaults. Nothing here writes tasks except ``commit_preview``.
"""
from __future__ import annotations

import logging
import uuid
from datetime import date, datetime
from typing import Sequence

from momentum.core.config import Settings, get_settings
from momentum.core.errors import StoreNotInitializedError, TaskTemplateNotFoundError
from momentum.db.store import TASK_TEMPLATES_KEY, KeyValueStore, load_tasks, save_tasks
from momentum.schemas.planning import (
    BulkTaskCreation,
    CategoryCount,
    ConflictSeverity,
    DateRange,
    PlanningConflict,
    PlanningPeriod,
    PlanningPreview,
    PlanningStatistics,
    PlanningSuggestion,
    SchedulingPreferences,
    SmartSchedulingSuggestion,
    TaskTemplate,
    TaskTemplateCreate,
    TaskTemplateUpdate,
    TemplateUsage,
    WorkingHours,
    WorkloadAnalysis,
    WorkloadLevel,
)
from momentum.schemas.task import Task, TaskBase, TaskCategory, TaskDraft, TaskPriority
from momentum.services import bulk_planner, scheduling, workload_analyzer
from momentum.utils.calendar import dates_in_range, is_weekend, task_minutes, tasks_for_date_range

logger = logging.getLogger(__name__)

PRIORITY_ORDER = {
    TaskPriority.URGENT: 4,
    TaskPriority.HIGH: 3,
    TaskPriority.MEDIUM: 2,
    TaskPriority.LOW: 1,
}

# Share of the minute cap under which a day can take overflow
LIGHT_DAY_RATIO = 0.7

STARTER_TEMPLATES = [
    {
        "id": "template-1",
        "name": "Daily Standup",
        "title": "Daily Team Standup",
        "description": "Attend daily team standup meeting",
        "category": TaskCategory.WORK,
        "priority": TaskPriority.MEDIUM,
        "scheduled_time": "09:00",
        "duration": 15,
        "xp_reward": 10,
        "tags": ["meeting", "team", "daily"],
    },
    {
        "id": "template-2",
        "name": "Morning Workout",
        "title": "Morning Exercise Session",
        "description": "Complete morning workout routine",
        "category": TaskCategory.HEALTH,
        "priority": TaskPriority.HIGH,
        "scheduled_time": "07:00",
        "duration": 45,
        "xp_reward": 30,
        "tags": ["exercise", "health", "morning"],
    },
    {
        "id": "template-3",
        "name": "Learning Session",
        "title": "Study/Learning Time",
        "description": "Dedicated time for learning new skills",
        "category": TaskCategory.LEARNING,
        "priority": TaskPriority.MEDIUM,
        "scheduled_time": "19:00",
        "duration": 60,
        "xp_reward": 40,
        "tags": ["study", "learning", "development"],
    },
    {
        "id": "template-4",
        "name": "Weekly Review",
        "title": "Weekly Planning & Review",
        "description": "Review past week and plan upcoming week",
        "category": TaskCategory.PERSONAL,
        "priority": TaskPriority.HIGH,
        "scheduled_time": "18:00",
        "duration": 30,
        "xp_reward": 25,
        "tags": ["planning", "review", "weekly"],
    },
    {
        "id": "template-5",
        "name": "Creative Time",
        "title": "Creative Project Work",
        "description": "Time for creative projects and hobbies",
        "category": TaskCategory.CREATIVE,
        "priority": TaskPriority.MEDIUM,
        "duration": 90,
        "xp_reward": 35,
        "tags": ["creative", "project", "hobby"],
    },
]


def _in_range(tasks: Sequence[Task], date_range: DateRange) -> list[Task]:
    return tasks_for_date_range(tasks, date_range.start_date, date_range.end_date)


def _preview_suggestions(
    analysis: WorkloadAnalysis,
    conflicts: list[PlanningConflict],
) -> list[PlanningSuggestion]:
    suggestions = []

    critical = [c for c in conflicts if c.severity == ConflictSeverity.HIGH]
    if critical:
        suggestions.append(
            PlanningSuggestion(
                type="reschedule",
                message=f"{len(critical)} critical conflicts detected. Consider rescheduling tasks.",
                affected_dates=[c.date for c in critical],
            )
        )

    if analysis.workload_level == WorkloadLevel.OVERLOADED:
        suggestions.append(
            PlanningSuggestion(
                type="reduce",
                message="Workload is too high. Consider reducing or postponing some tasks.",
                affected_dates=[day.date for day in analysis.peak_days],
            )
        )

    peak_minutes = analysis.peak_days[0].total_minutes if analysis.peak_days else 0
    light_minutes = analysis.light_days[0].total_minutes if analysis.light_days else 0
    if analysis.peak_days and peak_minutes > light_minutes * 3:
        suggestions.append(
            PlanningSuggestion(
                type="distribute",
                message="Uneven workload distribution. Consider moving tasks from peak days to lighter days.",
                affected_dates=[day.date for day in analysis.peak_days + analysis.light_days],
            )
        )

    return suggestions


class PlanningService:
    def __init__(self, store: KeyValueStore, settings: Settings | None = None):
        self.store = store
        self.settings = settings or get_settings()
        self._initialized = False

    def initialize(self, now: datetime | None = None) -> None:
        self._initialized = True
        if not self.store.has(TASK_TEMPLATES_KEY):
            now = now or datetime.now()
            templates = [
                TaskTemplate(**data, created_at=now, updated_at=now)
                for data in STARTER_TEMPLATES
            ]
            self._save_templates(templates)
            logger.info(f"Seeded {len(templates)} starter task templates")

    def _require_initialized(self) -> None:
        if not self._initialized:
            raise StoreNotInitializedError("Planning service not initialized")

    def _load_templates(self) -> list[TaskTemplate]:
        return [TaskTemplate.model_validate(item) for item in self.store.get(TASK_TEMPLATES_KEY, [])]

    def _save_templates(self, templates: list[TaskTemplate]) -> None:
        self.store.set(TASK_TEMPLATES_KEY, [t.model_dump(mode="json") for t in templates])

    def _stored_tasks(self, tasks: Sequence[Task] | None) -> Sequence[Task]:
        return load_tasks(self.store) if tasks is None else tasks

    # Task templates

    def get_task_templates(self) -> list[TaskTemplate]:
        """Active templates, most used first."""
        self._require_initialized()
        active = [t for t in self._load_templates() if t.is_active]
        return sorted(active, key=lambda t: t.usage_count, reverse=True)

    def get_task_template(self, template_id: str) -> TaskTemplate:
        self._require_initialized()
        for template in self._load_templates():
            if template.id == template_id:
                return template
        logger.warning(f"Task template {template_id} not found")
        raise TaskTemplateNotFoundError(template_id)

    def create_task_template(
        self,
        data: TaskTemplateCreate,
        now: datetime | None = None,
    ) -> TaskTemplate:
        self._require_initialized()
        now = now or datetime.now()
        template = TaskTemplate(
            **data.model_dump(),
            id=f"template-{int(now.timestamp() * 1000)}-{uuid.uuid4().hex[:9]}",
            created_at=now,
            updated_at=now,
            usage_count=0,
        )
        templates = self._load_templates()
        templates.append(template)
        self._save_templates(templates)
        logger.info(f"Created task template {template.id}")
        return template

    def update_task_template(
        self,
        template_id: str,
        updates: TaskTemplateUpdate,
        now: datetime | None = None,
    ) -> TaskTemplate:
        template = self.get_task_template(template_id)
        changes = {
            field: value
            for field, value in updates.model_dump(exclude_unset=True).items()
            if value is not None or field in ("description", "scheduled_time", "duration")
        }
        updated = TaskTemplate.model_validate(
            {**template.model_dump(), **changes, "updated_at": now or datetime.now()}
        )
        self._save_templates(
            [updated if t.id == template_id else t for t in self._load_templates()]
        )
        return updated

    def delete_task_template(self, template_id: str) -> None:
        self.get_task_template(template_id)
        self._save_templates([t for t in self._load_templates() if t.id != template_id])
        logger.info(f"Deleted task template {template_id}")

    def increment_template_usage(self, template_id: str) -> None:
        self._require_initialized()
        templates = self._load_templates()
        for index, template in enumerate(templates):
            if template.id == template_id:
                templates[index] = template.model_copy(
                    update={"usage_count": template.usage_count + 1, "updated_at": datetime.now()}
                )
                self._save_templates(templates)
                return

    def apply_task_template(
        self,
        template: TaskTemplate,
        scheduled_date: date,
        scheduled_time: str | None = None,
    ) -> TaskDraft:
        return bulk_planner.apply_task_template(template, scheduled_date, scheduled_time)

    def apply_template_to_date_range(
        self,
        template_id: str,
        start_date: date,
        end_date: date,
        skip_weekends: bool = False,
        now: datetime | None = None,
    ) -> list[Task]:
        """One task per date in the range from a stored template. Tasks are returned, not stored."""
        self._require_initialized()
        template = self.get_task_template(template_id)
        now = now or datetime.now()
        stamp = int(now.timestamp() * 1000)

        days = dates_in_range(start_date, end_date)
        if skip_weekends:
            days = [day for day in days if not is_weekend(day)]

        tasks = []
        for index, day in enumerate(days):
            draft = bulk_planner.apply_task_template(template, day)
            tasks.append(
                Task(
                    **draft.model_dump(exclude={"scheduled_date"}),
                    id=f"template-task-{template_id}-{stamp}-{index}",
                    scheduled_date=day,
                    created_at=now,
                    updated_at=now,
                )
            )

        self.increment_template_usage(template_id)
        return tasks

    # Analysis and scheduling

    def get_planning_date_range(self, start_date: date, period: PlanningPeriod) -> DateRange:
        start, end = workload_analyzer.get_planning_date_range(start_date, period)
        return DateRange(start_date=start, end_date=end)

    def analyze_workload(
        self,
        tasks: Sequence[Task] | None,
        start_date: date,
        period: PlanningPeriod,
    ) -> WorkloadAnalysis:
        self._require_initialized()
        date_range = self.get_planning_date_range(start_date, period)
        period_tasks = _in_range(self._stored_tasks(tasks), date_range)
        return workload_analyzer.calculate_workload_analysis(
            period_tasks, date_range.start_date, date_range.end_date, period
        )

    def _default_preferences(self, preferences: SchedulingPreferences | None) -> SchedulingPreferences:
        if preferences is None:
            return SchedulingPreferences(
                working_hours=WorkingHours(
                    start=self.settings.working_hours_start,
                    end=self.settings.working_hours_end,
                ),
                max_tasks_per_day=self.settings.max_tasks_per_day,
                max_minutes_per_day=self.settings.max_minutes_per_day,
            )
        return preferences.model_copy(
            update={
                "max_tasks_per_day": preferences.max_tasks_per_day or self.settings.max_tasks_per_day,
                "max_minutes_per_day": preferences.max_minutes_per_day or self.settings.max_minutes_per_day,
            }
        )

    def get_smart_scheduling_suggestions(
        self,
        task: TaskBase,
        date_range: DateRange,
        preferences: SchedulingPreferences | None = None,
        existing_tasks: Sequence[Task] | None = None,
    ) -> list[SmartSchedulingSuggestion]:
        self._require_initialized()
        return scheduling.generate_smart_scheduling_suggestions(
            task,
            self._stored_tasks(existing_tasks),
            date_range,
            self._default_preferences(preferences),
        )

    # Bulk planning and previews

    def create_bulk_tasks(
        self,
        bulk: BulkTaskCreation,
        existing_tasks: Sequence[Task] | None = None,
        now: datetime | None = None,
    ) -> list[Task]:
        self._require_initialized()
        planned = bulk_planner.generate_bulk_task_plan(bulk, self._stored_tasks(existing_tasks), now=now)
        if bulk.template_id:
            self.increment_template_usage(bulk.template_id)
        logger.debug(f"Planned {len(planned)} bulk task(s) ({bulk.distribution})")
        return planned

    def generate_planning_preview(
        self,
        planned_tasks: Sequence[Task],
        date_range: DateRange,
        existing_tasks: Sequence[Task] | None = None,
    ) -> PlanningPreview:
        """
        Analyse a proposed plan together with what is already scheduled.

        The analysis covers every task in the range; conflicts compare the plan
        against all existing tasks.
        """
        self._require_initialized()
        existing = self._stored_tasks(existing_tasks)
        period_tasks = _in_range([*existing, *planned_tasks], date_range)
        analysis = workload_analyzer.calculate_workload_analysis(
            period_tasks, date_range.start_date, date_range.end_date, PlanningPeriod.MONTH
        )
        conflicts = bulk_planner.validate_planning_conflicts(planned_tasks, existing)
        return PlanningPreview(
            date_range=date_range,
            planned_tasks=list(planned_tasks),
            workload_analysis=analysis,
            conflicts=conflicts,
            suggestions=_preview_suggestions(analysis, conflicts),
        )

    def commit_preview(self, planned_tasks: Sequence[Task]) -> list[Task]:
        """Store the planned tasks as they are; no check that the preview is still current."""
        self._require_initialized()
        tasks = load_tasks(self.store)
        tasks.extend(planned_tasks)
        save_tasks(self.store, tasks)
        logger.info(f"Committed {len(planned_tasks)} planned task(s)")
        return list(planned_tasks)

    def balance_workload(
        self,
        tasks: Sequence[Task] | None,
        date_range: DateRange,
        max_tasks_per_day: int = 6,
        max_minutes_per_day: int = 480,
        now: datetime | None = None,
    ) -> list[Task]:
        """
        Move lower-priority tasks off over-capacity days.

        Over-capacity days keep their highest-priority tasks that fit. The rest
        go to the first light day in the range that can still absorb them, or
        stay where they were when no day can.
        """
        self._require_initialized()
        now = now or datetime.now()

        by_date: dict[date, list[Task]] = {}
        for task in self._stored_tasks(tasks):
            by_date.setdefault(task.scheduled_date, []).append(task)

        balanced: list[Task] = []
        overflow: list[Task] = []
        for day_tasks in by_date.values():
            day_minutes = sum(task_minutes(task) for task in day_tasks)
            if len(day_tasks) <= max_tasks_per_day and day_minutes <= max_minutes_per_day:
                balanced.extend(day_tasks)
                continue

            kept_count = 0
            kept_minutes = 0
            for task in sorted(day_tasks, key=lambda t: PRIORITY_ORDER[t.priority], reverse=True):
                minutes = task_minutes(task)
                if kept_count < max_tasks_per_day and kept_minutes + minutes <= max_minutes_per_day:
                    balanced.append(task)
                    kept_count += 1
                    kept_minutes += minutes
                else:
                    overflow.append(task)

        def load(day: date) -> tuple[int, int]:
            day_tasks = [task for task in balanced if task.scheduled_date == day]
            return len(day_tasks), sum(task_minutes(task) for task in day_tasks)

        light_dates = [
            day
            for day in dates_in_range(date_range.start_date, date_range.end_date)
            if load(day)[0] < max_tasks_per_day and load(day)[1] < max_minutes_per_day * LIGHT_DAY_RATIO
        ]

        moved = 0
        for task in overflow:
            minutes = task_minutes(task)
            target = None
            for day in light_dates:
                count, day_minutes = load(day)
                if count < max_tasks_per_day and day_minutes + minutes <= max_minutes_per_day:
                    target = day
                    break
            if target is None:
                balanced.append(task)
            else:
                balanced.append(task.model_copy(update={"scheduled_date": target, "updated_at": now}))
                moved += 1

        logger.debug(f"Balanced workload: moved {moved} of {len(overflow)} overflow task(s)")
        return balanced

    def get_planning_statistics(
        self,
        tasks: Sequence[Task] | None,
        date_range: DateRange,
    ) -> PlanningStatistics:
        self._require_initialized()
        period_tasks = _in_range(self._stored_tasks(tasks), date_range)
        total = len(period_tasks)
        day_count = len(dates_in_range(date_range.start_date, date_range.end_date))

        most_used = [
            TemplateUsage(template=template, usage_count=template.usage_count)
            for template in self.get_task_templates()
            if template.usage_count > 0
        ][:5]

        counts: dict = {}
        for task in period_tasks:
            counts[task.category] = counts.get(task.category, 0) + 1

        return PlanningStatistics(
            total_planned_tasks=total,
            total_planned_minutes=sum(task_minutes(task) for task in period_tasks),
            average_tasks_per_day=total / day_count if day_count else 0.0,
            most_used_templates=most_used,
            category_distribution=[
                CategoryCount(category=category, count=count, percentage=count / total * 100)
                for category, count in counts.items()
            ],
        )
