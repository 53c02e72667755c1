from datetime import date, datetime, timedelta

from momentum.db.session import SessionLocal
from momentum.db.store import (
    RECURRENCE_EXCEPTIONS_KEY,
    RECURRING_TEMPLATES_KEY,
    TASKS_KEY,
    KeyValueStore,
    save_tasks,
)
from momentum.schemas.task import Task, TaskCategory, TaskPriority


def seed_demo_data(store: KeyValueStore, today: date | None = None) -> None:
    if store.has(TASKS_KEY):
        return
    today = today or date.today()
    tomorrow = today + timedelta(days=1)
    now = datetime.now()

    samples = [
        ("Morning Workout", "Complete 30-minute cardio session",
         TaskCategory.HEALTH, TaskPriority.HIGH, today, "07:00", 30, 25),
        ("Review Project Proposal", "Go through the Q1 project proposal and provide feedback",
         TaskCategory.WORK, TaskPriority.URGENT, today, "10:00", 60, 40),
        ("Learn React Native", "Complete chapter 3 of React Native course",
         TaskCategory.LEARNING, TaskPriority.MEDIUM, today, "19:00", 45, 30),
        ("Call Mom", "Weekly check-in call with family",
         TaskCategory.SOCIAL, TaskPriority.MEDIUM, tomorrow, "18:00", 20, 15),
    ]
    tasks = [
        Task(
            id=f"task-{index}",
            title=title,
            description=description,
            category=category,
            priority=priority,
            scheduled_date=scheduled_date,
            scheduled_time=scheduled_time,
            duration=duration,
            xp_reward=xp_reward,
            created_at=now,
            updated_at=now,
        )
        for index, (title, description, category, priority, scheduled_date,
                    scheduled_time, duration, xp_reward) in enumerate(samples, start=1)
    ]
    save_tasks(store, tasks)
    store.set(RECURRING_TEMPLATES_KEY, [])
    store.set(RECURRENCE_EXCEPTIONS_KEY, [])


if __name__ == "__main__":
    with SessionLocal() as session:
        seed_demo_data(KeyValueStore(session))
