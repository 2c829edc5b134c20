"""
Study-plan generation and rule-based study recommendations.

Both are pure functions over plain rows so they can be exercised without a database;
routers/planning.py loads the rows and persists the results.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Iterable, Optional

PRIORITY_SCORES = {"urgent": 5, "high": 4, "medium": 3, "low": 2}

DAY_START = time(9, 0, tzinfo=timezone.utc)
MAX_SESSION_HOURS = 2.5
MIN_SESSION_HOURS = 0.5
DEFAULT_ITEM_HOURS = 2.0
DEFAULT_DIFFICULTY = 3


def priority_score(priority: Optional[str]) -> int:
    return PRIORITY_SCORES.get(priority or "", 3)


@dataclass
class PlanItem:
    """A task or syllabus topic that still needs study time."""

    id: int
    kind: str  # "task" or "syllabus"
    title: str
    hours: float
    priority: int
    due_date: Optional[date] = None
    difficulty: int = DEFAULT_DIFFICULTY
    subject: Optional[str] = None
    scheduled_hours: float = 0.0

    @property
    def remaining(self) -> float:
        return self.hours - self.scheduled_hours

    @classmethod
    def from_task(cls, task) -> "PlanItem":
        return cls(
            id=task.id,
            kind="task",
            title=task.title,
            hours=task.estimated_hours or DEFAULT_ITEM_HOURS,
            priority=priority_score(getattr(task.priority, "value", task.priority)),
            due_date=task.due_date,
            difficulty=task.difficulty_level or DEFAULT_DIFFICULTY,
            subject=task.subject,
        )

    @classmethod
    def from_syllabus(cls, item) -> "PlanItem":
        # topics less than half done get bumped to "medium" urgency
        return cls(
            id=item.id,
            kind="syllabus",
            title=item.topic,
            hours=item.estimated_study_hours or DEFAULT_ITEM_HOURS,
            priority=3 if item.completion_percentage < 50 else 2,
            due_date=item.target_completion_date,
            difficulty=item.difficulty_level or DEFAULT_DIFFICULTY,
            subject=item.subject,
        )


def order_items(items: list[PlanItem], prioritize_due: bool = True) -> list[PlanItem]:
    """Items with a due date first (earliest first), then by priority score."""
    if prioritize_due:
        key = lambda i: (i.due_date is None, i.due_date or date.max, -i.priority)  # noqa: E731
    else:
        key = lambda i: (-i.priority, i.due_date or date.max)  # noqa: E731
    return sorted(items, key=key)


def booked_hours(events: Iterable, day: date) -> float:
    """Hours already taken by events starting on `day`."""
    total = 0.0
    for e in events:
        if e.start_time.date() == day:
            total += (e.end_time - e.start_time).total_seconds() / 3600
    return total


def generate_study_plan(
    items: list[PlanItem],
    existing_events: list,
    start_date: date,
    end_date: date,
    daily_study_hours: float = 6,
    include_weekends: bool = True,
    prioritize_due: bool = True,
) -> dict:
    """
    Spread the remaining hours of `items` over the days in [start_date, end_date].

    Each day gets `daily_study_hours` minus whatever existing events already occupy,
    filled from 09:00 with sessions of at most 2.5 hours. Sessions of 30 minutes or
    less are not scheduled.
    """
    queue = order_items(items, prioritize_due)
    plan = []
    day = start_date
    while day <= end_date:
        if not include_weekends and day.weekday() >= 5:
            day += timedelta(days=1)
            continue

        available = daily_study_hours - booked_hours(existing_events, day)
        if available > 0:
            scheduled = 0.0
            sessions = []
            for item in queue:
                if scheduled >= available:
                    break
                if item.remaining <= 0:
                    continue
                hours = min(item.remaining, available - scheduled, MAX_SESSION_HOURS)
                if hours <= MIN_SESSION_HOURS:
                    continue
                start = datetime.combine(day, DAY_START) + timedelta(hours=scheduled)
                end = start + timedelta(hours=hours)
                sessions.append(
                    {
                        "title": f"Study: {item.title}",
                        "start_time": start,
                        "end_time": end,
                        "task_id": item.id if item.kind == "task" else None,
                        "syllabus_id": item.id if item.kind == "syllabus" else None,
                        "subject": item.subject,
                        "difficulty": item.difficulty,
                        "estimated_hours": round(hours, 2),
                    }
                )
                item.scheduled_hours += hours
                scheduled += hours
            plan.append({"date": day, "total_hours": round(scheduled, 2), "sessions": sessions})
        day += timedelta(days=1)

    return {
        "total_days": len(plan),
        "total_study_hours": round(sum(d["total_hours"] for d in plan), 2),
        "daily_plans": plan,
    }


def generate_recommendations(
    avg_rating: Optional[float],
    avg_daily_study_minutes: Optional[float],
    overdue_tasks: int,
    upcoming_deadlines: list,
    difficult_topics: list,
) -> list[dict]:
    recommendations = []

    if avg_rating is not None and avg_rating < 3:
        recommendations.append(
            {
                "type": "performance",
                "priority": "high",
                "title": "Improve Study Effectiveness",
                "description": "Your recent productivity ratings are below average. "
                "Consider shorter, more focused study sessions with regular breaks.",
                "action": "Try the Pomodoro Technique: 25-minute focused sessions with 5-minute breaks.",
            }
        )

    if avg_daily_study_minutes is not None and avg_daily_study_minutes < 120:
        recommendations.append(
            {
                "type": "time",
                "priority": "medium",
                "title": "Increase Study Time",
                "description": "You're studying less than 2 hours per day on average. "
                "Consider increasing your daily study commitment.",
                "action": "Gradually increase your daily study time by 30 minutes each week.",
            }
        )

    if overdue_tasks > 0:
        plural = "s" if overdue_tasks > 1 else ""
        recommendations.append(
            {
                "type": "deadline",
                "priority": "urgent",
                "title": "Address Overdue Tasks",
                "description": f"You have {overdue_tasks} overdue task{plural}. "
                "Prioritize completing these immediately.",
                "action": "Review and reschedule overdue tasks. "
                "Consider breaking large tasks into smaller, manageable parts.",
            }
        )

    if upcoming_deadlines:
        n = len(upcoming_deadlines)
        recommendations.append(
            {
                "type": "planning",
                "priority": "high",
                "title": "Prepare for Upcoming Deadlines",
                "description": f"You have {n} task{'s' if n > 1 else ''} due within the next week.",
                "action": "Allocate extra time for high-priority tasks with approaching deadlines.",
            }
        )

    if difficult_topics:
        recommendations.append(
            {
                "type": "difficulty",
                "priority": "medium",
                "title": "Focus on Challenging Topics",
                "description": "You have several difficult topics with low completion rates.",
                "action": "Schedule dedicated time for challenging subjects "
                "when you're most alert and focused.",
            }
        )

    return recommendations
