"""
Study planning: generate a day-by-day plan, turn it into calendar events,
and give rule-based recommendations.
"""
import logging
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlmodel import Session, col, select

from db import get_session
from models import (
    Event,
    EventStatus,
    EventType,
    StudySession,
    SyllabusItem,
    Task,
    TaskStatus,
    User,
    as_utc,
    utcnow,
)
from planner import PlanItem, generate_recommendations, generate_study_plan
from routers.events import validate_links
from security import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/planning", tags=["planning"])

MAX_PLAN_DAYS = 366
OPEN_TASK = col(Task.status).not_in([TaskStatus.completed, TaskStatus.cancelled])


class GeneratePlanRequest(BaseModel):
    start_date: date
    end_date: date
    daily_study_hours: float = Field(default=6, ge=1, le=16)
    include_weekends: bool = True
    prioritize_due_tasks: bool = True


class PlanItemIn(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    start_time: datetime
    end_time: datetime
    task_id: Optional[int] = None
    syllabus_id: Optional[int] = None


class ApplyPlanRequest(BaseModel):
    plan_items: list[PlanItemIn]


@router.post("/generate-plan")
def generate_plan(
    req: GeneratePlanRequest,
    db: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    """Build a study plan from the user's open tasks and unfinished syllabus topics."""
    if req.end_date < req.start_date:
        raise HTTPException(status_code=400, detail="end_date must not be before start_date")
    if (req.end_date - req.start_date).days > MAX_PLAN_DAYS:
        raise HTTPException(status_code=400, detail="Plan range is limited to one year")

    tasks = db.exec(select(Task).where(Task.user_id == user.id, OPEN_TASK)).all()
    topics = db.exec(
        select(SyllabusItem).where(
            SyllabusItem.user_id == user.id, SyllabusItem.completed == False  # noqa: E712
        )
    ).all()
    window_start = datetime.combine(req.start_date, datetime.min.time(), tzinfo=timezone.utc)
    window_end = datetime.combine(req.end_date, datetime.max.time(), tzinfo=timezone.utc)
    events = db.exec(
        select(Event).where(
            Event.user_id == user.id,
            Event.status != EventStatus.cancelled,
            Event.start_time >= window_start,
            Event.start_time <= window_end,
        )
    ).all()

    items = [PlanItem.from_task(t) for t in tasks] + [PlanItem.from_syllabus(s) for s in topics]
    plan = generate_study_plan(
        items,
        events,
        req.start_date,
        req.end_date,
        daily_study_hours=req.daily_study_hours,
        include_weekends=req.include_weekends,
        prioritize_due=req.prioritize_due_tasks,
    )
    logger.info(
        "Generated plan for user %s: %d days, %.1f hours",
        user.id,
        plan["total_days"],
        plan["total_study_hours"],
    )
    return {"message": "Study plan generated successfully", "study_plan": plan}


@router.post("/apply-plan", status_code=201)
def apply_plan(
    req: ApplyPlanRequest,
    db: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    """Create one scheduled study_session event per plan item (all or nothing)."""
    events = []
    for item in req.plan_items:
        start, end = as_utc(item.start_time), as_utc(item.end_time)
        if end <= start:
            raise HTTPException(status_code=400, detail=f"Invalid time range for '{item.title}'")
        validate_links(db, user.id, task_id=item.task_id, syllabus_id=item.syllabus_id)
        events.append(
            Event(
                user_id=user.id,
                title=item.title,
                event_type=EventType.study_session,
                start_time=start,
                end_time=end,
                task_id=item.task_id,
                syllabus_id=item.syllabus_id,
            )
        )
    for event in events:
        db.add(event)
    db.commit()
    for event in events:
        db.refresh(event)
    return {"message": "Study plan applied successfully", "created_events": events}


@router.get("/recommendations")
def recommendations(
    db: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    now = utcnow()
    today = now.date()

    sessions = db.exec(
        select(StudySession).where(
            StudySession.user_id == user.id, StudySession.start_time >= now - timedelta(days=7)
        )
    ).all()
    ratings = [s.productivity_rating for s in sessions if s.productivity_rating]
    avg_rating = sum(ratings) / len(ratings) if ratings else None
    avg_daily_minutes = (
        sum(s.duration_minutes or 0 for s in sessions) / 7 if sessions else None
    )

    open_tasks = db.exec(select(Task).where(Task.user_id == user.id, OPEN_TASK)).all()
    overdue = sum(1 for t in open_tasks if t.due_date and t.due_date < today)
    upcoming = sorted(
        (
            t
            for t in open_tasks
            if t.due_date and today <= t.due_date <= today + timedelta(days=7)
        ),
        key=lambda t: t.due_date,
    )

    difficult = db.exec(
        select(SyllabusItem)
        .where(
            SyllabusItem.user_id == user.id,
            SyllabusItem.completed == False,  # noqa: E712
            col(SyllabusItem.difficulty_level) >= 4,
        )
        .order_by(
            col(SyllabusItem.difficulty_level).desc(),
            col(SyllabusItem.completion_percentage).asc(),
        )
        .limit(5)
    ).all()

    return {
        "recommendations": generate_recommendations(
            avg_rating=avg_rating,
            avg_daily_study_minutes=avg_daily_minutes,
            overdue_tasks=overdue,
            upcoming_deadlines=upcoming,
            difficult_topics=difficult,
        ),
        "upcoming_deadlines": [
            {"id": t.id, "title": t.title, "due_date": t.due_date, "priority": t.priority}
            for t in upcoming
        ],
        "difficult_topics": difficult,
    }
