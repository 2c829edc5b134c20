"""
Analytics: dashboard rollups computed from tasks, syllabus and the study-session log,
plus manually recorded web-usage tracking.
"""
from collections import defaultdict
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlmodel import Session, col, select

from db import get_session
from models import (
    StudySession,
    SyllabusItem,
    Task,
    TaskStatus,
    User,
    WebsiteCategory,
    WebTracking,
    as_utc,
    utcnow,
)
from security import get_current_user

router = APIRouter(prefix="/api/analytics", tags=["analytics"])


class WebTrackingCreate(BaseModel):
    website_url: str = Field(min_length=1, max_length=500)
    website_category: WebsiteCategory
    time_spent_minutes: int = Field(ge=1)
    session_date: Optional[date] = None


def _avg(values: list) -> Optional[float]:
    return round(sum(values) / len(values), 2) if values else None


def _sessions_between(db: Session, user_id: int, start: datetime, end: datetime) -> list[StudySession]:
    statement = (
        select(StudySession)
        .where(
            StudySession.user_id == user_id,
            StudySession.start_time >= start,
            StudySession.start_time <= end,
        )
        .order_by(col(StudySession.start_time).desc())
    )
    return list(db.exec(statement).all())


def _window(start_date: Optional[date], end_date: Optional[date], default_days: int):
    end = end_date or utcnow().date()
    start = start_date or end - timedelta(days=default_days)
    return start, end


def daily_breakdown(sessions: list[StudySession]) -> list[dict]:
    """Study minutes, session count and mean rating per calendar day, oldest first."""
    days: dict[date, list[StudySession]] = defaultdict(list)
    for s in sessions:
        days[s.start_time.date()].append(s)
    return [
        {
            "date": day,
            "total_study_time_minutes": sum(s.duration_minutes or 0 for s in day_sessions),
            "sessions": len(day_sessions),
            "average_productivity_rating": _avg(
                [s.productivity_rating for s in day_sessions if s.productivity_rating]
            ),
        }
        for day, day_sessions in sorted(days.items())
    ]


def _period_summary(sessions: list[StudySession], days: int) -> dict:
    ratings = [s.productivity_rating for s in sessions if s.productivity_rating]
    total = sum(s.duration_minutes or 0 for s in sessions)
    return {
        "avg_daily_study_minutes": round(total / days, 1),
        "avg_rating": _avg(ratings),
        "sessions": len(sessions),
    }


@router.get("/dashboard")
def dashboard(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    """Performance dashboard, defaulting to the last 30 days."""
    start, end = _window(start_date, end_date, 30)
    sessions = _sessions_between(
        db,
        user.id,
        datetime.combine(start, datetime.min.time(), tzinfo=timezone.utc),
        datetime.combine(end, datetime.max.time(), tzinfo=timezone.utc),
    )

    today = utcnow().date()
    tasks = db.exec(select(Task).where(Task.user_id == user.id)).all()
    accuracy = [
        t.actual_hours / t.estimated_hours
        for t in tasks
        if t.actual_hours is not None and t.estimated_hours
    ]
    task_stats = {
        "total_tasks": len(tasks),
        "completed_tasks": sum(1 for t in tasks if t.status == TaskStatus.completed),
        "in_progress_tasks": sum(1 for t in tasks if t.status == TaskStatus.in_progress),
        "pending_tasks": sum(1 for t in tasks if t.status == TaskStatus.pending),
        "overdue_tasks": sum(
            1
            for t in tasks
            if t.due_date and t.due_date < today and t.status != TaskStatus.completed
        ),
        "avg_time_accuracy": _avg(accuracy),
    }

    items = db.exec(select(SyllabusItem).where(SyllabusItem.user_id == user.id)).all()
    syllabus_stats = {
        "total_topics": len(items),
        "completed_topics": sum(1 for i in items if i.completed),
        "avg_completion_percentage": _avg([i.completion_percentage for i in items]),
        "total_subjects": len({i.subject for i in items}),
    }

    now = utcnow()
    recent = _sessions_between(db, user.id, now - timedelta(days=14), now)
    cutoff = now - timedelta(days=7)
    productivity_trend = {
        "current_week": _period_summary([s for s in recent if s.start_time >= cutoff], 7),
        "previous_week": _period_summary([s for s in recent if s.start_time < cutoff], 7),
    }

    return {
        "start_date": start,
        "end_date": end,
        "daily_analytics": daily_breakdown(sessions),
        "task_stats": task_stats,
        "syllabus_stats": syllabus_stats,
        "productivity_trend": productivity_trend,
    }


@router.get("/study-sessions")
def study_session_analytics(
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    db: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    """Sessions in the window (default last 30 days) with aggregate stats."""
    end = as_utc(end_date) or utcnow()
    start = as_utc(start_date) or end - timedelta(days=30)
    sessions = _sessions_between(db, user.id, start, end)
    ratings = [s.productivity_rating for s in sessions if s.productivity_rating]
    return {
        "sessions": sessions,
        "stats": {
            "total_sessions": len(sessions),
            "avg_duration_minutes": _avg([s.duration_minutes for s in sessions if s.duration_minutes is not None]),
            "total_study_minutes": sum(s.duration_minutes or 0 for s in sessions),
            "avg_productivity_rating": _avg(ratings),
            "high_productivity_sessions": sum(1 for r in ratings if r >= 4),
        },
    }


# --- Web tracking ---


@router.get("/web-tracking")
def web_tracking_stats(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    """Time per category, top sites and daily patterns (default last 7 days)."""
    start, end = _window(start_date, end_date, 7)
    rows = db.exec(
        select(WebTracking).where(
            WebTracking.user_id == user.id,
            WebTracking.session_date >= start,
            WebTracking.session_date <= end,
        )
    ).all()

    categories: dict[str, dict] = {}
    sites: dict[tuple[str, str], dict] = {}
    daily: dict[date, dict] = {}
    for r in rows:
        cat = r.website_category.value
        c = categories.setdefault(
            cat, {"website_category": cat, "total_time_minutes": 0, "urls": set(), "total_sessions": 0}
        )
        c["total_time_minutes"] += r.time_spent_minutes
        c["urls"].add(r.website_url)
        c["total_sessions"] += 1

        site = sites.setdefault(
            (r.website_url, cat),
            {"website_url": r.website_url, "website_category": cat, "total_time_minutes": 0, "session_count": 0},
        )
        site["total_time_minutes"] += r.time_spent_minutes
        site["session_count"] += 1

        day = daily.setdefault(
            r.session_date,
            {"session_date": r.session_date, "productive_time": 0, "distracting_time": 0, "neutral_time": 0},
        )
        day[f"{cat}_time"] += r.time_spent_minutes

    category_stats = []
    for c in sorted(categories.values(), key=lambda x: x["total_time_minutes"], reverse=True):
        urls = c.pop("urls")
        category_stats.append({**c, "unique_websites": len(urls)})

    return {
        "category_stats": category_stats,
        "top_websites": sorted(sites.values(), key=lambda x: x["total_time_minutes"], reverse=True)[:10],
        "daily_patterns": [daily[d] for d in sorted(daily)],
    }


@router.post("/web-tracking", status_code=201)
def add_web_tracking(
    req: WebTrackingCreate,
    db: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    row = WebTracking(
        user_id=user.id,
        website_url=req.website_url,
        website_category=req.website_category,
        time_spent_minutes=req.time_spent_minutes,
        session_date=req.session_date or utcnow().date(),
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row
