"""
Study-session log: one record per completed focus interval,
optionally linked to the calendar event, task and syllabus topic it covered.
"""
import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlmodel import Session, col, select

from db import get_session
from models import StudySession, User, as_utc, utcnow
from routers.events import validate_links
from security import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/study-sessions", tags=["study-sessions"])


class StudySessionCreate(BaseModel):
    start_time: datetime
    end_time: Optional[datetime] = None
    duration_minutes: Optional[int] = Field(default=None, ge=0)
    productivity_rating: Optional[int] = Field(default=None, ge=1, le=5)
    notes: Optional[str] = None
    break_count: int = Field(default=0, ge=0)
    event_id: Optional[int] = None
    task_id: Optional[int] = None
    syllabus_id: Optional[int] = None


class StudySessionUpdate(BaseModel):
    end_time: Optional[datetime] = None
    duration_minutes: Optional[int] = Field(default=None, ge=0)
    productivity_rating: Optional[int] = Field(default=None, ge=1, le=5)
    notes: Optional[str] = None
    break_count: Optional[int] = Field(default=None, ge=0)


def get_owned_session(db: Session, session_id: int, user_id: int) -> StudySession:
    statement = select(StudySession).where(
        StudySession.id == session_id, StudySession.user_id == user_id
    )
    study_session = db.exec(statement).one_or_none()
    if not study_session:
        raise HTTPException(status_code=404, detail="Study session not found")
    return study_session


@router.get("")
def list_study_sessions(
    limit: int = 50,
    offset: int = 0,
    db: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    """List sessions (newest first) for this user."""
    statement = (
        select(StudySession)
        .where(StudySession.user_id == user.id)
        .order_by(col(StudySession.start_time).desc())
        .offset(offset)
        .limit(min(limit, 100))
    )
    return db.exec(statement).all()


@router.get("/stats/summary")
def study_session_summary(
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    db: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    """Totals for this user, optionally limited to sessions starting in a window."""
    statement = select(StudySession).where(StudySession.user_id == user.id)
    if start_date:
        statement = statement.where(StudySession.start_time >= as_utc(start_date))
    if end_date:
        statement = statement.where(StudySession.start_time <= as_utc(end_date))
    sessions = db.exec(statement).all()

    ratings = [s.productivity_rating for s in sessions if s.productivity_rating is not None]
    today = utcnow().date()
    today_sessions = [s for s in sessions if s.start_time.date() == today]
    return {
        "total_sessions": len(sessions),
        "total_minutes": sum(s.duration_minutes or 0 for s in sessions),
        "avg_productivity": round(sum(ratings) / len(ratings), 2) if ratings else None,
        "total_breaks": sum(s.break_count for s in sessions),
        "today_sessions": len(today_sessions),
        "today_minutes": sum(s.duration_minutes or 0 for s in today_sessions),
    }


@router.get("/{session_id}")
def get_study_session(
    session_id: int,
    db: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    return get_owned_session(db, session_id, user.id)


@router.post("", status_code=201)
def create_study_session(
    req: StudySessionCreate,
    db: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    """Record a study session. Linked rows must belong to the caller."""
    validate_links(
        db, user.id, task_id=req.task_id, syllabus_id=req.syllabus_id, event_id=req.event_id
    )
    data = req.model_dump()
    data["start_time"] = as_utc(req.start_time)
    data["end_time"] = as_utc(req.end_time)
    if data["end_time"] is not None and data["end_time"] < data["start_time"]:
        raise HTTPException(status_code=400, detail="End time must be after start time")
    study_session = StudySession(user_id=user.id, **data)
    db.add(study_session)
    db.commit()
    db.refresh(study_session)
    logger.info(
        "Study session %s recorded: %s min (event %s)",
        study_session.id,
        study_session.duration_minutes,
        study_session.event_id,
    )
    return study_session


@router.put("/{session_id}")
def update_study_session(
    session_id: int,
    req: StudySessionUpdate,
    db: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    """Update a session, e.g. to end it or rate it."""
    study_session = get_owned_session(db, session_id, user.id)
    changes = req.model_dump(exclude_unset=True, exclude_none=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No fields to update")
    if "end_time" in changes:
        changes["end_time"] = as_utc(changes["end_time"])
        if changes["end_time"] < study_session.start_time:
            raise HTTPException(status_code=400, detail="End time must be after start time")
    for key, value in changes.items():
        setattr(study_session, key, value)
    study_session.updated_at = utcnow()
    db.add(study_session)
    db.commit()
    db.refresh(study_session)
    return study_session


@router.delete("/{session_id}")
def delete_study_session(
    session_id: int,
    db: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    study_session = get_owned_session(db, session_id, user.id)
    db.delete(study_session)
    db.commit()
    return {"message": "Study session deleted successfully"}
