"""
Calendar events: scheduling CRUD and a month view.
The Pomodoro timer creates one event per work interval and later updates it in place.
"""
import logging
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlmodel import Session, col, select

from db import get_session
from models import (
    Course,
    Event,
    EventStatus,
    EventType,
    Priority,
    SyllabusItem,
    Task,
    User,
    as_utc,
    utcnow,
)
from security import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/events", tags=["events"])

# Fields an update may explicitly clear; nulls sent for anything else are ignored
NULLABLE_FIELDS = {"description", "location", "recurrence_pattern", "task_id", "syllabus_id", "course_id"}


class EventCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    event_type: EventType = EventType.study_session
    start_time: datetime
    end_time: datetime
    location: Optional[str] = Field(default=None, max_length=255)
    is_recurring: bool = False
    recurrence_pattern: Optional[str] = None
    priority: Priority = Priority.medium
    status: EventStatus = EventStatus.scheduled
    task_id: Optional[int] = None
    syllabus_id: Optional[int] = None
    course_id: Optional[int] = None


class EventUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    event_type: Optional[EventType] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    location: Optional[str] = Field(default=None, max_length=255)
    is_recurring: Optional[bool] = None
    recurrence_pattern: Optional[str] = None
    priority: Optional[Priority] = None
    status: Optional[EventStatus] = None
    task_id: Optional[int] = None
    syllabus_id: Optional[int] = None
    course_id: Optional[int] = None


def validate_links(
    db: Session,
    user_id: int,
    task_id: Optional[int] = None,
    syllabus_id: Optional[int] = None,
    event_id: Optional[int] = None,
    course_id: Optional[int] = None,
) -> None:
    """400 if any referenced row is missing or belongs to another user."""
    if task_id is not None:
        task = db.get(Task, task_id)
        if not task or task.user_id != user_id:
            raise HTTPException(status_code=400, detail="Invalid task_id")
    if syllabus_id is not None:
        item = db.get(SyllabusItem, syllabus_id)
        if not item or item.user_id != user_id:
            raise HTTPException(status_code=400, detail="Invalid syllabus_id")
    if event_id is not None:
        event = db.get(Event, event_id)
        if not event or event.user_id != user_id:
            raise HTTPException(status_code=400, detail="Invalid event_id")
    if course_id is not None and not db.get(Course, course_id):
        raise HTTPException(status_code=400, detail="Invalid course_id")


def get_owned_event(db: Session, event_id: int, user_id: int) -> Event:
    event = db.exec(
        select(Event).where(Event.id == event_id, Event.user_id == user_id)
    ).one_or_none()
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")
    return event


def _check_time_range(start: datetime, end: datetime) -> None:
    if end <= start:
        raise HTTPException(status_code=400, detail="End time must be after start time")


@router.get("")
def list_events(
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    event_type: Optional[EventType] = None,
    status: Optional[EventStatus] = None,
    limit: int = 50,
    offset: int = 0,
    db: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    """Events ordered by start time, optionally windowed by start date."""
    statement = select(Event).where(Event.user_id == user.id)
    if start_date:
        statement = statement.where(Event.start_time >= as_utc(start_date))
    if end_date:
        statement = statement.where(Event.start_time <= as_utc(end_date))
    if event_type:
        statement = statement.where(Event.event_type == event_type)
    if status:
        statement = statement.where(Event.status == status)
    statement = statement.order_by(col(Event.start_time).asc()).offset(offset).limit(min(limit, 100))
    return db.exec(statement).all()


@router.get("/calendar/{year}/{month}")
def calendar_month(
    year: int,
    month: int,
    db: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    """All events starting within the given calendar month."""
    if not 1 <= month <= 12:
        raise HTTPException(status_code=400, detail="Month must be between 1 and 12")
    first = datetime(year, month, 1, tzinfo=timezone.utc)
    if month == 12:
        next_first = datetime(year + 1, 1, 1, tzinfo=timezone.utc)
    else:
        next_first = datetime(year, month + 1, 1, tzinfo=timezone.utc)
    statement = (
        select(Event)
        .where(Event.user_id == user.id, Event.start_time >= first, Event.start_time < next_first)
        .order_by(col(Event.start_time).asc())
    )
    return db.exec(statement).all()


@router.get("/{event_id}")
def get_event(
    event_id: int,
    db: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    return get_owned_event(db, event_id, user.id)


@router.post("", status_code=201)
def create_event(
    req: EventCreate,
    db: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    data = req.model_dump()
    data["start_time"] = as_utc(req.start_time)
    data["end_time"] = as_utc(req.end_time)
    _check_time_range(data["start_time"], data["end_time"])
    validate_links(
        db, user.id, task_id=req.task_id, syllabus_id=req.syllabus_id, course_id=req.course_id
    )
    event = Event(user_id=user.id, **data)
    db.add(event)
    db.commit()
    db.refresh(event)
    logger.info("Event %s created (%s, %s)", event.id, event.event_type.value, event.status.value)
    return event


@router.put("/{event_id}")
def update_event(
    event_id: int,
    req: EventUpdate,
    db: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    event = get_owned_event(db, event_id, user.id)
    changes = {
        k: v
        for k, v in req.model_dump(exclude_unset=True).items()
        if v is not None or k in NULLABLE_FIELDS
    }
    if not changes:
        raise HTTPException(status_code=400, detail="No fields to update")
    for key in ("start_time", "end_time"):
        if key in changes:
            changes[key] = as_utc(changes[key])
    _check_time_range(
        changes.get("start_time", event.start_time), changes.get("end_time", event.end_time)
    )
    validate_links(
        db,
        user.id,
        task_id=changes.get("task_id"),
        syllabus_id=changes.get("syllabus_id"),
        course_id=changes.get("course_id"),
    )
    previous_status = event.status
    for key, value in changes.items():
        setattr(event, key, value)
    event.updated_at = utcnow()
    db.add(event)
    db.commit()
    db.refresh(event)
    if event.status != previous_status:
        logger.info(
            "Event %s status %s -> %s", event.id, previous_status.value, event.status.value
        )
    return event


@router.delete("/{event_id}")
def delete_event(
    event_id: int,
    db: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    event = get_owned_event(db, event_id, user.id)
    db.delete(event)
    db.commit()
    return {"message": "Event deleted successfully"}


# --- Calendar link helpers ---

def _to_google_calendar_format(dt: datetime) -> str:
    """Format as YYYYMMDDTHHMMSSZ for Google Calendar URL."""
    return as_utc(dt).strftime("%Y%m%dT%H%M%SZ")


@router.get("/{event_id}/calendar-link")
def get_calendar_link(
    event_id: int,
    db: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    """Google Calendar URL so the user can copy this event into their own calendar."""
    event = get_owned_event(db, event_id, user.id)
    title = (event.title or "Study session").strip()
    params = {
        "action": "TEMPLATE",
        "text": title,
        "dates": f"{_to_google_calendar_format(event.start_time)}/{_to_google_calendar_format(event.end_time)}",
    }
    if event.description:
        params["details"] = event.description
    if event.location:
        params["location"] = event.location
    qs = "&".join(f"{k}={quote(str(v))}" for k, v in params.items())
    url = f"https://calendar.google.com/calendar/render?{qs}"
    return {"url": url, "title": title}
