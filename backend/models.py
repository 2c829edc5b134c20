from __future__ import annotations

from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, UniqueConstraint
from sqlalchemy.types import TypeDecorator
from sqlmodel import SQLModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Aware UTC; naive values are taken to already be UTC."""
    if dt is None:
        return dt
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


class UTCDateTime(TypeDecorator):
    """Aware UTC datetimes on the Python side. SQLite stores them as naive UTC."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return value
        value = as_utc(value)
        return value.replace(tzinfo=None) if dialect.name == "sqlite" else value

    def process_result_value(self, value, dialect):
        return as_utc(value)


# --- Enumerations ---


class Role(str, Enum):
    user = "user"
    academic_advisor = "academic_advisor"
    admin = "admin"


class Priority(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"
    urgent = "urgent"


class TaskStatus(str, Enum):
    pending = "pending"
    in_progress = "in_progress"
    completed = "completed"
    cancelled = "cancelled"


class EventType(str, Enum):
    study_session = "study_session"
    exam = "exam"
    assignment = "assignment"
    meeting = "meeting"
    break_ = "break"
    other = "other"


class EventStatus(str, Enum):
    scheduled = "scheduled"
    in_progress = "in_progress"
    completed = "completed"
    cancelled = "cancelled"


class Theme(str, Enum):
    light = "light"
    dark = "dark"
    auto = "auto"


class NotificationType(str, Enum):
    info = "info"
    warning = "warning"
    error = "error"
    success = "success"


class NotificationPriority(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"


class WebsiteCategory(str, Enum):
    productive = "productive"
    neutral = "neutral"
    distracting = "distracting"


# --- Users ---


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(index=True, unique=True, max_length=255)
    password_hash: str
    first_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)
    role: Role = Field(default=Role.user, index=True)
    is_active: bool = True
    last_login: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)


class UserRead(SQLModel):
    """Public view of a user (no password hash)."""

    id: int
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: Role
    is_active: bool
    last_login: Optional[datetime] = None
    created_at: datetime


class UserPreferences(SQLModel, table=True):
    __tablename__ = "user_preferences"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", ondelete="CASCADE", unique=True)
    study_hours_per_day: int = 8
    break_duration_minutes: int = 15
    work_session_duration_minutes: int = 45
    theme: Theme = Theme.light
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)


# --- Tasks and syllabus ---


class Task(SQLModel, table=True):
    __tablename__ = "tasks"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", ondelete="CASCADE", index=True)
    title: str = Field(max_length=255)
    description: Optional[str] = None
    subject: Optional[str] = Field(default=None, max_length=100)
    priority: Priority = Field(default=Priority.medium, index=True)
    status: TaskStatus = Field(default=TaskStatus.pending, index=True)
    due_date: Optional[date] = Field(default=None, index=True)
    estimated_hours: Optional[float] = None
    actual_hours: Optional[float] = None
    difficulty_level: Optional[int] = None
    completed_at: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)


class SyllabusItem(SQLModel, table=True):
    __tablename__ = "syllabus"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", ondelete="CASCADE", index=True)
    subject: str = Field(max_length=100, index=True)
    topic: str = Field(max_length=255)
    description: Optional[str] = None
    chapter_number: Optional[int] = None
    estimated_study_hours: Optional[float] = None
    completed: bool = Field(default=False, index=True)
    completion_percentage: int = 0
    start_date: Optional[date] = None
    target_completion_date: Optional[date] = None
    actual_completion_date: Optional[date] = None
    difficulty_level: Optional[int] = None
    priority: Priority = Priority.medium
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)


# --- Courses ---


class Course(SQLModel, table=True):
    __tablename__ = "courses"

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str = Field(max_length=200)
    description: Optional[str] = None
    course_code: str = Field(max_length=20, unique=True, index=True)
    credits: int = 3
    semester: Optional[str] = Field(default=None, max_length=20)
    year: Optional[int] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    instructor_id: Optional[int] = Field(
        default=None, foreign_key="users.id", ondelete="SET NULL", index=True
    )
    is_active: bool = Field(default=True, index=True)
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)


class CourseEnrollment(SQLModel, table=True):
    __tablename__ = "course_enrollments"
    __table_args__ = (UniqueConstraint("course_id", "user_id"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    course_id: int = Field(foreign_key="courses.id", ondelete="CASCADE", index=True)
    user_id: int = Field(foreign_key="users.id", ondelete="CASCADE", index=True)
    enrolled_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)


# --- Calendar and study log ---


class Event(SQLModel, table=True):
    __tablename__ = "events"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", ondelete="CASCADE", index=True)
    title: str = Field(max_length=255)
    description: Optional[str] = None
    event_type: EventType = Field(default=EventType.study_session, index=True)
    start_time: datetime = Field(index=True, sa_type=UTCDateTime)
    end_time: datetime = Field(sa_type=UTCDateTime)
    location: Optional[str] = Field(default=None, max_length=255)
    is_recurring: bool = False
    recurrence_pattern: Optional[str] = None
    priority: Priority = Priority.medium
    status: EventStatus = EventStatus.scheduled
    task_id: Optional[int] = Field(default=None, foreign_key="tasks.id", ondelete="SET NULL")
    syllabus_id: Optional[int] = Field(
        default=None, foreign_key="syllabus.id", ondelete="SET NULL"
    )
    course_id: Optional[int] = Field(
        default=None, foreign_key="courses.id", ondelete="SET NULL"
    )
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)


class StudySession(SQLModel, table=True):
    """One row per completed focus interval."""

    __tablename__ = "study_sessions"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", ondelete="CASCADE", index=True)
    event_id: Optional[int] = Field(default=None, foreign_key="events.id", ondelete="SET NULL")
    task_id: Optional[int] = Field(default=None, foreign_key="tasks.id", ondelete="SET NULL")
    syllabus_id: Optional[int] = Field(
        default=None, foreign_key="syllabus.id", ondelete="SET NULL"
    )
    start_time: datetime = Field(index=True, sa_type=UTCDateTime)
    end_time: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)
    duration_minutes: Optional[int] = None
    productivity_rating: Optional[int] = None
    notes: Optional[str] = None
    break_count: int = 0
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)


# --- Notifications and web tracking ---


class Notification(SQLModel, table=True):
    __tablename__ = "notifications"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", ondelete="CASCADE", index=True)
    title: str = Field(max_length=255)
    message: str
    type: NotificationType = NotificationType.info
    priority: NotificationPriority = NotificationPriority.medium
    is_read: bool = Field(default=False, index=True)
    read_at: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)
    expires_at: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)
    related_task_id: Optional[int] = Field(
        default=None, foreign_key="tasks.id", ondelete="SET NULL"
    )
    related_event_id: Optional[int] = Field(
        default=None, foreign_key="events.id", ondelete="SET NULL"
    )
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)


class WebTracking(SQLModel, table=True):
    __tablename__ = "web_tracking"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", ondelete="CASCADE", index=True)
    website_url: str = Field(max_length=500)
    website_category: WebsiteCategory = WebsiteCategory.neutral
    time_spent_minutes: int
    session_date: date = Field(index=True)
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
