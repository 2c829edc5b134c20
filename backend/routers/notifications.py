"""
Notifications: a user's inbox, plus advisor tools to message students and
nudge the ones falling behind.
"""
import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlmodel import Session, col, func, select

from db import get_session
from models import (
    Notification,
    NotificationPriority,
    NotificationType,
    Role,
    StudySession,
    Task,
    TaskStatus,
    User,
    as_utc,
    utcnow,
)
from routers.events import validate_links
from security import get_current_user, require_staff

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/notifications", tags=["notifications"])

INACTIVITY_DAYS = 7


class NotificationCreate(BaseModel):
    user_id: int
    title: str = Field(min_length=1, max_length=255)
    message: str = Field(min_length=1)
    type: NotificationType = NotificationType.info
    priority: NotificationPriority = NotificationPriority.medium
    expires_at: Optional[datetime] = None
    related_task_id: Optional[int] = None
    related_event_id: Optional[int] = None


def _open_overdue_tasks(today):
    return (
        col(Task.due_date) < today,
        col(Task.status).not_in([TaskStatus.completed, TaskStatus.cancelled]),
    )


@router.get("")
def list_notifications(
    unread_only: bool = False,
    limit: int = 20,
    offset: int = 0,
    db: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    """Newest first, skipping expired ones."""
    now = utcnow()
    statement = select(Notification).where(
        Notification.user_id == user.id,
        (col(Notification.expires_at).is_(None)) | (col(Notification.expires_at) > now),
    )
    if unread_only:
        statement = statement.where(Notification.is_read == False)  # noqa: E712
    notifications = db.exec(
        statement.order_by(col(Notification.created_at).desc(), col(Notification.id).desc())
        .offset(offset)
        .limit(min(limit, 100))
    ).all()
    unread_count = db.exec(
        select(func.count())
        .select_from(Notification)
        .where(Notification.user_id == user.id, Notification.is_read == False)  # noqa: E712
    ).one()
    return {"notifications": notifications, "unread_count": unread_count}


@router.post("", status_code=201)
def create_notification(
    req: NotificationCreate,
    db: Session = Depends(get_session),
    staff: User = Depends(require_staff),
):
    if not db.get(User, req.user_id):
        raise HTTPException(status_code=404, detail="User not found")
    # linked rows must belong to the recipient
    validate_links(db, req.user_id, task_id=req.related_task_id, event_id=req.related_event_id)
    data = req.model_dump()
    data["expires_at"] = as_utc(req.expires_at)
    notification = Notification(**data)
    db.add(notification)
    db.commit()
    db.refresh(notification)
    logger.info("User %s sent notification %s to user %s", staff.id, notification.id, req.user_id)
    return notification


@router.put("/read-all")
def mark_all_read(
    db: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    now = utcnow()
    unread = db.exec(
        select(Notification).where(
            Notification.user_id == user.id, Notification.is_read == False  # noqa: E712
        )
    ).all()
    for notification in unread:
        notification.is_read = True
        notification.read_at = now
        db.add(notification)
    db.commit()
    return {"message": "All notifications marked as read", "updated": len(unread)}


@router.put("/{notification_id}/read")
def mark_read(
    notification_id: int,
    db: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    notification = db.exec(
        select(Notification).where(
            Notification.id == notification_id, Notification.user_id == user.id
        )
    ).one_or_none()
    if not notification:
        raise HTTPException(status_code=404, detail="Notification not found")
    if not notification.is_read:
        notification.is_read = True
        notification.read_at = utcnow()
        db.add(notification)
        db.commit()
        db.refresh(notification)
    return notification


@router.delete("/{notification_id}")
def delete_notification(
    notification_id: int,
    db: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    notification = db.exec(
        select(Notification).where(
            Notification.id == notification_id, Notification.user_id == user.id
        )
    ).one_or_none()
    if not notification:
        raise HTTPException(status_code=404, detail="Notification not found")
    db.delete(notification)
    db.commit()
    return {"message": "Notification deleted successfully"}


# --- Advisor tools ---


@router.get("/progress-tracking")
def progress_tracking(
    days: int = 7,
    db: Session = Depends(get_session),
    _staff: User = Depends(require_staff),
):
    """Per-student task completion and study time over the last `days` days."""
    now = utcnow()
    since = now - timedelta(days=days)
    students = db.exec(
        select(User).where(User.role == Role.user, User.is_active == True)  # noqa: E712
    ).all()

    report = []
    for student in students:
        tasks = db.exec(select(Task).where(Task.user_id == student.id)).all()
        sessions = db.exec(
            select(StudySession).where(
                StudySession.user_id == student.id, StudySession.start_time >= since
            )
        ).all()
        overdue = [
            t
            for t in tasks
            if t.due_date
            and t.due_date < now.date()
            and t.status not in (TaskStatus.completed, TaskStatus.cancelled)
        ]
        report.append(
            {
                "user_id": student.id,
                "first_name": student.first_name,
                "last_name": student.last_name,
                "email": student.email,
                "total_tasks": len(tasks),
                "completed_tasks": sum(1 for t in tasks if t.status == TaskStatus.completed),
                "overdue_tasks": len(overdue),
                "study_sessions": len(sessions),
                "study_minutes": sum(s.duration_minutes or 0 for s in sessions),
            }
        )
    return {"days": days, "students": report}


@router.post("/create-progress-notifications")
def create_progress_notifications(
    db: Session = Depends(get_session),
    staff: User = Depends(require_staff),
):
    """Warn students with overdue tasks; remind students with no recent study sessions."""
    now = utcnow()
    since = now - timedelta(days=INACTIVITY_DAYS)
    students = db.exec(
        select(User).where(User.role == Role.user, User.is_active == True)  # noqa: E712
    ).all()

    overdue_sent = 0
    inactive_sent = 0
    for student in students:
        overdue_count = db.exec(
            select(func.count())
            .select_from(Task)
            .where(Task.user_id == student.id, *_open_overdue_tasks(now.date()))
        ).one()
        if overdue_count:
            db.add(
                Notification(
                    user_id=student.id,
                    title="Overdue Tasks Alert",
                    message=f"You have {overdue_count} overdue task"
                    f"{'s' if overdue_count > 1 else ''}. Please review and update your schedule.",
                    type=NotificationType.warning,
                    priority=NotificationPriority.high,
                )
            )
            overdue_sent += 1

        recent = db.exec(
            select(StudySession.id)
            .where(StudySession.user_id == student.id, StudySession.start_time >= since)
            .limit(1)
        ).first()
        if recent is None:
            db.add(
                Notification(
                    user_id=student.id,
                    title="Study Reminder",
                    message=f"You haven't logged a study session in the last {INACTIVITY_DAYS} days. "
                    "A short Pomodoro session is a good way to get back on track.",
                    type=NotificationType.info,
                    priority=NotificationPriority.medium,
                )
            )
            inactive_sent += 1

    db.commit()
    logger.info(
        "User %s created progress notifications: %d overdue, %d inactivity",
        staff.id,
        overdue_sent,
        inactive_sent,
    )
    return {
        "message": "Progress notifications created",
        "overdue_notifications": overdue_sent,
        "inactivity_notifications": inactive_sent,
    }
