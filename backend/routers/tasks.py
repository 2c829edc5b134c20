"""
Task manager: CRUD over the current user's tasks, plus overview stats.
"""
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy import case
from sqlmodel import Session, col, select

from db import get_session
from models import Priority, Task, TaskStatus, User, utcnow
from security import get_current_user

router = APIRouter(prefix="/api/tasks", tags=["tasks"])

PRIORITY_ORDER = case(
    (col(Task.priority) == Priority.urgent, 1),
    (col(Task.priority) == Priority.high, 2),
    (col(Task.priority) == Priority.medium, 3),
    else_=4,
)


class TaskCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    subject: Optional[str] = Field(default=None, max_length=100)
    priority: Priority = Priority.medium
    due_date: Optional[date] = None
    estimated_hours: Optional[float] = Field(default=None, ge=0)
    difficulty_level: Optional[int] = Field(default=None, ge=1, le=5)


class TaskUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    subject: Optional[str] = Field(default=None, max_length=100)
    priority: Optional[Priority] = None
    status: Optional[TaskStatus] = None
    due_date: Optional[date] = None
    estimated_hours: Optional[float] = Field(default=None, ge=0)
    actual_hours: Optional[float] = Field(default=None, ge=0)
    difficulty_level: Optional[int] = Field(default=None, ge=1, le=5)


def get_owned_task(db: Session, task_id: int, user_id: int) -> Task:
    task = db.exec(select(Task).where(Task.id == task_id, Task.user_id == user_id)).one_or_none()
    if not task:
        raise HTTPException(status_code=404, detail="Task not found")
    return task


@router.get("")
def list_tasks(
    status: Optional[TaskStatus] = None,
    priority: Optional[Priority] = None,
    subject: Optional[str] = None,
    limit: int = 20,
    offset: int = 0,
    db: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    """Tasks with a due date first (soonest first), then by priority."""
    statement = select(Task).where(Task.user_id == user.id)
    if status:
        statement = statement.where(Task.status == status)
    if priority:
        statement = statement.where(Task.priority == priority)
    if subject:
        statement = statement.where(col(Task.subject).contains(subject))
    statement = (
        statement.order_by(
            col(Task.due_date).is_(None), col(Task.due_date).asc(), PRIORITY_ORDER
        )
        .offset(offset)
        .limit(min(limit, 100))
    )
    return db.exec(statement).all()


@router.get("/stats/overview")
def task_stats(
    db: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    tasks = db.exec(select(Task).where(Task.user_id == user.id)).all()
    today = utcnow().date()
    stats = {"total": len(tasks), "overdue": 0}
    for s in TaskStatus:
        stats[s.value] = 0
    for t in tasks:
        stats[t.status.value] += 1
        if (
            t.due_date
            and t.due_date < today
            and t.status not in (TaskStatus.completed, TaskStatus.cancelled)
        ):
            stats["overdue"] += 1
    return stats


@router.get("/{task_id}")
def get_task(
    task_id: int,
    db: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    return get_owned_task(db, task_id, user.id)


@router.post("", status_code=201)
def create_task(
    req: TaskCreate,
    db: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    task = Task(user_id=user.id, **req.model_dump())
    task.title = task.title.strip()
    db.add(task)
    db.commit()
    db.refresh(task)
    return task


@router.put("/{task_id}")
def update_task(
    task_id: int,
    req: TaskUpdate,
    db: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    task = get_owned_task(db, task_id, user.id)
    changes = req.model_dump(exclude_unset=True, exclude_none=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No fields to update")
    for key, value in changes.items():
        setattr(task, key, value)
    if "status" in changes:
        task.completed_at = utcnow() if task.status == TaskStatus.completed else None
    task.updated_at = utcnow()
    db.add(task)
    db.commit()
    db.refresh(task)
    return task


@router.delete("/{task_id}")
def delete_task(
    task_id: int,
    db: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    task = get_owned_task(db, task_id, user.id)
    db.delete(task)
    db.commit()
    return {"message": "Task deleted successfully"}
