"""
Syllabus tracking: topics per subject with completion progress.
"""
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlmodel import Session, col, select

from db import get_session
from models import Priority, SyllabusItem, User, utcnow
from security import get_current_user

router = APIRouter(prefix="/api/syllabus", tags=["syllabus"])


class SyllabusCreate(BaseModel):
    subject: str = Field(min_length=1, max_length=100)
    topic: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    chapter_number: Optional[int] = Field(default=None, ge=1)
    estimated_study_hours: Optional[float] = Field(default=None, ge=0)
    start_date: Optional[date] = None
    target_completion_date: Optional[date] = None
    difficulty_level: Optional[int] = Field(default=None, ge=1, le=5)
    priority: Priority = Priority.medium


class SyllabusUpdate(BaseModel):
    subject: Optional[str] = Field(default=None, min_length=1, max_length=100)
    topic: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    chapter_number: Optional[int] = Field(default=None, ge=1)
    estimated_study_hours: Optional[float] = Field(default=None, ge=0)
    completed: Optional[bool] = None
    completion_percentage: Optional[int] = Field(default=None, ge=0, le=100)
    start_date: Optional[date] = None
    target_completion_date: Optional[date] = None
    actual_completion_date: Optional[date] = None
    difficulty_level: Optional[int] = Field(default=None, ge=1, le=5)
    priority: Optional[Priority] = None


def get_owned_item(db: Session, item_id: int, user_id: int) -> SyllabusItem:
    item = db.exec(
        select(SyllabusItem).where(SyllabusItem.id == item_id, SyllabusItem.user_id == user_id)
    ).one_or_none()
    if not item:
        raise HTTPException(status_code=404, detail="Syllabus item not found")
    return item


@router.get("")
def list_syllabus(
    subject: Optional[str] = None,
    completed: Optional[bool] = None,
    limit: int = 20,
    offset: int = 0,
    db: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    statement = select(SyllabusItem).where(SyllabusItem.user_id == user.id)
    if subject:
        statement = statement.where(col(SyllabusItem.subject).contains(subject))
    if completed is not None:
        statement = statement.where(SyllabusItem.completed == completed)
    statement = (
        statement.order_by(
            SyllabusItem.subject,
            SyllabusItem.chapter_number,
            col(SyllabusItem.created_at).desc(),
        )
        .offset(offset)
        .limit(min(limit, 100))
    )
    return db.exec(statement).all()


@router.get("/by-subject")
def syllabus_by_subject(
    db: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    """Per-subject rollup of topics, completion and estimated hours."""
    items = db.exec(
        select(SyllabusItem)
        .where(SyllabusItem.user_id == user.id)
        .order_by(SyllabusItem.subject)
    ).all()
    subjects: dict[str, dict] = {}
    for item in items:
        s = subjects.setdefault(
            item.subject,
            {
                "subject": item.subject,
                "total_topics": 0,
                "completed_topics": 0,
                "avg_completion": 0.0,
                "total_estimated_hours": 0.0,
            },
        )
        s["total_topics"] += 1
        s["completed_topics"] += 1 if item.completed else 0
        s["avg_completion"] += item.completion_percentage
        s["total_estimated_hours"] += item.estimated_study_hours or 0
    for s in subjects.values():
        s["avg_completion"] = round(s["avg_completion"] / s["total_topics"], 1)
    return list(subjects.values())


@router.get("/stats/overview")
def syllabus_stats(
    db: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    items = db.exec(select(SyllabusItem).where(SyllabusItem.user_id == user.id)).all()
    today = utcnow().date()
    total = len(items)
    return {
        "total_topics": total,
        "completed_topics": sum(1 for i in items if i.completed),
        "total_subjects": len({i.subject for i in items}),
        "avg_completion_percentage": (
            round(sum(i.completion_percentage for i in items) / total, 1) if total else 0
        ),
        "total_estimated_hours": sum(i.estimated_study_hours or 0 for i in items),
        "overdue_topics": sum(
            1
            for i in items
            if not i.completed and i.target_completion_date and i.target_completion_date < today
        ),
    }


@router.get("/{item_id}")
def get_syllabus_item(
    item_id: int,
    db: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    return get_owned_item(db, item_id, user.id)


@router.post("", status_code=201)
def create_syllabus_item(
    req: SyllabusCreate,
    db: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    item = SyllabusItem(user_id=user.id, **req.model_dump())
    db.add(item)
    db.commit()
    db.refresh(item)
    return item


@router.put("/{item_id}")
def update_syllabus_item(
    item_id: int,
    req: SyllabusUpdate,
    db: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    item = get_owned_item(db, item_id, user.id)
    changes = req.model_dump(exclude_unset=True, exclude_none=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No fields to update")
    for key, value in changes.items():
        setattr(item, key, value)
    # completed flag wins over any percentage sent alongside it
    if changes.get("completed") is True:
        item.completion_percentage = 100
        item.actual_completion_date = utcnow().date()
    elif changes.get("completed") is False:
        item.completion_percentage = 0
        item.actual_completion_date = None
    item.updated_at = utcnow()
    db.add(item)
    db.commit()
    db.refresh(item)
    return item


@router.delete("/{item_id}")
def delete_syllabus_item(
    item_id: int,
    db: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    item = get_owned_item(db, item_id, user.id)
    db.delete(item)
    db.commit()
    return {"message": "Syllabus item deleted successfully"}
