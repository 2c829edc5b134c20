"""
User administration (admin) and the student directory (advisors, admins).
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlmodel import Session, select

from db import get_session
from models import Role, User, UserRead, utcnow
from security import require_admin, require_staff

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["users"])


class RoleUpdate(BaseModel):
    role: Role


class StatusUpdate(BaseModel):
    is_active: bool


def _get_user_or_404(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.get("", response_model=list[UserRead])
def list_users(
    role: Optional[Role] = None,
    limit: int = 50,
    offset: int = 0,
    db: Session = Depends(get_session),
    _admin: User = Depends(require_admin),
):
    statement = select(User)
    if role:
        statement = statement.where(User.role == role)
    statement = statement.order_by(User.created_at.desc()).offset(offset).limit(min(limit, 100))
    return db.exec(statement).all()


@router.get("/students", response_model=list[UserRead])
def list_students(
    db: Session = Depends(get_session),
    _staff: User = Depends(require_staff),
):
    """Active students, alphabetically."""
    statement = (
        select(User)
        .where(User.role == Role.user, User.is_active == True)  # noqa: E712
        .order_by(User.last_name, User.first_name)
    )
    return db.exec(statement).all()


@router.get("/{user_id}", response_model=UserRead)
def get_user(
    user_id: int,
    db: Session = Depends(get_session),
    _admin: User = Depends(require_admin),
):
    return _get_user_or_404(db, user_id)


@router.put("/{user_id}/role", response_model=UserRead)
def update_role(
    user_id: int,
    req: RoleUpdate,
    db: Session = Depends(get_session),
    admin: User = Depends(require_admin),
):
    user = _get_user_or_404(db, user_id)
    user.role = req.role
    user.updated_at = utcnow()
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Admin %s set role of user %s to %s", admin.id, user.id, req.role.value)
    return user


@router.put("/{user_id}/status", response_model=UserRead)
def update_status(
    user_id: int,
    req: StatusUpdate,
    db: Session = Depends(get_session),
    admin: User = Depends(require_admin),
):
    """Activate or deactivate an account."""
    if user_id == admin.id and not req.is_active:
        raise HTTPException(status_code=400, detail="Cannot deactivate your own account")
    user = _get_user_or_404(db, user_id)
    user.is_active = req.is_active
    user.updated_at = utcnow()
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@router.delete("/{user_id}")
def delete_user(
    user_id: int,
    db: Session = Depends(get_session),
    admin: User = Depends(require_admin),
):
    if user_id == admin.id:
        raise HTTPException(status_code=400, detail="Cannot delete your own account")
    user = _get_user_or_404(db, user_id)
    db.delete(user)
    db.commit()
    logger.info("Admin %s deleted user %s", admin.id, user_id)
    return {"message": "User deleted successfully"}
