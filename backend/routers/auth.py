"""
Registration, login and the current user's profile/preferences.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, EmailStr, Field
from sqlmodel import Session, select

from db import get_session
from models import Role, Theme, User, UserPreferences, UserRead, utcnow
from security import create_access_token, get_current_user, hash_password, verify_password

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6)
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    role: Role = Role.user


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class ProfileUpdate(BaseModel):
    first_name: Optional[str] = Field(default=None, min_length=1)
    last_name: Optional[str] = Field(default=None, min_length=1)


class PreferencesUpdate(BaseModel):
    study_hours_per_day: Optional[int] = Field(default=None, ge=1, le=24)
    break_duration_minutes: Optional[int] = Field(default=None, ge=1)
    work_session_duration_minutes: Optional[int] = Field(default=None, ge=1)
    theme: Optional[Theme] = None


def _token_response(user: User) -> dict:
    return {
        "token": create_access_token(user),
        "token_type": "bearer",
        "user": UserRead.model_validate(user),
    }


def _get_preferences(db: Session, user_id: int) -> UserPreferences:
    prefs = db.exec(
        select(UserPreferences).where(UserPreferences.user_id == user_id)
    ).one_or_none()
    if prefs is None:
        prefs = UserPreferences(user_id=user_id)
        db.add(prefs)
        db.commit()
        db.refresh(prefs)
    return prefs


@router.post("/register", status_code=201)
def register(req: RegisterRequest, db: Session = Depends(get_session)):
    """Create an account. Admins cannot be self-registered."""
    if req.role == Role.admin:
        raise HTTPException(status_code=400, detail="Cannot register as admin")
    email = req.email.lower()
    existing = db.exec(select(User).where(User.email == email)).one_or_none()
    if existing:
        raise HTTPException(status_code=400, detail="User already exists with this email")

    user = User(
        email=email,
        password_hash=hash_password(req.password),
        first_name=req.first_name.strip(),
        last_name=req.last_name.strip(),
        role=req.role,
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    db.add(UserPreferences(user_id=user.id))
    db.commit()

    logger.info("Registered user %s (%s)", user.id, user.role.value)
    return _token_response(user)


@router.post("/login")
def login(req: LoginRequest, db: Session = Depends(get_session)):
    user = db.exec(select(User).where(User.email == req.email.lower())).one_or_none()
    if not user or not verify_password(req.password, user.password_hash):
        logger.warning("Failed login for %s", req.email)
        raise HTTPException(status_code=401, detail="Invalid credentials")
    if not user.is_active:
        raise HTTPException(status_code=401, detail="Account is deactivated")

    user.last_login = utcnow()
    db.add(user)
    db.commit()
    db.refresh(user)
    return _token_response(user)


@router.get("/profile")
def get_profile(
    db: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    """Current user plus their study preferences."""
    prefs = _get_preferences(db, user.id)
    return {"user": UserRead.model_validate(user), "preferences": prefs}


@router.put("/profile")
def update_profile(
    req: ProfileUpdate,
    db: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    changes = req.model_dump(exclude_unset=True, exclude_none=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No fields to update")
    for key, value in changes.items():
        setattr(user, key, value.strip() if isinstance(value, str) else value)
    user.updated_at = utcnow()
    db.add(user)
    db.commit()
    db.refresh(user)
    return UserRead.model_validate(user)


@router.put("/preferences")
def update_preferences(
    req: PreferencesUpdate,
    db: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    changes = req.model_dump(exclude_unset=True, exclude_none=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No fields to update")
    prefs = _get_preferences(db, user.id)
    for key, value in changes.items():
        setattr(prefs, key, value)
    prefs.updated_at = utcnow()
    db.add(prefs)
    db.commit()
    db.refresh(prefs)
    return prefs
