"""
Courses: readable by everyone signed in, managed by advisors and admins.
"""
import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlmodel import Session, select

from db import get_session
from models import Course, CourseEnrollment, Role, User, UserRead, utcnow
from security import get_current_user, require_staff

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/courses", tags=["courses"])


class CourseCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    course_code: str = Field(min_length=1, max_length=20)
    description: Optional[str] = None
    credits: int = Field(default=3, ge=0, le=30)
    semester: Optional[str] = Field(default=None, max_length=20)
    year: Optional[int] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    instructor_id: Optional[int] = None


class CourseUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    credits: Optional[int] = Field(default=None, ge=0, le=30)
    semester: Optional[str] = Field(default=None, max_length=20)
    year: Optional[int] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    instructor_id: Optional[int] = None
    is_active: Optional[bool] = None


class EnrollRequest(BaseModel):
    user_id: int


def _get_course_or_404(db: Session, course_id: int) -> Course:
    course = db.get(Course, course_id)
    if not course:
        raise HTTPException(status_code=404, detail="Course not found")
    return course


def _is_enrolled(db: Session, course_id: int, user_id: int) -> bool:
    statement = select(CourseEnrollment).where(
        CourseEnrollment.course_id == course_id, CourseEnrollment.user_id == user_id
    )
    return db.exec(statement).first() is not None


def _check_instructor(db: Session, instructor_id: Optional[int]) -> None:
    if instructor_id is None:
        return
    instructor = db.get(User, instructor_id)
    if not instructor or instructor.role not in (Role.academic_advisor, Role.admin):
        raise HTTPException(status_code=400, detail="Invalid instructor_id")


def _with_enrollment(db: Session, course: Course, user: User) -> dict:
    return {**course.model_dump(), "is_enrolled": _is_enrolled(db, course.id, user.id)}


@router.get("")
def list_courses(
    include_inactive: bool = False,
    limit: int = 50,
    offset: int = 0,
    db: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    statement = select(Course)
    if not include_inactive:
        statement = statement.where(Course.is_active == True)  # noqa: E712
    statement = statement.order_by(Course.course_code).offset(offset).limit(min(limit, 100))
    return [_with_enrollment(db, c, user) for c in db.exec(statement).all()]


@router.get("/{course_id}")
def get_course(
    course_id: int,
    db: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    return _with_enrollment(db, _get_course_or_404(db, course_id), user)


@router.post("", status_code=201)
def create_course(
    req: CourseCreate,
    db: Session = Depends(get_session),
    staff: User = Depends(require_staff),
):
    code = req.course_code.strip().upper()
    if db.exec(select(Course).where(Course.course_code == code)).first():
        raise HTTPException(status_code=400, detail="Course code already exists")
    _check_instructor(db, req.instructor_id)
    data = req.model_dump()
    data["course_code"] = code
    if data["instructor_id"] is None:
        data["instructor_id"] = staff.id
    course = Course(**data)
    db.add(course)
    db.commit()
    db.refresh(course)
    logger.info("Course %s created by user %s", course.course_code, staff.id)
    return course


@router.put("/{course_id}")
def update_course(
    course_id: int,
    req: CourseUpdate,
    db: Session = Depends(get_session),
    _staff: User = Depends(require_staff),
):
    course = _get_course_or_404(db, course_id)
    changes = req.model_dump(exclude_unset=True, exclude_none=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No valid fields to update")
    _check_instructor(db, changes.get("instructor_id"))
    for key, value in changes.items():
        setattr(course, key, value)
    course.updated_at = utcnow()
    db.add(course)
    db.commit()
    db.refresh(course)
    return course


@router.delete("/{course_id}")
def delete_course(
    course_id: int,
    db: Session = Depends(get_session),
    _staff: User = Depends(require_staff),
):
    course = _get_course_or_404(db, course_id)
    db.delete(course)
    db.commit()
    return {"message": "Course deleted successfully"}


@router.post("/{course_id}/enroll", status_code=201)
def enroll_student(
    course_id: int,
    req: EnrollRequest,
    db: Session = Depends(get_session),
    _staff: User = Depends(require_staff),
):
    _get_course_or_404(db, course_id)
    student = db.get(User, req.user_id)
    if not student or student.role != Role.user:
        raise HTTPException(status_code=404, detail="Student not found")
    if _is_enrolled(db, course_id, student.id):
        raise HTTPException(status_code=400, detail="Student already enrolled in this course")
    enrollment = CourseEnrollment(course_id=course_id, user_id=student.id)
    db.add(enrollment)
    db.commit()
    db.refresh(enrollment)
    return enrollment


@router.get("/{course_id}/enrollments")
def list_enrollments(
    course_id: int,
    db: Session = Depends(get_session),
    _staff: User = Depends(require_staff),
):
    _get_course_or_404(db, course_id)
    statement = (
        select(CourseEnrollment, User)
        .join(User, CourseEnrollment.user_id == User.id)
        .where(CourseEnrollment.course_id == course_id)
        .order_by(User.last_name, User.first_name)
    )
    return [
        {
            "id": enrollment.id,
            "enrolled_at": enrollment.enrolled_at,
            "student": UserRead.model_validate(student),
        }
        for enrollment, student in db.exec(statement).all()
    ]
