"""
Create tables and the demo account.
Run from backend/:  python seed.py [--reset]
"""
import argparse
import logging
from datetime import timedelta

from sqlalchemy.engine import Engine
from sqlmodel import Session, select

from config import DEMO_EMAIL, DEMO_PASSWORD
from db import create_db_and_tables, drop_db_and_tables, engine
from logging_config import setup_logging
from models import Priority, Role, SyllabusItem, Task, User, UserPreferences, utcnow
from security import hash_password

logger = logging.getLogger(__name__)


def _sample_tasks(user_id: int) -> list[Task]:
    today = utcnow().date()
    return [
        Task(
            user_id=user_id,
            title="Complete Math Assignment",
            description="Solve problems 1-20 from Chapter 5",
            subject="Mathematics",
            priority=Priority.high,
            due_date=today + timedelta(days=3),
            estimated_hours=3,
            difficulty_level=3,
        ),
        Task(
            user_id=user_id,
            title="Read History Chapter",
            description="Read and take notes on Chapter 8",
            subject="History",
            priority=Priority.medium,
            due_date=today + timedelta(days=5),
            estimated_hours=2,
            difficulty_level=2,
        ),
        Task(
            user_id=user_id,
            title="Physics Lab Report",
            description="Write lab report for the pendulum experiment",
            subject="Physics",
            priority=Priority.urgent,
            due_date=today + timedelta(days=1),
            estimated_hours=4,
            difficulty_level=4,
        ),
    ]


def _sample_syllabus(user_id: int) -> list[SyllabusItem]:
    today = utcnow().date()
    return [
        SyllabusItem(
            user_id=user_id,
            subject="Mathematics",
            topic="Linear Algebra",
            description="Vectors, matrices and linear transformations",
            chapter_number=1,
            estimated_study_hours=10,
            target_completion_date=today + timedelta(days=14),
            difficulty_level=4,
            priority=Priority.high,
        ),
        SyllabusItem(
            user_id=user_id,
            subject="Mathematics",
            topic="Calculus",
            description="Derivatives and integrals",
            chapter_number=2,
            estimated_study_hours=12,
            target_completion_date=today + timedelta(days=21),
            difficulty_level=5,
            priority=Priority.high,
        ),
        SyllabusItem(
            user_id=user_id,
            subject="Physics",
            topic="Mechanics",
            description="Newton's laws, energy and momentum",
            chapter_number=1,
            estimated_study_hours=8,
            target_completion_date=today + timedelta(days=10),
            difficulty_level=3,
        ),
    ]


def seed(db: Session) -> User:
    """Idempotent: an existing demo user is returned untouched."""
    user = db.exec(select(User).where(User.email == DEMO_EMAIL)).one_or_none()
    if user:
        logger.info("Demo user already exists (id %s)", user.id)
        return user

    user = User(
        email=DEMO_EMAIL,
        password_hash=hash_password(DEMO_PASSWORD),
        first_name="Demo",
        last_name="User",
        role=Role.user,
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    db.add(UserPreferences(user_id=user.id))
    for row in _sample_tasks(user.id) + _sample_syllabus(user.id):
        db.add(row)
    db.commit()
    logger.info("Seeded demo user %s with sample tasks and syllabus", user.id)
    return user


def setup_database(bind: Engine = engine, reset: bool = False) -> None:
    """Create missing tables (dropping everything first on reset) and seed the demo account."""
    if reset:
        logger.warning("Dropping all tables")
        drop_db_and_tables(bind)
    create_db_and_tables(bind)
    with Session(bind) as db:
        seed(db)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Create tables and seed the demo account.")
    parser.add_argument("--reset", action="store_true", help="drop all tables first")
    args = parser.parse_args(argv)

    setup_logging()
    setup_database(engine, reset=args.reset)
    print(f"Demo account: {DEMO_EMAIL} / {DEMO_PASSWORD}")


if __name__ == "__main__":
    main()
