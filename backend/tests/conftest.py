"""
Study Planner - Test Configuration and Fixtures
"""
import os

# Set testing environment before the app reads its config
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-jwt-secret-for-testing-only"
os.environ["BCRYPT_ROUNDS"] = "4"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from db import get_session
from main import app
from models import Role, User, UserPreferences
from security import create_access_token, hash_password


@pytest.fixture
def engine():
    """Fresh in-memory database per test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def db(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def client(engine):
    def override_get_session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    yield TestClient(app)
    app.dependency_overrides.clear()


def make_user(db: Session, email: str, role: Role = Role.user, password: str = "password123") -> User:
    user = User(
        email=email,
        password_hash=hash_password(password),
        first_name="Test",
        last_name=role.value.title(),
        role=role,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    db.add(UserPreferences(user_id=user.id))
    db.commit()
    return user


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user)}"}


@pytest.fixture
def student(db):
    return make_user(db, "student@example.com")


@pytest.fixture
def other_student(db):
    return make_user(db, "other@example.com")


@pytest.fixture
def advisor(db):
    return make_user(db, "advisor@example.com", Role.academic_advisor)


@pytest.fixture
def admin(db):
    return make_user(db, "admin@example.com", Role.admin)


@pytest.fixture
def headers(student):
    return auth_headers(student)


@pytest.fixture
def other_headers(other_student):
    return auth_headers(other_student)


@pytest.fixture
def advisor_headers(advisor):
    return auth_headers(advisor)


@pytest.fixture
def admin_headers(admin):
    return auth_headers(admin)
