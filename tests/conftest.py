import os

# Configure before any app module reads the environment
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET_KEY"] = "test-secret"
os.environ.pop("ADMIN_EMAIL", None)
os.environ.pop("ADMIN_PASSWORD", None)

from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient

import main
from app.application.quizzes.attempt_service import AttemptService
from app.application.quizzes.entities import Question, QuestionType, Quiz, Role
from app.application.quizzes.quiz_service import QuizService
from app.application.quizzes.stats import StatsService
from app.infrastructure.db.base import Base
from app.infrastructure.db.session import SessionLocal, engine
from app.infrastructure.repositories.quiz_repo_impl import QuizRepositoryImpl
from app.infrastructure.repositories.user_repo_impl import UserRepositoryImpl
from app.infrastructure.security.jwt_service import create_access_token
from app.infrastructure.security.password import password_hasher
from app.presentation.dependencies import get_clock
from fakes import InMemoryAttemptRepository, InMemoryQuizRepository, InMemoryUserRepository

NOW = datetime(2026, 5, 1, 9, 0, 0)


class FrozenClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def sample_questions():
    return [
        Question(
            prompt="Which planet is known as the red planet?",
            type=QuestionType.MULTIPLE_CHOICE,
            options=["Venus", "Mars", "Jupiter", "Saturn"],
            correct_answer="b",
        ),
        Question(
            prompt="Water boils at 100 degrees Celsius at sea level.",
            type=QuestionType.TRUE_FALSE,
            correct_answer="true",
        ),
    ]


def build_quiz(**overrides) -> Quiz:
    fields = dict(
        id=None,
        title="Science basics",
        description="Warm-up quiz",
        grade="grade-1",
        group="group-a",
        subject="science",
        duration_minutes=30,
        max_attempts=1,
        deadline=NOW + timedelta(days=7),
        is_active=True,
        questions=sample_questions(),
    )
    fields.update(overrides)
    return Quiz(**fields)


# ---------------------------
# Service-level fixtures (in-memory)
# ---------------------------

@pytest.fixture
def clock():
    return FrozenClock(NOW)


@pytest.fixture
def users():
    return InMemoryUserRepository()


@pytest.fixture
def quizzes():
    return InMemoryQuizRepository()


@pytest.fixture
def attempts():
    return InMemoryAttemptRepository()


@pytest.fixture
def attempt_service(quizzes, attempts, clock):
    return AttemptService(quizzes, attempts, clock)


@pytest.fixture
def quiz_service(quizzes, clock):
    return QuizService(quizzes, clock)


@pytest.fixture
def stats_service(quizzes, attempts, users, clock):
    return StatsService(quizzes, attempts, users, clock)


@pytest.fixture
def student(users):
    return users.add("Amira")


@pytest.fixture
def admin(users):
    return users.add("Teacher", role=Role.ADMIN)


# ---------------------------
# API fixtures (SQLite in memory)
# ---------------------------

@pytest.fixture
def db_engine():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db_engine, clock):
    main.app.dependency_overrides[get_clock] = lambda: clock
    with TestClient(main.app) as c:
        yield c
    main.app.dependency_overrides.clear()


@pytest.fixture
def make_user(db_engine):
    def _make_user(name, role=Role.STUDENT, grade="grade-1", group="group-a", password="secret123"):
        db = SessionLocal()
        try:
            return UserRepositoryImpl(db).create(
                name=name,
                email=f"{name.lower()}@school.com",
                password_hash=password_hasher.hash(password),
                role=role,
                grade=grade if role == Role.STUDENT else None,
                group=group if role == Role.STUDENT else None,
            )
        finally:
            db.close()

    return _make_user


@pytest.fixture
def make_quiz(db_engine):
    def _make_quiz(**overrides):
        db = SessionLocal()
        try:
            return QuizRepositoryImpl(db).create(build_quiz(**overrides))
        finally:
            db.close()

    return _make_quiz


def auth_headers(user) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.id, user.role.value)}"}


@pytest.fixture
def headers_for():
    return auth_headers
