from __future__ import annotations

import string
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, List, Optional, Union


# ---------------------------
# Users
# ---------------------------

class Role(str, Enum):
    STUDENT = "STUDENT"
    ADMIN = "ADMIN"


@dataclass(frozen=True)
class User:
    id: int
    name: str
    email: str
    role: Role
    grade: Optional[str] = None
    group: Optional[str] = None
    password_hash: str = field(default="", repr=False)

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


# ---------------------------
# Quiz definition
# ---------------------------

class QuestionType(str, Enum):
    MULTIPLE_CHOICE = "multiple-choice"
    TRUE_FALSE = "true-false"


# Canonical submitted values for true-false questions, used both when a quiz
# is authored and when answers are submitted.
TRUE_FALSE_ANSWERS = ("true", "false")

OPTION_LETTERS = string.ascii_lowercase


def question_key(index: int) -> str:
    return f"q{index}"


@dataclass(frozen=True)
class Question:
    prompt: str
    type: QuestionType
    correct_answer: str
    options: List[str] = field(default_factory=list)

    def allowed_answers(self) -> List[str]:
        if self.type == QuestionType.TRUE_FALSE:
            return list(TRUE_FALSE_ANSWERS)
        return list(OPTION_LETTERS[: len(self.options)])


@dataclass
class Quiz:
    id: Optional[int]
    title: str
    grade: str
    group: str
    subject: str
    duration_minutes: int
    deadline: datetime
    questions: List[Question]
    description: Optional[str] = None
    max_attempts: int = 1
    is_active: bool = True
    created_at: Optional[datetime] = None

    def is_open(self, now: datetime) -> bool:
        return self.is_active and now < self.deadline

    def in_scope_for(self, user: User) -> bool:
        if user.is_admin:
            return True
        return self.grade == user.grade and self.group == user.group

    def is_available_to(self, user: User, now: datetime) -> bool:
        return self.is_open(now) and self.in_scope_for(user)


# ---------------------------
# Attempts
# ---------------------------

class AttemptStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


@dataclass(frozen=True)
class InProgress:
    status = AttemptStatus.IN_PROGRESS


@dataclass(frozen=True)
class Completed:
    score: int
    completed_at: datetime
    status = AttemptStatus.COMPLETED


# An attempt is either in progress, or completed with both a score and a
# completion time. There is no state with only one of the two.
AttemptState = Union[InProgress, Completed]


@dataclass
class QuizAttempt:
    id: Optional[int]
    user_id: int
    quiz_id: int
    attempt_number: int
    total_questions: int
    started_at: datetime
    answers: Dict[str, str] = field(default_factory=dict)
    state: AttemptState = field(default_factory=InProgress)

    @property
    def status(self) -> AttemptStatus:
        return self.state.status

    @property
    def is_completed(self) -> bool:
        return isinstance(self.state, Completed)

    @property
    def score(self) -> Optional[int]:
        return self.state.score if isinstance(self.state, Completed) else None

    @property
    def completed_at(self) -> Optional[datetime]:
        return self.state.completed_at if isinstance(self.state, Completed) else None

    def expires_at(self, duration_minutes: int) -> datetime:
        return self.started_at + timedelta(minutes=duration_minutes)
