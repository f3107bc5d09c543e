# quiz_schema.py
from datetime import datetime
from pydantic import BaseModel
from typing import List, Optional

from app.application.quizzes.entities import QuestionType


class QuestionCreate(BaseModel):
    prompt: str
    type: QuestionType
    options: List[str] = []
    correct_answer: str  # option letter ("a", "b", ...) or "true"/"false"


class QuestionOut(BaseModel):
    key: str  # "q0", "q1", ... used as the answer key
    prompt: str
    type: QuestionType
    options: List[str]
    correct_answer: Optional[str] = None  # only shown to admins


class QuizCreate(BaseModel):
    title: str
    description: Optional[str] = None
    grade: str
    group: str
    subject: str
    duration_minutes: int
    max_attempts: int = 1
    deadline: datetime
    is_active: bool = True
    questions: List[QuestionCreate]


class QuizUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    grade: Optional[str] = None
    group: Optional[str] = None
    subject: Optional[str] = None
    duration_minutes: Optional[int] = None
    max_attempts: Optional[int] = None
    deadline: Optional[datetime] = None
    is_active: Optional[bool] = None
    questions: Optional[List[QuestionCreate]] = None


class QuizSummaryOut(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    grade: str
    group: str
    subject: str
    duration_minutes: int
    max_attempts: int
    deadline: datetime
    is_active: bool
    is_available: bool
    total_questions: int


class QuizOut(QuizSummaryOut):
    questions: List[QuestionOut]
