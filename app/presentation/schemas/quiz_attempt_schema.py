from datetime import datetime
from pydantic import BaseModel
from typing import Dict, Optional

from app.application.quizzes.entities import AttemptStatus


class AttemptStartRequest(BaseModel):
    quiz_id: int
    attempt_number: Optional[int] = None  # ignored, the server assigns it


class AttemptSubmitRequest(BaseModel):
    answers: Dict[str, str] = {}
    completed_at: Optional[datetime] = None  # ignored, the server clock is used


class AttemptOut(BaseModel):
    id: int
    user_id: int
    quiz_id: int
    quiz_title: Optional[str] = None
    quiz_available: bool
    attempt_number: int
    status: AttemptStatus
    answers: Dict[str, str]
    score: Optional[int] = None
    total_questions: int
    percentage: Optional[float] = None
    started_at: datetime
    expires_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
