from datetime import datetime
from pydantic import BaseModel
from typing import Dict, List


class TopScoreOut(BaseModel):
    attempt_id: int
    user_id: int
    user_name: str
    score: int
    total_questions: int
    percentage: float
    attempt_number: int
    completed_at: datetime

    class Config:
        from_attributes = True


class QuizStatsOut(BaseModel):
    quiz_id: int
    total_attempts: int
    completed_attempts: int
    average_score: float
    completion_rate: float
    top_scores: List[TopScoreOut]

    class Config:
        from_attributes = True


class AdminOverviewOut(BaseModel):
    total_students: int
    total_quizzes: int
    active_quizzes: int
    total_attempts: int
    completed_attempts: int
    average_score: float
    grade_distribution: Dict[str, int]
    group_distribution: Dict[str, int]

    class Config:
        from_attributes = True
