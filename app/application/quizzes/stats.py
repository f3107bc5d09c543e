import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List

from ..clock import Clock, utcnow
from ..errors import QuizNotFound
from . import scoring
from .entities import QuizAttempt, Role
from .ports import AttemptRepository, QuizRepository, UserRepository

logger = logging.getLogger(__name__)

TOP_SCORES_LIMIT = 10
UNKNOWN_USER_NAME = "Unknown user"


@dataclass
class TopScore:
    attempt_id: int
    user_id: int
    user_name: str
    score: int
    total_questions: int
    percentage: float
    attempt_number: int
    completed_at: datetime


@dataclass
class QuizStats:
    quiz_id: int
    total_attempts: int
    completed_attempts: int
    average_score: float
    completion_rate: float
    top_scores: List[TopScore] = field(default_factory=list)


@dataclass
class AdminOverview:
    total_students: int
    total_quizzes: int
    active_quizzes: int
    total_attempts: int
    completed_attempts: int
    average_score: float
    grade_distribution: Dict[str, int]
    group_distribution: Dict[str, int]


def _average_score(completed: List[QuizAttempt]) -> float:
    if not completed:
        return 0.0
    return round(sum(a.score for a in completed) / len(completed), 2)


def summarize_attempts(
    quiz_id: int, attempts: List[QuizAttempt], user_names: Dict[int, str]
) -> QuizStats:
    """
    Fold a quiz's attempts (oldest first) into its statistics.

    The average covers completed attempts only; the leaderboard keeps the
    earlier attempt first when scores tie.
    """
    completed = [a for a in attempts if a.is_completed]
    total = len(attempts)
    completion_rate = round(len(completed) / total * 100, 2) if total else 0.0

    # sorted() is stable, so equal scores keep insertion order
    ranked = sorted(completed, key=lambda a: a.score, reverse=True)[:TOP_SCORES_LIMIT]
    top_scores = [
        TopScore(
            attempt_id=a.id,
            user_id=a.user_id,
            user_name=user_names.get(a.user_id, UNKNOWN_USER_NAME),
            score=a.score,
            total_questions=a.total_questions,
            percentage=scoring.percentage(a.score, a.total_questions),
            attempt_number=a.attempt_number,
            completed_at=a.completed_at,
        )
        for a in ranked
    ]

    return QuizStats(
        quiz_id=quiz_id,
        total_attempts=total,
        completed_attempts=len(completed),
        average_score=_average_score(completed),
        completion_rate=completion_rate,
        top_scores=top_scores,
    )


class StatsService:
    def __init__(
        self,
        quizzes: QuizRepository,
        attempts: AttemptRepository,
        users: UserRepository,
        clock: Clock = utcnow,
    ):
        self._quizzes = quizzes
        self._attempts = attempts
        self._users = users
        self._clock = clock

    def quiz_stats(self, quiz_id: int) -> QuizStats:
        attempts = self._attempts.list_for_quiz(quiz_id)
        # A deleted quiz keeps its attempts, so stats stay readable for them.
        if not attempts and self._quizzes.get(quiz_id) is None:
            raise QuizNotFound(quiz_id)

        names = self._users.get_names({a.user_id for a in attempts if a.is_completed})
        stats = summarize_attempts(quiz_id, attempts, names)
        logger.info(
            f"Stats for quiz {quiz_id}: {stats.total_attempts} attempts, "
            f"{stats.completed_attempts} completed"
        )
        return stats

    def admin_overview(self) -> AdminOverview:
        users = self._users.list_all()
        quizzes = self._quizzes.list_quizzes()
        attempts = self._attempts.list_all()
        now = self._clock()

        students = [u for u in users if u.role == Role.STUDENT]
        completed = [a for a in attempts if a.is_completed]
        grades = Counter(u.grade for u in students if u.grade)
        groups = Counter(u.group for u in students if u.group)

        return AdminOverview(
            total_students=len(students),
            total_quizzes=len(quizzes),
            active_quizzes=sum(1 for q in quizzes if q.is_open(now)),
            total_attempts=len(attempts),
            completed_attempts=len(completed),
            average_score=_average_score(completed),
            grade_distribution=dict(grades),
            group_distribution=dict(groups),
        )

