from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Mapping, Optional

from ..clock import Clock, utcnow
from ..errors import (
    AlreadyCompleted,
    AttemptNotFound,
    Forbidden,
    QuizNotFound,
    QuizUnavailable,
    ScopeMismatch,
)
from . import scoring
from .definition import validate_answers
from .entities import Quiz, QuizAttempt, User
from .ports import AttemptRepository, QuizRepository

logger = logging.getLogger(__name__)


@dataclass
class AttemptView:
    """An attempt together with what the caller needs to know about its quiz."""

    attempt: QuizAttempt
    quiz: Optional[Quiz]

    @property
    def quiz_available(self) -> bool:
        return self.quiz is not None

    @property
    def percentage(self) -> Optional[float]:
        if not self.attempt.is_completed:
            return None
        return scoring.percentage(self.attempt.score, self.attempt.total_questions)

    @property
    def expires_at(self) -> Optional[datetime]:
        if self.quiz is None:
            return None
        return self.attempt.expires_at(self.quiz.duration_minutes)


class AttemptService:
    """
    Lifecycle of one user's attempts on one quiz.

    NotStarted -> InProgress (start_attempt) -> Completed (submit_attempt).
    A client timer running out calls submit_attempt like a manual submit.
    """

    def __init__(
        self,
        quizzes: QuizRepository,
        attempts: AttemptRepository,
        clock: Clock = utcnow,
    ):
        self._quizzes = quizzes
        self._attempts = attempts
        self._clock = clock

    # ---------------------------
    # Transitions
    # ---------------------------

    def start_attempt(self, user: User, quiz_id: int) -> AttemptView:
        quiz = self._quizzes.get(quiz_id)
        if quiz is None:
            logger.warning(f"User {user.id} tried to start missing quiz {quiz_id}")
            raise QuizNotFound(quiz_id)

        now = self._clock()
        if not quiz.is_open(now):
            logger.warning(f"User {user.id} tried to start unavailable quiz {quiz_id}")
            raise QuizUnavailable(quiz_id)

        if not quiz.in_scope_for(user):
            logger.warning(f"User {user.id} tried to start out-of-scope quiz {quiz_id}")
            raise ScopeMismatch(quiz_id)

        # Raises AttemptLimitExceeded; the count and insert are atomic per (user, quiz).
        attempt = self._attempts.create_next_attempt(
            user_id=user.id,
            quiz_id=quiz.id,
            max_attempts=quiz.max_attempts,
            total_questions=len(quiz.questions),
            started_at=now,
        )
        logger.info(
            f"User {user.id} started attempt {attempt.id} "
            f"(#{attempt.attempt_number}/{quiz.max_attempts}) on quiz {quiz_id}"
        )
        return AttemptView(attempt=attempt, quiz=quiz)

    def submit_attempt(
        self, attempt_id: int, answers: Mapping[str, str], user: User
    ) -> AttemptView:
        attempt = self._attempts.get(attempt_id)
        if attempt is None:
            raise AttemptNotFound(attempt_id)
        if attempt.user_id != user.id:
            logger.warning(f"User {user.id} tried to submit attempt {attempt_id} of user {attempt.user_id}")
            raise Forbidden("Only the owner of an attempt can submit it")
        if attempt.is_completed:
            raise AlreadyCompleted(attempt_id)

        quiz = self._quizzes.get(attempt.quiz_id)
        if quiz is None:
            raise QuizNotFound(attempt.quiz_id, "Quiz is no longer available")

        validate_answers(quiz, answers)
        final_answers: Dict[str, str] = dict(answers)
        result = scoring.score(quiz.questions, final_answers)

        completed = self._attempts.complete_attempt(
            attempt_id,
            answers=final_answers,
            score=result,
            completed_at=self._clock(),
        )
        if completed is None:
            # Lost the race against another submit for the same attempt.
            logger.warning(f"Attempt {attempt_id} was completed concurrently")
            raise AlreadyCompleted(attempt_id)

        logger.info(
            f"User {user.id} completed attempt {attempt_id} on quiz {quiz.id}: "
            f"{result}/{completed.total_questions}"
        )
        return AttemptView(attempt=completed, quiz=quiz)

    # ---------------------------
    # Reads and administrative override
    # ---------------------------

    def list_attempts(self, user: User, quiz_id: Optional[int] = None) -> List[AttemptView]:
        attempts = self._attempts.list_for_user(user.id, quiz_id)
        quizzes: Dict[int, Optional[Quiz]] = {}
        views = []
        for attempt in attempts:
            if attempt.quiz_id not in quizzes:
                quizzes[attempt.quiz_id] = self._quizzes.get(attempt.quiz_id)
            views.append(AttemptView(attempt=attempt, quiz=quizzes[attempt.quiz_id]))
        return views

    def get_attempt(self, user: User, attempt_id: int) -> AttemptView:
        attempt = self._attempts.get(attempt_id)
        if attempt is None:
            raise AttemptNotFound(attempt_id)
        if attempt.user_id != user.id and not user.is_admin:
            raise Forbidden("You can only view your own attempts")
        return AttemptView(attempt=attempt, quiz=self._quizzes.get(attempt.quiz_id))

    def delete_attempt(self, user: User, attempt_id: int) -> None:
        attempt = self._attempts.get(attempt_id)
        if attempt is None:
            raise AttemptNotFound(attempt_id)
        if attempt.user_id != user.id and not user.is_admin:
            logger.warning(f"User {user.id} tried to delete attempt {attempt_id} of user {attempt.user_id}")
            raise Forbidden("You can only delete your own attempts")
        if not self._attempts.delete(attempt_id):
            raise AttemptNotFound(attempt_id)
        logger.info(f"User {user.id} deleted attempt {attempt_id}")
