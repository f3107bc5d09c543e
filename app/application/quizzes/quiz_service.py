import dataclasses
import logging
from typing import Any, Dict, List

from ..auth.auth_service import require_role
from ..clock import Clock, utcnow
from ..errors import QuizNotFound, ScopeMismatch, ValidationError
from .definition import validate_quiz
from .entities import Quiz, Role, User
from .ports import QuizRepository

logger = logging.getLogger(__name__)

# Fields an admin may change through update_quiz.
EDITABLE_FIELDS = frozenset(
    {
        "title",
        "description",
        "grade",
        "group",
        "subject",
        "duration_minutes",
        "max_attempts",
        "deadline",
        "is_active",
        "questions",
    }
)

# Editable fields that may be cleared with an explicit null.
NULLABLE_FIELDS = frozenset({"description"})


class QuizService:
    def __init__(self, quizzes: QuizRepository, clock: Clock = utcnow):
        self._quizzes = quizzes
        self._clock = clock

    def create_quiz(self, admin: User, quiz: Quiz) -> Quiz:
        require_role(admin, Role.ADMIN)
        validate_quiz(quiz)
        created = self._quizzes.create(quiz)
        logger.info(
            f"Admin {admin.id} created quiz {created.id} for {created.grade}/{created.group} "
            f"with {len(created.questions)} questions"
        )
        return created

    def list_quizzes(self, caller: User, available_only: bool = False) -> List[Quiz]:
        if caller.is_admin:
            quizzes = self._quizzes.list_quizzes()
        elif caller.grade is None or caller.group is None:
            # Every quiz has a grade and group, so nothing can match
            logger.warning(f"User {caller.id} has no grade/group; no quizzes are assigned")
            return []
        else:
            quizzes = self._quizzes.list_quizzes(grade=caller.grade, group=caller.group)
        if available_only:
            now = self._clock()
            quizzes = [q for q in quizzes if q.is_available_to(caller, now)]
        return quizzes

    def get_quiz(self, caller: User, quiz_id: int) -> Quiz:
        quiz = self._quizzes.get(quiz_id)
        if quiz is None:
            raise QuizNotFound(quiz_id)
        if not quiz.in_scope_for(caller):
            logger.warning(f"User {caller.id} requested out-of-scope quiz {quiz_id}")
            raise ScopeMismatch(quiz_id)
        return quiz

    def is_available(self, caller: User, quiz: Quiz) -> bool:
        return quiz.is_available_to(caller, self._clock())

    def update_quiz(self, admin: User, quiz_id: int, changes: Dict[str, Any]) -> Quiz:
        require_role(admin, Role.ADMIN)
        quiz = self._quizzes.get(quiz_id)
        if quiz is None:
            raise QuizNotFound(quiz_id)

        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise ValidationError(
                "Unknown quiz fields",
                [{"field": name, "message": "Field cannot be updated"} for name in sorted(unknown)],
            )
        nulls = sorted(
            name for name, value in changes.items() if value is None and name not in NULLABLE_FIELDS
        )
        if nulls:
            raise ValidationError(
                "Invalid quiz definition",
                [{"field": name, "message": "Field cannot be null"} for name in nulls],
            )

        updated = dataclasses.replace(quiz, **changes)
        validate_quiz(updated)
        saved = self._quizzes.update(updated)
        logger.info(f"Admin {admin.id} updated quiz {quiz_id}: {sorted(changes)}")
        return saved

    def delete_quiz(self, admin: User, quiz_id: int) -> None:
        """Remove the quiz. Its attempts are kept as history."""
        require_role(admin, Role.ADMIN)
        if not self._quizzes.delete(quiz_id):
            raise QuizNotFound(quiz_id)
        logger.info(f"Admin {admin.id} deleted quiz {quiz_id}")
