"""
Persistence interfaces used by the quiz services.

The SQLAlchemy implementations live in infrastructure/repositories; tests
use in-memory ones. Each implementation is the sole arbiter of the
attempt races: create_next_attempt and complete_attempt must be atomic.
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, Iterable, List, Mapping, Optional

from .entities import QuizAttempt, Quiz, Role, User


class UserRepository(ABC):
    @abstractmethod
    def get_by_id(self, user_id: int) -> Optional[User]: ...

    @abstractmethod
    def get_by_email(self, email: str) -> Optional[User]: ...

    @abstractmethod
    def create(
        self,
        *,
        name: str,
        email: str,
        password_hash: str,
        role: Role,
        grade: Optional[str] = None,
        group: Optional[str] = None,
    ) -> User: ...

    @abstractmethod
    def list_all(self) -> List[User]: ...

    @abstractmethod
    def get_names(self, user_ids: Iterable[int]) -> Dict[int, str]:
        """Display names for the ids that still exist; missing ids are left out."""


class QuizRepository(ABC):
    @abstractmethod
    def get(self, quiz_id: int) -> Optional[Quiz]: ...

    @abstractmethod
    def list_quizzes(self, grade: Optional[str] = None, group: Optional[str] = None) -> List[Quiz]: ...

    @abstractmethod
    def create(self, quiz: Quiz) -> Quiz: ...

    @abstractmethod
    def update(self, quiz: Quiz) -> Quiz: ...

    @abstractmethod
    def delete(self, quiz_id: int) -> bool: ...


class AttemptRepository(ABC):
    @abstractmethod
    def get(self, attempt_id: int) -> Optional[QuizAttempt]: ...

    @abstractmethod
    def list_for_user(self, user_id: int, quiz_id: Optional[int] = None) -> List[QuizAttempt]: ...

    @abstractmethod
    def list_for_quiz(self, quiz_id: int) -> List[QuizAttempt]:
        """All attempts on a quiz, oldest first."""

    @abstractmethod
    def list_all(self) -> List[QuizAttempt]: ...

    @abstractmethod
    def create_next_attempt(
        self,
        *,
        user_id: int,
        quiz_id: int,
        max_attempts: int,
        total_questions: int,
        started_at: datetime,
    ) -> QuizAttempt:
        """
        Take the next attempt number for (user, quiz) and insert the attempt
        as one atomic unit. Numbers come from a per-pair high-water mark that
        deleting attempts never lowers, so a number is never handed out twice.

        Raises AttemptLimitExceeded when the next number would exceed
        max_attempts. Concurrent callers each get a distinct number or the
        limit error, never a transient failure.
        """

    @abstractmethod
    def complete_attempt(
        self,
        attempt_id: int,
        *,
        answers: Mapping[str, str],
        score: int,
        completed_at: datetime,
    ) -> Optional[QuizAttempt]:
        """
        Move an in-progress attempt to completed.

        Returns None when the attempt is no longer in progress, in which case
        nothing is written.
        """

    @abstractmethod
    def delete(self, attempt_id: int) -> bool: ...
