import logging
from datetime import datetime
from typing import List, Mapping, Optional

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.application.errors import AttemptLimitExceeded, InfrastructureError
from app.application.quizzes.entities import Completed, InProgress, QuizAttempt
from app.application.quizzes.ports import AttemptRepository
from ..db.models.quiz_attempt_model import QuizAttemptCounterModel, QuizAttemptModel

logger = logging.getLogger(__name__)


def to_attempt(model: QuizAttemptModel) -> QuizAttempt:
    if model.completed_at is not None:
        state = Completed(score=model.score, completed_at=model.completed_at)
    else:
        state = InProgress()
    return QuizAttempt(
        id=model.id,
        user_id=model.user_id,
        quiz_id=model.quiz_id,
        attempt_number=model.attempt_number,
        total_questions=model.total_questions,
        started_at=model.started_at,
        answers=dict(model.answers or {}),
        state=state,
    )


class QuizAttemptRepositoryImpl(AttemptRepository):
    def __init__(self, db: Session):
        self.db = db

    def get(self, attempt_id: int) -> Optional[QuizAttempt]:
        try:
            model = self.db.query(QuizAttemptModel).filter(QuizAttemptModel.id == attempt_id).first()
            return to_attempt(model) if model else None
        except SQLAlchemyError as e:
            logger.error(f"Error fetching attempt {attempt_id}: {e}", exc_info=True)
            raise InfrastructureError("Could not load quiz attempt") from e

    def list_for_user(self, user_id: int, quiz_id: Optional[int] = None) -> List[QuizAttempt]:
        try:
            query = self.db.query(QuizAttemptModel).filter(QuizAttemptModel.user_id == user_id)
            if quiz_id is not None:
                query = query.filter(QuizAttemptModel.quiz_id == quiz_id)
            return [to_attempt(m) for m in query.order_by(QuizAttemptModel.id).all()]
        except SQLAlchemyError as e:
            logger.error(f"Error fetching attempts for user {user_id}: {e}", exc_info=True)
            raise InfrastructureError("Could not load quiz attempts") from e

    def list_for_quiz(self, quiz_id: int) -> List[QuizAttempt]:
        try:
            rows = (
                self.db.query(QuizAttemptModel)
                .filter(QuizAttemptModel.quiz_id == quiz_id)
                .order_by(QuizAttemptModel.id)
                .all()
            )
            return [to_attempt(m) for m in rows]
        except SQLAlchemyError as e:
            logger.error(f"Error fetching attempts for quiz {quiz_id}: {e}", exc_info=True)
            raise InfrastructureError("Could not load quiz attempts") from e

    def list_all(self) -> List[QuizAttempt]:
        try:
            return [to_attempt(m) for m in self.db.query(QuizAttemptModel).order_by(QuizAttemptModel.id).all()]
        except SQLAlchemyError as e:
            logger.error(f"Error fetching attempts: {e}", exc_info=True)
            raise InfrastructureError("Could not load quiz attempts") from e

    def create_next_attempt(
        self,
        *,
        user_id: int,
        quiz_id: int,
        max_attempts: int,
        total_questions: int,
        started_at: datetime,
    ) -> QuizAttempt:
        while True:
            try:
                number = self._claim_attempt_number(user_id, quiz_id, max_attempts)
                model = QuizAttemptModel(
                    user_id=user_id,
                    quiz_id=quiz_id,
                    attempt_number=number,
                    answers={},
                    total_questions=total_questions,
                    started_at=started_at,
                )
                self.db.add(model)
                self.db.commit()
                self.db.refresh(model)
                return to_attempt(model)
            except AttemptLimitExceeded:
                self.db.rollback()
                raise
            except IntegrityError:
                # Another start created the counter row first; that row decides the next pass.
                self.db.rollback()
                logger.info(f"Attempt counter for user {user_id} on quiz {quiz_id} created concurrently")
            except SQLAlchemyError as e:
                self.db.rollback()
                logger.error(f"Database error starting attempt for user {user_id}: {e}", exc_info=True)
                raise InfrastructureError("Could not start quiz attempt") from e

    def _claim_attempt_number(self, user_id: int, quiz_id: int, max_attempts: int) -> int:
        """
        Advance the (user, quiz) counter inside the current transaction.

        The conditional UPDATE locks the counter row, so concurrent starts
        are served one at a time and each sees the number the previous one
        took. Deleting attempts never lowers the counter.
        """
        counter = QuizAttemptCounterModel
        claimed = self.db.execute(
            update(counter)
            .where(
                counter.user_id == user_id,
                counter.quiz_id == quiz_id,
                counter.last_number < max_attempts,
            )
            .values(last_number=counter.last_number + 1)
            .execution_options(synchronize_session=False)
        )
        if claimed.rowcount == 1:
            return (
                self.db.query(counter.last_number)
                .filter(counter.user_id == user_id, counter.quiz_id == quiz_id)
                .scalar()
            )

        exists = (
            self.db.query(counter.user_id)
            .filter(counter.user_id == user_id, counter.quiz_id == quiz_id)
            .first()
        )
        if exists is not None:
            raise AttemptLimitExceeded(quiz_id, max_attempts)

        # First start for this pair; attempts stored before counters existed still count.
        last_number = (
            self.db.query(func.coalesce(func.max(QuizAttemptModel.attempt_number), 0))
            .filter(QuizAttemptModel.user_id == user_id, QuizAttemptModel.quiz_id == quiz_id)
            .scalar()
        )
        if last_number >= max_attempts:
            raise AttemptLimitExceeded(quiz_id, max_attempts)
        self.db.add(counter(user_id=user_id, quiz_id=quiz_id, last_number=last_number + 1))
        self.db.flush()
        return last_number + 1

    def complete_attempt(
        self,
        attempt_id: int,
        *,
        answers: Mapping[str, str],
        score: int,
        completed_at: datetime,
    ) -> Optional[QuizAttempt]:
        try:
            # Compare-and-swap on completed_at: only an in-progress row is updated.
            result = self.db.execute(
                update(QuizAttemptModel)
                .where(
                    QuizAttemptModel.id == attempt_id,
                    QuizAttemptModel.completed_at.is_(None),
                )
                .values(answers=dict(answers), score=score, completed_at=completed_at)
                .execution_options(synchronize_session=False)
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Database error completing attempt {attempt_id}: {e}", exc_info=True)
            raise InfrastructureError("Could not submit quiz attempt") from e

        if result.rowcount == 0:
            return None
        return self.get(attempt_id)

    def delete(self, attempt_id: int) -> bool:
        try:
            model = self.db.query(QuizAttemptModel).filter(QuizAttemptModel.id == attempt_id).first()
            if not model:
                return False
            self.db.delete(model)
            self.db.commit()
            return True
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Database error deleting attempt {attempt_id}: {e}", exc_info=True)
            raise InfrastructureError("Could not delete quiz attempt") from e
