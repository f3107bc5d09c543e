import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.application.errors import InfrastructureError
from app.application.quizzes.entities import Question, QuestionType, Quiz
from app.application.quizzes.ports import QuizRepository
from ..db.models.quiz_model import QuizModel

logger = logging.getLogger(__name__)


def _question_to_json(question: Question) -> dict:
    return {
        "prompt": question.prompt,
        "type": question.type.value,
        "options": list(question.options),
        "correct_answer": question.correct_answer,
    }


def _question_from_json(data: dict) -> Question:
    return Question(
        prompt=data["prompt"],
        type=QuestionType(data["type"]),
        options=list(data.get("options") or []),
        correct_answer=data["correct_answer"],
    )


def to_quiz(model: QuizModel) -> Quiz:
    return Quiz(
        id=model.id,
        title=model.title,
        description=model.description,
        grade=model.grade,
        group=model.group,
        subject=model.subject,
        duration_minutes=model.duration_minutes,
        max_attempts=model.max_attempts,
        deadline=model.deadline,
        is_active=model.is_active,
        questions=[_question_from_json(q) for q in model.questions or []],
        created_at=model.created_at,
    )


def _apply(model: QuizModel, quiz: Quiz) -> None:
    model.title = quiz.title
    model.description = quiz.description
    model.grade = quiz.grade
    model.group = quiz.group
    model.subject = quiz.subject
    model.duration_minutes = quiz.duration_minutes
    model.max_attempts = quiz.max_attempts
    model.deadline = quiz.deadline
    model.is_active = quiz.is_active
    model.questions = [_question_to_json(q) for q in quiz.questions]


class QuizRepositoryImpl(QuizRepository):
    def __init__(self, db: Session):
        self.db = db

    def get(self, quiz_id: int) -> Optional[Quiz]:
        try:
            model = self.db.query(QuizModel).filter(QuizModel.id == quiz_id).first()
            return to_quiz(model) if model else None
        except SQLAlchemyError as e:
            logger.error(f"Error fetching quiz {quiz_id}: {e}", exc_info=True)
            raise InfrastructureError("Could not load quiz") from e

    def list_quizzes(self, grade: Optional[str] = None, group: Optional[str] = None) -> List[Quiz]:
        try:
            query = self.db.query(QuizModel)
            if grade is not None:
                query = query.filter(QuizModel.grade == grade)
            if group is not None:
                query = query.filter(QuizModel.group == group)
            quizzes = query.order_by(QuizModel.id.desc()).all()
            logger.info(f"Retrieved {len(quizzes)} quizzes (grade={grade}, group={group})")
            return [to_quiz(m) for m in quizzes]
        except SQLAlchemyError as e:
            logger.error(f"Error fetching quizzes: {e}", exc_info=True)
            raise InfrastructureError("Could not load quizzes") from e

    def create(self, quiz: Quiz) -> Quiz:
        try:
            model = QuizModel()
            _apply(model, quiz)
            self.db.add(model)
            self.db.commit()
            self.db.refresh(model)
            return to_quiz(model)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Database error creating quiz '{quiz.title}': {e}", exc_info=True)
            raise InfrastructureError("Could not create quiz") from e

    def update(self, quiz: Quiz) -> Quiz:
        try:
            model = self.db.query(QuizModel).filter(QuizModel.id == quiz.id).first()
            if model is None:
                raise InfrastructureError(f"Quiz {quiz.id} disappeared during update")
            _apply(model, quiz)
            self.db.commit()
            self.db.refresh(model)
            return to_quiz(model)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Database error updating quiz {quiz.id}: {e}", exc_info=True)
            raise InfrastructureError("Could not update quiz") from e

    def delete(self, quiz_id: int) -> bool:
        try:
            model = self.db.query(QuizModel).filter(QuizModel.id == quiz_id).first()
            if not model:
                return False
            self.db.delete(model)
            self.db.commit()
            return True
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Database error deleting quiz {quiz_id}: {e}", exc_info=True)
            raise InfrastructureError("Could not delete quiz") from e
