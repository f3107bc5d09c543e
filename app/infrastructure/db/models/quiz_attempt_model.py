from sqlalchemy import Column, Integer, ForeignKey, DateTime, JSON, UniqueConstraint, CheckConstraint
from ..base import Base


class QuizAttemptModel(Base):
    __tablename__ = "quiz_attempts"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    # No foreign key: attempts outlive a deleted quiz as history.
    quiz_id = Column(Integer, nullable=False, index=True)
    attempt_number = Column(Integer, nullable=False)
    answers = Column(JSON, nullable=False, default=dict)  # {"q0": "b", "q1": "true"}
    total_questions = Column(Integer, nullable=False)  # snapshot at start
    score = Column(Integer, nullable=True)  # set on completion
    started_at = Column(DateTime, nullable=False)
    completed_at = Column(DateTime, nullable=True)  # set on completion

    __table_args__ = (
        UniqueConstraint("user_id", "quiz_id", "attempt_number", name="uq_attempt_user_quiz_number"),
        CheckConstraint(
            "(score IS NULL AND completed_at IS NULL) OR (score IS NOT NULL AND completed_at IS NOT NULL)",
            name="ck_attempt_completion_consistent",
        ),
    )


class QuizAttemptCounterModel(Base):
    """Highest attempt number handed out per (user, quiz). Never lowered by deletes."""

    __tablename__ = "quiz_attempt_counters"

    user_id = Column(Integer, ForeignKey("users.id"), primary_key=True)
    quiz_id = Column(Integer, primary_key=True)
    last_number = Column(Integer, nullable=False, default=0)
