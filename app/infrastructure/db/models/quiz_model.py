from sqlalchemy import Column, Integer, String, Text, DateTime, Boolean, JSON
from sqlalchemy.sql import func
from ..base import Base


class QuizModel(Base):
    __tablename__ = "quizzes"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    grade = Column(String, nullable=False, index=True)
    group = Column("group", String, nullable=False, index=True)
    subject = Column(String, nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    max_attempts = Column(Integer, nullable=False, default=1)
    deadline = Column(DateTime, nullable=False)  # naive UTC
    is_active = Column(Boolean, nullable=False, default=True)
    # Ordered list of {"prompt", "type", "options", "correct_answer"}
    questions = Column(JSON, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Attempts and attempt counters outlive their quiz, so ids are never reused
    __table_args__ = {"sqlite_autoincrement": True}
