#user_model.py
from sqlalchemy import Column, Integer, String, DateTime, UniqueConstraint
from sqlalchemy.sql import func
from app.application.quizzes.entities import Role
from ..base import Base


class UserModel(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False, index=True)  # stored lower-cased
    password_hash = Column(String, nullable=False)
    role = Column(String, nullable=False, default=Role.STUDENT.value)  # "ADMIN" or "STUDENT"

    # Scope used to assign quizzes; admins have neither
    grade = Column(String, nullable=True, index=True)
    group = Column("group", String, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint("email", name="uq_users_email"),
    )
