import logging
from typing import Dict, Iterable, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.application.errors import InfrastructureError, ValidationError
from app.application.quizzes.entities import Role, User
from app.application.quizzes.ports import UserRepository
from ..db.models.user_model import UserModel

logger = logging.getLogger(__name__)


def to_user(model: UserModel) -> User:
    return User(
        id=model.id,
        name=model.name,
        email=model.email,
        role=Role(model.role),
        grade=model.grade,
        group=model.group,
        password_hash=model.password_hash,
    )


class UserRepositoryImpl(UserRepository):
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, user_id: int) -> Optional[User]:
        try:
            model = self.db.query(UserModel).filter(UserModel.id == user_id).first()
            return to_user(model) if model else None
        except SQLAlchemyError as e:
            logger.error(f"Error fetching user {user_id}: {e}", exc_info=True)
            raise InfrastructureError("Could not load user") from e

    def get_by_email(self, email: str) -> Optional[User]:
        try:
            model = self.db.query(UserModel).filter(UserModel.email == email).first()
            return to_user(model) if model else None
        except SQLAlchemyError as e:
            logger.error(f"Error fetching user by email: {e}", exc_info=True)
            raise InfrastructureError("Could not load user") from e

    def create(
        self,
        *,
        name: str,
        email: str,
        password_hash: str,
        role: Role,
        grade: Optional[str] = None,
        group: Optional[str] = None,
    ) -> User:
        try:
            model = UserModel(
                name=name,
                email=email,
                password_hash=password_hash,
                role=role.value,
                grade=grade,
                group=group,
            )
            self.db.add(model)
            self.db.commit()
            self.db.refresh(model)
            return to_user(model)
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"Duplicate registration for email: {e}")
            raise ValidationError(
                "Invalid registration data",
                [{"field": "email", "message": "Email is already registered"}],
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Database error creating user: {e}", exc_info=True)
            raise InfrastructureError("Could not create user") from e

    def list_all(self) -> List[User]:
        try:
            return [to_user(m) for m in self.db.query(UserModel).order_by(UserModel.id).all()]
        except SQLAlchemyError as e:
            logger.error(f"Error fetching users: {e}", exc_info=True)
            raise InfrastructureError("Could not load users") from e

    def get_names(self, user_ids: Iterable[int]) -> Dict[int, str]:
        ids = list(user_ids)
        if not ids:
            return {}
        try:
            rows = self.db.query(UserModel.id, UserModel.name).filter(UserModel.id.in_(ids)).all()
            return {row.id: row.name for row in rows}
        except SQLAlchemyError as e:
            logger.error(f"Error fetching user names: {e}", exc_info=True)
            raise InfrastructureError("Could not load users") from e
