import logging
from typing import Optional, Protocol

from ..errors import Forbidden, InvalidCredentials, ValidationError
from ..quizzes.entities import Role, User
from ..quizzes.ports import UserRepository

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


class PasswordHasher(Protocol):
    def hash(self, password: str) -> str: ...

    def verify(self, password: str, password_hash: str) -> bool: ...

    def dummy_verify(self, password: str) -> None: ...


def authorize(user: User, required_role: Role) -> bool:
    if required_role == Role.ADMIN:
        return user.role == Role.ADMIN
    return user.role in (Role.STUDENT, Role.ADMIN)


def require_role(user: User, required_role: Role) -> None:
    if not authorize(user, required_role):
        logger.warning(f"User {user.id} with role {user.role.value} denied {required_role.value} action")
        raise Forbidden("Administrative privileges required")


class AuthService:
    def __init__(self, users: UserRepository, hasher: PasswordHasher):
        self._users = users
        self._hasher = hasher

    def authenticate(self, email: str, password: str) -> User:
        """
        Resolve credentials to a user.

        Unknown emails and wrong passwords fail identically, and a hash is
        always checked so both paths cost the same.
        """
        user = self._users.get_by_email(email.strip().lower())
        if user is None:
            self._hasher.dummy_verify(password)
            logger.warning("Login failed: invalid credentials")
            raise InvalidCredentials()
        if not self._hasher.verify(password, user.password_hash):
            logger.warning("Login failed: invalid credentials")
            raise InvalidCredentials()
        logger.info(f"User {user.id} authenticated")
        return user

    def register(
        self,
        *,
        name: str,
        email: str,
        password: str,
        grade: Optional[str] = None,
        group: Optional[str] = None,
        role: Role = Role.STUDENT,
    ) -> User:
        email = email.strip().lower()
        errors = []
        if not name or not name.strip():
            errors.append({"field": "name", "message": "Name is required"})
        if len(password) < MIN_PASSWORD_LENGTH:
            errors.append(
                {"field": "password", "message": f"Password must be at least {MIN_PASSWORD_LENGTH} characters"}
            )
        if role == Role.STUDENT:
            if not grade:
                errors.append({"field": "grade", "message": "Please choose a grade"})
            if not group:
                errors.append({"field": "group", "message": "Please choose a group"})
        if self._users.get_by_email(email) is not None:
            errors.append({"field": "email", "message": "Email is already registered"})
        if errors:
            raise ValidationError("Invalid registration data", errors)

        user = self._users.create(
            name=name.strip(),
            email=email,
            password_hash=self._hasher.hash(password),
            role=role,
            grade=grade if role == Role.STUDENT else None,
            group=group if role == Role.STUDENT else None,
        )
        logger.info(f"Registered {role.value} user {user.id}")
        return user

    def ensure_admin(self, *, name: str, email: str, password: str) -> User:
        """Create the bootstrap admin account unless the email is already taken."""
        existing = self._users.get_by_email(email.strip().lower())
        if existing is not None:
            return existing
        return self.register(name=name, email=email, password=password, role=Role.ADMIN)
