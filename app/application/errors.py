from typing import Dict, List, Optional


class PortalError(Exception):
    """Base class for every error the application layer raises on purpose."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


# ---------------------------
# Input
# ---------------------------

class ValidationError(PortalError):
    def __init__(self, message: str, errors: Optional[List[Dict[str, str]]] = None):
        super().__init__(message)
        self.errors = errors or []


# ---------------------------
# Identity & access
# ---------------------------

class AuthenticationError(PortalError):
    pass


class InvalidCredentials(AuthenticationError):
    def __init__(self):
        super().__init__("Invalid email or password")


class AuthorizationError(PortalError):
    pass


class Forbidden(AuthorizationError):
    pass


class ScopeMismatch(AuthorizationError):
    def __init__(self, quiz_id: int):
        super().__init__(f"Quiz {quiz_id} is not assigned to your grade/group")


# ---------------------------
# Lookup
# ---------------------------

class NotFoundError(PortalError):
    pass


class QuizNotFound(NotFoundError):
    def __init__(self, quiz_id: int, message: Optional[str] = None):
        super().__init__(message or f"Quiz {quiz_id} not found")
        self.quiz_id = quiz_id


class AttemptNotFound(NotFoundError):
    def __init__(self, attempt_id: int):
        super().__init__(f"Quiz attempt {attempt_id} not found")
        self.attempt_id = attempt_id


class UserNotFound(NotFoundError):
    def __init__(self, user_id: int):
        super().__init__(f"User {user_id} not found")


# ---------------------------
# State conflicts
# ---------------------------

class StateConflictError(PortalError):
    pass


class QuizUnavailable(StateConflictError):
    def __init__(self, quiz_id: int):
        super().__init__(f"Quiz {quiz_id} is not active or its deadline has passed")


class AttemptLimitExceeded(StateConflictError):
    def __init__(self, quiz_id: int, max_attempts: int):
        super().__init__(
            f"Maximum number of attempts ({max_attempts}) reached for quiz {quiz_id}"
        )


class AlreadyCompleted(StateConflictError):
    def __init__(self, attempt_id: int):
        super().__init__(f"Quiz attempt {attempt_id} has already been submitted")


# ---------------------------
# Infrastructure
# ---------------------------

class InfrastructureError(PortalError):
    """The backing store failed; reads may be retried, submits must not be."""
