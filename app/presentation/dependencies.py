from app.infrastructure.db.session import SessionLocal
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from app.infrastructure.security.jwt_service import decode_access_token, InvalidTokenError
from app.infrastructure.security.password import password_hasher
from app.infrastructure.repositories.user_repo_impl import UserRepositoryImpl
from app.infrastructure.repositories.quiz_repo_impl import QuizRepositoryImpl
from app.infrastructure.repositories.quiz_attempt_repo_impl import QuizAttemptRepositoryImpl
from app.application.auth.auth_service import AuthService
from app.application.clock import Clock, utcnow
from app.application.errors import InfrastructureError
from app.application.quizzes.attempt_service import AttemptService
from app.application.quizzes.entities import User
from app.application.quizzes.quiz_service import QuizService
from app.application.quizzes.stats import StatsService
import logging
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

# auto_error=False so a missing token gets our own 401 message
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_clock() -> Clock:
    return utcnow


def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> User:
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        payload = decode_access_token(token)
    except InvalidTokenError as e:
        logger.warning(f"Token validation failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        # Verify the user still exists; role and scope come from the store, not the token
        user = UserRepositoryImpl(db).get_by_id(payload["user_id"])
    except InfrastructureError:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="The service is temporarily unavailable.",
        )

    if not user:
        logger.warning(f"Token for missing user_id: {payload['user_id']}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return user


def admin_required(current_user: User = Depends(get_current_user)) -> User:
    if not current_user.is_admin:
        logger.warning(f"Access denied for non-admin user_id: {current_user.id}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Administrative privileges required",
        )
    logger.info(f"Admin access granted for user_id: {current_user.id}")
    return current_user


# --------------------------------------------------
# Service factories
# --------------------------------------------------
def get_auth_service(db: Session = Depends(get_db)) -> AuthService:
    return AuthService(UserRepositoryImpl(db), password_hasher)


def get_quiz_service(
    db: Session = Depends(get_db), clock: Clock = Depends(get_clock)
) -> QuizService:
    return QuizService(QuizRepositoryImpl(db), clock)


def get_attempt_service(
    db: Session = Depends(get_db), clock: Clock = Depends(get_clock)
) -> AttemptService:
    return AttemptService(QuizRepositoryImpl(db), QuizAttemptRepositoryImpl(db), clock)


def get_stats_service(
    db: Session = Depends(get_db), clock: Clock = Depends(get_clock)
) -> StatsService:
    return StatsService(
        QuizRepositoryImpl(db), QuizAttemptRepositoryImpl(db), UserRepositoryImpl(db), clock
    )
