import logging
from fastapi import APIRouter, Depends, HTTPException, status

from app.application.auth.auth_service import AuthService
from app.application.errors import PortalError
from app.application.quizzes.entities import User
from app.infrastructure.security.jwt_service import create_access_token
from app.presentation.dependencies import get_auth_service, get_current_user
from app.presentation.errors import to_http_exception
from app.presentation.schemas.user_schema import (
    LoginRequest,
    SignupRequest,
    TokenResponse,
    UserProfileResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/register", response_model=UserProfileResponse, status_code=status.HTTP_201_CREATED)
def register(data: SignupRequest, service: AuthService = Depends(get_auth_service)):
    """
    Registers a new student account scoped to a grade and group.
    """
    try:
        user = service.register(
            name=data.name,
            email=data.email,
            password=data.password,
            grade=data.grade,
            group=data.group,
        )
        return user
    except PortalError as e:
        logger.warning(f"Registration rejected: {e}")
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Unexpected error during registration: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An unexpected error occurred.",
        )


@router.post("/login", response_model=TokenResponse)
def login(data: LoginRequest, service: AuthService = Depends(get_auth_service)):
    try:
        user = service.authenticate(data.email, data.password)
        token = create_access_token(user.id, user.role.value)
        return TokenResponse(access_token=token, user=UserProfileResponse.model_validate(user))
    except PortalError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Unexpected error during login: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An unexpected error occurred.",
        )


@router.get("/me", response_model=UserProfileResponse)
def me(current_user: User = Depends(get_current_user)):
    return current_user
