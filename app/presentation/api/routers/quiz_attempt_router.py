import logging
from fastapi import APIRouter, Depends, HTTPException, Response, status
from typing import List, Optional

from app.application.errors import PortalError
from app.application.quizzes.attempt_service import AttemptService, AttemptView
from app.application.quizzes.entities import User
from app.presentation.dependencies import get_attempt_service, get_current_user
from app.presentation.errors import to_http_exception
from app.presentation.schemas.quiz_attempt_schema import (
    AttemptOut,
    AttemptStartRequest,
    AttemptSubmitRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/quiz-attempts", tags=["Quiz Attempts"])


def _attempt_out(view: AttemptView) -> AttemptOut:
    attempt = view.attempt
    return AttemptOut(
        id=attempt.id,
        user_id=attempt.user_id,
        quiz_id=attempt.quiz_id,
        quiz_title=view.quiz.title if view.quiz else None,
        quiz_available=view.quiz_available,
        attempt_number=attempt.attempt_number,
        status=attempt.status,
        answers=attempt.answers,
        score=attempt.score,
        total_questions=attempt.total_questions,
        percentage=view.percentage,
        started_at=attempt.started_at,
        expires_at=view.expires_at,
        completed_at=attempt.completed_at,
    )


def _unexpected(action: str, e: Exception) -> HTTPException:
    logger.error(f"Unexpected error {action}: {e}", exc_info=True)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="An unexpected error occurred.",
    )


# --------------------------------------------------
# 1. Start an attempt
# --------------------------------------------------
@router.post("", response_model=AttemptOut, status_code=status.HTTP_201_CREATED)
def start_attempt(
    data: AttemptStartRequest,
    current_user: User = Depends(get_current_user),
    service: AttemptService = Depends(get_attempt_service),
):
    """
    Starts a new attempt on a quiz after checking availability, scope and the attempt limit.
    """
    try:
        logger.info(f"User {current_user.id} starting attempt on quiz {data.quiz_id}")
        return _attempt_out(service.start_attempt(current_user, data.quiz_id))
    except PortalError as e:
        logger.warning(f"Start rejected for user {current_user.id} on quiz {data.quiz_id}: {e}")
        raise to_http_exception(e)
    except Exception as e:
        raise _unexpected(f"starting attempt on quiz {data.quiz_id}", e)


# --------------------------------------------------
# 2. Submit (manual or timer expiry)
# --------------------------------------------------
@router.put("/{attempt_id}", response_model=AttemptOut)
def submit_attempt(
    attempt_id: int,
    data: AttemptSubmitRequest,
    current_user: User = Depends(get_current_user),
    service: AttemptService = Depends(get_attempt_service),
):
    """
    Submits the final answer map and scores the attempt. A second submit gets 409.
    """
    try:
        logger.info(f"User {current_user.id} submitting attempt {attempt_id}")
        return _attempt_out(service.submit_attempt(attempt_id, data.answers, current_user))
    except PortalError as e:
        logger.warning(f"Submit rejected for attempt {attempt_id}: {e}")
        raise to_http_exception(e)
    except Exception as e:
        raise _unexpected(f"submitting attempt {attempt_id}", e)


# --------------------------------------------------
# 3. Reads
# --------------------------------------------------
@router.get("", response_model=List[AttemptOut])
def list_attempts(
    quiz_id: Optional[int] = None,
    current_user: User = Depends(get_current_user),
    service: AttemptService = Depends(get_attempt_service),
):
    try:
        return [_attempt_out(v) for v in service.list_attempts(current_user, quiz_id)]
    except PortalError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise _unexpected(f"listing attempts for user {current_user.id}", e)


@router.get("/{attempt_id}", response_model=AttemptOut)
def get_attempt(
    attempt_id: int,
    current_user: User = Depends(get_current_user),
    service: AttemptService = Depends(get_attempt_service),
):
    try:
        return _attempt_out(service.get_attempt(current_user, attempt_id))
    except PortalError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise _unexpected(f"fetching attempt {attempt_id}", e)


# --------------------------------------------------
# 4. Administrative override
# --------------------------------------------------
@router.delete("/{attempt_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_attempt(
    attempt_id: int,
    current_user: User = Depends(get_current_user),
    service: AttemptService = Depends(get_attempt_service),
):
    try:
        service.delete_attempt(current_user, attempt_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except PortalError as e:
        logger.warning(f"Delete rejected for attempt {attempt_id}: {e}")
        raise to_http_exception(e)
    except Exception as e:
        raise _unexpected(f"deleting attempt {attempt_id}", e)
