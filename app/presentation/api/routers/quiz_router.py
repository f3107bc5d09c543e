from dataclasses import asdict
import logging
from fastapi import APIRouter, Depends, HTTPException, Response, status
from typing import List

from app.application.clock import to_naive_utc
from app.application.errors import PortalError
from app.application.quizzes.entities import Question, Quiz, User, question_key
from app.application.quizzes.quiz_service import QuizService
from app.application.quizzes.stats import StatsService
from app.presentation.dependencies import (
    admin_required,
    get_current_user,
    get_quiz_service,
    get_stats_service,
)
from app.presentation.errors import to_http_exception
from app.presentation.schemas.quiz_schema import (
    QuestionCreate,
    QuestionOut,
    QuizCreate,
    QuizOut,
    QuizSummaryOut,
    QuizUpdate,
)
from app.presentation.schemas.stats_schema import QuizStatsOut

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/quizzes", tags=["Quizzes"])


# --------------------------------------------------
# Mapping helpers
# --------------------------------------------------
def _to_question(data: QuestionCreate) -> Question:
    return Question(
        prompt=data.prompt,
        type=data.type,
        options=list(data.options),
        correct_answer=data.correct_answer,
    )


def _summary_fields(quiz: Quiz, is_available: bool) -> dict:
    return dict(
        id=quiz.id,
        title=quiz.title,
        description=quiz.description,
        grade=quiz.grade,
        group=quiz.group,
        subject=quiz.subject,
        duration_minutes=quiz.duration_minutes,
        max_attempts=quiz.max_attempts,
        deadline=quiz.deadline,
        is_active=quiz.is_active,
        is_available=is_available,
        total_questions=len(quiz.questions),
    )


def _quiz_out(quiz: Quiz, caller: User, is_available: bool) -> QuizOut:
    questions = [
        QuestionOut(
            key=question_key(i),
            prompt=q.prompt,
            type=q.type,
            options=q.options,
            correct_answer=q.correct_answer if caller.is_admin else None,
        )
        for i, q in enumerate(quiz.questions)
    ]
    return QuizOut(**_summary_fields(quiz, is_available), questions=questions)


def _unexpected(action: str, e: Exception) -> HTTPException:
    logger.error(f"Unexpected error {action}: {e}", exc_info=True)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="An unexpected error occurred.",
    )


# --------------------------------------------------
# Student + admin
# --------------------------------------------------
@router.get("", response_model=List[QuizSummaryOut])
def list_quizzes(
    available_only: bool = False,
    current_user: User = Depends(get_current_user),
    service: QuizService = Depends(get_quiz_service),
):
    """
    Lists quizzes in the caller's grade/group; admins see every quiz.
    """
    try:
        quizzes = service.list_quizzes(current_user, available_only=available_only)
        logger.info(f"User {current_user.id} fetched {len(quizzes)} quizzes")
        return [
            QuizSummaryOut(**_summary_fields(q, service.is_available(current_user, q)))
            for q in quizzes
        ]
    except PortalError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise _unexpected("listing quizzes", e)


@router.get("/{quiz_id}", response_model=QuizOut)
def get_quiz(
    quiz_id: int,
    current_user: User = Depends(get_current_user),
    service: QuizService = Depends(get_quiz_service),
):
    try:
        quiz = service.get_quiz(current_user, quiz_id)
        return _quiz_out(quiz, current_user, service.is_available(current_user, quiz))
    except PortalError as e:
        logger.warning(f"Quiz {quiz_id} lookup rejected for user {current_user.id}: {e}")
        raise to_http_exception(e)
    except Exception as e:
        raise _unexpected(f"fetching quiz {quiz_id}", e)


# --------------------------------------------------
# Admin only
# --------------------------------------------------
@router.post("", response_model=QuizOut, status_code=status.HTTP_201_CREATED)
def create_quiz(
    data: QuizCreate,
    admin: User = Depends(admin_required),
    service: QuizService = Depends(get_quiz_service),
):
    try:
        quiz = Quiz(
            id=None,
            title=data.title,
            description=data.description,
            grade=data.grade,
            group=data.group,
            subject=data.subject,
            duration_minutes=data.duration_minutes,
            max_attempts=data.max_attempts,
            deadline=to_naive_utc(data.deadline),
            is_active=data.is_active,
            questions=[_to_question(q) for q in data.questions],
        )
        created = service.create_quiz(admin, quiz)
        return _quiz_out(created, admin, service.is_available(admin, created))
    except PortalError as e:
        logger.warning(f"Quiz creation by admin {admin.id} rejected: {e}")
        raise to_http_exception(e)
    except Exception as e:
        raise _unexpected("creating quiz", e)


@router.put("/{quiz_id}", response_model=QuizOut)
def update_quiz(
    quiz_id: int,
    data: QuizUpdate,
    admin: User = Depends(admin_required),
    service: QuizService = Depends(get_quiz_service),
):
    try:
        changes = data.model_dump(exclude_unset=True)
        if changes.get("questions") is not None:
            changes["questions"] = [_to_question(q) for q in data.questions]
        if changes.get("deadline") is not None:
            changes["deadline"] = to_naive_utc(changes["deadline"])
        updated = service.update_quiz(admin, quiz_id, changes)
        return _quiz_out(updated, admin, service.is_available(admin, updated))
    except PortalError as e:
        logger.warning(f"Update of quiz {quiz_id} by admin {admin.id} rejected: {e}")
        raise to_http_exception(e)
    except Exception as e:
        raise _unexpected(f"updating quiz {quiz_id}", e)


@router.delete("/{quiz_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_quiz(
    quiz_id: int,
    admin: User = Depends(admin_required),
    service: QuizService = Depends(get_quiz_service),
):
    try:
        service.delete_quiz(admin, quiz_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except PortalError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise _unexpected(f"deleting quiz {quiz_id}", e)


@router.get("/{quiz_id}/stats", response_model=QuizStatsOut)
def quiz_stats(
    quiz_id: int,
    admin: User = Depends(admin_required),
    service: StatsService = Depends(get_stats_service),
):
    try:
        return QuizStatsOut(**asdict(service.quiz_stats(quiz_id)))
    except PortalError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise _unexpected(f"computing stats for quiz {quiz_id}", e)
