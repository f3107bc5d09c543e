from dataclasses import asdict
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List

from app.application.errors import PortalError
from app.application.quizzes.entities import User
from app.application.quizzes.stats import StatsService
from app.infrastructure.repositories.user_repo_impl import UserRepositoryImpl
from app.presentation.dependencies import admin_required, get_db, get_stats_service
from app.presentation.errors import to_http_exception
from app.presentation.schemas.stats_schema import AdminOverviewOut
from app.presentation.schemas.user_schema import UserProfileResponse

import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get("/stats", response_model=AdminOverviewOut)
def admin_stats(
    admin: User = Depends(admin_required),
    service: StatsService = Depends(get_stats_service),
):
    try:
        logger.info(f"Admin {admin.id} fetching dashboard stats")
        return AdminOverviewOut(**asdict(service.admin_overview()))
    except PortalError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error computing admin stats: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal Server Error")


@router.get("/users", response_model=List[UserProfileResponse])
def list_users(db: Session = Depends(get_db), admin: User = Depends(admin_required)):
    try:
        users = UserRepositoryImpl(db).list_all()
        logger.info(f"Admin {admin.id} fetched {len(users)} users")
        return users
    except PortalError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error fetching users: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal Server Error")
