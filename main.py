import sys
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.infrastructure import config
from app.infrastructure.db.session import SessionLocal, init_db
from app.infrastructure.repositories.user_repo_impl import UserRepositoryImpl
from app.infrastructure.security.password import password_hasher
from app.application.auth.auth_service import AuthService
from app.presentation.api.routers.auth_router import router as auth_router
from app.presentation.api.routers.quiz_router import router as quiz_router
from app.presentation.api.routers.quiz_attempt_router import router as quiz_attempt_router
from app.presentation.api.routers.admin_router import router as admin_router

# Configure logging
logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)
logger = logging.getLogger(__name__)

# Create tables
init_db()


def seed_admin() -> None:
    if not (config.ADMIN_EMAIL and config.ADMIN_PASSWORD):
        return
    db = SessionLocal()
    try:
        admin = AuthService(UserRepositoryImpl(db), password_hasher).ensure_admin(
            name=config.ADMIN_NAME,
            email=config.ADMIN_EMAIL,
            password=config.ADMIN_PASSWORD,
        )
        logger.info(f"Bootstrap admin available as user_id {admin.id}")
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    seed_admin()
    yield


# Initialize FastAPI app
app = FastAPI(title="EduPortal API", lifespan=lifespan)


# Global Exception Handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Global unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "An internal server error occurred."}
    )

# Include routers
app.include_router(auth_router)
app.include_router(quiz_router)
app.include_router(quiz_attempt_router)
app.include_router(admin_router)


# Optional root endpoint
@app.get("/")
def root():
    return {"message": "Welcome to EduPortal API"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
