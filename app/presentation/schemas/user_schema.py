from pydantic import BaseModel, EmailStr
from typing import Optional

from app.application.quizzes.entities import Role


class SignupRequest(BaseModel):
    name: str
    email: EmailStr
    password: str
    grade: str
    group: str


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class UserProfileResponse(BaseModel):
    id: int
    name: str
    email: str
    role: Role
    grade: Optional[str] = None
    group: Optional[str] = None

    class Config:
        from_attributes = True


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserProfileResponse
