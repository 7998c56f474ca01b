"""Pydantic schemas for login, registration and session checks."""

from __future__ import annotations

from pydantic import BaseModel, field_validator

from app.schemas.user import UserRead


class LoginRequest(BaseModel):
    identifier: str  # email or phone number
    password: str

    @field_validator("identifier", "password")
    @classmethod
    def _required(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Field is required")
        return v


class LoginResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    user: UserRead


class RegisterResponse(BaseModel):
    success: bool = True
    message: str
    requires_approval: bool
    token: str | None = None
    user: UserRead | None = None


class SessionCheckResponse(BaseModel):
    authenticated: bool = True
    user: UserRead
