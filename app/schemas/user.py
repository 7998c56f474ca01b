"""Pydantic schemas for user accounts."""

from __future__ import annotations

import re
from datetime import datetime

from pydantic import BaseModel, field_validator

from app.models.user import Role

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_PHONE_RE = re.compile(r"^01[3-9]\d{8}$")
# Latin letters, spaces and the Bengali block
_NAME_RE = re.compile("^[a-zA-Z\\s\u0980-\u09FF]+$")

MIN_PASSWORD_LENGTH = 6


def _check_password(v: str) -> str:
    if len(v) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    return v


class _AccountFields(BaseModel):
    email: str
    password: str
    phone: str | None = None

    @field_validator("email")
    @classmethod
    def _normalise_email(cls, v: str) -> str:
        v = v.strip().lower()
        if not _EMAIL_RE.match(v):
            raise ValueError("Please enter a valid email address")
        return v

    @field_validator("phone")
    @classmethod
    def _phone(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        v = v.strip()
        if not _PHONE_RE.match(v):
            raise ValueError("Please enter a valid phone number (01XXXXXXXXX)")
        return v

    @field_validator("password")
    @classmethod
    def _password(cls, v: str) -> str:
        return _check_password(v)


class RegisterRequest(_AccountFields):
    name: str

    @field_validator("name")
    @classmethod
    def _name(cls, v: str) -> str:
        v = v.strip()
        if not 2 <= len(v) <= 50:
            raise ValueError("Name must be between 2 and 50 characters")
        if not _NAME_RE.match(v):
            raise ValueError("Name can only contain letters and spaces")
        return v


class UserCreate(_AccountFields):
    """Account created by an administrator (any role except admin)."""

    full_name: str | None = None
    role: Role = Role.COLLECTOR

    @field_validator("role")
    @classmethod
    def _validate_role(cls, v: Role) -> Role:
        if v is Role.ADMIN:
            raise ValueError("Administrator accounts are created through registration")
        return v


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str

    @field_validator("current_password")
    @classmethod
    def _current(cls, v: str) -> str:
        if not v:
            raise ValueError("Current password is required")
        return v

    @field_validator("new_password")
    @classmethod
    def _new(cls, v: str) -> str:
        return _check_password(v)


class UserRead(BaseModel):
    id: int
    email: str
    phone: str | None
    full_name: str | None
    role: str
    is_approved: bool
    is_active: bool
    created_at: datetime | None
    last_login_at: datetime | None = None

    model_config = {"from_attributes": True}
