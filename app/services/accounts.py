"""
Account lookup, login orchestration and account creation.
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import AccessError, ConflictError, ValidationError
from app.core.security import (burn_password_check, get_password_hash,
                               verify_password)
from app.models.user import Role, User
from app.services import access_policy, sessions
from app.services.time_window import get_restriction

logger = logging.getLogger(__name__)


def normalise_identifier(identifier: str) -> str:
    return identifier.strip().lower()


async def find_by_identifier(db: AsyncSession, identifier: str) -> User | None:
    """Look a user up by email or phone number."""
    ident = normalise_identifier(identifier)
    result = await db.execute(
        select(User).where(or_(User.email == ident, User.phone == ident)).limit(1)
    )
    return result.scalar_one_or_none()


async def login(
    db: AsyncSession,
    identifier: str,
    password: str,
    now: datetime,
) -> tuple[str, User]:
    """Run the full login decision and open a session. Returns ``(token, user)``."""
    user = await find_by_identifier(db, identifier)
    if user is None:
        burn_password_check(password)
        password_ok = False
    else:
        password_ok = verify_password(password, user.hashed_password)

    restriction = await get_restriction(db)
    try:
        access_policy.authenticate(user, password_ok, restriction, now)
    except AccessError as exc:
        logger.info("Login refused for %r: %s", normalise_identifier(identifier), exc.kind)
        raise

    token = await sessions.issue(db, user)
    logger.info("Login succeeded for user %d", user.id)
    return token, user


async def _ensure_identity_free(db: AsyncSession, email: str, phone: str | None) -> None:
    clauses = [User.email == email]
    if phone:
        clauses.append(User.phone == phone)
    result = await db.execute(select(User.id).where(or_(*clauses)).limit(1))
    if result.scalar_one_or_none() is not None:
        raise ConflictError("User already exists with this email or phone number")


async def register(
    db: AsyncSession,
    *,
    name: str,
    email: str,
    password: str,
    phone: str | None = None,
) -> User:
    """Self-registration. Always creates an administrator awaiting approval."""
    await _ensure_identity_free(db, email, phone)
    user = User(
        email=email,
        phone=phone,
        hashed_password=get_password_hash(password),
        full_name=name,
        role=Role.ADMIN.value,
        is_approved=not settings.REGISTRATION_REQUIRES_APPROVAL,
        is_active=True,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    logger.info("Registered %s (approved=%s)", user.email, user.is_approved)
    return user


async def create_user(
    db: AsyncSession,
    acting: User,
    *,
    email: str,
    password: str,
    full_name: str | None,
    role: Role,
    phone: str | None = None,
) -> User:
    """Administrator-created account of a non-admin role, approved on creation."""
    await _ensure_identity_free(db, email, phone)
    user = User(
        email=email,
        phone=phone,
        hashed_password=get_password_hash(password),
        full_name=full_name,
        role=role.value,
        is_approved=True,
        is_active=True,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    logger.info("User %s (%s) created by %s", user.email, user.role, acting.email)
    return user


async def change_password(
    db: AsyncSession,
    user: User,
    current_password: str,
    new_password: str,
) -> None:
    """Replace the caller's own password after confirming the current one."""
    if not verify_password(current_password, user.hashed_password):
        logger.info("Password change refused for user %d: wrong current password", user.id)
        raise ValidationError("Current password is incorrect")
    user.hashed_password = get_password_hash(new_password)
    await db.commit()
    logger.info("Password changed for user %d", user.id)
