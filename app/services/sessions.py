"""
Session issuance, verification and logout.

A token is only a pointer to an ``AuthSession`` row. Every verification
reloads that row and the user behind it and re-runs the account standing
checks, so deactivating, demoting or deleting a user ends their sessions on
the very next request.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import delete, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import AccessError, SessionRevoked
from app.core.security import (create_session_token, decode_session_token,
                               new_session_id, session_expiry)
from app.models.auth_session import AuthSession
from app.models.user import User
from app.services.access_policy import check_account_standing

logger = logging.getLogger(__name__)


@dataclass
class VerifiedSession:
    session: AuthSession
    user: User


def _ensure_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


async def issue(db: AsyncSession, user: User) -> str:
    """Open a session for an already-authenticated user and return its token."""
    await prune(db, user_id=user.id)
    now = datetime.now(timezone.utc)
    expires_at = session_expiry(now)
    record = AuthSession(
        jti=new_session_id(),
        user_id=user.id,
        created_at=now,
        expires_at=expires_at,
    )
    db.add(record)
    user.last_login_at = now
    await db.commit()
    await db.refresh(record)
    logger.info("Session opened for user %d (%s)", user.id, user.role)
    return create_session_token(user.id, record.jti, expires_at)


async def _load_session(db: AsyncSession, token: str) -> AuthSession | None:
    payload = decode_session_token(token)
    if payload is None:
        return None
    result = await db.execute(select(AuthSession).where(AuthSession.jti == payload["jti"]))
    record = result.scalar_one_or_none()
    if record is None or str(record.user_id) != payload["sub"]:
        return None
    return record


async def verify(db: AsyncSession, token: str) -> VerifiedSession:
    """Resolve a token to its session and *current* user, or raise ``SessionRevoked``."""
    record = await _load_session(db, token)
    if record is None:
        raise SessionRevoked("Could not validate credentials")
    if record.revoked_at is not None:
        raise SessionRevoked("Session has been logged out")
    if _ensure_utc(record.expires_at) <= datetime.now(timezone.utc):
        raise SessionRevoked("Session has expired")

    user = await db.get(User, record.user_id, populate_existing=True)
    if user is None:
        raise SessionRevoked("Account no longer exists")
    try:
        check_account_standing(user)
    except AccessError as exc:
        logger.info("Rejected session of user %d: %s", user.id, exc.kind)
        raise SessionRevoked(exc.message, reason=exc.kind) from exc
    return VerifiedSession(session=record, user=user)


async def logout(db: AsyncSession, token: str | None) -> bool:
    """Best-effort revocation. Returns whether a live session was revoked."""
    if not token:
        return False
    record = await _load_session(db, token)
    if record is None:
        return False
    result = await db.execute(
        update(AuthSession)
        .where(AuthSession.id == record.id, AuthSession.revoked_at.is_(None))
        .values(revoked_at=datetime.now(timezone.utc))
    )
    await db.commit()
    revoked = result.rowcount == 1
    if revoked:
        logger.info("Session closed for user %d", record.user_id)
    return revoked


async def prune(db: AsyncSession, *, user_id: int | None = None) -> int:
    """Delete revoked and expired session rows. Returns how many were removed."""
    stmt = delete(AuthSession).where(
        or_(
            AuthSession.revoked_at.is_not(None),
            AuthSession.expires_at <= datetime.now(timezone.utc),
        )
    )
    if user_id is not None:
        stmt = stmt.where(AuthSession.user_id == user_id)
    result = await db.execute(stmt.execution_options(synchronize_session=False))
    await db.commit()
    if result.rowcount:
        logger.info("Pruned %d dead session(s)", result.rowcount)
    return result.rowcount
