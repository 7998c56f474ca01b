"""
FastAPI dependencies — database session, clock and auth guards.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Callable
from datetime import datetime
from typing import Optional

from fastapi import Cookie, Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (PermissionDenied, RoleForbidden,
                                 SessionRevoked)
from app.db.session import async_session_factory
from app.models.user import Role, User
from app.services import pin_gate, sessions
from app.services.sessions import VerifiedSession
from app.services.time_window import login_clock

# We use auto_error=False so we can manually check for the cookie if header is missing
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)

SESSION_COOKIE = "access_token"


# ── Database session ────────────────────────────────────────────────
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


# ── Clock ───────────────────────────────────────────────────────────
def get_clock() -> Callable[[], datetime]:
    """Source of "now" for the login-hours window; overridden in tests."""
    return login_clock


# ── Auth dependencies ───────────────────────────────────────────────
def extract_token(
    token: Optional[str] = Depends(oauth2_scheme),
    access_token: Optional[str] = Cookie(default=None),
) -> Optional[str]:
    """Bearer header first, then the HttpOnly cookie ("Bearer <token>" or bare)."""
    if token:
        return token
    if access_token:
        if access_token.startswith("Bearer "):
            return access_token.split(" ", 1)[1]
        return access_token
    return None


async def get_current_session(
    token: Optional[str] = Depends(extract_token),
    db: AsyncSession = Depends(get_db),
) -> VerifiedSession:
    """Resolve the presented token against the *current* database state."""
    if not token:
        raise SessionRevoked("Not authenticated")
    return await sessions.verify(db, token)


async def get_current_user(
    current: VerifiedSession = Depends(get_current_session),
) -> User:
    return current.user


async def require_admin(
    current_user: User = Depends(get_current_user),
) -> User:
    """Only allow admin role to proceed."""
    if Role.parse(current_user.role) is not Role.ADMIN:
        raise RoleForbidden("Admin privileges required")
    return current_user


async def require_staff_session(
    current: VerifiedSession = Depends(get_current_session),
) -> VerifiedSession:
    """Admin or manager: the roles allowed into the admin panel."""
    if Role.parse(current.user.role) not in (Role.ADMIN, Role.MANAGER):
        raise RoleForbidden("Admin or Manager privileges required")
    return current


async def require_pin_verified(
    current: VerifiedSession = Depends(require_staff_session),
) -> VerifiedSession:
    if not pin_gate.is_verified(current.session):
        raise PermissionDenied("Admin PIN verification required", pin_required=True)
    return current
