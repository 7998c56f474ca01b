"""
Auth endpoints — login, self-registration, session check, password change & logout.
"""

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Request, Response, status
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.deps import (SESSION_COOKIE, extract_token, get_clock,
                             get_current_user, get_db)
from app.core.config import settings
from app.models.user import User
from app.schemas.common import MessageResponse
from app.schemas.token import (LoginRequest, LoginResponse, RegisterResponse,
                               SessionCheckResponse)
from app.schemas.user import ChangePasswordRequest, RegisterRequest, UserRead
from app.services import access_policy, accounts, sessions
from app.services.time_window import get_restriction

# Rate limiter keyed by client IP
limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)

router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger(__name__)


def _set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=SESSION_COOKIE,
        value=f"Bearer {token}",
        httponly=True,
        secure=settings.COOKIE_SECURE,  # Set to True in HTTPS production
        samesite="lax",
        max_age=settings.SESSION_EXPIRE_MINUTES * 60,
    )


@router.post("/login", response_model=LoginResponse)
@limiter.limit(settings.LOGIN_RATE_LIMIT)
async def login(
    request: Request,
    response: Response,
    body: LoginRequest,
    db: AsyncSession = Depends(get_db),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> LoginResponse:
    """Authenticate with email / phone and password. Sets an HttpOnly cookie."""
    token, user = await accounts.login(db, body.identifier, body.password, clock())
    _set_session_cookie(response, token)
    return LoginResponse(token=token, user=UserRead.model_validate(user))


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.LOGIN_RATE_LIMIT)
async def register(
    request: Request,
    response: Response,
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> RegisterResponse:
    """Create an administrator account. It cannot sign in until approved."""
    user = await accounts.register(
        db, name=body.name, email=body.email, password=body.password, phone=body.phone
    )
    if not user.is_approved:
        return RegisterResponse(
            message=(
                "Registration successful! Your account is pending approval. "
                "Please wait for the super admin to approve your account."
            ),
            requires_approval=True,
        )

    access_policy.authenticate(user, True, await get_restriction(db), clock())
    token = await sessions.issue(db, user)
    _set_session_cookie(response, token)
    return RegisterResponse(
        message="Registration successful!",
        requires_approval=False,
        token=token,
        user=UserRead.model_validate(user),
    )


@router.get("/check", response_model=SessionCheckResponse)
async def check(
    current_user: User = Depends(get_current_user),
) -> SessionCheckResponse:
    """Confirm the presented session is still valid and return its user."""
    return SessionCheckResponse(user=UserRead.model_validate(current_user))


@router.put("/change-password", response_model=MessageResponse)
async def change_password(
    body: ChangePasswordRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> MessageResponse:
    """Change the signed-in user's password. Existing sessions stay valid."""
    await accounts.change_password(db, current_user, body.current_password, body.new_password)
    return MessageResponse(message="Password changed successfully")


@router.post("/logout", response_model=MessageResponse)
async def logout(
    response: Response,
    token: Optional[str] = Depends(extract_token),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    """Revoke the session if it is still known and always clear the cookie."""
    try:
        await sessions.logout(db, token)
    except SQLAlchemyError as e:
        logger.warning("Server-side logout failed, clearing cookie anyway: %s", e)
    response.delete_cookie(SESSION_COOKIE)
    return MessageResponse(message="User logged out successfully")
