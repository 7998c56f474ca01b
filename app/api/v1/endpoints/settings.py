"""
System settings endpoints — the login-hours restriction.

Singleton pattern: only one row in system_settings. GET is open to any
signed-in user, PUT only to the exempt super admin identity.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.deps import get_current_user, get_db
from app.models.user import User
from app.schemas.settings import SystemSettingsRead, SystemSettingsUpdate
from app.services import time_window

router = APIRouter(tags=["settings"])


@router.get("/settings", response_model=SystemSettingsRead)
async def get_settings(
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
) -> SystemSettingsRead:
    """Get the current login-hours restriction."""
    return SystemSettingsRead.from_row(await time_window.get_or_create_settings(db))


@router.put("/settings", response_model=SystemSettingsRead)
async def update_settings(
    body: SystemSettingsUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> SystemSettingsRead:
    """Replace the login-hours restriction (super admin only)."""
    restriction = body.login_time_restriction
    row = await time_window.update_restriction(
        db,
        current_user,
        enabled=restriction.enabled,
        start_time=restriction.start_time,
        end_time=restriction.end_time,
    )
    return SystemSettingsRead.from_row(row)
