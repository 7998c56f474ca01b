"""
Restricted admin panel — PIN gate and the panel overview behind it.

Entering the panel (``POST /admin-panel/enter``) starts a new visit and
forgets any earlier PIN verification on this session.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.deps import get_db, require_pin_verified, require_staff_session
from app.models.user import User
from app.schemas.common import MessageResponse
from app.schemas.pin import (PanelOverview, PinSetupRequest, PinStatusResponse,
                             PinVerifyRequest)
from app.services import pin_gate
from app.services.sessions import VerifiedSession
from app.services.time_window import get_restriction

router = APIRouter(prefix="/admin-panel", tags=["admin-panel"])


@router.post("/enter", response_model=PinStatusResponse)
async def enter_panel(
    db: AsyncSession = Depends(get_db),
    current: VerifiedSession = Depends(require_staff_session),
) -> PinStatusResponse:
    """Start a panel visit. The caller must set up or verify the PIN next."""
    is_set = await pin_gate.enter(db, current.session)
    return PinStatusResponse(is_set=is_set, verified=False)


@router.get("/pin/status", response_model=PinStatusResponse)
async def pin_status(
    db: AsyncSession = Depends(get_db),
    current: VerifiedSession = Depends(require_staff_session),
) -> PinStatusResponse:
    return PinStatusResponse(
        is_set=await pin_gate.status(db),
        verified=pin_gate.is_verified(current.session),
    )


@router.post("/pin/setup", response_model=MessageResponse)
async def pin_setup(
    body: PinSetupRequest,
    db: AsyncSession = Depends(get_db),
    current: VerifiedSession = Depends(require_staff_session),
) -> MessageResponse:
    await pin_gate.setup(db, current.session, body.pin, body.confirm_pin)
    return MessageResponse(message="PIN set successfully")


@router.post("/pin/verify", response_model=MessageResponse)
async def pin_verify(
    body: PinVerifyRequest,
    db: AsyncSession = Depends(get_db),
    current: VerifiedSession = Depends(require_staff_session),
) -> MessageResponse:
    await pin_gate.verify(db, current.session, body.pin)
    return MessageResponse(message="PIN verified successfully")


@router.get("/overview", response_model=PanelOverview)
async def panel_overview(
    db: AsyncSession = Depends(get_db),
    _current: VerifiedSession = Depends(require_pin_verified),
) -> PanelOverview:
    """Account counts for the control panel landing page."""
    total = await db.execute(select(func.count(User.id)))
    pending = await db.execute(select(func.count(User.id)).where(User.is_approved.is_(False)))
    inactive = await db.execute(select(func.count(User.id)).where(User.is_active.is_(False)))
    restriction = await get_restriction(db)

    return PanelOverview(
        total_users=total.scalar() or 0,
        pending_users=pending.scalar() or 0,
        inactive_users=inactive.scalar() or 0,
        login_restriction_enabled=restriction.enabled,
    )
