"""
Secondary PIN protecting the restricted admin panel.

The PIN is a single system-wide secret, independent of the login password.
Being verified is remembered per *visit*: on the caller's session row, reset
whenever the panel is entered again.

There is deliberately no lockout after repeated wrong PINs; the source system
had none and no threshold has been agreed.
"""

from __future__ import annotations

import logging

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import ConflictError, IncorrectPin, ValidationError
from app.core.security import get_password_hash, verify_password
from app.models.admin_pin import AdminPin
from app.models.auth_session import AuthSession

logger = logging.getLogger(__name__)


async def _get_or_create_pin(db: AsyncSession) -> AdminPin:
    result = await db.execute(select(AdminPin).where(AdminPin.id == 1))
    record = result.scalar_one_or_none()
    if record is None:
        try:
            record = AdminPin(id=1, pin_hash=None, is_set=False)
            db.add(record)
            await db.commit()
            await db.refresh(record)
            logger.info("Created empty admin PIN record")
        except IntegrityError:
            await db.rollback()
            result = await db.execute(select(AdminPin).where(AdminPin.id == 1))
            record = result.scalar_one()
    return record


async def _mark_visit(db: AsyncSession, session: AuthSession, verified: bool) -> None:
    session.pin_verified = verified
    await db.commit()


async def status(db: AsyncSession) -> bool:
    """Whether a PIN has been configured."""
    return bool((await _get_or_create_pin(db)).is_set)


async def enter(db: AsyncSession, session: AuthSession) -> bool:
    """Start a new panel visit: forget any earlier verification."""
    await _mark_visit(db, session, False)
    return await status(db)


async def setup(db: AsyncSession, session: AuthSession, pin: str, confirm_pin: str) -> None:
    """One-time PIN creation. The creator counts as verified for this visit."""
    record = await _get_or_create_pin(db)
    if record.is_set:
        raise ConflictError("PIN is already set")
    if pin != confirm_pin:
        raise ValidationError("PINs do not match")
    if len(pin) < settings.PIN_MIN_LENGTH:
        raise ValidationError(f"PIN must be at least {settings.PIN_MIN_LENGTH} digits")

    result = await db.execute(
        update(AdminPin)
        .where(AdminPin.id == 1, AdminPin.is_set.is_(False))
        .values(pin_hash=get_password_hash(pin), is_set=True)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    if result.rowcount != 1:
        raise ConflictError("PIN is already set")

    await _mark_visit(db, session, True)
    logger.info("Admin PIN configured by user %d", session.user_id)


async def verify(db: AsyncSession, session: AuthSession, pin: str) -> None:
    record = await _get_or_create_pin(db)
    if not record.is_set or not record.pin_hash:
        raise ConflictError("PIN is not set")
    if not verify_password(pin, record.pin_hash):
        logger.warning("Wrong admin PIN entered by user %d", session.user_id)
        raise IncorrectPin()

    await _mark_visit(db, session, True)
    logger.info("Admin PIN verified by user %d", session.user_id)


def is_verified(session: AuthSession) -> bool:
    return bool(session.pin_verified)
