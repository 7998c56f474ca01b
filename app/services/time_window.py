"""
Login-hours restriction: window arithmetic, the exempt identity and the
singleton settings row.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import PermissionDenied
from app.models.system_settings import SystemSettings
from app.models.user import User

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60


@dataclass(frozen=True)
class LoginRestriction:
    enabled: bool
    start_minute: int
    end_minute: int

    @classmethod
    def from_row(cls, row: SystemSettings) -> LoginRestriction:
        return cls(
            enabled=bool(row.login_restriction_enabled),
            start_minute=row.login_start_minute,
            end_minute=row.login_end_minute,
        )


# ── Clock / formatting helpers ──────────────────────────────────────
def parse_utc_offset(offset: str) -> timezone:
    """Turn ``+06:00`` / ``-03:30`` into a fixed-offset tzinfo."""
    sign = 1 if offset[0] == "+" else -1
    hours, _, minutes = offset[1:].partition(":")
    return timezone(sign * timedelta(hours=int(hours), minutes=int(minutes or 0)))


LOGIN_TZ = parse_utc_offset(settings.LOGIN_TIMEZONE_OFFSET)


def login_clock() -> datetime:
    """Current wall-clock time in the login timezone."""
    return datetime.now(LOGIN_TZ)


def minute_of_day(moment: datetime) -> int:
    return moment.hour * 60 + moment.minute


def hhmm_to_minutes(value: str) -> int:
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def minutes_to_hhmm(value: int) -> str:
    return f"{value // 60:02d}:{value % 60:02d}"


def to_12_hour(value: str) -> str:
    """``18:30`` -> ``6:30 PM`` for user-facing messages."""
    hours, minutes = value.split(":")
    hour = int(hours)
    suffix = "PM" if hour >= 12 else "AM"
    return f"{hour % 12 or 12}:{minutes} {suffix}"


# ── Policy ──────────────────────────────────────────────────────────
def is_within_window(start_minute: int, end_minute: int, now_minute: int) -> bool:
    """Half-open window check; ``start > end`` wraps past midnight."""
    if start_minute <= end_minute:
        return start_minute <= now_minute < end_minute
    return now_minute >= start_minute or now_minute < end_minute


def is_exempt(user: User) -> bool:
    identity = settings.EXEMPT_IDENTITY
    if not identity:
        return False
    return (user.email or "").lower() == identity or (user.phone or "") == identity


def require_exempt_identity(user: User) -> None:
    if not is_exempt(user):
        raise PermissionDenied("Only the super admin can change login hours")


# ── Persistence ─────────────────────────────────────────────────────
async def get_or_create_settings(db: AsyncSession) -> SystemSettings:
    """Fetch the singleton settings row, creating it with defaults if absent."""
    result = await db.execute(select(SystemSettings).where(SystemSettings.id == 1))
    row = result.scalar_one_or_none()
    if row is None:
        try:
            row = SystemSettings(
                id=1,
                login_restriction_enabled=False,
                login_start_minute=0,
                login_end_minute=MINUTES_PER_DAY - 1,
            )
            db.add(row)
            await db.commit()
            await db.refresh(row)
            logger.info("Created default system settings")
        except IntegrityError:
            # Another request created it first
            await db.rollback()
            result = await db.execute(select(SystemSettings).where(SystemSettings.id == 1))
            row = result.scalar_one()
    return row


async def get_restriction(db: AsyncSession) -> LoginRestriction:
    return LoginRestriction.from_row(await get_or_create_settings(db))


async def update_restriction(
    db: AsyncSession,
    acting: User,
    *,
    enabled: bool,
    start_time: str,
    end_time: str,
) -> SystemSettings:
    """Replace the login-hours restriction. Exempt identity only."""
    require_exempt_identity(acting)
    row = await get_or_create_settings(db)
    row.login_restriction_enabled = enabled
    row.login_start_minute = hhmm_to_minutes(start_time)
    row.login_end_minute = hhmm_to_minutes(end_time)
    await db.commit()
    await db.refresh(row)
    logger.info(
        "Login hours updated by %s: enabled=%s %s-%s",
        acting.email,
        enabled,
        start_time,
        end_time,
    )
    return row
