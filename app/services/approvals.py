"""
Account approval / activation workflow.

State machine for a user::

    Pending --approve--> Approved & Active <--activate/deactivate--> Approved & Inactive
    Pending --reject--> (deleted)      any state --delete--> (deleted)

Each transition is a single conditional UPDATE / DELETE whose row count
tells whether this request won, so two administrators acting at once can
never both apply (or both notify about) the same transition.
"""

from __future__ import annotations

import logging

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

from app.core.exceptions import (ConflictError, NotFoundError,
                                 ProtectedResourceError)
from app.models.auth_session import AuthSession
from app.models.user import Role, User

logger = logging.getLogger(__name__)


# ── Guards ──────────────────────────────────────────────────────────
def can_modify(acting: User, target: User) -> bool:
    """Nobody may change their own account, and administrators are untouchable here."""
    return target.id != acting.id and Role.parse(target.role) is not Role.ADMIN


def _require_modifiable(acting: User, target: User, action: str) -> None:
    if target.id == acting.id:
        raise ProtectedResourceError(f"You cannot {action} your own account")
    if Role.parse(target.role) is Role.ADMIN:
        raise ProtectedResourceError(f"Cannot {action} administrator accounts")


def _modifiable_by(acting: User) -> ColumnElement[bool]:
    # Same guard as can_modify, evaluated by the database inside the write.
    return (User.id != acting.id) & (User.role != Role.ADMIN.value)


async def _get_user(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id, populate_existing=True)
    if user is None:
        raise NotFoundError("User not found")
    return user


# ── Read projections ────────────────────────────────────────────────
async def list_pending(db: AsyncSession) -> list[User]:
    result = await db.execute(
        select(User).where(User.is_approved.is_(False)).order_by(User.created_at.asc(), User.id.asc())
    )
    return list(result.scalars().all())


async def list_all(db: AsyncSession) -> list[User]:
    result = await db.execute(select(User).order_by(User.created_at.desc(), User.id.desc()))
    return list(result.scalars().all())


# ── Transitions ─────────────────────────────────────────────────────
async def approve(db: AsyncSession, acting: User, user_id: int) -> User:
    result = await db.execute(
        update(User)
        .where(User.id == user_id, User.is_approved.is_(False))
        .values(is_approved=True)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    if result.rowcount != 1:
        await _get_user(db, user_id)
        raise ConflictError("User is already approved")

    user = await _get_user(db, user_id)
    logger.info("User %d (%s) approved by %s", user.id, user.email, acting.email)
    return user


async def _set_active(db: AsyncSession, acting: User, user_id: int, active: bool) -> User:
    action = "activate" if active else "deactivate"
    target = await _get_user(db, user_id)
    _require_modifiable(acting, target, action)

    result = await db.execute(
        update(User)
        .where(User.id == user_id, _modifiable_by(acting), User.is_active.is_(not active))
        .values(is_active=active)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    target = await _get_user(db, user_id)
    if result.rowcount != 1:
        state = "active" if active else "deactivated"
        raise ConflictError(f"User is already {state}")

    logger.info("User %d (%s) %sd by %s", target.id, target.email, action, acting.email)
    return target


async def activate(db: AsyncSession, acting: User, user_id: int) -> User:
    return await _set_active(db, acting, user_id, True)


async def deactivate(db: AsyncSession, acting: User, user_id: int) -> User:
    return await _set_active(db, acting, user_id, False)


async def _remove(db: AsyncSession, acting: User, user_id: int, action: str) -> User:
    target = await _get_user(db, user_id)
    _require_modifiable(acting, target, action)

    await db.execute(
        delete(AuthSession)
        .where(AuthSession.user_id == user_id)
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(
        delete(User)
        .where(User.id == user_id, _modifiable_by(acting))
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        await db.rollback()
        raise NotFoundError("User not found")
    await db.commit()
    db.expunge(target)

    past = {"reject": "rejected", "delete": "deleted"}[action]
    logger.info("User %d (%s) %s by %s", target.id, target.email, past, acting.email)
    return target


async def reject(db: AsyncSession, acting: User, user_id: int) -> User:
    """Refuse an account and remove it for good."""
    return await _remove(db, acting, user_id, "reject")


async def delete_user(db: AsyncSession, acting: User, user_id: int) -> User:
    """Permanently remove an account. Irreversible."""
    return await _remove(db, acting, user_id, "delete")
