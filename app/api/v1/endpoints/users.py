"""
User management — approval workflow and account lifecycle (admin only).

- GET operations list accounts.
- approve / reject / activate / deactivate / delete change one account each;
  nobody may change their own account or another administrator's.
"""

from __future__ import annotations

from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.deps import get_db, require_admin
from app.models.user import User
from app.schemas.common import MessageResponse
from app.schemas.user import UserCreate, UserRead
from app.services import accounts, approvals
from app.services.notifications import notify_account_decision

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/pending", response_model=list[UserRead])
async def list_pending_users(
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> list[User]:
    """Accounts waiting for approval, oldest first."""
    return await approvals.list_pending(db)


@router.get("", response_model=list[UserRead])
async def list_users(
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> list[User]:
    return await approvals.list_all(db)


@router.post("", response_model=UserRead, status_code=status.HTTP_201_CREATED)
async def create_user(
    body: UserCreate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> User:
    """Create a manager / collector / supervisor / member account (approved)."""
    return await accounts.create_user(
        db,
        admin,
        email=body.email,
        password=body.password,
        full_name=body.full_name,
        role=body.role,
        phone=body.phone,
    )


@router.post("/{user_id}/approve", response_model=UserRead)
async def approve_user(
    user_id: int,
    background: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> User:
    user = await approvals.approve(db, admin, user_id)
    background.add_task(
        notify_account_decision, "approved", user_id=user.id, email=user.email, name=user.full_name
    )
    return user


@router.post("/{user_id}/reject", response_model=MessageResponse)
async def reject_user(
    user_id: int,
    background: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> MessageResponse:
    user = await approvals.reject(db, admin, user_id)
    background.add_task(
        notify_account_decision, "rejected", user_id=user.id, email=user.email, name=user.full_name
    )
    return MessageResponse(message=f"User {user.full_name or user.email} has been rejected and removed")


@router.post("/{user_id}/activate", response_model=UserRead)
async def activate_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> User:
    return await approvals.activate(db, admin, user_id)


@router.post("/{user_id}/deactivate", response_model=UserRead)
async def deactivate_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> User:
    return await approvals.deactivate(db, admin, user_id)


@router.delete("/{user_id}", response_model=MessageResponse)
async def delete_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> MessageResponse:
    """Permanently delete an account. There is no undo."""
    user = await approvals.delete_user(db, admin, user_id)
    return MessageResponse(message=f"User {user.full_name or user.email} has been deleted permanently")
