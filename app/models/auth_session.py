"""
AuthSession model — server-side record behind every issued session token.

The token only carries this row's ``jti``; revocation and the per-visit
admin-panel PIN flag live here.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String

from app.db.base import Base


class AuthSession(Base):
    __tablename__ = "auth_sessions"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    jti: str = Column(String(64), unique=True, nullable=False, index=True)  # type: ignore[assignment]
    user_id: int = Column(  # type: ignore[assignment]
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    expires_at: datetime = Column(DateTime(timezone=True), nullable=False)  # type: ignore[assignment]
    revoked_at: datetime | None = Column(DateTime(timezone=True), nullable=True)  # type: ignore[assignment]
    pin_verified: bool = Column(Boolean, nullable=False, default=False)  # type: ignore[assignment]
