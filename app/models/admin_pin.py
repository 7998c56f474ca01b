"""
Admin PIN model — singleton row for the restricted admin panel's PIN.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Integer, String

from app.db.base import Base


class AdminPin(Base):
    __tablename__ = "admin_pin"

    id: int = Column(Integer, primary_key=True, default=1)  # type: ignore[assignment]
    pin_hash: str | None = Column(String(128), nullable=True)  # type: ignore[assignment]
    is_set: bool = Column(Boolean, nullable=False, default=False)  # type: ignore[assignment]
    updated_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
