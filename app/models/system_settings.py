"""
System Settings model — singleton row holding the login-hours restriction.

Only one row should ever exist. It is created with defaults on first read and
only the exempt identity may change it.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Integer

from app.db.base import Base


class SystemSettings(Base):
    __tablename__ = "system_settings"

    id: int = Column(Integer, primary_key=True, default=1)  # type: ignore[assignment]
    login_restriction_enabled: bool = Column(Boolean, nullable=False, default=False)  # type: ignore[assignment]
    # Minutes since local midnight, 0..1439
    login_start_minute: int = Column(Integer, nullable=False, default=0)  # type: ignore[assignment]
    login_end_minute: int = Column(Integer, nullable=False, default=23 * 60 + 59)  # type: ignore[assignment]
    updated_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
