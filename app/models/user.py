"""
User model — login identity, role and approval / activation flags.
"""

from __future__ import annotations

import enum
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Integer, String

from app.db.base import Base


class Role(str, enum.Enum):
    ADMIN = "admin"
    MANAGER = "manager"
    COLLECTOR = "collector"
    SUPERVISOR = "supervisor"
    MEMBER = "member"

    @classmethod
    def parse(cls, value: str | None) -> Role | None:
        """Return the matching role, or ``None`` for unknown stored values."""
        try:
            return cls(value)
        except ValueError:
            return None


class User(Base):
    __tablename__ = "users"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    email: str = Column(String(320), unique=True, nullable=False, index=True)  # type: ignore[assignment]
    phone: str | None = Column(String(20), unique=True, nullable=True, index=True)  # type: ignore[assignment]
    hashed_password: str = Column(String(128), nullable=False)  # type: ignore[assignment]
    full_name: str | None = Column(String(200), nullable=True)  # type: ignore[assignment]
    role: str = Column(  # type: ignore[assignment]
        String(20),
        nullable=False,
        default=Role.COLLECTOR.value,
        server_default=Role.COLLECTOR.value,
    )  # admin | manager | collector | supervisor | member
    is_approved: bool = Column(Boolean, nullable=False, default=False, server_default="false")  # type: ignore[assignment]
    is_active: bool = Column(Boolean, nullable=False, default=True, server_default="true")  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    last_login_at: datetime | None = Column(DateTime(timezone=True), nullable=True)  # type: ignore[assignment]
