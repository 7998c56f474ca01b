"""Pydantic schemas for the login-hours restriction."""

from __future__ import annotations

import re

from pydantic import BaseModel, field_validator

from app.models.system_settings import SystemSettings
from app.services.time_window import minutes_to_hhmm

_HHMM_RE = re.compile(r"^([01]?[0-9]|2[0-3]):[0-5][0-9]$")


class LoginTimeRestriction(BaseModel):
    enabled: bool = False
    start_time: str = "00:00"
    end_time: str = "23:59"

    @field_validator("start_time", "end_time")
    @classmethod
    def _hhmm(cls, v: str) -> str:
        v = v.strip()
        if not _HHMM_RE.match(v):
            raise ValueError("Invalid time format. Use HH:MM")
        hours, minutes = v.split(":")
        return f"{int(hours):02d}:{minutes}"


class SystemSettingsRead(BaseModel):
    login_time_restriction: LoginTimeRestriction

    @classmethod
    def from_row(cls, row: SystemSettings) -> SystemSettingsRead:
        return cls(
            login_time_restriction=LoginTimeRestriction(
                enabled=row.login_restriction_enabled,
                start_time=minutes_to_hhmm(row.login_start_minute),
                end_time=minutes_to_hhmm(row.login_end_minute),
            )
        )


class SystemSettingsUpdate(BaseModel):
    login_time_restriction: LoginTimeRestriction
