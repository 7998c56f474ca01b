"""Pydantic schemas for the admin panel PIN gate."""

from __future__ import annotations

from pydantic import BaseModel


class PinStatusResponse(BaseModel):
    is_set: bool
    verified: bool = False


class PinSetupRequest(BaseModel):
    pin: str
    confirm_pin: str


class PinVerifyRequest(BaseModel):
    pin: str


class PanelOverview(BaseModel):
    total_users: int
    pending_users: int
    inactive_users: int
    login_restriction_enabled: bool
