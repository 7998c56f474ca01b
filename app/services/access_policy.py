"""
Login decision logic.

Pure functions: callers look the user up, check the password and load the
login-hours restriction, then ask this module whether the attempt may proceed.
Denials are raised as ``AccessError`` subclasses in a fixed order so that
the most fundamental reason always wins.
"""

from __future__ import annotations

from datetime import datetime

from app.core.exceptions import (AccountInactive, InvalidCredentials,
                                 OutsideAllowedHours, PendingApproval,
                                 RoleForbidden)
from app.models.user import Role, User
from app.services.time_window import (LoginRestriction, is_exempt,
                                      is_within_window, minute_of_day,
                                      minutes_to_hhmm, to_12_hour)

# Whether an account of each role may hold a back-office session.
LOGIN_ELIGIBILITY: dict[Role, bool] = {
    Role.ADMIN: True,
    Role.MANAGER: True,
    Role.COLLECTOR: True,
    Role.SUPERVISOR: True,
    Role.MEMBER: False,
}

if set(LOGIN_ELIGIBILITY) != set(Role):
    missing = sorted(r.value for r in set(Role) - set(LOGIN_ELIGIBILITY))
    raise RuntimeError(f"LOGIN_ELIGIBILITY has no entry for roles: {missing}")


def check_account_standing(user: User) -> Role:
    """Role / approval / activation checks shared by login and session verification."""
    role = Role.parse(user.role)
    if role is Role.MEMBER:
        raise RoleForbidden("Members cannot sign in to the back office")
    if role is None or not LOGIN_ELIGIBILITY[role]:
        raise RoleForbidden()
    if not user.is_approved:
        raise PendingApproval()
    if not user.is_active:
        raise AccountInactive()
    return role


def check_login_hours(user: User, restriction: LoginRestriction, now: datetime) -> None:
    if not restriction.enabled or is_exempt(user):
        return
    current = minute_of_day(now)
    if is_within_window(restriction.start_minute, restriction.end_minute, current):
        return

    start = minutes_to_hhmm(restriction.start_minute)
    end = minutes_to_hhmm(restriction.end_minute)
    raise OutsideAllowedHours(
        f"Please login between {to_12_hour(start)} and {to_12_hour(end)}.",
        time_restricted=True,
        allowed_time={
            "start": start,
            "end": end,
            "current": minutes_to_hhmm(current),
        },
    )


def authenticate(
    user: User | None,
    password_ok: bool,
    restriction: LoginRestriction,
    now: datetime,
) -> User:
    """Decide a login attempt; returns the user when it is allowed."""
    # Credentials are checked before role. A member with the wrong password
    # therefore gets InvalidCredentials, not RoleForbidden, even though a
    # member is refused whatever password they hold. The order keeps role
    # from leaking to a caller who does not know the password.
    if user is None or not password_ok:
        raise InvalidCredentials()
    check_account_standing(user)
    check_login_hours(user, restriction, now)
    return user
