"""
Session token signing / decoding and secret hashing (bcrypt).

Tokens only name a server-side session (``jti``) and its user (``sub``);
authority is always re-derived from the database on use.
"""

from __future__ import annotations

import secrets
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from passlib.context import CryptContext

from app.core.config import settings

pwd_context = CryptContext(
    schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=settings.BCRYPT_ROUNDS
)

_ALGORITHM = settings.ALGORITHM
_SECRET = settings.SECRET_KEY
_TOKEN_TYPE = "session"

# Verified against when the login identifier matches no user, so that a
# missing account costs the same as a wrong password.
_DUMMY_HASH = pwd_context.hash("keystone-dummy-secret")


# ── Passwords / PINs ────────────────────────────────────────────────
def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


def get_password_hash(plain: str) -> str:
    return pwd_context.hash(plain)


def burn_password_check(plain: str) -> None:
    pwd_context.verify(plain, _DUMMY_HASH)


# ── Session tokens ──────────────────────────────────────────────────
def new_session_id() -> str:
    return secrets.token_urlsafe(24)


def session_expiry(now: datetime | None = None) -> datetime:
    start = now or datetime.now(timezone.utc)
    return start + timedelta(minutes=settings.SESSION_EXPIRE_MINUTES)


def create_session_token(subject: int | str, jti: str, expires_at: datetime) -> str:
    return jwt.encode(
        {"exp": expires_at, "sub": str(subject), "jti": jti, "type": _TOKEN_TYPE},
        _SECRET,
        algorithm=_ALGORITHM,
    )


def decode_session_token(token: str) -> dict | None:
    """Return payload dict if the session token is well-formed and unexpired, else ``None``."""
    try:
        payload = jwt.decode(token, _SECRET, algorithms=[_ALGORITHM])
    except JWTError:
        return None
    if payload.get("type") != _TOKEN_TYPE or not payload.get("jti") or not payload.get("sub"):
        return None
    return payload
