"""
Access-control error taxonomy and global exception handlers.

Every denial raised by the services is an ``AccessError`` subclass carrying a
stable ``kind`` and a human-readable message. The handlers below render them
(and every other failure) without leaking stack traces to clients.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

logger = logging.getLogger(__name__)


class AccessError(Exception):
    """Base class for every access-control failure."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    default_message: str = "Request could not be processed"

    def __init__(self, message: str | None = None, **extra: Any) -> None:
        self.message = message or self.default_message
        self.extra = extra
        super().__init__(self.message)

    @property
    def kind(self) -> str:
        return type(self).__name__


class InvalidCredentials(AccessError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid credentials"


class RoleForbidden(AccessError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Access denied for this account role"


class PendingApproval(AccessError):
    """Login of an account that exists but was never approved.

    Distinguishable from ``InvalidCredentials`` on purpose; the login screen
    shows a "waiting for approval" message for it.
    """

    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Your account is pending approval by the super admin. Please wait."

    def __init__(self, message: str | None = None, **extra: Any) -> None:
        super().__init__(message, requires_approval=True, **extra)


class AccountInactive(AccessError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Account is deactivated. Please contact administrator."


class OutsideAllowedHours(AccessError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Login is not allowed at this time"


class SessionRevoked(AccessError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Session is no longer valid"


class PermissionDenied(AccessError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "You are not allowed to perform this action"


class IncorrectPin(AccessError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Incorrect PIN"


class ValidationError(AccessError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid input"


class ConflictError(AccessError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Operation conflicts with the current state"


class ProtectedResourceError(AccessError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "This account cannot be modified"


class NotFoundError(AccessError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


# ── Handlers ────────────────────────────────────────────────────────
async def _access_error_handler(_request: Request, exc: AccessError) -> JSONResponse:
    headers = None
    if exc.status_code == status.HTTP_401_UNAUTHORIZED:
        headers = {"WWW-Authenticate": "Bearer"}
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "detail": exc.message,
            "error": exc.kind,
            "success": False,
            **exc.extra,
        },
        headers=headers,
    )


async def _http_exception_handler(_request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "success": False},
        headers=getattr(exc, "headers", None),
    )


async def _request_validation_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    message = "Invalid input"
    if errors:
        message = str(errors[0].get("msg", message)).removeprefix("Value error, ")
    return JSONResponse(
        status_code=422,
        content={
            "detail": message,
            "error": ValidationError.__name__,
            "success": False,
            "errors": jsonable_encoder(errors),
        },
    )


async def _integrity_error_handler(_request: Request, exc: IntegrityError) -> JSONResponse:
    logger.error("Database integrity error: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=409,
        content={"detail": "Database constraint violation", "error": "ConflictError", "success": False},
    )


async def _sqlalchemy_error_handler(_request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Database error: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal database error", "success": False},
    )


async def _generic_exception_handler(_request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception: %s", exc)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "success": False},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach all exception handlers to the FastAPI app."""
    app.add_exception_handler(AccessError, _access_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(HTTPException, _http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _request_validation_handler)  # type: ignore[arg-type]
    app.add_exception_handler(IntegrityError, _integrity_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(SQLAlchemyError, _sqlalchemy_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _generic_exception_handler)
