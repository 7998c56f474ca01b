"""
Keystone — Application entry point.

This is the **only** file that assembles the app.  All decision logic
lives in the `services/` package; `api/` only adapts it to HTTP.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy import select

from app.api.v1.api import api_router
from app.api.v1.endpoints.auth import limiter
from app.core.config import settings
from app.core.exceptions import register_exception_handlers
from app.core.security import get_password_hash
from app.db.base import Base
from app.db.session import async_session_factory, engine

# Ensure all models are imported so metadata.create_all can see them
from app.models.admin_pin import AdminPin  # noqa: F401
from app.models.auth_session import AuthSession  # noqa: F401
from app.models.system_settings import SystemSettings  # noqa: F401
from app.models.user import Role, User
from app.services import sessions

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


async def seed_super_admin() -> None:
    """Create the exempt super admin on first run, already approved."""
    async with async_session_factory() as session:
        result = await session.execute(
            select(User).where(User.email == settings.FIRST_ADMIN_EMAIL)
        )
        if result.scalar_one_or_none() is not None:
            return
        admin = User(
            email=settings.FIRST_ADMIN_EMAIL,
            hashed_password=get_password_hash(settings.FIRST_ADMIN_PASSWORD),
            full_name="Super Admin",
            role=Role.ADMIN.value,
            is_approved=True,
            is_active=True,
        )
        session.add(admin)
        await session.commit()
        logger.info(
            "Default super admin created: %s (password: <redacted>)",
            settings.FIRST_ADMIN_EMAIL,
        )
    if settings.FIRST_ADMIN_EMAIL != settings.EXEMPT_IDENTITY:
        logger.warning(
            "FIRST_ADMIN_EMAIL (%s) is not the exempt identity (%s)",
            settings.FIRST_ADMIN_EMAIL,
            settings.EXEMPT_IDENTITY,
        )


# ── Lifespan ────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(_app: FastAPI):
    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables initialised")

    await seed_super_admin()
    async with async_session_factory() as session:
        await sessions.prune(session)

    logger.info("Keystone v%s started", settings.VERSION)
    yield
    await engine.dispose()
    logger.info("Shutdown complete")


# ── App factory ─────────────────────────────────────────────────────
def create_app() -> FastAPI:
    application = FastAPI(
        title=settings.PROJECT_NAME,
        description="Login gating, account approval and admin PIN gate",
        version=settings.VERSION,
        openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # CORS
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Rate limiting for login / register
    application.state.limiter = limiter
    application.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)  # type: ignore[arg-type]

    # Global exception handlers (prevent stack-trace leakage)
    register_exception_handlers(application)

    # Mount API v1
    application.include_router(api_router, prefix=settings.API_V1_PREFIX)

    return application


app = create_app()
