"""
V1 API router aggregator — wires all endpoint modules together.
"""

from fastapi import APIRouter

from app.api.v1.endpoints import admin_panel, auth, health, settings, users

api_router = APIRouter()

# Login, registration, session check, logout
api_router.include_router(auth.router)

# Approval workflow & account lifecycle
api_router.include_router(users.router)

# Login-hours restriction
api_router.include_router(settings.router)

# PIN-gated admin panel
api_router.include_router(admin_panel.router)

# Liveness
api_router.include_router(health.router)
