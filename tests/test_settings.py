"""Tests for the login-hours settings endpoints."""

import pytest
from httpx import AsyncClient

from app.core.config import settings
from app.models.user import Role

API = "/api/v1"

OFFICE_HOURS = {"login_time_restriction": {"enabled": True, "start_time": "9:00", "end_time": "18:00"}}


@pytest.fixture
async def boss_headers(make_user, login) -> dict[str, str]:
    await make_user(settings.EXEMPT_IDENTITY)
    return await login(settings.EXEMPT_IDENTITY)


@pytest.mark.asyncio
async def test_default_settings(async_client: AsyncClient, admin_headers):
    resp = await async_client.get(f"{API}/settings", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json() == {
        "login_time_restriction": {"enabled": False, "start_time": "00:00", "end_time": "23:59"}
    }


@pytest.mark.asyncio
async def test_any_role_can_read(async_client: AsyncClient, make_user, login):
    await make_user("rahim@keystone.test", role=Role.COLLECTOR)
    headers = await login("rahim@keystone.test")
    assert (await async_client.get(f"{API}/settings", headers=headers)).status_code == 200


@pytest.mark.asyncio
async def test_unauthenticated_read(async_client: AsyncClient):
    assert (await async_client.get(f"{API}/settings")).status_code == 401


@pytest.mark.asyncio
async def test_exempt_identity_updates_hours(async_client: AsyncClient, boss_headers):
    resp = await async_client.put(f"{API}/settings", json=OFFICE_HOURS, headers=boss_headers)
    assert resp.status_code == 200
    assert resp.json()["login_time_restriction"] == {
        "enabled": True,
        "start_time": "09:00",
        "end_time": "18:00",
    }

    resp = await async_client.get(f"{API}/settings", headers=boss_headers)
    assert resp.json()["login_time_restriction"]["start_time"] == "09:00"


@pytest.mark.asyncio
async def test_other_admin_cannot_update(async_client: AsyncClient, admin_headers):
    resp = await async_client.put(f"{API}/settings", json=OFFICE_HOURS, headers=admin_headers)
    assert resp.status_code == 403
    assert resp.json()["error"] == "PermissionDenied"

    resp = await async_client.get(f"{API}/settings", headers=admin_headers)
    assert resp.json()["login_time_restriction"]["enabled"] is False


@pytest.mark.asyncio
@pytest.mark.parametrize("bad", ["24:00", "9", "09:60", "nine", ""])
async def test_malformed_time_rejected(async_client: AsyncClient, boss_headers, bad):
    body = {"login_time_restriction": {"enabled": True, "start_time": bad, "end_time": "18:00"}}
    resp = await async_client.put(f"{API}/settings", json=body, headers=boss_headers)
    assert resp.status_code == 422
    data = resp.json()
    assert data["error"] == "ValidationError"
    assert data["success"] is False
    assert data["detail"] == "Invalid time format. Use HH:MM"
    assert data["errors"][0]["loc"][-1] == "start_time"


@pytest.mark.asyncio
async def test_restriction_applies_to_next_login(
    async_client: AsyncClient, boss_headers, make_user, set_clock
):
    await make_user("admin@keystone.test")
    await async_client.put(f"{API}/settings", json=OFFICE_HOURS, headers=boss_headers)

    set_clock(20, 0)
    resp = await async_client.post(
        f"{API}/auth/login", json={"identifier": "admin@keystone.test", "password": "secret123"}
    )
    assert resp.status_code == 403
    assert resp.json()["error"] == "OutsideAllowedHours"


@pytest.mark.asyncio
async def test_existing_sessions_survive_window_change(
    async_client: AsyncClient, boss_headers, admin_headers, set_clock
):
    await async_client.put(f"{API}/settings", json=OFFICE_HOURS, headers=boss_headers)
    set_clock(20, 0)
    assert (await async_client.get(f"{API}/auth/check", headers=admin_headers)).status_code == 200
