"""Tests for login, registration, session check and logout."""

import pytest
from httpx import AsyncClient

from app.core.config import settings
from app.models.user import Role

API = "/api/v1"
PASSWORD = "secret123"


async def _login(client: AsyncClient, identifier: str, password: str = PASSWORD):
    return await client.post(
        f"{API}/auth/login", json={"identifier": identifier, "password": password}
    )


# ── Login ───────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_login_success_returns_token_and_cookie(async_client: AsyncClient, make_user):
    await make_user("karim@keystone.test", role=Role.MANAGER)
    resp = await _login(async_client, "karim@keystone.test")
    assert resp.status_code == 200
    data = resp.json()
    assert data["token"]
    assert data["token_type"] == "bearer"
    assert data["user"]["role"] == "manager"
    assert data["user"]["last_login_at"] is not None

    set_cookie = resp.headers.get("set-cookie", "")
    assert "access_token=" in set_cookie
    assert "httponly" in set_cookie.lower()


@pytest.mark.asyncio
async def test_login_identifier_is_case_insensitive(async_client: AsyncClient, make_user):
    await make_user("karim@keystone.test")
    resp = await _login(async_client, "  Karim@Keystone.TEST ")
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_login_with_phone_number(async_client: AsyncClient, make_user):
    await make_user("rahim@keystone.test", role=Role.COLLECTOR, phone="01712345678")
    resp = await _login(async_client, "01712345678")
    assert resp.status_code == 200
    assert resp.json()["user"]["email"] == "rahim@keystone.test"


@pytest.mark.asyncio
async def test_wrong_password(async_client: AsyncClient, make_user):
    await make_user("karim@keystone.test")
    resp = await _login(async_client, "karim@keystone.test", "wrong-password")
    assert resp.status_code == 401
    assert resp.json()["error"] == "InvalidCredentials"
    assert "set-cookie" not in resp.headers


@pytest.mark.asyncio
async def test_unknown_user_looks_like_wrong_password(async_client: AsyncClient):
    resp = await _login(async_client, "ghost@keystone.test")
    assert resp.status_code == 401
    assert resp.json()["error"] == "InvalidCredentials"


@pytest.mark.asyncio
async def test_blank_fields_rejected(async_client: AsyncClient):
    resp = await async_client.post(f"{API}/auth/login", json={"identifier": " ", "password": ""})
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_member_cannot_login(async_client: AsyncClient, make_user):
    await make_user("member@keystone.test", role=Role.MEMBER)
    resp = await _login(async_client, "member@keystone.test")
    assert resp.status_code == 403
    assert resp.json()["error"] == "RoleForbidden"


@pytest.mark.asyncio
async def test_member_with_wrong_password_gets_invalid_credentials(
    async_client: AsyncClient, make_user
):
    await make_user("member@keystone.test", role=Role.MEMBER)
    resp = await _login(async_client, "member@keystone.test", "wrong-password")
    assert resp.status_code == 401
    assert resp.json()["error"] == "InvalidCredentials"


@pytest.mark.asyncio
async def test_pending_account_is_told_to_wait(async_client: AsyncClient, make_user):
    await make_user("new@keystone.test", is_approved=False)
    resp = await _login(async_client, "new@keystone.test")
    assert resp.status_code == 403
    data = resp.json()
    assert data["error"] == "PendingApproval"
    assert data["requires_approval"] is True
    assert "pending approval" in data["detail"]


@pytest.mark.asyncio
async def test_inactive_account_refused(async_client: AsyncClient, make_user):
    await make_user("gone@keystone.test", is_active=False)
    resp = await _login(async_client, "gone@keystone.test")
    assert resp.status_code == 403
    assert resp.json()["error"] == "AccountInactive"


# ── Login hours ─────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_exempt_identity_logs_in_outside_hours(
    async_client: AsyncClient, make_user, login_hours, set_clock
):
    await make_user(settings.EXEMPT_IDENTITY)
    await login_hours("09:00", "18:00")
    set_clock(23, 0)
    resp = await _login(async_client, settings.EXEMPT_IDENTITY)
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_admin_refused_outside_hours(
    async_client: AsyncClient, make_user, login_hours, set_clock
):
    await make_user("admin@keystone.test")
    await login_hours("09:00", "18:00")

    set_clock(23, 0)
    resp = await _login(async_client, "admin@keystone.test")
    assert resp.status_code == 403
    data = resp.json()
    assert data["error"] == "OutsideAllowedHours"
    assert data["time_restricted"] is True
    assert data["detail"] == "Please login between 9:00 AM and 6:00 PM."
    assert data["allowed_time"] == {"start": "09:00", "end": "18:00", "current": "23:00"}

    set_clock(10, 0)
    resp = await _login(async_client, "admin@keystone.test")
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_overnight_window(async_client: AsyncClient, make_user, login_hours, set_clock):
    await make_user("night@keystone.test", role=Role.SUPERVISOR)
    await login_hours("22:00", "06:00")

    set_clock(23, 30)
    assert (await _login(async_client, "night@keystone.test")).status_code == 200

    set_clock(12, 0)
    assert (await _login(async_client, "night@keystone.test")).status_code == 403


@pytest.mark.asyncio
async def test_pending_reported_before_hours(
    async_client: AsyncClient, make_user, login_hours, set_clock
):
    await make_user("new@keystone.test", is_approved=False)
    await login_hours("09:00", "18:00")
    set_clock(23, 0)
    resp = await _login(async_client, "new@keystone.test")
    assert resp.json()["error"] == "PendingApproval"


# ── Registration ────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_register_requires_approval(async_client: AsyncClient):
    resp = await async_client.post(
        f"{API}/auth/register",
        json={"name": "Karim", "email": "Karim@X.com", "password": "secret1"},
    )
    assert resp.status_code == 201
    data = resp.json()
    assert data["requires_approval"] is True
    assert data["token"] is None
    assert data["user"] is None
    assert "set-cookie" not in resp.headers


@pytest.mark.asyncio
async def test_register_duplicate_email(async_client: AsyncClient, make_user):
    await make_user("karim@x.com")
    resp = await async_client.post(
        f"{API}/auth/register",
        json={"name": "Karim", "email": "karim@x.com", "password": "secret1"},
    )
    assert resp.status_code == 409
    assert resp.json()["error"] == "ConflictError"


@pytest.mark.asyncio
async def test_register_duplicate_phone(async_client: AsyncClient, make_user):
    await make_user("first@x.com", phone="01812345678")
    resp = await async_client.post(
        f"{API}/auth/register",
        json={"name": "Second", "email": "second@x.com", "password": "secret1", "phone": "01812345678"},
    )
    assert resp.status_code == 409


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        {"name": "K", "email": "k@x.com", "password": "secret1"},
        {"name": "Karim99", "email": "k@x.com", "password": "secret1"},
        {"name": "Karim", "email": "not-an-email", "password": "secret1"},
        {"name": "Karim", "email": "k@x.com", "password": "short"},
        {"name": "Karim", "email": "k@x.com", "password": "secret1", "phone": "12345"},
    ],
)
async def test_register_validation(async_client: AsyncClient, payload):
    resp = await async_client.post(f"{API}/auth/register", json=payload)
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_register_accepts_bengali_name(async_client: AsyncClient):
    resp = await async_client.post(
        f"{API}/auth/register",
        json={"name": "করিম রহমান", "email": "bn@x.com", "password": "secret1"},
    )
    assert resp.status_code == 201


@pytest.mark.asyncio
async def test_register_without_approval_signs_in(async_client: AsyncClient, monkeypatch):
    monkeypatch.setattr(settings, "REGISTRATION_REQUIRES_APPROVAL", False)
    resp = await async_client.post(
        f"{API}/auth/register",
        json={"name": "Karim", "email": "karim@x.com", "password": "secret1"},
    )
    assert resp.status_code == 201
    data = resp.json()
    assert data["requires_approval"] is False
    assert data["token"]
    assert data["user"]["role"] == "admin"
    assert data["user"]["is_approved"] is True


@pytest.mark.asyncio
async def test_registration_to_approval_flow(async_client: AsyncClient, admin_headers):
    resp = await async_client.post(
        f"{API}/auth/register",
        json={"name": "Karim", "email": "karim@x.com", "password": "secret1"},
    )
    assert resp.json()["requires_approval"] is True

    pending = await async_client.get(f"{API}/users/pending", headers=admin_headers)
    karim = next(u for u in pending.json() if u["email"] == "karim@x.com")
    assert karim["is_approved"] is False
    assert karim["role"] == "admin"

    refused = await _login(async_client, "karim@x.com", "secret1")
    assert refused.json()["error"] == "PendingApproval"

    approved = await async_client.post(f"{API}/users/{karim['id']}/approve", headers=admin_headers)
    assert approved.status_code == 200
    assert approved.json()["is_approved"] is True

    resp = await _login(async_client, "karim@x.com", "secret1")
    assert resp.status_code == 200
    assert resp.json()["token"]


# ── Session check / logout ──────────────────────────────────────────
@pytest.mark.asyncio
async def test_check_with_bearer_header(async_client: AsyncClient, make_user, login):
    await make_user("karim@keystone.test")
    headers = await login("karim@keystone.test")
    resp = await async_client.get(f"{API}/auth/check", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["authenticated"] is True
    assert resp.json()["user"]["email"] == "karim@keystone.test"


@pytest.mark.asyncio
async def test_check_with_cookie(async_client: AsyncClient, make_user):
    await make_user("karim@keystone.test")
    await _login(async_client, "karim@keystone.test")
    resp = await async_client.get(f"{API}/auth/check")
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_check_without_credentials(async_client: AsyncClient):
    resp = await async_client.get(f"{API}/auth/check")
    assert resp.status_code == 401
    assert resp.json()["error"] == "SessionRevoked"
    assert resp.headers["www-authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_logout_revokes_session(async_client: AsyncClient, make_user, login):
    await make_user("karim@keystone.test")
    headers = await login("karim@keystone.test")

    resp = await async_client.post(f"{API}/auth/logout", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["success"] is True

    resp = await async_client.get(f"{API}/auth/check", headers=headers)
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Session has been logged out"


@pytest.mark.asyncio
async def test_logout_other_sessions_survive(async_client: AsyncClient, make_user, login):
    await make_user("karim@keystone.test")
    first = await login("karim@keystone.test")
    second = await login("karim@keystone.test")

    await async_client.post(f"{API}/auth/logout", headers=first)
    resp = await async_client.get(f"{API}/auth/check", headers=second)
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_logout_without_session_still_succeeds(async_client: AsyncClient):
    resp = await async_client.post(
        f"{API}/auth/logout", headers={"Authorization": "Bearer not-a-real-token"}
    )
    assert resp.status_code == 200
    assert "Max-Age=0" in resp.headers.get("set-cookie", "")


@pytest.mark.asyncio
async def test_health(async_client: AsyncClient):
    resp = await async_client.get(f"{API}/health")
    assert resp.status_code == 200
    assert resp.json() == {"db": True}


# ── Password change ─────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_change_password(async_client: AsyncClient, make_user, login):
    await make_user("karim@keystone.test")
    headers = await login("karim@keystone.test")

    resp = await async_client.put(
        f"{API}/auth/change-password",
        json={"current_password": PASSWORD, "new_password": "new-secret"},
        headers=headers,
    )
    assert resp.status_code == 200
    assert resp.json()["message"] == "Password changed successfully"

    assert (await _login(async_client, "karim@keystone.test")).status_code == 401
    assert (await _login(async_client, "karim@keystone.test", "new-secret")).status_code == 200
    # The session that made the change keeps working
    assert (await async_client.get(f"{API}/auth/check", headers=headers)).status_code == 200


@pytest.mark.asyncio
async def test_change_password_wrong_current(async_client: AsyncClient, make_user, login):
    await make_user("karim@keystone.test")
    headers = await login("karim@keystone.test")

    resp = await async_client.put(
        f"{API}/auth/change-password",
        json={"current_password": "not-my-password", "new_password": "new-secret"},
        headers=headers,
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "ValidationError"
    assert resp.json()["detail"] == "Current password is incorrect"
    assert (await _login(async_client, "karim@keystone.test")).status_code == 200


@pytest.mark.asyncio
async def test_change_password_too_short(async_client: AsyncClient, make_user, login):
    await make_user("karim@keystone.test")
    headers = await login("karim@keystone.test")

    resp = await async_client.put(
        f"{API}/auth/change-password",
        json={"current_password": PASSWORD, "new_password": "abc"},
        headers=headers,
    )
    assert resp.status_code == 422
    assert resp.json()["detail"] == "Password must be at least 6 characters long"


@pytest.mark.asyncio
async def test_change_password_requires_session(async_client: AsyncClient):
    resp = await async_client.put(
        f"{API}/auth/change-password",
        json={"current_password": PASSWORD, "new_password": "new-secret"},
    )
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_register_validation_envelope(async_client: AsyncClient):
    resp = await async_client.post(
        f"{API}/auth/register", json={"name": "Karim", "email": "nope", "password": "secret1"}
    )
    assert resp.status_code == 422
    data = resp.json()
    assert data["error"] == "ValidationError"
    assert data["detail"] == "Please enter a valid email address"
