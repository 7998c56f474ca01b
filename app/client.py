"""
Async HTTP client for the Keystone auth API.

Keeps a locally cached identity (token + user) so a UI does not have to
re-authenticate on every action. That cache is *untrusted*: it is only ever
confirmed by ``verify()`` and is cleared by ``CachedIdentity.clear()`` when
verification fails or on logout, whatever the server answered.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

logger = logging.getLogger(__name__)


class AuthClientError(Exception):
    """Server refused a request; ``kind`` mirrors the API's ``error`` field."""

    def __init__(self, status_code: int, kind: str, message: str, payload: dict[str, Any]):
        self.status_code = status_code
        self.kind = kind
        self.message = message
        self.payload = payload
        super().__init__(f"{kind}: {message}")

    @property
    def requires_approval(self) -> bool:
        return bool(self.payload.get("requires_approval"))


@dataclass
class CachedIdentity:
    token: str | None = None
    user: dict[str, Any] | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.token is not None and self.user is not None

    def clear(self) -> None:
        self.token = None
        self.user = None


class AuthClient:
    def __init__(
        self,
        http: httpx.AsyncClient,
        identity: CachedIdentity | None = None,
        prefix: str = "/api/v1",
    ) -> None:
        self.http = http
        self.identity = identity or CachedIdentity()
        self.prefix = prefix

    def _url(self, path: str) -> str:
        return f"{self.prefix}{path}"

    def _auth_headers(self) -> dict[str, str]:
        if not self.identity.token:
            return {}
        return {"Authorization": f"Bearer {self.identity.token}"}

    @staticmethod
    def _raise_for_error(resp: httpx.Response) -> dict[str, Any]:
        try:
            data = resp.json()
        except ValueError:
            data = {}
        if resp.is_success:
            return data
        raise AuthClientError(
            resp.status_code,
            data.get("error", "HTTPError"),
            str(data.get("detail", resp.reason_phrase)),
            data,
        )

    async def login(self, identifier: str, password: str) -> dict[str, Any]:
        resp = await self.http.post(
            self._url("/auth/login"),
            json={"identifier": identifier, "password": password},
        )
        data = self._raise_for_error(resp)
        self.identity.token = data["token"]
        self.identity.user = data["user"]
        return data["user"]

    async def register(
        self, name: str, email: str, password: str, phone: str | None = None
    ) -> dict[str, Any]:
        """Returns the API response; caches the session only when one was issued."""
        resp = await self.http.post(
            self._url("/auth/register"),
            json={"name": name, "email": email, "password": password, "phone": phone},
        )
        data = self._raise_for_error(resp)
        if data.get("token") and data.get("user"):
            self.identity.token = data["token"]
            self.identity.user = data["user"]
        return data

    async def verify(self) -> dict[str, Any] | None:
        """Reconcile the cached identity with the server.

        Returns the current user, or ``None`` after discarding the cache.
        """
        if not self.identity.token:
            self.identity.clear()
            return None
        try:
            resp = await self.http.get(self._url("/auth/check"), headers=self._auth_headers())
        except httpx.HTTPError as e:
            logger.warning("Session check failed, discarding cached identity: %s", e)
            self.identity.clear()
            return None
        if resp.status_code != 200:
            logger.info("Session no longer valid (%d), discarding cached identity", resp.status_code)
            self.identity.clear()
            return None

        self.identity.user = resp.json()["user"]
        return self.identity.user

    async def restore(
        self, token: str | None, user: dict[str, Any] | None = None
    ) -> dict[str, Any] | None:
        """Adopt an identity saved by an earlier process, trusting it only once verified."""
        self.identity.token = token
        self.identity.user = user
        return await self.verify()

    async def logout(self) -> None:
        """Ask the server to end the session; the local cache is cleared regardless."""
        headers = self._auth_headers()
        try:
            if headers:
                await self.http.post(self._url("/auth/logout"), headers=headers)
        except httpx.HTTPError as e:
            logger.warning("Server-side logout failed: %s", e)
        finally:
            self.identity.clear()
