"""Tests for dashboard authentication."""

from __future__ import annotations

import time

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from fuel_monitor.analytics.service import DailyMetricsService
from fuel_monitor.capture.orchestrator import DailyCaptureOrchestrator
from fuel_monitor.config.schema import UserConfig
from fuel_monitor.dashboard.app import create_app
from fuel_monitor.dashboard.auth import (
    SESSION_COOKIE,
    hash_password,
    sign_session,
    verify_password,
    verify_session,
)
from fuel_monitor.dashboard.views import DashboardViewAssembler


# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------


class TestPasswordHashing:
    def test_hash_and_verify(self) -> None:
        h = hash_password("my-secure-password")
        assert verify_password("my-secure-password", h)

    def test_wrong_password_rejected(self) -> None:
        h = hash_password("correct-password")
        assert not verify_password("wrong-password", h)

    def test_different_salts(self) -> None:
        assert hash_password("same") != hash_password("same")

    def test_malformed_hash_rejected(self) -> None:
        assert not verify_password("anything", "")
        assert not verify_password("anything", "no-colon-here")


# ---------------------------------------------------------------------------
# Session signing
# ---------------------------------------------------------------------------


class TestSessionSigning:
    def test_sign_and_verify(self) -> None:
        data = {"authenticated": True, "username": "admin"}
        cookie = sign_session(data, "secret")
        assert verify_session(cookie, "secret", 3600) == data

    def test_tampered_cookie_rejected(self) -> None:
        cookie = sign_session({"authenticated": True}, "secret")
        tampered = cookie[:-1] + ("a" if cookie[-1] != "a" else "b")
        assert verify_session(tampered, "secret", 3600) is None

    def test_wrong_secret_rejected(self) -> None:
        cookie = sign_session({"authenticated": True}, "secret1")
        assert verify_session(cookie, "secret2", 3600) is None

    def test_expired_session_rejected(self) -> None:
        cookie = sign_session({"authenticated": True}, "secret", issued_at=time.time() - 7200)
        assert verify_session(cookie, "secret", 3600) is None

    def test_malformed_cookie_rejected(self) -> None:
        assert verify_session("not.valid", "secret", 3600) is None
        assert verify_session("", "secret", 3600) is None


# ---------------------------------------------------------------------------
# Middleware and login routes
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def authed_client(config, repo, clock):
    """Client for an app with an admin (admin-password-1) and a viewer (viewer-password-1)."""
    config = config.model_copy(deep=True)
    config.dashboard.auth.users = [
        UserConfig(username="admin", password_hash=hash_password("admin-password-1"), role="admin"),
        UserConfig(username="viewer", password_hash=hash_password("viewer-password-1")),
        UserConfig(username="former", password_hash=hash_password("former-password-1"),
                   enabled=False),
    ]
    config.dashboard.auth.session_secret = "test-secret-for-tests"

    metrics = DailyMetricsService(repo, clock, config)
    orchestrator = DailyCaptureOrchestrator(repo, repo, metrics, clock, config)
    app = create_app(config, repo, metrics, orchestrator, DashboardViewAssembler(repo, clock))
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def _login(client: AsyncClient, username: str, password: str) -> None:
    resp = await client.post("/api/login", json={"username": username, "password": password})
    assert resp.status_code == 200
    client.cookies.set(SESSION_COOKIE, resp.cookies[SESSION_COOKIE])


@pytest.mark.asyncio
class TestAuthEnabled:
    async def test_api_returns_401(self, authed_client) -> None:
        resp = await authed_client.get("/api/dashboard")
        assert resp.status_code == 401
        assert resp.json()["error"] == "Authentication required"

    async def test_health_is_public(self, authed_client) -> None:
        resp = await authed_client.get("/api/health")
        assert resp.status_code == 200

    async def test_login_success_sets_cookie(self, authed_client) -> None:
        resp = await authed_client.post(
            "/api/login", json={"username": "admin", "password": "admin-password-1"},
        )
        assert resp.status_code == 200
        assert resp.json()["role"] == "admin"
        assert SESSION_COOKIE in resp.headers.get("set-cookie", "")

    async def test_login_wrong_password(self, authed_client) -> None:
        resp = await authed_client.post(
            "/api/login", json={"username": "admin", "password": "wrong"},
        )
        assert resp.status_code == 401

    async def test_disabled_user_cannot_login(self, authed_client) -> None:
        resp = await authed_client.post(
            "/api/login", json={"username": "former", "password": "former-password-1"},
        )
        assert resp.status_code == 401

    async def test_admin_access(self, authed_client) -> None:
        await _login(authed_client, "admin", "admin-password-1")
        assert (await authed_client.get("/api/dashboard")).status_code == 200
        resp = await authed_client.put("/api/admin/view-mode", json={"view_mode": "realtime"})
        assert resp.status_code == 200
        body = (await authed_client.get("/api/dashboard")).json()
        assert body["view_mode"] == "realtime"

    async def test_viewer_is_limited_to_closing(self, authed_client) -> None:
        await _login(authed_client, "viewer", "viewer-password-1")
        body = (await authed_client.get("/api/dashboard")).json()
        assert body["view_mode"] == "closing"

        assert (await authed_client.get("/api/admin/view-mode")).status_code == 403
        resp = await authed_client.post("/api/admin/capture-daily-closing")
        assert resp.status_code == 403
        assert (await authed_client.get("/api/cumulative-readings")).status_code == 200

    async def test_logout_clears_cookie(self, authed_client) -> None:
        resp = await authed_client.get("/api/logout")
        assert resp.status_code == 200
        assert SESSION_COOKIE in resp.headers.get("set-cookie", "")
