"""Dashboard authentication: cookie sessions with admin / viewer roles.

Auth is disabled when no users are configured (the default); every caller
is then treated as an admin.

Password hashing: SHA-256 with a random salt.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
import logging
import secrets
import time

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.types import ASGIApp, Receive, Scope, Send

from fuel_monitor.config.schema import AuthConfig, UserConfig

logger = logging.getLogger(__name__)

SALT_LENGTH = 32  # bytes
SESSION_COOKIE = "fm_session"

# Paths that bypass authentication
PUBLIC_PATHS = frozenset({"/api/login", "/api/logout", "/api/health"})


# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------


def hash_password(password: str) -> str:
    """Hash a password with a random salt. Returns ``salt_hex:hash_hex``."""
    salt = secrets.token_hex(SALT_LENGTH)
    h = hashlib.sha256((salt + password).encode()).hexdigest()
    return f"{salt}:{h}"


def verify_password(password: str, stored_hash: str) -> bool:
    if ":" not in stored_hash:
        return False
    salt, expected = stored_hash.split(":", 1)
    actual = hashlib.sha256((salt + password).encode()).hexdigest()
    return hmac.compare_digest(actual, expected)


# ---------------------------------------------------------------------------
# Session cookie signing
# ---------------------------------------------------------------------------


def sign_session(data: dict, secret: str, issued_at: float | None = None) -> str:
    """Create a signed, timestamped session cookie value."""
    payload = base64.urlsafe_b64encode(json.dumps(data).encode()).decode()
    timestamp = str(int(time.time() if issued_at is None else issued_at))
    message = f"{payload}.{timestamp}"
    sig = hmac.new(secret.encode(), message.encode(), hashlib.sha256).hexdigest()
    return f"{message}.{sig}"


def verify_session(cookie_value: str, secret: str, max_age: int) -> dict | None:
    """Verify and decode a signed session cookie. Returns *None* if invalid or expired."""
    parts = cookie_value.split(".")
    if len(parts) != 3:
        return None

    payload_b64, ts_str, signature = parts
    message = f"{payload_b64}.{ts_str}"
    expected = hmac.new(secret.encode(), message.encode(), hashlib.sha256).hexdigest()
    if not hmac.compare_digest(signature, expected):
        return None

    try:
        issued_at = int(ts_str)
    except ValueError:
        return None
    if time.time() - issued_at > max_age:
        return None

    try:
        return json.loads(base64.urlsafe_b64decode(payload_b64))
    except (ValueError, UnicodeDecodeError):
        return None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def find_user(auth_config: AuthConfig, username: str) -> UserConfig | None:
    for user in auth_config.users:
        if user.username == username:
            return user
    return None


def get_session(request: Request) -> dict | None:
    """Get the verified session from the request cookie, or None."""
    auth_config = request.app.state.config.dashboard.auth
    cookie = request.cookies.get(SESSION_COOKIE)
    if not cookie:
        return None
    return verify_session(cookie, auth_config.session_secret, auth_config.session_max_age_seconds)


def current_user(request: Request) -> tuple[str, str]:
    """``(username, role)`` of the caller. Auth disabled means an anonymous admin."""
    auth_config = request.app.state.config.dashboard.auth
    if not auth_config.users:
        return "", "admin"
    session = get_session(request)
    if not session:
        return "", "viewer"
    return session.get("username", ""), session.get("role", "viewer")


def is_admin(request: Request) -> bool:
    return current_user(request)[1] == "admin"


def require_admin(request: Request) -> JSONResponse | None:
    """Return a 403 response if the current user is not an admin. None if OK."""
    if is_admin(request):
        return None
    return JSONResponse({"error": "Admin access required"}, status_code=403)


# ---------------------------------------------------------------------------
# ASGI middleware
# ---------------------------------------------------------------------------


class AuthMiddleware:
    """ASGI middleware rejecting unauthenticated API requests with 401 JSON."""

    def __init__(self, app: ASGIApp, auth_config: AuthConfig) -> None:
        self.app = app
        self.auth_config = auth_config

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope)
        if request.url.path in PUBLIC_PATHS or not self.auth_config.users:
            await self.app(scope, receive, send)
            return

        cookie = request.cookies.get(SESSION_COOKIE)
        if cookie:
            session = verify_session(
                cookie,
                self.auth_config.session_secret,
                self.auth_config.session_max_age_seconds,
            )
            if session and session.get("authenticated"):
                await self.app(scope, receive, send)
                return

        response = JSONResponse({"error": "Authentication required"}, status_code=401)
        await response(scope, receive, send)


# ---------------------------------------------------------------------------
# Login / logout routes
# ---------------------------------------------------------------------------

auth_router = APIRouter()


class LoginRequest(BaseModel):
    username: str
    password: str


@auth_router.post("/api/login")
async def login(request: Request, body: LoginRequest) -> JSONResponse:
    auth_config = request.app.state.config.dashboard.auth

    user = find_user(auth_config, body.username)
    if user and user.enabled and verify_password(body.password, user.password_hash):
        cookie_value = sign_session(
            {"authenticated": True, "username": user.username, "role": user.role},
            auth_config.session_secret,
        )
        response = JSONResponse({"ok": True, "username": user.username, "role": user.role})
        response.set_cookie(
            key=SESSION_COOKIE,
            value=cookie_value,
            max_age=auth_config.session_max_age_seconds,
            httponly=True,
            samesite="lax",
            path="/",
        )
        logger.info("Login successful: %s (role=%s)", user.username, user.role)
        return response

    logger.warning("Failed login attempt: %s", body.username)
    return JSONResponse({"error": "Invalid credentials"}, status_code=401)


@auth_router.get("/api/logout")
async def logout() -> JSONResponse:
    response = JSONResponse({"ok": True})
    response.delete_cookie(SESSION_COOKIE, path="/")
    return response


# ---------------------------------------------------------------------------
# CLI helper: generate password hash
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    import getpass
    import sys

    if "--set-password" in sys.argv:
        username = input("Username [admin]: ").strip() or "admin"
        role = input("Role [admin]: ").strip() or "admin"
        pw = getpass.getpass("Password: ")
        if pw != getpass.getpass("Confirm password: "):
            print("Passwords do not match.")
            sys.exit(1)

        print("\nAdd the following to your config.yaml:\n")
        print("dashboard:")
        print("  auth:")
        print("    users:")
        print(f'      - username: "{username}"')
        print(f'        password_hash: "{hash_password(pw)}"')
        print(f'        role: "{role}"')
    else:
        print("Usage: python -m fuel_monitor.dashboard.auth --set-password")
