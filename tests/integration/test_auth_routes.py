"""
Integration tests for the /auth routes.

The app is built with a lifespan that injects services wired to the
in-memory fakes, so requests exercise routing, DTO validation, the refresh
cookie and the error handlers without MongoDB or RabbitMQ.
"""

from contextlib import asynccontextmanager

import pytest
from bson import ObjectId
from fastapi import FastAPI
from fastapi.testclient import TestClient

from errors import register_error_handlers
from infrastructure.notifications.protocol import JOB_FORGOT_PASSWORD, JOB_OTP_VERIFICATION
from routes.auth_routes import FORGOT_PASSWORD_MESSAGE, REFRESH_COOKIE
from routes.auth_routes import router as auth_router
from routes.limiter import AUTH_LIMIT_MESSAGE, OTP_LIMIT_MESSAGE, limiter
from schemas.models.user import UserDoc

PASSWORD = "secret123"


@pytest.fixture
def client(app_settings, auth_service, token_service):
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.settings = app_settings
        app.state.auth_service = auth_service
        app.state.token_service = token_service
        app.state.limiter = limiter
        yield

    app = FastAPI(lifespan=lifespan)
    register_error_handlers(app)
    app.include_router(auth_router)
    with TestClient(app) as c:
        yield c


@pytest.fixture(autouse=True)
def reset_limiter():
    # Counters live in process memory and would leak between tests
    limiter.reset()
    yield
    limiter.reset()


@pytest.fixture
def verified_user(users, hasher):
    user = UserDoc(
        id=ObjectId(),
        name="Ada",
        email="ada@example.com",
        password_hash=hasher.hash(PASSWORD),
        is_verified=True,
    )
    users.docs[user.id] = user
    return user


def _login(client, email="ada@example.com", password=PASSWORD):
    return client.post("/auth/login", json={"email": email, "password": password})


def _bearer(resp) -> dict:
    return {"Authorization": f"Bearer {resp.json()['tokens']['access_token']}"}


class TestRegistrationFlow:
    def test_register_then_verify(self, client, channel):
        resp = client.post(
            "/auth/register",
            json={"name": "Ada", "email": "Ada@Example.com", "password": PASSWORD},
        )
        assert resp.status_code == 201
        assert resp.json()["email"] == "ada@example.com"
        assert resp.json()["requires_verification"] is True

        code = channel.last(JOB_OTP_VERIFICATION).payload["otp"]
        resp = client.post("/auth/verify-otp", json={"email": "ada@example.com", "otp": code})
        assert resp.status_code == 200
        body = resp.json()
        assert body["user"]["is_verified"] is True
        assert body["tokens"]["token_type"] == "Bearer"
        assert client.cookies.get(REFRESH_COOKIE) == body["tokens"]["refresh_token"]

    def test_invalid_body_is_rejected(self, client):
        resp = client.post(
            "/auth/register",
            json={"name": "Ada", "email": "not-an-email", "password": PASSWORD},
        )
        assert resp.status_code == 422

    def test_login_before_verification(self, client):
        client.post(
            "/auth/register",
            json={"name": "Ada", "email": "ada@example.com", "password": PASSWORD},
        )
        resp = _login(client)
        assert resp.status_code == 403
        assert resp.json()["code"] == "email_not_verified"


class TestSessionFlow:
    def test_me_requires_bearer(self, client):
        resp = client.get("/auth/me")
        assert resp.status_code == 401
        assert resp.json()["code"] == "authentication_error"

    def test_me_with_access_token(self, client, verified_user):
        resp = client.get("/auth/me", headers=_bearer(_login(client)))
        assert resp.status_code == 200
        body = resp.json()
        assert body["email"] == "ada@example.com"
        assert "password_hash" not in body

    def test_wrong_password(self, client, verified_user):
        resp = _login(client, password="nope12345")
        assert resp.status_code == 401
        assert resp.json()["code"] == "invalid_credentials"

    def test_refresh_from_cookie_then_reuse(self, client, verified_user):
        first = _login(client).json()["tokens"]["refresh_token"]

        resp = client.post("/auth/refresh-token")
        assert resp.status_code == 200
        second = resp.json()["refresh_token"]
        assert second != first
        assert client.cookies.get(REFRESH_COOKIE) == second

        resp = client.post("/auth/refresh-token", json={"refresh_token": first})
        assert resp.status_code == 401
        assert resp.json()["code"] == "token_reuse_detected"

    def test_logout_clears_cookie(self, client, verified_user, refresh_tokens):
        resp = client.post("/auth/logout", headers=_bearer(_login(client)))
        assert resp.status_code == 200
        assert client.cookies.get(REFRESH_COOKIE) is None
        assert refresh_tokens.active_for(verified_user.id) == []

        resp = client.post("/auth/refresh-token")
        assert resp.status_code == 401

    def test_logout_requires_bearer(self, client, verified_user, refresh_tokens):
        _login(client)
        resp = client.post("/auth/logout")
        assert resp.status_code == 401
        assert len(refresh_tokens.active_for(verified_user.id)) == 1

    def test_logout_all_invalidates_access_tokens(self, client, verified_user):
        laptop = _login(client)
        _login(client)

        resp = client.post("/auth/logout-all", headers=_bearer(laptop))
        assert resp.status_code == 200
        assert resp.json()["sessions_revoked"] == 2

        resp = client.get("/auth/me", headers=_bearer(laptop))
        assert resp.status_code == 401
        assert resp.json()["code"] == "stale_session"

    def test_list_and_revoke_sessions(self, client, verified_user):
        headers = _bearer(_login(client))
        sessions = client.get("/auth/sessions", headers=headers).json()["sessions"]
        assert len(sessions) == 1

        token_id = sessions[0]["token_id"]
        assert client.delete(f"/auth/sessions/{token_id}", headers=headers).status_code == 200
        resp = client.delete(f"/auth/sessions/{token_id}", headers=headers)
        assert resp.status_code == 404


class TestPasswordFlow:
    def test_forgot_password_is_uniform(self, client, verified_user):
        known = client.post("/auth/forgot-password", json={"email": "ada@example.com"})
        unknown = client.post("/auth/forgot-password", json={"email": "who@example.com"})
        assert known.status_code == unknown.status_code == 200
        assert known.json() == unknown.json() == {
            "success": True,
            "message": FORGOT_PASSWORD_MESSAGE,
        }

    def test_reset_password(self, client, verified_user, channel):
        client.post("/auth/forgot-password", json={"email": "ada@example.com"})
        token = channel.last(JOB_FORGOT_PASSWORD).payload["reset_link"].split("token=")[1]

        resp = client.post("/auth/reset-password", json={"token": token, "password": "brandnew99"})
        assert resp.status_code == 200
        assert _login(client, password="brandnew99").status_code == 200

        resp = client.post("/auth/reset-password", json={"token": token, "password": "another123"})
        assert resp.status_code == 404
        assert resp.json()["code"] == "invalid_or_expired_token"

    def test_change_password(self, client, verified_user):
        headers = _bearer(_login(client))
        resp = client.post(
            "/auth/change-password",
            headers=headers,
            json={"current_password": PASSWORD, "new_password": "brandnew99"},
        )
        assert resp.status_code == 200
        assert client.get("/auth/me", headers=headers).status_code == 401
        assert _login(client, password="brandnew99").status_code == 200


class TestRateLimits:
    def test_forgot_password_is_limited_per_client(self, client, verified_user, channel):
        body = {"email": "ada@example.com"}
        for _ in range(5):
            assert client.post("/auth/forgot-password", json=body).status_code == 200

        resp = client.post("/auth/forgot-password", json=body)
        assert resp.status_code == 429
        assert resp.json() == {"error": OTP_LIMIT_MESSAGE, "code": "rate_limit_exceeded"}
        assert len(channel.sent) == 5

    def test_login_is_limited_per_client(self, client, verified_user):
        for _ in range(15):
            assert _login(client, password="nope12345").status_code == 401

        resp = _login(client)
        assert resp.status_code == 429
        assert resp.json()["error"] == AUTH_LIMIT_MESSAGE

    def test_limits_are_per_route(self, client, verified_user):
        for _ in range(5):
            client.post("/auth/forgot-password", json={"email": "ada@example.com"})
        assert _login(client).status_code == 200
