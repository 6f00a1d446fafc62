"""Unit tests for AppError hierarchy."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from errors import (
    AccountDisabledError,
    AccountUnavailableError,
    AlreadyRegisteredError,
    AlreadyVerifiedError,
    AppError,
    AuthenticationError,
    ConflictError,
    EmailNotVerifiedError,
    ForbiddenError,
    IdentityVerificationError,
    IncorrectOtpError,
    InvalidCredentialsError,
    InvalidOrExpiredTokenError,
    InvalidTokenError,
    NotFoundError,
    NotificationUnavailableError,
    OtpAttemptsExceededError,
    OtpCooldownError,
    OtpNotFoundError,
    PendingVerificationError,
    RateLimitError,
    RefreshTokenNotFoundError,
    ServiceUnavailableError,
    StaleSessionError,
    TokenExpiredError,
    TokenMismatchError,
    TokenReuseError,
    ValidationError,
    WrongTokenTypeError,
    register_error_handlers,
)


class TestAppErrorSubclasses:
    def test_validation_error(self):
        e = ValidationError("bad input")
        assert e.status_code == 400
        assert e.error_code == "validation_error"
        assert e.message == "bad input"

    def test_authentication_error(self):
        e = AuthenticationError("not authenticated")
        assert e.status_code == 401
        assert e.error_code == "authentication_error"

    def test_forbidden_error(self):
        e = ForbiddenError("not allowed")
        assert e.status_code == 403
        assert e.error_code == "forbidden"

    def test_not_found_error(self):
        e = NotFoundError("resource missing")
        assert e.status_code == 404
        assert e.error_code == "not_found"

    def test_conflict_error(self):
        e = ConflictError("already exists")
        assert e.status_code == 409
        assert e.error_code == "conflict"

    def test_rate_limit_error(self):
        e = RateLimitError("slow down")
        assert e.status_code == 429
        assert e.error_code == "rate_limit_exceeded"

    def test_service_unavailable_error(self):
        e = ServiceUnavailableError("down")
        assert e.status_code == 503
        assert e.error_code == "service_unavailable"


@pytest.mark.parametrize(
    "cls, base, status",
    [
        (InvalidCredentialsError, AuthenticationError, 401),
        (TokenExpiredError, AuthenticationError, 401),
        (InvalidTokenError, AuthenticationError, 401),
        (WrongTokenTypeError, InvalidTokenError, 401),
        (StaleSessionError, AuthenticationError, 401),
        (TokenReuseError, AuthenticationError, 401),
        (TokenMismatchError, AuthenticationError, 401),
        (RefreshTokenNotFoundError, AuthenticationError, 401),
        (AccountUnavailableError, AuthenticationError, 401),
        (IdentityVerificationError, AuthenticationError, 401),
        (AccountDisabledError, ForbiddenError, 403),
        (EmailNotVerifiedError, ForbiddenError, 403),
        (AlreadyRegisteredError, ConflictError, 409),
        (AlreadyVerifiedError, ConflictError, 409),
        (PendingVerificationError, ConflictError, 409),
        (InvalidOrExpiredTokenError, NotFoundError, 404),
        (OtpNotFoundError, NotFoundError, 404),
        (IncorrectOtpError, ValidationError, 400),
        (OtpAttemptsExceededError, RateLimitError, 429),
        (OtpCooldownError, RateLimitError, 429),
        (NotificationUnavailableError, ServiceUnavailableError, 503),
    ],
)
def test_specific_errors_inherit_status(cls, base, status):
    e = cls("x")
    assert isinstance(e, base)
    assert e.status_code == status


def test_specific_error_codes_are_distinct():
    classes = [
        TokenExpiredError,
        InvalidTokenError,
        WrongTokenTypeError,
        StaleSessionError,
        TokenReuseError,
        TokenMismatchError,
        RefreshTokenNotFoundError,
        AccountUnavailableError,
        OtpNotFoundError,
        IncorrectOtpError,
        OtpAttemptsExceededError,
        OtpCooldownError,
    ]
    codes = [c.error_code for c in classes]
    assert len(set(codes)) == len(codes)


class TestAppErrorToDict:
    def test_basic(self):
        e = NotFoundError("user not found")
        assert e.to_dict() == {"error": "user not found", "code": "not_found"}

    @pytest.mark.parametrize(
        "kwargs, key, value",
        [
            ({"field": "email"}, "field", "email"),
            ({"details": {"remaining_attempts": 2}}, "details", {"remaining_attempts": 2}),
        ],
        ids=["with_field", "with_details"],
    )
    def test_optional_key_present(self, kwargs, key, value):
        e = ValidationError("invalid", **kwargs)
        assert e.to_dict()[key] == value

    def test_no_optional_keys_when_absent(self):
        d = NotFoundError("missing").to_dict()
        assert "field" not in d
        assert "details" not in d


class TestErrorHandlers:
    @pytest.fixture
    def client(self):
        app = FastAPI()
        register_error_handlers(app)

        @app.get("/cooldown")
        async def cooldown():
            raise OtpCooldownError("wait", details={"seconds_remaining": 12})

        @app.get("/boom")
        async def boom():
            raise RuntimeError("unexpected")

        return TestClient(app, raise_server_exceptions=False)

    def test_app_error_rendered(self, client):
        resp = client.get("/cooldown")
        assert resp.status_code == 429
        assert resp.json() == {
            "error": "wait",
            "code": "otp_cooldown_active",
            "details": {"seconds_remaining": 12},
        }

    def test_unhandled_error_is_500(self, client):
        resp = client.get("/boom")
        assert resp.status_code == 500
        assert resp.json()["code"] == "internal_error"

    def test_base_class_is_app_error(self):
        assert issubclass(TokenReuseError, AppError)
