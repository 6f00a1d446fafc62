"""
Application error hierarchy and FastAPI exception handlers.

AppError is the base for all typed errors. The global exception handler
converts AppError subclasses to consistent JSON responses.

The broad classes (ValidationError, AuthenticationError, ...) fix the HTTP
status; the narrow subclasses below each of them give every failure branch of
the token and OTP lifecycles its own error_code so callers can tell them apart
even where several share a status.

Non-AppError exceptions bubble up as 500s (with Sentry reporting in production).
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from shared.logging import get_logger

log = get_logger(__name__)


class AppError(Exception):
    """Base application error. All typed errors inherit from this."""

    status_code: int = 500
    error_code: str = "internal_error"

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        details: Optional[Any] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.field = field
        self.details = details

    def to_dict(self) -> dict:
        payload: dict = {"error": self.message, "code": self.error_code}
        if self.field is not None:
            payload["field"] = self.field
        if self.details is not None:
            payload["details"] = self.details
        return payload


class ValidationError(AppError):
    status_code = 400
    error_code = "validation_error"


class AuthenticationError(AppError):
    status_code = 401
    error_code = "authentication_error"


class ForbiddenError(AppError):
    status_code = 403
    error_code = "forbidden"


class NotFoundError(AppError):
    status_code = 404
    error_code = "not_found"


class ConflictError(AppError):
    status_code = 409
    error_code = "conflict"


class RateLimitError(AppError):
    status_code = 429
    error_code = "rate_limit_exceeded"


class ServiceUnavailableError(AppError):
    status_code = 503
    error_code = "service_unavailable"


# ── Credentials and tokens ────────────────────────────────────────────────────


class InvalidCredentialsError(AuthenticationError):
    error_code = "invalid_credentials"


class TokenExpiredError(AuthenticationError):
    error_code = "token_expired"


class InvalidTokenError(AuthenticationError):
    error_code = "invalid_token"


class WrongTokenTypeError(InvalidTokenError):
    error_code = "wrong_token_type"


class StaleSessionError(AuthenticationError):
    error_code = "stale_session"


class TokenReuseError(AuthenticationError):
    error_code = "token_reuse_detected"


class TokenMismatchError(AuthenticationError):
    error_code = "token_mismatch"


class RefreshTokenNotFoundError(AuthenticationError):
    error_code = "refresh_token_not_found"


class AccountUnavailableError(AuthenticationError):
    error_code = "account_unavailable"


class IdentityVerificationError(AuthenticationError):
    error_code = "identity_verification_failed"


# ── Account state ─────────────────────────────────────────────────────────────


class AccountDisabledError(ForbiddenError):
    error_code = "account_disabled"


class EmailNotVerifiedError(ForbiddenError):
    error_code = "email_not_verified"


class AlreadyRegisteredError(ConflictError):
    error_code = "already_registered"


class AlreadyVerifiedError(ConflictError):
    error_code = "already_verified"


class PendingVerificationError(ConflictError):
    """Account exists but is unverified; a fresh OTP has just been sent."""

    error_code = "pending_verification"


class InvalidOrExpiredTokenError(NotFoundError):
    error_code = "invalid_or_expired_token"


# ── One-time codes ────────────────────────────────────────────────────────────


class OtpNotFoundError(NotFoundError):
    error_code = "otp_not_found_or_expired"


class IncorrectOtpError(ValidationError):
    error_code = "incorrect_otp"


class OtpAttemptsExceededError(RateLimitError):
    error_code = "otp_attempts_exceeded"


class OtpCooldownError(RateLimitError):
    error_code = "otp_cooldown_active"


# ── Collaborators ─────────────────────────────────────────────────────────────


class NotificationUnavailableError(ServiceUnavailableError):
    error_code = "notification_unavailable"


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the FastAPI app."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
        log.warning("rate_limit_exceeded", path=request.url.path)
        error = RateLimitError(exc.detail or "Too many requests. Please slow down.")
        return JSONResponse(status_code=error.status_code, content=error.to_dict())

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        # Sentry captures the exception itself when initialised
        log.error(
            "unhandled_exception",
            path=request.url.path,
            error_type=type(exc).__name__,
            exc_info=exc,
        )
        return JSONResponse(
            status_code=500,
            content={"error": "An internal server error occurred.", "code": "internal_error"},
        )
