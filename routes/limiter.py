"""
Per-client request limits for the public /auth endpoints (slowapi).

Buckets are keyed by the caller's IP as resolved through the proxy headers.
The per-account OTP cooldown still applies on top of these limits.
"""

from slowapi import Limiter

from config import RateLimitSettings
from shared.client_meta import get_client_ip

_settings = RateLimitSettings()

# Credential-bearing endpoints: register, verify-otp, login, admin/login, google, reset-password
AUTH_LIMIT = "15 per 15 minutes"
AUTH_LIMIT_MESSAGE = "Too many authentication attempts. Please try again in 15 minutes."

# Endpoints that send email: resend-otp, forgot-password
OTP_LIMIT = "5 per hour"
OTP_LIMIT_MESSAGE = "Too many OTP requests. Please try again in 1 hour."

REFRESH_LIMIT = "30 per 15 minutes"
REFRESH_LIMIT_MESSAGE = "Too many token refresh requests."

limiter = Limiter(
    key_func=get_client_ip,
    storage_uri=_settings.rate_limit_storage_uri,
    strategy="fixed-window",
    enabled=_settings.rate_limit_enabled,
)
