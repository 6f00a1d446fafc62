"""
Shared fixtures: services wired to the in-memory fakes in tests/fakes.py.

Nothing here touches MongoDB, RabbitMQ or the network.
"""

from unittest.mock import AsyncMock

import pytest
from argon2 import PasswordHasher as Argon2Hasher

from config import AppSettings, DatabaseSettings, JWTSettings, OtpSettings
from fakes import (
    FakeClock,
    FakeOtpRepository,
    FakeRefreshTokenRepository,
    FakeUserRepository,
    RecordingChannel,
)
from infrastructure.identity.protocol import ExternalIdentity
from infrastructure.jwt_codec import JWTCodec
from services.auth_service import AuthService
from services.otp_service import OtpService
from services.token_service import TokenService
from shared.crypto import PasswordHasher

ACCESS_SECRET = "access-secret-for-tests-0123456789abcdef"
REFRESH_SECRET = "refresh-secret-for-tests-0123456789abcdef"


@pytest.fixture(autouse=True)
def ignore_dotenv(monkeypatch):
    """Keep a developer's .env out of every test; config comes from monkeypatch.setenv() only."""
    import pydantic_settings.sources.providers.dotenv as dotenv_provider

    monkeypatch.setattr(dotenv_provider, "dotenv_values", lambda *a, **kw: {})


@pytest.fixture
def jwt_settings():
    return JWTSettings(jwt_secret=ACCESS_SECRET, jwt_refresh_secret=REFRESH_SECRET)


@pytest.fixture
def app_settings(jwt_settings):
    return AppSettings(
        db=DatabaseSettings(mongodb_uri="mongodb://localhost:27017/"),
        jwt=jwt_settings,
        otp=OtpSettings(),
        frontend_url="https://shop.example.com",
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def codec(jwt_settings):
    # Wall clock; advancing the fake clock only ages stored records
    return JWTCodec(jwt_settings)


@pytest.fixture
def hasher():
    # Minimum argon2 cost keeps the suite fast
    return PasswordHasher(Argon2Hasher(time_cost=1, memory_cost=8, parallelism=1))


@pytest.fixture
def users():
    return FakeUserRepository()


@pytest.fixture
def refresh_tokens(codec):
    return FakeRefreshTokenRepository(codec)


@pytest.fixture
def otps():
    return FakeOtpRepository()


@pytest.fixture
def channel():
    return RecordingChannel()


@pytest.fixture
def identity():
    verifier = AsyncMock()
    verifier.verify.return_value = ExternalIdentity(
        subject="google-sub-1",
        email="gina@example.com",
        display_name="Gina",
        picture_url="https://lh3.googleusercontent.com/a/gina",
    )
    return verifier


@pytest.fixture
def token_service(codec, users, refresh_tokens, clock):
    return TokenService(codec, users, refresh_tokens, clock=clock)


@pytest.fixture
def otp_service(otps, channel, clock):
    return OtpService(otps, channel, OtpSettings(), clock=clock)


@pytest.fixture
def auth_service(app_settings, users, token_service, otp_service, hasher, channel, identity, clock):
    return AuthService(
        settings=app_settings,
        users=users,
        tokens=token_service,
        otps=otp_service,
        password_hasher=hasher,
        notifications=channel,
        identity_verifier=identity,
        clock=clock,
    )
