"""
Application configuration via pydantic-settings.

All settings are loaded from environment variables (and .env file).

Access and refresh tokens are signed with separate secrets (JWT_SECRET and
JWT_REFRESH_SECRET) so a leaked access-token key cannot mint refresh tokens.
"""

from __future__ import annotations

from typing import Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    mongodb_uri: str
    db_name: str = "marketplace"

    # Bounded store calls; timeouts surface as transient PyMongoError
    mongo_server_selection_timeout_ms: int = 5000
    mongo_socket_timeout_ms: int = 10000


class JWTSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    jwt_issuer: str = "marketplace-api"
    jwt_audience: str = "marketplace-client"
    access_token_ttl_seconds: int = 900
    refresh_token_ttl_seconds: int = 604800
    cookie_secure: bool = False

    jwt_secret: str = ""
    jwt_refresh_secret: str = ""
    jwt_algorithm: str = "HS256"


class OtpSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    otp_expires_minutes: int = 10
    otp_resend_cooldown_seconds: int = 60
    otp_max_attempts: int = 5


class RabbitMQSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Optional; without a broker every notification goes out via direct send
    rabbitmq_url: Optional[str] = None
    email_queue_name: str = "emailQueue"


class EmailSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    zepto_api_token: str = ""
    zepto_from_email: str = "noreply@marketplace.local"
    zepto_from_name: str = "Marketplace"
    email_timeout_seconds: float = 10.0


class GoogleSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    google_client_id: str = ""
    google_timeout_seconds: float = 5.0


class LoggingSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    log_level: str = "INFO"
    log_format: str = "console"  # "json" in production


class RateLimitSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    rate_limit_enabled: bool = True
    # Any `limits` storage URI; mongodb:// shares counters across workers
    rate_limit_storage_uri: str = "memory://"


class SentrySettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    sentry_dsn: str = ""
    sentry_send_pii: bool = False
    sentry_traces_sample_rate: float = 0.1


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Core
    env: str = "development"
    app_name: str = "Marketplace"
    frontend_url: str = "http://localhost:3000"

    # Single-use password reset link lifetime
    password_reset_ttl_seconds: int = 3600

    cors_origins: list[str] = ["*"]

    # OpenAPI docs URL (None disables the docs UI in production)
    docs_url: Optional[str] = "/docs"

    # Sub-configs (composed via model_validator below)
    db: Optional[DatabaseSettings] = None
    jwt: Optional[JWTSettings] = None
    otp: Optional[OtpSettings] = None
    rabbitmq: Optional[RabbitMQSettings] = None
    email: Optional[EmailSettings] = None
    google: Optional[GoogleSettings] = None
    rate_limit: Optional[RateLimitSettings] = None
    logging: Optional[LoggingSettings] = None
    sentry: Optional[SentrySettings] = None

    @model_validator(mode="after")
    def _populate_sub_configs(self) -> "AppSettings":
        # Populate sub-configs from the same env/dotenv source
        if self.db is None:
            self.db = DatabaseSettings()
        if self.jwt is None:
            self.jwt = JWTSettings()
        if self.otp is None:
            self.otp = OtpSettings()
        if self.rabbitmq is None:
            self.rabbitmq = RabbitMQSettings()
        if self.email is None:
            self.email = EmailSettings()
        if self.google is None:
            self.google = GoogleSettings()
        if self.rate_limit is None:
            self.rate_limit = RateLimitSettings()
        if self.logging is None:
            self.logging = LoggingSettings()
        if self.sentry is None:
            self.sentry = SentrySettings()

        return self

    @property
    def is_production(self) -> bool:
        return self.env == "production"
