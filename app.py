"""
FastAPI application factory.
create_app() is the single entry point for building the app.

Every long-lived resource (Mongo client, RabbitMQ connection, HTTP clients)
is opened in the lifespan, injected into the services stored on app.state,
and closed again at shutdown.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import httpx
import sentry_sdk
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pymongo.asynchronous.mongo_client import AsyncMongoClient

from config import AppSettings
from errors import register_error_handlers
from infrastructure.email.zeptomail import ZeptoMailProvider
from infrastructure.identity.google import GoogleIdentityVerifier
from infrastructure.jwt_codec import JWTCodec
from infrastructure.notifications.direct import DirectEmailChannel
from infrastructure.notifications.fallback import FallbackNotificationChannel
from infrastructure.notifications.rabbitmq import RabbitMQChannel
from repositories.indexes import (
    OTPS_COLLECTION,
    REFRESH_TOKENS_COLLECTION,
    USERS_COLLECTION,
    ensure_indexes,
)
from repositories.otp_repository import OtpRepository
from repositories.refresh_token_repository import RefreshTokenRepository
from repositories.user_repository import UserRepository
from routes.auth_routes import router as auth_router
from routes.health_routes import router as health_router
from routes.limiter import limiter
from services.auth_service import AuthService
from services.otp_service import OtpService
from services.token_service import TokenService
from shared.crypto import PasswordHasher
from shared.logging import get_logger, setup_logging

log = get_logger(__name__)


def create_app(settings: Optional[AppSettings] = None) -> FastAPI:
    """Create and return a fully configured FastAPI application."""
    if settings is None:
        settings = AppSettings()

    setup_logging(settings.logging)

    # Initialise Sentry before anything else so it captures startup errors
    if settings.sentry.sentry_dsn:
        sentry_sdk.init(
            dsn=settings.sentry.sentry_dsn,
            send_default_pii=settings.sentry.sentry_send_pii,
            traces_sample_rate=settings.sentry.sentry_traces_sample_rate,
            environment=settings.env,
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        # ── Startup ──────────────────────────────────────────────────────────
        mongo_client: AsyncMongoClient = AsyncMongoClient(
            settings.db.mongodb_uri,
            tz_aware=True,
            serverSelectionTimeoutMS=settings.db.mongo_server_selection_timeout_ms,
            socketTimeoutMS=settings.db.mongo_socket_timeout_ms,
        )
        db = mongo_client[settings.db.db_name]
        app.state.mongo_client = mongo_client
        app.state.db = db
        app.state.settings = settings

        await ensure_indexes(db)

        email_http = httpx.AsyncClient(timeout=settings.email.email_timeout_seconds)
        identity_http = httpx.AsyncClient(timeout=settings.google.google_timeout_seconds)

        # RabbitMQ is optional; without it every notification is sent directly
        rabbitmq = None
        if settings.rabbitmq.rabbitmq_url:
            rabbitmq = RabbitMQChannel(
                settings.rabbitmq.rabbitmq_url, settings.rabbitmq.email_queue_name
            )
            await rabbitmq.connect()
        app.state.rabbitmq = rabbitmq

        provider = ZeptoMailProvider(
            settings.email,
            email_http,
            app_name=settings.app_name,
            otp_expires_minutes=settings.otp.otp_expires_minutes,
        )
        notifications = FallbackNotificationChannel(rabbitmq, DirectEmailChannel(provider))

        codec = JWTCodec(settings.jwt)
        users = UserRepository(db[USERS_COLLECTION])
        refresh_tokens = RefreshTokenRepository(db[REFRESH_TOKENS_COLLECTION], codec)
        otps = OtpRepository(db[OTPS_COLLECTION])

        token_service = TokenService(codec, users, refresh_tokens)
        otp_service = OtpService(otps, notifications, settings.otp)
        app.state.token_service = token_service
        app.state.auth_service = AuthService(
            settings=settings,
            users=users,
            tokens=token_service,
            otps=otp_service,
            password_hasher=PasswordHasher(),
            notifications=notifications,
            identity_verifier=GoogleIdentityVerifier(settings.google, identity_http),
        )
        log.info("app_started", env=settings.env, db=settings.db.db_name)

        yield

        # ── Shutdown ─────────────────────────────────────────────────────────
        if rabbitmq is not None:
            await rabbitmq.close()
        await email_http.aclose()
        await identity_http.aclose()
        await mongo_client.close()
        log.info("app_stopped")

    app = FastAPI(
        title=settings.app_name,
        version="1.0.0",
        docs_url=settings.docs_url,
        redoc_url=None,
        lifespan=lifespan,
    )

    # Credentials are allowed so the refresh cookie reaches /auth
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.limiter = limiter
    register_error_handlers(app)
    app.include_router(health_router)
    app.include_router(auth_router)

    return app
