"""
FastAPI dependency providers.

All injectable dependencies are defined here as plain functions used with
FastAPI's Depends() system. Services are built once in the app lifespan and
read back from app.state.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from config import AppSettings
from errors import AuthenticationError
from services.auth_service import AuthService
from services.token_service import AuthenticatedUser, TokenService

_bearer = HTTPBearer(auto_error=False)


def get_settings(request: Request) -> AppSettings:
    """Return the AppSettings instance stored on app.state."""
    return request.app.state.settings


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
    token_service: TokenService = Depends(get_token_service),
) -> AuthenticatedUser:
    """Resolve the ``Authorization: Bearer`` access token to a live account."""
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Authorization token missing")
    return await token_service.authenticate(credentials.credentials)
