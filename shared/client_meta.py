"""
Device metadata recorded on every refresh credential.

client_meta_from_request() resolves the caller's address through the usual
proxy headers so the session listing shows where each device signed in from.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Request

USER_AGENT_MAX_LENGTH = 200

# Checked in priority order before falling back to the socket peer
_IP_HEADERS = (
    "CF-Connecting-IP",
    "True-Client-IP",
    "X-Forwarded-For",
    "X-Real-IP",
)


@dataclass(frozen=True)
class ClientMeta:
    user_agent: Optional[str] = None
    ip_address: Optional[str] = None

    def normalized(self) -> "ClientMeta":
        ua = self.user_agent[:USER_AGENT_MAX_LENGTH] if self.user_agent else None
        return ClientMeta(user_agent=ua, ip_address=self.ip_address or None)


def get_client_ip(request: Request) -> str:
    """Return the real client IP, or ``""`` if none can be found."""
    for header in _IP_HEADERS:
        value = request.headers.get(header)
        if value:
            client_ip = value.split(",")[0].strip()
            if client_ip:
                return client_ip
    return request.client.host if request.client else ""


def client_meta_from_request(request: Request) -> ClientMeta:
    return ClientMeta(
        user_agent=request.headers.get("User-Agent"),
        ip_address=get_client_ip(request) or None,
    ).normalized()
