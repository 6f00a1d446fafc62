"""IdentityVerifier protocol — turns a provider-issued credential into a verified identity."""

from dataclasses import dataclass
from typing import Optional, Protocol


@dataclass(frozen=True)
class ExternalIdentity:
    subject: str
    email: str
    display_name: str
    picture_url: Optional[str] = None


class IdentityVerifier(Protocol):
    async def verify(self, raw_credential: str) -> ExternalIdentity: ...
