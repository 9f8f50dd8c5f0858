"""Identity collaborators resolving the current owner of a request."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from dealflow.auth.jwt import verify_access_token
from dealflow.core.config import get_config
from dealflow.core.exceptions import AuthenticationError


class IdentityProvider(Protocol):
    def get_current_owner(self) -> int: ...


@dataclass(frozen=True)
class StaticIdentity:
    """Fixed owner for scripts, workers and tests."""

    owner_id: int | None

    def get_current_owner(self) -> int:
        if self.owner_id is None:
            raise AuthenticationError("No authenticated user.")
        return int(self.owner_id)


@dataclass(frozen=True)
class TokenIdentity:
    """Owner taken from the `sub` claim of a signed access token."""

    token: str | None
    secret: str | None = None

    def get_current_owner(self) -> int:
        if not self.token:
            raise AuthenticationError("No authenticated user.")
        return verify_access_token(self.token, secret=self.secret or get_config().JWT_SECRET)


def bearer_identity(authorization: str | None) -> TokenIdentity:
    """Build an identity from an `Authorization: Bearer ...` header value."""
    if authorization is None or not authorization.strip():
        return TokenIdentity(token=None)
    parts = authorization.strip().split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return TokenIdentity(token=None)
    return TokenIdentity(token=parts[1].strip())
