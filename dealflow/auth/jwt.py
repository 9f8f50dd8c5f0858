"""HS256 access tokens naming the owner a request acts for.

Tokens are issued by the identity provider; this module only needs to verify
them and resolve the owner id. `issue_access_token` exists for scripts and
tests that stand in for the provider.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
from datetime import datetime, timedelta, timezone
from typing import Any

from dealflow.core.exceptions import AuthenticationError

ACCESS_TOKEN_USE = "access"
_HEADER = {"alg": "HS256", "typ": "JWT"}


def _encode_segment(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def _decode_segment(segment: str) -> bytes:
    try:
        return base64.urlsafe_b64decode(segment + "=" * (-len(segment) % 4))
    except ValueError as exc:
        # Also covers non-ASCII input, which b64decode rejects with ValueError.
        raise AuthenticationError("Invalid token encoding.") from exc


def _mac(signing_input: str, secret: str) -> bytes:
    return hmac.new(secret.encode("utf-8"), signing_input.encode("utf-8"), hashlib.sha256).digest()


def _require_secret(secret: str | None) -> str:
    if not secret:
        raise AuthenticationError("JWT secret must be configured.")
    return secret


def sign_claims(claims: dict[str, Any], secret: str) -> str:
    """Serialize and sign an arbitrary claim set."""
    secret = _require_secret(secret)
    header = _encode_segment(json.dumps(_HEADER, separators=(",", ":")).encode("utf-8"))
    body = _encode_segment(json.dumps(claims, separators=(",", ":"), sort_keys=True).encode("utf-8"))
    signing_input = f"{header}.{body}"
    return f"{signing_input}.{_encode_segment(_mac(signing_input, secret))}"


def issue_access_token(owner_id: int, secret: str, ttl_minutes: int = 60) -> str:
    now = datetime.now(timezone.utc)
    claims = {
        "sub": str(owner_id),
        "token_use": ACCESS_TOKEN_USE,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=ttl_minutes)).timestamp()),
    }
    return sign_claims(claims, secret)


def read_claims(token: str, secret: str) -> dict[str, Any]:
    """Return the claims of a correctly signed token. Expiry is not checked here."""
    secret = _require_secret(secret)
    parts = token.split(".")
    if len(parts) != 3:
        raise AuthenticationError("Invalid token format.")
    header, body, signature = parts

    if not hmac.compare_digest(_mac(f"{header}.{body}", secret), _decode_segment(signature)):
        raise AuthenticationError("Invalid token signature.")

    try:
        claims = json.loads(_decode_segment(body))
    except ValueError as exc:
        raise AuthenticationError("Invalid token payload.") from exc
    if not isinstance(claims, dict):
        raise AuthenticationError("Invalid token payload.")
    return claims


def verify_access_token(token: str, secret: str) -> int:
    """Check signature, expiry and token use; return the owner id from `sub`."""
    claims = read_claims(token, secret)

    try:
        expires_at = int(claims["exp"])
    except (KeyError, TypeError, ValueError) as exc:
        raise AuthenticationError("Token is missing a valid exp claim.") from exc
    if expires_at < int(datetime.now(timezone.utc).timestamp()):
        raise AuthenticationError("Token has expired.")

    if claims.get("token_use") != ACCESS_TOKEN_USE:
        raise AuthenticationError("Token is not an access token.")

    try:
        return int(claims["sub"])
    except (KeyError, TypeError, ValueError) as exc:
        raise AuthenticationError("Token claims are missing the user id.") from exc
