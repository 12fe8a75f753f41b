"""Bearer-token authentication for API requests.

A request is accepted when its Authorization header carries an HMAC-signed
JWT that verifies against the shared secret, has not expired and whose JWT
ID has not been revoked. The verified claims are returned so callers can
read the user id, e-mail address, JWT ID and expiry without parsing again.
"""

from __future__ import annotations

from collections.abc import Container
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

import jwt

_HMAC_ALGORITHMS = ["HS256", "HS384", "HS512"]

_MISSING_HEADER = "Authorization header is required"
_BAD_FORMAT = "Authorization header format must be: Bearer <token>"
_INVALID_TOKEN = "Invalid or expired token"
_REVOKED = "Token has been revoked"


class AuthenticationError(Exception):
    """The request could not be authenticated; maps to HTTP 401."""

    status_code = 401

    def __init__(self, message: str = _INVALID_TOKEN) -> None:
        super().__init__(message)


@dataclass(frozen=True)
class Claims:
    """The verified payload of an access token."""

    user_id: int = 0
    email: str = ""
    jti: str = ""
    expires_at: datetime | None = None


def _claims_from_payload(payload: dict[str, Any]) -> Claims:
    user_id = payload.get("user_id", 0)
    email = payload.get("email", "")
    jti = payload.get("jti", "")
    expiry = payload.get("exp")

    if isinstance(user_id, bool) or not isinstance(user_id, int) or user_id < 0:
        raise AuthenticationError()
    if not isinstance(email, str) or not isinstance(jti, str):
        raise AuthenticationError()

    expires_at = None
    if expiry is not None:
        expires_at = datetime.fromtimestamp(expiry, timezone.utc)
    return Claims(user_id=user_id, email=email, jti=jti, expires_at=expires_at)


def authenticate(
    authorization: str | None,
    secret: str,
    blacklist: Container[str] | None = None,
) -> Claims:
    """Verify an Authorization header value and return the token's claims.

    ``blacklist`` holds the JWT IDs of revoked tokens. When it is None the
    revocation check is skipped; when looking it up fails, the token is let
    through rather than rejecting every request.
    """
    if not authorization:
        raise AuthenticationError(_MISSING_HEADER)

    parts = authorization.split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise AuthenticationError(_BAD_FORMAT)
    encoded = parts[1]

    try:
        payload = jwt.decode(encoded, secret, algorithms=_HMAC_ALGORITHMS)
    except (jwt.InvalidTokenError, ValueError, TypeError) as exc:
        raise AuthenticationError(_INVALID_TOKEN) from exc

    claims = _claims_from_payload(payload)

    if blacklist is not None:
        try:
            revoked = claims.jti in blacklist
        except Exception:
            # An unavailable revocation store must not take the service down.
            revoked = False
        if revoked:
            raise AuthenticationError(_REVOKED)

    return claims