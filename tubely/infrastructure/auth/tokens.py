"""
Bearer token validation.

Access tokens are HS256 JWTs signed with the shared jwt_secret. The
subject claim carries the user's UUID; validate() returns it or raises
AuthError. Issuing tokens (login, refresh) belongs to the identity
service; make_jwt exists for it and for tests.
"""

import logging
from datetime import datetime, timedelta, timezone
from uuid import UUID

from jose import JWTError, jwt
from jose.exceptions import ExpiredSignatureError, JWTClaimsError

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
DEFAULT_ISSUER = "tubely-access"


class AuthError(Exception):
    """Raised when a bearer token is missing, malformed, expired or forged."""
    pass


def make_jwt(
    user_id: UUID,
    secret: str,
    expires_in: timedelta = timedelta(hours=1),
    issuer: str = DEFAULT_ISSUER,
) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "iss": issuer,
        "sub": str(user_id),
        "iat": now,
        "exp": now + expires_in,
    }
    return jwt.encode(payload, secret, algorithm=ALGORITHM)


def validate_jwt(token: str, secret: str, issuer: str = DEFAULT_ISSUER) -> UUID:
    """Return the user id carried by a valid token."""
    if not secret:
        raise AuthError("Token secret is not configured")

    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[ALGORITHM],
            issuer=issuer,
        )
    except ExpiredSignatureError as e:
        logger.warning("Access token has expired")
        raise AuthError("Token has expired") from e
    except JWTClaimsError as e:
        logger.warning("Access token claims validation failed: %s", str(e))
        raise AuthError("Invalid token claims") from e
    except JWTError as e:
        logger.warning("Access token validation failed: %s", str(e))
        raise AuthError("Invalid token") from e

    try:
        return UUID(payload.get("sub", ""))
    except (TypeError, ValueError) as e:
        raise AuthError("Token subject is not a user id") from e


class TokenValidator:
    """The auth collaborator: validate(token) -> user id."""

    def __init__(self, secret: str, issuer: str = DEFAULT_ISSUER) -> None:
        self._secret = secret
        self._issuer = issuer

    def validate(self, token: str) -> UUID:
        return validate_jwt(token, self._secret, issuer=self._issuer)
