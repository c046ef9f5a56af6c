"""JWT token creation and verification.

Learn: JWT (JSON Web Token) provides stateless authentication.
The login flow that issues tokens lives outside this service; here we only
need to mint tokens (for tests and the dev CLI) and turn a presented token
back into a user identity.

Tokens issued by older clients carry the user in `userId` or `id` instead
of the standard `sub` claim, so identity resolution checks all three.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from fanclub.config import settings

_USER_CLAIMS = ("sub", "userId", "id")


class TokenError(Exception):
    """Raised when token creation/verification fails."""


def create_access_token(
    user_id: str,
    expires_minutes: Optional[int] = None,
    **extra_claims,
) -> str:
    """Create a JWT access token."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "type": "access",
        "exp": now + timedelta(
            minutes=expires_minutes or settings.access_token_expire_minutes
        ),
        "iat": now,
        **extra_claims,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_token(token: str) -> dict:
    """Verify and decode a JWT token.

    Returns the payload dict on success.
    Raises TokenError on failure.
    """
    try:
        payload = jwt.decode(
            token, settings.jwt_secret, algorithms=[settings.jwt_algorithm]
        )
        return payload
    except jwt.ExpiredSignatureError:
        raise TokenError("Token has expired")
    except jwt.InvalidTokenError as e:
        raise TokenError(f"Invalid token: {e}")


def user_id_from_token(token: str) -> str:
    """Verify a token and return the user identity it carries."""
    payload = verify_token(token)
    for claim in _USER_CLAIMS:
        value = payload.get(claim)
        if value:
            return str(value)
    raise TokenError("Token has no user identity")
