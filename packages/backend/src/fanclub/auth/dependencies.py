"""Auth helpers for HTTP routes and WebSocket handshakes.

Learn: HTTP routes use get_current_user as a Depends(). WebSockets can't
reuse it as-is — a failed handshake has to close the socket with a
policy-violation code instead of raising a 401 — so the handshake uses
credential_from_connection + user_id_from_token directly.
"""

from typing import Optional

from fastapi import Depends, Header, HTTPException
from starlette.requests import HTTPConnection

from fanclub.auth.jwt import TokenError, user_id_from_token


class CurrentIdentity:
    """Represents the authenticated user making the request."""

    def __init__(self, user_id: str):
        self.user_id = user_id

    def __repr__(self) -> str:
        return f"CurrentIdentity(user_id={self.user_id!r})"


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Extract the token part of an `Authorization: Bearer ...` header."""
    if authorization and authorization.startswith("Bearer "):
        return authorization[7:].strip() or None
    return None


def credential_from_connection(conn: HTTPConnection) -> Optional[str]:
    """Find a credential on a handshake: ?token= first, then Bearer header."""
    return conn.query_params.get("token") or bearer_token(
        conn.headers.get("authorization")
    )


async def get_current_user_optional(
    authorization: Optional[str] = Header(None),
) -> Optional[CurrentIdentity]:
    """Extract current identity (optional — returns None if no auth)."""
    token = bearer_token(authorization)
    if not token:
        return None
    try:
        return CurrentIdentity(user_id=user_id_from_token(token))
    except TokenError as e:
        raise HTTPException(
            status_code=401,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )


async def get_current_user(
    identity: Optional[CurrentIdentity] = Depends(get_current_user_optional),
) -> CurrentIdentity:
    """Extract current identity (required — 401 if no auth)."""
    if not identity:
        raise HTTPException(
            status_code=401,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return identity
