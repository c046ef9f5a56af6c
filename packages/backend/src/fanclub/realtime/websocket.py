"""WebSocket endpoints — /ws/realtime and /ws/notifications.

Learn: Each client connects to /ws/<channel>?token=JWT. The handler:
1. Authenticates via ?token= (or an Authorization: Bearer header)
2. Registers the socket with the channel's service
3. Reads client frames until the socket goes away; every frame counts
   as a heartbeat for the liveness sweep
4. Removes the connection (and its subscriptions) on the way out

A failed handshake never reaches the registry. The socket is accepted
first so the client actually sees close code 1008 and the reason string.
"""

from typing import AsyncIterator, Optional, Union

import structlog
from fastapi import APIRouter, WebSocket

from fanclub.auth.dependencies import credential_from_connection
from fanclub.auth.jwt import TokenError, user_id_from_token
from fanclub.realtime import get_notifications, get_realtime
from fanclub.realtime.connections import CLOSE_POLICY_VIOLATION

logger = structlog.get_logger()
router = APIRouter()


async def _authenticate(websocket: WebSocket) -> Optional[str]:
    """Return the user id for this handshake, or close the socket and return None."""
    token = credential_from_connection(websocket)
    reason = None
    user_id = None

    if not token:
        reason = "No token provided"
    else:
        try:
            user_id = user_id_from_token(token)
        except TokenError as e:
            logger.info("ws.auth_failed", path=websocket.url.path, error=str(e))
            reason = "Invalid token"

    await websocket.accept()
    if user_id is None:
        logger.info("ws.auth_rejected", path=websocket.url.path, reason=reason)
        await websocket.close(code=CLOSE_POLICY_VIOLATION, reason=reason)
    return user_id


async def _frames(websocket: WebSocket) -> AsyncIterator[Union[str, bytes]]:
    """Yield inbound frames until the client disconnects."""
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            logger.info("ws.client_disconnected", code=message.get("code"))
            return
        text = message.get("text")
        yield text if text is not None else message.get("bytes", b"")


@router.websocket("/ws/realtime")
async def realtime_websocket(websocket: WebSocket):
    """Topic-subscription channel: bets, club chat and the activity feed."""
    user_id = await _authenticate(websocket)
    if user_id is None:
        return

    service = get_realtime(websocket)
    conn = await service.connect(user_id, websocket)
    structlog.contextvars.bind_contextvars(user_id=user_id, connection_id=conn.id)

    try:
        async for raw in _frames(websocket):
            if conn.removed:
                break
            await service.handle_message(conn, raw)
    finally:
        await service.disconnect(conn)


@router.websocket("/ws/notifications")
async def notifications_websocket(websocket: WebSocket):
    """Per-user push channel. Inbound frames only keep the socket alive."""
    user_id = await _authenticate(websocket)
    if user_id is None:
        return

    service = get_notifications(websocket)
    conn = await service.connect(user_id, websocket)
    structlog.contextvars.bind_contextvars(user_id=user_id, connection_id=conn.id)

    try:
        async for _ in _frames(websocket):
            if conn.removed:
                break
            service.touch(conn)
    finally:
        await service.disconnect(conn)
