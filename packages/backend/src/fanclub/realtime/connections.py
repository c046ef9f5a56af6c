"""Connection registry — live WebSockets keyed by user.

Learn: A user can be connected from several devices at once, so the
registry maps user_id → {connection_id → Connection}. Each Connection is
registered and removed on its own.

Lifecycle of one Connection:
  register() → OPEN → remove() → CLOSED
remove() is triggered by the client closing, by a failed write, or by the
liveness sweep when no heartbeat arrived within the stale timeout. There is
no resume: a reconnecting client gets a brand-new Connection.

Concurrency: everything runs on one asyncio event loop. Map mutations in
register() and remove() happen without an await in between, so no other
task ever observes a half-updated registry. Sends snapshot the connection
list before awaiting, because a concurrent remove() may run while a write
is suspended.
"""

import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Union

import structlog
from pydantic import BaseModel
from starlette.websockets import WebSocketState

from fanclub.realtime.messages import encode

logger = structlog.get_logger()

# RFC 6455 close codes
CLOSE_NORMAL = 1000
CLOSE_GOING_AWAY = 1001
CLOSE_POLICY_VIOLATION = 1008


@dataclass(eq=False)
class Connection:
    """One authenticated live socket belonging to a user."""

    user_id: str
    websocket: Any
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    subscriptions: set[str] = field(default_factory=set)
    last_live_at: float = 0.0
    removed: bool = False


def is_open(websocket: Any) -> bool:
    """True while both sides of the socket are still connected."""
    return (
        websocket.client_state == WebSocketState.CONNECTED
        and websocket.application_state == WebSocketState.CONNECTED
    )


class ConnectionRegistry:
    """Tracks live sockets per user and delivers messages to them.

    on_remove is called synchronously for every connection that leaves the
    registry; the realtime channel uses it to drop the connection's topic
    subscriptions.
    """

    def __init__(
        self,
        name: str,
        on_remove: Optional[Callable[[Connection], None]] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.name = name
        self._on_remove = on_remove
        self._clock = clock
        self._by_user: dict[str, dict[str, Connection]] = {}
        self._log = logger.bind(channel=name)

    # ─── Lifecycle ───────────────────────────────────────

    def register(self, user_id: str, websocket: Any) -> Connection:
        """Store a new connection for user_id. Never fails."""
        conn = Connection(
            user_id=user_id,
            websocket=websocket,
            last_live_at=self._clock(),
        )
        self._by_user.setdefault(user_id, {})[conn.id] = conn
        self._log.info(
            "ws.connection_registered",
            user_id=user_id,
            connection_id=conn.id,
            user_connections=len(self._by_user[user_id]),
        )
        return conn

    def touch(self, conn: Connection) -> None:
        """Record a heartbeat. No-op once the connection is removed."""
        if not conn.removed:
            conn.last_live_at = self._clock()

    async def remove(
        self,
        conn: Connection,
        code: int = CLOSE_NORMAL,
        reason: str = "",
    ) -> bool:
        """Tear a connection down. Idempotent; returns False if already gone."""
        if conn.removed:
            return False
        conn.removed = True

        user_conns = self._by_user.get(conn.user_id)
        if user_conns is not None:
            user_conns.pop(conn.id, None)
            if not user_conns:
                del self._by_user[conn.user_id]

        if self._on_remove is not None:
            self._on_remove(conn)

        if is_open(conn.websocket):
            try:
                await conn.websocket.close(code=code, reason=reason)
            except Exception as e:
                self._log.debug(
                    "ws.close_failed", connection_id=conn.id, error=str(e)
                )

        self._log.info(
            "ws.connection_removed",
            user_id=conn.user_id,
            connection_id=conn.id,
            code=code,
        )
        return True

    async def sweep(self, stale_timeout: float) -> int:
        """Remove every connection silent for longer than stale_timeout seconds."""
        now = self._clock()
        stale = [
            conn
            for conns in self._by_user.values()
            for conn in conns.values()
            if now - conn.last_live_at > stale_timeout
        ]
        removed = 0
        for conn in stale:
            # An earlier close may have yielded long enough for a heartbeat.
            silent_for = self._clock() - conn.last_live_at
            if conn.removed or silent_for <= stale_timeout:
                continue
            self._log.info(
                "ws.connection_stale",
                user_id=conn.user_id,
                connection_id=conn.id,
                silent_for=round(silent_for, 1),
            )
            if await self.remove(conn, code=CLOSE_GOING_AWAY, reason="Heartbeat timeout"):
                removed += 1
        return removed

    async def close_all(self, reason: str = "Server shutting down") -> None:
        for conn in self.all_connections():
            await self.remove(conn, code=CLOSE_GOING_AWAY, reason=reason)

    # ─── Delivery ────────────────────────────────────────

    async def send_to(self, user_id: str, message: Union[BaseModel, dict]) -> int:
        """Write message to every open socket of user_id.

        Returns the number of sockets written. Sockets that are no longer
        open are skipped and left for the sweep; a socket whose write
        raises is removed on the spot. A message that can't be serialized
        is logged and delivered nowhere.
        """
        connections = list(self._by_user.get(user_id, {}).values())
        if not connections:
            return 0
        text = self._encode(message, user_id=user_id)
        if text is None:
            return 0
        return await self._deliver(connections, text)

    async def send_to_connection(
        self, conn: Connection, message: Union[BaseModel, dict]
    ) -> int:
        """Write message to one connection only. Returns 1 if written."""
        if conn.removed:
            return 0
        text = self._encode(message, user_id=conn.user_id)
        if text is None:
            return 0
        return await self._deliver([conn], text)

    def _encode(self, message: Union[BaseModel, dict], user_id: str) -> Optional[str]:
        try:
            return encode(message)
        except (TypeError, ValueError) as e:
            self._log.error(
                "realtime.encode_failed",
                user_id=user_id,
                message_type=type(message).__name__,
                error=str(e),
            )
            return None

    async def _deliver(self, connections: list[Connection], text: str) -> int:
        delivered = 0
        for conn in connections:
            if conn.removed or not is_open(conn.websocket):
                continue
            try:
                await conn.websocket.send_text(text)
            except Exception as e:
                self._log.warning(
                    "ws.delivery_failed",
                    user_id=conn.user_id,
                    connection_id=conn.id,
                    error=str(e),
                )
                await self.remove(conn)
            else:
                delivered += 1
        return delivered

    # ─── Introspection ───────────────────────────────────

    def connections_for(self, user_id: str) -> list[Connection]:
        return list(self._by_user.get(user_id, {}).values())

    def all_connections(self) -> list[Connection]:
        return [c for conns in self._by_user.values() for c in conns.values()]

    def connected_users(self) -> list[str]:
        return list(self._by_user)

    @property
    def connection_count(self) -> int:
        return sum(len(conns) for conns in self._by_user.values())

    def __len__(self) -> int:
        return self.connection_count

    def __contains__(self, conn: object) -> bool:
        return (
            isinstance(conn, Connection)
            and conn.id in self._by_user.get(conn.user_id, {})
        )
