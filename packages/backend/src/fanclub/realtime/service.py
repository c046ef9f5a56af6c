"""Realtime service — topic subscriptions and fan-out over /ws/realtime.

Learn: RealtimeService glues a ConnectionRegistry to a SubscriptionIndex:

  client frame → handle_message() → subscribe / unsubscribe / chat / ping
  domain event → notify_*() → broadcast(topic) → subscribers_of(topic)
               → notify(user) → registry.send_to(user)

Delivery is fire-and-forget. Nothing is stored; a user who isn't connected
(or isn't subscribed) when an event fires never sees it, and a send to
nobody is just a no-op. Callers never have to handle a failure from here.

The activity feed is public: every activity subscriber sees every user's
activity. Chat messages are broadcast to the club topic and not persisted.
"""

import time
import uuid
from typing import Any, Callable, Union

import structlog
from pydantic import BaseModel

from fanclub.realtime.connections import Connection, ConnectionRegistry
from fanclub.realtime.messages import (
    ActivityEvent,
    ActivityUpdateMessage,
    BetUpdate,
    BetUpdateMessage,
    BetUpdateType,
    ChatMessage,
    ChatMessageEvent,
    ConnectionEstablished,
    ConnectionInfo,
    ErrorMessage,
    MalformedMessageError,
    Ping,
    Pong,
    SendChatMessage,
    SubscribeActivity,
    SubscribeBet,
    SubscribeClub,
    SubscriptionConfirmed,
    SubscriptionInfo,
    UnsubscribeActivity,
    UnsubscribeBet,
    UnsubscribeClub,
    UnsubscriptionConfirmed,
    parse_client_message,
)
from fanclub.realtime.subscriptions import (
    ACTIVITY_TOPIC,
    Subscription,
    SubscriptionIndex,
    bet_topic,
    club_topic,
)

logger = structlog.get_logger()

Message = Union[BaseModel, dict]


def _subscription_info(sub: Subscription) -> SubscriptionInfo:
    kind = sub.kind
    return SubscriptionInfo(
        subscription=kind,
        bet_id=sub.topic_id if kind == "bet" else None,
        club_id=sub.topic_id if kind == "club" else None,
    )


class RealtimeService:
    """Connection registry + subscription index + broadcaster."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self.index = SubscriptionIndex()
        self.registry = ConnectionRegistry(
            "realtime", on_remove=self.index.drop_all, clock=clock
        )

    # ─── Connection lifecycle ────────────────────────────

    async def connect(self, user_id: str, websocket: Any) -> Connection:
        """Register an authenticated socket and greet it."""
        conn = self.registry.register(user_id, websocket)
        await self.registry.send_to_connection(
            conn,
            ConnectionEstablished(data=ConnectionInfo(user_id=user_id)),
        )
        return conn

    async def disconnect(self, conn: Connection) -> None:
        await self.registry.remove(conn)

    async def sweep(self, stale_timeout: float) -> int:
        return await self.registry.sweep(stale_timeout)

    async def close(self) -> None:
        await self.registry.close_all()

    # ─── Delivery ────────────────────────────────────────

    async def notify(self, user_id: str, message: Message) -> int:
        """Send directly to every socket of one user."""
        return await self.registry.send_to(user_id, message)

    async def broadcast(self, topic: str, message: Message) -> int:
        """Send to every user subscribed to topic. Returns sockets reached."""
        subscribers = self.index.subscribers_of(topic)
        delivered = 0
        for user_id in subscribers:
            delivered += await self.notify(user_id, message)
        logger.debug(
            "realtime.broadcast",
            topic=topic,
            subscribers=len(subscribers),
            delivered=delivered,
        )
        return delivered

    # ─── Subscriptions ───────────────────────────────────

    async def subscribe(self, conn: Connection, topic: str) -> Subscription:
        sub = self.index.subscribe(conn, topic)
        await self.notify(
            conn.user_id, SubscriptionConfirmed(data=_subscription_info(sub))
        )
        return sub

    async def unsubscribe(self, conn: Connection, topic: str) -> Subscription:
        sub = self.index.unsubscribe(conn, topic)
        await self.notify(
            conn.user_id, UnsubscriptionConfirmed(data=_subscription_info(sub))
        )
        return sub

    # ─── Client control messages ─────────────────────────

    async def handle_message(self, conn: Connection, raw: Union[str, bytes]) -> None:
        """Apply one client frame. Malformed frames are logged and dropped."""
        if conn.removed:
            return
        self.registry.touch(conn)

        try:
            msg = parse_client_message(raw)
        except MalformedMessageError as e:
            logger.warning(
                "realtime.malformed_message",
                user_id=conn.user_id,
                connection_id=conn.id,
                error=str(e),
            )
            return

        if isinstance(msg, SubscribeBet):
            await self.subscribe(conn, bet_topic(msg.bet_id))
        elif isinstance(msg, UnsubscribeBet):
            await self.unsubscribe(conn, bet_topic(msg.bet_id))
        elif isinstance(msg, SubscribeClub):
            await self.subscribe(conn, club_topic(msg.club_id))
        elif isinstance(msg, UnsubscribeClub):
            await self.unsubscribe(conn, club_topic(msg.club_id))
        elif isinstance(msg, SubscribeActivity):
            await self.subscribe(conn, ACTIVITY_TOPIC)
        elif isinstance(msg, UnsubscribeActivity):
            await self.unsubscribe(conn, ACTIVITY_TOPIC)
        elif isinstance(msg, SendChatMessage):
            await self.handle_chat_message(conn, msg.club_id, msg.content)
        elif isinstance(msg, Ping):
            await self.registry.send_to_connection(conn, Pong())
        else:
            logger.error(
                "realtime.unhandled_message",
                user_id=conn.user_id,
                message_type=type(msg).__name__,
            )

    async def handle_chat_message(
        self,
        conn: Connection,
        club_id: str | None,
        content: str | None,
    ) -> ChatMessage | None:
        """Broadcast a chat line to the club topic. Not persisted."""
        if not club_id or not content:
            await self.registry.send_to_connection(
                conn, ErrorMessage.of("Missing clubId or content")
            )
            return None

        chat = ChatMessage(
            id=f"msg_{uuid.uuid4().hex}",
            club_id=club_id,
            user_id=conn.user_id,
            message=content,
        )
        await self.broadcast(club_topic(club_id), ChatMessageEvent(data=chat))
        return chat

    # ─── Bet events ──────────────────────────────────────

    async def broadcast_bet_update(
        self,
        bet_id: str,
        update_type: BetUpdateType,
        data: dict[str, Any],
    ) -> int:
        update = BetUpdate(bet_id=bet_id, type=update_type, data=data)
        return await self.broadcast(bet_topic(bet_id), BetUpdateMessage(data=update))

    async def notify_bet_odds_change(self, bet_id: str, new_odds: Any) -> int:
        return await self.broadcast_bet_update(bet_id, "odds_change", {"newOdds": new_odds})

    async def notify_new_bet_entry(self, bet_id: str, entry: Any) -> int:
        return await self.broadcast_bet_update(bet_id, "new_entry", {"entry": entry})

    async def notify_pool_update(self, bet_id: str, pool_total: float) -> int:
        return await self.broadcast_bet_update(bet_id, "pool_update", {"poolTotal": pool_total})

    async def notify_bet_status_change(self, bet_id: str, new_status: str) -> int:
        return await self.broadcast_bet_update(bet_id, "status_change", {"newStatus": new_status})

    async def notify_bet_result(self, bet_id: str, result: Any) -> int:
        return await self.broadcast_bet_update(bet_id, "result", {"result": result})

    # ─── Activity feed ───────────────────────────────────

    async def notify_user_activity(
        self, user_id: str, activity_type: str, data: Any = None
    ) -> int:
        """Publish a user's action to every activity subscriber."""
        event = ActivityEvent(user_id=user_id, type=activity_type, data=data)
        return await self.broadcast(ACTIVITY_TOPIC, ActivityUpdateMessage(data=event))

    # ─── Diagnostics ─────────────────────────────────────

    def stats(self) -> dict:
        return {
            "totalConnections": self.registry.connection_count,
            **self.index.stats(),
            "connectedUsers": self.registry.connected_users(),
        }
