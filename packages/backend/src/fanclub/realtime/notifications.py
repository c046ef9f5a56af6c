"""Notification service — per-user push over /ws/notifications.

Learn: This is the simpler sibling of RealtimeService. It reuses the same
ConnectionRegistry lifecycle (register / touch / remove / sweep) but has no
topic layer: every socket a user has open here receives every notification
addressed to that user.

Club, wallet and KYC code call the typed senders below. Like the realtime
channel it's fire-and-forget — an offline user simply misses the message.
"""

import time
from typing import Any, Callable, Optional, get_args

import structlog

from fanclub.realtime.connections import Connection, ConnectionRegistry
from fanclub.realtime.messages import Notification, WalletTransactionType

logger = structlog.get_logger()


class NotificationService:
    """Per-user notification channel."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self.registry = ConnectionRegistry("notifications", clock=clock)

    async def connect(self, user_id: str, websocket: Any) -> Connection:
        conn = self.registry.register(user_id, websocket)
        await self.registry.send_to_connection(
            conn,
            Notification(
                type="system",
                title="Connected",
                message="Real-time notifications enabled",
            ),
        )
        return conn

    async def disconnect(self, conn: Connection) -> None:
        await self.registry.remove(conn)

    def touch(self, conn: Connection) -> None:
        self.registry.touch(conn)

    async def sweep(self, stale_timeout: float) -> int:
        return await self.registry.sweep(stale_timeout)

    async def close(self) -> None:
        await self.registry.close_all()

    # ─── Delivery ────────────────────────────────────────

    async def send_to_user(self, user_id: str, notification: Notification) -> int:
        delivered = await self.registry.send_to(user_id, notification)
        if delivered:
            logger.info(
                "notifications.sent",
                user_id=user_id,
                kind=notification.type,
                title=notification.title,
                sockets=delivered,
            )
        return delivered

    async def send_to_all(self, notification: Notification) -> int:
        """Announcement to every connected user."""
        delivered = 0
        for user_id in self.registry.connected_users():
            delivered += await self.registry.send_to(user_id, notification)
        logger.info(
            "notifications.broadcast",
            kind=notification.type,
            title=notification.title,
            sockets=delivered,
        )
        return delivered

    # ─── Typed senders ───────────────────────────────────

    async def send_bet_update(
        self,
        user_id: str,
        bet_id: str,
        message: str,
        data: Optional[dict[str, Any]] = None,
    ) -> int:
        return await self.send_to_user(
            user_id,
            Notification(
                type="bet_update",
                title="Bet Update",
                message=message,
                data={"betId": bet_id, **(data or {})},
            ),
        )

    async def send_club_invite(
        self,
        user_id: str,
        club_id: str,
        club_name: str,
        inviter_name: str,
    ) -> int:
        return await self.send_to_user(
            user_id,
            Notification(
                type="club_invite",
                title="Club Invitation",
                message=f"{inviter_name} invited you to join {club_name}",
                data={
                    "clubId": club_id,
                    "clubName": club_name,
                    "inviterName": inviter_name,
                },
            ),
        )

    async def send_wallet_transaction(
        self,
        user_id: str,
        amount: float,
        transaction_type: WalletTransactionType,
        description: str,
    ) -> int:
        if transaction_type not in get_args(WalletTransactionType):
            logger.warning(
                "notifications.invalid_transaction_type",
                user_id=user_id,
                transaction_type=transaction_type,
            )
            return 0
        return await self.send_to_user(
            user_id,
            Notification(
                type="wallet_transaction",
                title="Wallet Update",
                message=description,
                data={
                    "amount": amount,
                    "type": transaction_type,
                    "description": description,
                },
            ),
        )

    async def send_system_notification(
        self, user_id: str, title: str, message: str
    ) -> int:
        return await self.send_to_user(
            user_id, Notification(type="system", title=title, message=message)
        )

    # ─── Diagnostics ─────────────────────────────────────

    def connected_users(self) -> list[str]:
        return self.registry.connected_users()

    def connection_count(self) -> int:
        return self.registry.connection_count

    def stats(self) -> dict:
        return {
            "connectedUsers": self.connected_users(),
            "connectionCount": self.connection_count(),
        }
