"""Pydantic schemas for the notification HTTP endpoints.

Learn: The WebSocket wire models live in realtime/messages.py. These are
the REST-side contracts: what a caller POSTs to push a notification and
what the realtime stats endpoint returns.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field

from fanclub.realtime.messages import NotificationType


# ─── Send (client → platform) ───────────────────────────


class NotificationSend(BaseModel):
    """Push a notification to the caller's own notification channel."""
    type: NotificationType = Field(..., description="bet_update, club_invite, wallet_transaction or system")
    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1, max_length=2000)
    data: Optional[dict[str, Any]] = Field(None, description="Extra payload forwarded as-is")


class NotificationSendResult(BaseModel):
    success: bool
    delivered: int = Field(..., description="Number of sockets the notification was written to")


# ─── Stats (platform → client) ──────────────────────────


class NotificationStats(BaseModel):
    connectedUsers: list[str]
    connectionCount: int


class RealtimeStats(BaseModel):
    totalConnections: int
    betSubscriptions: int
    clubSubscriptions: int
    activitySubscribers: int
    connectedUsers: list[str]


class ChannelStats(BaseModel):
    notifications: NotificationStats
    realtime: RealtimeStats
