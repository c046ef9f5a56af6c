"""Notification API — push a notification from HTTP.

Learn: Mostly used by the web client's debug panel and smoke tests to
check the notification socket end to end:
- POST /notifications/send → deliver to the caller's own sockets
- GET /realtime/stats → connection and subscription counts
"""

from fastapi import APIRouter, Depends

from fanclub.auth.dependencies import CurrentIdentity, get_current_user
from fanclub.realtime import get_notifications, get_realtime
from fanclub.realtime.messages import Notification
from fanclub.realtime.notifications import NotificationService
from fanclub.realtime.service import RealtimeService
from fanclub.schemas.notification import (
    ChannelStats,
    NotificationSend,
    NotificationSendResult,
)

router = APIRouter()


@router.post("/notifications/send", response_model=NotificationSendResult)
async def send_notification(
    body: NotificationSend,
    identity: CurrentIdentity = Depends(get_current_user),
    notifications: NotificationService = Depends(get_notifications),
):
    """Send a notification to every notification socket of the caller."""
    delivered = await notifications.send_to_user(
        identity.user_id,
        Notification(
            type=body.type,
            title=body.title,
            message=body.message,
            data=body.data,
        ),
    )
    return NotificationSendResult(success=True, delivered=delivered)


@router.get("/realtime/stats", response_model=ChannelStats)
async def realtime_stats(
    realtime: RealtimeService = Depends(get_realtime),
    notifications: NotificationService = Depends(get_notifications),
):
    """Connection and subscription counts for both channels."""
    return {
        "notifications": notifications.stats(),
        "realtime": realtime.stats(),
    }
