"""Health check endpoint.

Learn: Simple GET endpoint that verifies the server is running and
reports how busy the two WebSocket channels are.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from fanclub import __version__
from fanclub.realtime import get_notifications, get_realtime
from fanclub.realtime.notifications import NotificationService
from fanclub.realtime.service import RealtimeService

router = APIRouter()


@router.get("/health")
async def health_check(
    realtime: RealtimeService = Depends(get_realtime),
    notifications: NotificationService = Depends(get_notifications),
):
    """Check server health and realtime channel stats."""
    return {
        "status": "ok",
        "server": "ok",
        "version": __version__,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "services": {
            "notifications": notifications.stats(),
            "realtime": realtime.stats(),
        },
    }
