"""Real-time infrastructure — in-process WebSocket fan-out.

Learn: Two WebSocket channels, both single-process and in-memory:
1. /ws/realtime — topic subscriptions (bet:<id>, club:<id>, activity)
   served by RealtimeService
2. /ws/notifications — per-user push served by NotificationService

Both services are created by the app factory and live on app.state.
Domain code reaches them through the getters below and only ever calls
their notify_*/send_* methods.
"""

from starlette.requests import HTTPConnection

from fanclub.realtime.notifications import NotificationService
from fanclub.realtime.service import RealtimeService


def get_realtime(conn: HTTPConnection) -> RealtimeService:
    return conn.app.state.realtime


def get_notifications(conn: HTTPConnection) -> NotificationService:
    return conn.app.state.notifications
