"""Subscription index — which users want which topic.

Learn: A topic is an opaque string key:
- bet:<betId>    — odds, entries, pool and status for one bet
- club:<clubId>  — chat for one club
- activity       — the global activity feed

The index maps topic → user_id → {connection ids}. Broadcasts resolve to
users (subscribers_of), and every socket of a subscribed user receives the
message. Tracking connection ids underneath means a user on two devices
stays subscribed until the last of their subscribed sockets lets go.

Each Connection mirrors its own topics in connection.subscriptions, so
tearing a connection down (drop_all) touches only the topics it held.
Empty entries are deleted as soon as they empty out.
"""

from dataclasses import dataclass
from typing import Optional

import structlog

from fanclub.realtime.connections import Connection

logger = structlog.get_logger()

BET_PREFIX = "bet:"
CLUB_PREFIX = "club:"
ACTIVITY_TOPIC = "activity"


def bet_topic(bet_id: str) -> str:
    return f"{BET_PREFIX}{bet_id}"


def club_topic(club_id: str) -> str:
    return f"{CLUB_PREFIX}{club_id}"


def topic_kind(topic: str) -> str:
    """Return "bet", "club" or "activity" for a topic key."""
    if topic == ACTIVITY_TOPIC:
        return "activity"
    kind, sep, _ = topic.partition(":")
    if sep and kind in ("bet", "club"):
        return kind
    raise ValueError(f"Unknown topic: {topic!r}")


def topic_id(topic: str) -> Optional[str]:
    """The bet/club id inside a topic key (None for activity)."""
    if topic == ACTIVITY_TOPIC:
        return None
    return topic.partition(":")[2]


@dataclass(frozen=True)
class Subscription:
    """Confirmation value returned by subscribe/unsubscribe."""

    topic: str
    user_id: str
    active: bool
    changed: bool

    @property
    def kind(self) -> str:
        return topic_kind(self.topic)

    @property
    def topic_id(self) -> Optional[str]:
        return topic_id(self.topic)


class SubscriptionIndex:
    """Topic → subscribed users, with symmetric per-connection bookkeeping."""

    def __init__(self):
        self._topics: dict[str, dict[str, set[str]]] = {}

    def subscribe(self, conn: Connection, topic: str) -> Subscription:
        topic_kind(topic)  # validates the key
        holders = self._topics.setdefault(topic, {}).setdefault(conn.user_id, set())
        changed = conn.id not in holders
        holders.add(conn.id)
        conn.subscriptions.add(topic)
        if changed:
            logger.debug(
                "realtime.subscribed",
                topic=topic,
                user_id=conn.user_id,
                connection_id=conn.id,
            )
        return Subscription(topic=topic, user_id=conn.user_id, active=True, changed=changed)

    def unsubscribe(self, conn: Connection, topic: str) -> Subscription:
        conn.subscriptions.discard(topic)
        users = self._topics.get(topic)
        holders = users.get(conn.user_id) if users else None
        if holders is None or conn.id not in holders:
            return Subscription(topic=topic, user_id=conn.user_id, active=False, changed=False)

        holders.discard(conn.id)
        if not holders:
            del users[conn.user_id]
        if not users:
            del self._topics[topic]
        logger.debug(
            "realtime.unsubscribed",
            topic=topic,
            user_id=conn.user_id,
            connection_id=conn.id,
        )
        return Subscription(topic=topic, user_id=conn.user_id, active=False, changed=True)

    def drop_all(self, conn: Connection) -> None:
        """Forget every topic held by conn."""
        for topic in list(conn.subscriptions):
            self.unsubscribe(conn, topic)

    def subscribers_of(self, topic: str) -> frozenset[str]:
        return frozenset(self._topics.get(topic, ()))

    def is_subscribed(self, conn: Connection, topic: str) -> bool:
        return conn.id in self._topics.get(topic, {}).get(conn.user_id, ())

    # ─── Diagnostics ─────────────────────────────────────

    def topics(self) -> list[str]:
        return list(self._topics)

    def topic_count(self, kind: str) -> int:
        return sum(1 for t in self._topics if topic_kind(t) == kind)

    def stats(self) -> dict:
        return {
            "betSubscriptions": self.topic_count("bet"),
            "clubSubscriptions": self.topic_count("club"),
            "activitySubscribers": len(self.subscribers_of(ACTIVITY_TOPIC)),
        }

    def __contains__(self, topic: object) -> bool:
        return topic in self._topics
