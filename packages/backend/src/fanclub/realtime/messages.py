"""Wire messages for the realtime and notification WebSockets.

Learn: Both directions are modelled as pydantic classes with a literal
`type` tag, so every message kind is enumerated in one place:

- Client → server control messages form a discriminated union
  (ClientMessage). parse_client_message() validates raw frames against it
  and raises MalformedMessageError for anything unknown or incomplete.
- Server → client messages are plain models; encode() serializes them
  with camelCase keys for the frontend.

Realtime messages carry epoch-millisecond timestamps; notifications carry
ISO-8601 strings. That's what the web client expects from each channel.
"""

import json
import time
from datetime import datetime, timezone
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    model_serializer,
)
from pydantic.alias_generators import to_camel


def now_ms() -> int:
    return int(time.time() * 1000)


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class MalformedMessageError(ValueError):
    """Raised when a client frame is not a valid control message."""


class _Wire(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
    )


def encode(message: Union[BaseModel, dict]) -> str:
    """Serialize an outbound message to JSON text."""
    if isinstance(message, BaseModel):
        return message.model_dump_json(by_alias=True)
    return json.dumps(message, default=str)


# ─── Client → server ─────────────────────────────────────


class _Control(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
        extra="ignore",
    )


class SubscribeBet(_Control):
    type: Literal["subscribe_bet"]
    bet_id: str = Field(min_length=1)


class UnsubscribeBet(_Control):
    type: Literal["unsubscribe_bet"]
    bet_id: str = Field(min_length=1)


class SubscribeClub(_Control):
    type: Literal["subscribe_club"]
    club_id: str = Field(min_length=1)


class UnsubscribeClub(_Control):
    type: Literal["unsubscribe_club"]
    club_id: str = Field(min_length=1)


class SubscribeActivity(_Control):
    type: Literal["subscribe_activity"]


class UnsubscribeActivity(_Control):
    type: Literal["unsubscribe_activity"]


class SendChatMessage(_Control):
    """Chat send. Fields are optional so the handler can answer with an error."""
    type: Literal["send_chat_message"]
    club_id: Optional[str] = None
    content: Optional[str] = None


class Ping(_Control):
    type: Literal["ping"]


ClientMessage = Annotated[
    Union[
        SubscribeBet,
        UnsubscribeBet,
        SubscribeClub,
        UnsubscribeClub,
        SubscribeActivity,
        UnsubscribeActivity,
        SendChatMessage,
        Ping,
    ],
    Field(discriminator="type"),
]

_client_adapter = TypeAdapter(ClientMessage)


def parse_client_message(raw: Union[str, bytes]) -> ClientMessage:
    """Validate one inbound frame. Raises MalformedMessageError."""
    try:
        return _client_adapter.validate_json(raw)
    except ValidationError as e:
        errors = e.errors(include_url=False)
        reason = errors[0]["msg"] if errors else str(e)
        raise MalformedMessageError(reason) from e


# ─── Server → client (realtime channel) ──────────────────


BetUpdateType = Literal["odds_change", "new_entry", "pool_update", "status_change", "result"]
SubscriptionKind = Literal["bet", "club", "activity"]


class ConnectionInfo(_Wire):
    user_id: str
    timestamp: int = Field(default_factory=now_ms)


class ConnectionEstablished(_Wire):
    type: Literal["connection_established"] = "connection_established"
    data: ConnectionInfo


class SubscriptionInfo(_Wire):
    subscription: SubscriptionKind
    bet_id: Optional[str] = None
    club_id: Optional[str] = None

    @model_serializer(mode="wrap")
    def _omit_missing_ids(self, handler):
        return {k: v for k, v in handler(self).items() if v is not None}


class SubscriptionConfirmed(_Wire):
    type: Literal["subscription_confirmed"] = "subscription_confirmed"
    data: SubscriptionInfo


class UnsubscriptionConfirmed(_Wire):
    type: Literal["unsubscription_confirmed"] = "unsubscription_confirmed"
    data: SubscriptionInfo


class BetUpdate(_Wire):
    bet_id: str
    type: BetUpdateType
    data: dict[str, Any]
    timestamp: int = Field(default_factory=now_ms)


class BetUpdateMessage(_Wire):
    type: Literal["bet_update"] = "bet_update"
    data: BetUpdate


class ChatMessage(_Wire):
    id: str
    club_id: str
    user_id: str
    message: str
    timestamp: int = Field(default_factory=now_ms)


class ChatMessageEvent(_Wire):
    type: Literal["chat_message"] = "chat_message"
    data: ChatMessage


class ActivityEvent(_Wire):
    """A user action shown in the public activity feed.

    Known types: bet_placed, bet_won, club_joined, profile_updated.
    """
    user_id: str
    type: str
    data: Any = None
    timestamp: int = Field(default_factory=now_ms)


class ActivityUpdateMessage(_Wire):
    type: Literal["activity_update"] = "activity_update"
    data: ActivityEvent


class Pong(_Wire):
    type: Literal["pong"] = "pong"
    timestamp: int = Field(default_factory=now_ms)


class ErrorDetail(_Wire):
    message: str


class ErrorMessage(_Wire):
    type: Literal["error"] = "error"
    data: ErrorDetail

    @classmethod
    def of(cls, message: str) -> "ErrorMessage":
        return cls(data=ErrorDetail(message=message))


# ─── Server → client (notification channel) ──────────────


NotificationType = Literal["bet_update", "club_invite", "wallet_transaction", "system"]
WalletTransactionType = Literal["deposit", "withdrawal", "bet_placed", "bet_won"]


class Notification(_Wire):
    type: NotificationType
    title: str
    message: str
    data: Optional[dict[str, Any]] = None
    timestamp: str = Field(default_factory=now_iso)

    @model_serializer(mode="wrap")
    def _omit_empty_data(self, handler):
        out = handler(self)
        if out.get("data") is None:
            out.pop("data", None)
        return out
