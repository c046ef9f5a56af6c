"""Wire message tests — parsing client frames and encoding server frames."""

import json

import pytest

from fanclub.realtime.messages import (
    BetUpdate,
    BetUpdateMessage,
    MalformedMessageError,
    Notification,
    SendChatMessage,
    SubscribeBet,
    SubscribeClub,
    encode,
    parse_client_message,
)


def test_parse_subscribe_bet():
    msg = parse_client_message('{"type": "subscribe_bet", "betId": "B1"}')
    assert isinstance(msg, SubscribeBet)
    assert msg.bet_id == "B1"


def test_parse_ignores_extra_fields():
    msg = parse_client_message(b'{"type": "subscribe_club", "clubId": "C1", "extra": 1}')
    assert isinstance(msg, SubscribeClub)
    assert msg.club_id == "C1"


def test_parse_chat_allows_missing_fields():
    msg = parse_client_message('{"type": "send_chat_message"}')
    assert isinstance(msg, SendChatMessage)
    assert msg.club_id is None and msg.content is None


@pytest.mark.parametrize("raw", [
    "",
    "{",
    '"ping"',
    '{"type": "unknown"}',
    '{"type": "unsubscribe_bet", "betId": ""}',
])
def test_parse_rejects_malformed(raw):
    with pytest.raises(MalformedMessageError):
        parse_client_message(raw)


def test_encode_uses_camel_case():
    msg = BetUpdateMessage(
        data=BetUpdate(bet_id="B1", type="pool_update", data={"poolTotal": 5}, timestamp=123)
    )
    assert json.loads(encode(msg)) == {
        "type": "bet_update",
        "data": {"betId": "B1", "type": "pool_update", "data": {"poolTotal": 5}, "timestamp": 123},
    }


def test_encode_plain_dict():
    assert json.loads(encode({"type": "pong", "timestamp": 1})) == {"type": "pong", "timestamp": 1}


def test_notification_keeps_none_inside_data():
    note = Notification(type="system", title="t", message="m", data={"reason": None})
    assert json.loads(encode(note))["data"] == {"reason": None}
