"""Notification HTTP API tests.

Learn: Tests cover:
1. Auth is required (401 without a Bearer token, 401 with a bad one)
2. Sending with nobody connected is a successful no-op
3. Body validation
4. Realtime stats endpoint
"""

import pytest


def _auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.mark.asyncio
async def test_send_requires_auth(client):
    r = await client.post(
        "/api/v1/notifications/send",
        json={"type": "system", "title": "t", "message": "m"},
    )
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_send_rejects_bad_token(client):
    r = await client.post(
        "/api/v1/notifications/send",
        json={"type": "system", "title": "t", "message": "m"},
        headers=_auth("garbage"),
    )
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_send_with_no_connection_delivers_nothing(client, token):
    r = await client.post(
        "/api/v1/notifications/send",
        json={"type": "system", "title": "Hello", "message": "Nobody home"},
        headers=_auth(token("u1")),
    )
    assert r.status_code == 200
    assert r.json() == {"success": True, "delivered": 0}


@pytest.mark.asyncio
async def test_send_delivers_to_callers_sockets(client, app, token, make_socket):
    sock = make_socket()
    await app.state.notifications.connect("u1", sock)
    sock.clear()

    r = await client.post(
        "/api/v1/notifications/send",
        json={"type": "wallet_transaction", "title": "Wallet Update", "message": "+$10"},
        headers=_auth(token("u1")),
    )

    assert r.json()["delivered"] == 1
    [msg] = sock.messages()
    assert msg["type"] == "wallet_transaction"
    assert "data" not in msg


@pytest.mark.asyncio
async def test_send_rejects_unknown_type(client, token):
    r = await client.post(
        "/api/v1/notifications/send",
        json={"type": "spam", "title": "t", "message": "m"},
        headers=_auth(token("u1")),
    )
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_realtime_stats(client, app, token, make_socket):
    conn = await app.state.realtime.connect("u1", make_socket())
    await app.state.realtime.subscribe(conn, "bet:B1")
    await app.state.realtime.subscribe(conn, "activity")

    r = await client.get("/api/v1/realtime/stats", headers=_auth(token("u1")))

    assert r.status_code == 200
    data = r.json()
    assert data["realtime"] == {
        "totalConnections": 1,
        "betSubscriptions": 1,
        "clubSubscriptions": 0,
        "activitySubscribers": 1,
        "connectedUsers": ["u1"],
    }
    assert data["notifications"]["connectionCount"] == 0
