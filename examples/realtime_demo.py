#!/usr/bin/env python3
"""
Fan Club realtime demo — two users chatting in a club, plus a notification.

Mints dev tokens for two users, connects both to /ws/realtime, subscribes
them to the same club, sends a chat line from one and prints what each
side receives. Then pushes a notification through the HTTP API to a
/ws/notifications socket.

Run with: python examples/realtime_demo.py

Requires: pip install -e .   (fanclub, httpx, websockets)
Backend must be running: fanclub serve
"""

import asyncio
import json
import sys
import uuid

import httpx
import websockets

from fanclub.auth.jwt import create_access_token

BASE = "http://localhost:3001"
WS_BASE = "ws://localhost:3001"


async def recv(ws) -> dict:
    return json.loads(await asyncio.wait_for(ws.recv(), timeout=5))


async def main():
    run_id = uuid.uuid4().hex[:6]
    club_id = f"club-{run_id}"
    alice = create_access_token(f"alice-{run_id}")
    bob = create_access_token(f"bob-{run_id}")

    # ── Health check ──────────────────────────────────────────────
    print("Checking backend health...")
    try:
        resp = httpx.get(f"{BASE}/api/v1/health", timeout=5)
    except httpx.ConnectError:
        print(f"Backend not reachable at {BASE}")
        sys.exit(1)
    realtime = resp.json()["services"]["realtime"]
    print(f"  Realtime connections: {realtime['totalConnections']}")

    # ── Club chat ─────────────────────────────────────────────────
    print(f"\n1. Alice and Bob join {club_id}...")
    async with websockets.connect(f"{WS_BASE}/ws/realtime?token={alice}") as a, \
               websockets.connect(f"{WS_BASE}/ws/realtime?token={bob}") as b:
        for ws in (a, b):
            hello = await recv(ws)
            print(f"   connected as {hello['data']['userId']}")
            await ws.send(json.dumps({"type": "subscribe_club", "clubId": club_id}))
            print(f"   {(await recv(ws))['type']}")

        print("\n2. Alice says hi...")
        await a.send(json.dumps({
            "type": "send_chat_message",
            "clubId": club_id,
            "content": "Who's backing the underdog tonight?",
        }))
        for name, ws in (("Alice", a), ("Bob", b)):
            msg = await recv(ws)
            print(f"   {name} got: {msg['data']['userId']}: {msg['data']['message']}")

    # ── Notification channel ──────────────────────────────────────
    print("\n3. Sending Alice a notification over HTTP...")
    async with websockets.connect(f"{WS_BASE}/ws/notifications?token={alice}") as n:
        welcome = await recv(n)
        print(f"   {welcome['title']}: {welcome['message']}")

        resp = httpx.post(
            f"{BASE}/api/v1/notifications/send",
            json={"type": "system", "title": "Demo", "message": "Hello from the API"},
            headers={"Authorization": f"Bearer {alice}"},
            timeout=5,
        )
        assert resp.status_code == 200, f"Failed: {resp.text}"
        msg = await recv(n)
        print(f"   {msg['title']}: {msg['message']} (delivered to {resp.json()['delivered']} socket)")

    print("\nDone.")


if __name__ == "__main__":
    asyncio.run(main())
