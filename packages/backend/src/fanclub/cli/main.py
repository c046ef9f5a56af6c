"""Fan Club CLI — run the server and poke at the realtime channels.

Usage:
    fanclub serve                                # Run the API + WebSocket server
    fanclub token user-123                       # Mint a dev JWT for a user
    fanclub health                               # Show channel stats
    fanclub listen --token JWT --bet B1          # Subscribe and print messages
    fanclub listen --token JWT --channel notifications
"""

from __future__ import annotations

import asyncio
import json
import os
import sys
from typing import Optional

import click
import httpx

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

DEFAULT_API_URL = "http://localhost:3001"


def _api_url() -> str:
    return os.environ.get("FANCLUB_API_URL", DEFAULT_API_URL).rstrip("/")


def _ws_url(channel: str, token: str) -> str:
    base = _api_url().replace("https://", "wss://").replace("http://", "ws://")
    return f"{base}/ws/{channel}?token={token}"


def _pretty_json(data: dict | list) -> str:
    return json.dumps(data, indent=2, default=str)


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version="0.1.0", prog_name="fanclub")
def main():
    """Fan Club Z realtime backend."""


# ---------------------------------------------------------------------------
# fanclub serve
# ---------------------------------------------------------------------------


@main.command()
@click.option("--host", help="Bind address (default: FANCLUB_HOST)")
@click.option("--port", type=int, help="Port (default: FANCLUB_PORT)")
@click.option("--reload", is_flag=True, help="Auto-reload on code changes")
def serve(host: Optional[str], port: Optional[int], reload: bool):
    """Run the API and WebSocket server with uvicorn."""
    import uvicorn

    from fanclub.config import settings

    uvicorn.run(
        "fanclub.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


# ---------------------------------------------------------------------------
# fanclub token
# ---------------------------------------------------------------------------


@main.command()
@click.argument("user_id")
@click.option("--minutes", "-m", type=int, help="Lifetime in minutes")
def token(user_id: str, minutes: Optional[int]):
    """Mint an access token for USER_ID (uses FANCLUB_JWT_SECRET)."""
    from fanclub.auth.jwt import create_access_token

    click.echo(create_access_token(user_id, expires_minutes=minutes))


# ---------------------------------------------------------------------------
# fanclub health
# ---------------------------------------------------------------------------


@main.command()
def health():
    """Show server health and channel stats."""
    try:
        r = httpx.get(f"{_api_url()}/api/v1/health", timeout=10.0)
        r.raise_for_status()
    except httpx.HTTPError as e:
        click.secho(f"Health check failed: {e}", fg="red", err=True)
        sys.exit(1)

    data = r.json()
    services = data.get("services", {})
    rt = services.get("realtime", {})
    nt = services.get("notifications", {})

    click.secho(f"Server {data.get('status')} (v{data.get('version')})", bold=True)
    click.echo(f"  realtime:       {rt.get('totalConnections', 0)} connections, "
               f"{rt.get('betSubscriptions', 0)} bets, "
               f"{rt.get('clubSubscriptions', 0)} clubs, "
               f"{rt.get('activitySubscribers', 0)} activity subscribers")
    click.echo(f"  notifications:  {nt.get('connectionCount', 0)} connections")


# ---------------------------------------------------------------------------
# fanclub listen
# ---------------------------------------------------------------------------


@main.command()
@click.option("--token", "-t", "jwt_token", required=True, help="Access token")
@click.option(
    "--channel", "-c",
    type=click.Choice(["realtime", "notifications"]),
    default="realtime",
    show_default=True,
)
@click.option("--bet", "bets", multiple=True, help="Bet id to follow (repeatable)")
@click.option("--club", "clubs", multiple=True, help="Club id to follow (repeatable)")
@click.option("--activity", is_flag=True, help="Follow the activity feed")
@click.option("--heartbeat", default=20.0, show_default=True, help="Ping interval in seconds")
def listen(
    jwt_token: str,
    channel: str,
    bets: tuple[str, ...],
    clubs: tuple[str, ...],
    activity: bool,
    heartbeat: float,
):
    """Connect to a channel and print every message received."""
    subscriptions = [{"type": "subscribe_bet", "betId": b} for b in bets]
    subscriptions += [{"type": "subscribe_club", "clubId": c} for c in clubs]
    if activity:
        subscriptions.append({"type": "subscribe_activity"})

    if subscriptions and channel != "realtime":
        click.secho("--bet/--club/--activity only apply to the realtime channel", fg="red", err=True)
        sys.exit(1)

    try:
        asyncio.run(_listen_impl(_ws_url(channel, jwt_token), subscriptions, heartbeat))
    except KeyboardInterrupt:
        pass


async def _listen_impl(url: str, subscriptions: list[dict], heartbeat: float):
    import websockets
    from websockets.exceptions import ConnectionClosed

    async with websockets.connect(url) as ws:
        for sub in subscriptions:
            await ws.send(json.dumps(sub))

        async def pinger():
            while True:
                await asyncio.sleep(heartbeat)
                await ws.send(json.dumps({"type": "ping"}))

        ping_task = asyncio.create_task(pinger())
        try:
            async for raw in ws:
                try:
                    click.echo(_pretty_json(json.loads(raw)))
                except json.JSONDecodeError:
                    click.echo(raw)
        except ConnectionClosed as e:
            click.secho(f"Connection closed: {e}", fg="yellow", err=True)
        finally:
            ping_task.cancel()


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    main()
