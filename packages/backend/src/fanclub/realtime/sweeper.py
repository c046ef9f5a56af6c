"""Liveness sweeper — reclaims connections whose heartbeat went quiet.

Learn: A socket's close event can get lost (laptop lid shut, mobile network
drop). Every connection records last_live_at on each inbound frame; this
worker wakes up every `interval` seconds and removes any connection silent
for longer than `stale_timeout`. Removal cascades into the subscription
index, so no topic keeps pointing at a dead socket.

Runs as a background task in the FastAPI lifespan.
"""

import asyncio
from typing import Protocol, Sequence

import structlog

logger = structlog.get_logger()


class Sweepable(Protocol):
    async def sweep(self, stale_timeout: float) -> int: ...


class LivenessSweeper:
    """Background worker that sweeps stale connections.

    Usage:
        sweeper = LivenessSweeper([realtime, notifications])
        asyncio.create_task(sweeper.run_loop())
    """

    def __init__(
        self,
        services: Sequence[Sweepable],
        interval: float = 30.0,
        stale_timeout: float = 60.0,
    ):
        self.services = list(services)
        self.interval = interval
        self.stale_timeout = stale_timeout
        self._running = False

    async def run_loop(self) -> None:
        """Main loop — sleep, then sweep every service."""
        self._running = True
        logger.info(
            "sweeper.started",
            interval=self.interval,
            stale_timeout=self.stale_timeout,
        )

        while self._running:
            await asyncio.sleep(self.interval)
            try:
                await self.sweep_once()
            except Exception:
                logger.exception("sweeper.error")

    async def sweep_once(self) -> int:
        removed = 0
        for service in self.services:
            removed += await service.sweep(self.stale_timeout)
        if removed:
            logger.info("sweeper.removed_stale", count=removed)
        return removed

    def stop(self) -> None:
        """Signal the worker to stop."""
        self._running = False
        logger.info("sweeper.stopping")
