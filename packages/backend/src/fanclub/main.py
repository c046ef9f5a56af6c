"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance with its own RealtimeService and NotificationService on
app.state. Lifespan starts the liveness sweeper and, on shutdown, stops
it and closes every open socket.
"""

import asyncio
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from fanclub import __version__
from fanclub.api import api_router
from fanclub.config import settings
from fanclub.log import configure_logging
from fanclub.realtime.notifications import NotificationService
from fanclub.realtime.service import RealtimeService
from fanclub.realtime.sweeper import LivenessSweeper

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Learn: Anything before `yield` runs at startup, after `yield` runs at
    shutdown.
    """
    logger.info(
        "fanclub.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
    )

    sweeper = LivenessSweeper(
        [app.state.realtime, app.state.notifications],
        interval=settings.realtime_sweep_interval_seconds,
        stale_timeout=settings.realtime_stale_timeout_seconds,
    )
    sweeper_task = asyncio.create_task(sweeper.run_loop())

    yield

    logger.info("fanclub.shutdown")

    sweeper.stop()
    sweeper_task.cancel()
    try:
        await sweeper_task
    except asyncio.CancelledError:
        pass

    await app.state.realtime.close()
    await app.state.notifications.close()


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    configure_logging(settings.log_level, settings.log_json)

    app = FastAPI(
        title=settings.app_name,
        description="Realtime bet updates, club chat and notifications over WebSocket",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.realtime = RealtimeService()
    app.state.notifications = NotificationService()

    # ── Middleware stack ──────────────────────────────────────
    # Starlette middleware executes in reverse order of registration.
    # Request flow: RequestId → CORS → handler

    from fanclub.middleware.request_id import RequestIdMiddleware

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestIdMiddleware)

    app.include_router(api_router)

    from fanclub.realtime.websocket import router as ws_router
    app.include_router(ws_router)

    return app


# Default app instance (used by uvicorn: fanclub.main:app)
app = create_app()
