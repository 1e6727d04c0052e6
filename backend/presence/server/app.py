from __future__ import annotations

import contextlib
from pathlib import Path
from typing import TYPE_CHECKING

import structlog
from starlette.applications import Starlette
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse
from starlette.routing import Mount, Route, WebSocketRoute
from starlette.staticfiles import StaticFiles

from presence.messaging.router import MessageRouter
from presence.server.settings import PresenceServerSettings
from presence.server.websocket import websocket_endpoint
from presence.session.controller import ConnectionLifecycleController
from presence.session.registry import SessionRegistry
from shared.logging import setup_logging

logger = structlog.get_logger()

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from starlette.requests import Request
    from starlette.websockets import WebSocket

    from presence.clock import Clock


async def health(_request: Request) -> JSONResponse:
    return JSONResponse({"status": "ok"})


async def status(request: Request) -> JSONResponse:
    controller: ConnectionLifecycleController = request.app.state.controller
    return JSONResponse(
        {
            "status": "ok",
            "current": controller.registry.count(),
            "max": controller.registry.max_players,
            "connections": controller.connection_count,
        },
    )


def build_controller(settings: PresenceServerSettings, clock: Clock | None = None) -> ConnectionLifecycleController:
    """Create a fresh registry and the controller that owns it."""
    registry = SessionRegistry(max_players=settings.max_players)
    return ConnectionLifecycleController(
        registry,
        clock=clock,
        movement_throttle_ms=settings.movement_throttle_ms,
        liveness_window_ms=settings.liveness_window_ms,
        reaper_interval_seconds=settings.reaper_interval_seconds,
        heartbeat_interval_seconds=settings.heartbeat_interval_seconds,
        heartbeat_timeout_seconds=settings.heartbeat_timeout_seconds,
    )


def create_app(
    settings: PresenceServerSettings | None = None,
    controller: ConnectionLifecycleController | None = None,
    message_router: MessageRouter | None = None,
) -> Starlette:
    if settings is None:  # pragma: no cover
        settings = PresenceServerSettings()

    if controller is None:
        controller = build_controller(settings)

    if message_router is None:
        message_router = MessageRouter(controller)

    async def ws_endpoint(websocket: WebSocket) -> None:
        await websocket_endpoint(websocket, message_router)

    routes = [
        Route("/health", health, methods=["GET"]),
        Route("/status", status, methods=["GET"]),
        WebSocketRoute("/ws", ws_endpoint),
    ]
    if settings.static_dir is not None:
        # mounted last so the API routes above take precedence
        routes.append(Mount("/", app=StaticFiles(directory=Path(settings.static_dir), html=True), name="static"))

    @contextlib.asynccontextmanager
    async def lifespan(_app: Starlette) -> AsyncIterator[None]:
        controller.start()
        logger.info("presence server ready", max_players=settings.max_players)
        try:
            yield
        finally:
            await controller.stop()
            logger.info("presence server stopped")

    app = Starlette(routes=routes, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.cors_origins,
        allow_methods=["GET"],
        allow_headers=["Content-Type"],
    )
    app.state.settings = settings
    app.state.controller = controller
    return app


def get_app() -> Starlette:  # pragma: no cover
    """ASGI application factory for production use (uvicorn --factory)."""
    _settings = PresenceServerSettings()
    setup_logging(log_dir=_settings.log_dir)
    return create_app(settings=_settings)
