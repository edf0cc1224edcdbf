"""FastAPI application entrypoint for the campfire matchmaking service."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

import campfire.runtime as runtime
from campfire.api.errors import handle_room_error
from campfire.api.routers.health import router as health_router
from campfire.api.routers.rooms import router as rooms_router
from campfire.core.logging import get_logger
from campfire.core.logging import setup_logging
from campfire.rooms.registry import RoomError
from campfire.ws.routers import router as ws_router

logger = get_logger(__name__)


def startup() -> None:
    """Reset runtime state and configure logging before handling traffic."""
    runtime.startup()
    setup_logging(runtime.settings.campfire_log_level)
    logger.info(
        "campfire starting: capacity=%d session=%.0fs quorum=%s",
        runtime.settings.campfire_room_capacity,
        runtime.settings.campfire_session_duration_seconds,
        runtime.settings.campfire_quorum_policy,
    )


@asynccontextmanager
async def lifespan(_: FastAPI):
    startup()
    yield
    runtime.shutdown()


app = FastAPI(lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=runtime.settings.cors_origins,
    allow_methods=["GET"],
    allow_headers=["*"],
)
app.add_exception_handler(RoomError, handle_room_error)

app.include_router(health_router)
app.include_router(rooms_router)
app.include_router(ws_router)


def run() -> None:
    """Serve the app with uvicorn using the configured host and port."""
    settings = runtime.settings
    uvicorn.run(
        "campfire.main:app",
        host=settings.campfire_app_host,
        port=settings.campfire_app_port,
        log_level=settings.campfire_log_level.lower(),
    )


__all__ = [
    "app",
    "lifespan",
    "run",
    "startup",
]
