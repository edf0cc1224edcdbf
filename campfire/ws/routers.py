"""WebSocket route handler for the matchmaking channel."""

from __future__ import annotations

import uuid

from fastapi import APIRouter
from fastapi import WebSocket
from fastapi import WebSocketDisconnect

import campfire.runtime as runtime
from campfire.core.logging import get_logger
from campfire.rooms.events import CONNECTED
from campfire.rooms.events import Delivery

from .dispatch import handle_client_message
from .heartbeat import HeartbeatPolicy
from .heartbeat import ws_message_loop

logger = get_logger(__name__)

router = APIRouter()


@router.websocket("/ws")
async def ws_campfire(websocket: WebSocket) -> None:
    """Campfire websocket: connection id handshake + room events both ways."""
    await websocket.accept()
    registry = runtime.room_registry
    hub = runtime.connection_hub
    settings = runtime.settings

    connection_id = uuid.uuid4().hex
    hub.register(connection_id, websocket)
    registry.connect(connection_id)
    logger.info("connection %s opened", connection_id)

    async def _on_message(message: str) -> None:
        hub.dispatch(handle_client_message(registry, connection_id, message))

    try:
        hub.dispatch(
            [Delivery(recipient=connection_id, event=CONNECTED, payload={"connectionId": connection_id})]
        )
        await ws_message_loop(
            websocket,
            on_message=_on_message,
            policy=HeartbeatPolicy.from_settings(settings),
        )
    except WebSocketDisconnect:
        return
    finally:
        hub.dispatch(registry.disconnect(connection_id))
        await hub.unregister(connection_id)
        logger.info("connection %s closed", connection_id)
