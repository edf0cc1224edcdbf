"""Map inbound client frames onto room registry operations."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from pydantic import ValidationError

from campfire.core.logging import get_logger
from campfire.rooms.events import Delivery
from campfire.rooms.models import FlagParticipantRequest
from campfire.rooms.models import SignalRequest
from campfire.rooms.models import ToggleReadyRequest
from campfire.rooms.registry import RoomRegistry

from .protocol import parse_client_envelope

logger = get_logger(__name__)

JOIN_QUEUE = "join-queue"
TOGGLE_READY = "toggle-ready"
FLAG_PARTICIPANT = "flag-participant"
SIGNAL = "signal"
LEAVE_ROOM = "leave-room"

EventHandler = Callable[[RoomRegistry, str, Any], list[Delivery]]


def _join_queue(registry: RoomRegistry, connection_id: str, _: Any) -> list[Delivery]:
    return registry.request_match(connection_id)


def _toggle_ready(registry: RoomRegistry, connection_id: str, payload: Any) -> list[Delivery]:
    request = ToggleReadyRequest.model_validate(payload)
    return registry.set_ready(connection_id, request.ready)


def _flag_participant(registry: RoomRegistry, connection_id: str, payload: Any) -> list[Delivery]:
    request = FlagParticipantRequest.model_validate(payload)
    return registry.flag(connection_id, request.target_id)


def _signal(registry: RoomRegistry, connection_id: str, payload: Any) -> list[Delivery]:
    request = SignalRequest.model_validate(payload)
    return registry.relay(connection_id, request.to, request.payload)


def _leave_room(registry: RoomRegistry, connection_id: str, _: Any) -> list[Delivery]:
    return registry.leave(connection_id)


EVENT_HANDLERS: dict[str, EventHandler] = {
    JOIN_QUEUE: _join_queue,
    TOGGLE_READY: _toggle_ready,
    FLAG_PARTICIPANT: _flag_participant,
    SIGNAL: _signal,
    LEAVE_ROOM: _leave_room,
}


def handle_client_event(
    registry: RoomRegistry,
    connection_id: str,
    event_type: str,
    payload: Any = None,
) -> list[Delivery]:
    """Apply one client event and return the deliveries it produced."""
    handler = EVENT_HANDLERS.get(event_type)
    if handler is None:
        logger.warning("unknown event %r from %s ignored", event_type, connection_id)
        return []
    try:
        return handler(registry, connection_id, payload)
    except ValidationError as exc:
        logger.warning(
            "invalid %s payload from %s ignored: %d error(s)",
            event_type,
            connection_id,
            exc.error_count(),
        )
        return []


def handle_client_message(registry: RoomRegistry, connection_id: str, message: str) -> list[Delivery]:
    """Decode one text frame and apply it."""
    envelope = parse_client_envelope(message)
    if envelope is None:
        logger.warning("malformed frame from %s ignored", connection_id)
        return []
    return handle_client_event(registry, connection_id, envelope.type, envelope.payload)


__all__ = [
    "EVENT_HANDLERS",
    "FLAG_PARTICIPANT",
    "JOIN_QUEUE",
    "LEAVE_ROOM",
    "SIGNAL",
    "TOGGLE_READY",
    "handle_client_event",
    "handle_client_message",
]
