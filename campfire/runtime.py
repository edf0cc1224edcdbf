"""Process-wide runtime state shared by REST and WebSocket handlers."""

from __future__ import annotations

from campfire.core.config import Settings
from campfire.core.config import load_settings
from campfire.rooms.moderation import resolve_quorum_policy
from campfire.rooms.registry import RoomRegistry
from campfire.rooms.timers import AsyncioSessionTimers
from campfire.ws.hub import ConnectionHub


def build_registry(settings: Settings, hub: ConnectionHub) -> RoomRegistry:
    """Create a room registry whose timer events are delivered through ``hub``."""
    return RoomRegistry(
        capacity=settings.campfire_room_capacity,
        session_duration_seconds=settings.campfire_session_duration_seconds,
        session_warning_seconds=settings.campfire_session_warning_seconds,
        quorum_policy=resolve_quorum_policy(
            settings.campfire_quorum_policy,
            fixed_threshold=settings.campfire_quorum_fixed_threshold,
        ),
        timers=AsyncioSessionTimers(),
        emit=hub.dispatch,
    )


settings = load_settings()
connection_hub = ConnectionHub()
room_registry = build_registry(settings, connection_hub)


def startup() -> None:
    """Reload settings and reset in-memory room and connection state."""
    global settings, connection_hub, room_registry
    room_registry.close()
    settings = load_settings()
    connection_hub = ConnectionHub()
    room_registry = build_registry(settings, connection_hub)


def shutdown() -> None:
    """Cancel pending session timers before the event loop goes away."""
    room_registry.close()


__all__ = [
    "Settings",
    "build_registry",
    "connection_hub",
    "room_registry",
    "settings",
    "shutdown",
    "startup",
]
