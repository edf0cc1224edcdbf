"""Room domain package: store, matchmaking, sessions and moderation."""

from campfire.rooms.events import Delivery
from campfire.rooms.models import FlagParticipantRequest
from campfire.rooms.models import SignalRequest
from campfire.rooms.models import ToggleReadyRequest
from campfire.rooms.moderation import fixed_quorum
from campfire.rooms.moderation import majority_quorum
from campfire.rooms.moderation import resolve_quorum_policy
from campfire.rooms.registry import Room
from campfire.rooms.registry import RoomError
from campfire.rooms.registry import RoomNotFoundError
from campfire.rooms.registry import RoomPhase
from campfire.rooms.registry import RoomPhaseError
from campfire.rooms.registry import RoomRegistry
from campfire.rooms.timers import AsyncioSessionTimers

__all__ = [
    "AsyncioSessionTimers",
    "Delivery",
    "FlagParticipantRequest",
    "Room",
    "RoomError",
    "RoomNotFoundError",
    "RoomPhase",
    "RoomPhaseError",
    "RoomRegistry",
    "SignalRequest",
    "ToggleReadyRequest",
    "fixed_quorum",
    "majority_quorum",
    "resolve_quorum_policy",
]
