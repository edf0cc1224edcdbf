"""In-memory room store, matchmaking and session orchestration.

Every public operation takes connection ids (never room references), mutates
the store under one registry lock and returns the outbound deliveries it
produced. Operations that reference a departed connection or a dissolved
room are silent no-ops and return an empty list.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from dataclasses import field
from datetime import datetime
from datetime import timedelta
from datetime import timezone
from enum import Enum
import threading
from typing import Any
import uuid

from campfire.core.logging import get_logger
from campfire.rooms.events import Delivery
from campfire.rooms.events import PARTICIPANT_REMOVED
from campfire.rooms.events import ROOM_UPDATE
from campfire.rooms.events import SESSION_DISSOLVED
from campfire.rooms.events import SESSION_ENDING
from campfire.rooms.events import SIGNAL
from campfire.rooms.events import START_SESSION
from campfire.rooms.events import fan_out
from campfire.rooms.events import participant_removed_payload
from campfire.rooms.events import room_update_payload
from campfire.rooms.events import session_ending_payload
from campfire.rooms.events import signal_payload
from campfire.rooms.events import start_session_payload
from campfire.rooms.moderation import QuorumPolicy
from campfire.rooms.moderation import majority_quorum
from campfire.rooms.timers import AsyncioSessionTimers
from campfire.rooms.timers import SessionTimers

logger = get_logger(__name__)

DEFAULT_ROOM_CAPACITY = 8
DEFAULT_SESSION_DURATION_SECONDS = 15 * 60
DEFAULT_SESSION_WARNING_SECONDS = 2 * 60


class RoomError(Exception):
    """Base class for room-domain errors."""


class RoomNotFoundError(RoomError):
    """Raised when room_id does not exist in the store."""

    def __init__(self, room_id: str) -> None:
        super().__init__(f"room_id={room_id} not found")
        self.room_id = room_id


class RoomPhaseError(RoomError):
    """Raised when a phase transition is not allowed by the session state machine."""


class RoomPhase(str, Enum):
    WAITING = "waiting"
    ACTIVE = "active"
    ENDING = "ending"
    DISSOLVED = "dissolved"


_ALLOWED_TRANSITIONS: dict[RoomPhase, frozenset[RoomPhase]] = {
    RoomPhase.WAITING: frozenset({RoomPhase.ACTIVE}),
    RoomPhase.ACTIVE: frozenset({RoomPhase.ENDING, RoomPhase.DISSOLVED}),
    RoomPhase.ENDING: frozenset({RoomPhase.DISSOLVED}),
    RoomPhase.DISSOLVED: frozenset(),
}

_SESSION_PHASES = frozenset({RoomPhase.ACTIVE, RoomPhase.ENDING})


@dataclass(slots=True)
class Room:
    """Room aggregate state."""

    room_id: str
    capacity: int
    created_seq: int
    phase: RoomPhase = RoomPhase.WAITING
    participants: list[str] = field(default_factory=list)
    ready_states: dict[str, bool] = field(default_factory=dict)
    flags: dict[str, set[str]] = field(default_factory=dict)
    session_deadline: datetime | None = None

    @property
    def ready_count(self) -> int:
        return sum(1 for ready in self.ready_states.values() if ready)

    @property
    def is_full(self) -> bool:
        return len(self.participants) >= self.capacity

    def barrier_satisfied(self) -> bool:
        return len(self.participants) == self.capacity and self.ready_count == self.capacity

    def summary(self) -> dict[str, object]:
        """Counts-only view; connection ids and flags stay inside the store."""
        return {
            "room_id": self.room_id,
            "phase": self.phase.value,
            "participants": len(self.participants),
            "ready_count": self.ready_count,
            "capacity": self.capacity,
        }

    def transition(self, target: RoomPhase) -> None:
        if target not in _ALLOWED_TRANSITIONS[self.phase]:
            raise RoomPhaseError(
                f"room_id={self.room_id} cannot move from {self.phase.value} to {target.value}"
            )
        self.phase = target


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _discard_deliveries(deliveries: list[Delivery]) -> None:
    if deliveries:
        logger.debug("no emitter bound, dropping %d timer deliveries", len(deliveries))


class RoomRegistry:
    """Owned collection of rooms behind a single coordination point."""

    def __init__(
        self,
        *,
        capacity: int = DEFAULT_ROOM_CAPACITY,
        session_duration_seconds: float = DEFAULT_SESSION_DURATION_SECONDS,
        session_warning_seconds: float = DEFAULT_SESSION_WARNING_SECONDS,
        quorum_policy: QuorumPolicy = majority_quorum,
        timers: SessionTimers | None = None,
        emit: Callable[[list[Delivery]], None] | None = None,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        if capacity < 2:
            raise ValueError("capacity must be >= 2")
        if session_duration_seconds <= 0:
            raise ValueError("session_duration_seconds must be > 0")
        if not 0 <= session_warning_seconds < session_duration_seconds:
            raise ValueError("session_warning_seconds must be in [0, session_duration_seconds)")

        self.capacity = capacity
        self.session_duration_seconds = float(session_duration_seconds)
        self.session_warning_seconds = float(session_warning_seconds)
        self.quorum_policy = quorum_policy
        self._timers: SessionTimers = timers if timers is not None else AsyncioSessionTimers()
        self._emit = emit or _discard_deliveries
        self._now = now or _utc_now

        self._lock = threading.RLock()
        self._rooms: dict[str, Room] = {}
        self._member_room: dict[str, str] = {}
        self._connections: set[str] = set()
        self._room_sequence = 0

    @property
    def session_duration_ms(self) -> int:
        return int(round(self.session_duration_seconds * 1000))

    @property
    def session_warning_ms(self) -> int:
        return int(round(self.session_warning_seconds * 1000))

    @property
    def quorum_threshold(self) -> int:
        return self.quorum_policy(self.capacity)

    def close(self) -> None:
        """Cancel every pending session timer and drop all state."""
        with self._lock:
            for room_id in list(self._rooms):
                self._timers.cancel_room(room_id)
            self._rooms.clear()
            self._member_room.clear()
            self._connections.clear()

    # Snapshots

    def get_room(self, room_id: str) -> Room:
        """Return the live room by id, for in-process inspection."""
        with self._lock:
            room = self._rooms.get(room_id)
            if room is None:
                raise RoomNotFoundError(room_id)
            return room

    def list_rooms(self) -> list[Room]:
        """Return all live rooms in creation order."""
        with self._lock:
            return self._rooms_in_creation_order()

    def describe_room(self, room_id: str) -> dict[str, object]:
        """Return a detached summary of one room."""
        with self._lock:
            room = self._rooms.get(room_id)
            if room is None:
                raise RoomNotFoundError(room_id)
            return room.summary()

    def describe_rooms(self) -> list[dict[str, object]]:
        """Return detached summaries of every live room in creation order."""
        with self._lock:
            return [room.summary() for room in self._rooms_in_creation_order()]

    def find_room_id_by_connection(self, connection_id: str) -> str | None:
        return self._member_room.get(connection_id)

    def is_connected(self, connection_id: str) -> bool:
        return connection_id in self._connections

    @property
    def room_count(self) -> int:
        return len(self._rooms)

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    # Connection registry

    def connect(self, connection_id: str) -> None:
        with self._lock:
            self._connections.add(connection_id)

    def disconnect(self, connection_id: str) -> list[Delivery]:
        """Forget a connection and release its room membership exactly once."""
        with self._lock:
            self._connections.discard(connection_id)
            return self._remove_from_room(connection_id)

    # Matchmaker

    def request_match(self, connection_id: str) -> list[Delivery]:
        """Place a connection into the first joinable room, re-queueing if needed."""
        with self._lock:
            if connection_id not in self._connections:
                logger.debug("join-queue from unknown connection %s ignored", connection_id)
                return []

            deliveries = self._remove_from_room(connection_id)
            room = self._find_joinable_room(connection_id)
            if room is None:
                room = self._create_room()

            room.participants.append(connection_id)
            room.ready_states[connection_id] = False
            self._member_room[connection_id] = room.room_id
            logger.info(
                "connection %s joined %s (%d/%d)",
                connection_id,
                room.room_id,
                len(room.participants),
                room.capacity,
            )
            deliveries.extend(self._room_update(room))
            return deliveries

    def _find_joinable_room(self, connection_id: str) -> Room | None:
        """First room by creation order with a free seat, restricted to rooms still waiting."""
        for room in self._rooms_in_creation_order():
            if room.phase is not RoomPhase.WAITING:
                continue
            if room.is_full or connection_id in room.participants:
                continue
            return room
        return None

    def _create_room(self) -> Room:
        self._room_sequence += 1
        room_id = f"room_{uuid.uuid4().hex}"
        while room_id in self._rooms:
            room_id = f"room_{uuid.uuid4().hex}"
        room = Room(room_id=room_id, capacity=self.capacity, created_seq=self._room_sequence)
        self._rooms[room_id] = room
        logger.info("created %s (capacity=%d)", room_id, self.capacity)
        return room

    # Readiness coordinator

    def set_ready(self, connection_id: str, ready: bool) -> list[Delivery]:
        """Toggle readiness and start the session when the barrier is met."""
        with self._lock:
            room = self._room_of(connection_id)
            if room is None or room.phase is not RoomPhase.WAITING:
                return []

            room.ready_states[connection_id] = bool(ready)
            deliveries = self._room_update(room)
            if room.barrier_satisfied():
                deliveries.extend(self._start_session(room))
            return deliveries

    # Session lifecycle controller

    def _start_session(self, room: Room) -> list[Delivery]:
        room.transition(RoomPhase.ACTIVE)
        room.flags = {}
        room.session_deadline = self._now() + timedelta(seconds=self.session_duration_seconds)
        room_id = room.room_id

        if self.session_warning_seconds > 0:
            self._timers.schedule(
                room_id,
                self.session_duration_seconds - self.session_warning_seconds,
                lambda: self._emit(self.warn_session_ending(room_id)),
            )
        self._timers.schedule(
            room_id,
            self.session_duration_seconds,
            lambda: self._emit(self.dissolve_session(room_id)),
        )
        logger.info(
            "session started in %s with %d participants, deadline %s",
            room_id,
            len(room.participants),
            room.session_deadline.isoformat(),
        )
        payload = start_session_payload(
            room_id=room_id,
            peers=room.participants,
            duration_ms=self.session_duration_ms,
        )
        return fan_out(list(room.participants), START_SESSION, payload)

    def warn_session_ending(self, room_id: str) -> list[Delivery]:
        """Move an active session into its ending window."""
        with self._lock:
            room = self._rooms.get(room_id)
            if room is None or room.phase is not RoomPhase.ACTIVE:
                return []
            room.transition(RoomPhase.ENDING)
            logger.info("session in %s entering final %.0fs", room_id, self.session_warning_seconds)
            payload = session_ending_payload(remaining_ms=self.session_warning_ms)
            return fan_out(list(room.participants), SESSION_ENDING, payload)

    def dissolve_session(self, room_id: str) -> list[Delivery]:
        """Dissolve an expired session and release every resource of the room."""
        with self._lock:
            room = self._rooms.get(room_id)
            if room is None or room.phase not in _SESSION_PHASES:
                return []
            room.transition(RoomPhase.DISSOLVED)
            deliveries = fan_out(list(room.participants), SESSION_DISSOLVED, {})
            self._delete_room(room)
            logger.info("session in %s dissolved at deadline", room_id)
            return deliveries

    # Moderation quorum tracker

    def flag(self, accuser_id: str, target_id: str) -> list[Delivery]:
        """Record an anonymous flag and silently remove the target at quorum."""
        with self._lock:
            room = self._room_of(accuser_id)
            if room is None or room.phase not in _SESSION_PHASES:
                return []
            if accuser_id == target_id or target_id not in room.participants:
                return []

            accusers = room.flags.setdefault(target_id, set())
            accusers.add(accuser_id)
            threshold = self.quorum_threshold
            if len(accusers) < threshold:
                return []

            logger.info(
                "quorum reached against %s in %s (%d/%d), removing",
                target_id,
                room.room_id,
                len(accusers),
                threshold,
            )
            deliveries = [Delivery(recipient=target_id, event=SESSION_DISSOLVED, payload={})]
            deliveries.extend(self._remove_from_room(target_id))
            return deliveries

    # Departure handler

    def leave(self, connection_id: str) -> list[Delivery]:
        with self._lock:
            return self._remove_from_room(connection_id)

    def _remove_from_room(self, connection_id: str) -> list[Delivery]:
        room_id = self._member_room.pop(connection_id, None)
        if room_id is None:
            return []
        room = self._rooms.get(room_id)
        if room is None or connection_id not in room.participants:
            return []

        room.participants.remove(connection_id)
        room.ready_states.pop(connection_id, None)
        room.flags.pop(connection_id, None)
        for target_id, accusers in list(room.flags.items()):
            accusers.discard(connection_id)
            if not accusers:
                del room.flags[target_id]

        logger.info(
            "connection %s left %s (%d remaining)",
            connection_id,
            room_id,
            len(room.participants),
        )
        if not room.participants:
            self._delete_room(room)
            return []

        deliveries = self._room_update(room)
        deliveries.extend(
            fan_out(
                list(room.participants),
                PARTICIPANT_REMOVED,
                participant_removed_payload(peer_id=connection_id, new_peers=room.participants),
            )
        )
        return deliveries

    def _delete_room(self, room: Room) -> None:
        self._timers.cancel_room(room.room_id)
        for participant in room.participants:
            if self._member_room.get(participant) == room.room_id:
                self._member_room.pop(participant, None)
        room.participants.clear()
        room.ready_states.clear()
        room.flags.clear()
        self._rooms.pop(room.room_id, None)
        logger.info("deleted %s", room.room_id)

    # Signal relay

    def relay(self, from_id: str, to_id: str, payload: Any) -> list[Delivery]:
        """Forward an opaque negotiation payload to one live connection."""
        with self._lock:
            if from_id not in self._connections or to_id not in self._connections:
                logger.debug("signal from %s to unreachable %s dropped", from_id, to_id)
                return []
            return [
                Delivery(
                    recipient=to_id,
                    event=SIGNAL,
                    payload=signal_payload(sender=from_id, payload=payload),
                )
            ]

    # Helpers

    def _rooms_in_creation_order(self) -> list[Room]:
        return sorted(self._rooms.values(), key=lambda room: room.created_seq)

    def _room_of(self, connection_id: str) -> Room | None:
        room_id = self._member_room.get(connection_id)
        if room_id is None:
            return None
        return self._rooms.get(room_id)

    @staticmethod
    def _room_update(room: Room) -> list[Delivery]:
        payload = room_update_payload(participants=len(room.participants), ready_count=room.ready_count)
        return fan_out(list(room.participants), ROOM_UPDATE, payload)


__all__ = [
    "DEFAULT_ROOM_CAPACITY",
    "DEFAULT_SESSION_DURATION_SECONDS",
    "DEFAULT_SESSION_WARNING_SECONDS",
    "Room",
    "RoomError",
    "RoomNotFoundError",
    "RoomPhase",
    "RoomPhaseError",
    "RoomRegistry",
]
