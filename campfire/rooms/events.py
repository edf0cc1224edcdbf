"""Outbound event names and the delivery record produced by room operations."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

CONNECTED = "connected"
ROOM_UPDATE = "room-update"
START_SESSION = "start-session"
SESSION_ENDING = "session-ending"
SESSION_DISSOLVED = "session-dissolved"
PARTICIPANT_REMOVED = "participant-removed"
SIGNAL = "signal"


@dataclass(frozen=True, slots=True)
class Delivery:
    """One outbound event addressed to exactly one connection."""

    recipient: str
    event: str
    payload: dict[str, Any]


def fan_out(recipients: list[str], event: str, payload: dict[str, Any]) -> list[Delivery]:
    return [Delivery(recipient=recipient, event=event, payload=payload) for recipient in recipients]


def room_update_payload(*, participants: int, ready_count: int) -> dict[str, Any]:
    return {"participants": participants, "readyCount": ready_count}


def start_session_payload(*, room_id: str, peers: list[str], duration_ms: int) -> dict[str, Any]:
    return {"roomID": room_id, "peers": list(peers), "duration": duration_ms}


def session_ending_payload(*, remaining_ms: int) -> dict[str, Any]:
    return {"remaining": remaining_ms}


def participant_removed_payload(*, peer_id: str, new_peers: list[str]) -> dict[str, Any]:
    return {"peerId": peer_id, "newPeers": list(new_peers)}


def signal_payload(*, sender: str, payload: Any) -> dict[str, Any]:
    return {"from": sender, "payload": payload}


__all__ = [
    "CONNECTED",
    "Delivery",
    "PARTICIPANT_REMOVED",
    "ROOM_UPDATE",
    "SESSION_DISSOLVED",
    "SESSION_ENDING",
    "SIGNAL",
    "START_SESSION",
    "fan_out",
    "participant_removed_payload",
    "room_update_payload",
    "session_ending_payload",
    "signal_payload",
    "start_session_payload",
]
