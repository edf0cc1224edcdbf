"""Read-only room REST routes."""

from __future__ import annotations

from fastapi import APIRouter

import campfire.runtime as runtime

router = APIRouter()


@router.get("/api/rooms")
def list_rooms() -> list[dict[str, object]]:
    """Return room summaries in creation order."""
    return runtime.room_registry.describe_rooms()


@router.get("/api/rooms/{room_id}")
def get_room_detail(room_id: str) -> dict[str, object]:
    """Return one room summary; unknown ids surface as ROOM_NOT_FOUND."""
    return runtime.room_registry.describe_room(room_id)
