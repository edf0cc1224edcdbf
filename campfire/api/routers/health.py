"""Liveness route."""

from __future__ import annotations

from fastapi import APIRouter

import campfire.runtime as runtime

router = APIRouter()


@router.get("/api/health")
def health() -> dict[str, object]:
    return {
        "status": "ok",
        "rooms": runtime.room_registry.room_count,
        "connections": runtime.room_registry.connection_count,
    }
