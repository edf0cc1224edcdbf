"""Map room-domain errors onto the unified ``{code, message, detail}`` body."""

from __future__ import annotations

from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse

from campfire.core.logging import get_logger
from campfire.rooms.registry import RoomError
from campfire.rooms.registry import RoomNotFoundError
from campfire.rooms.registry import RoomPhaseError

logger = get_logger(__name__)

# error type -> (status, code, message)
_ROOM_ERROR_MAP: dict[type[RoomError], tuple[int, str, str]] = {
    RoomNotFoundError: (404, "ROOM_NOT_FOUND", "room not found"),
    RoomPhaseError: (409, "ROOM_PHASE_CONFLICT", "room is not in a phase that allows this"),
}
_FALLBACK = (400, "ROOM_ERROR", "room request rejected")


def error_body(*, code: str, message: str, detail: dict[str, Any] | None = None) -> dict[str, Any]:
    return {"code": code, "message": message, "detail": detail or {}}


def room_error_detail(exc: RoomError) -> dict[str, Any]:
    if isinstance(exc, RoomNotFoundError):
        return {"room_id": exc.room_id}
    return {"reason": str(exc)}


async def handle_room_error(_: Request, exc: RoomError) -> JSONResponse:
    """Render a ``RoomError`` raised by a route as a unified error response."""
    for error_type, (status_code, code, message) in _ROOM_ERROR_MAP.items():
        if isinstance(exc, error_type):
            break
    else:
        status_code, code, message = _FALLBACK
        logger.warning("unmapped room error %s: %s", type(exc).__name__, exc)
    return JSONResponse(
        status_code=status_code,
        content=error_body(code=code, message=message, detail=room_error_detail(exc)),
    )


__all__ = [
    "error_body",
    "handle_room_error",
    "room_error_detail",
]
