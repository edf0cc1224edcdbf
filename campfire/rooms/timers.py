"""Cancelable delayed actions keyed by room id."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Protocol


class SessionTimers(Protocol):
    """Scheduler contract used by the room registry for session deadlines."""

    def schedule(self, room_id: str, delay_seconds: float, action: Callable[[], None]) -> None:
        ...

    def cancel_room(self, room_id: str) -> None:
        ...

    def pending_count(self, room_id: str) -> int:
        ...


class AsyncioSessionTimers:
    """Arm timers on the running event loop and cancel them per room."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop
        self._handles: dict[str, list[asyncio.TimerHandle]] = {}

    def _resolve_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is not None:
            return self._loop
        return asyncio.get_running_loop()

    def schedule(self, room_id: str, delay_seconds: float, action: Callable[[], None]) -> None:
        loop = self._resolve_loop()
        handles = self._handles.setdefault(room_id, [])

        def _fire() -> None:
            room_handles = self._handles.get(room_id)
            if room_handles is not None:
                if handle in room_handles:
                    room_handles.remove(handle)
                if not room_handles:
                    self._handles.pop(room_id, None)
            action()

        handle = loop.call_later(max(delay_seconds, 0.0), _fire)
        handles.append(handle)

    def cancel_room(self, room_id: str) -> None:
        for handle in self._handles.pop(room_id, []):
            handle.cancel()

    def pending_count(self, room_id: str) -> int:
        return len(self._handles.get(room_id, []))


__all__ = ["AsyncioSessionTimers", "SessionTimers"]
