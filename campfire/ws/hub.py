"""Connection id to websocket mapping with per-connection ordered outboxes."""

from __future__ import annotations

import asyncio
from typing import Any

from campfire.core.logging import get_logger
from campfire.rooms.events import Delivery

from .protocol import ws_send_event

logger = get_logger(__name__)


class ConnectionHub:
    """Deliver room events to live websockets without blocking the caller.

    Each registered connection owns one outbox queue drained by one writer
    task, so events to a single recipient keep their order while a slow or
    dead recipient never stalls anyone else.
    """

    def __init__(self) -> None:
        self._sockets: dict[str, Any] = {}
        self._outboxes: dict[str, asyncio.Queue[Delivery]] = {}
        self._writers: dict[str, asyncio.Task[None]] = {}

    def register(self, connection_id: str, websocket: Any) -> None:
        outbox: asyncio.Queue[Delivery] = asyncio.Queue()
        self._sockets[connection_id] = websocket
        self._outboxes[connection_id] = outbox
        self._writers[connection_id] = asyncio.create_task(
            self._drain(connection_id, websocket, outbox)
        )

    async def unregister(self, connection_id: str) -> None:
        self._sockets.pop(connection_id, None)
        self._outboxes.pop(connection_id, None)
        writer = self._writers.pop(connection_id, None)
        if writer is None:
            return
        writer.cancel()
        try:
            await writer
        except asyncio.CancelledError:
            pass

    def is_registered(self, connection_id: str) -> bool:
        return connection_id in self._sockets

    @property
    def connection_count(self) -> int:
        return len(self._sockets)

    def dispatch(self, deliveries: list[Delivery]) -> None:
        """Queue deliveries for their recipients; unknown recipients are dropped."""
        for delivery in deliveries:
            outbox = self._outboxes.get(delivery.recipient)
            if outbox is None:
                logger.debug("drop %s to gone connection %s", delivery.event, delivery.recipient)
                continue
            outbox.put_nowait(delivery)

    async def flush(self) -> None:
        """Wait until every queued delivery has been handed to its websocket."""
        for outbox in list(self._outboxes.values()):
            await outbox.join()

    async def _drain(self, connection_id: str, websocket: Any, outbox: asyncio.Queue[Delivery]) -> None:
        while True:
            delivery = await outbox.get()
            try:
                await ws_send_event(websocket, delivery.event, delivery.payload)
            except Exception as exc:
                logger.warning("send %s to %s failed: %s", delivery.event, connection_id, exc)
                self._forget(connection_id, outbox)
                outbox.task_done()
                self._discard_pending(outbox)
                return
            outbox.task_done()

    def _forget(self, connection_id: str, outbox: asyncio.Queue[Delivery]) -> None:
        if self._outboxes.get(connection_id) is outbox:
            self._outboxes.pop(connection_id, None)
            self._sockets.pop(connection_id, None)
            self._writers.pop(connection_id, None)

    @staticmethod
    def _discard_pending(outbox: asyncio.Queue[Delivery]) -> None:
        while True:
            try:
                outbox.get_nowait()
            except asyncio.QueueEmpty:
                return
            outbox.task_done()


__all__ = ["ConnectionHub"]
