"""WebSocket heartbeat and message-loop utilities."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from collections.abc import Callable
from dataclasses import dataclass
import json
from typing import Any

from fastapi import WebSocketDisconnect

from campfire.core.config import Settings
from campfire.core.logging import get_logger

from .protocol import ws_send_event

logger = get_logger(__name__)

HEARTBEAT_TIMEOUT_CLOSE_CODE = 4408
PING = "PING"
PONG = "PONG"

MessageHandler = Callable[[str], Awaitable[None]]


@dataclass(frozen=True, slots=True)
class HeartbeatPolicy:
    """Ping cadence and tolerance for one websocket."""

    interval_seconds: float = 30.0
    pong_timeout_seconds: float = 10.0
    max_missed_pongs: int = 2

    @classmethod
    def from_settings(cls, settings: Settings) -> "HeartbeatPolicy":
        return cls(
            interval_seconds=settings.campfire_heartbeat_interval_seconds,
            pong_timeout_seconds=settings.campfire_heartbeat_pong_timeout_seconds,
            max_missed_pongs=settings.campfire_heartbeat_max_missed_pongs,
        )

    @property
    def idle_seconds(self) -> float:
        return max(self.interval_seconds - self.pong_timeout_seconds, 0.0)


class HeartbeatState:
    """Outstanding ping and consecutive misses for one connection."""

    def __init__(self) -> None:
        self.missed_pong_count = 0
        self.pings_sent = 0
        self._pong_arrived = asyncio.Event()
        self._ping_outstanding = False

    def ping_sent(self) -> None:
        self.pings_sent += 1
        self._ping_outstanding = True
        self._pong_arrived.clear()

    def pong_received(self) -> None:
        if not self._ping_outstanding:
            return
        self._ping_outstanding = False
        self.missed_pong_count = 0
        self._pong_arrived.set()

    async def await_pong(self, timeout_seconds: float) -> bool:
        """Return False and count a miss when the ping goes unanswered."""
        if not self._ping_outstanding:
            return True
        try:
            await asyncio.wait_for(self._pong_arrived.wait(), timeout=timeout_seconds)
        except TimeoutError:
            self._ping_outstanding = False
            self.missed_pong_count += 1
            return False
        return True


def control_frame(message: str) -> str | None:
    """Return PING/PONG for heartbeat frames, bare or enveloped, else None."""
    if message in (PING, PONG):
        return message
    try:
        decoded = json.loads(message)
    except json.JSONDecodeError:
        return None
    if isinstance(decoded, dict) and decoded.get("type") in (PING, PONG):
        return decoded["type"]
    return None


async def heartbeat_loop(websocket: Any, *, state: HeartbeatState, policy: HeartbeatPolicy) -> None:
    while True:
        await ws_send_event(websocket, PING, {})
        state.ping_sent()
        if not await state.await_pong(policy.pong_timeout_seconds):
            if state.missed_pong_count >= policy.max_missed_pongs:
                logger.info("closing websocket after %d missed pongs", state.missed_pong_count)
                await websocket.close(code=HEARTBEAT_TIMEOUT_CLOSE_CODE, reason="HEARTBEAT_TIMEOUT")
                return
        if policy.idle_seconds > 0:
            await asyncio.sleep(policy.idle_seconds)


async def ws_message_loop(
    websocket: Any,
    *,
    on_message: MessageHandler,
    policy: HeartbeatPolicy | None = None,
) -> None:
    """Read frames until disconnect, answering heartbeats and forwarding the rest."""
    state = HeartbeatState()
    heartbeat_task = asyncio.create_task(
        heartbeat_loop(websocket, state=state, policy=policy or HeartbeatPolicy())
    )
    try:
        while True:
            message = await websocket.receive_text()
            kind = control_frame(message)
            if kind == PING:
                await ws_send_event(websocket, PONG, {})
            elif kind == PONG:
                state.pong_received()
            else:
                await on_message(message)
    except WebSocketDisconnect:
        return
    finally:
        heartbeat_task.cancel()
        try:
            await heartbeat_task
        except asyncio.CancelledError:
            pass
        except Exception as exc:
            logger.debug("heartbeat stopped with %r", exc)
