"""WebSocket connection manager — relay pipeline channels to clients."""

from __future__ import annotations

import asyncio
import json
from datetime import datetime
from typing import Any

import structlog
from fastapi import WebSocket
from pydantic import BaseModel

from affect_score.streaming import Subscription

logger = structlog.get_logger(__name__)

CHANNELS = ("emotions", "scores", "all")


class ConnectionManager:
    """Track WebSocket clients per channel and broadcast JSON messages.

    Channels: ``emotions``, ``scores``, and ``all`` (both).
    """

    def __init__(self) -> None:
        self._connections: dict[str, list[WebSocket]] = {ch: [] for ch in CHANNELS}
        self._lock = asyncio.Lock()
        self.messages_sent = 0

    async def connect(self, ws: WebSocket, channel: str) -> None:
        await ws.accept()
        async with self._lock:
            self._connections[channel].append(ws)
        logger.info("ws.connected", channel=channel, total=self.client_count)

    async def disconnect(self, ws: WebSocket) -> None:
        async with self._lock:
            for subs in self._connections.values():
                if ws in subs:
                    subs.remove(ws)
        logger.info("ws.disconnected", total=self.client_count)

    @property
    def client_count(self) -> int:
        return sum(len(subs) for subs in self._connections.values())

    def channel_breakdown(self) -> dict[str, int]:
        return {ch: len(subs) for ch, subs in self._connections.items()}

    async def broadcast(self, message: dict[str, Any], channel: str) -> None:
        """Send a JSON message to the channel's clients and to ``all``."""
        targets = list(self._connections.get(channel, [])) + list(self._connections["all"])
        if not targets:
            return
        payload = json.dumps(message, default=_json_default)
        dead: list[WebSocket] = []
        for ws in targets:
            try:
                await ws.send_text(payload)
                self.messages_sent += 1
            except Exception:
                dead.append(ws)
        for ws in dead:
            await self.disconnect(ws)

    async def relay(self, subscription: Subscription, channel: str) -> None:
        """Forward a pipeline channel subscription until it closes."""
        msg_type = channel.rstrip("s")
        async for item in subscription:
            await self.broadcast(
                {"type": msg_type, "data": item.model_dump(mode="json")}, channel
            )


# ── Shared instance ──────────────────────────────────────────

ws_manager = ConnectionManager()


def _json_default(obj: Any) -> Any:
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, BaseModel):
        return obj.model_dump(mode="json")
    raise TypeError(f"Not serialisable: {type(obj)}")
