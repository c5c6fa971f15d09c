import asyncio
import concurrent.futures
import logging
from typing import Any

from fastapi import WebSocket
from fastapi.encoders import jsonable_encoder

from netguard.schemas.events import SecurityEvent

logger = logging.getLogger(__name__)


def _log_broadcast_failure(future: concurrent.futures.Future) -> None:
    if future.cancelled():
        return
    exc = future.exception()
    if exc is not None:
        logger.error("Security event broadcast failed", exc_info=exc)


class RealtimeHub:
    """Fans monitoring updates and live security events out to WebSocket clients.

    ``publish_event`` is meant to be registered with
    ``SecurityMonitor.on_security_event``. Monitor callbacks run on whatever
    thread observed the signal, so the send is handed to the loop passed to
    ``bind``. A client whose send fails or stalls past ``send_timeout`` is
    dropped.
    """

    def __init__(self, send_timeout: float = 5.0) -> None:
        self.send_timeout = send_timeout
        self._clients: set[WebSocket] = set()
        self._lock = asyncio.Lock()
        self._loop: asyncio.AbstractEventLoop | None = None

    def bind(self, loop: asyncio.AbstractEventLoop | None) -> None:
        self._loop = loop

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        async with self._lock:
            self._clients.add(websocket)

    async def disconnect(self, websocket: WebSocket) -> None:
        async with self._lock:
            self._clients.discard(websocket)

    async def size(self) -> int:
        async with self._lock:
            return len(self._clients)

    async def _send(self, client: WebSocket, payload: dict[str, Any]) -> bool:
        try:
            await asyncio.wait_for(client.send_json(payload), timeout=self.send_timeout)
        except Exception as exc:
            logger.info("Dropping realtime client after failed send: %s", exc)
            return False
        return True

    async def broadcast(self, payload: dict[str, Any]) -> int:
        async with self._lock:
            clients = list(self._clients)
        if not clients:
            return 0

        delivered = await asyncio.gather(*(self._send(client, payload) for client in clients))
        stale = [client for client, ok in zip(clients, delivered) if not ok]
        if stale:
            async with self._lock:
                self._clients.difference_update(stale)
        return len(clients) - len(stale)

    def publish_event(self, event: SecurityEvent) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        message = jsonable_encoder({"type": "security.event", "payload": event})
        future = asyncio.run_coroutine_threadsafe(self.broadcast(message), loop)
        future.add_done_callback(_log_broadcast_failure)
