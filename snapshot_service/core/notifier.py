"""
Notification fan-out to connected WebSocket listeners.

Every registered listener receives every broadcast. Delivery is best-effort:
listeners that are not open are skipped, listeners whose send fails are
dropped, and neither affects the other listeners or the caller.
"""

import asyncio
from typing import Any, Protocol, runtime_checkable
import uuid

from fastapi import WebSocket
from starlette.websockets import WebSocketState
import structlog

logger = structlog.get_logger(__name__)


@runtime_checkable
class Listener(Protocol):
    """A delivery target for broadcast messages."""

    listener_id: str

    @property
    def is_open(self) -> bool: ...

    async def send(self, payload: dict[str, Any]) -> None: ...


class WebSocketListener:
    """Listener backed by a FastAPI WebSocket connection."""

    def __init__(self, websocket: WebSocket, listener_id: str | None = None):
        self.websocket = websocket
        self.listener_id = listener_id or uuid.uuid4().hex[:12]

    @property
    def is_open(self) -> bool:
        return (
            self.websocket.client_state == WebSocketState.CONNECTED
            and self.websocket.application_state == WebSocketState.CONNECTED
        )

    async def send(self, payload: dict[str, Any]) -> None:
        await self.websocket.send_json(payload)

    async def close(self, code: int = 1001) -> None:
        if self.is_open:
            await self.websocket.close(code=code)

    def __repr__(self) -> str:
        return f"WebSocketListener({self.listener_id!r})"


class NotificationHub:
    """Set of connected listeners and best-effort broadcast to all of them."""

    def __init__(self) -> None:
        self._listeners: dict[str, Listener] = {}

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def register(self, listener: Listener) -> None:
        self._listeners[listener.listener_id] = listener
        logger.info(
            "Listener registered",
            listener_id=listener.listener_id,
            listeners=len(self._listeners),
        )

    def unregister(self, listener: Listener) -> None:
        """Remove a listener. Unknown or already removed listeners are ignored."""
        if self._listeners.pop(listener.listener_id, None) is not None:
            logger.info(
                "Listener unregistered",
                listener_id=listener.listener_id,
                listeners=len(self._listeners),
            )

    def is_registered(self, listener: Listener) -> bool:
        return listener.listener_id in self._listeners

    async def broadcast(self, payload: dict[str, Any]) -> int:
        """
        Deliver ``payload`` to every registered, open listener.

        Args:
            payload: JSON-serializable message

        Returns:
            Number of listeners the message was handed to
        """
        targets = [listener for listener in self._listeners.values() if listener.is_open]
        if not targets:
            return 0

        outcomes = await asyncio.gather(
            *(self._deliver(listener, payload) for listener in targets)
        )
        return sum(outcomes)

    async def _deliver(self, listener: Listener, payload: dict[str, Any]) -> bool:
        try:
            await listener.send(payload)
            return True
        except Exception as e:
            logger.warning(
                "Failed to deliver notification, dropping listener",
                listener_id=listener.listener_id,
                task_id=payload.get("taskId"),
                error=str(e) or e.__class__.__name__,
            )
            self.unregister(listener)
            return False

    async def close_all(self) -> None:
        """Close every listener that supports it and clear the set."""
        for listener in list(self._listeners.values()):
            close = getattr(listener, "close", None)
            if close is not None:
                try:
                    await close()
                except Exception as e:
                    logger.debug(
                        "Error closing listener",
                        listener_id=listener.listener_id,
                        error=str(e),
                    )
        self._listeners.clear()
