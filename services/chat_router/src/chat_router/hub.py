"""WebSocket hub: owns live sockets and feeds their events to the router."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict
from uuid import uuid4

from fastapi import WebSocket
from fastapi.websockets import WebSocketDisconnect
from pydantic import ValidationError

from .config import Settings
from .models import Envelope
from .router import MessageRouter
from .state import ChatState

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Maps connection ids to sockets and implements the router transport."""

    def __init__(self) -> None:
        self._connections: Dict[str, WebSocket] = {}
        self._lock = asyncio.Lock()

    async def register(self, websocket: WebSocket) -> str:
        await websocket.accept()
        connection_id = uuid4().hex
        async with self._lock:
            self._connections[connection_id] = websocket
        return connection_id

    async def unregister(self, connection_id: str) -> None:
        async with self._lock:
            self._connections.pop(connection_id, None)

    async def send(self, connection_id: str, event: str, data: Any) -> None:
        websocket = self._connections.get(connection_id)
        if websocket is None:
            logger.debug("Skip %r for closed connection %s", event, connection_id)
            return
        try:
            await websocket.send_json({"event": event, "data": data})
        except (RuntimeError, WebSocketDisconnect) as exc:
            logger.warning("Failed to send %r to %s: %s", event, connection_id, exc)
            await self._safe_close(connection_id, websocket)

    async def broadcast(self, event: str, data: Any, *, exclude: str | None = None) -> None:
        async with self._lock:
            targets = [cid for cid in self._connections if cid != exclude]
        for connection_id in targets:
            await self.send(connection_id, event, data)

    async def close_all(self) -> None:
        async with self._lock:
            connections = list(self._connections.items())
            self._connections.clear()
        for connection_id, websocket in connections:
            try:
                await websocket.close(code=1001, reason="Server shutdown")
            except (RuntimeError, WebSocketDisconnect):
                logger.debug("Ignored error while closing %s", connection_id, exc_info=True)

    async def _safe_close(self, connection_id: str, websocket: WebSocket) -> None:
        try:
            await websocket.close()
        except (RuntimeError, WebSocketDisconnect):
            logger.debug("Ignored error while closing websocket", exc_info=True)
        finally:
            await self.unregister(connection_id)


class ChatHub:
    """Owns the chat state, the router and the sockets for the app lifetime."""

    def __init__(self, settings: Settings, state: ChatState | None = None) -> None:
        self._settings = settings
        self.state = state if state is not None else ChatState.from_settings(settings)
        self.connections = ConnectionManager()
        self.router = MessageRouter(self.state, self.connections)

    async def start(self) -> None:
        logger.info("Chat hub started with %d history message(s)", len(self.state.history))

    async def stop(self) -> None:
        await self.connections.close_all()
        self.state.close()

    async def handle_connection(self, websocket: WebSocket) -> None:
        """Main loop for a websocket connection."""

        connection_id = await self.connections.register(websocket)
        await self.router.connect(connection_id)
        try:
            while True:
                data = await websocket.receive_json()
                try:
                    envelope = Envelope.model_validate(data)
                except ValidationError as exc:
                    logger.warning("Invalid frame from %s: %s", connection_id, exc)
                    await websocket.close(code=1003, reason="Invalid payload")
                    return
                await self.router.dispatch(connection_id, envelope.event, envelope.data)
        except WebSocketDisconnect:
            logger.debug("Client %s disconnected", connection_id)
        except Exception as exc:  # pylint: disable=broad-except
            logger.exception("Unexpected error in websocket loop: %s", exc)
            try:
                await websocket.close(code=1011, reason="Internal error")
            except RuntimeError:
                logger.debug("Socket %s already closed", connection_id)
        finally:
            await self.connections.unregister(connection_id)
            await self.router.disconnect(connection_id)


__all__ = ["ConnectionManager", "ChatHub"]
