# backend/services/connection_manager.py

from __future__ import annotations

import asyncio
import uuid
from typing import Dict, Iterable, Set
from fastapi import WebSocket
import logging

logger = logging.getLogger(__name__)

# ============================================================================
# WEBSOCKET CONNECTION MANAGER
# ============================================================================

class ConnectionManager:
    """
    Tracks open WebSocket connections and delivers JSON frames to them.

    Room membership is not stored here: the RoomRegistry is the only source
    of truth for who is speaker or viewer. Callers resolve a room to its
    connection ids and hand those to `send_many`.

    Data Structures:
        connections: Maps connection_id -> WebSocket
                     Example: {"3f2c...": websocket1}

        send_locks: Maps connection_id -> asyncio.Lock, so frames from the
                    receive loop and from background ingestion tasks never
                    interleave on the same socket.
    """

    def __init__(self) -> None:
        self.connections: Dict[str, WebSocket] = {}
        self.send_locks: Dict[str, asyncio.Lock] = {}

    async def connect(self, websocket: WebSocket) -> str:
        """
        Accept a new WebSocket connection and assign it an id.

        Returns:
            The connection id used everywhere else (rooms, presence).
        """
        await websocket.accept()

        connection_id = str(uuid.uuid4())
        self.connections[connection_id] = websocket
        self.send_locks[connection_id] = asyncio.Lock()

        logger.info("✓ Connection %s opened. Total: %d", connection_id, len(self.connections))
        return connection_id

    def disconnect(self, connection_id: str) -> bool:
        """
        Forget a connection. Safe to call more than once.

        Returns:
            True if the connection was still tracked.
        """
        websocket = self.connections.pop(connection_id, None)
        self.send_locks.pop(connection_id, None)
        if websocket is None:
            return False
        logger.info("✗ Connection %s closed. Total: %d", connection_id, len(self.connections))
        return True

    async def send(self, connection_id: str, message: dict) -> bool:
        """
        Send one JSON frame to a single connection.

        Returns:
            True on success. A failed send drops the connection; the
            endpoint's receive loop then runs the normal disconnect path.
        """
        websocket = self.connections.get(connection_id)
        lock = self.send_locks.get(connection_id)
        if websocket is None or lock is None:
            return False
        try:
            async with lock:
                await websocket.send_json(message)
            return True
        except Exception as e:
            logger.warning("Send error to %s: %s", connection_id, e)
            self.disconnect(connection_id)
            return False

    async def send_many(self, connection_ids: Iterable[str], message: dict) -> Set[str]:
        """
        Send the same frame to several connections.

        Returns:
            The ids whose send failed.
        """
        failed: Set[str] = set()
        # Copy: the target set may change while we await sends
        for connection_id in list(connection_ids):
            if not await self.send(connection_id, message):
                failed.add(connection_id)
        return failed

    async def broadcast_all(self, message: dict) -> Set[str]:
        """Send a frame to every open connection, in a room or not."""
        return await self.send_many(list(self.connections.keys()), message)
