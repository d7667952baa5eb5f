# backend/services/room_directory.py

from __future__ import annotations

import logging
from typing import List

from core.errors import RoomNotFound
from services.connection_manager import ConnectionManager
from services.room_registry import RoomRegistry

logger = logging.getLogger(__name__)


class RoomDirectoryPublisher:
    """
    Publishes the room list (id, hasSpeaker, viewerCount) for discovery.

    Called after every membership change. The push goes to every open
    connection, including clients that have not joined any room yet.
    """

    def __init__(self, registry: RoomRegistry, connections: ConnectionManager) -> None:
        self.registry = registry
        self.connections = connections

    def snapshot(self) -> List[dict]:
        return [row.to_wire() for row in self.registry.snapshot()]

    def row(self, room_id: str) -> dict:
        for summary in self.registry.snapshot():
            if summary.id == room_id:
                return summary.to_wire()
        raise RoomNotFound()

    async def publish(self) -> None:
        """
        Send "rooms_updated" to all WebSocket clients.

        Side Effects:
            Sends JSON message to all WebSocket connections:
            {
                "type": "rooms_updated",
                "rooms": [{"id": ..., "hasSpeaker": ..., "viewerCount": ...}]
            }
        """
        rooms = self.snapshot()
        failed = await self.connections.broadcast_all({"type": "rooms_updated", "rooms": rooms})
        logger.debug("Published directory: %d rooms, %d failed sends", len(rooms), len(failed))
