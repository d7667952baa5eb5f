# backend/services/room_registry.py

from __future__ import annotations

import asyncio
import logging
from typing import Dict, List, Optional

from models.models import Room, RoomSummary

logger = logging.getLogger(__name__)

# ============================================================================
# IN-MEMORY ROOM REGISTRY
# ============================================================================

class RoomRegistry:
    """
    Owns every room known to this process.

    State is purely in-memory and lives as long as the application that
    created the registry. All mutating methods are synchronous, so on the
    event loop each call runs to completion without interleaving with
    another handler.

    Attributes:
        rooms: Dictionary mapping room_id -> Room object

    Ingestion locks:
        Each room gets an asyncio.Lock the first time a transcription is
        ingested for it. The lock admits one in-flight ingestion at a time
        and hands it out in request order, which is what keeps the message
        list in submission order while translations are awaited.

    Usage:
        registry = RoomRegistry()
        room = registry.create_room("lecture-1", "pw")
        directory = registry.snapshot()
    """

    def __init__(self) -> None:
        self.rooms: Dict[str, Room] = {}
        self._ingest_locks: Dict[str, asyncio.Lock] = {}

    def create_room(self, room_id: str, password: str, speaker_connection: Optional[str] = None) -> Room:
        """
        Register a new room.

        Args:
            room_id: Client-chosen room identifier
            password: Shared secret required to speak in the room
            speaker_connection: Connection to install as speaker, if any

        Returns:
            Room: The newly created room object

        Note:
            Caller must check that the id is free first (see `exists`).
        """
        if room_id in self.rooms:
            raise KeyError(room_id)
        room = Room(id=room_id, password=password, speaker_connection=speaker_connection)
        self.rooms[room_id] = room
        logger.info("✓ Created room: %s (speaker: %s)", room_id, speaker_connection or "none")
        return room

    def exists(self, room_id: str) -> bool:
        return room_id in self.rooms

    def get_room(self, room_id: str) -> Optional[Room]:
        """
        Get a room by ID.

        Returns:
            Room object if found, None otherwise
        """
        return self.rooms.get(room_id)

    def list_rooms(self) -> List[Room]:
        return list(self.rooms.values())

    def delete_room(self, room_id: str) -> bool:
        """
        Remove a room and its ingestion lock.

        Returns:
            True if room was deleted, False if room didn't exist
        """
        if room_id in self.rooms:
            del self.rooms[room_id]
            self._ingest_locks.pop(room_id, None)
            logger.info("✓ Deleted room: %s", room_id)
            return True
        return False

    def find_by_connection(self, connection_id: str, exclude: Optional[str] = None) -> Optional[Room]:
        """
        Find the room where `connection_id` is speaker or viewer.

        A connection only ever holds one slot, so the first match is the
        only match.

        Args:
            exclude: Room id to skip
        """
        for room in self.rooms.values():
            if room.id != exclude and room.is_member(connection_id):
                return room
        return None

    def ingest_lock(self, room_id: str) -> asyncio.Lock:
        lock = self._ingest_locks.get(room_id)
        if lock is None:
            lock = asyncio.Lock()
            self._ingest_locks[room_id] = lock
        return lock

    def snapshot(self) -> List[RoomSummary]:
        """
        Directory view of all rooms, in creation order.

        Returns:
            List of RoomSummary rows (id, has_speaker, viewer_count)
        """
        return [
            RoomSummary(
                id=room.id,
                has_speaker=room.has_speaker,
                viewer_count=len(room.viewers),
            )
            for room in self.rooms.values()
        ]
