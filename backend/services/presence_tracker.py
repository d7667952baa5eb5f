# backend/services/presence_tracker.py

from __future__ import annotations

import logging
from typing import Optional

from models.models import DisconnectEffect
from services.room_registry import RoomRegistry

logger = logging.getLogger(__name__)


class PresenceTracker:
    """
    Releases a connection's room slot when it goes away.

    Speaker leaving:
        vacate (default) - speaker slot cleared, viewers and history kept
        delete           - room removed, remaining members told it closed
    Viewer leaving:
        removed from the viewer set, nobody else is notified directly
    """

    def __init__(self, registry: RoomRegistry, delete_room_on_speaker_leave: bool = False) -> None:
        self.registry = registry
        self.delete_room_on_speaker_leave = delete_room_on_speaker_leave

    def on_disconnect(self, connection_id: str) -> Optional[DisconnectEffect]:
        """
        Handle a closed connection.

        Returns:
            The affected room's effect, or None if the connection held no slot.
        """
        return self.release(connection_id)

    def release(self, connection_id: str, keep_room_id: Optional[str] = None) -> Optional[DisconnectEffect]:
        """
        Remove `connection_id` from whichever room holds it.

        Args:
            keep_room_id: Room to leave untouched (used when a connection
                          moves to another room and must leave the old one)
        """
        room = self.registry.find_by_connection(connection_id, exclude=keep_room_id)
        if room is None:
            return None

        if room.is_speaker(connection_id):
            if self.delete_room_on_speaker_leave:
                remaining = room.participants() - {connection_id}
                self.registry.delete_room(room.id)
                logger.info("Speaker %s left room %r; room deleted.", connection_id, room.id)
                return DisconnectEffect(
                    room_id=room.id,
                    was_speaker=True,
                    room_deleted=True,
                    remaining=remaining,
                )

            room.speaker_connection = None
            logger.info("Speaker %s left room %r; awaiting a new speaker.", connection_id, room.id)
            return DisconnectEffect(
                room_id=room.id,
                was_speaker=True,
                new_viewer_count=len(room.viewers),
                remaining=room.participants(),
            )

        room.viewers.discard(connection_id)
        logger.info("Viewer %s left room %r. Count: %d", connection_id, room.id, len(room.viewers))
        return DisconnectEffect(
            room_id=room.id,
            was_speaker=False,
            new_viewer_count=len(room.viewers),
            remaining=room.participants(),
        )
