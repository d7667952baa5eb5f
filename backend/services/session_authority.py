# backend/services/session_authority.py

from __future__ import annotations

import logging
import secrets
from typing import Optional

from core.errors import (
    CreationDisabled,
    InvalidAdminSecret,
    InvalidPassword,
    RoomAlreadyExists,
    RoomNotFound,
)
from models.models import JoinResult, Room
from services.room_registry import RoomRegistry

logger = logging.getLogger(__name__)


def _secret_matches(supplied: str, expected: str) -> bool:
    return secrets.compare_digest(supplied.encode("utf-8"), expected.encode("utf-8"))


# ============================================================================
# ROLE ARBITRATION
# ============================================================================

class SessionAuthority:
    """
    Decides who may create rooms and who holds the speaker role.

    Rules:
        - A room that does not exist can only be created when the server has
          an admin secret configured and the client presents the same secret.
        - An existing room accepts a speaker only with its own password.
        - At most one speaker per room. A second speaker is told the slot is
          taken (success, not speaker) and the incumbent keeps the role.
        - Speaker and viewer slots never overlap for one connection.

    Every method is synchronous: the existence check and the create-or-join
    that follows it cannot be interleaved with another handler.
    """

    def __init__(self, registry: RoomRegistry, admin_secret: Optional[str] = "") -> None:
        self.registry = registry
        self.admin_secret = admin_secret or ""

    def _check_creation_allowed(self, room_id: str, client_admin_secret: Optional[str]) -> None:
        if not self.admin_secret:
            logger.warning("Attempt to create room %r, but ROOM_CREATION_ADMIN_SECRET is not set. Denying.", room_id)
            raise CreationDisabled()
        if not client_admin_secret or not _secret_matches(client_admin_secret, self.admin_secret):
            logger.warning("Failed attempt to create room %r. Invalid or missing admin secret.", room_id)
            raise InvalidAdminSecret()

    def create_room(self, room_id: str, password: str, client_admin_secret: Optional[str]) -> Room:
        """
        Pre-register a room with a password and no speaker.

        Raises:
            RoomAlreadyExists, CreationDisabled, InvalidAdminSecret
        """
        if self.registry.exists(room_id):
            raise RoomAlreadyExists()
        self._check_creation_allowed(room_id, client_admin_secret)
        return self.registry.create_room(room_id, password)

    def join_as_speaker(
        self,
        room_id: str,
        room_password: Optional[str],
        connection_id: str,
        client_admin_secret: Optional[str] = None,
    ) -> JoinResult:
        """
        Create-then-join or join-existing as speaker.

        Returns:
            JoinResult with is_speaker=False (and the room untouched) when a
            different connection already speaks in the room.

        Raises:
            CreationDisabled, InvalidAdminSecret: room missing and may not be created
            InvalidPassword: room exists and the password does not match
        """
        room_password = room_password or ""
        room = self.registry.get_room(room_id)

        if room is None:
            self._check_creation_allowed(room_id, client_admin_secret)
            room = self.registry.create_room(room_id, room_password, speaker_connection=connection_id)
            logger.info("Room %r created by admin for speaker %s.", room_id, connection_id)
            return JoinResult(room=room, is_speaker=True)

        if not _secret_matches(room_password, room.password):
            logger.warning("Invalid speaker password for room %r from %s.", room_id, connection_id)
            raise InvalidPassword()

        if room.speaker_connection is not None and room.speaker_connection != connection_id:
            return JoinResult(
                room=room,
                is_speaker=False,
                message="Another speaker is already active in this room.",
                membership_changed=False,
            )

        already_speaker = room.speaker_connection == connection_id
        room.speaker_connection = connection_id
        room.viewers.discard(connection_id)
        logger.info("Speaker %s assigned to room %r.", connection_id, room_id)
        return JoinResult(room=room, is_speaker=True, membership_changed=not already_speaker)

    def join_as_viewer(self, room_id: str, connection_id: str) -> JoinResult:
        """
        Add a viewer to an existing room.

        The current speaker asking to view its own room stays speaker.

        Raises:
            RoomNotFound
        """
        room = self.registry.get_room(room_id)
        if room is None:
            raise RoomNotFound()

        if room.is_speaker(connection_id):
            return JoinResult(
                room=room,
                is_speaker=True,
                message="Already speaker in this room.",
                membership_changed=False,
            )

        already_viewer = connection_id in room.viewers
        room.viewers.add(connection_id)
        logger.info("Viewer %s added to room %r. Count: %d", connection_id, room_id, len(room.viewers))
        return JoinResult(room=room, is_speaker=False, membership_changed=not already_viewer)
