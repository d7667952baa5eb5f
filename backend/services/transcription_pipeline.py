# backend/services/transcription_pipeline.py

from __future__ import annotations

import logging
from typing import Awaitable, Callable, List, Optional

from core.errors import EmptyInput, RoomNotFound, Unauthorized
from models.models import Message, PendingTranscript, Room
from services.room_registry import RoomRegistry
from services.translation_gateway import TranslationGateway

logger = logging.getLogger(__name__)

BroadcastFn = Callable[[Room, Message], Awaitable[None]]


class TranscriptionPipeline:
    """
    Turns a speaker utterance into a stored, translated, broadcast message.

    Flow:
        1. On arrival (`accept`): sender holds the speaker role, text not blank
        2. Wait for the room's ingestion lock (FIFO, one utterance at a time)
        3. Fan out to all target languages and wait for every result
        4. Append the message to the room and broadcast it, still under the lock

    Authorization is decided when the utterance arrives. An utterance that
    was accepted is stored even if the speaker disconnects while it is
    being translated; anything the stale connection sends afterwards is
    rejected.
    """

    def __init__(
        self,
        registry: RoomRegistry,
        gateway: TranslationGateway,
        target_languages: List[str],
        broadcast: Optional[BroadcastFn] = None,
    ) -> None:
        self.registry = registry
        self.gateway = gateway
        self.target_languages = list(target_languages)
        self.broadcast = broadcast
        self.ingested = 0

    def accept(self, room_id: str, speaker_connection: str, text: str, source_lang: str) -> PendingTranscript:
        """
        Check an utterance the moment it arrives.

        Synchronous, so the speaker check sees the room exactly as it was
        when the frame was read, whatever the connection does next.

        Raises:
            RoomNotFound: room missing
            Unauthorized: sender is not the room's speaker
            EmptyInput: text is blank
        """
        room = self.registry.get_room(room_id)
        if room is None:
            raise RoomNotFound()
        if not room.is_speaker(speaker_connection):
            raise Unauthorized("Unauthorized: Not the speaker")
        if not text or not text.strip():
            raise EmptyInput()
        return PendingTranscript(
            room=room,
            speaker_connection=speaker_connection,
            text=text,
            source_lang=source_lang,
        )

    async def process(self, pending: PendingTranscript) -> Message:
        """
        Translate, store and broadcast an accepted utterance.

        Returns:
            The appended Message.

        Raises:
            RoomNotFound: room deleted before the message could be stored
        """
        room = pending.room
        async with self.registry.ingest_lock(room.id):
            translations = await self.gateway.fan_out(pending.text, pending.source_lang, self.target_languages)

            if self.registry.get_room(room.id) is not room:
                logger.warning("Room %r closed while translating; dropping transcript.", room.id)
                raise RoomNotFound("Room was closed before the transcript could be stored.")

            message = Message(
                text=pending.text,
                source_lang=pending.source_lang,
                translations=translations,
                timestamp=pending.received_at,
            )
            room.messages.append(message)
            self.ingested += 1
            logger.info("Message %s stored in room %r (%d total)", message.id, room.id, len(room.messages))

            if self.broadcast is not None:
                await self.broadcast(room, message)

        return message

