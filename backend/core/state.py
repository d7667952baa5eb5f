# backend/core/state.py
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional, Set

from starlette.requests import HTTPConnection

from core.config import Settings
from models.models import DisconnectEffect, Message, Room
from services.connection_manager import ConnectionManager
from services.presence_tracker import PresenceTracker
from services.room_directory import RoomDirectoryPublisher
from services.room_registry import RoomRegistry
from services.session_authority import SessionAuthority
from services.transcription_pipeline import TranscriptionPipeline
from services.translation_gateway import TranslationGateway
from services.translator import BaseTranslator

logger = logging.getLogger(__name__)


class AppState:
    """
    Everything one running server owns: the room registry, open connections
    and the services wired on top of them.

    Built once per application by `create_app` and stored on `app.state`.
    Handlers reach it through `get_app_state(request_or_websocket)`.
    """

    def __init__(self, settings: Settings, translator: Optional[BaseTranslator]) -> None:
        self.settings = settings
        self.translator = translator

        self.registry = RoomRegistry()
        self.connections = ConnectionManager()
        self.gateway = TranslationGateway(translator, timeout=settings.TRANSLATION_TIMEOUT_SECONDS)
        self.authority = SessionAuthority(self.registry, settings.ROOM_CREATION_ADMIN_SECRET)
        self.pipeline = TranscriptionPipeline(
            self.registry,
            self.gateway,
            settings.TARGET_LANGUAGES,
            broadcast=self.broadcast_transcription,
        )
        self.presence = PresenceTracker(self.registry, settings.DELETE_ROOM_ON_SPEAKER_LEAVE)
        self.directory = RoomDirectoryPublisher(self.registry, self.connections)

        self.background_tasks: Set[asyncio.Task] = set()
        self.app_start_time: datetime = datetime.now(timezone.utc)

    async def broadcast_transcription(self, room: Room, message: Message) -> None:
        """Deliver a stored message to the speaker and every viewer of its room."""
        await self.connections.send_many(
            room.participants(),
            {"type": "new_transcription", "message": message.to_wire()},
        )

    async def announce_departure(self, effect: DisconnectEffect) -> None:
        """Tell the rest of a room that its speaker left, then republish the directory."""
        if effect.was_speaker:
            if effect.room_deleted:
                await self.connections.send_many(
                    effect.remaining,
                    {
                        "type": "room_closed",
                        "roomId": effect.room_id,
                        "message": "The speaker has left and the room has been closed.",
                    },
                )
            else:
                await self.connections.send_many(
                    effect.remaining,
                    {
                        "type": "speaker_left",
                        "roomId": effect.room_id,
                        "message": "The speaker has left. The room is awaiting a new speaker.",
                    },
                )
        await self.directory.publish()

    def spawn(self, coro) -> asyncio.Task:
        """Run a coroutine in the background, keeping a reference until it finishes."""
        task = asyncio.create_task(coro)
        self.background_tasks.add(task)
        task.add_done_callback(self.background_tasks.discard)
        return task

    async def shutdown(self) -> None:
        for task in list(self.background_tasks):
            task.cancel()
        if self.background_tasks:
            await asyncio.gather(*self.background_tasks, return_exceptions=True)
        if self.translator is not None:
            await self.translator.aclose()
        logger.info("Application state shut down (%d rooms discarded)", len(self.registry.rooms))


def get_app_state(connection: HTTPConnection) -> AppState:
    """FastAPI dependency / helper for both HTTP requests and WebSockets."""
    return connection.app.state.app_state
