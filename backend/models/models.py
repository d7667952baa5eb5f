# backend/models/models.py
from __future__ import annotations

import time
import uuid
from typing import Any, Dict, List, Optional, Set

from pydantic import BaseModel, ConfigDict, Field, model_validator


def _now_ms() -> int:
    return int(time.time() * 1000)


# ============================================================================
# TRANSLATIONS & MESSAGES
# ============================================================================

class TranslationEntry(BaseModel):
    """
    Outcome of one translation attempt: exactly one of `text` or `error` is set.
    """
    model_config = ConfigDict(frozen=True)

    text: Optional[str] = None
    error: Optional[str] = None

    @model_validator(mode="after")
    def _exactly_one(self) -> "TranslationEntry":
        if (self.text is None) == (self.error is None):
            raise ValueError("translation entry needs exactly one of text or error")
        return self

    @classmethod
    def success(cls, text: str) -> "TranslationEntry":
        return cls(text=text)

    @classmethod
    def failure(cls, error: str) -> "TranslationEntry":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_wire(self) -> Dict[str, str]:
        return {"text": self.text} if self.ok else {"error": self.error}


class Message(BaseModel):
    """
    One ingested utterance with its per-language translations.

    Built once, after every target language has an entry, and never
    modified after it is appended to a room.
    """
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    text: str
    source_lang: str
    translations: Dict[str, TranslationEntry] = Field(default_factory=dict)
    timestamp: int = Field(default_factory=_now_ms)

    def to_wire(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "sourceLang": self.source_lang,
            "translations": {lang: entry.to_wire() for lang, entry in self.translations.items()},
            "timestamp": self.timestamp,
        }


# ============================================================================
# ROOMS
# ============================================================================

class Room(BaseModel):
    id: str
    password: str = Field(repr=False)
    speaker_connection: Optional[str] = None
    viewers: Set[str] = Field(default_factory=set)
    messages: List[Message] = Field(default_factory=list)

    @property
    def has_speaker(self) -> bool:
        return self.speaker_connection is not None

    def is_speaker(self, connection_id: str) -> bool:
        return self.speaker_connection is not None and self.speaker_connection == connection_id

    def is_member(self, connection_id: str) -> bool:
        return self.is_speaker(connection_id) or connection_id in self.viewers

    def participants(self) -> Set[str]:
        members = set(self.viewers)
        if self.speaker_connection is not None:
            members.add(self.speaker_connection)
        return members

    def find_message(self, message_id: str) -> Optional[Message]:
        for message in self.messages:
            if message.id == message_id:
                return message
        return None


class RoomSummary(BaseModel):
    """One row of the room directory."""
    id: str
    has_speaker: bool = Field(serialization_alias="hasSpeaker")
    viewer_count: int = Field(serialization_alias="viewerCount")

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class JoinResult(BaseModel):
    room: Room
    is_speaker: bool
    message: Optional[str] = None
    membership_changed: bool = True


class PendingTranscript(BaseModel):
    """An utterance that passed the speaker check and waits for its turn in the room."""
    room: Room
    speaker_connection: str
    text: str
    source_lang: str
    received_at: int = Field(default_factory=_now_ms)


class DisconnectEffect(BaseModel):
    room_id: str
    was_speaker: bool
    room_deleted: bool = False
    new_viewer_count: int = 0
    remaining: Set[str] = Field(default_factory=set)


# ============================================================================
# INBOUND PAYLOADS
# ============================================================================

class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class CreateRoomRequest(_Payload):
    room_id: str = Field(alias="roomId", min_length=1)
    password: str = ""
    admin_secret: Optional[str] = Field(default=None, alias="adminSecret")


class JoinRoomRequest(_Payload):
    room_id: str = Field(alias="roomId", min_length=1)
    password: Optional[str] = None
    is_speaker: bool = Field(default=False, alias="isSpeaker")
    admin_secret: Optional[str] = Field(default=None, alias="adminSecret")


class TranscribeRequest(_Payload):
    room_id: str = Field(alias="roomId", min_length=1)
    transcript: str = ""
    source_lang: str = Field(default="", alias="sourceLang")


class TranslationRequest(_Payload):
    room_id: str = Field(alias="roomId", min_length=1)
    message_id: str = Field(alias="messageId", min_length=1)
    target_lang: str = Field(alias="targetLang", min_length=1)
