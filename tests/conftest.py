import asyncio
from typing import Dict, Iterable, List, Optional, Tuple

import pytest

from core.config import Settings
from core.errors import TranslationError
from models.models import Message, Room
from services.presence_tracker import PresenceTracker
from services.room_registry import RoomRegistry
from services.session_authority import SessionAuthority
from services.transcription_pipeline import TranscriptionPipeline
from services.translation_gateway import TranslationGateway
from services.translator import BaseTranslator

TARGETS = ["EN-US", "IT", "CS"]


class FakeTranslator(BaseTranslator):
    """Records calls; can fail or stall per target language or per text."""

    def __init__(
        self,
        fail: Iterable[str] = (),
        delays: Optional[Dict[str, float]] = None,
        gate: Optional[asyncio.Event] = None,
    ) -> None:
        self.fail = set(fail)
        self.delays = delays or {}
        self.gate = gate
        self.started = asyncio.Event()
        self.calls: List[Tuple[str, Optional[str], str]] = []
        self.closed = False

    async def _translate_impl(self, text, source_lang, target_lang):
        self.calls.append((text, source_lang, target_lang))
        self.started.set()
        delay = self.delays.get(text, self.delays.get(target_lang, 0))
        if delay:
            await asyncio.sleep(delay)
        if self.gate is not None:
            await self.gate.wait()
        if target_lang in self.fail:
            raise TranslationError(f"quota exceeded for {target_lang}")
        return f"[{target_lang}] {text}"

    async def aclose(self):
        self.closed = True


class FakeSocket:
    """Stands in for a WebSocket: records sent frames, serves queued text frames."""

    def __init__(self, broken: bool = False, app=None) -> None:
        self.app = app
        self.accepted = False
        self.broken = broken
        self.frames: List[dict] = []
        self.incoming: asyncio.Queue = asyncio.Queue()

    async def accept(self) -> None:
        self.accepted = True

    async def send_json(self, message: dict) -> None:
        if self.broken:
            raise RuntimeError("socket closed")
        self.frames.append(message)

    async def receive_text(self) -> str:
        return await self.incoming.get()

    def types(self) -> List[str]:
        return [frame.get("type") for frame in self.frames]


class RecordingBroadcast:
    def __init__(self) -> None:
        self.sent: List[Tuple[str, Message]] = []

    async def __call__(self, room: Room, message: Message) -> None:
        self.sent.append((room.id, message))


def make_settings(**overrides) -> Settings:
    settings = Settings()
    settings.ROOM_CREATION_ADMIN_SECRET = ""
    settings.DEEPL_AUTH_KEY = ""
    settings.TARGET_LANGUAGES = list(TARGETS)
    settings.TRANSLATION_TIMEOUT_SECONDS = 2.0
    settings.DELETE_ROOM_ON_SPEAKER_LEAVE = False
    settings.CORS_ORIGINS = ["*"]
    for key, value in overrides.items():
        setattr(settings, key, value)
    return settings


@pytest.fixture
def registry() -> RoomRegistry:
    return RoomRegistry()


@pytest.fixture
def authority(registry) -> SessionAuthority:
    return SessionAuthority(registry, admin_secret="S")


@pytest.fixture
def translator() -> FakeTranslator:
    return FakeTranslator()


@pytest.fixture
def gateway(translator) -> TranslationGateway:
    return TranslationGateway(translator, timeout=2.0)


@pytest.fixture
def broadcast() -> RecordingBroadcast:
    return RecordingBroadcast()


@pytest.fixture
def pipeline(registry, gateway, broadcast) -> TranscriptionPipeline:
    return TranscriptionPipeline(registry, gateway, TARGETS, broadcast=broadcast)


@pytest.fixture
def presence(registry) -> PresenceTracker:
    return PresenceTracker(registry)
