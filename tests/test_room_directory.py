import pytest

from conftest import FakeSocket
from core.errors import RoomNotFound
from services.connection_manager import ConnectionManager
from services.room_directory import RoomDirectoryPublisher
from services.room_registry import RoomRegistry


@pytest.mark.asyncio
async def test_publish_reaches_clients_outside_rooms(registry: RoomRegistry) -> None:
    connections = ConnectionManager()
    browser = FakeSocket()
    await connections.connect(browser)
    directory = RoomDirectoryPublisher(registry, connections)

    room = registry.create_room("r1", "pw1", speaker_connection="connA")
    room.viewers.add("connB")
    await directory.publish()

    assert browser.accepted is True
    assert browser.frames == [
        {"type": "rooms_updated", "rooms": [{"id": "r1", "hasSpeaker": True, "viewerCount": 1}]}
    ]


@pytest.mark.asyncio
async def test_failed_send_drops_connection() -> None:
    connections = ConnectionManager()
    healthy = await connections.connect(FakeSocket())
    broken = await connections.connect(FakeSocket(broken=True))

    failed = await connections.broadcast_all({"type": "ping"})

    assert failed == {broken}
    assert healthy in connections.connections
    assert broken not in connections.connections


def test_row_lookup(registry: RoomRegistry) -> None:
    directory = RoomDirectoryPublisher(registry, ConnectionManager())
    registry.create_room("r1", "pw1")

    assert directory.row("r1") == {"id": "r1", "hasSpeaker": False, "viewerCount": 0}
    with pytest.raises(RoomNotFound):
        directory.row("missing")
