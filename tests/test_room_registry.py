import pytest

from services.room_registry import RoomRegistry


def test_create_and_get_room(registry: RoomRegistry) -> None:
    room = registry.create_room("r1", "pw1")

    assert registry.get_room("r1") is room
    assert registry.exists("r1")
    assert room.speaker_connection is None
    assert room.viewers == set()
    assert room.messages == []


def test_create_room_rejects_duplicate_id(registry: RoomRegistry) -> None:
    registry.create_room("r1", "pw1")
    with pytest.raises(KeyError):
        registry.create_room("r1", "other")


def test_get_missing_room_returns_none(registry: RoomRegistry) -> None:
    assert registry.get_room("nope") is None


def test_delete_room(registry: RoomRegistry) -> None:
    registry.create_room("r1", "pw1")

    assert registry.delete_room("r1") is True
    assert registry.delete_room("r1") is False
    assert registry.get_room("r1") is None


def test_snapshot_reports_speaker_and_viewer_count(registry: RoomRegistry) -> None:
    r1 = registry.create_room("r1", "pw", speaker_connection="a")
    r1.viewers.update({"b", "c"})
    registry.create_room("r2", "pw")

    rows = [row.to_wire() for row in registry.snapshot()]

    assert rows == [
        {"id": "r1", "hasSpeaker": True, "viewerCount": 2},
        {"id": "r2", "hasSpeaker": False, "viewerCount": 0},
    ]


def test_find_by_connection(registry: RoomRegistry) -> None:
    r1 = registry.create_room("r1", "pw", speaker_connection="a")
    r2 = registry.create_room("r2", "pw")
    r2.viewers.add("b")

    assert registry.find_by_connection("a") is r1
    assert registry.find_by_connection("b") is r2
    assert registry.find_by_connection("b", exclude="r2") is None
    assert registry.find_by_connection("zzz") is None
    assert r1.participants() == {"a"}


def test_ingest_lock_is_per_room(registry: RoomRegistry) -> None:
    registry.create_room("r1", "pw")
    registry.create_room("r2", "pw")

    assert registry.ingest_lock("r1") is registry.ingest_lock("r1")
    assert registry.ingest_lock("r1") is not registry.ingest_lock("r2")
