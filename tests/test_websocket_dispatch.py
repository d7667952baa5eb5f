import asyncio
import json
from types import SimpleNamespace

import pytest

from api.websocket import dispatch, release_connection, websocket_endpoint
from conftest import FakeSocket, FakeTranslator, make_settings
from core.state import AppState


def _state(**overrides) -> AppState:
    return AppState(make_settings(ROOM_CREATION_ADMIN_SECRET="S", **overrides), FakeTranslator())


def _frame(action: str, **data) -> str:
    return json.dumps({"action": action, "data": data})


async def _drain(state: AppState) -> None:
    while state.background_tasks:
        await asyncio.gather(*list(state.background_tasks))


async def _wait_for_frame(socket: FakeSocket, frame_type: str) -> None:
    for _ in range(200):
        if frame_type in socket.types():
            return
        await asyncio.sleep(0)
    pytest.fail(f"did not receive {frame_type}, seen={socket.types()}")


async def _speaker(state: AppState, room_id: str = "r1") -> tuple:
    socket = FakeSocket()
    connection_id = await state.connections.connect(socket)
    await dispatch(
        state,
        connection_id,
        _frame("join_room", roomId=room_id, password="pw1", isSpeaker=True, adminSecret="S"),
    )
    return socket, connection_id


@pytest.mark.asyncio
async def test_utterance_sent_right_before_disconnect_is_kept() -> None:
    state = _state()
    _, speaker = await _speaker(state)

    await dispatch(state, speaker, _frame("transcribe_data", roomId="r1", transcript="last words", sourceLang="en-US"))
    effect = release_connection(state, speaker)
    await state.announce_departure(effect)
    await _drain(state)

    room = state.registry.get_room("r1")
    assert room.speaker_connection is None
    assert [m.text for m in room.messages] == ["last words"]


@pytest.mark.asyncio
async def test_utterance_sent_right_before_switching_rooms_is_kept() -> None:
    state = _state()
    socket, speaker = await _speaker(state)
    state.registry.create_room("r2", "pw2")

    await dispatch(state, speaker, _frame("transcribe_data", roomId="r1", transcript="hello", sourceLang="en-US"))
    await dispatch(state, speaker, _frame("join_room", roomId="r2"))
    await _drain(state)

    assert [m.text for m in state.registry.get_room("r1").messages] == ["hello"]
    assert state.registry.get_room("r2").viewers == {speaker}
    assert "transcription_error" not in socket.types()


@pytest.mark.asyncio
async def test_stale_speaker_is_rejected_on_arrival() -> None:
    state = _state()
    _, speaker = await _speaker(state)
    release_connection(state, speaker)

    await dispatch(state, speaker, _frame("transcribe_data", roomId="r1", transcript="late", sourceLang="en-US"))

    assert state.background_tasks == set()
    assert state.registry.get_room("r1").messages == []


@pytest.mark.asyncio
async def test_reply_precedes_directory_broadcast() -> None:
    state = _state()
    socket, speaker = await _speaker(state)

    await dispatch(state, speaker, _frame("create_room", roomId="r2", password="pw2", adminSecret="S"))

    assert socket.types() == ["join_room", "rooms_updated", "create_room", "rooms_updated"]


@pytest.mark.asyncio
async def test_cancelled_endpoint_still_announces_departure() -> None:
    state = _state()
    viewer_socket = FakeSocket()
    viewer = await state.connections.connect(viewer_socket)

    speaker_socket = FakeSocket(app=SimpleNamespace(state=SimpleNamespace(app_state=state)))
    endpoint = asyncio.create_task(websocket_endpoint(speaker_socket))
    speaker_socket.incoming.put_nowait(
        _frame("join_room", roomId="r1", password="pw1", isSpeaker=True, adminSecret="S")
    )
    await _wait_for_frame(speaker_socket, "join_room")
    await dispatch(state, viewer, _frame("join_room", roomId="r1"))

    endpoint.cancel()
    with pytest.raises(asyncio.CancelledError):
        await endpoint
    await _drain(state)

    assert viewer_socket.types()[-2:] == ["speaker_left", "rooms_updated"]
    assert viewer_socket.frames[-1]["rooms"] == [{"id": "r1", "hasSpeaker": False, "viewerCount": 1}]
    assert state.registry.get_room("r1").speaker_connection is None
