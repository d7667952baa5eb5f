# backend/api/websocket.py

from __future__ import annotations

import json
import logging
from typing import Any, Awaitable, Callable, Optional

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from core.errors import CoordinatorError, Unauthorized, UnsupportedLanguage
from core.state import AppState, get_app_state
from models.models import (
    CreateRoomRequest,
    DisconnectEffect,
    JoinRoomRequest,
    PendingTranscript,
    TranscribeRequest,
    TranslationRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _validation_message(error: ValidationError) -> str:
    first = error.errors()[0]
    field = ".".join(str(part) for part in first.get("loc", ()))
    return f"Invalid request: {field} {first.get('msg', '')}".strip()


# ============================================================================
# REQUEST / RESPONSE ACTIONS
# ============================================================================
# Each handler answers through `respond` before notifying anyone else, so
# the caller always sees its own reply ahead of the resulting broadcasts.

Respond = Callable[[dict], Awaitable[None]]


async def handle_create_room(state: AppState, connection_id: str, data: dict, respond: Respond) -> None:
    request = CreateRoomRequest.model_validate(data)
    room = state.authority.create_room(request.room_id, request.password, request.admin_secret)
    await respond({"success": True, "roomId": room.id})
    await state.directory.publish()


async def handle_join_room(state: AppState, connection_id: str, data: dict, respond: Respond) -> None:
    request = JoinRoomRequest.model_validate(data)

    if request.is_speaker:
        logger.info(
            "Speaker join attempt. Room: %r, HasAdminSecret: %s",
            request.room_id,
            bool(request.admin_secret),
        )
        result = state.authority.join_as_speaker(
            request.room_id,
            request.password,
            connection_id,
            request.admin_secret,
        )
    else:
        result = state.authority.join_as_viewer(request.room_id, connection_id)

    # A connection holds one room slot; joining elsewhere releases the old one
    departure = None
    if result.room.is_member(connection_id):
        departure = state.presence.release(connection_id, keep_room_id=result.room.id)

    response = {
        "success": True,
        "roomId": result.room.id,
        "isSpeaker": result.is_speaker,
        "messages": [message.to_wire() for message in result.room.messages],
    }
    if result.message:
        response["message"] = result.message
    await respond(response)

    if departure is not None:
        await state.announce_departure(departure)
    elif result.membership_changed:
        await state.directory.publish()


async def handle_get_rooms(state: AppState, connection_id: str, data: dict, respond: Respond) -> None:
    await respond({"rooms": state.directory.snapshot()})


REQUEST_HANDLERS = {
    "create_room": handle_create_room,
    "join_room": handle_join_room,
    "get_rooms": handle_get_rooms,
}


# ============================================================================
# FIRE-AND-FORGET ACTIONS
# ============================================================================

async def run_transcription(state: AppState, pending: PendingTranscript) -> None:
    """Background task for one accepted utterance. The pipeline broadcasts on success."""
    connection_id = pending.speaker_connection
    room_id = pending.room.id
    try:
        await state.pipeline.process(pending)
    except CoordinatorError as e:
        logger.warning("Transcription for room %r by %s dropped: %s", room_id, connection_id, e.message)
        await state.connections.send(
            connection_id,
            {"type": "transcription_error", "error": e.message, "code": e.code},
        )
    except Exception:
        logger.exception("Unexpected error processing transcription for room %r", room_id)
        await state.connections.send(
            connection_id,
            {
                "type": "transcription_error",
                "error": "Failed to process transcription",
                "code": "internal_error",
            },
        )


async def handle_transcribe_data(state: AppState, connection_id: str, data: dict) -> None:
    try:
        request = TranscribeRequest.model_validate(data)
        pending = state.pipeline.accept(
            request.room_id,
            connection_id,
            request.transcript,
            request.source_lang,
        )
    except ValidationError as e:
        await state.connections.send(
            connection_id,
            {"type": "transcription_error", "error": _validation_message(e), "code": "invalid_request"},
        )
        return
    except CoordinatorError as e:
        logger.warning(
            "Transcription attempt failed for room %r by %s: %s",
            data.get("roomId"),
            connection_id,
            e.message,
        )
        await state.connections.send(
            connection_id,
            {"type": "transcription_error", "error": e.message, "code": e.code},
        )
        return
    # Accepted before the next frame is read. Tasks start in creation order
    # and take the room lock before their first suspension, so per-room
    # order follows arrival order
    state.spawn(run_transcription(state, pending))


async def handle_request_translation(state: AppState, connection_id: str, data: dict) -> None:
    message_id = data.get("messageId")
    target_lang: Optional[str] = None
    try:
        request = TranslationRequest.model_validate(data)
        target_lang = request.target_lang
        if request.target_lang not in state.settings.TARGET_LANGUAGES:
            raise UnsupportedLanguage()

        room = state.registry.get_room(request.room_id)
        if room is not None and not room.is_member(connection_id):
            logger.warning("Unauthorized translation request from %s for room %r", connection_id, request.room_id)
            raise Unauthorized()

        translated = state.gateway.lookup_cached(room, request.message_id, request.target_lang)
    except ValidationError as e:
        await state.connections.send(
            connection_id,
            {
                "type": "translation_error",
                "messageId": message_id,
                "error": _validation_message(e),
                "code": "invalid_request",
            },
        )
        return
    except CoordinatorError as e:
        reply = {"type": "translation_error", "messageId": message_id, "error": e.message, "code": e.code}
        if target_lang:
            reply["targetLang"] = target_lang
        await state.connections.send(connection_id, reply)
        return

    await state.connections.send(
        connection_id,
        {
            "type": "translated_message",
            "originalMessageId": request.message_id,
            "translatedText": translated,
            "targetLang": request.target_lang,
        },
    )


EVENT_HANDLERS = {
    "transcribe_data": handle_transcribe_data,
    "request_translation": handle_request_translation,
}


# ============================================================================
# DISPATCH & LIFECYCLE
# ============================================================================

async def dispatch(state: AppState, connection_id: str, raw: str) -> None:
    """Route one client frame to its handler and answer the sender."""
    try:
        frame = json.loads(raw)
    except json.JSONDecodeError:
        await state.connections.send(connection_id, {"type": "error", "message": "Invalid JSON"})
        return

    if not isinstance(frame, dict):
        await state.connections.send(connection_id, {"type": "error", "message": "Expected a JSON object"})
        return

    action = frame.get("action")
    if not isinstance(action, str):
        action = None
    data: Any = frame.get("data") or {}
    logger.debug("Websocket input from %s: action=%s", connection_id, action)

    if action in REQUEST_HANDLERS:
        envelope: dict = {"type": action}
        if "requestId" in frame:
            envelope["requestId"] = frame["requestId"]

        async def respond(payload: dict) -> None:
            await state.connections.send(connection_id, {**envelope, **payload})

        if not isinstance(data, dict):
            await respond({"success": False, "message": "Invalid request: data must be an object", "code": "invalid_request"})
            return
        try:
            await REQUEST_HANDLERS[action](state, connection_id, data, respond)
        except ValidationError as e:
            await respond({"success": False, "message": _validation_message(e), "code": "invalid_request"})
        except CoordinatorError as e:
            await respond({"success": False, "message": e.message, "code": e.code})

    elif action in EVENT_HANDLERS:
        await EVENT_HANDLERS[action](state, connection_id, data if isinstance(data, dict) else {})

    else:
        await state.connections.send(
            connection_id,
            {"type": "error", "message": f"Unknown action: {action}"},
        )


def release_connection(state: AppState, connection_id: str) -> Optional[DisconnectEffect]:
    """Forget the socket and free its room slot. Never suspends."""
    state.connections.disconnect(connection_id)
    return state.presence.on_disconnect(connection_id)


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """
    WebSocket endpoint for speakers, viewers and room browsers.

    Protocol:
    =========

    Client -> Server frames: {"action": "...", "data": {...}, "requestId": optional}

    Create Room (admin only):
        {"action": "create_room", "data": {"roomId", "password", "adminSecret"}}
        Response: {"type": "create_room", "success": true, "roomId": "..."}

    Join Room:
        {"action": "join_room", "data": {"roomId", "password"?, "isSpeaker", "adminSecret"?}}
        Response: {"type": "join_room", "success", "roomId", "isSpeaker", "messages": [...], "message"?}

    List Rooms:
        {"action": "get_rooms"}
        Response: {"type": "get_rooms", "rooms": [{"id", "hasSpeaker", "viewerCount"}]}

    Transcript (speaker only, no direct response):
        {"action": "transcribe_data", "data": {"roomId", "transcript", "sourceLang"}}

    Stored translation:
        {"action": "request_translation", "data": {"roomId", "messageId", "targetLang"}}

    Server -> Client Messages:
    -------------------------
    connected, new_transcription, transcription_error, translated_message,
    translation_error, speaker_left, room_closed, rooms_updated, error

    Failed requests are answered with {"success": false, "message", "code"}
    (or the matching *_error event) to the sender only.

    Lifecycle:
    ==========
    1. Connection accepted and given a connection id ("connected" frame)
    2. Client joins one room as speaker or viewer
    3. On disconnect the room slot is released and the directory republished
    """
    state = get_app_state(websocket)
    connection_id = await state.connections.connect(websocket)
    await state.connections.send(
        connection_id,
        {
            "type": "connected",
            "connectionId": connection_id,
            "targetLanguages": state.settings.TARGET_LANGUAGES,
        },
    )

    try:
        while True:
            raw = await websocket.receive_text()
            await dispatch(state, connection_id, raw)
    except WebSocketDisconnect:
        logger.info("User disconnected: %s", connection_id)
    except Exception as e:
        logger.error("WebSocket error on %s: %s", connection_id, e)
    finally:
        # The endpoint task may already be cancelled: the slot is released
        # without suspending and the notifications go out on their own task
        effect = release_connection(state, connection_id)
        if effect is not None:
            state.spawn(state.announce_departure(effect))
