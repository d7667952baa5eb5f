# backend/api/routes/rooms.py

from typing import List

from fastapi import APIRouter, HTTPException, Request

from core.errors import RoomNotFound
from core.state import get_app_state

router = APIRouter()

# ============================================================================
# ROOM DIRECTORY ENDPOINTS
# ============================================================================

@router.get("/rooms")
async def list_rooms(request: Request) -> List[dict]:
    """
    List all rooms.

    Same snapshot that WebSocket clients receive as "rooms_updated".

    Returns:
        List of {"id", "hasSpeaker", "viewerCount"}
    """
    return get_app_state(request).directory.snapshot()


@router.get("/rooms/{room_id}")
async def get_room(room_id: str, request: Request) -> dict:
    """
    Get the directory row of a specific room.

    Raises:
        HTTPException: 404 if room not found
    """
    state = get_app_state(request)
    try:
        return state.directory.row(room_id)
    except RoomNotFound as e:
        raise HTTPException(status_code=404, detail=e.message)
