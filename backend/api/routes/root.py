# backend/api/routes/root.py

from fastapi import APIRouter, Request

from core.state import get_app_state

router = APIRouter()


@router.get("/")
async def root(request: Request):
    """
    Root endpoint - API information.

    Returns basic info about the service and the configured target languages.
    """
    state = get_app_state(request)
    return {
        "message": "Live Transcript Rooms",
        "version": "1.0",
        "features": ["speaker_viewer_rooms", "eager_translation_fan_out", "room_directory"],
        "target_languages": state.settings.TARGET_LANGUAGES,
        "endpoints": {
            "websocket": "/ws",
            "rooms": "/rooms",
            "health": "/health",
            "metrics": "/metrics",
        },
    }
