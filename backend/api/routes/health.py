# backend/api/routes/health.py

from fastapi import APIRouter, Request

from core.state import get_app_state

router = APIRouter()


@router.get("/health")
async def health(request: Request):
    """
    Health check endpoint.

    Returns current system status, connection counts, and room counts.
    Translation being unconfigured does not make the service unhealthy:
    messages are still stored and broadcast with per-language errors.

    Returns:
        dict: Status, connection count, room count, rooms with a speaker
    """
    state = get_app_state(request)
    return {
        "status": "healthy",
        "connections": len(state.connections.connections),
        "rooms": len(state.registry.rooms),
        "rooms_with_speaker": sum(1 for room in state.registry.list_rooms() if room.has_speaker),
        "translation_configured": state.gateway.configured,
    }
