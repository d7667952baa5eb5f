# backend/api/routes/metrics.py
from datetime import datetime, timezone

from fastapi import APIRouter, Request

from core.state import get_app_state

router = APIRouter()


@router.get("/metrics")
async def get_metrics(request: Request):
    """
    Usage counters since process start.

    Returns:
        dict: Message and translation statistics plus current capacity:
            - total_messages / messages_per_minute
            - translation_calls / translation_failures / translation_failure_rate
            - concurrent_connections, total_rooms, total_viewers
    """
    state = get_app_state(request)
    uptime_seconds = (datetime.now(timezone.utc) - state.app_start_time).total_seconds()

    total_messages = state.pipeline.ingested
    if uptime_seconds > 0:
        messages_per_minute = total_messages / uptime_seconds * 60
    else:
        messages_per_minute = 0

    calls = state.gateway.remote_calls
    failures = state.gateway.failures

    return {
        # Statistics
        "total_messages": total_messages,
        "uptime_hours": round(uptime_seconds / 3600, 2) if uptime_seconds > 0 else 0,
        "messages_per_minute": round(messages_per_minute, 2),

        # Translation
        "translation_configured": state.gateway.configured,
        "translation_calls": calls,
        "translation_failures": failures,
        "translation_failure_rate": round(failures / calls, 3) if calls else 0.0,

        # Capacity
        "concurrent_connections": len(state.connections.connections),
        "total_rooms": len(state.registry.rooms),
        "rooms_with_speaker": sum(1 for room in state.registry.list_rooms() if room.has_speaker),
        "total_viewers": sum(len(room.viewers) for room in state.registry.list_rooms()),
    }
