# backend/main.py

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Callable, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.config import Settings, settings as default_settings
from core.logging import setup_logging, get_logger
from core.state import AppState
from services.translator import BaseTranslator, build_translator
from api.routes import root, health, metrics, rooms
from api import websocket as websocket_module

setup_logging(default_settings.LOG_LEVEL)
logger = get_logger(__name__)

TranslatorFactory = Callable[[Settings], Optional[BaseTranslator]]


@asynccontextmanager
async def lifespan(app: FastAPI):
    state: AppState = app.state.app_state
    logger.info("🚀 Application starting - targets %s", ", ".join(state.settings.TARGET_LANGUAGES))
    logger.info(
        "Translator %s",
        "INITIALIZED" if state.gateway.configured else "NOT INITIALIZED (check DEEPL_AUTH_KEY)",
    )
    if not state.settings.ROOM_CREATION_ADMIN_SECRET:
        logger.warning("ROOM_CREATION_ADMIN_SECRET not set - new rooms cannot be created")

    yield

    await state.shutdown()


def create_app(
    settings: Optional[Settings] = None,
    translator_factory: TranslatorFactory = build_translator,
) -> FastAPI:
    """
    Build the application and the state it owns.

    Args:
        settings: Configuration (defaults to the environment-derived settings)
        translator_factory: Builds the translation backend; may return None,
                            which leaves translation unconfigured
    """
    settings = settings or default_settings

    app = FastAPI(title="Live Transcript Rooms", lifespan=lifespan)
    app.state.app_state = AppState(settings, translator_factory(settings))

    # Browsers reject credentials with a wildcard origin
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials="*" not in settings.CORS_ORIGINS,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    # REST routes
    app.include_router(root.router)
    app.include_router(health.router)
    app.include_router(metrics.router)
    app.include_router(rooms.router)

    # WebSocket routes
    app.include_router(websocket_module.router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host=default_settings.HOST, port=default_settings.PORT)
