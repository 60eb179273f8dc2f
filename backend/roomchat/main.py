"""Roomchat Backend Application.

This is the main entry point for the Roomchat backend service: a
room-scoped real-time chat where authenticated participants join one room
at a time, exchange messages and page through history.

Modules:
    - chat: WebSocket session protocol and connection manager
    - presence: In-memory single-room presence tracking
    - rooms: DuckDB-backed room directory (soft delete, restore)
    - messages: DuckDB-backed message ledger (pagination, delivery status)
    - users: DuckDB-backed participant registry
    - storage: Shared DuckDB handle, schema and seeding

Run with:
    uvicorn roomchat.main:app
"""
import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from roomchat.chat.manager import ConnectionManager
from roomchat.chat.protocol import ChatProtocol
from roomchat.chat.router import router as chat_router
from roomchat.config import AppSettings, get_config
from roomchat.messages import MessageLedger
from roomchat.presence import PresenceTracker
from roomchat.rooms import RoomDirectory
from roomchat.rooms.router import router as rooms_router
from roomchat.storage import StorageService
from roomchat.storage.seed import seed_default_rooms
from roomchat.users import ParticipantService

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

# Silence per-connection chatter from the ASGI server.
for _noisy in ("uvicorn.access", "websockets", "websockets.protocol"):
    logging.getLogger(_noisy).setLevel(logging.WARNING)

logger = logging.getLogger(__name__)

APP_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup/shutdown events."""
    # Startup
    config: AppSettings = app.state.settings or get_config()
    app.state.started_at = time.time()

    # Apply configured log level to root logger so that
    # `logging.level: "debug"` in roomchat.settings.yaml activates DEBUG output.
    configured_level = getattr(logging, config.logging.level.upper(), None)
    if configured_level is not None:
        logging.getLogger().setLevel(configured_level)
        logger.info("Root logger level set to %s", config.logging.level.upper())

    # One store handle for the whole process, injected everywhere below.
    storage = StorageService(config.database.path)
    storage.initialize()

    participants = ParticipantService(storage)
    rooms = RoomDirectory(storage)
    ledger = MessageLedger(storage, max_retries=config.chat.max_retries)

    if config.database.seed_default_rooms:
        seed_default_rooms(
            participants,
            rooms,
            config.database.default_rooms,
            system_handle=config.database.system_handle,
        )

    app.state.storage = storage
    app.state.rooms = rooms
    app.state.protocol = ChatProtocol(
        manager=ConnectionManager(),
        presence=PresenceTracker(),
        participants=participants,
        rooms=rooms,
        ledger=ledger,
        settings=config.chat,
    )
    logger.info(
        "Roomchat ready (database=%s, page_size=%s)",
        config.database.path,
        config.chat.default_page_size,
    )

    yield  # Application runs here

    # Shutdown
    storage.close()
    logger.info("Application shutdown complete")


def create_app(settings: Optional[AppSettings] = None) -> FastAPI:
    """Build the FastAPI application.

    Args:
        settings: Explicit settings; when omitted they are loaded from
            roomchat.settings.yaml on startup.
    """
    application = FastAPI(
        title="Roomchat API",
        description="Room-scoped real-time chat over WebSockets",
        version=APP_VERSION,
        lifespan=lifespan,
    )
    application.state.settings = settings

    origins = (settings or get_config()).server.allowed_origins
    application.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register all routers
    application.include_router(chat_router)
    application.include_router(rooms_router)

    @application.get("/health")
    async def health() -> dict:
        """Health check endpoint.

        Returns:
            dict: Status object indicating the server is running.
        """
        started = getattr(application.state, "started_at", None)
        return {
            "status": "ok",
            "uptime": time.time() - started if started else 0.0,
        }

    @application.get("/api")
    async def api_info() -> dict:
        """Service information for clients."""
        return {
            "name": "Roomchat API",
            "version": APP_VERSION,
            "websocket": {"path": "/ws/chat"},
        }

    return application


app = create_app()
