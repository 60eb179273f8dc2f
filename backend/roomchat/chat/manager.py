"""WebSocket connection manager for room-scoped chat sessions.

This module tracks live WebSocket connections, the per-connection session
state, and the registry of authenticated handles. It also delivers
outbound events to one connection or fans them out to many.

Key features:
    - One ChatSession per WebSocket (authenticated identity + current room)
    - Case-insensitive single-session-per-handle registry
    - Concurrent fan-out with asyncio.gather()
    - Best-effort delivery: failed sends are logged and reported back to
      the caller, never retried here

Thread Safety:
    This implementation is designed for async/await usage with a single event loop.
    Registry check-and-set runs without awaiting, so it is atomic on that loop.
    It is NOT thread-safe for concurrent access from multiple threads.
"""
import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional

from fastapi import WebSocket

from roomchat.rooms.schemas import Room
from roomchat.users.schemas import normalize_handle

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    """Connection lifecycle.

    Attributes:
        UNAUTHENTICATED: Connected, no identity bound yet.
        AUTHENTICATED: Identity bound, no room joined.
        IN_ROOM: Identity bound and present in exactly one room.
    """
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"
    IN_ROOM = "in_room"


@dataclass(eq=False)
class ChatSession:
    """Ephemeral state for one WebSocket connection."""
    websocket: WebSocket
    connection_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    participant_id: Optional[int] = None
    handle: Optional[str] = None
    room_id: Optional[int] = None
    room_name: Optional[str] = None

    @property
    def state(self) -> SessionState:
        if self.handle is None:
            return SessionState.UNAUTHENTICATED
        if self.room_id is None:
            return SessionState.AUTHENTICATED
        return SessionState.IN_ROOM

    @property
    def is_authenticated(self) -> bool:
        return self.handle is not None

    def bind_room(self, room: Room) -> None:
        self.room_id = room.id
        self.room_name = room.name

    def clear_room(self) -> None:
        self.room_id = None
        self.room_name = None


class ConnectionManager:
    """Owns live connections and the authenticated-handle registry.

    One instance is created per application (see ``roomchat.main``) and
    shared by every WebSocket handler through the session protocol.
    """

    def __init__(self) -> None:
        # connection_id -> session
        self.sessions: Dict[str, ChatSession] = {}

        # normalized handle -> session holding it
        self.handles: Dict[str, ChatSession] = {}

    async def connect(self, websocket: WebSocket) -> ChatSession:
        """Accept a WebSocket connection and start an unauthenticated session."""
        await websocket.accept()
        session = ChatSession(websocket=websocket)
        self.sessions[session.connection_id] = session
        logger.info(
            f"[Manager] Connection {session.connection_id[:8]} accepted "
            f"({len(self.sessions)} live)"
        )
        return session

    def disconnect(self, session: ChatSession) -> None:
        """Forget a session entirely and release its handle."""
        self.sessions.pop(session.connection_id, None)
        self.release_handle(session)
        session.clear_room()
        logger.info(
            f"[Manager] Connection {session.connection_id[:8]} closed "
            f"({len(self.sessions)} live)"
        )

    # =========================================================================
    # Handle registry
    # =========================================================================

    def claim_handle(self, session: ChatSession, handle: str) -> bool:
        """Bind ``handle`` to ``session`` unless another live session holds it.

        The comparison is case-insensitive: "Alice" and "alice" collide.

        Returns:
            True if the handle is now bound to this session.
        """
        key = normalize_handle(handle)
        holder = self.handles.get(key)
        if holder is not None and holder is not session:
            return False
        self.handles[key] = session
        session.handle = handle
        return True

    def release_handle(self, session: ChatSession) -> None:
        if session.handle is None:
            return
        key = normalize_handle(session.handle)
        if self.handles.get(key) is session:
            del self.handles[key]

    def session_for(self, handle: str) -> Optional[ChatSession]:
        return self.handles.get(normalize_handle(handle))

    def sessions_for(self, handles: Iterable[str]) -> List[ChatSession]:
        """Live sessions for the given handles, skipping unknown ones."""
        found = []
        for handle in handles:
            session = self.session_for(handle)
            if session is not None:
                found.append(session)
        return found

    def sessions_in_room(self, room_id: int) -> List[ChatSession]:
        """Every live session whose current room is ``room_id``."""
        return [s for s in self.sessions.values() if s.room_id == room_id]

    # =========================================================================
    # Delivery
    # =========================================================================

    async def send(self, session: ChatSession, event: str, payload: dict) -> bool:
        """Send one event to one session.

        Returns:
            True if successful, False if the connection failed.
        """
        return await self._safe_send(session, {"type": event, **payload})

    async def broadcast(
        self,
        sessions: Iterable[ChatSession],
        event: str,
        payload: dict,
        exclude: Optional[ChatSession] = None,
    ) -> List[ChatSession]:
        """Send an event to many sessions concurrently.

        Delivery is best-effort: a failure for one recipient never undoes
        the sends that already succeeded.

        Returns:
            The sessions that could not be reached.
        """
        targets = [s for s in sessions if s is not exclude]
        if not targets:
            return []

        message = {"type": event, **payload}
        results = await asyncio.gather(
            *[self._safe_send(s, message) for s in targets],
            return_exceptions=True
        )

        failed = [s for s, ok in zip(targets, results) if ok is not True]
        if failed:
            logger.warning(
                f"[Manager] {event} failed for {len(failed)}/{len(targets)} recipients"
            )
        return failed

    async def _safe_send(self, session: ChatSession, message: dict) -> bool:
        try:
            await session.websocket.send_json(message)
            return True
        except Exception as e:
            logger.debug(f"Failed to send to connection {session.connection_id[:8]}: {e}")
            return False
