"""Session protocol: the per-connection chat state machine.

States per connection: ``unauthenticated -> authenticated -> in_room``.

Every inbound event is handled to completion before the connection's next
event is read (the WebSocket loop in ``router.py`` awaits each one). Within
a handler, every durable and in-memory state change happens before the
first ``await``, so cross-connection interleaving on the event loop never
observes a half-applied transition. Outbound events are sent afterwards in
the order the protocol promises (e.g. ``room_left`` before ``room_joined``).

Client events:
    - authenticate {handle}
    - join_room {roomName}
    - leave_room
    - create_room {roomName}
    - delete_room {roomId}
    - send_message {content, timestamp?}
    - retry_message {messageId}
    - load_messages {page?, pageSize?}

Errors:
    Every ChatError is reported to the originating connection only, as
    ``auth_error {error}`` for authenticate and ``error {message}`` for
    everything else. Storage and unexpected failures are logged and
    reported with a generic message.
"""
import logging
from typing import Awaitable, Callable, Dict, List, Optional

from roomchat.config import ChatSettings
from roomchat.errors import (
    AlreadyExists,
    ChatError,
    DuplicateSession,
    NotAuthenticated,
    NotFoundError,
    PageInvalid,
    RoomGone,
    StateError,
    StorageError,
    ValidationError,
)
from roomchat.messages import DeliveryStatus, Message, MessageLedger, MessagePage
from roomchat.presence import PresenceTracker
from roomchat.rooms import RoomDirectory, validate_room_name
from roomchat.storage import MAX_BIGINT, now_ms
from roomchat.users import ParticipantService, validate_handle

from .manager import ChatSession, ConnectionManager

logger = logging.getLogger(__name__)

GENERIC_FAILURE = "Internal server error"

Handler = Callable[[ChatSession, dict], Awaitable[None]]


def _as_int(value: object) -> Optional[int]:
    """Accept ints and digit strings that fit a BIGINT; reject the rest."""
    if isinstance(value, bool):
        return None
    if isinstance(value, str) and value.strip().isdecimal():
        try:
            value = int(value.strip())
        except ValueError:
            return None
    if not isinstance(value, int) or abs(value) > MAX_BIGINT:
        return None
    return value


class ChatProtocol:
    """Binds connections to identities and rooms, and decides who hears what.

    All collaborators are injected; the protocol never builds its own.

    Args:
        manager: Live connections and handle registry.
        presence: Room membership tracker.
        participants: Durable participant registry.
        rooms: Durable room directory.
        ledger: Durable message ledger.
        settings: Pagination settings.
    """

    def __init__(
        self,
        manager: ConnectionManager,
        presence: PresenceTracker,
        participants: ParticipantService,
        rooms: RoomDirectory,
        ledger: MessageLedger,
        settings: ChatSettings,
    ) -> None:
        self.manager = manager
        self.presence = presence
        self.participants = participants
        self.rooms = rooms
        self.ledger = ledger
        self.settings = settings

        self._handlers: Dict[str, Handler] = {
            "authenticate": self.authenticate,
            "join_room": self.join_room,
            "leave_room": self.leave_room,
            "create_room": self.create_room,
            "delete_room": self.delete_room,
            "send_message": self.send_message,
            "retry_message": self.retry_message,
            "load_messages": self.load_messages,
        }

    # =========================================================================
    # Dispatch
    # =========================================================================

    async def handle_event(self, session: ChatSession, data: object) -> None:
        """Route one inbound frame and report any failure to its sender."""
        if not isinstance(data, dict):
            await self._send_error(session, None, ValidationError("Invalid message format"))
            return

        event = data.get("type")
        handler = self._handlers.get(event) if isinstance(event, str) else None
        if handler is None:
            await self._send_error(
                session, None, ValidationError(f"Unknown event type: {event}")
            )
            return

        logger.debug("[WS] %s received: type=%s", session.connection_id[:8], event)
        try:
            await handler(session, data)
        except StorageError as exc:
            logger.error("[WS] Storage failure during %s: %s", event, exc.cause or exc)
            await self._send_error(session, event, ChatError(GENERIC_FAILURE))
        except ChatError as exc:
            logger.info("[WS] %s rejected for %s: %s", event, session.handle, exc.message)
            await self._send_error(session, event, exc)
        except Exception:
            logger.exception("[WS] Unexpected failure during %s", event)
            await self._send_error(session, event, ChatError(GENERIC_FAILURE))

    async def _send_error(
        self, session: ChatSession, event: Optional[str], error: ChatError
    ) -> None:
        if event == "authenticate":
            await self.manager.send(session, "auth_error", {"error": error.message})
        else:
            await self.manager.send(session, "error", {"message": error.message})

    # =========================================================================
    # Guards
    # =========================================================================

    @staticmethod
    def _require_authenticated(session: ChatSession) -> None:
        if not session.is_authenticated:
            raise NotAuthenticated()

    @classmethod
    def _require_in_room(cls, session: ChatSession) -> None:
        cls._require_authenticated(session)
        if session.room_id is None:
            raise StateError("Not in any room. Please join a room first.")

    def _room_sessions(self, room_id: int) -> List[ChatSession]:
        return self.manager.sessions_for(self.presence.members_of(room_id))

    # =========================================================================
    # Authentication
    # =========================================================================

    async def authenticate(self, session: ChatSession, data: dict) -> None:
        if session.is_authenticated:
            raise StateError("Already authenticated")
        handle = validate_handle(data.get("handle"))

        if not self.manager.claim_handle(session, handle):
            raise DuplicateSession()
        try:
            participant = self.participants.get_or_create(handle)
            self.participants.touch(participant.id)
        except Exception:
            self.manager.release_handle(session)
            session.handle = None
            raise
        session.participant_id = participant.id

        logger.info("[WS] %s authenticated as %s (id=%s)",
                    session.connection_id[:8], handle, participant.id)
        await self.manager.send(session, "authenticated", {
            "handle": participant.handle,
            "id": participant.id,
        })

    # =========================================================================
    # Rooms
    # =========================================================================

    async def join_room(self, session: ChatSession, data: dict) -> None:
        self._require_authenticated(session)
        name = validate_room_name(data.get("roomName"))

        # Implicit create is the last store write that can fail.
        room = self.rooms.find_by_name(name)
        if room is None:
            history = MessagePage()
            room = self.rooms.create(name, session.participant_id)
        elif room.is_deleted:
            raise RoomGone()
        else:
            history = self.ledger.page(room.id, self.settings.default_page_size, 0)

        previous_id, previous_name = session.room_id, session.room_name
        switching = previous_id is not None and previous_id != room.id
        already_member = self.presence.is_member(room.id, session.handle)

        self.presence.join(room.id, session.handle)
        session.bind_room(room)
        members = sorted(self.presence.members_of(room.id))

        if switching:
            logger.info("[WS] %s switching from %s to %s", session.handle, previous_name, name)
            await self.manager.send(session, "room_left", {"roomName": previous_name})
            await self.manager.broadcast(
                self._room_sessions(previous_id),
                "user_left",
                {"handle": session.handle, "roomName": previous_name},
                exclude=session,
            )

        await self.manager.send(session, "room_joined", {
            "roomId": room.id,
            "roomName": room.name,
            "members": members,
            "messages": [m.to_payload() for m in history.messages],
        })
        if not already_member:
            await self.manager.broadcast(
                self._room_sessions(room.id),
                "user_joined",
                {"handle": session.handle, "roomName": room.name},
                exclude=session,
            )

    async def leave_room(self, session: ChatSession, data: dict) -> None:
        self._require_in_room(session)
        room_id, room_name = session.room_id, session.room_name

        self.presence.leave(room_id, session.handle)
        session.clear_room()

        logger.info("[WS] %s left room %s", session.handle, room_name)
        await self.manager.send(session, "room_left", {"roomName": room_name})
        await self.manager.broadcast(
            self._room_sessions(room_id),
            "user_left",
            {"handle": session.handle, "roomName": room_name},
            exclude=session,
        )

    async def create_room(self, session: ChatSession, data: dict) -> None:
        self._require_authenticated(session)
        name = validate_room_name(data.get("roomName"))

        existing = self.rooms.find_by_name(name)
        if existing is not None and not existing.is_deleted:
            raise AlreadyExists("Room already exists")
        room = self.rooms.create(name, session.participant_id)

        await self.manager.send(session, "room_created", {
            "roomId": room.id,
            "roomName": room.name,
            "creator": session.handle,
        })

    async def delete_room(self, session: ChatSession, data: dict) -> None:
        """Tombstone a room and evict everyone in it.

        Only the creator may delete. Members keep their authentication but
        lose their room.
        """
        self._require_authenticated(session)
        if data.get("roomId") is None:
            raise ValidationError("Room ID required")
        room_id = _as_int(data.get("roomId"))
        if room_id is None:
            raise ValidationError("Room ID must be an integer")

        room = self.rooms.find_by_id(room_id)
        if room is None or room.is_deleted:
            raise NotFoundError("Room not found")

        self.rooms.soft_delete(room.id, session.participant_id)

        members = self.presence.clear_room(room.id)
        recipients = self.manager.sessions_for(members)
        for evicted in self.manager.sessions_in_room(room.id):
            evicted.clear_room()
            if evicted not in recipients:
                recipients.append(evicted)
        if session not in recipients:
            recipients.append(session)

        logger.info("[WS] Room %s (%s) deleted by %s, evicted %d",
                    room.id, room.name, session.handle, len(members))
        await self.manager.broadcast(
            recipients, "room_deleted", {"roomId": room.id, "roomName": room.name}
        )

    # =========================================================================
    # Messages
    # =========================================================================

    async def send_message(self, session: ChatSession, data: dict) -> None:
        self._require_in_room(session)
        timestamp = data.get("timestamp")
        if timestamp is None:
            timestamp = now_ms()

        message = self.ledger.append(
            session.room_id, session.participant_id, data.get("content"), timestamp
        )
        await self._deliver(session, message)

    async def retry_message(self, session: ChatSession, data: dict) -> None:
        """Re-broadcast a message whose fan-out failed.

        The server never retries on its own; the client asks, and once the
        retry budget is spent the failure is terminal.
        """
        self._require_in_room(session)
        message_id = _as_int(data.get("messageId"))
        if message_id is None:
            raise ValidationError("Message ID required")

        message = self.ledger.get(message_id)
        if (message is None
                or message.room_id != session.room_id
                or message.sender_id != session.participant_id):
            raise NotFoundError("Message not found")
        if message.status != DeliveryStatus.FAILED:
            raise StateError("Message was already delivered")

        self.ledger.increment_retry(message_id)
        await self._deliver(session, message)

    async def _deliver(self, session: ChatSession, message: Message) -> None:
        """Fan a stored message out to the room and confirm to the sender."""
        failed = await self.manager.broadcast(
            self._room_sessions(message.room_id),
            "new_message",
            message.to_payload(),
            exclude=session,
        )
        if failed:
            self.ledger.mark_failed(message.id)
        else:
            self.ledger.mark_delivered(message.id)
        stored = self.ledger.get(message.id)

        await self.manager.send(session, "message_sent", {
            **stored.to_payload(),
            "status": stored.status.value,
        })

    async def load_messages(self, session: ChatSession, data: dict) -> None:
        self._require_in_room(session)
        page = _as_int(data.get("page", 1))
        page_size = _as_int(data.get("pageSize", self.settings.default_page_size))

        if page is None or page < 1:
            raise PageInvalid("Invalid page number")
        if page_size not in self.settings.page_sizes:
            sizes = ", ".join(str(s) for s in self.settings.page_sizes)
            raise PageInvalid(f"Invalid page size. Valid sizes: {sizes}")
        if (page - 1) * page_size > MAX_BIGINT:
            raise PageInvalid("Invalid page number")

        result = self.ledger.page(session.room_id, page_size, (page - 1) * page_size)
        await self.manager.send(session, "messages_loaded", {
            "messages": [m.to_payload() for m in result.messages],
            "total": result.total,
            "hasMore": result.hasMore,
        })

    # =========================================================================
    # Teardown
    # =========================================================================

    async def handle_disconnect(self, session: ChatSession) -> None:
        """Leave the current room (notifying it) and drop all session state."""
        room_id, room_name, handle = session.room_id, session.room_name, session.handle
        if handle is not None and room_id is not None:
            self.presence.leave(room_id, handle)
        self.manager.disconnect(session)

        if handle is not None and room_id is not None:
            await self.manager.broadcast(
                self._room_sessions(room_id),
                "user_left",
                {"handle": handle, "roomName": room_name},
            )
