"""Error taxonomy shared by the services and the session protocol.

Services raise these; the session protocol catches every ``ChatError`` and
turns it into a single structured notice for the originating connection.
Storage failures carry the underlying DuckDB error for logging only and
are never shown to clients.
"""
from typing import Optional


class ChatError(Exception):
    """Base exception for all chat errors."""

    code = "chat_error"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


# -----------------------------------------------------------------------------
# Validation
# -----------------------------------------------------------------------------


class ValidationError(ChatError):
    """Malformed handle, room name, content or page parameters."""
    code = "validation_error"


class HandleInvalid(ValidationError):
    code = "handle_invalid"


class NameInvalid(ValidationError):
    code = "name_invalid"


class ContentInvalid(ValidationError):
    code = "content_invalid"


class TimestampInvalid(ValidationError):
    code = "timestamp_invalid"


class PageInvalid(ValidationError):
    code = "page_invalid"


# -----------------------------------------------------------------------------
# Authentication and state
# -----------------------------------------------------------------------------


class AuthError(ChatError):
    """Gated operation without authentication, or a session conflict."""
    code = "auth_error"


class NotAuthenticated(AuthError):
    code = "not_authenticated"

    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message)


class DuplicateSession(AuthError):
    code = "duplicate_session"

    def __init__(self, message: str = "Handle already connected"):
        super().__init__(message)


class StateError(ChatError):
    """Operation issued in the wrong session state (e.g. not in a room)."""
    code = "state_error"


# -----------------------------------------------------------------------------
# Rooms and messages
# -----------------------------------------------------------------------------


class PermissionDenied(ChatError):
    code = "permission_denied"

    def __init__(self, message: str = "You do not have permission to delete this room"):
        super().__init__(message)


class NotFoundError(ChatError):
    code = "not_found"


class RoomGone(NotFoundError):
    """The room exists but carries a tombstone."""
    code = "room_gone"

    def __init__(self, message: str = "Room not found or deleted"):
        super().__init__(message)


class AlreadyExists(ChatError):
    code = "already_exists"


class RetryExhausted(ChatError):
    code = "retry_exhausted"

    def __init__(self, message_id: int, max_retries: int = 3):
        self.message_id = message_id
        super().__init__(
            f"Message {message_id} exceeded the maximum of {max_retries} retries"
        )


class StorageError(ChatError):
    """Constraint violation or store unavailability."""
    code = "storage_error"

    def __init__(self, message: str, cause: Optional[Exception] = None):
        self.cause = cause
        super().__init__(message)
