"""MessageLedger: durable, paginated record of room messages.

Messages are appended in ``pending`` status and only their delivery status
and retry counter ever change afterwards. Pagination orders by the
message timestamp (newest first) with the message id as tie-breaker, so
consecutive pages never overlap.

The ledger does not police page sizes; the session protocol restricts
them to the configured set so the ledger stays reusable.
"""
import logging
from typing import Optional

from roomchat.errors import NotFoundError, RetryExhausted
from roomchat.storage import StorageService, now_ms

from .schemas import (
    MAX_RETRIES,
    DeliveryStatus,
    Message,
    MessagePage,
    validate_content,
    validate_timestamp,
)

logger = logging.getLogger(__name__)

_SELECT = """
    SELECT m.id, m.room_id, m.participant_id, p.handle, m.content, m.timestamp,
           m.delivery_status, m.retry_count, m.created_at
    FROM messages m
    LEFT JOIN participants p ON p.id = m.participant_id
"""


class MessageLedger:
    """Appends, pages and tracks delivery of room messages.

    Args:
        storage: Shared storage handle.
        max_retries: Upper bound for the retry counter (at most 3).
    """

    def __init__(self, storage: StorageService, max_retries: int = MAX_RETRIES) -> None:
        self._storage = storage
        self._max_retries = min(max_retries, MAX_RETRIES)

    @property
    def max_retries(self) -> int:
        return self._max_retries

    # -----------------------------------------------------------------------
    # Writes
    # -----------------------------------------------------------------------

    def append(
        self, room_id: int, sender_id: int, content: str, client_timestamp: int
    ) -> Message:
        """Store a new message in ``pending`` status.

        Args:
            room_id: Target room.
            sender_id: Sending participant.
            content: Raw text; trimmed and HTML-escaped before storage.
            client_timestamp: Ordering key, must be a positive integer.

        Returns:
            The stored Message.

        Raises:
            ContentInvalid: Empty or over-long content.
            TimestampInvalid: Non-positive timestamp.
        """
        sanitized = validate_content(content)
        timestamp = validate_timestamp(client_timestamp)

        row = self._storage.fetchone(
            """
            INSERT INTO messages
              (participant_id, room_id, content, timestamp,
               delivery_status, retry_count, created_at)
            VALUES (?, ?, ?, ?, 'pending', 0, ?)
            RETURNING id
            """,
            [sender_id, room_id, sanitized, timestamp, now_ms()],
        )
        logger.debug("[Ledger] Appended message %s to room %s", row[0], room_id)
        return self.get(row[0])

    def mark_delivered(self, message_id: int) -> bool:
        """Set status to ``sent``. Returns False for unknown ids."""
        return self._set_status(message_id, DeliveryStatus.SENT)

    def mark_failed(self, message_id: int) -> bool:
        """Set status to ``failed``. Returns False for unknown ids."""
        return self._set_status(message_id, DeliveryStatus.FAILED)

    def _set_status(self, message_id: int, status: DeliveryStatus) -> bool:
        row = self._storage.fetchone(
            "UPDATE messages SET delivery_status = ? WHERE id = ? RETURNING id",
            [status.value, message_id],
        )
        if row is None:
            logger.debug("[Ledger] Status update for unknown message %s", message_id)
            return False
        return True

    def increment_retry(self, message_id: int) -> int:
        """Bump the retry counter.

        Returns:
            The new retry count.

        Raises:
            NotFoundError: Unknown message id.
            RetryExhausted: The counter would exceed the maximum.
        """
        message = self.get(message_id)
        if message is None:
            raise NotFoundError(f"Message {message_id} not found")
        if message.retry_count >= self._max_retries:
            raise RetryExhausted(message_id, self._max_retries)

        row = self._storage.fetchone(
            """
            UPDATE messages SET retry_count = retry_count + 1
            WHERE id = ?
            RETURNING retry_count
            """,
            [message_id],
        )
        logger.info("[Ledger] Message %s retry %s/%s", message_id, row[0], self._max_retries)
        return row[0]

    def can_retry(self, message_id: int) -> bool:
        message = self.get(message_id)
        if message is None:
            return False
        return message.retry_count < self._max_retries

    # -----------------------------------------------------------------------
    # Reads
    # -----------------------------------------------------------------------

    def get(self, message_id: int) -> Optional[Message]:
        row = self._storage.fetchone(f"{_SELECT} WHERE m.id = ?", [message_id])
        return self._row_to_message(row) if row else None

    def count(self, room_id: int) -> int:
        row = self._storage.fetchone(
            "SELECT COUNT(*) FROM messages WHERE room_id = ?", [room_id]
        )
        return row[0]

    def page(self, room_id: int, limit: int = 50, offset: int = 0) -> MessagePage:
        """One page of a room's history, newest first.

        Args:
            room_id: Room to read.
            limit: Maximum messages to return.
            offset: Messages to skip from the newest.

        Returns:
            MessagePage with ``hasMore = offset + len(messages) < total``.
        """
        total = self.count(room_id)
        rows = self._storage.fetchall(
            f"""
            {_SELECT}
            WHERE m.room_id = ?
            ORDER BY m.timestamp DESC, m.id DESC
            LIMIT ? OFFSET ?
            """,
            [room_id, limit, offset],
        )
        messages = [self._row_to_message(r) for r in rows]
        return MessagePage(
            messages=messages,
            total=total,
            hasMore=offset + len(messages) < total,
        )

    @staticmethod
    def _row_to_message(row: tuple) -> Message:
        return Message(
            id=row[0],
            room_id=row[1],
            sender_id=row[2],
            sender_handle=row[3],
            content=row[4],
            timestamp=row[5],
            status=DeliveryStatus(row[6]),
            retry_count=row[7],
            created_at=row[8],
        )
