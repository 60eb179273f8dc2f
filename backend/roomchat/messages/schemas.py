"""Pydantic schemas, validation and sanitization for room messages.

Content is trimmed, length-checked and HTML-escaped before it reaches the
store, so every consumer (history, broadcast, confirmation) sees the same
escaped text.
"""
import html
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from roomchat.errors import ContentInvalid, TimestampInvalid
from roomchat.storage import MAX_BIGINT

MAX_MESSAGE_LENGTH = 2000

# Maximum number of delivery retries a message may accumulate
MAX_RETRIES = 3


class DeliveryStatus(str, Enum):
    """Lifecycle tag attached to a persisted message.

    Attributes:
        PENDING: Stored, not yet delivered to the room.
        SENT: Delivered to every room member reachable at send time.
        FAILED: At least one member could not be reached.
    """
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"


class Message(BaseModel):
    """A stored room message.

    Attributes:
        id: Store-assigned identifier.
        room_id: Room the message belongs to.
        sender_id: Participant ID of the sender.
        sender_handle: Sender's handle (joined from participants).
        content: HTML-escaped text.
        timestamp: Ordering key supplied at send time.
        status: Delivery status.
        retry_count: Number of delivery retries so far (0-3).
        created_at: Store insertion time (epoch ms).
    """
    id: int
    room_id: int
    sender_id: int
    sender_handle: Optional[str] = None
    content: str
    timestamp: int
    status: DeliveryStatus = DeliveryStatus.PENDING
    retry_count: int = Field(default=0, ge=0, le=MAX_RETRIES)
    created_at: int

    def to_payload(self) -> dict:
        """Wire shape shared by history entries and ``new_message``."""
        return {
            "messageId": self.id,
            "content": self.content,
            "handle": self.sender_handle or "unknown",
            "timestamp": self.timestamp,
        }


class MessagePage(BaseModel):
    """One page of room history, newest first."""
    messages: List[Message] = Field(default_factory=list)
    total: int = 0
    hasMore: bool = False


def sanitize_content(content: str) -> str:
    """Escape HTML special characters, including ``'`` and ``/``."""
    return html.escape(content, quote=True).replace("/", "&#x2F;")


def validate_content(content: object) -> str:
    """Trim, validate and escape message content.

    Returns:
        The escaped content ready for storage.

    Raises:
        ContentInvalid: If the content is missing, empty after trimming, or
            longer than MAX_MESSAGE_LENGTH before or after escaping.
    """
    if not isinstance(content, str):
        raise ContentInvalid("Message content is required")

    trimmed = content.strip()
    if not trimmed:
        raise ContentInvalid("Message cannot be empty")
    if len(trimmed) > MAX_MESSAGE_LENGTH:
        raise ContentInvalid(
            f"Message exceeds maximum length of {MAX_MESSAGE_LENGTH} characters"
        )

    sanitized = sanitize_content(trimmed)
    # The stored column carries the same bound, so escaping must fit too.
    if len(sanitized) > MAX_MESSAGE_LENGTH:
        raise ContentInvalid(
            f"Message exceeds maximum length of {MAX_MESSAGE_LENGTH} characters once escaped"
        )
    return sanitized


def validate_timestamp(timestamp: object) -> int:
    if isinstance(timestamp, bool) or not isinstance(timestamp, int) or timestamp <= 0:
        raise TimestampInvalid("Timestamp must be a positive integer")
    if timestamp > MAX_BIGINT:
        raise TimestampInvalid("Timestamp is out of range")
    return timestamp
