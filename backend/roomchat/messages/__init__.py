"""Message ledger: persistence, pagination and delivery tracking."""

from .schemas import (
    MAX_MESSAGE_LENGTH,
    MAX_RETRIES,
    DeliveryStatus,
    Message,
    MessagePage,
    sanitize_content,
    validate_content,
)
from .service import MessageLedger

__all__ = [
    "MAX_MESSAGE_LENGTH",
    "MAX_RETRIES",
    "DeliveryStatus",
    "Message",
    "MessageLedger",
    "MessagePage",
    "sanitize_content",
    "validate_content",
]
