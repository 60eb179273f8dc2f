"""Pydantic schemas and validation for chat participants."""
import re
from typing import Optional

from pydantic import BaseModel, Field

from roomchat.errors import HandleInvalid

HANDLE_PATTERN = re.compile(r"[A-Za-z0-9_]{3,20}")


class Participant(BaseModel):
    """A participant known to the durable store.

    Attributes:
        id: Store-assigned identifier.
        handle: Handle exactly as first authenticated.
        created_at: Creation time (epoch ms).
        last_seen_at: Last successful authentication (epoch ms).
    """
    id: int = Field(..., description="Participant ID")
    handle: str = Field(..., description="Unique handle")
    created_at: int = Field(..., description="Creation time (epoch ms)")
    last_seen_at: Optional[int] = Field(None, description="Last active time (epoch ms)")


def validate_handle(handle: object) -> str:
    """Return the handle if it is well-formed, else raise HandleInvalid."""
    if not handle or not isinstance(handle, str):
        raise HandleInvalid("Handle is required")
    if not HANDLE_PATTERN.fullmatch(handle):
        raise HandleInvalid(
            "Handle must be 3-20 characters (alphanumeric and underscores only)"
        )
    return handle


def normalize_handle(handle: str) -> str:
    """Case-folded key used for session exclusivity."""
    return handle.lower()
