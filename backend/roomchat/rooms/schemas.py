"""Pydantic schemas and validation for chat rooms.

Rooms are never hard-deleted. A soft delete stamps ``deleted_at``; the
room then disappears from active listings and rejects joins, while its
message history stays in the ledger.
"""
import re
from typing import List, Optional

from pydantic import BaseModel, Field

from roomchat.errors import NameInvalid

ROOM_NAME_PATTERN = re.compile(r"[A-Za-z0-9_-]{3,50}")


class Room(BaseModel):
    """A room record, active or tombstoned.

    Attributes:
        id: Store-assigned identifier.
        name: Unique, case-sensitive room name.
        created_by: Participant ID of the creator.
        created_at: Creation time (epoch ms).
        deleted_at: Tombstone time (epoch ms), None while active.
    """
    id: int = Field(..., description="Room ID")
    name: str = Field(..., description="Room name")
    created_by: int = Field(..., description="Creator participant ID")
    created_at: int = Field(..., description="Creation time (epoch ms)")
    deleted_at: Optional[int] = Field(None, description="Tombstone time (epoch ms)")

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


class RoomSummary(BaseModel):
    """Public listing entry for an active room."""
    roomId: int
    roomName: str
    createdAt: int


class RoomListResponse(BaseModel):
    rooms: List[RoomSummary] = Field(..., description="Active rooms, newest first")
    count: int = Field(..., description="Number of rooms")


def validate_room_name(name: object) -> str:
    """Return the name if it is well-formed, else raise NameInvalid."""
    if not name or not isinstance(name, str):
        raise NameInvalid("Room name is required")
    if not ROOM_NAME_PATTERN.fullmatch(name):
        raise NameInvalid(
            "Room name must be 3-50 characters (alphanumeric, hyphens, and underscores only)"
        )
    return name
