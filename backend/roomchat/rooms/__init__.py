"""Room directory: creation, lookup, soft delete and restore."""

from .schemas import ROOM_NAME_PATTERN, Room, validate_room_name
from .service import RoomDirectory

__all__ = [
    "ROOM_NAME_PATTERN",
    "Room",
    "RoomDirectory",
    "validate_room_name",
]
