"""RoomDirectory: DuckDB-backed room lifecycle with creator ownership.

Room names are reserved for good: a tombstoned room keeps its name, so
``create`` rejects it with AlreadyExists. ``restore`` is the only way to
bring a deleted name back.
"""
import logging
from typing import List, Optional

from roomchat.errors import AlreadyExists, PermissionDenied
from roomchat.storage import StorageService, now_ms

from .schemas import Room, validate_room_name

logger = logging.getLogger(__name__)

_COLUMNS = "id, name, created_by, created_at, deleted_at"


class RoomDirectory:
    """Durable record of rooms, names, tombstones and creators."""

    def __init__(self, storage: StorageService) -> None:
        self._storage = storage

    # -----------------------------------------------------------------------
    # Creation and lookup
    # -----------------------------------------------------------------------

    def create(self, name: str, creator_id: int) -> Room:
        """Create a room owned by ``creator_id``.

        Args:
            name: Room name (3-50 alphanumeric, hyphen, underscore).
            creator_id: Participant ID of the creator.

        Returns:
            The created Room.

        Raises:
            NameInvalid: If the name fails the pattern.
            AlreadyExists: If any room, deleted or not, has this name.
        """
        validate_room_name(name)
        existing = self.find_by_name(name)
        if existing is not None:
            if existing.is_deleted:
                raise AlreadyExists(f'Room name "{name}" belongs to a deleted room')
            raise AlreadyExists(f'Room with name "{name}" already exists')

        row = self._storage.fetchone(
            f"""
            INSERT INTO rooms (name, created_by, created_at, deleted_at)
            VALUES (?, ?, ?, NULL)
            RETURNING {_COLUMNS}
            """,
            [name, creator_id, now_ms()],
        )
        room = self._row_to_room(row)
        logger.info("[Rooms] Created %s (id=%s) by participant %s", name, room.id, creator_id)
        return room

    def find_by_name(self, name: str) -> Optional[Room]:
        """Exact-name lookup. Includes tombstoned rooms."""
        row = self._storage.fetchone(
            f"SELECT {_COLUMNS} FROM rooms WHERE name = ?", [name]
        )
        return self._row_to_room(row) if row else None

    def find_by_id(self, room_id: int) -> Optional[Room]:
        """ID lookup. Includes tombstoned rooms."""
        row = self._storage.fetchone(
            f"SELECT {_COLUMNS} FROM rooms WHERE id = ?", [room_id]
        )
        return self._row_to_room(row) if row else None

    def list_active(self) -> List[Room]:
        """Active rooms, newest first."""
        rows = self._storage.fetchall(
            f"""
            SELECT {_COLUMNS} FROM rooms
            WHERE deleted_at IS NULL
            ORDER BY created_at DESC, id DESC
            """
        )
        return [self._row_to_room(r) for r in rows]

    # -----------------------------------------------------------------------
    # Tombstones
    # -----------------------------------------------------------------------

    def soft_delete(self, room_id: int, requester_id: int) -> bool:
        """Tombstone a room. Only its creator may do this.

        Messages are left untouched.

        Returns:
            False if the room does not exist, True once tombstoned.

        Raises:
            PermissionDenied: If ``requester_id`` is not the creator.
        """
        room = self.find_by_id(room_id)
        if room is None:
            return False
        if room.created_by != requester_id:
            logger.warning(
                "[Rooms] Participant %s tried to delete room %s owned by %s",
                requester_id, room_id, room.created_by,
            )
            raise PermissionDenied()

        self._storage.execute(
            "UPDATE rooms SET deleted_at = ? WHERE id = ?", [now_ms(), room_id]
        )
        logger.info("[Rooms] Soft-deleted room %s (%s)", room_id, room.name)
        return True

    def restore(self, room_id: int) -> bool:
        """Clear the tombstone. Returns False for unknown rooms."""
        row = self._storage.fetchone(
            "UPDATE rooms SET deleted_at = NULL WHERE id = ? RETURNING id", [room_id]
        )
        if row is None:
            return False
        logger.info("[Rooms] Restored room %s", room_id)
        return True

    @staticmethod
    def _row_to_room(row: tuple) -> Room:
        return Room(
            id=row[0],
            name=row[1],
            created_by=row[2],
            created_at=row[3],
            deleted_at=row[4],
        )
