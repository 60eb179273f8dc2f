"""ParticipantService: DuckDB-backed participant registry."""
import logging
from typing import List, Optional

from roomchat.storage import StorageService, now_ms

from .schemas import Participant, validate_handle

logger = logging.getLogger(__name__)

_COLUMNS = "id, handle, created_at, last_seen_at"


class ParticipantService:
    """Creates and looks up participants.

    Participants are never deleted in normal operation. Handles are stored
    exactly as given, so lookups are case-sensitive.
    """

    def __init__(self, storage: StorageService) -> None:
        self._storage = storage

    def create(self, handle: str) -> Participant:
        validate_handle(handle)
        row = self._storage.fetchone(
            f"""
            INSERT INTO participants (handle, created_at, last_seen_at)
            VALUES (?, ?, NULL)
            RETURNING {_COLUMNS}
            """,
            [handle, now_ms()],
        )
        logger.info("[Participants] Created %s (id=%s)", handle, row[0])
        return self._row_to_participant(row)

    def find_by_handle(self, handle: str) -> Optional[Participant]:
        row = self._storage.fetchone(
            f"SELECT {_COLUMNS} FROM participants WHERE handle = ?", [handle]
        )
        return self._row_to_participant(row) if row else None

    def find_by_id(self, participant_id: int) -> Optional[Participant]:
        row = self._storage.fetchone(
            f"SELECT {_COLUMNS} FROM participants WHERE id = ?", [participant_id]
        )
        return self._row_to_participant(row) if row else None

    def get_or_create(self, handle: str) -> Participant:
        """Fetch the participant for ``handle``, creating it on first use."""
        existing = self.find_by_handle(handle)
        if existing is not None:
            return existing
        return self.create(handle)

    def touch(self, participant_id: int, timestamp: Optional[int] = None) -> bool:
        """Update last-active time. Returns False for unknown ids."""
        row = self._storage.fetchone(
            "UPDATE participants SET last_seen_at = ? WHERE id = ? RETURNING id",
            [timestamp if timestamp is not None else now_ms(), participant_id],
        )
        return row is not None

    def list_all(self) -> List[Participant]:
        rows = self._storage.fetchall(
            f"SELECT {_COLUMNS} FROM participants ORDER BY created_at DESC, id DESC"
        )
        return [self._row_to_participant(r) for r in rows]

    @staticmethod
    def _row_to_participant(row: tuple) -> Participant:
        return Participant(
            id=row[0], handle=row[1], created_at=row[2], last_seen_at=row[3]
        )
