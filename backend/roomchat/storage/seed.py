"""Default data provisioning.

``seed_default_rooms`` runs at startup (when enabled in config) and makes
sure the default rooms exist, owned by a system participant.
``seed_messages`` bulk-loads synthetic history for pagination checks.
"""
import logging
from typing import Iterable, List, Sequence

from roomchat.messages.schemas import DeliveryStatus, sanitize_content
from roomchat.rooms.schemas import Room
from roomchat.rooms.service import RoomDirectory
from roomchat.users.service import ParticipantService

from .service import StorageService, now_ms

logger = logging.getLogger(__name__)


def seed_default_rooms(
    participants: ParticipantService,
    rooms: RoomDirectory,
    names: Iterable[str],
    system_handle: str = "system",
) -> List[Room]:
    """Create any missing default rooms. Existing rooms are left alone.

    Returns:
        The rooms created by this call.
    """
    owner = participants.get_or_create(system_handle)
    created = []
    for name in names:
        if rooms.find_by_name(name) is None:
            created.append(rooms.create(name, owner.id))
    if created:
        logger.info("[Seed] Seeded default rooms: %s", ", ".join(r.name for r in created))
    return created


def seed_messages(
    storage: StorageService,
    room_id: int,
    sender_ids: Sequence[int],
    count: int,
    start_ts: int = 0,
    step_ms: int = 100,
) -> int:
    """Insert ``count`` delivered messages into a room in one transaction.

    Senders rotate through ``sender_ids``; timestamps increase by
    ``step_ms`` so the last message inserted is the newest.

    Returns:
        Number of messages inserted.
    """
    if not sender_ids:
        raise ValueError("sender_ids must not be empty")
    base = start_ts or now_ms()

    rows = [
        [
            sender_ids[i % len(sender_ids)],
            room_id,
            sanitize_content(f"Test message {i + 1} - Lorem ipsum dolor sit amet"),
            base + i * step_ms,
            DeliveryStatus.SENT.value,
            base + i * step_ms,
        ]
        for i in range(count)
    ]
    with storage.transaction():
        for row in rows:
            storage.execute(
                """
                INSERT INTO messages
                  (participant_id, room_id, content, timestamp,
                   delivery_status, retry_count, created_at)
                VALUES (?, ?, ?, ?, ?, 0, ?)
                """,
                row,
            )
    logger.info("[Seed] Inserted %d messages into room %s", count, room_id)
    return count
