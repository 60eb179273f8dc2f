"""In-memory presence tracking with a single-active-room rule.

The tracker keeps a bidirectional map of room -> handles and
handle -> room. A handle is present in at most one room at any instant:
joining a room atomically removes the handle from the room it was in.

Thread Safety:
    Every public method runs under the tracker's own lock, so check-and-set
    sequences (join, leave, clear_room) are atomic even if callers are not
    confined to one event loop.
"""
import logging
import threading
from typing import Dict, Hashable, Optional, Set

logger = logging.getLogger(__name__)

RoomKey = Hashable


class PresenceTracker:
    """Tracks which handle is active in which room.

    One instance is built per process and passed to the session protocol.
    Handles are stored exactly as given; callers decide on normalization.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()

        # room -> set of handles present in it
        self._room_members: Dict[RoomKey, Set[str]] = {}

        # handle -> the one room it is present in
        self._handle_room: Dict[str, RoomKey] = {}

    def join(self, room: RoomKey, handle: str) -> Optional[RoomKey]:
        """Put ``handle`` in ``room``, vacating any other room first.

        Returns:
            The room the handle was moved out of, or None when the handle
            was in no room (or already in this one).
        """
        with self._lock:
            previous = self._handle_room.get(handle)
            if previous is not None and previous != room:
                self._remove(previous, handle)
            else:
                previous = None

            self._room_members.setdefault(room, set()).add(handle)
            self._handle_room[handle] = room

        if previous is not None:
            logger.debug("[Presence] %s moved from room %s to %s", handle, previous, room)
        return previous

    def leave(self, room: RoomKey, handle: str) -> bool:
        """Remove ``handle`` from ``room``.

        Returns:
            True if the handle was present in the room.
        """
        with self._lock:
            return self._remove(room, handle)

    def clear_room(self, room: RoomKey) -> Set[str]:
        """Remove every handle from ``room``.

        Returns:
            The handles that were present.
        """
        with self._lock:
            members = self._room_members.pop(room, set())
            for handle in members:
                if self._handle_room.get(handle) == room:
                    del self._handle_room[handle]
        return members

    def members_of(self, room: RoomKey) -> Set[str]:
        """Handles present in ``room`` (empty for unknown rooms)."""
        with self._lock:
            return set(self._room_members.get(room, ()))

    def current_room_of(self, handle: str) -> Optional[RoomKey]:
        with self._lock:
            return self._handle_room.get(handle)

    def is_member(self, room: RoomKey, handle: str) -> bool:
        with self._lock:
            return handle in self._room_members.get(room, ())

    def room_count(self) -> int:
        """Number of rooms with at least one member."""
        with self._lock:
            return len(self._room_members)

    def user_count(self) -> int:
        """Number of handles present in some room."""
        with self._lock:
            return len(self._handle_room)

    def clear(self) -> None:
        with self._lock:
            self._room_members.clear()
            self._handle_room.clear()

    def _remove(self, room: RoomKey, handle: str) -> bool:
        members = self._room_members.get(room)
        if members is None or handle not in members:
            return False

        members.discard(handle)
        if not members:
            del self._room_members[room]
        if self._handle_room.get(handle) == room:
            del self._handle_room[handle]
        return True
