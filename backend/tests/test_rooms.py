"""Tests for room validation and the room directory."""
import pytest

from roomchat.errors import AlreadyExists, NameInvalid, PermissionDenied
from roomchat.rooms import validate_room_name


@pytest.fixture
def owner(participants):
    return participants.create("owner")


@pytest.fixture
def other(participants):
    return participants.create("other")


class TestValidateRoomName:
    @pytest.mark.parametrize("name", ["abc", "general", "my-room_2", "x" * 50])
    def test_valid(self, name):
        assert validate_room_name(name) == name

    @pytest.mark.parametrize("name", ["ab", "x" * 51, "has space", "dot.ted", "room\n"])
    def test_invalid_pattern(self, name):
        with pytest.raises(NameInvalid, match="3-50 characters"):
            validate_room_name(name)

    @pytest.mark.parametrize("name", [None, "", 7])
    def test_missing(self, name):
        with pytest.raises(NameInvalid, match="Room name is required"):
            validate_room_name(name)


class TestCreate:
    def test_create_assigns_creator(self, rooms, owner):
        room = rooms.create("general", owner.id)
        assert room.id > 0
        assert room.name == "general"
        assert room.created_by == owner.id
        assert room.deleted_at is None
        assert not room.is_deleted

    def test_duplicate_active_name(self, rooms, owner, other):
        rooms.create("general", owner.id)
        with pytest.raises(AlreadyExists, match="already exists"):
            rooms.create("general", other.id)

    def test_deleted_name_is_still_reserved(self, rooms, owner):
        room = rooms.create("general", owner.id)
        rooms.soft_delete(room.id, owner.id)
        with pytest.raises(AlreadyExists, match="deleted room"):
            rooms.create("general", owner.id)

    def test_invalid_name(self, rooms, owner):
        with pytest.raises(NameInvalid):
            rooms.create("no", owner.id)


class TestLookup:
    def test_find_by_name_and_id(self, rooms, owner):
        room = rooms.create("general", owner.id)
        assert rooms.find_by_name("general") == room
        assert rooms.find_by_id(room.id) == room

    def test_lookup_is_case_sensitive(self, rooms, owner):
        rooms.create("general", owner.id)
        assert rooms.find_by_name("General") is None

    def test_find_includes_tombstones(self, rooms, owner):
        room = rooms.create("general", owner.id)
        rooms.soft_delete(room.id, owner.id)
        assert rooms.find_by_name("general").is_deleted
        assert rooms.find_by_id(room.id).is_deleted

    def test_list_active_newest_first_without_deleted(self, rooms, owner):
        first = rooms.create("first", owner.id)
        second = rooms.create("second", owner.id)
        third = rooms.create("third", owner.id)
        rooms.soft_delete(second.id, owner.id)

        assert [r.id for r in rooms.list_active()] == [third.id, first.id]


class TestSoftDelete:
    def test_creator_can_delete(self, rooms, owner):
        room = rooms.create("general", owner.id)
        assert rooms.soft_delete(room.id, owner.id) is True
        assert rooms.find_by_id(room.id).deleted_at is not None

    def test_non_creator_is_denied(self, rooms, owner, other):
        room = rooms.create("general", owner.id)
        with pytest.raises(PermissionDenied):
            rooms.soft_delete(room.id, other.id)
        assert not rooms.find_by_id(room.id).is_deleted

    def test_unknown_room(self, rooms, owner):
        assert rooms.soft_delete(999, owner.id) is False

    def test_delete_keeps_messages(self, rooms, ledger, owner):
        room = rooms.create("general", owner.id)
        ledger.append(room.id, owner.id, "still here", 1000)
        rooms.soft_delete(room.id, owner.id)
        assert ledger.count(room.id) == 1

    def test_restore(self, rooms, owner):
        room = rooms.create("general", owner.id)
        rooms.soft_delete(room.id, owner.id)

        assert rooms.restore(room.id) is True
        assert not rooms.find_by_id(room.id).is_deleted
        assert [r.id for r in rooms.list_active()] == [room.id]

    def test_restore_unknown(self, rooms):
        assert rooms.restore(999) is False
