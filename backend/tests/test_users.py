"""Tests for participant validation and the participant registry."""
import pytest

from roomchat.errors import HandleInvalid, StorageError
from roomchat.users import normalize_handle, validate_handle


class TestValidateHandle:
    @pytest.mark.parametrize("handle", ["abc", "alice", "Bob_42", "a" * 20, "___"])
    def test_valid(self, handle):
        assert validate_handle(handle) == handle

    @pytest.mark.parametrize("handle", ["ab", "a" * 21, "has space", "dash-ed", "alice\n", "émile"])
    def test_invalid_pattern(self, handle):
        with pytest.raises(HandleInvalid, match="3-20 characters"):
            validate_handle(handle)

    @pytest.mark.parametrize("handle", [None, "", 123, ["alice"]])
    def test_missing(self, handle):
        with pytest.raises(HandleInvalid, match="Handle is required"):
            validate_handle(handle)


def test_normalize_handle():
    assert normalize_handle("Alice") == normalize_handle("alice") == "alice"


class TestParticipantService:
    def test_create_and_find(self, participants):
        created = participants.create("alice")
        assert created.id > 0
        assert created.handle == "alice"
        assert created.last_seen_at is None

        assert participants.find_by_handle("alice") == created
        assert participants.find_by_id(created.id) == created

    def test_handles_are_case_sensitive_in_store(self, participants):
        participants.create("alice")
        assert participants.find_by_handle("Alice") is None

    def test_duplicate_handle_is_rejected_by_store(self, participants):
        participants.create("alice")
        with pytest.raises(StorageError):
            participants.create("alice")

    def test_create_validates(self, participants):
        with pytest.raises(HandleInvalid):
            participants.create("x")

    def test_get_or_create_is_idempotent(self, participants):
        first = participants.get_or_create("bob")
        second = participants.get_or_create("bob")
        assert first.id == second.id
        assert len(participants.list_all()) == 1

    def test_touch(self, participants):
        alice = participants.create("alice")
        assert participants.touch(alice.id, timestamp=1234) is True
        assert participants.find_by_id(alice.id).last_seen_at == 1234

    def test_touch_unknown(self, participants):
        assert participants.touch(999) is False

    def test_find_unknown(self, participants):
        assert participants.find_by_handle("nobody") is None
        assert participants.find_by_id(999) is None
