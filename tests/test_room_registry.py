from quizroom.core.services.room_registry import RoomRegistry


def test_join_twice_keeps_single_membership():
    registry = RoomRegistry()
    registry.join("1234", "alice")
    members = registry.join("1234", "alice")
    assert members == ["alice"]


def test_join_preserves_arrival_order():
    registry = RoomRegistry()
    registry.join("1234", "alice")
    registry.join("1234", "bob")
    assert registry.join("1234", "carol") == ["alice", "bob", "carol"]


def test_last_leave_drops_room():
    registry = RoomRegistry()
    registry.join("1234", "alice")
    registry.join("1234", "bob")
    assert registry.leave("1234", "alice") == ["bob"]
    assert registry.leave("1234", "bob") == []
    assert not registry.is_open("1234")
    assert registry.room_ids() == []


def test_leave_unknown_room_or_identity_is_harmless():
    registry = RoomRegistry()
    assert registry.leave("missing", "alice") == []
    registry.join("1234", "alice")
    assert registry.leave("1234", "nobody") == ["alice"]


def test_leave_everywhere_reports_remaining_members():
    registry = RoomRegistry()
    registry.join("a", "alice")
    registry.join("a", "bob")
    registry.join("b", "alice")
    registry.join("c", "carol")

    remaining = registry.leave_everywhere("alice")

    assert remaining == {"a": ["bob"], "b": []}
    assert registry.room_ids() == ["a", "c"]


def test_close_returns_members_and_forgets_room():
    registry = RoomRegistry()
    registry.join("1234", "alice")
    registry.join("1234", "bob")
    assert registry.close("1234") == ["alice", "bob"]
    assert registry.members_of("1234") == []
    assert registry.close("1234") == []
