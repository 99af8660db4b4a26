import pytest

from diceshot.errors import (
    AlreadyStarted,
    InvalidCapacity,
    InvalidPassword,
    PlayerNotFound,
    RoomFull,
    RoomNotFound,
    UsernameTaken,
)
from diceshot.models import Player


def _player(name: str) -> Player:
    return Player(connection=f"conn-{name}", username=name)


@pytest.mark.parametrize("capacity", [0, 1, 6])
def test_create_room_rejects_capacity_out_of_range(registry, capacity):
    with pytest.raises(InvalidCapacity):
        registry.create_room(capacity)
    assert len(registry) == 0


def test_create_room(registry):
    room = registry.create_room(3, password="hunter2")
    assert registry.get_room(room.id) is room
    assert room.capacity == 3
    assert room.has_password
    assert "password" not in room.model_dump()
    assert room.id in registry.rooms


def test_join_never_exceeds_capacity(registry):
    room = registry.create_room(2)
    registry.join_room(room.id, _player("alice"))
    registry.join_room(room.id, _player("bob"))

    with pytest.raises(RoomFull):
        registry.join_room(room.id, _player("carol"))
    assert len(room.players) == 2


def test_join_failures(registry):
    with pytest.raises(RoomNotFound):
        registry.join_room("missing", _player("alice"))

    private = registry.create_room(3, password="secret")
    with pytest.raises(InvalidPassword):
        registry.join_room(private.id, _player("alice"), password="wrong")
    registry.join_room(private.id, _player("alice"), password="secret")

    with pytest.raises(UsernameTaken):
        registry.join_room(private.id, _player("alice"), password="secret")

    private.started = True
    with pytest.raises(AlreadyStarted):
        registry.join_room(private.id, _player("bob"), password="secret")
    assert [p.username for p in private.players] == ["alice"]


def test_join_registers_binding_and_power_up_state(registry):
    room = registry.create_room(2)
    registry.join_room(room.id, _player("alice"))

    binding = registry.binding(room.id, "alice")
    assert binding.room_id == room.id
    assert binding.connection == "conn-alice"
    assert "alice" in registry.power_ups(room.id)


def test_find_quick_match_skips_private_full_and_started(registry):
    assert registry.find_quick_match() is None

    private = registry.create_room(2, password="x")
    full = registry.create_room(2)
    registry.join_room(full.id, _player("a"))
    registry.join_room(full.id, _player("b"))
    started = registry.create_room(3)
    registry.join_room(started.id, _player("c"))
    started.started = True
    open_room = registry.create_room(4)

    assert registry.find_quick_match() == open_room.id
    assert private.id != registry.find_quick_match()


def test_toggle_ready(registry):
    room = registry.create_room(3)
    registry.join_room(room.id, _player("host"))
    registry.join_room(room.id, _player("guest"))

    registry.toggle_ready(room.id, "host")
    assert room.players[0].ready is False

    registry.toggle_ready(room.id, "guest")
    assert room.players[1].ready is True
    registry.toggle_ready(room.id, "guest")
    assert room.players[1].ready is False

    with pytest.raises(PlayerNotFound):
        registry.toggle_ready(room.id, "nobody")
    with pytest.raises(RoomNotFound):
        registry.toggle_ready("missing", "guest")


def test_remove_guest_keeps_room(registry):
    room = registry.create_room(3)
    registry.join_room(room.id, _player("host"))
    registry.join_room(room.id, _player("guest"))

    player, deleted = registry.remove_player(room.id, "conn-guest")

    assert player.username == "guest"
    assert deleted is False
    assert [p.username for p in room.players] == ["host"]
    assert "guest" not in registry.power_ups(room.id)
    assert registry.binding(room.id, "guest") is None


def test_remove_host_tears_down_room(registry):
    room = registry.create_room(3)
    registry.join_room(room.id, _player("host"))
    registry.join_room(room.id, _player("guest"))

    _, deleted = registry.remove_player(room.id, "conn-host")

    assert deleted is True
    assert registry.get_room(room.id) is None
    assert registry.binding(room.id, "guest") is None


def test_remove_last_player_deletes_room(registry):
    room = registry.create_room(2)
    registry.join_room(room.id, _player("host"))

    _, deleted = registry.remove_player(room.id, "conn-host")
    assert deleted is True
    assert len(registry) == 0

    with pytest.raises(RoomNotFound):
        registry.remove_player(room.id, "conn-host")


def test_same_username_in_two_rooms_keeps_both_bindings(registry):
    first = registry.create_room(2)
    second = registry.create_room(2)
    registry.join_room(first.id, Player(connection="conn-a1", username="alice"))
    registry.join_room(second.id, Player(connection="conn-a2", username="alice"))

    assert registry.binding(first.id, "alice").connection == "conn-a1"
    assert registry.binding(second.id, "alice").connection == "conn-a2"

    registry.rebind(first.id, "alice", "conn-a3")
    assert registry.binding(first.id, "alice").connection == "conn-a3"
    assert registry.binding(second.id, "alice").connection == "conn-a2"
