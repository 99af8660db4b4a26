import logging
import random
import uuid

from ..config import MAX_PLAYERS, MIN_PLAYERS
from ..errors import (
    AlreadyStarted,
    InvalidCapacity,
    InvalidPassword,
    PlayerNotFound,
    RoomFull,
    RoomNotFound,
    UsernameTaken,
)
from ..models import Player, Room, SessionBinding
from .powerups import PowerUpRegistry

log = logging.getLogger(__name__)


class RoomRegistry:
    """Process-scoped home of every live room.

    Also keeps one PowerUpRegistry per room, and the (room, username) ->
    connection bindings used to find a player again on reconnect. The same
    username may be seated in several rooms at once.
    """

    def __init__(self, rng: random.Random | None = None):
        self.rng = rng or random.Random()
        self.rooms: dict[str, Room] = {}
        self._bindings: dict[tuple[str, str], SessionBinding] = {}
        self._power_ups: dict[str, PowerUpRegistry] = {}

    def __len__(self) -> int:
        return len(self.rooms)

    def _new_room_id(self) -> str:
        while True:
            room_id = str(uuid.uuid4())[:8]
            if room_id not in self.rooms:
                return room_id

    def create_room(self, capacity: int, password: str | None = None) -> Room:
        if not MIN_PLAYERS <= capacity <= MAX_PLAYERS:
            raise InvalidCapacity(
                f"Invalid number of players. Must be between {MIN_PLAYERS} and {MAX_PLAYERS}."
            )

        room = Room(id=self._new_room_id(), capacity=capacity, password=password or None)
        self.rooms[room.id] = room
        self._power_ups[room.id] = PowerUpRegistry(self.rng)
        log.info(f"Created room {room.id} (capacity={capacity}, private={room.has_password})")
        return room

    def get_room(self, room_id: str) -> Room | None:
        return self.rooms.get(room_id)

    def require_room(self, room_id: str) -> Room:
        room = self.rooms.get(room_id)
        if room is None:
            raise RoomNotFound(f"Room {room_id} not found")
        return room

    def power_ups(self, room_id: str) -> PowerUpRegistry:
        self.require_room(room_id)
        return self._power_ups[room_id]

    def delete_room(self, room_id: str) -> None:
        room = self.rooms.pop(room_id, None)
        self._power_ups.pop(room_id, None)
        if room is None:
            return
        for player in room.players:
            self._drop_binding(room_id, player.username)
        log.info(f"Deleted room {room_id}")

    def join_room(self, room_id: str, player: Player, password: str | None = None) -> Room:
        room = self.require_room(room_id)
        if room.started:
            raise AlreadyStarted()
        if room.password and room.password != password:
            raise InvalidPassword()
        if room.is_full:
            raise RoomFull()
        if room.get_player(player.username) is not None:
            raise UsernameTaken(f"Username {player.username} is already taken in room {room_id}")

        room.add_player(player)
        self._power_ups[room_id].add_player(player.username)
        self._bindings[(room_id, player.username)] = SessionBinding(
            connection=player.connection, room_id=room_id
        )
        log.info(f"Player {player.username} joined room {room_id} ({len(room.players)}/{room.capacity})")
        return room

    def find_quick_match(self) -> str | None:
        for room_id, room in self.rooms.items():
            if not room.password and not room.is_full and not room.started:
                return room_id
        return None

    def list_open_rooms(self) -> list[Room]:
        return [room for room in self.rooms.values() if not room.started and not room.is_full]

    def toggle_ready(self, room_id: str, username: str) -> Room:
        room = self.require_room(room_id)
        player = room.get_player(username)
        if player is None:
            raise PlayerNotFound(f"Player {username} not found in room {room_id}")
        if player is room.host:
            return room

        player.ready = not player.ready
        return room

    def remove_player(self, room_id: str, connection: str) -> tuple[Player, bool]:
        room = self.require_room(room_id)
        player = room.get_player_by_connection(connection)
        if player is None:
            raise PlayerNotFound(f"No player on connection {connection} in room {room_id}")

        was_host = player is room.host
        room.remove_player(player)
        self._power_ups[room_id].remove_player(player.username)
        self._drop_binding(room_id, player.username)
        log.info(f"Removing player {player.username} from room {room_id}")

        if room.is_empty or was_host:
            self.delete_room(room_id)
            return player, True
        return player, False

    def find_by_connection(self, connection: str) -> tuple[Room, Player] | None:
        for room in self.rooms.values():
            player = room.get_player_by_connection(connection)
            if player is not None:
                return room, player
        return None

    def binding(self, room_id: str, username: str) -> SessionBinding | None:
        return self._bindings.get((room_id, username))

    def rebind(self, room_id: str, username: str, connection: str) -> None:
        binding = self._bindings.get((room_id, username))
        if binding is not None:
            binding.connection = connection

    def _drop_binding(self, room_id: str, username: str) -> None:
        self._bindings.pop((room_id, username), None)
