import logging
import random
from typing import Callable

from pydantic import BaseModel, Field

from ..config import DISCONNECT_GRACE_SEC, TURN_DURATION_SEC
from ..errors import (
    AlreadyRolled,
    AlreadyStarted,
    GameNotStarted,
    GameOver,
    InvalidTargetCell,
    NoPowerUpAvailable,
    NotEnoughPlayers,
    NotHost,
    NotYourTurn,
    PlayerNotFound,
    PlayersNotReady,
    ReconnectExpired,
    SessionNotFound,
    TargetEliminated,
    TargetNotFound,
)
from ..models import (
    ActiveEffect,
    DisconnectionRecord,
    GameSession,
    LogType,
    MatchHistory,
    Player,
    PowerUpType,
    Room,
    TurnPhase,
)
from .combat import CombatResolver
from .powerups import PowerUpRegistry
from .room_registry import RoomRegistry
from .scheduler import Scheduler
from .turn_engine import TurnEngine

log = logging.getLogger(__name__)

Notify = Callable[[str, dict], None]


class RollOutcome(BaseModel):
    room_id: str
    session: GameSession
    value: int
    granted_power_up: PowerUpType | None = None


class ShootOutcome(BaseModel):
    room_id: str
    session: GameSession
    history: MatchHistory | None = None


class PowerUpOutcome(BaseModel):
    room_id: str
    session: GameSession
    effect: ActiveEffect


class DisconnectOutcome(BaseModel):
    room_id: str
    username: str


class LeaveOutcome(BaseModel):
    room_id: str
    username: str
    room_deleted: bool
    history: MatchHistory | None = None
    connections: list[str] = Field(default_factory=list, exclude=True)


def _turn_key(room_id: str) -> str:
    return f"turn:{room_id}"


def _grace_key(connection: str) -> str:
    return f"grace:{connection}"


class SessionCoordinator:
    """The operations the transport layer calls.

    Each call runs to completion without awaiting, so no other intent can
    see a half-updated room. Timer callbacks come back in through
    turn_expired and grace_expired under the same rule, and report what
    they changed through ``notify``.
    """

    def __init__(
        self,
        registry: RoomRegistry,
        scheduler: Scheduler,
        rng: random.Random | None = None,
        turn_duration: float = TURN_DURATION_SEC,
        grace_period: float = DISCONNECT_GRACE_SEC,
        notify: Notify | None = None,
    ):
        self.registry = registry
        self.scheduler = scheduler
        self.rng = rng or registry.rng
        self.turn_duration = turn_duration
        self.grace_period = grace_period
        self.notify: Notify = notify or (lambda room_id, event: None)
        self.turns = TurnEngine(self.rng, turn_duration, clock=scheduler.now)
        self.combat = CombatResolver(self.turns)
        self._disconnections: dict[str, DisconnectionRecord] = {}

    # lobby

    def create_room(
        self, capacity: int, host_username: str, connection: str, password: str | None = None
    ) -> Room:
        room = self.registry.create_room(capacity, password)
        return self.registry.join_room(
            room.id, Player(connection=connection, username=host_username), password
        )

    def join_room(
        self, room_id: str, username: str, connection: str, password: str | None = None
    ) -> Room:
        return self.registry.join_room(room_id, Player(connection=connection, username=username), password)

    def find_quick_match(self, username: str | None = None) -> str | None:
        room_id = self.registry.find_quick_match()
        log.debug(f"Quick match for {username}: {room_id}")
        return room_id

    def toggle_ready(self, room_id: str, username: str) -> Room:
        return self.registry.toggle_ready(room_id, username)

    def start_game(self, room_id: str, connection: str | None = None) -> GameSession:
        room = self.registry.require_room(room_id)
        if connection is not None and (room.host is None or room.host.connection != connection):
            raise NotHost()
        if room.started:
            raise AlreadyStarted()
        if len(room.players) < 2:
            raise NotEnoughPlayers()
        if any(not p.ready for p in room.players[1:]):
            raise PlayersNotReady()

        room.session = self.turns.start_session(room.players)
        room.started = True
        log.info(f"Game started in room {room_id}")
        self._start_turn_timer(room)
        return room.session

    # turn actions

    def roll(self, room_id: str, value: int | None = None, connection: str | None = None) -> RollOutcome:
        room, session, power_ups = self._current(room_id, connection)
        if session.phase != TurnPhase.AWAITING_ROLL:
            raise AlreadyRolled()
        if value is None:
            value = self.rng.randint(1, session.max_dice_value)

        turn_before = session.turn_number
        granted = self.turns.roll(session, value, power_ups)
        self._after_action(room, turn_before)
        return RollOutcome(room_id=room_id, session=session, value=value, granted_power_up=granted)

    def shoot(
        self,
        room_id: str,
        target_username: str,
        target_cell: int,
        connection: str | None = None,
    ) -> ShootOutcome:
        room, session, power_ups = self._current(room_id, connection)
        turn_before = session.turn_number
        history = self.combat.shoot(session, target_username, target_cell, power_ups)
        self._after_action(room, turn_before)
        return ShootOutcome(room_id=room_id, session=session, history=history)

    def use_power_up(
        self,
        room_id: str,
        target_username: str,
        target_cell: int | None = None,
        connection: str | None = None,
    ) -> PowerUpOutcome:
        room, session, power_ups = self._current(room_id, connection)
        caster = session.current_player
        kind = power_ups.state(caster.username).current_power_up
        if kind is None:
            raise NoPowerUpAvailable()

        target = caster
        if kind != PowerUpType.DOUBLE_SHOT:
            target = session.get_player(target_username)
            if target is None:
                raise TargetNotFound(f"Target player {target_username} not found")
            if target.eliminated:
                raise TargetEliminated()
        if kind in (PowerUpType.FREEZE, PowerUpType.SHIELD):
            if target_cell is None or target.cell(target_cell) is None:
                raise InvalidTargetCell(f"{kind.value} needs a target cell")

        turn_before = session.turn_number
        effect = power_ups.use_power_up(caster.username, target.username, target_cell)
        session.log(
            LogType.POWER_UP_USED,
            player=caster.username,
            target=effect.target_player,
            power_up=kind,
            cell=effect.target_cell + 1 if effect.target_cell is not None else None,
        )
        self.turns.project_effects(session, power_ups)

        # the draw used up this turn's roll
        if session.phase == TurnPhase.AWAITING_POWER_UP:
            self.turns.next_turn(session, power_ups)
        self._after_action(room, turn_before)
        return PowerUpOutcome(room_id=room_id, session=session, effect=effect)

    def end_turn(self, room_id: str, connection: str | None = None) -> GameSession:
        room, session, power_ups = self._current(room_id, connection)
        turn_before = session.turn_number
        self.turns.end_turn(session, power_ups, "pass")
        self._after_action(room, turn_before)
        return session

    # connections

    def disconnect(self, connection: str) -> DisconnectOutcome | None:
        found = self.registry.find_by_connection(connection)
        if found is None or connection in self._disconnections:
            return None

        room, player = found
        player.connected = False
        self._disconnections[connection] = DisconnectionRecord(
            connection=connection,
            room_id=room.id,
            username=player.username,
            expires_at=self.scheduler.now() + self.grace_period,
        )
        self.scheduler.schedule(
            _grace_key(connection), self.grace_period, lambda: self.grace_expired(connection)
        )
        log.info(f"{player.username} disconnected from room {room.id}, holding seat for {self.grace_period}s")
        return DisconnectOutcome(room_id=room.id, username=player.username)

    def reconnect(self, connection: str, username: str, room_id: str | None = None) -> Room:
        """Put a disconnected player back in their seat on a new connection.

        ``room_id`` is only needed when the same username is waiting to
        come back to more than one room.
        """
        records = [
            record
            for record in self._disconnections.values()
            if record.username == username and (room_id is None or record.room_id == room_id)
        ]
        if not records:
            raise SessionNotFound(f"No disconnected session for {username}")
        if len(records) > 1:
            raise SessionNotFound(f"{username} is disconnected from several rooms, pass a room_id")

        record = records[0]
        if self.scheduler.now() >= record.expires_at:
            self.scheduler.cancel(_grace_key(record.connection))
            self.grace_expired(record.connection)
            raise ReconnectExpired()

        self.scheduler.cancel(_grace_key(record.connection))
        del self._disconnections[record.connection]

        room = self.registry.require_room(record.room_id)
        player = room.get_player(username)
        player.connection = connection
        player.connected = True
        self.registry.rebind(room.id, username, connection)
        log.info(f"{username} reconnected to room {room.id}")
        return room

    def leave(self, connection: str) -> LeaveOutcome | None:
        self._disconnections.pop(connection, None)
        self.scheduler.cancel(_grace_key(connection))
        found = self.registry.find_by_connection(connection)
        if found is None:
            return None
        room, player = found
        return self._remove(room, player)

    # timers

    def turn_expired(self, room_id: str, turn_number: int) -> None:
        room = self.registry.get_room(room_id)
        session = room.session if room else None
        if session is None or session.is_over or session.turn_number != turn_number:
            log.debug(f"Ignoring stale turn timer for room {room_id}")
            return

        username = session.current_player.username
        self.turns.end_turn(session, self.registry.power_ups(room_id), "timeout")
        log.info(f"Turn of {username} timed out in room {room_id}")
        self._start_turn_timer(room)
        self.notify(room_id, {"type": "turn_expired", "username": username})

    def grace_expired(self, connection: str) -> None:
        record = self._disconnections.pop(connection, None)
        if record is None:
            return
        room = self.registry.get_room(record.room_id)
        player = room.get_player(record.username) if room else None
        if player is None or player.connection != connection:
            return

        log.info(f"Grace period over for {player.username} in room {room.id}")
        outcome = self._remove(room, player)
        self.notify(
            room.id,
            {
                "type": "player_removed",
                **outcome.model_dump(mode="json", exclude={"room_id"}),
                "connections": outcome.connections,
            },
        )

    # lookups

    def player_for(self, room_id: str, connection: str) -> Player:
        player = self.registry.require_room(room_id).get_player_by_connection(connection)
        if player is None:
            raise PlayerNotFound(f"Connection is not seated in room {room_id}")
        return player

    def room_snapshot(self, room_id: str) -> dict:
        room = self.registry.require_room(room_id)
        snapshot = room.model_dump(mode="json")
        snapshot["power_ups"] = self.registry.power_ups(room_id).snapshot()
        return snapshot

    # helpers

    def _current(
        self, room_id: str, connection: str | None
    ) -> tuple[Room, GameSession, PowerUpRegistry]:
        room = self.registry.require_room(room_id)
        session = room.session
        if session is None:
            raise GameNotStarted()
        if session.is_over:
            raise GameOver()
        if connection is not None and session.current_player.connection != connection:
            raise NotYourTurn()
        return room, session, self.registry.power_ups(room_id)

    def _remove(self, room: Room, player: Player) -> LeaveOutcome:
        history = None
        session = room.session
        turn_before = session.turn_number if session else 0
        if session is not None:
            history = self.combat.forfeit(session, player, self.registry.power_ups(room.id))

        others = [p.connection for p in room.players if p is not player and p.connected]
        _, deleted = self.registry.remove_player(room.id, player.connection)
        if deleted:
            self.scheduler.cancel(_turn_key(room.id))
        elif session is not None:
            self._after_action(room, turn_before)
        return LeaveOutcome(
            room_id=room.id,
            username=player.username,
            room_deleted=deleted,
            history=history,
            connections=others,
        )

    def _after_action(self, room: Room, turn_before: int) -> None:
        session = room.session
        if session.is_over:
            self.scheduler.cancel(_turn_key(room.id))
        elif session.turn_number != turn_before:
            self._start_turn_timer(room)

    def _start_turn_timer(self, room: Room) -> None:
        session = room.session
        room_id, turn_number = room.id, session.turn_number
        session.turn_deadline = self.scheduler.now() + self.turn_duration
        self.scheduler.schedule(
            _turn_key(room_id), self.turn_duration, lambda: self.turn_expired(room_id, turn_number)
        )
