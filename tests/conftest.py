import random
from typing import Callable

import pytest

from diceshot.game import PowerUpRegistry, RoomRegistry, SessionCoordinator, TurnEngine
from diceshot.models import Player


class FakeScheduler:
    """Manual clock; timers fire only when a test advances time."""

    def __init__(self, start: float = 1000.0):
        self.clock = start
        self.timers: dict[str, tuple[float, Callable[[], None]]] = {}

    def now(self) -> float:
        return self.clock

    def schedule(self, key: str, delay: float, callback: Callable[[], None]) -> None:
        self.timers[key] = (self.clock + delay, callback)

    def cancel(self, key: str) -> bool:
        return self.timers.pop(key, None) is not None

    def cleanup(self) -> None:
        self.timers.clear()

    def advance(self, seconds: float) -> None:
        target = self.clock + seconds
        while True:
            due = sorted((when, key) for key, (when, _) in self.timers.items() if when <= target)
            if not due:
                break
            when, key = due[0]
            _, callback = self.timers.pop(key)
            self.clock = when
            callback()
        self.clock = target


@pytest.fixture()
def rng():
    return random.Random(7)


@pytest.fixture()
def scheduler():
    return FakeScheduler()


@pytest.fixture()
def registry(rng):
    return RoomRegistry(rng)


@pytest.fixture()
def events():
    return []


@pytest.fixture()
def coordinator(registry, scheduler, rng, events):
    return SessionCoordinator(
        registry,
        scheduler,
        rng=rng,
        turn_duration=30,
        grace_period=30,
        notify=lambda room_id, event: events.append((room_id, event)),
    )


@pytest.fixture()
def engine(rng):
    return TurnEngine(rng, turn_duration=30, clock=lambda: 0.0)


def make_players(count: int) -> list[Player]:
    return [Player(connection=f"conn-{i}", username=f"p{i}") for i in range(count)]


def make_session(engine: TurnEngine, count: int, first: int = 0):
    players = make_players(count)
    power_ups = PowerUpRegistry(random.Random(3))
    for player in players:
        power_ups.add_player(player.username)
    session = engine.start_session(players)
    session.current_player_index = first
    return session, power_ups


def seat_room(coordinator: SessionCoordinator, count: int, capacity: int | None = None):
    """Create a room with players p0..p{count-1}, everybody ready."""
    room = coordinator.create_room(capacity or count, "p0", "conn-0")
    for i in range(1, count):
        coordinator.join_room(room.id, f"p{i}", f"conn-{i}")
        coordinator.toggle_ready(room.id, f"p{i}")
    return room


def start_room(coordinator: SessionCoordinator, count: int, first: int = 0):
    room = seat_room(coordinator, count)
    session = coordinator.start_game(room.id)
    session.current_player_index = first
    return room, session
