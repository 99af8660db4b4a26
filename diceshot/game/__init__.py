from .powerups import PowerUpRegistry
from .room_registry import RoomRegistry
from .turn_engine import TurnEngine
from .combat import CombatResolver
from .scheduler import AsyncioScheduler, Scheduler
from .coordinator import SessionCoordinator
from .room_manager import RoomManager

__all__ = [
    "PowerUpRegistry",
    "RoomRegistry",
    "TurnEngine",
    "CombatResolver",
    "AsyncioScheduler",
    "Scheduler",
    "SessionCoordinator",
    "RoomManager",
]
