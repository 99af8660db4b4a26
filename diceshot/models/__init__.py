from .game import (
    ActiveEffect,
    Cell,
    DisconnectionRecord,
    Elimination,
    GameSession,
    LogEntry,
    LogType,
    MatchHistory,
    Player,
    PlayerStats,
    PowerUpState,
    PowerUpType,
    Room,
    SessionBinding,
    TurnPhase,
)
from .schemas import (
    CreateRoomRequest,
    JoinRoomRequest,
    QuickMatchRequest,
    ReconnectRequest,
    RollRequest,
    RoomRequest,
    ShootRequest,
    UsePowerUpRequest,
)

__all__ = [
    "ActiveEffect",
    "Cell",
    "DisconnectionRecord",
    "Elimination",
    "GameSession",
    "LogEntry",
    "LogType",
    "MatchHistory",
    "Player",
    "PlayerStats",
    "PowerUpState",
    "PowerUpType",
    "Room",
    "SessionBinding",
    "TurnPhase",
    "CreateRoomRequest",
    "JoinRoomRequest",
    "QuickMatchRequest",
    "ReconnectRequest",
    "RollRequest",
    "RoomRequest",
    "ShootRequest",
    "UsePowerUpRequest",
]
