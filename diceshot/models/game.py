from enum import Enum

from pydantic import BaseModel, Field, computed_field

MAX_STAGE = 6
MAX_BULLETS = 5


class LogType(str, Enum):
    ACTIVATE = "activate"
    UPGRADE = "upgrade"
    MAX_LEVEL = "maxLevel"
    RELOAD = "reload"
    FIRST_MOVE = "firstMove"
    SKIP_TURN = "skipTurn"
    SHOOT = "shoot"
    ELIMINATE = "eliminate"
    POWER_UP = "powerUp"
    POWER_UP_USED = "powerUpUsed"
    AUTO_FREEZE = "autoFreeze"
    GAME_END = "gameEnd"


class PowerUpType(str, Enum):
    FREEZE = "freeze"
    SHIELD = "shield"
    NO_ROLL = "noRoll"
    DOUBLE_SHOT = "doubleShot"


class TurnPhase(str, Enum):
    AWAITING_ROLL = "awaiting_roll"
    AWAITING_ACTION = "awaiting_action"
    AWAITING_POWER_UP = "awaiting_power_up"
    ENDED = "ended"


class Cell(BaseModel):
    stage: int = 0
    is_active: bool = False
    bullets: int = 0
    frozen: bool = False
    shielded: bool = False

    @property
    def is_armed(self) -> bool:
        return self.is_active and self.stage == MAX_STAGE and self.bullets > 0

    def activate(self) -> None:
        self.is_active = True
        self.stage = 1

    def upgrade(self) -> bool:
        """Advance one stage. Returns True when the cell reaches max level."""
        self.stage += 1
        if self.stage == MAX_STAGE:
            self.bullets = MAX_BULLETS
            return True
        return False

    def reload(self) -> bool:
        if self.bullets >= MAX_BULLETS:
            return False
        self.bullets = MAX_BULLETS
        return True

    def reset(self) -> None:
        self.is_active = False
        self.stage = 0
        self.bullets = 0

    def clear_flags(self) -> None:
        self.frozen = False
        self.shielded = False


class Player(BaseModel):
    connection: str = Field(exclude=True)
    username: str
    ready: bool = False
    eliminated: bool = False
    first_move: bool = True
    connected: bool = True
    cells: list[Cell] = Field(default_factory=list)

    @property
    def all_cells_inactive(self) -> bool:
        return all(not cell.is_active for cell in self.cells)

    def cell(self, index: int) -> Cell | None:
        if 0 <= index < len(self.cells):
            return self.cells[index]
        return None


class LogEntry(BaseModel):
    type: LogType
    player: str | None = None
    shooter: str | None = None
    target: str | None = None
    cell: int | None = None
    power_up: PowerUpType | None = None
    message: str | None = None
    turn: int = 0


class ActiveEffect(BaseModel):
    type: PowerUpType
    caster: str
    target_player: str
    target_cell: int | None = None
    turns_left: int = 2


class PowerUpState(BaseModel):
    cooldown_turns: int = 0
    current_power_up: PowerUpType | None = None
    active_effects: list[ActiveEffect] = Field(default_factory=list)


class PlayerStats(BaseModel):
    shots_fired: int = 0
    eliminations: int = 0
    times_targeted: int = 0


class Elimination(BaseModel):
    eliminator: str | None
    eliminated: str


class MatchHistory(BaseModel):
    winner: str
    eliminations: list[Elimination] = Field(default_factory=list)
    player_stats: dict[str, PlayerStats] = Field(default_factory=dict)


class GameSession(BaseModel):
    players: list[Player]
    current_player_index: int = 0
    last_roll: int | None = None
    max_dice_value: int
    game_log: list[LogEntry] = Field(default_factory=list)
    turn_deadline: float | None = None
    turn_number: int = 1
    phase: TurnPhase = TurnPhase.AWAITING_ROLL
    winner: str | None = None
    history: MatchHistory | None = None

    @property
    def current_player(self) -> Player:
        return self.players[self.current_player_index]

    @property
    def is_over(self) -> bool:
        return self.phase == TurnPhase.ENDED

    @property
    def active_players(self) -> list[Player]:
        return [p for p in self.players if not p.eliminated]

    def get_player(self, username: str) -> Player | None:
        for player in self.players:
            if player.username == username:
                return player
        return None

    def log(self, kind: LogType, **fields) -> LogEntry:
        entry = LogEntry(type=kind, turn=self.turn_number, **fields)
        self.game_log.append(entry)
        return entry

    def entries(self, kind: LogType) -> list[LogEntry]:
        return [entry for entry in self.game_log if entry.type == kind]


class Room(BaseModel):
    id: str
    capacity: int
    password: str | None = Field(default=None, exclude=True)
    players: list[Player] = Field(default_factory=list)
    started: bool = False
    session: GameSession | None = None

    @computed_field
    @property
    def has_password(self) -> bool:
        return bool(self.password)

    @property
    def is_full(self) -> bool:
        return len(self.players) >= self.capacity

    @property
    def is_empty(self) -> bool:
        return not self.players

    @property
    def host(self) -> Player | None:
        return self.players[0] if self.players else None

    def get_player(self, username: str) -> Player | None:
        for player in self.players:
            if player.username == username:
                return player
        return None

    def get_player_by_connection(self, connection: str) -> Player | None:
        for player in self.players:
            if player.connection == connection:
                return player
        return None

    def add_player(self, player: Player) -> None:
        if self.is_full:
            raise ValueError(f"Room {self.id} is full")
        self.players.append(player)

    def remove_player(self, player: Player) -> None:
        self.players = [p for p in self.players if p is not player]


class DisconnectionRecord(BaseModel):
    connection: str
    room_id: str
    username: str
    expires_at: float


class SessionBinding(BaseModel):
    connection: str
    room_id: str
