"""Typed failures raised by the session engine.

Every operation validates before it mutates, so raising one of these
leaves rooms and sessions exactly as they were. The transport turns them
into an error message for the requesting connection only.
"""


class GameError(ValueError):
    code = "game_error"
    message = "Game error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)

    def to_dict(self) -> dict:
        return {"type": "error", "code": self.code, "message": str(self)}


class ValidationError(GameError):
    code = "validation_error"


class RuleViolation(GameError):
    code = "rule_violation"


class LifecycleError(GameError):
    code = "lifecycle_error"


# validation


class InvalidCapacity(ValidationError):
    code = "invalid_capacity"
    message = "Room capacity must be between 2 and 5"


class InvalidRoll(ValidationError):
    code = "invalid_roll"
    message = "Invalid dice value"


class RoomNotFound(ValidationError):
    code = "room_not_found"
    message = "Room not found"


class PlayerNotFound(ValidationError):
    code = "player_not_found"
    message = "Player not found"


class TargetNotFound(ValidationError):
    code = "target_not_found"
    message = "Target player not found"


class InvalidTargetCell(ValidationError):
    code = "invalid_target_cell"
    message = "Invalid target cell"


class InvalidShooterCell(ValidationError):
    code = "invalid_shooter_cell"
    message = "Invalid shooter cell"


class SessionNotFound(ValidationError):
    code = "session_not_found"
    message = "No session to resume for this player"


# rule violations


class MustRollFirst(RuleViolation):
    code = "must_roll_first"
    message = "Must roll before shooting"


class FirstMoveCannotShoot(RuleViolation):
    code = "first_move_cannot_shoot"
    message = "Cannot shoot on first move"


class TargetShielded(RuleViolation):
    code = "target_shielded"
    message = "Target cell is shielded"


class NoBullets(RuleViolation):
    code = "no_bullets"
    message = "No bullets available"


class TargetEliminated(RuleViolation):
    code = "target_eliminated"
    message = "Cannot shoot an eliminated player"


class ShooterEliminated(RuleViolation):
    code = "shooter_eliminated"
    message = "Eliminated players cannot shoot"


class SelfTarget(RuleViolation):
    """Server-side addition to the shot rules: a player may not fire at their own cells."""

    code = "self_target"
    message = "Cannot shoot your own cells"


class NoPowerUpAvailable(RuleViolation):
    code = "no_power_up_available"
    message = "No power-up available"


class NotYourTurn(RuleViolation):
    code = "not_your_turn"
    message = "It is not your turn"


class NotHost(RuleViolation):
    code = "not_host"
    message = "Only the host can do that"


class AlreadyRolled(RuleViolation):
    code = "already_rolled"
    message = "Already rolled this turn"


class GameOver(RuleViolation):
    code = "game_over"
    message = "The game has ended"


class GameNotStarted(RuleViolation):
    code = "game_not_started"
    message = "The game has not started"


class NotEnoughPlayers(RuleViolation):
    code = "not_enough_players"
    message = "At least 2 players are needed to start"


class PlayersNotReady(RuleViolation):
    code = "players_not_ready"
    message = "Not all players are ready"


# lifecycle


class AlreadyStarted(LifecycleError):
    code = "already_started"
    message = "Game has already started"


class RoomFull(LifecycleError):
    code = "room_full"
    message = "Room is full"


class UsernameTaken(LifecycleError):
    code = "username_taken"
    message = "Username already taken in this room"


class InvalidPassword(LifecycleError):
    code = "invalid_password"
    message = "Invalid password"


class ReconnectExpired(LifecycleError):
    code = "reconnect_expired"
    message = "Reconnect window has expired"
