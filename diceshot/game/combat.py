import logging

from ..errors import (
    FirstMoveCannotShoot,
    GameOver,
    InvalidShooterCell,
    InvalidTargetCell,
    MustRollFirst,
    NoBullets,
    SelfTarget,
    ShooterEliminated,
    TargetEliminated,
    TargetNotFound,
    TargetShielded,
)
from ..models import (
    Elimination,
    GameSession,
    LogType,
    MatchHistory,
    Player,
    PlayerStats,
    PowerUpType,
    TurnPhase,
)
from ..models.game import MAX_STAGE
from .powerups import PowerUpRegistry
from .turn_engine import TurnEngine

log = logging.getLogger(__name__)


class CombatResolver:
    def __init__(self, turns: TurnEngine):
        self.turns = turns

    def shoot(
        self,
        session: GameSession,
        target_username: str,
        target_cell: int,
        power_ups: PowerUpRegistry,
    ) -> MatchHistory | None:
        """Fire from the cell picked by the last roll at one of the target's cells.

        Returns the match history when the shot ends the game.
        """
        if session.is_over:
            raise GameOver()

        shooter = session.current_player
        target = session.get_player(target_username)
        if target is None:
            raise TargetNotFound(f"Target player {target_username} not found")
        if target is shooter:
            raise SelfTarget()
        if target.eliminated:
            raise TargetEliminated()
        if shooter.eliminated:
            raise ShooterEliminated()
        if shooter.first_move:
            raise FirstMoveCannotShoot()
        if session.last_roll is None or session.phase != TurnPhase.AWAITING_ACTION:
            raise MustRollFirst()

        shooter_cell = shooter.cell(session.last_roll - 1)
        if shooter_cell is None or not shooter_cell.is_active or shooter_cell.stage != MAX_STAGE:
            raise InvalidShooterCell("Cell must be active and at stage 6 to shoot")
        if shooter_cell.bullets <= 0:
            raise NoBullets()

        cell = target.cell(target_cell)
        if cell is None or not cell.is_active:
            raise InvalidTargetCell("Cannot shoot an inactive or missing cell")
        if cell.shielded or power_ups.has_effect(target.username, PowerUpType.SHIELD, target_cell):
            raise TargetShielded()

        shooter_cell.bullets -= 1
        cell.reset()
        session.log(LogType.SHOOT, shooter=shooter.username, target=target.username, cell=target_cell + 1)
        log.debug(f"{shooter.username} shot {target.username} cell {target_cell + 1}")

        if target.all_cells_inactive:
            target.eliminated = True
            session.log(LogType.ELIMINATE, player=target.username, shooter=shooter.username)
            log.info(f"{target.username} eliminated by {shooter.username}")
            history = self.check_winner(session)
            if history is not None:
                return history

        if shooter_cell.bullets > 0 and power_ups.consume_effect(shooter.username, PowerUpType.DOUBLE_SHOT):
            return None

        self.turns.next_turn(session, power_ups)
        return None

    def forfeit(self, session: GameSession, player: Player, power_ups: PowerUpRegistry) -> MatchHistory | None:
        """Take a player who left for good out of a running session."""
        if session.is_over or player.eliminated:
            return None

        was_current = session.current_player is player
        for cell in player.cells:
            cell.reset()
        player.eliminated = True
        session.log(LogType.ELIMINATE, player=player.username, message="left the game")

        history = self.check_winner(session)
        if history is None and was_current:
            self.turns.next_turn(session, power_ups)
        return history

    def check_winner(self, session: GameSession) -> MatchHistory | None:
        remaining = session.active_players
        if len(remaining) != 1:
            return None

        winner = remaining[0]
        # the index never rests on an eliminated player, even after the end
        session.current_player_index = session.players.index(winner)
        session.phase = TurnPhase.ENDED
        session.winner = winner.username
        session.turn_deadline = None
        session.log(LogType.GAME_END, player=winner.username)
        session.history = self.build_history(session, winner)
        log.info(f"Game over, {winner.username} wins")
        return session.history

    def build_history(self, session: GameSession, winner: Player) -> MatchHistory:
        shots = session.entries(LogType.SHOOT)
        kills = session.entries(LogType.ELIMINATE)
        return MatchHistory(
            winner=winner.username,
            eliminations=[Elimination(eliminator=e.shooter, eliminated=e.player) for e in kills],
            player_stats={
                player.username: PlayerStats(
                    shots_fired=sum(1 for e in shots if e.shooter == player.username),
                    eliminations=sum(1 for e in kills if e.shooter == player.username),
                    times_targeted=sum(1 for e in shots if e.target == player.username),
                )
                for player in session.players
            },
        )
