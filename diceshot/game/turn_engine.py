import logging
import random
import time
from typing import Callable

from ..config import TURN_DURATION_SEC
from ..errors import AlreadyRolled, GameOver, InvalidRoll
from ..models import Cell, GameSession, LogType, Player, PowerUpType, TurnPhase
from ..models.game import MAX_STAGE
from .powerups import PowerUpRegistry

log = logging.getLogger(__name__)

POWER_UP_ROOM_SIZE = 5
POWER_UP_FACE = 6


def max_dice_value(player_count: int) -> int:
    # six is reserved as the power-up face in a full five-player room
    return POWER_UP_FACE if player_count == POWER_UP_ROOM_SIZE else player_count


class TurnEngine:
    """Whose turn it is, what a roll does, and when the turn moves on."""

    def __init__(
        self,
        rng: random.Random | None = None,
        turn_duration: float = TURN_DURATION_SEC,
        clock: Callable[[], float] = time.time,
    ):
        self.rng = rng or random.Random()
        self.turn_duration = turn_duration
        self.clock = clock

    def start_session(self, players: list[Player]) -> GameSession:
        count = len(players)
        for player in players:
            player.first_move = True
            player.eliminated = False
            player.cells = [Cell() for _ in range(count)]

        session = GameSession(
            players=list(players),
            current_player_index=self.rng.randrange(count),
            max_dice_value=max_dice_value(count),
            turn_deadline=self.clock() + self.turn_duration,
        )
        log.info(f"Session started with {count} players, {session.current_player.username} goes first")
        return session

    def roll(
        self, session: GameSession, value: int, power_ups: PowerUpRegistry
    ) -> PowerUpType | None:
        """Resolve a dice roll for the current player.

        Returns the power-up drawn when the roll triggered one, else None.
        The turn is kept when a power-up was drawn or the rolled cell is
        armed; every other outcome hands the turn on.
        """
        if session.is_over:
            raise GameOver()
        if session.phase != TurnPhase.AWAITING_ROLL:
            raise AlreadyRolled()
        if value < 1 or value > session.max_dice_value:
            raise InvalidRoll(
                f"Invalid roll. Maximum value for {len(session.players)} players is {session.max_dice_value}"
            )

        player = session.current_player
        log.debug(f"{player.username} rolled {value}")

        if player.first_move and value != 1:
            session.log(LogType.FIRST_MOVE, player=player.username, message="Must roll a 1 to start")
            self.next_turn(session, power_ups)
            return None

        if len(session.players) == POWER_UP_ROOM_SIZE and value == POWER_UP_FACE:
            power_up = power_ups.grant_power_up(player.username)
            if power_up is None:
                session.log(LogType.SKIP_TURN, player=player.username, message="No power-up available")
                self.next_turn(session, power_ups)
                return None
            session.log(LogType.POWER_UP, player=player.username, power_up=power_up)
            session.phase = TurnPhase.AWAITING_POWER_UP
            return power_up

        if power_ups.consume_effect(player.username, PowerUpType.NO_ROLL):
            session.log(
                LogType.SKIP_TURN, player=player.username, message="Turn skipped due to No Roll effect"
            )
            self.next_turn(session, power_ups)
            return None

        cell = player.cells[value - 1]
        if cell.frozen:
            session.log(LogType.AUTO_FREEZE, player=player.username, cell=value, message="Cell is frozen")
            self.next_turn(session, power_ups)
            return None

        if not cell.is_active:
            cell.activate()
            session.log(LogType.ACTIVATE, player=player.username, cell=value)
        elif cell.stage < MAX_STAGE:
            if cell.upgrade():
                session.log(LogType.MAX_LEVEL, player=player.username, cell=value)
            else:
                session.log(LogType.UPGRADE, player=player.username, cell=value)
        elif cell.reload():
            session.log(LogType.RELOAD, player=player.username, cell=value)

        player.first_move = False
        session.last_roll = value

        if cell.is_armed:
            session.phase = TurnPhase.AWAITING_ACTION
        else:
            self.next_turn(session, power_ups)
        return None

    def end_turn(self, session: GameSession, power_ups: PowerUpRegistry, reason: str = "pass") -> None:
        if session.is_over:
            raise GameOver()
        session.log(LogType.SKIP_TURN, player=session.current_player.username, message=reason)
        self.next_turn(session, power_ups)

    def next_turn(self, session: GameSession, power_ups: PowerUpRegistry) -> None:
        if session.is_over:
            return

        ending = session.current_player
        for player in session.players:
            for cell in player.cells:
                cell.clear_flags()
        power_ups.update_cooldowns(ending.username)
        self.project_effects(session, power_ups)

        count = len(session.players)
        index = session.current_player_index
        for _ in range(count):
            index = (index + 1) % count
            if not session.players[index].eliminated:
                break
        else:
            log.warning("No player left to take a turn, ending session")
            session.phase = TurnPhase.ENDED
            return

        session.current_player_index = index
        session.turn_number += 1
        session.turn_deadline = self.clock() + self.turn_duration
        session.phase = TurnPhase.AWAITING_ROLL

    def project_effects(self, session: GameSession, power_ups: PowerUpRegistry) -> None:
        """Mirror live freeze and shield effects onto the cells they target."""
        for kind in (PowerUpType.FREEZE, PowerUpType.SHIELD):
            for effect in power_ups.effects_of_type(kind):
                player = session.get_player(effect.target_player)
                cell = player.cell(effect.target_cell) if player and effect.target_cell is not None else None
                if cell is None:
                    continue
                if kind == PowerUpType.FREEZE:
                    cell.frozen = True
                else:
                    cell.shielded = True
