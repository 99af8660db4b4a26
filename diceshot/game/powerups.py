import random
import logging

from ..errors import NoPowerUpAvailable, PlayerNotFound
from ..models import ActiveEffect, PowerUpState, PowerUpType

log = logging.getLogger(__name__)

POWER_UP_COOLDOWN = 2
EFFECT_DURATION = 2


class PowerUpRegistry:
    """Power-up inventory, cooldowns and timed effects for one room.

    Effects live on the state of the player they affect, so a shield on
    Bob's cell sits in Bob's ``active_effects`` whoever cast it. Their
    ``turns_left`` counts down when that player's turn ends.
    """

    def __init__(self, rng: random.Random | None = None):
        self.rng = rng or random.Random()
        self._states: dict[str, PowerUpState] = {}

    def __contains__(self, username: str) -> bool:
        return username in self._states

    def add_player(self, username: str) -> PowerUpState:
        return self._states.setdefault(username, PowerUpState())

    def remove_player(self, username: str) -> None:
        self._states.pop(username, None)

    def state(self, username: str) -> PowerUpState:
        try:
            return self._states[username]
        except KeyError:
            raise PlayerNotFound(f"No power-up state for {username}") from None

    def grant_power_up(self, username: str) -> PowerUpType | None:
        state = self.state(username)
        if state.cooldown_turns > 0 or state.current_power_up is not None:
            return None

        power_up = self.rng.choice(list(PowerUpType))
        state.current_power_up = power_up
        log.debug(f"Granted {power_up.value} to {username}")
        return power_up

    def use_power_up(
        self, caster: str, target_player: str, target_cell: int | None = None
    ) -> ActiveEffect:
        state = self.state(caster)
        if state.current_power_up is None:
            raise NoPowerUpAvailable()

        power_up = state.current_power_up
        if power_up == PowerUpType.DOUBLE_SHOT:
            target_player, target_cell = caster, None
        elif power_up == PowerUpType.NO_ROLL:
            target_cell = None

        effect = ActiveEffect(
            type=power_up,
            caster=caster,
            target_player=target_player,
            target_cell=target_cell,
            turns_left=EFFECT_DURATION,
        )
        self.state(target_player).active_effects.append(effect)
        state.current_power_up = None
        state.cooldown_turns = POWER_UP_COOLDOWN
        return effect

    def update_cooldowns(self, ending_player: str | None = None) -> None:
        for username, state in self._states.items():
            if state.cooldown_turns > 0:
                state.cooldown_turns -= 1
            if username != ending_player:
                continue
            for effect in state.active_effects:
                effect.turns_left -= 1
            state.active_effects = [e for e in state.active_effects if e.turns_left > 0]

    def effects_of_type(self, power_up: PowerUpType) -> list[ActiveEffect]:
        return [
            effect
            for state in self._states.values()
            for effect in state.active_effects
            if effect.type == power_up
        ]

    def has_effect(
        self, username: str, power_up: PowerUpType, target_cell: int | None = None
    ) -> bool:
        if username not in self._states:
            return False
        return any(
            effect.type == power_up
            and (target_cell is None or effect.target_cell == target_cell)
            for effect in self._states[username].active_effects
        )

    def consume_effect(self, username: str, power_up: PowerUpType) -> ActiveEffect | None:
        state = self._states.get(username)
        if state is None:
            return None
        for effect in state.active_effects:
            if effect.type == power_up:
                state.active_effects.remove(effect)
                return effect
        return None

    def snapshot(self) -> dict[str, dict]:
        return {username: state.model_dump(mode="json") for username, state in self._states.items()}
