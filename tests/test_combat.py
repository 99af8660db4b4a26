import pytest

from diceshot.errors import (
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
from diceshot.game import CombatResolver
from diceshot.models import ActiveEffect, LogType, PowerUpType, TurnPhase
from diceshot.models.game import MAX_BULLETS, MAX_STAGE

from .conftest import make_session


def _arm(cell, bullets=MAX_BULLETS):
    cell.activate()
    cell.stage = MAX_STAGE
    cell.bullets = bullets


def _ready_to_shoot(engine, count=2):
    """p0 to move, cell 1 armed and just rolled; every other player has cell 1 active."""
    session, power_ups = make_session(engine, count)
    shooter = session.players[0]
    shooter.first_move = False
    _arm(shooter.cells[0])
    for player in session.players[1:]:
        player.first_move = False
        player.cells[0].activate()
    session.last_roll = 1
    session.phase = TurnPhase.AWAITING_ACTION
    return session, power_ups


@pytest.fixture()
def combat(engine):
    return CombatResolver(engine)


@pytest.mark.parametrize(
    "prepare, target, cell, error",
    [
        (lambda s, p: None, "nobody", 0, TargetNotFound),
        (lambda s, p: None, "p0", 0, SelfTarget),
        (lambda s, p: setattr(s.players[1], "eliminated", True), "p1", 0, TargetEliminated),
        (lambda s, p: setattr(s.players[0], "eliminated", True), "p1", 0, ShooterEliminated),
        (lambda s, p: setattr(s.players[0], "first_move", True), "p1", 0, FirstMoveCannotShoot),
        (lambda s, p: setattr(s, "last_roll", None), "p1", 0, MustRollFirst),
        (lambda s, p: setattr(s, "phase", TurnPhase.AWAITING_ROLL), "p1", 0, MustRollFirst),
        (lambda s, p: setattr(s.players[0].cells[0], "stage", 5), "p1", 0, InvalidShooterCell),
        (lambda s, p: setattr(s.players[0].cells[0], "bullets", 0), "p1", 0, NoBullets),
        (lambda s, p: None, "p1", 1, InvalidTargetCell),
        (lambda s, p: None, "p1", 7, InvalidTargetCell),
        (lambda s, p: setattr(s.players[1].cells[0], "shielded", True), "p1", 0, TargetShielded),
        (
            lambda s, p: p.state("p1").active_effects.append(
                ActiveEffect(type=PowerUpType.SHIELD, caster="p1", target_player="p1", target_cell=0)
            ),
            "p1",
            0,
            TargetShielded,
        ),
    ],
)
def test_rejected_shots_change_nothing(engine, combat, prepare, target, cell, error):
    session, power_ups = _ready_to_shoot(engine, 3)
    prepare(session, power_ups)
    before = session.model_dump()

    with pytest.raises(error):
        combat.shoot(session, target, cell, power_ups)
    assert session.model_dump() == before


def test_shot_resets_the_target_cell_and_passes_the_turn(engine, combat):
    session, power_ups = _ready_to_shoot(engine, 3)
    session.players[1].cells[1].activate()

    assert combat.shoot(session, "p1", 0, power_ups) is None

    assert session.players[0].cells[0].bullets == MAX_BULLETS - 1
    target_cell = session.players[1].cells[0]
    assert (target_cell.is_active, target_cell.stage, target_cell.bullets) == (False, 0, 0)
    assert not session.players[1].eliminated
    entry = session.game_log[-1]
    assert (entry.type, entry.shooter, entry.target, entry.cell) == (LogType.SHOOT, "p0", "p1", 1)
    assert session.current_player_index == 1


def test_elimination_without_a_winner_continues(engine, combat):
    session, power_ups = _ready_to_shoot(engine, 3)

    assert combat.shoot(session, "p1", 0, power_ups) is None

    assert session.players[1].eliminated
    assert [e.type for e in session.game_log] == [LogType.SHOOT, LogType.ELIMINATE]
    assert not session.is_over
    # eliminated p1 is skipped
    assert session.current_player_index == 2

    with pytest.raises(TargetEliminated):
        session.phase = TurnPhase.AWAITING_ACTION
        combat.shoot(session, "p1", 0, power_ups)


def test_last_survivor_wins(engine, combat):
    session, power_ups = _ready_to_shoot(engine, 2)

    history = combat.shoot(session, "p1", 0, power_ups)

    assert session.phase == TurnPhase.ENDED
    assert session.winner == "p0"
    assert session.turn_deadline is None
    assert session.game_log[-1].type == LogType.GAME_END
    assert history is session.history
    assert history.winner == "p0"
    assert [(e.eliminator, e.eliminated) for e in history.eliminations] == [("p0", "p1")]
    assert history.player_stats["p0"].shots_fired == 1
    assert history.player_stats["p0"].eliminations == 1
    assert history.player_stats["p1"].times_targeted == 1

    with pytest.raises(GameOver):
        combat.shoot(session, "p1", 0, power_ups)


def test_double_shot_keeps_the_turn_once(engine, combat):
    session, power_ups = _ready_to_shoot(engine, 3)
    for player in session.players[1:]:
        player.cells[1].activate()
    power_ups.state("p0").active_effects.append(
        ActiveEffect(type=PowerUpType.DOUBLE_SHOT, caster="p0", target_player="p0")
    )

    combat.shoot(session, "p1", 0, power_ups)
    assert session.current_player_index == 0
    assert session.phase == TurnPhase.AWAITING_ACTION

    combat.shoot(session, "p2", 0, power_ups)
    assert session.current_player_index == 1
    assert session.players[0].cells[0].bullets == MAX_BULLETS - 2


def test_double_shot_is_kept_when_out_of_bullets(engine, combat):
    session, power_ups = _ready_to_shoot(engine, 3)
    session.players[0].cells[0].bullets = 1
    session.players[1].cells[1].activate()
    power_ups.state("p0").active_effects.append(
        ActiveEffect(type=PowerUpType.DOUBLE_SHOT, caster="p0", target_player="p0")
    )

    combat.shoot(session, "p1", 0, power_ups)

    assert session.current_player_index == 1
    assert power_ups.has_effect("p0", PowerUpType.DOUBLE_SHOT)


def test_forfeit_of_the_current_player(engine, combat):
    session, power_ups = _ready_to_shoot(engine, 3)

    assert combat.forfeit(session, session.players[0], power_ups) is None

    leaver = session.players[0]
    assert leaver.eliminated
    assert leaver.all_cells_inactive
    assert session.game_log[-1].message == "left the game"
    assert session.current_player_index == 1


def test_forfeit_leaving_one_player_ends_the_game(engine, combat):
    session, power_ups = _ready_to_shoot(engine, 2)

    history = combat.forfeit(session, session.players[1], power_ups)

    assert history.winner == "p0"
    assert history.eliminations[0].eliminator is None
    assert session.is_over


def test_forfeit_that_ends_the_game_moves_the_turn_to_the_winner(engine, combat):
    session, power_ups = _ready_to_shoot(engine, 2)

    history = combat.forfeit(session, session.players[0], power_ups)

    assert history.winner == "p1"
    assert session.current_player.username == "p1"
    assert not session.current_player.eliminated
