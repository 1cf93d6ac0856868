"""High-level gameplay tests."""

import random

import pytest

from battleship_duel.config import GameConfig
from battleship_duel.engine import game as game_module
from battleship_duel.engine.game import Game, GamePhase, PhaseKind, Side
from battleship_duel.engine.placement import FleetPlacementError
from battleship_duel.engine.ship import Coordinate, Orientation, ShipSpec
from battleship_duel.engine.shots import ShotOutcome


def _place_column_fleet(game: Game) -> None:
    """Stack the human fleet vertically in columns 0.. for predictable tests."""
    for column, spec in enumerate(list(game.remaining_ships())):
        assert game.place_ship(spec.ship_id, Coordinate(0, column), Orientation.VERTICAL)


def test_new_game_waits_for_human_placement() -> None:
    game = Game(rng_seed=1)
    assert game.current_phase() == GamePhase.placing()
    assert game.winner() is None
    assert len(game.boards[Side.OPPONENT].ships) == 5
    assert [spec.length for spec in game.remaining_ships()] == [5, 4, 3, 3, 2]


def test_shots_rejected_before_playing() -> None:
    game = Game(rng_seed=1)
    assert game.fire_shot(Side.OPPONENT, Coordinate(0, 0)) is ShotOutcome.REJECTED
    assert game.request_opponent_move() is None
    assert len(game.histories[Side.OPPONENT]) == 0


def test_placement_rejections_leave_state_untouched() -> None:
    game = Game(rng_seed=2)
    assert not game.place_ship(1, Coordinate(0, 7), Orientation.HORIZONTAL)
    assert not game.place_ship(99, Coordinate(0, 0), Orientation.HORIZONTAL)
    assert game.place_ship(0, Coordinate(0, 0), Orientation.HORIZONTAL)
    assert not game.place_ship(0, Coordinate(5, 0), Orientation.HORIZONTAL)
    assert not game.place_ship(1, Coordinate(0, 2), Orientation.VERTICAL)
    assert [spec.ship_id for spec in game.remaining_ships()] == [1, 2, 3, 4]
    assert game.current_phase().kind is PhaseKind.PLACING


def test_completing_the_fleet_starts_play_with_player_first() -> None:
    game = Game(rng_seed=3)
    _place_column_fleet(game)
    assert game.current_phase() == GamePhase.playing()
    assert game.current_turn() is Side.PLAYER
    assert not game.place_ship(0, Coordinate(9, 0), Orientation.HORIZONTAL)


def test_turns_strictly_alternate() -> None:
    game = Game(rng_seed=4)
    _place_column_fleet(game)

    assert game.request_opponent_move() is None
    assert game.fire_shot(Side.PLAYER, Coordinate(0, 0)) is ShotOutcome.REJECTED

    outcome = game.fire_shot(Side.OPPONENT, Coordinate(9, 9))
    assert outcome.consumed_turn
    assert game.current_turn() is Side.OPPONENT
    assert game.fire_shot(Side.OPPONENT, Coordinate(9, 8)) is ShotOutcome.REJECTED

    move = game.request_opponent_move()
    assert move is not None
    assert move[0] in game.histories[Side.PLAYER]
    assert game.current_turn() is Side.PLAYER


def test_repeat_shot_does_not_pass_the_turn() -> None:
    game = Game(rng_seed=5)
    _place_column_fleet(game)
    game.fire_shot(Side.OPPONENT, Coordinate(4, 4))
    game.request_opponent_move()
    assert game.fire_shot(Side.OPPONENT, Coordinate(4, 4)) is ShotOutcome.ALREADY_FIRED
    assert game.current_turn() is Side.PLAYER


def test_out_of_grid_shot_is_rejected() -> None:
    game = Game(rng_seed=5)
    _place_column_fleet(game)
    assert game.fire_shot(Side.OPPONENT, Coordinate(10, 10)) is ShotOutcome.REJECTED
    assert game.current_turn() is Side.PLAYER


def test_player_wins_by_sinking_every_ship() -> None:
    game = Game(rng_seed=6)
    _place_column_fleet(game)
    targets = [
        coord for ship in game.boards[Side.OPPONENT].ships.values() for coord in ship.occupied_cells
    ]
    outcome = None
    for coord in targets:
        outcome = game.fire_shot(Side.OPPONENT, coord)
        if outcome is ShotOutcome.FLEET_DESTROYED:
            break
        assert game.request_opponent_move() is not None

    assert outcome is ShotOutcome.FLEET_DESTROYED
    assert game.current_phase() == GamePhase.game_over(Side.PLAYER)
    assert game.winner() is Side.PLAYER
    assert game.current_turn() is None
    assert game.fire_shot(Side.OPPONENT, Coordinate(9, 9)) is ShotOutcome.REJECTED
    assert game.request_opponent_move() is None


def test_full_game_reaches_game_over_without_repeat_shots() -> None:
    game = Game(rng_seed=11)
    assert game.auto_place_fleet()
    rng = random.Random(11)
    player_targets = game.boards[Side.OPPONENT].all_coordinates()
    rng.shuffle(player_targets)
    opponent_moves = []

    for coord in player_targets:
        if game.fire_shot(Side.OPPONENT, coord) is ShotOutcome.FLEET_DESTROYED:
            break
        move = game.request_opponent_move()
        assert move is not None
        opponent_moves.append(move[0])
        if move[1] is ShotOutcome.FLEET_DESTROYED:
            break

    assert game.current_phase().kind is PhaseKind.GAME_OVER
    assert game.winner() in {Side.PLAYER, Side.OPPONENT}
    assert len(opponent_moves) == len(set(opponent_moves))


def test_opponent_follows_up_a_hit_on_the_human_fleet() -> None:
    game = Game(rng_seed=8)
    _place_column_fleet(game)
    carrier_cells = set(game.boards[Side.PLAYER].ships[0].occupied_cells)
    miss_targets = iter(game.boards[Side.OPPONENT].all_coordinates())

    def player_turn() -> None:
        for coord in miss_targets:
            if game.boards[Side.OPPONENT].occupant(coord) is None:
                game.fire_shot(Side.OPPONENT, coord)
                return

    # Hand the opponent a lead on the carrier, then let it play.
    game.opponent.observe(Coordinate(2, 0), ShotOutcome.HIT)
    game.histories[Side.PLAYER].record(Coordinate(2, 0), ShotOutcome.HIT)
    game.boards[Side.PLAYER].ships[0].register_hit()

    outcomes = []
    while game.boards[Side.PLAYER].ships[0].hit_count < 5:
        player_turn()
        coord, outcome = game.request_opponent_move()
        outcomes.append((coord, outcome))
        assert len(outcomes) <= 8

    assert outcomes[-1][1] is ShotOutcome.HIT_AND_SUNK
    assert carrier_cells <= set(game.histories[Side.PLAYER])


def test_reset_discards_all_state() -> None:
    game = Game(rng_seed=9)
    _place_column_fleet(game)
    game.fire_shot(Side.OPPONENT, Coordinate(0, 0))
    game.request_opponent_move()

    game.reset_game(GameConfig(grid_size=6, ship_lengths=(3, 2)))
    assert game.current_phase() == GamePhase.placing()
    assert len(game.histories[Side.OPPONENT]) == 0
    assert len(game.histories[Side.PLAYER]) == 0
    assert game.boards[Side.PLAYER].ships == {}
    assert game.boards[Side.OPPONENT].size == 6
    assert sorted(ship.length for ship in game.boards[Side.OPPONENT].ships.values()) == [2, 3]
    assert game.opponent.state.mode.value == "hunt"


def test_auto_place_keeps_manually_placed_ships() -> None:
    game = Game(rng_seed=10)
    assert game.place_ship(0, Coordinate(9, 0), Orientation.HORIZONTAL)
    assert game.auto_place_fleet()
    assert game.boards[Side.PLAYER].ships[0].start == Coordinate(9, 0)
    assert len(game.boards[Side.PLAYER].ships) == 5
    assert game.current_phase() == GamePhase.playing()


def test_setup_aborts_when_opponent_fleet_cannot_be_placed(monkeypatch: pytest.MonkeyPatch) -> None:
    game = Game(rng_seed=1)
    calls = []

    def failing_place_fleet(*args, **kwargs):
        calls.append(kwargs["owner"])
        raise FleetPlacementError(ShipSpec(0, "Carrier", 5), 100, kwargs["owner"])

    monkeypatch.setattr(game_module, "place_fleet", failing_place_fleet)
    with pytest.raises(FleetPlacementError):
        game.reset_game()
    assert calls == ["opponent"] * game_module.FLEET_PLACEMENT_RETRIES
    assert game.current_phase() == GamePhase.setup()
    assert game.place_ship(0, Coordinate(0, 0), Orientation.HORIZONTAL) is False


def test_game_phase_requires_winner_only_for_game_over() -> None:
    with pytest.raises(ValueError):
        GamePhase(PhaseKind.GAME_OVER)
    with pytest.raises(ValueError):
        GamePhase(PhaseKind.PLAYING, Side.PLAYER)


def test_failed_auto_placement_keeps_hand_placed_ships() -> None:
    game = Game(GameConfig(grid_size=4, ship_lengths=(4, 1, 1, 1, 1)), rng_seed=2)
    diagonal = [Coordinate(index, index) for index in range(4)]
    for ship_id, origin in enumerate(diagonal, start=1):
        assert game.place_ship(ship_id, origin, Orientation.HORIZONTAL)

    assert not game.auto_place_fleet()
    board = game.boards[Side.PLAYER]
    occupied = [coord for coord in board.all_coordinates() if board.occupant(coord) is not None]
    assert occupied == diagonal
    assert sorted(board.ships) == [1, 2, 3, 4]
    assert [spec.ship_id for spec in game.remaining_ships()] == [0]
    assert game.current_phase() == GamePhase.placing()
