"""Placement validator and fleet placer tests."""

import logging
import random

import pytest

from battleship_duel.engine.board import Board
from battleship_duel.engine.placement import (
    FleetPlacementError,
    build_roster,
    place_fleet,
    place_ship,
    validate_placement,
)
from battleship_duel.engine.ship import Coordinate, Orientation, ShipSpec


def test_horizontal_ship_running_off_the_right_edge_is_rejected() -> None:
    board = Board()
    assert not validate_placement(board, 4, Coordinate(0, 7), Orientation.HORIZONTAL)
    assert validate_placement(board, 4, Coordinate(0, 6), Orientation.HORIZONTAL)


def test_vertical_ship_running_off_the_bottom_is_rejected() -> None:
    board = Board()
    assert not validate_placement(board, 3, Coordinate(8, 0), Orientation.VERTICAL)
    assert not validate_placement(board, 1, Coordinate(-1, 0), Orientation.VERTICAL)


def test_overlap_is_rejected_without_side_effects() -> None:
    board = Board()
    assert place_ship(board, ShipSpec(0, "Cruiser", 3), Coordinate(0, 0), Orientation.HORIZONTAL)
    assert not validate_placement(board, 2, Coordinate(0, 1), Orientation.VERTICAL)
    assert not place_ship(board, ShipSpec(1, "Destroyer", 2), Coordinate(0, 1), Orientation.VERTICAL)
    assert list(board.ships) == [0]
    assert board.occupant(Coordinate(1, 1)) is None


def test_same_ship_cannot_be_placed_twice() -> None:
    board = Board()
    spec = ShipSpec(0, "Destroyer", 2)
    assert place_ship(board, spec, Coordinate(0, 0), Orientation.HORIZONTAL)
    assert not place_ship(board, spec, Coordinate(5, 5), Orientation.HORIZONTAL)


def test_validator_fails_fast_on_non_positive_length() -> None:
    with pytest.raises(ValueError):
        validate_placement(Board(), 0, Coordinate(0, 0), Orientation.HORIZONTAL)


def test_build_roster_names_standard_fleet_and_extras() -> None:
    roster = build_roster([5, 4, 3, 3, 2, 1])
    assert [spec.name for spec in roster] == [
        "Carrier",
        "Battleship",
        "Cruiser",
        "Submarine",
        "Destroyer",
        "Ship 6",
    ]
    assert [spec.ship_id for spec in roster] == list(range(6))


@pytest.mark.parametrize("seed", [0, 1, 7, 123, 2024])
def test_place_fleet_satisfies_board_invariants(seed: int) -> None:
    lengths = [5, 4, 3, 3, 2]
    board = place_fleet(lengths, random.Random(seed), size=10, owner="opponent")

    assert sorted(ship.length for ship in board.ships.values()) == sorted(lengths)
    cells = [coord for ship in board.ships.values() for coord in ship.occupied_cells]
    assert len(cells) == len(set(cells)), "Ships should not overlap"
    for ship in board.ships.values():
        assert len(ship.occupied_cells) == ship.length
        assert all(board.is_valid_coordinate(coord) for coord in ship.occupied_cells)
        assert all(board.occupant(coord) == ship.ship_id for coord in ship.occupied_cells)
        rows = {coord.row for coord in ship.occupied_cells}
        cols = {coord.col for coord in ship.occupied_cells}
        assert len(rows) == 1 or len(cols) == 1
    occupied = [coord for coord in board.all_coordinates() if board.occupant(coord) is not None]
    assert len(occupied) == sum(lengths)


def test_place_fleet_is_reproducible_for_a_seed() -> None:
    first = place_fleet([5, 4, 3, 3, 2], random.Random(99))
    second = place_fleet([5, 4, 3, 3, 2], random.Random(99))
    assert [ship.occupied_cells for ship in first.ships.values()] == [
        ship.occupied_cells for ship in second.ships.values()
    ]


def test_place_fleet_reports_the_ship_it_could_not_place(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.ERROR, logger="battleship_duel.engine.placement")
    with pytest.raises(FleetPlacementError) as excinfo:
        place_fleet([2, 2, 2], random.Random(3), size=2, owner="opponent")

    assert excinfo.value.spec.name == "Cruiser"
    assert excinfo.value.attempts == 100
    failures = [record for record in caplog.records if record.getMessage() == "fleet_placement_failed"]
    assert len(failures) == 1
    assert failures[0].ship_name == "Cruiser"
