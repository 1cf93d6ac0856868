"""Placement validation and random fleet placement."""

from __future__ import annotations

import logging
import random
from typing import Iterable, Sequence

from battleship_duel.telemetry import get_meter, get_tracer

from .board import Board
from .ship import Coordinate, Orientation, Ship, ShipSpec, ship_cells

logger = logging.getLogger(__name__)
tracer = get_tracer("battleship_duel.engine.placement")
meter = get_meter("battleship_duel.engine.placement")

PLACEMENT_COUNTER = meter.create_counter(
    "battleship_duel_ship_placements",
    unit="1",
    description="Number of attempted ship placements",
)

MAX_PLACEMENT_ATTEMPTS = 100
STANDARD_SHIP_NAMES = ("Carrier", "Battleship", "Cruiser", "Submarine", "Destroyer")


class FleetPlacementError(RuntimeError):
    """Raised when a ship could not be placed within the attempt cap."""

    def __init__(self, spec: ShipSpec, attempts: int, owner: str) -> None:
        super().__init__(
            f"Could not place {spec.name} (length {spec.length}) for {owner} "
            f"after {attempts} attempts."
        )
        self.spec = spec
        self.attempts = attempts
        self.owner = owner


def build_roster(ship_lengths: Sequence[int]) -> list[ShipSpec]:
    """Give each configured length a stable id and a name."""
    roster = []
    for index, length in enumerate(ship_lengths):
        name = STANDARD_SHIP_NAMES[index] if index < len(STANDARD_SHIP_NAMES) else f"Ship {index + 1}"
        roster.append(ShipSpec(ship_id=index, name=name, length=length))
    return roster


def validate_placement(
    board: Board, ship_length: int, origin: Coordinate, orientation: Orientation
) -> bool:
    """Return True if the run from ``origin`` stays on the board and hits no ship.

    Pure check; a non-positive ``ship_length`` is a caller bug and raises.
    """
    for coord in ship_cells(origin, orientation, ship_length):
        if not board.is_valid_coordinate(coord):
            return False
        if board.occupant(coord) is not None:
            return False
    return True


def place_ship(board: Board, spec: ShipSpec, origin: Coordinate, orientation: Orientation) -> bool:
    """Validate and commit one ship; illegal placements leave the board untouched."""
    with tracer.start_as_current_span("placement.place_ship") as span:
        span.set_attribute("ship.name", spec.name)
        span.set_attribute("ship.length", spec.length)
        span.set_attribute("ship.start.row", origin.row)
        span.set_attribute("ship.start.col", origin.col)
        span.set_attribute("board.owner", board.owner)
        context = {
            "owner": board.owner,
            "ship_id": spec.ship_id,
            "ship_name": spec.name,
            "orientation": orientation.name,
            "row": origin.row,
            "col": origin.col,
        }
        if spec.ship_id in board.ships or not validate_placement(
            board, spec.length, origin, orientation
        ):
            PLACEMENT_COUNTER.add(1, attributes={"result": "rejected", "owner": board.owner})
            logger.debug("ship_placement_rejected", extra=context)
            return False
        board.add_ship(Ship.from_spec(spec, origin, orientation))
        PLACEMENT_COUNTER.add(1, attributes={"result": "success", "owner": board.owner})
        logger.info("ship_placed", extra=context)
        return True


def place_randomly(
    board: Board,
    specs: Iterable[ShipSpec],
    rng: random.Random,
    max_attempts: int = MAX_PLACEMENT_ATTEMPTS,
) -> None:
    """Randomly place each ship in ``specs``, raising once any exhausts its cap."""
    orientations = list(Orientation)
    for spec in specs:
        for attempt in range(1, max_attempts + 1):
            orientation = rng.choice(orientations)
            origin = Coordinate(rng.randrange(board.size), rng.randrange(board.size))
            if place_ship(board, spec, origin, orientation):
                logger.debug(
                    "random_ship_placed",
                    extra={"ship_name": spec.name, "attempts": attempt, "owner": board.owner},
                )
                break
        else:
            logger.error(
                "fleet_placement_failed",
                extra={
                    "ship_id": spec.ship_id,
                    "ship_name": spec.name,
                    "length": spec.length,
                    "attempts": max_attempts,
                    "owner": board.owner,
                },
            )
            raise FleetPlacementError(spec, max_attempts, board.owner)


def place_fleet(
    ship_lengths: Sequence[int],
    rng: random.Random,
    size: int = 10,
    owner: str = "unknown",
    max_attempts: int = MAX_PLACEMENT_ATTEMPTS,
) -> Board:
    """Build a fresh board holding one ship per configured length.

    Never returns a partial fleet: exhausting the per-ship cap raises
    ``FleetPlacementError`` and the caller decides whether to start over.
    """
    with tracer.start_as_current_span("placement.place_fleet") as span:
        span.set_attribute("board.owner", owner)
        span.set_attribute("fleet.size", len(ship_lengths))
        board = Board(size=size, owner=owner)
        place_randomly(board, build_roster(ship_lengths), rng, max_attempts)
        return board
