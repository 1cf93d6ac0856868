"""Single-side board: occupancy grid plus the fleet that owns it."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .ship import Coordinate, Ship, ShipId

logger = logging.getLogger(__name__)


@dataclass
class Board:
    """A ``size`` x ``size`` grid and the ships placed on it.

    Every occupied cell maps to the id of exactly one ship in ``ships``;
    ``add_ship`` is the only mutator of occupancy and refuses anything that
    would break that.
    """

    size: int = 10
    owner: str = "unknown"
    ships: dict[ShipId, Ship] = field(default_factory=dict)
    _grid: list[list[ShipId | None]] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if self.size <= 0:
            raise ValueError(f"Board size must be positive, got {self.size}.")
        self._grid = [[None] * self.size for _ in range(self.size)]
        existing = list(self.ships.values())
        self.ships = {}
        for ship in existing:
            self.add_ship(ship)

    def is_valid_coordinate(self, coord: Coordinate) -> bool:
        """Check whether a coordinate lies inside the board boundaries."""
        return coord.in_bounds(self.size)

    def occupant(self, coord: Coordinate) -> ShipId | None:
        """Return the id of the ship covering ``coord``, or None for water."""
        if not self.is_valid_coordinate(coord):
            raise ValueError(f"Coordinate {coord} is outside a {self.size}x{self.size} board.")
        return self._grid[coord.row][coord.col]

    def ship_at(self, coord: Coordinate) -> Ship | None:
        ship_id = self.occupant(coord)
        return None if ship_id is None else self.ships[ship_id]

    def add_ship(self, ship: Ship) -> None:
        """Commit an already validated ship to the grid."""
        if ship.ship_id in self.ships:
            raise ValueError(f"Ship id {ship.ship_id} is already on the board.")
        for coord in ship.occupied_cells:
            if self.occupant(coord) is not None:
                raise ValueError(f"Cell {coord} is already occupied.")
        for coord in ship.occupied_cells:
            self._grid[coord.row][coord.col] = ship.ship_id
        self.ships[ship.ship_id] = ship
        logger.debug(
            "ship_added", extra={"owner": self.owner, "ship_id": ship.ship_id, "ship_name": ship.name}
        )

    def all_coordinates(self) -> list[Coordinate]:
        """Every coordinate on the board in row-major order."""
        return [Coordinate(row, col) for row in range(self.size) for col in range(self.size)]

    def remaining_ships(self) -> list[Ship]:
        return [ship for ship in self.ships.values() if not ship.is_sunk()]

    def all_ships_sunk(self) -> bool:
        """True once the board has a fleet and every ship in it is sunk."""
        return bool(self.ships) and all(ship.is_sunk() for ship in self.ships.values())
