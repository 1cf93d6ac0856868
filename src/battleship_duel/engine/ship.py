"""Ship domain model for the Battleship engine."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum

logger = logging.getLogger(__name__)

ShipId = int


@dataclass(frozen=True, order=True)
class Coordinate:
    """Immutable board coordinate."""

    row: int
    col: int

    def offset(self, delta_row: int, delta_col: int) -> Coordinate:
        """Return the coordinate shifted by the given deltas."""
        return Coordinate(self.row + delta_row, self.col + delta_col)

    def in_bounds(self, size: int) -> bool:
        return 0 <= self.row < size and 0 <= self.col < size


class Orientation(Enum):
    """Allowed ship orientations."""

    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"


def ship_cells(origin: Coordinate, orientation: Orientation, length: int) -> tuple[Coordinate, ...]:
    """Return the run of ``length`` cells starting at ``origin``.

    The run is not bounds-checked; callers decide what an off-board cell means.
    """
    if length <= 0:
        raise ValueError(f"Ship length must be positive, got {length}.")
    if orientation is Orientation.HORIZONTAL:
        return tuple(origin.offset(0, offset) for offset in range(length))
    return tuple(origin.offset(offset, 0) for offset in range(length))


@dataclass(frozen=True)
class ShipSpec:
    """Roster entry describing a ship before it is placed."""

    ship_id: ShipId
    name: str
    length: int


@dataclass
class Ship:
    """Represents a single placed ship and the damage it has taken."""

    ship_id: ShipId
    name: str
    length: int
    start: Coordinate
    orientation: Orientation
    hit_count: int = field(default=0, init=False)
    _cells: tuple[Coordinate, ...] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._cells = ship_cells(self.start, self.orientation, self.length)

    @classmethod
    def from_spec(cls, spec: ShipSpec, start: Coordinate, orientation: Orientation) -> Ship:
        return cls(spec.ship_id, spec.name, spec.length, start, orientation)

    @property
    def occupied_cells(self) -> tuple[Coordinate, ...]:
        """Ordered coordinates covered by this ship, bow first."""
        return self._cells

    def is_sunk(self) -> bool:
        return self.hit_count == self.length

    def register_hit(self) -> bool:
        """Count one new hit; a sunk ship refuses further hits."""
        if self.is_sunk():
            logger.error(
                "hit_on_sunk_ship",
                extra={"ship_id": self.ship_id, "ship_name": self.name, "hit_count": self.hit_count},
            )
            return False
        self.hit_count += 1
        return True
