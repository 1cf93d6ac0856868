"""Shot history bookkeeping and shot resolution against a board."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator

from battleship_duel.telemetry import get_meter, get_tracer

from .board import Board
from .ship import Coordinate

logger = logging.getLogger(__name__)
tracer = get_tracer("battleship_duel.engine.shots")
meter = get_meter("battleship_duel.engine.shots")

SHOT_COUNTER = meter.create_counter(
    "battleship_duel_shots",
    unit="1",
    description="Shots resolved against a board, by outcome",
)


class ShotOutcome(Enum):
    """Result of firing at a coordinate."""

    REJECTED = "rejected"
    ALREADY_FIRED = "already_fired"
    MISS = "miss"
    HIT = "hit"
    HIT_AND_SUNK = "hit_and_sunk"
    FLEET_DESTROYED = "fleet_destroyed"

    @property
    def is_hit(self) -> bool:
        return self in (ShotOutcome.HIT, ShotOutcome.HIT_AND_SUNK, ShotOutcome.FLEET_DESTROYED)

    @property
    def sank_ship(self) -> bool:
        return self in (ShotOutcome.HIT_AND_SUNK, ShotOutcome.FLEET_DESTROYED)

    @property
    def consumed_turn(self) -> bool:
        """Whether the shot changed any state (i.e. was actually fired)."""
        return self not in (ShotOutcome.REJECTED, ShotOutcome.ALREADY_FIRED)


@dataclass(frozen=True)
class ShotRecord:
    coordinate: Coordinate
    outcome: ShotOutcome


@dataclass
class ShotHistory:
    """Coordinates already fired at one board, with the outcome of each.

    Backed by a dict, so membership is O(1) and iteration follows firing order.
    Recorded outcomes are limited to MISS, HIT and HIT_AND_SUNK; a fleet
    destroying shot is stored as the sinking hit it also is.
    """

    _outcomes: dict[Coordinate, ShotOutcome] = field(default_factory=dict)

    def __contains__(self, coord: object) -> bool:
        return coord in self._outcomes

    def __len__(self) -> int:
        return len(self._outcomes)

    def __iter__(self) -> Iterator[Coordinate]:
        return iter(self._outcomes)

    def record(self, coord: Coordinate, outcome: ShotOutcome) -> None:
        if coord in self._outcomes:
            raise ValueError(f"Coordinate {coord} has already been recorded.")
        if outcome is ShotOutcome.FLEET_DESTROYED:
            outcome = ShotOutcome.HIT_AND_SUNK
        if not outcome.consumed_turn:
            raise ValueError(f"Outcome {outcome.name} cannot be recorded.")
        self._outcomes[coord] = outcome

    def outcome_at(self, coord: Coordinate) -> ShotOutcome | None:
        return self._outcomes.get(coord)

    def records(self) -> list[ShotRecord]:
        """Replay every shot in the order it was fired."""
        return [ShotRecord(coord, outcome) for coord, outcome in self._outcomes.items()]

    def hits(self) -> list[Coordinate]:
        return [coord for coord, outcome in self._outcomes.items() if outcome.is_hit]


def resolve_shot(board: Board, history: ShotHistory, coord: Coordinate) -> ShotOutcome:
    """Apply a shot at ``coord`` to ``board``.

    A repeat shot returns ALREADY_FIRED and touches nothing, so a hit is never
    counted twice. Otherwise the coordinate is recorded and at most one ship's
    hit count moves. FLEET_DESTROYED is the sinking shot that leaves the board
    with no surviving ship.
    """
    with tracer.start_as_current_span("shots.resolve") as span:
        span.set_attribute("shot.row", coord.row)
        span.set_attribute("shot.col", coord.col)
        span.set_attribute("board.owner", board.owner)
        if not board.is_valid_coordinate(coord):
            logger.warning(
                "shot_out_of_bounds",
                extra={"row": coord.row, "col": coord.col, "owner": board.owner},
            )
            outcome = ShotOutcome.REJECTED
        elif coord in history:
            logger.info(
                "shot_duplicate", extra={"row": coord.row, "col": coord.col, "owner": board.owner}
            )
            outcome = ShotOutcome.ALREADY_FIRED
        else:
            outcome = _apply_new_shot(board, history, coord)

        span.set_attribute("shot.outcome", outcome.value)
        SHOT_COUNTER.add(1, attributes={"outcome": outcome.value, "owner": board.owner})
        return outcome


def _apply_new_shot(board: Board, history: ShotHistory, coord: Coordinate) -> ShotOutcome:
    ship = board.ship_at(coord)
    if ship is not None and not ship.register_hit():
        # Ship already sunk without this cell in the history; nothing was hit.
        logger.warning(
            "shot_on_sunk_ship_refused",
            extra={"row": coord.row, "col": coord.col, "ship_name": ship.name, "owner": board.owner},
        )
        return ShotOutcome.ALREADY_FIRED
    if ship is None:
        outcome = ShotOutcome.MISS
    elif not ship.is_sunk():
        outcome = ShotOutcome.HIT
    elif board.all_ships_sunk():
        outcome = ShotOutcome.FLEET_DESTROYED
    else:
        outcome = ShotOutcome.HIT_AND_SUNK

    history.record(coord, outcome)
    logger.info(
        "shot_resolved",
        extra={
            "row": coord.row,
            "col": coord.col,
            "outcome": outcome.value,
            "ship_name": ship.name if ship else None,
            "owner": board.owner,
        },
    )
    return outcome
