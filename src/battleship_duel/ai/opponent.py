"""Hunt-and-target computer opponent.

The opponent sees only the outcomes of its own shots. In hunt mode it fires
at random untried cells; after a hit it switches to target mode and works
outward from the confirmed hits on the ship it is chasing:

* one confirmed hit: try the four neighbours in the order up, down, left, right;
* two or more: the hits fix the ship's axis, so try the cell just beyond each
  end of the run, lower end first.

Target mode falls back to hunting once the ship is reported sunk or when no
candidate is left around the run. State transitions are pure functions over a
frozen ``OpponentState``; ``HuntTargetOpponent`` holds the current state and
the random source.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from enum import Enum
from typing import Container, Sequence

from battleship_duel.engine.ship import Coordinate, Orientation
from battleship_duel.engine.shots import ShotOutcome
from battleship_duel.telemetry import get_meter, get_tracer

logger = logging.getLogger(__name__)
tracer = get_tracer("battleship_duel.ai.opponent")
meter = get_meter("battleship_duel.ai.opponent")

MOVE_COUNTER = meter.create_counter(
    "battleship_duel_opponent_moves",
    unit="1",
    description="Coordinates chosen by the computer opponent, by targeting mode",
)

MAX_HUNT_DRAWS = 100
# up, down, left, right
NEIGHBOUR_OFFSETS: tuple[tuple[int, int], ...] = ((-1, 0), (1, 0), (0, -1), (0, 1))


class TargetingMode(Enum):
    HUNT = "hunt"
    TARGET = "target"


@dataclass(frozen=True)
class OpponentState:
    """Snapshot of the opponent's targeting knowledge."""

    mode: TargetingMode = TargetingMode.HUNT
    confirmed_hits: tuple[Coordinate, ...] = ()


HUNT_STATE = OpponentState()


class ConfirmedHitsError(ValueError):
    """Confirmed hits do not lie on a single row or column."""


def hit_axis(hits: Sequence[Coordinate]) -> Orientation:
    """Return the axis shared by two or more confirmed hits."""
    if len(hits) < 2:
        raise ValueError("An axis needs at least two hits.")
    if len({hit.row for hit in hits}) == 1:
        return Orientation.HORIZONTAL
    if len({hit.col for hit in hits}) == 1:
        return Orientation.VERTICAL
    raise ConfirmedHitsError(f"Hits {list(hits)} are not colinear.")


def target_candidates(
    state: OpponentState, history: Container[Coordinate], size: int
) -> list[Coordinate]:
    """Ordered untried, in-bounds follow-up shots for ``state``.

    Raises ``ConfirmedHitsError`` when the confirmed hits are not colinear.
    """
    hits = state.confirmed_hits
    if not hits:
        return []
    if len(hits) == 1:
        raw = [hits[0].offset(delta_row, delta_col) for delta_row, delta_col in NEIGHBOUR_OFFSETS]
    elif hit_axis(hits) is Orientation.HORIZONTAL:
        row = hits[0].row
        cols = [hit.col for hit in hits]
        raw = [Coordinate(row, min(cols) - 1), Coordinate(row, max(cols) + 1)]
    else:
        col = hits[0].col
        rows = [hit.row for hit in hits]
        raw = [Coordinate(min(rows) - 1, col), Coordinate(max(rows) + 1, col)]
    return [coord for coord in raw if coord.in_bounds(size) and coord not in history]


def advance_state(state: OpponentState, coord: Coordinate, outcome: ShotOutcome) -> OpponentState:
    """Return the state that follows firing at ``coord`` with ``outcome``.

    Always builds a new ``confirmed_hits`` tuple; ``state`` is never modified.
    """
    if outcome.sank_ship:
        return HUNT_STATE
    if outcome is not ShotOutcome.HIT:
        # Misses are remembered by the shot history alone.
        return state
    if state.mode is TargetingMode.HUNT:
        return OpponentState(TargetingMode.TARGET, (coord,))
    return OpponentState(TargetingMode.TARGET, state.confirmed_hits + (coord,))


class HuntTargetOpponent:
    """Stateful wrapper choosing the opponent's next shot."""

    def __init__(
        self,
        board_size: int = 10,
        rng: random.Random | None = None,
        max_hunt_draws: int = MAX_HUNT_DRAWS,
    ) -> None:
        self.board_size = board_size
        self.rng = rng or random.Random()
        self.max_hunt_draws = max_hunt_draws
        self.state: OpponentState = HUNT_STATE
        # Mode the most recent choose_target call actually fired in.
        self.last_move_mode: TargetingMode | None = None

    @property
    def mode(self) -> TargetingMode:
        return self.state.mode

    def reset(self) -> None:
        self.state = HUNT_STATE
        self.last_move_mode = None

    def choose_target(self, history: Container[Coordinate]) -> Coordinate | None:
        """Pick the next coordinate to fire at, or None when the board is exhausted.

        ``history`` must be the live shot history of the board being attacked.
        """
        with tracer.start_as_current_span("opponent.choose_target") as span:
            span.set_attribute("opponent.mode", self.state.mode.value)
            span.set_attribute("opponent.confirmed_hits", len(self.state.confirmed_hits))
            if self.state.mode is TargetingMode.TARGET:
                target = self._follow_lead(history)
                if target is not None:
                    self.last_move_mode = TargetingMode.TARGET
                    MOVE_COUNTER.add(1, attributes={"mode": TargetingMode.TARGET.value})
                    span.set_attribute("opponent.target", f"{target.row},{target.col}")
                    return target
            target = self._hunt(history)
            self.last_move_mode = TargetingMode.HUNT if target is not None else None
            if target is not None:
                MOVE_COUNTER.add(1, attributes={"mode": TargetingMode.HUNT.value})
                span.set_attribute("opponent.target", f"{target.row},{target.col}")
            return target

    def observe(self, coord: Coordinate, outcome: ShotOutcome) -> None:
        """Feed back the outcome of the shot just fired."""
        previous = self.state
        self.state = advance_state(previous, coord, outcome)
        if self.state.mode is not previous.mode:
            logger.debug(
                "opponent_mode_changed",
                extra={
                    "from_mode": previous.mode.value,
                    "to_mode": self.state.mode.value,
                    "row": coord.row,
                    "col": coord.col,
                    "outcome": outcome.value,
                },
            )

    def _follow_lead(self, history: Container[Coordinate]) -> Coordinate | None:
        try:
            candidates = target_candidates(self.state, history, self.board_size)
        except ConfirmedHitsError:
            logger.error(
                "confirmed_hits_not_colinear",
                extra={"confirmed_hits": [(hit.row, hit.col) for hit in self.state.confirmed_hits]},
            )
            self.state = HUNT_STATE
            return None
        if candidates:
            return candidates[0]
        logger.info(
            "targeting_line_exhausted",
            extra={"confirmed_hits": [(hit.row, hit.col) for hit in self.state.confirmed_hits]},
        )
        self.state = HUNT_STATE
        return None

    def _hunt(self, history: Container[Coordinate]) -> Coordinate | None:
        for _ in range(self.max_hunt_draws):
            coord = Coordinate(self.rng.randrange(self.board_size), self.rng.randrange(self.board_size))
            if coord not in history:
                return coord
        logger.warning("hunt_fallback_scan", extra={"draws": self.max_hunt_draws})
        for row in range(self.board_size):
            for col in range(self.board_size):
                coord = Coordinate(row, col)
                if coord not in history:
                    return coord
        return None
