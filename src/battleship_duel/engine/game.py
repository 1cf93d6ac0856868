"""Human versus computer Battleship game controller."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from enum import Enum

from battleship_duel.ai.opponent import HuntTargetOpponent
from battleship_duel.config import GameConfig
from battleship_duel.telemetry import get_meter, get_tracer

from .board import Board
from .placement import FleetPlacementError, build_roster, place_fleet, place_randomly, place_ship
from .ship import Coordinate, Orientation, ShipId, ShipSpec
from .shots import ShotHistory, ShotOutcome, resolve_shot

logger = logging.getLogger(__name__)
tracer = get_tracer("battleship_duel.engine.game")
meter = get_meter("battleship_duel.engine.game")

MOVE_COUNTER = meter.create_counter(
    "battleship_duel_moves",
    unit="1",
    description="Number of moves made in a Game",
)

FLEET_PLACEMENT_RETRIES = 5


class Side(Enum):
    """The two parties at the table."""

    PLAYER = "player"
    OPPONENT = "opponent"

    def other(self) -> Side:
        return Side.OPPONENT if self is Side.PLAYER else Side.PLAYER


class PhaseKind(Enum):
    SETUP = "setup"
    PLACING = "placing"
    PLAYING = "playing"
    GAME_OVER = "game_over"


@dataclass(frozen=True)
class GamePhase:
    """Lifecycle phase; only GAME_OVER carries a winner."""

    kind: PhaseKind
    winner: Side | None = None

    def __post_init__(self) -> None:
        if (self.kind is PhaseKind.GAME_OVER) != (self.winner is not None):
            raise ValueError("A winner is required for GAME_OVER and forbidden otherwise.")

    @classmethod
    def setup(cls) -> GamePhase:
        return cls(PhaseKind.SETUP)

    @classmethod
    def placing(cls) -> GamePhase:
        return cls(PhaseKind.PLACING)

    @classmethod
    def playing(cls) -> GamePhase:
        return cls(PhaseKind.PLAYING)

    @classmethod
    def game_over(cls, winner: Side) -> GamePhase:
        return cls(PhaseKind.GAME_OVER, winner)


class Game:
    """Owns both boards, both shot histories and the opponent for one match.

    Illegal requests (wrong phase, wrong turn, bad coordinates) are logged and
    answered with a rejection value; they never change state.
    """

    def __init__(self, config: GameConfig | None = None, rng_seed: int | None = None) -> None:
        self._rng = random.Random(rng_seed)
        self.config = config or GameConfig()
        self.reset_game(self.config)

    def reset_game(self, config: GameConfig | None = None) -> None:
        """Discard everything and rebuild; ends in PLACING unless the opponent fleet cannot be placed."""
        with tracer.start_as_current_span("game.reset") as span:
            if config is not None:
                self.config = config
            size = self.config.grid_size
            span.set_attribute("grid.size", size)
            span.set_attribute("fleet.size", len(self.config.ship_lengths))

            self.phase = GamePhase.setup()
            self.boards: dict[Side, Board] = {
                Side.PLAYER: Board(size=size, owner=Side.PLAYER.value),
                Side.OPPONENT: Board(size=size, owner=Side.OPPONENT.value),
            }
            # Keyed by the side whose board is being fired at.
            self.histories: dict[Side, ShotHistory] = {
                Side.PLAYER: ShotHistory(),
                Side.OPPONENT: ShotHistory(),
            }
            self.roster: list[ShipSpec] = build_roster(self.config.ship_lengths)
            self.opponent = HuntTargetOpponent(board_size=size, rng=self._rng)
            self.turn: Side = Side.PLAYER
            logger.info(
                "game_setup",
                extra={"grid_size": size, "ship_lengths": list(self.config.ship_lengths)},
            )

            self.boards[Side.OPPONENT] = self._place_opponent_fleet()
            self.phase = GamePhase.placing()
            logger.info("game_placing_started", extra={"phase": self.phase.kind.value})

    def current_phase(self) -> GamePhase:
        return self.phase

    def winner(self) -> Side | None:
        return self.phase.winner

    def current_turn(self) -> Side | None:
        """Whose shot is next, or None outside PLAYING."""
        return self.turn if self.phase.kind is PhaseKind.PLAYING else None

    def remaining_ships(self) -> list[ShipSpec]:
        """Human roster entries not yet on the board."""
        placed = self.boards[Side.PLAYER].ships
        return [spec for spec in self.roster if spec.ship_id not in placed]

    def place_ship(self, ship_id: ShipId, origin: Coordinate, orientation: Orientation) -> bool:
        """Place one of the human's ships; True once it is on the board."""
        if not self._require_phase(PhaseKind.PLACING, "place_ship"):
            return False
        spec = next((spec for spec in self.remaining_ships() if spec.ship_id == ship_id), None)
        if spec is None:
            logger.warning("placement_rejected_unknown_ship", extra={"ship_id": ship_id})
            return False
        if not place_ship(self.boards[Side.PLAYER], spec, origin, orientation):
            return False
        self._start_play_if_fleet_complete()
        return True

    def auto_place_fleet(self) -> bool:
        """Randomly place every human ship still waiting to be placed."""
        if not self._require_phase(PhaseKind.PLACING, "auto_place_fleet"):
            return False
        board = self.boards[Side.PLAYER]
        pending = self.remaining_ships()
        try:
            place_randomly(board, pending, self._rng)
        except FleetPlacementError:
            # Keep the ships the human placed by hand, drop the partial random ones.
            for spec in pending:
                board.ships.pop(spec.ship_id, None)
            self.boards[Side.PLAYER] = self._rebuild_board(board)
            return False
        self._start_play_if_fleet_complete()
        return True

    def fire_shot(self, target_side: Side, coord: Coordinate) -> ShotOutcome:
        """Resolve the human's shot against ``target_side`` (must be the opponent)."""
        with tracer.start_as_current_span("game.fire_shot") as span:
            span.set_attribute("row", coord.row)
            span.set_attribute("col", coord.col)
            if not self._require_turn(Side.PLAYER, "fire_shot"):
                return ShotOutcome.REJECTED
            if target_side is not Side.OPPONENT:
                logger.warning("shot_rejected_own_board", extra={"target": target_side.value})
                return ShotOutcome.REJECTED
            outcome = self._take_shot(Side.PLAYER, coord)
            span.set_attribute("shot.outcome", outcome.value)
            return outcome

    def request_opponent_move(self) -> tuple[Coordinate, ShotOutcome] | None:
        """Let the computer take its turn; None if it is not the computer's turn."""
        with tracer.start_as_current_span("game.request_opponent_move") as span:
            if not self._require_turn(Side.OPPONENT, "request_opponent_move"):
                return None
            # Read the live history so the choice reflects every resolved shot.
            history = self.histories[Side.PLAYER]
            coord = self.opponent.choose_target(history)
            if coord is None:
                logger.error("opponent_has_no_move", extra={"shots_taken": len(history)})
                return None
            outcome = self._take_shot(Side.OPPONENT, coord)
            self.opponent.observe(coord, outcome)
            span.set_attribute("row", coord.row)
            span.set_attribute("col", coord.col)
            span.set_attribute("shot.outcome", outcome.value)
            return coord, outcome

    def _take_shot(self, shooter: Side, coord: Coordinate) -> ShotOutcome:
        target = shooter.other()
        outcome = resolve_shot(self.boards[target], self.histories[target], coord)
        MOVE_COUNTER.add(1, attributes={"result": outcome.value, "player": shooter.value})
        if outcome is ShotOutcome.FLEET_DESTROYED:
            self.phase = GamePhase.game_over(shooter)
            logger.info("game_finished", extra={"winner": shooter.value})
        elif outcome.consumed_turn:
            self.turn = target
        return outcome

    def _require_phase(self, kind: PhaseKind, action: str) -> bool:
        if self.phase.kind is kind:
            return True
        logger.warning(
            "action_rejected_wrong_phase",
            extra={"action": action, "phase": self.phase.kind.value, "required": kind.value},
        )
        return False

    def _require_turn(self, side: Side, action: str) -> bool:
        if not self._require_phase(PhaseKind.PLAYING, action):
            return False
        if self.turn is side:
            return True
        logger.warning(
            "action_rejected_wrong_turn",
            extra={"action": action, "side": side.value, "turn": self.turn.value},
        )
        return False

    def _start_play_if_fleet_complete(self) -> None:
        if self.remaining_ships():
            return
        self.phase = GamePhase.playing()
        self.turn = Side.PLAYER
        logger.info("game_playing_started", extra={"first_turn": self.turn.value})

    def _place_opponent_fleet(self) -> Board:
        for attempt in range(1, FLEET_PLACEMENT_RETRIES):
            try:
                return self._random_opponent_board()
            except FleetPlacementError as exc:
                logger.warning(
                    "opponent_fleet_retry",
                    extra={"attempt": attempt, "ship_name": exc.spec.name},
                )
        return self._random_opponent_board()

    def _random_opponent_board(self) -> Board:
        return place_fleet(
            self.config.ship_lengths,
            self._rng,
            size=self.config.grid_size,
            owner=Side.OPPONENT.value,
        )

    @staticmethod
    def _rebuild_board(board: Board) -> Board:
        return Board(size=board.size, owner=board.owner, ships=dict(board.ships))
