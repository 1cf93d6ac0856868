"""Instrumented Battleship game with telemetry hooks."""

from __future__ import annotations

import time

from battleship_duel.config import GameConfig
from battleship_duel.engine.game import Game, PhaseKind, Side
from battleship_duel.engine.placement import FleetPlacementError
from battleship_duel.engine.ship import Coordinate
from battleship_duel.engine.shots import ShotOutcome
from battleship_duel.telemetry import (
    get_logger,
    get_tracer,
    record_game_duration,
    record_game_metric,
)


class InstrumentedGame(Game):
    """Wraps Game with a span per match plus per-shot traces, metrics and logs."""

    def __init__(self, config: GameConfig | None = None, rng_seed: int | None = None) -> None:
        self._logger = get_logger("battleship_duel.engine")
        self._tracer = get_tracer("battleship_duel.engine")
        self._game_span_cm = None
        self._game_span = None
        self._game_start_time: float | None = None
        self._game_id_counter = 0
        super().__init__(config=config, rng_seed=rng_seed)

    def reset_game(self, config: GameConfig | None = None) -> None:
        self._start_game_span()
        with self._tracer.start_as_current_span("battleship_duel.engine.reset_game") as span:
            span.set_attribute("game.id", self._game_id_counter)
            try:
                super().reset_game(config)
            except FleetPlacementError as exc:
                span.record_exception(exc)
                self._logger.error("Game %d setup aborted: %s", self._game_id_counter, exc)
                self._close_game_span()
                raise
            span.set_attribute("opponent_ships", len(self.boards[Side.OPPONENT].ships))
            record_game_metric(
                "battleship_duel_game_setup_total",
                1,
                {"grid_size": self.config.grid_size, "ships": len(self.config.ship_lengths)},
            )
            self._logger.info("Game %d ready for placement", self._game_id_counter)

    def fire_shot(self, target_side: Side, coord: Coordinate) -> ShotOutcome:
        with self._tracer.start_as_current_span("battleship_duel.engine.fire_shot") as span:
            span.set_attribute("game.id", self._game_id_counter)
            outcome = super().fire_shot(target_side, coord)
            self._record_shot(span, Side.PLAYER, coord, outcome)
            return outcome

    def request_opponent_move(self) -> tuple[Coordinate, ShotOutcome] | None:
        with self._tracer.start_as_current_span("battleship_duel.engine.opponent_move") as span:
            span.set_attribute("game.id", self._game_id_counter)
            result = super().request_opponent_move()
            if result is not None and self.opponent.last_move_mode is not None:
                span.set_attribute("opponent.mode", self.opponent.last_move_mode.value)
            if result is not None:
                self._record_shot(span, Side.OPPONENT, *result)
            return result

    def _record_shot(self, span, shooter: Side, coord: Coordinate, outcome: ShotOutcome) -> None:
        span.set_attribute("shooter", shooter.value)
        span.set_attribute("coord.row", coord.row)
        span.set_attribute("coord.col", coord.col)
        span.set_attribute("shot_outcome", outcome.name)

        if outcome.consumed_turn:
            record_game_metric("battleship_duel_shots_total", 1, {"shooter": shooter.value})
            record_game_metric(
                "battleship_duel_shots_by_result_total",
                1,
                {"shooter": shooter.value, "result": outcome.value},
            )
        else:
            record_game_metric(
                "battleship_duel_rejected_shots_total",
                1,
                {"shooter": shooter.value, "reason": outcome.value},
            )
            span.set_attribute("error", True)

        self._logger.info(
            "shot shooter=%s coord=(%d,%d) outcome=%s",
            shooter.value,
            coord.row,
            coord.col,
            outcome.name,
        )

        if self.phase.kind is PhaseKind.GAME_OVER:
            self._finish_game()

    def _start_game_span(self) -> None:
        self._close_game_span()
        self._game_start_time = time.perf_counter()
        self._game_id_counter += 1
        self._game_span_cm = self._tracer.start_as_current_span("battleship_duel.engine.game")
        self._game_span = self._game_span_cm.__enter__()
        self._game_span.set_attribute("game.id", self._game_id_counter)

    def _finish_game(self) -> None:
        if self._game_span_cm is None:
            return
        duration = (time.perf_counter() - self._game_start_time) if self._game_start_time else 0.0
        total_shots = sum(len(history) for history in self.histories.values())
        winner = self.winner()
        winner_name = winner.value if winner else "unknown"

        record_game_metric("battleship_duel_game_completed_total", 1, {"winner": winner_name})
        record_game_duration("battleship_duel_game_duration_seconds", duration, {"winner": winner_name})

        with self._tracer.start_as_current_span("battleship_duel.engine.game_complete") as span:
            span.set_attribute("game.id", self._game_id_counter)
            span.set_attribute("winner", winner_name)
            span.set_attribute("shots", total_shots)
            span.set_attribute("duration_ms", duration * 1000)

        if self._game_span is not None:
            self._game_span.set_attribute("winner", winner_name)
            self._game_span.set_attribute("shots", total_shots)

        self._logger.info(
            "Game finished. Winner=%s shots=%d duration_s=%.3f", winner_name, total_shots, duration
        )
        self._close_game_span()

    def _close_game_span(self) -> None:
        if self._game_span_cm is not None:
            self._game_span_cm.__exit__(None, None, None)
            self._game_span_cm = None
            self._game_span = None
