"""Command-line driver for playing Battleship against the hunt-and-target AI."""

from __future__ import annotations

import argparse
import logging
import string
from typing import Sequence

from battleship_duel.config import GameConfig, load_game_config, parse_ship_lengths
from battleship_duel.engine.board import Board
from battleship_duel.engine.game import Game, PhaseKind, Side
from battleship_duel.engine.instrumented_game import InstrumentedGame
from battleship_duel.engine.placement import FleetPlacementError
from battleship_duel.engine.ship import Coordinate, Orientation, ShipSpec
from battleship_duel.engine.shots import ShotHistory, ShotOutcome
from battleship_duel.telemetry import configure_console_logging, init_telemetry

ROW_LABELS = string.ascii_uppercase


def coordinate_from_input(text: str, size: int) -> Coordinate:
    """Parse ``A5`` (row letter, 1-based column) or ``"3 7"`` (0-based row and column)."""
    cleaned = text.strip().upper()
    if not cleaned:
        raise ValueError("Empty coordinate.")
    if cleaned[0].isalpha():
        labels = ROW_LABELS[:size]
        if cleaned[0] not in labels:
            raise ValueError(f"Row must be between A and {labels[-1]}.")
        row = labels.index(cleaned[0])
        try:
            col = int(cleaned[1:]) - 1
        except ValueError as exc:
            raise ValueError(f"Column must be a number between 1 and {size}.") from exc
    else:
        parts = cleaned.split()
        if len(parts) != 2:
            raise ValueError("Use formats like A5 or '3 7'.")
        try:
            row, col = map(int, parts)
        except ValueError as exc:
            raise ValueError("Row and column must be numbers.") from exc
    coord = Coordinate(row, col)
    if not coord.in_bounds(size):
        raise ValueError(f"Coordinates must be within the {size}x{size} board.")
    return coord


def coordinate_label(coord: Coordinate) -> str:
    return f"{ROW_LABELS[coord.row]}{coord.col + 1}"


def format_board(board: Board, history: ShotHistory, show_ships: bool) -> str:
    header = "    " + " ".join(f"{col + 1:>2}" for col in range(board.size))
    rows = [header]
    for row in range(board.size):
        symbols = []
        for col in range(board.size):
            coord = Coordinate(row, col)
            outcome = history.outcome_at(coord)
            if outcome is not None and outcome.is_hit:
                symbol = "X"
            elif outcome is ShotOutcome.MISS:
                symbol = "o"
            elif show_ships and board.occupant(coord) is not None:
                symbol = "S"
            else:
                symbol = "."
            symbols.append(f"{symbol:>2}")
        rows.append(f"{ROW_LABELS[row]} |" + " ".join(symbols))
    return "\n".join(rows)


def describe_shot(shooter: Side, coord: Coordinate, outcome: ShotOutcome, board: Board) -> str:
    who = "You" if shooter is Side.PLAYER else "The AI"
    label = coordinate_label(coord)
    if outcome.sank_ship:
        ship = board.ship_at(coord)
        name = ship.name.lower() if ship else "ship"
        owner = "the enemy" if shooter is Side.PLAYER else "your"
        return f"{who} fired at {label}: sank {owner} {name}!"
    return f"{who} fired at {label}: {'hit' if outcome.is_hit else 'miss'}"


def _prompt_orientation(spec: ShipSpec) -> Orientation:
    while True:
        raw = (
            input(f"Place your {spec.name} (length {spec.length}). Orientation [H/V]: ")
            .strip()
            .upper()
        )
        if raw in {"H", "HOR", "HORIZONTAL"}:
            return Orientation.HORIZONTAL
        if raw in {"V", "VER", "VERTICAL"}:
            return Orientation.VERTICAL
        print("Please enter H for horizontal or V for vertical.")


def _manual_ship_placement(game: Game) -> None:
    size = game.config.grid_size
    while game.remaining_ships():
        spec = game.remaining_ships()[0]
        print("\nCurrent layout:")
        print(format_board(game.boards[Side.PLAYER], ShotHistory(), show_ships=True))
        orientation = _prompt_orientation(spec)
        start_raw = input("Enter starting coordinate (e.g., A1): ")
        try:
            start = coordinate_from_input(start_raw, size)
        except ValueError as exc:
            print(f"Invalid coordinate: {exc}")
            continue
        if not game.place_ship(spec.ship_id, start, orientation):
            print("Ship cannot be placed there (out of bounds or overlaps). Try again.")


def _prompt_yes_no(question: str) -> bool:
    while True:
        raw = input(f"{question} [Y/n]: ").strip().lower()
        if raw in {"", "y", "yes"}:
            return True
        if raw in {"n", "no"}:
            return False
        print("Please answer with 'y' or 'n'.")


def _prompt_for_shot(game: Game) -> ShotOutcome:
    size = game.config.grid_size
    while True:
        raw = input("Enter target coordinate (e.g., A5) or 'q' to quit: ").strip()
        if raw.lower() == "q":
            raise SystemExit("Goodbye!")
        try:
            coord = coordinate_from_input(raw, size)
        except ValueError as exc:
            print(f"Invalid input: {exc}")
            continue
        outcome = game.fire_shot(Side.OPPONENT, coord)
        if outcome is ShotOutcome.ALREADY_FIRED:
            print("That cell has already been targeted. Choose another.")
            continue
        print(describe_shot(Side.PLAYER, coord, outcome, game.boards[Side.OPPONENT]))
        return outcome


def play_game(config: GameConfig, seed: int | None = None, auto_place: bool = False) -> Side | None:
    print("Welcome to Battleship!")
    print(
        f"Ships: {len(config.ship_lengths)}, covering {config.total_ship_cells} "
        f"of {config.grid_size * config.grid_size} cells.\n"
    )
    try:
        game = InstrumentedGame(config=config, rng_seed=seed)
    except FleetPlacementError as exc:
        print(f"Could not set up the enemy fleet: {exc}")
        return None

    if auto_place or not _prompt_yes_no("Would you like to place your ships manually?"):
        if not game.auto_place_fleet():
            print("Could not fit your fleet on the board. Try a smaller fleet.")
            return None
        print("\nYour ships have been positioned automatically.")
    else:
        _manual_ship_placement(game)

    while game.current_phase().kind is PhaseKind.PLAYING:
        print("\nYour Board:")
        print(format_board(game.boards[Side.PLAYER], game.histories[Side.PLAYER], show_ships=True))
        print("\nEnemy Waters:")
        print(format_board(game.boards[Side.OPPONENT], game.histories[Side.OPPONENT], show_ships=False))

        _prompt_for_shot(game)
        if game.current_turn() is not Side.OPPONENT:
            continue
        result = game.request_opponent_move()
        if result is not None:
            coord, outcome = result
            print(describe_shot(Side.OPPONENT, coord, outcome, game.boards[Side.PLAYER]))

    winner = game.winner()
    if winner is Side.PLAYER:
        print("\nCongratulations, you won!")
    else:
        print("\nThe AI won this time. Better luck next battle!")
    return winner


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Play Battleship against the computer.")
    parser.add_argument(
        "--seed", type=int, default=None, help="Optional RNG seed for reproducibility."
    )
    parser.add_argument("--grid-size", type=int, default=None, help="Board width and height.")
    parser.add_argument(
        "--ships", type=str, default=None, help="Comma separated ship lengths, e.g. 5,4,3,3,2."
    )
    parser.add_argument(
        "--auto-place", action="store_true", help="Place your fleet randomly without prompting."
    )
    parser.add_argument("--verbose", action="store_true", help="Log engine events to stderr.")
    return parser


def main(argv: Sequence[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_console_logging(logging.INFO if args.verbose else logging.WARNING)
    init_telemetry()
    try:
        if args.grid_size is None and not args.ships:
            config = load_game_config()
        else:
            config = GameConfig.from_env(
                grid_size=args.grid_size,
                ship_lengths=parse_ship_lengths(args.ships) if args.ships else None,
            )
    except ValueError as exc:
        parser.error(f"invalid game configuration: {exc}")
    play_game(config, seed=args.seed, auto_place=args.auto_place)


if __name__ == "__main__":
    main()
