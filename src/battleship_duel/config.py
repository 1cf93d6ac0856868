"""Fleet and board configuration."""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

STANDARD_FLEET: tuple[int, ...] = (5, 4, 3, 3, 2)
# Rows are labelled A-Z.
MAX_GRID_SIZE = 26


class GameConfig(BaseModel):
    """Grid size and ordered ship lengths for one game."""

    model_config = ConfigDict(frozen=True)

    grid_size: int = 10
    ship_lengths: tuple[int, ...] = STANDARD_FLEET

    @field_validator("grid_size")
    @classmethod
    def _positive_grid(cls, value: int) -> int:
        if not 1 <= value <= MAX_GRID_SIZE:
            raise ValueError(f"grid_size must be between 1 and {MAX_GRID_SIZE}")
        return value

    @field_validator("ship_lengths")
    @classmethod
    def _positive_lengths(cls, value: tuple[int, ...]) -> tuple[int, ...]:
        if not value:
            raise ValueError("at least one ship is required")
        if any(length < 1 for length in value):
            raise ValueError("ship lengths must be positive")
        return value

    @model_validator(mode="after")
    def _fleet_fits(self) -> "GameConfig":
        if max(self.ship_lengths) > self.grid_size:
            raise ValueError("a ship is longer than the grid")
        if sum(self.ship_lengths) > self.grid_size**2:
            raise ValueError("the fleet has more cells than the grid")
        return self

    @property
    def total_ship_cells(self) -> int:
        return sum(self.ship_lengths)

    @classmethod
    def from_env(cls, **overrides: Any) -> "GameConfig":
        """Construct config from `BATTLESHIP_GRID_SIZE` / `BATTLESHIP_SHIP_LENGTHS`."""

        data: Dict[str, Any] = {}
        grid_size = os.getenv("BATTLESHIP_GRID_SIZE")
        if grid_size:
            data["grid_size"] = int(grid_size.strip())
        ship_lengths = os.getenv("BATTLESHIP_SHIP_LENGTHS")
        if ship_lengths:
            data["ship_lengths"] = parse_ship_lengths(ship_lengths)
        data.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**data)


def parse_ship_lengths(text: str) -> tuple[int, ...]:
    """Parse a comma separated list such as ``"5,4,3,3,2"``."""
    return tuple(int(part) for part in text.split(",") if part.strip())


@lru_cache(maxsize=1)
def load_game_config() -> GameConfig:
    """Load and cache the game config from the environment."""

    return GameConfig.from_env()
