"""Board, fleet, shot and game-flow model."""
