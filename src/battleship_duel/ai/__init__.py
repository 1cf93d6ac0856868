"""AI package exports."""

from .opponent import HuntTargetOpponent, OpponentState, TargetingMode

__all__ = ["HuntTargetOpponent", "OpponentState", "TargetingMode"]
