"""Chat casino bot: games, ledger, statistics and daily rewards."""
from .casino import CasinoService, PlayResult
from .database import Database, BotSettings, GameType
from .errors import (
    CasinoError,
    ValidationError,
    InsufficientFundsError,
    PolicyError,
    NotFoundError,
    InvariantViolation,
)

__version__ = "1.0.0"

__all__ = [
    "CasinoService",
    "PlayResult",
    "Database",
    "BotSettings",
    "GameType",
    "CasinoError",
    "ValidationError",
    "InsufficientFundsError",
    "PolicyError",
    "NotFoundError",
    "InvariantViolation",
]
