"""Database module for the casino bot."""
from .models import (
    User,
    GameRecord,
    Transaction,
    GameStats,
    UserGameStats,
    DailyStreak,
    BotSettings,
    GameType,
    GameOutcome,
    TransactionType,
    utcnow,
)
from .repo import Storage, Database

__all__ = [
    "User",
    "GameRecord",
    "Transaction",
    "GameStats",
    "UserGameStats",
    "DailyStreak",
    "BotSettings",
    "GameType",
    "GameOutcome",
    "TransactionType",
    "utcnow",
    "Storage",
    "Database",
]
