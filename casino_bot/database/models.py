"""
Data models for the casino bot.
"""
from dataclasses import dataclass, field
from typing import Optional, Dict, Any
from datetime import datetime, timezone
from enum import Enum


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class GameType(Enum):
    """Games offered by the bot."""
    COINFLIP = "coinflip"
    SLOTS = "slots"
    BLACKJACK = "blackjack"
    ROULETTE = "roulette"
    DICE = "dice"
    POKER = "poker"
    CRASH = "crash"
    HILO = "hilo"
    MEGAMULTIPLIER = "megamultiplier"


class GameOutcome(Enum):
    """Result of a single play from the player's side."""
    WIN = "win"
    LOSS = "loss"
    TIE = "tie"  # Bet returned


class TransactionType(Enum):
    """Ledger transaction tags."""
    BET = "bet"
    WIN = "win"
    REFUND = "refund"  # Bet returned on a tie
    DAILY = "daily"
    TRANSFER_IN = "transfer_in"
    TRANSFER_OUT = "transfer_out"
    ADMIN = "admin"


@dataclass
class User:
    """Player account."""
    user_id: int  # Generated by storage
    external_id: str  # Chat platform identity
    username: Optional[str] = None

    # Balance (whole coins, never negative)
    balance: int = 0

    # Lifetime totals
    total_earned: int = 0  # Non-game credits (daily, transfers in, admin)
    total_spent: int = 0  # Bets placed
    total_won: int = 0  # Gross game returns on wins
    highest_balance: int = 0

    # Stats
    games_played: int = 0
    games_won: int = 0
    last_played: Optional[datetime] = None

    created_at: datetime = field(default_factory=utcnow)

    @property
    def display_name(self) -> str:
        return self.username or f"Player {self.user_id}"


@dataclass(frozen=True)
class GameRecord:
    """One play. Immutable once recorded."""
    game_id: int
    game_type: GameType
    user_id: int
    bet: int
    outcome: GameOutcome
    win_amount: int  # Net of the bet: negative on loss, 0 on tie
    multiplier: Optional[str] = None  # Exact decimal string
    details: Dict[str, Any] = field(default_factory=dict)
    played_at: datetime = field(default_factory=utcnow)

    @property
    def payout(self) -> int:
        """Gross amount returned to the player."""
        return self.bet + self.win_amount


@dataclass(frozen=True)
class Transaction:
    """One balance change."""
    tx_id: int
    user_id: int
    amount: int  # Positive credit, negative debit
    tx_type: TransactionType
    description: str
    balance_before: int
    balance_after: int

    game_id: Optional[int] = None
    timestamp: datetime = field(default_factory=utcnow)


@dataclass
class GameStats:
    """Aggregate over every play of one game type."""
    game_type: GameType
    total_played: int = 0
    total_wagered: int = 0
    total_paid_out: int = 0
    total_profit_loss: int = 0  # House view: wagered minus paid out
    highest_win: int = 0
    highest_wager: int = 0
    highest_multiplier: Optional[str] = None
    user_with_highest_win: Optional[int] = None
    user_with_highest_wager: Optional[int] = None
    updated_at: Optional[datetime] = None


@dataclass
class UserGameStats:
    """Aggregate over one user's plays of one game type."""
    user_id: int
    game_type: GameType
    games_played: int = 0
    games_won: int = 0
    total_wagered: int = 0
    total_won: int = 0  # Gross returns
    net_profit_loss: int = 0  # Player view
    highest_win: int = 0
    highest_multiplier: Optional[str] = None
    win_rate: str = "0%"
    favorite_game: bool = False
    last_played: Optional[datetime] = None


@dataclass
class DailyStreak:
    """Daily reward claim state for one user."""
    user_id: int
    streak: int = 0
    last_claimed: Optional[datetime] = None
    next_available: Optional[datetime] = None


def _default_enabled() -> Dict[GameType, bool]:
    return {game_type: True for game_type in GameType}


@dataclass
class BotSettings:
    """Tunable bot configuration, passed into core operations."""
    prefix: str = "!"
    currency_name: str = "coins"
    currency_symbol: str = "$"
    starting_balance: int = 1000
    log_commands: bool = True
    allow_user_reset: bool = True
    cooldown_minutes: int = 5

    game_enabled: Dict[GameType, bool] = field(default_factory=_default_enabled)

    # Daily rewards
    daily_reward_amount: int = 100
    streak_bonus_amount: int = 25
    max_streak_bonus: int = 250

    # Betting limits
    minimum_bet: int = 10
    maximum_bet: int = 10000

    allow_transfers: bool = True

    def is_enabled(self, game_type: GameType) -> bool:
        return self.game_enabled.get(game_type, True)
