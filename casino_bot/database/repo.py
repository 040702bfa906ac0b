"""
Storage interface and in-memory repository for the casino bot.
"""
import copy
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Optional, List, Dict, Any
from ..errors import InvariantViolation
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

logger = logging.getLogger(__name__)


def _copy_game(game: GameRecord) -> GameRecord:
    return replace(game, details=copy.deepcopy(game.details))


class Storage(ABC):
    """Everything the core reads and writes.

    Implementations return copies: mutating a returned record has no effect
    until it is passed back to a save method.
    """

    # === Locks ===

    @abstractmethod
    def user_lock(self, user_id: int) -> threading.RLock:
        """Lock serializing balance, streak and per-user stats changes for one user."""

    @abstractmethod
    def stats_lock(self) -> threading.RLock:
        """Lock serializing game log appends with updates to the aggregates."""

    # === User Operations ===

    @abstractmethod
    def create_user(self, external_id: str, username: Optional[str], balance: int) -> User: ...

    @abstractmethod
    def get_user(self, user_id: int) -> Optional[User]: ...

    @abstractmethod
    def get_user_by_external_id(self, external_id: str) -> Optional[User]: ...

    @abstractmethod
    def get_all_users(self) -> List[User]: ...

    @abstractmethod
    def save_user(self, user: User) -> None: ...

    @abstractmethod
    def delete_user(self, user_id: int) -> bool: ...

    # === Game Operations ===

    @abstractmethod
    def add_game(
        self,
        game_type: GameType,
        user_id: int,
        bet: int,
        outcome: GameOutcome,
        win_amount: int,
        multiplier: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> GameRecord: ...

    @abstractmethod
    def get_game(self, game_id: int) -> Optional[GameRecord]: ...

    @abstractmethod
    def get_user_games(self, user_id: int, limit: int = 10) -> List[GameRecord]: ...

    @abstractmethod
    def get_all_games(self) -> List[GameRecord]: ...

    # === Transaction Operations ===

    @abstractmethod
    def apply_transaction(
        self,
        user: User,
        amount: int,
        tx_type: TransactionType,
        description: str,
        game_id: Optional[int] = None,
    ) -> Transaction:
        """Store `user` with its balance moved by `amount` and append the transaction, atomically."""

    @abstractmethod
    def get_user_transactions(self, user_id: int, limit: Optional[int] = 50) -> List[Transaction]:
        """Newest first."""

    # === Statistics Operations ===

    @abstractmethod
    def get_game_stats(self, game_type: GameType) -> Optional[GameStats]: ...

    @abstractmethod
    def get_all_game_stats(self) -> List[GameStats]: ...

    @abstractmethod
    def save_game_stats(self, stats: GameStats) -> None: ...

    @abstractmethod
    def get_user_game_stats(self, user_id: int, game_type: GameType) -> Optional[UserGameStats]: ...

    @abstractmethod
    def get_user_game_stats_for_user(self, user_id: int) -> List[UserGameStats]:
        """In first-played order."""

    @abstractmethod
    def get_all_user_game_stats(self) -> List[UserGameStats]: ...

    @abstractmethod
    def save_user_game_stats(self, stats: UserGameStats) -> None: ...

    # === Daily Reward Operations ===

    @abstractmethod
    def get_daily_streak(self, user_id: int) -> Optional[DailyStreak]: ...

    @abstractmethod
    def save_daily_streak(self, streak: DailyStreak) -> None: ...

    # === Settings ===

    @abstractmethod
    def get_settings(self) -> BotSettings: ...

    @abstractmethod
    def update_settings(self, settings: BotSettings) -> BotSettings: ...


class Database(Storage):
    """In-memory repository.

    Records live in dicts keyed by generated integer ids. Ids are never reused,
    so game records of a deleted user keep pointing at an id no account owns.
    """

    def __init__(self, settings: Optional[BotSettings] = None):
        self._lock = threading.RLock()
        self._stats_lock = threading.RLock()
        self._user_locks: Dict[int, threading.RLock] = {}

        self._next_ids = {"users": 1, "games": 1, "transactions": 1}

        self._users: Dict[int, User] = {}
        self._external_ids: Dict[str, int] = {}
        self._games: Dict[int, GameRecord] = {}
        self._transactions: Dict[int, Transaction] = {}
        self._user_transactions: Dict[int, List[int]] = {}
        self._game_stats: Dict[GameType, GameStats] = {}
        self._user_game_stats: Dict[tuple, UserGameStats] = {}
        self._daily_streaks: Dict[int, DailyStreak] = {}
        self._settings = settings or BotSettings()

    def _next_id(self, table: str) -> int:
        next_id = self._next_ids[table]
        self._next_ids[table] = next_id + 1
        return next_id

    # === Locks ===

    def user_lock(self, user_id: int) -> threading.RLock:
        with self._lock:
            if user_id not in self._user_locks:
                self._user_locks[user_id] = threading.RLock()
            return self._user_locks[user_id]

    def stats_lock(self) -> threading.RLock:
        return self._stats_lock

    # === User Operations ===

    def create_user(self, external_id: str, username: Optional[str], balance: int) -> User:
        with self._lock:
            if external_id in self._external_ids:
                return replace(self._users[self._external_ids[external_id]])
            user = User(
                user_id=self._next_id("users"),
                external_id=external_id,
                username=username,
                balance=balance,
                highest_balance=balance,
            )
            self._users[user.user_id] = user
            self._external_ids[external_id] = user.user_id
        logger.info(f"Created user {user.user_id} ({external_id}) with balance {balance}")
        return replace(user)

    def get_user(self, user_id: int) -> Optional[User]:
        with self._lock:
            user = self._users.get(user_id)
            return replace(user) if user else None

    def get_user_by_external_id(self, external_id: str) -> Optional[User]:
        with self._lock:
            user_id = self._external_ids.get(external_id)
            return replace(self._users[user_id]) if user_id is not None else None

    def get_all_users(self) -> List[User]:
        with self._lock:
            return [replace(u) for u in self._users.values()]

    def save_user(self, user: User) -> None:
        """Store profile and counters. The balance only moves through apply_transaction."""
        with self._lock:
            stored = self._users.get(user.user_id)
            if not stored:
                raise InvariantViolation(f"User {user.user_id} does not exist")
            self._users[user.user_id] = replace(user, balance=stored.balance)

    def delete_user(self, user_id: int) -> bool:
        """Remove the account with its transactions, streak and per-user stats.

        Game records and the per-game aggregates are kept.
        """
        with self._lock:
            user = self._users.pop(user_id, None)
            if not user:
                return False
            self._external_ids.pop(user.external_id, None)
            for tx_id in self._user_transactions.pop(user_id, []):
                self._transactions.pop(tx_id, None)
            self._daily_streaks.pop(user_id, None)
            self._user_locks.pop(user_id, None)
            for key in [k for k in self._user_game_stats if k[0] == user_id]:
                del self._user_game_stats[key]
        logger.info(f"Deleted user {user_id}")
        return True

    # === Game Operations ===

    def add_game(
        self,
        game_type: GameType,
        user_id: int,
        bet: int,
        outcome: GameOutcome,
        win_amount: int,
        multiplier: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> GameRecord:
        with self._lock:
            game = GameRecord(
                game_id=self._next_id("games"),
                game_type=game_type,
                user_id=user_id,
                bet=bet,
                outcome=outcome,
                win_amount=win_amount,
                multiplier=multiplier,
                details=copy.deepcopy(details or {}),
            )
            self._games[game.game_id] = game
        return _copy_game(game)

    def get_game(self, game_id: int) -> Optional[GameRecord]:
        with self._lock:
            game = self._games.get(game_id)
            return _copy_game(game) if game else None

    def get_user_games(self, user_id: int, limit: int = 10) -> List[GameRecord]:
        """Most recent first."""
        with self._lock:
            games = [_copy_game(g) for g in self._games.values() if g.user_id == user_id]
        games.reverse()
        return games[:limit]

    def get_all_games(self) -> List[GameRecord]:
        with self._lock:
            return [_copy_game(g) for g in self._games.values()]

    # === Transaction Operations ===

    def apply_transaction(
        self,
        user: User,
        amount: int,
        tx_type: TransactionType,
        description: str,
        game_id: Optional[int] = None,
    ) -> Transaction:
        with self._lock:
            stored = self._users.get(user.user_id)
            if not stored:
                raise InvariantViolation(f"User {user.user_id} disappeared mid-operation")
            if stored.balance != user.balance:
                raise InvariantViolation(
                    f"Stale balance for user {user.user_id}: {user.balance} != {stored.balance}"
                )

            balance_after = stored.balance + amount
            if balance_after < 0:
                raise InvariantViolation(f"Balance of user {user.user_id} would go negative")

            tx = Transaction(
                tx_id=self._next_id("transactions"),
                user_id=user.user_id,
                amount=amount,
                tx_type=tx_type,
                description=description,
                balance_before=stored.balance,
                balance_after=balance_after,
                game_id=game_id,
            )
            user.balance = balance_after
            self._users[user.user_id] = replace(user)
            self._transactions[tx.tx_id] = tx
            self._user_transactions.setdefault(user.user_id, []).append(tx.tx_id)
        return tx

    def get_user_transactions(self, user_id: int, limit: Optional[int] = 50) -> List[Transaction]:
        with self._lock:
            tx_ids = list(self._user_transactions.get(user_id, []))
            txs = [self._transactions[tx_id] for tx_id in reversed(tx_ids)]
        return txs if limit is None else txs[:limit]

    # === Statistics Operations ===

    def get_game_stats(self, game_type: GameType) -> Optional[GameStats]:
        with self._lock:
            stats = self._game_stats.get(game_type)
            return replace(stats) if stats else None

    def get_all_game_stats(self) -> List[GameStats]:
        with self._lock:
            return [replace(s) for s in self._game_stats.values()]

    def save_game_stats(self, stats: GameStats) -> None:
        with self._lock:
            self._game_stats[stats.game_type] = replace(stats)

    def get_user_game_stats(self, user_id: int, game_type: GameType) -> Optional[UserGameStats]:
        with self._lock:
            stats = self._user_game_stats.get((user_id, game_type))
            return replace(stats) if stats else None

    def get_user_game_stats_for_user(self, user_id: int) -> List[UserGameStats]:
        with self._lock:
            return [replace(s) for k, s in self._user_game_stats.items() if k[0] == user_id]

    def get_all_user_game_stats(self) -> List[UserGameStats]:
        with self._lock:
            return [replace(s) for s in self._user_game_stats.values()]

    def save_user_game_stats(self, stats: UserGameStats) -> None:
        with self._lock:
            self._user_game_stats[(stats.user_id, stats.game_type)] = replace(stats)

    # === Daily Reward Operations ===

    def get_daily_streak(self, user_id: int) -> Optional[DailyStreak]:
        with self._lock:
            streak = self._daily_streaks.get(user_id)
            return replace(streak) if streak else None

    def save_daily_streak(self, streak: DailyStreak) -> None:
        with self._lock:
            self._daily_streaks[streak.user_id] = replace(streak)

    # === Settings ===

    def get_settings(self) -> BotSettings:
        with self._lock:
            return copy.deepcopy(self._settings)

    def update_settings(self, settings: BotSettings) -> BotSettings:
        with self._lock:
            self._settings = copy.deepcopy(settings)
            logger.info(f"Settings updated at {utcnow().isoformat()}")
            return copy.deepcopy(self._settings)
