"""
Statistics aggregator: per-game and per-user aggregates built from game records,
plus the leaderboard queries over them.
"""
import logging
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple
from .database import (
    Storage,
    User,
    GameRecord,
    GameStats,
    UserGameStats,
    GameType,
    GameOutcome,
    TransactionType,
)
from .errors import ValidationError
from .utils.formatting import format_win_rate

logger = logging.getLogger(__name__)

PLAYER_SORT_KEYS = ("net_profit_loss", "games_played", "games_won", "total_wagered", "highest_win")


@dataclass
class PlayerStanding:
    """One row of a player leaderboard."""
    user_id: int
    username: Optional[str]
    games_played: int = 0
    games_won: int = 0
    total_wagered: int = 0
    net_profit_loss: int = 0
    highest_win: int = 0
    win_rate: str = "0%"


def _is_higher_multiplier(candidate: Optional[str], current: Optional[str]) -> bool:
    if candidate is None:
        return False
    return current is None or Decimal(candidate) > Decimal(current)


def apply_game_stats(previous: Optional[GameStats], game: GameRecord) -> GameStats:
    """Fold one game record into the aggregate for its game type.

    Paid out counts everything handed back to players, so a tie adds its
    returned bet to both wagered and paid out and leaves profit/loss unchanged.
    """
    stats = replace(previous) if previous else GameStats(game_type=game.game_type)
    stats.total_played += 1
    stats.total_wagered += game.bet
    stats.total_paid_out += game.payout  # Zero on a loss, the bet on a tie
    stats.total_profit_loss = stats.total_wagered - stats.total_paid_out

    if game.outcome == GameOutcome.WIN:
        if game.win_amount > stats.highest_win:
            stats.highest_win = game.win_amount
            stats.user_with_highest_win = game.user_id
        if _is_higher_multiplier(game.multiplier, stats.highest_multiplier):
            stats.highest_multiplier = game.multiplier
    if game.bet > stats.highest_wager:
        stats.highest_wager = game.bet
        stats.user_with_highest_wager = game.user_id

    stats.updated_at = game.played_at
    return stats


def apply_user_game_stats(previous: Optional[UserGameStats], game: GameRecord) -> UserGameStats:
    """Fold one game record into the owning user's row for its game type."""
    stats = replace(previous) if previous else UserGameStats(user_id=game.user_id, game_type=game.game_type)
    stats.games_played += 1
    stats.total_wagered += game.bet
    stats.net_profit_loss += game.win_amount

    if game.outcome == GameOutcome.WIN:
        stats.games_won += 1
        stats.total_won += game.payout
        if game.win_amount > stats.highest_win:
            stats.highest_win = game.win_amount
        if _is_higher_multiplier(game.multiplier, stats.highest_multiplier):
            stats.highest_multiplier = game.multiplier

    stats.win_rate = format_win_rate(stats.games_played, stats.games_won)
    stats.last_played = game.played_at
    return stats


def mark_favorite(rows: List[UserGameStats]) -> List[UserGameStats]:
    """Flag the most played game. Ties go to the row seen first."""
    if not rows:
        return rows
    favorite = max(rows, key=lambda row: row.games_played)
    for row in rows:
        row.favorite_game = row is favorite
    return rows


class StatisticsAggregator:
    """Keeps the aggregates in storage current and answers ranking queries."""

    def __init__(self, db: Storage):
        self.db = db

    # === Updates ===

    def record(self, game: GameRecord) -> Tuple[GameStats, UserGameStats]:
        """Update the aggregates from a newly recorded game."""
        with self.db.stats_lock():
            game_stats = apply_game_stats(self.db.get_game_stats(game.game_type), game)
            self.db.save_game_stats(game_stats)

        with self.db.user_lock(game.user_id):
            user_stats = apply_user_game_stats(
                self.db.get_user_game_stats(game.user_id, game.game_type), game
            )
            self.db.save_user_game_stats(user_stats)

            rows = mark_favorite(self.db.get_user_game_stats_for_user(game.user_id))
            for row in rows:
                self.db.save_user_game_stats(row)
                if row.game_type == game.game_type:
                    user_stats = row
        return game_stats, user_stats

    @staticmethod
    def replay(games: Iterable[GameRecord]) -> Tuple[Dict[GameType, GameStats], Dict[tuple, UserGameStats]]:
        """Rebuild every aggregate from a game log, without touching storage."""
        game_stats: Dict[GameType, GameStats] = {}
        user_stats: Dict[tuple, UserGameStats] = {}
        for game in games:
            game_stats[game.game_type] = apply_game_stats(game_stats.get(game.game_type), game)
            key = (game.user_id, game.game_type)
            user_stats[key] = apply_user_game_stats(user_stats.get(key), game)

        by_user: Dict[int, List[UserGameStats]] = {}
        for (user_id, _), row in user_stats.items():
            by_user.setdefault(user_id, []).append(row)
        for rows in by_user.values():
            mark_favorite(rows)
        return game_stats, user_stats

    def rebuild(self) -> None:
        """Recompute the stored aggregates from the full game log."""
        with self.db.stats_lock():
            game_stats, user_stats = self.replay(self.db.get_all_games())
            for stats in game_stats.values():
                self.db.save_game_stats(stats)
            for (user_id, _), stats in user_stats.items():
                if self.db.get_user(user_id):
                    self.db.save_user_game_stats(stats)
        logger.info(f"Rebuilt statistics for {len(game_stats)} game types")

    # === Queries ===

    def get_game_stats(self, game_type: GameType) -> GameStats:
        """Aggregate for one game type; empty if it was never played."""
        return self.db.get_game_stats(game_type) or GameStats(game_type=game_type)

    def get_all_game_stats(self) -> List[GameStats]:
        return [self.get_game_stats(game_type) for game_type in GameType]

    def get_user_stats(self, user_id: int) -> List[UserGameStats]:
        return self.db.get_user_game_stats_for_user(user_id)

    def get_user_game_stats(self, user_id: int, game_type: GameType) -> Optional[UserGameStats]:
        return self.db.get_user_game_stats(user_id, game_type)

    def get_favorite_game(self, user_id: int) -> Optional[GameType]:
        for row in self.db.get_user_game_stats_for_user(user_id):
            if row.favorite_game:
                return row.game_type
        return None

    # === Leaderboards ===

    def top_balances(self, limit: int = 10) -> List[User]:
        users = self.db.get_all_users()
        return sorted(users, key=lambda u: u.balance, reverse=True)[:limit]

    def top_earners(self, limit: int = 10) -> List[Tuple[User, int]]:
        """Players by game winnings minus bets placed."""
        ranked = [(u, u.total_won - u.total_spent) for u in self.db.get_all_users()]
        return sorted(ranked, key=lambda pair: pair[1], reverse=True)[:limit]

    def most_generous(self, limit: int = 10) -> List[Tuple[User, int]]:
        """Players by total coins sent to others."""
        ranked = []
        for user in self.db.get_all_users():
            sent = sum(
                -tx.amount
                for tx in self.db.get_user_transactions(user.user_id, limit=None)
                if tx.tx_type == TransactionType.TRANSFER_OUT
            )
            if sent > 0:
                ranked.append((user, sent))
        return sorted(ranked, key=lambda pair: pair[1], reverse=True)[:limit]

    def top_games(self, limit: int = 10) -> List[GameStats]:
        played = [s for s in self.get_all_game_stats() if s.total_played > 0]
        return sorted(played, key=lambda s: s.total_played, reverse=True)[:limit]

    def most_profitable_games(self, limit: int = 10) -> List[GameStats]:
        played = [s for s in self.get_all_game_stats() if s.total_played > 0]
        return sorted(played, key=lambda s: s.total_profit_loss, reverse=True)[:limit]

    def least_profitable_games(self, limit: int = 10) -> List[GameStats]:
        played = [s for s in self.get_all_game_stats() if s.total_played > 0]
        return sorted(played, key=lambda s: s.total_profit_loss)[:limit]

    def player_leaderboard(
        self,
        game_type: Optional[GameType] = None,
        sort_by: str = "net_profit_loss",
        limit: int = 10,
    ) -> List[PlayerStanding]:
        """Rank players within one game type, or across all games when none is given."""
        if sort_by not in PLAYER_SORT_KEYS:
            raise ValidationError("sort_by", f"sort_by must be one of: {', '.join(PLAYER_SORT_KEYS)}")

        usernames = {u.user_id: u.username for u in self.db.get_all_users()}
        standings: Dict[int, PlayerStanding] = {}
        for row in self.db.get_all_user_game_stats():
            if game_type is not None and row.game_type != game_type:
                continue
            standing = standings.setdefault(
                row.user_id, PlayerStanding(user_id=row.user_id, username=usernames.get(row.user_id))
            )
            standing.games_played += row.games_played
            standing.games_won += row.games_won
            standing.total_wagered += row.total_wagered
            standing.net_profit_loss += row.net_profit_loss
            standing.highest_win = max(standing.highest_win, row.highest_win)

        for standing in standings.values():
            standing.win_rate = format_win_rate(standing.games_played, standing.games_won)

        ordered = sorted(standings.values(), key=lambda s: s.user_id)
        return sorted(ordered, key=lambda s: getattr(s, sort_by), reverse=True)[:limit]
