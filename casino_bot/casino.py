"""
Casino service: runs a play end to end and manages player accounts.

A play validates the request, computes the outcome, then under the player's
lock records the game, debits the bet, credits any return and updates the
statistics. Nothing is written if validation or the game itself rejects the
request.
"""
import logging
import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional
from .database import (
    Storage,
    User,
    GameRecord,
    Transaction,
    BotSettings,
    GameType,
    GameOutcome,
    TransactionType,
)
from .errors import ValidationError, InsufficientFundsError, PolicyError, NotFoundError
from .game import GAMES, DESCRIPTIONS, Outcome, default_rng, validate_bet
from .game import hilo
from .game.hilo import HiloRound
from .game.rng import RandomSource
from .ledger import Ledger
from .rewards import DailyRewardTracker
from .stats import StatisticsAggregator
from .utils.validation import is_valid_amount, sanitize_username

logger = logging.getLogger(__name__)

GAME_NAMES = {
    GameType.COINFLIP: "Coinflip",
    GameType.SLOTS: "Slots",
    GameType.BLACKJACK: "Blackjack",
    GameType.ROULETTE: "Roulette",
    GameType.DICE: "Dice",
    GameType.POKER: "Poker",
    GameType.CRASH: "Crash",
    GameType.HILO: "Hi-Lo",
    GameType.MEGAMULTIPLIER: "Mega Multiplier",
}


@dataclass
class PlayResult:
    """A settled play with the records it produced."""
    game: GameRecord
    outcome: Outcome
    balance: int
    transactions: List[Transaction] = field(default_factory=list)


class CasinoService:
    """Entry point for the chat and admin layers."""

    def __init__(
        self,
        db: Storage,
        ledger: Optional[Ledger] = None,
        stats: Optional[StatisticsAggregator] = None,
        rewards: Optional[DailyRewardTracker] = None,
    ):
        self.db = db
        self.ledger = ledger or Ledger(db)
        self.stats = stats or StatisticsAggregator(db)
        self.rewards = rewards or DailyRewardTracker(db, self.ledger)

        self._rounds_lock = threading.Lock()
        self.pending_rounds: Dict[str, HiloRound] = {}

    # === Accounts ===

    def get_or_create_user(self, external_id: str, username: Optional[str], settings: BotSettings) -> User:
        """Fetch the account for a chat identity, creating it with the starting balance."""
        user = self.db.get_user_by_external_id(str(external_id))
        if user:
            return user
        return self.db.create_user(str(external_id), sanitize_username(username or "") or None, settings.starting_balance)

    def get_user(self, user_id: int) -> User:
        user = self.db.get_user(user_id)
        if not user:
            raise NotFoundError(f"User {user_id} not found")
        return user

    def delete_user_data(self, user_id: int, settings: Optional[BotSettings] = None) -> None:
        """Remove an account. Its game records stay in the log."""
        if settings is not None and not settings.allow_user_reset:
            raise PolicyError("Deleting user data is disabled")

        with self.db.user_lock(user_id):
            with self._rounds_lock:
                for token in [t for t, r in self.pending_rounds.items() if r.user_id == user_id]:
                    del self.pending_rounds[token]
            with self.db.stats_lock():
                deleted = self.db.delete_user(user_id)
            if not deleted:
                raise NotFoundError(f"User {user_id} not found")
        logger.info(f"User {user_id} data deleted")

    # === Playing ===

    def check_bet(self, game_type: GameType, bet: int, settings: BotSettings) -> int:
        """Validate a bet against configuration, before any state is touched."""
        if not settings.is_enabled(game_type):
            raise PolicyError(f"{GAME_NAMES[game_type]} is currently disabled")
        bet = validate_bet(bet)
        valid, error = is_valid_amount(bet, settings.minimum_bet, settings.maximum_bet)
        if not valid:
            raise ValidationError("bet", error)
        return bet

    def _require_funds(self, user_id: int, bet: int) -> User:
        user = self.get_user(user_id)
        if bet > user.balance:
            raise InsufficientFundsError(user.balance, bet)
        return user

    def play(
        self,
        user_id: int,
        game_type: GameType,
        bet: int,
        settings: BotSettings,
        rng: Optional[RandomSource] = None,
        **params,
    ) -> PlayResult:
        """Play one round of `game_type`.

        Args:
            user_id: Player
            game_type: Game to play
            bet: Wager in coins
            settings: Current bot settings
            rng: Random source, OS randomness when omitted
            **params: Game-specific options (choice, mode, bet_type, target, cashout, risk)

        Returns:
            PlayResult with the game record and the new balance
        """
        bet = self.check_bet(game_type, bet, settings)
        rng = rng or default_rng()

        with self.db.user_lock(user_id):
            self._require_funds(user_id, bet)
            outcome = GAMES[game_type](bet, rng, **params)
            return self._settle(user_id, game_type, outcome)

    def _settle(self, user_id: int, game_type: GameType, outcome: Outcome) -> PlayResult:
        """Record the game and move the money. Caller holds the user lock.

        The stats lock is held from appending the game until its aggregates are
        updated, so a concurrent rebuild sees either both or neither.
        """
        name = GAME_NAMES[game_type]
        with self.db.stats_lock():
            game = self.db.add_game(
                game_type=game_type,
                user_id=user_id,
                bet=outcome.bet,
                outcome=outcome.result,
                win_amount=outcome.win_amount,
                multiplier=str(outcome.multiplier) if outcome.is_win and outcome.multiplier is not None else None,
                details=outcome.details,
            )

            transactions = [
                self.ledger.debit(user_id, outcome.bet, TransactionType.BET, f"{name} bet", game.game_id)
            ]
            if outcome.payout > 0:
                if outcome.is_win:
                    tx_type, description = TransactionType.WIN, f"{name} win"
                else:
                    tx_type, description = TransactionType.REFUND, f"{name} push"
                transactions.append(self.ledger.credit(user_id, outcome.payout, tx_type, description, game.game_id))

            user = self.get_user(user_id)
            user.games_played += 1
            if outcome.result == GameOutcome.WIN:
                user.games_won += 1
            user.last_played = game.played_at
            self.db.save_user(user)

            self.stats.record(game)

        logger.info(
            f"User {user_id} played {game_type.value}: bet {outcome.bet}, "
            f"{outcome.result.value} {outcome.win_amount:+d}, balance {user.balance}"
        )
        return PlayResult(game=game, outcome=outcome, balance=user.balance, transactions=transactions)

    # === Hi-Lo rounds ===

    def start_hilo(
        self,
        user_id: int,
        bet: int,
        settings: BotSettings,
        rng: Optional[RandomSource] = None,
    ) -> HiloRound:
        """Deal the first card. The bet is only checked, not taken."""
        bet = self.check_bet(GameType.HILO, bet, settings)
        self._require_funds(user_id, bet)

        round_ = hilo.start_round(bet, rng or default_rng(), user_id=user_id)
        with self._rounds_lock:
            self.pending_rounds[round_.token] = round_
        logger.info(f"User {user_id} started hi-lo round {round_.token} on {round_.first_card}")
        return round_

    def resolve_hilo(self, token: str, choice: str, rng: Optional[RandomSource] = None) -> PlayResult:
        """Settle a pending round. Each token settles at most once."""
        with self._rounds_lock:
            round_ = self.pending_rounds.get(token)
            if not round_:
                raise NotFoundError("This round has expired or was already played")
            choice = hilo.validate_choice(choice)
            hilo.calculate_multiplier(round_.first_index, choice)
            del self.pending_rounds[token]

        with self.db.user_lock(round_.user_id):
            self._require_funds(round_.user_id, round_.bet)
            outcome = hilo.resolve_round(round_, choice, rng or default_rng())
            return self._settle(round_.user_id, GameType.HILO, outcome)

    def cancel_hilo(self, token: str) -> Optional[HiloRound]:
        """Drop a pending round without touching the balance."""
        with self._rounds_lock:
            round_ = self.pending_rounds.pop(token, None)
        if round_:
            logger.info(f"Hi-lo round {token} cancelled, bet of {round_.bet} untouched")
        return round_

    # === Reporting ===

    def games_summary(self) -> List[dict]:
        """Plays, wins and win rate per game type, from the game log."""
        counts = {game_type: [0, 0] for game_type in GameType}
        for game in self.db.get_all_games():
            counts[game.game_type][0] += 1
            if game.outcome == GameOutcome.WIN:
                counts[game.game_type][1] += 1

        summary = []
        for game_type, (played, won) in counts.items():
            summary.append({
                "id": game_type.value,
                "name": GAME_NAMES[game_type],
                "description": DESCRIPTIONS[game_type],
                "play_count": played,
                "win_count": won,
                "win_rate": round(won / played * 100, 1) if played else 0,
            })
        return summary
