"""
Daily reward with a streak bonus for consecutive claims.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional
from .database import Storage, BotSettings, DailyStreak, Transaction, TransactionType, utcnow
from .errors import NotFoundError, PolicyError
from .ledger import Ledger

logger = logging.getLogger(__name__)

CLAIM_INTERVAL = timedelta(hours=24)
STREAK_WINDOW = timedelta(hours=48)  # Longer gaps reset the streak


@dataclass
class DailyReward:
    amount: int
    base: int
    bonus: int
    streak: int
    next_available: datetime
    transaction: Transaction


@dataclass
class DailyStatus:
    available: bool
    streak: int
    streak_active: bool
    last_claimed: Optional[datetime]
    next_available: Optional[datetime]
    time_remaining: timedelta


def calculate_streak_bonus(streak: int, per_day: int, maximum: int) -> int:
    """Bonus for a streak length.

    Args:
        streak: Consecutive claims including this one
        per_day: Bonus per day after the first
        maximum: Bonus cap

    Returns:
        Bonus coins
    """
    return min((streak - 1) * per_day, maximum)


def next_streak(record: Optional[DailyStreak], now: datetime) -> int:
    if not record or not record.last_claimed:
        return 1
    if now - record.last_claimed > STREAK_WINDOW:
        return 1
    return record.streak + 1


class DailyRewardTracker:
    """Gates daily claims and pays them through the ledger."""

    def __init__(self, db: Storage, ledger: Optional[Ledger] = None):
        self.db = db
        self.ledger = ledger or Ledger(db)

    def claim(self, user_id: int, settings: BotSettings, now: Optional[datetime] = None) -> DailyReward:
        """Claim today's reward.

        Raises:
            PolicyError: If the next claim is not available yet
            NotFoundError: If the user does not exist
        """
        now = now or utcnow()
        with self.db.user_lock(user_id):
            if not self.db.get_user(user_id):
                raise NotFoundError(f"User {user_id} not found")

            record = self.db.get_daily_streak(user_id)
            if record and record.next_available and now < record.next_available:
                remaining = record.next_available - now
                logger.info(f"User {user_id} daily claim rejected, {remaining} remaining")
                raise PolicyError("Daily reward not yet available", retry_after=remaining.total_seconds())

            streak = next_streak(record, now)
            base = settings.daily_reward_amount
            bonus = calculate_streak_bonus(streak, settings.streak_bonus_amount, settings.max_streak_bonus)
            amount = base + bonus

            tx = self.ledger.credit(
                user_id,
                amount,
                TransactionType.DAILY,
                f"Daily reward (Day {streak}): {base} + {bonus} streak bonus",
            )

            next_available = now + CLAIM_INTERVAL
            self.db.save_daily_streak(DailyStreak(
                user_id=user_id,
                streak=streak,
                last_claimed=now,
                next_available=next_available,
            ))

        logger.info(f"User {user_id} claimed daily reward {amount} (streak {streak})")
        return DailyReward(amount, base, bonus, streak, next_available, tx)

    def get_status(self, user_id: int, now: Optional[datetime] = None) -> DailyStatus:
        now = now or utcnow()
        record = self.db.get_daily_streak(user_id)
        if not record:
            return DailyStatus(True, 0, False, None, None, timedelta(0))

        available = record.next_available is None or now >= record.next_available
        remaining = timedelta(0) if available else record.next_available - now
        active = record.last_claimed is not None and now - record.last_claimed <= STREAK_WINDOW
        return DailyStatus(available, record.streak, active, record.last_claimed, record.next_available, remaining)
