"""
Two-dice betting: higher than, lower than, or exactly a target sum.
"""
import logging
from fractions import Fraction
from decimal import Decimal
from typing import NamedTuple
from .base import Outcome, validate_bet, round_half_up, win, loss
from .rng import RandomSource, rand_int
from ..errors import ValidationError

logger = logging.getLogger(__name__)

HOUSE_EDGE = Fraction(1, 10)
MIN_HIGH_LOW_PAYOUT = 2
BET_TYPES = ("higher", "lower", "exact")

# Number of two-dice combinations producing each sum
COMBINATIONS = {total: 6 - abs(total - 7) for total in range(2, 13)}


class DiceCheck(NamedTuple):
    is_win: bool
    payout: int


def validate_target(bet_type: str, target) -> int:
    if bet_type not in BET_TYPES:
        raise ValidationError("bet_type", "Bet type must be higher, lower or exact")
    try:
        target = int(target)
    except (TypeError, ValueError):
        raise ValidationError("target", "Target must be a number between 2 and 12")
    if not 2 <= target <= 12:
        raise ValidationError("target", "Target must be a number between 2 and 12")
    if bet_type == "higher" and target >= 12:
        raise ValidationError("target", "Cannot bet higher than 12")
    if bet_type == "lower" and target <= 2:
        raise ValidationError("target", "Cannot bet lower than 2")
    return target


def probability(bet_type: str, target: int) -> Fraction:
    """Chance of winning out of the 36 equally likely rolls."""
    if bet_type == "higher":
        favorable = sum(n for total, n in COMBINATIONS.items() if total > target)
    elif bet_type == "lower":
        favorable = sum(n for total, n in COMBINATIONS.items() if total < target)
    else:
        favorable = COMBINATIONS.get(target, 0)
    return Fraction(favorable, 36)


def calculate_payout(bet_type: str, target: int) -> int:
    """Gross payout multiplier: fair odds less the house edge, rounded.

    Higher/lower bets never pay below 2x.
    """
    p = probability(bet_type, target)
    if p == 0:
        raise ValidationError("target", f"A {bet_type} bet on {target} can never win")
    fair = (1 / p) * (1 - HOUSE_EDGE)
    payout = int(round_half_up(Decimal(fair.numerator) / Decimal(fair.denominator)))
    if bet_type == "exact":
        return payout
    return max(payout, MIN_HIGH_LOW_PAYOUT)


def check_win(bet_type: str, target: int, roll: int) -> DiceCheck:
    if bet_type == "higher":
        won = roll > target
    elif bet_type == "lower":
        won = roll < target
    else:
        won = roll == target
    return DiceCheck(won, calculate_payout(bet_type, target) if won else 0)


def roll_dice(rng: RandomSource):
    return rand_int(rng, 1, 6), rand_int(rng, 1, 6)


def play(bet: int, rng: RandomSource, bet_type: str = None, target: int = None) -> Outcome:
    bet = validate_bet(bet)
    bet_type = str(bet_type).lower()
    target = validate_target(bet_type, target)

    die1, die2 = roll_dice(rng)
    roll = die1 + die2
    check = check_win(bet_type, target, roll)
    multiplier = calculate_payout(bet_type, target)
    details = {
        "bet_type": bet_type,
        "target": target,
        "dice": [die1, die2],
        "total": roll,
        "payout_multiplier": multiplier,
    }

    logger.info(f"Dice roll: {die1}+{die2}={roll} for {bet_type} {target}")
    if check.is_win:
        return win(bet, multiplier, details)
    return loss(bet, details)
