"""
Crash: a multiplier climbs until it crashes; cash out before it does.
"""
import logging
from decimal import Decimal, ROUND_FLOOR
from typing import Optional
from .base import Outcome, validate_bet, to_decimal, win, loss
from .rng import RandomSource
from ..errors import ValidationError

logger = logging.getLogger(__name__)

HOUSE_EDGE = Decimal("0.05")
MIN_CASHOUT = Decimal("1.1")


def sample_crash_point(rng: RandomSource) -> Decimal:
    """Draw where the multiplier crashes, floored to 2 decimals, never below 1.00x."""
    r = to_decimal(rng.random())
    raw = (1 / (1 - r)) * (1 - HOUSE_EDGE)
    point = raw.quantize(Decimal("0.01"), rounding=ROUND_FLOOR)
    return max(Decimal("1.00"), point)


def validate_cashout(cashout) -> Optional[Decimal]:
    if cashout is None:
        return None
    try:
        target = to_decimal(cashout)
    except ArithmeticError:
        raise ValidationError("cashout", "Auto cashout must be a number")
    if not target.is_finite() or target < MIN_CASHOUT:
        raise ValidationError("cashout", f"Auto cashout must be at least {MIN_CASHOUT}x")
    return target


def play(bet: int, rng: RandomSource, cashout=None) -> Outcome:
    """Without an auto cashout target the player rides until the crash and loses."""
    bet = validate_bet(bet)
    target = validate_cashout(cashout)

    crash_point = sample_crash_point(rng)
    details = {"crash_point": str(crash_point), "cashout": str(target) if target else None}

    logger.info(f"Crash at {crash_point}x (target {target})")
    if target is not None and target < crash_point:
        return win(bet, target, details)
    return loss(bet, details)
