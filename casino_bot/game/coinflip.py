"""
Coinflip against the house.
"""
import logging
from enum import Enum
from .base import Outcome, validate_bet, win, loss
from .rng import RandomSource
from ..errors import ValidationError

logger = logging.getLogger(__name__)

PAYOUT_MULTIPLIER = 2


class CoinSide(Enum):
    """Side of the coin."""
    HEADS = "heads"
    TAILS = "tails"


def flip_coin(rng: RandomSource) -> CoinSide:
    """Fair 50/50 flip."""
    return CoinSide.HEADS if rng.random() < 0.5 else CoinSide.TAILS


def play(bet: int, rng: RandomSource, choice: str = None) -> Outcome:
    """Call a side and flip.

    Args:
        bet: Wager in coins
        rng: Random source
        choice: "heads" or "tails"

    Returns:
        Outcome paying 2x the bet on a correct call
    """
    bet = validate_bet(bet)
    try:
        side = CoinSide(str(choice).lower())
    except ValueError:
        raise ValidationError("choice", "Choice must be heads or tails")

    result = flip_coin(rng)
    details = {"choice": side.value, "result": result.value}

    logger.info(f"Coin flip result: {result.value} (called {side.value}, bet {bet})")
    if result == side:
        return win(bet, PAYOUT_MULTIPLIER, details)
    return loss(bet, details)
