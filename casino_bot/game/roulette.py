"""
Single-zero roulette.
"""
import logging
from typing import NamedTuple, Union
from .base import Outcome, validate_bet, win, loss
from .rng import RandomSource, rand_int
from ..errors import ValidationError

logger = logging.getLogger(__name__)

RED_NUMBERS = frozenset([1, 3, 5, 7, 9, 12, 14, 16, 18, 19, 21, 23, 25, 27, 30, 32, 34, 36])

EVEN_MONEY = 2  # color, parity, range
NUMBER_PAYOUT = 36  # 35:1

CHOICES = {
    "color": ("red", "black"),
    "parity": ("odd", "even"),
    "range": ("low", "high"),
}


class ResultInfo(NamedTuple):
    color: str  # red, black or green
    parity: str  # odd, even or none
    range: str  # low, high or none


def get_result_info(number: int) -> ResultInfo:
    """Classify a pocket. Zero belongs to no color, parity or range."""
    if number == 0:
        return ResultInfo("green", "none", "none")
    return ResultInfo(
        "red" if number in RED_NUMBERS else "black",
        "even" if number % 2 == 0 else "odd",
        "low" if number <= 18 else "high",
    )


def validate_choice(bet_type: str, choice: Union[str, int]) -> Union[str, int]:
    """Normalize a choice for its bet type or raise ValidationError."""
    bet_type = str(bet_type).lower()
    if bet_type == "number":
        try:
            number = int(choice)
        except (TypeError, ValueError):
            raise ValidationError("choice", "Number bets need a number between 0 and 36")
        if not 0 <= number <= 36:
            raise ValidationError("choice", "Number bets need a number between 0 and 36")
        return number

    if bet_type not in CHOICES:
        raise ValidationError("bet_type", "Bet type must be color, parity, range or number")

    choice = str(choice).lower()
    if choice not in CHOICES[bet_type]:
        allowed = " or ".join(CHOICES[bet_type])
        raise ValidationError("choice", f"{bet_type.title()} bets must be {allowed}")
    return choice


def check_win(bet_type: str, choice: Union[str, int], number: int) -> bool:
    info = get_result_info(number)
    if bet_type == "number":
        return number == choice
    return getattr(info, bet_type) == choice


def payout_multiplier(bet_type: str) -> int:
    return NUMBER_PAYOUT if bet_type == "number" else EVEN_MONEY


def play(bet: int, rng: RandomSource, bet_type: str = None, choice: Union[str, int] = None) -> Outcome:
    bet = validate_bet(bet)
    choice = validate_choice(bet_type, choice)
    bet_type = str(bet_type).lower()

    number = rand_int(rng, 0, 36)
    info = get_result_info(number)
    details = {
        "bet_type": bet_type,
        "choice": choice,
        "number": number,
        "color": info.color,
        "parity": info.parity,
        "range": info.range,
    }

    logger.info(f"Roulette spin: {number} ({info.color}) for {bet_type}={choice}")
    if check_win(bet_type, choice, number):
        return win(bet, payout_multiplier(bet_type), details)
    return loss(bet, details)
