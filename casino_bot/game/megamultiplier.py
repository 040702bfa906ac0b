"""
Mega Multiplier: rare wins with a multiplier that grows with the chosen risk.
"""
import logging
from decimal import Decimal, ROUND_FLOOR
from .base import Outcome, validate_bet, round_half_up, win, loss
from .rng import RandomSource
from ..errors import ValidationError

logger = logging.getLogger(__name__)

MIN_RISK = 1
MAX_RISK = 10
DEFAULT_RISK = 5
BASE_WIN_PROBABILITY = 0.25
MIN_MULTIPLIER = 2
MAX_MULTIPLIER = Decimal(100000)


def validate_risk(risk) -> int:
    if risk is None:
        return DEFAULT_RISK
    if isinstance(risk, bool):
        raise ValidationError("risk", f"Risk must be between {MIN_RISK} and {MAX_RISK}")
    try:
        risk = int(risk)
    except (TypeError, ValueError):
        raise ValidationError("risk", f"Risk must be between {MIN_RISK} and {MAX_RISK}")
    if not MIN_RISK <= risk <= MAX_RISK:
        raise ValidationError("risk", f"Risk must be between {MIN_RISK} and {MAX_RISK}")
    return risk


def win_probability(risk: int) -> float:
    """Falls linearly from 23% at risk 1 to 5% at risk 10."""
    return BASE_WIN_PROBABILITY * (1 - (risk / 10) * 0.8)


def max_multiplier(risk: int) -> float:
    return 10 ** (1 + risk / 2)


def sample_multiplier(risk: int, rng: RandomSource) -> Decimal:
    """Sample a winning multiplier between 2x and the risk ceiling, capped at 100000x."""
    risk_factor = risk / 10
    ceiling = max_multiplier(risk)
    skewed = rng.random() ** (2 - risk_factor)
    multiplier = MIN_MULTIPLIER + (ceiling - MIN_MULTIPLIER) * (1 - skewed)
    multiplier *= 0.9 + rng.random() * 0.2

    if multiplier < 100:
        value = round_half_up(multiplier, 2)
    else:
        value = Decimal(str(multiplier)).to_integral_value(rounding=ROUND_FLOOR)
    return min(value, MAX_MULTIPLIER)


def play(bet: int, rng: RandomSource, risk: int = None) -> Outcome:
    bet = validate_bet(bet)
    risk = validate_risk(risk)

    chance = win_probability(risk)
    details = {"risk": risk, "win_chance": round(chance * 100, 1)}

    if rng.random() >= chance:
        logger.info(f"Mega multiplier risk {risk}: miss")
        return loss(bet, details)

    multiplier = sample_multiplier(risk, rng)
    details["max_multiplier"] = max_multiplier(risk)
    logger.info(f"Mega multiplier risk {risk}: hit {multiplier}x")
    return win(bet, multiplier, details)
