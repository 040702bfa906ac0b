"""
Three-reel slot machine.
"""
import logging
from decimal import Decimal
from typing import List, NamedTuple, Optional
from .base import Outcome, validate_bet, win, loss
from .rng import RandomSource, choose_weighted

logger = logging.getLogger(__name__)


class Symbol(NamedTuple):
    name: str
    emoji: str
    value: Decimal
    weight: int  # Relative frequency on a reel


SYMBOLS = [
    Symbol("cherry", "🍒", Decimal("1"), 20),
    Symbol("lemon", "🍋", Decimal("1.5"), 18),
    Symbol("melon", "🍉", Decimal("2"), 16),
    Symbol("bell", "🔔", Decimal("2.5"), 14),
    Symbol("bar", "📊", Decimal("3"), 12),
    Symbol("diamond", "💎", Decimal("3.5"), 9),
    Symbol("heart", "❤️", Decimal("4"), 7),
    Symbol("seven", "7️⃣", Decimal("5"), 4),
]

TRIPLE_FACTOR = 5
PAIR_FACTOR = 2
JACKPOT_MULTIPLIER = Decimal(50)  # Three sevens


def spin_reels(rng: RandomSource) -> List[Symbol]:
    weights = [s.weight for s in SYMBOLS]
    return [choose_weighted(rng, SYMBOLS, weights) for _ in range(3)]


def calculate_multiplier(reels: List[Symbol]) -> Optional[Decimal]:
    """Multiplier for a spin, or None when nothing matches."""
    first, second, third = reels
    if first == second == third:
        if first.name == "seven":
            return JACKPOT_MULTIPLIER
        return first.value * TRIPLE_FACTOR
    if first == second or first == third:
        return first.value * PAIR_FACTOR
    if second == third:
        return second.value * PAIR_FACTOR
    return None


def play(bet: int, rng: RandomSource) -> Outcome:
    bet = validate_bet(bet)
    reels = spin_reels(rng)
    multiplier = calculate_multiplier(reels)
    details = {"reels": [s.name for s in reels], "display": " | ".join(s.emoji for s in reels)}

    logger.info(f"Slots spin: {details['reels']} multiplier={multiplier}")
    if multiplier is None:
        return loss(bet, details)
    return win(bet, multiplier, details)
